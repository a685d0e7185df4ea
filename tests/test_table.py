"""
Tests of spot population and record tables.
"""
import numpy as np

from lather.parameters import Spot
from lather.simulation import SimulationDriver
from lather.spots import SpotSet
from lather.table import (
    SPOT_COLUMNS,
    load_spots,
    records_to_dataframe,
    save_records,
    save_spots,
    spots_to_dataframe,
)


class TestTables:
    def test_spot_table(self, sun_spots):
        table = spots_to_dataframe(SpotSet.from_explicit(sun_spots))
        assert list(table.columns) == SPOT_COLUMNS
        assert len(table) == 3
        assert np.isnan(table['lifetime_start'][0])
        assert table['lifetime_end'][2] == 50.0

    def test_round_trip_reproduces_output(self, make_config, sun_spots, tmp_path):
        config = make_config(grid_size= 60, target_fill_factor= 0.03)
        driver = SimulationDriver(config, spots= sun_spots + [Spot(-10.0, 90.0, 0.005, plage= True)], seed= 5)
        path = tmp_path / 'spots.csv'
        save_spots(driver.population, path)
        loaded = load_spots(path)
        assert loaded == driver.population

        reloaded = SimulationDriver(config, population= loaded)
        times = [0.0, 12.0, 30.0]
        assert reloaded.run(times) == driver.run(times)

    def test_record_table(self, sun_config, tmp_path):
        records = SimulationDriver(sun_config, spots= [Spot(0.0, 0.0, 0.01)]).run([0.0, 1.0, 2.0])
        table = records_to_dataframe(records)
        assert table.shape == (3, 8)
        assert table['valid'].all()
        assert np.allclose(table['time'], [0.0, 1.0, 2.0])

        path = tmp_path / 'records.csv'
        save_records(records, path)
        assert path.read_text().splitlines()[0].startswith('time,flux,quiet_flux')

    def test_empty_identifier_round_trip(self, tmp_path):
        spot_set = SpotSet((Spot(10.0, 20.0, 0.01), Spot(-5.0, 40.0, 0.02, identifier= 'named')))
        path = tmp_path / 'spots.csv'
        save_spots(spot_set, path)
        loaded = load_spots(path)
        assert [spot.identifier for spot in loaded] == ['', 'named']
        assert loaded == spot_set
