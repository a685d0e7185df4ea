"""
Tests of the simulation driver on small stellar grids.
"""
import numpy as np
import pytest

from lather.errors import ConfigError
from lather.parameters import Spot
from lather.simulation import SimulationDriver, generate_spot_population, simulate
from lather.spots import SpotSet


@pytest.fixture
def spotted_config(make_config):
    return make_config(grid_size= 60, target_fill_factor= 0.01)


def test_periodicity(spotted_config):
    driver = SimulationDriver(spotted_config, seed= 3)
    period = spotted_config.period
    for time in (0.0, 4.2, 17.9):
        first = driver.sample(time)
        second = driver.sample(time + period)
        assert second.flux == pytest.approx(first.flux, rel= 1e-8)
        assert second.radial_velocity == pytest.approx(first.radial_velocity, rel= 1e-6, abs= 1e-6)


def test_sub_observer_spot(sun_config):
    driver = SimulationDriver(sun_config, spots= [Spot(0.0, 0.0, 0.01)])
    period = sun_config.period
    times = np.linspace(-period / 4, period / 4, 21)
    flux = np.array([driver.sample(time).relative_flux for time in times])
    assert np.argmin(flux) == 10
    assert flux[10] < 1
    assert np.allclose(flux, flux[::-1], rtol= 1e-9)
    assert driver.sample(period / 2).relative_flux == pytest.approx(1.0)


def test_radial_velocity_antisymmetry(make_config):
    config = make_config(inclination= 60.0)
    east = SimulationDriver(config, spots= [Spot(20.0, 40.0, 0.01)]).sample(0.0)
    west = SimulationDriver(config, spots= [Spot(20.0, 320.0, 0.01)]).sample(0.0)
    # Dark spot on the receding half removes redshifted light
    assert east.radial_velocity < 0
    assert east.radial_velocity == pytest.approx(-west.radial_velocity, rel= 1e-6)
    assert east.relative_flux == pytest.approx(west.relative_flux, rel= 1e-9)


def test_deficit_grows_with_fill_factor(sun_config):
    deficits = [
        1 - SimulationDriver(sun_config, spots= [Spot(0.0, 0.0, fill_factor)]).sample(0.0).relative_flux
        for fill_factor in (0.005, 0.01, 0.02)
    ]
    assert 0 < deficits[0] < deficits[1] < deficits[2]


def test_plage_brightens(sun_config):
    record = SimulationDriver(sun_config, spots= [Spot(0.0, 0.0, 0.01, plage= True)]).sample(0.0)
    assert record.relative_flux > 1


def test_pole_on_star_is_constant(make_config):
    config = make_config(inclination= 0.0)
    driver = SimulationDriver(config, spots= [Spot(30.0, 0.0, 0.01)])
    records = driver.run([0.0, 5.0, 10.0])
    assert records[0].flux == records[1].flux == records[2].flux
    assert all(record.radial_velocity == 0.0 for record in records)


def test_example_scenario(make_config, sun_spots):
    config = make_config(target_fill_factor= 0.03)
    driver = SimulationDriver(config, spots= sun_spots, seed= 1)
    assert len(driver.population.explicit) == 3
    assert len(driver.population.random) > 0

    # Random spots are visible at the start, the explicit ones are not
    assert driver.sample(0.0).relative_flux < 1

    without_third = SimulationDriver(
        config,
        population= SpotSet(tuple(spot for spot in driver.population if spot.identifier != 'spot-2'))
        )
    for time in (10.0, 19.99, 60.0):
        assert driver.sample(time).flux == without_third.sample(time).flux
    # Times at which the third spot faces the observer
    for time in (20.0, 25.0, 50.0):
        assert driver.sample(time).flux < without_third.sample(time).flux
        assert driver.sample(time).active_spots == without_third.sample(time).active_spots + 1


def test_same_seed_same_output(spotted_config):
    times = [0.0, 3.0, 7.5]
    first = SimulationDriver(spotted_config, seed= 9).run(times)
    second = SimulationDriver(spotted_config, seed= 9).run(times)
    assert first == second


def test_sampling_order_does_not_matter(spotted_config):
    driver = SimulationDriver(spotted_config, seed= 4)
    forward = driver.run([1.0, 2.0, 3.0])
    backward = driver.run([3.0, 2.0, 1.0])
    assert forward == backward[::-1]


def test_multiprocessing_matches_serial(spotted_config):
    driver = SimulationDriver(spotted_config, seed= 2)
    times = np.linspace(0, spotted_config.period, 6)
    assert driver.run(times, force_multiprocessing= True, processes= 2) == driver.run(times)


def test_invalid_samples_are_flagged(sun_config):
    driver = SimulationDriver(sun_config, spots= [Spot(0.0, 0.0, 1.0)])
    driver.integrator.contrasts = np.zeros(1)
    records = driver.run([0.0, 1.0])
    assert [record.valid for record in records] == [False, False]
    assert all(np.isnan(record.radial_velocity) for record in records)
    assert all(record.active_spots == 1 for record in records)


def test_record_fields(sun_config):
    record = SimulationDriver(sun_config).sample(2)
    assert isinstance(record.time, float)
    assert record.valid
    assert record.relative_flux == pytest.approx(1.0)
    assert record.rv_floor == pytest.approx(sun_config.velocity_resolution)
    assert record.as_tuple() == (record.time, record.flux, record.radial_velocity)


def test_run_range(sun_config):
    driver = SimulationDriver(sun_config)
    records = driver.run_range(0.0, 1.0, 0.25)
    assert [record.time for record in records] == [0.0, 0.25, 0.5, 0.75, 1.0]


@pytest.mark.parametrize('start, stop, step', [
    (0.0, 1.0, 0.0),
    (0.0, 1.0, -0.1),
    (1.0, 0.0, 0.1),
])
def test_run_range_invalid(sun_config, start, stop, step):
    with pytest.raises(ConfigError):
        SimulationDriver(sun_config).run_range(start, stop, step)


def test_simulate(make_config, sun_spots):
    config = make_config(grid_size= 60, target_fill_factor= 0.03)
    times = [0.0, 10.0, 25.0]
    output = simulate(config, sun_spots, 1, times)
    assert [sample[0] for sample in output] == times
    assert all(len(sample) == 3 for sample in output)
    assert output == simulate(config, sun_spots, 1, times)


def test_invalid_config_type():
    with pytest.raises(ConfigError):
        SimulationDriver({'grid_size': 10})


def test_population_cache(spotted_config, tmp_path):
    path = str(tmp_path / 'population.pkl')
    first = generate_spot_population(spotted_config, seed= 1, pkl_name= path)
    cached = generate_spot_population(spotted_config, seed= 2, pkl_name= path, force_load= True)
    fresh = generate_spot_population(spotted_config, seed= 2)
    assert cached == first
    assert fresh != first
    assert generate_spot_population(spotted_config, seed= 1, force_skip= True) is None
