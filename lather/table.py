"""
Functions to export and import spot populations and simulation records as tables.

Spot populations are stored with full float precision, so a saved and reloaded population reproduces identical simulation output.
"""
#%% Import libraries
import logging
import math
import os

import numpy as np
import pandas as pd

from lather.parameters import Lifetime, Spot, SpotOrigin
from lather.spots import SpotSet
from lather.utilities import default_logger_format

#%% Setup logging
logger = logging.getLogger(__name__)
logger = default_logger_format(logger)

SPOT_COLUMNS = ['identifier', 'origin', 'latitude', 'longitude', 'fill_factor',
                'lifetime_start', 'lifetime_end', 'plage']


#%% Spot populations
def spots_to_dataframe(spot_set: SpotSet) -> pd.DataFrame:
    """
    Convert a spot population to a table, one row per spot in population order.

    Spots without lifetime have NaN in the lifetime columns.
    """
    rows = [
        {
            'identifier': spot.identifier,
            'origin': spot.origin.value,
            'latitude': spot.latitude,
            'longitude': spot.longitude,
            'fill_factor': spot.fill_factor,
            'lifetime_start': np.nan if spot.lifetime is None else spot.lifetime.start,
            'lifetime_end': np.nan if spot.lifetime is None else spot.lifetime.end,
            'plage': spot.plage,
        }
        for spot in spot_set
    ]
    return pd.DataFrame(rows, columns= SPOT_COLUMNS)


def spots_from_dataframe(table: pd.DataFrame) -> SpotSet:
    """
    Convert a table created by `spots_to_dataframe` back to a spot population.

    Empty identifiers are read back by pandas as NaN and restored as empty strings.
    """
    spots = []
    for row in table.itertuples(index= False):
        lifetime = None
        if not (math.isnan(row.lifetime_start) or math.isnan(row.lifetime_end)):
            lifetime = Lifetime(float(row.lifetime_start), float(row.lifetime_end))
        spots.append(Spot(latitude= float(row.latitude),
                          longitude= float(row.longitude),
                          fill_factor= float(row.fill_factor),
                          lifetime= lifetime,
                          plage= bool(row.plage),
                          identifier= '' if pd.isna(row.identifier) else str(row.identifier),
                          origin= SpotOrigin(row.origin)))
    return SpotSet(tuple(spots))


def save_spots(spot_set: SpotSet,
               path: str | os.PathLike) -> None:
    """Save a spot population as CSV."""
    spots_to_dataframe(spot_set).to_csv(path, index= False, float_format= '%.17g')
    logger.info(f'Saved {len(spot_set)} spots to {path}')


def load_spots(path: str | os.PathLike) -> SpotSet:
    """Load a spot population saved by `save_spots`."""
    table = pd.read_csv(path, float_precision= 'round_trip')
    logger.info(f'Loaded {len(table)} spots from {path}')
    return spots_from_dataframe(table)


#%% Simulation records
def records_to_dataframe(records) -> pd.DataFrame:
    """
    Convert simulation records to a table, one row per time sample.

    Parameters
    ----------
    records : list[SimulationRecord]
        Output of SimulationDriver.run.

    Returns
    -------
    pd.DataFrame
        Table with a column for each record attribute.
    """
    return pd.DataFrame(
        [
            {
                'time': record.time,
                'flux': record.flux,
                'quiet_flux': record.quiet_flux,
                'relative_flux': record.relative_flux,
                'radial_velocity': record.radial_velocity,
                'rv_floor': record.rv_floor,
                'valid': record.valid,
                'active_spots': record.active_spots,
            }
            for record in records
        ],
        columns= ['time', 'flux', 'quiet_flux', 'relative_flux', 'radial_velocity',
                  'rv_floor', 'valid', 'active_spots']
        )


def save_records(records,
                 path: str | os.PathLike) -> None:
    """Save simulation records as CSV."""
    records_to_dataframe(records).to_csv(path, index= False, float_format= '%.17g')
    logger.info(f'Saved {len(records)} samples to {path}')
