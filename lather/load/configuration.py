"""
Loading of simulation configuration files (TOML).

Layout of the file::

    instrument_resolution = 100_000

    [star]
    grid_size, radius, period, inclination, temperature,
    spot_temp_diff, limb_linear, limb_quadratic, target_fill_factor
    plage_temp_diff                              # optional

    [[spots]]                                    # zero or more
    latitude, longitude, fill_factor
    lifetime = {start = 20.0, end = 50.0}        # optional
    plage = false                                # optional

    [placement]                                  # optional
    seed, coverage_policy, latitude_min, latitude_max, avoid_overlap,
    random_lifetime, max_draws, strict
    size_distribution = {kind = "lognormal", mu = 0.5, sigma = 4.0, scale = 9.4e-6, maximum = 1e-3}

All problems found in the file are collected and reported in a single ConfigError.
"""
#%% Importing libraries
import logging
import os
import tomllib
from dataclasses import dataclass, field
from typing import Any

from lather.errors import ConfigError
from lather.parameters import Lifetime, Spot, StarConfig
from lather.placement import PlacementSettings, SizeDistribution
from lather.utilities import default_logger_format

#%% Setup logging
logger = logging.getLogger(__name__)
logger = default_logger_format(logger)

STAR_REQUIRED = ('grid_size', 'radius', 'period', 'inclination', 'temperature',
                 'spot_temp_diff', 'limb_linear', 'limb_quadratic', 'target_fill_factor')
STAR_OPTIONAL = ('plage_temp_diff',)
SPOT_REQUIRED = ('latitude', 'longitude', 'fill_factor')
SPOT_OPTIONAL = ('lifetime', 'plage')
PLACEMENT_KEYS = ('seed', 'coverage_policy', 'latitude_min', 'latitude_max', 'avoid_overlap',
                  'random_lifetime', 'max_draws', 'strict', 'size_distribution')


#%% SimulationConfiguration
@dataclass(frozen=True)
class SimulationConfiguration:
    """
    Content of a configuration file.

    Attributes
    ----------
    star : StarConfig
        Stellar parameters.
    spots : tuple[Spot, ...]
        Explicit spots in configuration order.
    placement : PlacementSettings
        Settings of the random spot generation.
    seed : int | None
        Seed of the random spot generation.
    """
    star: StarConfig
    spots: tuple[Spot, ...] = ()
    placement: PlacementSettings = field(default_factory= PlacementSettings)
    seed: int | None = None


def _check_keys(table: dict,
                section: str,
                required: tuple[str, ...],
                optional: tuple[str, ...],
                errors: list[str]) -> bool:
    """Collect missing and unknown keys of a table. Returns True if the table is complete."""
    complete = True
    for key in required:
        if key not in table:
            errors.append(f'Missing field {key} of section {section}')
            complete = False
    for key in table:
        if key not in required + optional:
            errors.append(f'Unknown field {key} of section {section}')
            complete = False
    return complete


def _parse_star(data: dict, errors: list[str]) -> StarConfig | None:
    if 'star' not in data:
        errors.append('Missing section star')
        return None
    if 'instrument_resolution' not in data:
        errors.append('Missing field instrument_resolution')
        return None
    table = data['star']
    if not _check_keys(table, 'star', STAR_REQUIRED, STAR_OPTIONAL, errors):
        return None
    try:
        return StarConfig(instrument_resolution= float(data['instrument_resolution']),
                          grid_size= table['grid_size'],
                          **{key: float(table[key]) for key in STAR_REQUIRED + STAR_OPTIONAL
                             if key in table and key != 'grid_size'})
    except (ConfigError, TypeError, ValueError) as error:
        errors.append(f'Section star: {error}')
        return None


def _parse_spot(table: dict, ind: int, errors: list[str]) -> Spot | None:
    section = f'spots[{ind}]'
    if not _check_keys(table, section, SPOT_REQUIRED, SPOT_OPTIONAL, errors):
        return None
    try:
        lifetime = None
        if 'lifetime' in table:
            lifetime = Lifetime(start= float(table['lifetime']['start']),
                                end= float(table['lifetime']['end']))
        return Spot(latitude= float(table['latitude']),
                    longitude= float(table['longitude']),
                    fill_factor= float(table['fill_factor']),
                    lifetime= lifetime,
                    plage= bool(table.get('plage', False)),
                    identifier= f'spot-{ind}')
    except KeyError as error:
        errors.append(f'Section {section}: lifetime is missing {error}')
    except (ConfigError, TypeError, ValueError) as error:
        errors.append(f'Section {section}: {error}')
    return None


def _parse_placement(data: dict, errors: list[str]) -> tuple[PlacementSettings, int | None]:
    table: dict[str, Any] = data.get('placement', {})
    _check_keys(table, 'placement', (), PLACEMENT_KEYS, errors)
    try:
        settings = PlacementSettings(
            coverage_policy= table.get('coverage_policy', 'start'),
            size_distribution= SizeDistribution(**table.get('size_distribution', {})),
            latitude_range= (float(table.get('latitude_min', -90.0)), float(table.get('latitude_max', 90.0))),
            avoid_overlap= bool(table.get('avoid_overlap', False)),
            random_lifetime= table.get('random_lifetime'),
            max_draws= int(table.get('max_draws', 100_000)),
            strict= bool(table.get('strict', False)),
            )
    except (ConfigError, TypeError, ValueError) as error:
        errors.append(f'Section placement: {error}')
        settings = PlacementSettings()
    return settings, table.get('seed')


#%% Loading
def parse_config(data: dict, source: str = '<dict>') -> SimulationConfiguration:
    """
    Build the configuration from the parsed content of a configuration file.

    Parameters
    ----------
    data : dict
        Parsed TOML document.
    source : str, optional
        Name of the source, used in error messages.

    Returns
    -------
    SimulationConfiguration
        Validated configuration.

    Raises
    ------
    ConfigError
        Listing every problem found in the document.
    """
    errors: list[str] = []
    star = _parse_star(data, errors)
    spots = tuple(_parse_spot(table, ind, errors) for ind, table in enumerate(data.get('spots', [])))
    placement, seed = _parse_placement(data, errors)
    for key in data:
        if key not in ('instrument_resolution', 'star', 'spots', 'placement'):
            errors.append(f'Unknown section {key}')

    if errors or star is None:
        for error in errors:
            logger.critical(f'{error} in config file {source}')
        raise ConfigError(f'One or more errors loading config file {source}',
                          details= {'errors': errors})

    explicit = sum(spot.fill_factor for spot in spots)  # type: ignore
    logger.info(f'Loaded configuration {source}: {len(spots)} spots with total fill factor {explicit:.4f}')
    return SimulationConfiguration(star= star,
                                   spots= spots,  # type: ignore
                                   placement= placement,
                                   seed= seed)


def load_config(path: str | os.PathLike) -> SimulationConfiguration:
    """
    Load a configuration file.

    Parameters
    ----------
    path : str | os.PathLike
        Location of the TOML file.

    Returns
    -------
    SimulationConfiguration
        Validated configuration.
    """
    try:
        with open(path, 'rb') as input_file:
            data = tomllib.load(input_file)
    except OSError as error:
        raise ConfigError(f'Could not open config file {path}', details= {'path': str(path)}) from error
    except tomllib.TOMLDecodeError as error:
        raise ConfigError(f'Cannot parse config file {path}: {error}', details= {'path': str(path)}) from error
    return parse_config(data, source= str(path))
