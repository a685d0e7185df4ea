"""
Data model of the simulation: stellar parameters, spots and their lifetimes.

All classes are frozen dataclasses validated on construction. Invalid values raise ConfigError before any simulation work begins.

Classes:
- StarConfig
    Stellar and instrumental parameters.
- Lifetime
    Time window during which a spot is present.
- SpotOrigin
    Whether a spot was configured explicitly or generated randomly.
- Spot
    Single spot (or plage) fixed in the co-rotating frame of the star.
"""
#%% Importing libraries
import logging
import math
from dataclasses import dataclass
from enum import Enum

import astropy.constants as con
import astropy.units as u
import numpy as np

from lather.errors import ConfigError
from lather.limb_darkening import LimbDarkeningModel
from lather.utilities import default_logger_format

#%% Setup logging
logger = logging.getLogger(__name__)
logger = default_logger_format(logger)


def _require(condition: bool, message: str, **details) -> None:
    """Raise ConfigError with given message if condition is not fulfilled."""
    if not condition:
        logger.critical(message)
        raise ConfigError(message, details= details)


#%% StarConfig
@dataclass(frozen=True)
class StarConfig:
    """
    Stellar parameters of the simulation.

    Attributes
    ----------
    grid_size : int
        Number of latitude bands of the stellar grid.
    radius : float
        Stellar radius [R_sun].
    period : float
        Rotation period [d].
    inclination : float
        Inclination of the rotation axis towards the line of sight [deg]. 90 is equator-on, 0 and 180 pole-on.
    temperature : float
        Effective temperature of the photosphere [K].
    spot_temp_diff : float
        Difference between photosphere and spot temperature [K]. Positive values are cooler (dark) spots, negative values hotter features.
    limb_linear : float
        Linear limb-darkening coefficient.
    limb_quadratic : float
        Quadratic limb-darkening coefficient.
    target_fill_factor : float
        Fraction of the stellar surface the spot population should cover.
    instrument_resolution : float
        Resolving power of the spectrograph.
    plage_temp_diff : float
        Temperature excess of plages over the photosphere [K], by default 250.
    """
    grid_size: int
    radius: float
    period: float
    inclination: float
    temperature: float
    spot_temp_diff: float
    limb_linear: float
    limb_quadratic: float
    target_fill_factor: float
    instrument_resolution: float
    plage_temp_diff: float = 250.0

    def __post_init__(self):
        _require(isinstance(self.grid_size, (int, np.integer)) and not isinstance(self.grid_size, bool) and self.grid_size > 0,
                 f'grid_size must be a positive integer, got {self.grid_size!r}', grid_size= self.grid_size)
        for name in ('radius', 'period', 'temperature', 'instrument_resolution'):
            value = getattr(self, name)
            _require(math.isfinite(value) and value > 0,
                     f'{name} must be positive, got {value}', **{name: value})
        _require(0 <= self.inclination <= 180,
                 f'inclination must be within [0, 180] degrees, got {self.inclination}', inclination= self.inclination)
        _require(0 <= self.target_fill_factor <= 1,
                 f'target_fill_factor must be within [0, 1], got {self.target_fill_factor}', target_fill_factor= self.target_fill_factor)
        _require(math.isfinite(self.spot_temp_diff) and self.spot_temperature > 0,
                 f'Spot temperature {self.spot_temperature} K is not positive', spot_temp_diff= self.spot_temp_diff)
        _require(math.isfinite(self.plage_temp_diff) and self.plage_temperature > 0,
                 f'Plage temperature {self.plage_temperature} K is not positive', plage_temp_diff= self.plage_temp_diff)
        # Raises ConfigError on negative intensity
        LimbDarkeningModel(self.limb_linear, self.limb_quadratic)

    @property
    def spot_temperature(self) -> float:
        """Temperature of spot cells [K]."""
        return self.temperature - self.spot_temp_diff

    @property
    def plage_temperature(self) -> float:
        """Temperature of plage cells [K]."""
        return self.temperature + self.plage_temp_diff

    @property
    def equatorial_velocity(self) -> float:
        """Rotation velocity at the equator, 2 pi R / P [m/s]."""
        velocity = 2 * np.pi * self.radius * con.R_sun / (self.period * u.day)
        return velocity.to(u.m / u.s).value

    @property
    def velocity_resolution(self) -> float:
        """Velocity resolution element of the instrument, c / R [m/s]."""
        return (con.c / self.instrument_resolution).to(u.m / u.s).value

    @property
    def limb_darkening(self) -> LimbDarkeningModel:
        return LimbDarkeningModel(self.limb_linear, self.limb_quadratic)


#%% Lifetime
@dataclass(frozen=True)
class Lifetime:
    """
    Time window [start, end] of a spot. Both boundaries are inclusive.
    """
    start: float
    end: float

    def __post_init__(self):
        _require(math.isfinite(self.start) and math.isfinite(self.end),
                 f'Lifetime boundaries must be finite, got ({self.start}, {self.end})',
                 start= self.start, end= self.end)
        _require(self.start <= self.end,
                 f'Lifetime start {self.start} is after its end {self.end}',
                 start= self.start, end= self.end)

    def contains(self, time: float) -> bool:
        return self.start <= time <= self.end

    def overlap(self,
                window_start: float,
                window_end: float) -> float:
        """Length of the intersection of the lifetime with a time window."""
        return max(0.0, min(self.end, window_end) - max(self.start, window_start))


#%% SpotOrigin
class SpotOrigin(str, Enum):
    """Origin of a spot in the population."""
    EXPLICIT = 'explicit'
    RANDOM = 'random'


#%% Spot
@dataclass(frozen=True)
class Spot:
    """
    Single spot on the stellar surface, fixed in the co-rotating frame.

    Attributes
    ----------
    latitude : float
        Latitude of the spot center [deg], within [-90, 90].
    longitude : float
        Longitude of the spot center [deg]. Wrapped into [0, 360) on construction.
    fill_factor : float
        Fraction of the whole stellar surface covered by the spot, within (0, 1].
    lifetime : Lifetime | None
        Time window of the spot, by default None (present at all times).
    plage : bool
        Whether the region is a bright plage instead of a dark spot, by default False.
    identifier : str
        Identifier of the spot within the population.
    origin : SpotOrigin
        Whether the spot is configured explicitly or generated.
    """
    latitude: float
    longitude: float
    fill_factor: float
    lifetime: Lifetime | None = None
    plage: bool = False
    identifier: str = ''
    origin: SpotOrigin = SpotOrigin.EXPLICIT

    def __post_init__(self):
        _require(math.isfinite(self.latitude) and -90 <= self.latitude <= 90,
                 f'Spot latitude must be within [-90, 90] degrees, got {self.latitude}', latitude= self.latitude)
        _require(math.isfinite(self.longitude),
                 f'Spot longitude must be finite, got {self.longitude}', longitude= self.longitude)
        _require(0 < self.fill_factor <= 1,
                 f'Spot fill factor must be within (0, 1], got {self.fill_factor}', fill_factor= self.fill_factor)
        object.__setattr__(self, 'latitude', float(self.latitude))
        object.__setattr__(self, 'longitude', float(self.longitude) % 360.0)
        object.__setattr__(self, 'fill_factor', float(self.fill_factor))
        object.__setattr__(self, 'origin', SpotOrigin(self.origin))

    @property
    def angular_radius(self) -> float:
        """
        Angular radius of the spherical cap covering `fill_factor` of the sphere [deg].

        A cap of angular radius alpha has area fraction (1 - cos(alpha)) / 2.
        """
        return angular_radius(self.fill_factor)

    def alive(self, time: float) -> bool:
        """Whether the spot is present at given time."""
        return self.lifetime is None or self.lifetime.contains(time)


def angular_radius(fill_factor: float | np.ndarray) -> float | np.ndarray:
    """
    Convert fill factor (area fraction of the sphere) to angular radius of a spherical cap [deg].
    """
    return np.degrees(np.arccos(np.clip(1.0 - 2.0 * np.asarray(fill_factor, dtype=float), -1.0, 1.0)))
