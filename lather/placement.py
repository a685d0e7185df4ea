"""
Generation of random spots approaching the target fill factor of the star.

Explicit spots are never altered. Random spots are drawn one at a time until their summed fill factor reaches the part of the target not covered by explicit spots. The last spot may overshoot the target by less than its own fill factor. The total fill factor of the population never exceeds one: a draw exceeding the remaining budget is clipped.

Classes:
- CoveragePolicy
    How the explicit coverage gating the generation is evaluated.
- SizeDistribution
    Distribution of fill factors of generated spots.
- PlacementSettings
    Settings of the generation.
- SpotPlacementEngine
    Seeded generator of random spots.
"""
#%% Importing libraries
import logging
import warnings
from dataclasses import dataclass, field
from enum import Enum

import numpy as np

from lather.errors import ConfigError, CoverageError, CoverageWarning
from lather.grid import unit_vectors
from lather.parameters import Lifetime, Spot, SpotOrigin
from lather.spots import SpotSet
from lather.utilities import default_logger_format, time_function

#%% Setup logging
logger = logging.getLogger(__name__)
logger = default_logger_format(logger)

# Numerical slack when comparing summed fill factors
_TOLERANCE = 1e-12


def _coexist(first: Lifetime | None,
             second: Lifetime | None) -> bool:
    """Whether two lifetimes share at least one instant. None means always present."""
    if first is None or second is None:
        return True
    return first.start <= second.end and second.start <= first.end


#%% CoveragePolicy
class CoveragePolicy(str, Enum):
    """
    Evaluation of the explicit coverage compared against the target fill factor.

    START
        Fill factors of explicit spots present at the start of the simulation.
    ALL
        Fill factors of all explicit spots, ignoring their lifetimes.
    MEAN
        Fill factors of explicit spots averaged over the simulated time window.
    """
    START = 'start'
    ALL = 'all'
    MEAN = 'mean'


#%% SizeDistribution
@dataclass(frozen=True)
class SizeDistribution:
    """
    Distribution of fill factors of generated spots.

    The 'lognormal' distribution draws scale * LogNormal(mu, sigma), redrawn until the value is below `maximum`. The default values follow the SOAP-2.0 style solar spot size distribution. The 'fixed' distribution always returns `value`.
    """
    kind: str = 'lognormal'
    mu: float = 0.5
    sigma: float = 4.0
    scale: float = 9.4e-6
    maximum: float = 1e-3
    value: float = 1e-3

    def __post_init__(self):
        if self.kind not in ('lognormal', 'fixed'):
            raise ConfigError(f'Unknown size distribution {self.kind!r}', details= {'kind': self.kind})
        if not 0 < self.maximum <= 1:
            raise ConfigError(f'Maximum fill factor must be within (0, 1], got {self.maximum}',
                              details= {'maximum': self.maximum})
        if not 0 < self.value <= 1:
            raise ConfigError(f'Fixed fill factor must be within (0, 1], got {self.value}',
                              details= {'value': self.value})
        if self.kind == 'lognormal' and not (np.isfinite(self.mu) and np.isfinite(self.sigma)
                                             and self.sigma >= 0 and self.scale > 0):
            raise ConfigError('Lognormal size distribution needs finite mu, sigma >= 0 and scale > 0',
                              details= {'mu': self.mu, 'sigma': self.sigma, 'scale': self.scale})
        # A degenerate lognormal is a single value, which must lie below the maximum
        if self.kind == 'lognormal' and self.sigma == 0 and self.scale * np.exp(self.mu) >= self.maximum:
            raise ConfigError(f'Lognormal size distribution with sigma = 0 never draws below maximum {self.maximum}',
                              details= {'mu': self.mu, 'scale': self.scale, 'maximum': self.maximum})

    def draw(self,
             generator: np.random.Generator,
             max_attempts: int = 10_000) -> float:
        """
        Draw a single fill factor.

        Raises
        ------
        ConfigError
            If no lognormal value below `maximum` is drawn in `max_attempts` attempts.
        """
        if self.kind == 'fixed':
            return self.value
        for _ in range(max_attempts):
            fill_factor = generator.lognormal(self.mu, self.sigma) * self.scale
            if 0 < fill_factor < self.maximum:
                return float(fill_factor)
        logger.critical(f'No spot size below {self.maximum} drawn in {max_attempts} attempts.')
        raise ConfigError(f'Size distribution does not draw fill factors below {self.maximum}',
                          details= {'mu': self.mu, 'sigma': self.sigma, 'scale': self.scale,
                                    'maximum': self.maximum, 'attempts': max_attempts})


#%% PlacementSettings
@dataclass(frozen=True)
class PlacementSettings:
    """
    Settings of random spot generation.

    Attributes
    ----------
    coverage_policy : CoveragePolicy
        How the explicit coverage is evaluated, by default CoveragePolicy.START.
    size_distribution : SizeDistribution
        Distribution of fill factors of generated spots.
    latitude_range : tuple[float, float]
        Latitude range of generated spots [deg], by default the whole sphere. Latitudes are uniform in sin(latitude) within the range.
    avoid_overlap : bool
        Whether to reject draws overlapping an existing spot, by default False.
    random_lifetime : float | None
        Lifetime of generated spots starting at the simulation start [d]. None means always present.
    max_draws : int
        Maximum number of draws before giving up, by default 100000.
    strict : bool
        Whether coverage problems are fatal, by default False.
    """
    coverage_policy: CoveragePolicy = CoveragePolicy.START
    size_distribution: SizeDistribution = field(default_factory= SizeDistribution)
    latitude_range: tuple[float, float] = (-90.0, 90.0)
    avoid_overlap: bool = False
    random_lifetime: float | None = None
    max_draws: int = 100_000
    strict: bool = False

    def __post_init__(self):
        object.__setattr__(self, 'coverage_policy', CoveragePolicy(self.coverage_policy))
        lower, upper = self.latitude_range
        if not -90 <= lower < upper <= 90:
            raise ConfigError(f'Invalid latitude range {self.latitude_range}',
                              details= {'latitude_range': self.latitude_range})
        object.__setattr__(self, 'latitude_range', (float(lower), float(upper)))
        if self.random_lifetime is not None and self.random_lifetime < 0:
            raise ConfigError(f'Random spot lifetime must not be negative, got {self.random_lifetime}',
                              details= {'random_lifetime': self.random_lifetime})
        if self.max_draws <= 0:
            raise ConfigError(f'max_draws must be positive, got {self.max_draws}',
                              details= {'max_draws': self.max_draws})


#%% SpotPlacementEngine
class SpotPlacementEngine:
    """
    Seeded generator of random spots.

    The random stream is owned by the engine and consumed only by `generate`, so identical seed and inputs reproduce identical spots.
    """

    def __init__(self,
                 target_fill_factor: float,
                 settings: PlacementSettings | None = None,
                 seed: int | np.random.Generator | None = None):
        """
        Parameters
        ----------
        target_fill_factor : float
            Fraction of the stellar surface the whole population should cover.
        settings : PlacementSettings | None, optional
            Settings of the generation, by default PlacementSettings().
        seed : int | np.random.Generator | None, optional
            Seed or generator of the random stream, by default None.
        """
        if not 0 <= target_fill_factor <= 1:
            raise ConfigError(f'target_fill_factor must be within [0, 1], got {target_fill_factor}',
                              details= {'target_fill_factor': target_fill_factor})
        self.target_fill_factor = target_fill_factor
        self.settings = settings or PlacementSettings()
        if isinstance(seed, np.random.Generator):
            self.generator = seed
        else:
            self.generator = np.random.default_rng(seed)

    def explicit_coverage(self,
                          spot_set: SpotSet,
                          window: tuple[float, float] = (0.0, 0.0)) -> float:
        """
        Coverage of explicit spots following the coverage policy.

        Parameters
        ----------
        spot_set : SpotSet
            Population; only its explicit spots are considered.
        window : tuple[float, float], optional
            Start and end of the simulation, by default (0, 0).

        Returns
        -------
        float
            Explicit coverage compared against the target fill factor.
        """
        explicit = SpotSet(spot_set.explicit)
        window_start, window_end = window
        match self.settings.coverage_policy:
            case CoveragePolicy.ALL:
                return explicit.total_fill_factor
            case CoveragePolicy.MEAN if window_end > window_start:
                length = window_end - window_start
                return float(sum(
                    spot.fill_factor * (1.0 if spot.lifetime is None
                                        else spot.lifetime.overlap(window_start, window_end) / length)
                    for spot in explicit
                    ))
            case _:
                return explicit.coverage(window_start)

    def _report(self,
                message: str,
                achieved: float) -> None:
        """Raise CoverageError in strict mode, warn otherwise."""
        details = {'achieved_coverage': achieved,
                   'target_fill_factor': self.target_fill_factor}
        if self.settings.strict:
            logger.critical(message)
            raise CoverageError(message, details= details)
        logger.warning(message)
        logger.warning(f'    Continuing with achieved coverage {achieved:.6f}')
        warnings.warn(f'{message} (achieved coverage {achieved:.6f})', CoverageWarning, stacklevel= 3)

    def _draw(self) -> tuple[float, float, float]:
        """Draw latitude, longitude and fill factor of a single spot."""
        lower, upper = np.sin(np.radians(self.settings.latitude_range))
        latitude = float(np.degrees(np.arcsin(self.generator.uniform(lower, upper))))
        longitude = float(self.generator.uniform(0.0, 360.0))
        fill_factor = self.settings.size_distribution.draw(self.generator)
        return latitude, longitude, fill_factor

    @staticmethod
    def _collides(candidate: Spot,
                  spots: list[Spot] | tuple[Spot, ...]) -> bool:
        """Whether the cap of the candidate intersects the cap of any given spot present at the same time."""
        spots = [spot for spot in spots if _coexist(candidate.lifetime, spot.lifetime)]
        if not spots:
            return False
        latitude = np.array([spot.latitude for spot in spots])
        longitude = np.array([spot.longitude for spot in spots])
        radius = np.array([spot.angular_radius for spot in spots])
        x, y, z = unit_vectors(latitude, longitude)
        center_x, center_y, center_z = unit_vectors(candidate.latitude, candidate.longitude)
        separation = np.degrees(np.arccos(np.clip(x * center_x + y * center_y + z * center_z, -1.0, 1.0)))
        return bool(np.any(separation < radius + candidate.angular_radius))

    @time_function
    def generate(self,
                 spot_set: SpotSet,
                 window: tuple[float, float] = (0.0, 0.0)) -> SpotSet:
        """
        Extend the explicit spots by random spots approaching the target fill factor.

        Parameters
        ----------
        spot_set : SpotSet
            Population with explicit spots. Random spots already present are discarded.
        window : tuple[float, float], optional
            Start and end of the simulation, by default (0, 0). Used by the coverage policy and for lifetimes of generated spots.

        Returns
        -------
        SpotSet
            Explicit spots followed by generated spots.
        """
        explicit = SpotSet(spot_set.explicit)
        budget_used = explicit.total_fill_factor

        if budget_used > 1 + _TOLERANCE:
            self._report(f'Explicit spots cover {budget_used:.4f} of the surface, more than the whole star.',
                         achieved= budget_used)
            return explicit

        explicit_coverage = self.explicit_coverage(explicit, window)
        remaining = self.target_fill_factor - explicit_coverage
        if remaining <= 0:
            logger.info(f'Explicit coverage {explicit_coverage:.4f} reaches target fill factor {self.target_fill_factor:.4f}, no random spots generated.')
            return explicit

        logger.info(f'Generating random spots to cover remaining fill factor {remaining:.6f}')
        lifetime = None
        if self.settings.random_lifetime is not None:
            lifetime = Lifetime(window[0], window[0] + self.settings.random_lifetime)

        random_spots: list[Spot] = []
        accumulated = 0.0
        draws = 0
        while accumulated < remaining - _TOLERANCE:
            free_budget = 1.0 - budget_used - accumulated
            if free_budget <= _TOLERANCE:
                self._report('Random spots exhausted the surface budget before reaching the target fill factor.',
                             achieved= explicit_coverage + accumulated)
                break
            if draws >= self.settings.max_draws:
                self._report(f'Target fill factor not reached after {draws} draws.',
                             achieved= explicit_coverage + accumulated)
                break
            draws += 1

            latitude, longitude, fill_factor = self._draw()
            candidate = Spot(latitude= latitude,
                             longitude= longitude,
                             fill_factor= min(fill_factor, free_budget),
                             lifetime= lifetime,
                             origin= SpotOrigin.RANDOM)
            if self.settings.avoid_overlap and self._collides(candidate, explicit.spots + tuple(random_spots)):
                continue
            random_spots.append(candidate)
            accumulated += candidate.fill_factor

        logger.info(f'Generated {len(random_spots)} random spots in {draws} draws, covering {accumulated:.6f}')
        return explicit.with_random(random_spots)
