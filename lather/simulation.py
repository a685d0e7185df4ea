"""
Simulation of flux and radial velocity time series of a spotted star.

The driver validates the configuration, builds the stellar grid, generates the spot population (consuming the random stream once) and only then samples the requested times. Each sample is a pure function of the immutable configuration and population, so samples can be computed in any order or in parallel.

Functions:
- simulate(config, spots, seed, time_samples, **kwargs) -> list[tuple[float, float, float]]:
    Service interface returning (time, flux, radial_velocity) tuples.

- generate_spot_population(config, spots, seed, ...) -> SpotSet:
    Generate (and optionally cache) the spot population.
"""
#%% Importing libraries
import logging
import math
from dataclasses import dataclass
from typing import Iterable, Sequence

import astropy.units as u
import numpy as np
from pathos.multiprocessing import Pool

from lather.errors import ConfigError, NumericalDegenerate
from lather.grid import GeometryGrid
from lather.integration import DiskIntegrator, spot_contrasts
from lather.parameters import Spot, StarConfig
from lather.placement import PlacementSettings, SpotPlacementEngine
from lather.planck import VISIBLE_BAND
from lather.rotation import RotationProjector
from lather.spots import SpotSet
from lather.utilities import default_logger_format, progress_tracker, save_and_load, time_function

#%% Setup logging
logger = logging.getLogger(__name__)
logger = default_logger_format(logger)


#%% SimulationRecord
@dataclass(frozen=True)
class SimulationRecord:
    """
    Single sample of the simulated time series.

    Attributes
    ----------
    time : float
        Time of the sample [d].
    flux : float
        Disk-integrated flux.
    quiet_flux : float
        Disk-integrated flux of the star without spots.
    relative_flux : float
        flux / quiet_flux.
    radial_velocity : float
        Flux-weighted radial velocity [m/s]. NaN for invalid samples.
    rv_floor : float
        Velocity resolution element of the instrument, c / R [m/s].
    valid : bool
        False if the sample is numerically degenerate.
    active_spots : int
        Number of spots present at the time of the sample.
    """
    time: float
    flux: float
    quiet_flux: float
    relative_flux: float
    radial_velocity: float
    rv_floor: float
    valid: bool = True
    active_spots: int = 0

    def as_tuple(self) -> tuple[float, float, float]:
        return (self.time, self.flux, self.radial_velocity)


#%% Population generation
def _populate(config: StarConfig,
              spots: Iterable[Spot],
              seed: int | np.random.Generator | None,
              placement: PlacementSettings | None,
              window: tuple[float, float]) -> SpotSet:
    explicit = SpotSet.from_explicit(spots)
    engine = SpotPlacementEngine(config.target_fill_factor, settings= placement, seed= seed)
    return engine.generate(explicit, window= window)


@save_and_load
def generate_spot_population(config: StarConfig,
                             spots: Iterable[Spot] = (),
                             seed: int | np.random.Generator | None = None,
                             placement: PlacementSettings | None = None,
                             window: tuple[float, float] = (0.0, 0.0),
                             force_load: bool = False,
                             force_skip: bool = False,
                             pkl_name: str = '') -> SpotSet:
    """
    Generate the spot population: explicit spots followed by random spots approaching the target fill factor.

    Parameters
    ----------
    config : StarConfig
        Stellar parameters.
    spots : Iterable[Spot], optional
        Explicit spots, by default none.
    seed : int | np.random.Generator | None, optional
        Seed of the random stream, by default None.
    placement : PlacementSettings | None, optional
        Settings of the generation, by default PlacementSettings().
    window : tuple[float, float], optional
        Start and end of the simulation, by default (0, 0).
    force_load : bool, optional
        Load the population from the pickle file instead of generating it, by default False.
    force_skip : bool, optional
        Skip the function completely, by default False.
    pkl_name : str, optional
        Name of the pickle file, by default '' (no caching).

    Returns
    -------
    SpotSet
        Spot population.
    """
    return _populate(config, spots, seed, placement, window)


#%% SimulationDriver
class SimulationDriver:
    """
    Orchestrates the simulation of a spotted star.

    Attributes
    ----------
    config : StarConfig
        Stellar parameters.
    population : SpotSet
        Explicit and generated spots.
    grid : GeometryGrid
        Grid of the stellar surface.
    projector : RotationProjector
        Projector of the rotating star.
    integrator : DiskIntegrator
        Integrator of a single sample.
    """

    def __init__(self,
                 config: StarConfig,
                 spots: Iterable[Spot] = (),
                 seed: int | np.random.Generator | None = None,
                 placement: PlacementSettings | None = None,
                 window: tuple[float, float] = (0.0, 0.0),
                 band: tuple[u.Quantity, u.Quantity] = VISIBLE_BAND,
                 population: SpotSet | None = None):
        """
        Parameters
        ----------
        config : StarConfig
            Stellar parameters.
        spots : Iterable[Spot], optional
            Explicit spots, by default none.
        seed : int | np.random.Generator | None, optional
            Seed of the random spot generation, by default None.
        placement : PlacementSettings | None, optional
            Settings of the random spot generation, by default PlacementSettings().
        window : tuple[float, float], optional
            Start and end of the simulation used by the coverage policy, by default (0, 0).
        band : tuple[u.Quantity, u.Quantity], optional
            Wavelength band of the observation, by default 4000-7000 AA.
        population : SpotSet | None, optional
            Precomputed spot population. If given, `spots`, `seed` and `placement` are ignored and no spots are generated.
        """
        if not isinstance(config, StarConfig):
            raise ConfigError(f'Expected StarConfig, got {type(config).__name__}')
        self.config = config
        self.band = band

        logger.info('Building stellar grid')
        self.grid = GeometryGrid.build(config.grid_size)
        self.limb_darkening = config.limb_darkening
        self.projector = RotationProjector.from_config(config)

        if population is None:
            population = _populate(config, spots, seed, placement, window)
        self.population = population

        self.integrator = DiskIntegrator(grid= self.grid,
                                         limb_darkening= self.limb_darkening,
                                         projector= self.projector,
                                         spot_set= self.population,
                                         contrasts= spot_contrasts(config, self.population, band))
        logger.info(f'Simulation ready: {len(self.grid)} cells, {len(self.population.explicit)} explicit and {len(self.population.random)} random spots')

    def sample(self, time: float) -> SimulationRecord:
        """
        Simulate a single time sample.

        Numerically degenerate samples are logged and flagged invalid instead of aborting the simulation.

        Parameters
        ----------
        time : float
            Time [d].

        Returns
        -------
        SimulationRecord
            Flux and radial velocity at given time.
        """
        time = float(time)
        try:
            result = self.integrator.integrate(time)
        except NumericalDegenerate as error:
            logger.warning(f'Sample at time {time} is degenerate: {error}')
            logger.warning('    The sample is flagged invalid.')
            return SimulationRecord(time= time,
                                    flux= error.details.get('flux', math.nan),
                                    quiet_flux= math.nan,
                                    relative_flux= math.nan,
                                    radial_velocity= math.nan,
                                    rv_floor= self.config.velocity_resolution,
                                    valid= False,
                                    active_spots= len(self.population.active_indices(time)))

        return SimulationRecord(time= result.time,
                                flux= result.flux,
                                quiet_flux= result.quiet_flux,
                                relative_flux= result.flux / result.quiet_flux,
                                radial_velocity= result.radial_velocity,
                                rv_floor= self.config.velocity_resolution,
                                valid= True,
                                active_spots= result.active_spots)

    @progress_tracker
    @time_function
    def run(self,
            times: Sequence[float] | np.ndarray,
            force_multiprocessing: bool = False,
            processes: int | None = None) -> list[SimulationRecord]:
        """
        Simulate the requested time samples.

        Parameters
        ----------
        times : Sequence[float] | np.ndarray
            Times of the samples [d].
        force_multiprocessing : bool, optional
            Whether to distribute the samples over a process pool, by default False. The output is identical to the serial run.
        processes : int | None, optional
            Number of processes of the pool, by default all available.

        Returns
        -------
        list[SimulationRecord]
            Records in the order of the requested times.
        """
        times = [float(time) for time in np.atleast_1d(np.asarray(times, dtype=float))]
        if force_multiprocessing:
            logger.warning('Starting multiprocessing - time samples')
            with Pool(processes) as p:
                records = p.map(self.sample, times)
            logger.warning('Finished multiprocessing')
        else:
            records = [self.sample(time) for time in times]

        invalid = sum(1 for record in records if not record.valid)
        if invalid:
            logger.warning(f'{invalid} of {len(records)} samples are invalid.')
        return records

    def run_range(self,
                  start: float,
                  stop: float,
                  step: float,
                  **kwargs) -> list[SimulationRecord]:
        """
        Simulate evenly spaced samples from start to stop (inclusive when stop lies on the grid).

        Parameters
        ----------
        start : float
            First time [d].
        stop : float
            Last time [d].
        step : float
            Spacing of the samples [d].
        **kwargs
            Passed to `run`.

        Returns
        -------
        list[SimulationRecord]
            Records in increasing time.
        """
        if not step > 0:
            raise ConfigError(f'Time step must be positive, got {step}', details= {'step': step})
        if stop < start:
            raise ConfigError(f'Stop time {stop} is before start time {start}',
                              details= {'start': start, 'stop': stop})
        number_of_samples = int(np.floor((stop - start) / step + 1e-9)) + 1
        return self.run(start + step * np.arange(number_of_samples), **kwargs)


#%% Service interface
def simulate(config: StarConfig,
             spots: Iterable[Spot],
             seed: int | np.random.Generator | None,
             time_samples: Sequence[float] | np.ndarray,
             placement: PlacementSettings | None = None,
             band: tuple[u.Quantity, u.Quantity] = VISIBLE_BAND,
             force_multiprocessing: bool = False) -> list[tuple[float, float, float]]:
    """
    Simulate the flux and radial velocity of a spotted star.

    The coverage policy is evaluated over the window spanned by the time samples.

    Parameters
    ----------
    config : StarConfig
        Stellar parameters.
    spots : Iterable[Spot]
        Explicit spots.
    seed : int | np.random.Generator | None
        Seed of the random spot generation.
    time_samples : Sequence[float] | np.ndarray
        Times of the samples [d].
    placement : PlacementSettings | None, optional
        Settings of the random spot generation, by default PlacementSettings().
    band : tuple[u.Quantity, u.Quantity], optional
        Wavelength band, by default 4000-7000 AA.
    force_multiprocessing : bool, optional
        Whether to distribute the samples over a process pool, by default False.

    Returns
    -------
    list[tuple[float, float, float]]
        (time, flux, radial_velocity) for each sample.
    """
    time_samples = np.atleast_1d(np.asarray(time_samples, dtype=float))
    window = (float(time_samples.min()), float(time_samples.max())) if time_samples.size else (0.0, 0.0)
    driver = SimulationDriver(config,
                              spots= spots,
                              seed= seed,
                              placement= placement,
                              window= window,
                              band= band)
    return [record.as_tuple() for record in driver.run(time_samples, force_multiprocessing= force_multiprocessing)]


if __name__ == '__main__':
    import os

    from lather.load.configuration import load_config

    configuration = load_config(os.path.join(os.path.dirname(__file__), '..', 'examples', 'sun.toml'))
    driver = SimulationDriver(configuration.star,
                              spots= configuration.spots,
                              seed= configuration.seed,
                              placement= configuration.placement)
    for record in driver.run_range(0, configuration.star.period, 1.0):
        logger.print(f'{record.time:8.3f} {record.relative_flux:.6f} {record.radial_velocity:+.3f} m/s')  # type: ignore
