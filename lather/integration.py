"""
Disk integration of flux and radial velocity at a single time.

For every visible cell the contribution is area_weight * mu * I(mu) * brightness, where I(mu) is the limb-darkening law and brightness is 1 for the photosphere or the contrast of the spot covering the cell. The flux weight is often written as area_weight * I(mu) * brightness with area_weight meaning the projected area of the cell; here area_weight is the area on the sphere, so mu converts it to the projected area on the disk. The integral over the disk then equals the analytic (1/2 - u1/6 - u2/12) / 2 of the quiet star. The radial velocity is the contribution-weighted mean line-of-sight velocity.
"""
#%% Importing libraries
import logging
from dataclasses import dataclass

import astropy.units as u
import numpy as np

from lather.errors import NumericalDegenerate
from lather.grid import GeometryGrid
from lather.limb_darkening import LimbDarkeningModel
from lather.parameters import StarConfig
from lather.planck import VISIBLE_BAND, brightness_contrast
from lather.rotation import RotationProjector
from lather.spots import SpotSet
from lather.utilities import default_logger_format

#%% Setup logging
logger = logging.getLogger(__name__)
logger = default_logger_format(logger)


#%% Result of single integration
@dataclass(frozen=True)
class IntegrationResult:
    """
    Disk-integrated values at a single time.

    Attributes
    ----------
    time : float
        Time of the sample [d].
    flux : float
        Flux of the spotted star.
    quiet_flux : float
        Flux of the star without spots at the same time.
    radial_velocity : float
        Flux-weighted mean line-of-sight velocity [m/s].
    active_spots : int
        Number of spots present at given time.
    """
    time: float
    flux: float
    quiet_flux: float
    radial_velocity: float
    active_spots: int


def spot_contrasts(config: StarConfig,
                   spot_set: SpotSet,
                   band: tuple[u.Quantity, u.Quantity] = VISIBLE_BAND) -> np.ndarray:
    """
    Brightness of each spot relative to the photosphere, integrated over the wavelength band.

    Parameters
    ----------
    config : StarConfig
        Stellar parameters, holding spot and plage temperatures.
    spot_set : SpotSet
        Spot population.
    band : tuple[u.Quantity, u.Quantity], optional
        Wavelength band, by default 4000-7000 AA.

    Returns
    -------
    np.ndarray
        Contrast of each spot, in population order.
    """
    spot_contrast = brightness_contrast(config.spot_temperature, config.temperature, *band)
    plage_contrast = brightness_contrast(config.plage_temperature, config.temperature, *band)
    return np.array([plage_contrast if spot.plage else spot_contrast for spot in spot_set], dtype=float)


#%% DiskIntegrator
class DiskIntegrator:
    """
    Integrator of flux and radial velocity over the visible stellar disk.

    The integrator holds only immutable inputs: calling `integrate` for the same time always returns the same result, in any order.
    """

    def __init__(self,
                 grid: GeometryGrid,
                 limb_darkening: LimbDarkeningModel,
                 projector: RotationProjector,
                 spot_set: SpotSet,
                 contrasts: np.ndarray):
        """
        Parameters
        ----------
        grid : GeometryGrid
            Grid of the stellar surface.
        limb_darkening : LimbDarkeningModel
            Limb-darkening law.
        projector : RotationProjector
            Projector of the rotating star.
        spot_set : SpotSet
            Spot population.
        contrasts : np.ndarray
            Brightness of each spot relative to the photosphere.
        """
        if len(contrasts) != len(spot_set):
            raise ValueError(f'Got {len(contrasts)} contrasts for {len(spot_set)} spots')
        self.grid = grid
        self.limb_darkening = limb_darkening
        self.projector = projector
        self.spot_set = spot_set
        self.contrasts = np.asarray(contrasts, dtype=float)
        self.membership = spot_set.membership(grid)

    def brightness(self, time: float) -> np.ndarray:
        """
        Local brightness of every cell at given time.

        Spots present at given time claim their cells in population order. A cell covered by several spots keeps the contrast of the first one.

        Parameters
        ----------
        time : float
            Time [d].

        Returns
        -------
        brightness : np.ndarray
            Brightness relative to the photosphere for each cell.
        """
        brightness = np.ones(len(self.grid))
        claimed = np.zeros(len(self.grid), dtype=bool)
        for ind in self.spot_set.active_indices(time):
            cells = self.membership[ind]
            cells = cells[~claimed[cells]]
            brightness[cells] = self.contrasts[ind]
            claimed[cells] = True
        return brightness

    def integrate(self, time: float) -> IntegrationResult:
        """
        Disk-integrated flux and radial velocity at given time.

        Parameters
        ----------
        time : float
            Time [d].

        Returns
        -------
        IntegrationResult
            Flux, quiet flux and radial velocity.

        Raises
        ------
        NumericalDegenerate
            If the visible flux is zero or not finite.
        """
        projection = self.projector.project(self.grid.latitude, self.grid.longitude, time)
        visible = projection.visible

        mu = projection.mu[visible]
        weight = self.grid.area_weight[visible] * mu * self.limb_darkening.intensity(mu)
        weight_spotted = weight * self.brightness(time)[visible]

        quiet_flux = float(np.sum(weight))
        flux = float(np.sum(weight_spotted))
        active_spots = len(self.spot_set.active_indices(time))

        if not np.isfinite(flux) or flux <= 0:
            raise NumericalDegenerate(
                f'Visible flux at time {time} is {flux}',
                details= {'time': time, 'flux': flux, 'visible_cells': int(np.sum(visible))}
                )

        radial_velocity = float(np.sum(weight_spotted * projection.velocity[visible]) / flux)
        return IntegrationResult(time= time,
                                 flux= flux,
                                 quiet_flux= quiet_flux,
                                 radial_velocity= radial_velocity,
                                 active_spots= active_spots)

    def render(self,
               time: float,
               size: int = 200) -> np.ndarray:
        """
        Image of the stellar disk as seen by the observer.

        Each pixel holds the mean limb-darkened, spot-corrected intensity of the visible cells projected into it. Pixels outside the disk (or without any cell) are NaN.

        Parameters
        ----------
        time : float
            Time [d].
        size : int, optional
            Number of pixels along each axis, by default 200.

        Returns
        -------
        image : np.ndarray
            Image of shape (size, size), row 0 at the top (positive z).
        """
        projection = self.projector.project(self.grid.latitude, self.grid.longitude, time)
        visible = projection.visible
        intensity = (self.limb_darkening.intensity(projection.mu[visible])
                     * self.brightness(time)[visible])

        edges = np.linspace(-1.0, 1.0, size + 1)
        summed, _, _ = np.histogram2d(projection.z[visible], projection.y[visible],
                                      bins= (edges, edges), weights= intensity)
        counts, _, _ = np.histogram2d(projection.z[visible], projection.y[visible],
                                      bins= (edges, edges))
        with np.errstate(invalid= 'ignore', divide= 'ignore'):
            image = np.where(counts > 0, summed / counts, np.nan)
        return image[::-1]
