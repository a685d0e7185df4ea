"""
Quadratic limb-darkening law.

The intensity relative to the disk center is

    I(mu) = 1 - u1 * (1 - mu) - u2 * (1 - mu)**2

with mu = cos(theta), theta being the angle between the local surface normal and the line of sight.
"""
#%% Importing libraries
import logging
from dataclasses import dataclass

import numpy as np

from lather.errors import ConfigError
from lather.utilities import default_logger_format

#%% Setup logging
logger = logging.getLogger(__name__)
logger = default_logger_format(logger)


#%% Coefficient check
def minimum_intensity(limb_linear: float,
                      limb_quadratic: float) -> float:
    """
    Minimum of the quadratic law on mu in [0, 1].

    With x = 1 - mu the law is a parabola 1 - u1*x - u2*x**2 on x in [0, 1]. The minimum is either on the edges of the interval, or at the vertex when the parabola opens upwards (u2 < 0).

    Parameters
    ----------
    limb_linear : float
        Linear limb-darkening coefficient.
    limb_quadratic : float
        Quadratic limb-darkening coefficient.

    Returns
    -------
    float
        Minimum intensity over the visible disk.
    """
    candidates = [1.0, 1.0 - limb_linear - limb_quadratic]
    if limb_quadratic < 0:
        vertex = -limb_linear / (2 * limb_quadratic)
        if 0 < vertex < 1:
            candidates.append(1.0 - limb_linear * vertex - limb_quadratic * vertex**2)
    return min(candidates)


#%% LimbDarkeningModel
@dataclass(frozen=True)
class LimbDarkeningModel:
    """
    Quadratic limb-darkening model.

    The coefficients are checked once on construction: a law producing negative intensity anywhere on the visible disk raises ConfigError.
    """
    limb_linear: float
    limb_quadratic: float

    def __post_init__(self):
        if not (np.isfinite(self.limb_linear) and np.isfinite(self.limb_quadratic)):
            logger.critical('Limb-darkening coefficients are not finite.')
            raise ConfigError(
                f'Limb-darkening coefficients ({self.limb_linear}, {self.limb_quadratic}) must be finite',
                details= {'limb_linear': self.limb_linear,
                          'limb_quadratic': self.limb_quadratic}
                )
        lowest = minimum_intensity(self.limb_linear, self.limb_quadratic)
        if not np.isfinite(lowest) or lowest < 0:
            logger.critical('Limb-darkening law gives negative intensity on the visible disk.')
            raise ConfigError(
                f'Limb-darkening coefficients ({self.limb_linear}, {self.limb_quadratic}) give negative intensity {lowest:.4f}',
                details= {'limb_linear': self.limb_linear,
                          'limb_quadratic': self.limb_quadratic,
                          'minimum_intensity': lowest}
                )

    def intensity(self,
                  mu: np.ndarray | float) -> np.ndarray:
        """
        Intensity weight for given mu.

        Parameters
        ----------
        mu : np.ndarray | float
            Cosine of the angle between surface normal and line of sight. Negative values are on the far side.

        Returns
        -------
        intensity : np.ndarray
            Intensity relative to the disk center, zero for mu < 0.
        """
        mu = np.asarray(mu, dtype=float)
        one_minus_mu = 1.0 - mu
        intensity = 1.0 - self.limb_linear * one_minus_mu - self.limb_quadratic * one_minus_mu**2
        return np.where(mu >= 0, intensity, 0.0)

    def disk_integral(self) -> float:
        """
        Analytic integral of I(mu) * mu over mu in [0, 1].

        Multiplied by 2 pi, this is the flux of the quiet star with unit central intensity.
        """
        return 0.5 - self.limb_linear / 6.0 - self.limb_quadratic / 12.0
