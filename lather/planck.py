"""
Band-integrated blackbody brightness, used for the contrast of spots and plages against the photosphere.
"""
#%% Importing libraries
import logging

import astropy.units as u
import numpy as np
from astropy.modeling.physical_models import BlackBody
from scipy.integrate import simpson

from lather.errors import ConfigError
from lather.utilities import default_logger_format

#%% Setup logging
logger = logging.getLogger(__name__)
logger = default_logger_format(logger)

# Visible band used for drawing the star
VISIBLE_BAND = (4000 * u.AA, 7000 * u.AA)


#%% Band integral
def planck_integral(temperature: float,
                    wavelength_min: u.Quantity = VISIBLE_BAND[0],
                    wavelength_max: u.Quantity = VISIBLE_BAND[1],
                    samples: int = 1001) -> float:
    """
    Integrate the Planck function B_lambda over a wavelength band.

    Parameters
    ----------
    temperature : float
        Temperature of the blackbody [K].
    wavelength_min : u.Quantity, optional
        Lower edge of the band, by default 4000 AA.
    wavelength_max : u.Quantity, optional
        Upper edge of the band, by default 7000 AA.
    samples : int, optional
        Number of wavelength samples of the Simpson integration, by default 1001.

    Returns
    -------
    float
        Band-integrated radiance [erg / (cm2 s sr)].
    """
    wavelength_min = u.Quantity(wavelength_min, u.AA)
    wavelength_max = u.Quantity(wavelength_max, u.AA)
    if not (0 < wavelength_min.value < wavelength_max.value):
        raise ConfigError(f'Invalid wavelength band [{wavelength_min}, {wavelength_max}]',
                          details= {'wavelength_min': wavelength_min.value,
                                    'wavelength_max': wavelength_max.value})
    if temperature <= 0:
        raise ConfigError(f'Blackbody temperature must be positive, got {temperature}',
                          details= {'temperature': temperature})

    blackbody = BlackBody(temperature= temperature * u.K,
                          scale= 1.0 * u.erg / (u.cm**2 * u.s * u.AA * u.sr))
    wavelengths = np.linspace(wavelength_min.value, wavelength_max.value, samples) * u.AA
    radiance = blackbody(wavelengths)
    return float(simpson(radiance.value, x= wavelengths.value))


#%% Contrast
def brightness_contrast(temperature: float,
                        reference_temperature: float,
                        wavelength_min: u.Quantity = VISIBLE_BAND[0],
                        wavelength_max: u.Quantity = VISIBLE_BAND[1]) -> float:
    """
    Ratio of band-integrated brightness of a feature to the photosphere.

    Parameters
    ----------
    temperature : float
        Temperature of the feature (spot or plage) [K].
    reference_temperature : float
        Temperature of the photosphere [K].
    wavelength_min : u.Quantity, optional
        Lower edge of the band, by default 4000 AA.
    wavelength_max : u.Quantity, optional
        Upper edge of the band, by default 7000 AA.

    Returns
    -------
    float
        Brightness relative to the photosphere. Values below 1 are darker than the photosphere.
    """
    contrast = (planck_integral(temperature, wavelength_min, wavelength_max)
                / planck_integral(reference_temperature, wavelength_min, wavelength_max))
    logger.debug(f'Contrast of {temperature:.0f} K against {reference_temperature:.0f} K: {contrast:.4f}')
    return contrast
