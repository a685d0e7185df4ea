"""
Projection of points fixed on the rotating star onto the observer frame.

Conventions:
    - The stellar frame has z along the rotation axis and x towards longitude 0.
    - At time 0 the sub-observer point lies at longitude 0. As the star rotates, the longitude from the central meridian grows as psi = longitude + 360 * t / P.
    - The observer looks along (sin i, 0, cos i) of the stellar frame, so mu = cos(lat) cos(psi) sin(i) + sin(lat) cos(i).
    - Radial velocity is positive for receding surface, v_los = v_eq cos(lat) sin(psi) sin(i).
"""
#%% Importing libraries
import logging
from dataclasses import dataclass

import numpy as np

from lather.parameters import StarConfig
from lather.utilities import default_logger_format

#%% Setup logging
logger = logging.getLogger(__name__)
logger = default_logger_format(logger)


#%% Projection
@dataclass(frozen=True, eq=False)
class Projection:
    """
    Instantaneous position of a set of surface points in the observer frame.

    Attributes
    ----------
    mu : np.ndarray
        Cosine of the angle between surface normal and line of sight.
    visible : np.ndarray
        Boolean mask, mu > 0.
    velocity : np.ndarray
        Line-of-sight velocity [m/s], positive when receding.
    central_longitude : np.ndarray
        Longitude from the central meridian [deg], within (-180, 180].
    y : np.ndarray
        Sky-plane coordinate perpendicular to the projected rotation axis [R_star].
    z : np.ndarray
        Sky-plane coordinate along the projected rotation axis [R_star].
    """
    mu: np.ndarray
    visible: np.ndarray
    velocity: np.ndarray
    central_longitude: np.ndarray
    y: np.ndarray
    z: np.ndarray


#%% RotationProjector
@dataclass(frozen=True)
class RotationProjector:
    """
    Stateless projector of stellar coordinates at given time.

    Attributes
    ----------
    period : float
        Rotation period [d].
    inclination : float
        Inclination of the rotation axis [deg].
    equatorial_velocity : float
        Equatorial rotation velocity [m/s].
    """
    period: float
    inclination: float
    equatorial_velocity: float

    @classmethod
    def from_config(cls, config: StarConfig) -> 'RotationProjector':
        return cls(period= config.period,
                   inclination= config.inclination,
                   equatorial_velocity= config.equatorial_velocity)

    @property
    def vsini(self) -> float:
        """Projected rotation velocity [m/s]."""
        return self.equatorial_velocity * np.sin(np.radians(self.inclination))

    def sub_observer_offset(self, time: float) -> float:
        """
        Rotation angle of the star at given time [deg], within [0, 360).
        """
        phase = np.mod(time, self.period) / self.period
        return float(np.mod(360.0 * phase, 360.0))

    def central_longitude(self,
                          longitude: np.ndarray | float,
                          time: float) -> np.ndarray:
        """
        Longitude from the central meridian at given time [deg], wrapped to (-180, 180].
        """
        shifted = np.mod(np.asarray(longitude, dtype=float) + self.sub_observer_offset(time), 360.0)
        return np.where(shifted > 180.0, shifted - 360.0, shifted)

    def project(self,
                latitude: np.ndarray | float,
                longitude: np.ndarray | float,
                time: float) -> Projection:
        """
        Project surface points to the observer frame.

        Parameters
        ----------
        latitude : np.ndarray | float
            Latitude of the points [deg].
        longitude : np.ndarray | float
            Longitude of the points in the co-rotating frame [deg].
        time : float
            Elapsed time [d].

        Returns
        -------
        Projection
            Visibility, mu, velocity and sky-plane position of the points.
        """
        psi = np.radians(self.central_longitude(longitude, time))
        latitude = np.radians(np.asarray(latitude, dtype=float))
        inclination = np.radians(self.inclination)

        cos_latitude = np.cos(latitude)
        sin_latitude = np.sin(latitude)
        sin_inclination = np.sin(inclination)
        cos_inclination = np.cos(inclination)

        # Rotation around the stellar axis, then tilt of the axis towards the observer
        mu = cos_latitude * np.cos(psi) * sin_inclination + sin_latitude * cos_inclination
        y = cos_latitude * np.sin(psi)
        z = sin_latitude * sin_inclination - cos_latitude * np.cos(psi) * cos_inclination
        velocity = self.equatorial_velocity * y * sin_inclination

        return Projection(mu= mu,
                          visible= mu > 0,
                          velocity= velocity,
                          central_longitude= np.degrees(psi),
                          y= y,
                          z= z,
                          )
