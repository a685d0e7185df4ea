"""
Discretization of the stellar sphere.

The sphere is split into `grid_size` latitude bands of equal height. Each band holds a number of cells proportional to the cosine of its central latitude, so cells are roughly square everywhere and the grid does not cluster at the poles. The area weight of each cell is the exact area of its band divided by the number of cells in the band, so the weights sum to one.

Cells are ordered from the southern to the northern band and by increasing longitude inside a band. The ordering is stable, so cell indices can be used as keys.
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


#%% Unit vectors
def unit_vectors(latitude: np.ndarray | float,
                 longitude: np.ndarray | float) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    Cartesian unit vectors in the stellar frame (z along the rotation axis, x towards longitude 0).

    Parameters
    ----------
    latitude : np.ndarray | float
        Latitude [deg].
    longitude : np.ndarray | float
        Longitude [deg].

    Returns
    -------
    x, y, z : np.ndarray
        Components of the unit vectors.
    """
    latitude = np.radians(latitude)
    longitude = np.radians(longitude)
    cos_latitude = np.cos(latitude)
    return cos_latitude * np.cos(longitude), cos_latitude * np.sin(longitude), np.sin(latitude)


#%% GeometryGrid
@dataclass(frozen=True, eq=False)
class GeometryGrid:
    """
    Equal-area corrected grid covering the whole stellar sphere.

    Attributes
    ----------
    grid_size : int
        Number of latitude bands.
    latitude : np.ndarray
        Latitude of the cell centers [deg].
    longitude : np.ndarray
        Longitude of the cell centers [deg], within [0, 360).
    area_weight : np.ndarray
        Fraction of the sphere area represented by each cell.
    band_latitude : np.ndarray
        Central latitude of each band [deg].
    band_offsets : np.ndarray
        Index of the first cell of each band, with the total number of cells appended.
    x, y, z : np.ndarray
        Unit vectors of the cell centers in the stellar frame.
    """
    grid_size: int
    latitude: np.ndarray
    longitude: np.ndarray
    area_weight: np.ndarray
    band_latitude: np.ndarray
    band_offsets: np.ndarray
    x: np.ndarray
    y: np.ndarray
    z: np.ndarray

    @classmethod
    def build(cls, grid_size: int) -> 'GeometryGrid':
        """
        Build the grid for given number of latitude bands.

        Parameters
        ----------
        grid_size : int
            Number of latitude bands. The number of cells is approximately 4 * grid_size**2 / pi.

        Returns
        -------
        GeometryGrid
            Grid of the full sphere.
        """
        if grid_size <= 0:
            raise ConfigError(f'grid_size must be positive, got {grid_size}',
                              details= {'grid_size': grid_size})

        band_edges = np.linspace(-90.0, 90.0, grid_size + 1)
        band_latitude = 0.5 * (band_edges[:-1] + band_edges[1:])
        band_area = 0.5 * np.diff(np.sin(np.radians(band_edges)))

        cells_per_band = np.maximum(
            1,
            np.rint(2 * grid_size * np.cos(np.radians(band_latitude))).astype(int)
            )
        band_offsets = np.concatenate(([0], np.cumsum(cells_per_band)))
        band_index = np.repeat(np.arange(grid_size), cells_per_band)

        position_in_band = np.arange(band_offsets[-1]) - band_offsets[band_index]
        longitude = (position_in_band + 0.5) * 360.0 / cells_per_band[band_index]
        latitude = band_latitude[band_index]
        area_weight = (band_area / cells_per_band)[band_index]

        x, y, z = unit_vectors(latitude, longitude)
        logger.debug(f'Built stellar grid with {grid_size} bands and {len(latitude)} cells')

        return cls(grid_size= grid_size,
                   latitude= latitude,
                   longitude= longitude,
                   area_weight= area_weight,
                   band_latitude= band_latitude,
                   band_offsets= band_offsets,
                   x= x,
                   y= y,
                   z= z,
                   )

    def __len__(self) -> int:
        return len(self.latitude)

    def cells_near(self,
                   latitude: float,
                   radius: float) -> slice:
        """
        Contiguous slice of cells in bands whose central latitude is within `radius` of given latitude.

        Parameters
        ----------
        latitude : float
            Latitude of the reference point [deg].
        radius : float
            Angular distance [deg].

        Returns
        -------
        slice
            Slice of cell indices.
        """
        first_band = np.searchsorted(self.band_latitude, latitude - radius, side= 'left')
        last_band = np.searchsorted(self.band_latitude, latitude + radius, side= 'right')
        return slice(int(self.band_offsets[first_band]), int(self.band_offsets[last_band]))

    def cells_within(self,
                     latitude: float,
                     longitude: float,
                     radius: float) -> np.ndarray:
        """
        Indices of cells whose centers lie inside a spherical cap.

        Parameters
        ----------
        latitude : float
            Latitude of the cap center [deg].
        longitude : float
            Longitude of the cap center [deg].
        radius : float
            Angular radius of the cap [deg].

        Returns
        -------
        indices : np.ndarray
            Sorted cell indices inside the cap.
        """
        candidates = self.cells_near(latitude, radius)
        center_x, center_y, center_z = unit_vectors(latitude, longitude)
        cos_distance = (self.x[candidates] * center_x
                        + self.y[candidates] * center_y
                        + self.z[candidates] * center_z)
        inside = cos_distance >= np.cos(np.radians(radius))
        return np.arange(candidates.start, candidates.stop)[inside]

    def covered_fraction(self, indices: np.ndarray) -> float:
        """Fraction of the sphere area represented by given cells."""
        return float(np.sum(self.area_weight[np.unique(indices)]))
