"""
Spot population and its lifecycle.

The population is an ordered, immutable set of spots: explicit spots in their configuration order, followed by randomly generated spots in their generation order. The order is also the priority used when spots overlap: a cell belongs to the first spot covering it.
"""
#%% Importing libraries
import logging
from dataclasses import dataclass, replace
from typing import Iterable

import numpy as np

from lather.grid import GeometryGrid
from lather.parameters import Spot, SpotOrigin
from lather.utilities import default_logger_format

#%% Setup logging
logger = logging.getLogger(__name__)
logger = default_logger_format(logger)


def label_spots(spots: Iterable[Spot],
                origin: SpotOrigin,
                start: int = 0) -> tuple[Spot, ...]:
    """
    Give spots their origin and an identifier based on their order.

    Explicit spots are labelled 'spot-<n>', generated spots 'random-<n>'. Spots which already carry an identifier keep it.
    """
    prefix = 'spot' if origin == SpotOrigin.EXPLICIT else 'random'
    return tuple(
        replace(spot,
                origin= origin,
                identifier= spot.identifier or f'{prefix}-{start + ind}')
        for ind, spot in enumerate(spots)
        )


#%% SpotSet
@dataclass(frozen=True)
class SpotSet:
    """
    Ordered population of spots.

    Attributes
    ----------
    spots : tuple[Spot, ...]
        Explicit spots followed by random spots.
    """
    spots: tuple[Spot, ...] = ()

    @classmethod
    def from_explicit(cls, spots: Iterable[Spot]) -> 'SpotSet':
        """Create a population of explicitly configured spots."""
        return cls(label_spots(spots, SpotOrigin.EXPLICIT))

    def with_random(self, spots: Iterable[Spot]) -> 'SpotSet':
        """New population with generated spots appended after the existing ones."""
        random_spots = label_spots(spots, SpotOrigin.RANDOM, start= len(self.random))
        return SpotSet(self.explicit + self.random + random_spots)

    def __post_init__(self):
        object.__setattr__(self, 'spots', tuple(self.spots))
        # Explicit spots always take priority over random ones
        ordered = (tuple(spot for spot in self.spots if spot.origin == SpotOrigin.EXPLICIT)
                   + tuple(spot for spot in self.spots if spot.origin == SpotOrigin.RANDOM))
        object.__setattr__(self, 'spots', ordered)

    def __len__(self) -> int:
        return len(self.spots)

    def __iter__(self):
        return iter(self.spots)

    def __getitem__(self, index: int) -> Spot:
        return self.spots[index]

    @property
    def explicit(self) -> tuple[Spot, ...]:
        return tuple(spot for spot in self.spots if spot.origin == SpotOrigin.EXPLICIT)

    @property
    def random(self) -> tuple[Spot, ...]:
        return tuple(spot for spot in self.spots if spot.origin == SpotOrigin.RANDOM)

    @property
    def total_fill_factor(self) -> float:
        """Sum of fill factors of all spots, regardless of their lifetimes."""
        return float(sum(spot.fill_factor for spot in self.spots))

    def active_indices(self, time: float) -> tuple[int, ...]:
        """
        Indices of spots present at given time, in priority order.

        A spot without lifetime is always present, a spot with lifetime is present if start <= time <= end.
        """
        return tuple(ind for ind, spot in enumerate(self.spots) if spot.alive(time))

    def active(self, time: float) -> tuple[Spot, ...]:
        """Spots present at given time, in priority order."""
        return tuple(self.spots[ind] for ind in self.active_indices(time))

    def coverage(self, time: float) -> float:
        """Sum of fill factors of spots present at given time."""
        return float(sum(spot.fill_factor for spot in self.active(time)))

    def membership(self, grid: GeometryGrid) -> tuple[np.ndarray, ...]:
        """
        Grid cells covered by each spot.

        Spots are fixed in the co-rotating frame, so membership does not depend on time and is computed once per grid.

        Parameters
        ----------
        grid : GeometryGrid
            Grid of the stellar surface.

        Returns
        -------
        tuple[np.ndarray, ...]
            Cell indices for each spot, in population order.
        """
        membership = tuple(
            grid.cells_within(spot.latitude, spot.longitude, spot.angular_radius)
            for spot in self.spots
            )
        empty = sum(1 for cells in membership if len(cells) == 0)
        if empty:
            logger.debug(f'{empty} spots are smaller than the grid resolution and cover no cell center.')
        return membership
