"""Domain port for hexagonal (or other) geospatial cell indexing."""

from abc import ABC, abstractmethod
from typing import List, Tuple


class IGeoCellIndexer(ABC):
    """Maps coordinates to fixed-resolution cells and enumerates cells."""

    @property
    @abstractmethod
    def resolution(self) -> int:
        """Resolution level the indexer was configured with."""

    @abstractmethod
    def cell_from_coordinate(self, latitude: float, longitude: float) -> str:
        """Return the id of the cell containing the coordinate."""

    @abstractmethod
    def cell_center(self, h3_index: str) -> Tuple[float, float]:
        """Return the (latitude, longitude) of a cell center."""

    @abstractmethod
    def cells_in_bounding_box(
        self,
        min_latitude: float,
        min_longitude: float,
        max_latitude: float,
        max_longitude: float,
    ) -> List[str]:
        """Return the cells covering a box, at least one for a point box."""

    @abstractmethod
    def neighbor_ring(self, h3_index: str) -> List[str]:
        """Return the ring-1 neighbours of a cell, excluding the cell itself."""

    @abstractmethod
    def is_valid_cell(self, h3_index: str) -> bool:
        """Check whether an id is a valid cell at any resolution."""
