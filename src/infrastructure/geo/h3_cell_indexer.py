"""
Infrastructure Geo - H3 Cell Indexer

Hexagonal cell indexing backed by Uber's H3 library (v4 API).
"""

from typing import List, Tuple

import h3

from src.domain.ports.geo_cell_indexer import IGeoCellIndexer


class H3CellIndexer(IGeoCellIndexer):
    """Implementation of the geo cell indexer port using H3."""

    def __init__(self, resolution: int = 7):
        if not 0 <= resolution <= 15:
            raise ValueError("H3 resolution must be between 0 and 15")
        self._resolution = resolution

    @property
    def resolution(self) -> int:
        return self._resolution

    def cell_from_coordinate(self, latitude: float, longitude: float) -> str:
        return h3.latlng_to_cell(latitude, longitude, self._resolution)

    def cell_center(self, h3_index: str) -> Tuple[float, float]:
        latitude, longitude = h3.cell_to_latlng(h3_index)
        return latitude, longitude

    def cells_in_bounding_box(
        self,
        min_latitude: float,
        min_longitude: float,
        max_latitude: float,
        max_longitude: float,
    ) -> List[str]:
        """
        Cells covering a bounding box.

        The box polygon is filled with H3. A box with no width or height is
        walked along the grid path between its corners instead. The cells of
        the centre and corners are always included. The centre cell comes
        first and the order is deterministic.
        """
        center = self.cell_from_coordinate(
            (min_latitude + max_latitude) / 2, (min_longitude + max_longitude) / 2
        )
        cells = {center: None}

        if min_latitude < max_latitude and min_longitude < max_longitude:
            polygon = h3.LatLngPoly(
                [
                    (min_latitude, min_longitude),
                    (min_latitude, max_longitude),
                    (max_latitude, max_longitude),
                    (max_latitude, min_longitude),
                ]
            )
            for cell in sorted(h3.h3shape_to_cells(polygon, self._resolution)):
                cells.setdefault(cell)
        else:
            start = self.cell_from_coordinate(min_latitude, min_longitude)
            end = self.cell_from_coordinate(max_latitude, max_longitude)
            for cell in h3.grid_path_cells(start, end):
                cells.setdefault(cell)

        for latitude, longitude in (
            (min_latitude, min_longitude),
            (min_latitude, max_longitude),
            (max_latitude, min_longitude),
            (max_latitude, max_longitude),
        ):
            cells.setdefault(self.cell_from_coordinate(latitude, longitude))

        return list(cells)

    def neighbor_ring(self, h3_index: str) -> List[str]:
        return [cell for cell in h3.grid_disk(h3_index, 1) if cell != h3_index]

    def is_valid_cell(self, h3_index: str) -> bool:
        try:
            return bool(h3.is_valid_cell(h3_index))
        except (TypeError, ValueError):
            return False
