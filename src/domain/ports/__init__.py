"""Domain ports package."""

from .geo_cell_indexer import IGeoCellIndexer

__all__ = ["IGeoCellIndexer"]
