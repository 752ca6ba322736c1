"""
Geo package - Infrastructure Layer

This package contains geospatial indexing implementations.
"""

from src.infrastructure.geo.h3_cell_indexer import H3CellIndexer

__all__ = ["H3CellIndexer"]
