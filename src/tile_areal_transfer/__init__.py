"""
Tile Areal Transfer

Reassigns a scalar attribute (e.g. population) carried by source polygons
onto a finer, tile-aligned grid of cells, so that per-tile statistics can be
consumed at a higher zoom level than the source data was produced at.

Each cell takes the value of the first source polygon containing its
centroid; totals before and after conversion are reported for drift
detection.
"""

__version__ = "0.1.0"

from .tile_generation import TileAddress, SubdivisionGridGenerator, generate_subdivision_grid
from .data_ingestion import Feature, FeatureCollection, GeoJSONTileLoader
from .processing import (
    Containment,
    ValueJoiner,
    join_values,
    ConservationReport,
    validate_conservation,
    TileConverter,
    convert_tile,
    BatchConverter,
    BatchResult,
)
from .utils import TransferConfig, configure_logging

__all__ = [
    "TileAddress",
    "SubdivisionGridGenerator",
    "generate_subdivision_grid",
    "Feature",
    "FeatureCollection",
    "GeoJSONTileLoader",
    "Containment",
    "ValueJoiner",
    "join_values",
    "ConservationReport",
    "validate_conservation",
    "TileConverter",
    "convert_tile",
    "BatchConverter",
    "BatchResult",
    "TransferConfig",
    "configure_logging",
]
