"""
Data Ingestion Module

Reads source tiles: the GeoJSON feature collection model and a loader for
directories of ``zoom-x-y.geojson`` tile files.
"""

from .feature_collection import Feature, FeatureCollection
from .tile_loader import GeoJSONTileLoader, parse_tile_filename

__all__ = [
    "Feature",
    "FeatureCollection",
    "GeoJSONTileLoader",
    "parse_tile_filename",
]
