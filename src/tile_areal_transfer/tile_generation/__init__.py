"""
Tile Generation Module

Slippy map tile math and the subdivision of a source tile into a grid of
cell polygons on its ancestor's 256-unit raster.
"""

from .tile_math import (
    TileAddress,
    lon_to_tile_x,
    lat_to_tile_y,
    lon_to_tile_x_frac,
    lat_to_tile_y_frac,
    tile_x_to_lon,
    tile_y_to_lat,
    tile_bounds,
    tile_for_point,
    parse_tile_key,
)
from .subdivision_grid import (
    SubTileAddress,
    SubdivisionGridGenerator,
    generate_subdivision_grid,
    subdivisions_per_edge,
)

__all__ = [
    "TileAddress",
    "lon_to_tile_x",
    "lat_to_tile_y",
    "lon_to_tile_x_frac",
    "lat_to_tile_y_frac",
    "tile_x_to_lon",
    "tile_y_to_lat",
    "tile_bounds",
    "tile_for_point",
    "parse_tile_key",
    "SubTileAddress",
    "SubdivisionGridGenerator",
    "generate_subdivision_grid",
    "subdivisions_per_edge",
]
