"""
Slippy Map Tile Math

Conversions between WGS84 longitude/latitude, fractional tile coordinates
and integer tile indices in the Web Mercator tiling scheme, where zoom
level z holds 2^z x 2^z tiles.

Fractional variants are used to address positions inside a tile, e.g. the
256-unit sub-grid used when subdividing a tile into cells. Latitudes very
close to +/-90 degrees produce huge or infinite intermediates; this is a
property of the projection and is not handled specially.
"""

import math
import re
from dataclasses import dataclass
from typing import Optional, Tuple

from ..utils.exceptions import InvalidTileAddressError


TILE_KEY_PATTERN = re.compile(r"(\d+)-(\d+)-(\d+)")


def lon_to_tile_x(lon: float, zoom: int) -> int:
    """Convert longitude to the integer tile column at ``zoom``."""
    return math.floor(lon_to_tile_x_frac(lon, zoom))


def lat_to_tile_y(lat: float, zoom: int) -> int:
    """Convert latitude to the integer tile row at ``zoom``."""
    return math.floor(lat_to_tile_y_frac(lat, zoom))


def lon_to_tile_x_frac(lon: float, zoom: int) -> float:
    """Convert longitude to a fractional tile column."""
    return (lon + 180.0) / 360.0 * 2 ** zoom


def lat_to_tile_y_frac(lat: float, zoom: int) -> float:
    """Convert latitude to a fractional tile row."""
    lat_rad = math.radians(lat)
    mercator_y = math.log(math.tan(lat_rad) + 1.0 / math.cos(lat_rad))
    return (1.0 - mercator_y / math.pi) / 2.0 * 2 ** zoom


def tile_x_to_lon(x: float, zoom: int) -> float:
    """Longitude of the western edge of (possibly fractional) column ``x``."""
    return x / 2 ** zoom * 360.0 - 180.0


def tile_y_to_lat(y: float, zoom: int) -> float:
    """Latitude of the northern edge of (possibly fractional) row ``y``."""
    n = math.pi * (1.0 - 2.0 * y / 2 ** zoom)
    return math.degrees(math.atan(math.sinh(n)))


@dataclass(frozen=True)
class TileAddress:
    """A tile in the slippy map scheme."""
    zoom: int
    x: int
    y: int

    def __post_init__(self):
        if self.zoom < 0:
            raise InvalidTileAddressError(f"zoom must be non-negative, got {self.zoom}")
        limit = 2 ** self.zoom
        if not (0 <= self.x < limit and 0 <= self.y < limit):
            raise InvalidTileAddressError(
                f"tile {self.zoom}-{self.x}-{self.y} is outside [0, {limit}) at zoom {self.zoom}"
            )

    @property
    def key(self) -> str:
        """Dash separated ``zoom-x-y`` identifier."""
        return f"{self.zoom}-{self.x}-{self.y}"

    @classmethod
    def from_key(cls, key: str) -> "TileAddress":
        """
        Parse a ``zoom-x-y`` identifier.

        Raises:
            InvalidTileAddressError: If ``key`` does not hold a valid address
        """
        match = TILE_KEY_PATTERN.fullmatch(key.strip())
        if not match:
            raise InvalidTileAddressError(f"Not a zoom-x-y tile key: {key!r}")
        zoom, x, y = (int(part) for part in match.groups())
        return cls(zoom, x, y)

    def ancestor(self, dz: int) -> "TileAddress":
        """Return the tile ``dz`` zoom levels up that contains this tile."""
        if dz < 0:
            raise InvalidTileAddressError(f"dz must be non-negative, got {dz}")
        if dz > self.zoom:
            raise InvalidTileAddressError(
                f"tile {self.key} has no ancestor {dz} levels up"
            )
        return TileAddress(self.zoom - dz, self.x >> dz, self.y >> dz)

    @property
    def bounds(self) -> Tuple[float, float, float, float]:
        """Bounding box as (min_lon, min_lat, max_lon, max_lat)."""
        return tile_bounds(self)


def tile_bounds(tile: TileAddress) -> Tuple[float, float, float, float]:
    """Convert a tile address to its bounding box in degrees."""
    lon_min = tile_x_to_lon(tile.x, tile.zoom)
    lon_max = tile_x_to_lon(tile.x + 1, tile.zoom)
    lat_max = tile_y_to_lat(tile.y, tile.zoom)
    lat_min = tile_y_to_lat(tile.y + 1, tile.zoom)
    return (lon_min, lat_min, lon_max, lat_max)


def tile_for_point(lon: float, lat: float, zoom: int) -> TileAddress:
    """Return the tile at ``zoom`` containing a WGS84 position."""
    limit = 2 ** zoom - 1
    x = min(max(lon_to_tile_x(lon, zoom), 0), limit)
    y = min(max(lat_to_tile_y(lat, zoom), 0), limit)
    return TileAddress(zoom, x, y)


def parse_tile_key(text: str) -> Optional[TileAddress]:
    """
    Find a ``zoom-x-y`` triple anywhere in ``text``.

    Returns None when no triple is present or the triple is out of range.
    """
    match = TILE_KEY_PATTERN.search(text)
    if not match:
        return None
    zoom, x, y = (int(part) for part in match.groups())
    try:
        return TileAddress(zoom, x, y)
    except InvalidTileAddressError:
        return None
