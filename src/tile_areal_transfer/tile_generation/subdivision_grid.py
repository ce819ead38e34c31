"""
Tile Subdivision Grid Generator

Builds the target grid for one source tile: the source tile's footprint is
cut into square cells on the 256-unit raster of its ancestor ``dz`` zoom
levels up, and every cell is emitted as a WGS84 polygon feature tagged with
its sub-grid indices.

With ``u = 2^(8 - dz)`` cells per edge the generator emits ``u * u``
features. The sub-grid indices are local to the ancestor tile, so cells of
neighbouring source tiles that share an ancestor never collide:

    dz = 1 -> 128 x 128 cells, indices offset by 0 or 128
    dz = 8 -> a single cell per source tile
"""

from dataclasses import dataclass
from typing import Iterator, Tuple

import structlog
from shapely.geometry import Polygon

from .tile_math import TileAddress, tile_x_to_lon, tile_y_to_lat
from ..data_ingestion.feature_collection import Feature, FeatureCollection
from ..utils.config import MAX_ZOOM_DELTA
from ..utils.exceptions import InvalidSubdivisionError


# Resolution of the raster each ancestor tile is addressed on
SUBGRID_SIZE = 256

TILE_PROPERTY = "tile"

logger = structlog.get_logger(component="SubdivisionGridGenerator")


@dataclass(frozen=True)
class SubTileAddress:
    """A cell on the 256-unit raster of a parent tile."""
    parent: TileAddress
    i: int
    j: int
    subdivisions_per_edge: int

    @property
    def label(self) -> str:
        """Value written to the ``tile`` property of the cell."""
        return f"{self.i}-{self.j}"

    def corners(self) -> Tuple[Tuple[float, float], Tuple[float, float]]:
        """Return the (north-west, south-east) corners as (lon, lat) pairs."""
        z, x, y = self.parent.zoom, self.parent.x, self.parent.y
        nw = (
            tile_x_to_lon(x + self.i / SUBGRID_SIZE, z),
            tile_y_to_lat(y + self.j / SUBGRID_SIZE, z),
        )
        se = (
            tile_x_to_lon(x + (self.i + 1) / SUBGRID_SIZE, z),
            tile_y_to_lat(y + (self.j + 1) / SUBGRID_SIZE, z),
        )
        return nw, se

    def to_polygon(self) -> Polygon:
        """Cell outline, ring ordered NW -> NE -> SE -> SW -> NW."""
        (west, north), (east, south) = self.corners()
        return Polygon([
            (west, north),
            (east, north),
            (east, south),
            (west, south),
            (west, north),
        ])


def subdivisions_per_edge(dz: int) -> int:
    """Number of cells along one edge of a source tile for zoom delta ``dz``."""
    validate_zoom_delta(dz)
    return 1 << (MAX_ZOOM_DELTA - dz)


def validate_zoom_delta(dz: int) -> None:
    """Reject zoom deltas that cannot be expressed on the 256-unit raster."""
    if isinstance(dz, bool) or not isinstance(dz, int):
        raise InvalidSubdivisionError(f"dz must be an integer, got {dz!r}")
    if dz < 0 or dz > MAX_ZOOM_DELTA:
        raise InvalidSubdivisionError(
            f"dz must be between 0 and {MAX_ZOOM_DELTA}, got {dz}"
        )


class SubdivisionGridGenerator:
    """
    Generates the empty target grid for a source tile.

    The generator only produces geometry and the ``tile`` property; attribute
    values are filled in afterwards by the value join.
    """

    def __init__(self, dz: int):
        """
        Args:
            dz: Zoom delta between the source tile and its addressing ancestor

        Raises:
            InvalidSubdivisionError: If ``dz`` is outside [0, 8]
        """
        validate_zoom_delta(dz)
        self.dz = dz
        self.cells_per_edge = subdivisions_per_edge(dz)

    def parent_tile(self, source: TileAddress) -> TileAddress:
        """Ancestor tile the cells of ``source`` are addressed in."""
        if source.zoom < self.dz:
            raise InvalidSubdivisionError(
                f"tile {source.key} is at zoom {source.zoom}, "
                f"cannot address it {self.dz} levels up"
            )
        return source.ancestor(self.dz)

    def offset(self, source: TileAddress) -> Tuple[int, int]:
        """First sub-grid indices covered by ``source`` inside its parent."""
        parent = self.parent_tile(source)
        u = self.cells_per_edge
        sx = (source.x - (parent.x << self.dz)) * u
        sy = (source.y - (parent.y << self.dz)) * u
        return sx, sy

    def iter_cells(self, source: TileAddress) -> Iterator[SubTileAddress]:
        """Yield the cells of ``source``, column by column."""
        parent = self.parent_tile(source)
        sx, sy = self.offset(source)
        u = self.cells_per_edge

        for i in range(sx, sx + u):
            for j in range(sy, sy + u):
                yield SubTileAddress(parent, i, j, u)

    def generate(self, source: TileAddress) -> FeatureCollection:
        """
        Build the target grid covering ``source``.

        Args:
            source: Tile whose footprint is subdivided

        Returns:
            FeatureCollection named after the source tile with one polygon
            feature per cell
        """
        sx, sy = self.offset(source)
        logger.debug(
            "Generating subdivision grid",
            tile_id=source.key,
            dz=self.dz,
            offset=(sx, sy),
            cells_per_edge=self.cells_per_edge,
        )

        grid = FeatureCollection(name=source.key)
        for cell in self.iter_cells(source):
            grid.append(Feature(
                geometry=cell.to_polygon(),
                properties={TILE_PROPERTY: cell.label},
            ))

        return grid


def generate_subdivision_grid(source: TileAddress, dz: int) -> FeatureCollection:
    """Convenience wrapper around :class:`SubdivisionGridGenerator`."""
    return SubdivisionGridGenerator(dz).generate(source)
