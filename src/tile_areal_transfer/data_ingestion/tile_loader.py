"""
GeoJSON Tile Loader

Reads source tiles stored as one GeoJSON FeatureCollection per file, with
the tile address encoded in the filename as ``zoom-x-y`` (for example
``14-14552-6451.geojson``).

Loading follows the extract -> validate -> transform sequence. A tile that
cannot be read, decoded or validated is skipped: ``load_tile`` logs the
failure and returns None so the batch carries on with the remaining tiles.
"""

import json
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Tuple, Union

import structlog
from shapely.errors import ShapelyError

from .feature_collection import FeatureCollection
from ..tile_generation.tile_math import TileAddress, parse_tile_key
from ..utils.exceptions import TileLoadError


GEOJSON_SUFFIXES = (".geojson", ".json")


def parse_tile_filename(path: Union[str, Path]) -> Optional[TileAddress]:
    """
    Recover the tile address from a ``zoom-x-y`` filename.

    Returns None when the name holds no valid address.
    """
    return parse_tile_key(Path(path).name)


class GeoJSONTileLoader:
    """Loads source tiles from a directory of GeoJSON files."""

    def __init__(self, input_dir: Union[str, Path], suffixes: Tuple[str, ...] = GEOJSON_SUFFIXES):
        """
        Args:
            input_dir: Directory holding the source tiles
            suffixes: File suffixes considered tile files
        """
        self.input_dir = Path(input_dir)
        self.suffixes = tuple(s.lower() for s in suffixes)
        self.logger = structlog.get_logger(
            component="GeoJSONTileLoader",
            input_dir=str(self.input_dir),
        )
        self.stats = {
            'tiles_loaded': 0,
            'tiles_skipped': 0,
            'errors': []
        }

    def discover(self) -> List[Tuple[TileAddress, Path]]:
        """
        List tile files in the input directory.

        Files whose names hold no ``zoom-x-y`` triple are ignored. Results
        are sorted by filename so runs are reproducible.

        Raises:
            FileNotFoundError: If the input directory does not exist
        """
        if not self.input_dir.is_dir():
            raise FileNotFoundError(f"Input directory not found: {self.input_dir}")

        tiles = []
        for path in sorted(self.input_dir.iterdir()):
            if not path.is_file() or path.suffix.lower() not in self.suffixes:
                continue
            tile = parse_tile_filename(path)
            if tile is None:
                self.logger.debug("Ignoring file without tile address", file=path.name)
                continue
            tiles.append((tile, path))

        self.logger.info("Discovered source tiles", tile_count=len(tiles))
        return tiles

    def extract(self, path: Union[str, Path]) -> Dict[str, Any]:
        """Read and decode a GeoJSON file."""
        path = Path(path)
        try:
            with open(path, "r", encoding="utf-8") as f:
                return json.load(f)
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            raise TileLoadError(f"Cannot read tile file {path}: {e}", path=path) from e

    def validate(self, data: Dict[str, Any]) -> bool:
        """Check that ``data`` is a FeatureCollection with a features list."""
        return (
            isinstance(data, dict)
            and data.get("type") == "FeatureCollection"
            and isinstance(data.get("features"), list)
        )

    def transform(self, data: Dict[str, Any], tile: Optional[TileAddress] = None) -> FeatureCollection:
        """Build a FeatureCollection, naming it after ``tile`` when given."""
        try:
            collection = FeatureCollection.from_geojson(data)
        except (ShapelyError, ValueError, TypeError, AttributeError, KeyError) as e:
            raise TileLoadError(f"Invalid GeoJSON document: {e}") from e
        if tile is not None and collection.name is None:
            collection.name = tile.key
        return collection

    def load(self, path: Union[str, Path], tile: Optional[TileAddress] = None) -> FeatureCollection:
        """
        Load one tile file.

        Raises:
            TileLoadError: If the file cannot be read or is not a valid
                FeatureCollection
        """
        path = Path(path)
        data = self.extract(path)
        if not self.validate(data):
            raise TileLoadError(f"Not a GeoJSON FeatureCollection: {path}", path=path)
        return self.transform(data, tile or parse_tile_filename(path))

    def load_tile(self, tile: TileAddress, path: Optional[Union[str, Path]] = None) -> Optional[FeatureCollection]:
        """
        Load a tile, returning None instead of raising when it is unusable.

        Args:
            tile: Address of the tile to load
            path: File to read, defaults to ``<input_dir>/<z-x-y>.geojson``
        """
        path = Path(path) if path is not None else self.input_dir / f"{tile.key}.geojson"
        try:
            collection = self.load(path, tile)
        except TileLoadError as e:
            self.logger.warning("Skipping unreadable tile", tile_id=tile.key, error=str(e))
            self.stats['tiles_skipped'] += 1
            self.stats['errors'].append(f"Tile {tile.key}: {e}")
            return None

        self.stats['tiles_loaded'] += 1
        return collection

    def iter_tiles(self) -> Iterator[Tuple[TileAddress, FeatureCollection]]:
        """Yield every loadable tile in the input directory."""
        for tile, path in self.discover():
            collection = self.load_tile(tile, path)
            if collection is not None:
                yield tile, collection
