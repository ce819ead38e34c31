"""
Batch Conversion Driver

Converts many source tiles, one independent conversion per tile, and
persists each result as ``<output_dir>/<source>.geojson``.

Inputs are passed explicitly as (TileAddress, FeatureCollection) pairs;
``run_directory`` is a convenience that discovers and loads them from a
directory of ``zoom-x-y.geojson`` files first. Tile-level failures are
logged, recorded and skipped. Configuration errors surface before any tile
is processed.
"""

import concurrent.futures
import json
import os
import threading
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

import structlog

from ..data_ingestion.feature_collection import FeatureCollection
from ..data_ingestion.tile_loader import GeoJSONTileLoader
from ..monitoring.metrics import MetricsCollector, Timer
from ..tile_generation.tile_math import TileAddress
from ..utils.config import TransferConfig
from ..utils.exceptions import ConfigurationError
from .tile_converter import ConversionResult, TileConverter


@dataclass
class BatchResult:
    """Outcome of a batch run."""
    results: List[ConversionResult] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)
    failed: Dict[str, str] = field(default_factory=dict)
    written: List[Path] = field(default_factory=list)
    processing_time: float = 0.0

    @property
    def converted(self) -> int:
        return len(self.results)

    def summary(self) -> Dict[str, Any]:
        return {
            'tiles_converted': self.converted,
            'tiles_skipped': len(self.skipped),
            'tiles_failed': len(self.failed),
            'files_written': len(self.written),
            'processing_time': self.processing_time,
        }


class BatchConverter:
    """
    Drives tile conversions for a whole run.

    Each worker converts its own tile with its own collections; the
    converter and metrics collector are the only shared objects.
    """

    def __init__(
        self,
        config: TransferConfig,
        metrics: Optional[MetricsCollector] = None,
    ):
        """
        Initialize the batch converter.

        Args:
            config: Validated run configuration
            metrics: Optional metrics collector, a private one is created
                when omitted
        """
        self.config = config
        self.metrics = metrics or MetricsCollector()
        self.converter = TileConverter(
            attribute=config.attribute,
            dz=config.dz,
            use_spatial_index=config.use_spatial_index,
        )

        self.logger = structlog.get_logger(
            component="BatchConverter",
            attribute=config.attribute,
            dz=config.dz,
        )

        self.lock = threading.Lock()
        self.stats = {
            'tiles_converted': 0,
            'tiles_skipped': 0,
            'tiles_failed': 0,
            'cells_assigned': 0,
            'total_processing_time': 0.0,
            'errors': []
        }

    def convert_all(
        self,
        inputs: Iterable[Tuple[TileAddress, FeatureCollection]],
        output_dir: Optional[Union[str, Path]] = None,
    ) -> BatchResult:
        """
        Convert every (tile, source) pair.

        Args:
            inputs: Source tiles paired with their feature collections
            output_dir: Where to write results, nothing is written when None

        Returns:
            BatchResult with results in input order
        """
        start_time = time.time()
        inputs = list(inputs)
        batch = BatchResult()

        self.logger.info(
            "Starting batch conversion",
            tile_count=len(inputs),
            max_workers=self.config.max_workers,
        )

        if output_dir is not None:
            output_dir = Path(output_dir)
            output_dir.mkdir(parents=True, exist_ok=True)

        outcomes = self._run(inputs)

        for (tile, _), outcome in zip(inputs, outcomes):
            if isinstance(outcome, ConversionResult):
                batch.results.append(outcome)
                if output_dir is not None:
                    path = self._write(outcome, output_dir, batch)
                    if path is not None:
                        batch.written.append(path)
            else:
                batch.failed[tile.key] = outcome

        batch.processing_time = time.time() - start_time
        self.stats['total_processing_time'] += batch.processing_time

        self.logger.info("Batch conversion completed", **batch.summary())
        return batch

    def run_directory(
        self,
        input_dir: Optional[Union[str, Path]] = None,
        output_dir: Optional[Union[str, Path]] = None,
    ) -> BatchResult:
        """
        Convert every tile file found in ``input_dir``.

        Args:
            input_dir: Source directory, defaults to ``config.input_dir``
            output_dir: Target directory, defaults to ``config.output_dir``

        Raises:
            ConfigurationError: If either directory is not configured
            FileNotFoundError: If the input directory does not exist
        """
        input_dir = input_dir or self.config.input_dir
        output_dir = output_dir or self.config.output_dir
        if input_dir is None or output_dir is None:
            raise ConfigurationError("input_dir and output_dir are required")

        loader = GeoJSONTileLoader(input_dir)
        inputs = []
        skipped = []
        for tile, path in loader.discover():
            collection = loader.load_tile(tile, path)
            if collection is None:
                skipped.append(tile.key)
                self._record_skip(tile.key, "unreadable")
                continue
            inputs.append((tile, collection))

        batch = self.convert_all(inputs, output_dir=output_dir)
        batch.skipped = skipped + batch.skipped
        return batch

    def _run(self, inputs: List[Tuple[TileAddress, FeatureCollection]]) -> List[Any]:
        """Convert inputs, returning a ConversionResult or an error message per tile."""
        if self.config.max_workers == 1 or len(inputs) <= 1:
            return [self._convert_one(tile, source) for tile, source in inputs]

        outcomes: List[Any] = [None] * len(inputs)
        with concurrent.futures.ThreadPoolExecutor(max_workers=self.config.max_workers) as executor:
            future_to_index = {
                executor.submit(self._convert_one, tile, source): index
                for index, (tile, source) in enumerate(inputs)
            }
            for future in concurrent.futures.as_completed(future_to_index):
                outcomes[future_to_index[future]] = future.result()
        return outcomes

    def _convert_one(self, tile: TileAddress, source: FeatureCollection) -> Union[ConversionResult, str]:
        """Convert a single tile, turning failures into an error message."""
        try:
            with Timer(self.metrics, 'tile_conversion_duration_seconds'):
                result = self.converter.convert(tile, source)
        except Exception as e:
            error_msg = f"Tile {tile.key}: {str(e)}"
            self.logger.error("Tile conversion failed", tile_id=tile.key, error=str(e))
            with self.lock:
                self.stats['tiles_failed'] += 1
                self.stats['errors'].append(error_msg)
            self.metrics.increment_counter('tiles_failed_total')
            return str(e)

        with self.lock:
            self.stats['tiles_converted'] += 1
            self.stats['cells_assigned'] += len(result.collection)
        self.metrics.increment_counter('tiles_converted_total')
        self.metrics.increment_counter('cells_assigned_total', len(result.collection))
        return result

    def _write(self, result: ConversionResult, output_dir: Path, batch: BatchResult) -> Optional[Path]:
        """Persist a result, recording a failure instead of raising."""
        try:
            return write_result(result.collection, output_dir)
        except (OSError, ValueError) as e:
            self.logger.error("Error saving tile", tile_id=result.source_key, error=str(e))
            self.stats['errors'].append(f"Tile {result.source_key}: {str(e)}")
            batch.failed[result.source_key] = str(e)
            return None

    def _record_skip(self, tile_key: str, reason: str) -> None:
        self.stats['tiles_skipped'] += 1
        self.metrics.increment_counter('tiles_skipped_total', labels={'reason': reason})
        self.logger.warning("Tile skipped", tile_id=tile_key, reason=reason)

    def get_stats(self) -> Dict[str, Any]:
        """Get batch statistics."""
        return self.stats.copy()


def write_result(collection: FeatureCollection, output_dir: Union[str, Path]) -> Path:
    """
    Write a result collection to ``<output_dir>/<source>.geojson``.

    The document is written to a temporary file first and moved into
    place, so a failed write never leaves a partial output file.

    Raises:
        ValueError: If the collection has no source tile id or holds a
            non-finite number, which strict JSON cannot represent
    """
    if not collection.source:
        raise ValueError("Result collection has no source tile id")

    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    path = output_dir / f"{collection.source}.geojson"
    tmp_path = path.with_name(path.name + ".tmp")

    try:
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(collection.to_geojson(), f, ensure_ascii=False, allow_nan=False, separators=(",", ":"))
        os.replace(tmp_path, path)
    finally:
        if tmp_path.exists():
            tmp_path.unlink()

    return path
