"""
Tile Converter

Runs the conversion pipeline for a single source tile:

    subdivision grid -> value join -> drop unassigned cells -> conservation check

The result collection names the source tile in ``source`` and the ancestor
tile the cells are addressed in as ``area``. A conversion owns its input and
output collections; nothing is shared between tiles.
"""

from dataclasses import dataclass

import pandas as pd
import structlog

from ..data_ingestion.feature_collection import Feature, FeatureCollection
from ..tile_generation.subdivision_grid import SubdivisionGridGenerator
from ..tile_generation.tile_math import TileAddress
from .conservation import ConservationReport, validate_conservation
from .value_join import JoinStats, ValueJoiner


logger = structlog.get_logger(component="TileConverter")


@dataclass
class ConversionResult:
    """Output of one tile conversion."""
    tile: TileAddress
    collection: FeatureCollection
    report: ConservationReport
    join_stats: JoinStats

    @property
    def source_key(self) -> str:
        return self.tile.key


def has_value(feature: Feature, attribute: str) -> bool:
    """True when ``feature`` carries a non-null, non-NaN value for ``attribute``."""
    value = feature.properties.get(attribute)
    if value is None:
        return False
    if pd.api.types.is_scalar(value) and pd.isna(value):
        return False
    return True


class TileConverter:
    """
    Converts source tiles into value-carrying cell grids.

    The converter is stateless between calls and can be shared by worker
    threads.
    """

    def __init__(self, attribute: str, dz: int, use_spatial_index: bool = True):
        """
        Args:
            attribute: Property transferred from source polygons to cells
            dz: Zoom delta passed to the grid generator
            use_spatial_index: Narrow containment candidates with an STR-tree

        Raises:
            InvalidSubdivisionError: If ``dz`` is outside [0, 8]
        """
        self.attribute = attribute
        self.dz = dz
        self.use_spatial_index = use_spatial_index
        self.grid_generator = SubdivisionGridGenerator(dz)

    def convert(
        self,
        tile: TileAddress,
        source: FeatureCollection,
    ) -> ConversionResult:
        """
        Convert one source tile.

        Args:
            tile: Address of the source tile
            source: Source polygons of that tile

        Returns:
            ConversionResult holding the filtered cell collection and the
            conservation report
        """
        area = self.grid_generator.parent_tile(tile)
        target = self.grid_generator.generate(tile)

        joiner = ValueJoiner(self.attribute, use_spatial_index=self.use_spatial_index)
        joiner.join(source, target)

        result = FeatureCollection(
            features=[f for f in target.features if has_value(f, self.attribute)],
            area=area.key,
            source=tile.key,
        )

        report = validate_conservation(source, result, self.attribute)

        logger.info(
            "Tile converted",
            tile_id=tile.key,
            area=area.key,
            cells=len(target),
            assigned=len(result),
        )

        return ConversionResult(
            tile=tile,
            collection=result,
            report=report,
            join_stats=joiner.stats,
        )


def convert_tile(
    tile: TileAddress,
    source: FeatureCollection,
    attribute: str,
    dz: int,
    use_spatial_index: bool = True,
) -> FeatureCollection:
    """Convert a tile and return only the result collection."""
    converter = TileConverter(attribute, dz, use_spatial_index=use_spatial_index)
    return converter.convert(tile, source).collection
