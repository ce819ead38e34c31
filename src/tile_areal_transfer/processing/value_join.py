"""
Point-In-Polygon Value Join

Assigns each target cell the attribute value of the first source polygon,
in source order, that contains the cell's centroid. This is a
point-representative approximation of areal interpolation: values are
copied, not apportioned, so a source polygon covering many cells hands its
full value to each of them.

Every comparison yields an explicit :class:`Containment`. A predicate that
cannot be evaluated (missing or degenerate geometry) is INDETERMINATE and
is treated exactly like NOT_CONTAINED: the scan moves on to the next
source polygon.
"""

from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Sequence

import geopandas as gpd
import structlog
from shapely.errors import GEOSException
from shapely.geometry import Point
from shapely.geometry.base import BaseGeometry

from ..data_ingestion.feature_collection import Feature, FeatureCollection


logger = structlog.get_logger(component="ValueJoin")


class Containment(Enum):
    """Outcome of a single point-in-polygon comparison."""
    CONTAINED = "contained"
    NOT_CONTAINED = "not_contained"
    INDETERMINATE = "indeterminate"

    @property
    def matched(self) -> bool:
        return self is Containment.CONTAINED


def check_containment(geometry: Optional[BaseGeometry], point: Point) -> Containment:
    """
    Test whether ``geometry`` contains ``point``.

    Points on the polygon boundary are not contained.
    """
    if geometry is None or geometry.is_empty:
        return Containment.INDETERMINATE
    try:
        contained = geometry.contains(point)
    except (GEOSException, ValueError, TypeError):
        return Containment.INDETERMINATE
    return Containment.CONTAINED if contained else Containment.NOT_CONTAINED


@dataclass
class JoinStats:
    """Counters collected during one join."""
    targets: int = 0
    assigned: int = 0
    unmatched: int = 0
    comparisons: int = 0
    indeterminate: int = 0
    missing_value: int = 0


class ValueJoiner:
    """
    Copies a named attribute from source polygons onto target cells.

    The optional spatial index only narrows which source polygons are
    compared; candidates are still visited in source order, so the result
    is identical to a full scan.
    """

    def __init__(self, attribute: str, use_spatial_index: bool = False):
        """
        Args:
            attribute: Property name copied from source to target features
            use_spatial_index: Query an STR-tree of source envelopes first
        """
        self.attribute = attribute
        self.use_spatial_index = use_spatial_index
        self.stats = JoinStats()

    def join(
        self,
        source: FeatureCollection,
        target: FeatureCollection,
    ) -> FeatureCollection:
        """
        Fill ``target`` in place with values from ``source``.

        Args:
            source: Collection whose polygons carry the attribute
            target: Collection of cells to receive values

        Returns:
            The same ``target`` collection
        """
        self.stats = JoinStats()
        source_geometries = [feature.geometry for feature in source.features]
        sindex = None
        if self.use_spatial_index and source_geometries:
            sindex = gpd.GeoSeries(source_geometries).sindex

        for target_feature in target.features:
            self.stats.targets += 1

            if target_feature.geometry is None or target_feature.geometry.is_empty:
                self.stats.unmatched += 1
                continue

            centroid = target_feature.geometry.centroid
            if sindex is not None:
                candidates: Sequence[int] = sorted(int(i) for i in sindex.query(centroid))
            else:
                candidates = range(len(source.features))

            match = self._first_container(source.features, candidates, centroid)
            if match is None:
                self.stats.unmatched += 1
                continue

            if self.attribute not in match.properties:
                self.stats.missing_value += 1
                continue

            target_feature.properties[self.attribute] = match.properties[self.attribute]
            self.stats.assigned += 1

        logger.debug(
            "Value join completed",
            attribute=self.attribute,
            targets=self.stats.targets,
            assigned=self.stats.assigned,
            unmatched=self.stats.unmatched,
            indeterminate=self.stats.indeterminate,
        )
        return target

    def _first_container(
        self,
        sources: List[Feature],
        candidates: Sequence[int],
        point: Point,
    ) -> Optional[Feature]:
        """Return the first candidate source feature containing ``point``."""
        for index in candidates:
            source_feature = sources[index]
            self.stats.comparisons += 1
            result = check_containment(source_feature.geometry, point)

            if result is Containment.INDETERMINATE:
                self.stats.indeterminate += 1
                logger.debug(
                    "Containment test indeterminate",
                    source_index=index,
                    point=(point.x, point.y),
                )
                continue

            if result.matched:
                return source_feature

        return None


def join_values(
    source: FeatureCollection,
    target: FeatureCollection,
    attribute: str,
    use_spatial_index: bool = False,
) -> FeatureCollection:
    """Convenience wrapper around :class:`ValueJoiner`."""
    return ValueJoiner(attribute, use_spatial_index=use_spatial_index).join(source, target)
