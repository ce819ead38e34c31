"""
GeoJSON Feature Collections

In-memory representation of the GeoJSON FeatureCollection documents the
pipeline reads and writes. Geometries are held as shapely objects, so the
spatial predicates of the join operate on them directly, and properties
are plain dictionaries.

Output collections carry two extra top-level members besides ``name``:
``area`` (the reduced-zoom tile the cells are addressed in) and ``source``
(the tile the values came from).
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional

import geopandas as gpd
import structlog
from shapely.errors import ShapelyError
from shapely.geometry import mapping, shape
from shapely.geometry.base import BaseGeometry


WGS84_EPSG = 4326
METADATA_KEYS = ("name", "area", "source")

logger = structlog.get_logger(component="FeatureCollection")


@dataclass
class Feature:
    """A geometry with its attribute mapping."""
    geometry: Optional[BaseGeometry]
    properties: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_geojson(cls, data: Dict[str, Any], index: Optional[int] = None) -> "Feature":
        """
        Build a feature from a GeoJSON ``Feature`` object.

        A geometry shapely cannot build (degenerate ring, unknown type) is
        logged and kept as None, so the feature never contains a point.

        Args:
            data: GeoJSON ``Feature`` mapping
            index: Position of the feature in its collection, for logging
        """
        geometry_dict = data.get("geometry")
        geometry = None
        if geometry_dict:
            try:
                geometry = shape(geometry_dict)
            except (ShapelyError, ValueError, TypeError) as e:
                logger.warning(
                    "Dropping malformed feature geometry",
                    feature_index=index,
                    error=str(e),
                )
        return cls(geometry=geometry, properties=dict(data.get("properties") or {}))

    def to_geojson(self) -> Dict[str, Any]:
        """Convert to a GeoJSON ``Feature`` object."""
        return {
            "type": "Feature",
            "geometry": mapping(self.geometry) if self.geometry is not None else None,
            "properties": dict(self.properties),
        }


@dataclass
class FeatureCollection:
    """Ordered features plus optional collection metadata."""
    features: List[Feature] = field(default_factory=list)
    name: Optional[str] = None
    area: Optional[str] = None
    source: Optional[str] = None

    def __len__(self) -> int:
        return len(self.features)

    def __iter__(self) -> Iterator[Feature]:
        return iter(self.features)

    def append(self, feature: Feature) -> None:
        self.features.append(feature)

    @classmethod
    def from_geojson(cls, data: Dict[str, Any]) -> "FeatureCollection":
        """
        Build a collection from a parsed GeoJSON document.

        Args:
            data: Dictionary with ``type`` FeatureCollection and ``features``

        Returns:
            FeatureCollection in document order

        Raises:
            ValueError: If the document is not a FeatureCollection
            AttributeError: If a feature entry is not a mapping
        """
        if not isinstance(data, dict) or data.get("type") != "FeatureCollection":
            raise ValueError("GeoJSON document is not a FeatureCollection")

        features = data.get("features")
        if not isinstance(features, list):
            raise ValueError("FeatureCollection has no features list")

        return cls(
            features=[Feature.from_geojson(f, index) for index, f in enumerate(features)],
            **{key: data[key] for key in METADATA_KEYS if data.get(key) is not None}
        )

    def to_geojson(self) -> Dict[str, Any]:
        """Convert to a GeoJSON document, metadata members first."""
        document: Dict[str, Any] = {"type": "FeatureCollection"}
        for key in METADATA_KEYS:
            value = getattr(self, key)
            if value is not None:
                document[key] = value
        document["features"] = [feature.to_geojson() for feature in self.features]
        return document

    def to_geodataframe(self) -> gpd.GeoDataFrame:
        """Convert to a GeoDataFrame in WGS84, one row per feature."""
        records = [dict(feature.properties) for feature in self.features]
        geometries = [feature.geometry for feature in self.features]
        return gpd.GeoDataFrame(records, geometry=geometries, crs=f"EPSG:{WGS84_EPSG}")
