"""
Unit Tests for the Single Tile Converter
"""

import json
import shutil
import tempfile
import unittest

from shapely.geometry import box

from tile_areal_transfer.data_ingestion.feature_collection import Feature, FeatureCollection
from tile_areal_transfer.processing.batch_converter import write_result
from tile_areal_transfer.processing.tile_converter import TileConverter, convert_tile, has_value
from tile_areal_transfer.tile_generation.tile_math import TileAddress, tile_bounds, tile_x_to_lon
from tile_areal_transfer.utils.exceptions import InvalidSubdivisionError


class TestTileConverter(unittest.TestCase):
    """Test the grid, join, filter and validate pipeline for one tile."""

    def setUp(self):
        """Set up a source tile and a converter with 8 x 8 cells."""
        self.tile = TileAddress(11, 1819, 806)
        self.converter = TileConverter("population", dz=5)
        self.min_lon, self.min_lat, self.max_lon, self.max_lat = tile_bounds(self.tile)

    def _source(self, geometry, value):
        return FeatureCollection(
            features=[Feature(geometry, {"population": value, "name": "district"})],
            name=self.tile.key,
        )

    def test_source_covering_tile(self):
        """Test every cell is kept when the source covers the whole tile."""
        source = self._source(box(*tile_bounds(self.tile)), 1000)

        result = self.converter.convert(self.tile, source)

        self.assertEqual(len(result.collection), 64)
        self.assertEqual(result.collection.area, "6-56-25")
        self.assertEqual(result.collection.source, "11-1819-806")
        self.assertIsNone(result.collection.name)
        self.assertEqual(result.source_key, "11-1819-806")
        for feature in result.collection.features:
            self.assertEqual(feature.properties["population"], 1000)
            self.assertEqual(set(feature.properties), {"tile", "population"})

    def test_report_attached(self):
        """Test the conservation report describes the conversion."""
        source = self._source(box(*tile_bounds(self.tile)), 1000)

        report = self.converter.convert(self.tile, source).report

        self.assertEqual(report.source_total, 1000)
        self.assertEqual(report.result_total, 64000)
        self.assertEqual(report.source, "11-1819-806")
        self.assertEqual(report.area, "6-56-25")

    def test_unassigned_cells_dropped(self):
        """Test only cells with a value survive the filter."""
        mid_lon = tile_x_to_lon(self.tile.x + 0.5, self.tile.zoom)
        source = self._source(box(self.min_lon, self.min_lat, mid_lon, self.max_lat), 50)

        result = self.converter.convert(self.tile, source)

        self.assertEqual(len(result.collection), 32)
        self.assertEqual(result.join_stats.unmatched, 32)
        for feature in result.collection.features:
            self.assertLess(feature.geometry.centroid.x, mid_lon)

    def test_zero_value_kept(self):
        """Test cells that receive 0 are kept in the output."""
        source = self._source(box(*tile_bounds(self.tile)), 0)
        result = self.converter.convert(self.tile, source)
        self.assertEqual(len(result.collection), 64)

    def test_null_value_dropped(self):
        """Test cells that receive null are removed from the output."""
        source = self._source(box(*tile_bounds(self.tile)), None)
        result = self.converter.convert(self.tile, source)
        self.assertEqual(len(result.collection), 0)

    def test_nan_value_dropped(self):
        """Test cells that receive NaN are removed and the output stays strict JSON."""
        source = self._source(box(*tile_bounds(self.tile)), float("nan"))

        result = self.converter.convert(self.tile, source)

        self.assertEqual(len(result.collection), 0)
        self.assertEqual(result.report.result_total, 0)

        temp_dir = tempfile.mkdtemp()
        self.addCleanup(shutil.rmtree, temp_dir)
        path = write_result(result.collection, temp_dir)

        def reject_constant(name):
            raise ValueError(f"non-standard JSON constant {name}")

        document = json.loads(path.read_text(encoding="utf-8"), parse_constant=reject_constant)
        self.assertEqual(document["features"], [])

    def test_index_does_not_change_result(self):
        """Test indexed and full-scan conversions agree."""
        mid_lon = tile_x_to_lon(self.tile.x + 0.5, self.tile.zoom)
        source = FeatureCollection(features=[
            Feature(box(self.min_lon, self.min_lat, mid_lon, self.max_lat), {"population": 1}),
            Feature(box(*tile_bounds(self.tile)), {"population": 2}),
        ])

        indexed = convert_tile(self.tile, source, "population", 5, use_spatial_index=True)
        scanned = convert_tile(self.tile, source, "population", 5, use_spatial_index=False)

        self.assertEqual(indexed.to_geojson(), scanned.to_geojson())

    def test_tile_below_zoom_delta(self):
        """Test a tile too shallow for the zoom delta is rejected."""
        with self.assertRaises(InvalidSubdivisionError):
            self.converter.convert(TileAddress(2, 1, 1), FeatureCollection())

    def test_has_value(self):
        """Test the presence check used by the filter."""
        self.assertTrue(has_value(Feature(None, {"population": 0}), "population"))
        self.assertFalse(has_value(Feature(None, {"population": None}), "population"))
        self.assertFalse(has_value(Feature(None, {}), "population"))
        self.assertFalse(has_value(Feature(None, {"population": float("nan")}), "population"))
        self.assertTrue(has_value(Feature(None, {"population": "n/a"}), "population"))


if __name__ == '__main__':
    unittest.main(verbosity=2)
