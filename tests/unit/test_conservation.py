"""
Unit Tests for the Conservation Validator
"""

import math
import unittest

from shapely.geometry import box

from tile_areal_transfer.data_ingestion.feature_collection import Feature, FeatureCollection
from tile_areal_transfer.processing.conservation import ConservationReport, validate_conservation


def _collection(values, **metadata):
    return FeatureCollection(
        features=[Feature(box(0, 0, 1, 1), {"population": value}) for value in values],
        **metadata
    )


class TestValidateConservation(unittest.TestCase):
    """Test attribute totals before and after conversion."""

    def test_copied_values_inflate_total(self):
        """Test a value copied onto four cells reports a fourfold total."""
        source = _collection([1000], name="11-1819-806")
        result = _collection([1000] * 4, area="10-909-403", source="11-1819-806")

        report = validate_conservation(source, result, "population")

        self.assertEqual(report.source_total, 1000)
        self.assertEqual(report.result_total, 4000)
        self.assertEqual(report.drift, 3000)
        self.assertEqual(report.ratio, 4.0)
        self.assertEqual(report.source_features, 1)
        self.assertEqual(report.result_features, 4)
        self.assertEqual(report.source, "11-1819-806")
        self.assertEqual(report.area, "10-909-403")

    def test_non_numeric_values_skipped(self):
        """Test missing, boolean, textual and NaN values are excluded."""
        source = _collection([10, None, "12", True, math.nan, 2.5])
        source.append(Feature(box(0, 0, 1, 1), {}))
        result = _collection([10])

        report = validate_conservation(source, result, "population")

        self.assertEqual(report.source_total, 12.5)
        self.assertEqual(report.skipped_values, 5)

    def test_zero_source_total(self):
        """Test the ratio is undefined for a zero source total."""
        report = validate_conservation(_collection([0, 0]), _collection([]), "population")
        self.assertEqual(report.source_total, 0)
        self.assertEqual(report.result_total, 0)
        self.assertIsNone(report.ratio)
        self.assertEqual(report.drift, 0)

    def test_source_name_fallback(self):
        """Test the source key falls back to the source collection name."""
        report = validate_conservation(_collection([1], name="3-1-2"), _collection([1]), "population")
        self.assertEqual(report.source, "3-1-2")
        self.assertIsNone(report.area)

    def test_report_never_raises_on_drift(self):
        """Test an empty result is reported, not rejected."""
        report = validate_conservation(_collection([500]), _collection([]), "population")
        self.assertEqual(report.drift, -500)
        self.assertEqual(report.ratio, 0.0)


class TestConservationReport(unittest.TestCase):
    """Test the report value type."""

    def test_to_dict(self):
        """Test the dictionary form includes derived fields."""
        report = ConservationReport(
            attribute="population",
            source_total=100,
            result_total=150,
            source_features=2,
            result_features=3,
            source="5-1-1",
        )
        data = report.to_dict()

        self.assertEqual(data["drift"], 50)
        self.assertEqual(data["ratio"], 1.5)
        self.assertEqual(data["source"], "5-1-1")
        self.assertEqual(data["skipped_values"], 0)


if __name__ == '__main__':
    unittest.main(verbosity=2)
