"""
Unit Tests for the Point-In-Polygon Value Join

Checks first-container-wins resolution, indeterminate containment results
and that the spatial index never changes the outcome of a full scan.
"""

import unittest
from unittest.mock import Mock

from shapely.errors import GEOSException
from shapely.geometry import Point, box

from tile_areal_transfer.data_ingestion.feature_collection import Feature, FeatureCollection
from tile_areal_transfer.processing.value_join import (
    Containment,
    ValueJoiner,
    check_containment,
    join_values,
)


def _quarter_cells():
    """Four cells tiling the unit square."""
    return FeatureCollection(features=[
        Feature(box(0.0, 0.5, 0.5, 1.0), {"tile": "0-0"}),
        Feature(box(0.0, 0.0, 0.5, 0.5), {"tile": "0-1"}),
        Feature(box(0.5, 0.5, 1.0, 1.0), {"tile": "1-0"}),
        Feature(box(0.5, 0.0, 1.0, 0.5), {"tile": "1-1"}),
    ])


def _values(collection, attribute="population"):
    return {f.properties["tile"]: f.properties.get(attribute) for f in collection.features}


class TestCheckContainment(unittest.TestCase):
    """Test the tri-state containment predicate."""

    def test_contained(self):
        """Test an interior point is contained."""
        self.assertIs(check_containment(box(0, 0, 1, 1), Point(0.5, 0.5)), Containment.CONTAINED)

    def test_outside(self):
        """Test an exterior point is not contained."""
        self.assertIs(check_containment(box(0, 0, 1, 1), Point(2, 2)), Containment.NOT_CONTAINED)

    def test_boundary_is_not_contained(self):
        """Test a point on the polygon boundary is not contained."""
        self.assertIs(check_containment(box(0, 0, 1, 1), Point(1, 0.5)), Containment.NOT_CONTAINED)

    def test_missing_geometry(self):
        """Test missing or empty geometry is indeterminate."""
        self.assertIs(check_containment(None, Point(0, 0)), Containment.INDETERMINATE)
        self.assertIs(
            check_containment(box(0, 0, 1, 1).difference(box(0, 0, 1, 1)), Point(0, 0)),
            Containment.INDETERMINATE,
        )

    def test_predicate_failure(self):
        """Test a failing predicate is indeterminate instead of raising."""
        geometry = Mock()
        geometry.is_empty = False
        geometry.contains.side_effect = GEOSException("TopologyException")
        self.assertIs(check_containment(geometry, Point(0, 0)), Containment.INDETERMINATE)

    def test_matched(self):
        """Test only CONTAINED counts as a match."""
        self.assertTrue(Containment.CONTAINED.matched)
        self.assertFalse(Containment.NOT_CONTAINED.matched)
        self.assertFalse(Containment.INDETERMINATE.matched)


class TestValueJoiner(unittest.TestCase):
    """Test value assignment onto target cells."""

    def setUp(self):
        """Set up the unit square source and its quarter cells."""
        self.source = FeatureCollection(features=[
            Feature(box(0.0, 0.0, 1.0, 1.0), {"population": 1000}),
        ])
        self.target = _quarter_cells()

    def test_value_copied_to_every_contained_cell(self):
        """Test each cell receives the full source value."""
        joiner = ValueJoiner("population")
        result = joiner.join(self.source, self.target)

        self.assertIs(result, self.target)
        self.assertEqual(set(_values(result).values()), {1000})
        self.assertEqual(joiner.stats.targets, 4)
        self.assertEqual(joiner.stats.assigned, 4)
        self.assertEqual(joiner.stats.unmatched, 0)

    def test_only_attribute_is_copied(self):
        """Test other source properties stay on the source."""
        self.source.features[0].properties["name"] = "district"
        join_values(self.source, self.target, "population")
        for feature in self.target.features:
            self.assertEqual(set(feature.properties), {"tile", "population"})

    def test_first_source_wins_on_overlap(self):
        """Test the earliest source polygon wins where sources overlap."""
        source = FeatureCollection(features=[
            Feature(box(0.0, 0.0, 0.6, 1.0), {"population": 10}),
            Feature(box(0.0, 0.0, 1.0, 1.0), {"population": 20}),
        ])
        for use_index in (False, True):
            target = join_values(source, _quarter_cells(), "population", use_spatial_index=use_index)
            self.assertEqual(
                _values(target),
                {"0-0": 10, "0-1": 10, "1-0": 20, "1-1": 20},
                msg=f"use_spatial_index={use_index}",
            )

    def test_source_order_not_area_decides(self):
        """Test a larger polygon listed first wins over a smaller one."""
        source = FeatureCollection(features=[
            Feature(box(0.0, 0.0, 1.0, 1.0), {"population": 20}),
            Feature(box(0.0, 0.0, 0.6, 1.0), {"population": 10}),
        ])
        target = join_values(source, _quarter_cells(), "population", use_spatial_index=True)
        self.assertEqual(set(_values(target).values()), {20})

    def test_unmatched_cells_stay_unassigned(self):
        """Test cells outside every source polygon get no value."""
        source = FeatureCollection(features=[
            Feature(box(0.0, 0.0, 0.5, 1.0), {"population": 5}),
        ])
        joiner = ValueJoiner("population")
        target = joiner.join(source, _quarter_cells())

        self.assertEqual(_values(target), {"0-0": 5, "0-1": 5, "1-0": None, "1-1": None})
        self.assertNotIn("population", target.features[2].properties)
        self.assertEqual(joiner.stats.unmatched, 2)

    def test_empty_source(self):
        """Test an empty source leaves every cell unassigned."""
        for use_index in (False, True):
            joiner = ValueJoiner("population", use_spatial_index=use_index)
            target = joiner.join(FeatureCollection(), _quarter_cells())
            self.assertEqual(joiner.stats.assigned, 0)
            self.assertEqual(joiner.stats.unmatched, 4)
            self.assertEqual(set(_values(target).values()), {None})

    def test_indeterminate_source_is_skipped(self):
        """Test the scan continues past a source whose predicate fails."""
        broken = Mock()
        broken.is_empty = False
        broken.contains.side_effect = GEOSException("TopologyException")
        source = FeatureCollection(features=[
            Feature(broken, {"population": 1}),
            Feature(box(0.0, 0.0, 1.0, 1.0), {"population": 2}),
        ])

        joiner = ValueJoiner("population")
        target = joiner.join(source, _quarter_cells())

        self.assertEqual(set(_values(target).values()), {2})
        self.assertEqual(joiner.stats.indeterminate, 4)
        self.assertEqual(joiner.stats.comparisons, 8)

    def test_source_without_geometry_is_skipped(self):
        """Test a null-geometry source never matches."""
        source = FeatureCollection(features=[
            Feature(None, {"population": 1}),
            Feature(box(0.0, 0.0, 1.0, 1.0), {"population": 2}),
        ])
        for use_index in (False, True):
            target = join_values(source, _quarter_cells(), "population", use_spatial_index=use_index)
            self.assertEqual(set(_values(target).values()), {2})

    def test_container_without_attribute(self):
        """Test a containing source lacking the attribute leaves the cell unassigned."""
        source = FeatureCollection(features=[
            Feature(box(0.0, 0.0, 0.5, 1.0), {"name": "no value"}),
            Feature(box(0.0, 0.0, 1.0, 1.0), {"population": 7}),
        ])
        joiner = ValueJoiner("population")
        target = joiner.join(source, _quarter_cells())

        self.assertEqual(_values(target), {"0-0": None, "0-1": None, "1-0": 7, "1-1": 7})
        self.assertEqual(joiner.stats.missing_value, 2)

    def test_zero_value_is_assigned(self):
        """Test a zero value is copied like any other value."""
        source = FeatureCollection(features=[
            Feature(box(0.0, 0.0, 1.0, 1.0), {"population": 0}),
        ])
        target = join_values(source, _quarter_cells(), "population")
        self.assertEqual(set(_values(target).values()), {0})

    def test_centroid_on_shared_edge(self):
        """Test a centroid on a source boundary falls through to a later source."""
        source = FeatureCollection(features=[
            Feature(box(0.0, 0.0, 0.25, 1.0), {"population": 1}),
            Feature(box(-1.0, -1.0, 2.0, 2.0), {"population": 9}),
        ])
        target = join_values(source, _quarter_cells(), "population", use_spatial_index=True)
        self.assertEqual(_values(target)["0-0"], 9)

    def test_deterministic(self):
        """Test repeated joins produce identical assignments."""
        source = FeatureCollection(features=[
            Feature(box(0.0, 0.0, 0.6, 1.0), {"population": 10}),
            Feature(box(0.4, 0.0, 1.0, 1.0), {"population": 20}),
        ])
        first = _values(join_values(source, _quarter_cells(), "population"))
        second = _values(join_values(source, _quarter_cells(), "population", use_spatial_index=True))
        self.assertEqual(first, second)

    def test_stats_reset_between_joins(self):
        """Test counters describe only the latest join."""
        joiner = ValueJoiner("population")
        joiner.join(self.source, _quarter_cells())
        joiner.join(self.source, _quarter_cells())
        self.assertEqual(joiner.stats.targets, 4)


if __name__ == '__main__':
    unittest.main(verbosity=2)
