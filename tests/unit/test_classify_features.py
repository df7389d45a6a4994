"""Tests for dataset and hazard classification."""

from __future__ import annotations

import unittest

import pytest

from geosparql_loader.activities.classify_features import (
    DATA_TYPE_FLOOD_HAZARD,
    DATA_TYPE_LAND_USE,
    DATA_TYPE_POPULATION,
    EROSION_COLLAPSE_ZONE,
    FLOOD_DURATION,
    MAXIMUM_ASSUMED_DEPTH,
    OVERFLOW_COLLAPSE_ZONE,
    PLANNED_SCALE_DEPTH,
    HazardClassificationError,
    classify_hazard_feature,
    detect_data_type,
    detect_hazard_type,
    is_below_min_rank,
    parse_rank,
    read_classification,
)
from geosparql_loader.models.feature import SourceFeature


class TestDetectDataType(unittest.TestCase):
    def test_flood_hazard_keys(self) -> None:
        self.assertEqual(detect_data_type({"A31a_201": "860602"}), DATA_TYPE_FLOOD_HAZARD)

    def test_empty_hazard_value_is_not_hazard(self) -> None:
        self.assertEqual(detect_data_type({"A31a_101": ""}), DATA_TYPE_POPULATION)

    def test_land_use_keys(self) -> None:
        self.assertEqual(detect_data_type({"田": 0, "メッシュ": "53394577"}), DATA_TYPE_LAND_USE)

    def test_population_default(self) -> None:
        self.assertEqual(detect_data_type({"MESH_ID": "533945771"}), DATA_TYPE_POPULATION)


class TestDetectHazardType:
    @pytest.mark.parametrize(
        ("path", "expected"),
        [
            ("/data/A31a/10_計画規模/A31a-10_86.geojson", PLANNED_SCALE_DEPTH),
            ("/data/A31a/20_想定最大規模/A31a-20_86.geojson", MAXIMUM_ASSUMED_DEPTH),
            ("/data/A31a/30_浸水継続時間/A31a-30_86.geojson", FLOOD_DURATION),
            ("/data/41_家屋倒壊等氾濫想定区域_氾濫流/x.geojson", OVERFLOW_COLLAPSE_ZONE),
            ("/data/42_家屋倒壊等氾濫想定区域_河岸侵食/x.geojson", EROSION_COLLAPSE_ZONE),
        ],
    )
    def test_path_markers(self, path: str, expected: str) -> None:
        assert detect_hazard_type(path) == expected

    def test_path_wins_over_attributes(self) -> None:
        path = "/data/42_家屋倒壊等氾濫想定区域_河岸侵食/x.geojson"
        assert detect_hazard_type(path, {"A31a_401": "860602"}) == EROSION_COLLAPSE_ZONE

    @pytest.mark.parametrize(
        ("key", "expected"),
        [
            ("A31a_101", PLANNED_SCALE_DEPTH),
            ("A31a_201", MAXIMUM_ASSUMED_DEPTH),
            ("A31a_301", FLOOD_DURATION),
            ("A31a_401", OVERFLOW_COLLAPSE_ZONE),
        ],
    )
    def test_attribute_fallback(self, key: str, expected: str) -> None:
        assert detect_hazard_type("/tmp/hazard.geojson", {key: "860602"}) == expected

    def test_undetermined_raises(self) -> None:
        with pytest.raises(HazardClassificationError, match="Cannot determine hazard type"):
            detect_hazard_type("/tmp/hazard.geojson", {"MESH_ID": "1"})


class TestRanks:
    @pytest.mark.parametrize(("value", "expected"), [(3, 3), ("4", 4), (5.0, 5), (" 2 ", 2)])
    def test_parse_rank(self, value: object, expected: int) -> None:
        assert parse_rank(value) == expected

    @pytest.mark.parametrize("value", [None, "", "abc", 2.5, True])
    def test_parse_rank_invalid(self, value: object) -> None:
        with pytest.raises(HazardClassificationError):
            parse_rank(value)

    def test_min_rank_applies_to_depth_types_only(self) -> None:
        assert is_below_min_rank(PLANNED_SCALE_DEPTH, 1, 2) is True
        assert is_below_min_rank(MAXIMUM_ASSUMED_DEPTH, 2, 2) is False
        assert is_below_min_rank(FLOOD_DURATION, 1, 2) is False
        assert is_below_min_rank(OVERFLOW_COLLAPSE_ZONE, 1, 2) is False


class TestReadClassification(unittest.TestCase):
    def test_planned_mapping(self) -> None:
        props = {"A31a_101": "860602", "A31a_102": "荒川", "A31a_105": 3}
        self.assertEqual(read_classification(props, PLANNED_SCALE_DEPTH), ("860602", "荒川", 3))

    def test_collapse_types_share_mapping(self) -> None:
        props = {"A31a_401": "860602", "A31a_405": 1}
        self.assertEqual(read_classification(props, EROSION_COLLAPSE_ZONE), ("860602", "", 1))

    def test_numeric_river_id_is_stringified(self) -> None:
        props = {"A31a_201": 860602, "A31a_205": 2}
        river_id, _, _ = read_classification(props, MAXIMUM_ASSUMED_DEPTH)
        self.assertEqual(river_id, "860602")

    def test_missing_river_id(self) -> None:
        with self.assertRaisesRegex(HazardClassificationError, "A31a_101"):
            read_classification({"A31a_105": 3}, PLANNED_SCALE_DEPTH)

    def test_unknown_hazard_type(self) -> None:
        with self.assertRaises(HazardClassificationError):
            read_classification({"A31a_101": "1", "A31a_105": 3}, "tsunami")


class TestClassifyHazardFeature:
    def test_polygon(self, make_hazard_feature) -> None:
        (raw,) = classify_hazard_feature(make_hazard_feature(index=7), PLANNED_SCALE_DEPTH)
        assert raw.classification_key == ("860602", PLANNED_SCALE_DEPTH, 3)
        assert raw.feature_index == 7
        assert raw.rings[0][0] == [139.8, 35.7]

    def test_multipolygon_fans_out(self) -> None:
        square = [[[0, 0], [1, 0], [1, 1], [0, 0]]]
        feature = SourceFeature(
            properties={"A31a_101": "860602", "A31a_105": 3},
            geometry={"type": "MultiPolygon", "coordinates": [square, square]},
        )
        parts = classify_hazard_feature(feature, PLANNED_SCALE_DEPTH)
        assert [p.part_index for p in parts] == [0, 1]

    def test_non_polygon_yields_nothing(self) -> None:
        feature = SourceFeature(
            properties={"A31a_101": "860602", "A31a_105": 3},
            geometry={"type": "Point", "coordinates": [139.8, 35.7]},
        )
        assert classify_hazard_feature(feature, PLANNED_SCALE_DEPTH) == []

    def test_missing_river_id_raises(self, make_hazard_feature) -> None:
        with pytest.raises(HazardClassificationError):
            classify_hazard_feature(make_hazard_feature(river_id=None), PLANNED_SCALE_DEPTH)
