"""Tests for the data models."""

from __future__ import annotations

import json
import unittest

import pytest

from geosparql_loader.models import (
    BatchResult,
    FileSummary,
    LoadResult,
    ModelValidationError,
    PipelineSummary,
    RDFTriple,
    SourceFeature,
    TransformationResult,
)
from geosparql_loader.models.triple import (
    double_literal,
    escape_literal,
    integer_literal,
    string_literal,
    wkt_literal,
)


class TestBatchResult(unittest.TestCase):
    def test_success_defaults(self) -> None:
        result = BatchResult(0, 1000, 0.25, success=True)
        self.assertEqual(result.attempts, 1)
        self.assertEqual(result.error, "")
        self.assertIsNone(result.restart_feature_index)

    def test_failure_requires_error(self) -> None:
        with self.assertRaises(ModelValidationError):
            BatchResult(0, 10, 0.1, success=False)

    def test_negative_values_rejected(self) -> None:
        for kwargs in (
            {"batch_index": -1},
            {"triples_count": -5},
            {"execution_time_s": -0.1},
            {"attempts": -1},
        ):
            values = {
                "batch_index": 0,
                "triples_count": 1,
                "execution_time_s": 0.0,
                "success": True,
            }
            values.update(kwargs)
            with self.subTest(kwargs=kwargs), self.assertRaises(ValueError):
                BatchResult(**values)


class TestLoadResult:
    def test_failed_batches_and_succeeded(self) -> None:
        failed = BatchResult(1, 10, 0.1, success=False, error="Batch 2 failed: boom")
        result = LoadResult(
            total_triples=10,
            total_batches=2,
            total_time_s=1.0,
            average_batch_time_s=0.2,
            errors=(failed.error,),
            batch_results=(BatchResult(0, 10, 0.2, success=True), failed),
        )
        assert result.failed_batches == 1
        assert result.succeeded is False


class TestSourceFeature:
    def test_geometry_type(self) -> None:
        feature = SourceFeature(
            properties={"MESH_ID": "1"},
            geometry={"type": "Point", "coordinates": [139.8, 35.7]},
        )
        assert feature.geometry_type == "Point"
        assert feature.feature_index == 0

    def test_missing_geometry_has_no_type(self) -> None:
        assert SourceFeature({"a": 1}, None, "x.geojson", 12).geometry_type == ""


class TestLiterals:
    def test_string_escaping(self) -> None:
        assert escape_literal('a"b\\c\nd') == 'a\\"b\\\\c\\nd'
        assert string_literal("荒川") == '"荒川"^^<http://www.w3.org/2001/XMLSchema#string>'

    def test_integer(self) -> None:
        assert integer_literal(3) == '"3"^^<http://www.w3.org/2001/XMLSchema#integer>'

    @pytest.mark.parametrize(
        ("value", "lexical"),
        [(1520.0, "1520.0"), (0.1, "0.1"), (float("inf"), "INF"), (float("nan"), "NaN")],
    )
    def test_double(self, value: float, lexical: str) -> None:
        assert double_literal(value) == f'"{lexical}"^^<http://www.w3.org/2001/XMLSchema#double>'

    def test_wkt(self) -> None:
        literal = wkt_literal("POINT (1 2)")
        assert literal == '"POINT (1 2)"^^<http://www.opengis.net/ont/geosparql#wktLiteral>'

    def test_object_is_literal(self) -> None:
        assert RDFTriple("s", "p", integer_literal(1)).object_is_literal
        assert not RDFTriple("s", "p", "http://x").object_is_literal


class TestTransformationResult:
    def test_extend_preserves_order(self) -> None:
        first = TransformationResult([RDFTriple("a", "p", "o")], ["a"], ["a_geom"])
        second = TransformationResult([RDFTriple("b", "p", "o")], ["b"], ["b_geom"], ["b_pop"])
        first.extend(second)
        assert [t.subject for t in first.triples] == ["a", "b"]
        assert first.feature_iris == ["a", "b"]
        assert first.population_snapshot_iris == ["b_pop"]
        assert len(first) == 2


class TestPipelineSummary:
    def test_json_shape(self) -> None:
        summary = PipelineSummary(
            files=[FileSummary(path="a.geojson", data_type="population", features_read=3)],
            files_processed=1,
            total_triples=25,
        )
        payload = json.loads(summary.model_dump_json())
        assert payload["schema_version"] == "load-summary-v1"
        assert payload["files"][0]["path"] == "a.geojson"
        assert payload["restart_skip_features"] is None
        assert payload["aborted"] is False
        assert payload["failure"] is None

    def test_round_trip(self) -> None:
        summary = PipelineSummary(errors=["Batch 1 failed: x"], restart_skip_features=10)
        assert PipelineSummary.model_validate_json(summary.model_dump_json()) == summary
