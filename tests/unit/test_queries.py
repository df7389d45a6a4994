"""Tests for the predefined query registry and table rendering."""

from __future__ import annotations

import unittest

import pytest

from geosparql_loader.store.queries import (
    NO_RESULTS,
    QUERY_TEMPLATES,
    QueryTemplateError,
    describe_templates,
    get_template,
    render_table,
    result_rows,
)


class TestTemplates:
    def test_registry_names(self) -> None:
        assert set(QUERY_TEMPLATES) == {
            "dashboard",
            "ranking",
            "aging",
            "mapdata",
            "timeseries",
            "flood_zones",
        }

    @pytest.mark.parametrize("name", sorted(QUERY_TEMPLATES))
    def test_every_template_renders(self, name: str) -> None:
        sparql = get_template(name).render()
        assert sparql.startswith("PREFIX geo:")
        assert "$" not in sparql
        assert "SELECT" in sparql

    def test_parameters_substituted(self) -> None:
        sparql = get_template("ranking").render(limit=10, year=2035, min_population=100)
        assert "LIMIT 10" in sparql
        assert "mlit:populationYear 2035" in sparql
        assert "?population2020 > 100" in sparql

    def test_unknown_name(self) -> None:
        with pytest.raises(QueryTemplateError, match="Unknown query: nope") as exc_info:
            get_template("nope")
        assert "dashboard" in str(exc_info.value)
        assert exc_info.value.code == "QUERY_TEMPLATE_INVALID"

    def test_non_positive_limit(self) -> None:
        with pytest.raises(QueryTemplateError, match="limit must be > 0"):
            get_template("aging").render(limit=0)

    def test_describe_lists_every_template(self) -> None:
        listing = describe_templates()
        assert listing.splitlines()[0] == "Available queries:"
        for template in QUERY_TEMPLATES.values():
            assert template.name in listing
            assert template.description in listing


class TestRenderTable(unittest.TestCase):
    def test_aligned_columns(self) -> None:
        result = {
            "head": {"vars": ["meshId", "population"]},
            "results": {
                "bindings": [
                    {"meshId": {"value": "533945771"}, "population": {"value": "1520"}},
                    {"meshId": {"value": "1"}},
                ]
            },
        }
        self.assertEqual(
            render_table(result).splitlines(),
            [
                "meshId    | population",
                "----------+-----------",
                "533945771 | 1520",
                "1         |",
            ],
        )

    def test_no_rows(self) -> None:
        result = {"head": {"vars": ["n"]}, "results": {"bindings": []}}
        self.assertEqual(render_table(result), NO_RESULTS)

    def test_ask_result(self) -> None:
        self.assertEqual(render_table({"head": {}, "boolean": True}), "true")
        self.assertEqual(render_table({"head": {}, "boolean": False}), "false")

    def test_result_rows_fill_unbound(self) -> None:
        result = {
            "head": {"vars": ["a", "b"]},
            "results": {"bindings": [{"b": {"value": "x"}}]},
        }
        self.assertEqual(result_rows(result), (["a", "b"], [["", "x"]]))
