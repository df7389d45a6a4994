"""Tests for store targets and SPARQL update serialisation."""

from __future__ import annotations

import unittest

from geosparql_loader.core.config import PipelineConfig
from geosparql_loader.models.triple import RDFTriple, string_literal
from geosparql_loader.store.targets import (
    DefaultGraphTarget,
    NamedGraphTarget,
    StoreTargetError,
    build_update,
    format_statement,
    format_term,
    target_from_config,
)

TRIPLES = [
    RDFTriple(
        "http://example.org/mlit/mesh/1",
        "http://example.org/mlit/ontology#meshId",
        string_literal('1 "quoted"'),
    ),
    RDFTriple(
        "http://example.org/mlit/mesh/1",
        "http://www.w3.org/1999/02/22-rdf-syntax-ns#type",
        "http://example.org/mlit/ontology#Mesh",
    ),
]


class TestFormatting(unittest.TestCase):
    def test_iri_is_bracketed(self) -> None:
        self.assertEqual(format_term("http://x/a"), "<http://x/a>")

    def test_literal_passes_through(self) -> None:
        literal = string_literal("a")
        self.assertEqual(format_term(literal), literal)

    def test_statement(self) -> None:
        self.assertEqual(
            format_statement(TRIPLES[1]),
            "<http://example.org/mlit/mesh/1> "
            "<http://www.w3.org/1999/02/22-rdf-syntax-ns#type> "
            "<http://example.org/mlit/ontology#Mesh> .",
        )


class TestBuildUpdate(unittest.TestCase):
    def test_default_graph(self) -> None:
        update = build_update(DefaultGraphTarget(), TRIPLES)
        self.assertTrue(update.startswith("PREFIX geo: <http://www.opengis.net/ont/geosparql#>"))
        self.assertIn("INSERT DATA {\n  <http://example.org/mlit/mesh/1>", update)
        self.assertIn('\\"quoted\\"', update)
        self.assertNotIn("GRAPH", update)
        self.assertTrue(update.endswith("}"))

    def test_named_graph(self) -> None:
        target = NamedGraphTarget(graph_iri="http://example.org/graph/flood")
        update = build_update(target, TRIPLES)
        self.assertIn("GRAPH <http://example.org/graph/flood> {\n    <http://", update)
        self.assertEqual(update.count("<http://example.org/mlit/mesh/1>"), 2)

    def test_same_statements_for_both_targets(self) -> None:
        default = build_update(DefaultGraphTarget(), TRIPLES)
        named = build_update(NamedGraphTarget(graph_iri="http://g"), TRIPLES)
        for triple in TRIPLES:
            statement = format_statement(triple)
            self.assertIn(statement, default)
            self.assertIn(statement, named)

    def test_unknown_target_rejected(self) -> None:
        with self.assertRaises(StoreTargetError):
            build_update(object(), TRIPLES)  # type: ignore[arg-type]

    def test_named_graph_requires_iri(self) -> None:
        with self.assertRaises(StoreTargetError):
            NamedGraphTarget(graph_iri="")


class TestTargetFromConfig(unittest.TestCase):
    def test_default(self) -> None:
        self.assertEqual(target_from_config(PipelineConfig()), DefaultGraphTarget())

    def test_named_graph(self) -> None:
        config = PipelineConfig(store_backend="named_graph", graph_iri="http://g/1")
        self.assertEqual(target_from_config(config), NamedGraphTarget(graph_iri="http://g/1"))

    def test_unknown_backend(self) -> None:
        with self.assertRaisesRegex(StoreTargetError, "Unknown store backend"):
            target_from_config(PipelineConfig(store_backend="virtuoso"))
