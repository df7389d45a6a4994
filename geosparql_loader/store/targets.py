"""Store targets and update-request serialisation.

A store target is a tagged variant rather than a loader subclass:

- ``DefaultGraphTarget``: bare ``INSERT DATA { ... }`` into the
  repository's default graph (plain RDF4J repositories).
- ``NamedGraphTarget``: the same triples wrapped in
  ``GRAPH <iri> { ... }`` (GraphDB / RDF4J named-graph loading).

Each variant has exactly one serialisation function, registered in
``_SERIALIZERS``; the batch loader calls ``build_update`` and never
branches on the variant itself, so retry and checkpoint behaviour are
identical for every target.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from geosparql_loader.core.exceptions import PipelineError
from geosparql_loader.core.ontology import sparql_prefixes

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

    from geosparql_loader.core.config import PipelineConfig
    from geosparql_loader.models.triple import RDFTriple


class StoreTargetError(PipelineError):
    """Raised for an unknown or incomplete store target."""

    default_stage = "config"
    default_code = "STORE_TARGET_INVALID"


@dataclass(frozen=True, slots=True)
class DefaultGraphTarget:
    """Insert into the repository's default graph."""

    name: str = "rdf4j"


@dataclass(frozen=True, slots=True)
class NamedGraphTarget:
    """Insert into one named graph."""

    graph_iri: str
    name: str = "named_graph"

    def __post_init__(self) -> None:
        if not self.graph_iri:
            msg = "NamedGraphTarget requires a graph IRI"
            raise StoreTargetError(msg)


StoreTarget = DefaultGraphTarget | NamedGraphTarget


# ---------------------------------------------------------------------------
# Term and statement formatting
# ---------------------------------------------------------------------------


def format_term(term: str) -> str:
    """Literals pass through verbatim; everything else is an IRI reference."""
    if term.startswith('"'):
        return term
    return f"<{term}>"


def format_statement(triple: RDFTriple) -> str:
    return (
        f"{format_term(triple.subject)} {format_term(triple.predicate)} "
        f"{format_term(triple.object)} ."
    )


def _statements(triples: Sequence[RDFTriple], indent: str) -> str:
    return "\n".join(f"{indent}{format_statement(t)}" for t in triples)


# ---------------------------------------------------------------------------
# Serialisers (one per variant)
# ---------------------------------------------------------------------------


def _serialize_default_graph(target: DefaultGraphTarget, triples: Sequence[RDFTriple]) -> str:
    return f"{sparql_prefixes()}\n\nINSERT DATA {{\n{_statements(triples, '  ')}\n}}"


def _serialize_named_graph(target: NamedGraphTarget, triples: Sequence[RDFTriple]) -> str:
    return (
        f"{sparql_prefixes()}\n\nINSERT DATA {{\n"
        f"  GRAPH <{target.graph_iri}> {{\n{_statements(triples, '    ')}\n  }}\n}}"
    )


_SERIALIZERS: dict[type, Callable[[StoreTarget, Sequence[RDFTriple]], str]] = {
    DefaultGraphTarget: _serialize_default_graph,  # type: ignore[dict-item]
    NamedGraphTarget: _serialize_named_graph,  # type: ignore[dict-item]
}


def build_update(target: StoreTarget, triples: Sequence[RDFTriple]) -> str:
    """Serialise *triples* as one SPARQL update for *target*.

    Raises:
        StoreTargetError: If *target* is not a known variant.
    """
    serializer = _SERIALIZERS.get(type(target))
    if serializer is None:
        msg = f"Unsupported store target: {target!r}"
        raise StoreTargetError(msg)
    return serializer(target, triples)


def target_from_config(config: PipelineConfig) -> StoreTarget:
    """Select the store target named by ``config.store_backend``."""
    if config.store_backend == "rdf4j":
        return DefaultGraphTarget()
    if config.store_backend == "named_graph":
        return NamedGraphTarget(graph_iri=config.graph_iri)
    msg = f"Unknown store backend {config.store_backend!r}. Available: rdf4j, named_graph"
    raise StoreTargetError(msg)
