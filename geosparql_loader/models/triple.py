"""RDF triple value record and typed-literal helpers.

Objects are stored as strings: an IRI (``http://...``) or a complete
typed literal (``"42"^^<http://www.w3.org/2001/XMLSchema#integer>``).
A leading double quote is what distinguishes a literal from an IRI, so
serialisers never need to guess.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field

from geosparql_loader.core.ontology import GEO_WKT_LITERAL, XSD

XSD_STRING = f"{XSD}string"
XSD_INTEGER = f"{XSD}integer"
XSD_DOUBLE = f"{XSD}double"

_ESCAPES = {
    "\\": "\\\\",
    '"': '\\"',
    "\n": "\\n",
    "\r": "\\r",
    "\t": "\\t",
}


@dataclass(frozen=True, slots=True)
class RDFTriple:
    """One ``(subject, predicate, object)`` statement.

    Attributes:
        subject: Subject IRI.
        predicate: Predicate IRI.
        object: Object IRI or typed literal.
    """

    subject: str
    predicate: str
    object: str

    @property
    def object_is_literal(self) -> bool:
        return self.object.startswith('"')


@dataclass(slots=True)
class TransformationResult:
    """Ordered triples produced for one input unit, plus the IRIs minted.

    Attributes:
        triples: Generated triples in insertion order.
        feature_iris: Main resource IRIs (mesh cells or hazard zones).
        geometry_iris: Geometry node IRIs.
        population_snapshot_iris: Population snapshot IRIs.
    """

    triples: list[RDFTriple] = field(default_factory=list)
    feature_iris: list[str] = field(default_factory=list)
    geometry_iris: list[str] = field(default_factory=list)
    population_snapshot_iris: list[str] = field(default_factory=list)

    def extend(self, other: TransformationResult) -> None:
        self.triples.extend(other.triples)
        self.feature_iris.extend(other.feature_iris)
        self.geometry_iris.extend(other.geometry_iris)
        self.population_snapshot_iris.extend(other.population_snapshot_iris)

    def __len__(self) -> int:
        return len(self.triples)


# ---------------------------------------------------------------------------
# Literals
# ---------------------------------------------------------------------------


def escape_literal(value: str) -> str:
    return "".join(_ESCAPES.get(ch, ch) for ch in value)


def typed_literal(lexical: str, datatype: str) -> str:
    return f'"{escape_literal(lexical)}"^^<{datatype}>'


def string_literal(value: object) -> str:
    return typed_literal(str(value), XSD_STRING)


def integer_literal(value: int) -> str:
    return typed_literal(str(int(value)), XSD_INTEGER)


def double_literal(value: float) -> str:
    number = float(value)
    if math.isnan(number):
        lexical = "NaN"
    elif math.isinf(number):
        lexical = "INF" if number > 0 else "-INF"
    else:
        lexical = repr(number)
    return typed_literal(lexical, XSD_DOUBLE)


def wkt_literal(wkt: str) -> str:
    return typed_literal(wkt, GEO_WKT_LITERAL)
