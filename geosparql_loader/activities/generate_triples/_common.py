"""Shared building blocks for the triple generators."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from geosparql_loader.core import ontology
from geosparql_loader.core.constants import (
    DEFAULT_BASE_URI,
    DEFAULT_DISPLAY_SIMPLIFICATION_TOLERANCE,
    DEFAULT_MIN_FLOOD_DEPTH_RANK,
)
from geosparql_loader.core.exceptions import InputError
from geosparql_loader.core.geometry import point_wkt, to_wkt
from geosparql_loader.models.triple import RDFTriple, double_literal, wkt_literal

if TYPE_CHECKING:
    from shapely.geometry.base import BaseGeometry

    from geosparql_loader.core.config import PipelineConfig


class TripleGenerationError(InputError):
    """Raised when a feature lacks data required to mint its triples."""

    default_stage = "generate_triples"
    default_code = "TRIPLE_GENERATION_FAILED"


@dataclass(frozen=True, slots=True)
class GeneratorOptions:
    """Configuration consumed by the triple generators.

    Attributes:
        base_uri: Namespace for minted resource IRIs.
        min_flood_depth_rank: Depth ranks below this produce no triples.
        use_minimal_flood_properties: Hazard type + rank only.
        enable_simplification: Emit a simplified display geometry.
        simplification_tolerance: Display tolerance in degrees.
        include_population_snapshots: Emit population snapshot nodes.
    """

    base_uri: str = DEFAULT_BASE_URI
    min_flood_depth_rank: int = DEFAULT_MIN_FLOOD_DEPTH_RANK
    use_minimal_flood_properties: bool = True
    enable_simplification: bool = False
    simplification_tolerance: float = DEFAULT_DISPLAY_SIMPLIFICATION_TOLERANCE
    include_population_snapshots: bool = True

    @classmethod
    def from_config(cls, config: PipelineConfig) -> GeneratorOptions:
        return cls(
            base_uri=config.base_uri,
            min_flood_depth_rank=config.min_flood_depth_rank,
            use_minimal_flood_properties=config.use_minimal_flood_properties,
            enable_simplification=config.enable_simplification,
            simplification_tolerance=config.simplification_tolerance,
            include_population_snapshots=config.include_population_snapshots,
        )


def triple(subject: str, predicate: str, obj: str) -> RDFTriple:
    return RDFTriple(subject, predicate, obj)


def type_triple(subject: str, rdf_class: str) -> RDFTriple:
    return RDFTriple(subject, ontology.RDF_TYPE, rdf_class)


def geometry_node(subject: str, node_iri: str, link: str, wkt: str) -> list[RDFTriple]:
    """Type, link and WKT triples for one geometry node."""
    return [
        type_triple(node_iri, ontology.GEO_GEOMETRY),
        triple(subject, link, node_iri),
        triple(node_iri, ontology.AS_WKT, wkt_literal(wkt)),
    ]


def centroid_triples(
    subject: str,
    geometry_iri: str,
    center: tuple[float, float] | None,
) -> list[RDFTriple]:
    """Centroid node as ``{geometry_iri}_center``; ``POINT (0 0)`` if unknown."""
    x, y = center if center is not None else (0.0, 0.0)
    return geometry_node(subject, f"{geometry_iri}_center", ontology.HAS_CENTROID, point_wkt(x, y))


def simplified_triples(
    subject: str,
    simplified: BaseGeometry,
    tolerance: float,
) -> list[RDFTriple]:
    node_iri = f"{subject}_simplified"
    triples = geometry_node(subject, node_iri, ontology.HAS_SIMPLIFIED_GEOMETRY, to_wkt(simplified))
    triples.append(triple(node_iri, ontology.SIMPLIFICATION_TOLERANCE, double_literal(tolerance)))
    return triples
