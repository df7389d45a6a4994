"""Flood-hazard triple generation: aggregated zones and single features."""

from __future__ import annotations

import hashlib
import json
from typing import TYPE_CHECKING

from geosparql_loader.activities.classify_features import (
    COLLAPSE_HAZARD_TYPES,
    DEPTH_HAZARD_TYPES,
    FLOOD_DURATION,
    HazardClassificationError,
    is_below_min_rank,
    read_classification,
)
from geosparql_loader.activities.generate_triples._common import (
    GeneratorOptions,
    TripleGenerationError,
    centroid_triples,
    geometry_node,
    simplified_triples,
    triple,
    type_triple,
)
from geosparql_loader.core import ontology
from geosparql_loader.core.geometry import (
    GEOMETRY_ERRORS,
    geometry_from_geojson,
    reproject,
    ring_vertex_center,
    simplify_geometry,
    to_wkt,
)
from geosparql_loader.models.triple import (
    RDFTriple,
    TransformationResult,
    double_literal,
    integer_literal,
    string_literal,
)

if TYPE_CHECKING:
    from geosparql_loader.models.feature import SourceFeature
    from geosparql_loader.models.zone import AggregatedZone

# Length of the geometry digest appended to per-feature identifiers.
GEOMETRY_HASH_LENGTH = 8


# ---------------------------------------------------------------------------
# Aggregated zones
# ---------------------------------------------------------------------------


def zone_to_triples(zone: AggregatedZone, options: GeneratorOptions) -> TransformationResult:
    """Map one aggregated zone to its triples."""
    zone_iri = ontology.aggregated_zone_iri(
        options.base_uri, zone.river_id, zone.hazard_type, zone.rank_code, zone.cluster_id
    )
    geometry_iri = f"{zone_iri}_geom"

    triples = [
        type_triple(zone_iri, ontology.GEO_FEATURE),
        type_triple(zone_iri, ontology.FLOOD_HAZARD_ZONE),
    ]
    triples += geometry_node(zone_iri, geometry_iri, ontology.HAS_GEOMETRY, to_wkt(zone.geometry))
    triples += geometry_node(
        zone_iri, f"{zone_iri}_bbox", ontology.HAS_BOUNDING_BOX, zone.bounding_box_wkt
    )
    triples += centroid_triples(zone_iri, geometry_iri, ring_vertex_center(zone.geometry))

    if zone.simplified_geometry is not None and zone.simplification_tolerance is not None:
        triples += simplified_triples(
            zone_iri, zone.simplified_geometry, zone.simplification_tolerance
        )

    triples += hazard_property_triples(
        zone_iri,
        river_id=zone.river_id,
        river_name=zone.river_name,
        hazard_type=zone.hazard_type,
        rank_code=zone.rank_code,
        options=options,
    )
    triples += [
        triple(
            zone_iri, ontology.SOURCE_POLYGON_COUNT, integer_literal(zone.source_polygon_count)
        ),
        triple(zone_iri, ontology.CLUSTER_ID, integer_literal(zone.cluster_id)),
    ]

    return TransformationResult(
        triples=triples,
        feature_iris=[zone_iri],
        geometry_iris=[geometry_iri],
    )


# ---------------------------------------------------------------------------
# Per-feature mode
# ---------------------------------------------------------------------------


def geometry_digest(geometry: object) -> str:
    """Short SHA-256 digest of a GeoJSON geometry's compact JSON form."""
    payload = json.dumps(geometry, separators=(",", ":"), ensure_ascii=False)
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()[:GEOMETRY_HASH_LENGTH]


def hazard_feature_to_triples(
    feature: SourceFeature,
    hazard_type: str,
    options: GeneratorOptions,
) -> TransformationResult:
    """Map one hazard feature to triples without aggregation.

    Returns an empty result for depth ranks below the configured minimum.

    Raises:
        TripleGenerationError: If the river identifier, the rank or the
            geometry is missing or unusable.
    """
    try:
        river_id, river_name, rank_code = read_classification(feature.properties, hazard_type)
    except HazardClassificationError as exc:
        raise TripleGenerationError(exc.message) from exc

    if is_below_min_rank(hazard_type, rank_code, options.min_flood_depth_rank):
        return TransformationResult()

    if not feature.geometry:
        msg = f"Hazard feature {feature.feature_index} has no geometry"
        raise TripleGenerationError(msg)

    try:
        source_geometry = geometry_from_geojson(feature.geometry)
        target_geometry = reproject(source_geometry)
    except GEOMETRY_ERRORS as exc:
        msg = f"Failed to transform geometry of feature {feature.feature_index}: {exc}"
        raise TripleGenerationError(msg) from exc

    unique_id = f"{river_id}_{geometry_digest(feature.geometry)}"
    zone_iri = ontology.flood_hazard_zone_iri(options.base_uri, unique_id, hazard_type)
    geometry_iri = f"{zone_iri}_geom"

    triples = [
        type_triple(zone_iri, ontology.GEO_FEATURE),
        type_triple(zone_iri, ontology.FLOOD_HAZARD_ZONE),
    ]
    triples += geometry_node(zone_iri, geometry_iri, ontology.HAS_GEOMETRY, to_wkt(target_geometry))
    triples += centroid_triples(zone_iri, geometry_iri, ring_vertex_center(target_geometry))

    if options.enable_simplification:
        simplified = simplify_geometry(source_geometry, options.simplification_tolerance)
        if simplified is not None:
            triples += simplified_triples(
                zone_iri, reproject(simplified), options.simplification_tolerance
            )

    triples += hazard_property_triples(
        zone_iri,
        river_id=river_id,
        river_name=river_name,
        hazard_type=hazard_type,
        rank_code=rank_code,
        options=options,
    )

    return TransformationResult(
        triples=triples,
        feature_iris=[zone_iri],
        geometry_iris=[geometry_iri],
    )


# ---------------------------------------------------------------------------
# Hazard properties
# ---------------------------------------------------------------------------


def hazard_property_triples(
    zone_iri: str,
    *,
    river_id: str,
    river_name: str,
    hazard_type: str,
    rank_code: int,
    options: GeneratorOptions,
) -> list[RDFTriple]:
    """Minimal (type + rank) or full (adds river linkage) property set."""
    if options.use_minimal_flood_properties:
        return _minimal_properties(zone_iri, hazard_type, rank_code)
    return _full_properties(
        zone_iri,
        ontology.river_iri(options.base_uri, river_id),
        river_id,
        river_name,
        hazard_type,
        rank_code,
    )


def _minimal_properties(zone_iri: str, hazard_type: str, rank_code: int) -> list[RDFTriple]:
    triples = [triple(zone_iri, ontology.HAZARD_TYPE, string_literal(hazard_type))]
    if hazard_type in DEPTH_HAZARD_TYPES:
        triples.append(triple(zone_iri, ontology.FLOOD_DEPTH_RANK, integer_literal(rank_code)))
    elif hazard_type == FLOOD_DURATION:
        triples.append(triple(zone_iri, ontology.FLOOD_DURATION_RANK, integer_literal(rank_code)))
    elif hazard_type in COLLAPSE_HAZARD_TYPES:
        zone_type = ontology.HAZARD_ZONE_TYPES.get(rank_code)
        if zone_type is not None:
            triples.append(
                triple(zone_iri, ontology.HAZARD_ZONE_TYPE, string_literal(zone_type.type))
            )
    return triples


def _full_properties(
    zone_iri: str,
    river_iri: str,
    river_id: str,
    river_name: str,
    hazard_type: str,
    rank_code: int,
) -> list[RDFTriple]:
    triples = [
        type_triple(river_iri, ontology.ADMINISTRATIVE_AREA),
        triple(zone_iri, ontology.RIVER_ID, string_literal(river_id)),
    ]
    if river_name:
        triples += [
            triple(river_iri, ontology.RIVER_NAME, string_literal(river_name)),
            triple(zone_iri, ontology.RIVER_NAME, string_literal(river_name)),
        ]
    triples += _rank_detail_triples(zone_iri, hazard_type, rank_code)
    triples.append(triple(zone_iri, ontology.HAZARD_TYPE, string_literal(hazard_type)))
    return triples


def _rank_detail_triples(zone_iri: str, hazard_type: str, rank_code: int) -> list[RDFTriple]:
    if hazard_type in DEPTH_HAZARD_TYPES:
        depth = ontology.FLOOD_DEPTH_RANKS.get(rank_code)
        if depth is None:
            return []
        max_m = ontology.OPEN_DEPTH_MAX_M if depth.max_m == float("inf") else depth.max_m
        predicate = ontology.FLOOD_DEPTH_RANK
        return [
            triple(zone_iri, predicate, integer_literal(rank_code)),
            triple(zone_iri, f"{predicate}_description", string_literal(depth.description)),
            triple(zone_iri, f"{predicate}_min", double_literal(depth.min_m)),
            triple(zone_iri, f"{predicate}_max", double_literal(max_m)),
        ]

    if hazard_type == FLOOD_DURATION:
        duration = ontology.FLOOD_DURATION_RANKS.get(rank_code)
        if duration is None:
            return []
        hours = (
            ontology.OPEN_DURATION_HOURS if duration.hours == float("inf") else int(duration.hours)
        )
        predicate = ontology.FLOOD_DURATION_RANK
        return [
            triple(zone_iri, predicate, integer_literal(rank_code)),
            triple(zone_iri, f"{predicate}_description", string_literal(duration.description)),
            triple(zone_iri, f"{predicate}_hours", integer_literal(hours)),
        ]

    if hazard_type in COLLAPSE_HAZARD_TYPES:
        zone_type = ontology.HAZARD_ZONE_TYPES.get(rank_code)
        if zone_type is None:
            return []
        predicate = ontology.HAZARD_ZONE_TYPE
        return [
            triple(zone_iri, predicate, string_literal(zone_type.type)),
            triple(zone_iri, f"{predicate}_description", string_literal(zone_type.description)),
        ]

    return []
