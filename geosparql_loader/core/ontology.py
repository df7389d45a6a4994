"""Vocabulary for the generated graph.

Namespaces, class and predicate IRIs, deterministic IRI builders and the
MLIT rank lookup tables used by the triple generator.  Every IRI the
pipeline mints is built here so that identical input always produces
identical identifiers across runs.

Rank tables follow the MLIT national land numerical information (A31a)
flood inundation codelists.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from urllib.parse import quote

# ---------------------------------------------------------------------------
# Namespaces
# ---------------------------------------------------------------------------

GEO = "http://www.opengis.net/ont/geosparql#"
MLIT = "http://example.org/mlit/ontology#"
RDF = "http://www.w3.org/1999/02/22-rdf-syntax-ns#"
RDFS = "http://www.w3.org/2000/01/rdf-schema#"
XSD = "http://www.w3.org/2001/XMLSchema#"

PREFIXES: dict[str, str] = {
    "geo": GEO,
    "mlit": MLIT,
    "rdf": RDF,
    "rdfs": RDFS,
    "xsd": XSD,
}

# ---------------------------------------------------------------------------
# Classes
# ---------------------------------------------------------------------------

RDF_TYPE = f"{RDF}type"

GEO_FEATURE = f"{GEO}Feature"
GEO_GEOMETRY = f"{GEO}Geometry"
GEO_WKT_LITERAL = f"{GEO}wktLiteral"

MESH = f"{MLIT}Mesh"
POPULATION_SNAPSHOT = f"{MLIT}PopulationSnapshot"
ADMINISTRATIVE_AREA = f"{MLIT}AdministrativeArea"
FLOOD_HAZARD_ZONE = f"{MLIT}FloodHazardZone"

# ---------------------------------------------------------------------------
# Predicates
# ---------------------------------------------------------------------------

HAS_GEOMETRY = f"{GEO}hasGeometry"
HAS_CENTROID = f"{GEO}hasCentroid"
HAS_BOUNDING_BOX = f"{GEO}hasBoundingBox"
HAS_SIMPLIFIED_GEOMETRY = f"{GEO}hasSimplifiedGeometry"
AS_WKT = f"{GEO}asWKT"

MESH_ID = f"{MLIT}meshId"
ADMINISTRATIVE_CODE = f"{MLIT}administrativeCode"
TOTAL_POPULATION_2020 = f"{MLIT}totalPopulation2020"
TOTAL_POPULATION = f"{MLIT}totalPopulation"
HAS_POPULATION_DATA = f"{MLIT}hasPopulationData"
POPULATION_YEAR = f"{MLIT}populationYear"
AGE_CATEGORY_0_14 = f"{MLIT}ageCategory0_14"
AGE_CATEGORY_15_64 = f"{MLIT}ageCategory15_64"
AGE_CATEGORY_65_PLUS = f"{MLIT}ageCategory65Plus"
AGE_CATEGORY_75_PLUS = f"{MLIT}ageCategory75plus"
AGE_CATEGORY_80_PLUS = f"{MLIT}ageCategory80plus"

HAZARD_TYPE = f"{MLIT}hazardType"
FLOOD_DEPTH_RANK = f"{MLIT}floodDepthRank"
FLOOD_DURATION_RANK = f"{MLIT}floodDurationRank"
HAZARD_ZONE_TYPE = f"{MLIT}hazardZoneType"
RIVER_ID = f"{MLIT}riverId"
RIVER_NAME = f"{MLIT}riverName"
SOURCE_POLYGON_COUNT = f"{MLIT}sourcePolygonCount"
CLUSTER_ID = f"{MLIT}clusterId"
SIMPLIFICATION_TOLERANCE = f"{MLIT}simplificationTolerance"

# Source attribute key → area predicate.  Keys are the MLIT land-use
# (L03) category labels.
LAND_USE_AREA_PREDICATES: dict[str, str] = {
    "田": f"{MLIT}riceFieldArea",
    "その他の農用地": f"{MLIT}otherAgriculturalArea",
    "森林": f"{MLIT}forestArea",
    "荒地": f"{MLIT}wastelandArea",
    "建物用地": f"{MLIT}buildingLandArea",
    "道路": f"{MLIT}roadArea",
    "鉄道": f"{MLIT}railwayArea",
    "その他の用地": f"{MLIT}otherLandArea",
    "河川地及び湖沼": f"{MLIT}waterBodyArea",
    "海浜": f"{MLIT}beachArea",
    "海水域": f"{MLIT}seaArea",
    "ゴルフ場": f"{MLIT}golfCourseArea",
    "解析範囲外": f"{MLIT}outOfRangeArea",
}

# Population attribute prefix → age-category predicate.
AGE_CATEGORY_PREDICATES: tuple[tuple[str, str], ...] = (
    ("PTA", AGE_CATEGORY_0_14),
    ("PTB", AGE_CATEGORY_15_64),
    ("PTC", AGE_CATEGORY_65_PLUS),
    ("PTD", AGE_CATEGORY_75_PLUS),
    ("PTE", AGE_CATEGORY_80_PLUS),
)

# ---------------------------------------------------------------------------
# Rank tables
# ---------------------------------------------------------------------------

# Store-friendly stand-ins for open upper bounds.
OPEN_DEPTH_MAX_M = 999.0
OPEN_DURATION_HOURS = 999999


@dataclass(frozen=True, slots=True)
class DepthRank:
    """Flood depth class: ``min_m <= depth < max_m``."""

    min_m: float
    max_m: float
    description: str


@dataclass(frozen=True, slots=True)
class DurationRank:
    """Flood duration class with its exclusive upper bound in hours."""

    hours: float
    description: str


@dataclass(frozen=True, slots=True)
class ZoneType:
    """Structural-collapse hazard zone category."""

    type: str
    description: str


FLOOD_DEPTH_RANKS: dict[int, DepthRank] = {
    1: DepthRank(0.0, 0.5, "0m以上0.5m未満"),
    2: DepthRank(0.5, 3.0, "0.5m以上3.0m未満"),
    3: DepthRank(3.0, 5.0, "3.0m以上5.0m未満"),
    4: DepthRank(5.0, 10.0, "5.0m以上10.0m未満"),
    5: DepthRank(10.0, 20.0, "10.0m以上20.0m未満"),
    6: DepthRank(20.0, math.inf, "20.0m以上"),
}

FLOOD_DURATION_RANKS: dict[int, DurationRank] = {
    1: DurationRank(12, "12時間未満"),
    2: DurationRank(24, "12時間以上24時間未満（1日間）"),
    3: DurationRank(72, "24時間以上72時間未満（3日間）"),
    4: DurationRank(168, "72時間以上168時間未満（1週間）"),
    5: DurationRank(336, "168時間以上336時間未満（2週間）"),
    6: DurationRank(672, "336時間以上672時間未満（4週間）"),
    7: DurationRank(math.inf, "672時間以上（4週間以上）"),
}

HAZARD_ZONE_TYPES: dict[int, ZoneType] = {
    1: ZoneType("overflow", "氾濫流"),
    2: ZoneType("erosion", "河岸浸食"),
    3: ZoneType("both", "どちらも該当"),
}

# ---------------------------------------------------------------------------
# IRI builders
# ---------------------------------------------------------------------------


def sparql_prefixes() -> str:
    """Return ``PREFIX`` declarations for every known namespace."""
    return "\n".join(f"PREFIX {name}: <{iri}>" for name, iri in PREFIXES.items())


def _segment(value: object) -> str:
    """Percent-encode one IRI path segment."""
    return quote(str(value), safe="-_.~")


def mesh_iri(base_uri: str, mesh_id: str, year: str = "") -> str:
    suffix = f"{mesh_id}_{year}" if year else mesh_id
    return f"{base_uri}mesh/{_segment(suffix)}"


def geometry_iri(base_uri: str, mesh_id: str, year: str = "") -> str:
    suffix = f"{mesh_id}_{year}" if year else mesh_id
    return f"{base_uri}geometry/{_segment(suffix)}_geom"


def population_snapshot_iri(base_uri: str, mesh_id: str, year: str) -> str:
    return f"{base_uri}population/{_segment(f'{mesh_id}_{year}')}"


def flood_hazard_zone_iri(base_uri: str, local_id: str, hazard_type: str) -> str:
    """Return ``{base}floodhazard/{local_id}_{hazard_type}``."""
    return f"{base_uri}floodhazard/{_segment(local_id)}_{hazard_type}"


def aggregated_zone_iri(
    base_uri: str,
    river_id: str,
    hazard_type: str,
    rank_code: int,
    cluster_id: int,
) -> str:
    """Deterministic IRI for one aggregated cluster."""
    return flood_hazard_zone_iri(
        base_uri,
        f"{river_id}_rank{rank_code}_cluster{cluster_id}",
        hazard_type,
    )


def river_iri(base_uri: str, river_id: str) -> str:
    return f"{base_uri}river/{_segment(river_id)}"
