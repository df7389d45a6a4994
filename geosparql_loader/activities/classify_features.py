"""Dataset and hazard classification.

Resolves what a source feature *is* before any triples are generated:

- the dataset kind of a file (population mesh, land-use mesh or flood
  hazard), detected from the attribute keys of its first feature;
- the hazard type of a flood-hazard file, detected from the MLIT
  directory naming convention in its path, with a fallback on the
  attribute codes present;
- the ``(river_id, hazard_type, rank_code)`` classification key of a
  hazard feature, through the per-type A31a attribute mappings.

Classification failures raise ``HazardClassificationError`` (an input
defect); callers decide whether to skip the feature or count it as a
transformation error.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from geosparql_loader.core.exceptions import InputError
from geosparql_loader.models.feature import RawHazardFeature

if TYPE_CHECKING:
    from collections.abc import Mapping

    from geosparql_loader.models.feature import SourceFeature

# ---------------------------------------------------------------------------
# Hazard types
# ---------------------------------------------------------------------------

PLANNED_SCALE_DEPTH = "planned_scale_depth"
MAXIMUM_ASSUMED_DEPTH = "maximum_assumed_depth"
FLOOD_DURATION = "flood_duration"
OVERFLOW_COLLAPSE_ZONE = "overflow_collapse_zone"
EROSION_COLLAPSE_ZONE = "erosion_collapse_zone"

HAZARD_TYPES = (
    PLANNED_SCALE_DEPTH,
    MAXIMUM_ASSUMED_DEPTH,
    FLOOD_DURATION,
    OVERFLOW_COLLAPSE_ZONE,
    EROSION_COLLAPSE_ZONE,
)

DEPTH_HAZARD_TYPES = frozenset({PLANNED_SCALE_DEPTH, MAXIMUM_ASSUMED_DEPTH})
COLLAPSE_HAZARD_TYPES = frozenset({OVERFLOW_COLLAPSE_ZONE, EROSION_COLLAPSE_ZONE})

# MLIT A31a distribution directory names, checked in order.
_PATH_MARKERS: tuple[tuple[str, str], ...] = (
    ("10_計画規模", PLANNED_SCALE_DEPTH),
    ("20_想定最大規模", MAXIMUM_ASSUMED_DEPTH),
    ("30_浸水継続時間", FLOOD_DURATION),
    ("41_家屋倒壊等氾濫想定区域_氾濫流", OVERFLOW_COLLAPSE_ZONE),
    ("42_家屋倒壊等氾濫想定区域_河岸侵食", EROSION_COLLAPSE_ZONE),
)

# Fallback when the path carries no marker.  Overflow and erosion zones
# share attribute codes; the attributes alone resolve to overflow.
_KEY_MARKERS: tuple[tuple[str, str], ...] = (
    ("A31a_101", PLANNED_SCALE_DEPTH),
    ("A31a_201", MAXIMUM_ASSUMED_DEPTH),
    ("A31a_301", FLOOD_DURATION),
    ("A31a_401", OVERFLOW_COLLAPSE_ZONE),
)


@dataclass(frozen=True, slots=True)
class HazardPropertyMapping:
    """Attribute codes holding the classification key for one hazard type."""

    river_id: str
    river_name: str
    rank: str


_COLLAPSE_MAPPING = HazardPropertyMapping("A31a_401", "A31a_402", "A31a_405")

PROPERTY_MAPPINGS: dict[str, HazardPropertyMapping] = {
    PLANNED_SCALE_DEPTH: HazardPropertyMapping("A31a_101", "A31a_102", "A31a_105"),
    MAXIMUM_ASSUMED_DEPTH: HazardPropertyMapping("A31a_201", "A31a_202", "A31a_205"),
    FLOOD_DURATION: HazardPropertyMapping("A31a_301", "A31a_302", "A31a_305"),
    OVERFLOW_COLLAPSE_ZONE: _COLLAPSE_MAPPING,
    EROSION_COLLAPSE_ZONE: _COLLAPSE_MAPPING,
}

_HAZARD_KEYS = frozenset(
    code
    for mapping in PROPERTY_MAPPINGS.values()
    for code in (mapping.river_id, mapping.river_name, mapping.rank)
)

# ---------------------------------------------------------------------------
# Dataset kinds
# ---------------------------------------------------------------------------

DATA_TYPE_POPULATION = "population"
DATA_TYPE_LAND_USE = "land-use"
DATA_TYPE_FLOOD_HAZARD = "flood-hazard"

_LAND_USE_KEYS = ("田", "森林", "メッシュ")


class HazardClassificationError(InputError):
    """Raised when a hazard feature cannot be classified."""

    default_stage = "classify_features"
    default_code = "HAZARD_CLASSIFICATION_FAILED"


def is_flood_hazard_data(properties: Mapping[str, object]) -> bool:
    return any(properties.get(key) for key in _HAZARD_KEYS)


def is_land_use_data(properties: Mapping[str, object]) -> bool:
    return any(key in properties for key in _LAND_USE_KEYS)


def detect_data_type(properties: Mapping[str, object]) -> str:
    """Return the dataset kind implied by one feature's attributes."""
    if is_flood_hazard_data(properties):
        return DATA_TYPE_FLOOD_HAZARD
    if is_land_use_data(properties):
        return DATA_TYPE_LAND_USE
    return DATA_TYPE_POPULATION


def detect_hazard_type(file_path: str, properties: Mapping[str, object] | None = None) -> str:
    """Resolve the hazard type from the file path, then from attributes.

    Raises:
        HazardClassificationError: If neither source identifies a type.
    """
    for marker, hazard_type in _PATH_MARKERS:
        if marker in file_path:
            return hazard_type
    for key, hazard_type in _KEY_MARKERS:
        if properties and properties.get(key):
            return hazard_type
    msg = f"Cannot determine hazard type for {file_path!r}"
    raise HazardClassificationError(msg)


def is_below_min_rank(hazard_type: str, rank_code: int, min_rank: int) -> bool:
    """Depth types below *min_rank* are dropped; other types never are."""
    return hazard_type in DEPTH_HAZARD_TYPES and rank_code < min_rank


def parse_rank(value: object) -> int:
    """Coerce a rank attribute (``3``, ``"3"``, ``3.0``) to ``int``.

    Raises:
        HazardClassificationError: If the value is not an integral number.
    """
    if isinstance(value, bool) or value is None:
        msg = f"Invalid rank code: {value!r}"
        raise HazardClassificationError(msg)
    try:
        number = float(str(value).strip())
    except ValueError as exc:
        msg = f"Invalid rank code: {value!r}"
        raise HazardClassificationError(msg) from exc
    if not number.is_integer():
        msg = f"Invalid rank code: {value!r}"
        raise HazardClassificationError(msg)
    return int(number)


def read_classification(
    properties: Mapping[str, object],
    hazard_type: str,
) -> tuple[str, str, int]:
    """Return ``(river_id, river_name, rank_code)`` for a hazard feature.

    Raises:
        HazardClassificationError: If the hazard type is unknown, the
            river identifier is missing or the rank is not an integer.
    """
    mapping = PROPERTY_MAPPINGS.get(hazard_type)
    if mapping is None:
        msg = f"Invalid hazard type: {hazard_type!r}"
        raise HazardClassificationError(msg)

    raw_river_id = properties.get(mapping.river_id)
    river_id = str(raw_river_id).strip() if raw_river_id is not None else ""
    if not river_id:
        msg = f"River ID ({mapping.river_id}) is required for {hazard_type}"
        raise HazardClassificationError(msg)

    raw_name = properties.get(mapping.river_name)
    river_name = str(raw_name).strip() if raw_name else ""
    rank_code = parse_rank(properties.get(mapping.rank))
    return river_id, river_name, rank_code


def classify_hazard_feature(feature: SourceFeature, hazard_type: str) -> list[RawHazardFeature]:
    """Classify one source feature into one ``RawHazardFeature`` per polygon.

    MultiPolygon records fan out into one entry per part so that each
    aggregated member carries exactly one polygon.  Non-polygonal
    geometries yield an empty list.

    Raises:
        HazardClassificationError: See ``read_classification``.
    """
    river_id, river_name, rank_code = read_classification(feature.properties, hazard_type)

    geometry = feature.geometry or {}
    geom_type = geometry.get("type")
    coordinates = geometry.get("coordinates") or []

    if geom_type == "Polygon":
        parts = [coordinates]
    elif geom_type == "MultiPolygon":
        parts = list(coordinates)
    else:
        return []

    return [
        RawHazardFeature(
            river_id=river_id,
            hazard_type=hazard_type,
            rank_code=rank_code,
            rings=[[list(c) for c in ring] for ring in rings],
            river_name=river_name,
            feature_index=feature.feature_index,
            part_index=part_index,
        )
        for part_index, rings in enumerate(parts)
    ]
