"""Data models for source features.

A ``SourceFeature`` is one record read from an input file: a GeoJSON
geometry (JGD2011 coordinates) plus a flat attribute map.  It is the
output of the ``read_features`` activity and the input to triple
generation.

A ``RawHazardFeature`` is a flood-hazard polygon after classification:
the attribute map has been resolved into the ``(river_id, hazard_type,
rank_code)`` key that drives aggregation.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True, slots=True)
class SourceFeature:
    """A single feature read from a source file.

    Attributes:
        properties: Flat attribute map (MLIT attribute codes as keys).
        geometry: GeoJSON geometry mapping in the source CRS, or ``None``.
        source_file: Path of the file this feature was read from.
        feature_index: Zero-based index of the record within its file.
    """

    properties: dict[str, object] = field(default_factory=dict)
    geometry: dict[str, object] | None = None
    source_file: str = ""
    feature_index: int = 0

    @property
    def geometry_type(self) -> str:
        if not self.geometry:
            return ""
        return str(self.geometry.get("type", ""))


@dataclass(frozen=True, slots=True)
class RawHazardFeature:
    """A classified flood-hazard polygon, ready for aggregation.

    Attributes:
        river_id: River identifier (first element of the classification key).
        hazard_type: One of the ``HAZARD_TYPES`` identifiers.
        rank_code: Severity rank (depth, duration) or zone-type code.
        rings: Polygon coordinates ``[exterior, *holes]`` in the source CRS.
        river_name: Human-readable river name, if present.
        feature_index: Index of the originating record within its file.
        part_index: Part number when the record was a MultiPolygon.
    """

    river_id: str
    hazard_type: str
    rank_code: int
    rings: list[list[list[float]]] = field(default_factory=list)
    river_name: str = ""
    feature_index: int = 0
    part_index: int = 0

    @property
    def classification_key(self) -> tuple[str, str, int]:
        return (self.river_id, self.hazard_type, self.rank_code)
