"""Data models for hazard-zone aggregation.

``SpatialCluster`` is the intermediate output of seed-based clustering
within one classification group.  ``AggregatedZone`` is the merged,
reprojected result for one cluster; it is consumed once by the triple
generator and never persisted.

All geometries on ``AggregatedZone`` are WGS 84 (EPSG:4326).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from shapely.geometry import MultiPolygon
    from shapely.geometry.base import BaseGeometry

    from geosparql_loader.models.feature import RawHazardFeature


@dataclass(frozen=True, slots=True)
class SpatialCluster:
    """Features assigned to one cluster of a classification group.

    Attributes:
        cluster_id: Sequence number within the group, starting at 0.
        members: Member features in original order; ``members[0]`` is the seed.
    """

    cluster_id: int
    members: tuple[RawHazardFeature, ...] = field(default_factory=tuple)

    @property
    def seed(self) -> RawHazardFeature:
        return self.members[0]

    def __len__(self) -> int:
        return len(self.members)


@dataclass(frozen=True, slots=True)
class AggregatedZone:
    """One synthetic hazard zone per surviving cluster.

    Attributes:
        river_id: River identifier shared by every member.
        hazard_type: Hazard type shared by every member.
        rank_code: Rank code shared by every member.
        cluster_id: Cluster sequence number within the group.
        geometry: Merged MultiPolygon (never empty).
        bounding_box_wkt: Axis-aligned bounding box as a WKT polygon.
        source_polygon_count: Member polygons that survived cleaning.
        river_name: River name taken from the first member, if any.
        simplified_geometry: Display-simplified copy, when enabled.
        simplification_tolerance: Tolerance used for ``simplified_geometry``.
    """

    river_id: str
    hazard_type: str
    rank_code: int
    cluster_id: int
    geometry: MultiPolygon
    bounding_box_wkt: str
    source_polygon_count: int
    river_name: str = ""
    simplified_geometry: BaseGeometry | None = None
    simplification_tolerance: float | None = None

    @property
    def classification_key(self) -> tuple[str, str, int]:
        return (self.river_id, self.hazard_type, self.rank_code)
