"""Hazard-zone aggregation: group, cluster, merge.

Collapses many small flood-hazard polygons that share a classification
into a few large MultiPolygons, so that a river basin with tens of
thousands of rank polygons becomes a few hundred queryable zones.

Algorithm:

1. **Grouping** by ``(river_id, hazard_type, rank_code)``.  Features
   without a river identifier, with an unreadable rank, or with a depth
   rank below the configured minimum are dropped here.
2. **Clustering** within each group, in original order.  Every
   unassigned feature seeds a cluster; later unassigned features join
   while their first vertex lies within a fixed longitude/latitude
   window of the *seed's* first vertex, up to a member cap.  Membership
   is never transitive: A-B and B-C close but A-C far gives {A, B}, {C}.
3. **Merge**: every member polygon is cleaned and lightly simplified;
   polygons that fail are logged and dropped.  Survivors form one
   MultiPolygon in member order.  A cluster with no survivors produces
   no zone.
4. **Derived geometries**: bounding box (corners reprojected only) and
   an optional display-simplified copy.

Known approximation:
    The "centroid" used for clustering is the first coordinate of the
    first ring, not a geometric centroid.  Switching to a true centroid
    would change cluster membership and therefore zone identifiers.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from shapely.geometry import MultiPolygon

from geosparql_loader.activities.classify_features import (
    HazardClassificationError,
    classify_hazard_feature,
    is_below_min_rank,
)
from geosparql_loader.core.constants import (
    CLUSTER_MAX_DISTANCE_LAT_DEG,
    CLUSTER_MAX_DISTANCE_LNG_DEG,
    DEFAULT_DISPLAY_SIMPLIFICATION_TOLERANCE,
    DEFAULT_MAX_FEATURES_PER_CLUSTER,
    DEFAULT_MIN_FLOOD_DEPTH_RANK,
    MERGE_SIMPLIFICATION_TOLERANCE_DEG,
)
from geosparql_loader.core.geometry import (
    GEOMETRY_ERRORS,
    bounding_box_wkt,
    clean_and_simplify,
    first_vertex,
    polygon_from_rings,
    reproject,
    simplify_geometry,
)
from geosparql_loader.models.zone import AggregatedZone, SpatialCluster

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from shapely.geometry import Polygon

    from geosparql_loader.models.feature import RawHazardFeature, SourceFeature

logger = logging.getLogger("geosparql_loader.activities.aggregate_hazards")

ClassificationKey = tuple[str, str, int]


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def aggregate_hazard_features(
    features: Iterable[SourceFeature],
    hazard_type: str,
    *,
    min_rank: int = DEFAULT_MIN_FLOOD_DEPTH_RANK,
    max_features_per_cluster: int = DEFAULT_MAX_FEATURES_PER_CLUSTER,
    enable_simplification: bool = False,
    simplification_tolerance: float = DEFAULT_DISPLAY_SIMPLIFICATION_TOLERANCE,
    log: logging.Logger | None = None,
) -> list[AggregatedZone]:
    """Aggregate one file's hazard features into zones.

    Args:
        features: Source features of a single hazard type.
        hazard_type: The file's hazard type.
        min_rank: Minimum depth rank retained (depth types only).
        max_features_per_cluster: Member cap per cluster.
        enable_simplification: Also compute a display-simplified geometry.
        simplification_tolerance: Display simplification tolerance (degrees).
        log: Logger to use; defaults to this module's logger.

    Returns:
        Zones ordered by group (first-seen order) then cluster id.
    """
    log = log or logger
    groups = group_hazard_features(features, hazard_type, min_rank=min_rank, log=log)

    zones: list[AggregatedZone] = []
    cluster_total = 0
    for members in groups.values():
        clusters = cluster_group(members, max_features_per_cluster=max_features_per_cluster)
        cluster_total += len(clusters)
        for cluster in clusters:
            zone = build_zone(
                cluster,
                enable_simplification=enable_simplification,
                simplification_tolerance=simplification_tolerance,
                log=log,
            )
            if zone is not None:
                zones.append(zone)

    log.info(
        "Hazard aggregation completed | hazard_type=%s | groups=%d | clusters=%d | zones=%d",
        hazard_type,
        len(groups),
        cluster_total,
        len(zones),
    )
    return zones


# ---------------------------------------------------------------------------
# Step 1: grouping
# ---------------------------------------------------------------------------


def group_hazard_features(
    features: Iterable[SourceFeature],
    hazard_type: str,
    *,
    min_rank: int = DEFAULT_MIN_FLOOD_DEPTH_RANK,
    log: logging.Logger | None = None,
) -> dict[ClassificationKey, list[RawHazardFeature]]:
    """Group features by classification key, preserving first-seen order."""
    log = log or logger
    groups: dict[ClassificationKey, list[RawHazardFeature]] = {}
    seen = unclassified = low_rank = 0

    for feature in features:
        seen += 1
        try:
            parts = classify_hazard_feature(feature, hazard_type)
        except HazardClassificationError as exc:
            unclassified += 1
            log.debug(
                "Skipping hazard feature | index=%d | error=%s",
                feature.feature_index,
                exc,
            )
            continue

        for part in parts:
            if is_below_min_rank(part.hazard_type, part.rank_code, min_rank):
                low_rank += 1
                continue
            groups.setdefault(part.classification_key, []).append(part)

    log.info(
        "Hazard features grouped | hazard_type=%s | features=%d | groups=%d | "
        "unclassified=%d | below_min_rank=%d",
        hazard_type,
        seen,
        len(groups),
        unclassified,
        low_rank,
    )
    return groups


# ---------------------------------------------------------------------------
# Step 2: seed-based clustering
# ---------------------------------------------------------------------------


def cluster_group(
    members: Sequence[RawHazardFeature],
    *,
    max_features_per_cluster: int = DEFAULT_MAX_FEATURES_PER_CLUSTER,
    max_distance_lng: float = CLUSTER_MAX_DISTANCE_LNG_DEG,
    max_distance_lat: float = CLUSTER_MAX_DISTANCE_LAT_DEG,
) -> list[SpatialCluster]:
    """Cluster one group's features around seeds, in input order."""
    if max_features_per_cluster < 1:
        msg = f"max_features_per_cluster must be >= 1, got {max_features_per_cluster}"
        raise ValueError(msg)

    anchors = [first_vertex(m.rings) for m in members]
    assigned = [False] * len(members)
    clusters: list[SpatialCluster] = []

    for i, seed in enumerate(members):
        if assigned[i]:
            continue
        assigned[i] = True
        cluster = [seed]
        seed_x, seed_y = anchors[i]

        for j in range(i + 1, len(members)):
            if len(cluster) >= max_features_per_cluster:
                break
            if assigned[j]:
                continue
            x, y = anchors[j]
            if abs(x - seed_x) <= max_distance_lng and abs(y - seed_y) <= max_distance_lat:
                assigned[j] = True
                cluster.append(members[j])

        clusters.append(SpatialCluster(cluster_id=len(clusters), members=tuple(cluster)))

    return clusters


# ---------------------------------------------------------------------------
# Steps 3-4: merge and derive
# ---------------------------------------------------------------------------


def merge_cluster(
    cluster: SpatialCluster,
    *,
    tolerance: float = MERGE_SIMPLIFICATION_TOLERANCE_DEG,
    log: logging.Logger | None = None,
) -> list[Polygon]:
    """Clean and simplify every member polygon; return the survivors in order."""
    log = log or logger
    survivors: list[Polygon] = []
    for member in cluster.members:
        try:
            polygon = polygon_from_rings(member.rings)
            cleaned = clean_and_simplify(polygon, tolerance)
        except GEOMETRY_ERRORS as exc:
            log.warning(
                "Could not process polygon | river=%s | rank=%d | feature=%d | error=%s",
                member.river_id,
                member.rank_code,
                member.feature_index,
                exc,
            )
            continue
        if cleaned is None:
            log.warning(
                "Dropping degenerate polygon | river=%s | rank=%d | feature=%d",
                member.river_id,
                member.rank_code,
                member.feature_index,
            )
            continue
        survivors.append(cleaned)
    return survivors


def build_zone(
    cluster: SpatialCluster,
    *,
    enable_simplification: bool = False,
    simplification_tolerance: float = DEFAULT_DISPLAY_SIMPLIFICATION_TOLERANCE,
    log: logging.Logger | None = None,
) -> AggregatedZone | None:
    """Merge a cluster into an ``AggregatedZone``; ``None`` if nothing survives."""
    log = log or logger
    seed = cluster.seed
    polygons = merge_cluster(cluster, log=log)
    if not polygons:
        log.warning(
            "No valid polygons remained after cleaning | river=%s | hazard_type=%s | "
            "rank=%d | cluster=%d",
            seed.river_id,
            seed.hazard_type,
            seed.rank_code,
            cluster.cluster_id,
        )
        return None

    merged = MultiPolygon(polygons)
    bbox_wkt = bounding_box_wkt(merged)

    simplified = None
    if enable_simplification:
        display = simplify_geometry(merged, simplification_tolerance)
        simplified = reproject(display) if display is not None else None

    return AggregatedZone(
        river_id=seed.river_id,
        hazard_type=seed.hazard_type,
        rank_code=seed.rank_code,
        cluster_id=cluster.cluster_id,
        geometry=reproject(merged),
        bounding_box_wkt=bbox_wkt,
        source_polygon_count=len(polygons),
        river_name=seed.river_name,
        simplified_geometry=simplified,
        simplification_tolerance=simplification_tolerance if simplified is not None else None,
    )
