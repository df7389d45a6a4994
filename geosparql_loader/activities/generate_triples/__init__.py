"""Triple generation: map zones and features to GeoSPARQL triples.

Pure functions from an input record plus ``GeneratorOptions`` to an
ordered ``TransformationResult``.  No network or file I/O happens here
and inputs are never mutated.

The generator is split by input kind:
- **_hazard**: aggregated hazard zones and single hazard features
- **_mesh**: population and land-use mesh cells
- **_common**: options, geometry-node helpers, ``TripleGenerationError``

Every resource receives:
- type declarations (``geo:Feature`` plus a domain class)
- a full geometry node with a WGS 84 WKT literal
- for hazard resources, a centroid node, an optional simplified
  geometry and, in aggregated mode, a bounding-box node
- the domain properties (minimal or full for hazards)

A structurally required identifier that is missing (river or mesh id)
raises ``TripleGenerationError`` rather than silently producing nothing.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from geosparql_loader.activities.classify_features import (
    DATA_TYPE_FLOOD_HAZARD,
    DATA_TYPE_LAND_USE,
    DATA_TYPE_POPULATION,
)
from geosparql_loader.activities.generate_triples._common import (
    GeneratorOptions,
    TripleGenerationError,
)
from geosparql_loader.activities.generate_triples._hazard import (
    geometry_digest,
    hazard_feature_to_triples,
    hazard_property_triples,
    zone_to_triples,
)
from geosparql_loader.activities.generate_triples._mesh import (
    mesh_feature_to_triples,
    mesh_id_of,
)
from geosparql_loader.models.triple import TransformationResult

if TYPE_CHECKING:
    from collections.abc import Iterable

    from geosparql_loader.models.feature import SourceFeature
    from geosparql_loader.models.zone import AggregatedZone

__all__ = [
    "GeneratorOptions",
    "TripleGenerationError",
    "feature_to_triples",
    "geometry_digest",
    "hazard_feature_to_triples",
    "hazard_property_triples",
    "mesh_feature_to_triples",
    "mesh_id_of",
    "zone_to_triples",
    "zones_to_triples",
]


def feature_to_triples(
    feature: SourceFeature,
    data_type: str,
    options: GeneratorOptions,
    *,
    hazard_type: str = "",
) -> TransformationResult:
    """Dispatch one feature to the generator for its dataset kind.

    Raises:
        TripleGenerationError: On missing identifiers or bad geometry,
            or when *data_type* is unknown.
    """
    if data_type == DATA_TYPE_FLOOD_HAZARD:
        if not hazard_type:
            msg = f"Hazard type is required for flood-hazard feature {feature.feature_index}"
            raise TripleGenerationError(msg)
        return hazard_feature_to_triples(feature, hazard_type, options)
    if data_type in (DATA_TYPE_POPULATION, DATA_TYPE_LAND_USE):
        return mesh_feature_to_triples(feature, options)
    msg = f"Unsupported data type: {data_type!r}"
    raise TripleGenerationError(msg)


def zones_to_triples(
    zones: Iterable[AggregatedZone],
    options: GeneratorOptions,
) -> TransformationResult:
    """Concatenate the triples of every zone, in zone order."""
    result = TransformationResult()
    for zone in zones:
        result.extend(zone_to_triples(zone, options))
    return result
