"""Population and land-use mesh triple generation.

Each mesh cell becomes a ``geo:Feature``/``mlit:Mesh`` with a reprojected
geometry, its identifying codes, the 2020 population total, an optional
2025 population snapshot node and one area predicate per land-use
category large enough to matter.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from geosparql_loader.activities.generate_triples._common import (
    GeneratorOptions,
    TripleGenerationError,
    geometry_node,
    triple,
    type_triple,
)
from geosparql_loader.core import ontology
from geosparql_loader.core.constants import MIN_LAND_USE_AREA_M2
from geosparql_loader.core.geometry import (
    GEOMETRY_ERRORS,
    geometry_from_geojson,
    reproject,
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
    from collections.abc import Mapping

    from geosparql_loader.models.feature import SourceFeature

# Future-projection year carried by the population mesh snapshots.
SNAPSHOT_YEAR = "2025"

_MESH_ID_KEYS = ("MESH_ID", "メッシュ")


def _as_number(value: object) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(str(value).strip())
    except ValueError:
        return None


def mesh_id_of(properties: Mapping[str, object]) -> str:
    """Return the mesh code of a feature.

    Raises:
        TripleGenerationError: If neither ``MESH_ID`` nor ``メッシュ`` is set.
    """
    for key in _MESH_ID_KEYS:
        value = properties.get(key)
        if value is not None and str(value).strip():
            return str(value).strip()
    msg = "Feature missing required MESH_ID or メッシュ property"
    raise TripleGenerationError(msg)


def snapshot_year_of(properties: Mapping[str, object]) -> str:
    """``"2025"`` when the feature carries 2025 projections, else ``""``.

    Readers that unify a file's schema fill absent attributes with
    ``None``, so a null total counts as absent.
    """
    return SNAPSHOT_YEAR if properties.get(f"PTN_{SNAPSHOT_YEAR}") is not None else ""


def mesh_feature_to_triples(
    feature: SourceFeature,
    options: GeneratorOptions,
) -> TransformationResult:
    """Map one population or land-use mesh cell to triples.

    Raises:
        TripleGenerationError: If the mesh code or geometry is missing
            or the geometry cannot be reprojected.
    """
    properties = feature.properties
    mesh_id = mesh_id_of(properties)
    year = snapshot_year_of(properties)

    if not feature.geometry:
        msg = f"Mesh {mesh_id} has no geometry"
        raise TripleGenerationError(msg)
    try:
        wkt = to_wkt(reproject(geometry_from_geojson(feature.geometry)))
    except GEOMETRY_ERRORS as exc:
        msg = f"Failed to transform geometry of mesh {mesh_id}: {exc}"
        raise TripleGenerationError(msg) from exc

    feature_iri = ontology.mesh_iri(options.base_uri, mesh_id, year)
    geometry_iri = ontology.geometry_iri(options.base_uri, mesh_id, year)

    triples = [
        type_triple(feature_iri, ontology.GEO_FEATURE),
        type_triple(feature_iri, ontology.MESH),
    ]
    triples += geometry_node(feature_iri, geometry_iri, ontology.HAS_GEOMETRY, wkt)
    triples.append(triple(feature_iri, ontology.MESH_ID, string_literal(mesh_id)))

    shicode = properties.get("SHICODE")
    if shicode:
        triples.append(
            triple(feature_iri, ontology.ADMINISTRATIVE_CODE, string_literal(str(shicode)))
        )

    population_2020 = _as_number(properties.get("PTN_2020"))
    if population_2020:
        triples.append(
            triple(feature_iri, ontology.TOTAL_POPULATION_2020, double_literal(population_2020))
        )

    snapshot_iris: list[str] = []
    if options.include_population_snapshots and year:
        snapshot_iri = ontology.population_snapshot_iri(options.base_uri, mesh_id, year)
        snapshot_iris.append(snapshot_iri)
        triples += _population_snapshot(properties, feature_iri, snapshot_iri, year)

    triples += _land_use_triples(properties, feature_iri)

    return TransformationResult(
        triples=triples,
        feature_iris=[feature_iri],
        geometry_iris=[geometry_iri],
        population_snapshot_iris=snapshot_iris,
    )


def _population_snapshot(
    properties: Mapping[str, object],
    feature_iri: str,
    snapshot_iri: str,
    year: str,
) -> list[RDFTriple]:
    triples = [
        type_triple(snapshot_iri, ontology.POPULATION_SNAPSHOT),
        triple(feature_iri, ontology.HAS_POPULATION_DATA, snapshot_iri),
        triple(snapshot_iri, ontology.POPULATION_YEAR, integer_literal(int(year))),
    ]
    total = _as_number(properties.get(f"PTN_{year}"))
    if total is not None:
        triples.append(triple(snapshot_iri, ontology.TOTAL_POPULATION, double_literal(total)))

    for prefix, predicate in ontology.AGE_CATEGORY_PREDICATES:
        value = _as_number(properties.get(f"{prefix}_{year}"))
        if value is not None:
            triples.append(triple(snapshot_iri, predicate, double_literal(value)))
    return triples


def _land_use_triples(properties: Mapping[str, object], feature_iri: str) -> list[RDFTriple]:
    triples: list[RDFTriple] = []
    for key, predicate in ontology.LAND_USE_AREA_PREDICATES.items():
        area = _as_number(properties.get(key))
        if area is not None and area >= MIN_LAND_USE_AREA_M2:
            triples.append(triple(feature_iri, predicate, double_literal(area)))
    return triples
