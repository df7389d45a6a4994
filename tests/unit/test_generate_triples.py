"""Tests for triple generation (mesh cells, hazard features, aggregated zones)."""

from __future__ import annotations

import unittest

import pytest
from shapely import wkt as shapely_wkt

from geosparql_loader.activities.aggregate_hazards import aggregate_hazard_features
from geosparql_loader.activities.classify_features import (
    DATA_TYPE_FLOOD_HAZARD,
    DATA_TYPE_POPULATION,
    FLOOD_DURATION,
    OVERFLOW_COLLAPSE_ZONE,
    PLANNED_SCALE_DEPTH,
)
from geosparql_loader.activities.generate_triples import (
    GeneratorOptions,
    TripleGenerationError,
    feature_to_triples,
    geometry_digest,
    hazard_feature_to_triples,
    hazard_property_triples,
    mesh_feature_to_triples,
    zones_to_triples,
)
from geosparql_loader.core import ontology
from geosparql_loader.core.config import PipelineConfig
from geosparql_loader.models.feature import SourceFeature
from geosparql_loader.models.triple import (
    double_literal,
    integer_literal,
    string_literal,
)

BASE = "http://example.org/mlit/"


def _objects(triples, subject: str, predicate: str) -> list[str]:
    return [t.object for t in triples if t.subject == subject and t.predicate == predicate]


def _wkt_of(literal: str) -> str:
    return literal.split('"')[1]


# ---------------------------------------------------------------------------
# Options
# ---------------------------------------------------------------------------


class TestGeneratorOptions(unittest.TestCase):
    def test_from_config(self) -> None:
        config = PipelineConfig(
            base_uri="https://data.example.org/",
            min_flood_depth_rank=4,
            use_minimal_flood_properties=False,
            include_population_snapshots=False,
        )
        options = GeneratorOptions.from_config(config)
        self.assertEqual(options.base_uri, "https://data.example.org/")
        self.assertEqual(options.min_flood_depth_rank, 4)
        self.assertFalse(options.use_minimal_flood_properties)
        self.assertFalse(options.include_population_snapshots)


# ---------------------------------------------------------------------------
# Mesh cells
# ---------------------------------------------------------------------------


class TestMeshTriples:
    def test_plain_cell(self, make_mesh_feature) -> None:
        result = mesh_feature_to_triples(make_mesh_feature(), GeneratorOptions())
        iri = f"{BASE}mesh/533945771"
        geom = f"{BASE}geometry/533945771_geom"

        assert result.feature_iris == [iri]
        assert result.geometry_iris == [geom]
        assert _objects(result.triples, iri, ontology.RDF_TYPE) == [
            ontology.GEO_FEATURE,
            ontology.MESH,
        ]
        assert _objects(result.triples, iri, ontology.HAS_GEOMETRY) == [geom]
        assert _objects(result.triples, iri, ontology.MESH_ID) == [string_literal("533945771")]
        assert _objects(result.triples, iri, ontology.ADMINISTRATIVE_CODE) == [
            string_literal("13101")
        ]
        assert _objects(result.triples, iri, ontology.TOTAL_POPULATION_2020) == [
            double_literal(1520.0)
        ]
        (wkt,) = _objects(result.triples, geom, ontology.AS_WKT)
        assert wkt.endswith(f"^^<{ontology.GEO_WKT_LITERAL}>")
        assert _wkt_of(wkt).startswith("POLYGON")
        assert result.population_snapshot_iris == []

    def test_snapshot_cell(self, make_mesh_feature) -> None:
        feature = make_mesh_feature(PTN_2025=1588.5, PTA_2025=180, PTE_2025=121)
        result = mesh_feature_to_triples(feature, GeneratorOptions())
        iri = f"{BASE}mesh/533945771_2025"
        snapshot = f"{BASE}population/533945771_2025"

        assert result.feature_iris == [iri]
        assert result.population_snapshot_iris == [snapshot]
        assert _objects(result.triples, iri, ontology.HAS_POPULATION_DATA) == [snapshot]
        assert _objects(result.triples, snapshot, ontology.POPULATION_YEAR) == [
            integer_literal(2025)
        ]
        assert _objects(result.triples, snapshot, ontology.TOTAL_POPULATION) == [
            double_literal(1588.5)
        ]
        assert _objects(result.triples, snapshot, ontology.AGE_CATEGORY_0_14) == [
            double_literal(180.0)
        ]
        assert _objects(result.triples, snapshot, ontology.AGE_CATEGORY_15_64) == []

    def test_snapshots_can_be_disabled(self, make_mesh_feature) -> None:
        feature = make_mesh_feature(PTN_2025=1588.5)
        options = GeneratorOptions(include_population_snapshots=False)
        result = mesh_feature_to_triples(feature, options)
        assert result.population_snapshot_iris == []
        assert result.feature_iris == [f"{BASE}mesh/533945771_2025"]

    def test_land_use_threshold(self, make_mesh_feature) -> None:
        feature = make_mesh_feature(
            None, **{"メッシュ": "53394577", "田": 12000.0, "森林": 4999.0, "道路": "5000"}
        )
        result = mesh_feature_to_triples(feature, GeneratorOptions())
        iri = f"{BASE}mesh/53394577"
        predicates = {t.predicate for t in result.triples if t.subject == iri}
        assert ontology.LAND_USE_AREA_PREDICATES["田"] in predicates
        assert ontology.LAND_USE_AREA_PREDICATES["道路"] in predicates
        assert ontology.LAND_USE_AREA_PREDICATES["森林"] not in predicates

    def test_missing_mesh_id_raises(self, make_mesh_feature) -> None:
        with pytest.raises(TripleGenerationError, match="MESH_ID"):
            mesh_feature_to_triples(make_mesh_feature(None), GeneratorOptions())

    def test_missing_geometry_raises(self) -> None:
        feature = SourceFeature(properties={"MESH_ID": "1"}, geometry=None)
        with pytest.raises(TripleGenerationError, match="no geometry"):
            mesh_feature_to_triples(feature, GeneratorOptions())

    def test_iri_segments_are_encoded(self, make_mesh_feature) -> None:
        result = mesh_feature_to_triples(make_mesh_feature("53 39/45"), GeneratorOptions())
        assert result.feature_iris == [f"{BASE}mesh/53%2039%2F45"]


# ---------------------------------------------------------------------------
# Per-feature hazard triples
# ---------------------------------------------------------------------------


class TestHazardFeatureTriples:
    def test_identifier_uses_geometry_digest(self, make_hazard_feature) -> None:
        feature = make_hazard_feature()
        result = hazard_feature_to_triples(feature, PLANNED_SCALE_DEPTH, GeneratorOptions())
        digest = geometry_digest(feature.geometry)
        assert len(digest) == 8
        assert result.feature_iris == [
            f"{BASE}floodhazard/860602_{digest}_{PLANNED_SCALE_DEPTH}"
        ]

    def test_identifier_is_stable(self, make_hazard_feature) -> None:
        options = GeneratorOptions()
        first = hazard_feature_to_triples(make_hazard_feature(), PLANNED_SCALE_DEPTH, options)
        second = hazard_feature_to_triples(make_hazard_feature(), PLANNED_SCALE_DEPTH, options)
        assert first.triples == second.triples

    def test_distinct_geometries_get_distinct_iris(self, make_hazard_feature) -> None:
        options = GeneratorOptions()
        a = hazard_feature_to_triples(make_hazard_feature(139.8), PLANNED_SCALE_DEPTH, options)
        b = hazard_feature_to_triples(make_hazard_feature(139.9), PLANNED_SCALE_DEPTH, options)
        assert a.feature_iris != b.feature_iris

    def test_minimal_shape(self, make_hazard_feature) -> None:
        result = hazard_feature_to_triples(
            make_hazard_feature(), PLANNED_SCALE_DEPTH, GeneratorOptions()
        )
        (zone,) = result.feature_iris
        geom = f"{zone}_geom"
        assert _objects(result.triples, zone, ontology.HAS_CENTROID) == [f"{geom}_center"]
        assert _objects(result.triples, zone, ontology.HAS_BOUNDING_BOX) == []
        assert _objects(result.triples, zone, ontology.HAZARD_TYPE) == [
            string_literal(PLANNED_SCALE_DEPTH)
        ]
        assert _objects(result.triples, zone, ontology.FLOOD_DEPTH_RANK) == [integer_literal(3)]
        assert _objects(result.triples, zone, ontology.RIVER_ID) == []
        assert len(result) == 10

    def test_centroid_is_vertex_mean(self, make_hazard_feature) -> None:
        result = hazard_feature_to_triples(
            make_hazard_feature(139.8, 35.7, size=0.002), PLANNED_SCALE_DEPTH, GeneratorOptions()
        )
        (zone,) = result.feature_iris
        (center,) = _objects(result.triples, f"{zone}_geom_center", ontology.AS_WKT)
        point = shapely_wkt.loads(_wkt_of(center))
        assert point.x == pytest.approx(139.801, abs=1e-5)
        assert point.y == pytest.approx(35.701, abs=1e-5)

    def test_below_min_rank_is_empty(self, make_hazard_feature) -> None:
        result = hazard_feature_to_triples(
            make_hazard_feature(rank=1), PLANNED_SCALE_DEPTH, GeneratorOptions()
        )
        assert len(result) == 0

    def test_missing_river_id_raises(self, make_hazard_feature) -> None:
        with pytest.raises(TripleGenerationError, match="River ID"):
            hazard_feature_to_triples(
                make_hazard_feature(river_id=None), PLANNED_SCALE_DEPTH, GeneratorOptions()
            )

    def test_missing_geometry_raises(self) -> None:
        feature = SourceFeature(properties={"A31a_101": "860602", "A31a_105": 3})
        with pytest.raises(TripleGenerationError, match="no geometry"):
            hazard_feature_to_triples(feature, PLANNED_SCALE_DEPTH, GeneratorOptions())

    def test_simplified_geometry(self, make_hazard_feature) -> None:
        options = GeneratorOptions(enable_simplification=True, simplification_tolerance=0.0005)
        result = hazard_feature_to_triples(make_hazard_feature(), PLANNED_SCALE_DEPTH, options)
        (zone,) = result.feature_iris
        simplified = f"{zone}_simplified"
        assert _objects(result.triples, zone, ontology.HAS_SIMPLIFIED_GEOMETRY) == [simplified]
        assert _objects(result.triples, simplified, ontology.SIMPLIFICATION_TOLERANCE) == [
            double_literal(0.0005)
        ]


class TestHazardProperties:
    ZONE = f"{BASE}floodhazard/x"

    def _full(self, hazard_type: str, rank: int):
        return hazard_property_triples(
            self.ZONE,
            river_id="860602",
            river_name="荒川",
            hazard_type=hazard_type,
            rank_code=rank,
            options=GeneratorOptions(use_minimal_flood_properties=False),
        )

    def test_full_depth_properties(self) -> None:
        triples = self._full(PLANNED_SCALE_DEPTH, 6)
        river = f"{BASE}river/860602"
        assert _objects(triples, river, ontology.RDF_TYPE) == [ontology.ADMINISTRATIVE_AREA]
        assert _objects(triples, self.ZONE, ontology.RIVER_NAME) == [string_literal("荒川")]
        assert _objects(triples, self.ZONE, f"{ontology.FLOOD_DEPTH_RANK}_max") == [
            double_literal(999.0)
        ]
        assert _objects(triples, self.ZONE, f"{ontology.FLOOD_DEPTH_RANK}_min") == [
            double_literal(20.0)
        ]

    def test_full_duration_open_limit(self) -> None:
        triples = self._full(FLOOD_DURATION, 7)
        assert _objects(triples, self.ZONE, f"{ontology.FLOOD_DURATION_RANK}_hours") == [
            integer_literal(999999)
        ]

    def test_minimal_collapse_zone_type(self) -> None:
        triples = hazard_property_triples(
            self.ZONE,
            river_id="860602",
            river_name="",
            hazard_type=OVERFLOW_COLLAPSE_ZONE,
            rank_code=2,
            options=GeneratorOptions(),
        )
        assert _objects(triples, self.ZONE, ontology.HAZARD_ZONE_TYPE) == [
            string_literal("erosion")
        ]


# ---------------------------------------------------------------------------
# Aggregated zones and dispatch
# ---------------------------------------------------------------------------


class TestZoneTriples:
    def test_zone_shape(self, make_hazard_feature) -> None:
        features = [make_hazard_feature(index=0), make_hazard_feature(139.803, index=1)]
        zones = aggregate_hazard_features(features, PLANNED_SCALE_DEPTH)
        result = zones_to_triples(zones, GeneratorOptions())
        (zone,) = result.feature_iris

        assert zone == f"{BASE}floodhazard/860602_rank3_cluster0_{PLANNED_SCALE_DEPTH}"
        assert _objects(result.triples, zone, ontology.HAS_BOUNDING_BOX) == [f"{zone}_bbox"]
        assert _objects(result.triples, zone, ontology.SOURCE_POLYGON_COUNT) == [
            integer_literal(2)
        ]
        assert _objects(result.triples, zone, ontology.CLUSTER_ID) == [integer_literal(0)]
        (geometry,) = _objects(result.triples, f"{zone}_geom", ontology.AS_WKT)
        assert _wkt_of(geometry).startswith("MULTIPOLYGON")
        assert len(result) == 15


class TestDispatch(unittest.TestCase):
    def test_unknown_data_type(self) -> None:
        with self.assertRaises(TripleGenerationError):
            feature_to_triples(SourceFeature(), "raster", GeneratorOptions())

    def test_hazard_requires_type(self) -> None:
        with self.assertRaisesRegex(TripleGenerationError, "Hazard type is required"):
            feature_to_triples(SourceFeature(), DATA_TYPE_FLOOD_HAZARD, GeneratorOptions())

    def test_population_dispatch(self) -> None:
        feature = SourceFeature(
            properties={"MESH_ID": "1"},
            geometry={"type": "Point", "coordinates": [139.8, 35.7]},
        )
        result = feature_to_triples(feature, DATA_TYPE_POPULATION, GeneratorOptions())
        self.assertEqual(result.feature_iris, [f"{BASE}mesh/1"])
