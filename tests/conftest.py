"""Shared pytest fixtures for the geosparql-loader test suite."""

from __future__ import annotations

from pathlib import Path

import pytest

from geosparql_loader.core.config import PipelineConfig
from geosparql_loader.models.feature import SourceFeature
from geosparql_loader.models.triple import RDFTriple, integer_literal

# ---------------------------------------------------------------------------
# Path fixtures
# ---------------------------------------------------------------------------

TESTS_DIR = Path(__file__).parent
DATA_DIR = TESTS_DIR / "data"


@pytest.fixture()
def data_dir() -> Path:
    """Return the path to the test data directory."""
    return DATA_DIR


@pytest.fixture()
def population_geojson(data_dir: Path) -> Path:
    """Four mesh cells: a 2025 snapshot, a plain cell, no geometry, no mesh id."""
    return data_dir / "population_mesh.geojson"


@pytest.fixture()
def flood_geojson(data_dir: Path) -> Path:
    """Five planned-scale depth polygons on one river, one without a river id."""
    return data_dir / "flood_planned.geojson"


# ---------------------------------------------------------------------------
# Builders
# ---------------------------------------------------------------------------


def square_rings(x: float, y: float, size: float = 0.002) -> list[list[list[float]]]:
    """Counter-clockwise square with its lower-left corner at ``(x, y)``."""
    return [
        [
            [x, y],
            [x + size, y],
            [x + size, y + size],
            [x, y + size],
            [x, y],
        ]
    ]


@pytest.fixture()
def make_hazard_feature():
    """Factory for planned-scale depth hazard features."""

    def _make(
        x: float = 139.8,
        y: float = 35.7,
        *,
        river_id: str | None = "860602",
        rank: object = 3,
        index: int = 0,
        river_name: str = "荒川",
        size: float = 0.002,
    ) -> SourceFeature:
        return SourceFeature(
            properties={"A31a_101": river_id, "A31a_102": river_name, "A31a_105": rank},
            geometry={"type": "Polygon", "coordinates": square_rings(x, y, size)},
            source_file="flood_planned.geojson",
            feature_index=index,
        )

    return _make


@pytest.fixture()
def make_mesh_feature():
    """Factory for population mesh features."""

    def _make(
        mesh_id: str | None = "533945771", *, index: int = 0, **extra: object
    ) -> SourceFeature:
        properties: dict[str, object] = {"SHICODE": "13101", "PTN_2020": 1520.0}
        if mesh_id is not None:
            properties["MESH_ID"] = mesh_id
        properties.update(extra)
        return SourceFeature(
            properties=properties,
            geometry={"type": "Polygon", "coordinates": square_rings(139.75, 35.68, 0.00625)},
            source_file="population_mesh.geojson",
            feature_index=index,
        )

    return _make


@pytest.fixture()
def make_triples():
    """Factory for *n* distinct triples."""

    def _make(count: int) -> list[RDFTriple]:
        return [
            RDFTriple(
                f"http://example.org/mlit/item/{i}",
                "http://example.org/mlit/ontology#seq",
                integer_literal(i),
            )
            for i in range(count)
        ]

    return _make


@pytest.fixture()
def config() -> PipelineConfig:
    """Configuration with pacing and backoff disabled."""
    return PipelineConfig(
        inter_batch_delay_s=0.0,
        retry_base_delay_s=0.0,
        retry_max_jitter_s=0.0,
    )
