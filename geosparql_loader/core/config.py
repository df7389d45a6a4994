"""Pipeline configuration loaded from environment variables.

All configuration values have sensible defaults matching a local RDF4J
server.  The CLI overlays its arguments on top of ``from_env()`` and
re-validates, so the environment and the command line share one set of
rules.

Fail-fast validation:
    ``from_env()`` and ``validate()`` raise ``ConfigValidationError`` if
    any value is out of its valid range.  Bad configuration is caught
    before the first file is opened rather than halfway through a load.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from urllib.parse import urlparse

from geosparql_loader.core.constants import (
    DEFAULT_BASE_URI,
    DEFAULT_BATCH_SIZE,
    DEFAULT_DISPLAY_SIMPLIFICATION_TOLERANCE,
    DEFAULT_INTER_BATCH_DELAY_S,
    DEFAULT_MAX_FEATURES_PER_CLUSTER,
    DEFAULT_MAX_RETRIES,
    DEFAULT_MAX_TRANSFORM_ERRORS,
    DEFAULT_MIN_FLOOD_DEPTH_RANK,
    DEFAULT_RDF4J_ENDPOINT,
    DEFAULT_REPOSITORY_ID,
    DEFAULT_REQUEST_TIMEOUT_S,
    DEFAULT_RETRY_BASE_DELAY_S,
    DEFAULT_RETRY_MAX_JITTER_S,
)
from geosparql_loader.core.exceptions import PipelineError

DATA_TYPES = frozenset({"auto", "population", "land-use", "flood-hazard"})
STORE_BACKENDS = frozenset({"rdf4j", "named_graph"})

_TRUE_VALUES = frozenset({"1", "true", "yes", "on"})

# Flood depth ranks run 1-6.
_MAX_DEPTH_RANK = 6


class ConfigValidationError(PipelineError):
    """Raised when configuration values are out of valid range.

    Attributes:
        key: The configuration key that failed validation.
        value: The invalid value.
        message: Human-readable description of the valid range.
    """

    default_stage = "config"
    default_code = "CONFIG_VALIDATION_FAILED"

    def __init__(self, key: str, value: object, message: str) -> None:
        self.key = key
        self.value = value
        super().__init__(f"Invalid configuration {key}={value!r}: {message}")


@dataclass(frozen=True, slots=True)
class PipelineConfig:
    """Immutable pipeline configuration.

    Built once at startup and passed explicitly to every component.

    Attributes:
        rdf4j_endpoint: Base URL of the RDF4J server (or a full repository URL).
        repository_id: Repository identifier on the server.
        base_uri: Namespace under which all generated resource IRIs are minted.
        batch_size: Maximum triples per update request.
        max_retries: Retries per batch after the first attempt.
        request_timeout_s: Per-request timeout in seconds.
        inter_batch_delay_s: Pause between consecutive batches in seconds.
        retry_base_delay_s: Backoff base; delay is ``base * 2**(attempt-1)``.
        retry_max_jitter_s: Upper bound of the uniform jitter added to each delay.
        min_flood_depth_rank: Depth-rank hazard features below this are dropped.
        aggregate_flood_zones: Cluster and merge hazard polygons before mapping.
        max_features_per_cluster: Member cap for one spatial cluster.
        use_minimal_flood_properties: Emit hazard type and rank only.
        enable_simplification: Emit an additional simplified display geometry.
        simplification_tolerance: Display simplification tolerance in degrees.
        include_population_snapshots: Emit 2025 population snapshot nodes.
        data_type: ``auto`` or a fixed dataset kind.
        store_backend: ``rdf4j`` (default graph) or ``named_graph``.
        graph_iri: Target graph for the ``named_graph`` backend.
        dry_run: Transform and count, but never upload.
        skip_features: Input features to skip across all files (restart offset).
        max_features: Stop after this many input features (0 = unlimited).
        max_transform_errors: Abandon a file after this many failed features.
    """

    rdf4j_endpoint: str = DEFAULT_RDF4J_ENDPOINT
    repository_id: str = DEFAULT_REPOSITORY_ID
    base_uri: str = DEFAULT_BASE_URI
    batch_size: int = DEFAULT_BATCH_SIZE
    max_retries: int = DEFAULT_MAX_RETRIES
    request_timeout_s: float = DEFAULT_REQUEST_TIMEOUT_S
    inter_batch_delay_s: float = DEFAULT_INTER_BATCH_DELAY_S
    retry_base_delay_s: float = DEFAULT_RETRY_BASE_DELAY_S
    retry_max_jitter_s: float = DEFAULT_RETRY_MAX_JITTER_S
    min_flood_depth_rank: int = DEFAULT_MIN_FLOOD_DEPTH_RANK
    aggregate_flood_zones: bool = True
    max_features_per_cluster: int = DEFAULT_MAX_FEATURES_PER_CLUSTER
    use_minimal_flood_properties: bool = True
    enable_simplification: bool = False
    simplification_tolerance: float = DEFAULT_DISPLAY_SIMPLIFICATION_TOLERANCE
    include_population_snapshots: bool = True
    data_type: str = "auto"
    store_backend: str = "rdf4j"
    graph_iri: str = ""
    dry_run: bool = False
    skip_features: int = 0
    max_features: int = 0
    max_transform_errors: int = DEFAULT_MAX_TRANSFORM_ERRORS

    @classmethod
    def from_env(cls) -> PipelineConfig:
        """Load and validate configuration from environment variables.

        Raises:
            ConfigValidationError: If a value is out of range or a
                required string value is empty.
            ValueError: If a numeric environment variable cannot be
                parsed (e.g. ``BATCH_SIZE=abc``).
        """
        config = cls(
            rdf4j_endpoint=os.getenv("RDF4J_ENDPOINT", DEFAULT_RDF4J_ENDPOINT),
            repository_id=os.getenv("RDF4J_REPOSITORY_ID", DEFAULT_REPOSITORY_ID),
            base_uri=os.getenv("BASE_URI", DEFAULT_BASE_URI),
            batch_size=int(os.getenv("BATCH_SIZE", str(DEFAULT_BATCH_SIZE))),
            max_retries=int(os.getenv("MAX_RETRIES", str(DEFAULT_MAX_RETRIES))),
            request_timeout_s=float(
                os.getenv("REQUEST_TIMEOUT_S", str(DEFAULT_REQUEST_TIMEOUT_S))
            ),
            inter_batch_delay_s=float(
                os.getenv("INTER_BATCH_DELAY_S", str(DEFAULT_INTER_BATCH_DELAY_S))
            ),
            retry_base_delay_s=float(
                os.getenv("RETRY_BASE_DELAY_S", str(DEFAULT_RETRY_BASE_DELAY_S))
            ),
            retry_max_jitter_s=float(
                os.getenv("RETRY_MAX_JITTER_S", str(DEFAULT_RETRY_MAX_JITTER_S))
            ),
            min_flood_depth_rank=int(
                os.getenv("MIN_FLOOD_DEPTH_RANK", str(DEFAULT_MIN_FLOOD_DEPTH_RANK))
            ),
            aggregate_flood_zones=_env_bool("AGGREGATE_FLOOD_ZONES", default=True),
            max_features_per_cluster=int(
                os.getenv("MAX_FEATURES_PER_CLUSTER", str(DEFAULT_MAX_FEATURES_PER_CLUSTER))
            ),
            use_minimal_flood_properties=_env_bool("USE_MINIMAL_FLOOD_PROPERTIES", default=True),
            enable_simplification=_env_bool("ENABLE_SIMPLIFICATION", default=False),
            simplification_tolerance=float(
                os.getenv(
                    "SIMPLIFICATION_TOLERANCE", str(DEFAULT_DISPLAY_SIMPLIFICATION_TOLERANCE)
                )
            ),
            include_population_snapshots=_env_bool("INCLUDE_POPULATION_SNAPSHOTS", default=True),
            data_type=os.getenv("DATA_TYPE", "auto"),
            store_backend=os.getenv("STORE_BACKEND", "rdf4j"),
            graph_iri=os.getenv("GRAPH_IRI", ""),
            dry_run=_env_bool("DRY_RUN", default=False),
            skip_features=int(os.getenv("SKIP_FEATURES", "0")),
            max_features=int(os.getenv("MAX_FEATURES", "0")),
            max_transform_errors=int(
                os.getenv("MAX_TRANSFORM_ERRORS", str(DEFAULT_MAX_TRANSFORM_ERRORS))
            ),
        )
        config.validate()
        return config

    def validate(self) -> None:
        """Validate ranges.  Raises ``ConfigValidationError``."""
        _validate(self)


def _env_bool(name: str, *, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return raw.strip().lower() in _TRUE_VALUES


def _is_http_url(value: str) -> bool:
    parsed = urlparse(value)
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def _validate(config: PipelineConfig) -> None:
    """Validate configuration ranges.  Raises ``ConfigValidationError``."""
    if not _is_http_url(config.rdf4j_endpoint):
        raise ConfigValidationError(
            "RDF4J_ENDPOINT",
            config.rdf4j_endpoint,
            "must be an http(s) URL",
        )

    if not config.repository_id.strip():
        raise ConfigValidationError(
            "RDF4J_REPOSITORY_ID",
            config.repository_id,
            "must not be empty",
        )

    if not _is_http_url(config.base_uri) or not config.base_uri.endswith(("/", "#")):
        raise ConfigValidationError(
            "BASE_URI",
            config.base_uri,
            "must be an http(s) URL ending with '/' or '#'",
        )

    if config.batch_size <= 0:
        raise ConfigValidationError("BATCH_SIZE", config.batch_size, "must be > 0")

    if config.max_retries < 0:
        raise ConfigValidationError("MAX_RETRIES", config.max_retries, "must be >= 0")

    if config.request_timeout_s <= 0:
        raise ConfigValidationError(
            "REQUEST_TIMEOUT_S",
            config.request_timeout_s,
            "must be > 0 (seconds)",
        )

    for key, value in (
        ("INTER_BATCH_DELAY_S", config.inter_batch_delay_s),
        ("RETRY_BASE_DELAY_S", config.retry_base_delay_s),
        ("RETRY_MAX_JITTER_S", config.retry_max_jitter_s),
    ):
        if value < 0:
            raise ConfigValidationError(key, value, "must be >= 0 (seconds)")

    if not 1 <= config.min_flood_depth_rank <= _MAX_DEPTH_RANK:
        raise ConfigValidationError(
            "MIN_FLOOD_DEPTH_RANK",
            config.min_flood_depth_rank,
            f"must be between 1 and {_MAX_DEPTH_RANK}",
        )

    if config.max_features_per_cluster <= 0:
        raise ConfigValidationError(
            "MAX_FEATURES_PER_CLUSTER",
            config.max_features_per_cluster,
            "must be > 0",
        )

    if config.simplification_tolerance <= 0:
        raise ConfigValidationError(
            "SIMPLIFICATION_TOLERANCE",
            config.simplification_tolerance,
            "must be > 0 (degrees)",
        )

    if config.data_type not in DATA_TYPES:
        raise ConfigValidationError(
            "DATA_TYPE",
            config.data_type,
            f"must be one of {sorted(DATA_TYPES)}",
        )

    if config.store_backend not in STORE_BACKENDS:
        raise ConfigValidationError(
            "STORE_BACKEND",
            config.store_backend,
            f"must be one of {sorted(STORE_BACKENDS)}",
        )

    if config.store_backend == "named_graph" and not _is_http_url(config.graph_iri):
        raise ConfigValidationError(
            "GRAPH_IRI",
            config.graph_iri,
            "must be an http(s) IRI when STORE_BACKEND=named_graph",
        )

    for key, value in (
        ("SKIP_FEATURES", config.skip_features),
        ("MAX_FEATURES", config.max_features),
        ("MAX_TRANSFORM_ERRORS", config.max_transform_errors),
    ):
        if value < 0:
            raise ConfigValidationError(key, value, "must be >= 0")
