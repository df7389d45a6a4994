"""Shared pipeline constants.

Centralises coordinate reference systems, loader defaults and the
aggregation thresholds that are otherwise easy to duplicate between
the transformer, the loader and the CLI.
"""

from __future__ import annotations

# ---------------------------------------------------------------------------
# Coordinate reference systems
# ---------------------------------------------------------------------------

SOURCE_CRS: str = "EPSG:6668"
"""JGD2011 geographic CRS used by the MLIT source datasets."""

TARGET_CRS: str = "EPSG:4326"
"""WGS 84, the CRS of every WKT literal written to the store."""

# ---------------------------------------------------------------------------
# Triple generation defaults
# ---------------------------------------------------------------------------

DEFAULT_BASE_URI: str = "http://example.org/mlit/"
DEFAULT_MIN_FLOOD_DEPTH_RANK = 2
DEFAULT_DISPLAY_SIMPLIFICATION_TOLERANCE = 0.01

# Land-use categories smaller than this (m²) are not emitted.
MIN_LAND_USE_AREA_M2 = 5000.0

# ---------------------------------------------------------------------------
# Hazard aggregation thresholds
# ---------------------------------------------------------------------------

# Roughly 3 km in each direction at Japanese latitudes.
CLUSTER_MAX_DISTANCE_LNG_DEG = 0.015
CLUSTER_MAX_DISTANCE_LAT_DEG = 0.01

DEFAULT_MAX_FEATURES_PER_CLUSTER = 500

# Tolerance (degrees) applied to every member polygon before merging.
MERGE_SIMPLIFICATION_TOLERANCE_DEG = 0.0001

# Closed ring: 3 distinct vertices + closure.
MIN_RING_COORDS = 4

# ---------------------------------------------------------------------------
# Batch loader defaults
# ---------------------------------------------------------------------------

DEFAULT_RDF4J_ENDPOINT: str = "http://localhost:8080/rdf4j-server"
DEFAULT_REPOSITORY_ID: str = "mlit"
DEFAULT_BATCH_SIZE = 1000
DEFAULT_MAX_RETRIES = 3
DEFAULT_REQUEST_TIMEOUT_S = 60.0
DEFAULT_INTER_BATCH_DELAY_S = 0.1
DEFAULT_RETRY_BASE_DELAY_S = 1.0
DEFAULT_RETRY_MAX_JITTER_S = 1.0

# Abandon a file once this many features have failed to transform.
DEFAULT_MAX_TRANSFORM_ERRORS = 100
