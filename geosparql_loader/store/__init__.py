"""Triple-store access layer.

- client: httpx client for the SPARQL query and update endpoints
- errors: ``StoreRequestError`` and retryable/critical classification
- targets: default-graph vs named-graph targets and their serialisers
- queries: predefined query templates and result table rendering
"""

from geosparql_loader.store.client import RESULT_FORMATS, SparqlStoreClient, repository_urls
from geosparql_loader.store.errors import (
    FailureClass,
    StoreRequestError,
    classify_failure,
    classify_store_error,
)
from geosparql_loader.store.queries import (
    QUERY_TEMPLATES,
    QueryTemplate,
    QueryTemplateError,
    get_template,
    render_table,
)
from geosparql_loader.store.targets import (
    DefaultGraphTarget,
    NamedGraphTarget,
    StoreTarget,
    StoreTargetError,
    build_update,
    target_from_config,
)

__all__ = [
    "QUERY_TEMPLATES",
    "RESULT_FORMATS",
    "DefaultGraphTarget",
    "FailureClass",
    "NamedGraphTarget",
    "QueryTemplate",
    "QueryTemplateError",
    "SparqlStoreClient",
    "StoreRequestError",
    "StoreTarget",
    "StoreTargetError",
    "build_update",
    "classify_failure",
    "classify_store_error",
    "get_template",
    "render_table",
    "repository_urls",
    "target_from_config",
]
