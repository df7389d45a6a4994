"""HTTP client for an RDF4J-compatible SPARQL endpoint.

Two request shapes against one repository:

- **update**: ``POST {repository}/statements`` with an
  ``application/sparql-update`` body (batch inserts);
- **query**: ``POST {repository}`` with an ``application/sparql-query``
  body, answered as ``application/sparql-results+json`` (health checks and
  templates) or, for the query utility, in any of ``RESULT_FORMATS``.

Every failure, whether an HTTP error status or a transport error, is
raised as ``StoreRequestError`` with a message the failure classifier
understands.  The client never retries; retry policy lives in the batch
loader.

Redirects are never followed: a 3xx reply is a failure naming the
``Location`` the endpoint points to, since a followed 303 turns an
update POST into a read-only GET.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any
from urllib.parse import quote

import httpx

from geosparql_loader.core.constants import DEFAULT_REQUEST_TIMEOUT_S
from geosparql_loader.store.errors import StoreRequestError

if TYPE_CHECKING:
    from types import TracebackType

logger = logging.getLogger("geosparql_loader.store.client")

SPARQL_UPDATE_TYPE = "application/sparql-update"
SPARQL_QUERY_TYPE = "application/sparql-query"
SPARQL_RESULTS_JSON = "application/sparql-results+json"

# Query result format -> Accept header.
RESULT_FORMATS: dict[str, str] = {
    "json": SPARQL_RESULTS_JSON,
    "xml": "application/sparql-results+xml",
    "csv": "text/csv",
    "tsv": "text/tab-separated-values",
}

ASK_QUERY = "ASK { ?s ?p ?o }"
COUNT_QUERY = "SELECT (COUNT(*) AS ?count) WHERE { ?s ?p ?o }"

# Response body excerpt length kept in error messages.
_BODY_EXCERPT_CHARS = 300

_DNS_MARKERS = ("name or service not known", "nodename nor servname", "getaddrinfo")


def repository_urls(endpoint: str, repository_id: str) -> tuple[str, str]:
    """Return ``(query_url, statements_url)`` for a repository.

    *endpoint* may be the server root (``http://host/rdf4j-server``) or
    already point at a repository (``.../repositories/{id}``, optionally
    with ``/statements``), in which case *repository_id* is not appended.
    """
    base = endpoint.rstrip("/")
    if "/repositories/" in base:
        query_url = base.removesuffix("/statements")
    else:
        query_url = f"{base}/repositories/{quote(repository_id, safe='')}"
    return query_url, f"{query_url}/statements"


class SparqlStoreClient:
    """Thin synchronous client for one repository.

    Args:
        endpoint: Server root or repository URL.
        repository_id: Repository identifier.
        timeout_s: Per-request timeout in seconds.
        http_client: Pre-built ``httpx.Client`` (tests inject one with a
            ``MockTransport``); created and owned here when omitted.
        log: Logger to use; defaults to this module's logger.
    """

    def __init__(
        self,
        endpoint: str,
        repository_id: str,
        *,
        timeout_s: float = DEFAULT_REQUEST_TIMEOUT_S,
        http_client: httpx.Client | None = None,
        log: logging.Logger | None = None,
    ) -> None:
        self.query_url, self.statements_url = repository_urls(endpoint, repository_id)
        self.timeout_s = timeout_s
        self._owns_client = http_client is None
        self._http = http_client or httpx.Client(timeout=timeout_s, follow_redirects=False)
        self._log = log or logger

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def close(self) -> None:
        if self._owns_client:
            self._http.close()

    def __enter__(self) -> SparqlStoreClient:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Requests
    # ------------------------------------------------------------------

    def update(self, sparql: str) -> None:
        """Execute a SPARQL update.

        Raises:
            StoreRequestError: On any non-2xx status or transport failure.
        """
        self._post(
            self.statements_url,
            sparql,
            headers={"Content-Type": f"{SPARQL_UPDATE_TYPE}; charset=utf-8"},
        )

    def query(self, sparql: str) -> dict[str, Any]:
        """Execute a SPARQL query and return the parsed JSON result set.

        Raises:
            StoreRequestError: On any non-2xx status, transport failure
                or a body that is not JSON.
        """
        response = self._post(self.query_url, sparql, headers=_query_headers(SPARQL_RESULTS_JSON))
        try:
            return response.json()
        except ValueError as exc:
            msg = f"Invalid SPARQL JSON response from {self.query_url}: {exc}"
            raise StoreRequestError(msg, status_code=response.status_code) from exc

    def query_text(self, sparql: str, result_format: str = "json") -> str:
        """Execute a SPARQL query and return the raw result document.

        Args:
            sparql: Query text.
            result_format: Key of ``RESULT_FORMATS``; selects the Accept header.

        Raises:
            ValueError: If *result_format* is unknown.
            StoreRequestError: On any non-2xx status or transport failure.
        """
        try:
            accept = RESULT_FORMATS[result_format]
        except KeyError:
            msg = (
                f"Unknown result format {result_format!r}; "
                f"expected one of {', '.join(sorted(RESULT_FORMATS))}"
            )
            raise ValueError(msg) from None
        return self._post(self.query_url, sparql, headers=_query_headers(accept)).text

    def ask(self) -> bool:
        """Run the connectivity ``ASK`` query."""
        return bool(self.query(ASK_QUERY).get("boolean", False))

    def count_triples(self) -> int:
        """Run the aggregate count query."""
        result = self.query(COUNT_QUERY)
        try:
            return int(result["results"]["bindings"][0]["count"]["value"])
        except (KeyError, IndexError, TypeError, ValueError) as exc:
            msg = f"Unexpected count query result: {result!r}"
            raise StoreRequestError(msg) from exc

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _post(self, url: str, body: str, *, headers: dict[str, str]) -> httpx.Response:
        try:
            response = self._http.post(
                url,
                content=body.encode("utf-8"),
                headers=headers,
                timeout=self.timeout_s,
                follow_redirects=False,
            )
        except httpx.TimeoutException as exc:
            msg = f"Request timeout after {self.timeout_s}s: {url}"
            raise StoreRequestError(msg) from exc
        except httpx.ConnectError as exc:
            raise StoreRequestError(_describe_connect_error(url, exc)) from exc
        except httpx.RemoteProtocolError as exc:
            msg = f"Connection reset by {url}: {exc}"
            raise StoreRequestError(msg) from exc
        except httpx.TransportError as exc:
            msg = f"Network error for {url}: {exc}"
            raise StoreRequestError(msg) from exc
        except httpx.HTTPError as exc:
            # Decoding failures, redirect loops and other client-side errors.
            msg = f"HTTP client error for {url}: {type(exc).__name__}: {exc}"
            raise StoreRequestError(msg) from exc

        if response.is_success:
            return response

        message = _describe_response(response)
        self._log.debug("Store request failed | url=%s | %s", url, message)
        raise StoreRequestError(message, status_code=response.status_code)


def _query_headers(accept: str) -> dict[str, str]:
    return {"Content-Type": f"{SPARQL_QUERY_TYPE}; charset=utf-8", "Accept": accept}


def _describe_connect_error(url: str, exc: httpx.ConnectError) -> str:
    text = str(exc)
    lowered = text.lower()
    if "refused" in lowered:
        return f"Connection refused by {url}: {text}"
    if any(marker in lowered for marker in _DNS_MARKERS):
        return f"DNS failure (name resolution) for {url}: {text}"
    return f"Network error for {url}: {text}"


def _describe_response(response: httpx.Response) -> str:
    status = response.status_code
    if httpx.codes.is_redirect(status):
        location = response.headers.get("Location", "no Location header")
        return (
            f"HTTP {status} {response.reason_phrase}: redirected to {location} "
            f"(point the endpoint at the store directly)"
        )
    body = response.text.strip()[:_BODY_EXCERPT_CHARS]
    if status == httpx.codes.NOT_FOUND:
        return f"HTTP 404 Not Found: repository not found ({response.request.url}) {body}".rstrip()
    return f"HTTP {status} {response.reason_phrase}: {body}".rstrip(": ")
