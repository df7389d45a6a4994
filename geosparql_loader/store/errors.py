"""Triple-store request errors and failure classification.

Every failure of a store request surfaces as ``StoreRequestError`` with
a message that names what happened ("timeout", "connection refused",
"HTTP 404 Not Found: repository not found", ...) and, for HTTP-level
failures, the status code.  ``classify_store_error`` turns that into
the two decisions the batch loader needs:

- **retryable**: worth waiting and trying the same batch again;
- **critical**: every later batch will fail the same way, so stop.

Non-retryable patterns take precedence over retryable ones.  A status
code, when present, is authoritative; message patterns cover transport
failures that never produced a response.  Any 3xx reply is critical:
the endpoint URL itself is wrong, so every batch would hit it.
"""

from __future__ import annotations

from dataclasses import dataclass

from geosparql_loader.core.exceptions import PipelineError

# ---------------------------------------------------------------------------
# Classification tables
# ---------------------------------------------------------------------------

RETRYABLE_STATUS_CODES = frozenset({429, 502, 503, 504})
NON_RETRYABLE_STATUS_CODES = frozenset({400, 401, 403, 404})
CRITICAL_STATUS_CODES = frozenset({401, 403, 404})

# Redirects are reported, never followed.
REDIRECT_STATUS_RANGE = range(300, 400)

RETRYABLE_PATTERNS = (
    "timeout",
    "timed out",
    "connection reset",
    "econnreset",
    "enotfound",
    "name resolution",
    "dns",
    "bad gateway",
    "service unavailable",
    "gateway timeout",
    "too many requests",
    "network error",
    "connection refused",
    "econnrefused",
    "fetch failed",
)

NON_RETRYABLE_PATTERNS = (
    "bad request",
    "unauthorized",
    "forbidden",
    "repository not found",
    "unknown repository",
    "malformed query",
    "syntax error",
    "redirected to",
)

CRITICAL_PATTERNS = (
    "repository not found",
    "unknown repository",
    "unauthorized",
    "forbidden",
    "connection refused",
    "econnrefused",
    "malformed query",
    "syntax error",
    "redirected to",
)


class StoreRequestError(PipelineError):
    """A request to the triple store failed.

    Attributes:
        status_code: HTTP status, or ``None`` for transport failures.
    """

    default_stage = "load_triples"
    default_code = "STORE_REQUEST_FAILED"

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        self.status_code = status_code
        failure = classify_failure(message, status_code)
        super().__init__(message, retryable=failure.retryable, critical=failure.critical)


@dataclass(frozen=True, slots=True)
class FailureClass:
    """Outcome of classifying one store failure."""

    retryable: bool
    critical: bool


def _matches(text: str, patterns: tuple[str, ...]) -> bool:
    return any(p in text for p in patterns)


def classify_failure(message: str, status_code: int | None = None) -> FailureClass:
    """Classify a failure from its message and optional HTTP status."""
    text = message.lower()

    if status_code is not None and status_code in REDIRECT_STATUS_RANGE:
        return FailureClass(retryable=False, critical=True)

    non_retryable = (
        status_code in NON_RETRYABLE_STATUS_CODES if status_code is not None else False
    ) or _matches(text, NON_RETRYABLE_PATTERNS)

    if non_retryable:
        retryable = False
    elif status_code is not None:
        retryable = status_code in RETRYABLE_STATUS_CODES
    else:
        retryable = _matches(text, RETRYABLE_PATTERNS)

    critical = (
        status_code in CRITICAL_STATUS_CODES if status_code is not None else False
    ) or _matches(text, CRITICAL_PATTERNS)

    return FailureClass(retryable=retryable, critical=critical)


def classify_store_error(error: BaseException) -> FailureClass:
    """Classify any exception raised while talking to the store."""
    if isinstance(error, PipelineError):
        return FailureClass(retryable=error.retryable, critical=error.critical)
    return classify_failure(str(error), getattr(error, "status_code", None))
