"""Unified pipeline exception taxonomy.

Every domain exception inherits from ``PipelineError`` and carries
structured context fields so that the batch loader, the orchestrator
and the CLI make consistent decisions about retrying, continuing or
aborting a load.

Taxonomy categories
-------------------
- ``InputError``: malformed source data (bad geometry, missing
  identifier).  Logged and skipped at feature granularity.
- ``CriticalError``: failures that make every later batch pointless
  (refused connection, missing repository, bad credentials).  Abort
  the load.
- Any other ``PipelineError`` is *transient* when ``retryable`` is set
  (timeouts, resets, 5xx, throttling; retried with backoff) and
  *permanent* otherwise (recorded, and loading continues).  Store
  failures take their flags from the failure classifier.

``to_error_dict()`` gives a stable structured payload; the run summary
records it for the error that stopped a run.
"""

from __future__ import annotations


class PipelineError(Exception):
    """Base exception for all pipeline-domain errors.

    Attributes:
        message: Human-readable error description.
        stage: Pipeline stage where the error occurred
            (e.g. ``"aggregate_hazards"``, ``"load_triples"``).
        code: Machine-readable error code (e.g. ``"STORE_REQUEST_FAILED"``).
        retryable: Whether the operation may succeed if repeated.
        critical: Whether the failure must abort the whole load.
        correlation_id: Run or file identifier for log correlation.
    """

    #: Default stage for subclasses (override via class attribute or kwarg).
    default_stage: str = ""
    #: Default code for subclasses (override via class attribute or kwarg).
    default_code: str = ""

    def __init__(
        self,
        message: str = "",
        *,
        stage: str = "",
        code: str = "",
        retryable: bool = False,
        critical: bool = False,
        correlation_id: str = "",
    ) -> None:
        self.message = message
        self.stage = stage or self.default_stage
        self.code = code or self.default_code
        self.retryable = retryable
        self.critical = critical
        self.correlation_id = correlation_id
        super().__init__(message)

    @property
    def category(self) -> str:
        """Return the error category from the class and its flags."""
        if isinstance(self, InputError):
            return "input"
        if isinstance(self, CriticalError) or self.critical:
            return "critical"
        return "transient" if self.retryable else "permanent"

    def to_error_dict(self) -> dict[str, object]:
        """Return a structured error payload with stable keys."""
        return {
            "category": self.category,
            "code": self.code,
            "stage": self.stage,
            "message": self.message,
            "retryable": self.retryable,
            "critical": self.critical,
            "correlation_id": self.correlation_id,
        }


# ---------------------------------------------------------------------------
# Category base classes
# ---------------------------------------------------------------------------


class InputError(PipelineError):
    """Malformed source feature or geometry. Never retryable."""

    def __init__(self, message: str = "", **kwargs: object) -> None:
        kwargs.setdefault("retryable", False)
        super().__init__(message, **kwargs)  # type: ignore[arg-type]


class CriticalError(PipelineError):
    """Failure that invalidates every remaining unit of work."""

    def __init__(self, message: str = "", **kwargs: object) -> None:
        kwargs.setdefault("retryable", False)
        kwargs.setdefault("critical", True)
        super().__init__(message, **kwargs)  # type: ignore[arg-type]
