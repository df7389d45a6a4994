"""Typed results of a batch load.

- ``BatchResult``: outcome of one batch (after all of its attempts)
- ``LoadResult``: terminal summary of one ``BatchLoader.load`` call

Design notes:
- Both models are frozen dataclasses; a result is never mutated after
  it is recorded.
- Explicit units on every duration field (seconds).
- Triple and time totals cover successful batches only, while
  ``errors`` lists every failed batch in order.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from geosparql_loader.core.exceptions import PipelineError

# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


class ModelValidationError(ValueError, PipelineError):
    """Raised when a result model is constructed with invalid field values.

    Attributes:
        model: Name of the model class that failed validation.
        field_name: The field that violated the invariant.
        value: The invalid value.
    """

    default_stage = "model_validation"
    default_code = "MODEL_VALIDATION_FAILED"

    def __init__(self, model: str, field_name: str, value: object, message: str) -> None:
        self.model = model
        self.field_name = field_name
        self.value = value
        formatted = f"{model}.{field_name}={value!r}: {message}"
        PipelineError.__init__(self, formatted)


# ---------------------------------------------------------------------------
# Batch results
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class BatchResult:
    """Outcome of one batch.

    Attributes:
        batch_index: Zero-based position of the batch in the load.
        triples_count: Triples carried by the batch.
        execution_time_s: Wall time of the final attempt in seconds.
        success: Whether the store accepted the batch.
        error: Failure message (empty on success).
        attempts: Number of requests issued (1 = no retries).
        restart_feature_index: Best-effort restart offset for a failed batch.
    """

    batch_index: int
    triples_count: int
    execution_time_s: float
    success: bool
    error: str = ""
    attempts: int = 1
    restart_feature_index: int | None = None

    def __post_init__(self) -> None:
        _check_min("BatchResult", "batch_index", self.batch_index, 0)
        _check_min("BatchResult", "triples_count", self.triples_count, 0)
        _check_min("BatchResult", "execution_time_s", self.execution_time_s, 0)
        _check_min("BatchResult", "attempts", self.attempts, 0)
        if not self.success and not self.error:
            raise ModelValidationError(
                "BatchResult", "error", self.error, "must be set for a failed batch"
            )


@dataclass(frozen=True, slots=True)
class LoadResult:
    """Terminal summary of one load.

    Attributes:
        total_triples: Triples in successful batches.
        total_batches: Planned batch count (including batches never attempted).
        total_time_s: Wall time of the whole load in seconds.
        average_batch_time_s: Mean execution time of successful batches.
        errors: One message per failed batch, in batch order.
        batch_results: Results of every attempted batch, in order.
        aborted: Whether a critical failure stopped the load.
        skipped_batches: Batches never attempted because of an abort.
        restart_feature_index: Smallest restart offset among failed batches.
        dry_run: Whether uploads were suppressed.
    """

    total_triples: int
    total_batches: int
    total_time_s: float
    average_batch_time_s: float
    errors: tuple[str, ...] = field(default_factory=tuple)
    batch_results: tuple[BatchResult, ...] = field(default_factory=tuple)
    aborted: bool = False
    skipped_batches: int = 0
    restart_feature_index: int | None = None
    dry_run: bool = False

    @property
    def failed_batches(self) -> int:
        return sum(1 for r in self.batch_results if not r.success)

    @property
    def succeeded(self) -> bool:
        return not self.errors


# ---------------------------------------------------------------------------
# Validation helpers (module-private)
# ---------------------------------------------------------------------------


def _check_min(model: str, field_name: str, value: float | int, lo: float | int) -> None:
    """Raise `ModelValidationError` if *value* is below *lo*."""
    if value < lo:
        raise ModelValidationError(model, field_name, value, f"must be >= {lo}")
