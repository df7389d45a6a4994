"""Batch loader: deliver an ordered triple list to the store, resiliently.

The triple list is cut into contiguous batches of at most
``batch_size`` triples.  Batches are serialised for the configured store
target and uploaded strictly in order, one request in flight at a time.

Per-batch state machine::

    Pending -> Attempting -> Succeeded
                   |  ^
                   v  |  retryable and retries remain:
             FailedRetryable   wait base * 2**(attempt-1) + jitter
                   |
                   v  non-retryable, or retries exhausted
             FailedTerminal --(critical)--> Aborted (no later batch runs)
                   |
                   v  otherwise continue with the next batch

Non-retryable classification wins over retryable.  Every terminal
failure records a restart checkpoint: the index of the first input
feature whose triples fall in the failed batch.

Checkpoints are best-effort operator guidance, not exact resume
points.  With per-feature triple offsets the mapping is exact; with only
an average triples-per-feature ratio (aggregated hazard zones carry a
variable number of triples) it is an estimate; with neither, it falls
back to the first feature of the load, which re-sends data but never
skips any.

Engineering standards:
    Fail loudly: every terminal failure is logged with restart guidance.
    Explicit: named constants, explicit units (seconds).
    Testable: ``sleep`` and ``jitter`` are injectable.
"""

from __future__ import annotations

import bisect
import dataclasses
import logging
import math
import random
import time
from typing import TYPE_CHECKING

from geosparql_loader.core.constants import (
    DEFAULT_BATCH_SIZE,
    DEFAULT_INTER_BATCH_DELAY_S,
    DEFAULT_MAX_RETRIES,
    DEFAULT_RETRY_BASE_DELAY_S,
    DEFAULT_RETRY_MAX_JITTER_S,
)
from geosparql_loader.models.load import BatchResult, LoadResult
from geosparql_loader.store.client import SparqlStoreClient
from geosparql_loader.store.errors import StoreRequestError, classify_store_error
from geosparql_loader.store.targets import DefaultGraphTarget, build_update, target_from_config

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence
    from types import TracebackType

    from geosparql_loader.core.config import PipelineConfig
    from geosparql_loader.models.triple import RDFTriple
    from geosparql_loader.store.targets import StoreTarget

logger = logging.getLogger("geosparql_loader.activities.load_triples")

# Sentinel returned by the count query when the store cannot be queried.
COUNT_UNAVAILABLE = -1


# ---------------------------------------------------------------------------
# Checkpoint arithmetic
# ---------------------------------------------------------------------------


def restart_feature_index(
    batch_index: int,
    batch_size: int,
    *,
    feature_offset: int = 0,
    feature_triple_offsets: Sequence[int] | None = None,
    triples_per_feature: float | None = None,
) -> int:
    """Index of the first input feature whose triples fall in a batch.

    Args:
        batch_index: Zero-based index of the failed batch.
        batch_size: Triples per batch.
        feature_offset: Global index of the first feature in this load.
        feature_triple_offsets: Start triple index of each feature in the
            load (non-decreasing).  Gives an exact answer.
        triples_per_feature: Average ratio.  Gives an estimate.

    Returns:
        A global feature index suitable for ``--skip-features``.
    """
    first_triple = batch_index * batch_size
    if feature_triple_offsets:
        position = bisect.bisect_right(feature_triple_offsets, first_triple) - 1
        return feature_offset + max(position, 0)
    if triples_per_feature and triples_per_feature > 0:
        return feature_offset + math.floor(first_triple / triples_per_feature)
    return feature_offset


# ---------------------------------------------------------------------------
# Loader
# ---------------------------------------------------------------------------


class BatchLoader:
    """Uploads triples in ordered batches with retry and failure classification.

    Args:
        client: Store client; may be ``None`` only for dry runs.
        target: Store target variant selecting the update serialisation.
        batch_size: Maximum triples per request.
        max_retries: Retries per batch after the first attempt.
        retry_base_delay_s: Backoff base in seconds.
        retry_max_jitter_s: Upper bound of uniform jitter in seconds.
        inter_batch_delay_s: Pause between consecutive batches in seconds.
        dry_run: Count and log, but never call the store.
        log: Logger to use; defaults to this module's logger.
        sleep: Sleep function (injectable for tests).
        jitter: ``(low, high) -> float`` random source (injectable for tests).
    """

    def __init__(
        self,
        client: SparqlStoreClient | None,
        target: StoreTarget | None = None,
        *,
        batch_size: int = DEFAULT_BATCH_SIZE,
        max_retries: int = DEFAULT_MAX_RETRIES,
        retry_base_delay_s: float = DEFAULT_RETRY_BASE_DELAY_S,
        retry_max_jitter_s: float = DEFAULT_RETRY_MAX_JITTER_S,
        inter_batch_delay_s: float = DEFAULT_INTER_BATCH_DELAY_S,
        dry_run: bool = False,
        log: logging.Logger | None = None,
        sleep: Callable[[float], None] = time.sleep,
        jitter: Callable[[float, float], float] = random.uniform,
    ) -> None:
        if batch_size <= 0:
            msg = f"batch_size must be > 0, got {batch_size}"
            raise ValueError(msg)
        if max_retries < 0:
            msg = f"max_retries must be >= 0, got {max_retries}"
            raise ValueError(msg)
        if client is None and not dry_run:
            msg = "A store client is required unless dry_run is set"
            raise ValueError(msg)

        self.client = client
        self.target = target or DefaultGraphTarget()
        self.batch_size = batch_size
        self.max_retries = max_retries
        self.retry_base_delay_s = retry_base_delay_s
        self.retry_max_jitter_s = retry_max_jitter_s
        self.inter_batch_delay_s = inter_batch_delay_s
        self.dry_run = dry_run
        self._log = log or logger
        self._sleep = sleep
        self._jitter = jitter

    @classmethod
    def from_config(
        cls,
        config: PipelineConfig,
        *,
        client: SparqlStoreClient | None = None,
        log: logging.Logger | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> BatchLoader:
        """Build a loader (and, unless given, its store client) from config."""
        if client is None:
            client = SparqlStoreClient(
                config.rdf4j_endpoint,
                config.repository_id,
                timeout_s=config.request_timeout_s,
                log=log,
            )
        return cls(
            client,
            target_from_config(config),
            batch_size=config.batch_size,
            max_retries=config.max_retries,
            retry_base_delay_s=config.retry_base_delay_s,
            retry_max_jitter_s=config.retry_max_jitter_s,
            inter_batch_delay_s=config.inter_batch_delay_s,
            dry_run=config.dry_run,
            log=log,
            sleep=sleep,
        )

    def close(self) -> None:
        """Close the store client."""
        if self.client is not None:
            self.client.close()

    def __enter__(self) -> BatchLoader:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Load
    # ------------------------------------------------------------------

    def plan_batches(self, triples: Sequence[RDFTriple]) -> list[Sequence[RDFTriple]]:
        """Contiguous slices of at most ``batch_size`` triples, in order."""
        return [
            triples[start : start + self.batch_size]
            for start in range(0, len(triples), self.batch_size)
        ]

    def load(
        self,
        triples: Sequence[RDFTriple],
        *,
        feature_offset: int = 0,
        feature_triple_offsets: Sequence[int] | None = None,
        triples_per_feature: float | None = None,
    ) -> LoadResult:
        """Upload *triples* in order and return the terminal ``LoadResult``.

        Args:
            triples: Triples in generation order.
            feature_offset: Global index of the first input feature
                represented in *triples* (for restart guidance).
            feature_triple_offsets: Optional start triple index per feature.
            triples_per_feature: Optional average ratio when offsets are unknown.
        """
        start_time = time.monotonic()
        batches = self.plan_batches(triples)
        total_batches = len(batches)

        self._log.info(
            "Load started | triples=%d | batches=%d | batch_size=%d | target=%s | dry_run=%s",
            len(triples),
            total_batches,
            self.batch_size,
            self.target.name,
            self.dry_run,
        )

        results: list[BatchResult] = []
        errors: list[str] = []
        aborted = False
        skipped = 0

        for index, batch in enumerate(batches):
            if index > 0 and self.inter_batch_delay_s > 0 and not self.dry_run:
                self._sleep(self.inter_batch_delay_s)

            checkpoint = restart_feature_index(
                index,
                self.batch_size,
                feature_offset=feature_offset,
                feature_triple_offsets=feature_triple_offsets,
                triples_per_feature=triples_per_feature,
            )
            result, critical = self._run_batch(index, batch, checkpoint)

            if result.success:
                self._log.info(
                    "Batch uploaded | batch=%d/%d | triples=%d | time=%.2fs | attempts=%d",
                    index + 1,
                    total_batches,
                    result.triples_count,
                    result.execution_time_s,
                    result.attempts,
                )
                results.append(result)
                continue

            if critical:
                skipped = total_batches - index - 1
                aborted = True
                result = dataclasses.replace(
                    result,
                    error=(
                        f"{result.error} (critical: load aborted, "
                        f"{skipped} remaining batches not attempted)"
                    ),
                )
            results.append(result)
            errors.append(result.error)

            self._log.error(
                "Restart guidance | batch=%d/%d | resume with --skip-features %d "
                "(skip %d features; best-effort)",
                index + 1,
                total_batches,
                checkpoint,
                checkpoint,
            )
            if aborted:
                self._log.critical(
                    "Load aborted on critical error | batch=%d/%d | skipped_batches=%d | error=%s",
                    index + 1,
                    total_batches,
                    skipped,
                    result.error,
                )
                break

        load_result = _summarise(
            results,
            errors,
            total_batches=total_batches,
            total_time_s=time.monotonic() - start_time,
            aborted=aborted,
            skipped=skipped,
            dry_run=self.dry_run,
        )
        self._log.info(
            "Load completed | triples=%d | batches=%d | failed=%d | aborted=%s | "
            "total_time=%.2fs | avg_batch_time=%.2fs",
            load_result.total_triples,
            load_result.total_batches,
            load_result.failed_batches,
            load_result.aborted,
            load_result.total_time_s,
            load_result.average_batch_time_s,
        )
        return load_result

    def retry_delay(self, attempt: int) -> float:
        """Backoff before retrying after failed *attempt* (1-based), in seconds."""
        return self.retry_base_delay_s * 2 ** (attempt - 1) + self._jitter(
            0.0, self.retry_max_jitter_s
        )

    def _run_batch(
        self,
        index: int,
        batch: Sequence[RDFTriple],
        checkpoint: int,
    ) -> tuple[BatchResult, bool]:
        """Run one batch through its retry loop; return ``(result, critical)``."""
        if self.dry_run:
            self._log.info(
                "Dry run: would upload batch | batch=%d | triples=%d", index + 1, len(batch)
            )
            return BatchResult(index, len(batch), 0.0, success=True, attempts=0), False

        update = build_update(self.target, batch)
        attempt = 1
        while True:
            started = time.monotonic()
            try:
                self.client.update(update)  # type: ignore[union-attr]
            except StoreRequestError as exc:
                elapsed = time.monotonic() - started
                failure = classify_store_error(exc)

                if failure.retryable and attempt <= self.max_retries:
                    delay = self.retry_delay(attempt)
                    self._log.warning(
                        "Batch attempt %d/%d failed (retryable) | batch=%d | "
                        "retry_in=%.2fs | error=%s",
                        attempt,
                        self.max_retries + 1,
                        index + 1,
                        delay,
                        exc,
                    )
                    self._sleep(delay)
                    attempt += 1
                    continue

                if failure.retryable:
                    self._log.error(
                        "Batch retries exhausted | batch=%d | attempts=%d | error=%s",
                        index + 1,
                        attempt,
                        exc,
                    )
                else:
                    self._log.error(
                        "Batch failed (non-retryable) | batch=%d | attempts=%d | "
                        "critical=%s | error=%s",
                        index + 1,
                        attempt,
                        failure.critical,
                        exc,
                    )
                result = BatchResult(
                    index,
                    len(batch),
                    elapsed,
                    success=False,
                    error=f"Batch {index + 1} failed: {exc}",
                    attempts=attempt,
                    restart_feature_index=checkpoint,
                )
                return result, failure.critical

            return (
                BatchResult(
                    index,
                    len(batch),
                    time.monotonic() - started,
                    success=True,
                    attempts=attempt,
                ),
                False,
            )

    # ------------------------------------------------------------------
    # Health checks (best-effort, never raise)
    # ------------------------------------------------------------------

    def test_connection(self) -> bool:
        """Connectivity check; ``False`` when the store cannot be reached."""
        if self.client is None:
            self._log.warning("Connection test skipped | reason=no store client")
            return False
        try:
            has_data = self.client.ask()
        except StoreRequestError as exc:
            self._log.error(
                "Connection test failed | url=%s | error=%s", self.client.query_url, exc
            )
            return False
        self._log.info(
            "Connection test passed | url=%s | has_data=%s", self.client.query_url, has_data
        )
        return True

    def repository_triple_count(self) -> int:
        """Triple count; ``COUNT_UNAVAILABLE`` (-1) when the count cannot be read."""
        if self.client is None:
            return COUNT_UNAVAILABLE
        try:
            count = self.client.count_triples()
        except StoreRequestError as exc:
            self._log.warning("Triple count unavailable | error=%s", exc)
            return COUNT_UNAVAILABLE
        self._log.info("Repository triple count | triples=%d", count)
        return count


def _summarise(
    results: list[BatchResult],
    errors: list[str],
    *,
    total_batches: int,
    total_time_s: float,
    aborted: bool,
    skipped: int,
    dry_run: bool,
) -> LoadResult:
    succeeded = [r for r in results if r.success]
    checkpoints = [
        r.restart_feature_index
        for r in results
        if not r.success and r.restart_feature_index is not None
    ]
    average = sum(r.execution_time_s for r in succeeded) / len(succeeded) if succeeded else 0.0
    return LoadResult(
        total_triples=sum(r.triples_count for r in succeeded),
        total_batches=total_batches,
        total_time_s=total_time_s,
        average_batch_time_s=average,
        errors=tuple(errors),
        batch_results=tuple(results),
        aborted=aborted,
        skipped_batches=skipped,
        restart_feature_index=min(checkpoints) if checkpoints else None,
        dry_run=dry_run,
    )
