"""Pydantic run summary emitted at the end of a pipeline run.

This is the operator-facing record of a run: what was read, what was
generated, what reached the store and, if anything failed, where to
resume.  The CLI prints it as JSON via ``model_dump_json``.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

SCHEMA_VERSION = "load-summary-v1"


class FileSummary(BaseModel):
    """Per-file section of the run summary.

    Attributes:
        path: Source file path.
        data_type: Detected or configured dataset kind.
        features_read: Records consumed from the file (after skip/limit).
        transform_errors: Features that failed triple generation.
        zones: Aggregated zones produced (aggregated hazard mode only).
        triples_generated: Triples handed to the loader.
        triples_loaded: Triples in successful batches.
        batches: Planned batch count.
        errors: Failed batch messages.
        abandoned: Whether the file was abandoned after too many errors.
    """

    path: str
    data_type: str = ""
    features_read: int = 0
    transform_errors: int = 0
    zones: int = 0
    triples_generated: int = 0
    triples_loaded: int = 0
    batches: int = 0
    errors: list[str] = Field(default_factory=list)
    abandoned: bool = False


class PipelineSummary(BaseModel):
    """Whole-run summary.

    ``total_triples``, ``total_batches``, ``total_time_s``,
    ``average_batch_time_s`` and ``errors`` mirror the loader's
    ``LoadResult`` accumulated over every file.

    ``restart_skip_features`` is best-effort guidance: the smallest
    feature offset at which a failed batch began.  With per-feature
    triple offsets it is exact and a restart may only re-send triples
    that were already stored.  In aggregated hazard mode it is estimated
    from the average triples per feature; zones group features out of
    input order, so a restart there can also miss some unloaded zones
    and an earlier offset (or the file's first feature) is the safe
    choice.

    ``failure`` is the structured error payload of the exception that
    stopped the run, or ``None`` for a completed run.
    """

    schema_version: str = SCHEMA_VERSION
    files: list[FileSummary] = Field(default_factory=list)
    files_processed: int = 0
    features_processed: int = 0
    transform_errors: int = 0
    total_triples: int = 0
    total_batches: int = 0
    total_time_s: float = 0.0
    average_batch_time_s: float = 0.0
    errors: list[str] = Field(default_factory=list)
    aborted: bool = False
    restart_skip_features: int | None = None
    failure: dict[str, Any] | None = None
    dry_run: bool = False
