"""Pipeline orchestrator: files -> features -> triples -> store.

Drives the conversion of one or more source files, strictly in order:

1. **Read** each file's features (``read_features``), applying the
   global ``skip_features`` / ``max_features`` window.  The window is
   counted over the concatenated feature stream of every file, so a
   restart checkpoint addresses the same stream on the next run.
2. **Detect** the dataset kind (configured, or from the first feature)
   and, for flood-hazard data, the hazard type.
3. **Transform**: aggregated hazard zones when aggregation is enabled,
   otherwise one feature at a time.  Feature-level input defects are
   counted and logged; a file whose error count exceeds
   ``max_transform_errors`` is abandoned and nothing from it is loaded.
4. **Load** the file's triples through the ``BatchLoader``.

A critical load failure stops the run: ``LoadAbortedError`` carries the
partial summary and the restart checkpoint.  Any other error raised while
a file is processed stops the run the same way, as ``PipelineFailedError``
with the first feature of that file as the restart point.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from geosparql_loader.activities.aggregate_hazards import aggregate_hazard_features
from geosparql_loader.activities.classify_features import (
    DATA_TYPE_FLOOD_HAZARD,
    HazardClassificationError,
    detect_data_type,
    detect_hazard_type,
)
from geosparql_loader.activities.generate_triples import (
    GeneratorOptions,
    feature_to_triples,
    zone_to_triples,
)
from geosparql_loader.activities.load_triples import COUNT_UNAVAILABLE, BatchLoader
from geosparql_loader.activities.read_features import FeatureReadError, iter_source_features
from geosparql_loader.core.exceptions import CriticalError, InputError
from geosparql_loader.core.geometry import GEOMETRY_ERRORS
from geosparql_loader.models.summary import FileSummary, PipelineSummary
from geosparql_loader.models.triple import TransformationResult

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Iterator, Sequence

    from geosparql_loader.core.config import PipelineConfig
    from geosparql_loader.models.feature import SourceFeature
    from geosparql_loader.models.load import LoadResult

    FeatureReader = Callable[..., Iterator[SourceFeature]]

logger = logging.getLogger("geosparql_loader.orchestrators.pipeline")

# Progress is logged every this many transformed features.
PROGRESS_LOG_INTERVAL = 1000


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


class StoreUnavailableError(CriticalError):
    """Raised when the pre-load connectivity test fails."""

    default_stage = "connection_test"
    default_code = "STORE_UNAVAILABLE"


class PipelineFailedError(CriticalError):
    """Raised when a run stops before every file was processed.

    Attributes:
        restart_skip_features: Best-effort ``--skip-features`` value.
        summary: Run summary up to and including the failed file.
    """

    default_stage = "pipeline"
    default_code = "PIPELINE_FAILED"

    def __init__(
        self,
        message: str,
        *,
        restart_skip_features: int | None,
        summary: PipelineSummary,
        correlation_id: str = "",
    ) -> None:
        self.restart_skip_features = restart_skip_features
        self.summary = summary
        super().__init__(message, correlation_id=correlation_id)


class LoadAbortedError(PipelineFailedError):
    """Raised after a critical batch failure has aborted the load."""

    default_stage = "load_triples"
    default_code = "LOAD_ABORTED"


# ---------------------------------------------------------------------------
# Global feature window
# ---------------------------------------------------------------------------


class FeatureWindow:
    """Skip/limit window over the concatenated feature stream.

    ``position`` is the global index of the next feature offered.
    """

    def __init__(self, skip: int = 0, limit: int = 0) -> None:
        self.skip = skip
        self.limit = limit
        self.position = 0
        self.admitted = 0

    @property
    def exhausted(self) -> bool:
        return self.limit > 0 and self.admitted >= self.limit

    def admit(self) -> bool:
        """Consume one feature; return whether it falls inside the window."""
        index = self.position
        self.position += 1
        if index < self.skip:
            return False
        self.admitted += 1
        return True

    def take(self, features: Iterable[SourceFeature]) -> tuple[int, list[SourceFeature]]:
        """Return ``(global_offset, admitted)`` for one file's features."""
        admitted: list[SourceFeature] = []
        offset = -1
        if self.exhausted:
            return self.position, admitted
        for feature in features:
            index = self.position
            if self.admit():
                if offset < 0:
                    offset = index
                admitted.append(feature)
                if self.exhausted:
                    break
        return (offset if offset >= 0 else self.position), admitted


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def run_pipeline(
    file_paths: Sequence[str],
    config: PipelineConfig,
    *,
    loader: BatchLoader | None = None,
    reader: FeatureReader = iter_source_features,
    test_connection: bool = False,
    log: logging.Logger | None = None,
) -> PipelineSummary:
    """Convert and load *file_paths* in order.

    Args:
        file_paths: Source files, processed sequentially.
        config: Validated pipeline configuration.
        loader: Batch loader; built from *config* (and closed afterwards)
            when omitted.
        reader: Feature source (injectable for tests).
        test_connection: Check the store (and log its triple count) first.
        log: Logger to use; defaults to this module's logger.

    Returns:
        The run summary.

    Raises:
        StoreUnavailableError: If *test_connection* is set and the check fails.
        LoadAbortedError: If a critical batch failure aborted the load.
        PipelineFailedError: If any other error stopped the run; chained
            to the original exception.
    """
    log = log or logger
    if loader is None:
        with BatchLoader.from_config(config, log=log) as owned:
            return _run(file_paths, config, owned, reader, test_connection, log)
    return _run(file_paths, config, loader, reader, test_connection, log)


def _run(
    file_paths: Sequence[str],
    config: PipelineConfig,
    loader: BatchLoader,
    reader: FeatureReader,
    test_connection: bool,
    log: logging.Logger,
) -> PipelineSummary:
    options = GeneratorOptions.from_config(config)
    window = FeatureWindow(config.skip_features, config.max_features)
    summary = PipelineSummary(dry_run=config.dry_run)

    log.info(
        "Pipeline started | files=%d | data_type=%s | aggregate=%s | batch_size=%d | "
        "skip_features=%d | max_features=%s | dry_run=%s",
        len(file_paths),
        config.data_type,
        config.aggregate_flood_zones,
        config.batch_size,
        config.skip_features,
        config.max_features or "unlimited",
        config.dry_run,
    )

    if test_connection:
        _check_connection(loader, log)

    successful_batches = 0
    batch_time_total = 0.0

    for file_number, path in enumerate(file_paths, start=1):
        if window.exhausted:
            log.info("Feature limit reached | max_features=%d", config.max_features)
            break
        log.info("Processing file | file=%d/%d | path=%s", file_number, len(file_paths), path)

        # Nothing from this file is known to be stored until process_file returns.
        file_start = max(window.position, config.skip_features)
        try:
            file_summary, load_result = process_file(
                path, config, options, loader, window, reader=reader, log=log
            )
        except Exception as exc:
            raise _failed(summary, path, file_start, exc, log) from exc

        summary.files.append(file_summary)
        summary.files_processed += 1
        summary.features_processed += file_summary.features_read
        summary.transform_errors += file_summary.transform_errors

        if load_result is not None:
            summary.total_triples += load_result.total_triples
            summary.total_batches += load_result.total_batches
            summary.total_time_s += load_result.total_time_s
            summary.errors.extend(load_result.errors)
            succeeded = [r for r in load_result.batch_results if r.success]
            successful_batches += len(succeeded)
            batch_time_total += sum(r.execution_time_s for r in succeeded)
            if load_result.restart_feature_index is not None:
                summary.restart_skip_features = _min_checkpoint(
                    summary.restart_skip_features, load_result.restart_feature_index
                )
        summary.average_batch_time_s = (
            batch_time_total / successful_batches if successful_batches else 0.0
        )

        if load_result is not None and load_result.aborted:
            summary.aborted = True
            msg = (
                f"Load aborted on a critical error while processing {path}; "
                f"resume with --skip-features {summary.restart_skip_features}"
            )
            log.critical(
                "Pipeline aborted | file=%s | restart_skip_features=%s",
                path,
                summary.restart_skip_features,
            )
            error = LoadAbortedError(
                msg,
                restart_skip_features=summary.restart_skip_features,
                summary=summary,
                correlation_id=path,
            )
            summary.failure = error.to_error_dict()
            raise error

    _log_summary(summary, log)
    return summary


def _failed(
    summary: PipelineSummary,
    path: str,
    file_start: int,
    exc: Exception,
    log: logging.Logger,
) -> PipelineFailedError:
    """Record an unexpected failure in *summary* and build the error to raise."""
    summary.aborted = True
    summary.restart_skip_features = _min_checkpoint(summary.restart_skip_features, file_start)
    detail = f"{type(exc).__name__}: {exc}"
    summary.files.append(FileSummary(path=str(path), errors=[detail], abandoned=True))
    summary.files_processed += 1
    summary.errors.append(f"Failed while processing {path}: {detail}")

    log.exception("Pipeline failed | file=%s | error=%s", path, detail)
    log.critical(
        "Restart guidance | resume with --skip-features %d (skip %d features; best-effort)",
        summary.restart_skip_features,
        summary.restart_skip_features,
    )
    error = PipelineFailedError(
        f"Pipeline failed while processing {path} ({detail}); "
        f"resume with --skip-features {summary.restart_skip_features}",
        restart_skip_features=summary.restart_skip_features,
        summary=summary,
        correlation_id=str(path),
    )
    summary.failure = error.to_error_dict()
    return error


def process_file(
    path: str,
    config: PipelineConfig,
    options: GeneratorOptions,
    loader: BatchLoader,
    window: FeatureWindow,
    *,
    reader: FeatureReader = iter_source_features,
    log: logging.Logger | None = None,
) -> tuple[FileSummary, LoadResult | None]:
    """Read, transform and load one file.

    Returns the file summary and the loader's result (``None`` when
    nothing was loaded: empty, unreadable or abandoned file).
    """
    log = log or logger
    file_summary = FileSummary(path=str(path))

    try:
        feature_offset, features = window.take(reader(path, log=log))
    except FeatureReadError as exc:
        log.error("File skipped | path=%s | error=%s", path, exc)
        file_summary.errors.append(str(exc))
        file_summary.abandoned = True
        return file_summary, None

    file_summary.features_read = len(features)
    if not features:
        log.warning("No features in window | path=%s", path)
        return file_summary, None

    data_type = config.data_type
    if data_type == "auto":
        data_type = detect_data_type(features[0].properties)
        log.info("Data type detected | path=%s | data_type=%s", path, data_type)
    file_summary.data_type = data_type

    hazard_type = ""
    if data_type == DATA_TYPE_FLOOD_HAZARD:
        try:
            hazard_type = detect_hazard_type(path, features[0].properties)
        except HazardClassificationError as exc:
            log.error("File skipped | path=%s | error=%s", path, exc)
            file_summary.errors.append(str(exc))
            file_summary.abandoned = True
            return file_summary, None
        log.info("Hazard type detected | path=%s | hazard_type=%s", path, hazard_type)

    if data_type == DATA_TYPE_FLOOD_HAZARD and config.aggregate_flood_zones:
        result, feature_triple_offsets = _transform_aggregated(
            features, hazard_type, config, options, file_summary, log
        )
    else:
        result, feature_triple_offsets = _transform_per_feature(
            features, data_type, hazard_type, config, options, file_summary, feature_offset, log
        )

    if file_summary.abandoned:
        return file_summary, None

    file_summary.triples_generated = len(result)
    if not result.triples:
        log.warning("No triples generated | path=%s", path)
        return file_summary, None

    load_result = loader.load(
        result.triples,
        feature_offset=feature_offset,
        feature_triple_offsets=feature_triple_offsets,
        triples_per_feature=len(result) / len(features),
    )
    file_summary.triples_loaded = load_result.total_triples
    file_summary.batches = load_result.total_batches
    file_summary.errors.extend(load_result.errors)

    log.log(
        logging.INFO if load_result.succeeded else logging.WARNING,
        "File completed | path=%s | features=%d | transform_errors=%d | zones=%d | "
        "triples=%d | loaded=%d | batches=%d | failed_batches=%d",
        path,
        file_summary.features_read,
        file_summary.transform_errors,
        file_summary.zones,
        file_summary.triples_generated,
        file_summary.triples_loaded,
        file_summary.batches,
        load_result.failed_batches,
    )
    return file_summary, load_result


# ---------------------------------------------------------------------------
# Transformation modes
# ---------------------------------------------------------------------------


def _transform_aggregated(
    features: list[SourceFeature],
    hazard_type: str,
    config: PipelineConfig,
    options: GeneratorOptions,
    file_summary: FileSummary,
    log: logging.Logger,
) -> tuple[TransformationResult, None]:
    zones = aggregate_hazard_features(
        features,
        hazard_type,
        min_rank=config.min_flood_depth_rank,
        max_features_per_cluster=config.max_features_per_cluster,
        enable_simplification=config.enable_simplification,
        simplification_tolerance=config.simplification_tolerance,
        log=log,
    )
    file_summary.zones = len(zones)

    result = TransformationResult()
    for zone in zones:
        try:
            result.extend(zone_to_triples(zone, options))
        except (InputError, *GEOMETRY_ERRORS) as exc:
            if _record_transform_error(file_summary, config, zone.classification_key, exc, log):
                break
    # Zones carry a variable number of triples; checkpoints use the average ratio.
    return result, None


def _transform_per_feature(
    features: list[SourceFeature],
    data_type: str,
    hazard_type: str,
    config: PipelineConfig,
    options: GeneratorOptions,
    file_summary: FileSummary,
    feature_offset: int,
    log: logging.Logger,
) -> tuple[TransformationResult, list[int]]:
    result = TransformationResult()
    offsets: list[int] = []
    for count, feature in enumerate(features, start=1):
        offsets.append(len(result))
        try:
            result.extend(feature_to_triples(feature, data_type, options, hazard_type=hazard_type))
        except (InputError, *GEOMETRY_ERRORS) as exc:
            if _record_transform_error(file_summary, config, feature.feature_index, exc, log):
                break
        if (feature_offset + count) % PROGRESS_LOG_INTERVAL == 0:
            log.info("Transform progress | features=%d", feature_offset + count)
    return result, offsets


def _record_transform_error(
    file_summary: FileSummary,
    config: PipelineConfig,
    item: object,
    exc: Exception,
    log: logging.Logger,
) -> bool:
    """Count one failed item; return ``True`` when the file must be abandoned."""
    file_summary.transform_errors += 1
    message = f"Failed to transform {item} from {file_summary.path}: {exc}"
    log.error("Transform failed | path=%s | item=%s | error=%s", file_summary.path, item, exc)
    file_summary.errors.append(message)

    if file_summary.transform_errors > config.max_transform_errors:
        file_summary.abandoned = True
        abandon = (
            f"Too many transformation errors ({file_summary.transform_errors}), "
            f"abandoning file {file_summary.path}"
        )
        log.error(
            "File abandoned | path=%s | transform_errors=%d | max_transform_errors=%d",
            file_summary.path,
            file_summary.transform_errors,
            config.max_transform_errors,
        )
        file_summary.errors.append(abandon)
        return True
    return False


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _check_connection(loader: BatchLoader, log: logging.Logger) -> None:
    log.info("Testing store connection")
    if not loader.test_connection():
        msg = "Failed to connect to the triple store"
        raise StoreUnavailableError(msg)
    count = loader.repository_triple_count()
    if count != COUNT_UNAVAILABLE:
        log.info("Repository currently contains %d triples", count)


def _min_checkpoint(current: int | None, candidate: int) -> int:
    return candidate if current is None else min(current, candidate)


def _log_summary(summary: PipelineSummary, log: logging.Logger) -> None:
    log.info(
        "Pipeline completed | files=%d | features=%d | transform_errors=%d | triples=%d | "
        "batches=%d | total_time=%.2fs | avg_batch_time=%.2fs | errors=%d | dry_run=%s",
        summary.files_processed,
        summary.features_processed,
        summary.transform_errors,
        summary.total_triples,
        summary.total_batches,
        summary.total_time_s,
        summary.average_batch_time_s,
        len(summary.errors),
        summary.dry_run,
    )
    if summary.transform_errors:
        log.warning(
            "Features failed transformation | count=%d", summary.transform_errors
        )
    if summary.restart_skip_features is not None:
        log.warning(
            "Restart guidance | resume with --skip-features %d (best-effort)",
            summary.restart_skip_features,
        )
