"""Feature source: stream records from a vector file with fiona.

Any OGR-readable vector format works (GeoJSON, Shapefile, GeoPackage).
Records are yielded lazily, in file order, as ``SourceFeature`` objects
carrying a plain GeoJSON geometry mapping and a flat attribute dict.

A record whose geometry is missing or cannot be interpreted is logged
and skipped; its index is still consumed so that feature indices always
match record positions in the file.  Failing to open the file, or an OGR
error partway through it, is an input error for the whole file.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING

import fiona
from fiona.errors import FionaError
from shapely.geometry import mapping, shape

from geosparql_loader.core.exceptions import InputError
from geosparql_loader.core.geometry import GEOMETRY_ERRORS
from geosparql_loader.models.feature import SourceFeature

if TYPE_CHECKING:
    from collections.abc import Iterator

logger = logging.getLogger("geosparql_loader.activities.read_features")


class FeatureReadError(InputError):
    """Raised when a source file cannot be opened or iterated."""

    default_stage = "read_features"
    default_code = "FEATURE_READ_FAILED"


def iter_source_features(
    path: str | Path,
    *,
    log: logging.Logger | None = None,
) -> Iterator[SourceFeature]:
    """Yield the features of *path* in record order.

    Raises:
        FeatureReadError: If the file does not exist, OGR cannot open it
            or a record cannot be read.
    """
    log = log or logger
    source = Path(path)
    if not source.is_file():
        msg = f"Source file not found: {source}"
        raise FeatureReadError(msg)

    try:
        collection = fiona.open(str(source))
    except (FionaError, OSError) as exc:
        msg = f"Cannot open source file {source}: {exc}"
        raise FeatureReadError(msg) from exc

    skipped = 0
    with collection:
        log.info(
            "Reading features | file=%s | driver=%s | records=%s",
            source.name,
            collection.driver,
            _record_count(collection),
        )
        for index, record in _records(collection, source):
            geometry = _geometry_mapping(record.geometry)
            if geometry is None:
                skipped += 1
                log.warning(
                    "Skipping record without usable geometry | file=%s | index=%d",
                    source.name,
                    index,
                )
                continue
            yield SourceFeature(
                properties=dict(record.properties or {}),
                geometry=geometry,
                source_file=str(source),
                feature_index=index,
            )

    if skipped:
        log.info("Records skipped | file=%s | skipped=%d", source.name, skipped)


def _records(collection: fiona.Collection, source: Path) -> Iterator[tuple[int, object]]:
    """Enumerate records; OGR failures mid-file become ``FeatureReadError``."""
    records = iter(collection)
    index = 0
    while True:
        try:
            record = next(records)
        except StopIteration:
            return
        except Exception as exc:
            msg = f"Cannot read record {index} of {source}: {exc}"
            raise FeatureReadError(msg) from exc
        yield index, record
        index += 1


def _geometry_mapping(geometry: object) -> dict[str, object] | None:
    if geometry is None:
        return None
    try:
        return dict(mapping(shape(geometry)))
    except (*GEOMETRY_ERRORS, AttributeError, KeyError):
        return None


def _record_count(collection: fiona.Collection) -> int | str:
    try:
        return len(collection)
    except (TypeError, FionaError):
        return "unknown"
