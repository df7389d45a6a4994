"""Data models and schemas.

Defines the data structures used throughout the pipeline:
- SourceFeature / RawHazardFeature: Input records, before and after classification
- SpatialCluster / AggregatedZone: Hazard aggregation intermediates and output
- RDFTriple / TransformationResult: Generated triples
- BatchResult / LoadResult: Batch loader outcomes
- PipelineSummary: Operator-facing run summary (pydantic)
"""

from geosparql_loader.models.feature import RawHazardFeature, SourceFeature
from geosparql_loader.models.load import BatchResult, LoadResult, ModelValidationError
from geosparql_loader.models.summary import FileSummary, PipelineSummary
from geosparql_loader.models.triple import RDFTriple, TransformationResult
from geosparql_loader.models.zone import AggregatedZone, SpatialCluster

__all__ = [
    "AggregatedZone",
    "BatchResult",
    "FileSummary",
    "LoadResult",
    "ModelValidationError",
    "PipelineSummary",
    "RDFTriple",
    "RawHazardFeature",
    "SourceFeature",
    "SpatialCluster",
    "TransformationResult",
]
