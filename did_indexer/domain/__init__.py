"""
Domain package for the DID registry indexer.

Exports the record schema and the value types shared by the batching layer,
the orchestrator and the exporter. Keep this package focused on data
definitions.
"""

from did_indexer.domain.models import (
    BatchRange,
    ExtractionResult,
    PipelineState,
    ProgressEvent,
    Record,
    Stage,
    Statistics,
)

__all__ = [
    "BatchRange",
    "ExtractionResult",
    "PipelineState",
    "ProgressEvent",
    "Record",
    "Stage",
    "Statistics",
]
