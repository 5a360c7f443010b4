"""
Domain models for the DID registry indexer.

Defines the record schema extracted from the registry contract, the batch
descriptor used by the scheduler, progress notifications, pipeline states, and
the final extraction result. JSON field names (aliases) follow the layout of
the exported `domains.json` dataset.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import List, Tuple

from pydantic import BaseModel, Field

_ALIASED = {
    "frozen": True,
    "populate_by_name": True,
    "arbitrary_types_allowed": False,
}


class Record(BaseModel):
    """
    One registry entry, identified by its unique dot-separated name.

    The model is frozen; only `subdomain_names` is filled in place, once, by
    the relationship builder after retrieval completes.
    """

    id: str = Field(..., description="Token id, string-encoded integer.")
    name: str = Field(..., description="Hierarchical domain name, e.g. 'pay.alice'.")
    decentralized_id: str = Field("", alias="did", description="DID document reference.")
    note: str = Field("", description="Free-text note; not unique.")
    allows_subdomain: bool = Field(False, alias="allowSubdomain")
    owner: str = Field(..., description="Lowercase owner address.")
    subdomain_names: List[str] = Field(default_factory=list, alias="subdomains")

    model_config = _ALIASED

    @property
    def is_subdomain(self) -> bool:
        return "." in self.name


@dataclass(frozen=True)
class BatchRange:
    """Contiguous index range `[start, end)` dispatched as one aggregated call."""

    start: int
    end: int

    def __len__(self) -> int:
        return self.end - self.start

    def __iter__(self):
        return iter(range(self.start, self.end))

    def __str__(self) -> str:
        return f"[{self.start}, {self.end})"


class Stage(str, Enum):
    IDENTIFIERS = "identifiers"
    DETAILS = "details"
    RELATIONSHIPS = "relationships"
    COMPLETE = "complete"


class PipelineState(str, Enum):
    START = "start"
    FETCHING_IDENTIFIERS = "fetching_identifiers"
    FETCHING_DETAILS = "fetching_details"
    BUILDING_RELATIONSHIPS = "building_relationships"
    COMPLETE = "complete"
    FAILED = "failed"


class ProgressEvent(BaseModel):
    """Best-effort progress notification handed to the caller's observer."""

    stage: Stage
    current: int
    total: int
    percentage: int

    model_config = {"frozen": True}


class Statistics(BaseModel):
    total: int = 0
    top_level: int = Field(0, alias="topLevel")
    subdomains: int = 0
    with_did: int = Field(0, alias="withDID")
    allowing_subdomains: int = Field(0, alias="allowingSubdomains")

    model_config = _ALIASED


class ExtractionResult(BaseModel):
    """
    Records of one run, in registry enumeration order, plus derived statistics.
    """

    registry_address: str
    indexed_at: datetime
    records: Tuple[Record, ...]
    statistics: Statistics

    model_config = {"frozen": True}

    def __len__(self) -> int:
        return len(self.records)


__all__ = [
    "BatchRange",
    "ExtractionResult",
    "PipelineState",
    "ProgressEvent",
    "Record",
    "Stage",
    "Statistics",
]
