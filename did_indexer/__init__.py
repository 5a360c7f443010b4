"""
DID Registry Indexer - batched extraction of an on-chain domain registry.

Reads every record of the DID registry contract with as few network round
trips as possible:

- Packing many read calls into one aggregated `multicall`
- Running aggregated calls under a bounded concurrency window
- Retrying failed batches wholesale with linear backoff
- Rebuilding the domain/subdomain hierarchy from the flat result set

Results are returned in memory and can be exported as a JSON dataset.
"""

from __future__ import annotations

__version__ = "0.1.0"
__license__ = "MIT"

# Public API exports
from did_indexer.analysis import get_statistics, unique_notes
from did_indexer.config import IndexerConfig, Settings, get_settings
from did_indexer.domain.models import ExtractionResult, ProgressEvent, Record, Statistics
from did_indexer.errors import CallFailure, ConfigError, DecodeFailure, IndexerError
from did_indexer.orchestrator import RegistryIndexer, index_registry, run_indexer
from did_indexer.relationships import build_relationships
from did_indexer.utils.logging import configure_logging, get_logger

__all__ = [
    # Version info
    "__version__",
    "__license__",
    # Configuration
    "IndexerConfig",
    "Settings",
    "get_settings",
    # Orchestration
    "RegistryIndexer",
    "index_registry",
    "run_indexer",
    # Data model
    "ExtractionResult",
    "ProgressEvent",
    "Record",
    "Statistics",
    # Analysis
    "build_relationships",
    "get_statistics",
    "unique_notes",
    # Errors
    "CallFailure",
    "ConfigError",
    "DecodeFailure",
    "IndexerError",
    # Logging
    "configure_logging",
    "get_logger",
]
