"""
Utilities package for the DID registry indexer.

Exports shared helpers for logging, run profiling, and other cross-cutting
concerns. Keep this package lightweight and free of registry-specific logic.
"""

from did_indexer.utils.logging import configure_logging, get_logger
from did_indexer.utils.profiler import RunStats, track_run

__all__ = [
    "configure_logging",
    "get_logger",
    "RunStats",
    "track_run",
]
