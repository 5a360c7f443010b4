"""
Batching package: chunk scheduling, bounded concurrent execution and
whole-batch retry of aggregated calls.
"""

from did_indexer.batching.caller import RetryingCaller
from did_indexer.batching.scheduler import run_bounded, schedule_by_array, schedule_by_count

__all__ = [
    "RetryingCaller",
    "run_bounded",
    "schedule_by_array",
    "schedule_by_count",
]
