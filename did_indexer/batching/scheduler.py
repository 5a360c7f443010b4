"""
Batch scheduling for aggregated calls.

Splits work into fixed-size chunks (index ranges over a count, or slices of an
array) and drives them through an async worker under a concurrency limit.

Execution is windowed: units are grouped into consecutive windows of
`concurrency` units, every unit of a window is dispatched together, and the
next window starts only once the whole window has settled. A slow unit
therefore delays the next window.
"""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, List, Optional, Sequence, TypeVar

from did_indexer.domain.models import BatchRange
from did_indexer.errors import ConfigError
from did_indexer.utils.logging import get_logger

log = get_logger(__name__)

T = TypeVar("T")
U = TypeVar("U")
R = TypeVar("R")

ProgressCallback = Callable[[int, int], None]


def _check_chunk_size(chunk_size: int) -> None:
    if chunk_size < 1:
        raise ConfigError(f"chunk_size must be >= 1, got {chunk_size}")


def schedule_by_count(total: int, chunk_size: int) -> List[BatchRange]:
    """
    Cover `[0, total)` with contiguous ranges of at most `chunk_size` indexes.

    The last range is shorter when `total` is not a multiple of `chunk_size`.
    """
    _check_chunk_size(chunk_size)
    if total < 0:
        raise ConfigError(f"total must be >= 0, got {total}")
    return [
        BatchRange(start=start, end=min(start + chunk_size, total))
        for start in range(0, total, chunk_size)
    ]


def schedule_by_array(items: Sequence[T], chunk_size: int) -> List[List[T]]:
    """Split `items` into consecutive slices of at most `chunk_size` elements."""
    _check_chunk_size(chunk_size)
    return [list(items[start : start + chunk_size]) for start in range(0, len(items), chunk_size)]


async def run_bounded(
    units: Sequence[U],
    worker: Callable[[U], Awaitable[R]],
    concurrency: int,
    on_progress: Optional[ProgressCallback] = None,
    weight: Optional[Callable[[U], int]] = None,
) -> List[R]:
    """
    Run `worker` over `units`, at most `concurrency` at a time, preserving order.

    Parameters
    ----------
    units : sequence
        Work units (batch ranges, identifier slices, ...).
    worker : async callable
        Produces one result per unit.
    concurrency : int
        Window size (>= 1).
    on_progress : callable | None
        Called as `on_progress(processed, total)` after each unit succeeds.
    weight : callable | None
        Size of a unit for progress accounting; defaults to 1 per unit.

    Returns
    -------
    list
        Results in input order.

    Raises
    ------
    Exception
        The failure of the first failed unit (in input order) of the first
        window containing a failure. Results of that window are discarded and
        later windows never start.
    """
    if concurrency < 1:
        raise ConfigError(f"concurrency must be >= 1, got {concurrency}")

    measure = weight or (lambda _unit: 1)
    total = sum(measure(unit) for unit in units)
    processed = 0
    results: List[R] = []

    async def run_unit(unit: U) -> R:
        nonlocal processed
        result = await worker(unit)
        processed += measure(unit)
        if on_progress is not None:
            on_progress(processed, total)
        return result

    for window_start in range(0, len(units), concurrency):
        window = units[window_start : window_start + concurrency]
        outcomes = await asyncio.gather(*(run_unit(unit) for unit in window), return_exceptions=True)
        for offset, outcome in enumerate(outcomes):
            if isinstance(outcome, BaseException):
                log.debug(
                    "Window failed; abandoning remaining units",
                    extra={
                        "failed_unit": window_start + offset,
                        "units": len(units),
                        "error": repr(outcome),
                    },
                )
                raise outcome
        results.extend(outcomes)  # type: ignore[arg-type]

    return results


__all__ = ["ProgressCallback", "run_bounded", "schedule_by_array", "schedule_by_count"]
