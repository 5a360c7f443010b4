from __future__ import annotations

import asyncio
import random

import pytest

from did_indexer.batching.scheduler import run_bounded, schedule_by_array, schedule_by_count
from did_indexer.domain.models import BatchRange
from did_indexer.errors import ConfigError

UNIT_COUNT = 10


def _flatten_ranges(ranges: list[BatchRange]) -> list[int]:
    return [value for batch in ranges for value in batch]


@pytest.mark.parametrize("total", [0, 1, 5, 7, 99, 100, 101])
@pytest.mark.parametrize("chunk_size", [1, 3, 10, 100])
def test_schedule_by_count_covers_range_exactly_once(total: int, chunk_size: int) -> None:
    ranges = schedule_by_count(total, chunk_size)

    assert _flatten_ranges(ranges) == list(range(total))
    for previous, current in zip(ranges, ranges[1:]):
        assert previous.end == current.start
    assert all(0 < len(batch) <= chunk_size for batch in ranges)
    if ranges and total % chunk_size:
        assert len(ranges[-1]) == total % chunk_size


def test_schedule_by_count_matches_expected_boundaries() -> None:
    assert schedule_by_count(10, 4) == [BatchRange(0, 4), BatchRange(4, 8), BatchRange(8, 10)]
    assert schedule_by_count(0, 4) == []


def test_schedule_by_array_slices_in_order() -> None:
    items = ["a", "b", "c", "d", "e"]
    assert schedule_by_array(items, 2) == [["a", "b"], ["c", "d"], ["e"]]
    assert schedule_by_array([], 2) == []


@pytest.mark.parametrize("chunk_size", [0, -1])
def test_schedulers_reject_non_positive_chunk_size(chunk_size: int) -> None:
    with pytest.raises(ConfigError):
        schedule_by_count(10, chunk_size)
    with pytest.raises(ConfigError):
        schedule_by_array([1, 2], chunk_size)


def test_schedule_by_count_rejects_negative_total() -> None:
    with pytest.raises(ConfigError):
        schedule_by_count(-1, 10)


@pytest.mark.asyncio
@pytest.mark.parametrize("concurrency", [1, 3, UNIT_COUNT])
async def test_run_bounded_preserves_input_order(concurrency: int) -> None:
    rng = random.Random(concurrency)
    delays = [rng.uniform(0, 0.01) for _ in range(UNIT_COUNT)]

    async def worker(unit: int) -> int:
        await asyncio.sleep(delays[unit])
        return unit * 10

    results = await run_bounded(list(range(UNIT_COUNT)), worker, concurrency)

    assert results == [unit * 10 for unit in range(UNIT_COUNT)]


@pytest.mark.asyncio
async def test_run_bounded_caps_units_in_flight() -> None:
    in_flight = 0
    peak = 0

    async def worker(unit: int) -> int:
        nonlocal in_flight, peak
        in_flight += 1
        peak = max(peak, in_flight)
        await asyncio.sleep(0.001)
        in_flight -= 1
        return unit

    await run_bounded(list(range(UNIT_COUNT)), worker, concurrency=3)

    assert peak == 3


@pytest.mark.asyncio
async def test_run_bounded_waits_for_whole_window_before_next() -> None:
    started: list[int] = []
    finished: list[int] = []

    async def worker(unit: int) -> int:
        started.append(unit)
        # unit 0 is the slow one in the first window
        await asyncio.sleep(0.02 if unit == 0 else 0)
        finished.append(unit)
        return unit

    await run_bounded([0, 1, 2, 3], worker, concurrency=2)

    assert started.index(2) > finished.index(0)
    assert started.index(3) > finished.index(0)


@pytest.mark.asyncio
async def test_run_bounded_fails_fast_and_skips_later_windows() -> None:
    started: list[int] = []

    async def worker(unit: int) -> int:
        started.append(unit)
        if unit == 4:
            raise RuntimeError("unit 4 exhausted its retries")
        return unit

    with pytest.raises(RuntimeError, match="unit 4"):
        await run_bounded(list(range(UNIT_COUNT)), worker, concurrency=3)

    # windows: [0,1,2] [3,4,5] [6,7,8] [9]; the failing window still settles
    assert sorted(started) == [0, 1, 2, 3, 4, 5]


@pytest.mark.asyncio
async def test_run_bounded_reports_weighted_progress_up_to_total() -> None:
    units = schedule_by_count(10, 4)
    seen: list[tuple[int, int]] = []

    async def worker(batch: BatchRange) -> list[int]:
        return list(batch)

    await run_bounded(
        units,
        worker,
        concurrency=2,
        on_progress=lambda done, total: seen.append((done, total)),
        weight=len,
    )

    processed = [done for done, _ in seen]
    assert len(seen) == len(units)
    assert processed == sorted(processed)
    assert all(total == 10 for _, total in seen)
    assert all(done <= 10 for done in processed)
    assert processed[-1] == 10


@pytest.mark.asyncio
async def test_run_bounded_handles_empty_input() -> None:
    async def worker(unit: int) -> int:
        raise AssertionError("never called")

    assert await run_bounded([], worker, concurrency=4) == []


@pytest.mark.asyncio
async def test_run_bounded_rejects_zero_concurrency() -> None:
    async def worker(unit: int) -> int:
        return unit

    with pytest.raises(ConfigError, match="concurrency"):
        await run_bounded([1], worker, concurrency=0)
