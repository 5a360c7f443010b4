"""
Run profiling for extraction jobs.

Records wall-clock duration and peak resident memory of an indexing run so the
CLI can report them and the exporter can stamp them into the dataset
metadata. Peak RSS is sampled on a background thread because the details
stage allocates in bursts.

Usage:
    from did_indexer.utils.profiler import track_run

    with track_run("index") as stats:
        result = run_indexer(config)

    print(stats.duration_seconds, stats.peak_rss_bytes)
"""

from __future__ import annotations

import contextlib
import threading
import time
from dataclasses import dataclass, field
from typing import Generator, Optional

import psutil


@dataclass
class RunStats:
    """
    Timing and memory measurements for one run.
    """

    label: str
    started_at: float = field(default=0.0)
    finished_at: float = field(default=0.0)
    duration_seconds: float = field(default=0.0)
    peak_rss_bytes: Optional[int] = field(default=None)


@contextlib.contextmanager
def track_run(label: str, sample_interval_ms: int = 100) -> Generator[RunStats, None, None]:
    """
    Context manager measuring duration and peak RSS of the enclosed block.

    Parameters
    ----------
    label : str
        Name of the measured run (e.g., "index").
    sample_interval_ms : int
        Interval between RSS samples.
    """
    stats = RunStats(label=label)
    process = psutil.Process()
    peak_rss = process.memory_info().rss
    stop_sampling = threading.Event()

    def _sample_memory() -> None:
        nonlocal peak_rss
        while not stop_sampling.is_set():
            try:
                peak_rss = max(peak_rss, process.memory_info().rss)
            except psutil.Error:
                return
            stop_sampling.wait(timeout=sample_interval_ms / 1000.0)

    sampler = threading.Thread(target=_sample_memory, name=f"rss-{label}", daemon=True)
    sampler.start()

    stats.started_at = time.perf_counter()
    try:
        yield stats
    finally:
        stats.finished_at = time.perf_counter()
        stats.duration_seconds = stats.finished_at - stats.started_at
        stop_sampling.set()
        sampler.join(timeout=1.0)
        stats.peak_rss_bytes = peak_rss or None


__all__ = ["RunStats", "track_run"]
