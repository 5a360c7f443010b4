"""
Retrying wrapper around the aggregated-call gateway.

An aggregated call is atomic from the pipeline's point of view: either every
payload in the batch returns a result or the whole batch is retried. There is
no per-payload retry. Backoff is linear (`backoff * attempt`), uncapped, and
implemented with tenacity's `wait_incrementing`.
"""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable, List, Optional, Sequence, TypeVar

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    retry_if_not_exception_type,
    stop_after_attempt,
    wait_incrementing,
)

from did_indexer.errors import CallFailure, ConfigError, DecodeFailure
from did_indexer.infrastructure.gateway import AggregatedCallGateway
from did_indexer.utils.logging import get_logger

log = get_logger(__name__)

T = TypeVar("T")


class RetryingCaller:
    """
    Bounded-retry front for an `AggregatedCallGateway`.

    Parameters
    ----------
    gateway : AggregatedCallGateway
        Transport executing the aggregated calls.
    max_attempts : int
        Total attempts per call, including the first one (>= 1).
    backoff_seconds : float
        Base delay `b`; the sleep after failed attempt `n` is `b * n`.
    attempt_timeout : float | None
        Wall-clock bound per attempt. A timed-out attempt counts as a failure.
    sleep : callable
        Awaitable sleep used between attempts (injectable for tests).
    """

    def __init__(
        self,
        gateway: AggregatedCallGateway,
        max_attempts: int = 3,
        backoff_seconds: float = 1.0,
        attempt_timeout: Optional[float] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        if max_attempts < 1:
            raise ConfigError(f"max_attempts must be >= 1, got {max_attempts}")
        if backoff_seconds < 0:
            raise ConfigError(f"backoff_seconds must be >= 0, got {backoff_seconds}")
        self._gateway = gateway
        self.max_attempts = max_attempts
        self.backoff_seconds = backoff_seconds
        self.attempt_timeout = attempt_timeout
        self._sleep = sleep

    async def call(self, payloads: Sequence[bytes], label: Optional[str] = None) -> List[bytes]:
        """
        Execute one aggregated call, retrying the whole batch on failure.

        Raises
        ------
        CallFailure
            When every attempt failed; carries the attempt count and last cause.
        DecodeFailure
            Propagated unchanged; malformed output is not retried.
        """
        batch = list(payloads)
        results = await self._run(lambda: self._gateway.execute_aggregated(batch), label)
        if len(results) != len(batch):
            raise DecodeFailure(
                "aggregated call",
                f"expected {len(batch)} results, got {len(results)}"
                + (f" for batch {label}" if label else ""),
            )
        return results

    async def read(self, payload: bytes, label: Optional[str] = None) -> bytes:
        """Execute one plain read call under the same retry policy."""
        return await self._run(lambda: self._gateway.read(payload), label)

    async def _run(self, operation: Callable[[], Awaitable[T]], label: Optional[str]) -> T:
        attempts = 0

        async def attempt() -> T:
            nonlocal attempts
            attempts += 1
            if self.attempt_timeout is None:
                return await operation()
            return await asyncio.wait_for(operation(), timeout=self.attempt_timeout)

        def log_retry(retry_state: RetryCallState) -> None:
            exc = retry_state.outcome.exception() if retry_state.outcome else None
            delay = retry_state.next_action.sleep if retry_state.next_action else 0.0
            log.warning(
                f"[RETRY] Attempt {retry_state.attempt_number}/{self.max_attempts} failed"
                f"{' for batch ' + label if label else ''}, retrying in {delay:.1f}s",
                extra={
                    "attempt": retry_state.attempt_number,
                    "max_attempts": self.max_attempts,
                    "batch": label,
                    "delay_seconds": delay,
                    "error": repr(exc),
                },
            )

        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_incrementing(start=self.backoff_seconds, increment=self.backoff_seconds),
            retry=(
                retry_if_exception_type(Exception) & retry_if_not_exception_type(DecodeFailure)
            ),
            before_sleep=log_retry,
            sleep=self._sleep,
            reraise=True,
        )
        try:
            return await retrying(attempt)
        except DecodeFailure:
            raise
        except Exception as exc:
            log.error(
                f"[CALL FAILED] Giving up after {attempts} attempt(s)"
                f"{' for batch ' + label if label else ''}",
                extra={"attempts": attempts, "batch": label, "error": repr(exc)},
            )
            raise CallFailure(attempts, exc, batch=label) from exc


__all__ = ["RetryingCaller"]
