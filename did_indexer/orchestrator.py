"""
Orchestrator for extracting the full contents of the DID registry.

Runs three stages in strict order:

1. identifiers   - `totalSupply()`, then `tokenByIndex(i)` for every index,
                   `batch_size` lookups per aggregated call
2. details       - `getMetadata(id)` + `ownerOf(id)` per identifier, packed
                   pairwise so a details call carries the same payload count
3. relationships - link subdomains to their parents (no network)

Usage (example from a script):
    from did_indexer.config import IndexerConfig
    from did_indexer.orchestrator import run_indexer

    config = IndexerConfig.from_settings(concurrency=3)
    result = run_indexer(config, on_progress=print)
    print(result.statistics)

Any failure aborts the run; there is no partial dataset. The caller re-issues
the whole extraction.
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, FrozenSet, List, Optional, Sequence

from did_indexer.analysis import get_statistics
from did_indexer.batching.caller import RetryingCaller
from did_indexer.batching.scheduler import run_bounded, schedule_by_array, schedule_by_count
from did_indexer.config import IndexerConfig
from did_indexer.domain.models import (
    BatchRange,
    ExtractionResult,
    PipelineState,
    ProgressEvent,
    Record,
    Stage,
)
from did_indexer.errors import DecodeFailure, IndexerError
from did_indexer.infrastructure.codec import RegistryCodec
from did_indexer.infrastructure.gateway import AggregatedCallGateway, Web3MulticallGateway
from did_indexer.relationships import build_relationships
from did_indexer.utils.logging import get_logger

log = get_logger(__name__)

ProgressObserver = Callable[[ProgressEvent], None]

_NEXT_STATE: Dict[PipelineState, FrozenSet[PipelineState]] = {
    PipelineState.START: frozenset({PipelineState.FETCHING_IDENTIFIERS}),
    PipelineState.FETCHING_IDENTIFIERS: frozenset({PipelineState.FETCHING_DETAILS}),
    PipelineState.FETCHING_DETAILS: frozenset({PipelineState.BUILDING_RELATIONSHIPS}),
    PipelineState.BUILDING_RELATIONSHIPS: frozenset({PipelineState.COMPLETE}),
    PipelineState.COMPLETE: frozenset(),
    PipelineState.FAILED: frozenset(),
}


def _percentage(current: int, total: int) -> int:
    """`current / total * 100` rounded half up; an empty stage counts as done."""
    if total <= 0:
        return 100
    return (current * 200 + total) // (2 * total)


class RegistryIndexer:
    """
    Batched, concurrency-bounded extraction of every registry record.

    The indexer owns the identifier list, the record list and the name index;
    concurrent workers only return values that are merged after each window.
    """

    def __init__(
        self,
        config: IndexerConfig,
        gateway: AggregatedCallGateway,
        codec: Optional[RegistryCodec] = None,
        on_progress: Optional[ProgressObserver] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self.config = config
        self._codec = codec or RegistryCodec()
        self._caller = RetryingCaller(
            gateway,
            max_attempts=config.retry_attempts,
            backoff_seconds=config.retry_backoff_seconds,
            attempt_timeout=config.attempt_timeout_seconds,
            sleep=sleep,
        )
        self._on_progress = on_progress
        self.state = PipelineState.START
        self.failure: Optional[BaseException] = None

    def _transition(self, target: PipelineState) -> None:
        if target not in _NEXT_STATE[self.state]:
            raise RuntimeError(f"Illegal pipeline transition {self.state.value} -> {target.value}")
        log.debug(f"[STATE] {self.state.value} -> {target.value}")
        self.state = target

    def _emit(self, stage: Stage, current: int, total: int) -> None:
        event = ProgressEvent(
            stage=stage, current=current, total=total, percentage=_percentage(current, total)
        )
        log.info(
            f"  Progress [{stage.value}]: {current}/{total} ({event.percentage}%)",
            extra={"stage": stage.value, "current": current, "total": total},
        )
        if self._on_progress is None:
            return
        try:
            self._on_progress(event)
        except Exception:  # noqa: BLE001
            log.warning("Progress observer raised; ignoring", exc_info=True)

    async def index_all(self) -> ExtractionResult:
        """
        Run the full pipeline and return the linked record set.

        Raises
        ------
        CallFailure
            An aggregated call kept failing; `stage` and `batch` say where.
        DecodeFailure
            Returned data did not match the registry ABI.
        """
        self.state = PipelineState.START
        self.failure = None
        log.info(
            "[INDEX START] Extracting registry",
            extra={
                "registry": self.config.registry_address,
                "batch_size": self.config.batch_size,
                "concurrency": self.config.concurrency,
                "retry_attempts": self.config.retry_attempts,
            },
        )
        try:
            self._transition(PipelineState.FETCHING_IDENTIFIERS)
            identifiers = await self._fetch_identifiers()

            self._transition(PipelineState.FETCHING_DETAILS)
            records = await self._fetch_details(identifiers)

            self._transition(PipelineState.BUILDING_RELATIONSHIPS)
            build_relationships(records)
            self._emit(Stage.RELATIONSHIPS, len(records), len(records))

            result = ExtractionResult(
                registry_address=self.config.registry_address,
                indexed_at=datetime.now(timezone.utc),
                records=tuple(records),
                statistics=get_statistics(records),
            )
            self._transition(PipelineState.COMPLETE)
        except IndexerError as exc:
            if exc.stage is None:
                exc.stage = self.state.value
            self._fail(exc)
            raise
        except BaseException as exc:
            self._fail(exc)
            raise

        self._emit(Stage.COMPLETE, len(records), len(records))
        log.info(
            f"[INDEX COMPLETE] {len(records)} records",
            extra=result.statistics.model_dump(),
        )
        return result

    def _fail(self, exc: BaseException) -> None:
        log.error(
            f"[INDEX FAILED] during {self.state.value}: {exc}",
            extra={"stage": self.state.value, "error_type": type(exc).__name__},
        )
        self.failure = exc
        self.state = PipelineState.FAILED

    async def _fetch_identifiers(self) -> List[str]:
        raw_total = await self._caller.read(self._codec.encode_total_supply(), label="totalSupply")
        total = self._codec.decode_total_supply(raw_total)
        log.info(f"[STAGE] identifiers: {total} records registered", extra={"total": total})

        async def fetch(batch: BatchRange) -> List[str]:
            payloads = [self._codec.encode_token_by_index(index) for index in batch]
            results = await self._caller.call(payloads, label=f"identifiers{batch}")
            return [self._codec.decode_identifier(raw) for raw in results]

        chunks = await run_bounded(
            schedule_by_count(total, self.config.batch_size),
            fetch,
            self.config.concurrency,
            on_progress=lambda current, stage_total: self._emit(
                Stage.IDENTIFIERS, current, stage_total
            ),
            weight=len,
        )
        identifiers = [identifier for chunk in chunks for identifier in chunk]
        if len(identifiers) != total:
            raise DecodeFailure(
                "tokenByIndex", f"expected {total} identifiers, got {len(identifiers)}"
            )
        return identifiers

    async def _fetch_details(self, identifiers: Sequence[str]) -> List[Record]:
        log.info(
            f"[STAGE] details: {len(identifiers)} records",
            extra={"total": len(identifiers), "chunk_size": self.config.detail_batch_size},
        )

        async def fetch(token_ids: List[str]) -> List[Record]:
            payloads: List[bytes] = []
            for token_id in token_ids:
                payloads.append(self._codec.encode_get_metadata(token_id))
                payloads.append(self._codec.encode_owner_of(token_id))
            results = await self._caller.call(
                payloads, label=f"details[{token_ids[0]}..{token_ids[-1]}]"
            )
            return self._zip_details(token_ids, results)

        chunks = await run_bounded(
            schedule_by_array(identifiers, self.config.detail_batch_size),
            fetch,
            self.config.concurrency,
            on_progress=lambda current, stage_total: self._emit(
                Stage.DETAILS, current, stage_total
            ),
            weight=len,
        )
        return [record for chunk in chunks for record in chunk]

    def _zip_details(self, token_ids: Sequence[str], results: Sequence[bytes]) -> List[Record]:
        # results[2k] is getMetadata, results[2k + 1] is ownerOf for token_ids[k]
        records: List[Record] = []
        for k, token_id in enumerate(token_ids):
            name, did, note, allow_subdomain = self._codec.decode_metadata(results[2 * k])
            records.append(
                Record(
                    id=token_id,
                    name=name,
                    decentralized_id=did,
                    note=note,
                    allows_subdomain=allow_subdomain,
                    owner=self._codec.decode_owner(results[2 * k + 1]),
                )
            )
        return records


async def index_registry(
    config: IndexerConfig,
    gateway: Optional[AggregatedCallGateway] = None,
    on_progress: Optional[ProgressObserver] = None,
) -> ExtractionResult:
    """
    Extract the registry, building (and closing) a web3 gateway unless one is given.
    """
    owned = gateway is None
    active = gateway or Web3MulticallGateway(config.endpoint, config.registry_address)
    try:
        return await RegistryIndexer(config, active, on_progress=on_progress).index_all()
    finally:
        if owned:
            await active.aclose()


def run_indexer(
    config: IndexerConfig,
    gateway: Optional[AggregatedCallGateway] = None,
    on_progress: Optional[ProgressObserver] = None,
) -> ExtractionResult:
    """
    Synchronous entry point for scripts and the CLI.

    Raises RuntimeError when called from a running event loop; await
    `index_registry` there instead.
    """
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        pass
    else:
        raise RuntimeError(
            "run_indexer() cannot be used from an async context; await index_registry() instead"
        )
    return asyncio.run(index_registry(config, gateway, on_progress))


__all__ = ["ProgressObserver", "RegistryIndexer", "index_registry", "run_indexer"]
