"""
Pytest configuration for the DID registry indexer.

Provides fixtures for:
- An in-memory registry gateway answering real ABI-encoded payloads
- Failure injection (transient and permanent) on aggregated calls
- A validated IndexerConfig with zero backoff for fast retries
"""

from __future__ import annotations

import asyncio
import os
from dataclasses import dataclass
from typing import List, Optional, Sequence

import pytest
from eth_abi import decode, encode

from did_indexer.config import IndexerConfig, Settings
from did_indexer.domain.models import Record
from did_indexer.infrastructure.codec import (
    GET_METADATA,
    METADATA_TYPE,
    OWNER_OF,
    TOKEN_BY_INDEX,
    TOTAL_SUPPLY,
    selector,
)

REGISTRY_ADDRESS = "0x5FbDB2315678afecb367f032d93F642f64180aa3"
OWNER_A = "0x70997970C51812dc3A010C7d01b50e0d17dc79C8"
OWNER_B = "0x3C44CdDdB6a900fa2b585dd299e03d12FA4293BC"


@dataclass(frozen=True)
class FakeDomain:
    token_id: int
    name: str
    did: str = ""
    note: str = ""
    allow_subdomain: bool = False
    owner: str = OWNER_A


class GatewayDown(ConnectionError):
    """Simulated transport failure."""


class FakeRegistryGateway:
    """
    In-memory registry answering `totalSupply`, `tokenByIndex`, `getMetadata`
    and `ownerOf` payloads exactly as the contract would ABI-encode them.

    `fail_first` makes the first N aggregated calls fail; `fail_always` makes
    every aggregated call fail. `in_flight_peak` records the highest number of
    concurrently running aggregated calls.
    """

    def __init__(
        self,
        domains: Sequence[FakeDomain],
        fail_first: int = 0,
        fail_always: bool = False,
        delay: float = 0.0,
    ) -> None:
        self.domains = list(domains)
        self._by_id = {domain.token_id: domain for domain in self.domains}
        self.fail_first = fail_first
        self.fail_always = fail_always
        self.delay = delay
        self.aggregated_calls: List[int] = []
        self.reads = 0
        self.failures = 0
        self.in_flight = 0
        self.in_flight_peak = 0
        self.closed = False

    def _answer(self, payload: bytes) -> bytes:
        head, body = payload[:4], payload[4:]
        if head == selector(TOTAL_SUPPLY):
            return encode(["uint256"], [len(self.domains)])
        (arg,) = decode(["uint256"], body)
        if head == selector(TOKEN_BY_INDEX):
            return encode(["uint256"], [self.domains[arg].token_id])
        domain = self._by_id[arg]
        if head == selector(GET_METADATA):
            return encode(
                [METADATA_TYPE],
                [(domain.name, domain.did, domain.note, domain.allow_subdomain)],
            )
        if head == selector(OWNER_OF):
            return encode(["address"], [domain.owner])
        raise AssertionError(f"unexpected selector {head.hex()}")

    async def execute_aggregated(self, payloads: Sequence[bytes]) -> List[bytes]:
        self.aggregated_calls.append(len(payloads))
        self.in_flight += 1
        self.in_flight_peak = max(self.in_flight_peak, self.in_flight)
        try:
            await asyncio.sleep(self.delay)
            if self.fail_always or self.failures < self.fail_first:
                self.failures += 1
                raise GatewayDown("rpc unavailable")
            return [self._answer(payload) for payload in payloads]
        finally:
            self.in_flight -= 1

    async def read(self, payload: bytes) -> bytes:
        self.reads += 1
        return self._answer(payload)

    async def aclose(self) -> None:
        self.closed = True


def make_domains(names: Sequence[str]) -> List[FakeDomain]:
    """Domains with token ids 1000, 1001, ... in the given order."""
    return [
        FakeDomain(
            token_id=1000 + index,
            name=name,
            did=f"did:example:{index}" if index % 2 == 0 else "",
            note="genesis" if index % 3 == 0 else "community",
            allow_subdomain="." not in name,
            owner=OWNER_A if index % 2 == 0 else OWNER_B,
        )
        for index, name in enumerate(names)
    ]


def make_record(
    name: str,
    did: str = "",
    allows_subdomain: bool = False,
    note: str = "",
    record_id: Optional[str] = None,
) -> Record:
    return Record(
        id=record_id or "1",
        name=name,
        decentralized_id=did,
        note=note,
        allows_subdomain=allows_subdomain,
        owner=OWNER_A.lower(),
    )


@pytest.fixture
def registry_domains() -> List[FakeDomain]:
    names = ["alice", "pay.alice", "bob", "vault.pay.alice", "carol", "x.ghost", "mail.bob"]
    return make_domains(names)


@pytest.fixture
def fake_gateway(registry_domains: List[FakeDomain]) -> FakeRegistryGateway:
    return FakeRegistryGateway(registry_domains)


@pytest.fixture
def indexer_config() -> IndexerConfig:
    return IndexerConfig.parse(
        endpoint="http://localhost:8545",
        registry_address=REGISTRY_ADDRESS,
        batch_size=4,
        concurrency=2,
        retry_attempts=3,
        retry_backoff_seconds=0.0,
    )


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    """
    Settings fixture with test-specific overrides.

    Can be overridden via environment variables in CI or local testing.
    """
    return Settings(
        rpc_url=os.getenv("RPC_URL", "http://localhost:8545"),
        contract_address=os.getenv("CONTRACT_ADDRESS", REGISTRY_ADDRESS),
        log_level="DEBUG",
    )
