"""
Aggregated-call gateway to the registry contract.

`AggregatedCallGateway` is the seam the pipeline depends on: execute many
encoded read calls in one round trip and return the raw results in call order.
`Web3MulticallGateway` implements it over JSON-RPC with web3's async provider,
routing the batch through the contract's own `multicall(bytes[])` as an
`eth_call`, so nothing is ever committed on chain.
"""

from __future__ import annotations

from typing import List, Optional, Protocol, Sequence, runtime_checkable

from web3 import AsyncHTTPProvider, AsyncWeb3

from did_indexer.infrastructure.codec import RegistryCodec
from did_indexer.utils.logging import get_logger

log = get_logger(__name__)


@runtime_checkable
class AggregatedCallGateway(Protocol):
    """
    Read-only access to the registry.

    Failures are reported as a single exception covering the whole batch.
    """

    async def execute_aggregated(self, payloads: Sequence[bytes]) -> List[bytes]:
        """Run every payload in one round trip; one raw result per payload, same order."""
        ...

    async def read(self, payload: bytes) -> bytes:
        """Run a single encoded read call."""
        ...

    async def aclose(self) -> None:
        """Release transport resources."""
        ...


class Web3MulticallGateway:
    """
    Gateway backed by `web3.AsyncWeb3` and the registry's `multicall`.
    """

    def __init__(
        self,
        endpoint: str,
        registry_address: str,
        codec: Optional[RegistryCodec] = None,
    ) -> None:
        self.endpoint = endpoint
        self.registry_address = AsyncWeb3.to_checksum_address(registry_address)
        self._codec = codec or RegistryCodec()
        self._w3 = AsyncWeb3(AsyncHTTPProvider(endpoint))

    async def _eth_call(self, data: bytes) -> bytes:
        raw = await self._w3.eth.call({"to": self.registry_address, "data": data})
        return bytes(raw)

    async def execute_aggregated(self, payloads: Sequence[bytes]) -> List[bytes]:
        raw = await self._eth_call(self._codec.encode_multicall(payloads))
        return self._codec.decode_multicall(raw, expected=len(payloads))

    async def read(self, payload: bytes) -> bytes:
        return await self._eth_call(payload)

    async def aclose(self) -> None:
        log.debug("Closing RPC provider", extra={"endpoint": self.endpoint})
        await self._w3.provider.disconnect()


__all__ = ["AggregatedCallGateway", "Web3MulticallGateway"]
