"""
Infrastructure package for the DID registry indexer.

Centralizes chain connectivity concerns (ABI codec, aggregated-call gateway).
Keep this layer focused on I/O and wire formats, decoupled from batching and
orchestration logic.
"""

from did_indexer.infrastructure.codec import RegistryCodec
from did_indexer.infrastructure.gateway import AggregatedCallGateway, Web3MulticallGateway

__all__ = [
    "AggregatedCallGateway",
    "RegistryCodec",
    "Web3MulticallGateway",
]
