"""
ABI codec for the registry contract's read functions.

Encodes call payloads (4-byte selector + ABI-encoded arguments) for the
functions the indexer needs and decodes their raw return data with eth_abi.
Decoding is pure; any malformed payload raises DecodeFailure, since it points
to an ABI mismatch rather than a transient fault.
"""

from __future__ import annotations

from typing import List, Sequence, Tuple

from eth_abi import decode, encode
from eth_abi.exceptions import DecodingError
from eth_utils import function_signature_to_4byte_selector

from did_indexer.errors import DecodeFailure

TOTAL_SUPPLY = "totalSupply()"
TOKEN_BY_INDEX = "tokenByIndex(uint256)"
GET_METADATA = "getMetadata(uint256)"
OWNER_OF = "ownerOf(uint256)"
MULTICALL = "multicall(bytes[])"

# getMetadata returns struct {string domain; string did; string notes; bool allowSubdomain}
METADATA_TYPE = "(string,string,string,bool)"

Metadata = Tuple[str, str, str, bool]


def selector(signature: str) -> bytes:
    return function_signature_to_4byte_selector(signature)


def _decode(signature: str, types: Sequence[str], raw: bytes) -> tuple:
    try:
        return decode(list(types), bytes(raw))
    except (DecodingError, TypeError, ValueError, OverflowError) as exc:
        raise DecodeFailure(signature, f"{type(exc).__name__}: {exc}") from exc


class RegistryCodec:
    """
    Encoder/decoder for the registry's read-only surface.

    Stateless; one instance can be shared by every concurrent worker.
    """

    def encode_total_supply(self) -> bytes:
        return selector(TOTAL_SUPPLY)

    def encode_token_by_index(self, index: int) -> bytes:
        return selector(TOKEN_BY_INDEX) + encode(["uint256"], [index])

    def encode_get_metadata(self, token_id: str) -> bytes:
        return selector(GET_METADATA) + encode(["uint256"], [int(token_id)])

    def encode_owner_of(self, token_id: str) -> bytes:
        return selector(OWNER_OF) + encode(["uint256"], [int(token_id)])

    def encode_multicall(self, payloads: Sequence[bytes]) -> bytes:
        return selector(MULTICALL) + encode(["bytes[]"], [list(payloads)])

    def decode_total_supply(self, raw: bytes) -> int:
        (value,) = _decode(TOTAL_SUPPLY, ["uint256"], raw)
        return int(value)

    def decode_identifier(self, raw: bytes) -> str:
        (value,) = _decode(TOKEN_BY_INDEX, ["uint256"], raw)
        return str(value)

    def decode_metadata(self, raw: bytes) -> Metadata:
        ((domain, did, notes, allow_subdomain),) = _decode(GET_METADATA, [METADATA_TYPE], raw)
        return domain, did, notes, bool(allow_subdomain)

    def decode_owner(self, raw: bytes) -> str:
        (owner,) = _decode(OWNER_OF, ["address"], raw)
        return owner.lower()

    def decode_multicall(self, raw: bytes, expected: int) -> List[bytes]:
        (results,) = _decode(MULTICALL, ["bytes[]"], raw)
        if len(results) != expected:
            raise DecodeFailure(
                MULTICALL, f"expected {expected} results, got {len(results)}"
            )
        return [bytes(result) for result in results]


__all__ = [
    "GET_METADATA",
    "MULTICALL",
    "Metadata",
    "OWNER_OF",
    "RegistryCodec",
    "TOKEN_BY_INDEX",
    "TOTAL_SUPPLY",
    "selector",
]
