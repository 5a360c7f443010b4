"""Derived views over an extracted record set."""

from __future__ import annotations

from typing import Iterable, List, Sequence

from did_indexer.domain.models import Record, Statistics


def get_statistics(records: Sequence[Record]) -> Statistics:
    """Counts by top-level vs subdomain, DID presence and subdomain permission."""
    subdomains = sum(1 for record in records if record.is_subdomain)
    return Statistics(
        total=len(records),
        top_level=len(records) - subdomains,
        subdomains=subdomains,
        with_did=sum(1 for record in records if record.decentralized_id),
        allowing_subdomains=sum(1 for record in records if record.allows_subdomain),
    )


def unique_notes(records: Iterable[Record]) -> List[str]:
    """Distinct note values, in the order they first appear."""
    return list(dict.fromkeys(record.note for record in records))


__all__ = ["get_statistics", "unique_notes"]
