"""
Parent/subdomain linking across the flat record set.

A record named `pay.alice` is a subdomain of `alice`: the parent name is the
child's name with its first label removed. Linking is a pure in-memory pass
run once retrieval has finished.
"""

from __future__ import annotations

from typing import Dict, List, Optional

from did_indexer.domain.models import Record
from did_indexer.utils.logging import get_logger

log = get_logger(__name__)

SEPARATOR = "."


def parent_name(name: str) -> Optional[str]:
    """
    Name of the direct parent, or None for a top-level name.

    >>> parent_name("a.b.c")
    'b.c'
    >>> parent_name("a") is None
    True
    """
    labels = name.split(SEPARATOR)
    if len(labels) < 2:
        return None
    return SEPARATOR.join(labels[1:])


def _has_empty_label(name: str) -> bool:
    return any(label == "" for label in name.split(SEPARATOR))


def build_relationships(records: List[Record]) -> List[Record]:
    """
    Append every record's name to its parent's `subdomain_names`.

    Mutates the records in place and returns the same list. Running it again
    on an already linked set adds nothing. Subdomains keep retrieval order.
    Records whose parent is absent from the set stay unlinked. Names with an
    empty label are linked by the same rule and reported in one warning.
    """
    by_name: Dict[str, Record] = {record.name: record for record in records}
    orphans = 0
    malformed: List[str] = []

    for record in records:
        if SEPARATOR not in record.name:
            continue
        if _has_empty_label(record.name):
            malformed.append(record.name)
        parent = by_name.get(parent_name(record.name) or "")
        if parent is None:
            orphans += 1
            continue
        if record.name not in parent.subdomain_names:
            parent.subdomain_names.append(record.name)

    if malformed:
        log.warning(
            f"Found {len(malformed)} name(s) with empty labels",
            extra={"names": malformed[:20]},
        )
    log.debug(
        "Subdomain relationships built",
        extra={"records": len(records), "orphans": orphans},
    )
    return records


__all__ = ["build_relationships", "parent_name"]
