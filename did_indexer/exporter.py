"""
JSON persistence of extraction results.

Output layout (`domains.json` by default):

    {
      "metadata":   {"registryAddress": ..., "indexedAt": ..., "totalDomains": ...},
      "statistics": {"total": ..., "topLevel": ..., ...},
      "domains":    [{"id", "name", "did", "note", "allowSubdomain", "owner", "subdomains"}, ...]
    }
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from did_indexer.domain.models import ExtractionResult, Record
from did_indexer.errors import DecodeFailure
from did_indexer.utils.logging import get_logger
from did_indexer.utils.profiler import RunStats

log = get_logger(__name__)


def build_payload(result: ExtractionResult, run_stats: Optional[RunStats] = None) -> Dict[str, Any]:
    metadata: Dict[str, Any] = {
        "registryAddress": result.registry_address,
        "indexedAt": result.indexed_at.isoformat(),
        "totalDomains": len(result.records),
    }
    if run_stats is not None:
        metadata["durationSeconds"] = round(run_stats.duration_seconds, 2)
        metadata["peakRssBytes"] = run_stats.peak_rss_bytes
    return {
        "metadata": metadata,
        "statistics": result.statistics.model_dump(by_alias=True),
        "domains": [record.model_dump(by_alias=True) for record in result.records],
    }


def write_result(
    result: ExtractionResult,
    path: Path | str,
    run_stats: Optional[RunStats] = None,
) -> Path:
    """Write the result as indented UTF-8 JSON, creating parent directories."""
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    with target.open("w", encoding="utf-8") as f:
        json.dump(build_payload(result, run_stats), f, indent=2, ensure_ascii=False)

    log.info("Results persisted", extra={"path": str(target), "domains": len(result.records)})
    return target


def load_records(path: Path | str) -> List[Record]:
    """Read the `domains` list of a previously exported file."""
    source = Path(path)
    try:
        with source.open("r", encoding="utf-8") as f:
            payload = json.load(f)
        return [Record.model_validate(item) for item in payload["domains"]]
    except (json.JSONDecodeError, KeyError, TypeError, ValidationError) as exc:
        raise DecodeFailure(str(source), f"{type(exc).__name__}: {exc}") from exc


__all__ = ["build_payload", "load_records", "write_result"]
