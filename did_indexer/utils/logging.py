"""
Logging setup for the DID registry indexer.

Log records go to stderr so the statistics tables printed on stdout stay
clean. Two renderings:

- console: `time | LEVEL | logger | message`, for interactive runs
- json: one object per line with every `extra=` field promoted to a top-level
  key, for scheduled jobs whose output is shipped to a log store

Usage:
    from did_indexer.utils.logging import configure_logging, get_logger

    configure_logging(level="INFO", json_logs=True)
    log = get_logger(__name__)
    log.warning("Retrying batch", extra={"batch": "[0, 100)", "attempt": 2})
"""

from __future__ import annotations

import json
import logging
import logging.config
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, Optional

# Attributes every LogRecord carries; anything else arrived through `extra=`.
_RESERVED_ATTRS = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", (), None)).keys()
) | {"message", "asctime", "extra"}

# Transport libraries that log every request at DEBUG.
NOISY_LOGGERS = ("web3", "urllib3", "aiohttp")


def _record_to_dict(record: logging.LogRecord) -> Dict[str, Any]:
    payload: Dict[str, Any] = {
        "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
        "level": record.levelname,
        "logger": record.name,
        "message": record.getMessage(),
    }
    payload.update(
        (key, value)
        for key, value in vars(record).items()
        if key not in _RESERVED_ATTRS and not key.startswith("_")
    )
    # `extra={"extra": {...}}` callers nest their fields one level down.
    nested = getattr(record, "extra", None)
    if isinstance(nested, dict):
        payload.update(nested)
    if record.exc_info:
        payload["exc_info"] = logging.Formatter().formatException(record.exc_info)
    if record.stack_info:
        payload["stack_info"] = record.stack_info
    return payload


def _json_formatter(record: logging.LogRecord) -> str:
    """Render a log record as one JSON line; non-JSON values fall back to `str`."""
    return json.dumps(_record_to_dict(record), default=str)


class JsonFormatter(logging.Formatter):
    """Line-delimited JSON with structured `extra` fields."""

    def format(self, record: logging.LogRecord) -> str:  # type: ignore[override]
        return _json_formatter(record)


def configure_logging(
    level: str = "INFO",
    json_logs: bool = False,
    quiet_loggers: Iterable[str] = NOISY_LOGGERS,
) -> None:
    """
    Configure root logging for a CLI run or a script.

    Parameters
    ----------
    level : str
        Level name for the indexer's own loggers (e.g., "DEBUG", "INFO").
    json_logs : bool
        Emit line-delimited JSON instead of the console format.
    quiet_loggers : iterable of str
        Third-party loggers held at WARNING whatever `level` is.
    """
    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "console": {
                    "format": "%(asctime)s | %(levelname)s | %(name)s | %(message)s",
                    "datefmt": "%Y-%m-%d %H:%M:%S",
                },
                "json": {"()": JsonFormatter},
            },
            "handlers": {
                "stderr": {
                    "class": "logging.StreamHandler",
                    "stream": "ext://sys.stderr",
                    "formatter": "json" if json_logs else "console",
                    "level": level,
                }
            },
            "root": {"handlers": ["stderr"], "level": level},
            "loggers": {name: {"level": "WARNING"} for name in quiet_loggers},
        }
    )


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Module logger; the root logger when `name` is None."""
    return logging.getLogger(name)


__all__ = ["JsonFormatter", "NOISY_LOGGERS", "configure_logging", "get_logger"]
