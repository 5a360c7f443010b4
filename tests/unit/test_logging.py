from __future__ import annotations

import json
import logging
from time import sleep

from did_indexer.utils.logging import (
    NOISY_LOGGERS,
    JsonFormatter,
    _json_formatter,
    configure_logging,
)
from did_indexer.utils.profiler import track_run

EXPECTED_ATTEMPT = 2
EXPECTED_BATCH_SIZE = 100


def _record() -> logging.LogRecord:
    return logging.LogRecord(
        name="test.logger",
        level=logging.WARNING,
        pathname=__file__,
        lineno=1,
        msg="retrying",
        args=(),
        exc_info=None,
    )


def test_json_formatter_promotes_standard_extra_fields() -> None:
    record = _record()
    record.attempt = EXPECTED_ATTEMPT
    record.batch = "[0, 100)"

    payload = json.loads(_json_formatter(record))

    assert payload["level"] == "WARNING"
    assert payload["logger"] == "test.logger"
    assert payload["message"] == "retrying"
    assert payload["attempt"] == EXPECTED_ATTEMPT
    assert payload["batch"] == "[0, 100)"
    assert "lineno" not in payload


def test_json_formatter_supports_legacy_nested_extra_field() -> None:
    record = _record()
    record.extra = {"batch_size": EXPECTED_BATCH_SIZE}

    payload = json.loads(_json_formatter(record))

    assert payload["batch_size"] == EXPECTED_BATCH_SIZE


def test_track_run_measures_time() -> None:
    with track_run("sleep") as stats:
        sleep(0.05)

    assert stats.duration_seconds >= 0.05
    assert stats.peak_rss_bytes is None or stats.peak_rss_bytes > 0


def test_json_formatter_stamps_utc_timestamp() -> None:
    payload = json.loads(_json_formatter(_record()))

    assert payload["ts"].endswith("+00:00")


def test_configure_logging_quiets_transport_loggers() -> None:
    root = logging.getLogger()
    saved_handlers, saved_level = root.handlers[:], root.level
    try:
        configure_logging(level="DEBUG", json_logs=True)

        assert root.level == logging.DEBUG
        assert isinstance(root.handlers[0].formatter, JsonFormatter)
        for name in NOISY_LOGGERS:
            assert logging.getLogger(name).level == logging.WARNING
    finally:
        root.handlers[:] = saved_handlers
        root.setLevel(saved_level)
