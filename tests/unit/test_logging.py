from __future__ import annotations

import json
import logging

from fundboard.utils.logging import _json_formatter, configure_logging

EXPECTED_RECORDS = 10
EXPECTED_ELAPSED = 0.25


def _record(msg: str = "hello") -> logging.LogRecord:
    return logging.LogRecord(
        name="test.logger",
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg=msg,
        args=(),
        exc_info=None,
    )


def test_json_formatter_promotes_standard_extra_fields() -> None:
    record = _record()
    record.records = EXPECTED_RECORDS
    record.tier = "cors_relay"

    payload = json.loads(_json_formatter(record))

    assert payload["level"] == "INFO"
    assert payload["logger"] == "test.logger"
    assert payload["message"] == "hello"
    assert payload["records"] == EXPECTED_RECORDS
    assert payload["tier"] == "cors_relay"


def test_json_formatter_supports_legacy_nested_extra_field() -> None:
    record = _record()
    record.extra = {"elapsed_seconds": EXPECTED_ELAPSED}

    payload = json.loads(_json_formatter(record))

    assert payload["elapsed_seconds"] == EXPECTED_ELAPSED


def test_json_formatter_keeps_non_ascii_text() -> None:
    payload = json.loads(_json_formatter(_record("Altın fonları")))

    assert payload["message"] == "Altın fonları"


def test_configure_logging_quiets_httpx() -> None:
    configure_logging(level="DEBUG", json_logs=True)

    assert logging.getLogger().level == logging.DEBUG
    assert logging.getLogger("httpx").level == logging.WARNING
