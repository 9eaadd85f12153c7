"""
Unit Tests for Logging Configuration

JSON output carries the `extra=` fields passed at the call site.
"""

import json
import logging
import pytest
import sys

from presale_bot.core.logging_config import JsonFormatter, get_logger, setup_logging


def make_record(msg: str, *args, extra: dict | None = None, exc_info=None) -> logging.LogRecord:
    logger = logging.getLogger("presale_bot.test")
    return logger.makeRecord(
        logger.name, logging.WARNING, __file__, 10, msg, args, exc_info, func="handler", extra=extra,
    )


@pytest.mark.unit
def test_json_formatter_includes_extra_fields():
    record = make_record(
        "API Exception: %s", "CHAIN_UNAVAILABLE",
        extra={"code": "CHAIN_UNAVAILABLE", "status_code": 503, "path": "/balances"},
    )

    data = json.loads(JsonFormatter().format(record))

    assert data["message"] == "API Exception: CHAIN_UNAVAILABLE"
    assert data["level"] == "WARNING"
    assert data["logger"] == "presale_bot.test"
    assert data["function"] == "handler"
    assert data["code"] == "CHAIN_UNAVAILABLE"
    assert data["status_code"] == 503
    assert data["path"] == "/balances"


@pytest.mark.unit
def test_json_formatter_omits_standard_record_attributes():
    data = json.loads(JsonFormatter().format(make_record("plain")))

    assert set(data) == {"timestamp", "level", "logger", "function", "message"}


@pytest.mark.unit
def test_json_formatter_serializes_non_json_values_and_exceptions():
    try:
        raise ValueError("boom")
    except ValueError:
        record = make_record("failed", extra={"details": {"reason": object}}, exc_info=sys.exc_info())

    data = json.loads(JsonFormatter().format(record))

    assert "object" in data["details"]["reason"]
    assert "ValueError: boom" in data["exception"]


@pytest.mark.unit
def test_setup_logging_selects_formatter():
    setup_logging(level="DEBUG", json_format=True)
    logger = get_logger()

    assert logger.level == logging.DEBUG
    assert len(logger.handlers) == 1
    assert isinstance(logger.handlers[0].formatter, JsonFormatter)
    assert logger.propagate is False

    setup_logging(level="INFO", json_format=False)
    assert not isinstance(logger.handlers[0].formatter, JsonFormatter)
