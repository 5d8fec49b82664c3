"""Tests for log formatting and handler setup."""

import json
import logging
import sys

import pytest

from balancebook.logging_config import (
    KeyValueFormatter,
    StderrHandler,
    StructuredFormatter,
    configure_logging,
    record_fields,
)


def make_record(msg="entry_deleted", **extra):
    record = logging.LogRecord("balancebook.domain.entry", logging.INFO, __file__, 1, msg, (), None)
    for key, val in extra.items():
        setattr(record, key, val)
    return record


@pytest.fixture
def app_logger():
    return logging.getLogger("balancebook")


def test_record_fields_only_returns_extras():
    record = make_record(entry_id=5, account_id=2)
    assert record_fields(record) == {"entry_id": 5, "account_id": 2}


def test_key_value_formatter_renders_extras():
    line = KeyValueFormatter().format(make_record(entry_id=5, delta=-250.0, kind="inflow"))

    assert "INFO balancebook.domain.entry: entry_deleted" in line
    assert line.endswith("entry_id=5 delta=-250.0 kind='inflow'")


def test_key_value_formatter_without_extras():
    line = KeyValueFormatter().format(make_record("schema_ready"))
    assert line.endswith("schema_ready")


def test_structured_formatter_emits_json_with_extras():
    payload = json.loads(StructuredFormatter().format(make_record(entry_id=5, account_id=2)))

    assert payload["level"] == "INFO"
    assert payload["logger"] == "balancebook.domain.entry"
    assert payload["message"] == "entry_deleted"
    assert payload["entry_id"] == 5
    assert payload["account_id"] == 2


def test_structured_formatter_includes_exception():
    try:
        raise RuntimeError("disk full")
    except RuntimeError:
        record = logging.LogRecord("balancebook", logging.ERROR, __file__, 1, "write_failed", (), None)
        record.exc_info = sys.exc_info()

    payload = json.loads(StructuredFormatter().format(record))

    assert payload["exc_type"] == "RuntimeError"
    assert payload["exc_message"] == "disk full"
    assert "Traceback" in payload["traceback"]


def test_configure_logging_replaces_handler(app_logger):
    configure_logging(logging.DEBUG)
    configure_logging(logging.INFO, json_output=True)

    handlers = [h for h in app_logger.handlers if isinstance(h, StderrHandler)]
    assert len(handlers) == 1
    assert isinstance(handlers[0].formatter, StructuredFormatter)
    assert app_logger.level == logging.INFO


def test_configured_logger_writes_extras_to_stderr(app_logger, capsys):
    configure_logging(logging.INFO)

    logging.getLogger("balancebook.domain.entry").info("entry_created", extra={"entry_id": 7})

    assert "entry_created entry_id=7" in capsys.readouterr().err
