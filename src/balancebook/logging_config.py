"""Logging setup that renders the structured fields services pass via ``extra``."""

import json
import logging
import sys
from datetime import UTC, datetime
from typing import Any

# Attributes every LogRecord carries; anything else came in through extra=
_STDLIB_KEYS: frozenset[str] = frozenset(vars(logging.LogRecord("", 0, "", 0, "", (), None)).keys()) | {
    "message",
    "asctime",
    "taskName",
}


def record_fields(record: logging.LogRecord) -> dict[str, Any]:
    """Return the extra fields attached to a log record."""
    return {key: val for key, val in vars(record).items() if key not in _STDLIB_KEYS}


class KeyValueFormatter(logging.Formatter):
    """Human-readable line followed by the record's extra fields as key=value pairs."""

    def __init__(self):
        super().__init__("%(asctime)s %(levelname)s %(name)s: %(message)s")

    def formatMessage(self, record: logging.LogRecord) -> str:
        line = super().formatMessage(record)
        fields = " ".join(f"{key}={val!r}" for key, val in record_fields(record).items())
        return f"{line} {fields}" if fields else line


class StructuredFormatter(logging.Formatter):
    """Formats each log record as a single JSON line."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key, val in record_fields(record).items():
            payload.setdefault(key, val)

        if record.exc_info and record.exc_info[1] is not None:
            exc = record.exc_info[1]
            payload["exc_type"] = type(exc).__name__
            payload["exc_message"] = str(exc)
            payload["traceback"] = self.formatException(record.exc_info)

        return json.dumps(payload, default=str)


class StderrHandler(logging.StreamHandler):
    """Stream handler that writes to whatever sys.stderr is when a record is emitted."""

    def __init__(self):
        logging.Handler.__init__(self)

    @property
    def stream(self):
        return sys.stderr


def configure_logging(level: int = logging.WARNING, json_output: bool = False) -> None:
    """Install a single stderr handler on the balancebook logger.

    Calling it again replaces the handler instead of adding a second one.

    Args:
        level: Minimum level to emit
        json_output: Emit JSON lines instead of key=value text
    """
    handler = StderrHandler()
    handler.setFormatter(StructuredFormatter() if json_output else KeyValueFormatter())

    logger = logging.getLogger("balancebook")
    for existing in [h for h in logger.handlers if isinstance(h, StderrHandler)]:
        logger.removeHandler(existing)
    logger.addHandler(handler)
    logger.setLevel(level)
