"""Logging configuration for gradeflow.

Two output modes, selected by LOG_JSON:

  _ContainerFormatter: one human-readable line per record, with the
    source location appended for WARNING and above so a rejected
    evaluation or a failed inference call can be traced to its guard.

  _JsonFormatter: JSON Lines for log aggregation.  Request context
    (request_id, path, status, duration) and grading context
    (submission_id, user_id) become top-level keys.

Submission text and bearer tokens are never passed to loggers; log the
submission id and the content hash instead.
"""

from __future__ import annotations

import json
import logging
import sys


class _ContainerFormatter(logging.Formatter):
    _BASE_FMT = "%(asctime)s %(levelname)-8s %(name)s  %(message)s"
    _LOC_FMT = _BASE_FMT + "  [%(filename)s:%(lineno)d]"

    def __init__(self) -> None:
        super().__init__(datefmt="%Y-%m-%dT%H:%M:%S%z")

    def formatTime(self, record: logging.LogRecord, datefmt: str | None = None) -> str:
        stamp = super().formatTime(record, datefmt)
        # milliseconds go before the +0000 offset
        return f"{stamp[:-5]}.{int(record.msecs):03d}{stamp[-5:]}"

    def format(self, record: logging.LogRecord) -> str:
        self._style._fmt = (
            self._LOC_FMT if record.levelno >= logging.WARNING else self._BASE_FMT
        )
        return super().format(record)


class _JsonFormatter(logging.Formatter):
    """One JSON object per record; context fields promoted to top level."""

    _CONTEXT_FIELDS = (
        "request_id",
        "method",
        "path",
        "user_id",
        "submission_id",
        "status_code",
        "duration_ms",
    )

    def __init__(self) -> None:
        super().__init__(datefmt="%Y-%m-%dT%H:%M:%S%z")

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, object] = {
            "timestamp": self.formatTime(record),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key in self._CONTEXT_FIELDS:
            value = getattr(record, key, None)
            if value is not None and value != "-":
                entry[key] = value

        if record.exc_info and record.exc_info[0] is not None:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, default=str)


def setup_logging(level_name: str, *, json_format: bool = False) -> None:
    """Route all logging to stdout with the selected formatter.

    Args:
        level_name: debug/info/warning/error (from LOG_LEVEL)
        json_format: emit JSON Lines instead of plain text (from LOG_JSON)
    """
    level = getattr(logging, level_name.upper(), logging.INFO)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(_JsonFormatter() if json_format else _ContainerFormatter())

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers.clear()
    root.addHandler(handler)

    # httpx logs every inference request URL at INFO
    for name in (
        "uvicorn",
        "uvicorn.access",
        "uvicorn.error",
        "httpcore",
        "httpx",
        "sqlalchemy.engine",
    ):
        logging.getLogger(name).setLevel(max(level, logging.WARNING))
