from __future__ import annotations

import json
import logging
import sys

from gradeflow.core.logging import _ContainerFormatter, _JsonFormatter, setup_logging


def _record(
    level: int = logging.INFO, msg: str = "hello", **extra: object
) -> logging.LogRecord:
    record = logging.LogRecord(
        name="gradeflow.test",
        level=level,
        pathname="grading_service.py",
        lineno=42,
        msg=msg,
        args=(),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_setup_logging_sets_root_level() -> None:
    setup_logging("debug")
    assert logging.getLogger().level == logging.DEBUG

    setup_logging("warning")
    assert logging.getLogger().level == logging.WARNING


def test_setup_logging_defaults_to_info_for_unknown_level() -> None:
    setup_logging("nonexistent")
    assert logging.getLogger().level == logging.INFO


def test_setup_logging_quiets_http_client_loggers_at_debug() -> None:
    setup_logging("debug")
    assert logging.getLogger("httpx").level == logging.WARNING
    assert logging.getLogger("uvicorn").level == logging.WARNING


def test_setup_logging_installs_one_handler() -> None:
    setup_logging("info")
    setup_logging("info", json_format=True)
    handlers = logging.getLogger().handlers
    assert len(handlers) == 1
    assert isinstance(handlers[0].formatter, _JsonFormatter)


def test_container_formatter_excludes_location_for_info() -> None:
    output = _ContainerFormatter().format(_record())
    assert "hello" in output
    assert "[grading_service.py:" not in output


def test_container_formatter_includes_location_for_warning() -> None:
    output = _ContainerFormatter().format(_record(logging.WARNING, "rejected"))
    assert "rejected" in output
    assert "[grading_service.py:42]" in output


def test_json_formatter_promotes_context_fields() -> None:
    record = _record(
        request_id="req-1", submission_id="sub-9", user_id="prof-1", status_code=201
    )
    entry = json.loads(_JsonFormatter().format(record))
    assert entry["message"] == "hello"
    assert entry["level"] == "INFO"
    assert entry["logger"] == "gradeflow.test"
    assert entry["request_id"] == "req-1"
    assert entry["submission_id"] == "sub-9"
    assert entry["user_id"] == "prof-1"
    assert entry["status_code"] == 201


def test_json_formatter_skips_placeholder_request_id() -> None:
    entry = json.loads(_JsonFormatter().format(_record(request_id="-")))
    assert "request_id" not in entry


def test_json_formatter_includes_exception() -> None:
    try:
        raise RuntimeError("boom")
    except RuntimeError:
        record = _record(logging.ERROR, "failed")
        record.exc_info = sys.exc_info()
    entry = json.loads(_JsonFormatter().format(record))
    assert "RuntimeError: boom" in entry["exception"]
