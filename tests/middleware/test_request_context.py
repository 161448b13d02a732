"""Tests for the request context middleware.

Every response gets an X-Request-ID header (generated or echoed), and
the completion log line carries the same ID.
"""

from __future__ import annotations

import logging
import uuid

import pytest
from fastapi.testclient import TestClient

from gradeflow.middleware.request_context import (
    _RequestContextFilter,
    request_id_var,
)


def test_request_id_generated_when_not_provided(client: TestClient) -> None:
    resp = client.get("/health")
    req_id = resp.headers.get("x-request-id")
    assert req_id is not None
    uuid.UUID(req_id)  # raises ValueError if invalid


def test_request_id_echoed_when_provided(client: TestClient) -> None:
    custom_id = "frontend-trace-123"
    resp = client.get("/health", headers={"X-Request-ID": custom_id})
    assert resp.headers.get("x-request-id") == custom_id


def test_overlong_request_id_is_truncated(client: TestClient) -> None:
    resp = client.get("/health", headers={"X-Request-ID": "x" * 500})
    assert resp.headers["x-request-id"] == "x" * 128


def test_request_id_present_on_error_responses(client: TestClient) -> None:
    resp = client.get("/api/student/scores")  # no token -> 401
    assert resp.status_code == 401
    assert resp.headers.get("x-request-id") is not None


def test_completion_is_logged_with_request_id(
    client: TestClient, caplog: pytest.LogCaptureFixture
) -> None:
    with caplog.at_level(logging.INFO, logger="gradeflow.middleware.request_context"):
        client.get("/health", headers={"X-Request-ID": "log-me"})

    records = [
        r for r in caplog.records if r.name == "gradeflow.middleware.request_context"
    ]
    assert records
    assert records[-1].request_id == "log-me"  # type: ignore[attr-defined]
    assert records[-1].status_code == 200  # type: ignore[attr-defined]


def test_filter_uses_context_var_outside_requests() -> None:
    record = logging.LogRecord("x", logging.INFO, __file__, 1, "msg", None, None)
    token = request_id_var.set("ctx-id")
    try:
        assert _RequestContextFilter().filter(record)
    finally:
        request_id_var.reset(token)
    assert record.request_id == "ctx-id"  # type: ignore[attr-defined]
