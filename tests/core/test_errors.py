from __future__ import annotations

from gradeflow.core.errors import (
    AuthorizationError,
    ConflictError,
    GradeflowError,
    NotFoundError,
    UpstreamUnavailable,
    ValidationError,
)


def test_status_codes() -> None:
    assert ValidationError("x").status_code == 400
    assert AuthorizationError("x").status_code == 403
    assert NotFoundError("x").status_code == 404
    assert ConflictError("x").status_code == 409


def test_validation_error_defaults_errors_to_message() -> None:
    err = ValidationError("Invalid weightage")
    assert err.errors == ["Invalid weightage"]
    assert isinstance(err, ValueError)


def test_conflict_error_carries_existing() -> None:
    err = ConflictError("duplicate", existing={"id": "s1"})
    assert err.existing == {"id": "s1"}
    assert err.message == "duplicate"


def test_upstream_unavailable_is_not_an_http_error() -> None:
    err = UpstreamUnavailable("embedding", "timeout")
    assert not isinstance(err, GradeflowError)
    assert str(err) == "embedding: timeout"
    assert err.reason == "timeout"
