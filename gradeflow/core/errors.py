"""Error taxonomy for grading workflows.

Services and routers raise these; the handlers installed by
``gradeflow.api.errors.install_error_handlers`` turn them into JSON
responses:

  ValidationError      → 400  malformed input, weights not summing to 100
  AuthorizationError   → 403  wrong role, not the owning professor/student
  NotFoundError        → 404  missing assignment/submission/rubric/score
  ConflictError        → 409  duplicate submission or evaluation (carries
                              the existing resource)

UpstreamUnavailable is different: it is raised by the inference clients
and always caught by the estimators, which degrade to heuristics.  It
only reaches a caller through the AI health endpoint.
"""

from __future__ import annotations

from typing import Any


class GradeflowError(Exception):
    """Base class for errors that map onto an HTTP status."""

    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(GradeflowError, ValueError):
    status_code = 400

    def __init__(self, message: str, errors: list[str] | None = None) -> None:
        super().__init__(message)
        self.errors = errors or [message]


class AuthorizationError(GradeflowError):
    status_code = 403


class NotFoundError(GradeflowError):
    status_code = 404


class ConflictError(GradeflowError):
    status_code = 409

    def __init__(self, message: str, existing: Any = None) -> None:
        super().__init__(message)
        self.existing = existing


class UpstreamUnavailable(Exception):
    """A remote inference call failed (timeout, auth, rate limit, loading)."""

    def __init__(self, task: str, reason: str) -> None:
        super().__init__(f"{task}: {reason}")
        self.task = task
        self.reason = reason
