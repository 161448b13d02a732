"""Ownership checks shared by the grading workflows.

Plain functions rather than FastAPI dependencies: they need the loaded
resource, so workflows call them right after the lookup.
"""

from __future__ import annotations

import logging

from gradeflow.core.errors import AuthorizationError
from gradeflow.models.assignment import Assignment
from gradeflow.models.principal import Principal

logger = logging.getLogger(__name__)


def check_professor_owns(principal: Principal, assignment: Assignment) -> None:
    if assignment.professor_id == principal.user_id:
        return
    logger.warning(
        "Access denied: professor=%s does not own assignment=%s",
        principal.user_id,
        assignment.id,
    )
    raise AuthorizationError("You can only manage your own assignments")


def check_student_owns(principal: Principal, student_id: str, what: str) -> None:
    if student_id == principal.user_id:
        return
    logger.warning(
        "Access denied: student=%s is not the owner of this %s", principal.user_id, what
    )
    raise AuthorizationError(f"You can only view your own {what}")
