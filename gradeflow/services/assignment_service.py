"""Assignment and rubric workflows."""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Any

from gradeflow.core.errors import ConflictError, NotFoundError, ValidationError
from gradeflow.models.assignment import MUTABLE_AFTER_SUBMISSION, Assignment
from gradeflow.models.audit import AuditLogEntry
from gradeflow.models.principal import Principal
from gradeflow.models.rubric import Criterion, Rubric, new_criterion_id
from gradeflow.services.access import check_professor_owns
from gradeflow.services.container import Services
from gradeflow.services.validation import (
    validate_assignment,
    validate_criteria,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class AssignmentSummary:
    assignment: Assignment
    submission_count: int


@dataclass(frozen=True, slots=True)
class StudentAssignmentView:
    assignment: Assignment
    submitted: bool


async def load_assignment(services: Services, assignment_id: str) -> Assignment:
    assignment = await services.assignments.get(assignment_id)
    if assignment is None:
        raise NotFoundError("Assignment not found")
    return assignment


async def load_owned_assignment(
    services: Services, principal: Principal, assignment_id: str
) -> Assignment:
    assignment = await load_assignment(services, assignment_id)
    check_professor_owns(principal, assignment)
    return assignment


async def create_assignment(
    services: Services,
    principal: Principal,
    *,
    title: str,
    description: str,
    type: str,
    due_date: datetime,
    allowed_file_types: tuple[str, ...] | None = None,
    plagiarism_weightage: int | None = None,
    criteria_weightage: int | None = None,
) -> Assignment:
    assignment = Assignment.new(
        professor_id=principal.user_id,
        professor_name=principal.display_name,
        title=title.strip(),
        description=description.strip(),
        type=type,
        due_date=due_date,
        allowed_file_types=(
            tuple(ext.lower() for ext in allowed_file_types)
            if allowed_file_types
            else None
        ),
        plagiarism_weightage=plagiarism_weightage,
        criteria_weightage=criteria_weightage,
    )
    validate_assignment(
        title=assignment.title,
        description=assignment.description,
        type=assignment.type,
        due_date=assignment.due_date,
        plagiarism_weightage=assignment.plagiarism_weightage,
        criteria_weightage=assignment.criteria_weightage,
        allowed_file_types=assignment.allowed_file_types,
    )
    await services.assignments.add(assignment)
    logger.info("Created assignment id=%s professor=%s", assignment.id, principal.user_id)
    return assignment


async def list_professor_assignments(
    services: Services, principal: Principal
) -> list[AssignmentSummary]:
    assignments = await services.assignments.list_by_professor(principal.user_id)
    return [
        AssignmentSummary(a, await services.submissions.count_by_assignment(a.id))
        for a in assignments
    ]


async def list_open_assignments(
    services: Services, principal: Principal
) -> list[StudentAssignmentView]:
    assignments = await services.assignments.list_by_status("active")
    mine = await services.submissions.list_by_student(principal.user_id)
    submitted = {s.assignment_id for s in mine}
    return [StudentAssignmentView(a, a.id in submitted) for a in assignments]


async def update_assignment(
    services: Services,
    principal: Principal,
    assignment_id: str,
    changes: dict[str, Any],
) -> Assignment:
    """Apply a partial update.

    Once a submission exists only status and the weight fields may change.
    """
    assignment = await load_owned_assignment(services, principal, assignment_id)
    if not changes:
        return assignment

    locked = set(changes) - MUTABLE_AFTER_SUBMISSION
    if locked and await services.submissions.count_by_assignment(assignment_id):
        logger.warning(
            "Rejected edit of %s on assignment=%s with submissions",
            sorted(locked),
            assignment_id,
        )
        raise ConflictError(
            "Assignment has submissions; only status and weightage can change",
            existing={"locked_fields": sorted(locked)},
        )

    if "allowed_file_types" in changes:
        changes["allowed_file_types"] = tuple(
            ext.lower() for ext in changes["allowed_file_types"]
        )

    merged = {
        "title": assignment.title,
        "description": assignment.description,
        "type": assignment.type,
        "due_date": assignment.due_date,
        "plagiarism_weightage": assignment.plagiarism_weightage,
        "criteria_weightage": assignment.criteria_weightage,
        "allowed_file_types": assignment.allowed_file_types,
    }
    merged.update({k: v for k, v in changes.items() if k in merged})
    validate_assignment(**merged)

    updated = await services.assignments.update(assignment_id, **changes)
    if updated is None:
        raise NotFoundError("Assignment not found")

    if {"plagiarism_weightage", "criteria_weightage"} & set(changes):
        await services.audit.append(
            AuditLogEntry.new(
                actor_id=principal.user_id,
                actor_name=principal.display_name,
                action="assignment_weightage_changed",
                entity_type="assignment",
                entity_id=assignment_id,
                before={
                    "plagiarism_weightage": assignment.plagiarism_weightage,
                    "criteria_weightage": assignment.criteria_weightage,
                },
                after={
                    "plagiarism_weightage": updated.plagiarism_weightage,
                    "criteria_weightage": updated.criteria_weightage,
                },
            )
        )
    logger.info("Updated assignment id=%s fields=%s", assignment_id, sorted(changes))
    return updated


async def close_assignment(
    services: Services, principal: Principal, assignment_id: str
) -> Assignment:
    assignment = await load_owned_assignment(services, principal, assignment_id)
    if assignment.status == "closed":
        return assignment
    updated = await services.assignments.update(assignment_id, status="closed")
    if updated is None:
        raise NotFoundError("Assignment not found")
    await services.audit.append(
        AuditLogEntry.new(
            actor_id=principal.user_id,
            actor_name=principal.display_name,
            action="assignment_closed",
            entity_type="assignment",
            entity_id=assignment_id,
            before={"status": assignment.status},
            after={"status": "closed"},
        )
    )
    logger.info("Closed assignment id=%s", assignment_id)
    return updated


async def delete_assignment(
    services: Services, principal: Principal, assignment_id: str
) -> None:
    assignment = await load_owned_assignment(services, principal, assignment_id)
    count = await services.submissions.count_by_assignment(assignment_id)
    if count:
        raise ConflictError(
            "Assignment has submissions and cannot be deleted",
            existing={"submission_count": count},
        )
    await services.assignments.delete(assignment_id)
    await services.audit.append(
        AuditLogEntry.new(
            actor_id=principal.user_id,
            actor_name=principal.display_name,
            action="assignment_deleted",
            entity_type="assignment",
            entity_id=assignment_id,
            before={"title": assignment.title},
        )
    )
    logger.info("Deleted assignment id=%s", assignment_id)


# ---------------------------------------------------------------------------
# Rubrics
# ---------------------------------------------------------------------------


def _resolve_criterion_ids(
    criteria: Sequence[Criterion], known: Mapping[str, Criterion] | None = None
) -> tuple[Criterion, ...]:
    """Give blank ids a fresh id.

    When ``known`` is given every non-blank id must be one of its keys.
    """
    resolved = []
    errors = []
    seen: set[str] = set()
    for i, c in enumerate(criteria, start=1):
        if not c.id:
            resolved.append(replace(c, id=new_criterion_id()))
            continue
        if known is not None and c.id not in known:
            errors.append(f"criterion {i}: unknown criterion id {c.id!r}")
        elif c.id in seen:
            errors.append(f"criterion {i}: duplicate criterion id {c.id!r}")
        seen.add(c.id)
        resolved.append(c)
    if errors:
        raise ValidationError("Invalid rubric", errors)
    return tuple(resolved)


async def create_rubric(
    services: Services,
    principal: Principal,
    assignment_id: str,
    criteria: tuple[Criterion, ...],
) -> Rubric:
    await load_owned_assignment(services, principal, assignment_id)
    existing = await services.rubrics.get_by_assignment(assignment_id)
    if existing is not None:
        raise ConflictError("Rubric already exists for this assignment", existing=existing)
    validate_criteria(criteria)
    criteria = _resolve_criterion_ids(criteria)
    rubric = Rubric.new(
        assignment_id=assignment_id,
        professor_id=principal.user_id,
        criteria=criteria,
    )
    await services.rubrics.add(rubric)
    logger.info("Created rubric id=%s assignment=%s", rubric.id, assignment_id)
    return rubric


async def get_rubric(
    services: Services, principal: Principal, assignment_id: str
) -> Rubric:
    await load_owned_assignment(services, principal, assignment_id)
    rubric = await services.rubrics.get_by_assignment(assignment_id)
    if rubric is None:
        raise NotFoundError("Rubric not found")
    return rubric


async def update_rubric(
    services: Services,
    principal: Principal,
    rubric_id: str,
    criteria: tuple[Criterion, ...],
) -> Rubric:
    rubric = await services.rubrics.get(rubric_id)
    if rubric is None:
        raise NotFoundError("Rubric not found")
    await load_owned_assignment(services, principal, rubric.assignment_id)
    validate_criteria(criteria)
    criteria = _resolve_criterion_ids(
        criteria, {c.id: c for c in rubric.criteria}
    )
    updated = await services.rubrics.replace_criteria(rubric_id, criteria)
    if updated is None:
        raise NotFoundError("Rubric not found")
    await services.audit.append(
        AuditLogEntry.new(
            actor_id=principal.user_id,
            actor_name=principal.display_name,
            action="rubric_updated",
            entity_type="rubric",
            entity_id=rubric_id,
            before=[c.name for c in rubric.criteria],
            after=[c.name for c in criteria],
        )
    )
    logger.info("Updated rubric id=%s", rubric_id)
    return updated

