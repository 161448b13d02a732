"""Student submission and draft workflows.

A student moves through ``none → draft(v1..vN) → final`` per assignment.
Drafts are append-only; the final submission is write-once and is only
accepted while the assignment is active and before its due date.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime

from gradeflow.core.errors import ConflictError, NotFoundError, ValidationError
from gradeflow.core.metrics import SUBMISSIONS
from gradeflow.models.principal import Principal
from gradeflow.models.submission import Draft, Submission
from gradeflow.services.access import check_student_owns
from gradeflow.services.assignment_service import load_assignment, load_owned_assignment
from gradeflow.services.container import Services
from gradeflow.services.validation import file_extension, validate_submission_file

logger = logging.getLogger(__name__)


async def submit(
    services: Services,
    principal: Principal,
    *,
    assignment_id: str,
    file_name: str,
    content: str,
    blockchain_tx_hash: str | None = None,
    now: datetime | None = None,
) -> Submission:
    assignment = await load_assignment(services, assignment_id)

    if assignment.status != "active":
        raise ValidationError("Assignment is closed for submissions")
    if (now or datetime.now(UTC)) > assignment.due_date:
        raise ValidationError("Submission deadline has passed")

    existing = await services.submissions.get_for_student(
        assignment_id, principal.user_id
    )
    if existing is not None:
        logger.warning(
            "Rejected resubmission student=%s assignment=%s",
            principal.user_id,
            assignment_id,
        )
        raise ConflictError("You have already submitted this assignment", existing=existing)

    validate_submission_file(
        file_name=file_name,
        content=content,
        allowed_file_types=assignment.allowed_file_types,
        max_bytes=services.settings.max_submission_bytes,
    )

    submission = Submission.new(
        assignment_id=assignment_id,
        student_id=principal.user_id,
        student_name=principal.display_name,
        student_email=principal.email,
        file_name=file_name.strip(),
        file_type=file_extension(file_name),
        content=content,
        blockchain_tx_hash=blockchain_tx_hash or None,
    )
    await services.submissions.add(submission)
    SUBMISSIONS.labels(submission_type=submission.submission_type).inc()
    logger.info(
        "Accepted submission id=%s assignment=%s hash=%s",
        submission.id,
        assignment_id,
        submission.content_hash[:12],
        extra={"submission_id": submission.id, "user_id": principal.user_id},
    )
    return submission


async def get_own_submission(
    services: Services, principal: Principal, submission_id: str
) -> Submission:
    submission = await services.submissions.get(submission_id)
    if submission is None:
        raise NotFoundError("Submission not found")
    check_student_owns(principal, submission.student_id, "submission")
    return submission


async def get_own_submission_for_assignment(
    services: Services, principal: Principal, assignment_id: str
) -> Submission:
    submission = await services.submissions.get_for_student(
        assignment_id, principal.user_id
    )
    if submission is None:
        raise NotFoundError("No submission found for this assignment")
    return submission


async def save_draft(
    services: Services,
    principal: Principal,
    *,
    assignment_id: str,
    content: str,
    file_name: str = "",
) -> Draft:
    await load_assignment(services, assignment_id)

    final = await services.submissions.get_for_student(assignment_id, principal.user_id)
    if final is not None:
        raise ConflictError(
            "Assignment already submitted; drafts are closed", existing=final
        )

    version = await services.drafts.next_version(assignment_id, principal.user_id)
    draft = Draft.new(
        assignment_id=assignment_id,
        student_id=principal.user_id,
        content=content,
        file_name=file_name,
        version=version,
    )
    await services.drafts.add(draft)
    logger.info(
        "Saved draft v%d assignment=%s student=%s",
        version,
        assignment_id,
        principal.user_id,
    )
    return draft


async def latest_draft(
    services: Services, principal: Principal, assignment_id: str
) -> Draft:
    draft = await services.drafts.latest(assignment_id, principal.user_id)
    if draft is None:
        raise NotFoundError("No drafts found")
    return draft


async def list_assignment_submissions(
    services: Services, principal: Principal, assignment_id: str
) -> list[Submission]:
    """Professor view of every final submission for an owned assignment."""
    await load_owned_assignment(services, principal, assignment_id)
    return await services.submissions.list_by_assignment(assignment_id)
