"""Student endpoints: open assignments, submissions, drafts and scores.

Every lookup is scoped to the caller; a student never sees another
student's submission, draft or score.
"""

from __future__ import annotations

from fastapi import APIRouter, status
from pydantic import BaseModel, ConfigDict, Field

from gradeflow.api.dependencies import ServicesDep, Student
from gradeflow.api.schemas import (
    AssignmentOut,
    DraftOut,
    ScoreOut,
    SubmissionOut,
)
from gradeflow.services import assignment_service, grading_service, submission_service

router = APIRouter(prefix="/api/student", tags=["student"])


class StudentAssignmentOut(AssignmentOut):
    submitted: bool


class SubmitIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    assignment_id: str = Field(alias="assignmentId")
    file_name: str = Field(alias="fileName")
    content: str
    blockchain_tx_hash: str | None = Field(default=None, alias="blockchainTxHash")


class DraftIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    assignment_id: str = Field(alias="assignmentId")
    content: str
    file_name: str = Field(default="", alias="fileName")


class EvaluationView(BaseModel):
    submission: SubmissionOut
    score: ScoreOut


# ---------------------------------------------------------------------------
# Assignments
# ---------------------------------------------------------------------------


@router.get("/assignments", response_model=list[StudentAssignmentOut])
async def list_assignments(
    principal: Student, services: ServicesDep
) -> list[StudentAssignmentOut]:
    views = await assignment_service.list_open_assignments(services, principal)
    return [
        StudentAssignmentOut(
            **AssignmentOut.model_validate(v.assignment).model_dump(),
            submitted=v.submitted,
        )
        for v in views
    ]


@router.get("/assignments/{assignment_id}", response_model=AssignmentOut)
async def get_assignment(
    assignment_id: str, principal: Student, services: ServicesDep
) -> AssignmentOut:
    assignment = await assignment_service.load_assignment(services, assignment_id)
    return AssignmentOut.model_validate(assignment)


# ---------------------------------------------------------------------------
# Submissions
# ---------------------------------------------------------------------------


@router.post("/submit", response_model=SubmissionOut, status_code=status.HTTP_201_CREATED)
async def submit(body: SubmitIn, principal: Student, services: ServicesDep) -> SubmissionOut:
    submission = await submission_service.submit(
        services,
        principal,
        assignment_id=body.assignment_id,
        file_name=body.file_name,
        content=body.content,
        blockchain_tx_hash=body.blockchain_tx_hash,
    )
    return SubmissionOut.model_validate(submission)


@router.get("/submissions", response_model=list[SubmissionOut])
async def list_submissions(principal: Student, services: ServicesDep) -> list[SubmissionOut]:
    submissions = await services.submissions.list_by_student(principal.user_id)
    return [SubmissionOut.model_validate(s) for s in submissions]


@router.get("/submissions/assignment/{assignment_id}", response_model=SubmissionOut)
async def get_submission_for_assignment(
    assignment_id: str, principal: Student, services: ServicesDep
) -> SubmissionOut:
    submission = await submission_service.get_own_submission_for_assignment(
        services, principal, assignment_id
    )
    return SubmissionOut.model_validate(submission)


@router.get("/submissions/{submission_id}", response_model=SubmissionOut)
async def get_submission(
    submission_id: str, principal: Student, services: ServicesDep
) -> SubmissionOut:
    submission = await submission_service.get_own_submission(
        services, principal, submission_id
    )
    return SubmissionOut.model_validate(submission)


# ---------------------------------------------------------------------------
# Drafts
# ---------------------------------------------------------------------------


@router.post("/drafts", response_model=DraftOut, status_code=status.HTTP_201_CREATED)
async def save_draft(body: DraftIn, principal: Student, services: ServicesDep) -> DraftOut:
    draft = await submission_service.save_draft(
        services,
        principal,
        assignment_id=body.assignment_id,
        content=body.content,
        file_name=body.file_name,
    )
    return DraftOut.model_validate(draft)


@router.get("/drafts", response_model=list[DraftOut])
async def list_drafts(principal: Student, services: ServicesDep) -> list[DraftOut]:
    drafts = await services.drafts.list_by_student(principal.user_id)
    return [DraftOut.model_validate(d) for d in drafts]


@router.get("/drafts/assignment/{assignment_id}", response_model=list[DraftOut])
async def list_assignment_drafts(
    assignment_id: str, principal: Student, services: ServicesDep
) -> list[DraftOut]:
    drafts = await services.drafts.list_versions(assignment_id, principal.user_id)
    return [DraftOut.model_validate(d) for d in drafts]


@router.get("/drafts/assignment/{assignment_id}/latest", response_model=DraftOut)
async def latest_draft(
    assignment_id: str, principal: Student, services: ServicesDep
) -> DraftOut:
    draft = await submission_service.latest_draft(services, principal, assignment_id)
    return DraftOut.model_validate(draft)


# ---------------------------------------------------------------------------
# Scores
# ---------------------------------------------------------------------------


@router.get("/scores", response_model=list[ScoreOut])
async def list_scores(principal: Student, services: ServicesDep) -> list[ScoreOut]:
    scores = await services.scores.list_by_student(principal.user_id)
    return [ScoreOut.model_validate(s) for s in scores]


@router.get("/scores/assignment/{assignment_id}", response_model=ScoreOut)
async def get_score_for_assignment(
    assignment_id: str, principal: Student, services: ServicesDep
) -> ScoreOut:
    score = await grading_service.get_own_score_for_assignment(
        services, principal, assignment_id
    )
    return ScoreOut.model_validate(score)


@router.get("/scores/{score_id}", response_model=ScoreOut)
async def get_score(score_id: str, principal: Student, services: ServicesDep) -> ScoreOut:
    score = await grading_service.get_own_score(services, principal, score_id)
    return ScoreOut.model_validate(score)


@router.get("/evaluation/{submission_id}", response_model=EvaluationView)
async def get_evaluation(
    submission_id: str, principal: Student, services: ServicesDep
) -> EvaluationView:
    submission, score = await grading_service.get_evaluation(
        services, principal, submission_id
    )
    return EvaluationView(
        submission=SubmissionOut.model_validate(submission),
        score=ScoreOut.model_validate(score),
    )
