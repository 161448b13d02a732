"""Professor endpoints: assignments, rubrics and submission listings.

POST   /api/professor/assignments               create (201)
GET    /api/professor/assignments               own assignments + submission_count
GET    /api/professor/assignments/{id}          one owned assignment
PUT    /api/professor/assignments/{id}          partial update
PATCH  /api/professor/assignments/{id}/close    stop accepting submissions
DELETE /api/professor/assignments/{id}          only while it has no submissions
POST   /api/professor/rubrics                   create (201, one per assignment)
GET    /api/professor/rubrics/assignment/{id}
PUT    /api/professor/rubrics/{id}
GET    /api/professor/submissions/assignment/{id}
"""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from fastapi import APIRouter, Response, status
from pydantic import BaseModel, ConfigDict, Field

from gradeflow.api.dependencies import Professor, ServicesDep
from gradeflow.api.schemas import AssignmentOut, RubricOut, SubmissionOut
from gradeflow.models.rubric import Criterion
from gradeflow.services import assignment_service, submission_service

router = APIRouter(prefix="/api/professor", tags=["professor"])


class AssignmentIn(BaseModel):
    title: str
    description: str
    type: str
    due_date: datetime
    allowed_file_types: list[str] | None = None
    plagiarism_weightage: int | None = None
    criteria_weightage: int | None = None


class AssignmentUpdateIn(BaseModel):
    title: str | None = None
    description: str | None = None
    type: str | None = None
    due_date: datetime | None = None
    allowed_file_types: list[str] | None = None
    plagiarism_weightage: int | None = None
    criteria_weightage: int | None = None
    status: Literal["active", "closed"] | None = None


class AssignmentSummaryOut(AssignmentOut):
    submission_count: int


class CriterionIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str | None = Field(default=None, alias="criterionId")
    name: str
    max_points: int = Field(alias="maxPoints")
    description: str = ""


class RubricIn(BaseModel):
    assignment_id: str
    criteria: list[CriterionIn]


class RubricUpdateIn(BaseModel):
    criteria: list[CriterionIn]


def _criteria(
    items: list[CriterionIn], *, keep_ids: bool = False
) -> tuple[Criterion, ...]:
    """Blank ids are assigned by the service."""
    return tuple(
        Criterion(
            id=(c.id or "").strip() if keep_ids else "",
            name=c.name.strip(),
            max_points=c.max_points,
            description=c.description.strip(),
        )
        for c in items
    )


# ---------------------------------------------------------------------------
# Assignments
# ---------------------------------------------------------------------------


@router.post(
    "/assignments", response_model=AssignmentOut, status_code=status.HTTP_201_CREATED
)
async def create_assignment(
    body: AssignmentIn, principal: Professor, services: ServicesDep
) -> AssignmentOut:
    assignment = await assignment_service.create_assignment(
        services,
        principal,
        title=body.title,
        description=body.description,
        type=body.type,
        due_date=body.due_date,
        allowed_file_types=(
            tuple(body.allowed_file_types) if body.allowed_file_types else None
        ),
        plagiarism_weightage=body.plagiarism_weightage,
        criteria_weightage=body.criteria_weightage,
    )
    return AssignmentOut.model_validate(assignment)


@router.get("/assignments", response_model=list[AssignmentSummaryOut])
async def list_assignments(
    principal: Professor, services: ServicesDep
) -> list[AssignmentSummaryOut]:
    summaries = await assignment_service.list_professor_assignments(services, principal)
    return [
        AssignmentSummaryOut(
            **AssignmentOut.model_validate(s.assignment).model_dump(),
            submission_count=s.submission_count,
        )
        for s in summaries
    ]


@router.get("/assignments/{assignment_id}", response_model=AssignmentOut)
async def get_assignment(
    assignment_id: str, principal: Professor, services: ServicesDep
) -> AssignmentOut:
    assignment = await assignment_service.load_owned_assignment(
        services, principal, assignment_id
    )
    return AssignmentOut.model_validate(assignment)


@router.put("/assignments/{assignment_id}", response_model=AssignmentOut)
async def update_assignment(
    assignment_id: str,
    body: AssignmentUpdateIn,
    principal: Professor,
    services: ServicesDep,
) -> AssignmentOut:
    changes = body.model_dump(exclude_unset=True, exclude_none=True)
    if "allowed_file_types" in changes:
        changes["allowed_file_types"] = tuple(changes["allowed_file_types"])
    assignment = await assignment_service.update_assignment(
        services, principal, assignment_id, changes
    )
    return AssignmentOut.model_validate(assignment)


@router.patch("/assignments/{assignment_id}/close", response_model=AssignmentOut)
async def close_assignment(
    assignment_id: str, principal: Professor, services: ServicesDep
) -> AssignmentOut:
    assignment = await assignment_service.close_assignment(
        services, principal, assignment_id
    )
    return AssignmentOut.model_validate(assignment)


@router.delete("/assignments/{assignment_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_assignment(
    assignment_id: str, principal: Professor, services: ServicesDep
) -> Response:
    await assignment_service.delete_assignment(services, principal, assignment_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ---------------------------------------------------------------------------
# Rubrics
# ---------------------------------------------------------------------------


@router.post("/rubrics", response_model=RubricOut, status_code=status.HTTP_201_CREATED)
async def create_rubric(
    body: RubricIn, principal: Professor, services: ServicesDep
) -> RubricOut:
    rubric = await assignment_service.create_rubric(
        services, principal, body.assignment_id, _criteria(body.criteria)
    )
    return RubricOut.model_validate(rubric)


@router.get("/rubrics/assignment/{assignment_id}", response_model=RubricOut)
async def get_rubric(
    assignment_id: str, principal: Professor, services: ServicesDep
) -> RubricOut:
    rubric = await assignment_service.get_rubric(services, principal, assignment_id)
    return RubricOut.model_validate(rubric)


@router.put("/rubrics/{rubric_id}", response_model=RubricOut)
async def update_rubric(
    rubric_id: str, body: RubricUpdateIn, principal: Professor, services: ServicesDep
) -> RubricOut:
    rubric = await assignment_service.update_rubric(
        services, principal, rubric_id, _criteria(body.criteria, keep_ids=True)
    )
    return RubricOut.model_validate(rubric)


# ---------------------------------------------------------------------------
# Submissions
# ---------------------------------------------------------------------------


@router.get(
    "/submissions/assignment/{assignment_id}", response_model=list[SubmissionOut]
)
async def list_submissions(
    assignment_id: str, principal: Professor, services: ServicesDep
) -> list[SubmissionOut]:
    submissions = await submission_service.list_assignment_submissions(
        services, principal, assignment_id
    )
    return [SubmissionOut.model_validate(s) for s in submissions]
