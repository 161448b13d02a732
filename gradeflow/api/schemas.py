"""Response models shared by the professor and student routers.

All of them read straight from the frozen domain dataclasses via
``model_validate`` (``from_attributes``).
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict


class _FromDomain(BaseModel):
    model_config = ConfigDict(from_attributes=True)


class AssignmentOut(_FromDomain):
    id: str
    professor_id: str
    professor_name: str
    title: str
    description: str
    type: str
    due_date: datetime
    allowed_file_types: list[str]
    max_score: int
    plagiarism_weightage: int
    criteria_weightage: int
    status: str
    created_at: datetime
    updated_at: datetime


class CriterionOut(_FromDomain):
    id: str
    name: str
    description: str
    max_points: int


class RubricOut(_FromDomain):
    id: str
    assignment_id: str
    professor_id: str
    criteria: list[CriterionOut]
    total_points: int
    created_at: datetime
    updated_at: datetime


class SubmissionOut(_FromDomain):
    id: str
    assignment_id: str
    student_id: str
    student_name: str
    student_email: str
    file_name: str
    file_type: str
    content: str
    content_hash: str
    file_size: int
    submission_type: str
    blockchain_tx_hash: str | None
    status: str
    submitted_at: datetime


class DraftOut(_FromDomain):
    id: str
    assignment_id: str
    student_id: str
    content: str
    file_name: str
    version: int
    saved_at: datetime


class CriterionAwardOut(_FromDomain):
    criterion_id: str
    name: str
    points: float
    max_points: int


class ScoreOut(_FromDomain):
    id: str
    submission_id: str
    assignment_id: str
    student_id: str
    professor_id: str
    plagiarism_score: float
    criteria_scores: list[CriterionAwardOut]
    total_criteria_points: float
    total_criteria_max_points: int
    weighted_plagiarism_score: float
    weighted_criteria_score: float
    final_score: float
    feedback: str
    evaluated_by: str
    evaluated_at: datetime
    ai_details: dict[str, Any] | None
    overridden: bool
    override_reason: str | None
    overridden_by: str | None
    overridden_at: datetime | None
    original_final_score: float | None


class AuditEntryOut(_FromDomain):
    id: str
    actor_id: str
    actor_name: str
    action: str
    entity_type: str
    entity_id: str
    changes: dict[str, Any]
    timestamp: datetime
