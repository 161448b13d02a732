from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any
from uuid import uuid4

AI_EVALUATOR = "ai"


@dataclass(frozen=True, slots=True)
class CriterionAward:
    criterion_id: str
    name: str
    points: float
    max_points: int


@dataclass(frozen=True, slots=True)
class Score:
    """Evaluation result for one submission.

    Immutable except for a single override, which sets the override_*
    fields and keeps the computed grade in original_final_score.
    """

    id: str
    submission_id: str
    assignment_id: str
    student_id: str
    professor_id: str
    plagiarism_score: float
    criteria_scores: tuple[CriterionAward, ...]
    total_criteria_points: float
    total_criteria_max_points: int
    weighted_plagiarism_score: float
    weighted_criteria_score: float
    final_score: float
    evaluated_by: str
    evaluated_at: datetime
    feedback: str = ""
    ai_details: dict[str, Any] | None = None
    overridden: bool = False
    override_reason: str | None = None
    overridden_by: str | None = None
    overridden_at: datetime | None = None
    original_final_score: float | None = None

    @staticmethod
    def new(
        *,
        submission_id: str,
        assignment_id: str,
        student_id: str,
        professor_id: str,
        plagiarism_score: float,
        criteria_scores: tuple[CriterionAward, ...],
        total_criteria_points: float,
        total_criteria_max_points: int,
        weighted_plagiarism_score: float,
        weighted_criteria_score: float,
        final_score: float,
        evaluated_by: str,
        feedback: str = "",
        ai_details: dict[str, Any] | None = None,
    ) -> Score:
        return Score(
            id=str(uuid4()),
            submission_id=submission_id,
            assignment_id=assignment_id,
            student_id=student_id,
            professor_id=professor_id,
            plagiarism_score=plagiarism_score,
            criteria_scores=criteria_scores,
            total_criteria_points=total_criteria_points,
            total_criteria_max_points=total_criteria_max_points,
            weighted_plagiarism_score=weighted_plagiarism_score,
            weighted_criteria_score=weighted_criteria_score,
            final_score=final_score,
            evaluated_by=evaluated_by,
            evaluated_at=datetime.now(UTC),
            feedback=feedback,
            ai_details=ai_details,
        )
