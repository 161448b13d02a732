from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from uuid import uuid4

DEFAULT_ALLOWED_FILE_TYPES = (".txt", ".pdf", ".docx")
DEFAULT_PLAGIARISM_WEIGHTAGE = 30
DEFAULT_CRITERIA_WEIGHTAGE = 70
DEFAULT_MAX_SCORE = 10

# Fields that stay editable after the first submission arrives.
MUTABLE_AFTER_SUBMISSION = frozenset(
    {"status", "plagiarism_weightage", "criteria_weightage"}
)


@dataclass(frozen=True, slots=True)
class Assignment:
    id: str
    professor_id: str
    professor_name: str
    title: str
    description: str
    type: str  # essay|code
    due_date: datetime
    created_at: datetime
    updated_at: datetime
    allowed_file_types: tuple[str, ...] = DEFAULT_ALLOWED_FILE_TYPES
    max_score: int = DEFAULT_MAX_SCORE
    plagiarism_weightage: int = DEFAULT_PLAGIARISM_WEIGHTAGE
    criteria_weightage: int = DEFAULT_CRITERIA_WEIGHTAGE
    status: str = "active"  # active|closed

    @staticmethod
    def new(
        *,
        professor_id: str,
        professor_name: str,
        title: str,
        description: str,
        type: str,
        due_date: datetime,
        allowed_file_types: tuple[str, ...] | None = None,
        plagiarism_weightage: int | None = None,
        criteria_weightage: int | None = None,
    ) -> Assignment:
        now = datetime.now(UTC)
        return Assignment(
            id=str(uuid4()),
            professor_id=professor_id,
            professor_name=professor_name,
            title=title,
            description=description,
            type=type,
            due_date=due_date,
            created_at=now,
            updated_at=now,
            allowed_file_types=allowed_file_types or DEFAULT_ALLOWED_FILE_TYPES,
            plagiarism_weightage=(
                DEFAULT_PLAGIARISM_WEIGHTAGE
                if plagiarism_weightage is None
                else plagiarism_weightage
            ),
            criteria_weightage=(
                DEFAULT_CRITERIA_WEIGHTAGE
                if criteria_weightage is None
                else criteria_weightage
            ),
        )
