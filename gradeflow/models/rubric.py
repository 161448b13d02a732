from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from uuid import uuid4

RUBRIC_TOTAL_POINTS = 100


def new_criterion_id() -> str:
    return f"criterion_{uuid4().hex[:12]}"


@dataclass(frozen=True, slots=True)
class Criterion:
    id: str
    name: str
    max_points: int
    description: str = ""

    @staticmethod
    def new(*, name: str, max_points: int, description: str = "") -> Criterion:
        return Criterion(
            id=new_criterion_id(),
            name=name,
            max_points=max_points,
            description=description,
        )


@dataclass(frozen=True, slots=True)
class Rubric:
    id: str
    assignment_id: str
    professor_id: str
    criteria: tuple[Criterion, ...]
    created_at: datetime
    updated_at: datetime

    @property
    def total_points(self) -> int:
        return sum(c.max_points for c in self.criteria)

    @staticmethod
    def new(
        *, assignment_id: str, professor_id: str, criteria: tuple[Criterion, ...]
    ) -> Rubric:
        now = datetime.now(UTC)
        return Rubric(
            id=str(uuid4()),
            assignment_id=assignment_id,
            professor_id=professor_id,
            criteria=criteria,
            created_at=now,
            updated_at=now,
        )


# Used by AI evaluation when the professor has not written a rubric yet.
FALLBACK_CRITERIA = (
    Criterion(id="fallback_1", name="Content Quality", max_points=50),
    Criterion(id="fallback_2", name="Code Structure", max_points=50),
)
