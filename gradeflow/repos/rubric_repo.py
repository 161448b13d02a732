from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from gradeflow.models.rubric import Criterion, Rubric
from gradeflow.repos.documents import RUBRICS, DocumentStore, from_iso, to_iso


class RubricRepo:
    def __init__(self, store: DocumentStore) -> None:
        self._store = store

    async def add(self, rubric: Rubric) -> None:
        await self._store.insert(RUBRICS, rubric.id, _to_doc(rubric))

    async def get(self, rubric_id: str) -> Rubric | None:
        doc = await self._store.get(RUBRICS, rubric_id)
        return _from_doc(doc) if doc is not None else None

    async def get_by_assignment(self, assignment_id: str) -> Rubric | None:
        docs = await self._store.find(RUBRICS, assignment_id=assignment_id)
        return _from_doc(docs[0]) if docs else None

    async def replace_criteria(
        self, rubric_id: str, criteria: tuple[Criterion, ...]
    ) -> Rubric | None:
        doc = await self._store.update(
            RUBRICS,
            rubric_id,
            {
                "criteria": [_criterion_doc(c) for c in criteria],
                "total_points": sum(c.max_points for c in criteria),
                "updated_at": to_iso(datetime.now(UTC)),
            },
        )
        return _from_doc(doc) if doc is not None else None


def _criterion_doc(c: Criterion) -> dict[str, Any]:
    return {
        "id": c.id,
        "name": c.name,
        "description": c.description,
        "max_points": c.max_points,
    }


def _to_doc(r: Rubric) -> dict[str, Any]:
    return {
        "id": r.id,
        "assignment_id": r.assignment_id,
        "professor_id": r.professor_id,
        "criteria": [_criterion_doc(c) for c in r.criteria],
        "total_points": r.total_points,
        "created_at": to_iso(r.created_at),
        "updated_at": to_iso(r.updated_at),
    }


def _from_doc(doc: dict[str, Any]) -> Rubric:
    return Rubric(
        id=doc["id"],
        assignment_id=doc["assignment_id"],
        professor_id=doc["professor_id"],
        criteria=tuple(
            Criterion(
                id=c["id"],
                name=c["name"],
                max_points=c["max_points"],
                description=c.get("description", ""),
            )
            for c in doc.get("criteria", [])
        ),
        created_at=from_iso(doc["created_at"]),  # type: ignore[arg-type]
        updated_at=from_iso(doc["updated_at"]),  # type: ignore[arg-type]
    )
