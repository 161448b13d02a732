from __future__ import annotations

from dataclasses import asdict, replace
from datetime import UTC, datetime
from typing import Any

from gradeflow.models.assignment import Assignment
from gradeflow.repos.documents import ASSIGNMENTS, DocumentStore, from_iso, to_iso


class AssignmentRepo:
    def __init__(self, store: DocumentStore) -> None:
        self._store = store

    async def add(self, assignment: Assignment) -> None:
        await self._store.insert(ASSIGNMENTS, assignment.id, _to_doc(assignment))

    async def get(self, assignment_id: str) -> Assignment | None:
        doc = await self._store.get(ASSIGNMENTS, assignment_id)
        return _from_doc(doc) if doc is not None else None

    async def list_by_professor(self, professor_id: str) -> list[Assignment]:
        docs = await self._store.find(ASSIGNMENTS, professor_id=professor_id)
        return _newest_first([_from_doc(d) for d in docs])

    async def list_by_status(self, status: str) -> list[Assignment]:
        docs = await self._store.find(ASSIGNMENTS, status=status)
        return _newest_first([_from_doc(d) for d in docs])

    async def update(self, assignment_id: str, **fields: Any) -> Assignment | None:
        current = await self.get(assignment_id)
        if current is None:
            return None
        updated = replace(current, **fields, updated_at=datetime.now(UTC))
        doc = await self._store.update(ASSIGNMENTS, assignment_id, _to_doc(updated))
        return _from_doc(doc) if doc is not None else None

    async def delete(self, assignment_id: str) -> bool:
        return await self._store.delete(ASSIGNMENTS, assignment_id)


def _newest_first(items: list[Assignment]) -> list[Assignment]:
    return sorted(items, key=lambda a: a.created_at, reverse=True)


def _to_doc(a: Assignment) -> dict[str, Any]:
    doc = asdict(a)
    doc["allowed_file_types"] = list(a.allowed_file_types)
    for key in ("due_date", "created_at", "updated_at"):
        doc[key] = to_iso(doc[key])
    return doc


def _from_doc(doc: dict[str, Any]) -> Assignment:
    return Assignment(
        id=doc["id"],
        professor_id=doc["professor_id"],
        professor_name=doc.get("professor_name", ""),
        title=doc["title"],
        description=doc.get("description", ""),
        type=doc["type"],
        due_date=from_iso(doc["due_date"]),  # type: ignore[arg-type]
        created_at=from_iso(doc["created_at"]),  # type: ignore[arg-type]
        updated_at=from_iso(doc["updated_at"]),  # type: ignore[arg-type]
        allowed_file_types=tuple(doc.get("allowed_file_types") or ()),
        max_score=doc.get("max_score", 10),
        plagiarism_weightage=doc["plagiarism_weightage"],
        criteria_weightage=doc["criteria_weightage"],
        status=doc.get("status", "active"),
    )
