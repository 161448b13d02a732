from __future__ import annotations

from dataclasses import asdict
from datetime import datetime
from typing import Any

from gradeflow.models.score import CriterionAward, Score
from gradeflow.repos.documents import SCORES, DocumentStore, from_iso, to_iso


class ScoreRepo:
    def __init__(self, store: DocumentStore) -> None:
        self._store = store

    async def add(self, score: Score) -> None:
        await self._store.insert(SCORES, score.id, _to_doc(score))

    async def get(self, score_id: str) -> Score | None:
        doc = await self._store.get(SCORES, score_id)
        return _from_doc(doc) if doc is not None else None

    async def get_by_submission(self, submission_id: str) -> Score | None:
        docs = await self._store.find(SCORES, submission_id=submission_id)
        return _from_doc(docs[0]) if docs else None

    async def list_by_assignment(self, assignment_id: str) -> list[Score]:
        docs = await self._store.find(SCORES, assignment_id=assignment_id)
        return _latest_first([_from_doc(d) for d in docs])

    async def list_by_student(self, student_id: str) -> list[Score]:
        docs = await self._store.find(SCORES, student_id=student_id)
        return _latest_first([_from_doc(d) for d in docs])

    async def get_for_student(self, assignment_id: str, student_id: str) -> Score | None:
        docs = await self._store.find(
            SCORES, assignment_id=assignment_id, student_id=student_id
        )
        return _from_doc(docs[0]) if docs else None

    async def record_override(
        self,
        score_id: str,
        *,
        final_score: float,
        reason: str,
        overridden_by: str,
        overridden_at: datetime,
        original_final_score: float,
    ) -> Score | None:
        doc = await self._store.update(
            SCORES,
            score_id,
            {
                "final_score": final_score,
                "overridden": True,
                "override_reason": reason,
                "overridden_by": overridden_by,
                "overridden_at": to_iso(overridden_at),
                "original_final_score": original_final_score,
            },
        )
        return _from_doc(doc) if doc is not None else None


def _latest_first(items: list[Score]) -> list[Score]:
    return sorted(items, key=lambda s: s.evaluated_at, reverse=True)


def _to_doc(s: Score) -> dict[str, Any]:
    doc = asdict(s)
    doc["criteria_scores"] = [asdict(c) for c in s.criteria_scores]
    doc["evaluated_at"] = to_iso(s.evaluated_at)
    doc["overridden_at"] = to_iso(s.overridden_at)
    return doc


def _from_doc(doc: dict[str, Any]) -> Score:
    return Score(
        id=doc["id"],
        submission_id=doc["submission_id"],
        assignment_id=doc["assignment_id"],
        student_id=doc["student_id"],
        professor_id=doc["professor_id"],
        plagiarism_score=doc["plagiarism_score"],
        criteria_scores=tuple(
            CriterionAward(
                criterion_id=c["criterion_id"],
                name=c["name"],
                points=c["points"],
                max_points=c["max_points"],
            )
            for c in doc.get("criteria_scores", [])
        ),
        total_criteria_points=doc["total_criteria_points"],
        total_criteria_max_points=doc["total_criteria_max_points"],
        weighted_plagiarism_score=doc["weighted_plagiarism_score"],
        weighted_criteria_score=doc["weighted_criteria_score"],
        final_score=doc["final_score"],
        evaluated_by=doc["evaluated_by"],
        evaluated_at=from_iso(doc["evaluated_at"]),  # type: ignore[arg-type]
        feedback=doc.get("feedback", ""),
        ai_details=doc.get("ai_details"),
        overridden=doc.get("overridden", False),
        override_reason=doc.get("override_reason"),
        overridden_by=doc.get("overridden_by"),
        overridden_at=from_iso(doc.get("overridden_at")),
        original_final_score=doc.get("original_final_score"),
    )
