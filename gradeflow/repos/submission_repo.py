from __future__ import annotations

from dataclasses import asdict
from typing import Any

from gradeflow.models.submission import Draft, Submission
from gradeflow.repos.documents import (
    DRAFTS,
    SUBMISSIONS,
    DocumentStore,
    from_iso,
    to_iso,
)


class SubmissionRepo:
    """Final submissions.  Write-once: there is no update method."""

    def __init__(self, store: DocumentStore) -> None:
        self._store = store

    async def add(self, submission: Submission) -> None:
        doc = asdict(submission)
        doc["submitted_at"] = to_iso(submission.submitted_at)
        await self._store.insert(SUBMISSIONS, submission.id, doc)

    async def get(self, submission_id: str) -> Submission | None:
        doc = await self._store.get(SUBMISSIONS, submission_id)
        return _submission_from_doc(doc) if doc is not None else None

    async def get_for_student(
        self, assignment_id: str, student_id: str
    ) -> Submission | None:
        docs = await self._store.find(
            SUBMISSIONS, assignment_id=assignment_id, student_id=student_id
        )
        return _submission_from_doc(docs[0]) if docs else None

    async def list_by_assignment(self, assignment_id: str) -> list[Submission]:
        docs = await self._store.find(SUBMISSIONS, assignment_id=assignment_id)
        return _latest_first([_submission_from_doc(d) for d in docs])

    async def list_by_student(self, student_id: str) -> list[Submission]:
        docs = await self._store.find(SUBMISSIONS, student_id=student_id)
        return _latest_first([_submission_from_doc(d) for d in docs])

    async def count_by_assignment(self, assignment_id: str) -> int:
        return len(await self._store.find(SUBMISSIONS, assignment_id=assignment_id))


class DraftRepo:
    """Append-only versioned drafts per (assignment, student)."""

    def __init__(self, store: DocumentStore) -> None:
        self._store = store

    async def add(self, draft: Draft) -> None:
        doc = asdict(draft)
        doc["saved_at"] = to_iso(draft.saved_at)
        await self._store.insert(DRAFTS, draft.id, doc)

    async def list_versions(self, assignment_id: str, student_id: str) -> list[Draft]:
        """Newest version first."""
        docs = await self._store.find(
            DRAFTS, assignment_id=assignment_id, student_id=student_id
        )
        drafts = [_draft_from_doc(d) for d in docs]
        return sorted(drafts, key=lambda d: d.version, reverse=True)

    async def latest(self, assignment_id: str, student_id: str) -> Draft | None:
        versions = await self.list_versions(assignment_id, student_id)
        return versions[0] if versions else None

    async def next_version(self, assignment_id: str, student_id: str) -> int:
        latest = await self.latest(assignment_id, student_id)
        return latest.version + 1 if latest is not None else 1

    async def list_by_student(self, student_id: str) -> list[Draft]:
        docs = await self._store.find(DRAFTS, student_id=student_id)
        drafts = [_draft_from_doc(d) for d in docs]
        return sorted(drafts, key=lambda d: d.saved_at, reverse=True)


def _latest_first(items: list[Submission]) -> list[Submission]:
    return sorted(items, key=lambda s: s.submitted_at, reverse=True)


def _submission_from_doc(doc: dict[str, Any]) -> Submission:
    return Submission(
        id=doc["id"],
        assignment_id=doc["assignment_id"],
        student_id=doc["student_id"],
        student_name=doc.get("student_name", ""),
        student_email=doc.get("student_email", ""),
        file_name=doc["file_name"],
        file_type=doc.get("file_type", ""),
        content=doc["content"],
        content_hash=doc["content_hash"],
        file_size=doc["file_size"],
        submitted_at=from_iso(doc["submitted_at"]),  # type: ignore[arg-type]
        submission_type=doc.get("submission_type", "direct"),
        blockchain_tx_hash=doc.get("blockchain_tx_hash"),
        status=doc.get("status", "final"),
    )


def _draft_from_doc(doc: dict[str, Any]) -> Draft:
    return Draft(
        id=doc["id"],
        assignment_id=doc["assignment_id"],
        student_id=doc["student_id"],
        content=doc["content"],
        file_name=doc.get("file_name", ""),
        version=doc["version"],
        saved_at=from_iso(doc["saved_at"]),  # type: ignore[arg-type]
    )
