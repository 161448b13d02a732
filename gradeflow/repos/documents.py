"""Document store: the persistence seam for every grading record.

Six collections, keyed by generated string ids.  The store supports only
what the grading workflows need: insert, point lookup, field-equality
filtering (no joins, no range queries), field-level update and delete.
There are no cross-collection transactions.

Two implementations satisfy the ``DocumentStore`` protocol:

  InMemoryDocumentStore  dev and tests, one process
  PgDocumentStore        PostgreSQL JSONB rows via SQLAlchemy async

Documents are plain JSON-compatible dicts; entity repos convert them
to and from the frozen dataclasses in ``gradeflow.models``.
"""

from __future__ import annotations

import copy
from datetime import datetime
from typing import Any, Protocol

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from gradeflow.db.tables import DocumentRow

ASSIGNMENTS = "assignments"
RUBRICS = "rubrics"
SUBMISSIONS = "submissions"
DRAFTS = "drafts"
SCORES = "scores"
AUDIT_LOGS = "audit_logs"

COLLECTIONS = (ASSIGNMENTS, RUBRICS, SUBMISSIONS, DRAFTS, SCORES, AUDIT_LOGS)

Document = dict[str, Any]


def to_iso(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def from_iso(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None


class DocumentStore(Protocol):
    async def insert(self, collection: str, doc_id: str, data: Document) -> None: ...
    async def get(self, collection: str, doc_id: str) -> Document | None: ...
    async def find(self, collection: str, **equals: Any) -> list[Document]: ...
    async def update(
        self, collection: str, doc_id: str, fields: Document
    ) -> Document | None: ...
    async def delete(self, collection: str, doc_id: str) -> bool: ...


class InMemoryDocumentStore:
    """Dict-backed store.  Returns copies so callers cannot alias stored state."""

    def __init__(self) -> None:
        self._collections: dict[str, dict[str, Document]] = {
            name: {} for name in COLLECTIONS
        }

    def _bucket(self, collection: str) -> dict[str, Document]:
        try:
            return self._collections[collection]
        except KeyError:
            raise ValueError(f"unknown collection {collection!r}") from None

    async def insert(self, collection: str, doc_id: str, data: Document) -> None:
        bucket = self._bucket(collection)
        if doc_id in bucket:
            raise ValueError(f"{collection}/{doc_id} already exists")
        bucket[doc_id] = copy.deepcopy(data)

    async def get(self, collection: str, doc_id: str) -> Document | None:
        doc = self._bucket(collection).get(doc_id)
        return copy.deepcopy(doc) if doc is not None else None

    async def find(self, collection: str, **equals: Any) -> list[Document]:
        return [
            copy.deepcopy(doc)
            for doc in self._bucket(collection).values()
            if all(doc.get(k) == v for k, v in equals.items())
        ]

    async def update(
        self, collection: str, doc_id: str, fields: Document
    ) -> Document | None:
        bucket = self._bucket(collection)
        doc = bucket.get(doc_id)
        if doc is None:
            return None
        doc.update(copy.deepcopy(fields))
        return copy.deepcopy(doc)

    async def delete(self, collection: str, doc_id: str) -> bool:
        return self._bucket(collection).pop(doc_id, None) is not None

    def clear(self) -> None:
        for bucket in self._collections.values():
            bucket.clear()


class PgDocumentStore:
    """Satisfies the DocumentStore protocol with one JSONB row per document.

    Each call runs in its own short transaction; there is no unit of work
    spanning calls, matching the store's no-transactions contract.
    """

    def __init__(self, sessions: async_sessionmaker[AsyncSession]) -> None:
        self._sessions = sessions

    async def insert(self, collection: str, doc_id: str, data: Document) -> None:
        async with self._sessions() as session, session.begin():
            session.add(DocumentRow(collection=collection, id=doc_id, data=data))

    async def get(self, collection: str, doc_id: str) -> Document | None:
        async with self._sessions() as session:
            row = await session.get(DocumentRow, (collection, doc_id))
            return dict(row.data) if row is not None else None

    async def find(self, collection: str, **equals: Any) -> list[Document]:
        stmt = select(DocumentRow).where(DocumentRow.collection == collection)
        if equals:
            stmt = stmt.where(DocumentRow.data.contains(equals))
        stmt = stmt.order_by(DocumentRow.created_at)
        async with self._sessions() as session:
            rows = (await session.execute(stmt)).scalars().all()
            return [dict(row.data) for row in rows]

    async def update(
        self, collection: str, doc_id: str, fields: Document
    ) -> Document | None:
        stmt = (
            select(DocumentRow)
            .where(DocumentRow.collection == collection, DocumentRow.id == doc_id)
            .with_for_update()
        )
        async with self._sessions() as session, session.begin():
            row = (await session.execute(stmt)).scalar_one_or_none()
            if row is None:
                return None
            # reassign so SQLAlchemy sees the JSONB change
            row.data = {**row.data, **fields}
            return dict(row.data)

    async def delete(self, collection: str, doc_id: str) -> bool:
        stmt = delete(DocumentRow).where(
            DocumentRow.collection == collection, DocumentRow.id == doc_id
        )
        async with self._sessions() as session, session.begin():
            result = await session.execute(stmt)
            return result.rowcount > 0
