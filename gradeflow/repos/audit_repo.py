from __future__ import annotations

from dataclasses import asdict
from typing import Any

from gradeflow.models.audit import AuditLogEntry
from gradeflow.repos.documents import AUDIT_LOGS, DocumentStore, from_iso, to_iso


class AuditRepo:
    """Append-only audit trail.  Entries are never updated or deleted."""

    def __init__(self, store: DocumentStore) -> None:
        self._store = store

    async def append(self, entry: AuditLogEntry) -> None:
        doc = asdict(entry)
        doc["timestamp"] = to_iso(entry.timestamp)
        await self._store.insert(AUDIT_LOGS, entry.id, doc)

    async def list_for_entity(
        self, entity_type: str, entity_id: str
    ) -> list[AuditLogEntry]:
        docs = await self._store.find(
            AUDIT_LOGS, entity_type=entity_type, entity_id=entity_id
        )
        entries = [_from_doc(d) for d in docs]
        return sorted(entries, key=lambda e: e.timestamp)


def _from_doc(doc: dict[str, Any]) -> AuditLogEntry:
    return AuditLogEntry(
        id=doc["id"],
        actor_id=doc["actor_id"],
        actor_name=doc.get("actor_name", ""),
        action=doc["action"],
        entity_type=doc["entity_type"],
        entity_id=doc["entity_id"],
        changes=doc.get("changes") or {},
        timestamp=from_iso(doc["timestamp"]),  # type: ignore[arg-type]
    )
