from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any
from uuid import uuid4


@dataclass(frozen=True, slots=True)
class AuditLogEntry:
    id: str
    actor_id: str
    actor_name: str
    action: str  # e.g. score_created, score_overridden, assignment_closed
    entity_type: str
    entity_id: str
    changes: dict[str, Any]  # {"before": ..., "after": ...}
    timestamp: datetime

    @staticmethod
    def new(
        *,
        actor_id: str,
        actor_name: str,
        action: str,
        entity_type: str,
        entity_id: str,
        before: Any = None,
        after: Any = None,
    ) -> AuditLogEntry:
        return AuditLogEntry(
            id=str(uuid4()),
            actor_id=actor_id,
            actor_name=actor_name,
            action=action,
            entity_type=entity_type,
            entity_id=entity_id,
            changes={"before": before, "after": after},
            timestamp=datetime.now(UTC),
        )
