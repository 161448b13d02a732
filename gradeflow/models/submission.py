from __future__ import annotations

import hashlib
from dataclasses import dataclass
from datetime import UTC, datetime
from uuid import uuid4


def content_hash(content: str) -> str:
    """SHA-256 hex digest of the UTF-8 encoded content."""
    return hashlib.sha256(content.encode("utf-8")).hexdigest()


@dataclass(frozen=True, slots=True)
class Submission:
    """A final, write-once submission.

    blockchain_tx_hash is whatever the client reports after logging the
    content hash on-chain; it is stored as-is and never verified here.
    """

    id: str
    assignment_id: str
    student_id: str
    student_name: str
    student_email: str
    file_name: str
    file_type: str
    content: str
    content_hash: str
    file_size: int
    submitted_at: datetime
    submission_type: str = "direct"  # direct|blockchain
    blockchain_tx_hash: str | None = None
    status: str = "final"

    @staticmethod
    def new(
        *,
        assignment_id: str,
        student_id: str,
        student_name: str,
        student_email: str,
        file_name: str,
        file_type: str,
        content: str,
        blockchain_tx_hash: str | None = None,
    ) -> Submission:
        return Submission(
            id=str(uuid4()),
            assignment_id=assignment_id,
            student_id=student_id,
            student_name=student_name,
            student_email=student_email,
            file_name=file_name,
            file_type=file_type,
            content=content,
            content_hash=content_hash(content),
            file_size=len(content.encode("utf-8")),
            submitted_at=datetime.now(UTC),
            submission_type="blockchain" if blockchain_tx_hash else "direct",
            blockchain_tx_hash=blockchain_tx_hash,
        )


@dataclass(frozen=True, slots=True)
class Draft:
    id: str
    assignment_id: str
    student_id: str
    content: str
    file_name: str
    version: int
    saved_at: datetime

    @staticmethod
    def new(
        *,
        assignment_id: str,
        student_id: str,
        content: str,
        file_name: str,
        version: int,
    ) -> Draft:
        return Draft(
            id=str(uuid4()),
            assignment_id=assignment_id,
            student_id=student_id,
            content=content,
            file_name=file_name,
            version=version,
            saved_at=datetime.now(UTC),
        )
