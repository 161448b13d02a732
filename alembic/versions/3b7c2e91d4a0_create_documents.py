"""create documents table

Revision ID: 3b7c2e91d4a0
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""

from collections.abc import Sequence

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "3b7c2e91d4a0"
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "documents",
        sa.Column("collection", sa.String(length=64), nullable=False),
        sa.Column("id", sa.String(length=64), nullable=False),
        sa.Column("data", postgresql.JSONB(), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("collection", "id"),
    )
    op.create_index(
        "ix_documents_collection_created",
        "documents",
        ["collection", "created_at"],
    )
    op.create_index(
        "ix_documents_data",
        "documents",
        ["data"],
        postgresql_using="gin",
    )


def downgrade() -> None:
    op.drop_index("ix_documents_data", table_name="documents")
    op.drop_index("ix_documents_collection_created", table_name="documents")
    op.drop_table("documents")
