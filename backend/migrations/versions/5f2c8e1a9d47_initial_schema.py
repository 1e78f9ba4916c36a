"""Initial schema for the call intake service.

Revision ID: 5f2c8e1a9d47
Revises: None
Create Date: 2026-10-19
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "5f2c8e1a9d47"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "calls",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("code", sa.String(length=3), nullable=False),
        sa.Column("unit", sa.String(length=20), nullable=False),
        sa.Column("urgency", sa.String(length=10), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("address", sa.String(length=255), nullable=False),
        sa.Column("lat", sa.Float(), nullable=False),
        sa.Column("lng", sa.Float(), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False),
        sa.Column("assigned_to", sa.String(length=255), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("resolved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint("lat >= -90 AND lat <= 90", name="ck_calls_lat_range"),
        sa.CheckConstraint("lng >= -180 AND lng <= 180", name="ck_calls_lng_range"),
        sa.CheckConstraint(
            "(status = 'completed') = (resolved_at IS NOT NULL)",
            name="ck_calls_resolved_iff_completed",
        ),
        if_not_exists=True,
    )

    # Codes are unique among live calls only; soft-deleted rows release them.
    op.create_index(
        "uq_calls_live_code",
        "calls",
        ["code"],
        unique=True,
        postgresql_where=sa.text("deleted_at IS NULL"),
        if_not_exists=True,
    )
    op.create_index("ix_calls_status", "calls", ["status"], if_not_exists=True)
    op.create_index("ix_calls_deleted_at", "calls", ["deleted_at"], if_not_exists=True)
    op.create_index(
        "idx_calls_urgency_status", "calls", ["urgency", "status"], if_not_exists=True
    )
    op.create_index(
        "idx_calls_created_at",
        "calls",
        [sa.text("created_at DESC")],
        if_not_exists=True,
    )
    op.create_index("idx_calls_location", "calls", ["lat", "lng"], if_not_exists=True)


def downgrade() -> None:
    op.drop_index("idx_calls_location", table_name="calls", if_exists=True)
    op.drop_index("idx_calls_created_at", table_name="calls", if_exists=True)
    op.drop_index("idx_calls_urgency_status", table_name="calls", if_exists=True)
    op.drop_index("ix_calls_deleted_at", table_name="calls", if_exists=True)
    op.drop_index("ix_calls_status", table_name="calls", if_exists=True)
    op.drop_index("uq_calls_live_code", table_name="calls", if_exists=True)

    op.drop_table("calls", if_exists=True)
