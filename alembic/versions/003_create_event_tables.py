"""Create events and rate_limit_events tables.

Revision ID: 003_events
Revises: 002_businesses
Create Date: 2026-10-19
"""

from collections.abc import Sequence

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSONB

from alembic import op

revision: str = "003_events"
down_revision: str | None = "002_businesses"
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "events",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("user_id", sa.Uuid(), nullable=True),
        sa.Column("event", sa.Text(), nullable=False),
        sa.Column("metadata", JSONB(), nullable=False, server_default=sa.text("'{}'::jsonb")),
        sa.Column(
            "timestamp",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("NOW()"),
        ),
    )
    op.create_index("idx_events_user_event_time", "events", ["user_id", "event", "timestamp"])

    op.create_table(
        "rate_limit_events",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("user_id", sa.Text(), nullable=False),
        sa.Column("event_type", sa.Text(), nullable=False),
        sa.Column(
            "timestamp",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("NOW()"),
        ),
    )
    op.create_index(
        "idx_rate_limit_user_event_time",
        "rate_limit_events",
        ["user_id", "event_type", "timestamp"],
    )


def downgrade() -> None:
    op.drop_index("idx_rate_limit_user_event_time", table_name="rate_limit_events")
    op.drop_table("rate_limit_events")
    op.drop_index("idx_events_user_event_time", table_name="events")
    op.drop_table("events")
