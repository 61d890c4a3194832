"""create events and campaign_projections tables

Revision ID: 0001_event_store
Revises:
Create Date: 2026-10-16 00:00:00.000000

"""

from collections.abc import Sequence

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "0001_event_store"
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    """Create the append-only event log and the campaign projection table."""
    op.create_table(
        "events",
        sa.Column("id", sa.String(length=30), nullable=False),
        sa.Column("stream_type", sa.String(length=50), nullable=False),
        sa.Column("stream_id", sa.String(length=64), nullable=False),
        sa.Column("event_type", sa.String(length=64), nullable=False),
        sa.Column("payload", postgresql.JSONB(astext_type=sa.Text()), nullable=False, server_default="{}"),
        sa.Column("metadata", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_events_stream", "events", ["stream_type", "stream_id"], unique=False)
    op.create_index(op.f("ix_events_event_type"), "events", ["event_type"], unique=False)
    op.create_index(op.f("ix_events_created_at"), "events", ["created_at"], unique=False)

    op.create_table(
        "campaign_projections",
        sa.Column("id", sa.String(length=64), nullable=False),
        sa.Column("lego_campaign_code", sa.String(length=100), nullable=True),
        sa.Column("material_type", sa.String(length=10), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("status", sa.String(length=50), nullable=False, server_default="created"),
        sa.Column("current_step", sa.String(length=100), nullable=True),
        sa.Column("current_weight_kg", sa.Numeric(precision=14, scale=3), nullable=True),
        sa.Column("next_expected_step", sa.String(length=100), nullable=True),
        sa.Column("echa_approved", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("last_event_type", sa.String(length=64), nullable=True),
        sa.Column("last_event_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("last_applied_event_id", sa.String(length=30), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        op.f("ix_campaign_projections_lego_campaign_code"), "campaign_projections", ["lego_campaign_code"], unique=False
    )
    op.create_index(op.f("ix_campaign_projections_status"), "campaign_projections", ["status"], unique=False)


def downgrade() -> None:
    """Drop both tables."""
    op.drop_index(op.f("ix_campaign_projections_status"), table_name="campaign_projections")
    op.drop_index(op.f("ix_campaign_projections_lego_campaign_code"), table_name="campaign_projections")
    op.drop_table("campaign_projections")
    op.drop_index(op.f("ix_events_created_at"), table_name="events")
    op.drop_index(op.f("ix_events_event_type"), table_name="events")
    op.drop_index("ix_events_stream", table_name="events")
    op.drop_table("events")
