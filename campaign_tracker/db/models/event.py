"""Event model — append-only fact log, the single source of truth."""

from datetime import datetime, timezone

from sqlalchemy import JSON, Column, DateTime, Index, String
from sqlalchemy.dialects.postgresql import JSONB

from campaign_tracker.db.base import Base

JSONDocument = JSON().with_variant(JSONB(), "postgresql")


class Event(Base):
    __tablename__ = "events"

    id = Column(String(30), primary_key=True)  # evt_<ULID>
    stream_type = Column(String(50), nullable=False)  # "campaign"
    stream_id = Column(String(64), nullable=False)
    event_type = Column(String(64), nullable=False, index=True)
    payload = Column(JSONDocument, nullable=False, default=dict)
    event_metadata = Column("metadata", JSONDocument, nullable=True)  # {"user_id", "timestamp"}

    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc), index=True)
    # NO updated_at -- events are immutable (append-only)

    __table_args__ = (
        Index("ix_events_stream", "stream_type", "stream_id"),
    )
