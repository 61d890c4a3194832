"""CampaignProjection model — materialized current state, one row per campaign stream."""

from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, DateTime, Numeric, String, Text

from campaign_tracker.db.base import Base


class CampaignProjection(Base):
    __tablename__ = "campaign_projections"

    id = Column(String(64), primary_key=True)  # stream id (cmp_<ULID>)
    lego_campaign_code = Column(String(100), nullable=True, index=True)
    material_type = Column(String(10), nullable=True)  # "PI" or "PCR"
    description = Column(Text, nullable=True)

    status = Column(String(50), nullable=False, default="created", index=True)
    current_step = Column(String(100), nullable=True)
    current_weight_kg = Column(Numeric(14, 3), nullable=True)
    next_expected_step = Column(String(100), nullable=True)
    echa_approved = Column(Boolean, nullable=False, default=False)

    last_event_type = Column(String(64), nullable=True)
    last_event_at = Column(DateTime(timezone=True), nullable=True)
    last_applied_event_id = Column(String(30), nullable=True)  # newest event folded in, corrections included

    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
    completed_at = Column(DateTime(timezone=True), nullable=True)
