"""Pydantic schemas for campaign projections."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from campaign_tracker.domain.projection import ProjectionState


class CampaignResponse(BaseModel):
    """Projection row as exposed over HTTP."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    lego_campaign_code: str | None = None
    material_type: str | None = None
    description: str | None = None
    status: str
    current_step: str | None = None
    current_weight_kg: float | None = None
    next_expected_step: str | None = None
    echa_approved: bool = False
    last_event_type: str | None = None
    last_event_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    completed_at: datetime | None = None

    @classmethod
    def from_state(cls, state: ProjectionState) -> "CampaignResponse":
        return cls.model_validate(state)


class CampaignListResponse(BaseModel):
    campaigns: list[CampaignResponse] = Field(default_factory=list)
    total: int = 0
