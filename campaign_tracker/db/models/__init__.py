"""Re-export all models so Base.metadata sees them."""

from campaign_tracker.db.models.campaign_projection import CampaignProjection
from campaign_tracker.db.models.event import Event

__all__ = [
    "CampaignProjection",
    "Event",
]
