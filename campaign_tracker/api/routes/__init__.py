from fastapi import APIRouter

from campaign_tracker.api.routes import audit, campaigns, events, health

api_router = APIRouter()

api_router.include_router(health.router, tags=["health"])
api_router.include_router(events.router, prefix="/events", tags=["events"])
api_router.include_router(campaigns.router, prefix="/campaigns", tags=["campaigns"])
api_router.include_router(audit.router, prefix="/audit", tags=["audit"])
