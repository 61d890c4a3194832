import structlog
from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from campaign_tracker.core.logging import SERVICE_NAME
from campaign_tracker.db.base import get_session_factory

logger = structlog.get_logger(__name__)

router = APIRouter()


@router.get("/health")
async def health_check(request: Request):
    """Liveness check.

    Returns 503 during graceful shutdown so the load balancer stops routing traffic.
    """
    if getattr(request.app.state, "shutting_down", False):
        return JSONResponse(
            status_code=503,
            content={"status": "shutting_down", "service": SERVICE_NAME},
        )
    return {"status": "healthy", "service": SERVICE_NAME}


@router.get("/ready")
async def readiness_check():
    """Readiness check - verifies the event store is reachable."""
    checks = {"database": False}

    try:
        async with get_session_factory()() as session:
            await session.execute(text("SELECT 1"))
        checks["database"] = True
    except (SQLAlchemyError, OSError, RuntimeError) as e:
        logger.error("database_health_check_failed", error=str(e))

    all_healthy = all(checks.values())
    status_code = 200 if all_healthy else 503

    return JSONResponse(
        status_code=status_code,
        content={"status": "ready" if all_healthy else "degraded", "checks": checks},
    )
