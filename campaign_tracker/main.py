"""Campaign Tracker: FastAPI application entry point."""

import signal
import uuid
from contextlib import asynccontextmanager

# CRITICAL ORDER: configure_structlog MUST be called before all other app imports
# to avoid the structlog cache pitfall (structlog caches the processor chain on first use).
from campaign_tracker.core.logging import configure_structlog
from campaign_tracker.core.config import get_settings as _get_settings_early

_early_settings = _get_settings_early()
configure_structlog(
    log_level="DEBUG" if _early_settings.debug else _early_settings.log_level,
    json_logs=_early_settings.json_logs and not _early_settings.debug,
)

import structlog

from fastapi import FastAPI, Request, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from campaign_tracker.api.routes import api_router
from campaign_tracker.core.config import get_settings
from campaign_tracker.core.exceptions import (
    ApprovalGateError,
    CampaignNotFound,
    CampaignTrackerError,
    CorrectionTargetNotFound,
    PayloadValidationError,
    StorageUnavailable,
)
from campaign_tracker.db import init_db, close_db
from campaign_tracker.middleware.correlation import (
    setup_correlation_middleware,
    get_correlation_id,
)

logger = structlog.get_logger(__name__)

# Domain exception -> HTTP status
ERROR_STATUS_CODES: dict[type[CampaignTrackerError], int] = {
    StorageUnavailable: 503,
    CampaignNotFound: 404,
    PayloadValidationError: 400,
    ApprovalGateError: 403,
    CorrectionTargetNotFound: 404,
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup/shutdown events."""
    # SIGTERM flips this so the health check returns 503 while draining
    app.state.shutting_down = False

    def handle_sigterm(signum, frame):
        app.state.shutting_down = True
        logger.info("sigterm_received", action="health_check_503_draining_connections")

    signal.signal(signal.SIGTERM, handle_sigterm)

    # Startup
    settings = get_settings()
    logger.info(
        "startup_begin",
        app_name=settings.app_name,
        debug=settings.debug,
        enforce_echa_gate=settings.enforce_echa_gate,
        strict_correction_targets=settings.strict_correction_targets,
    )

    await init_db()
    logger.info("db_initialized")

    yield

    # Shutdown
    logger.info("shutdown_begin")
    await close_db()
    logger.info("shutdown_complete")


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Global exception handler for HTTPException with debug_id tracking.

    Logs errors server-side with full context, returns sanitized response to client.
    """
    debug_id = str(uuid.uuid4())

    logger.error(
        "http_exception",
        status_code=exc.status_code,
        debug_id=debug_id,
        correlation_id=get_correlation_id(),
        path=request.url.path,
        method=request.method,
        detail=exc.detail,
    )

    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail, "debug_id": debug_id},
    )


async def campaign_tracker_error_handler(request: Request, exc: CampaignTrackerError) -> JSONResponse:
    """Map domain exceptions to HTTP responses with debug_id tracking.

    Validation failures also carry their per-field ``errors`` list.
    """
    debug_id = str(uuid.uuid4())
    status_code = next(
        (code for exc_type, code in ERROR_STATUS_CODES.items() if isinstance(exc, exc_type)),
        500,
    )

    log = logger.error if status_code >= 500 else logger.warning
    log(
        "domain_exception",
        status_code=status_code,
        debug_id=debug_id,
        correlation_id=get_correlation_id(),
        path=request.url.path,
        method=request.method,
        error=str(exc),
        error_type=type(exc).__name__,
    )

    content = {"detail": str(exc), "debug_id": debug_id}
    if isinstance(exc, PayloadValidationError):
        content["errors"] = exc.errors
    if isinstance(exc, StorageUnavailable):
        # No driver details leaked
        content["detail"] = "Storage unavailable"

    return JSONResponse(status_code=status_code, content=content)


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Global exception handler for unhandled errors with debug_id tracking.

    Logs full exception with traceback, returns generic 500 to client.
    """
    debug_id = str(uuid.uuid4())

    logger.error(
        "unhandled_exception",
        debug_id=debug_id,
        correlation_id=get_correlation_id(),
        path=request.url.path,
        method=request.method,
        error=str(exc),
        error_type=type(exc).__name__,
        exc_info=True,
    )

    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error", "debug_id": debug_id},
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.exception_handler(HTTPException)(http_exception_handler)
    app.exception_handler(CampaignTrackerError)(campaign_tracker_error_handler)
    app.exception_handler(Exception)(generic_exception_handler)


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title=settings.app_name,
        description="Event-sourced tracker for recycled-material campaigns",
        version="0.1.0",
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.frontend_url, "http://localhost:3000"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Correlation ID middleware (runs first on incoming requests)
    setup_correlation_middleware(app)

    register_exception_handlers(app)

    app.include_router(api_router, prefix="/api")

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "campaign_tracker.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
    )
