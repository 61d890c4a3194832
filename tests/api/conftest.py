"""API-specific test fixtures."""

from contextlib import asynccontextmanager

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient


@pytest.fixture
def api_client(tmp_path):
    """FastAPI test client backed by a throwaway SQLite file.

    Initializes the global database via init_db inside the TestClient's
    own event loop so route handlers can use get_session_factory().
    """
    from fastapi.middleware.cors import CORSMiddleware

    from campaign_tracker.api.routes import api_router
    from campaign_tracker.core.config import get_settings
    from campaign_tracker.db import close_db, init_db
    from campaign_tracker.main import register_exception_handlers
    from campaign_tracker.middleware.correlation import setup_correlation_middleware

    test_db_url = f"sqlite+aiosqlite:///{tmp_path / 'api.db'}"

    @asynccontextmanager
    async def test_lifespan(app: FastAPI):
        """Test lifespan - initialize DB in TestClient's event loop."""
        # Reset global so init_db creates a fresh engine in THIS loop
        import campaign_tracker.db.base as db_mod

        db_mod._engine = None
        db_mod._session_factory = None
        await init_db(test_db_url)
        yield
        await close_db()

    settings = get_settings()

    app = FastAPI(
        title=settings.app_name,
        description="Campaign Tracker - Test Client",
        version="0.1.0",
        lifespan=test_lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["http://localhost:3000"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    setup_correlation_middleware(app)

    # Exception handlers (needed for debug_id and status mapping)
    register_exception_handlers(app)

    app.include_router(api_router, prefix="/api")

    with TestClient(app) as client:
        yield client
