"""Tests for engine options and the init/close lifecycle of the global session factory."""
import pytest

import campaign_tracker.db.base as db_mod
from campaign_tracker.core.config import Settings
from campaign_tracker.db.base import close_db, engine_options, get_session_factory, init_db

pytestmark = pytest.mark.unit


def test_sqlite_uses_default_pool():
    options = engine_options("sqlite+aiosqlite:///./local.db", Settings(debug=True))
    assert options == {"echo": True}


def test_postgres_gets_sized_pool():
    settings = Settings(db_pool_size=3, db_max_overflow=7)
    options = engine_options("postgresql+asyncpg://u:p@db:5432/tracker", settings)

    assert options["pool_pre_ping"] is True
    assert options["pool_size"] == 3
    assert options["max_overflow"] == 7


async def test_init_and_close(tmp_path):
    db_mod._engine = None
    db_mod._session_factory = None

    await init_db(f"sqlite+aiosqlite:///{tmp_path / 'lifecycle.db'}")
    try:
        factory = get_session_factory()
        await init_db(f"sqlite+aiosqlite:///{tmp_path / 'other.db'}")
        assert get_session_factory() is factory
    finally:
        await close_db()

    with pytest.raises(RuntimeError):
        get_session_factory()
