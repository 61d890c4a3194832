"""Database package — shared engine and session factory."""

from campaign_tracker.db.base import Base, close_db, get_session_factory, init_db

__all__ = [
    "Base",
    "close_db",
    "get_session_factory",
    "init_db",
]
