from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # App
    app_name: str = "Campaign Tracker"
    debug: bool = False

    # API
    frontend_url: str = "http://localhost:3000"

    # Database
    database_url: str = "sqlite+aiosqlite:///./campaign_tracker.db"
    db_pool_size: int = 5  # ignored for SQLite
    db_max_overflow: int = 10

    # Logging
    log_level: str = "INFO"
    json_logs: bool = True

    # Ingress rules
    enforce_echa_gate: bool = True  # env: ENFORCE_ECHA_GATE; block RGE events until ECHA approval is recorded
    strict_correction_targets: bool = False  # env: STRICT_CORRECTION_TARGETS; reject corrections to unknown events

    # Audit listing
    audit_page_size: int = 20
    audit_max_page_size: int = 100


@lru_cache
def get_settings() -> Settings:
    return Settings()
