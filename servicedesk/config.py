"""Service desk configuration via pydantic-settings."""

from __future__ import annotations

from pathlib import Path

from pydantic_settings import BaseSettings


class DeskSettings(BaseSettings):
    environment: str = "development"
    database_url: str = "sqlite+aiosqlite:///servicedesk.db"
    echo_sql: bool = False
    app_title: str = "Service Desk"
    log_level: str = "INFO"

    # Acting user is identified by this header (session handling lives upstream)
    user_header: str = "X-User-Id"

    activity_feed_page_size: int = 10
    activity_feed_max_page_size: int = 100

    # Time entries, expenses and comments get their own *_DELETED tag.
    # Off reproduces the legacy feed, where those deletions read as updates.
    distinct_delete_activity_types: bool = True

    # Commit the mutation and its activity row together.
    audit_atomic_writes: bool = False

    model_config = {"env_prefix": "DESK_", "env_file": ".env", "extra": "ignore"}

    @property
    def base_dir(self) -> Path:
        return Path(__file__).resolve().parent

    @property
    def alembic_ini(self) -> Path:
        return self.base_dir / "alembic.ini"

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")

    @property
    def is_production(self) -> bool:
        return self.environment.strip().lower() in {"prod", "production"}


settings = DeskSettings()
