# backend/planner/config.py
"""Environment-driven settings."""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from os import getenv
from pathlib import Path
from typing import Optional

DEFAULT_SESSION_SECRET = "dev-session-secret"


def _normalize_db_url(url: str) -> str:
    """Normalize common Postgres URLs to the psycopg2 driver form."""
    if url.startswith("postgres://"):
        return url.replace("postgres://", "postgresql+psycopg2://", 1)
    if url.startswith("postgresql://"):
        return url.replace("postgresql://", "postgresql+psycopg2://", 1)
    return url


def _clean(s: str | None) -> str | None:
    return s.strip().rstrip("/") if s and s.strip() else None


def _flag(name: str) -> bool:
    return getenv(name, "").strip().lower() in {"1", "true", "yes"}


@dataclass(frozen=True)
class Settings:
    database_url: str
    google_client_id: Optional[str]
    google_client_secret: Optional[str]
    base_url: str
    frontend_url: str
    session_secret: str
    cors_origins: tuple[str, ...]
    default_timezone: str
    allow_dev_login: bool
    auto_migrate: bool
    log_level: str
    log_file: Optional[str]

    @property
    def google_configured(self) -> bool:
        return bool(self.google_client_id and self.google_client_secret)

    @property
    def missing_google_env_vars(self) -> list[str]:
        missing = []
        if not self.google_client_id:
            missing.append("GOOGLE_CLIENT_ID")
        if not self.google_client_secret:
            missing.append("GOOGLE_CLIENT_SECRET")
        return missing

    @property
    def redirect_uri(self) -> str:
        return f"{self.base_url}/api/auth/google/callback"

    @property
    def uses_default_session_secret(self) -> bool:
        return self.session_secret == DEFAULT_SESSION_SECRET

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    raw_url = getenv("DATABASE_URL")
    if raw_url:
        database_url = _normalize_db_url(raw_url)
    else:
        database_url = f"sqlite:///{(Path(__file__).resolve().parents[1] / 'planner.db')}"

    frontend_origin = _clean(getenv("FRONTEND_ORIGIN")) or "http://localhost:5173"
    extra = [x for x in (_clean(p) for p in getenv("EXTRA_CORS_ORIGINS", "").split(",")) if x]
    if "*" in extra:
        cors_origins: tuple[str, ...] = ("*",)
    else:
        cors_origins = tuple(sorted(o for o in {frontend_origin, *extra} if o))

    return Settings(
        database_url=database_url,
        google_client_id=getenv("GOOGLE_CLIENT_ID"),
        google_client_secret=getenv("GOOGLE_CLIENT_SECRET"),
        base_url=_clean(getenv("BASE_URL")) or "http://localhost:8000",
        frontend_url=_clean(getenv("FRONTEND_URL")) or frontend_origin,
        session_secret=getenv("SESSION_SECRET") or DEFAULT_SESSION_SECRET,
        cors_origins=cors_origins,
        default_timezone=getenv("DEFAULT_TIMEZONE", "America/New_York"),
        allow_dev_login=_flag("ALLOW_DEV_LOGIN"),
        auto_migrate=_flag("AUTO_MIGRATE"),
        log_level=getenv("LOG_LEVEL", "INFO"),
        log_file=getenv("LOG_FILE") or None,
    )
