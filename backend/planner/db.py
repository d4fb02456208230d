# backend/planner/db.py
"""Database session and base model setup."""

from __future__ import annotations

import logging
from typing import Generator, Optional
from pathlib import Path

from sqlalchemy import create_engine
from sqlalchemy.orm import DeclarativeBase, sessionmaker

from .config import get_settings

logger = logging.getLogger(__name__)

settings = get_settings()
DB_URL = settings.database_url
is_sqlite = settings.is_sqlite

engine = create_engine(
    DB_URL,
    echo=False,
    future=True,
    pool_pre_ping=True,
    connect_args=({} if not is_sqlite else {"check_same_thread": False}),
)

SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)


class Base(DeclarativeBase):
    """Base class for SQLAlchemy models."""
    pass


def get_db() -> Generator:
    """
    FastAPI dependency that yields a session per request
    and guarantees it is closed afterwards.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def run_migrations(url: Optional[str] = None) -> None:
    from alembic import command
    from alembic.config import Config

    app_dir = Path(__file__).resolve().parent
    cfg = Config(str(app_dir / "alembic.ini"))
    cfg.set_main_option("script_location", str(app_dir / "migrations"))
    # configparser interpolation: escape % in passwords
    cfg.set_main_option("sqlalchemy.url", (url or DB_URL).replace("%", "%%"))
    cfg.attributes["configure_logger"] = False
    logger.info("Running migrations to head")
    command.upgrade(cfg, "head")
