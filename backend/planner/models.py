from __future__ import annotations
from typing import Optional
from datetime import datetime, timezone

from sqlalchemy import ForeignKey, Integer, String, Text, DateTime, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.types import TypeDecorator

from .db import Base


class UTCDateTime(TypeDecorator):
    """Timezone-aware datetime that always comes back in UTC (SQLite drops tzinfo)."""

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)


class User(Base):
    __tablename__ = "users"

    id:        Mapped[int]           = mapped_column(Integer, primary_key=True, index=True)
    username:  Mapped[str]           = mapped_column(String(255), nullable=False, unique=True)
    password:  Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    google_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True, unique=True)
    email:     Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    name:      Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    google_access_token:  Mapped[Optional[str]]      = mapped_column(Text, nullable=True)
    google_refresh_token: Mapped[Optional[str]]      = mapped_column(Text, nullable=True)
    google_token_expiry:  Mapped[Optional[datetime]] = mapped_column(UTCDateTime, nullable=True)

    events: Mapped[list["Event"]] = relationship(back_populates="user", cascade="all, delete-orphan")


class Event(Base):
    __tablename__ = "events"
    __table_args__ = (UniqueConstraint("user_id", "source", "source_id", name="uq_events_user_source"),)

    id:           Mapped[int]                = mapped_column(Integer, primary_key=True, index=True)
    user_id:      Mapped[Optional[int]]      = mapped_column(ForeignKey("users.id"), nullable=True, index=True)
    title:        Mapped[str]                = mapped_column(String(500), nullable=False)
    description:  Mapped[Optional[str]]      = mapped_column(Text, nullable=True)
    start_time:   Mapped[datetime]           = mapped_column(UTCDateTime, nullable=False)
    end_time:     Mapped[datetime]           = mapped_column(UTCDateTime, nullable=False)
    source:       Mapped[str]                = mapped_column(String(32), nullable=False, default="manual")
    source_id:    Mapped[Optional[str]]      = mapped_column(String(1024), nullable=True)
    calendar_id:  Mapped[Optional[str]]      = mapped_column(String(255), nullable=True)
    color:        Mapped[Optional[str]]      = mapped_column(String(16), nullable=True, default="#6495ED")
    location:     Mapped[Optional[str]]      = mapped_column(Text, nullable=True)
    notes:        Mapped[Optional[str]]      = mapped_column(Text, nullable=True)
    action_items: Mapped[Optional[str]]      = mapped_column(Text, nullable=True)
    created_at:   Mapped[Optional[datetime]] = mapped_column(UTCDateTime, server_default=func.now())
    updated_at:   Mapped[Optional[datetime]] = mapped_column(UTCDateTime, server_default=func.now(), onupdate=func.now())

    user: Mapped[Optional[User]] = relationship(back_populates="events")


class DailyNote(Base):
    __tablename__ = "daily_notes"
    __table_args__ = (UniqueConstraint("user_id", "date", name="uq_daily_notes_user_date"),)

    id:         Mapped[int]                = mapped_column(Integer, primary_key=True, index=True)
    user_id:    Mapped[Optional[int]]      = mapped_column(ForeignKey("users.id"), nullable=True, index=True)
    date:       Mapped[str]                = mapped_column(String(10), nullable=False)
    content:    Mapped[Optional[str]]      = mapped_column(Text, nullable=True)
    created_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime, server_default=func.now())
    updated_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime, server_default=func.now(), onupdate=func.now())
