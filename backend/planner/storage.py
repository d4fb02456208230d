# backend/planner/storage.py
"""Repository functions over a SQLAlchemy session."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, Iterable, Optional, Tuple

from sqlalchemy import and_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from .errors import NotFoundError, ValidationError
from .models import DailyNote, Event, User
from .timeslots import as_utc

logger = logging.getLogger(__name__)

# Fields a sync may overwrite; notes and action items stay local.
SYNCED_FIELDS = ("title", "description", "start_time", "end_time", "calendar_id", "color", "location")


# ───────────────────────── Users ────────────────────────────────────
def get_user(db: Session, user_id: int) -> Optional[User]:
    return db.get(User, user_id)


def get_user_by_username(db: Session, username: str) -> Optional[User]:
    return db.execute(select(User).where(User.username == username)).scalar_one_or_none()


def get_user_by_google_id(db: Session, google_id: str) -> Optional[User]:
    return db.execute(select(User).where(User.google_id == google_id)).scalar_one_or_none()


def create_user(
    db: Session,
    username: str,
    password: Optional[str] = None,
    email: Optional[str] = None,
    name: Optional[str] = None,
) -> User:
    if get_user_by_username(db, username):
        raise ValidationError(f"Username already exists: {username}")
    user = User(username=username, password=password, email=email, name=name)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def create_google_user(db: Session, google_id: str, email: str, name: str) -> User:
    """Create a user for a Google account, or link the account to the user already holding that email."""
    existing = get_user_by_username(db, email) if email else None
    if existing:
        logger.info("Linking Google account to existing user %s", existing.id)
        existing.google_id = google_id
        existing.email = existing.email or email
        existing.name = existing.name or name
        db.commit()
        db.refresh(existing)
        return existing

    user = User(username=email or google_id, google_id=google_id, email=email, name=name)
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info("Created new user %s for Google account", user.id)
    return user


def save_google_tokens(
    db: Session,
    user: User,
    token: Optional[str],
    refresh_token: Optional[str],
    expiry: Optional[datetime],
) -> User:
    user.google_access_token = token
    # Google only returns a refresh token on consent; keep the one on file otherwise.
    if refresh_token:
        user.google_refresh_token = refresh_token
    user.google_token_expiry = expiry
    db.commit()
    db.refresh(user)
    return user


def clear_google_tokens(db: Session, user: User) -> None:
    user.google_access_token = None
    user.google_refresh_token = None
    user.google_token_expiry = None
    db.commit()


# ───────────────────────── Events ───────────────────────────────────
def list_events(
    db: Session,
    user_id: int,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    sources: Optional[Iterable[str]] = None,
) -> list[Event]:
    q = select(Event).where(Event.user_id == user_id)
    if start is not None and end is not None:
        q = q.where(and_(Event.start_time < end, Event.end_time > start))
    if sources is not None:
        q = q.where(Event.source.in_(list(sources)))
    q = q.order_by(Event.start_time.asc(), Event.id.asc())
    return list(db.execute(q).scalars().all())


def get_event(db: Session, event_id: int) -> Event:
    ev = db.get(Event, event_id)
    if not ev:
        raise NotFoundError("Event not found")
    return ev


def _with_utc_times(values: Dict[str, Any]) -> Dict[str, Any]:
    out = dict(values)
    for key in ("start_time", "end_time"):
        if out.get(key) is not None:
            out[key] = as_utc(out[key])
    return out


def create_event(db: Session, payload: Dict[str, Any]) -> Event:
    ev = Event(**_with_utc_times(payload))
    if ev.start_time >= ev.end_time:
        raise ValidationError("Start time must be before end time")
    db.add(ev)
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise ValidationError(
            "An event with this source id already exists",
            source=ev.source,
            sourceId=ev.source_id,
        ) from exc
    db.refresh(ev)
    return ev


def _apply_updates(ev: Event, updates: Dict[str, Any]) -> None:
    for key, value in _with_utc_times(updates).items():
        setattr(ev, key, value)
    if ev.start_time >= ev.end_time:
        raise ValidationError("Start time must be before end time")


def update_event(db: Session, event_id: int, updates: Dict[str, Any]) -> Event:
    ev = get_event(db, event_id)
    try:
        _apply_updates(ev, updates)
    except ValidationError:
        db.rollback()
        raise
    db.commit()
    db.refresh(ev)
    return ev


def update_event_by_source_id(db: Session, user_id: int, source_id: str, updates: Dict[str, Any]) -> Event:
    ev = db.execute(
        select(Event).where(and_(Event.user_id == user_id, Event.source_id == source_id))
    ).scalars().first()
    if not ev:
        raise NotFoundError("Event not found")
    try:
        _apply_updates(ev, updates)
    except ValidationError:
        db.rollback()
        raise
    db.commit()
    db.refresh(ev)
    return ev


def delete_event(db: Session, event_id: int) -> None:
    ev = get_event(db, event_id)
    db.delete(ev)
    db.commit()


def upsert_synced_events(db: Session, user_id: int, events: Iterable[Dict[str, Any]]) -> Tuple[int, int]:
    """Insert or update externally sourced events keyed by (user, source, source_id)."""
    created = updated = 0
    seen = set()
    for data in events:
        source_id = data.get("source_id")
        # an event shared by two calendars comes back once per calendar
        if not source_id or source_id in seen:
            continue
        seen.add(source_id)
        # Google may reclassify an event, so match on any non-manual source.
        row = db.execute(
            select(Event).where(
                and_(Event.user_id == user_id, Event.source_id == source_id, Event.source != "manual")
            )
        ).scalars().first()
        if row is None:
            db.add(Event(user_id=user_id, **{k: v for k, v in data.items() if hasattr(Event, k)}))
            created += 1
            continue
        row.source = data.get("source", row.source)
        for field in SYNCED_FIELDS:
            if field in data:
                setattr(row, field, data[field])
        updated += 1
    db.commit()
    logger.debug("Synced events for user %s: %d created, %d updated", user_id, created, updated)
    return created, updated


def prune_synced_events(
    db: Session,
    user_id: int,
    start: datetime,
    end: datetime,
    calendar_ids: Iterable[str],
    keep_source_ids: Iterable[str],
) -> int:
    """
    Delete synced events in the window that Google no longer returns.

    Only rows from ``calendar_ids`` are considered, so a calendar that could
    not be read keeps its stored events.
    """
    calendar_ids = list(calendar_ids)
    if not calendar_ids:
        return 0
    keep = set(keep_source_ids)
    rows = db.execute(
        select(Event).where(
            and_(
                Event.user_id == user_id,
                Event.source != "manual",
                Event.calendar_id.in_(calendar_ids),
                Event.start_time < end,
                Event.end_time > start,
            )
        )
    ).scalars().all()
    stale = [row for row in rows if row.source_id not in keep]
    for row in stale:
        db.delete(row)
    db.commit()
    if stale:
        logger.info("Removed %d events no longer in Google for user %s", len(stale), user_id)
    return len(stale)


# ───────────────────────── Daily notes ──────────────────────────────
def get_daily_note(db: Session, user_id: int, date: str) -> Optional[DailyNote]:
    return db.execute(
        select(DailyNote).where(and_(DailyNote.user_id == user_id, DailyNote.date == date))
    ).scalar_one_or_none()


def upsert_daily_note(db: Session, user_id: int, date: str, content: str) -> DailyNote:
    note = get_daily_note(db, user_id, date)
    if note:
        note.content = content
    else:
        note = DailyNote(user_id=user_id, date=date, content=content)
        db.add(note)
    db.commit()
    db.refresh(note)
    return note


def notes_between(db: Session, user_id: int, dates: Iterable[str]) -> Dict[str, str]:
    wanted = list(dates)
    rows = db.execute(
        select(DailyNote).where(and_(DailyNote.user_id == user_id, DailyNote.date.in_(wanted)))
    ).scalars().all()
    return {n.date: n.content or "" for n in rows}
