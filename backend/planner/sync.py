"""On-request sync of Google Calendar events into the events table."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Set

from googleapiclient.errors import HttpError
from sqlalchemy.orm import Session

from . import storage
from .classify import EventKind
from .config import Settings
from .google_auth import credentials_for, is_dev_token
from .google_calendar import (
    PRIMARY_CALENDAR,
    SIMPLEPRACTICE_CALENDAR,
    api_error,
    calendar_service,
    dev_mock_events,
    fetch_events,
    list_calendars,
)
from .models import Event, User
from .schemas import CalendarOut

logger = logging.getLogger(__name__)

SYNCED_SOURCES = (EventKind.GOOGLE.value, EventKind.SIMPLEPRACTICE.value, EventKind.HOLIDAY.value)


@dataclass
class SyncResult:
    events: List[Event]
    calendars: List[CalendarOut]
    created: int = 0
    updated: int = 0
    deleted: int = 0
    sync_time: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    is_live_sync: bool = True


def _with_simplepractice(calendars: List[CalendarOut]) -> List[CalendarOut]:
    if any(c.id == SIMPLEPRACTICE_CALENDAR.id for c in calendars):
        return calendars
    return [*calendars, SIMPLEPRACTICE_CALENDAR]


def live_sync(
    db: Session,
    user: User,
    settings: Settings,
    start: datetime,
    end: datetime,
    service=None,
) -> SyncResult:
    """Pull every calendar's events for the window and store them for ``user``."""
    if is_dev_token(user.google_access_token):
        logger.info("Development user %s: returning mock events", user.id)
        created, updated = storage.upsert_synced_events(db, user.id, dev_mock_events())
        return SyncResult(
            events=storage.list_events(db, user.id, start, end, SYNCED_SOURCES),
            calendars=[PRIMARY_CALENDAR, SIMPLEPRACTICE_CALENDAR],
            created=created,
            updated=updated,
        )

    if service is None:
        service = calendar_service(credentials_for(db, user, settings))

    try:
        calendars = list_calendars(service)
    except HttpError as exc:
        logger.exception("Listing calendars failed for user %s", user.id)
        raise api_error(exc, "Failed to fetch calendar events") from exc

    responded: Set[str] = set()
    fetched = fetch_events(service, start, end, [c.id for c in calendars], responded=responded)
    created, updated = storage.upsert_synced_events(db, user.id, fetched)
    deleted = storage.prune_synced_events(
        db, user.id, start, end, responded, [ev["source_id"] for ev in fetched if ev.get("source_id")]
    )
    logger.info(
        "Live sync for user %s: %d calendars, %d events (%d new, %d updated, %d removed)",
        user.id,
        len(calendars),
        len(fetched),
        created,
        updated,
        deleted,
    )
    return SyncResult(
        events=storage.list_events(db, user.id, start, end, SYNCED_SOURCES),
        calendars=_with_simplepractice(calendars or [PRIMARY_CALENDAR]),
        created=created,
        updated=updated,
        deleted=deleted,
    )


def simplepractice_events(
    db: Session,
    user: User,
    start: datetime,
    end: datetime,
) -> SyncResult:
    events = storage.list_events(db, user.id, start, end, [EventKind.SIMPLEPRACTICE.value])
    return SyncResult(events=events, calendars=[SIMPLEPRACTICE_CALENDAR], is_live_sync=False)
