import json
import os

# settings are read once at import time
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["ALLOW_DEV_LOGIN"] = "1"
os.environ["GOOGLE_CLIENT_ID"] = "test-client-id"
os.environ["GOOGLE_CLIENT_SECRET"] = "test-client-secret"
os.environ.pop("SESSION_SECRET", None)
os.environ.pop("AUTO_MIGRATE", None)

from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient
from googleapiclient.errors import HttpError
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from planner import google_auth, storage
from planner.db import Base, get_db
from planner.main import app, current_user


# ───────────────────────── Fake Google services ─────────────────────
class FakeHttpError(HttpError):
    """An HttpError built without a transport; ``reason`` is ``message``."""

    def __init__(self, status: int, message: str = "error"):
        resp = type("Resp", (), {"status": status, "reason": message})()
        super().__init__(resp, json.dumps({"error": {"message": message}}).encode())


class _Call:
    def __init__(self, result=None, exc=None):
        self.result = result
        self.exc = exc

    def execute(self):
        if self.exc is not None:
            raise self.exc
        return self.result


class _CalendarList:
    def __init__(self, svc):
        self.svc = svc

    def list(self, **kwargs):
        self.svc.calls.append(("calendarList.list", kwargs))
        return _Call({"items": self.svc.calendars}, self.svc.calendar_list_error)


class _Events:
    def __init__(self, svc):
        self.svc = svc

    def list(self, calendarId, **kwargs):
        self.svc.calls.append(("events.list", dict(kwargs, calendarId=calendarId)))
        if calendarId in self.svc.failing:
            return _Call(exc=FakeHttpError(403, f"no access to {calendarId}"))
        return _Call({"items": self.svc.event_items.get(calendarId, [])})

    def get(self, calendarId, eventId):
        return _Call(dict(self.svc.stored_event, id=eventId), self.svc.get_error)

    def update(self, calendarId, eventId, body):
        self.svc.updates.append((calendarId, eventId, body))
        return _Call(dict(body, id=eventId))


class FakeCalendarService:
    def __init__(self, calendars=None, events=None, failing=(), calendar_list_error=None):
        self.calendars = calendars or []
        self.event_items = events or {}
        self.failing = set(failing)
        self.calendar_list_error = calendar_list_error
        self.get_error = None
        self.stored_event = {"summary": "Existing", "start": {"timeZone": "Europe/London"}, "end": {}}
        self.calls = []
        self.updates = []

    def calendarList(self):
        return _CalendarList(self)

    def events(self):
        return _Events(self)


class _Files:
    def __init__(self, svc):
        self.svc = svc

    def list(self, q, spaces, fields):
        self.svc.queries.append(q)
        return _Call({"files": self.svc.folders})

    def create(self, body, fields, media_body=None):
        self.svc.created.append((body, media_body))
        new_id = f"file-{len(self.svc.created)}"
        return _Call({"id": new_id})


class FakeDriveService:
    def __init__(self, folders=None):
        self.folders = folders or []
        self.queries = []
        self.created = []

    def files(self):
        return _Files(self)


# ───────────────────────── Database & client ────────────────────────
@pytest.fixture
def engine():
    eng = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def db(engine):
    session = sessionmaker(bind=engine, autoflush=False, future=True)()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client(db):
    def _get_db():
        yield db

    app.dependency_overrides[get_db] = _get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def user(db):
    u = storage.create_user(db, "therapist@example.com", email="therapist@example.com", name="Test Therapist")
    storage.save_google_tokens(
        db,
        u,
        "access-token",
        "refresh-token",
        datetime.now(timezone.utc) + timedelta(hours=1),
    )
    return u


@pytest.fixture
def login(client, user):
    """Authenticate requests as ``user`` without going through Google."""
    app.dependency_overrides[current_user] = lambda: user
    return user


@pytest.fixture
def fake_refresh(monkeypatch):
    """Replace the network refresh with one that issues a new access token."""
    calls = []

    def _refresh(self, request):
        calls.append(request)
        self.token = "refreshed-token"
        self.expiry = datetime.now(timezone.utc).replace(tzinfo=None) + timedelta(hours=1)

    monkeypatch.setattr(google_auth.Credentials, "refresh", _refresh)
    return calls


def make_event(db, user_id, title, start, minutes=60, **extra):
    return storage.create_event(
        db,
        dict(user_id=user_id, title=title, start_time=start, end_time=start + timedelta(minutes=minutes), **extra),
    )
