import io
from dataclasses import replace
from datetime import datetime, timedelta, timezone
from urllib.parse import parse_qs, urlparse

from pypdf import PdfReader

from planner import storage
from planner.config import get_settings
from planner.main import app, current_user

from conftest import make_event

MONDAY = datetime(2025, 7, 7, 14, 0, tzinfo=timezone.utc)


def _iso(dt):
    return dt.strftime("%Y-%m-%dT%H:%M:%SZ")


def _dev_login(client):
    r = client.post("/api/auth/dev-login")
    assert r.status_code == 200, r.text
    return r.json()["user"]


# ───────────────────────── Health ───────────────────────────────────
def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}
    assert client.get("/").status_code == 200
    assert client.get("/dbcheck").json() == {"db": "ok"}


# ───────────────────────── Auth ─────────────────────────────────────
def test_google_login_redirects_to_consent(client):
    r = client.get("/api/auth/google", follow_redirects=False)
    assert r.status_code == 302
    url = urlparse(r.headers["location"])
    assert url.netloc == "accounts.google.com"
    query = parse_qs(url.query)
    assert query["client_id"] == ["test-client-id"]
    assert query["access_type"] == ["offline"]
    assert query["redirect_uri"] == ["http://localhost:8000/api/auth/google/callback"]


def test_callback_with_error_redirects_to_frontend(client):
    r = client.get("/api/auth/google/callback", params={"error": "access_denied"}, follow_redirects=False)
    assert r.status_code == 302
    assert r.headers["location"].endswith("/?error=auth_failed&details=access_denied")


def test_callback_without_state_is_rejected(client):
    r = client.get("/api/auth/google/callback", params={"code": "abc", "state": "xyz"})
    assert r.status_code == 400
    assert "state" in r.json()["error"]


def test_dev_login_status_and_logout(client, db):
    user = _dev_login(client)
    assert user["username"] == "dev@test.com"

    status = client.get("/api/auth/status").json()
    assert status["authenticated"] is True
    assert status["user"]["id"] == user["id"]
    assert status["hasGoogleTokens"] is True

    assert client.post("/api/auth/logout").json() == {"success": True}
    assert storage.get_user(db, user["id"]).google_access_token is None
    assert client.get("/api/auth/status").json()["authenticated"] is False


def test_dev_login_can_be_disabled(client):
    app.dependency_overrides[get_settings] = lambda: replace(get_settings(), allow_dev_login=False)
    r = client.post("/api/auth/dev-login")
    assert r.status_code == 404


def test_auth_config(client):
    body = client.get("/api/auth/config").json()
    assert body["hasClientId"] and body["hasClientSecret"]
    assert body["missing"] == []
    assert body["callbackUrl"].endswith("/api/auth/google/callback")


def test_refresh_requires_session(client):
    r = client.post("/api/auth/refresh")
    assert r.status_code == 401
    assert r.json()["authUrl"] == "/api/auth/google"


# ───────────────────────── Google calendar ──────────────────────────
def test_calendar_events_require_login(client):
    r = client.get("/api/calendar/events", params={"start": "2025-07-07T00:00:00Z", "end": "2025-07-08T00:00:00Z"})
    assert r.status_code == 401


def test_calendar_events_for_dev_user(client):
    _dev_login(client)
    now = datetime.now(timezone.utc)
    params = {"start": _iso(now - timedelta(days=1)), "end": _iso(now + timedelta(days=1))}
    body = client.get("/api/calendar/events", params=params).json()
    assert [e["title"] for e in body["events"]] == ["Development Meeting"]
    assert body["events"][0]["sourceId"] == "dev-event-1"
    assert {c["id"] for c in body["calendars"]} >= {"primary"}
    assert body["isLiveSync"] is True

    later = now + timedelta(hours=3)
    r = client.put(
        "/api/calendar/events/dev-event-1",
        json={"startTime": _iso(later), "endTime": _iso(later + timedelta(minutes=30))},
    )
    assert r.status_code == 200
    assert r.json()["event"]["startTime"].startswith(later.strftime("%Y-%m-%dT%H:%M"))


def test_calendar_window_is_validated(client):
    _dev_login(client)
    r = client.get("/api/calendar/events", params={"start": "2025-07-08T00:00:00Z", "end": "2025-07-07T00:00:00Z"})
    assert r.status_code == 400
    assert r.json()["error"] == "start must be before end"


def test_drive_upload_rejected_for_dev_user(client):
    _dev_login(client)
    r = client.post("/api/drive/upload", json={"filename": "week.pdf", "content": "JVBERi0="})
    assert r.status_code == 400


# ───────────────────────── Event CRUD ───────────────────────────────
def test_event_crud(client, login):
    r = client.post(
        "/api/events",
        json={"title": "Session", "startTime": "2025-07-07T14:00:00Z", "endTime": "2025-07-07T15:00:00Z"},
    )
    assert r.status_code == 201, r.text
    created = r.json()
    assert created["userId"] == login.id
    assert created["source"] == "manual"

    listed = client.get(f"/api/events/{login.id}").json()
    assert [e["title"] for e in listed] == ["Session"]

    r = client.put(f"/api/events/{created['id']}", json={"title": "Moved", "notes": "bring forms"})
    assert r.json()["title"] == "Moved"
    assert r.json()["notes"] == "bring forms"

    assert client.delete(f"/api/events/{created['id']}").json() == {"success": True}
    assert client.delete(f"/api/events/{created['id']}").status_code == 404
    assert client.get(f"/api/events/{login.id}").json() == []


def test_event_validation(client, login):
    r = client.post(
        "/api/events",
        json={"title": "Backwards", "startTime": "2025-07-07T15:00:00Z", "endTime": "2025-07-07T14:00:00Z"},
    )
    assert r.status_code == 400
    assert "error" in r.json() and "details" in r.json()
    assert client.put("/api/events/0", json={"title": "x"}).status_code == 400


def test_update_event_by_source_id(client, login, db):
    make_event(db, login.id, "Synced", MONDAY, source="google", source_id="g-1")
    r = client.put("/api/events/source/g-1", json={"actionItems": "follow up"})
    assert r.status_code == 200
    assert r.json()["actionItems"] == "follow up"
    assert client.put("/api/events/source/missing", json={"title": "x"}).status_code == 404


def test_event_listing_access_rules(client, db, user):
    make_event(db, user.id, "Private", MONDAY)
    assert client.get("/api/events/abc").status_code == 400
    assert client.get("/api/events/-3").json()["error"] == "Invalid user ID"
    # unauthenticated access is allowed only for user 1 while dev login is enabled
    assert client.get(f"/api/events/{user.id}").status_code == 200
    assert client.get("/api/events/2").status_code == 401

    app.dependency_overrides[get_settings] = lambda: replace(get_settings(), allow_dev_login=False)
    assert client.get(f"/api/events/{user.id}").status_code == 401


def test_other_users_events_are_forbidden(client, login):
    r = client.get(f"/api/events/{login.id + 1}")
    assert r.status_code == 403
    assert r.json()["error"] == "Access denied"


def test_create_event_requires_user(client):
    r = client.post(
        "/api/events",
        json={"title": "Orphan", "startTime": "2025-07-07T14:00:00Z", "endTime": "2025-07-07T15:00:00Z"},
    )
    assert r.status_code == 401


def test_events_of_other_users_cannot_be_changed(client, login, db):
    other = storage.create_user(db, "colleague@example.com", email="colleague@example.com")
    theirs = make_event(db, other.id, "Their session", MONDAY)

    r = client.post(
        "/api/events",
        json={
            "userId": other.id,
            "title": "Planted",
            "startTime": "2025-07-07T14:00:00Z",
            "endTime": "2025-07-07T15:00:00Z",
        },
    )
    assert r.status_code == 403
    assert client.put(f"/api/events/{theirs.id}", json={"title": "Hijacked"}).status_code == 403
    assert client.delete(f"/api/events/{theirs.id}").status_code == 403

    db.refresh(theirs)
    assert theirs.title == "Their session"
    assert [e.title for e in storage.list_events(db, other.id)] == ["Their session"]


def test_duplicate_source_id_is_rejected(client, login, db):
    make_event(db, login.id, "Synced", MONDAY, source="google", source_id="g-1")
    r = client.post(
        "/api/events",
        json={
            "title": "Copy",
            "startTime": "2025-07-07T14:00:00Z",
            "endTime": "2025-07-07T15:00:00Z",
            "source": "google",
            "sourceId": "g-1",
        },
    )
    assert r.status_code == 400
    assert r.json()["error"] == "An event with this source id already exists"
    assert [e.title for e in storage.list_events(db, login.id)] == ["Synced"]


# ───────────────────────── Daily notes ──────────────────────────────
def test_daily_notes(client, user):
    assert client.get(f"/api/daily-notes/{user.id}/2025-07-07").json() == {"content": ""}

    r = client.post("/api/daily-notes", json={"userId": user.id, "date": "2025-07-07", "content": "Call pharmacy"})
    assert r.status_code == 200
    assert r.json()["content"] == "Call pharmacy"

    client.post("/api/daily-notes", json={"userId": user.id, "date": "2025-07-07", "content": "Updated"})
    assert client.get(f"/api/daily-notes/{user.id}/2025-07-07").json()["content"] == "Updated"


def test_daily_notes_belong_to_their_user(client, db, user):
    other = storage.create_user(db, "colleague@example.com", email="colleague@example.com")
    storage.upsert_daily_note(db, other.id, "2025-07-07", "Private")

    # anonymous access only reaches the dev user
    assert client.get(f"/api/daily-notes/{other.id}/2025-07-07").status_code == 401
    r = client.post("/api/daily-notes", json={"userId": other.id, "date": "2025-07-07", "content": "x"})
    assert r.status_code == 401

    app.dependency_overrides[current_user] = lambda: user
    assert client.get(f"/api/daily-notes/{other.id}/2025-07-07").status_code == 403
    r = client.post("/api/daily-notes", json={"userId": other.id, "date": "2025-07-07", "content": "x"})
    assert r.status_code == 403
    assert storage.get_daily_note(db, other.id, "2025-07-07").content == "Private"


# ───────────────────────── Exports ──────────────────────────────────
def _pages(response):
    assert response.status_code == 200, response.text
    assert response.headers["content-type"] == "application/pdf"
    return PdfReader(io.BytesIO(response.content)).pages


def test_pdf_exports(client, login, db):
    make_event(db, login.id, "Team Sync", MONDAY)
    client.post("/api/daily-notes", json={"userId": login.id, "date": "2025-07-07", "content": "Monday note"})

    daily = _pages(client.get("/api/export/daily/2025-07-07.pdf", params={"tz": "UTC"}))
    assert len(daily) == 1
    text = daily[0].extract_text()
    assert "Team Sync" in text and "Monday note" in text

    weekly = _pages(client.get("/api/export/weekly/2025-07-10.pdf", params={"tz": "UTC"}))
    assert len(weekly) == 1
    assert "July 7-13" in weekly[0].extract_text()

    package = client.get("/api/export/weekly-package/2025-07-09.pdf", params={"tz": "UTC"})
    assert len(_pages(package)) == 8
    assert 'filename="weekly-package-2025-07-07.pdf"' in package.headers["content-disposition"]


def test_pdf_export_rejects_unknown_timezone(client, login):
    r = client.get("/api/export/daily/2025-07-07.pdf", params={"tz": "Mars/Olympus"})
    assert r.status_code == 400


def test_exports_require_login(client):
    assert client.get("/api/export/daily/2025-07-07.pdf").status_code == 401


def test_ics_export(client, login, db):
    make_event(db, login.id, "Team Sync", MONDAY)
    r = client.get("/export/ics", params={"start": "2025-07-07T00:00:00Z", "end": "2025-07-08T00:00:00Z"})
    assert r.status_code == 200
    assert r.headers["content-type"].startswith("text/calendar")
    assert "SUMMARY:Team Sync" in r.text
    assert "DTSTART:20250707T140000Z" in r.text


def test_layout_constants(client):
    body = client.get("/api/export/layout").json()
    assert body["daily"]["view"] == "daily"
    assert body["weekly"]["contentWidth"] == 1150


# ───────────────────────── Audits ───────────────────────────────────
def test_comprehensive_audit_without_session(client):
    body = client.get("/api/audit/comprehensive").json()
    assert body["summary"]["total"] == len(body["results"])
    assert body["summary"]["failed"] >= 2
    assert "Authentication: User needs to authenticate via /api/auth/google" in body["recommendations"]


def test_comprehensive_audit_for_dev_user(client):
    _dev_login(client)
    body = client.get("/api/audit/comprehensive").json()
    google = [r for r in body["results"] if r["component"] == "Google API"]
    assert google[-1]["status"] == "PASS"


def test_autofix_and_health(client):
    body = client.post("/api/audit/autofix").json()
    assert body == {"fixes": ["Redirecting to Google OAuth authentication"], "message": "Auto-fix completed"}

    health = client.get("/api/audit/health").json()
    assert health["server"] == "running"
    assert health["database"] == "connected"
    assert health["authentication"] == "not_authenticated"


def test_layout_audit_endpoint(client):
    r = client.post(
        "/api/audit/layout",
        params={"view": "weekly"},
        json={"timeColumnWidth": {"pixels": 95}, "dayColumnWidth": {"pixels": 140}},
    )
    assert r.status_code == 200
    body = r.json()
    assert body["view"] == "weekly"
    rows = {m["element"]: m for m in body["measurements"]}
    assert rows["Time column width"]["difference"] == "Perfect match"
    assert rows["Day column width"]["difference"] == "+10 px"
    assert body["summary"].startswith("Pixel-perfect audit completed with")
    assert client.post("/api/audit/layout", params={"view": "monthly"}, json={}).status_code == 400
