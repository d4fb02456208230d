from datetime import date, datetime, timedelta, timezone
from typing import Literal, Optional
from urllib.parse import quote
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError
import logging
import os

from fastapi import FastAPI, Depends, Query, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, RedirectResponse, Response
from sqlalchemy import text
from sqlalchemy.orm import Session

# ── local modules ───────────────────────────────────────────────────
from . import storage
from .audit import AuthenticationAudit, audit_layout
from .config import Settings, get_settings
from .db import get_db, run_migrations
from .errors import (
    AuthenticationRequired,
    ForbiddenError,
    NotFoundError,
    PlannerError,
    ValidationError,
)
from .export import DAILY, WEEKLY, render_daily, render_ics, render_weekly, render_weekly_package
from .google_auth import (
    authorization_url,
    complete_authorization,
    credentials_for,
    force_refresh,
    is_dev_token,
    revoke,
    token_state,
    TokenState,
)
from .google_calendar import calendar_service, drive_service, update_event_times, upload_pdf_to_drive
from .logging_config import configure_logging
from .models import User
from .schemas import (
    AuditReport,
    AuthStatus,
    CalendarEventsOut,
    DailyNoteIn,
    DailyNoteOut,
    DashboardMeasurements,
    DriveUploadIn,
    DriveUploadOut,
    EventIn,
    EventOut,
    EventRecord,
    EventUpdate,
    GoogleEventTimesIn,
    LayoutAuditReport,
    UserOut,
)
from .sync import SyncResult, live_sync, simplepractice_events
from .timeslots import day_bounds, parse_iso_z, week_start
# ────────────────────────────────────────────────────────────────────

logger = logging.getLogger(__name__)
settings = get_settings()

app = FastAPI(title="Planner API")

# ───────────────────────── CORS & sessions ──────────────────────────
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.sessions import SessionMiddleware

if settings.base_url.startswith("http://"):
    # oauthlib refuses plain-http callbacks outside local development
    os.environ.setdefault("OAUTHLIB_INSECURE_TRANSPORT", "1")

app.add_middleware(
    SessionMiddleware,
    secret_key=settings.session_secret,
    same_site="lax",
    https_only=settings.base_url.startswith("https://"),
    max_age=7 * 24 * 3600,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=list(settings.cors_origins),
    allow_credentials="*" not in settings.cors_origins,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["*"],
    max_age=86400,
)

# ───────────────────────── Error handling ───────────────────────────
@app.exception_handler(PlannerError)
def planner_error_handler(request: Request, exc: PlannerError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content=jsonable_encoder(exc.to_dict()))


@app.exception_handler(RequestValidationError)
def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    message = "; ".join(str(e.get("msg", "")).removeprefix("Value error, ") for e in errors) or "Invalid request data"
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"error": message, "details": jsonable_encoder(errors)},
    )

# ───────────────────────── Session user ─────────────────────────────
def current_user(request: Request, db: Session = Depends(get_db)) -> Optional[User]:
    user_id = request.session.get("user_id")
    if not user_id:
        return None
    user = storage.get_user(db, user_id)
    if user is None:
        # user row gone; drop the stale session
        request.session.pop("user_id", None)
    return user


def require_user(user: Optional[User] = Depends(current_user)) -> User:
    if user is None:
        raise AuthenticationRequired("Session authentication required. Please login first.")
    return user


def _zone(name: Optional[str], settings: Settings) -> ZoneInfo:
    try:
        return ZoneInfo(name or settings.default_timezone)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise ValidationError(f"Unknown timezone: {name}") from exc


def _window(start: str, end: str) -> tuple[datetime, datetime]:
    try:
        start_dt, end_dt = parse_iso_z(start), parse_iso_z(end)
    except ValueError as exc:
        raise ValidationError("start and end must be ISO 8601 datetimes") from exc
    if start_dt >= end_dt:
        raise ValidationError("start must be before end")
    return start_dt, end_dt


def _events_out(result: SyncResult) -> CalendarEventsOut:
    return CalendarEventsOut(
        events=[EventOut.from_event(e) for e in result.events],
        calendars=result.calendars,
        sync_time=result.sync_time,
        is_live_sync=result.is_live_sync,
        created=result.created,
        updated=result.updated,
        deleted=result.deleted,
    )

# ───────────────────────── Lifecycle & health ───────────────────────
@app.on_event("startup")
def on_startup():
    configure_logging(settings.log_level, log_file=settings.log_file)
    if settings.auto_migrate:
        run_migrations()
    if settings.uses_default_session_secret:
        logger.warning("SESSION_SECRET is not set; using the development default")
    logger.info("Planner API started (Google configured: %s)", settings.google_configured)


@app.get("/health")
def health_check():
    return {"status": "ok"}


@app.get("/")
def read_root():
    return {"message": "Planner API is running."}


@app.get("/dbcheck")
def dbcheck(db: Session = Depends(get_db)):
    db.execute(text("SELECT 1"))
    return {"db": "ok"}

# ───────────────────────── Auth ─────────────────────────────────────
@app.get("/api/auth/google")
def auth_google(request: Request, settings: Settings = Depends(get_settings)):
    url, state, code_verifier = authorization_url(settings)
    request.session["oauth_state"] = state
    request.session["oauth_code_verifier"] = code_verifier
    return RedirectResponse(url, status_code=status.HTTP_302_FOUND)


@app.get("/api/auth/google/callback")
def auth_google_callback(
    request: Request,
    state: Optional[str] = Query(None),
    error: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    if error:
        logger.warning("Google OAuth returned an error: %s", error)
        return RedirectResponse(
            f"{settings.frontend_url}/?error=auth_failed&details={quote(error)}",
            status_code=status.HTTP_302_FOUND,
        )

    expected = request.session.pop("oauth_state", None)
    code_verifier = request.session.pop("oauth_code_verifier", None)
    if not state or not expected:
        raise ValidationError("Missing OAuth state; restart sign-in at /api/auth/google")
    if state != expected:
        raise ValidationError("OAuth state mismatch; restart sign-in at /api/auth/google")

    user = complete_authorization(db, settings, str(request.url), state, code_verifier)
    request.session["user_id"] = user.id
    return RedirectResponse(f"{settings.frontend_url}/?connected=true", status_code=status.HTTP_302_FOUND)


@app.get("/api/auth/status", response_model=AuthStatus)
def auth_status(user: Optional[User] = Depends(current_user)):
    state = token_state(user)
    return AuthStatus(
        authenticated=user is not None,
        user=UserOut.model_validate(user) if user else None,
        has_google_tokens=state is not TokenState.MISSING,
        token_state=state.value if user else None,
    )


@app.get("/api/auth/config")
def auth_config(settings: Settings = Depends(get_settings)):
    return {
        "hasClientId": bool(settings.google_client_id),
        "hasClientSecret": bool(settings.google_client_secret),
        "missing": settings.missing_google_env_vars,
        "callbackUrl": settings.redirect_uri,
    }


@app.post("/api/auth/logout")
def auth_logout(
    request: Request,
    user: Optional[User] = Depends(current_user),
    db: Session = Depends(get_db),
):
    if user is not None:
        revoke(db, user)
    request.session.clear()
    return {"success": True}


DEV_USERNAME = "dev@test.com"


@app.post("/api/auth/dev-login")
def dev_login(
    request: Request,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    if not settings.allow_dev_login:
        raise NotFoundError("Not found")
    user = storage.get_user_by_username(db, DEV_USERNAME)
    if user is None:
        user = storage.create_user(db, DEV_USERNAME, email=DEV_USERNAME, name="Development User")
    elif user.google_id:
        raise ValidationError("The development account is linked to a Google account")
    stamp = int(datetime.now(timezone.utc).timestamp())
    storage.save_google_tokens(db, user, f"dev-access-token-{stamp}", f"dev-refresh-token-{stamp}", None)
    request.session["user_id"] = user.id
    logger.info("Development user %s logged in", user.id)
    return {"success": True, "user": UserOut.model_validate(user).model_dump(by_alias=True)}


@app.post("/api/auth/refresh")
def auth_refresh(
    user: User = Depends(require_user),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    result = force_refresh(db, user, settings)
    return {"success": True, "message": "Tokens refreshed successfully", **result}

# ───────────────────────── Google calendar ──────────────────────────
@app.get("/api/calendar/events", response_model=CalendarEventsOut)
def calendar_events(
    start: str = Query(...),
    end: str = Query(...),
    user: User = Depends(require_user),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    start_dt, end_dt = _window(start, end)
    return _events_out(live_sync(db, user, settings, start_dt, end_dt))


@app.put("/api/calendar/events/{event_id}")
def calendar_event_times(
    event_id: str,
    payload: GoogleEventTimesIn,
    user: User = Depends(require_user),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    updates = {"start_time": payload.start_time, "end_time": payload.end_time}
    if is_dev_token(user.google_access_token):
        ev = storage.update_event_by_source_id(db, user.id, event_id, updates)
        return {"success": True, "event": EventOut.from_event(ev).model_dump(by_alias=True, mode="json")}

    service = calendar_service(credentials_for(db, user, settings))
    updated = update_event_times(
        service,
        payload.calendar_id,
        event_id,
        payload.start_time,
        payload.end_time,
        settings.default_timezone,
    )
    try:
        storage.update_event_by_source_id(db, user.id, event_id, updates)
    except NotFoundError:
        logger.debug("Event %s is not stored locally yet", event_id)
    return {"success": True, "event": updated}


@app.get("/api/simplepractice/events", response_model=CalendarEventsOut)
def simplepractice_events_endpoint(
    start: str = Query(...),
    end: str = Query(...),
    user: User = Depends(require_user),
    db: Session = Depends(get_db),
):
    start_dt, end_dt = _window(start, end)
    return _events_out(simplepractice_events(db, user, start_dt, end_dt))


@app.post("/api/drive/upload", response_model=DriveUploadOut)
def drive_upload(
    payload: DriveUploadIn,
    user: User = Depends(require_user),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    if is_dev_token(user.google_access_token):
        raise ValidationError("Google Drive is not available for the development user")
    service = drive_service(credentials_for(db, user, settings))
    result = upload_pdf_to_drive(service, payload.filename, payload.content, payload.mime_type)
    return DriveUploadOut(file_id=result["fileId"], filename=result["filename"], folder=result["folder"])

# ───────────────────────── Event CRUD ───────────────────────────────
def _owner_id(requested: Optional[int], user: Optional[User], settings: Settings) -> int:
    """The user id a request may act on: the session user's own, or user 1 in dev mode."""
    if user is not None:
        if requested is not None and requested != user.id:
            raise ForbiddenError("Access denied", details="You can only access your own data")
        return user.id
    if requested == 1 and settings.allow_dev_login:
        return requested
    raise AuthenticationRequired("Authentication required")


@app.get("/api/events/{user_id}", response_model=list[EventOut])
def list_user_events(
    user_id: str,
    user: Optional[User] = Depends(current_user),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    try:
        uid = int(user_id)
    except ValueError:
        uid = 0
    if uid <= 0:
        raise ValidationError("Invalid user ID")

    _owner_id(uid, user, settings)
    events = storage.list_events(db, uid)
    logger.debug("Returning %d stored events for user %s", len(events), uid)
    return [EventOut.from_event(e) for e in events]


@app.post("/api/events", response_model=EventRecord, status_code=status.HTTP_201_CREATED)
def create_event(
    payload: EventIn,
    user: Optional[User] = Depends(current_user),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    data = payload.model_dump()
    data["user_id"] = _owner_id(payload.user_id, user, settings)
    return storage.create_event(db, data)


@app.put("/api/events/source/{source_id}", response_model=EventRecord)
def update_event_by_source(
    source_id: str,
    payload: EventUpdate,
    user: User = Depends(require_user),
    db: Session = Depends(get_db),
):
    return storage.update_event_by_source_id(db, user.id, source_id, payload.model_dump(exclude_unset=True))


@app.put("/api/events/{event_id}", response_model=EventRecord)
def update_event(
    event_id: int,
    payload: EventUpdate,
    user: Optional[User] = Depends(current_user),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    if event_id <= 0:
        raise ValidationError("Invalid event ID")
    _owner_id(storage.get_event(db, event_id).user_id, user, settings)
    return storage.update_event(db, event_id, payload.model_dump(exclude_unset=True))


@app.delete("/api/events/{event_id}")
def delete_event(
    event_id: int,
    user: Optional[User] = Depends(current_user),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    _owner_id(storage.get_event(db, event_id).user_id, user, settings)
    storage.delete_event(db, event_id)
    return {"success": True}

# ───────────────────────── Daily notes ──────────────────────────────
@app.get("/api/daily-notes/{user_id}/{day}")
def get_daily_note(
    user_id: int,
    day: str,
    user: Optional[User] = Depends(current_user),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    note = storage.get_daily_note(db, _owner_id(user_id, user, settings), day)
    if note is None:
        return {"content": ""}
    return DailyNoteOut.model_validate(note).model_dump(by_alias=True)


@app.post("/api/daily-notes", response_model=DailyNoteOut)
def save_daily_note(
    payload: DailyNoteIn,
    user: Optional[User] = Depends(current_user),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    owner = _owner_id(payload.user_id, user, settings)
    return storage.upsert_daily_note(db, owner, payload.date, payload.content)

# ───────────────────────── PDF / ICS export ─────────────────────────
def _pdf(content: bytes, filename: str) -> Response:
    return Response(
        content=content,
        media_type="application/pdf",
        headers={"Content-Disposition": f'inline; filename="{filename}"'},
    )


@app.get("/api/export/daily/{day}.pdf")
def export_daily(
    day: date,
    tz: Optional[str] = Query(None),
    user: User = Depends(require_user),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    zone = _zone(tz, settings)
    start, end = day_bounds(day, zone)
    events = storage.list_events(db, user.id, start, end)
    note = storage.get_daily_note(db, user.id, day.isoformat())
    pdf = render_daily(day, events, note.content if note else None, zone)
    return _pdf(pdf, f"daily-planner-{day.isoformat()}.pdf")


@app.get("/api/export/weekly/{day}.pdf")
def export_weekly(
    day: date,
    tz: Optional[str] = Query(None),
    user: User = Depends(require_user),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    zone = _zone(tz, settings)
    monday = week_start(day)
    start, _ = day_bounds(monday, zone)
    _, end = day_bounds(monday + timedelta(days=6), zone)
    events = storage.list_events(db, user.id, start, end)
    return _pdf(render_weekly(monday, events, zone), f"weekly-planner-{monday.isoformat()}.pdf")


@app.get("/api/export/weekly-package/{day}.pdf")
def export_weekly_package(
    day: date,
    tz: Optional[str] = Query(None),
    user: User = Depends(require_user),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    zone = _zone(tz, settings)
    monday = week_start(day)
    days = [monday + timedelta(days=i) for i in range(7)]
    start, _ = day_bounds(days[0], zone)
    _, end = day_bounds(days[-1], zone)
    events = storage.list_events(db, user.id, start, end)
    notes = storage.notes_between(db, user.id, [d.isoformat() for d in days])
    pdf = render_weekly_package(monday, events, notes, zone)
    return _pdf(pdf, f"weekly-package-{monday.isoformat()}.pdf")


@app.get("/export/ics")
def export_ics(
    start: str = Query(...),
    end: str = Query(...),
    user: User = Depends(require_user),
    db: Session = Depends(get_db),
):
    start_dt, end_dt = _window(start, end)
    rows = storage.list_events(db, user.id, start_dt, end_dt)
    return Response(content=render_ics(rows), media_type="text/calendar")


@app.get("/api/export/layout")
def export_layout():
    return {"daily": DAILY.to_config(), "weekly": WEEKLY.to_config()}

# ───────────────────────── Audits ───────────────────────────────────
@app.get("/api/audit/comprehensive", response_model=AuditReport)
def audit_comprehensive(
    request: Request,
    user: Optional[User] = Depends(current_user),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    return AuthenticationAudit().run(db, settings, request.session, user)


@app.post("/api/audit/autofix")
def audit_autofix(
    request: Request,
    user: Optional[User] = Depends(current_user),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    fixes = AuthenticationAudit().autofix(db, settings, request.session, user)
    return {"fixes": fixes, "message": "Auto-fix completed"}


@app.get("/api/audit/health")
def audit_health(
    request: Request,
    user: Optional[User] = Depends(current_user),
    db: Session = Depends(get_db),
):
    return AuthenticationAudit().health(db, request.session, user)


@app.post("/api/audit/layout", response_model=LayoutAuditReport)
def audit_layout_endpoint(
    measurements: DashboardMeasurements,
    view: Literal["daily", "weekly"] = Query("daily"),
):
    return audit_layout(measurements, DAILY if view == "daily" else WEEKLY)

# ───────────────────────── Entry point ──────────────────────────────
def run() -> None:
    import uvicorn

    uvicorn.run(
        "planner.main:app",
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "8000")),
        reload=False,
    )


if __name__ == "__main__":
    run()
