"""Thin adapter over the Google Calendar and Drive v3 APIs."""

from __future__ import annotations

import base64
import binascii
import io
import logging
from datetime import date, datetime, timedelta, timezone
from typing import Any, Dict, Iterable, List, Optional, Set

from googleapiclient.discovery import build
from googleapiclient.errors import HttpError
from googleapiclient.http import MediaIoBaseUpload

from .classify import classify_event
from .errors import GoogleApiError, ReauthRequired, ValidationError
from .schemas import CalendarOut
from .timeslots import as_utc, parse_iso_z

logger = logging.getLogger(__name__)

DEFAULT_CALENDAR_COLOR = "#4285f4"
DRIVE_FOLDER_NAME = "reMarkable Calendars"
FOLDER_MIME = "application/vnd.google-apps.folder"
MAX_RESULTS = 2500

PRIMARY_CALENDAR = CalendarOut(id="primary", name="Primary Calendar", color=DEFAULT_CALENDAR_COLOR)
SIMPLEPRACTICE_CALENDAR = CalendarOut(id="simplepractice", name="SimplePractice", color="#6495ED")


def error_reason(exc: Exception) -> str:
    return getattr(exc, "reason", None) or str(exc)


def api_error(exc: Exception, message: str) -> Exception:
    status = getattr(getattr(exc, "resp", None), "status", None)
    if status == 401:
        return ReauthRequired("Google Calendar authentication failed. Please re-authenticate.")
    return GoogleApiError(message, details=error_reason(exc))


def calendar_service(credentials):
    return build("calendar", "v3", credentials=credentials, cache_discovery=False)


def drive_service(credentials):
    return build("drive", "v3", credentials=credentials, cache_discovery=False)


def list_calendars(service) -> List[CalendarOut]:
    items = service.calendarList().list().execute().get("items", []) or []
    return [
        CalendarOut(
            id=cal.get("id") or "primary",
            name=cal.get("summary") or "Calendar",
            color=cal.get("backgroundColor") or DEFAULT_CALENDAR_COLOR,
        )
        for cal in items
    ]


def _event_time(data: Optional[Dict[str, Any]]) -> Optional[datetime]:
    data = data or {}
    if data.get("dateTime"):
        return parse_iso_z(data["dateTime"])
    if data.get("date"):
        d = date.fromisoformat(data["date"])
        return datetime(d.year, d.month, d.day, tzinfo=timezone.utc)
    return None


def normalize_google_event(item: Dict[str, Any], calendar_id: str) -> Optional[Dict[str, Any]]:
    """Map a Calendar API event resource to stored-event fields; None for unusable items."""
    if item.get("status") == "cancelled":
        return None
    start = _event_time(item.get("start"))
    end = _event_time(item.get("end"))
    if start is None or end is None:
        return None
    if end <= start:
        end = start + timedelta(minutes=30)

    title = item.get("summary") or "Untitled Event"
    description = item.get("description") or ""
    kind = classify_event(title, "google", calendar_id, description)
    return {
        "title": title,
        "description": description,
        "location": item.get("location") or "",
        "start_time": start,
        "end_time": end,
        "source": kind.value,
        "source_id": item.get("id"),
        "calendar_id": calendar_id,
    }


def fetch_events(
    service,
    start: datetime,
    end: datetime,
    calendar_ids: Optional[Iterable[str]] = None,
    responded: Optional[Set[str]] = None,
) -> List[Dict[str, Any]]:
    """
    Events of every calendar in the window, sorted by start.

    Calendars that cannot be read are skipped; the ids of those that answered
    are added to ``responded`` when given.
    """
    ids = list(calendar_ids) if calendar_ids is not None else [c.id for c in list_calendars(service)]
    time_min = as_utc(start).isoformat().replace("+00:00", "Z")
    time_max = as_utc(end).isoformat().replace("+00:00", "Z")

    out: List[Dict[str, Any]] = []
    for cal_id in ids:
        try:
            resp = service.events().list(
                calendarId=cal_id,
                timeMin=time_min,
                timeMax=time_max,
                maxResults=MAX_RESULTS,
                singleEvents=True,
                orderBy="startTime",
            ).execute()
        except HttpError as exc:
            logger.warning("Could not access calendar %s: %s", cal_id, error_reason(exc))
            continue
        if responded is not None:
            responded.add(cal_id)
        items = resp.get("items", []) or []
        normalized = [ev for ev in (normalize_google_event(i, cal_id) for i in items) if ev]
        if normalized:
            logger.debug("Found %d events in calendar %s", len(normalized), cal_id)
        out.extend(normalized)
    out.sort(key=lambda ev: ev["start_time"])
    return out


def update_event_times(
    service,
    calendar_id: str,
    event_id: str,
    start: datetime,
    end: datetime,
    default_tz: str,
) -> Dict[str, Any]:
    try:
        existing = service.events().get(calendarId=calendar_id, eventId=event_id).execute()
        body = dict(existing)
        body["start"] = {
            "dateTime": as_utc(start).isoformat(),
            "timeZone": (existing.get("start") or {}).get("timeZone") or default_tz,
        }
        body["end"] = {
            "dateTime": as_utc(end).isoformat(),
            "timeZone": (existing.get("end") or {}).get("timeZone") or default_tz,
        }
        updated = service.events().update(calendarId=calendar_id, eventId=event_id, body=body).execute()
    except HttpError as exc:
        logger.exception("Event update failed for %s", event_id)
        raise api_error(exc, "Failed to update calendar event") from exc

    return {
        "id": updated.get("id"),
        "title": updated.get("summary"),
        "startTime": (updated.get("start") or {}).get("dateTime"),
        "endTime": (updated.get("end") or {}).get("dateTime"),
    }


def _find_or_create_folder(service, name: str) -> Optional[str]:
    query = f"name='{name}' and mimeType='{FOLDER_MIME}' and trashed=false"
    found = service.files().list(q=query, spaces="drive", fields="files(id, name)").execute()
    files = found.get("files", []) or []
    if files:
        return files[0]["id"]
    folder = service.files().create(body={"name": name, "mimeType": FOLDER_MIME}, fields="id").execute()
    logger.info("Created Drive folder %s", name)
    return folder.get("id")


def upload_pdf_to_drive(service, filename: str, content: str, mime_type: str = "application/pdf") -> Dict[str, Any]:
    """Upload base64 ``content`` into the planner folder, creating it on first use."""
    try:
        data = base64.b64decode(content, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise ValidationError("content must be base64 encoded") from exc

    try:
        folder_id = _find_or_create_folder(service, DRIVE_FOLDER_NAME)
        metadata: Dict[str, Any] = {"name": filename}
        if folder_id:
            metadata["parents"] = [folder_id]
        media = MediaIoBaseUpload(io.BytesIO(data), mimetype=mime_type or "application/pdf", resumable=False)
        created = service.files().create(body=metadata, media_body=media, fields="id").execute()
    except HttpError as exc:
        logger.exception("Drive upload failed for %s", filename)
        raise api_error(exc, "Failed to upload to Google Drive") from exc

    return {"fileId": created.get("id"), "filename": filename, "folder": DRIVE_FOLDER_NAME}


def dev_mock_events(now: Optional[datetime] = None) -> List[Dict[str, Any]]:
    now = as_utc(now or datetime.now(timezone.utc)).replace(second=0, microsecond=0)
    return [
        {
            "title": "Development Meeting",
            "description": "Mock event for development",
            "location": "Development Office",
            "start_time": now,
            "end_time": now + timedelta(hours=1),
            "source": "google",
            "source_id": "dev-event-1",
            "calendar_id": "primary",
        }
    ]
