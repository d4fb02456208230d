# backend/planner/schemas.py
"""Request/response schemas. JSON uses the dashboard's camelCase keys."""

from __future__ import annotations
from typing import Any, Dict, List, Literal, Optional
from datetime import datetime
import re

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")

EventSource = Literal["manual", "google", "simplepractice", "holiday"]


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ───────────────────────── Events ───────────────────────────────────
class EventIn(CamelModel):
    """Request schema for event creation."""
    title: str = Field(min_length=1)
    start_time: datetime  # ISO string in, UTC out
    end_time:   datetime
    user_id: Optional[int] = None
    description: Optional[str] = None
    source: EventSource = "manual"
    source_id: Optional[str] = None
    calendar_id: Optional[str] = None
    color: Optional[str] = "#6495ED"
    location: Optional[str] = None
    notes: Optional[str] = None
    action_items: Optional[str] = None

    @model_validator(mode="after")
    def _check_order(self) -> "EventIn":
        if self.start_time >= self.end_time:
            raise ValueError("Start time must be before end time")
        return self


class EventUpdate(CamelModel):
    title: Optional[str] = None
    start_time: Optional[datetime] = None
    end_time:   Optional[datetime] = None
    description: Optional[str] = None
    color: Optional[str] = None
    location: Optional[str] = None
    notes: Optional[str] = None
    action_items: Optional[str] = None
    calendar_id: Optional[str] = None

    @model_validator(mode="after")
    def _check_order(self) -> "EventUpdate":
        if self.start_time and self.end_time and self.start_time >= self.end_time:
            raise ValueError("Start time must be before end time")
        return self


class EventOut(CamelModel):
    """Dashboard shape of a stored event."""
    id: str
    title: str
    description: str = ""
    start_time: datetime
    end_time:   datetime
    source: str = "manual"
    source_id: Optional[str] = None
    color: str = "#999"
    location: str = ""
    notes: str = ""
    action_items: str = ""
    calendar_id: Optional[str] = None

    @classmethod
    def from_event(cls, e: Any) -> "EventOut":
        source = e.source or "manual"
        return cls(
            id=e.source_id or str(e.id),
            title=e.title or "Untitled Event",
            description=e.description or "",
            start_time=e.start_time,
            end_time=e.end_time,
            source=source,
            source_id=e.source_id,
            color=e.color or "#999",
            location=e.location or "",
            notes=e.notes or "",
            action_items=e.action_items or "",
            calendar_id=e.calendar_id if source != "manual" else None,
        )


class EventRecord(CamelModel):
    """Full stored row, returned by create/update."""
    id: int
    user_id: Optional[int] = None
    title: str
    description: Optional[str] = None
    start_time: datetime
    end_time:   datetime
    source: str
    source_id: Optional[str] = None
    calendar_id: Optional[str] = None
    color: Optional[str] = None
    location: Optional[str] = None
    notes: Optional[str] = None
    action_items: Optional[str] = None
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


# ───────────────────────── Daily notes ──────────────────────────────
class DailyNoteIn(CamelModel):
    user_id: int
    date: str
    content: str = ""

    @field_validator("date")
    @classmethod
    def _check_date(cls, v: str) -> str:
        if not DATE_RE.match(v):
            raise ValueError("date must be YYYY-MM-DD")
        return v


class DailyNoteOut(CamelModel):
    id: int
    user_id: Optional[int] = None
    date: str
    content: Optional[str] = ""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


# ───────────────────────── Users & auth ─────────────────────────────
class UserOut(CamelModel):
    id: int
    username: str
    email: Optional[str] = None
    name: Optional[str] = None
    google_id: Optional[str] = None
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class AuthStatus(CamelModel):
    authenticated: bool
    user: Optional[UserOut] = None
    has_google_tokens: bool = False
    token_state: Optional[str] = None
    note: str = "To authenticate, visit /api/auth/google to start OAuth flow"


# ───────────────────────── Google calendar & drive ──────────────────
class CalendarOut(CamelModel):
    id: str
    name: str
    color: str = "#4285f4"


class CalendarEventsOut(CamelModel):
    events: List[EventOut]
    calendars: List[CalendarOut]
    sync_time: Optional[datetime] = None
    is_live_sync: bool = False
    created: int = 0
    updated: int = 0
    deleted: int = 0


class GoogleEventTimesIn(CamelModel):
    start_time: datetime
    end_time: datetime
    calendar_id: str = "primary"

    @model_validator(mode="after")
    def _check_order(self) -> "GoogleEventTimesIn":
        if self.start_time >= self.end_time:
            raise ValueError("Start time must be before end time")
        return self


class DriveUploadIn(CamelModel):
    filename: str = Field(min_length=1)
    content: str  # base64
    mime_type: str = "application/pdf"


class DriveUploadOut(CamelModel):
    success: bool = True
    file_id: Optional[str] = None
    filename: str
    folder: str


# ───────────────────────── Audits ───────────────────────────────────
AuditStatus = Literal["PASS", "FAIL", "WARNING"]


class AuditResult(CamelModel):
    component: str
    status: AuditStatus
    message: str
    details: Optional[Dict[str, Any]] = None
    fix: Optional[str] = None


class AuditSummary(CamelModel):
    total: int
    passed: int
    failed: int
    warnings: int


class AuditReport(CamelModel):
    timestamp: datetime
    results: List[AuditResult]
    summary: AuditSummary
    recommendations: List[str]


class ElementMeasurement(CamelModel):
    pixels: Optional[float] = None
    font_size: Optional[str] = None
    font_family: Optional[str] = None
    padding: Optional[str] = None
    border_width: Optional[str] = None


class DashboardMeasurements(CamelModel):
    """Values measured from the rendered dashboard and posted by the client."""
    time_column_width: Optional[ElementMeasurement] = None
    day_column_width: Optional[ElementMeasurement] = None
    time_slot_height: Optional[ElementMeasurement] = None
    event_box: Optional[ElementMeasurement] = None
    grid_container: Optional[ElementMeasurement] = None


class LayoutMeasurement(CamelModel):
    element: str
    browser_value: str
    pdf_value: str
    difference: str
    source: str


class LayoutAuditReport(CamelModel):
    timestamp: datetime
    view: str
    measurements: List[LayoutMeasurement]
    score: int
    compromises: List[str]
    traceability: Dict[str, Any]
    summary: str
