"""Authentication audit: configuration, database, session, tokens and Google access."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Mapping, Optional

from googleapiclient.errors import HttpError
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..config import Settings
from ..errors import PlannerError
from ..google_auth import TokenState, credentials_for, is_dev_token, token_state
from ..google_calendar import calendar_service, error_reason
from ..models import User
from ..schemas import AuditReport, AuditResult, AuditSummary

logger = logging.getLogger(__name__)

REDIRECT_TO_OAUTH = "Redirecting to Google OAuth authentication"


def database_connected(db: Session) -> bool:
    try:
        db.execute(text("SELECT 1"))
    except SQLAlchemyError:
        logger.exception("Database check failed")
        return False
    return True


class AuthenticationAudit:
    """
    Runs the checks in a fixed order and collects one result per finding.

    ``service_factory`` builds a Calendar client from credentials; tests pass
    a fake so Google is never contacted.
    """

    def __init__(self, service_factory: Callable[[Any], Any] = calendar_service) -> None:
        self.service_factory = service_factory
        self.results: List[AuditResult] = []

    def _add(
        self,
        component: str,
        status: str,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        fix: Optional[str] = None,
    ) -> None:
        self.results.append(AuditResult(component=component, status=status, message=message, details=details, fix=fix))

    # ── individual checks ──────────────────────────────────────────
    def audit_environment(self, settings: Settings) -> None:
        for name, value in (
            ("GOOGLE_CLIENT_ID", settings.google_client_id),
            ("GOOGLE_CLIENT_SECRET", settings.google_client_secret),
        ):
            if value:
                self._add("Environment", "PASS", f"{name} is configured")
            else:
                self._add("Environment", "FAIL", f"{name} is missing", fix=f"Add {name} to environment variables")

        if settings.database_url:
            self._add("Database", "PASS", "DATABASE_URL is configured",
                      {"dialect": settings.database_url.split(":", 1)[0]})
        else:
            self._add("Database", "FAIL", "DATABASE_URL is missing", fix="Configure DATABASE_URL")

        if settings.uses_default_session_secret:
            self._add("Session", "WARNING", "SESSION_SECRET not configured, using default",
                      fix="Set SESSION_SECRET for production security")
        else:
            self._add("Session", "PASS", "SESSION_SECRET is configured")

    def audit_database(self, db: Session) -> None:
        if database_connected(db):
            self._add("Database", "PASS", "Database connection successful")
        else:
            self._add("Database", "FAIL", "Database connection failed", fix="Check DATABASE_URL and database status")

    def audit_session(self, session: Mapping[str, Any]) -> None:
        if session.get("user_id"):
            self._add("Session", "PASS", "Session holds a user id", {"keys": sorted(session.keys())})
        else:
            self._add("Session", "WARNING", "Session has no user id", {"keys": sorted(session.keys())},
                      fix="Sign in via /api/auth/google to start a session")

    def audit_oauth_config(self, settings: Settings) -> None:
        if not settings.google_configured:
            self._add("OAuth", "FAIL", "OAuth cannot be configured without Google OAuth credentials",
                      {"missing": settings.missing_google_env_vars})
            return
        self._add("OAuth", "PASS", "OAuth configuration appears valid", {"callbackUrl": settings.redirect_uri})

    def audit_user(self, user: Optional[User]) -> None:
        if user is None:
            self._add("Authentication", "FAIL", "No authenticated user",
                      fix="User needs to authenticate via /api/auth/google")
            return
        state = token_state(user)
        self._add("Authentication", "PASS", "User authenticated",
                  {"userId": user.id, "email": user.email, "tokenState": state.value})
        if state is TokenState.MISSING:
            self._add("Authentication", "FAIL", "User has no Google tokens",
                      fix="User must re-authenticate with Google")
        elif state is TokenState.EXPIRED_REFRESHABLE:
            self._add("Authentication", "WARNING", "Access token expired", fix="Refresh the Google access token")
        elif state is TokenState.EXPIRED_UNREFRESHABLE:
            self._add("Authentication", "FAIL", "Access token expired and no refresh token is stored",
                      fix="User must re-authenticate with Google")

    def audit_google_api(self, db: Session, settings: Settings, user: Optional[User]) -> None:
        if user is None or token_state(user) is TokenState.MISSING:
            self._add("Google API", "FAIL", "No access token available", fix="User must re-authenticate with Google")
            return
        if is_dev_token(user.google_access_token):
            self._add("Google API", "PASS", "Development tokens; Google API not contacted")
            return
        try:
            service = self.service_factory(credentials_for(db, user, settings))
            resp = service.calendarList().list(maxResults=1).execute()
        except (HttpError, PlannerError) as exc:
            reason = error_reason(exc) if isinstance(exc, HttpError) else exc.message
            logger.warning("Google API check failed for user %s: %s", user.id, reason)
            self._add("Google API", "FAIL", "Google Calendar API access failed", {"error": reason},
                      fix="Check access token validity or re-authenticate")
            return
        self._add("Google API", "PASS", "Google Calendar API access successful",
                  {"calendarsFound": len(resp.get("items", []) or [])})

    # ── entry points ───────────────────────────────────────────────
    def run(self, db: Session, settings: Settings, session: Mapping[str, Any], user: Optional[User]) -> AuditReport:
        self.results = []
        self.audit_environment(settings)
        self.audit_database(db)
        self.audit_session(session)
        self.audit_oauth_config(settings)
        self.audit_user(user)
        self.audit_google_api(db, settings, user)

        summary = AuditSummary(
            total=len(self.results),
            passed=sum(r.status == "PASS" for r in self.results),
            failed=sum(r.status == "FAIL" for r in self.results),
            warnings=sum(r.status == "WARNING" for r in self.results),
        )
        recommendations = [f"{r.component}: {r.fix}" for r in self.results if r.fix]
        logger.info("Audit summary: %s", summary.model_dump())
        return AuditReport(
            timestamp=datetime.now(timezone.utc),
            results=list(self.results),
            summary=summary,
            recommendations=recommendations,
        )

    def autofix(self, db: Session, settings: Settings, session: Mapping[str, Any], user: Optional[User]) -> List[str]:
        """Apply what can be fixed server-side; return a description of each fix."""
        # the audit refreshes expired tokens itself, so read the state first
        state = token_state(user)
        self.run(db, settings, session, user)
        fixes: List[str] = []
        if user is None:
            fixes.append(REDIRECT_TO_OAUTH)
            return fixes
        if state is TokenState.EXPIRED_REFRESHABLE:
            try:
                credentials_for(db, user, settings)
            except PlannerError as exc:
                logger.warning("Auto-fix token refresh failed for user %s: %s", user.id, exc.message)
                fixes.append(f"Token refresh failed: {exc.message}")
                fixes.append(REDIRECT_TO_OAUTH)
            else:
                fixes.append("Refreshed expired Google access token")
        elif state in (TokenState.MISSING, TokenState.EXPIRED_UNREFRESHABLE):
            fixes.append(REDIRECT_TO_OAUTH)
        return fixes

    def health(self, db: Session, session: Mapping[str, Any], user: Optional[User]) -> Dict[str, Any]:
        return {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "server": "running",
            "database": "connected" if database_connected(db) else "disconnected",
            "authentication": "authenticated" if user else "not_authenticated",
            "session": bool(session),
            "user": user is not None,
        }
