"""
Google OAuth token lifecycle.

Tokens live on the ``users`` row and nowhere else. Every Google call goes
through ``credentials_for``, which decides from the stored state whether the
access token can be used as is, must be refreshed first, or whether the user
has to go through consent again.
"""

from __future__ import annotations

import logging
import warnings
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from google.auth.exceptions import RefreshError
from google.auth.transport.requests import Request as GoogleRequest
from google.oauth2 import id_token
from google.oauth2.credentials import Credentials
from google_auth_oauthlib.flow import Flow
from googleapiclient.errors import HttpError
from sqlalchemy.orm import Session

from . import storage
from .config import Settings
from .errors import GoogleApiError, ReauthRequired, ValidationError
from .models import User

logger = logging.getLogger(__name__)

AUTH_URI = "https://accounts.google.com/o/oauth2/auth"
TOKEN_URI = "https://oauth2.googleapis.com/token"

SCOPES = [
    "openid",
    "https://www.googleapis.com/auth/userinfo.email",
    "https://www.googleapis.com/auth/userinfo.profile",
    "https://www.googleapis.com/auth/drive.file",
    "https://www.googleapis.com/auth/calendar.events",
    "https://www.googleapis.com/auth/calendar.readonly",
]

DEV_TOKEN_PREFIX = "dev-"
EXPIRY_SKEW = timedelta(seconds=60)


class TokenState(str, Enum):
    MISSING = "missing"
    VALID = "valid"
    EXPIRED_REFRESHABLE = "expired_refreshable"
    EXPIRED_UNREFRESHABLE = "expired_unrefreshable"


def _client_config(settings: Settings) -> Dict[str, Any]:
    return {
        "web": {
            "client_id": settings.google_client_id,
            "client_secret": settings.google_client_secret,
            "auth_uri": AUTH_URI,
            "token_uri": TOKEN_URI,
        }
    }


def build_flow(settings: Settings, state: Optional[str] = None, code_verifier: Optional[str] = None) -> Flow:
    if not settings.google_configured:
        raise ValidationError(
            "Google OAuth is not configured",
            missing=settings.missing_google_env_vars,
        )
    flow = Flow.from_client_config(
        client_config=_client_config(settings),
        scopes=SCOPES,
        state=state,
        code_verifier=code_verifier,
        autogenerate_code_verifier=code_verifier is None,
    )
    flow.redirect_uri = settings.redirect_uri
    return flow


def authorization_url(settings: Settings) -> Tuple[str, str, Optional[str]]:
    """Consent URL, its state, and the PKCE verifier the callback must present."""
    flow = build_flow(settings)
    url, state = flow.authorization_url(
        access_type="offline",
        include_granted_scopes="true",
        prompt="consent",
    )
    return url, state, flow.code_verifier


def _aware(expiry: Optional[datetime]) -> Optional[datetime]:
    # google-auth keeps expiry as naive UTC
    if expiry is None:
        return None
    return expiry.replace(tzinfo=timezone.utc) if expiry.tzinfo is None else expiry.astimezone(timezone.utc)


def _naive(expiry: Optional[datetime]) -> Optional[datetime]:
    if expiry is None:
        return None
    return expiry.astimezone(timezone.utc).replace(tzinfo=None) if expiry.tzinfo else expiry


def complete_authorization(
    db: Session,
    settings: Settings,
    authorization_response: str,
    state: str,
    code_verifier: Optional[str] = None,
) -> User:
    """Exchange the callback code, verify the ID token, and persist the tokens on the user."""
    flow = build_flow(settings, state=state, code_verifier=code_verifier)
    with warnings.catch_warnings():
        warnings.filterwarnings("ignore", message=r"Scope has changed.*")
        flow.fetch_token(authorization_response=authorization_response)
    creds = flow.credentials

    idinfo = id_token.verify_oauth2_token(
        creds.id_token,
        GoogleRequest(),
        settings.google_client_id,
        clock_skew_in_seconds=60,
    )
    google_id = idinfo.get("sub")
    email = idinfo.get("email") or ""
    name = idinfo.get("name") or ""
    if not google_id:
        raise GoogleApiError("Google ID token did not include a subject")

    user = storage.get_user_by_google_id(db, google_id)
    if user is None:
        user = storage.create_google_user(db, google_id, email, name)
    else:
        logger.info("Found existing user %s for Google account", user.id)

    storage.save_google_tokens(db, user, creds.token, creds.refresh_token, _aware(creds.expiry))
    logger.info(
        "OAuth completed for user %s (access token: %s, refresh token: %s)",
        user.id,
        bool(creds.token),
        bool(user.google_refresh_token),
    )
    return user


def is_dev_token(token: Optional[str]) -> bool:
    return bool(token) and token.startswith(DEV_TOKEN_PREFIX)


def token_state(user: Optional[User], now: Optional[datetime] = None) -> TokenState:
    if user is None or (not user.google_access_token and not user.google_refresh_token):
        return TokenState.MISSING
    if is_dev_token(user.google_access_token):
        return TokenState.VALID
    now = now or datetime.now(timezone.utc)
    expiry = _aware(user.google_token_expiry)
    if user.google_access_token and (expiry is None or expiry - EXPIRY_SKEW > now):
        return TokenState.VALID
    if user.google_refresh_token:
        return TokenState.EXPIRED_REFRESHABLE
    return TokenState.EXPIRED_UNREFRESHABLE


def _credentials(user: User, settings: Settings) -> Credentials:
    return Credentials(
        token=user.google_access_token,
        refresh_token=user.google_refresh_token,
        token_uri=TOKEN_URI,
        client_id=settings.google_client_id,
        client_secret=settings.google_client_secret,
        scopes=SCOPES,
        expiry=_naive(user.google_token_expiry),
    )


def _refresh(db: Session, user: User, creds: Credentials, request: Any = None) -> Credentials:
    try:
        creds.refresh(request or GoogleRequest())
    except RefreshError as exc:
        if "invalid_grant" in str(exc):
            logger.warning("Refresh token for user %s was revoked; clearing stored tokens", user.id)
            storage.clear_google_tokens(db, user)
            raise ReauthRequired("Refresh token expired - please re-authenticate") from exc
        logger.exception("Token refresh failed for user %s", user.id)
        raise GoogleApiError("Token refresh failed", details=str(exc)) from exc
    storage.save_google_tokens(db, user, creds.token, creds.refresh_token, _aware(creds.expiry))
    logger.info("Refreshed Google access token for user %s", user.id)
    return creds


def credentials_for(db: Session, user: User, settings: Settings, request: Any = None) -> Credentials:
    """Usable Google credentials for ``user``, refreshing and persisting them when needed."""
    state = token_state(user)
    if state in (TokenState.MISSING, TokenState.EXPIRED_UNREFRESHABLE):
        raise ReauthRequired()
    creds = _credentials(user, settings)
    if state is TokenState.EXPIRED_REFRESHABLE:
        creds = _refresh(db, user, creds, request)
    return creds


def force_refresh(db: Session, user: User, settings: Settings, request: Any = None, service: Any = None) -> Dict[str, Any]:
    if not user.google_refresh_token or is_dev_token(user.google_refresh_token):
        raise ReauthRequired("No refresh token available")
    creds = _refresh(db, user, _credentials(user, settings), request)

    from .google_calendar import calendar_service

    svc = service or calendar_service(creds)
    try:
        svc.calendarList().list(maxResults=1).execute()
    except HttpError as exc:
        logger.warning("New token for user %s failed validation: %s", user.id, exc)
        raise ReauthRequired("Token validation failed") from exc

    return {
        "hasAccessToken": bool(creds.token),
        "hasRefreshToken": bool(user.google_refresh_token),
        "expiry": _aware(creds.expiry).isoformat() if creds.expiry else None,
    }


def revoke(db: Session, user: User) -> None:
    storage.clear_google_tokens(db, user)
    logger.info("Cleared Google tokens for user %s", user.id)
