"""Domain errors raised by the planner services and rendered by the API."""

from __future__ import annotations

from typing import Any, Dict, Optional


class PlannerError(Exception):
    status_code = 500

    def __init__(self, message: str, **extra: Any) -> None:
        super().__init__(message)
        self.message = message
        self.extra: Dict[str, Any] = extra

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.message, **self.extra}


class NotFoundError(PlannerError):
    status_code = 404


class ValidationError(PlannerError):
    status_code = 400


class ForbiddenError(PlannerError):
    status_code = 403


class AuthenticationRequired(PlannerError):
    status_code = 401

    def __init__(self, message: str = "Authentication required", auth_url: Optional[str] = "/api/auth/google") -> None:
        super().__init__(message, authUrl=auth_url)


class ReauthRequired(PlannerError):
    """Stored Google tokens are missing, expired without a refresh token, or revoked."""

    status_code = 401

    def __init__(self, message: str = "Google authentication expired. Please re-authenticate.") -> None:
        super().__init__(message, needsReauth=True, redirectTo="/api/auth/google")


class GoogleApiError(PlannerError):
    status_code = 502
