"""Diagnostics: the authentication audit and the dashboard/PDF layout audit."""

from .layout import audit_layout
from .system import AuthenticationAudit

__all__ = ["AuthenticationAudit", "audit_layout"]
