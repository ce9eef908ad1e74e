"""Exception hierarchy for dashboard data-layer failures."""

from __future__ import annotations

from typing import Any, Mapping


class DashboardError(Exception):
    """Base class for all errors raised by the download dashboard."""

    default_message = "Download dashboard error occurred"

    def __init__(
        self, message: str | None = None, *, context: Mapping[str, Any] | None = None
    ):
        self.message = message or self.default_message
        self.context: Mapping[str, Any] = dict(context or {})
        formatted = self._format_message()
        super().__init__(formatted)

    def _format_message(self) -> str:
        if self.context:
            return f"{self.message} | context={self.context}"
        return self.message


class ApiError(DashboardError):
    """Backend API request failed."""

    default_message = "Backend API error"


class ApiUnavailableError(ApiError):
    """Backend is down, unreachable, or answered with a server error."""

    default_message = "Backend API is unavailable"


class ApiAuthError(ApiError):
    """Backend rejected the request credentials."""

    default_message = "Backend API authentication failed"


class MalformedPayloadError(ApiError):
    """Backend answered with a body that does not match the expected shape."""

    default_message = "Malformed backend payload"


class ExportError(DashboardError):
    """Serializing the current view for download failed."""

    default_message = "Export failed"


class SettingsError(DashboardError):
    """An operator preference was given an invalid value."""

    default_message = "Invalid dashboard setting"
