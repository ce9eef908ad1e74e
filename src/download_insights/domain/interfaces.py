"""Domain-level interfaces defining contracts for dashboard collaborators."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Callable, List, Optional, Protocol, Union

from .models import (
    DownloadAssociations,
    DownloadRecord,
    ServerConfig,
    SpeedHistorySnapshot,
    SpeedSnapshot,
)

EventHandler = Callable[[Any], None]


class IDashboardApi(Protocol):
    """Backend endpoints consumed by the view engine."""

    def get_current_speeds(self) -> SpeedSnapshot:
        """Return the live snapshot of active transfers."""

    def get_speed_history(self, minutes: int) -> SpeedHistorySnapshot:
        """Return transfer totals over the trailing window."""

    def get_latest_downloads(
        self,
        count: Union[int, str] = "unlimited",
        start_time: Optional[datetime] = None,
        end_time: Optional[datetime] = None,
    ) -> List[DownloadRecord]:
        """Return the most recent download records."""

    def get_config(self) -> ServerConfig:
        """Return backend configuration relevant to display decisions."""

    def get_download_associations(self, download_id: int) -> DownloadAssociations:
        """Return tags and events attached to a download record."""


class IEventChannel(Protocol):
    """Realtime channel delivering pushed events by name."""

    def on(self, event: str, handler: EventHandler) -> None:
        """Register ``handler`` for ``event``."""

    def off(self, event: str, handler: EventHandler) -> None:
        """Unregister ``handler`` from ``event``."""


class IPreferenceStore(Protocol):
    """String key-value persistence for operator preferences."""

    def get(self, key: str) -> Optional[str]:
        """Return the stored value or None when the key was never written."""

    def set(self, key: str, value: str) -> None:
        """Persist ``value`` under ``key``."""
