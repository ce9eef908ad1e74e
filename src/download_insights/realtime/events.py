"""In-process realtime channel delivering pushed events to handlers."""

from __future__ import annotations

import logging
from typing import Any, Dict, List

from download_insights.domain.interfaces import EventHandler, IEventChannel

DOWNLOAD_SPEED_UPDATE = "DownloadSpeedUpdate"
DOWNLOADS_REFRESH = "DownloadsRefresh"
LOG_PROCESSING_COMPLETE = "LogProcessingComplete"

HISTORY_REFRESH_EVENTS = (DOWNLOADS_REFRESH, LOG_PROCESSING_COMPLETE)


class EventChannel(IEventChannel):
    """Named-event fan-out; transports feed it via ``emit``."""

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self._handlers: Dict[str, List[EventHandler]] = {}
        self._logger = logger or logging.getLogger(__name__)

    def on(self, event: str, handler: EventHandler) -> None:
        handlers = self._handlers.setdefault(event, [])
        if handler not in handlers:
            handlers.append(handler)

    def off(self, event: str, handler: EventHandler) -> None:
        handlers = self._handlers.get(event, [])
        if handler in handlers:
            handlers.remove(handler)
        if not handlers:
            self._handlers.pop(event, None)

    def emit(self, event: str, payload: Any = None) -> int:
        """Deliver ``payload`` to every handler of ``event``; returns handlers run."""

        delivered = 0
        for handler in list(self._handlers.get(event, [])):
            try:
                handler(payload)
            except Exception:
                self._logger.exception("event_handler_failed", extra={"event": event})
                continue
            delivered += 1
        return delivered

    def listener_count(self, event: str | None = None) -> int:
        if event is not None:
            return len(self._handlers.get(event, []))
        return sum(len(handlers) for handlers in self._handlers.values())
