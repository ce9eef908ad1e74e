"""Keeps the "downloaded today" figure current."""

from __future__ import annotations

import logging
import time
from typing import Any, Optional

from download_insights.domain.exceptions import DashboardError
from download_insights.domain.interfaces import IDashboardApi, IEventChannel
from download_insights.domain.models import SpeedHistorySnapshot

from .events import HISTORY_REFRESH_EVENTS
from .throttle import (
    MIN_FETCH_SPACING_SECONDS,
    Clock,
    FetchDebouncer,
    IntervalTimer,
    RefreshRate,
)

TODAY_WINDOW_MINUTES = 24 * 60


class HistoryPoller:
    """Refetches speed history on a timer and on backend refresh events."""

    def __init__(
        self,
        api: IDashboardApi,
        *,
        window_minutes: int = TODAY_WINDOW_MINUTES,
        refresh_rate: RefreshRate = RefreshRate.STANDARD,
        clock: Clock = time.monotonic,
        min_fetch_spacing: float = MIN_FETCH_SPACING_SECONDS,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        if window_minutes <= 0:
            raise ValueError("window_minutes must be greater than zero")
        self._api = api
        self.window_minutes = window_minutes
        self._clock = clock
        self._debouncer = FetchDebouncer(min_fetch_spacing, clock)
        self._refresh_rate = refresh_rate
        self._timer = IntervalTimer(refresh_rate.min_interval_seconds, clock)
        self.logger = logger or logging.getLogger(__name__)
        self._history: Optional[SpeedHistorySnapshot] = None
        self._channel: Optional[IEventChannel] = None

    @property
    def history(self) -> Optional[SpeedHistorySnapshot]:
        return self._history

    @property
    def today_total(self) -> Optional[int]:
        return self._history.total_bytes if self._history is not None else None

    def set_refresh_rate(self, refresh_rate: RefreshRate) -> None:
        self._refresh_rate = refresh_rate
        self._timer = IntervalTimer(refresh_rate.min_interval_seconds, self._clock)

    def request_refresh(self, _payload: Any = None) -> bool:
        """Fetch now unless another fetch ran inside the debounce window."""

        if not self._debouncer.try_acquire():
            self.logger.debug("history_refresh_debounced")
            return False
        try:
            history = self._api.get_speed_history(self.window_minutes)
        except DashboardError as exc:
            self.logger.warning(
                "history_fetch_failed",
                extra={"error": str(exc), "error_type": type(exc).__name__},
            )
            return False
        self._history = history
        self.logger.debug(
            "history_applied", extra={"total_bytes": history.total_bytes}
        )
        return True

    def tick(self) -> bool:
        if not self._timer.due():
            return False
        self._timer.mark()
        return self.request_refresh()

    def attach(self, channel: IEventChannel) -> None:
        if self._channel is channel:
            return
        self.detach()
        for event in HISTORY_REFRESH_EVENTS:
            channel.on(event, self.request_refresh)
        self._channel = channel

    def detach(self) -> None:
        if self._channel is None:
            return
        for event in HISTORY_REFRESH_EVENTS:
            self._channel.off(event, self.request_refresh)
        self._channel = None
