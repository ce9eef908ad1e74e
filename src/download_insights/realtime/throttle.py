"""Refresh-rate presets plus the fetch debouncer and update throttle."""

from __future__ import annotations

import time
from enum import Enum
from typing import Callable, Optional

Clock = Callable[[], float]

MIN_FETCH_SPACING_SECONDS = 0.5


class RefreshRate(str, Enum):
    """Operator-selectable poll cadences; LIVE is the shortest."""

    LIVE = "LIVE"
    ULTRA = "ULTRA"
    REALTIME = "REALTIME"
    STANDARD = "STANDARD"
    RELAXED = "RELAXED"
    SLOW = "SLOW"

    @property
    def interval_ms(self) -> int:
        return _INTERVALS_MS[self]

    def min_interval_seconds(self) -> float:
        """Throttle window; LIVE still keeps a floor to avoid UI thrashing."""

        if self.interval_ms == 0:
            return MIN_FETCH_SPACING_SECONDS
        return self.interval_ms / 1000


_INTERVALS_MS = {
    RefreshRate.LIVE: 0,
    RefreshRate.ULTRA: 1_000,
    RefreshRate.REALTIME: 5_000,
    RefreshRate.STANDARD: 10_000,
    RefreshRate.RELAXED: 30_000,
    RefreshRate.SLOW: 60_000,
}


class FetchDebouncer:
    """Collapses bursts of fetch triggers into one fetch per spacing window."""

    def __init__(
        self,
        min_spacing_seconds: float = MIN_FETCH_SPACING_SECONDS,
        clock: Clock = time.monotonic,
    ) -> None:
        if min_spacing_seconds < 0:
            raise ValueError("min_spacing_seconds cannot be negative")
        self._spacing = min_spacing_seconds
        self._clock = clock
        self._last_fetch: Optional[float] = None

    def try_acquire(self) -> bool:
        """Claim the next fetch slot; False while still inside the window."""

        now = self._clock()
        if self._last_fetch is not None and now - self._last_fetch < self._spacing:
            return False
        self._last_fetch = now
        return True

    def reset(self) -> None:
        self._last_fetch = None


class IntervalTimer:
    """Tracks whether a poll interval has elapsed since the last run."""

    def __init__(self, interval: Callable[[], float], clock: Clock = time.monotonic):
        self._interval = interval
        self._clock = clock
        self._last_run: Optional[float] = None

    def due(self) -> bool:
        if self._last_run is None:
            return True
        return self._clock() - self._last_run >= self._interval()

    def mark(self) -> None:
        self._last_run = self._clock()
