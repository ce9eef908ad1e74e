"""Live speed tracking: pulls and pushed snapshots merged into one active view."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Optional, Sequence, Tuple

from pydantic import ValidationError

from download_insights.domain.exceptions import DashboardError
from download_insights.domain.interfaces import IDashboardApi, IEventChannel
from download_insights.domain.models import (
    ClientSpeedInfo,
    DownloadRecord,
    GameSpeedInfo,
    SpeedSnapshot,
)

from .events import DOWNLOAD_SPEED_UPDATE
from .throttle import (
    MIN_FETCH_SPACING_SECONDS,
    Clock,
    FetchDebouncer,
    IntervalTimer,
    RefreshRate,
)


@dataclass(frozen=True)
class ActiveView:
    """What the "active downloads" panel renders."""

    has_active: bool
    games: Tuple[GameSpeedInfo, ...]
    clients: Tuple[ClientSpeedInfo, ...]
    total_bytes_per_second: float
    from_snapshot: bool


def build_active_view(
    snapshot: Optional[SpeedSnapshot], fallback_records: Sequence[DownloadRecord]
) -> ActiveView:
    """Prefer the snapshot wholesale; fall back to record flags only without one."""

    if snapshot is not None:
        active = snapshot.has_active_downloads
        return ActiveView(
            has_active=active,
            games=snapshot.game_speeds,
            clients=snapshot.client_speeds,
            total_bytes_per_second=snapshot.total_bytes_per_second if active else 0.0,
            from_snapshot=True,
        )
    return ActiveView(
        has_active=any(record.is_active for record in fallback_records),
        games=(),
        clients=(),
        total_bytes_per_second=0.0,
        from_snapshot=False,
    )


class SpeedMonitor:
    """Holds the latest applied speed snapshot.

    Fetches are numbered; a response whose number is below the last applied one
    is dropped, as is any fetched or pushed snapshot older than the applied one. Pushed snapshots are throttled to the refresh interval unless the
    number of active games changed, in which case they apply at once. A throttled
    push is kept pending and applied by ``flush``/``tick`` when the window ends.
    """

    def __init__(
        self,
        api: IDashboardApi,
        refresh_rate: RefreshRate = RefreshRate.STANDARD,
        *,
        clock: Clock = time.monotonic,
        min_fetch_spacing: float = MIN_FETCH_SPACING_SECONDS,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._api = api
        self._refresh_rate = refresh_rate
        self._clock = clock
        self._debouncer = FetchDebouncer(min_fetch_spacing, clock)
        self._poll_timer = IntervalTimer(self._refresh_rate.min_interval_seconds, clock)
        self.logger = logger or logging.getLogger(__name__)

        self._snapshot: Optional[SpeedSnapshot] = None
        self._pending: Optional[SpeedSnapshot] = None
        self._last_applied_at: Optional[float] = None
        self._next_sequence = 0
        self._applied_sequence = 0
        self._channel: Optional[IEventChannel] = None

    @property
    def snapshot(self) -> Optional[SpeedSnapshot]:
        return self._snapshot

    @property
    def pending(self) -> Optional[SpeedSnapshot]:
        return self._pending

    @property
    def refresh_rate(self) -> RefreshRate:
        return self._refresh_rate

    def set_refresh_rate(self, refresh_rate: RefreshRate) -> None:
        self._refresh_rate = refresh_rate
        self._poll_timer = IntervalTimer(refresh_rate.min_interval_seconds, self._clock)

    # ------------------------------------------------------------------
    # Pull side
    # ------------------------------------------------------------------
    def begin_fetch(self) -> int:
        self._next_sequence += 1
        return self._next_sequence

    def complete_fetch(self, sequence: int, snapshot: SpeedSnapshot) -> bool:
        """Apply a fetched snapshot unless a newer fetch or push already landed."""

        if sequence < self._applied_sequence or self._is_stale(snapshot):
            self.logger.debug(
                "speed_fetch_discarded",
                extra={"sequence": sequence, "applied": self._applied_sequence},
            )
            return False
        self._applied_sequence = sequence
        self._apply(snapshot, source="fetch")
        return True

    def refresh(self) -> bool:
        """Fetch the current snapshot; failures keep the last good one."""

        if not self._debouncer.try_acquire():
            return False
        sequence = self.begin_fetch()
        try:
            snapshot = self._api.get_current_speeds()
        except DashboardError as exc:
            self.logger.warning(
                "speed_fetch_failed",
                extra={"error": str(exc), "error_type": type(exc).__name__},
            )
            return False
        return self.complete_fetch(sequence, snapshot)

    def tick(self) -> bool:
        """Drive time-based work; returns True when a snapshot was applied."""

        applied = self.flush()
        if self._poll_timer.due():
            self._poll_timer.mark()
            applied = self.refresh() or applied
        return applied

    # ------------------------------------------------------------------
    # Push side
    # ------------------------------------------------------------------
    def handle_push(self, payload: Any) -> bool:
        snapshot = self._coerce(payload)
        if snapshot is None:
            return False
        if self._is_stale(snapshot):
            self.logger.debug(
                "speed_push_discarded",
                extra={"timestamp": str(snapshot.timestamp_utc)},
            )
            return False

        if self._count_changed(snapshot) or self._window_elapsed():
            self._apply(snapshot, source="push")
            return True

        self._pending = snapshot
        return False

    def flush(self) -> bool:
        """Apply the held push once the throttle window has passed."""

        if self._pending is None or not self._window_elapsed():
            return False
        pending = self._pending
        if self._is_stale(pending):
            self._pending = None
            return False
        self._apply(pending, source="pending")
        return True

    def attach(self, channel: IEventChannel) -> None:
        if self._channel is channel:
            return
        self.detach()
        channel.on(DOWNLOAD_SPEED_UPDATE, self.handle_push)
        self._channel = channel

    def detach(self) -> None:
        if self._channel is None:
            return
        self._channel.off(DOWNLOAD_SPEED_UPDATE, self.handle_push)
        self._channel = None

    def active_view(self, fallback_records: Sequence[DownloadRecord]) -> ActiveView:
        return build_active_view(self._snapshot, fallback_records)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _apply(self, snapshot: SpeedSnapshot, *, source: str) -> None:
        self._snapshot = snapshot
        self._pending = None
        self._last_applied_at = self._clock()
        self.logger.debug(
            "speed_snapshot_applied",
            extra={
                "source": source,
                "active_games": snapshot.active_game_count,
                "bytes_per_second": snapshot.total_bytes_per_second,
            },
        )

    def _coerce(self, payload: Any) -> Optional[SpeedSnapshot]:
        if isinstance(payload, SpeedSnapshot):
            return payload
        try:
            return SpeedSnapshot.model_validate(payload)
        except ValidationError as exc:
            self.logger.warning(
                "speed_push_malformed", extra={"errors": exc.error_count()}
            )
            return None

    def _is_stale(self, snapshot: SpeedSnapshot) -> bool:
        current = self._snapshot
        if current is None or current.timestamp_utc is None:
            return False
        if snapshot.timestamp_utc is None:
            return False
        return snapshot.timestamp_utc < current.timestamp_utc

    def _count_changed(self, snapshot: SpeedSnapshot) -> bool:
        if self._snapshot is None:
            return True
        return snapshot.active_game_count != self._snapshot.active_game_count

    def _window_elapsed(self) -> bool:
        if self._last_applied_at is None:
            return True
        elapsed = self._clock() - self._last_applied_at
        return elapsed >= self._refresh_rate.min_interval_seconds()
