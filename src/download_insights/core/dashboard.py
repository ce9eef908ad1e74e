"""Downloads dashboard facade coordinating data, settings and view state."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Dict, FrozenSet, List, Optional, Sequence

from download_insights.analytics import exporter
from download_insights.analytics.associations import AssociationCache
from download_insights.core.config import DashboardConfig
from download_insights.core.settings import SettingsStore
from download_insights.domain.exceptions import DashboardError, ExportError
from download_insights.domain.interfaces import IDashboardApi, IEventChannel
from download_insights.domain.models import (
    DepotGroup,
    DownloadGroup,
    DownloadRecord,
    ServerConfig,
    ViewItem,
    ViewMode,
)
from download_insights.domain.settings import DownloadSettings, FilterSettings
from download_insights.engine.filters import is_record_sequence
from download_insights.engine.options import (
    ServiceOptions,
    client_options,
    service_options,
)
from download_insights.engine.pagination import Page, clamp_page, total_pages
from download_insights.engine.pipeline import PreparedView, ViewPipeline
from download_insights.realtime.events import DOWNLOADS_REFRESH
from download_insights.realtime.history_poller import HistoryPoller
from download_insights.realtime.speed_monitor import ActiveView, SpeedMonitor
from download_insights.realtime.throttle import (
    Clock,
    FetchDebouncer,
    IntervalTimer,
    RefreshRate,
)
from download_insights.utils.formatters import format_bytes, format_speed

# Changing any of these invalidates the current page position.
PAGE_RESET_FIELDS: FrozenSet[str] = frozenset(FilterSettings.model_fields) | {
    "sort_order",
    "view_mode",
    "items_per_page",
    "items_per_page_retro",
    "group_unknown_games",
    "group_by_frequency",
}


@dataclass(frozen=True)
class PaginationTotals:
    total_pages: int = 1
    total_items: int = 0


@dataclass(frozen=True)
class DashboardView:
    """Everything a renderer needs for one frame."""

    view_mode: ViewMode
    page: Page[Any]
    standard: PaginationTotals
    retro: PaginationTotals
    expanded_item: Optional[str]
    show_datasource_labels: bool
    active_preset: str


@dataclass(frozen=True)
class HeaderSummary:
    has_active: bool
    active_games: int
    speed: str
    today_total: str


class DownloadsDashboard:
    """High-level API the renderers talk to.

    Holds the record set, the view-local state (current page, expanded item)
    and the realtime helpers. The aggregation itself lives in ``ViewPipeline``.
    """

    def __init__(
        self,
        api: IDashboardApi,
        settings_store: SettingsStore,
        *,
        config: Optional[DashboardConfig] = None,
        pipeline: Optional[ViewPipeline] = None,
        speed_monitor: Optional[SpeedMonitor] = None,
        history_poller: Optional[HistoryPoller] = None,
        associations: Optional[AssociationCache] = None,
        clock: Clock = time.monotonic,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._api = api
        self._config = config or DashboardConfig()
        self._settings_store = settings_store
        self._pipeline = pipeline or ViewPipeline()
        self.logger = logger or logging.getLogger(__name__)
        spacing = self._config.min_fetch_spacing_seconds
        self.speed_monitor = speed_monitor or SpeedMonitor(
            api, self._config.refresh_rate, clock=clock, min_fetch_spacing=spacing
        )
        self.history_poller = history_poller or HistoryPoller(
            api,
            window_minutes=self._config.history_window_minutes,
            refresh_rate=self._config.refresh_rate,
            clock=clock,
            min_fetch_spacing=spacing,
        )
        self.associations = associations or AssociationCache(api)

        self._clock = clock
        self._downloads_debouncer = FetchDebouncer(spacing, clock)
        self._downloads_timer = IntervalTimer(
            self._config.refresh_rate.min_interval_seconds, clock
        )
        self._records: List[DownloadRecord] = []
        self._records_version = 0
        self._server_config: Optional[ServerConfig] = None
        self._page = 1
        self._expanded_item: Optional[str] = None
        self._totals: Dict[str, PaginationTotals] = {
            "standard": PaginationTotals(),
            "retro": PaginationTotals(),
        }
        self._channel: Optional[IEventChannel] = None
        self.last_export_error: Optional[ExportError] = None

        self._settings_store.subscribe(self._on_settings_changed)

    # ------------------------------------------------------------------
    # Data
    # ------------------------------------------------------------------
    @property
    def settings(self) -> DownloadSettings:
        return self._settings_store.settings

    @property
    def settings_store(self) -> SettingsStore:
        return self._settings_store

    @property
    def records(self) -> Sequence[DownloadRecord]:
        return tuple(self._records)

    @property
    def records_version(self) -> int:
        return self._records_version

    def replace_records(self, records: Any) -> None:
        """Swap in a new record set; anything that is not a record list counts as empty."""

        if not is_record_sequence(records):
            self.logger.warning(
                "malformed_record_source",
                extra={"source_type": type(records).__name__},
            )
            records = []
        self._records = list(records)
        self._records_version += 1

    def refresh_downloads(self) -> bool:
        if not self._downloads_debouncer.try_acquire():
            return False
        try:
            records = self._api.get_latest_downloads(count=self._config.downloads_count)
        except DashboardError as exc:
            self.logger.warning(
                "downloads_fetch_failed",
                extra={"error": str(exc), "error_type": type(exc).__name__},
            )
            return False
        self.replace_records(records)
        return True

    def load_server_config(self) -> bool:
        try:
            self._server_config = self._api.get_config()
        except DashboardError as exc:
            self.logger.warning("config_fetch_failed", extra={"error": str(exc)})
            return False
        return True

    @property
    def show_datasource_labels(self) -> bool:
        if self._server_config is None:
            return False
        has_sources = len(self._server_config.data_sources) >= 1
        return has_sources and self.settings.show_datasource_labels

    # ------------------------------------------------------------------
    # View
    # ------------------------------------------------------------------
    def prepare(self) -> PreparedView:
        return self._pipeline.build(self._records, self._records_version, self.settings)

    def view(self) -> DashboardView:
        settings = self.settings
        prepared = self.prepare()
        rows = prepared.rows
        pages = total_pages(len(rows), settings.page_size)
        self._page = clamp_page(self._page, pages)
        page = prepared.page(settings.page_size, self._page)

        bucket = "retro" if settings.view_mode == ViewMode.RETRO else "standard"
        self._totals[bucket] = PaginationTotals(page.total_pages, page.total_items)

        return DashboardView(
            view_mode=settings.view_mode,
            page=page,
            standard=self._totals["standard"],
            retro=self._totals["retro"],
            expanded_item=self._expanded_item,
            show_datasource_labels=self.show_datasource_labels,
            active_preset=self._settings_store.active_preset,
        )

    @property
    def current_page(self) -> int:
        return self._page

    def set_page(self, page: int) -> int:
        if page < 1:
            raise ValueError("page must be a positive integer")
        self._page = page
        return self._page

    @property
    def expanded_item(self) -> Optional[str]:
        return self._expanded_item

    def toggle_expanded(self, item_id: str) -> Optional[str]:
        self._expanded_item = None if self._expanded_item == item_id else item_id
        return self._expanded_item

    def service_options(self) -> ServiceOptions:
        return service_options(self._records)

    def client_options(self) -> Sequence[str]:
        return client_options(self._records)

    def load_page_associations(self) -> int:
        """Fetch tags/events for every record visible on the current page."""

        ids: List[int] = []
        for row in self.view().page.items:
            if isinstance(row, DownloadGroup):
                ids.extend(record.id for record in row.downloads)
            elif isinstance(row, DepotGroup):
                ids.extend(row.record_ids)
            else:
                ids.append(row.id)
        return self.associations.fetch(ids)

    # ------------------------------------------------------------------
    # Realtime
    # ------------------------------------------------------------------
    def active_view(self) -> ActiveView:
        return self.speed_monitor.active_view(self._records)

    def header_summary(self) -> HeaderSummary:
        active = self.active_view()
        today = self.history_poller.today_total
        return HeaderSummary(
            has_active=active.has_active,
            active_games=len(active.games),
            speed=format_speed(active.total_bytes_per_second),
            today_total=format_bytes(today or 0),
        )

    def attach(self, channel: IEventChannel) -> None:
        self.detach()
        self.speed_monitor.attach(channel)
        self.history_poller.attach(channel)
        channel.on(DOWNLOADS_REFRESH, self._on_downloads_refresh)
        self._channel = channel

    def detach(self) -> None:
        self.speed_monitor.detach()
        self.history_poller.detach()
        if self._channel is not None:
            self._channel.off(DOWNLOADS_REFRESH, self._on_downloads_refresh)
            self._channel = None

    def set_refresh_rate(self, refresh_rate: RefreshRate) -> None:
        self.speed_monitor.set_refresh_rate(refresh_rate)
        self.history_poller.set_refresh_rate(refresh_rate)
        self._downloads_timer = IntervalTimer(
            refresh_rate.min_interval_seconds, self._clock
        )

    def tick(self) -> None:
        """Run whatever periodic work is due."""

        self.speed_monitor.tick()
        self.history_poller.tick()
        if self._downloads_timer.due():
            self._downloads_timer.mark()
            self.refresh_downloads()

    def close(self) -> None:
        self.detach()
        self._settings_store.unsubscribe(self._on_settings_changed)

    # ------------------------------------------------------------------
    # Export
    # ------------------------------------------------------------------
    def export_items(self) -> List[ViewItem]:
        """Everything the current view would list, across all pages."""

        prepared = self.prepare()
        if prepared.view_mode == ViewMode.RETRO:
            return list(prepared.filtered)
        return list(prepared.items)

    def export(self, fmt: str) -> Optional[exporter.ExportResult]:
        self.last_export_error = None
        try:
            result = exporter.export(self.export_items(), fmt)
        except ExportError as exc:
            self.logger.exception("export_failed", extra={"format": fmt})
            self.last_export_error = exc
            return None
        self.logger.info(
            "export_completed",
            extra={"format": fmt, "filename": result.filename},
        )
        return result

    def to_dataframe(self) -> Any:
        return exporter.to_dataframe(self.export_items())

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _on_settings_changed(
        self, settings: DownloadSettings, changed: FrozenSet[str]
    ) -> None:
        if changed & PAGE_RESET_FIELDS:
            self._page = 1

    def _on_downloads_refresh(self, _payload: Any = None) -> None:
        self.refresh_downloads()
