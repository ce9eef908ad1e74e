from datetime import datetime, timedelta, timezone

from download_insights.core.config import DashboardConfig
from download_insights.core.dashboard import DownloadsDashboard
from download_insights.core.preference_store import InMemoryPreferenceStore
from download_insights.core.settings import SettingsStore
from download_insights.domain.exceptions import ApiUnavailableError
from download_insights.domain.models import (
    DatasourceInfo,
    DownloadAssociations,
    DownloadGroup,
    DownloadRecord,
    GameSpeedInfo,
    ServerConfig,
    SortOrder,
    SpeedHistorySnapshot,
    SpeedSnapshot,
    ViewMode,
)
from download_insights.realtime.events import (
    DOWNLOAD_SPEED_UPDATE,
    DOWNLOADS_REFRESH,
    EventChannel,
)
from download_insights.realtime.throttle import RefreshRate

BASE = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)
MIB = 1024 * 1024


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class _InMemoryApi:
    """Backend stand-in returning canned data and counting calls."""

    def __init__(self, records=None) -> None:
        self.records = list(records or [])
        self.snapshot = SpeedSnapshot()
        self.history = SpeedHistorySnapshot(total_bytes=0)
        self.config = ServerConfig()
        self.fail_downloads = False
        self.calls = {"downloads": 0, "speeds": 0, "history": 0, "associations": 0}

    def get_current_speeds(self):
        self.calls["speeds"] += 1
        return self.snapshot

    def get_speed_history(self, minutes):
        self.calls["history"] += 1
        return self.history

    def get_latest_downloads(self, count="unlimited", start_time=None, end_time=None):
        self.calls["downloads"] += 1
        if self.fail_downloads:
            raise ApiUnavailableError("backend down")
        return list(self.records)

    def get_config(self):
        return self.config

    def get_download_associations(self, download_id):
        self.calls["associations"] += 1
        return DownloadAssociations()


def _record(record_id, **overrides):
    start = BASE + timedelta(minutes=record_id)
    data = {
        "id": record_id,
        "service": "steam",
        "client_ip": "10.0.0.1",
        "start_time_utc": start,
        "end_time_utc": start + timedelta(minutes=1),
        "total_bytes": 2 * MIB,
        "cache_hit_bytes": MIB,
        "cache_miss_bytes": MIB,
        "game_name": "Half-Life",
    }
    data.update(overrides)
    return DownloadRecord(**data)


def _dashboard(api=None, preferences=None, rate=RefreshRate.STANDARD):
    clock = FakeClock()
    dashboard = DownloadsDashboard(
        api or _InMemoryApi(),
        SettingsStore(InMemoryPreferenceStore(preferences)),
        config=DashboardConfig(refresh_rate=rate),
        clock=clock,
    )
    return dashboard, clock


def test_unknown_game_is_dropped_not_grouped_or_individual():
    dashboard, _ = _dashboard()
    dashboard.settings_store.update(hide_unknown_games=True, group_unknown_games=False)
    dashboard.replace_records(
        [
            _record(1, game_name="Half-Life"),
            _record(2, game_name="Half-Life"),
            _record(3, game_name="Unknown Steam Game"),
        ]
    )

    items = dashboard.view().page.items

    assert len(items) == 1
    assert isinstance(items[0], DownloadGroup)
    assert items[0].name == "Half-Life"
    assert items[0].count == 2


def test_only_large_record_survives_size_filters():
    dashboard, _ = _dashboard()
    dashboard.settings_store.update(show_zero_bytes=False, show_small_files=False)
    dashboard.replace_records(
        [
            _record(1, game_name=None, total_bytes=0),
            _record(2, game_name=None, total_bytes=500_000),
            _record(3, game_name=None, total_bytes=2_000_000),
        ]
    )

    prepared = dashboard.prepare()

    assert [r.id for r in prepared.filtered] == [3]


def test_efficiency_sort_orders_groups_descending():
    dashboard, _ = _dashboard()
    dashboard.settings_store.update(sort_order=SortOrder.EFFICIENCY)
    dashboard.replace_records(
        [
            _record(1, game_name="Cold", cache_hit_bytes=10, cache_miss_bytes=90, total_bytes=100),
            _record(2, game_name="Warm", cache_hit_bytes=90, cache_miss_bytes=10, total_bytes=100),
        ]
    )
    names = [item.name for item in dashboard.view().page.items]

    assert names == ["Warm", "Cold"]


def test_forty_five_groups_paginate_to_three_pages():
    dashboard, _ = _dashboard()
    dashboard.settings_store.update(items_per_page=20)
    dashboard.replace_records(
        [_record(i, game_name=f"Game {i:02d}") for i in range(1, 46)]
    )

    dashboard.set_page(3)
    view = dashboard.view()

    assert view.page.total_pages == 3
    assert view.standard.total_pages == 3
    assert view.standard.total_items == 45
    assert len(view.page.items) == 5


def test_empty_snapshot_overrides_active_fallback_records():
    api = _InMemoryApi()
    api.snapshot = SpeedSnapshot(game_speeds=(), has_active_downloads=False)
    dashboard, _ = _dashboard(api)
    dashboard.replace_records(
        [
            _record(1, end_time_utc=None, is_active=True),
            _record(2, end_time_utc=None, is_active=True),
        ]
    )

    assert dashboard.active_view().has_active is True

    dashboard.speed_monitor.refresh()
    view = dashboard.active_view()

    assert view.has_active is False
    assert view.games == ()
    assert dashboard.header_summary().active_games == 0


def test_header_shows_no_speed_when_snapshot_is_idle():
    api = _InMemoryApi()
    api.snapshot = SpeedSnapshot(
        total_bytes_per_second=4 * MIB, has_active_downloads=False
    )
    dashboard, _ = _dashboard(api)

    dashboard.speed_monitor.refresh()
    summary = dashboard.header_summary()

    assert summary.has_active is False
    assert summary.speed == "0 B/s"


def test_settings_change_resets_page_but_expand_does_not():
    dashboard, _ = _dashboard()
    dashboard.settings_store.update(items_per_page=20)
    dashboard.replace_records([_record(i, game_name=f"G{i}") for i in range(1, 61)])
    dashboard.set_page(2)

    dashboard.toggle_expanded("game-G1")
    assert dashboard.current_page == 2

    dashboard.settings_store.update(sort_order=SortOrder.ALPHABETICAL)
    assert dashboard.current_page == 1

    dashboard.set_page(3)
    dashboard.settings_store.update(aesthetic_mode=True)
    assert dashboard.current_page == 3


def test_page_is_clamped_when_records_shrink():
    dashboard, _ = _dashboard()
    dashboard.settings_store.update(items_per_page=20)
    dashboard.replace_records([_record(i, game_name=f"G{i}") for i in range(1, 61)])
    dashboard.set_page(3)

    dashboard.replace_records([_record(1)])
    view = dashboard.view()

    assert view.page.page == 1
    assert len(view.page.items) == 1


def test_retro_and_standard_totals_are_tracked_separately():
    dashboard, _ = _dashboard()
    dashboard.replace_records(
        [
            _record(1, depot_id=10),
            _record(2, depot_id=10),
            _record(3, depot_id=11, game_name="Portal"),
            _record(4, depot_id=12, game_name="Portal", client_ip="10.0.0.2"),
        ]
    )

    standard = dashboard.view()
    dashboard.settings_store.update(view_mode=ViewMode.RETRO)
    retro = dashboard.view()

    assert standard.standard.total_items == 2
    assert retro.retro.total_items == 3
    assert retro.standard.total_items == 2
    assert retro.page.page_size == 100


def test_toggle_expanded_collapses_on_second_click():
    dashboard, _ = _dashboard()

    assert dashboard.toggle_expanded("game-A") == "game-A"
    assert dashboard.toggle_expanded("game-B") == "game-B"
    assert dashboard.toggle_expanded("game-B") is None


def test_malformed_records_become_empty_view():
    dashboard, _ = _dashboard()
    dashboard.replace_records([_record(1)])

    dashboard.replace_records({"not": "a list"})

    assert dashboard.view().page.total_items == 0


def test_fetch_failure_keeps_previous_records():
    api = _InMemoryApi([_record(1), _record(2, game_name="Portal")])
    dashboard, clock = _dashboard(api)

    assert dashboard.refresh_downloads() is True
    api.fail_downloads = True
    clock.advance(1)
    assert dashboard.refresh_downloads() is False

    assert len(dashboard.records) == 2


def test_datasource_labels_need_sources_and_preference():
    api = _InMemoryApi()
    dashboard, _ = _dashboard(api)

    assert dashboard.show_datasource_labels is False
    api.config = ServerConfig(data_sources=(DatasourceInfo(name="default"),))
    dashboard.load_server_config()
    assert dashboard.show_datasource_labels is True
    dashboard.settings_store.update(show_datasource_labels=False)
    assert dashboard.view().show_datasource_labels is False


def test_export_uses_full_sorted_list_not_page():
    dashboard, _ = _dashboard()
    dashboard.settings_store.update(items_per_page=20)
    dashboard.replace_records([_record(i, game_name=f"G{i}") for i in range(1, 31)])

    result = dashboard.export("csv")

    assert result is not None
    rows = result.content.strip().split("\n")
    assert len(rows) == 31
    assert dashboard.last_export_error is None


def test_retro_export_uses_filtered_records():
    dashboard, _ = _dashboard()
    dashboard.settings_store.update(view_mode=ViewMode.RETRO)
    dashboard.replace_records([_record(1, depot_id=1), _record(2, depot_id=1)])

    assert [r.id for r in dashboard.export_items()] == [1, 2]


def test_export_failure_is_captured(caplog):
    dashboard, _ = _dashboard()
    dashboard.replace_records([_record(1)])

    assert dashboard.export("pdf") is None
    assert dashboard.last_export_error is not None
    assert "export_failed" in caplog.text
    assert dashboard.view().page.total_items == 1


def test_realtime_events_drive_monitor_poller_and_downloads():
    api = _InMemoryApi([_record(1)])
    api.history = SpeedHistorySnapshot(total_bytes=3 * 1024**3)
    dashboard, _ = _dashboard(api)
    channel = EventChannel()
    dashboard.attach(channel)

    channel.emit(
        DOWNLOAD_SPEED_UPDATE,
        SpeedSnapshot(
            total_bytes_per_second=2 * MIB,
            game_speeds=(GameSpeedInfo(depot_id=1, game_name="Half-Life"),),
            has_active_downloads=True,
        ),
    )
    channel.emit(DOWNLOADS_REFRESH)

    summary = dashboard.header_summary()
    assert summary.active_games == 1
    assert summary.speed == "2.0 MB/s"
    assert summary.today_total == "3 GB"
    assert api.calls["downloads"] == 1
    assert len(dashboard.records) == 1

    dashboard.close()
    assert channel.listener_count() == 0


def test_tick_runs_periodic_refreshes():
    api = _InMemoryApi([_record(1)])
    dashboard, clock = _dashboard(api, rate=RefreshRate.REALTIME)

    dashboard.tick()
    clock.advance(1)
    dashboard.tick()
    clock.advance(4)
    dashboard.tick()

    assert api.calls == {"downloads": 2, "speeds": 2, "history": 2, "associations": 0}


def test_page_associations_cover_visible_records():
    api = _InMemoryApi()
    dashboard, _ = _dashboard(api)
    dashboard.replace_records([_record(1), _record(2), _record(3, game_name=None)])

    fetched = dashboard.load_page_associations()

    assert fetched == 3
    assert dashboard.load_page_associations() == 0


def test_filter_options_come_from_unfiltered_records():
    dashboard, _ = _dashboard()
    dashboard.settings_store.update(selected_service="epic")
    dashboard.replace_records(
        [_record(1, service="steam"), _record(2, service="Epic", client_ip="10.0.0.7")]
    )

    assert dashboard.service_options().all == ("epic", "steam")
    assert dashboard.client_options() == ("10.0.0.1", "10.0.0.7")


def test_persisted_preferences_are_applied_on_start():
    dashboard, _ = _dashboard(
        preferences={
            "lancache_downloads_view_mode": "compact",
            "lancache_downloads_items": "20",
        }
    )

    view = dashboard.view()

    assert view.view_mode == ViewMode.COMPACT
    assert view.page.page_size == 20
    assert view.active_preset == "default"
