from datetime import datetime, timedelta, timezone

from download_insights.domain.exceptions import ApiUnavailableError
from download_insights.domain.models import DownloadRecord, GameSpeedInfo, SpeedSnapshot
from download_insights.realtime.events import DOWNLOAD_SPEED_UPDATE, EventChannel
from download_insights.realtime.speed_monitor import SpeedMonitor, build_active_view
from download_insights.realtime.throttle import RefreshRate

T0 = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class _StubApi:
    def __init__(self, responses=None) -> None:
        self.responses = list(responses or [])
        self.calls = 0

    def get_current_speeds(self):
        self.calls += 1
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


def _snapshot(games=0, seconds=0, speed=0.0):
    return SpeedSnapshot(
        timestamp_utc=T0 + timedelta(seconds=seconds),
        total_bytes_per_second=speed,
        game_speeds=tuple(
            GameSpeedInfo(depot_id=i, game_name=f"Game {i}", bytes_per_second=speed)
            for i in range(games)
        ),
        has_active_downloads=games > 0,
    )


def _active_record(record_id):
    return DownloadRecord(
        id=record_id,
        service="steam",
        client_ip="10.0.0.1",
        start_time_utc=T0,
        end_time_utc=None,
        is_active=True,
    )


def _monitor(api=None, rate=RefreshRate.REALTIME):
    clock = FakeClock()
    monitor = SpeedMonitor(api or _StubApi(), rate, clock=clock)
    return monitor, clock


def test_snapshot_is_authoritative_once_present():
    fallback = [_active_record(1), _active_record(2)]
    empty = _snapshot(games=0)

    before = build_active_view(None, fallback)
    after = build_active_view(empty, fallback)

    assert before.has_active is True
    assert before.from_snapshot is False
    assert after.has_active is False
    assert after.games == ()
    assert after.from_snapshot is True


def test_snapshot_flag_decides_activity_over_game_list():
    flagged_without_games = SpeedSnapshot(
        timestamp_utc=T0, total_bytes_per_second=512.0, has_active_downloads=True
    )
    idle_with_games = SpeedSnapshot(
        timestamp_utc=T0,
        total_bytes_per_second=2048.0,
        game_speeds=(GameSpeedInfo(depot_id=7, game_name="Portal"),),
        has_active_downloads=False,
    )

    busy = build_active_view(flagged_without_games, [])
    idle = build_active_view(idle_with_games, [_active_record(1)])

    assert busy.has_active is True
    assert busy.total_bytes_per_second == 512.0
    assert idle.has_active is False
    assert idle.total_bytes_per_second == 0.0


def test_first_push_applies_immediately():
    monitor, _ = _monitor()

    assert monitor.handle_push(_snapshot(games=1)) is True
    assert monitor.snapshot.active_game_count == 1


def test_same_count_push_is_throttled_then_flushed():
    monitor, clock = _monitor(rate=RefreshRate.REALTIME)
    monitor.handle_push(_snapshot(games=1, seconds=0, speed=10))

    clock.advance(1)
    applied = monitor.handle_push(_snapshot(games=1, seconds=1, speed=20))

    assert applied is False
    assert monitor.snapshot.total_bytes_per_second == 10
    assert monitor.pending.total_bytes_per_second == 20

    clock.advance(1)
    assert monitor.flush() is False
    clock.advance(3)
    assert monitor.flush() is True
    assert monitor.snapshot.total_bytes_per_second == 20
    assert monitor.pending is None


def test_active_count_change_bypasses_throttle():
    monitor, clock = _monitor(rate=RefreshRate.SLOW)
    monitor.handle_push(_snapshot(games=1, seconds=0))

    clock.advance(0.1)
    applied = monitor.handle_push(_snapshot(games=2, seconds=1))

    assert applied is True
    assert monitor.snapshot.active_game_count == 2


def test_live_rate_still_keeps_half_second_floor():
    monitor, clock = _monitor(rate=RefreshRate.LIVE)
    monitor.handle_push(_snapshot(games=1, seconds=0))

    clock.advance(0.25)
    assert monitor.handle_push(_snapshot(games=1, seconds=1)) is False
    clock.advance(0.25)
    assert monitor.handle_push(_snapshot(games=1, seconds=2)) is True


def test_older_push_is_discarded():
    monitor, _ = _monitor()
    monitor.handle_push(_snapshot(games=1, seconds=10))

    assert monitor.handle_push(_snapshot(games=3, seconds=5)) is False
    assert monitor.snapshot.active_game_count == 1


def test_push_payload_dict_is_parsed_and_garbage_ignored(caplog):
    monitor, _ = _monitor()

    parsed = monitor.handle_push(
        {"timestampUtc": "2024-03-01T12:00:00Z", "gameSpeeds": [{"depotId": 1}]}
    )
    ignored = monitor.handle_push({"gameSpeeds": "nope"})

    assert parsed is True
    assert ignored is False
    assert "speed_push_malformed" in caplog.text


def test_out_of_order_fetch_response_is_discarded():
    monitor, _ = _monitor()
    first = monitor.begin_fetch()
    second = monitor.begin_fetch()

    assert monitor.complete_fetch(second, _snapshot(games=2)) is True
    assert monitor.complete_fetch(first, _snapshot(games=5)) is False
    assert monitor.snapshot.active_game_count == 2


def test_fetch_landing_after_newer_push_is_discarded():
    monitor, _ = _monitor()
    sequence = monitor.begin_fetch()
    monitor.handle_push(_snapshot(games=1, seconds=10))

    assert monitor.complete_fetch(sequence, _snapshot(games=2, seconds=1)) is False
    assert monitor.snapshot.timestamp_utc == T0 + timedelta(seconds=10)
    assert monitor.snapshot.active_game_count == 1


def test_refresh_failure_keeps_last_known_snapshot(caplog):
    api = _StubApi([_snapshot(games=1), ApiUnavailableError("down")])
    monitor, clock = _monitor(api)

    assert monitor.refresh() is True
    clock.advance(1)
    assert monitor.refresh() is False

    assert monitor.snapshot.active_game_count == 1
    assert "speed_fetch_failed" in caplog.text


def test_refresh_bursts_collapse_to_one_fetch():
    api = _StubApi([_snapshot(games=1)])
    monitor, _ = _monitor(api)

    results = [monitor.refresh() for _ in range(3)]

    assert results == [True, False, False]
    assert api.calls == 1


def test_tick_polls_on_interval_and_flushes_pending():
    api = _StubApi([_snapshot(games=1, seconds=0), _snapshot(games=1, seconds=20)])
    monitor, clock = _monitor(api, rate=RefreshRate.REALTIME)

    assert monitor.tick() is True
    clock.advance(1)
    monitor.handle_push(_snapshot(games=1, seconds=10, speed=99))
    assert monitor.tick() is False
    assert api.calls == 1

    clock.advance(5)
    assert monitor.tick() is True
    assert api.calls == 2
    assert monitor.snapshot.timestamp_utc == T0 + timedelta(seconds=20)


def test_attach_and_detach_follow_the_channel():
    monitor, _ = _monitor()
    channel = EventChannel()

    monitor.attach(channel)
    monitor.attach(channel)
    channel.emit(DOWNLOAD_SPEED_UPDATE, _snapshot(games=2))

    assert channel.listener_count(DOWNLOAD_SPEED_UPDATE) == 1
    assert monitor.snapshot.active_game_count == 2

    monitor.detach()
    assert channel.listener_count(DOWNLOAD_SPEED_UPDATE) == 0


def test_active_view_falls_back_to_record_flags():
    monitor, _ = _monitor()

    view = monitor.active_view([_active_record(1)])

    assert view.has_active is True
    assert view.total_bytes_per_second == 0.0
