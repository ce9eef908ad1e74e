import httpx
import pytest

from download_insights.domain.exceptions import (
    ApiAuthError,
    ApiError,
    ApiUnavailableError,
    MalformedPayloadError,
)
from download_insights.realtime.api_client import ApiClientConfig, DashboardApiClient


def _build_client(handler):
    transport = httpx.MockTransport(handler)
    return httpx.Client(transport=transport)


def _api(handler, **config):
    settings = {"base_url": "http://cache.lan/api/"}
    settings.update(config)
    return DashboardApiClient(_build_client(handler), ApiClientConfig(**settings))


def test_latest_downloads_parses_records_and_sends_unlimited_as_count():
    captured = {}

    def handler(request: httpx.Request) -> httpx.Response:
        captured["url"] = request.url
        captured["headers"] = dict(request.headers)
        data = [
            {
                "id": 1,
                "service": "steam",
                "clientIp": "10.0.0.4",
                "startTimeUtc": "2024-03-01T10:00:00Z",
                "endTimeUtc": None,
                "totalBytes": 2048,
                "cacheHitBytes": 1024,
                "cacheMissBytes": 1024,
                "gameName": "Dota 2",
                "depotId": 573,
            }
        ]
        return httpx.Response(200, json=data)

    records = _api(handler, api_key="k3y").get_latest_downloads()

    assert captured["url"].path == "/api/downloads/latest"
    assert captured["url"].params["count"] == "9999"
    assert captured["headers"]["x-api-key"] == "k3y"
    assert records[0].game_name == "Dota 2"
    assert records[0].is_active is True
    assert records[0].cache_hit_percent == 50.0


def test_latest_downloads_forwards_count_and_time_window():
    from datetime import datetime, timezone

    captured = {}

    def handler(request: httpx.Request) -> httpx.Response:
        captured["params"] = dict(request.url.params)
        return httpx.Response(200, json=[])

    start = datetime(2024, 3, 1, tzinfo=timezone.utc)
    end = datetime(2024, 3, 2, tzinfo=timezone.utc)
    _api(handler).get_latest_downloads(count=50, start_time=start, end_time=end)

    assert captured["params"] == {
        "count": "50",
        "startTime": str(int(start.timestamp())),
        "endTime": str(int(end.timestamp())),
    }


def test_non_list_downloads_payload_becomes_empty(caplog):
    records = _api(lambda r: httpx.Response(200, json={"oops": True})).get_latest_downloads()

    assert records == []
    assert "downloads_payload_not_a_list" in caplog.text


def test_current_speeds_and_history():
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("/speeds/current"):
            return httpx.Response(
                200,
                json={
                    "timestampUtc": "2024-03-01T10:00:00Z",
                    "totalBytesPerSecond": 5000.0,
                    "gameSpeeds": [{"depotId": 1, "gameName": "Dota 2", "bytesPerSecond": 5000.0}],
                    "clientSpeeds": [{"clientIp": "10.0.0.4", "bytesPerSecond": 5000.0}],
                    "windowSeconds": 2,
                    "entriesInWindow": 8,
                    "hasActiveDownloads": True,
                },
            )
        assert request.url.params["minutes"] == "1440"
        return httpx.Response(200, json={"totalBytes": 987654, "periodMinutes": 1440})

    api = _api(handler)
    snapshot = api.get_current_speeds()
    history = api.get_speed_history(1440)

    assert snapshot.active_game_count == 1
    assert snapshot.client_speeds[0].client_ip == "10.0.0.4"
    assert history.total_bytes == 987654


def test_config_and_associations():
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("/management/config"):
            return httpx.Response(200, json={"dataSources": [{"name": "default"}]})
        assert request.url.path == "/api/downloads/42/associations"
        return httpx.Response(
            200,
            json={"tags": [{"id": 1, "name": "LAN party", "colorIndex": 3}], "events": []},
        )

    api = _api(handler)

    assert len(api.get_config().data_sources) == 1
    associations = api.get_download_associations(42)
    assert associations.tags[0].color_index == 3


@pytest.mark.parametrize(
    "status,error",
    [
        (401, ApiAuthError),
        (403, ApiAuthError),
        (404, ApiError),
        (500, ApiUnavailableError),
        (503, ApiUnavailableError),
    ],
)
def test_error_statuses_are_mapped(status, error):
    api = _api(lambda r: httpx.Response(status, json={"error": "nope"}))

    with pytest.raises(error) as excinfo:
        api.get_current_speeds()

    assert excinfo.value.context["status_code"] == status


def test_transport_failure_is_unavailable():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    with pytest.raises(ApiUnavailableError):
        _api(handler).get_config()


def test_invalid_json_and_shape_are_malformed():
    with pytest.raises(MalformedPayloadError):
        _api(lambda r: httpx.Response(200, text="<html>")).get_config()
    with pytest.raises(MalformedPayloadError):
        _api(lambda r: httpx.Response(200, json=[{"id": "x"}])).get_latest_downloads()


def test_client_config_validation():
    with pytest.raises(ValueError):
        ApiClientConfig(base_url="")
    with pytest.raises(ValueError):
        ApiClientConfig(base_url="http://x", timeout=0)
