"""HTTP client for the cache backend endpoints consumed by the dashboard."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional, Type, TypeVar, Union

import httpx
from pydantic import BaseModel, ValidationError

from download_insights.domain.exceptions import (
    ApiAuthError,
    ApiError,
    ApiUnavailableError,
    MalformedPayloadError,
)
from download_insights.domain.interfaces import IDashboardApi
from download_insights.domain.models import (
    DownloadAssociations,
    DownloadRecord,
    ServerConfig,
    SpeedHistorySnapshot,
    SpeedSnapshot,
)
from download_insights.utils.validators import UNLIMITED

CURRENT_SPEEDS_PATH = "/speeds/current"
SPEED_HISTORY_PATH = "/speeds/history"
LATEST_DOWNLOADS_PATH = "/downloads/latest"
CONFIG_PATH = "/management/config"
ASSOCIATIONS_PATH = "/downloads/{download_id}/associations"

# The backend has no "all" marker; a large count stands in for it.
UNLIMITED_COUNT = 9999

M = TypeVar("M", bound=BaseModel)


@dataclass(frozen=True)
class ApiClientConfig:
    """Connection settings for the backend API."""

    base_url: str
    api_key: Optional[str] = None
    timeout: float = 30.0

    def __post_init__(self) -> None:
        if not self.base_url:
            raise ValueError("base_url must be provided")
        if self.timeout <= 0:
            raise ValueError("timeout must be greater than zero")


class DashboardApiClient(IDashboardApi):
    """Typed wrapper over the backend REST API."""

    def __init__(
        self,
        http_client: httpx.Client,
        config: ApiClientConfig,
        *,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._http = http_client
        self.config = config
        self._base = config.base_url.rstrip("/")
        self.logger = logger or logging.getLogger(__name__)

    def get_current_speeds(self) -> SpeedSnapshot:
        return self._parse(SpeedSnapshot, self._get(CURRENT_SPEEDS_PATH))

    def get_speed_history(self, minutes: int) -> SpeedHistorySnapshot:
        data = self._get(SPEED_HISTORY_PATH, params={"minutes": minutes})
        return self._parse(SpeedHistorySnapshot, data)

    def get_latest_downloads(
        self,
        count: Union[int, str] = UNLIMITED,
        start_time: Optional[datetime] = None,
        end_time: Optional[datetime] = None,
    ) -> List[DownloadRecord]:
        params: Dict[str, Any] = {
            "count": UNLIMITED_COUNT if count == UNLIMITED else count
        }
        if start_time is not None:
            params["startTime"] = int(start_time.timestamp())
        if end_time is not None:
            params["endTime"] = int(end_time.timestamp())

        data = self._get(LATEST_DOWNLOADS_PATH, params=params)
        if not isinstance(data, list):
            self.logger.warning(
                "downloads_payload_not_a_list",
                extra={"payload_type": type(data).__name__},
            )
            return []
        return [self._parse(DownloadRecord, item) for item in data]

    def get_config(self) -> ServerConfig:
        return self._parse(ServerConfig, self._get(CONFIG_PATH))

    def get_download_associations(self, download_id: int) -> DownloadAssociations:
        path = ASSOCIATIONS_PATH.format(download_id=download_id)
        return self._parse(DownloadAssociations, self._get(path))

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _headers(self) -> Dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.config.api_key:
            headers["X-Api-Key"] = self.config.api_key
        return headers

    def _get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        url = f"{self._base}{path}"
        self.logger.debug("api_request", extra={"path": path, "params": params})
        try:
            http_response = self._http.get(
                url,
                params=params,
                headers=self._headers(),
                timeout=self.config.timeout,
            )
        except httpx.HTTPError as exc:
            raise ApiUnavailableError(
                "Backend request failed", context={"path": path, "error": str(exc)}
            ) from exc
        return self._map_response(path, http_response)

    def _map_response(self, path: str, http_response: httpx.Response) -> Any:
        status = http_response.status_code
        if status in (401, 403):
            raise ApiAuthError(
                "Backend rejected credentials",
                context={"path": path, "status_code": status},
            )
        if status >= 500:
            raise ApiUnavailableError(
                "Backend service unavailable",
                context={"path": path, "status_code": status},
            )
        if status >= 400:
            raise ApiError(
                self._error_message(http_response),
                context={"path": path, "status_code": status},
            )
        try:
            return http_response.json()
        except ValueError as exc:
            raise MalformedPayloadError(
                "Backend returned invalid JSON", context={"path": path}
            ) from exc

    @staticmethod
    def _parse(model: Type[M], data: Any) -> M:
        try:
            return model.model_validate(data)
        except ValidationError as exc:
            raise MalformedPayloadError(
                f"Unexpected {model.__name__} payload",
                context={"errors": exc.error_count()},
            ) from exc

    @staticmethod
    def _error_message(http_response: httpx.Response) -> str:
        try:
            data = http_response.json()
        except ValueError:
            return "Backend request failed"
        if isinstance(data, dict):
            return str(data.get("error") or data.get("message") or "Backend request failed")
        return "Backend request failed"
