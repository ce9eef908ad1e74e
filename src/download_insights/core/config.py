"""Dashboard configuration management helpers."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Union

from download_insights.realtime.throttle import RefreshRate
from download_insights.utils.validators import UNLIMITED, PageSize, parse_page_size

DEFAULT_API_BASE_URL = "http://localhost:8080/api"


def _str_to_int(value: str | None, default: int) -> int:
    if value is None:
        return default
    try:
        return int(value)
    except ValueError as exc:
        raise ValueError(f"Invalid integer value: {value}") from exc


def _str_to_float(value: str | None, default: float) -> float:
    if value is None:
        return default
    try:
        return float(value)
    except ValueError as exc:
        raise ValueError(f"Invalid number value: {value}") from exc


@dataclass(frozen=True)
class DashboardConfig:
    """Immutable configuration object loaded from env or files."""

    api_base_url: str = DEFAULT_API_BASE_URL
    api_key: Optional[str] = None
    timeout_seconds: float = 30.0
    refresh_rate: RefreshRate = RefreshRate.STANDARD
    min_fetch_spacing_ms: int = 500
    history_window_minutes: int = 1440
    downloads_count: PageSize = UNLIMITED
    preferences_path: Optional[str] = None

    def __post_init__(self) -> None:
        if not isinstance(self.refresh_rate, RefreshRate):
            object.__setattr__(self, "refresh_rate", self._parse_rate(self.refresh_rate))
        self.validate()

    @property
    def min_fetch_spacing_seconds(self) -> float:
        return self.min_fetch_spacing_ms / 1000

    @classmethod
    def from_env(cls) -> "DashboardConfig":
        defaults = cls()
        count_raw = os.getenv("DASHBOARD_DOWNLOADS_COUNT")
        return cls(
            api_base_url=os.getenv("DASHBOARD_API_BASE_URL", defaults.api_base_url),
            api_key=os.getenv("DASHBOARD_API_KEY") or defaults.api_key,
            timeout_seconds=_str_to_float(
                os.getenv("DASHBOARD_TIMEOUT_SECONDS"), defaults.timeout_seconds
            ),
            refresh_rate=cls._parse_rate(
                os.getenv("DASHBOARD_REFRESH_RATE", defaults.refresh_rate.value)
            ),
            min_fetch_spacing_ms=_str_to_int(
                os.getenv("DASHBOARD_MIN_FETCH_SPACING_MS"),
                defaults.min_fetch_spacing_ms,
            ),
            history_window_minutes=_str_to_int(
                os.getenv("DASHBOARD_HISTORY_WINDOW_MINUTES"),
                defaults.history_window_minutes,
            ),
            downloads_count=cls._parse_count(count_raw, defaults.downloads_count),
            preferences_path=os.getenv("DASHBOARD_PREFERENCES_PATH")
            or defaults.preferences_path,
        )

    @classmethod
    def from_file(cls, path: str) -> "DashboardConfig":
        file_path = Path(path)
        if not file_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {path}")
        raw = file_path.read_text()
        data: Dict[str, Any]
        suffix = file_path.suffix.lower()
        if suffix == ".json":
            data = json.loads(raw)
        elif suffix in {".yaml", ".yml"}:
            data = cls._load_yaml(raw)
        else:
            raise ValueError("Unsupported config format. Use JSON or YAML.")
        return cls(**cls._merge_with_defaults(data))

    def validate(self) -> None:
        if not self.api_base_url:
            raise ValueError("api_base_url must be provided")
        if self.timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be greater than zero")
        if self.min_fetch_spacing_ms < 0:
            raise ValueError("min_fetch_spacing_ms must be non-negative")
        if self.history_window_minutes <= 0:
            raise ValueError("history_window_minutes must be greater than zero")
        if isinstance(self.downloads_count, int) and self.downloads_count <= 0:
            raise ValueError("downloads_count must be positive or 'unlimited'")

    @classmethod
    def _merge_with_defaults(cls, data: Dict[str, Any]) -> Dict[str, Any]:
        defaults = cls()
        return {
            "api_base_url": data.get("api_base_url", defaults.api_base_url),
            "api_key": data.get("api_key", defaults.api_key),
            "timeout_seconds": data.get("timeout_seconds", defaults.timeout_seconds),
            "refresh_rate": cls._parse_rate(
                data.get("refresh_rate", defaults.refresh_rate)
            ),
            "min_fetch_spacing_ms": data.get(
                "min_fetch_spacing_ms", defaults.min_fetch_spacing_ms
            ),
            "history_window_minutes": data.get(
                "history_window_minutes", defaults.history_window_minutes
            ),
            "downloads_count": cls._parse_count(
                data.get("downloads_count"), defaults.downloads_count
            ),
            "preferences_path": data.get("preferences_path", defaults.preferences_path),
        }

    @staticmethod
    def _parse_rate(value: Union[str, RefreshRate]) -> RefreshRate:
        if isinstance(value, RefreshRate):
            return value
        try:
            return RefreshRate(str(value).strip().upper())
        except ValueError as exc:
            raise ValueError(
                f"refresh_rate must be one of {[rate.value for rate in RefreshRate]}"
            ) from exc

    @staticmethod
    def _parse_count(value: Any, default: PageSize) -> PageSize:
        if value is None:
            return default
        parsed = parse_page_size(value, default=0)
        if parsed == 0:
            raise ValueError(f"Invalid downloads_count value: {value}")
        return parsed

    @staticmethod
    def _load_yaml(raw: str) -> Dict[str, Any]:
        try:
            import yaml  # type: ignore
        except ImportError as exc:  # pragma: no cover - optional dependency
            raise RuntimeError("PyYAML is required to parse YAML config files") from exc
        return yaml.safe_load(raw) or {}
