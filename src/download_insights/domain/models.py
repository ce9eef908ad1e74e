"""Domain value objects describing cache download activity."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, FrozenSet, Optional, Tuple, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_serializer,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel

MIB = 1024 * 1024

_API_MODEL_CONFIG = ConfigDict(
    frozen=True,
    alias_generator=to_camel,
    populate_by_name=True,
    extra="ignore",
)


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def hit_percent(hit_bytes: int, total_bytes: int) -> float:
    """Cache-hit percentage, 0 when nothing was transferred."""

    if total_bytes <= 0:
        return 0.0
    return hit_bytes / total_bytes * 100


class GroupType(str, Enum):
    """Kind of aggregation a download group represents."""

    GAME = "game"
    METADATA = "metadata"
    CONTENT = "content"


class SortOrder(str, Enum):
    """Operator selectable orderings for download lists."""

    LATEST = "latest"
    OLDEST = "oldest"
    LARGEST = "largest"
    SMALLEST = "smallest"
    SERVICE = "service"
    EFFICIENCY = "efficiency"
    EFFICIENCY_LOW = "efficiency-low"
    SESSIONS = "sessions"
    ALPHABETICAL = "alphabetical"


class ViewMode(str, Enum):
    """Renderers that consume the view model."""

    COMPACT = "compact"
    NORMAL = "normal"
    RETRO = "retro"


class DownloadRecord(BaseModel):
    """One observed client/cache transfer session."""

    model_config = _API_MODEL_CONFIG

    id: int
    service: str = ""
    client_ip: str = ""
    start_time_utc: datetime
    end_time_utc: Optional[datetime] = None
    cache_hit_bytes: int = 0
    cache_miss_bytes: int = 0
    total_bytes: int = 0
    is_active: bool = False
    game_name: Optional[str] = None
    game_app_id: Optional[int] = None
    depot_id: Optional[int] = None
    datasource: Optional[str] = None
    average_bytes_per_second: Optional[float] = None

    @model_validator(mode="before")
    @classmethod
    def default_active_flag(cls, data: Any) -> Any:
        if isinstance(data, dict) and "isActive" not in data and "is_active" not in data:
            data = dict(data)
            end = data.get("endTimeUtc", data.get("end_time_utc"))
            data["is_active"] = end is None
        return data

    @field_validator("cache_hit_bytes", "cache_miss_bytes", "total_bytes", mode="before")
    @classmethod
    def coerce_missing_counter(cls, value: Any) -> Any:
        return 0 if value is None else value

    @field_validator("service", "client_ip", mode="before")
    @classmethod
    def coerce_missing_text(cls, value: Any) -> Any:
        return "" if value is None else value

    @field_validator("start_time_utc", "end_time_utc")
    @classmethod
    def normalize_timezone(cls, value: Optional[datetime]) -> Optional[datetime]:
        return _as_utc(value) if value is not None else None

    @property
    def cache_hit_percent(self) -> float:
        return hit_percent(self.cache_hit_bytes, self.total_bytes)


class DownloadGroup(BaseModel):
    """Aggregate of records that share a grouping key."""

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    id: str
    name: str
    type: GroupType
    service: str
    downloads: Tuple[DownloadRecord, ...]
    total_bytes: int = 0
    cache_hit_bytes: int = 0
    cache_miss_bytes: int = 0
    clients: FrozenSet[str] = Field(default_factory=frozenset)
    first_seen: datetime
    last_seen: datetime
    count: int = 0

    @field_serializer("clients")
    def serialize_clients(self, clients: FrozenSet[str]) -> list[str]:
        return sorted(clients)

    @property
    def cache_hit_percent(self) -> float:
        return hit_percent(self.cache_hit_bytes, self.total_bytes)


class DepotGroup(BaseModel):
    """Continuous transfer of one depot to one client, used by the retro table."""

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    id: str
    service: str
    game_name: str
    game_app_id: Optional[int] = None
    depot_id: Optional[int] = None
    client_ip: str
    start_time_utc: datetime
    end_time_utc: datetime
    cache_hit_bytes: int = 0
    cache_miss_bytes: int = 0
    total_bytes: int = 0
    request_count: int = 0
    clients: FrozenSet[str] = Field(default_factory=frozenset)
    datasource: Optional[str] = None
    average_bytes_per_second: float = 0.0
    record_ids: Tuple[int, ...] = Field(default_factory=tuple)

    @field_serializer("clients")
    def serialize_clients(self, clients: FrozenSet[str]) -> list[str]:
        return sorted(clients)

    @property
    def cache_hit_percent(self) -> float:
        return hit_percent(self.cache_hit_bytes, self.total_bytes)


ViewItem = Union[DownloadGroup, DownloadRecord]
SortableItem = Union[DownloadGroup, DepotGroup, DownloadRecord]


class GameSpeedInfo(BaseModel):
    """Throughput of one depot currently being transferred."""

    model_config = _API_MODEL_CONFIG

    depot_id: int = 0
    game_name: Optional[str] = None
    game_app_id: Optional[int] = None
    service: str = ""
    client_ip: Optional[str] = None
    bytes_per_second: float = 0.0
    total_bytes: int = 0
    request_count: int = 0
    cache_hit_bytes: int = 0
    cache_miss_bytes: int = 0
    cache_hit_percent: float = 0.0


class ClientSpeedInfo(BaseModel):
    """Throughput of one client across its active transfers."""

    model_config = _API_MODEL_CONFIG

    client_ip: str
    bytes_per_second: float = 0.0
    total_bytes: int = 0
    active_games: int = 0
    cache_hit_bytes: int = 0
    cache_miss_bytes: int = 0


class SpeedSnapshot(BaseModel):
    """Point-in-time replacement of the active transfers view."""

    model_config = _API_MODEL_CONFIG

    timestamp_utc: Optional[datetime] = None
    total_bytes_per_second: float = 0.0
    game_speeds: Tuple[GameSpeedInfo, ...] = Field(default_factory=tuple)
    client_speeds: Tuple[ClientSpeedInfo, ...] = Field(default_factory=tuple)
    window_seconds: float = 0.0
    entries_in_window: int = 0
    has_active_downloads: bool = False

    @field_validator("game_speeds", "client_speeds", mode="before")
    @classmethod
    def coerce_missing_list(cls, value: Any) -> Any:
        return () if value is None else value

    @field_validator("timestamp_utc")
    @classmethod
    def normalize_timezone(cls, value: Optional[datetime]) -> Optional[datetime]:
        return _as_utc(value) if value is not None else None

    @property
    def active_game_count(self) -> int:
        return len(self.game_speeds)


class SpeedHistorySnapshot(BaseModel):
    """Rolled up transfer totals over a trailing window."""

    model_config = _API_MODEL_CONFIG

    period_start_utc: Optional[datetime] = None
    period_end_utc: Optional[datetime] = None
    period_minutes: int = 0
    total_bytes: int = 0
    average_bytes_per_second: float = 0.0
    total_sessions: int = 0


class DatasourceInfo(BaseModel):
    """One configured upstream log source."""

    model_config = _API_MODEL_CONFIG

    name: str
    enabled: bool = True


class ServerConfig(BaseModel):
    """Subset of the backend configuration used by the dashboard."""

    model_config = _API_MODEL_CONFIG

    data_sources: Tuple[DatasourceInfo, ...] = Field(default_factory=tuple)
    time_zone: Optional[str] = None

    @field_validator("data_sources", mode="before")
    @classmethod
    def coerce_missing_list(cls, value: Any) -> Any:
        return () if value is None else value


class TagSummary(BaseModel):
    model_config = _API_MODEL_CONFIG

    id: int
    name: str
    color_index: int = 0


class EventSummary(BaseModel):
    model_config = _API_MODEL_CONFIG

    id: int
    name: str
    color_index: int = 0
    auto_tagged: bool = False


class DownloadAssociations(BaseModel):
    """Tags and events attached to a single download record."""

    model_config = _API_MODEL_CONFIG

    tags: Tuple[TagSummary, ...] = Field(default_factory=tuple)
    events: Tuple[EventSummary, ...] = Field(default_factory=tuple)
