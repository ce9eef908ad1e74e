"""Grouping engine folding filtered records into display aggregates."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Sequence, Set

from download_insights.domain.models import (
    DepotGroup,
    DownloadGroup,
    DownloadRecord,
    GroupType,
    ViewItem,
)
from download_insights.utils.game_names import (
    UNKNOWN_GAMES_GROUP_NAME,
    UNMAPPED_STEAM_APPS_GROUP_NAME,
    has_usable_game_name,
    is_steam,
    is_unknown_steam_game,
    is_unmapped_steam_app,
)

UNKNOWN_GAMES_KEY = "unknown-steam-games"
UNMAPPED_APPS_KEY = "unmapped-steam-apps"


@dataclass(frozen=True)
class GroupKey:
    id: str
    name: str
    type: GroupType


@dataclass(frozen=True)
class GroupingResult:
    """Groups in first-seen key order plus records that stay ungrouped."""

    groups: List[DownloadGroup]
    individuals: List[DownloadRecord]

    def items(self) -> List[ViewItem]:
        return [*self.groups, *self.individuals]


def derive_group_key(
    record: DownloadRecord, group_unknown: bool = False
) -> Optional[GroupKey]:
    """Return the grouping key for ``record`` or None when it stays individual."""

    name = record.game_name
    if name is not None and has_usable_game_name(name):
        return GroupKey(f"game-{name}", name, GroupType.GAME)
    if group_unknown and is_unknown_steam_game(record.service, name):
        return GroupKey(UNKNOWN_GAMES_KEY, UNKNOWN_GAMES_GROUP_NAME, GroupType.CONTENT)
    if is_unmapped_steam_app(name):
        return GroupKey(
            UNMAPPED_APPS_KEY, UNMAPPED_STEAM_APPS_GROUP_NAME, GroupType.CONTENT
        )
    if not is_steam(record.service):
        group_type = GroupType.METADATA if record.total_bytes == 0 else GroupType.CONTENT
        return GroupKey(
            f"service-{record.service.lower()}",
            f"{record.service} downloads",
            group_type,
        )
    return None


@dataclass
class _GroupAccumulator:
    key: GroupKey
    service: str
    first_seen: datetime
    last_seen: datetime
    downloads: List[DownloadRecord] = field(default_factory=list)
    total_bytes: int = 0
    cache_hit_bytes: int = 0
    cache_miss_bytes: int = 0
    clients: Set[str] = field(default_factory=set)

    def add(self, record: DownloadRecord) -> None:
        self.downloads.append(record)
        self.total_bytes += record.total_bytes
        self.cache_hit_bytes += record.cache_hit_bytes
        self.cache_miss_bytes += record.cache_miss_bytes
        self.clients.add(record.client_ip)
        if record.start_time_utc < self.first_seen:
            self.first_seen = record.start_time_utc
        if record.start_time_utc > self.last_seen:
            self.last_seen = record.start_time_utc

    def build(self) -> DownloadGroup:
        return DownloadGroup(
            id=self.key.id,
            name=self.key.name,
            type=self.key.type,
            service=self.service,
            downloads=tuple(self.downloads),
            total_bytes=self.total_bytes,
            cache_hit_bytes=self.cache_hit_bytes,
            cache_miss_bytes=self.cache_miss_bytes,
            clients=frozenset(self.clients),
            first_seen=self.first_seen,
            last_seen=self.last_seen,
            count=len(self.downloads),
        )


def group_records(
    records: Iterable[DownloadRecord], group_unknown: bool = False
) -> GroupingResult:
    """Partition ``records`` into groups and individuals in a single pass."""

    accumulators: Dict[str, _GroupAccumulator] = {}
    individuals: List[DownloadRecord] = []

    for record in records:
        key = derive_group_key(record, group_unknown)
        if key is None:
            individuals.append(record)
            continue
        accumulator = accumulators.get(key.id)
        if accumulator is None:
            accumulator = _GroupAccumulator(
                key=key,
                service=record.service,
                first_seen=record.start_time_utc,
                last_seen=record.start_time_utc,
            )
            accumulators[key.id] = accumulator
        accumulator.add(record)

    return GroupingResult(
        groups=[accumulator.build() for accumulator in accumulators.values()],
        individuals=individuals,
    )


def drop_unknown_groups(groups: Sequence[DownloadGroup]) -> List[DownloadGroup]:
    """Second-pass filter removing groups whose names mark them as unresolved."""

    return [
        group
        for group in groups
        if "unknown" not in group.name.strip().lower()
        and group.name != UNMAPPED_STEAM_APPS_GROUP_NAME
    ]


# ----------------------------------------------------------------------
# Depot grouping for the tabular view
# ----------------------------------------------------------------------
def depot_key(record: DownloadRecord) -> str:
    if record.depot_id:
        return f"depot-{record.depot_id}-{record.client_ip}"
    return f"no-depot-{record.service}-{record.client_ip}-{record.id}"


@dataclass
class _DepotAccumulator:
    id: str
    first: DownloadRecord
    start_time_utc: datetime
    end_time_utc: datetime
    cache_hit_bytes: int = 0
    cache_miss_bytes: int = 0
    total_bytes: int = 0
    clients: Set[str] = field(default_factory=set)
    record_ids: List[int] = field(default_factory=list)
    weighted_speed_sum: float = 0.0
    speed_bytes_sum: int = 0

    def add(self, record: DownloadRecord) -> None:
        self.cache_hit_bytes += record.cache_hit_bytes
        self.cache_miss_bytes += record.cache_miss_bytes
        self.total_bytes += record.total_bytes
        self.clients.add(record.client_ip)
        self.record_ids.append(record.id)

        speed = record.average_bytes_per_second or 0
        if speed > 0 and record.total_bytes > 0:
            self.weighted_speed_sum += speed * record.total_bytes
            self.speed_bytes_sum += record.total_bytes

        if record.start_time_utc < self.start_time_utc:
            self.start_time_utc = record.start_time_utc
        end = record.end_time_utc or record.start_time_utc
        if end > self.end_time_utc:
            self.end_time_utc = end

    def build(self) -> DepotGroup:
        first = self.first
        return DepotGroup(
            id=self.id,
            service=first.service,
            game_name=first.game_name or first.service,
            game_app_id=first.game_app_id or None,
            depot_id=first.depot_id or None,
            client_ip=first.client_ip,
            start_time_utc=self.start_time_utc,
            end_time_utc=self.end_time_utc,
            cache_hit_bytes=self.cache_hit_bytes,
            cache_miss_bytes=self.cache_miss_bytes,
            total_bytes=self.total_bytes,
            request_count=len(self.record_ids),
            clients=frozenset(self.clients),
            datasource=first.datasource,
            average_bytes_per_second=weighted_average(
                self.weighted_speed_sum, self.speed_bytes_sum
            ),
            record_ids=tuple(self.record_ids),
        )


def weighted_average(weighted_sum: float, weight_total: float) -> float:
    return weighted_sum / weight_total if weight_total > 0 else 0.0


def flatten_items(items: Iterable[ViewItem]) -> List[DownloadRecord]:
    """Expand groups into their member records, keeping item order."""

    records: List[DownloadRecord] = []
    for item in items:
        if isinstance(item, DownloadGroup):
            records.extend(item.downloads)
        else:
            records.append(item)
    return records


def group_by_depot(items: Iterable[ViewItem]) -> List[DepotGroup]:
    """Build one row per (depot, client) transfer, or per record without a depot."""

    accumulators: Dict[str, _DepotAccumulator] = {}
    for record in flatten_items(items):
        key = depot_key(record)
        accumulator = accumulators.get(key)
        if accumulator is None:
            accumulator = _DepotAccumulator(
                id=key,
                first=record,
                start_time_utc=record.start_time_utc,
                end_time_utc=record.end_time_utc or record.start_time_utc,
            )
            accumulators[key] = accumulator
        accumulator.add(record)
    return [accumulator.build() for accumulator in accumulators.values()]

