"""Per-item values read by the sort strategies.

Records, download groups and depot groups expose the same concepts under
different fields; these helpers give each concept one accessor so the sort
strategies stay type-agnostic.
"""

from __future__ import annotations

from datetime import datetime

from download_insights.domain.models import (
    DepotGroup,
    DownloadGroup,
    SortableItem,
    hit_percent,
)


def latest_time(item: SortableItem) -> datetime:
    """Most recent activity: newest member start, or a depot row's end time."""

    if isinstance(item, DownloadGroup):
        return item.last_seen
    if isinstance(item, DepotGroup):
        return item.end_time_utc
    return item.start_time_utc


def earliest_time(item: SortableItem) -> datetime:
    """Age of the item: oldest member start for groups."""

    if isinstance(item, DownloadGroup):
        return item.first_seen
    return item.start_time_utc


def total_bytes(item: SortableItem) -> int:
    return item.total_bytes or 0


def efficiency(item: SortableItem) -> float:
    return hit_percent(item.cache_hit_bytes or 0, item.total_bytes or 0)


def session_count(item: SortableItem) -> int:
    if isinstance(item, DownloadGroup):
        return len(item.downloads)
    if isinstance(item, DepotGroup):
        return item.request_count
    return 1


def display_name(item: SortableItem) -> str:
    if isinstance(item, DownloadGroup):
        return item.name
    if isinstance(item, DepotGroup):
        return item.game_name
    return item.game_name or item.service


def service_name(item: SortableItem) -> str:
    return item.service
