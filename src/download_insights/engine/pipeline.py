"""View pipeline shared by the compact, normal and retro renderers.

Every stage is a pure recomputation of its inputs. Each stage result is cached
against the tuple of inputs it reads (the record-set version plus the relevant
settings), so an unrelated settings change or a page flip reuses the cached
stages while any relevant change rebuilds from scratch.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Hashable, List, Sequence, Tuple, TypeVar, Union

from download_insights.domain.models import (
    DepotGroup,
    DownloadRecord,
    ViewItem,
    ViewMode,
)
from download_insights.domain.settings import DownloadSettings

from .filters import filter_records
from .grouping import drop_unknown_groups, group_by_depot, group_records
from .pagination import Page, paginate
from .sorting import SortEngine

T = TypeVar("T")


@dataclass(frozen=True)
class PreparedView:
    """Fully ordered items for one view mode, before page slicing."""

    view_mode: ViewMode
    filtered: List[DownloadRecord]
    items: List[ViewItem]
    depot_groups: List[DepotGroup]

    @property
    def rows(self) -> Sequence[Union[ViewItem, DepotGroup]]:
        """What the renderer lists: depot rows for retro, items otherwise."""

        if self.view_mode == ViewMode.RETRO:
            return self.depot_groups
        return self.items

    def page(self, page_size: Union[int, str], page: int) -> Page[Any]:
        return paginate(self.rows, page_size, page)


class _StageCache:
    """Single-entry memo: keeps the last key and its value."""

    def __init__(self) -> None:
        self._key: Hashable = None
        self._value: Any = None
        self._filled = False

    def get_or_compute(self, key: Hashable, compute: Callable[[], T]) -> Tuple[T, bool]:
        if self._filled and self._key == key:
            return self._value, True
        self._value = compute()
        self._key = key
        self._filled = True
        return self._value, False

    def clear(self) -> None:
        self._key = None
        self._value = None
        self._filled = False


class ViewPipeline:
    """filter -> group -> sort per view mode, with per-stage memoization."""

    def __init__(
        self,
        sort_engine: SortEngine | None = None,
        *,
        logger: logging.Logger | None = None,
    ) -> None:
        self._sort_engine = sort_engine or SortEngine()
        self._logger = logger or logging.getLogger(__name__)
        self._filtered = _StageCache()
        self._grouped = _StageCache()
        self._sorted = _StageCache()
        self._depots = _StageCache()
        self.recomputations: Dict[str, int] = {
            "filter": 0,
            "group": 0,
            "sort": 0,
            "depot": 0,
        }

    def build(
        self,
        records: Sequence[DownloadRecord],
        records_version: int,
        settings: DownloadSettings,
    ) -> PreparedView:
        filter_settings = settings.filter_settings()
        filter_key = (records_version, filter_settings)
        filtered = self._stage(
            "filter",
            self._filtered,
            filter_key,
            lambda: filter_records(records, filter_settings),
        )

        if settings.view_mode == ViewMode.RETRO:
            depot_key = (filter_key, settings.sort_order)
            depots = self._stage(
                "depot",
                self._depots,
                depot_key,
                lambda: self._sort_engine.sort_depot_groups(
                    group_by_depot(filtered), settings.sort_order
                ),
            )
            return PreparedView(ViewMode.RETRO, filtered, list(filtered), depots)

        group_key = (filter_key, settings.group_unknown_games)
        grouped = self._stage(
            "group",
            self._grouped,
            group_key,
            lambda: self._group(filtered, settings),
        )
        sort_key = (group_key, settings.sort_order, settings.group_by_frequency)
        ordered = self._stage(
            "sort",
            self._sorted,
            sort_key,
            lambda: self._sort_engine.sort(
                grouped,
                settings.sort_order,
                group_by_frequency=settings.group_by_frequency,
            ),
        )
        return PreparedView(settings.view_mode, filtered, ordered, [])

    def invalidate(self) -> None:
        for cache in (self._filtered, self._grouped, self._sorted, self._depots):
            cache.clear()

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    @staticmethod
    def _group(
        filtered: Sequence[DownloadRecord], settings: DownloadSettings
    ) -> List[ViewItem]:
        result = group_records(filtered, settings.group_unknown_games)
        groups = result.groups
        # group names only exist after aggregation, so hiding runs twice
        if settings.hide_unknown_games:
            groups = drop_unknown_groups(groups)
        return [*groups, *result.individuals]

    def _stage(
        self,
        name: str,
        cache: _StageCache,
        key: Hashable,
        compute: Callable[[], T],
    ) -> T:
        value, cached = cache.get_or_compute(key, compute)
        if not cached:
            self.recomputations[name] += 1
            self._logger.debug("pipeline_stage_recomputed", extra={"stage": name})
        return value
