"""Name based orderings."""

from __future__ import annotations

from typing import List, Sequence

from download_insights.engine import metrics

from .base import KeySortStrategy, T
from .time_strategy import LatestFirstStrategy


class ServiceStrategy(KeySortStrategy):
    """Service name A-Z, most recent first within a service."""

    NAME = "service"

    def __init__(self) -> None:
        super().__init__(lambda item: metrics.service_name(item).casefold())
        self._tie_break = LatestFirstStrategy()

    def sort(self, items: Sequence[T]) -> List[T]:
        return super().sort(self._tie_break.sort(items))


class AlphabeticalStrategy(KeySortStrategy):
    NAME = "alphabetical"

    def __init__(self) -> None:
        super().__init__(lambda item: metrics.display_name(item).casefold())
