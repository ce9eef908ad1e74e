"""Sort strategy protocol and the shared key-based implementation."""

from __future__ import annotations

from typing import Any, Callable, List, Protocol, Sequence, TypeVar

from download_insights.domain.models import SortableItem

T = TypeVar("T", bound=SortableItem)


class ISortStrategy(Protocol):
    """Orders view items for one operator-selectable sort order."""

    def name(self) -> str:
        """Stable identifier matching the persisted sort order value."""

    def sort(self, items: Sequence[T]) -> List[T]:
        """Return a new stably-sorted list."""


class KeySortStrategy:
    """Single-key stable sort; ties keep their input order."""

    NAME = ""
    DESCENDING = False

    def __init__(self, key: Callable[[SortableItem], Any]) -> None:
        self._key = key

    def name(self) -> str:
        return self.NAME

    def sort(self, items: Sequence[T]) -> List[T]:
        # list.sort stays stable with reverse=True
        return sorted(items, key=self._key, reverse=self.DESCENDING)
