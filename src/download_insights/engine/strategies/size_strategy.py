"""Volume based orderings."""

from __future__ import annotations

from download_insights.engine import metrics

from .base import KeySortStrategy


class LargestFirstStrategy(KeySortStrategy):
    NAME = "largest"
    DESCENDING = True

    def __init__(self) -> None:
        super().__init__(metrics.total_bytes)


class SmallestFirstStrategy(KeySortStrategy):
    NAME = "smallest"

    def __init__(self) -> None:
        super().__init__(metrics.total_bytes)


class MostSessionsStrategy(KeySortStrategy):
    """Most download sessions first; a lone record counts as one."""

    NAME = "sessions"
    DESCENDING = True

    def __init__(self) -> None:
        super().__init__(metrics.session_count)
