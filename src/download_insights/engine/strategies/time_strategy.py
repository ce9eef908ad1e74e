"""Recency based orderings."""

from __future__ import annotations

from download_insights.engine import metrics

from .base import KeySortStrategy


class LatestFirstStrategy(KeySortStrategy):
    """Newest activity first; a group is as recent as its newest member."""

    NAME = "latest"
    DESCENDING = True

    def __init__(self) -> None:
        super().__init__(metrics.latest_time)


class OldestFirstStrategy(KeySortStrategy):
    """Oldest first; a group is as old as its oldest member."""

    NAME = "oldest"

    def __init__(self) -> None:
        super().__init__(metrics.earliest_time)
