"""Cache-hit percentage orderings."""

from __future__ import annotations

from download_insights.engine import metrics

from .base import KeySortStrategy


class HighEfficiencyStrategy(KeySortStrategy):
    NAME = "efficiency"
    DESCENDING = True

    def __init__(self) -> None:
        super().__init__(metrics.efficiency)


class LowEfficiencyStrategy(KeySortStrategy):
    NAME = "efficiency-low"

    def __init__(self) -> None:
        super().__init__(metrics.efficiency)
