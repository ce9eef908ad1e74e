"""Sort engine resolving sort orders to strategies and applying bucketing."""

from __future__ import annotations

from typing import Callable, Dict, List, Sequence, Union

from download_insights.domain.models import (
    DepotGroup,
    DownloadGroup,
    SortOrder,
    ViewItem,
)

from .strategies.base import ISortStrategy
from .strategies.efficiency_strategy import (
    HighEfficiencyStrategy,
    LowEfficiencyStrategy,
)
from .strategies.label_strategy import AlphabeticalStrategy, ServiceStrategy
from .strategies.size_strategy import (
    LargestFirstStrategy,
    MostSessionsStrategy,
    SmallestFirstStrategy,
)
from .strategies.time_strategy import LatestFirstStrategy, OldestFirstStrategy

# Orders that keep repeatedly downloaded titles clustered ahead of one-offs.
FREQUENCY_BUCKETED_ORDERS = frozenset(
    {SortOrder.LATEST, SortOrder.OLDEST, SortOrder.LARGEST, SortOrder.SMALLEST}
)


class SortEngine:
    """Orders view items for the selected sort order."""

    def __init__(self) -> None:
        self._registry: Dict[SortOrder, Callable[[], ISortStrategy]] = {}
        self._register_defaults()

    def register_strategy(
        self, order: SortOrder, factory: Callable[[], ISortStrategy]
    ) -> None:
        self._registry[order] = factory

    def strategy_for(self, order: Union[SortOrder, str]) -> ISortStrategy:
        try:
            return self._registry[SortOrder(order)]()
        except (KeyError, ValueError) as exc:
            raise ValueError(f"Unknown sort order '{order}'") from exc

    def sort(
        self,
        items: Sequence[ViewItem],
        order: Union[SortOrder, str] = SortOrder.LATEST,
        *,
        group_by_frequency: bool = False,
    ) -> List[ViewItem]:
        """Stable sort; bucketed by group size for the frequency-aware orders."""

        strategy = self.strategy_for(order)
        if not group_by_frequency or SortOrder(order) not in FREQUENCY_BUCKETED_ORDERS:
            return strategy.sort(items)

        multiple: List[ViewItem] = []
        single: List[ViewItem] = []
        individuals: List[ViewItem] = []
        for item in items:
            if isinstance(item, DownloadGroup):
                (multiple if len(item.downloads) > 1 else single).append(item)
            else:
                individuals.append(item)
        return [
            *strategy.sort(multiple),
            *strategy.sort(single),
            *strategy.sort(individuals),
        ]

    def sort_depot_groups(
        self,
        groups: Sequence[DepotGroup],
        order: Union[SortOrder, str] = SortOrder.LATEST,
    ) -> List[DepotGroup]:
        return self.strategy_for(order).sort(groups)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _register_defaults(self) -> None:
        self.register_strategy(SortOrder.LATEST, LatestFirstStrategy)
        self.register_strategy(SortOrder.OLDEST, OldestFirstStrategy)
        self.register_strategy(SortOrder.LARGEST, LargestFirstStrategy)
        self.register_strategy(SortOrder.SMALLEST, SmallestFirstStrategy)
        self.register_strategy(SortOrder.SERVICE, ServiceStrategy)
        self.register_strategy(SortOrder.EFFICIENCY, HighEfficiencyStrategy)
        self.register_strategy(SortOrder.EFFICIENCY_LOW, LowEfficiencyStrategy)
        self.register_strategy(SortOrder.SESSIONS, MostSessionsStrategy)
        self.register_strategy(SortOrder.ALPHABETICAL, AlphabeticalStrategy)
