"""Demonstrates creating and registering a custom sort strategy."""

from download_insights.core.container import DIContainer
from download_insights.domain.models import SortOrder
from download_insights.engine import metrics
from download_insights.engine.sorting import SortEngine
from download_insights.engine.strategies.base import KeySortStrategy


class MostWastefulStrategy(KeySortStrategy):
    """Largest cache-miss volume first, for spotting uncached titles."""

    NAME = "efficiency-low"
    DESCENDING = True

    def __init__(self) -> None:
        super().__init__(
            lambda item: metrics.total_bytes(item) * (100 - metrics.efficiency(item))
        )


def main() -> None:
    engine = SortEngine()
    engine.register_strategy(SortOrder.EFFICIENCY_LOW, MostWastefulStrategy)
    dashboard = DIContainer.create_dashboard(sort_engine=engine)
    dashboard.settings_store.update(sort_order=SortOrder.EFFICIENCY_LOW)
    dashboard.refresh_downloads()

    for item in dashboard.view().page.items:
        print(metrics.display_name(item), f"{metrics.efficiency(item):.1f}%")


if __name__ == "__main__":
    main()
