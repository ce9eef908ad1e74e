"""Basic dashboard example using the built-in DI container."""

from download_insights.core.config import DashboardConfig
from download_insights.core.container import DIContainer
from download_insights.engine.metrics import display_name


def main() -> None:
    dashboard = DIContainer.create_dashboard(config=DashboardConfig.from_env())
    dashboard.load_server_config()
    dashboard.refresh_downloads()
    dashboard.speed_monitor.refresh()
    dashboard.history_poller.request_refresh()

    summary = dashboard.header_summary()
    print("Active games:", summary.active_games)
    print("Speed:", summary.speed)
    print("Today:", summary.today_total)

    view = dashboard.view()
    print(f"Page {view.page.page}/{view.page.total_pages} ({view.page.total_items} items)")
    for item in view.page.items:
        print(f"  {display_name(item)}: {item.total_bytes} bytes")


if __name__ == "__main__":
    main()
