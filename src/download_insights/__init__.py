"""Download aggregation and view engine for a LAN game-cache dashboard."""

from .core.dashboard import DownloadsDashboard
from .core.container import DIContainer

__all__ = [
    "DownloadsDashboard",
    "DIContainer",
    "domain",
    "engine",
    "core",
    "realtime",
    "analytics",
    "utils",
]
