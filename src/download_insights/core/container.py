"""Dependency injection container for building fully-wired dashboards."""

from __future__ import annotations

import time
from typing import Optional

import httpx

from download_insights.analytics.associations import AssociationCache
from download_insights.core.config import DashboardConfig
from download_insights.core.dashboard import DownloadsDashboard
from download_insights.core.preference_store import (
    InMemoryPreferenceStore,
    SQLitePreferenceStore,
)
from download_insights.core.settings import SettingsStore
from download_insights.domain.interfaces import IDashboardApi, IPreferenceStore
from download_insights.engine.pipeline import ViewPipeline
from download_insights.engine.sorting import SortEngine
from download_insights.realtime.api_client import ApiClientConfig, DashboardApiClient
from download_insights.realtime.throttle import Clock


class DIContainer:
    """Factory helpers that assemble a DownloadsDashboard with default wiring."""

    @staticmethod
    def create_dashboard(
        *,
        config: Optional[DashboardConfig] = None,
        http_client: Optional[httpx.Client] = None,
        api: Optional[IDashboardApi] = None,
        preference_store: Optional[IPreferenceStore] = None,
        sort_engine: Optional[SortEngine] = None,
        clock: Clock = time.monotonic,
    ) -> DownloadsDashboard:
        cfg = config or DashboardConfig.from_env()
        resolved_api = api or DIContainer._build_api_client(cfg, http_client)
        store = preference_store or DIContainer._build_preference_store(cfg)
        return DownloadsDashboard(
            resolved_api,
            SettingsStore(store),
            config=cfg,
            pipeline=ViewPipeline(sort_engine or SortEngine()),
            associations=AssociationCache(resolved_api),
            clock=clock,
        )

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    @staticmethod
    def _build_api_client(
        config: DashboardConfig, http_client: Optional[httpx.Client]
    ) -> DashboardApiClient:
        client_config = ApiClientConfig(
            base_url=config.api_base_url,
            api_key=config.api_key,
            timeout=config.timeout_seconds,
        )
        client = http_client or httpx.Client(timeout=client_config.timeout)
        return DashboardApiClient(client, client_config)

    @staticmethod
    def _build_preference_store(config: DashboardConfig) -> IPreferenceStore:
        if config.preferences_path:
            return SQLitePreferenceStore(config.preferences_path)
        return InMemoryPreferenceStore()
