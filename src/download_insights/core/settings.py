"""Settings store: loads preferences on start and persists them on change."""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Callable, Dict, FrozenSet, List, Mapping, Optional

from pydantic import ValidationError

from download_insights.domain.exceptions import SettingsError
from download_insights.domain.interfaces import IPreferenceStore
from download_insights.domain.models import ViewMode
from download_insights.domain.settings import (
    DEFAULT_ITEMS_PER_PAGE,
    DownloadSettings,
    detect_active_preset,
    preset_changes,
)
from download_insights.utils.validators import parse_page_size

SettingsListener = Callable[[DownloadSettings, FrozenSet[str]], None]

STORAGE_KEYS: Mapping[str, str] = {
    "selected_service": "lancache_downloads_service",
    "selected_client": "lancache_downloads_client",
    "search_query": "lancache_downloads_search",
    "show_zero_bytes": "lancache_downloads_metadata",
    "show_small_files": "lancache_downloads_show_small",
    "hide_localhost": "lancache_downloads_hide_localhost",
    "hide_unknown_games": "lancache_downloads_hide_unknown",
    "items_per_page": "lancache_downloads_items",
    "items_per_page_retro": "lancache_downloads_items_retro",
    "view_mode": "lancache_downloads_view_mode",
    "sort_order": "lancache_downloads_sort_order",
    "group_unknown_games": "lancache_downloads_group_unknown",
    "group_by_frequency": "lancache_downloads_group_by_frequency",
    "aesthetic_mode": "lancache_downloads_aesthetic_mode",
    "full_height_banners": "lancache_downloads_full_height_banners",
    "enable_scroll_into_view": "lancache_downloads_scroll_into_view",
    "show_datasource_labels": "lancache_downloads_datasource_labels",
}

_PAGE_SIZE_DEFAULTS = {
    "items_per_page": DEFAULT_ITEMS_PER_PAGE[ViewMode.NORMAL],
    "items_per_page_retro": DEFAULT_ITEMS_PER_PAGE[ViewMode.RETRO],
}


def _encode(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, Enum):
        return str(value.value)
    return str(value)


class SettingsStore:
    """Owns the operator's DownloadSettings and their persistence."""

    def __init__(
        self,
        store: IPreferenceStore,
        *,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._store = store
        self.logger = logger or logging.getLogger(__name__)
        self._listeners: List[SettingsListener] = []
        self._settings = self._load()

    @property
    def settings(self) -> DownloadSettings:
        return self._settings

    def update(self, **changes: Any) -> DownloadSettings:
        """Validate, persist and broadcast the given field changes."""

        unknown = sorted(set(changes) - set(STORAGE_KEYS))
        if unknown:
            raise SettingsError(
                "Unknown download settings", context={"fields": unknown}
            )
        merged = {**self._settings.model_dump(), **changes}
        try:
            updated = DownloadSettings.model_validate(merged)
        except ValidationError as exc:
            raise SettingsError(
                "Invalid download settings",
                context={"fields": sorted(changes), "errors": exc.error_count()},
            ) from exc

        changed = frozenset(
            name
            for name in changes
            if getattr(updated, name) != getattr(self._settings, name)
        )
        if not changed:
            return self._settings

        self._settings = updated
        for name in sorted(changed):
            self._store.set(STORAGE_KEYS[name], _encode(getattr(updated, name)))
        self.logger.debug("settings_updated", extra={"fields": sorted(changed)})
        self._notify(changed)
        return updated

    def apply_preset(self, name: str) -> DownloadSettings:
        try:
            changes = preset_changes(name)
        except ValueError as exc:
            raise SettingsError(str(exc), context={"preset": name}) from exc
        return self.update(**changes)

    @property
    def active_preset(self) -> str:
        return detect_active_preset(self._settings)

    def subscribe(self, listener: SettingsListener) -> None:
        if listener not in self._listeners:
            self._listeners.append(listener)

    def unsubscribe(self, listener: SettingsListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _load(self) -> DownloadSettings:
        defaults = DownloadSettings()
        values: Dict[str, Any] = {}
        for name, key in STORAGE_KEYS.items():
            raw = self._store.get(key)
            if raw is None:
                continue
            parsed = self._decode(name, raw, getattr(defaults, name))
            if parsed is not None:
                values[name] = parsed
        try:
            return DownloadSettings(**values)
        except ValidationError:
            self.logger.warning("stored_settings_invalid", extra={"fields": sorted(values)})
            return defaults

    def _decode(self, name: str, raw: str, default: Any) -> Any:
        if name in _PAGE_SIZE_DEFAULTS:
            return parse_page_size(raw, _PAGE_SIZE_DEFAULTS[name])
        if isinstance(default, bool):
            lowered = raw.strip().lower()
            if lowered in {"true", "false"}:
                return lowered == "true"
            self.logger.debug("stored_setting_ignored", extra={"field": name})
            return None
        if isinstance(default, Enum):
            try:
                return type(default)(raw)
            except ValueError:
                self.logger.debug("stored_setting_ignored", extra={"field": name})
                return None
        return raw

    def _notify(self, changed: FrozenSet[str]) -> None:
        for listener in list(self._listeners):
            listener(self._settings, changed)
