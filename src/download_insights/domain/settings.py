"""Operator preferences that drive filtering, sorting and presentation."""

from __future__ import annotations

from typing import Any, Dict, Mapping, Union

from pydantic import BaseModel, ConfigDict, field_validator

from download_insights.utils.validators import validate_page_size

from .models import SortOrder, ViewMode

ALL = "all"
CUSTOM_PRESET = "custom"

DEFAULT_ITEMS_PER_PAGE: Mapping[ViewMode, int] = {
    ViewMode.COMPACT: 50,
    ViewMode.NORMAL: 50,
    ViewMode.RETRO: 100,
}


class FilterSettings(BaseModel):
    """Immutable predicate toggles, ANDed together by the record filter."""

    model_config = ConfigDict(frozen=True)

    show_zero_bytes: bool = False
    show_small_files: bool = True
    hide_localhost: bool = False
    hide_unknown_games: bool = False
    selected_service: str = ALL
    selected_client: str = ALL
    search_query: str = ""


class DownloadSettings(FilterSettings):
    """Full preference set for the downloads view."""

    items_per_page: Union[int, str] = DEFAULT_ITEMS_PER_PAGE[ViewMode.NORMAL]
    items_per_page_retro: Union[int, str] = DEFAULT_ITEMS_PER_PAGE[ViewMode.RETRO]
    view_mode: ViewMode = ViewMode.NORMAL
    sort_order: SortOrder = SortOrder.LATEST
    group_unknown_games: bool = False
    group_by_frequency: bool = True
    aesthetic_mode: bool = False
    full_height_banners: bool = False
    enable_scroll_into_view: bool = True
    show_datasource_labels: bool = True

    @field_validator("items_per_page", "items_per_page_retro")
    @classmethod
    def validate_items_per_page(cls, value: Union[int, str]) -> Union[int, str]:
        return validate_page_size(value)

    @property
    def page_size(self) -> Union[int, str]:
        """Items per page for the active view mode."""

        if self.view_mode == ViewMode.RETRO:
            return self.items_per_page_retro
        return self.items_per_page

    def filter_settings(self) -> FilterSettings:
        return FilterSettings(
            **{name: getattr(self, name) for name in FilterSettings.model_fields}
        )


PRESETS: Mapping[str, Mapping[str, bool]] = {
    "pretty": {
        "show_zero_bytes": False,
        "show_small_files": False,
        "hide_localhost": True,
        "hide_unknown_games": True,
        "group_unknown_games": False,
        "aesthetic_mode": False,
        "full_height_banners": True,
        "group_by_frequency": False,
        "enable_scroll_into_view": True,
    },
    "minimal": {
        "show_zero_bytes": False,
        "show_small_files": False,
        "hide_localhost": True,
        "hide_unknown_games": True,
        "group_unknown_games": False,
        "aesthetic_mode": True,
        "full_height_banners": False,
        "group_by_frequency": True,
        "enable_scroll_into_view": True,
    },
    "showAll": {
        "show_zero_bytes": True,
        "show_small_files": True,
        "hide_localhost": False,
        "hide_unknown_games": False,
        "group_unknown_games": True,
        "aesthetic_mode": False,
        "full_height_banners": False,
        "group_by_frequency": True,
        "enable_scroll_into_view": True,
    },
    "default": {
        "show_zero_bytes": False,
        "show_small_files": True,
        "hide_localhost": False,
        "hide_unknown_games": False,
        "group_unknown_games": False,
        "aesthetic_mode": False,
        "full_height_banners": False,
        "group_by_frequency": True,
        "enable_scroll_into_view": True,
    },
}


def detect_active_preset(settings: DownloadSettings) -> str:
    """Name of the preset the current toggles match, or ``custom``."""

    for name, preset in PRESETS.items():
        if all(getattr(settings, field) == value for field, value in preset.items()):
            return name
    return CUSTOM_PRESET


def preset_changes(name: str) -> Dict[str, Any]:
    try:
        return dict(PRESETS[name])
    except KeyError as exc:
        raise ValueError(f"Unknown preset '{name}'") from exc
