"""Helpers for classifying game names reported by the cache backend."""

from __future__ import annotations

import re
from typing import Optional

UNKNOWN_STEAM_GAME = "Unknown Steam Game"
UNKNOWN_GAMES_GROUP_NAME = "Unknown Games"
UNMAPPED_STEAM_APPS_GROUP_NAME = "Unmapped Steam Apps"

STEAM_SERVICE = "steam"

_STEAM_APP_PATTERN = re.compile(r"^Steam App \d+$")
_STEAM_APP_PATTERN_LOOSE = re.compile(r"^steam app \d+$", re.IGNORECASE)


def is_steam(service: Optional[str]) -> bool:
    return (service or "").lower() == STEAM_SERVICE


def is_unmapped_steam_app(name: Optional[str]) -> bool:
    """True for placeholder names such as ``Steam App 12345``."""

    return bool(name) and _STEAM_APP_PATTERN.match(name) is not None


def has_usable_game_name(name: Optional[str]) -> bool:
    """A name that can key a game group on its own."""

    return bool(name) and name != UNKNOWN_STEAM_GAME and not is_unmapped_steam_app(name)


def is_unknown_steam_game(service: Optional[str], name: Optional[str]) -> bool:
    """Steam traffic whose game name is missing or still unresolved."""

    if not is_steam(service):
        return False
    if not name or not name.strip():
        return True
    return (
        name == UNKNOWN_STEAM_GAME
        or "unknown" in name.lower()
        or is_unmapped_steam_app(name)
    )


def is_hidden_unknown_name(name: Optional[str]) -> bool:
    """Name test applied by the hide-unknown-games filter to Steam records."""

    trimmed = (name or "").strip()
    if not trimmed:
        return True
    if "unknown" in trimmed.lower():
        return True
    return _STEAM_APP_PATTERN_LOOSE.match(trimmed) is not None
