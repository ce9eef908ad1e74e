"""Input validation helpers used across the dashboard."""

from __future__ import annotations

from typing import Union

UNLIMITED = "unlimited"
ITEMS_PER_PAGE_CHOICES = (20, 50, 100, 200)

PageSize = Union[int, str]


def parse_page_size(value: Union[int, str, None], default: PageSize) -> PageSize:
    """Parse a stored or user supplied page size, falling back to ``default``."""

    if value is None:
        return default
    if isinstance(value, str):
        value = value.strip().lower()
        if value == UNLIMITED:
            return UNLIMITED
        try:
            value = int(value)
        except ValueError:
            return default
    if isinstance(value, int) and value > 0:
        return value
    return default


def validate_page_size(value: PageSize) -> PageSize:
    if value == UNLIMITED:
        return UNLIMITED
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise ValueError(f"page size must be a positive integer or '{UNLIMITED}'")
    return value


def validate_page_number(page: int) -> int:
    if isinstance(page, bool) or not isinstance(page, int) or page < 1:
        raise ValueError("page must be a positive integer")
    return page
