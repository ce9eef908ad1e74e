"""Pagination controller slicing ordered items into fixed-size pages."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Generic, List, Sequence, TypeVar

from download_insights.utils.validators import (
    UNLIMITED,
    PageSize,
    validate_page_number,
    validate_page_size,
)

T = TypeVar("T")


@dataclass(frozen=True)
class Page(Generic[T]):
    """One slice of an ordered sequence plus the totals the pager displays."""

    items: List[T]
    page: int
    page_size: PageSize
    total_pages: int
    total_items: int

    @property
    def has_next(self) -> bool:
        return self.page < self.total_pages

    @property
    def has_previous(self) -> bool:
        return self.page > 1


def total_pages(total_items: int, page_size: PageSize) -> int:
    if validate_page_size(page_size) == UNLIMITED:
        return 1
    return math.ceil(total_items / int(page_size))


def paginate(items: Sequence[T], page_size: PageSize, page: int = 1) -> Page[T]:
    """Return page ``page`` (1-based); pages past the end are empty, never clamped."""

    validate_page_number(page)
    count = len(items)
    pages = total_pages(count, page_size)
    if page_size == UNLIMITED:
        return Page(list(items), page, page_size, pages, count)

    size = int(page_size)
    start = (page - 1) * size
    return Page(list(items[start : start + size]), page, page_size, pages, count)


def clamp_page(page: int, pages: int) -> int:
    """Bring ``page`` back into ``1..pages`` for callers whose totals shrank."""

    return max(1, min(page, max(pages, 1)))
