"""Page arithmetic for task listings."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import List

WINDOW_SIZE = 5


@dataclass
class PageWindow:
    page: int
    total_pages: int
    start: int
    end: int  # inclusive

    @property
    def pages(self) -> List[int]:
        return list(range(self.start, self.end + 1))

    @property
    def has_previous(self) -> bool:
        return self.page > 1

    @property
    def has_next(self) -> bool:
        return self.page < self.total_pages

    @property
    def show_first(self) -> bool:
        return self.start > 1

    @property
    def gap_after_first(self) -> bool:
        return self.start > 2

    @property
    def show_last(self) -> bool:
        return self.end < self.total_pages

    @property
    def gap_before_last(self) -> bool:
        return self.end < self.total_pages - 1


def offset_for(page: int, page_size: int) -> int:
    return (page - 1) * page_size


def total_pages(total: int, page_size: int) -> int:
    if page_size <= 0:
        raise ValueError("page_size must be positive")
    return math.ceil(total / page_size)


def page_window(page: int, total: int, page_size: int) -> PageWindow:
    """Five-wide window starting two pages before ``page``, clamped to the range."""
    pages = total_pages(total, page_size)
    start = max(1, page - 2)
    end = min(pages, start + WINDOW_SIZE - 1)
    return PageWindow(page=page, total_pages=pages, start=start, end=end)
