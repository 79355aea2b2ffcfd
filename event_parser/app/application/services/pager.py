from __future__ import annotations

import math
from typing import Sequence, TypeVar

from event_parser.app.domain.models import DecodedEvent, PageView


T = TypeVar("T")


def _check_page_size(page_size: int) -> None:
    if page_size <= 0:
        raise ValueError("page_size must be positive")


def page(sequence: Sequence[T], page_size: int, page_number: int) -> list[T]:
    """Return the 1-based `page_number` window; empty when out of range."""
    _check_page_size(page_size)
    if page_number < 1:
        return []
    start = (page_number - 1) * page_size
    return list(sequence[start : start + page_size])


def total_pages(sequence: Sequence[object], page_size: int) -> int:
    _check_page_size(page_size)
    return math.ceil(len(sequence) / page_size)


def paginate(sequence: Sequence[DecodedEvent], page_size: int, page_number: int) -> PageView:
    return PageView(
        items=tuple(page(sequence, page_size, page_number)),
        page_number=page_number,
        page_size=page_size,
        total_items=len(sequence),
        total_pages=total_pages(sequence, page_size),
    )
