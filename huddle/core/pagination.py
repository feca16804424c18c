"""Cursor pagination helpers shared by listing endpoints."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Generic, Sequence, TypeVar

from huddle.config import get_settings

settings = get_settings()

T = TypeVar("T")


def resolve_limit(limit: int | None, *, maximum: int | None = None) -> int:
    """Normalise a requested page size.

    Missing, zero or negative limits fall back to the default page size and
    anything above ``maximum`` (``page_max_limit`` by default) is clamped.
    """

    upper = maximum if maximum is not None else settings.page_max_limit
    if limit is None or limit <= 0:
        return min(settings.page_default_limit, upper)
    return min(limit, upper)


@dataclass(slots=True)
class Page(Generic[T]):
    items: list[T]
    has_more: bool
    next_cursor: int | None


def paginate(rows: Sequence[T], limit: int, key: Callable[[T], int]) -> Page[T]:
    """Build a page from ``limit + 1`` fetched rows."""

    has_more = len(rows) > limit
    items = list(rows[:limit])
    next_cursor = key(items[-1]) if has_more and items else None
    return Page(items=items, has_more=has_more, next_cursor=next_cursor)
