"""Pagination helpers for list responses."""

from __future__ import annotations

from typing import Any, Sequence

DEFAULT_LIMIT = 20
MAX_LIMIT = 100


def clamp_page(limit: int, offset: int) -> tuple[int, int]:
    """Clamp limit to 1..MAX_LIMIT and offset to >= 0."""
    return max(1, min(limit, MAX_LIMIT)), max(0, offset)


def build_pagination(total_count: int, limit: int, offset: int) -> dict:
    """Build pagination metadata."""
    has_more = offset + limit < total_count
    return {
        "total_count": total_count,
        "limit": limit,
        "offset": offset,
        "has_more": has_more,
        "next_offset": offset + limit if has_more else None,
    }


def paginate(items: Sequence[Any], limit: int = DEFAULT_LIMIT, offset: int = 0) -> tuple[list[Any], dict]:
    """Slice items and return pagination metadata. Out-of-range values are clamped."""
    limit, offset = clamp_page(limit, offset)
    page = list(items[offset:offset + limit])
    return page, build_pagination(len(items), limit, offset)
