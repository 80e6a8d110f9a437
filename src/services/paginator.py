"""Sorting, page slicing, cursors, and pool fetch sizing.

Cursors are opaque: urlsafe base64 of ``offset:<n>`` without padding.  Bare
digit strings (the format older pages emitted) still decode.  Anything else,
including a missing cursor, decodes to offset 0; a bad cursor is never an
error.
"""

from __future__ import annotations

import base64
import binascii
import math
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Sequence, TypeVar

from src.models.content import NormalizedItem
from src.models.query import PageInfo

DEFAULT_PAGE_SIZE = 24
MAX_PAGE_SIZE = 50

_CURSOR_PREFIX = "offset:"
_CURSOR_RE = re.compile(r"^offset:(\d+)$")

_ItemT = TypeVar("_ItemT", bound=NormalizedItem)


# ------------------------------------------------------------------
# Cursors
# ------------------------------------------------------------------


def encode_cursor(offset: int) -> str:
    if offset < 0:
        raise ValueError("offset must be non-negative")
    raw = f"{_CURSOR_PREFIX}{offset}".encode("ascii")
    return base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")


def decode_cursor(cursor: Any) -> int:
    """Decode a cursor into an offset; invalid input yields 0."""
    if not isinstance(cursor, str):
        return 0
    token = cursor.strip()
    if not token:
        return 0
    if token.isdigit() and token.isascii():
        return int(token)
    try:
        padded = token + "=" * (-len(token) % 4)
        decoded = base64.urlsafe_b64decode(padded.encode("ascii")).decode("ascii")
    except (binascii.Error, UnicodeError, ValueError):
        return 0
    match = _CURSOR_RE.match(decoded)
    return int(match.group(1)) if match else 0


# ------------------------------------------------------------------
# Sorting and slicing
# ------------------------------------------------------------------


def _timestamp(value: datetime) -> float:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.timestamp()


def sort_items(items: Sequence[_ItemT]) -> list[_ItemT]:
    """Sort by ``(published_at desc, id asc)``; undated items go last."""
    return sorted(
        items,
        key=lambda item: (
            item.published_at is None,
            -_timestamp(item.published_at) if item.published_at is not None else 0.0,
            item.id,
        ),
    )


def clamp_page_size(
    first: Any,
    default: int = DEFAULT_PAGE_SIZE,
    maximum: int = MAX_PAGE_SIZE,
) -> int:
    """Coerce *first* (int, numeric string or None) into ``[1, maximum]``."""
    value: int | None = None
    if isinstance(first, bool):
        value = None
    elif isinstance(first, int):
        value = first
    elif isinstance(first, float) and math.isfinite(first):
        value = int(first)
    elif isinstance(first, str):
        try:
            value = int(first.strip())
        except ValueError:
            value = None
    if value is None:
        value = default
    return max(1, min(value, maximum))


@dataclass(frozen=True)
class Page:
    items: list[NormalizedItem]
    page_info: PageInfo
    total: int
    offset: int


def paginate(
    sorted_items: Sequence[NormalizedItem],
    after: Any,
    first: Any,
    max_page_size: int = MAX_PAGE_SIZE,
) -> Page:
    """Slice one page out of an already sorted, filtered collection.

    ``has_next_page`` is true iff ``offset + returned < total``; the end
    cursor is only set when there is a next page.
    """
    total = len(sorted_items)
    offset = min(decode_cursor(after), total)
    size = clamp_page_size(first, maximum=max_page_size)
    window = list(sorted_items[offset : offset + size])
    next_offset = offset + len(window)
    has_next = next_offset < total
    return Page(
        items=window,
        page_info=PageInfo(
            has_next_page=has_next,
            end_cursor=encode_cursor(next_offset) if has_next else None,
        ),
        total=total,
        offset=offset,
    )


# ------------------------------------------------------------------
# Pool fetch sizing
# ------------------------------------------------------------------


@dataclass(frozen=True)
class PoolSizingPolicy:
    """How many records to pull from each pool for one request.

    The size grows with the requested offset so deeper pages still have
    records behind them, but never exceeds ``max_bound``.  When a pool fills
    its batch it may hold more than we saw (:meth:`may_hold_more`); the
    aggregator re-fetches it at ``max_bound`` when the filtered page comes
    up short.  When a pool fills a
    request that is already at ``max_bound``, :meth:`is_saturated` reports
    it so the response can be flagged as truncated.
    """

    min_batch: int = 60
    max_bound: int = 200
    multiplier: int = 3

    def size_for(self, offset: int, first: int) -> int:
        return min(self.max_bound, max(self.min_batch, offset + first * self.multiplier))

    def may_hold_more(self, requested: int, returned: int) -> bool:
        return returned >= requested

    def is_saturated(self, requested: int, returned: int) -> bool:
        return requested >= self.max_bound and self.may_hold_more(requested, returned)


def pool_fetch_size(
    offset: int,
    first: int,
    min_batch: int = 60,
    max_bound: int = 200,
    multiplier: int = 3,
) -> int:
    return PoolSizingPolicy(min_batch, max_bound, multiplier).size_for(offset, first)
