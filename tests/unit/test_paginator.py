"""Unit tests for sorting, cursors, page slicing, and pool sizing."""

from __future__ import annotations

import base64
from datetime import datetime, timedelta, timezone

import pytest

from src.services.paginator import (
    PoolSizingPolicy,
    clamp_page_size,
    decode_cursor,
    encode_cursor,
    paginate,
    pool_fetch_size,
    sort_items,
)
from tests.conftest import make_item

_BASE = datetime(2024, 6, 1, tzinfo=timezone.utc)


# ======================================================================
# Cursors
# ======================================================================


class TestCursors:
    """Tests for encode_cursor / decode_cursor."""

    @pytest.mark.parametrize("offset", [0, 1, 24, 199, 10_000])
    def test_round_trip(self, offset: int) -> None:
        assert decode_cursor(encode_cursor(offset)) == offset

    def test_cursor_is_opaque_and_unpadded(self) -> None:
        cursor = encode_cursor(24)
        assert "=" not in cursor
        assert base64.urlsafe_b64decode(cursor).decode() == "offset:24"

    def test_negative_offset_rejected(self) -> None:
        with pytest.raises(ValueError):
            encode_cursor(-1)

    def test_bare_digits_accepted(self) -> None:
        assert decode_cursor("48") == 48

    @pytest.mark.parametrize(
        "cursor",
        [None, "", "   ", "!!!", "bm90LWFuLW9mZnNldA", "offset:12", 12, "-5", "b2Zmc2V0Oi0x"],
    )
    def test_invalid_decodes_to_zero(self, cursor) -> None:
        assert decode_cursor(cursor) == 0


# ======================================================================
# Sorting
# ======================================================================


class TestSortItems:
    """Tests for sort_items."""

    def test_newest_first_then_id(self) -> None:
        items = [
            make_item("b", _BASE),
            make_item("old", _BASE - timedelta(days=3)),
            make_item("a", _BASE),
            make_item("new", _BASE + timedelta(days=1)),
        ]
        assert [i.id for i in sort_items(items)] == ["new", "a", "b", "old"]

    def test_undated_last(self) -> None:
        items = [make_item("z", None), make_item("y", _BASE), make_item("x", None)]
        assert [i.id for i in sort_items(items)] == ["y", "x", "z"]

    def test_mixed_timezones_compare_by_instant(self) -> None:
        eastern = timezone(timedelta(hours=-5))
        later = datetime(2024, 6, 1, 0, 30, tzinfo=eastern)  # 05:30 UTC
        items = [make_item("utc", _BASE + timedelta(hours=5)), make_item("est", later)]
        assert [i.id for i in sort_items(items)] == ["est", "utc"]


# ======================================================================
# Page size
# ======================================================================


class TestClampPageSize:
    """Tests for clamp_page_size."""

    @pytest.mark.parametrize(
        ("first", "expected"),
        [
            (None, 24),
            (10, 10),
            (0, 1),
            (-3, 1),
            (500, 50),
            ("12", 12),
            (" 7 ", 7),
            ("abc", 24),
            (7.9, 7),
            (float("nan"), 24),
            (True, 24),
            ([5], 24),
        ],
    )
    def test_clamps(self, first, expected) -> None:
        assert clamp_page_size(first) == expected

    def test_custom_bounds(self) -> None:
        assert clamp_page_size(None, default=10, maximum=5) == 5
        assert clamp_page_size(80, maximum=100) == 80


# ======================================================================
# paginate
# ======================================================================


class TestPaginate:
    """Tests for paginate."""

    @pytest.fixture()
    def sorted_items(self):
        return sort_items([make_item(f"i{n:02d}", _BASE - timedelta(hours=n)) for n in range(11)])

    def test_first_page(self, sorted_items) -> None:
        page = paginate(sorted_items, None, 4)
        assert [i.id for i in page.items] == ["i00", "i01", "i02", "i03"]
        assert page.total == 11
        assert page.page_info.has_next_page is True
        assert decode_cursor(page.page_info.end_cursor) == 4

    def test_walks_every_item_exactly_once(self, sorted_items) -> None:
        seen: list[str] = []
        after = None
        for _ in range(10):
            page = paginate(sorted_items, after, 4)
            seen.extend(i.id for i in page.items)
            if not page.page_info.has_next_page:
                break
            after = page.page_info.end_cursor
        assert seen == [i.id for i in sorted_items]

    def test_last_page_has_no_cursor(self, sorted_items) -> None:
        page = paginate(sorted_items, encode_cursor(8), 4)
        assert [i.id for i in page.items] == ["i08", "i09", "i10"]
        assert page.page_info.has_next_page is False
        assert page.page_info.end_cursor is None

    def test_offset_past_end(self, sorted_items) -> None:
        page = paginate(sorted_items, encode_cursor(99), 4)
        assert page.items == []
        assert page.offset == 11
        assert page.page_info.has_next_page is False

    def test_empty_collection(self) -> None:
        page = paginate([], None, 10)
        assert page.total == 0
        assert page.page_info.end_cursor is None


# ======================================================================
# Pool sizing
# ======================================================================


class TestPoolSizing:
    """Tests for PoolSizingPolicy and pool_fetch_size."""

    @pytest.mark.parametrize(
        ("offset", "first", "expected"),
        [
            (0, 10, 60),
            (0, 24, 72),
            (48, 24, 120),
            (150, 24, 200),
            (1000, 50, 200),
        ],
    )
    def test_size_for(self, offset: int, first: int, expected: int) -> None:
        assert PoolSizingPolicy().size_for(offset, first) == expected
        assert pool_fetch_size(offset, first) == expected

    def test_saturation_only_at_bound(self) -> None:
        policy = PoolSizingPolicy(min_batch=5, max_bound=10, multiplier=2)
        assert policy.is_saturated(10, 10) is True
        assert policy.is_saturated(10, 9) is False
        assert policy.is_saturated(8, 8) is False

    def test_filled_batch_may_hold_more(self) -> None:
        policy = PoolSizingPolicy(min_batch=5, max_bound=10, multiplier=2)
        assert policy.may_hold_more(6, 6) is True
        assert policy.may_hold_more(6, 5) is False
        assert policy.is_saturated(6, 6) is False
