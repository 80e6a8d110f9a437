"""Unit tests for the content and query Pydantic models."""

from __future__ import annotations

import json
from datetime import datetime, timezone

import pytest
from pydantic import ValidationError

from src.models.content import CATEGORY, NormalizedItem, TermRef, VideoMedia
from src.models.query import FacetBucket, FacetGroup, PageInfo, PageMeta, PageResult


# ======================================================================
# NormalizedItem
# ======================================================================


class TestNormalizedItem:
    """Tests for NormalizedItem construction and serialization."""

    @pytest.fixture()
    def item(self) -> NormalizedItem:
        return NormalizedItem(
            id="video-flashing-101",
            title="Flashing 101",
            published_at=datetime(2024, 4, 1, 10, tzinfo=timezone.utc),
            source_pool="video_entry",
            slug="flashing-101",
            tags={CATEGORY: (TermRef(slug="explainer", name="How-To"),)},
            media=VideoMedia(youtube_url="https://youtu.be/BBBBBBBBBBB", youtube_id="BBBBBBBBBBB"),
        )

    def test_is_frozen(self, item: NormalizedItem) -> None:
        with pytest.raises(ValidationError):
            item.title = "changed"

    def test_accepts_camel_case_input(self) -> None:
        item = NormalizedItem.model_validate(
            {"id": "post-a", "title": "A", "sourcePool": "post", "publishedAt": None}
        )
        assert item.source_pool == "post"

    def test_json_uses_camel_case(self, item: NormalizedItem) -> None:
        data = json.loads(item.model_dump_json(by_alias=True))
        assert data["sourcePool"] == "video_entry"
        assert data["media"]["youtubeId"] == "BBBBBBBBBBB"
        assert data["tags"]["category"] == [{"slug": "explainer", "name": "How-To"}]

    def test_matchable_helpers(self, item: NormalizedItem) -> None:
        assert item.identity == "video-flashing-101"
        assert item.tag_slugs(CATEGORY) == frozenset({"explainer"})
        assert item.tag_slugs("missing") == frozenset()
        assert item.terms(CATEGORY)[0].name == "How-To"

    def test_required_fields(self) -> None:
        with pytest.raises(ValidationError):
            NormalizedItem(id="x", title="X")


# ======================================================================
# PageResult
# ======================================================================


class TestPageResult:
    """Tests for the page envelope."""

    def test_defaults(self) -> None:
        page = PageResult()
        assert page.items == []
        assert page.page_info == PageInfo(has_next_page=False, end_cursor=None)
        assert page.meta == PageMeta()

    def test_facet_lookup(self) -> None:
        group = FacetGroup(taxonomy=CATEGORY, buckets=[FacetBucket(slug="news", name="News", count=3)])
        page = PageResult(facets=[group])
        assert page.facet(CATEGORY) is group
        assert page.facet("missing") is None
        assert group.count_for("news") == 3
        assert group.count_for("other") is None

    def test_dump_by_alias(self) -> None:
        page = PageResult(
            total=4,
            page_info=PageInfo(has_next_page=True, end_cursor="b2Zmc2V0OjI"),
            meta=PageMeta(overall_total=10, truncated=True, pools={"post": 10}),
        )
        data = page.model_dump(by_alias=True)
        assert data["pageInfo"] == {"hasNextPage": True, "endCursor": "b2Zmc2V0OjI"}
        assert data["meta"] == {"overallTotal": 10, "truncated": True, "pools": {"post": 10}}
