"""Unit tests for ContentPoolAggregator."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from src.models.content import BUCKET, CATEGORY, MATERIAL_TYPE, SERVICE_AREA
from src.services.content_aggregator import ContentPoolAggregator
from src.services.paginator import PoolSizingPolicy, decode_cursor
from src.utils.errors import ContentFetchError, UnknownCollectionError
from tests.conftest import FakePoolProvider, make_post, make_project, make_video_entry


def _bucket_counts(result) -> list[tuple[str, int]]:
    return [(b.slug, b.count) for b in result.facet(BUCKET).buckets]


# ======================================================================
# Video collection scenario
# ======================================================================


class TestVideoScenario:
    """Merged video + project-video collection with independent facets."""

    @pytest.mark.asyncio
    async def test_unfiltered_page(self, video_provider) -> None:
        aggregator = ContentPoolAggregator(video_provider)
        result = await aggregator.aggregate("video")

        assert [i.id for i in result.items] == [
            "video-best-of-2024",
            "video-flashing-101",
            "project-metal-reroof-sarasota",
        ]
        assert result.total == 3
        assert result.meta.overall_total == 3
        assert result.meta.pools == {"video_entry": 3, "project_video": 1}
        assert result.meta.truncated is False
        assert result.page_info.has_next_page is False

    @pytest.mark.asyncio
    async def test_bucket_facet_is_seeded(self, video_provider) -> None:
        aggregator = ContentPoolAggregator(video_provider)
        result = await aggregator.aggregate("video")

        assert _bucket_counts(result) == [
            ("commercials", 0),
            ("explainers", 1),
            ("roofing-project", 1),
            ("accolades", 1),
            ("other", 0),
        ]
        assert result.facet(MATERIAL_TYPE).count_for("metal") == 1
        assert result.facet(SERVICE_AREA).count_for("sarasota") == 1

    @pytest.mark.asyncio
    async def test_bucket_selection_keeps_bucket_counts(self, video_provider) -> None:
        aggregator = ContentPoolAggregator(video_provider)
        result = await aggregator.aggregate("video", {"buckets": ["accolades"]})

        assert [i.id for i in result.items] == ["video-best-of-2024"]
        # counts for the bucket facet ignore the bucket selection
        assert _bucket_counts(result)[1:4] == [
            ("explainers", 1),
            ("roofing-project", 1),
            ("accolades", 1),
        ]
        # other facets honour it: no accolade carries a material
        assert result.facet(MATERIAL_TYPE).buckets == []

    @pytest.mark.asyncio
    async def test_material_selection_skips_video_entries(self, video_provider) -> None:
        aggregator = ContentPoolAggregator(video_provider)
        result = await aggregator.aggregate("video", {"materialTypeSlugs": "metal"})

        assert video_provider.fetched() == ["project_video"]
        assert [i.id for i in result.items] == ["project-metal-reroof-sarasota"]
        assert result.facet(BUCKET).count_for("roofing-project") == 1
        assert result.facet(BUCKET).count_for("accolades") == 0
        assert result.meta.pools == {"project_video": 1}

    @pytest.mark.asyncio
    async def test_category_filter(self, video_provider) -> None:
        aggregator = ContentPoolAggregator(video_provider)
        result = await aggregator.aggregate("video", {"category": "explainer"})
        assert [i.id for i in result.items] == ["video-flashing-101"]
        assert [f.taxonomy for f in result.facets] == [BUCKET, MATERIAL_TYPE, SERVICE_AREA]

    @pytest.mark.asyncio
    async def test_text_matches_stripped_description(self, video_provider) -> None:
        aggregator = ContentPoolAggregator(video_provider)
        result = await aggregator.aggregate("video", {"q": "standing seam"})
        assert [i.id for i in result.items] == ["project-metal-reroof-sarasota"]
        assert result.facet(BUCKET).count_for("accolades") == 0

    @pytest.mark.asyncio
    async def test_text_matches_video_entry_description(self) -> None:
        provider = FakePoolProvider(
            {
                "video_entry": [
                    make_video_entry(
                        "ridge-vents",
                        "Ridge Vents",
                        "2024-02-01T10:00:00",
                        [("How-To", "explainer")],
                        description="<p>Entry description for attic airflow.</p>",
                    )
                ],
                "project_video": [],
            }
        )
        result = await ContentPoolAggregator(provider).aggregate("video", {"q": "entry description"})
        assert [i.id for i in result.items] == ["video-ridge-vents"]

    @pytest.mark.asyncio
    async def test_short_text_is_ignored(self, video_provider) -> None:
        aggregator = ContentPoolAggregator(video_provider)
        result = await aggregator.aggregate("video", {"q": "x"})
        assert result.total == 3

    @pytest.mark.asyncio
    async def test_idempotent(self, video_provider) -> None:
        aggregator = ContentPoolAggregator(video_provider)
        first = await aggregator.aggregate("video", {"bk": "explainers,accolades"}, first=1)
        second = await aggregator.aggregate("video", {"bk": "explainers,accolades"}, first=1)
        assert first == second


# ======================================================================
# Failure handling
# ======================================================================


class TestAggregatorErrors:
    """Errors propagate; nothing is silently emptied."""

    @pytest.mark.asyncio
    async def test_unknown_kind(self, video_provider) -> None:
        aggregator = ContentPoolAggregator(video_provider)
        with pytest.raises(UnknownCollectionError):
            await aggregator.aggregate("podcast")
        assert video_provider.calls == []

    @pytest.mark.asyncio
    async def test_pool_failure_propagates(self, video_pools) -> None:
        provider = FakePoolProvider(
            video_pools,
            failures={"project_video": ContentFetchError(message="HTTP 502", provider_name="fake")},
        )
        aggregator = ContentPoolAggregator(provider)
        with pytest.raises(ContentFetchError, match="HTTP 502"):
            await aggregator.aggregate("video")

    @pytest.mark.asyncio
    async def test_failure_in_skipped_pool_is_not_reached(self, video_pools) -> None:
        provider = FakePoolProvider(
            video_pools,
            failures={"video_entry": ContentFetchError(message="down")},
        )
        aggregator = ContentPoolAggregator(provider)
        result = await aggregator.aggregate("video", {"sa": "sarasota"})
        assert result.total == 1


# ======================================================================
# CMS slugs with mixed case
# ======================================================================


class TestMixedCaseFacetScenario:
    """Capitalized CMS slugs and upper-case request slugs."""

    @pytest.fixture
    def provider(self) -> FakePoolProvider:
        return FakePoolProvider(
            {
                "video_entry": [
                    make_video_entry(
                        "gala", "Gala Night", "2024-05-01T10:00:00", [("Awards", "Awards")]
                    ),
                    make_video_entry(
                        "valleys", "Roof Valleys", "2024-04-01T10:00:00", [("Explainer", "Explainer")]
                    ),
                ],
                "project_video": [
                    make_project(
                        "siesta-key",
                        "Siesta Key Metal Roof",
                        "2024-03-01T10:00:00",
                        materials=[("Metal", "Metal")],
                        areas=[("Sarasota", "Sarasota")],
                        youtube_url="https://youtu.be/DDDDDDDDDDD",
                    )
                ],
            }
        )

    @pytest.mark.asyncio
    async def test_facets_for_upper_case_selection(self, provider) -> None:
        result = await ContentPoolAggregator(provider).aggregate(
            "video",
            {"materialTypeSlugs": ["METAL", "metal-roof"], "serviceAreaSlugs": ["SARASOTA"]},
        )

        bucket_slugs = [b.slug for b in result.facet(BUCKET).buckets]
        assert all(slug == slug.lower() for slug in bucket_slugs)
        assert "accolades" in bucket_slugs
        assert result.facet(MATERIAL_TYPE).count_for("metal") == 1
        assert result.facet(MATERIAL_TYPE).count_for("metal-roof") == 0
        assert result.facet(SERVICE_AREA).count_for("sarasota") == 1
        assert [i.id for i in result.items] == ["project-siesta-key"]

    @pytest.mark.asyncio
    async def test_library_buckets_from_capitalized_slugs(self, provider) -> None:
        result = await ContentPoolAggregator(provider).aggregate("video")
        assert result.facet(BUCKET).count_for("accolades") == 1
        assert result.facet(BUCKET).count_for("explainers") == 1
        assert result.facet(BUCKET).count_for("roofing-project") == 1


# ======================================================================
# Pagination and sizing
# ======================================================================


class TestAggregatorPaging:
    """Cursor walking, fetch sizing, truncation."""

    @pytest.mark.asyncio
    async def test_walk_returns_every_item_once_in_order(self, blog_provider) -> None:
        aggregator = ContentPoolAggregator(blog_provider)
        seen = []
        after = None
        while True:
            result = await aggregator.aggregate("blog", first=7, after=after)
            seen.extend(result.items)
            if not result.page_info.has_next_page:
                break
            after = result.page_info.end_cursor

        ids = [i.id for i in seen]
        assert len(ids) == 30
        assert len(set(ids)) == 30
        assert ids[-1] == "post-undated"
        dates = [i.published_at for i in seen if i.published_at is not None]
        assert dates == sorted(dates, reverse=True)

    @pytest.mark.asyncio
    async def test_facets_ignore_pagination(self, blog_provider) -> None:
        aggregator = ContentPoolAggregator(blog_provider)
        page_one = await aggregator.aggregate("blog", first=5)
        page_two = await aggregator.aggregate("blog", first=5, after=page_one.page_info.end_cursor)
        assert page_one.facets == page_two.facets
        assert page_one.facet(CATEGORY).count_for("roof-repair") == 10
        assert page_one.facet(CATEGORY).count_for("insurance") == 20

    @pytest.mark.asyncio
    async def test_fetch_size_escalates_with_offset(self, blog_provider) -> None:
        aggregator = ContentPoolAggregator(blog_provider)
        await aggregator.aggregate("blog", first=24)
        await aggregator.aggregate("blog", first=24, after="48")
        assert blog_provider.calls == [("post", 72), ("post", 120)]

    @pytest.mark.asyncio
    async def test_saturated_pool_marks_truncated(self, blog_provider) -> None:
        aggregator = ContentPoolAggregator(
            blog_provider, sizing=PoolSizingPolicy(min_batch=5, max_bound=10, multiplier=3)
        )
        result = await aggregator.aggregate("blog", first=5)
        assert result.meta.truncated is True
        assert result.meta.pools == {"post": 10}
        assert result.total == 10

    @staticmethod
    def _posts(count: int, rare_tail: int) -> list[dict]:
        """*count* posts newest first; only the oldest *rare_tail* are tagged rare."""
        base = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)
        return [
            make_post(
                f"bulk-{i:03d}",
                f"Bulk {i}",
                (base - timedelta(hours=i)).isoformat(),
                categories=[("Rare", "rare") if i >= count - rare_tail else ("News", "news")],
            )
            for i in range(count)
        ]

    @pytest.mark.asyncio
    async def test_narrow_filter_refetches_full_pool(self) -> None:
        provider = FakePoolProvider({"post": self._posts(150, 20)})

        result = await ContentPoolAggregator(provider).aggregate("blog", {"category": "rare"}, first=10)

        assert provider.calls == [("post", 60), ("post", 200)]
        assert result.total == 20
        assert len(result.items) == 10
        assert result.page_info.has_next_page is True
        assert result.meta.truncated is False
        assert result.meta.pools == {"post": 150}

    @pytest.mark.asyncio
    async def test_narrow_filter_beyond_bound_is_truncated(self) -> None:
        provider = FakePoolProvider({"post": self._posts(250, 20)})

        result = await ContentPoolAggregator(provider).aggregate("blog", {"category": "rare"}, first=10)

        assert provider.calls == [("post", 60), ("post", 200)]
        assert result.total == 0
        assert result.meta.truncated is True

    @pytest.mark.asyncio
    async def test_covered_page_does_not_refetch(self) -> None:
        provider = FakePoolProvider({"post": self._posts(150, 20)})

        result = await ContentPoolAggregator(provider).aggregate("blog", first=10)

        assert provider.calls == [("post", 60)]
        assert result.page_info.has_next_page is True
        assert result.meta.truncated is False

    @pytest.mark.asyncio
    async def test_page_size_is_clamped(self, blog_provider) -> None:
        aggregator = ContentPoolAggregator(blog_provider, max_page_size=8)
        result = await aggregator.aggregate("blog", first="500")
        assert len(result.items) == 8
        assert decode_cursor(result.page_info.end_cursor) == 8

    @pytest.mark.asyncio
    async def test_invalid_cursor_starts_at_zero(self, blog_provider) -> None:
        aggregator = ContentPoolAggregator(blog_provider)
        result = await aggregator.aggregate("blog", first=3, after="garbage!")
        assert result.items[0].id == "post-post-00"

    @pytest.mark.asyncio
    async def test_collect_follows_cursors(self, blog_provider) -> None:
        aggregator = ContentPoolAggregator(blog_provider, max_page_size=4)
        items = await aggregator.collect("blog", {"cat": "roof-repair"})
        assert len(items) == 10
        assert all(i.tag_slugs(CATEGORY) == frozenset({"roof-repair"}) for i in items)

    @pytest.mark.asyncio
    async def test_duplicate_identities_keep_first(self) -> None:
        provider = FakePoolProvider(
            {"post": [make_post("dup", "First", "2024-01-02"), make_post("dup", "Second", "2024-01-01")]}
        )
        result = await ContentPoolAggregator(provider).aggregate("blog")
        assert [i.title for i in result.items] == ["First"]
