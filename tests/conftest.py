"""Shared pytest fixtures for the discovery engine test suite."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any

import pytest

from src.interfaces.content_pool_provider import IContentPoolProvider
from src.models.content import NormalizedItem, TermRef
from src.utils.errors import ContentFetchError

# ---------------------------------------------------------------------------
# Fake providers
# ---------------------------------------------------------------------------


class FakePoolProvider(IContentPoolProvider):
    """Serves raw records from dicts and records every fetch."""

    def __init__(
        self,
        pools: dict[str, list[dict[str, Any]]] | None = None,
        failures: dict[str, Exception] | None = None,
    ) -> None:
        self.pools = pools or {}
        self.failures = failures or {}
        self.calls: list[tuple[str, int]] = []

    async def fetch_pool(self, pool: str, limit: int) -> list[dict[str, Any]]:
        self.calls.append((pool, limit))
        if pool in self.failures:
            raise self.failures[pool]
        if pool not in self.pools and pool not in {"video_entry", "project_video", "post", "project"}:
            raise ContentFetchError(message=f"unknown pool {pool}", provider_name="fake")
        return [dict(record) for record in self.pools.get(pool, [])[:limit]]

    def get_provider_name(self) -> str:
        return "fake"

    def supported_pools(self) -> frozenset[str]:
        return frozenset(self.pools)

    def fetched(self) -> list[str]:
        return [pool for pool, _ in self.calls]


# ---------------------------------------------------------------------------
# Raw CMS records
# ---------------------------------------------------------------------------


def make_video_entry(
    slug: str,
    title: str,
    date: str | None,
    categories: list[tuple[str, str]],
    youtube_url: str = "https://www.youtube.com/watch?v=dQw4w9WgXcQ",
    description: str = "",
) -> dict[str, Any]:
    return {
        "id": f"cG9zdDo{slug}",
        "slug": slug,
        "title": title,
        "date": date,
        "videoCategories": {"nodes": [{"name": n, "slug": s} for n, s in categories]},
        "videoLibraryMetadata": {"youtubeUrl": youtube_url, "description": description},
    }


def make_project(
    slug: str,
    title: str,
    date: str | None,
    materials: list[tuple[str, str]] = (),
    areas: list[tuple[str, str]] = (),
    colors: list[tuple[str, str]] = (),
    description: str = "",
    youtube_url: str | None = None,
) -> dict[str, Any]:
    record: dict[str, Any] = {
        "slug": slug,
        "uri": f"/projects/{slug}/",
        "title": title,
        "date": date,
        "projectDetails": {"projectDescription": description},
        "projectFilters": {
            "materialType": {"nodes": [{"name": n, "slug": s} for n, s in materials]},
            "roofColor": {"nodes": [{"name": n, "slug": s} for n, s in colors]},
            "serviceArea": {"nodes": [{"name": n, "slug": s} for n, s in areas]},
        },
    }
    if youtube_url is not None:
        record["projectVideoInfo"] = {"youtubeUrl": youtube_url}
    return record


def make_post(
    slug: str,
    title: str,
    date: str | None,
    categories: list[tuple[str, str]] = (),
    excerpt: str = "",
    content: str = "",
) -> dict[str, Any]:
    return {
        "slug": slug,
        "uri": f"/blog/{slug}/",
        "title": title,
        "date": date,
        "excerpt": excerpt,
        "content": content,
        "categories": {"nodes": [{"name": n, "slug": s} for n, s in categories]},
    }


def make_item(
    item_id: str,
    published_at: datetime | None,
    tags: dict[str, list[tuple[str, str]]] | None = None,
    title: str = "",
    body_text: str = "",
) -> NormalizedItem:
    return NormalizedItem(
        id=item_id,
        title=title or item_id,
        published_at=published_at,
        source_pool="test",
        slug=item_id,
        body_text=body_text,
        tags={
            taxonomy: tuple(TermRef(slug=s, name=n) for n, s in terms)
            for taxonomy, terms in (tags or {}).items()
        },
    )


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def project_root() -> Path:
    """Return the project root directory."""
    return Path(__file__).parent.parent


@pytest.fixture
def video_pools() -> dict[str, list[dict[str, Any]]]:
    """Two library videos, one project video, and one unplayable entry.

    The library videos are tagged "Awards" and "How-To" (slug ``explainer``);
    the project video is metal work in Sarasota with a youtu.be URL.
    """
    return {
        "video_entry": [
            make_video_entry(
                "best-of-2024",
                "Best of the Gulf Coast 2024",
                "2024-05-01T10:00:00",
                [("Awards", "awards")],
                youtube_url="https://www.youtube.com/watch?v=AAAAAAAAAAA",
            ),
            make_video_entry(
                "flashing-101",
                "Flashing 101",
                "2024-04-01T10:00:00",
                [("How-To", "explainer")],
                youtube_url="https://www.youtube.com/embed/BBBBBBBBBBB",
            ),
            make_video_entry(
                "broken-link",
                "Missing Video",
                "2024-06-01T10:00:00",
                [("Awards", "awards")],
                youtube_url="not a url",
            ),
        ],
        "project_video": [
            make_project(
                "metal-reroof-sarasota",
                "Metal Re-Roof in Sarasota",
                "2024-03-01T09:00:00",
                materials=[("Metal", "metal")],
                areas=[("Sarasota", "sarasota")],
                description="<p>Standing seam <strong>metal</strong> over a 1970s ranch.</p>",
                youtube_url="https://youtu.be/CCCCCCCCCCC",
            ),
        ],
    }


@pytest.fixture
def video_provider(video_pools) -> FakePoolProvider:
    return FakePoolProvider(video_pools)


@pytest.fixture
def blog_posts() -> list[dict[str, Any]]:
    """Thirty posts, one per day, some sharing a timestamp, one undated."""
    base = datetime(2024, 1, 31, 12, 0, tzinfo=timezone.utc)
    posts = []
    for i in range(29):
        # Pairs of posts share a timestamp so the id tie-break is exercised.
        published = base - timedelta(days=i // 2)
        category = ("Roof Repair", "roof-repair") if i % 3 == 0 else ("Insurance", "insurance")
        posts.append(
            make_post(
                f"post-{i:02d}",
                f"Post number {i}",
                published.isoformat(),
                categories=[category],
                excerpt=f"<p>Excerpt {i}</p>",
            )
        )
    posts.append(make_post("undated", "Undated post", None, categories=[("Insurance", "insurance")]))
    return posts


@pytest.fixture
def blog_provider(blog_posts) -> FakePoolProvider:
    return FakePoolProvider({"post": blog_posts})


@pytest.fixture
def project_pool() -> list[dict[str, Any]]:
    return [
        make_project(
            "siesta-key-tile",
            "Siesta Key Tile Roof",
            "2024-02-10T00:00:00Z",
            materials=[("Tile", "tile")],
            areas=[("Sarasota", "sarasota")],
            colors=[("Terracotta", "terracotta")],
        ),
        make_project(
            "venice-metal",
            "Venice Metal Roof",
            "2024-02-01T00:00:00Z",
            materials=[("Metal", "metal")],
            areas=[("Venice", "venice")],
            colors=[("Galvalume", "galvalume")],
        ),
        make_project(
            "bradenton-shingle",
            "Bradenton Shingle Replacement",
            "2024-01-15T00:00:00Z",
            materials=[("Shingle", "shingle")],
            areas=[("Bradenton", "bradenton")],
            colors=[("Charcoal", "charcoal")],
            description="Architectural shingles rated for 130 mph winds.",
        ),
    ]
