"""Resource collections: which pools feed each kind and how it is filtered.

A collection ("video", "blog", "project") is the unit the API serves.  It
names its backing pools, the taxonomies a request may filter on, and the
taxonomies returned as facets.  Each pool declares the taxonomies its items
can carry, which is what lets the aggregator skip pools that could never
match a selection.

Request filters arrive as a loose mapping.  Several spellings are accepted
per taxonomy (``materialTypeSlugs``, ``material``, ``mt`` ...) because page
code and shared URLs use the short and long forms interchangeably; values
may be lists or comma-separated strings.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Mapping

from src.models.content import (
    BUCKET,
    CATEGORY,
    MATERIAL_TYPE,
    ROOF_COLOR,
    SERVICE_AREA,
    NormalizedItem,
    TermRef,
)
from src.models.query import FilterQuery
from src.services.bucket_classifier import bucket_vocabulary
from src.services.item_normalizer import (
    normalize_post,
    normalize_project,
    normalize_project_video,
    normalize_video_entry,
)
from src.utils.errors import UnknownCollectionError

Normalizer = Callable[[dict[str, Any]], "NormalizedItem | None"]

TEXT_ALIASES: tuple[str, ...] = ("q", "search", "text")

FILTER_ALIASES: dict[str, tuple[str, ...]] = {
    BUCKET: ("buckets", "bucket", "b", "bk"),
    CATEGORY: ("categorySlugs", "categories", "category", "cat"),
    MATERIAL_TYPE: ("materialTypeSlugs", "materialSlugs", "material_type", "material", "mt"),
    ROOF_COLOR: ("roofColorSlugs", "roofColor", "roof_color", "rc"),
    SERVICE_AREA: ("serviceAreaSlugs", "serviceArea", "service_area", "sa"),
}


@dataclass(frozen=True)
class PoolSpec:
    """One backing content pool.

    Attributes:
        name: Pool name understood by the content provider.
        carries: Taxonomies this pool's items can hold.
        normalize: Raw record -> NormalizedItem (or None to drop it).
    """

    name: str
    carries: frozenset[str]
    normalize: Normalizer

    def can_match(self, query: FilterQuery) -> bool:
        """False when a selected taxonomy is one this pool never carries."""
        return all(taxonomy in self.carries for taxonomy in query.selected)


@dataclass(frozen=True)
class CollectionSpec:
    kind: str
    pools: tuple[PoolSpec, ...]
    filter_taxonomies: tuple[str, ...]
    facet_taxonomies: tuple[str, ...]
    vocabularies: Mapping[str, tuple[TermRef, ...]] = field(default_factory=dict)

    def relevant_pools(self, query: FilterQuery) -> tuple[PoolSpec, ...]:
        return tuple(pool for pool in self.pools if pool.can_match(query))


VIDEO_ENTRY_POOL = PoolSpec(
    name="video_entry",
    carries=frozenset({BUCKET, CATEGORY}),
    normalize=normalize_video_entry,
)
PROJECT_VIDEO_POOL = PoolSpec(
    name="project_video",
    carries=frozenset({BUCKET, MATERIAL_TYPE, SERVICE_AREA}),
    normalize=normalize_project_video,
)
POST_POOL = PoolSpec(
    name="post",
    carries=frozenset({CATEGORY}),
    normalize=normalize_post,
)
PROJECT_POOL = PoolSpec(
    name="project",
    carries=frozenset({MATERIAL_TYPE, ROOF_COLOR, SERVICE_AREA}),
    normalize=normalize_project,
)

COLLECTIONS: dict[str, CollectionSpec] = {
    "video": CollectionSpec(
        kind="video",
        pools=(VIDEO_ENTRY_POOL, PROJECT_VIDEO_POOL),
        filter_taxonomies=(BUCKET, CATEGORY, MATERIAL_TYPE, SERVICE_AREA),
        facet_taxonomies=(BUCKET, MATERIAL_TYPE, SERVICE_AREA),
        vocabularies={BUCKET: bucket_vocabulary()},
    ),
    "blog": CollectionSpec(
        kind="blog",
        pools=(POST_POOL,),
        filter_taxonomies=(CATEGORY,),
        facet_taxonomies=(CATEGORY,),
    ),
    "project": CollectionSpec(
        kind="project",
        pools=(PROJECT_POOL,),
        filter_taxonomies=(MATERIAL_TYPE, ROOF_COLOR, SERVICE_AREA),
        facet_taxonomies=(MATERIAL_TYPE, ROOF_COLOR, SERVICE_AREA),
    ),
}


def resolve_collection(kind: str) -> CollectionSpec:
    """Return the collection for *kind* or raise UnknownCollectionError."""
    collection = COLLECTIONS.get((kind or "").strip().lower())
    if collection is None:
        raise UnknownCollectionError(message=f"Unknown resource kind '{kind}'")
    return collection


def to_slug_list(value: Any) -> list[str]:
    """Coerce a list or comma-separated string into trimmed, non-empty strings."""
    if value is None:
        return []
    if isinstance(value, str):
        parts = value.split(",")
    elif isinstance(value, (list, tuple, set, frozenset)):
        parts = ["" if v is None else str(v) for v in value]
    else:
        return []
    return [p.strip() for p in parts if p and p.strip()]


def build_filter_query(filters: Mapping[str, Any] | None, collection: CollectionSpec) -> FilterQuery:
    """Build a FilterQuery from a request's loose filter mapping.

    Only taxonomies the collection filters on are read.  For each taxonomy
    the first alias present in *filters* wins.
    """
    filters = filters or {}

    text = ""
    for alias in TEXT_ALIASES:
        value = filters.get(alias)
        if isinstance(value, str):
            text = value
            break

    selected: dict[str, list[str]] = {}
    for taxonomy in collection.filter_taxonomies:
        for alias in FILTER_ALIASES.get(taxonomy, ()):
            if alias in filters:
                slugs = to_slug_list(filters[alias])
                if slugs:
                    selected[taxonomy] = slugs
                break

    return FilterQuery.build(text=text, selected=selected)
