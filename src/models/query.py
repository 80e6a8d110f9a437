"""Filter query and page result models.

A ``FilterQuery`` is the shared filter shape used by the server aggregator
and the client synchronizer: free text plus a set of selected tag slugs per
taxonomy.  Construction normalizes selections (lowercase, stripped, empty
sets dropped) so every consumer compares like with like.
"""

from __future__ import annotations

from typing import Any, Iterable, Mapping

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from src.models.content import NormalizedItem
from src.utils.text_normalizer import normalize_search_text

DEFAULT_MIN_QUERY_LENGTH = 2


class FilterQuery(BaseModel):
    """Free text plus per-taxonomy slug selections."""

    model_config = ConfigDict(frozen=True)

    text: str = Field(default="", description="Raw free-text query.")
    selected: dict[str, frozenset[str]] = Field(
        default_factory=dict, description="Taxonomy key -> selected tag slugs."
    )

    @field_validator("text", mode="before")
    @classmethod
    def _coerce_text(cls, value: Any) -> str:
        return "" if value is None else str(value)

    @field_validator("selected", mode="before")
    @classmethod
    def _normalize_selected(cls, value: Any) -> dict[str, frozenset[str]]:
        if not value:
            return {}
        cleaned: dict[str, frozenset[str]] = {}
        for taxonomy, slugs in dict(value).items():
            if isinstance(slugs, str):
                slugs = slugs.split(",")
            normalized = frozenset(
                s.strip().lower() for s in slugs if isinstance(s, str) and s.strip()
            )
            if normalized:
                cleaned[str(taxonomy)] = normalized
        return cleaned

    @classmethod
    def build(
        cls,
        text: str = "",
        selected: Mapping[str, Iterable[str]] | None = None,
    ) -> FilterQuery:
        return cls(text=text, selected=dict(selected or {}))

    def selection(self, taxonomy: str) -> frozenset[str]:
        return self.selected.get(taxonomy, frozenset())

    def has_selection(self, taxonomy: str | None = None) -> bool:
        if taxonomy is None:
            return bool(self.selected)
        return bool(self.selected.get(taxonomy))

    def search_phrase(self, min_length: int = DEFAULT_MIN_QUERY_LENGTH) -> str:
        """Return the normalized phrase, or "" when it is below ``min_length``."""
        phrase = normalize_search_text(self.text)
        return phrase if len(phrase) >= min_length else ""

    def with_selection(self, taxonomy: str, slugs: Iterable[str]) -> FilterQuery:
        selected = {k: v for k, v in self.selected.items() if k != taxonomy}
        selected[taxonomy] = frozenset(slugs)
        return FilterQuery(text=self.text, selected=selected)

    def with_text(self, text: str) -> FilterQuery:
        return FilterQuery(text=text, selected=dict(self.selected))


class _CamelModel(BaseModel):
    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)


class FacetBucket(_CamelModel):
    """One facet value and the number of items it would match."""

    slug: str
    name: str
    count: int = 0


class FacetGroup(_CamelModel):
    """Facet values for one taxonomy, counted with that taxonomy omitted."""

    taxonomy: str
    buckets: list[FacetBucket] = Field(default_factory=list)

    def count_for(self, slug: str) -> int | None:
        for bucket in self.buckets:
            if bucket.slug == slug:
                return bucket.count
        return None


class PageInfo(_CamelModel):
    has_next_page: bool = False
    end_cursor: str | None = None


class PageMeta(_CamelModel):
    """Diagnostics that are not part of the page itself."""

    overall_total: int = Field(
        default=0, description="Items in the merged collection before filtering."
    )
    truncated: bool = Field(
        default=False,
        description="A pool hit the fetch ceiling, so deeper results may be missing.",
    )
    pools: dict[str, int] = Field(
        default_factory=dict, description="Pool name -> records fetched."
    )


class PageResult(_CamelModel):
    """One page of filtered items plus independent facet counts."""

    items: list[NormalizedItem] = Field(default_factory=list)
    page_info: PageInfo = Field(default_factory=PageInfo)
    total: int = Field(default=0, description="Filtered count before slicing.")
    facets: list[FacetGroup] = Field(default_factory=list)
    meta: PageMeta = Field(default_factory=PageMeta)

    def facet(self, taxonomy: str) -> FacetGroup | None:
        for group in self.facets:
            if group.taxonomy == taxonomy:
                return group
        return None
