"""The shared filter predicate.

``FilterPredicate.matches(item, omit=None)`` decides whether an item passes
a :class:`FilterQuery`:

1. Every selected taxonomy, except ``omit``, must intersect the item's tag
   slugs (OR within a taxonomy, AND across taxonomies).
2. If the query has a text phrase (normalized, at least the minimum
   length), it must be a substring of the item's cheap text (title and tag
   names/slugs) or, failing that, of its body text.

Body text is the expensive part.  It is normalized the first time an item is
evaluated and memoized in an :class:`ItemTextIndex`, keyed by identity, so
the per-taxonomy facet passes and repeated client passes never re-normalize
it.

The predicate works on anything shaped like :class:`Matchable`: the server's
``NormalizedItem`` and the client's ``SurfaceItem`` both qualify.
"""

from __future__ import annotations

from typing import Protocol

from src.models.content import TermRef
from src.models.query import DEFAULT_MIN_QUERY_LENGTH, FilterQuery
from src.utils.text_normalizer import NormalizedTextCache


class Matchable(Protocol):
    """Structural type accepted by the predicate and facet counter."""

    @property
    def identity(self) -> str: ...

    def tag_slugs(self, taxonomy: str) -> frozenset[str]: ...

    def terms(self, taxonomy: str) -> tuple[TermRef, ...]: ...

    def cheap_text(self) -> str: ...

    def body_source(self) -> str | None: ...


class ItemTextIndex:
    """Per-request (or per-mount) arena of normalized item text."""

    def __init__(self) -> None:
        self._cheap = NormalizedTextCache()
        self._body = NormalizedTextCache()

    def cheap_text(self, item: Matchable) -> str:
        return self._cheap.get(item.identity, item.cheap_text)

    def body_text(self, item: Matchable) -> str:
        return self._body.get(item.identity, item.body_source)

    def prewarm(self, item: Matchable) -> None:
        self.cheap_text(item)
        self.body_text(item)

    def has_body(self, identity: str) -> bool:
        return identity in self._body

    def forget(self, identity: str) -> None:
        """Drop memoized text for one item (its source text changed)."""
        self._cheap.discard(identity)
        self._body.discard(identity)


class FilterPredicate:
    """A FilterQuery bound to a text index, ready to test items.

    Parameters
    ----------
    query:
        The filter to apply.
    min_query_length:
        Phrases shorter than this (after normalization) disable the text
        filter.
    text_index:
        Shared arena for memoized text; a private one is created if omitted.
    """

    def __init__(
        self,
        query: FilterQuery,
        min_query_length: int = DEFAULT_MIN_QUERY_LENGTH,
        text_index: ItemTextIndex | None = None,
    ) -> None:
        self.query = query
        self.phrase = query.search_phrase(min_query_length)
        self.text_index = text_index if text_index is not None else ItemTextIndex()

    def matches_taxonomies(self, item: Matchable, omit: str | None = None) -> bool:
        for taxonomy, wanted in self.query.selected.items():
            if taxonomy == omit:
                continue
            if not (item.tag_slugs(taxonomy) & wanted):
                return False
        return True

    def matches_text(self, item: Matchable) -> bool:
        if not self.phrase:
            return True
        if self.phrase in self.text_index.cheap_text(item):
            return True
        return self.phrase in self.text_index.body_text(item)

    def matches(self, item: Matchable, omit: str | None = None) -> bool:
        # Taxonomy checks are set intersections; run them before any text work.
        return self.matches_taxonomies(item, omit) and self.matches_text(item)

    __call__ = matches


def matches(
    item: Matchable,
    query: FilterQuery,
    omit: str | None = None,
    min_query_length: int = DEFAULT_MIN_QUERY_LENGTH,
) -> bool:
    """One-shot predicate; prefer :class:`FilterPredicate` for many items."""
    return FilterPredicate(query, min_query_length).matches(item, omit)
