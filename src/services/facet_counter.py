"""Independent facet counts.

For each facet taxonomy ``T`` the counter evaluates the predicate with ``T``
omitted, so the counts shown for ``T`` answer "how many items would match
if I picked this value instead / as well", not "how many match my current
pick".  Other taxonomies' selections still apply.

Candidate values for ``T`` are:

- the seeded vocabulary for ``T`` (e.g. every bucket label), in its order,
- values observed on items that match with ``T`` omitted,
- values currently selected for ``T`` even when nothing carries them (count 0).

Vocabulary entries come first; the rest follow sorted by display name.
"""

from __future__ import annotations

from typing import Iterable, Mapping, Sequence

from src.models.content import TermRef
from src.models.query import FacetBucket, FacetGroup
from src.services.filter_predicate import FilterPredicate, Matchable


def count_facet(
    items: Sequence[Matchable],
    predicate: FilterPredicate,
    taxonomy: str,
    vocabulary: Iterable[TermRef] = (),
) -> FacetGroup:
    counts: dict[str, int] = {}
    names: dict[str, str] = {}

    seeded = list(vocabulary)
    for term in seeded:
        counts.setdefault(term.slug, 0)
        names.setdefault(term.slug, term.name)

    for item in items:
        if not predicate.matches(item, omit=taxonomy):
            continue
        for term in item.terms(taxonomy):
            counts[term.slug] = counts.get(term.slug, 0) + 1
            names.setdefault(term.slug, term.name or term.slug)

    for slug in predicate.query.selection(taxonomy):
        counts.setdefault(slug, 0)
        names.setdefault(slug, slug)

    seeded_slugs = [term.slug for term in seeded]
    seen = set(seeded_slugs)
    rest = sorted(
        (slug for slug in counts if slug not in seen),
        key=lambda slug: (names[slug].lower(), slug),
    )
    ordered = list(dict.fromkeys(seeded_slugs)) + rest

    return FacetGroup(
        taxonomy=taxonomy,
        buckets=[FacetBucket(slug=slug, name=names[slug], count=counts[slug]) for slug in ordered],
    )


def count_facets(
    items: Sequence[Matchable],
    predicate: FilterPredicate,
    taxonomies: Iterable[str],
    vocabularies: Mapping[str, Iterable[TermRef]] | None = None,
) -> list[FacetGroup]:
    """Return one FacetGroup per taxonomy, in the order given."""
    vocabularies = vocabularies or {}
    return [
        count_facet(items, predicate, taxonomy, vocabularies.get(taxonomy, ()))
        for taxonomy in taxonomies
    ]


def omit_counts(
    items: Sequence[Matchable],
    predicate: FilterPredicate,
    taxonomy: str,
) -> dict[str, int]:
    """Slug -> count for one taxonomy, without names or ordering.

    Used by the client synchronizer to decide which toggles are reachable.
    """
    counts: dict[str, int] = {}
    for item in items:
        if predicate.matches(item, omit=taxonomy):
            for slug in item.tag_slugs(taxonomy):
                counts[slug] = counts.get(slug, 0) + 1
    return counts
