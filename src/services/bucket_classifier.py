"""Bucket classification for normalized items.

A "bucket" is a coarse, view-layer category (commercials, explainers,
roofing projects, ...).  It is not a CMS taxonomy: the CMS only carries
free-form video categories, so buckets are inferred here.

Two paths:
    - Pool-driven: a pool with a fixed bucket (project videos) always lands
      in that bucket.
    - Tag-driven: the item's own category terms are matched, slug and name,
      case-insensitively, against curated alias sets in priority order.
      Nothing matches -> ``other``.
"""

from __future__ import annotations

from typing import Iterable

from src.models.content import TermRef
from src.utils.text_normalizer import slugify

COMMERCIALS = "commercials"
EXPLAINERS = "explainers"
ROOFING_PROJECT = "roofing-project"
ACCOLADES = "accolades"
OTHER = "other"

# Insertion order is the seeded vocabulary order of the bucket facet.
BUCKET_LABELS: dict[str, str] = {
    COMMERCIALS: "Commercials",
    EXPLAINERS: "Explainers",
    ROOFING_PROJECT: "Roofing Projects",
    ACCOLADES: "Accolades",
    OTHER: "Other",
}

# Checked in this order; the first alias set that matches wins.
BUCKET_ALIASES: tuple[tuple[str, frozenset[str]], ...] = (
    (COMMERCIALS, frozenset({"commercial", "commercials", "tv", "ad", "ads"})),
    (ACCOLADES, frozenset({"accolade", "accolades", "awards", "press"})),
    (
        EXPLAINERS,
        frozenset({"explainer", "explainers", "how-to", "tips", "education", "educational"}),
    ),
)


def _term_keys(term: TermRef) -> set[str]:
    keys = {term.slug.strip().lower(), term.name.strip().lower(), slugify(term.name)}
    keys.discard("")
    return keys


def classify_bucket(terms: Iterable[TermRef], fixed_bucket: str | None = None) -> str:
    """Return the bucket slug for an item.

    Args:
        terms: The item's category terms (ignored when *fixed_bucket* is set).
        fixed_bucket: Bucket imposed by the source pool, if any.

    Returns:
        One of the keys of :data:`BUCKET_LABELS`.
    """
    if fixed_bucket:
        return fixed_bucket

    keys: set[str] = set()
    for term in terms:
        keys |= _term_keys(term)

    for bucket, aliases in BUCKET_ALIASES:
        if keys & aliases:
            return bucket
    return OTHER


def bucket_term(slug: str) -> TermRef:
    return TermRef(slug=slug, name=BUCKET_LABELS.get(slug, slug.replace("-", " ").title()))


def bucket_vocabulary() -> tuple[TermRef, ...]:
    return tuple(TermRef(slug=slug, name=name) for slug, name in BUCKET_LABELS.items())
