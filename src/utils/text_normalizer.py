"""Text normalization utilities for search and content shaping.

This module handles four distinct concerns:

1. **Search normalization** -- lowercases, decomposes (NFKD) and strips
   combining marks so that "Café" and "cafe" compare equal, then collapses
   whitespace.  Both the server predicate and the client synchronizer match
   against text produced by :func:`normalize_search_text`.

2. **Markup stripping** -- CMS rich-text fields arrive as HTML.  Search
   matches the visible text, never raw markup, so :func:`strip_html` runs
   BeautifulSoup over the fragment and collapses whitespace.

3. **Identifiers** -- :func:`slugify` derives tag slugs when the CMS omits
   one, and :func:`extract_youtube_id` turns a share/watch/embed URL into
   the platform id (or ``None``, which drops the record upstream).

4. **Memoized body text** -- :class:`NormalizedTextCache` is an arena of
   ``identity -> normalized text`` entries filled lazily, so repeated
   predicate passes never re-normalize unchanged text.
"""

from __future__ import annotations

import re
import unicodedata
from typing import Callable
from urllib.parse import parse_qs, urlparse

from bs4 import BeautifulSoup

_WHITESPACE_RE = re.compile(r"\s+")
_SLUG_STRIP_RE = re.compile(r"[^a-z0-9]+")
_YOUTUBE_ID_RE = re.compile(r"^[A-Za-z0-9_-]+$")


def normalize_search_text(value: str | None) -> str:
    """Normalize text for substring search.

    Lowercases, applies NFKD decomposition, removes combining marks and
    collapses runs of whitespace into a single space.

    Args:
        value: Raw text; ``None`` is treated as empty.

    Returns:
        The normalized string (possibly empty).
    """
    if not value:
        return ""
    decomposed = unicodedata.normalize("NFKD", value.lower())
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return _WHITESPACE_RE.sub(" ", stripped).strip()


def collapse_whitespace(value: str | None) -> str:
    if not value:
        return ""
    return _WHITESPACE_RE.sub(" ", value).strip()


def strip_html(fragment: str | None) -> str:
    """Strip markup from a rich-text fragment and collapse whitespace.

    Entities are decoded by the parser (``&amp;`` becomes ``&``).
    """
    if not fragment:
        return ""
    if "<" not in fragment and "&" not in fragment:
        return collapse_whitespace(fragment)
    soup = BeautifulSoup(fragment, "html.parser")
    return collapse_whitespace(soup.get_text(separator=" "))


def slugify(value: str | None) -> str:
    """Derive a lowercase, hyphen-separated slug from a display name.

    >>> slugify("How-To Videos")
    'how-to-videos'
    """
    ascii_text = normalize_search_text(value)
    return _SLUG_STRIP_RE.sub("-", ascii_text).strip("-")


def extract_youtube_id(url: str | None) -> str | None:
    """Extract a YouTube video id from a share, watch or embed URL.

    Supported shapes:

    - ``https://youtu.be/<id>``
    - ``https://www.youtube.com/watch?v=<id>``
    - ``https://www.youtube.com/embed/<id>`` (also ``/shorts/`` and ``/v/``)
    - any URL whose path is a single segment of at least 8 characters

    Returns:
        The id, or ``None`` when the URL cannot be parsed into one.
    """
    if not url or not url.strip():
        return None
    try:
        parsed = urlparse(url.strip())
    except ValueError:
        return None
    if not parsed.netloc:
        return None

    host = parsed.netloc.lower()
    parts = [p for p in parsed.path.split("/") if p]

    candidate: str | None = None
    if host.endswith("youtu.be"):
        candidate = parts[0] if parts else None
    else:
        v_values = parse_qs(parsed.query).get("v")
        if v_values:
            candidate = v_values[0]
        elif len(parts) >= 2 and parts[0] in ("embed", "shorts", "v"):
            candidate = parts[1]
        elif len(parts) == 1 and len(parts[0]) >= 8:
            candidate = parts[0]

    if candidate and _YOUTUBE_ID_RE.match(candidate):
        return candidate
    return None


class NormalizedTextCache:
    """Arena of lazily computed, normalized body text keyed by item identity.

    One instance lives for one aggregation request (server) or one
    mount/unmount cycle (client).  ``loader`` is only called the first time
    an identity is seen.  A blank identity is never memoized.
    """

    def __init__(self) -> None:
        self._entries: dict[str, str] = {}

    def get(self, identity: str, loader: Callable[[], str | None]) -> str:
        if not identity:
            return normalize_search_text(loader())
        cached = self._entries.get(identity)
        if cached is not None:
            return cached
        value = normalize_search_text(loader())
        self._entries[identity] = value
        return value

    def prewarm(self, identity: str, loader: Callable[[], str | None]) -> None:
        self.get(identity, loader)

    def __contains__(self, identity: object) -> bool:
        return identity in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def clear(self) -> None:
        self._entries.clear()

    def discard(self, identity: str) -> None:
        self._entries.pop(identity, None)
