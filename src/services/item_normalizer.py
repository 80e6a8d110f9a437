"""Normalizers that turn raw CMS records into :class:`NormalizedItem`.

One function per pool.  Each takes a raw GraphQL node dict and returns a
``NormalizedItem`` or ``None`` when the record is unusable:

- a video record whose URL yields no YouTube id (it can't be played or
  deep-linked),
- a record with no natural key (no slug and no node id).

Dropping is routine data hygiene, logged at debug level only.  Rich-text
fields are stripped of markup before they become searchable text.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Iterable

import structlog

from src.models.content import (
    BUCKET,
    CATEGORY,
    MATERIAL_TYPE,
    ROOF_COLOR,
    SERVICE_AREA,
    NormalizedItem,
    TermRef,
    VideoMedia,
)
from src.services.bucket_classifier import ROOFING_PROJECT, bucket_term, classify_bucket
from src.utils.text_normalizer import extract_youtube_id, slugify, strip_html

logger = structlog.get_logger(logger_name=__name__)

_THUMBNAIL_URL = "https://i.ytimg.com/vi/{id}/hqdefault.jpg"


# ------------------------------------------------------------------
# Field helpers
# ------------------------------------------------------------------


def parse_published_at(value: Any) -> datetime | None:
    """Parse an ISO-8601 timestamp; naive values are taken as UTC.

    Returns ``None`` for missing or unparseable input.
    """
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str) and value.strip():
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
    else:
        return None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def map_terms(nodes: Iterable[Any] | None) -> tuple[TermRef, ...]:
    """Map ``{name, slug}`` nodes to de-duplicated, lowercase-slug terms."""
    terms: list[TermRef] = []
    seen: set[str] = set()
    for node in nodes or ():
        if not isinstance(node, dict):
            continue
        name = str(node.get("name") or "").strip()
        slug = str(node.get("slug") or "").strip().lower() or slugify(name)
        if not slug or slug in seen:
            continue
        seen.add(slug)
        terms.append(TermRef(slug=slug, name=name or slug))
    return tuple(terms)


def _nodes(record: dict[str, Any], *path: str) -> list[Any]:
    current: Any = record
    for key in path:
        if not isinstance(current, dict):
            return []
        current = current.get(key)
    if isinstance(current, dict):
        current = current.get("nodes")
    return current if isinstance(current, list) else []


def _text(value: Any) -> str:
    return strip_html(value) if isinstance(value, str) else ""


def _video_media(url: Any) -> VideoMedia | None:
    if not isinstance(url, str):
        return None
    youtube_id = extract_youtube_id(url)
    if youtube_id is None:
        return None
    return VideoMedia(
        youtube_url=url.strip(),
        youtube_id=youtube_id,
        thumbnail_url=_THUMBNAIL_URL.format(id=youtube_id),
    )


def _drop(pool: str, reason: str, record: dict[str, Any]) -> None:
    logger.debug("record_dropped", pool=pool, reason=reason, slug=record.get("slug"))


# ------------------------------------------------------------------
# Per-pool normalizers
# ------------------------------------------------------------------


def normalize_video_entry(record: dict[str, Any]) -> NormalizedItem | None:
    """Video library entry: bucket inferred from its video categories."""
    key = str(record.get("slug") or record.get("id") or "").strip()
    if not key:
        _drop("video_entry", "missing_key", record)
        return None

    metadata = record.get("videoLibraryMetadata") or {}
    media = _video_media(metadata.get("youtubeUrl"))
    if media is None:
        _drop("video_entry", "no_youtube_id", record)
        return None

    categories = map_terms(_nodes(record, "videoCategories"))
    return NormalizedItem(
        id=f"video-{key}",
        title=_text(record.get("title")),
        published_at=parse_published_at(record.get("date")),
        source_pool="video_entry",
        slug=key,
        excerpt_text=_text(metadata.get("description")),
        tags={
            BUCKET: (bucket_term(classify_bucket(categories)),),
            CATEGORY: categories,
        },
        media=media,
    )


def normalize_project_video(record: dict[str, Any]) -> NormalizedItem | None:
    """Project carrying a YouTube URL: always in the roofing-project bucket."""
    key = str(record.get("slug") or "").strip()
    if not key:
        _drop("project_video", "missing_key", record)
        return None

    media = _video_media((record.get("projectVideoInfo") or {}).get("youtubeUrl"))
    if media is None:
        _drop("project_video", "no_youtube_id", record)
        return None

    return NormalizedItem(
        id=f"project-{key}",
        title=_text(record.get("title")),
        published_at=parse_published_at(record.get("date")),
        source_pool="project_video",
        slug=key,
        uri=record.get("uri"),
        excerpt_text=_text((record.get("projectDetails") or {}).get("projectDescription")),
        tags={
            BUCKET: (bucket_term(classify_bucket((), fixed_bucket=ROOFING_PROJECT)),),
            MATERIAL_TYPE: map_terms(_nodes(record, "projectFilters", "materialType")),
            SERVICE_AREA: map_terms(_nodes(record, "projectFilters", "serviceArea")),
        },
        media=media,
    )


def normalize_post(record: dict[str, Any]) -> NormalizedItem | None:
    key = str(record.get("slug") or "").strip()
    if not key:
        _drop("post", "missing_key", record)
        return None

    return NormalizedItem(
        id=f"post-{key}",
        title=_text(record.get("title")),
        published_at=parse_published_at(record.get("date")),
        source_pool="post",
        slug=key,
        uri=record.get("uri"),
        excerpt_text=_text(record.get("excerpt")),
        body_text=_text(record.get("content")),
        tags={CATEGORY: map_terms(_nodes(record, "categories"))},
    )


def normalize_project(record: dict[str, Any]) -> NormalizedItem | None:
    key = str(record.get("slug") or "").strip()
    if not key:
        _drop("project", "missing_key", record)
        return None

    filters = record.get("projectFilters") or {}
    return NormalizedItem(
        id=f"project-{key}",
        title=_text(record.get("title")),
        published_at=parse_published_at(record.get("date")),
        source_pool="project",
        slug=key,
        uri=record.get("uri"),
        excerpt_text=_text((record.get("projectDetails") or {}).get("projectDescription")),
        tags={
            MATERIAL_TYPE: map_terms(_nodes(filters, "materialType")),
            ROOF_COLOR: map_terms(_nodes(filters, "roofColor")),
            SERVICE_AREA: map_terms(_nodes(filters, "serviceArea")),
        },
    )
