"""Pydantic v2 models for normalized content items.

All models use frozen config (immutable): a ``NormalizedItem`` is produced
once per aggregation request and discarded with the response.  JSON output
uses camelCase aliases (``publishedAt``, ``sourcePool``) because page
rendering code consumes that shape.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

# Taxonomy keys.  "bucket" is a view-layer dimension derived at normalization
# time; the others mirror CMS taxonomies.
BUCKET = "bucket"
CATEGORY = "category"
MATERIAL_TYPE = "material_type"
ROOF_COLOR = "roof_color"
SERVICE_AREA = "service_area"

TAXONOMY_LABELS: dict[str, str] = {
    BUCKET: "Type",
    CATEGORY: "Category",
    MATERIAL_TYPE: "Material",
    ROOF_COLOR: "Roof Color",
    SERVICE_AREA: "Service Area",
}


class TermRef(BaseModel):
    """One taxonomy value attached to an item."""

    model_config = ConfigDict(frozen=True)

    slug: str = Field(description="Lowercase tag slug, unique within its taxonomy.")
    name: str = Field(description="Display name as entered in the CMS.")


class VideoMedia(BaseModel):
    """Playable video data for video-bearing pools."""

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    youtube_url: str = Field(description="Original share/watch URL.")
    youtube_id: str = Field(description="Platform id parsed from the URL.")
    thumbnail_url: str | None = Field(default=None, description="Poster image URL.")


class NormalizedItem(BaseModel):
    """A content record from any pool, reshaped into the common item form.

    ``id`` is ``"<pool prefix>-<natural key>"`` so two pools that happen to
    share a slug never collide in the merged collection.
    """

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    id: str = Field(description="Identity, unique across all pools.")
    title: str = Field(description="Display title (markup stripped).")
    published_at: datetime | None = Field(
        default=None, description="Publish timestamp (UTC); None sorts last."
    )
    source_pool: str = Field(description="Name of the pool the record came from.")
    slug: str = Field(default="", description="Natural key within the source pool.")
    uri: str | None = Field(default=None, description="Site-relative URI, if any.")
    excerpt_text: str = Field(default="", description="Excerpt with markup stripped.")
    body_text: str = Field(default="", description="Body text with markup stripped.")
    tags: dict[str, tuple[TermRef, ...]] = Field(
        default_factory=dict, description="Taxonomy key -> attached terms."
    )
    media: VideoMedia | None = Field(default=None, description="Video data, if any.")

    # -- Matchable ---------------------------------------------------------

    @property
    def identity(self) -> str:
        return self.id

    def tag_slugs(self, taxonomy: str) -> frozenset[str]:
        return frozenset(term.slug for term in self.tags.get(taxonomy, ()))

    def terms(self, taxonomy: str) -> tuple[TermRef, ...]:
        return self.tags.get(taxonomy, ())

    def cheap_text(self) -> str:
        """Title plus every tag name and slug, space-joined (not normalized)."""
        parts = [self.title]
        for terms in self.tags.values():
            for term in terms:
                parts.append(term.name)
                parts.append(term.slug)
        return " ".join(parts)

    def body_source(self) -> str:
        return f"{self.excerpt_text} {self.body_text}".strip()
