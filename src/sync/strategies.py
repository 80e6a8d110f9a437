"""Per-kind configuration for the filter synchronizer.

Every content kind (blog, project, video, faq) runs the same engine.  What
differs is captured here as data: which filter groups have toggles, which
URL parameters they use, whether items sit in named sections, whether
sections are disclosures with count badges, and which selection policy
applies.

The video kind carries the only selection policy, bucket exclusivity:

- ``roofing-project`` is the only bucket whose items carry material and
  service-area tags, so selecting either of those forces the bucket
  selection to exactly ``roofing-project``;
- selecting ``roofing-project`` drops any other bucket;
- selecting another bucket while ``roofing-project`` is selected removes
  it and clears material and service area;
- the material and service-area groups are only shown while
  ``roofing-project`` is selected.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Mapping

from src.interfaces.render_surface import ToggleControl
from src.models.content import BUCKET, CATEGORY, MATERIAL_TYPE, ROOF_COLOR, SERVICE_AREA
from src.services.bucket_classifier import ROOFING_PROJECT
from src.sync.url_state import UrlParamNames
from src.utils.errors import UnknownCollectionError

FAQ_TOPIC = "faq_topic"

Selection = dict[str, frozenset[str]]


def _clean(selection: Mapping[str, frozenset[str]]) -> Selection:
    return {group: frozenset(slugs) for group, slugs in selection.items() if slugs}


class BucketExclusivityPolicy:
    """Keeps one exclusive bucket and the groups that depend on it consistent.

    Parameters
    ----------
    bucket_group:
        Taxonomy key of the bucket group.
    exclusive_slug:
        The bucket that excludes all others and gates *dependent_groups*.
    dependent_groups:
        Groups whose values only exist on items of *exclusive_slug*.
    """

    def __init__(
        self,
        bucket_group: str = BUCKET,
        exclusive_slug: str = ROOFING_PROJECT,
        dependent_groups: tuple[str, ...] = (MATERIAL_TYPE, SERVICE_AREA),
    ) -> None:
        self.bucket_group = bucket_group
        self.exclusive_slug = exclusive_slug
        self.dependent_groups = dependent_groups

    def apply(
        self,
        previous: Mapping[str, frozenset[str]],
        proposed: Mapping[str, frozenset[str]],
        toggled: ToggleControl | None = None,
    ) -> Selection:
        """Return the selection after enforcing exclusivity.

        *toggled* is the toggle the user just clicked, or ``None`` when the
        selection came from the URL, a chip removal, or a clear action.
        """
        selection = _clean(proposed)
        buckets = set(selection.get(self.bucket_group, ()))
        dependents_selected = any(selection.get(g) for g in self.dependent_groups)

        if toggled is not None and toggled.group == self.bucket_group:
            turned_on = toggled.slug in buckets and toggled.slug not in previous.get(
                self.bucket_group, frozenset()
            )
            if turned_on and toggled.slug == self.exclusive_slug:
                buckets = {self.exclusive_slug}
            elif turned_on and self.exclusive_slug in buckets:
                buckets.discard(self.exclusive_slug)
        elif toggled is not None and toggled.group in self.dependent_groups:
            if dependents_selected:
                buckets = {self.exclusive_slug}
        elif dependents_selected or self.exclusive_slug in buckets:
            # URL or chip state: dependent values imply the exclusive bucket,
            # and the exclusive bucket never shares the selection.
            buckets = {self.exclusive_slug}

        if self.exclusive_slug not in buckets:
            for group in self.dependent_groups:
                selection.pop(group, None)

        if buckets:
            selection[self.bucket_group] = frozenset(buckets)
        else:
            selection.pop(self.bucket_group, None)
        return selection

    def visible_groups(self, selection: Mapping[str, frozenset[str]]) -> dict[str, bool]:
        shown = self.exclusive_slug in selection.get(self.bucket_group, frozenset())
        return {group: shown for group in self.dependent_groups}


@dataclass(frozen=True)
class KindConfig:
    """Everything that distinguishes one content kind's filtering.

    Attributes:
        kind: Kind name, also the registry key.
        groups: Filter groups with toggles, in display order.
        url_params: Query parameter names.
        grouped: Items sit in named sections that hide when empty.
        section_taxonomy: A section whose key is not in this taxonomy's
            current selection is hidden outright.
        disclosure: Sections are disclosures with count badges; they open
            while a text query is active and close when empty.
        suggestions: Offer title suggestions when nothing matches.
        hash_prefix: A location hash ``#<prefix>...`` names an item to
            reveal on mount.
        policy: Selection policy applied after every selection change.
        disabled_message: Shown by the surface on a disabled toggle.
        prewarm_limit: Items whose body text is normalized eagerly.
    """

    kind: str
    groups: tuple[str, ...] = ()
    url_params: UrlParamNames = field(default_factory=UrlParamNames)
    grouped: bool = False
    section_taxonomy: str | None = None
    disclosure: bool = False
    suggestions: bool = False
    hash_prefix: str | None = None
    policy: BucketExclusivityPolicy | None = None
    disabled_message: str = "No results match this combination yet."
    prewarm_limit: int = 6


BLOG = KindConfig(
    kind="blog",
    groups=(CATEGORY,),
    url_params=UrlParamNames(text="q", groups={CATEGORY: "cat"}),
    disabled_message="No posts match this combination yet.",
)

PROJECT = KindConfig(
    kind="project",
    groups=(MATERIAL_TYPE, ROOF_COLOR, SERVICE_AREA),
    url_params=UrlParamNames(
        text="q", groups={MATERIAL_TYPE: "mt", ROOF_COLOR: "rc", SERVICE_AREA: "sa"}
    ),
    disabled_message="No projects match this combination yet.",
)

VIDEO = KindConfig(
    kind="video",
    groups=(BUCKET, MATERIAL_TYPE, SERVICE_AREA),
    url_params=UrlParamNames(text="q", groups={BUCKET: "bk", MATERIAL_TYPE: "mt", SERVICE_AREA: "sa"}),
    grouped=True,
    section_taxonomy=BUCKET,
    policy=BucketExclusivityPolicy(),
    disabled_message="No videos match this combination yet.",
)

FAQ = KindConfig(
    kind="faq",
    url_params=UrlParamNames(text="q"),
    grouped=True,
    disclosure=True,
    suggestions=True,
    hash_prefix="faq-",
)

STRATEGIES: dict[str, KindConfig] = {cfg.kind: cfg for cfg in (BLOG, PROJECT, VIDEO, FAQ)}


def resolve_strategy(kind: str) -> KindConfig:
    config = STRATEGIES.get(kind)
    if config is None:
        raise UnknownCollectionError(message=f"No filter strategy for kind '{kind}'")
    return config
