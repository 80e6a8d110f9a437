"""Abstract base class for the render surface the filter synchronizer drives.

A render surface is whatever already holds the rendered content: a browser
document, a server-side preview, or the in-memory surface used in tests.
The synchronizer never creates or destroys item nodes.  It reads items and
toggles from the surface, tells it which items and sections to show, and
subscribes to user input and externally appended items through callbacks.

Every ``on_*`` subscription returns an unsubscribe callable; the
synchronizer calls all of them on unmount.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Callable, Mapping

from src.models.content import TermRef
from src.utils.text_normalizer import collapse_whitespace

Unsubscribe = Callable[[], None]
Cancel = Callable[[], None]


@dataclass(frozen=True)
class ToggleControl:
    """A facet toggle ("pill") for one value of one filter group."""

    group: str
    slug: str
    label: str = ""


@dataclass(frozen=True)
class Chip:
    """A removable affordance for one current selection."""

    group: str
    slug: str
    label: str


@dataclass(frozen=True)
class Suggestion:
    title: str
    href: str


@dataclass
class SurfaceItem:
    """One rendered item, read from its data attributes.

    Attributes:
        identity: Stable id (``data-id`` or the element id).
        title: Display title.
        tags: Taxonomy key -> tag slugs.
        section: Key of the section holding this item (grouped kinds only).
        section_title: Display name of that section; searched like a tag.
        slug: Natural key, used to build links (FAQ suggestions).
        inline_text: Body text carried inline, if any.
        body_loader: Reads the fuller body text lazily (a template element
            in a browser).  Only called once per item per mount.
    """

    identity: str
    title: str = ""
    tags: dict[str, frozenset[str]] = field(default_factory=dict)
    section: str | None = None
    section_title: str = ""
    slug: str = ""
    inline_text: str | None = None
    body_loader: Callable[[], str | None] | None = None

    @classmethod
    def from_attributes(
        cls,
        attributes: Mapping[str, str],
        tag_attributes: Mapping[str, str],
        body_loader: Callable[[], str | None] | None = None,
        position: int | None = None,
    ) -> SurfaceItem:
        """Build an item from ``data-*`` attributes.

        ``tag_attributes`` maps taxonomy key -> attribute name; tag lists are
        pipe- or comma-joined.  Identity comes from ``data-id``, ``id`` or
        ``data-slug``, else from the node's document *position*.

        Raises:
            ValueError: the node has no identity attribute and no position.
        """
        identity = (
            attributes.get("data-id") or attributes.get("id") or attributes.get("data-slug") or ""
        ).strip()
        if not identity:
            if position is None:
                raise ValueError("item node has no identity attribute")
            identity = f"node-{position}"
        tags: dict[str, frozenset[str]] = {}
        for taxonomy, attribute in tag_attributes.items():
            raw = attributes.get(attribute, "")
            slugs = frozenset(
                part.strip().lower() for part in raw.replace("|", ",").split(",") if part.strip()
            )
            if slugs:
                tags[taxonomy] = slugs
        return cls(
            identity=identity,
            title=attributes.get("data-title", ""),
            tags=tags,
            section=attributes.get("data-section") or None,
            section_title=attributes.get("data-section-title", ""),
            slug=attributes.get("data-slug", ""),
            inline_text=attributes.get("data-excerpt"),
            body_loader=body_loader,
        )

    # -- Matchable ---------------------------------------------------------

    def tag_slugs(self, taxonomy: str) -> frozenset[str]:
        return self.tags.get(taxonomy, frozenset())

    def terms(self, taxonomy: str) -> tuple[TermRef, ...]:
        return tuple(TermRef(slug=slug, name=slug) for slug in sorted(self.tag_slugs(taxonomy)))

    def cheap_text(self) -> str:
        parts = [self.title, self.section_title]
        for slugs in self.tags.values():
            parts.extend(sorted(slugs))
        return " ".join(p for p in parts if p)

    def body_source(self) -> str | None:
        if self.inline_text:
            return collapse_whitespace(self.inline_text)
        if self.body_loader is not None:
            return collapse_whitespace(self.body_loader())
        return None


class IRenderSurface(ABC):
    """Contract between the filter synchronizer and rendered content."""

    # -- Reading -----------------------------------------------------------

    @abstractmethod
    def items(self) -> list[SurfaceItem]:
        """Return every item currently rendered, in document order."""

    @abstractmethod
    def sections(self) -> list[str]:
        """Return section keys in document order (empty for flat lists)."""

    @abstractmethod
    def toggles(self) -> list[ToggleControl]:
        """Return every facet toggle currently rendered."""

    @abstractmethod
    def get_search_text(self) -> str:
        """Return the text input's current value."""

    @abstractmethod
    def get_location_query(self) -> str:
        """Return the current URL query string, without the leading ``?``."""

    @abstractmethod
    def get_location_hash(self) -> str:
        """Return the current URL fragment, including the leading ``#``."""

    # -- Writing -----------------------------------------------------------

    @abstractmethod
    def set_item_visible(self, identity: str, visible: bool) -> None: ...

    @abstractmethod
    def set_section_visible(self, section: str, visible: bool) -> None: ...

    @abstractmethod
    def set_section_count(self, section: str, count: int) -> None:
        """Update a section's visible-item badge."""

    @abstractmethod
    def set_section_open(self, section: str, is_open: bool) -> None:
        """Expand or collapse a disclosure section."""

    @abstractmethod
    def set_toggle_state(self, toggle: ToggleControl, pressed: bool, disabled: bool) -> None: ...

    @abstractmethod
    def set_group_visible(self, group: str, visible: bool) -> None:
        """Show or hide a whole toggle group."""

    @abstractmethod
    def set_search_text(self, text: str) -> None: ...

    @abstractmethod
    def render_chips(self, chips: list[Chip]) -> None:
        """Replace the chip list; an empty list hides the chip area."""

    @abstractmethod
    def set_visible_count(self, count: int) -> None: ...

    @abstractmethod
    def set_no_results(self, visible: bool, query: str = "") -> None: ...

    @abstractmethod
    def set_suggestions(self, suggestions: list[Suggestion]) -> None: ...

    @abstractmethod
    def set_busy(self, busy: bool) -> None:
        """Toggle the container's loading/busy flag."""

    @abstractmethod
    def replace_location_query(self, query: str) -> None:
        """Replace the URL query string without adding a history entry."""

    @abstractmethod
    def reveal_item(self, identity: str) -> bool:
        """Scroll an item into view; False if it is not rendered."""

    # -- Scheduling --------------------------------------------------------

    @abstractmethod
    def schedule_idle(self, callback: Callable[[], None], timeout: float) -> Cancel:
        """Run *callback* when idle, or after *timeout* seconds at the latest."""

    @abstractmethod
    def schedule_frame(self, callback: Callable[[], None]) -> Cancel:
        """Run *callback* on the next render tick."""

    # -- Subscriptions -----------------------------------------------------

    @abstractmethod
    def on_text_input(self, callback: Callable[[str], None]) -> Unsubscribe: ...

    @abstractmethod
    def on_toggle(self, callback: Callable[[ToggleControl], None]) -> Unsubscribe: ...

    @abstractmethod
    def on_clear(self, callback: Callable[[], None]) -> Unsubscribe: ...

    @abstractmethod
    def on_chip_remove(self, callback: Callable[[Chip], None]) -> Unsubscribe: ...

    @abstractmethod
    def on_items_appended(self, callback: Callable[[list[SurfaceItem]], None]) -> Unsubscribe:
        """Called with the new items each time the container grows."""
