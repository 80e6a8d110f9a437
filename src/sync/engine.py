"""Client filter synchronizer.

Mirrors the server's filtering model over content that is already rendered:
the same :class:`FilterPredicate` decides which items are visible, the same
omit-one-taxonomy counts decide which toggles are still reachable, and the
current filter is mirrored into the URL so a filtered view can be shared.

# ─── LIFECYCLE ────────────────────────────────────────────────────────
#
#   mount_resource_filters(kind, surface)
#       └─ surface.schedule_idle(...)          deferred, 1.2 s at the latest
#            └─ FilterSynchronizer.mount()
#                 1. parse URL state, apply the kind's selection policy
#                 2. reflect text input and project-only group visibility
#                 3. prewarm body text for the first few items
#                 4. subscribe to input / toggle / clear / chip / append
#                 5. run the first pass, open the #hash target (FAQ)
#
#   Each user action runs one synchronous pass.  Appends are coalesced by
#   CoalescingScheduler into one pass per frame.  unmount() detaches every
#   subscription and cancels pending work.
# ──────────────────────────────────────────────────────────────────────

All state (selection, text, the last URL written, the text arena) belongs
to one synchronizer instance and dies with it.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Callable, Mapping

from src.interfaces.render_surface import (
    Cancel,
    Chip,
    IRenderSurface,
    Suggestion,
    SurfaceItem,
    ToggleControl,
    Unsubscribe,
)
from src.models.query import DEFAULT_MIN_QUERY_LENGTH, FilterQuery
from src.services.facet_counter import omit_counts
from src.services.filter_predicate import FilterPredicate, ItemTextIndex
from src.sync.scheduler import CoalescingScheduler
from src.sync.strategies import KindConfig, resolve_strategy
from src.sync.url_state import UrlParamNames, parse_filter_state, serialize_filter_state
from src.utils.logging import get_logger
from src.utils.text_normalizer import normalize_search_text

_COUNT_SUFFIX_RE = re.compile(r"\s*\(\d+\)\s*$")
_SUGGESTION_LIMIT = 5
_SUGGESTION_MIN_TOKEN = 3

IDLE_TIMEOUT_SECONDS = 1.2


def toggle_label(toggle: ToggleControl) -> str:
    """Toggle label without a trailing ``(n)`` count."""
    return _COUNT_SUFFIX_RE.sub("", toggle.label or toggle.slug).strip() or toggle.slug


@dataclass(frozen=True)
class SyncState:
    """Snapshot published to listeners after every pass."""

    kind: str
    query: FilterQuery
    visible: int
    total: int
    visible_ids: tuple[str, ...] = ()
    no_results: bool = False
    section_counts: dict[str, int] = field(default_factory=dict)


class FilterSynchronizer:
    """Keeps a render surface's visibility in step with the current filter.

    Parameters
    ----------
    config:
        Per-kind strategy.
    surface:
        The rendered content to drive.
    min_query_length:
        Shorter text disables the text filter and the no-results panel.
    url_params:
        Parameter names; defaults to the strategy's.
    prewarm_limit:
        Overrides the strategy's eager-normalization bound.
    """

    def __init__(
        self,
        config: KindConfig,
        surface: IRenderSurface,
        min_query_length: int = DEFAULT_MIN_QUERY_LENGTH,
        url_params: UrlParamNames | None = None,
        prewarm_limit: int | None = None,
    ) -> None:
        self._config = config
        self._surface = surface
        self._min_query_length = min_query_length
        self._names = url_params or config.url_params
        self._prewarm_limit = config.prewarm_limit if prewarm_limit is None else prewarm_limit
        self._text = ""
        self._selected: dict[str, frozenset[str]] = {}
        self._last_written: str | None = None
        self._text_index = ItemTextIndex()
        self._subscriptions: list[Unsubscribe] = []
        self._scheduler = CoalescingScheduler(surface.schedule_frame, self.refresh)
        self._listeners: list[Callable[[SyncState], Any]] = []
        self._mounted = False
        self._passes = 0
        self._logger = get_logger(__name__).bind(kind=config.kind)

    # ------------------------------------------------------------------
    # Public state
    # ------------------------------------------------------------------

    @property
    def query(self) -> FilterQuery:
        return FilterQuery.build(text=self._text, selected=self._selected)

    @property
    def mounted(self) -> bool:
        return self._mounted

    @property
    def passes(self) -> int:
        return self._passes

    @property
    def text_index(self) -> ItemTextIndex:
        return self._text_index

    def register_listener(self, callback: Callable[[SyncState], Any]) -> None:
        if callback not in self._listeners:
            self._listeners.append(callback)

    def unregister_listener(self, callback: Callable[[SyncState], Any]) -> None:
        if callback in self._listeners:
            self._listeners.remove(callback)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def mount(self) -> Callable[[], None]:
        """Attach to the surface and run the first pass; returns ``unmount``."""
        if self._mounted:
            return self.unmount

        location = self._surface.get_location_query()
        initial = parse_filter_state(location, self._names)
        self._text = initial.text
        self._selected = self._apply_policy({}, self._restrict(initial.selected), None)
        self._last_written = serialize_filter_state(
            initial, self._names, self._min_query_length, location
        )

        self._surface.set_search_text(self._text)
        self._update_group_visibility()
        self._prewarm(self._surface.items()[: self._prewarm_limit])

        self._subscriptions = [
            self._surface.on_text_input(self.set_text),
            self._surface.on_toggle(self.toggle),
            self._surface.on_clear(self.clear),
            self._surface.on_chip_remove(self.remove_chip),
            self._surface.on_items_appended(self._on_items_appended),
        ]
        self._mounted = True

        try:
            self.refresh()
            self._open_hash_target()
        except Exception:
            self.unmount()
            raise
        self._logger.debug(
            "filters_mounted",
            text=self._text,
            selected={k: sorted(v) for k, v in self._selected.items()},
        )
        return self.unmount

    def unmount(self) -> None:
        for unsubscribe in self._subscriptions:
            unsubscribe()
        self._subscriptions = []
        self._scheduler.cancel()
        self._listeners.clear()
        if self._mounted:
            self._logger.debug("filters_unmounted", passes=self._passes)
        self._mounted = False

    # ------------------------------------------------------------------
    # User actions
    # ------------------------------------------------------------------

    def set_text(self, text: str) -> SyncState:
        self._text = text or ""
        return self.refresh()

    def toggle(self, control: ToggleControl) -> SyncState:
        if control.group not in self._config.groups:
            return self.refresh()
        previous = dict(self._selected)
        current = set(previous.get(control.group, frozenset()))
        slug = control.slug.strip().lower()
        if slug in current:
            current.discard(slug)
        else:
            current.add(slug)
        proposed = {**previous, control.group: frozenset(current)}
        normalized = ToggleControl(group=control.group, slug=slug, label=control.label)
        self._selected = self._apply_policy(previous, proposed, normalized)
        self._update_group_visibility()
        return self.refresh()

    def remove_chip(self, chip: Chip) -> SyncState:
        previous = dict(self._selected)
        remaining = previous.get(chip.group, frozenset()) - {chip.slug}
        proposed = {**previous, chip.group: remaining}
        # A chip removal is a toggle switched off.
        self._selected = self._apply_policy(
            previous, proposed, ToggleControl(group=chip.group, slug=chip.slug)
        )
        self._update_group_visibility()
        return self.refresh()

    def clear(self) -> SyncState:
        self._text = ""
        self._selected = {}
        self._surface.set_search_text("")
        self._update_group_visibility()
        return self.refresh()

    # ------------------------------------------------------------------
    # The pass
    # ------------------------------------------------------------------

    def refresh(self) -> SyncState:
        """Recompute visibility over every rendered item and update the surface."""
        query = self.query
        predicate = FilterPredicate(query, self._min_query_length, self._text_index)
        items = self._surface.items()

        visible_ids: list[str] = []
        section_counts: dict[str, int] = {}

        self._surface.set_busy(True)
        try:
            for item in items:
                show = predicate.matches(item)
                self._surface.set_item_visible(item.identity, show)
                if show:
                    visible_ids.append(item.identity)
                    if item.section is not None:
                        section_counts[item.section] = section_counts.get(item.section, 0) + 1
            if self._config.grouped:
                self._update_sections(section_counts, bool(predicate.phrase))
        finally:
            self._surface.set_busy(False)

        total_visible = len(visible_ids)
        no_results = bool(predicate.phrase) and total_visible == 0
        self._surface.set_visible_count(total_visible)
        self._surface.set_no_results(no_results, self._text.strip() if no_results else "")
        if self._config.suggestions:
            self._surface.set_suggestions(
                self._build_suggestions(items, predicate.phrase) if no_results else []
            )

        self._update_toggles(items, predicate)
        self._surface.render_chips(self._chips())
        self._sync_url(query)

        self._passes += 1
        state = SyncState(
            kind=self._config.kind,
            query=query,
            visible=total_visible,
            total=len(items),
            visible_ids=tuple(visible_ids),
            no_results=no_results,
            section_counts=section_counts,
        )
        self._notify_listeners(state)
        return state

    def _update_sections(self, section_counts: Mapping[str, int], text_active: bool) -> None:
        section_selection = (
            self._selected.get(self._config.section_taxonomy, frozenset())
            if self._config.section_taxonomy
            else frozenset()
        )
        for section in self._surface.sections():
            count = section_counts.get(section, 0)
            allowed = not section_selection or section in section_selection
            self._surface.set_section_visible(section, allowed and count > 0)
            if self._config.disclosure:
                self._surface.set_section_count(section, count)
                if count == 0:
                    self._surface.set_section_open(section, False)
                elif text_active:
                    self._surface.set_section_open(section, True)

    def _update_toggles(self, items: list[SurfaceItem], predicate: FilterPredicate) -> None:
        availability = {
            group: omit_counts(items, predicate, group) for group in self._config.groups
        }
        for toggle in self._surface.toggles():
            if toggle.group not in self._config.groups:
                continue
            slug = toggle.slug.strip().lower()
            pressed = slug in self._selected.get(toggle.group, frozenset())
            other_selected = any(
                slugs for group, slugs in self._selected.items() if group != toggle.group
            )
            disabled = (
                not pressed
                and other_selected
                and availability[toggle.group].get(slug, 0) == 0
            )
            self._surface.set_toggle_state(toggle, pressed, disabled)

    def _chips(self) -> list[Chip]:
        labels = {(t.group, t.slug.strip().lower()): toggle_label(t) for t in self._surface.toggles()}
        chips: list[Chip] = []
        for group in self._config.groups:
            for slug in sorted(self._selected.get(group, frozenset())):
                chips.append(Chip(group=group, slug=slug, label=labels.get((group, slug), slug)))
        return chips

    def _build_suggestions(self, items: list[SurfaceItem], phrase: str) -> list[Suggestion]:
        tokens = [token for token in phrase.split() if len(token) >= _SUGGESTION_MIN_TOKEN]
        if not tokens:
            return []
        prefix = self._config.hash_prefix or ""
        seen: set[str] = set()
        suggestions: list[Suggestion] = []
        for item in items:
            title_norm = normalize_search_text(item.title)
            if not any(token in title_norm for token in tokens):
                continue
            slug = item.slug
            if not slug and prefix and item.identity.startswith(prefix):
                slug = item.identity[len(prefix):]
            key = slug or item.title
            if key in seen:
                continue
            seen.add(key)
            href = f"/{self._config.kind}/{slug}" if slug else "#"
            suggestions.append(Suggestion(title=item.title, href=href))
            if len(suggestions) >= _SUGGESTION_LIMIT:
                break
        return suggestions

    def _sync_url(self, query: FilterQuery) -> None:
        current = self._surface.get_location_query()
        serialized = serialize_filter_state(query, self._names, self._min_query_length, current)
        if serialized == self._last_written:
            return
        self._last_written = serialized
        self._surface.replace_location_query(serialized)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _restrict(self, selected: Mapping[str, frozenset[str]]) -> dict[str, frozenset[str]]:
        return {g: s for g, s in selected.items() if g in self._config.groups and s}

    def _apply_policy(
        self,
        previous: Mapping[str, frozenset[str]],
        proposed: Mapping[str, frozenset[str]],
        toggled: ToggleControl | None,
    ) -> dict[str, frozenset[str]]:
        if self._config.policy is None:
            return {g: s for g, s in proposed.items() if s}
        return self._config.policy.apply(previous, proposed, toggled)

    def _update_group_visibility(self) -> None:
        if self._config.policy is None:
            return
        for group, visible in self._config.policy.visible_groups(self._selected).items():
            self._surface.set_group_visible(group, visible)

    def _prewarm(self, items: list[SurfaceItem]) -> None:
        for item in items:
            self._text_index.prewarm(item)

    def _on_items_appended(self, items: list[SurfaceItem]) -> None:
        pending = [item for item in items if not self._text_index.has_body(item.identity)]
        self._prewarm(pending[: self._prewarm_limit])
        self._scheduler.request()

    def _open_hash_target(self) -> None:
        prefix = self._config.hash_prefix
        if not prefix:
            return
        fragment = self._surface.get_location_hash()
        if not fragment.startswith(f"#{prefix}"):
            return
        identity = fragment[1:]
        for item in self._surface.items():
            if item.identity == identity:
                if item.section is not None:
                    self._surface.set_section_open(item.section, True)
                self._surface.reveal_item(identity)
                return

    def _notify_listeners(self, state: SyncState) -> None:
        for callback in list(self._listeners):
            try:
                callback(state)
            except Exception as exc:
                self._logger.warning(
                    "listener_callback_error",
                    error=str(exc),
                    callback=getattr(callback, "__name__", repr(callback)),
                )


def mount_resource_filters(
    kind: str,
    surface: IRenderSurface,
    min_query_length: int = DEFAULT_MIN_QUERY_LENGTH,
    url_params: Mapping[str, str] | None = None,
    defer: bool = True,
    idle_timeout: float = IDLE_TIMEOUT_SECONDS,
) -> Callable[[], None]:
    """Mount the synchronizer for *kind*, deferred to an idle point.

    Mount failures are logged and swallowed: filtering is an enhancement,
    and the unfiltered content stays readable.  The returned callable
    cancels a pending mount or unmounts a live one.

    Args:
        kind: Content kind (``blog``, ``project``, ``video``, ``faq``).
        surface: The rendered content.
        min_query_length: Minimum text length for the text filter.
        url_params: Parameter name overrides keyed by taxonomy (or ``"text"``).
        defer: When False, mount immediately.
        idle_timeout: Upper bound on the idle deferral, in seconds.
    """
    logger = get_logger(__name__)
    unmount: Callable[[], None] | None = None
    cancel_idle: Cancel | None = None

    def run() -> None:
        nonlocal unmount, cancel_idle
        cancel_idle = None
        if unmount is not None:
            return
        try:
            config = resolve_strategy(kind)
            synchronizer = FilterSynchronizer(
                config,
                surface,
                min_query_length=min_query_length,
                url_params=config.url_params.with_overrides(url_params),
            )
            unmount = synchronizer.mount()
        except Exception as exc:
            logger.error("filters_mount_failed", kind=kind, error=str(exc), exc_info=True)

    if defer:
        cancel_idle = surface.schedule_idle(run, idle_timeout)
    else:
        run()

    def dispose() -> None:
        nonlocal unmount, cancel_idle
        if cancel_idle is not None:
            cancel_idle()
            cancel_idle = None
        if unmount is not None:
            unmount()
            unmount = None

    return dispose
