"""In-memory render surface.

Holds items, sections and toggles as plain Python state and records every
write the synchronizer makes.  Used by the test suite, and documents the
surface contract by example.

Idle and frame callbacks are queued rather than run, so callers decide when
the "browser" gets to them (:meth:`run_idle`, :meth:`flush_frames`).
"""

from __future__ import annotations

from typing import Callable, Iterable

from src.interfaces.render_surface import (
    Cancel,
    Chip,
    IRenderSurface,
    Suggestion,
    SurfaceItem,
    ToggleControl,
    Unsubscribe,
)


class _Subscribers:
    def __init__(self) -> None:
        self._callbacks: list[Callable] = []

    def add(self, callback: Callable) -> Unsubscribe:
        self._callbacks.append(callback)

        def unsubscribe() -> None:
            if callback in self._callbacks:
                self._callbacks.remove(callback)

        return unsubscribe

    def emit(self, *args: object) -> None:
        for callback in list(self._callbacks):
            callback(*args)

    def __len__(self) -> int:
        return len(self._callbacks)


class MemoryRenderSurface(IRenderSurface):
    """A render surface backed by Python lists and dicts.

    Parameters
    ----------
    items:
        Initially rendered items, in document order.
    toggles:
        Facet toggles on the page.
    sections:
        Section keys in document order; derived from the items when omitted.
    location_query:
        Initial URL query string.
    location_hash:
        Initial URL fragment, e.g. ``"#faq-roof-life"``.
    """

    def __init__(
        self,
        items: Iterable[SurfaceItem] = (),
        toggles: Iterable[ToggleControl] = (),
        sections: Iterable[str] | None = None,
        location_query: str = "",
        location_hash: str = "",
    ) -> None:
        self._items: list[SurfaceItem] = list(items)
        self._toggles: list[ToggleControl] = list(toggles)
        self._sections: list[str] | None = list(sections) if sections is not None else None
        self.location_query = location_query.lstrip("?")
        self.location_hash = location_hash
        self.search_text = ""

        # Recorded writes
        self.item_visible: dict[str, bool] = {}
        self.section_visible: dict[str, bool] = {}
        self.section_counts: dict[str, int] = {}
        self.section_open: dict[str, bool] = {}
        self.toggle_state: dict[tuple[str, str], tuple[bool, bool]] = {}
        self.group_visible: dict[str, bool] = {}
        self.chips: list[Chip] = []
        self.visible_count: int | None = None
        self.no_results: bool = False
        self.no_results_query: str = ""
        self.suggestions: list[Suggestion] = []
        self.busy: bool = False
        self.busy_transitions: list[bool] = []
        self.url_writes: list[str] = []
        self.revealed: list[str] = []

        self._idle_queue: list[Callable[[], None]] = []
        self._frame_queue: list[Callable[[], None]] = []
        self.idle_timeouts: list[float] = []

        self._text_input = _Subscribers()
        self._toggle = _Subscribers()
        self._clear = _Subscribers()
        self._chip_remove = _Subscribers()
        self._appended = _Subscribers()

    # ------------------------------------------------------------------
    # IRenderSurface: reading
    # ------------------------------------------------------------------

    def items(self) -> list[SurfaceItem]:
        return list(self._items)

    def sections(self) -> list[str]:
        if self._sections is not None:
            return list(self._sections)
        return list(dict.fromkeys(i.section for i in self._items if i.section is not None))

    def toggles(self) -> list[ToggleControl]:
        return list(self._toggles)

    def get_search_text(self) -> str:
        return self.search_text

    def get_location_query(self) -> str:
        return self.location_query

    def get_location_hash(self) -> str:
        return self.location_hash

    # ------------------------------------------------------------------
    # IRenderSurface: writing
    # ------------------------------------------------------------------

    def set_item_visible(self, identity: str, visible: bool) -> None:
        self.item_visible[identity] = visible

    def set_section_visible(self, section: str, visible: bool) -> None:
        self.section_visible[section] = visible

    def set_section_count(self, section: str, count: int) -> None:
        self.section_counts[section] = count

    def set_section_open(self, section: str, is_open: bool) -> None:
        self.section_open[section] = is_open

    def set_toggle_state(self, toggle: ToggleControl, pressed: bool, disabled: bool) -> None:
        self.toggle_state[(toggle.group, toggle.slug)] = (pressed, disabled)

    def set_group_visible(self, group: str, visible: bool) -> None:
        self.group_visible[group] = visible

    def set_search_text(self, text: str) -> None:
        self.search_text = text

    def render_chips(self, chips: list[Chip]) -> None:
        self.chips = list(chips)

    def set_visible_count(self, count: int) -> None:
        self.visible_count = count

    def set_no_results(self, visible: bool, query: str = "") -> None:
        self.no_results = visible
        self.no_results_query = query

    def set_suggestions(self, suggestions: list[Suggestion]) -> None:
        self.suggestions = list(suggestions)

    def set_busy(self, busy: bool) -> None:
        self.busy = busy
        self.busy_transitions.append(busy)

    def replace_location_query(self, query: str) -> None:
        self.location_query = query
        self.url_writes.append(query)

    def reveal_item(self, identity: str) -> bool:
        if any(item.identity == identity for item in self._items):
            self.revealed.append(identity)
            return True
        return False

    # ------------------------------------------------------------------
    # IRenderSurface: scheduling
    # ------------------------------------------------------------------

    def schedule_idle(self, callback: Callable[[], None], timeout: float) -> Cancel:
        self._idle_queue.append(callback)
        self.idle_timeouts.append(timeout)
        return self._canceller(self._idle_queue, callback)

    def schedule_frame(self, callback: Callable[[], None]) -> Cancel:
        self._frame_queue.append(callback)
        return self._canceller(self._frame_queue, callback)

    @staticmethod
    def _canceller(queue: list[Callable[[], None]], callback: Callable[[], None]) -> Cancel:
        def cancel() -> None:
            if callback in queue:
                queue.remove(callback)

        return cancel

    # ------------------------------------------------------------------
    # IRenderSurface: subscriptions
    # ------------------------------------------------------------------

    def on_text_input(self, callback: Callable[[str], None]) -> Unsubscribe:
        return self._text_input.add(callback)

    def on_toggle(self, callback: Callable[[ToggleControl], None]) -> Unsubscribe:
        return self._toggle.add(callback)

    def on_clear(self, callback: Callable[[], None]) -> Unsubscribe:
        return self._clear.add(callback)

    def on_chip_remove(self, callback: Callable[[Chip], None]) -> Unsubscribe:
        return self._chip_remove.add(callback)

    def on_items_appended(self, callback: Callable[[list[SurfaceItem]], None]) -> Unsubscribe:
        return self._appended.add(callback)

    @property
    def subscriber_count(self) -> int:
        return sum(
            len(s)
            for s in (self._text_input, self._toggle, self._clear, self._chip_remove, self._appended)
        )

    # ------------------------------------------------------------------
    # Driving the surface (what a user or loader would do)
    # ------------------------------------------------------------------

    def type_text(self, text: str) -> None:
        self.search_text = text
        self._text_input.emit(text)

    def click_toggle(self, group: str, slug: str) -> None:
        for toggle in self._toggles:
            if toggle.group == group and toggle.slug == slug:
                self._toggle.emit(toggle)
                return
        raise KeyError(f"no toggle {group}={slug}")

    def click_clear(self) -> None:
        self._clear.emit()

    def remove_chip(self, chip: Chip) -> None:
        self._chip_remove.emit(chip)

    def append_items(self, items: Iterable[SurfaceItem]) -> None:
        new_items = list(items)
        self._items.extend(new_items)
        self._appended.emit(new_items)

    def run_idle(self) -> int:
        queued, self._idle_queue[:] = list(self._idle_queue), []
        for callback in queued:
            callback()
        return len(queued)

    def flush_frames(self) -> int:
        queued, self._frame_queue[:] = list(self._frame_queue), []
        for callback in queued:
            callback()
        return len(queued)

    @property
    def pending_frames(self) -> int:
        return len(self._frame_queue)

    @property
    def pending_idle(self) -> int:
        return len(self._idle_queue)

    def visible_ids(self) -> list[str]:
        return [item.identity for item in self._items if self.item_visible.get(item.identity, True)]
