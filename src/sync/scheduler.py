"""Coalescing of append notifications into a single filter pass.

An infinite-scroll loader may append items one node at a time.  Each
notification calls :meth:`CoalescingScheduler.request`; only the first
request in a tick schedules work, so a burst of appends produces exactly
one full pass on the next frame.
"""

from __future__ import annotations

from typing import Callable

from src.interfaces.render_surface import Cancel
from src.utils.logging import get_logger

_logger = get_logger(__name__)


class CoalescingScheduler:
    """Runs *callback* at most once per frame, however often it is requested.

    Parameters
    ----------
    schedule_frame:
        Schedules a callable for the next frame and returns a cancel handle.
    callback:
        The work to run.
    """

    def __init__(
        self,
        schedule_frame: Callable[[Callable[[], None]], Cancel],
        callback: Callable[[], None],
    ) -> None:
        self._schedule_frame = schedule_frame
        self._callback = callback
        self._cancel: Cancel | None = None
        self._requests = 0

    @property
    def pending(self) -> bool:
        return self._cancel is not None

    def request(self) -> None:
        self._requests += 1
        if self._cancel is None:
            self._cancel = self._schedule_frame(self._fire)

    def cancel(self) -> None:
        if self._cancel is not None:
            self._cancel()
            self._cancel = None
        self._requests = 0

    def _fire(self) -> None:
        requests, self._requests = self._requests, 0
        self._cancel = None
        _logger.debug("coalesced_pass", requests=requests)
        self._callback()
