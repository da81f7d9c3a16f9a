"""Coalesced redraw requests."""
from __future__ import annotations

from typing import Callable


class RedrawScheduler:
    """Collapse any number of redraw requests into at most one pending frame.

    ``schedule`` queues a callback for the next frame (``QTimer.singleShot``
    in the widget); ``draw`` renders the current state.
    """

    def __init__(
        self,
        schedule: Callable[[Callable[[], None]], None],
        draw: Callable[[], None],
    ) -> None:
        self._schedule = schedule
        self._draw = draw
        self.needs_redraw = False
        self.scheduled = False

    def request(self) -> None:
        self.needs_redraw = True
        if not self.scheduled:
            self.scheduled = True
            self._schedule(self._frame)

    def _frame(self) -> None:
        # cleared first so a request made while drawing queues another frame
        self.scheduled = False
        if not self.needs_redraw:
            return
        self.needs_redraw = False
        self._draw()
