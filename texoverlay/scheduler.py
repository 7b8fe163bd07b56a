"""Debounced two-phase render scheduler for one document.

Purpose
-------
The scheduler decides, per event, whether a document needs a new layout pass
(*parse* phase) or only a visibility refresh (*display* phase). Cursor motion,
the most frequent event, only ever reaches the display phase.

State machine
-------------
``IDLE`` --schedule(reparse)--> ``DEBOUNCE_OPEN`` (callback dispatched at once)

``DEBOUNCE_OPEN`` --schedule(reparse)--> ``DEBOUNCE_OPEN`` (timer restarted,
callback dropped)

``DEBOUNCE_OPEN`` --timer fires--> ``IDLE``

``RENDERING`` is held while the layout function runs; afterwards the scheduler
returns to ``DEBOUNCE_OPEN`` if a debounce timer is pending, else ``IDLE``.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable, Hashable
from enum import Enum
from typing import TYPE_CHECKING

from .config import OverlayConfig
from .context import ContextRegistry, RenderContext
from .debouncing import Dispatcher, TimerFactory, TimerHandle, call_soon, start_timer
from .decorations import Decoration, DecorationStore
from .view import Range, visible_range

if TYPE_CHECKING:
    from .capabilities import EditorHost

__all__ = ["SchedulerState", "Scheduler", "LayoutFn"]

logger = logging.getLogger(__name__)
if not logger.handlers:
    logger.addHandler(logging.NullHandler())

LayoutFn = Callable[[Hashable, int, int, RenderContext], "list[Decoration] | None"]


class SchedulerState(Enum):
    IDLE = "idle"
    DEBOUNCE_OPEN = "debounce_open"
    RENDERING = "rendering"


class Scheduler:
    """Own the decoration store and render cycle of one document.

    Parameters
    ----------
    host : EditorHost
        Editor capabilities.
    document : Hashable
        Document this scheduler renders.
    layout : callable
        ``layout(document, top, bottom, context) -> list[Decoration]``.
    contexts : ContextRegistry
        Registry providing the document's render context.
    config : OverlayConfig, optional
        Read live on every call, so changes apply to the next event.
    namespace : str
        Placement namespace of the decoration store.
    timer_factory, dispatcher : callable, optional
        Injected timer and next-tick primitives (see :mod:`texoverlay.debouncing`).
    """

    def __init__(
        self,
        host: "EditorHost",
        document: Hashable,
        *,
        layout: LayoutFn,
        contexts: ContextRegistry,
        config: OverlayConfig | None = None,
        namespace: str = "texoverlay",
        timer_factory: TimerFactory = start_timer,
        dispatcher: Dispatcher = call_soon,
    ) -> None:
        self._host = host
        self.document = document
        self._layout = layout
        self._contexts = contexts
        self.config = config if config is not None else OverlayConfig()
        self._timer_factory = timer_factory
        self._dispatch = dispatcher
        self.store = DecorationStore(host, namespace, document)
        self.force = False
        self.pane: Hashable | None = None
        self._adopt_current_pane()

        self._lock = threading.Lock()
        self._state = SchedulerState.IDLE
        self._timer: TimerHandle | None = None
        self._destroyed = False
        self._render_info_last_log_t = 0.0

    @property
    def state(self) -> SchedulerState:
        return self._state

    def _adopt_current_pane(self) -> None:
        pane = self._host.current_pane()
        if pane is not None and self._host.pane_document(pane) == self.document:
            self.pane = pane
        elif self.pane is None:
            panes = self._host.panes(self.document)
            self.pane = panes[0] if panes else None

    # ------------------------------------------------------------------
    # Change detection
    # ------------------------------------------------------------------

    def get_tick(self) -> int:
        return self._host.change_tick(self.document)

    def viewport_contained(self) -> bool:
        """Return ``True`` when the exact pane range lies inside the rendered range."""
        rendered = self.store.rendered_range
        if rendered is None:
            return False
        if self.pane is None:
            return True
        top, bottom = visible_range(self._host, self.document, self.pane, 0)
        return top >= rendered[0] and bottom <= rendered[1]

    def changed(self) -> bool:
        """Return ``True`` when a new layout pass is required."""
        if self.force or self.store.last_tick != self.get_tick():
            return True
        return not self.viewport_contained()

    def hidden(self) -> Range | None:
        """Rows around the cursor whose anti-conceal records must be hidden."""
        anti_conceal = self.config.anti_conceal
        if not anti_conceal.enabled or self.pane is None:
            return None
        row = self._host.cursor_row(self.document, self.pane)
        if row is None:
            return None
        return (row - anti_conceal.above, row + anti_conceal.below)

    # ------------------------------------------------------------------
    # Scheduling
    # ------------------------------------------------------------------

    def schedule(self, force: bool, debounce_ms: int, callback: Callable[[], None]) -> None:
        """Dispatch ``callback``, debouncing it when a re-parse is pending.

        The first re-parse request of a burst is dispatched immediately; later
        requests inside the ``debounce_ms`` window only restart the timer.
        """
        self.force = bool(force)
        self._adopt_current_pane()
        needs_reparse = self.changed()

        if needs_reparse and debounce_ms > 0:
            with self._lock:
                if self._timer is not None:
                    self._timer.cancel()
                self._timer = self._timer_factory(debounce_ms / 1000.0, self._close_window)
                if self._state is not SchedulerState.IDLE:
                    return
                self._state = SchedulerState.DEBOUNCE_OPEN
        self._dispatch(callback)

    def request(self, force: bool) -> None:
        """Schedule :meth:`render_if_valid` with the configured debounce."""
        self.schedule(force, self.config.debounce_ms, self.render_if_valid)

    def _close_window(self) -> None:
        with self._lock:
            self._timer = None
            if self._state is SchedulerState.DEBOUNCE_OPEN:
                self._state = SchedulerState.IDLE

    # ------------------------------------------------------------------
    # Render cycle
    # ------------------------------------------------------------------

    def render_if_valid(self) -> None:
        """Deferred entry point: no-op once the document or scheduler is gone."""
        if self._destroyed or not self._host.is_valid(self.document):
            logger.debug("Skipping render for detached document %r", self.document)
            return
        self.render()

    def render(self) -> None:
        if self.changed():
            self.parse()
            self.force = False
        self.display()

    def parse(self) -> None:
        """Phase 1: run the layout and replace the store's records."""
        ctx = self._contexts.get(self.document, self.pane)
        top, bottom = ctx.get_range()

        with self._lock:
            self._state = SchedulerState.RENDERING
        try:
            records = self._layout(self.document, top, bottom, ctx) or []
        finally:
            with self._lock:
                self._state = (
                    SchedulerState.DEBOUNCE_OPEN if self._timer is not None else SchedulerState.IDLE
                )

        self.store.clear()
        self.store.set_all(records)
        self.store.mark_processed(self.get_tick(), (top, bottom))
        self._log_render(top, bottom, len(records))

    def display(self) -> None:
        """Phase 2: toggle record visibility for the current cursor."""
        self.store.display(self.hidden())

    def _log_render(self, top: int, bottom: int, count: int) -> None:
        now = time.monotonic()
        if logger.isEnabledFor(logging.INFO) and (now - self._render_info_last_log_t) > 1.0:
            self._render_info_last_log_t = now
            logger.info("render(document=%r) rows=%d..%d records=%d", self.document, top, bottom, count)
        logger.debug("rendered range for %r is now %r", self.document, self.store.rendered_range)

    # ------------------------------------------------------------------
    # Teardown
    # ------------------------------------------------------------------

    def stop(self) -> None:
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
            self._state = SchedulerState.IDLE

    def destroy(self) -> None:
        self._destroyed = True
        self.stop()
        self.store.clear()
        self._contexts.clear(self.document)
