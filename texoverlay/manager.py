"""Attachment registry and signal fan-out for overlay schedulers.

This module centralizes scheduler ownership so callers only deal with
documents. The manager owns:

- one :class:`~texoverlay.scheduler.Scheduler` per attached document,
- the host signal subscriptions of each attached document,
- the shared :class:`~texoverlay.context.ContextRegistry`.

Edits and pane entry request a forced re-render; cursor motion and scrolling
request a plain one, which only re-runs the layout when the viewport left the
rendered range. A closing document is detached.
"""

from __future__ import annotations

import logging
from collections.abc import Hashable
from typing import TYPE_CHECKING, Any

from .config import OverlayConfig
from .context import ContextRegistry
from .debouncing import Dispatcher, TimerFactory, call_soon, start_timer
from .events import ALL_SIGNALS, EditorEvent, SignalKind
from .scheduler import LayoutFn, Scheduler

if TYPE_CHECKING:
    from .capabilities import EditorHost

__all__ = ["OverlayManager", "FORCE_BY_SIGNAL"]

logger = logging.getLogger(__name__)
if not logger.handlers:
    logger.addHandler(logging.NullHandler())

FORCE_BY_SIGNAL: dict[SignalKind, bool] = {
    SignalKind.PANE_ENTERED: True,
    SignalKind.TEXT_CHANGED: True,
    SignalKind.CURSOR_MOVED: False,
    SignalKind.VIEWPORT_SCROLLED: False,
}


class OverlayManager:
    """Own the schedulers of all attached documents.

    Parameters
    ----------
    host : EditorHost
        Editor capabilities shared by every scheduler.
    layout : callable
        Layout function, typically :meth:`texoverlay.layout.LayoutEngine.layout`.
    config : OverlayConfig, optional
        Shared configuration; margin changes force a re-render.
    namespace : str
        Placement namespace for every decoration this manager creates.
    timer_factory, dispatcher : callable, optional
        Passed through to each scheduler.
    """

    def __init__(
        self,
        host: "EditorHost",
        layout: LayoutFn,
        *,
        config: OverlayConfig | None = None,
        namespace: str = "texoverlay",
        timer_factory: TimerFactory = start_timer,
        dispatcher: Dispatcher = call_soon,
    ) -> None:
        self._host = host
        self._layout = layout
        self._config = config if config is not None else OverlayConfig()
        self._namespace = namespace
        self._timer_factory = timer_factory
        self._dispatcher = dispatcher
        self._schedulers: dict[Hashable, Scheduler] = {}
        self._subscriptions: dict[Hashable, Hashable] = {}
        self.contexts = ContextRegistry(host, margin=self._config.margin_lines)
        self._observing = False
        self._watch_config()

    @property
    def config(self) -> OverlayConfig:
        return self._config

    @property
    def namespace(self) -> str:
        return self._namespace

    @property
    def schedulers(self) -> dict[Hashable, Scheduler]:
        """Return a copy of the document -> scheduler registry."""
        return dict(self._schedulers)

    def is_attached(self, document: Hashable) -> bool:
        return document in self._schedulers

    def get_scheduler(self, document: Hashable) -> Scheduler | None:
        return self._schedulers.get(document)

    def attach(self, document: Hashable) -> Scheduler:
        """Create a scheduler for ``document``; re-attaching returns the existing one."""
        existing = self._schedulers.get(document)
        if existing is not None:
            return existing

        self._watch_config()
        scheduler = Scheduler(
            self._host,
            document,
            layout=self._layout,
            contexts=self.contexts,
            config=self._config,
            namespace=self._namespace,
            timer_factory=self._timer_factory,
            dispatcher=self._dispatcher,
        )
        self._schedulers[document] = scheduler
        self._subscriptions[document] = self._host.subscribe(document, ALL_SIGNALS, self._on_event)
        logger.debug("Attached overlay to %r", document)
        return scheduler

    def detach(self, document: Hashable) -> None:
        scheduler = self._schedulers.pop(document, None)
        if scheduler is not None:
            scheduler.destroy()
        subscription = self._subscriptions.pop(document, None)
        if subscription is not None:
            self._host.unsubscribe(subscription)
            logger.debug("Detached overlay from %r", document)

    def update(self, document: Hashable) -> None:
        """Request a forced re-render of an attached document."""
        scheduler = self._schedulers.get(document)
        if scheduler is not None:
            scheduler.request(True)

    def toggle(self, document: Hashable) -> bool:
        """Attach-and-render or detach ``document``; return the new attached state."""
        if self.is_attached(document):
            self.detach(document)
            return False
        self.attach(document)
        self.update(document)
        return True

    def reset(self) -> None:
        """Detach every document and stop following configuration changes."""
        for document in list(self._schedulers):
            self.detach(document)
        if self._observing:
            self._config.unobserve(self._on_margin_changed, names=["margin_lines"])
            self._observing = False

    def _watch_config(self) -> None:
        if not self._observing:
            self.contexts.margin = self._config.margin_lines
            self._config.observe(self._on_margin_changed, names=["margin_lines"])
            self._observing = True

    def _on_event(self, event: EditorEvent) -> None:
        if event.kind is SignalKind.DOCUMENT_CLOSING:
            self.detach(event.document)
            return
        scheduler = self._schedulers.get(event.document)
        if scheduler is None:
            return
        force = FORCE_BY_SIGNAL[event.kind]
        scheduler.request(force)

    def _on_margin_changed(self, change: Any) -> None:
        self.contexts.margin = change["new"]
        for document in list(self._schedulers):
            self.update(document)
