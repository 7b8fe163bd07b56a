"""Per-document render contexts.

A :class:`RenderContext` bundles the current view and edit mode of one
document. The :class:`ContextRegistry` keeps exactly one context per document
and refreshes it in place on every :meth:`ContextRegistry.get`, so components
holding a reference always see the latest state.
"""

from __future__ import annotations

from collections.abc import Hashable
from dataclasses import dataclass
from typing import TYPE_CHECKING

from .config import DEFAULT_MARGIN_LINES
from .view import Range, View, visible_range

if TYPE_CHECKING:
    from .capabilities import DocumentHost, PaneHost

__all__ = ["RenderContext", "ContextRegistry"]


@dataclass(eq=False)
class RenderContext:
    """Viewport and mode snapshot for one document."""

    document: Hashable
    pane: Hashable | None
    view: View
    mode: str

    def get_range(self) -> Range:
        """Return the single contiguous region a layout pass should scan."""
        return self.view.combined()

    def in_view(self, start_row: int, end_row: int) -> bool:
        return self.view.overlaps(start_row, end_row)


class ContextRegistry:
    """Own one :class:`RenderContext` per document."""

    def __init__(self, host: "DocumentHost | PaneHost", *, margin: int = DEFAULT_MARGIN_LINES) -> None:
        self._host = host
        self.margin = margin
        self._contexts: dict[Hashable, RenderContext] = {}

    def get(self, document: Hashable, pane: Hashable | None = None) -> RenderContext:
        """Return the document's context, creating it or refreshing it in place."""
        view = View.build(self._host, document, self.margin)
        mode = self._host.mode()
        ctx = self._contexts.get(document)
        if ctx is None:
            ctx = RenderContext(
                document=document,
                pane=pane if pane is not None else self._host.current_pane(),
                view=view,
                mode=mode,
            )
            self._contexts[document] = ctx
            return ctx
        ctx.view = view
        ctx.mode = mode
        if pane is not None:
            ctx.pane = pane
        return ctx

    def peek(self, document: Hashable) -> RenderContext | None:
        return self._contexts.get(document)

    def clear(self, document: Hashable) -> None:
        self._contexts.pop(document, None)

    def contains(self, document: Hashable, pane: Hashable) -> bool:
        """Return ``True`` when the padded pane range lies inside the cached envelope."""
        ctx = self._contexts.get(document)
        if ctx is None:
            return False
        top, bottom = visible_range(self._host, document, pane, self.margin)
        cached_top, cached_bottom = ctx.view.combined()
        return top >= cached_top and bottom <= cached_bottom

    def __contains__(self, document: object) -> bool:
        return document in self._contexts

    def __len__(self) -> int:
        return len(self._contexts)
