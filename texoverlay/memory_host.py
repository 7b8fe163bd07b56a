"""Headless in-memory editor host.

:class:`MemoryEditor` implements every capability in
:mod:`texoverlay.capabilities` on plain Python containers. It backs the test
suite and can drive the engine without a real editor: documents are lists of
lines, panes are windows onto them and placements are kept in a dict so they
can be inspected.

Signals are delivered synchronously from the mutating call that causes them
(``set_text`` emits ``TEXT_CHANGED``, ``scroll`` emits ``VIEWPORT_SCROLLED``
and so on).

Examples
--------
>>> editor = MemoryEditor()
>>> editor.open_document("notes.md", "area: $r^2$")
>>> editor.open_pane("main", "notes.md", height=20)
>>> editor.line_count("notes.md")
1
"""

from __future__ import annotations

import itertools
import logging
from collections.abc import Callable, Hashable, Iterable
from dataclasses import dataclass, field

from .decorations import Payload, Replacement
from .errors import DocumentError, PlacementError
from .events import EditorEvent, SignalKind

__all__ = ["MemoryEditor", "Placement"]

logger = logging.getLogger(__name__)
if not logger.handlers:
    logger.addHandler(logging.NullHandler())


@dataclass
class _Document:
    lines: list[str]
    tick: int = 0
    valid: bool = True


@dataclass
class _Pane:
    document: Hashable
    height: int
    topline: int = 0
    cursor_row: int = 0
    folded: set[int] = field(default_factory=set)


@dataclass(frozen=True)
class Placement:
    """One materialized decoration."""

    placement_id: int
    namespace: str
    document: Hashable
    row: int
    col: int
    payload: Payload


@dataclass(frozen=True)
class _Subscription:
    document: Hashable
    kinds: frozenset[SignalKind]
    callback: Callable[[EditorEvent], None]


class MemoryEditor:
    """In-memory implementation of :class:`~texoverlay.capabilities.EditorHost`.

    Attributes
    ----------
    place_calls, remove_calls : int
        Number of successful ``place``/``remove`` calls, for idempotence
        checks.
    reject_rows : set[int]
        Rows on which ``place`` raises :class:`PlacementError`, to simulate a
        host rejecting stale coordinates.
    """

    def __init__(self) -> None:
        self._documents: dict[Hashable, _Document] = {}
        self._panes: dict[Hashable, _Pane] = {}
        self._current: Hashable | None = None
        self._mode = "n"
        self._placements: dict[int, Placement] = {}
        self._ids = itertools.count(1)
        self._subscriptions: dict[int, _Subscription] = {}
        self._tokens = itertools.count(1)
        self.place_calls = 0
        self.remove_calls = 0
        self.reject_rows: set[int] = set()

    # ------------------------------------------------------------------
    # Editing API
    # ------------------------------------------------------------------

    def open_document(self, document: Hashable, text: str | Iterable[str] = "") -> None:
        lines = text.split("\n") if isinstance(text, str) else list(text)
        self._documents[document] = _Document(lines=lines or [""])

    def set_text(self, document: Hashable, text: str | Iterable[str]) -> None:
        doc = self._document(document)
        lines = text.split("\n") if isinstance(text, str) else list(text)
        doc.lines = lines or [""]
        doc.tick += 1
        self._emit(SignalKind.TEXT_CHANGED, document)

    def set_line(self, document: Hashable, row: int, text: str) -> None:
        doc = self._document(document)
        if not 0 <= row < len(doc.lines):
            raise DocumentError(f"Row {row} out of range for {document!r}")
        doc.lines[row] = text
        doc.tick += 1
        self._emit(SignalKind.TEXT_CHANGED, document)

    def close_document(self, document: Hashable) -> None:
        """Emit ``DOCUMENT_CLOSING``, then invalidate the document and its panes."""
        doc = self._document(document)
        self._emit(SignalKind.DOCUMENT_CLOSING, document)
        doc.valid = False
        for pane in [p for p, state in self._panes.items() if state.document == document]:
            del self._panes[pane]
            if self._current == pane:
                self._current = None

    def open_pane(self, pane: Hashable, document: Hashable, *, height: int, topline: int = 0) -> None:
        self._document(document)
        self._panes[pane] = _Pane(document=document, height=height, topline=topline)
        self._current = pane
        self._emit(SignalKind.PANE_ENTERED, document, pane)

    def focus_pane(self, pane: Hashable) -> None:
        state = self._pane(pane)
        self._current = pane
        self._emit(SignalKind.PANE_ENTERED, state.document, pane)

    def scroll(self, pane: Hashable, topline: int) -> None:
        state = self._pane(pane)
        state.topline = max(topline, 0)
        self._emit(SignalKind.VIEWPORT_SCROLLED, state.document, pane)

    def move_cursor(self, pane: Hashable, row: int) -> None:
        state = self._pane(pane)
        state.cursor_row = row
        self._emit(SignalKind.CURSOR_MOVED, state.document, pane)

    def fold(self, pane: Hashable, start_row: int, end_row: int) -> None:
        """Close a fold; its rows stop counting as visible."""
        self._pane(pane).folded.update(range(start_row, end_row + 1))

    def unfold(self, pane: Hashable) -> None:
        self._pane(pane).folded.clear()

    def set_mode(self, mode: str) -> None:
        self._mode = mode

    def placements(self, document: Hashable | None = None, namespace: str | None = None) -> list[Placement]:
        """Return current placements in placement order, optionally filtered."""
        return [
            p
            for p in self._placements.values()
            if (document is None or p.document == document) and (namespace is None or p.namespace == namespace)
        ]

    # ------------------------------------------------------------------
    # DocumentHost
    # ------------------------------------------------------------------

    def is_valid(self, document: Hashable) -> bool:
        doc = self._documents.get(document)
        return doc is not None and doc.valid

    def line_count(self, document: Hashable) -> int:
        return len(self._document(document).lines)

    def get_line(self, document: Hashable, row: int) -> str:
        lines = self._document(document).lines
        if not 0 <= row < len(lines):
            raise DocumentError(f"Row {row} out of range for {document!r}")
        return lines[row]

    def get_text(
        self,
        document: Hashable,
        start_row: int,
        start_col: int,
        end_row: int,
        end_col: int,
    ) -> list[str]:
        lines = self._document(document).lines
        if not 0 <= start_row <= end_row < len(lines):
            raise DocumentError(f"Rows {start_row}..{end_row} out of range for {document!r}")
        span = lines[start_row : end_row + 1]
        if start_row == end_row:
            return [span[0][start_col:end_col]]
        return [span[0][start_col:], *span[1:-1], span[-1][:end_col]]

    def change_tick(self, document: Hashable) -> int:
        return self._document(document).tick

    # ------------------------------------------------------------------
    # PaneHost
    # ------------------------------------------------------------------

    def panes(self, document: Hashable) -> list[Hashable]:
        return [pane for pane, state in self._panes.items() if state.document == document]

    def current_pane(self) -> Hashable | None:
        return self._current

    def pane_document(self, pane: Hashable) -> Hashable | None:
        state = self._panes.get(pane)
        return state.document if state is not None else None

    def pane_height(self, pane: Hashable) -> int:
        return self._pane(pane).height

    def pane_topline(self, pane: Hashable) -> int:
        return self._pane(pane).topline

    def row_visible(self, pane: Hashable, row: int) -> bool:
        return row not in self._pane(pane).folded

    def cursor_row(self, document: Hashable, pane: Hashable) -> int | None:
        state = self._panes.get(pane)
        if state is None or state.document != document:
            return None
        return state.cursor_row

    def mode(self) -> str:
        return self._mode

    # ------------------------------------------------------------------
    # DecorationHost
    # ------------------------------------------------------------------

    def place(self, namespace: str, document: Hashable, row: int, col: int, payload: Payload) -> int:
        if not self.is_valid(document):
            raise PlacementError(f"Document {document!r} is not valid")
        lines = self._documents[document].lines
        if row in self.reject_rows:
            raise PlacementError(f"Placement on row {row} rejected")
        if not 0 <= row < len(lines) or not 0 <= col <= len(lines[row]):
            raise PlacementError(f"Position ({row}, {col}) is outside {document!r}")
        if isinstance(payload, Replacement):
            end_row, end_col = payload.end_row, payload.end_col
            if not row <= end_row < len(lines) or not 0 <= end_col <= len(lines[end_row]):
                raise PlacementError(f"Replacement end ({end_row}, {end_col}) is outside {document!r}")

        placement_id = next(self._ids)
        self._placements[placement_id] = Placement(placement_id, namespace, document, row, col, payload)
        self.place_calls += 1
        return placement_id

    def remove(self, namespace: str, document: Hashable, placement_id: int) -> None:
        placement = self._placements.get(placement_id)
        if placement is None or placement.namespace != namespace or placement.document != document:
            raise PlacementError(f"No placement {placement_id} in {namespace!r} for {document!r}")
        del self._placements[placement_id]
        self.remove_calls += 1

    def clear_placements(
        self,
        namespace: str,
        document: Hashable,
        start_row: int = 0,
        end_row: int = -1,
    ) -> None:
        for placement in self.placements(document, namespace):
            if placement.row >= start_row and (end_row < 0 or placement.row < end_row):
                del self._placements[placement.placement_id]

    # ------------------------------------------------------------------
    # SignalHost
    # ------------------------------------------------------------------

    def subscribe(
        self,
        document: Hashable,
        kinds: Iterable[SignalKind],
        callback: Callable[[EditorEvent], None],
    ) -> int:
        token = next(self._tokens)
        self._subscriptions[token] = _Subscription(document, frozenset(kinds), callback)
        return token

    def unsubscribe(self, subscription: Hashable) -> None:
        self._subscriptions.pop(subscription, None)

    def subscriber_count(self, document: Hashable) -> int:
        return sum(1 for sub in self._subscriptions.values() if sub.document == document)

    def _emit(self, kind: SignalKind, document: Hashable, pane: Hashable | None = None) -> None:
        event = EditorEvent(kind, document, pane)
        for sub in list(self._subscriptions.values()):
            if sub.document == document and kind in sub.kinds:
                logger.debug("Delivering %s for %r", kind.value, document)
                sub.callback(event)

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def _document(self, document: Hashable) -> _Document:
        doc = self._documents.get(document)
        if doc is None or not doc.valid:
            raise DocumentError(f"Unknown or closed document {document!r}")
        return doc

    def _pane(self, pane: Hashable) -> _Pane:
        state = self._panes.get(pane)
        if state is None:
            raise DocumentError(f"Unknown pane {pane!r}")
        return state
