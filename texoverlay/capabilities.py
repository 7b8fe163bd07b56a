"""Capability interfaces the overlay engine calls into.

The engine never talks to an editor directly. Hosts implement the protocols
below (see :mod:`texoverlay.memory_host` for an in-memory implementation) and
the engine only uses what is declared here.

Rows and columns are 0-indexed; column ranges are end-exclusive.
"""

from __future__ import annotations

from collections.abc import Callable, Hashable, Iterable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from .events import EditorEvent, SignalKind

if TYPE_CHECKING:
    from .decorations import Payload
    from .grid import Grid

__all__ = [
    "MathRegion",
    "DocumentHost",
    "PaneHost",
    "DecorationHost",
    "SignalHost",
    "EditorHost",
    "MathLocator",
    "ExpressionBackend",
]


@dataclass(frozen=True, order=True)
class MathRegion:
    """Source span of one math expression, end column exclusive."""

    start_row: int
    start_col: int
    end_row: int
    end_col: int

    def intersects(self, top: int, bottom: int) -> bool:
        return self.start_row <= bottom and self.end_row >= top

    def contains(self, row: int, col: int) -> bool:
        if not self.start_row <= row <= self.end_row:
            return False
        if row == self.start_row and col < self.start_col:
            return False
        if row == self.end_row and col >= self.end_col:
            return False
        return True


@runtime_checkable
class DocumentHost(Protocol):
    def is_valid(self, document: Hashable) -> bool: ...

    def line_count(self, document: Hashable) -> int: ...

    def get_line(self, document: Hashable, row: int) -> str: ...

    def get_text(
        self,
        document: Hashable,
        start_row: int,
        start_col: int,
        end_row: int,
        end_col: int,
    ) -> list[str]: ...

    def change_tick(self, document: Hashable) -> int: ...


@runtime_checkable
class PaneHost(Protocol):
    def panes(self, document: Hashable) -> list[Hashable]: ...

    def current_pane(self) -> Hashable | None: ...

    def pane_document(self, pane: Hashable) -> Hashable | None: ...

    def pane_height(self, pane: Hashable) -> int: ...

    def pane_topline(self, pane: Hashable) -> int: ...

    def row_visible(self, pane: Hashable, row: int) -> bool: ...

    def cursor_row(self, document: Hashable, pane: Hashable) -> int | None: ...

    def mode(self) -> str: ...


@runtime_checkable
class DecorationHost(Protocol):
    """Placement primitives. ``place``/``remove`` raise ``PlacementError``."""

    def place(
        self,
        namespace: str,
        document: Hashable,
        row: int,
        col: int,
        payload: "Payload",
    ) -> int: ...

    def remove(self, namespace: str, document: Hashable, placement_id: int) -> None: ...

    def clear_placements(
        self,
        namespace: str,
        document: Hashable,
        start_row: int = 0,
        end_row: int = -1,
    ) -> None: ...


@runtime_checkable
class SignalHost(Protocol):
    def subscribe(
        self,
        document: Hashable,
        kinds: Iterable[SignalKind],
        callback: Callable[[EditorEvent], None],
    ) -> Hashable: ...

    def unsubscribe(self, subscription: Hashable) -> None: ...


@runtime_checkable
class EditorHost(DocumentHost, PaneHost, DecorationHost, SignalHost, Protocol):
    """Everything the overlay manager needs from an editor."""


@runtime_checkable
class MathLocator(Protocol):
    """Find math regions; raises ``StructuralError`` when it cannot."""

    def regions(
        self,
        host: DocumentHost,
        document: Hashable,
        top: int,
        bottom: int,
    ) -> list[MathRegion]: ...


@runtime_checkable
class ExpressionBackend(Protocol):
    """Formula parser and renderer.

    ``parse`` raises ``FormulaParseError`` on malformed input and ``render``
    raises ``FormulaRenderError`` when no non-empty grid can be produced.
    """

    def parse(self, text: str) -> Any: ...

    def render(self, expression: Any) -> "Grid": ...
