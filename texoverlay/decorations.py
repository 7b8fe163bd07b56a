"""Decoration records and the show/hide caching store.

Purpose
-------
A :class:`Decoration` is the definition of one overlay (where it goes and what
it draws). It is *placed* in the host only while it should be visible; hiding
removes the placement but keeps the definition, so cursor movement never needs
a new layout pass.

Concepts and structure
----------------------
- Payloads: :class:`Replacement` conceals a source span and draws a glyph in
  its place, :class:`InlineText` inserts fragments without hiding anything and
  :class:`VirtualLines` adds whole lines above or below a row.
- ``anti_conceal`` decides what happens inside the cursor's hidden range:
  ``True`` hides the record, ``False`` keeps it, :data:`FORCE_CONCEAL` always
  hides it.
- :class:`DecorationStore` holds the records of one document plus the change
  tick and row range of the layout pass that produced them.

Notes
-----
``show``/``hide`` are idempotent and return a :class:`PlacementResult` instead
of raising; the store logs failed results and keeps going.
"""

from __future__ import annotations

import logging
from collections.abc import Hashable, Iterable
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, NamedTuple, Union

from .errors import PlacementError

if TYPE_CHECKING:
    from .capabilities import DecorationHost

__all__ = [
    "Style",
    "Chunk",
    "Replacement",
    "InlineText",
    "VirtualLines",
    "Payload",
    "FORCE_CONCEAL",
    "PlacementResult",
    "Decoration",
    "DecorationStore",
]

logger = logging.getLogger(__name__)
if not logger.handlers:
    logger.addHandler(logging.NullHandler())

FORCE_CONCEAL = "force"


class Style(str, Enum):
    """Highlight tags attached to rendered text fragments."""

    NORMAL = "Normal"
    NON_TEXT = "NonText"
    NUMBER = "@number"
    STRING = "@string"
    OPERATOR = "@operator"


class Chunk(NamedTuple):
    text: str
    style: Style = Style.NORMAL


@dataclass(frozen=True)
class Replacement:
    """Conceal ``[col, end_col)`` on ``end_row`` and show ``text`` instead.

    An empty ``text`` hides the span entirely.
    """

    end_row: int
    end_col: int
    text: str
    style: Style = Style.NORMAL


@dataclass(frozen=True)
class InlineText:
    """Virtual text inserted at a column without hiding source text."""

    chunks: tuple[Chunk, ...]

    @property
    def text(self) -> str:
        return "".join(chunk.text for chunk in self.chunks)


@dataclass(frozen=True)
class VirtualLines:
    """Whole virtual lines placed above or below a row."""

    lines: tuple[tuple[Chunk, ...], ...]
    above: bool

    def texts(self) -> list[str]:
        return ["".join(chunk.text for chunk in line) for line in self.lines]


Payload = Union[Replacement, InlineText, VirtualLines]


@dataclass(frozen=True)
class PlacementResult:
    """Outcome of one show/hide call."""

    ok: bool
    placement_id: int | None = None
    error: PlacementError | None = None


@dataclass(eq=False)
class Decoration:
    """One overlay definition, materialized only while ``placed_id`` is set."""

    row: int
    col: int
    payload: Payload
    anti_conceal: bool | str = False
    placed_id: int | None = field(default=None, init=False)

    @property
    def visible(self) -> bool:
        return self.placed_id is not None

    def overlaps(self, hidden: tuple[int, int] | None) -> bool:
        if hidden is None:
            return False
        return hidden[0] <= self.row <= hidden[1]

    def show(self, host: "DecorationHost", namespace: str, document: Hashable) -> PlacementResult:
        if self.placed_id is not None:
            return PlacementResult(ok=True, placement_id=self.placed_id)
        try:
            placement_id = host.place(namespace, document, self.row, self.col, self.payload)
        except PlacementError as exc:
            return PlacementResult(ok=False, error=exc)
        self.placed_id = placement_id
        return PlacementResult(ok=True, placement_id=placement_id)

    def hide(self, host: "DecorationHost", namespace: str, document: Hashable) -> PlacementResult:
        if self.placed_id is None:
            return PlacementResult(ok=True)
        placement_id = self.placed_id
        self.placed_id = None
        try:
            host.remove(namespace, document, placement_id)
        except PlacementError as exc:
            return PlacementResult(ok=False, placement_id=placement_id, error=exc)
        return PlacementResult(ok=True, placement_id=placement_id)


class DecorationStore:
    """Ordered decoration records of one document.

    Parameters
    ----------
    host : DecorationHost
        Placement primitives.
    namespace : str
        Namespace all placements of this store live in.
    document : Hashable
        Document the records belong to.
    """

    def __init__(self, host: "DecorationHost", namespace: str, document: Hashable) -> None:
        self._host = host
        self._namespace = namespace
        self._document = document
        self._records: list[Decoration] = []
        self.last_tick: int | None = None
        self.rendered_range: tuple[int, int] | None = None

    @property
    def records(self) -> list[Decoration]:
        return list(self._records)

    def __len__(self) -> int:
        return len(self._records)

    def clear(self) -> None:
        """Remove every placement of this namespace and drop all records."""
        try:
            self._host.clear_placements(self._namespace, self._document, 0, -1)
        except PlacementError as exc:
            logger.debug("clear_placements failed for %r: %s", self._document, exc)
        for record in self._records:
            record.placed_id = None
        self._records = []

    def set_all(self, records: Iterable[Decoration]) -> None:
        self._records = list(records)

    def add(self, record: Decoration) -> None:
        self._records.append(record)

    def mark_processed(self, tick: int, rendered_range: tuple[int, int] | None) -> None:
        self.last_tick = tick
        self.rendered_range = rendered_range

    def display(self, hidden: tuple[int, int] | None) -> list[PlacementResult]:
        """Show or hide every record for the given cursor ``hidden`` range.

        Returns
        -------
        list[PlacementResult]
            The failed results, already logged.
        """
        failures: list[PlacementResult] = []
        for record in self._records:
            should_hide = False
            if record.overlaps(hidden):
                if isinstance(record.anti_conceal, bool):
                    should_hide = record.anti_conceal
                else:
                    should_hide = True

            if should_hide:
                result = record.hide(self._host, self._namespace, self._document)
            else:
                result = record.show(self._host, self._namespace, self._document)
            if not result.ok:
                logger.debug(
                    "Decoration at (%d, %d) of %r not updated: %s",
                    record.row,
                    record.col,
                    self._document,
                    result.error,
                )
                failures.append(result)
        return failures

    def in_range(self, start_row: int, end_row: int) -> list[Decoration]:
        return [r for r in self._records if start_row <= r.row <= end_row]
