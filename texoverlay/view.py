"""Viewport model: which document rows are worth rendering.

Purpose
-------
``View`` captures the rows of one document that are visible in any pane,
padded by a margin so that small scrolls do not require a re-render. Ranges
from different panes are merged into a sorted, non-overlapping,
non-adjacent list.

Notes
-----
Folded rows do not count towards a pane's height: the padded range is extended
until it covers ``pane_height + 2 * margin`` *visible* rows.

A document shown in no pane gets the single degenerate range ``(0, 0)``.
"""

from __future__ import annotations

from collections.abc import Hashable, Iterable, Iterator
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from .config import DEFAULT_MARGIN_LINES

if TYPE_CHECKING:
    from .capabilities import DocumentHost, PaneHost

__all__ = ["Range", "View", "coalesce", "visible_range"]

Range = tuple[int, int]


def coalesce(ranges: Iterable[Range]) -> list[Range]:
    """Merge overlapping or adjacent ``(top, bottom)`` ranges.

    Examples
    --------
    >>> coalesce([(12, 20), (5, 10), (25, 30)])
    [(5, 10), (12, 20), (25, 30)]
    >>> coalesce([(5, 10), (11, 20)])
    [(5, 20)]
    """
    ordered = sorted(ranges, key=lambda r: r[0])
    if not ordered:
        return []
    merged = [ordered[0]]
    for start, end in ordered[1:]:
        last_start, last_end = merged[-1]
        if start <= last_end + 1:
            merged[-1] = (last_start, max(last_end, end))
        else:
            merged.append((start, end))
    return merged


def visible_range(
    host: "DocumentHost | PaneHost",
    document: Hashable,
    pane: Hashable,
    margin: int = DEFAULT_MARGIN_LINES,
) -> Range:
    """Return the fold-aware row range shown by ``pane``, padded by ``margin``."""
    top = max(host.pane_topline(pane) - margin, 0)
    bottom = top
    last_row = host.line_count(document) - 1
    remaining = host.pane_height(pane) + 2 * margin
    while bottom < last_row and remaining > 0:
        bottom += 1
        if host.row_visible(pane, bottom):
            remaining -= 1
    return (top, bottom)


@dataclass
class View:
    """Merged visible ranges of one document across all of its panes.

    Parameters
    ----------
    document : Hashable
        Document the ranges refer to.
    ranges : list[tuple[int, int]]
        Sorted, disjoint, non-adjacent inclusive row ranges.
    """

    document: Hashable
    ranges: list[Range] = field(default_factory=list)

    @classmethod
    def build(
        cls,
        host: "DocumentHost | PaneHost",
        document: Hashable,
        margin: int = DEFAULT_MARGIN_LINES,
    ) -> View:
        panes = host.panes(document)
        if not panes:
            return cls(document=document, ranges=[(0, 0)])
        per_pane = [visible_range(host, document, pane, margin) for pane in panes]
        return cls(document=document, ranges=coalesce(per_pane))

    def overlaps(self, start_row: int, end_row: int) -> bool:
        return any(start_row <= bottom and end_row >= top for top, bottom in self.ranges)

    def contains(self, row: int) -> bool:
        return self.overlaps(row, row)

    def combined(self) -> Range:
        """Return the ``(min top, max bottom)`` envelope, ``(0, 0)`` when empty."""
        if not self.ranges:
            return (0, 0)
        return (
            min(top for top, _ in self.ranges),
            max(bottom for _, bottom in self.ranges),
        )

    def __iter__(self) -> Iterator[Range]:
        return iter(self.ranges)
