"""Glyph-grid model produced by formula renderers.

Purpose
-------
A :class:`Grid` is the text-art layout of one formula. It is a tree: every
node knows its own text rows, the row that lines up with the surrounding text
baseline (``anchor_row``), and the offsets of its children relative to its own
origin. The layout engine walks that tree to colorize individual cells.

Concepts and structure
----------------------
- :class:`GridKind` is the closed set of node kinds used for colorization.
- :class:`Grid` is immutable; composite grids are built with :func:`hbox`,
  :func:`vstack`, :func:`superscript` and :func:`parenthesize`, which paint
  children onto a fresh canvas and record their offsets.

Examples
--------
>>> x = Grid.leaf(GridKind.VARIABLE, "x", content="x")
>>> two = Grid.leaf(GridKind.NUMBER, "2", content="2")
>>> print(superscript(x, two))  # doctest: +SKIP
 2
x
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum

from .errors import FormulaRenderError

__all__ = [
    "GridError",
    "GridKind",
    "GridChild",
    "Grid",
    "hbox",
    "vstack",
    "superscript",
    "parenthesize",
    "fraction",
]


_TALL_PARENS = ("⎛", "⎜", "⎝", "⎞", "⎟", "⎠")
_ASCII_PARENS = ("/", "|", "\\", "\\", "|", "/")


class GridError(FormulaRenderError):
    """Raised when a grid violates its shape invariants."""


class GridKind(Enum):
    """Node kinds understood by the colorization pass."""

    NUMBER = "num"
    SYMBOL = "sym"
    OPERATOR = "op"
    VARIABLE = "var"
    PAREN = "par"
    CONTAINER = "container"


@dataclass(frozen=True)
class GridChild:
    """A child grid placed at ``(dx, dy)`` relative to its parent's origin."""

    grid: "Grid"
    dx: int
    dy: int


@dataclass(frozen=True)
class Grid:
    """Immutable text-art layout node.

    Parameters
    ----------
    kind : GridKind
        Node kind, drives colorization.
    lines : tuple[str, ...]
        Text rows of this node. Shorter rows are padded with spaces to
        :attr:`width` by :meth:`text_rows`.
    anchor_row : int
        Row aligned with the inline text baseline, ``0 <= anchor_row < height``.
    content : str or None
        Literal source text for leaves, used to tell alphabetic symbols from
        numeric ones.
    children : tuple[GridChild, ...]
        Sub-grids with their offsets.

    Raises
    ------
    GridError
        If the grid has no rows or the anchor row is out of range.
    """

    kind: GridKind
    lines: tuple[str, ...]
    anchor_row: int = 0
    content: str | None = None
    children: tuple[GridChild, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "lines", tuple(self.lines))
        object.__setattr__(self, "children", tuple(self.children))
        if not self.lines:
            raise GridError("Grid must have at least one row")
        if not 0 <= self.anchor_row < len(self.lines):
            raise GridError(
                f"anchor_row {self.anchor_row} outside grid of height {len(self.lines)}"
            )

    @classmethod
    def leaf(
        cls,
        kind: GridKind,
        text: str,
        *,
        content: str | None = None,
        anchor_row: int = 0,
    ) -> Grid:
        """Build a childless grid from newline-separated ``text``."""
        return cls(kind=kind, lines=tuple(text.split("\n")), anchor_row=anchor_row, content=content)

    @property
    def width(self) -> int:
        return max(len(line) for line in self.lines)

    @property
    def height(self) -> int:
        return len(self.lines)

    def text_rows(self) -> list[str]:
        """Return exactly ``height`` rows, each padded to ``width``."""
        width = self.width
        return [line.ljust(width) for line in self.lines]

    def __str__(self) -> str:
        return "\n".join(self.text_rows())


def _paint(width: int, height: int, placements: Sequence[GridChild]) -> tuple[str, ...]:
    canvas = [[" "] * width for _ in range(height)]
    for child in placements:
        for y, row in enumerate(child.grid.text_rows()):
            for x, ch in enumerate(row):
                if ch != " ":
                    canvas[child.dy + y][child.dx + x] = ch
    return tuple("".join(row) for row in canvas)


def hbox(items: Sequence[Grid], *, kind: GridKind = GridKind.CONTAINER) -> Grid:
    """Lay ``items`` out left to right with their anchor rows aligned."""
    if not items:
        raise GridError("hbox needs at least one item")
    anchor = max(g.anchor_row for g in items)
    depth = max(g.height - g.anchor_row for g in items)
    children: list[GridChild] = []
    x = 0
    for g in items:
        children.append(GridChild(g, x, anchor - g.anchor_row))
        x += g.width
    return Grid(kind, _paint(x, anchor + depth, children), anchor, None, tuple(children))


def vstack(items: Sequence[Grid], *, anchor_row: int, kind: GridKind = GridKind.CONTAINER) -> Grid:
    """Stack ``items`` top to bottom, each centered horizontally."""
    if not items:
        raise GridError("vstack needs at least one item")
    width = max(g.width for g in items)
    children: list[GridChild] = []
    y = 0
    for g in items:
        children.append(GridChild(g, (width - g.width) // 2, y))
        y += g.height
    return Grid(kind, _paint(width, y, children), anchor_row, None, tuple(children))


def fraction(numerator: Grid, denominator: Grid, *, bar: str = "─") -> Grid:
    """Numerator over a bar over denominator; the bar is the anchor row."""
    rule = Grid.leaf(GridKind.OPERATOR, bar * max(numerator.width, denominator.width))
    return vstack([numerator, rule, denominator], anchor_row=numerator.height)


def superscript(base: Grid, exponent: Grid) -> Grid:
    """Raise ``exponent`` above the top-right corner of ``base``."""
    children = (
        GridChild(base, 0, exponent.height),
        GridChild(exponent, base.width, 0),
    )
    width = base.width + exponent.width
    height = exponent.height + base.height
    return Grid(
        GridKind.CONTAINER,
        _paint(width, height, children),
        exponent.height + base.anchor_row,
        None,
        children,
    )


def parenthesize(inner: Grid, *, unicode: bool = True) -> Grid:
    """Wrap ``inner`` in parentheses that grow with its height."""
    h = inner.height
    if h == 1:
        left = Grid.leaf(GridKind.PAREN, "(")
        right = Grid.leaf(GridKind.PAREN, ")")
    else:
        top_l, mid_l, bot_l, top_r, mid_r, bot_r = _TALL_PARENS if unicode else _ASCII_PARENS
        left = Grid(GridKind.PAREN, (top_l,) + (mid_l,) * (h - 2) + (bot_l,), inner.anchor_row)
        right = Grid(GridKind.PAREN, (top_r,) + (mid_r,) * (h - 2) + (bot_r,), inner.anchor_row)
    return hbox([left, inner, right])
