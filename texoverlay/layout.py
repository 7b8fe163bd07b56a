"""Formula-to-screen layout: turn math regions into decoration records.

Purpose
-------
:class:`LayoutEngine` scans a row range of a document, renders every math
region it finds into a :class:`~texoverlay.grid.Grid`, and maps the grid onto
decorations:

- the grid row at ``anchor_row`` replaces the widest source line of the region
  cell by cell (:class:`~texoverlay.decorations.Replacement`), spilling any
  excess width into an inline insertion right after the replaced span;
- rows above and below the anchor become virtual lines, merged with other
  formulas anchored on the same row;
- the remaining source lines of a multi-line region are blanked.

Concealing shrinks a line visually, so formulas that share a row are shifted
left by the width saved by the formulas before them.

Notes
-----
A region that fails to parse or render is skipped; a failing structural
locator yields an empty pass. Neither stops the rest of the batch.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Hashable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, NamedTuple

from .capabilities import MathRegion
from .decorations import Chunk, Decoration, InlineText, Replacement, Style, VirtualLines
from .errors import DocumentError, FormulaParseError, FormulaRenderError, StructuralError
from .grid import Grid, GridKind
from .mathzones import DelimiterLocator
from .sympy_backend import SympyBackend

if TYPE_CHECKING:
    from .capabilities import DocumentHost, ExpressionBackend, MathLocator
    from .context import RenderContext

__all__ = ["LayoutEngine", "strip_delimiters", "colorize", "grid_cells", "drawing"]

logger = logging.getLogger(__name__)
if not logger.handlers:
    logger.addHandler(logging.NullHandler())

_ENVIRONMENT_MARKER = re.compile(r"\\(?:begin|end)\{[A-Za-z]+\*?\}")
_LEADING_PAREN = re.compile(r"^\\\(")
_TRAILING_PAREN = re.compile(r"\\\)$")

_BLANK = Chunk(" ", Style.NORMAL)
_EMPTY = Chunk("", Style.NON_TEXT)


def strip_delimiters(text: str) -> str:
    """Remove math delimiters and surrounding whitespace from ``text``.

    Examples
    --------
    >>> strip_delimiters(r"\\( a+b \\)")
    'a+b'
    >>> strip_delimiters("$$x^2$$")
    'x^2'
    """
    line = text.replace("$", "")
    line = line.replace("\\[", "").replace("\\]", "")
    line = _ENVIRONMENT_MARKER.sub("", line)
    line = _LEADING_PAREN.sub("", line)
    line = _TRAILING_PAREN.sub("", line)
    return line.strip()


# ----------------------------------------------------------------------------
# Colorization
# ----------------------------------------------------------------------------


class _Origin(NamedTuple):
    """Accumulated offset of a grid node inside the root drawing.

    ``first_dx`` applies on the drawing's first row (which may be shifted when
    it is drawn inline), ``dx`` on every other row.
    """

    first_dx: int
    dx: int
    dy: int


def grid_cells(grid: Grid) -> list[list[Chunk]]:
    """Split the grid's text rows into one unstyled chunk per character."""
    return [[Chunk(ch, Style.NORMAL) for ch in row] for row in grid.text_rows()]


def _paint_row(cells: list[list[Chunk]], row: int, start: int, width: int, style: Style) -> None:
    if not 0 <= row < len(cells):
        return
    line = cells[row]
    for col in range(start, start + width):
        if 0 <= col < len(line):
            line[col] = line[col]._replace(style=style)


def _leading_style(content: str | None) -> Style:
    lead = (content or "")[:1]
    if lead.isalpha():
        return Style.STRING
    if lead.isdigit():
        return Style.NUMBER
    return Style.OPERATOR


def colorize(grid: Grid, cells: list[list[Chunk]], origin: _Origin = _Origin(0, 0, 0)) -> None:
    """Assign a style to every cell covered by a styled grid node, recursively."""
    first_row_off = origin.first_dx if origin.dy == 0 else origin.dx
    kind = grid.kind

    if kind is GridKind.NUMBER:
        _paint_row(cells, origin.dy, first_row_off, grid.width, Style.NUMBER)
    elif kind is GridKind.VARIABLE:
        _paint_row(cells, origin.dy, first_row_off, grid.width, Style.STRING)
    elif kind is GridKind.SYMBOL:
        style = _leading_style(grid.content)
        if style is Style.OPERATOR:
            _paint_block(grid, cells, origin)
        else:
            _paint_row(cells, origin.dy, first_row_off, grid.width, style)
    elif kind is GridKind.OPERATOR or kind is GridKind.PAREN:
        _paint_block(grid, cells, origin)
    elif kind is GridKind.CONTAINER:
        pass
    else:
        raise AssertionError(f"unhandled grid kind {kind!r}")

    for child in grid.children:
        colorize(
            child.grid,
            cells,
            _Origin(origin.first_dx + child.dx, origin.dx + child.dx, origin.dy + child.dy),
        )


def _paint_block(grid: Grid, cells: list[list[Chunk]], origin: _Origin) -> None:
    for y in range(grid.height):
        row = origin.dy + y
        off = origin.first_dx if row == 0 else origin.dx
        _paint_row(cells, row, off, grid.width, Style.OPERATOR)


# ----------------------------------------------------------------------------
# Layout pass
# ----------------------------------------------------------------------------


@dataclass
class _VirtualBlock:
    """Virtual lines collected for one anchor row, keyed by distance from it."""

    above: dict[int, list[Chunk]] = field(default_factory=dict)
    below: dict[int, list[Chunk]] = field(default_factory=dict)

    def merge(self, relative_row: int, visual_col: int, chunks: list[Chunk]) -> None:
        slots = self.above if relative_row < 0 else self.below
        index = abs(relative_row)
        existing = slots.get(index)
        if existing is None:
            slots[index] = [_BLANK] * max(visual_col, 0) + list(chunks)
            return
        existing.extend([_BLANK] * (visual_col - len(existing)))
        existing.extend(chunks)

    def records(self, row: int) -> list[Decoration]:
        out: list[Decoration] = []
        if self.above:
            lines = tuple(tuple(self.above[i]) for i in sorted(self.above, reverse=True))
            out.append(Decoration(row, 0, VirtualLines(lines, above=True), anti_conceal=False))
        if self.below:
            lines = tuple(tuple(self.below[i]) for i in sorted(self.below))
            out.append(Decoration(row, 0, VirtualLines(lines, above=False), anti_conceal=False))
        return out


class _LayoutPass:
    def __init__(self, host: "DocumentHost", document: Hashable) -> None:
        self._host = host
        self._document = document
        self.records: list[Decoration] = []
        self.row_offsets: dict[int, int] = {}
        self.blocks: dict[int, _VirtualBlock] = {}

    def source_span(self, region: MathRegion, row: int) -> tuple[int, int]:
        """Columns of ``row`` that belong to ``region``."""
        if region.start_row == region.end_row:
            return region.start_col, region.end_col
        if row == region.start_row:
            return region.start_col, len(self._host.get_line(self._document, row))
        if row == region.end_row:
            return 0, region.end_col
        return 0, len(self._host.get_line(self._document, row))

    def anchor_line(self, region: MathRegion) -> int:
        """Widest source line of the region; the first one wins ties."""
        anchor = region.start_row
        longest = -1
        for row in range(region.start_row, region.end_row + 1):
            p1, p2 = self.source_span(region, row)
            if p2 - p1 > longest:
                anchor, longest = row, p2 - p1
        return anchor

    def place(self, region: MathRegion, grid: Grid) -> None:
        cells = grid_cells(grid)
        colorize(grid, cells)

        anchor = self.anchor_line(region)
        p1, p2 = self.source_span(region, anchor)

        prev_offset = self.row_offsets.get(anchor, 0)
        visual_col = p1 - prev_offset
        self.row_offsets[anchor] = prev_offset + (p2 - p1) - grid.width

        block = self.blocks.setdefault(anchor, _VirtualBlock())
        for row_index, chunks in enumerate(cells):
            relative_row = row_index - grid.anchor_row
            if relative_row == 0:
                self._place_inline(anchor, p1, p2, chunks)
            else:
                block.merge(relative_row, visual_col, chunks)

        for row in range(region.start_row, region.end_row + 1):
            if row == anchor:
                continue
            s1, s2 = self.source_span(region, row)
            if s2 > s1:
                self.records.append(
                    Decoration(row, s1, Replacement(row, s2, " ", Style.NORMAL), anti_conceal=True)
                )

    def _place_inline(self, row: int, p1: int, p2: int, chunks: list[Chunk]) -> None:
        padded = list(chunks) + [_EMPTY] * max(0, (p2 - p1) - len(chunks))
        for j, chunk in enumerate(padded):
            col = p1 + j
            if col < p2:
                self.records.append(
                    Decoration(row, col, Replacement(row, col + 1, chunk.text, chunk.style), anti_conceal=True)
                )
                continue
            if not chunk.text:
                continue
            overflow = tuple(c for c in padded[j:] if c.text)
            if overflow:
                self.records.append(Decoration(row, p2, InlineText(overflow), anti_conceal=True))
            break

    def finish(self) -> list[Decoration]:
        for row, block in self.blocks.items():
            self.records.extend(block.records(row))
        return self.records


class LayoutEngine:
    """Lay rendered formulas of a document region onto decoration records.

    Parameters
    ----------
    host : DocumentHost
        Source of document text.
    locator : MathLocator, optional
        Finds math regions. Defaults to :class:`~texoverlay.mathzones.DelimiterLocator`.
    backend : ExpressionBackend, optional
        Parses and renders formula text. Defaults to
        :class:`~texoverlay.sympy_backend.SympyBackend`.

    Examples
    --------
    >>> engine = LayoutEngine(host)  # doctest: +SKIP
    >>> manager = OverlayManager(host, engine.layout)  # doctest: +SKIP
    """

    def __init__(
        self,
        host: "DocumentHost",
        *,
        locator: "MathLocator | None" = None,
        backend: "ExpressionBackend | None" = None,
    ) -> None:
        self._host = host
        self._locator = locator if locator is not None else DelimiterLocator()
        self._backend = backend if backend is not None else SympyBackend()

    def __call__(
        self,
        document: Hashable,
        top: int,
        bottom: int,
        context: "RenderContext | None" = None,
    ) -> list[Decoration]:
        return self.layout(document, top, bottom, context)

    def layout(
        self,
        document: Hashable,
        top: int,
        bottom: int,
        context: "RenderContext | None" = None,
    ) -> list[Decoration]:
        """Return decoration records for every formula intersecting ``[top, bottom]``."""
        try:
            regions = self._locator.regions(self._host, document, top, bottom)
        except StructuralError as exc:
            logger.debug("No math regions for %r: %s", document, exc)
            return []

        layout_pass = _LayoutPass(self._host, document)
        for region in regions:
            if not region.intersects(top, bottom):
                continue
            grid = self.render_region(document, region)
            if grid is None:
                continue
            layout_pass.place(region, grid)
        return layout_pass.finish()

    def render_region(self, document: Hashable, region: MathRegion) -> Grid | None:
        """Render one region, or ``None`` when it should be skipped."""
        try:
            texts = self._host.get_text(
                document, region.start_row, region.start_col, region.end_row, region.end_col
            )
        except DocumentError as exc:
            logger.debug("Cannot read region %r: %s", region, exc)
            return None
        return _render_formula(self._backend, " ".join(texts))


def _render_formula(backend: "ExpressionBackend", text: str) -> Grid | None:
    formula = strip_delimiters(text)
    if not formula:
        return None
    try:
        grid = backend.render(backend.parse(formula))
    except (FormulaParseError, FormulaRenderError) as exc:
        logger.debug("Skipping formula %r: %s", formula, exc)
        return None
    if grid.width == 0:
        return None
    return grid


def drawing(text: str, backend: "ExpressionBackend | None" = None) -> list[str]:
    """Render formula ``text`` to its text rows, ``[]`` when it cannot be drawn."""
    grid = _render_formula(backend if backend is not None else SympyBackend(), text)
    if grid is None:
        return []
    return grid.text_rows()
