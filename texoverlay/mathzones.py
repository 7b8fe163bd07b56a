"""Locate math regions in LaTeX or Markdown text by their delimiters.

:class:`DelimiterLocator` is the default structural-location capability. It
recognizes ``$...$``, ``$$...$$``, ``\\(...\\)``, ``\\[...\\]`` and the math
environments ``equation``, ``displaymath``, ``eqnarray``, ``math`` and
``array`` (starred forms included). Escaped dollars (``\\$``) are ignored.
"""

from __future__ import annotations

import bisect
import re
from collections.abc import Hashable
from typing import TYPE_CHECKING

from .capabilities import MathRegion

if TYPE_CHECKING:
    from .capabilities import DocumentHost, MathLocator

__all__ = ["MATH_ENVIRONMENTS", "DelimiterLocator", "scan", "in_mathzone"]

MATH_ENVIRONMENTS = ("displaymath", "eqnarray", "equation", "math", "array")

_MATH_PATTERN = re.compile(
    r"\\begin\{(?P<env>" + "|".join(MATH_ENVIRONMENTS) + r")(?P<star>\*?)\}.*?\\end\{(?P=env)(?P=star)\}"
    r"|(?<!\\)\$\$.+?(?<!\\)\$\$"
    r"|\\\[.+?\\\]"
    r"|\\\(.+?\\\)"
    r"|(?<!\\)\$(?!\$)[^$\n]+?(?<!\\)\$",
    re.DOTALL,
)


class DelimiterLocator:
    """Find delimited math regions intersecting a row range.

    The whole document is scanned so that delimiters opened above ``top``
    still pair up correctly; only regions intersecting ``[top, bottom]`` are
    returned, in source order. The scan of each document is cached until its
    change tick or line count moves, so scrolling and cursor passes reuse it.
    """

    def __init__(self) -> None:
        self._scans: dict[Hashable, tuple[tuple[int, int], list[MathRegion]]] = {}

    def regions(self, host: "DocumentHost", document: Hashable, top: int, bottom: int) -> list[MathRegion]:
        key = (host.change_tick(document), host.line_count(document))
        cached = self._scans.get(document)
        if cached is None or cached[0] != key:
            lines = [host.get_line(document, row) for row in range(key[1])]
            cached = (key, scan(lines))
            self._scans[document] = cached
        return [region for region in cached[1] if region.intersects(top, bottom)]

    def forget(self, document: Hashable) -> None:
        """Drop the cached scan of ``document``."""
        self._scans.pop(document, None)


def scan(lines: list[str]) -> list[MathRegion]:
    """Return every math region of ``lines`` in source order."""
    text = "\n".join(lines)
    starts = [0]
    for line in lines[:-1]:
        starts.append(starts[-1] + len(line) + 1)

    out: list[MathRegion] = []
    for match in _MATH_PATTERN.finditer(text):
        start_row, start_col = _position(starts, match.start())
        end_row, last_col = _position(starts, match.end() - 1)
        out.append(MathRegion(start_row, start_col, end_row, last_col + 1))
    return out


def _position(starts: list[int], offset: int) -> tuple[int, int]:
    row = bisect.bisect_right(starts, offset) - 1
    return row, offset - starts[row]


def in_mathzone(
    host: "DocumentHost",
    document: Hashable,
    row: int,
    col: int,
    locator: "MathLocator | None" = None,
) -> MathRegion | None:
    """Return the math region containing ``(row, col)``, if any."""
    locator = locator if locator is not None else DelimiterLocator()
    for region in locator.regions(host, document, row, row):
        if region.contains(row, col):
            return region
    return None
