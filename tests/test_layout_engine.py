from __future__ import annotations

import pytest

from texoverlay.decorations import InlineText, Replacement, Style, VirtualLines
from texoverlay.errors import FormulaParseError, StructuralError
from texoverlay.grid import Grid, GridKind, hbox
from texoverlay.layout import LayoutEngine, drawing, strip_delimiters


class _TableBackend:
    """Expression backend returning canned grids keyed by formula text."""

    def __init__(self, grids: dict[str, Grid]) -> None:
        self.grids = grids
        self.parsed: list[str] = []

    def parse(self, text: str) -> str:
        self.parsed.append(text)
        if text not in self.grids:
            raise FormulaParseError(f"unknown formula {text!r}")
        return text

    def render(self, expression: str) -> Grid:
        return self.grids[expression]


class _BrokenLocator:
    def regions(self, host, document, top, bottom):
        raise StructuralError("no parser for this document")


def _leaf(text: str, anchor_row: int = 0, kind: GridKind = GridKind.CONTAINER) -> Grid:
    return Grid.leaf(kind, text, anchor_row=anchor_row)


def _layout(editor, lines: list[str], grids: dict[str, Grid], top: int = 0, bottom: int = 100):
    editor.open_document("doc", lines)
    backend = _TableBackend(grids)
    engine = LayoutEngine(editor, backend=backend)
    return engine.layout("doc", top, bottom), backend


def _of(records, payload_type):
    return [r for r in records if isinstance(r.payload, payload_type)]


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("$x$", "x"),
        ("$$x^2$$", "x^2"),
        (r"\[ y \]", "y"),
        (r"\( a+b \)", "a+b"),
        (r"\begin{equation*} e=mc^2 \end{equation*}", "e=mc^2"),
        ("$  $", ""),
    ],
)
def test_strip_delimiters(raw: str, expected: str) -> None:
    assert strip_delimiters(raw) == expected


def test_end_to_end_single_inline_formula(editor) -> None:
    x = Grid.leaf(GridKind.VARIABLE, "x", content="x")
    records, _ = _layout(editor, ["intro", "", "", "$x$"], {"x": x})

    assert _of(records, VirtualLines) == []
    assert _of(records, InlineText) == []
    assert all(r.row == 3 for r in records)
    assert [r.col for r in records] == [0, 1, 2]
    assert [r.payload.end_col for r in records] == [1, 2, 3]
    assert records[0].payload == Replacement(3, 1, "x", Style.STRING)
    assert [r.payload.text for r in records[1:]] == ["", ""]
    assert all(r.anti_conceal is True for r in records)

    placed = [editor.place("ns", "doc", r.row, r.col, r.payload) for r in records]
    assert len(placed) == 3


def test_row_offset_accumulates_left_to_right(editor) -> None:
    line = "$aaaaaaaa$ $bbbbbb$"
    grids = {
        "aaaaaaaa": _leaf("^^^^\nAAAA", anchor_row=1),
        "bbbbbb": _leaf("~~~\nBBB", anchor_row=1),
    }
    records, _ = _layout(editor, [line], grids)

    (above,) = _of(records, VirtualLines)
    assert above.payload.above is True
    (text,) = above.payload.texts()
    source_col = line.index("$bbbbbb$")
    assert source_col == 11
    assert text.index("~~~") == source_col - (10 - 4)
    assert text == "^^^^ ~~~"


def test_overflow_is_inserted_after_span_not_truncated(editor) -> None:
    records, _ = _layout(editor, ["$ab$"], {"ab": _leaf("ABCDEF")})

    replacements = _of(records, Replacement)
    (overflow,) = _of(records, InlineText)

    assert [r.col for r in replacements] == [0, 1, 2, 3]
    assert overflow.col == 4
    assert "".join(r.payload.text for r in replacements) + overflow.payload.text == "ABCDEF"


def test_narrow_render_pads_span_with_empty_cells(editor) -> None:
    records, _ = _layout(editor, ["$abcd$"], {"abcd": _leaf("Q")})

    assert [r.payload.text for r in records] == ["Q", "", "", "", "", ""]
    assert [r.payload.style for r in records[1:]] == [Style.NON_TEXT] * 5


def test_above_lines_are_emitted_furthest_first(editor) -> None:
    grids = {
        "a": _leaf("T\n \nA", anchor_row=2),
        "b": _leaf("U\nB", anchor_row=1),
    }
    records, _ = _layout(editor, ["$a$ $b$"], grids)

    (block,) = _of(records, VirtualLines)
    assert block.payload.above is True
    assert block.payload.texts() == ["T", "  U"]


def test_below_lines_are_emitted_nearest_first(editor) -> None:
    records, _ = _layout(editor, ["x $a$"], {"a": _leaf("A\n1\n2")})

    (block,) = _of(records, VirtualLines)
    assert block.row == 0
    assert block.payload.above is False
    assert block.payload.texts() == ["  1", "  2"]
    assert block.anti_conceal is False


def test_double_overflow_on_one_row_keeps_source_order(editor) -> None:
    grids = {"a": _leaf("AAAAA"), "b": _leaf("BBBBB")}
    records, _ = _layout(editor, ["$a$ $b$"], grids)

    overflows = _of(records, InlineText)
    assert [r.col for r in overflows] == [3, 7]
    assert [r.payload.text for r in overflows] == ["AA", "BB"]


def test_multiline_region_blanks_non_anchor_lines(editor) -> None:
    records, _ = _layout(editor, ["$$", "a+b", "$$"], {"a+b": _leaf("Q")})

    for row in (0, 2):
        (blank,) = [r for r in records if r.row == row]
        assert blank.col == 0
        assert blank.payload == Replacement(row, 2, " ", Style.NORMAL)
        assert blank.anti_conceal is True

    anchor = [r for r in records if r.row == 1]
    assert [r.payload.text for r in anchor] == ["Q", "", ""]


def test_malformed_formula_is_skipped_without_aborting_batch(editor) -> None:
    records, backend = _layout(editor, ["$bad$ $x$"], {"x": _leaf("X")})

    assert backend.parsed == ["bad", "x"]
    assert [r.col for r in records] == [6, 7, 8]
    assert records[0].payload.text == "X"


def test_blank_formula_never_reaches_backend(editor) -> None:
    records, backend = _layout(editor, ["$ $ and $\\[\\]$"], {})

    assert records == []
    assert backend.parsed == []


def test_regions_outside_range_are_ignored(editor) -> None:
    lines = ["plain"] * 40 + ["$x$"]
    records, backend = _layout(editor, lines, {"x": _leaf("X")}, top=0, bottom=20)

    assert records == []
    assert backend.parsed == []


def test_structural_failure_yields_empty_pass(editor) -> None:
    editor.open_document("doc", ["$x$"])
    engine = LayoutEngine(editor, locator=_BrokenLocator(), backend=_TableBackend({"x": _leaf("X")}))

    assert engine.layout("doc", 0, 10) == []
    assert engine("doc", 0, 10) == []


def test_colorized_cells_flow_into_records(editor) -> None:
    grid = hbox(
        [
            Grid.leaf(GridKind.NUMBER, "2", content="2"),
            Grid.leaf(GridKind.OPERATOR, "+", content="+"),
            Grid.leaf(GridKind.VARIABLE, "x", content="x"),
        ]
    )
    records, _ = _layout(editor, ["$2+x$"], {"2+x": grid})

    assert [(r.payload.text, r.payload.style) for r in records[:3]] == [
        ("2", Style.NUMBER),
        ("+", Style.OPERATOR),
        ("x", Style.STRING),
    ]


def test_drawing_returns_rows_or_empty() -> None:
    backend = _TableBackend({"x^2": _leaf(" 2\nx", anchor_row=1)})

    assert drawing("$x^2$", backend) == [" 2", "x "]
    assert drawing("$$", backend) == []
    assert drawing("nope", backend) == []
