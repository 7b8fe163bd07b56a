from __future__ import annotations

import pytest

from texoverlay.decorations import Style
from texoverlay.grid import Grid, GridError, GridKind, fraction, hbox, parenthesize, superscript
from texoverlay.layout import colorize, grid_cells


def _styles(grid: Grid) -> list[list[Style]]:
    cells = grid_cells(grid)
    colorize(grid, cells)
    return [[chunk.style for chunk in row] for row in cells]


def _num(text: str) -> Grid:
    return Grid.leaf(GridKind.NUMBER, text, content=text)


def _var(text: str) -> Grid:
    return Grid.leaf(GridKind.VARIABLE, text, content=text)


def test_superscript_children_use_their_offsets() -> None:
    grid = superscript(_var("x"), _num("2"))

    assert grid.text_rows() == [" 2", "x "]
    assert _styles(grid) == [
        [Style.NORMAL, Style.NUMBER],
        [Style.STRING, Style.NORMAL],
    ]


def test_fraction_bar_is_an_operator_row() -> None:
    grid = fraction(_num("1"), _var("x"))

    assert grid.anchor_row == 1
    assert _styles(grid) == [[Style.NUMBER], [Style.OPERATOR], [Style.STRING]]


def test_sum_styles_each_leaf() -> None:
    op = Grid.leaf(GridKind.OPERATOR, " + ", content="+")
    grid = hbox([_var("x"), op, _num("1")])

    assert _styles(grid) == [[Style.STRING] + [Style.OPERATOR] * 3 + [Style.NUMBER]]


@pytest.mark.parametrize(
    ("content", "expected"),
    [("pi", Style.STRING), ("2pi", Style.NUMBER), ("∞", Style.OPERATOR), (None, Style.OPERATOR)],
)
def test_symbol_style_follows_leading_character(content, expected) -> None:
    grid = Grid.leaf(GridKind.SYMBOL, "s", content=content)

    assert _styles(grid) == [[expected]]


def test_tall_parens_are_painted_on_every_row() -> None:
    grid = parenthesize(fraction(_num("1"), _num("2")))

    styles = _styles(grid)
    assert grid.height == 3
    assert [row[0] for row in styles] == [Style.OPERATOR] * 3
    assert [row[-1] for row in styles] == [Style.OPERATOR] * 3
    assert [row[1] for row in styles] == [Style.NUMBER, Style.OPERATOR, Style.NUMBER]


def test_containers_leave_their_own_cells_unstyled() -> None:
    grid = Grid.leaf(GridKind.CONTAINER, "ab")

    assert _styles(grid) == [[Style.NORMAL, Style.NORMAL]]


def test_grid_rejects_bad_shapes() -> None:
    with pytest.raises(GridError):
        Grid(GridKind.CONTAINER, ())
    with pytest.raises(GridError):
        Grid(GridKind.CONTAINER, ("a",), anchor_row=1)
