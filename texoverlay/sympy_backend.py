"""SymPy-backed expression capability.

Formula text is parsed with SymPy's LaTeX parser, preferring the ``lark``
backend and falling back to ``antlr`` (whichever parser runtime is installed
wins). Parsed expressions are laid out as glyph grids by
:class:`~texoverlay.grid_render.GridRenderer`.
"""

from __future__ import annotations

from typing import Any

from sympy import Basic
from sympy.parsing.latex import parse_latex as _sympy_parse_latex

from .errors import FormulaParseError
from .grid import Grid
from .grid_render import GridRenderer

__all__ = ["LatexParseError", "parse_latex", "SympyBackend"]


class LatexParseError(FormulaParseError):
    """Raised when no configured SymPy LaTeX backend can parse the input."""


def parse_latex(tex: str, *, backend: str | None = None) -> Basic:
    """Parse LaTeX ``tex`` into a SymPy expression.

    Parameters
    ----------
    tex : str
        Formula body without math delimiters.
    backend : {"lark", "antlr"} or None
        Force one SymPy parser backend. ``None`` tries ``lark`` then ``antlr``.

    Returns
    -------
    sympy.Basic
        Parsed expression.

    Raises
    ------
    LatexParseError
        If every attempted backend fails or returns something that is not a
        SymPy expression.

    Examples
    --------
    >>> parse_latex(r"\\frac{1}{x}")  # doctest: +SKIP
    1/x
    """
    backends = (backend,) if backend is not None else ("lark", "antlr")
    errors: list[str] = []
    for name in backends:
        try:
            result = _sympy_parse_latex(tex, backend=name)
        except Exception as exc:
            errors.append(f"{name}: {type(exc).__name__}: {exc}")
            continue
        if isinstance(result, Basic):
            return result
        errors.append(f"{name}: returned non-SymPy result ({type(result).__name__})")

    raise LatexParseError(f"Failed to parse LaTeX {tex!r}; " + "; ".join(errors))


class SympyBackend:
    """Expression capability built on SymPy.

    Parameters
    ----------
    use_unicode : bool, default=True
        Draw with Unicode box characters and Greek letters.
    """

    def __init__(self, *, use_unicode: bool = True) -> None:
        self._renderer = GridRenderer(use_unicode=use_unicode)

    def parse(self, text: str) -> Basic:
        return parse_latex(text)

    def render(self, expression: Any) -> Grid:
        return self._renderer.render(expression)
