"""Lay SymPy expressions out as glyph grids.

:class:`GridRenderer` walks a SymPy expression and composes
:class:`~texoverlay.grid.Grid` nodes with the box helpers from
:mod:`texoverlay.grid`, so every leaf keeps its kind and offset for
colorization. Sums, products, fractions, powers, roots, function calls and
relations get dedicated layouts; anything else is drawn by SymPy's own pretty
printer as a single symbol leaf.
"""

from __future__ import annotations

import re
from typing import Any

from sympy import Basic, Pow, S, Symbol, fraction as split_fraction, sstr, sympify
from sympy.core.relational import Relational
from sympy.printing.precedence import PRECEDENCE, precedence
from sympy.printing.pretty.pretty import PrettyPrinter

from .errors import FormulaRenderError
from .grid import Grid, GridKind, fraction, hbox, parenthesize, superscript

__all__ = ["GridRenderer", "render_grid"]

# lark keeps the braces of a subscript in the symbol name: ``y_{1}``.
_BRACED_SUBSCRIPT = re.compile(r"_\{([^{}]*)\}")

_RELATION_SYMBOLS = {
    "==": ("=", "="),
    "!=": ("≠", "!="),
    "<": ("<", "<"),
    "<=": ("≤", "<="),
    ">": (">", ">"),
    ">=": ("≥", ">="),
}


class GridRenderer:
    """Render SymPy expressions to :class:`~texoverlay.grid.Grid` trees.

    Parameters
    ----------
    use_unicode : bool, default=True
        Use Unicode operators, fraction bars and tall parentheses.
    """

    def __init__(self, *, use_unicode: bool = True) -> None:
        self._unicode = use_unicode
        self._printer = PrettyPrinter({"use_unicode": use_unicode})
        self._times = "⋅" if use_unicode else "*"
        self._root = "√" if use_unicode else "sqrt"
        self._bar = "─" if use_unicode else "-"

    def render(self, expression: Any) -> Grid:
        """Return the grid of ``expression``.

        Raises
        ------
        FormulaRenderError
            If the expression cannot be laid out.
        """
        try:
            return self._render(sympify(expression))
        except FormulaRenderError:
            raise
        except Exception as exc:
            raise FormulaRenderError(f"Cannot lay out {expression!r}: {exc}") from exc

    def _render(self, expr: Basic) -> Grid:
        if isinstance(expr, Relational):
            return self._relation(expr)
        if expr.is_Integer or expr.is_Float:
            return self._number(expr)
        if expr.is_Rational:
            return self._rational(expr)
        if expr.is_Symbol:
            return self._symbol(expr)
        if expr.is_Atom and expr.is_number:
            return self._pretty(expr, GridKind.SYMBOL, str(expr))
        if expr.is_Add:
            return self._add(expr)
        if expr.is_Mul:
            return self._mul(expr)
        if expr.is_Pow:
            return self._pow(expr)
        if expr.is_Function:
            return self._function(expr)
        return self._pretty(expr, GridKind.SYMBOL, str(expr))

    def _op(self, text: str) -> Grid:
        return Grid.leaf(GridKind.OPERATOR, text, content=text)

    def _paren(self, grid: Grid) -> Grid:
        return parenthesize(grid, unicode=self._unicode)

    def _symbol(self, expr: Symbol) -> Grid:
        name = _BRACED_SUBSCRIPT.sub(r"_\1", expr.name)
        if name != expr.name:
            expr = Symbol(name, **expr.assumptions0)
        return self._pretty(expr, GridKind.VARIABLE, name)

    def _pretty(self, expr: Basic, kind: GridKind, content: str) -> Grid:
        form = self._printer._print(expr)
        return Grid(kind, tuple(form.picture), form.baseline, content)

    def _number(self, expr: Basic) -> Grid:
        text = sstr(abs(expr), full_prec=False)
        leaf = Grid.leaf(GridKind.NUMBER, text, content=text)
        if expr.is_negative:
            return hbox([self._op("-"), leaf])
        return leaf

    def _rational(self, expr: Basic) -> Grid:
        body = fraction(self._number(S(abs(expr.p))), self._number(S(expr.q)), bar=self._bar)
        if expr.is_negative:
            return hbox([self._op("-"), body])
        return body

    def _add(self, expr: Basic) -> Grid:
        parts: list[Grid] = []
        for i, term in enumerate(expr.as_ordered_terms()):
            negative = term.could_extract_minus_sign()
            body = self._render(-term if negative else term)
            if i == 0:
                if negative:
                    parts.append(self._op("-"))
            else:
                parts.append(self._op(" - " if negative else " + "))
            parts.append(body)
        return hbox(parts)

    def _mul(self, expr: Basic) -> Grid:
        numerator, denominator = split_fraction(expr)
        if denominator != 1:
            negative = numerator.could_extract_minus_sign()
            body = fraction(
                self._render(-numerator if negative else numerator),
                self._render(denominator),
                bar=self._bar,
            )
            return hbox([self._op("-"), body]) if negative else body

        factors = list(expr.as_ordered_factors())
        parts: list[Grid] = []
        if factors and factors[0] == S.NegativeOne:
            parts.append(self._op("-"))
            factors = factors[1:]
        if not factors:
            return self._number(S.NegativeOne)
        for i, factor in enumerate(factors):
            if i:
                parts.append(self._op(self._times))
            grid = self._render(factor)
            leading_coefficient = i == 0 and factor.is_Number
            if precedence(factor) < PRECEDENCE["Mul"] and not leading_coefficient:
                grid = self._paren(grid)
            parts.append(grid)
        return hbox(parts)

    def _pow(self, expr: Basic) -> Grid:
        base, exponent = expr.base, expr.exp
        if exponent == S.Half:
            radicand = self._render(base)
            if not base.is_Atom:
                radicand = self._paren(radicand)
            return hbox([self._op(self._root), radicand])
        if exponent.is_Rational and exponent.is_negative:
            return fraction(self._number(S.One), self._render(Pow(base, -exponent)), bar=self._bar)

        base_grid = self._render(base)
        if precedence(base) <= PRECEDENCE["Pow"]:
            base_grid = self._paren(base_grid)
        return superscript(base_grid, self._render(exponent))

    def _function(self, expr: Basic) -> Grid:
        name = getattr(expr.func, "__name__", str(expr.func))
        head = Grid.leaf(GridKind.SYMBOL, name, content=name)
        args: list[Grid] = []
        for i, arg in enumerate(expr.args):
            if i:
                args.append(self._op(", "))
            args.append(self._render(arg))
        inner = hbox(args) if args else Grid.leaf(GridKind.CONTAINER, "")
        return hbox([head, self._paren(inner)])

    def _relation(self, expr: Relational) -> Grid:
        unicode_symbol, ascii_symbol = _RELATION_SYMBOLS.get(expr.rel_op, (expr.rel_op, expr.rel_op))
        symbol = unicode_symbol if self._unicode else ascii_symbol
        return hbox([self._render(expr.lhs), self._op(f" {symbol} "), self._render(expr.rhs)])


def render_grid(expression: Any, *, use_unicode: bool = True) -> Grid:
    """Convenience wrapper around :meth:`GridRenderer.render`."""
    return GridRenderer(use_unicode=use_unicode).render(expression)
