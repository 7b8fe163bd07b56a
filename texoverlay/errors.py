"""Exception taxonomy for the overlay engine.

Every failure raised inside ``texoverlay`` derives from :class:`OverlayError`.
None of them is fatal: the layout engine skips a formula on
:class:`FormulaParseError` / :class:`FormulaRenderError`, decoration records
report :class:`PlacementError` as a failed result, and a
:class:`StructuralError` empties a single layout pass.
"""

from __future__ import annotations

__all__ = [
    "OverlayError",
    "DocumentError",
    "FormulaParseError",
    "FormulaRenderError",
    "PlacementError",
    "StructuralError",
]


class OverlayError(RuntimeError):
    """Base class for all overlay engine errors."""


class DocumentError(OverlayError):
    """Raised when a document handle or text span is no longer valid."""


class FormulaParseError(OverlayError, ValueError):
    """Raised when formula text cannot be parsed into an expression tree."""


class FormulaRenderError(OverlayError):
    """Raised when an expression tree cannot be laid out as a non-empty grid."""


class PlacementError(OverlayError):
    """Raised when the host rejects placing or removing a decoration."""


class StructuralError(OverlayError):
    """Raised when math regions cannot be located for a document."""
