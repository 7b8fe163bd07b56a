"""Top-level public API for the ``texoverlay`` package.

This module re-exports the engine surface so hosts can import from a single
namespace, for example:

>>> from texoverlay import LayoutEngine, OverlayManager  # doctest: +SKIP
>>> manager = OverlayManager(host, LayoutEngine(host).layout)  # doctest: +SKIP
>>> manager.toggle("notes.tex")  # doctest: +SKIP

It exposes both the high-level manager and the lower-level building blocks
(viewport model, decoration store, grids and the capability protocols) for
custom hosts and backends.
"""

from .capabilities import (
    DecorationHost,
    DocumentHost,
    EditorHost,
    ExpressionBackend,
    MathLocator,
    MathRegion,
    PaneHost,
    SignalHost,
)
from .config import AntiConcealConfig, OverlayConfig
from .context import ContextRegistry, RenderContext
from .decorations import (
    FORCE_CONCEAL,
    Chunk,
    Decoration,
    DecorationStore,
    InlineText,
    PlacementResult,
    Replacement,
    Style,
    VirtualLines,
)
from .errors import (
    DocumentError,
    FormulaParseError,
    FormulaRenderError,
    OverlayError,
    PlacementError,
    StructuralError,
)
from .events import ALL_SIGNALS, EditorEvent, SignalKind
from .grid import Grid, GridChild, GridError, GridKind
from .layout import LayoutEngine, drawing, strip_delimiters
from .manager import OverlayManager
from .mathzones import DelimiterLocator, in_mathzone
from .memory_host import MemoryEditor
from .scheduler import Scheduler, SchedulerState
from .sympy_backend import LatexParseError, SympyBackend, parse_latex
from .view import View, coalesce, visible_range

__version__ = "0.1.0"
