"""Document lifecycle signals delivered by editor hosts.

This module defines ``SignalKind`` and the immutable ``EditorEvent`` payload
that hosts pass to subscribers registered through
:meth:`texoverlay.capabilities.SignalHost.subscribe`.
"""

from __future__ import annotations

from collections.abc import Hashable
from dataclasses import dataclass
from enum import Enum
from typing import Any

__all__ = ["SignalKind", "EditorEvent", "ALL_SIGNALS"]


class SignalKind(Enum):
    """Lifecycle signals the overlay manager reacts to."""

    PANE_ENTERED = "pane_entered"
    TEXT_CHANGED = "text_changed"
    CURSOR_MOVED = "cursor_moved"
    VIEWPORT_SCROLLED = "viewport_scrolled"
    DOCUMENT_CLOSING = "document_closing"


ALL_SIGNALS: tuple[SignalKind, ...] = tuple(SignalKind)


@dataclass(frozen=True)
class EditorEvent:
    """Normalized lifecycle event emitted by an editor host.

    Parameters
    ----------
    kind : SignalKind
        Which lifecycle signal fired.
    document : Hashable
        Document the signal refers to.
    pane : Hashable or None, optional
        Pane that triggered the signal, when there is one.
    raw : Any, optional
        Host-specific payload (or ``None`` when synthesized).

    Notes
    -----
    Consumers should rely on ``kind`` and ``document``; ``raw`` exists for
    debugging only.

    Examples
    --------
    >>> EditorEvent(SignalKind.TEXT_CHANGED, document="notes.tex")  # doctest: +SKIP
    """

    kind: SignalKind
    document: Hashable
    pane: Hashable | None = None
    raw: Any = None
