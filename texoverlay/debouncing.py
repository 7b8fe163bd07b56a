"""Timer and next-tick helpers used by the overlay scheduler.

The scheduler never touches a timer primitive directly. It receives a
``TimerFactory`` and a ``Dispatcher`` so its debounce state machine can be
driven by fakes in tests. The default implementations follow one rule: use the
running ``asyncio`` loop when there is one, otherwise fall back to a daemon
``threading.Timer`` (timers) or an inline call (dispatch).

Callbacks run through these helpers are guarded: an exception is logged and
never reaches the host's event loop.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from typing import Any, Callable, Protocol

__all__ = ["TimerHandle", "TimerFactory", "Dispatcher", "start_timer", "call_soon"]

logger = logging.getLogger(__name__)
if not logger.handlers:
    logger.addHandler(logging.NullHandler())


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


TimerFactory = Callable[[float, Callable[[], None]], TimerHandle]
Dispatcher = Callable[[Callable[[], None]], Any]


def _guarded(callback: Callable[[], None], label: str) -> Callable[[], None]:
    def _run() -> None:
        try:
            callback()
        except Exception:
            logger.exception("Deferred overlay %s callback failed", label)

    return _run


def start_timer(delay_s: float, callback: Callable[[], None]) -> TimerHandle:
    """Run ``callback`` once after ``delay_s`` seconds; return a cancellable handle."""
    guarded = _guarded(callback, "timer")
    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        timer = threading.Timer(delay_s, guarded)
        timer.daemon = True
        timer.start()
        return timer

    return loop.call_later(delay_s, guarded)


def call_soon(callback: Callable[[], None]) -> None:
    """Dispatch ``callback`` on the next loop tick, or inline without a loop."""
    guarded = _guarded(callback, "dispatch")
    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        guarded()
        return

    loop.call_soon(guarded)
