from __future__ import annotations

import sys
from pathlib import Path

import pytest

_START = Path(__file__).resolve().parent
_repo_root = _START
while _repo_root != _repo_root.parent and not (_repo_root / "texoverlay" / "__init__.py").exists():
    _repo_root = _repo_root.parent

sys.path.insert(0, str(_repo_root))


class ManualTimer:
    """Timer handle that only fires when a test says so."""

    def __init__(self, delay: float, callback) -> None:
        self.delay = delay
        self.callback = callback
        self.cancelled = False
        self.fired = False

    def cancel(self) -> None:
        self.cancelled = True

    def fire(self) -> None:
        if not self.cancelled and not self.fired:
            self.fired = True
            self.callback()


class ManualTimers:
    """Timer factory recording every timer the scheduler starts."""

    def __init__(self) -> None:
        self.created: list[ManualTimer] = []

    def __call__(self, delay: float, callback) -> ManualTimer:
        timer = ManualTimer(delay, callback)
        self.created.append(timer)
        return timer

    @property
    def active(self) -> list[ManualTimer]:
        return [t for t in self.created if not t.cancelled and not t.fired]

    def fire_all(self) -> int:
        fired = 0
        for timer in list(self.created):
            if not timer.cancelled and not timer.fired:
                timer.fire()
                fired += 1
        return fired


def run_inline(callback) -> None:
    callback()


@pytest.fixture
def timers() -> ManualTimers:
    return ManualTimers()


@pytest.fixture
def editor():
    from texoverlay.memory_host import MemoryEditor

    return MemoryEditor()
