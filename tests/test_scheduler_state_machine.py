from __future__ import annotations

import logging

import pytest

from conftest import run_inline
from texoverlay.config import OverlayConfig
from texoverlay.context import ContextRegistry
from texoverlay.decorations import Decoration, Replacement
from texoverlay.scheduler import Scheduler, SchedulerState


class _CountingLayout:
    def __init__(self, scheduler_ref: list | None = None) -> None:
        self.calls: list[tuple[int, int]] = []
        self.states: list[SchedulerState] = []
        self.scheduler_ref = scheduler_ref

    def __call__(self, document, top, bottom, context):
        self.calls.append((top, bottom))
        if self.scheduler_ref:
            self.states.append(self.scheduler_ref[0].state)
        return [
            Decoration(5, 0, Replacement(5, 1, "a"), anti_conceal=True),
            Decoration(8, 0, Replacement(8, 1, "b"), anti_conceal=True),
        ]


def _scheduler(editor, timers, layout=None, config=None) -> Scheduler:
    editor.open_document("doc", ["text"] * 50)
    editor.open_pane("p", "doc", height=10)
    return Scheduler(
        editor,
        "doc",
        layout=layout if layout is not None else _CountingLayout(),
        contexts=ContextRegistry(editor, margin=5),
        config=config,
        timer_factory=timers,
        dispatcher=run_inline,
    )


def test_leading_edge_debounce_fires_once_per_window(editor, timers) -> None:
    scheduler = _scheduler(editor, timers)
    calls: list[int] = []

    for _ in range(5):
        scheduler.schedule(True, 100, lambda: calls.append(1))

    assert calls == [1]
    assert scheduler.state is SchedulerState.DEBOUNCE_OPEN
    assert len(timers.created) == 5
    assert len(timers.active) == 1
    assert timers.active[0].delay == pytest.approx(0.1)

    assert timers.fire_all() == 1
    assert scheduler.state is SchedulerState.IDLE

    scheduler.schedule(True, 100, lambda: calls.append(1))
    assert calls == [1, 1]


def test_no_reparse_needed_dispatches_without_timer(editor, timers) -> None:
    scheduler = _scheduler(editor, timers)
    scheduler.render()
    calls: list[int] = []

    scheduler.schedule(False, 100, lambda: calls.append(1))
    scheduler.schedule(False, 100, lambda: calls.append(1))

    assert calls == [1, 1]
    assert timers.created == []
    assert scheduler.state is SchedulerState.IDLE


def test_zero_debounce_dispatches_every_request(editor, timers) -> None:
    scheduler = _scheduler(editor, timers)
    calls: list[int] = []

    for _ in range(3):
        scheduler.schedule(True, 0, lambda: calls.append(1))

    assert calls == [1, 1, 1]
    assert timers.created == []


def test_viewport_containment_skips_layout(editor, timers) -> None:
    layout = _CountingLayout()
    scheduler = _scheduler(editor, timers, layout=layout)

    scheduler.render()
    assert layout.calls == [(0, 20)]
    assert scheduler.store.rendered_range == (0, 20)

    editor.move_cursor("p", 7)
    scheduler.render()
    editor.scroll("p", 3)
    scheduler.render()
    assert len(layout.calls) == 1

    editor.scroll("p", 15)
    scheduler.render()
    assert len(layout.calls) == 2

    editor.set_line("doc", 0, "edited")
    scheduler.render()
    assert len(layout.calls) == 3


def test_forced_render_runs_layout_once_then_resets(editor, timers) -> None:
    layout = _CountingLayout()
    scheduler = _scheduler(editor, timers, layout=layout)
    scheduler.render()

    scheduler.force = True
    scheduler.render()
    scheduler.render()

    assert len(layout.calls) == 2
    assert scheduler.force is False


def test_layout_runs_in_rendering_state(editor, timers) -> None:
    ref: list = []
    layout = _CountingLayout(ref)
    scheduler = _scheduler(editor, timers, layout=layout)
    ref.append(scheduler)

    scheduler.schedule(True, 100, scheduler.render_if_valid)

    assert layout.states == [SchedulerState.RENDERING]
    assert scheduler.state is SchedulerState.DEBOUNCE_OPEN


def test_cursor_motion_only_toggles_visibility(editor, timers) -> None:
    layout = _CountingLayout()
    config = OverlayConfig()
    scheduler = _scheduler(editor, timers, layout=layout, config=config)

    editor.move_cursor("p", 5)
    scheduler.render()
    assert {p.row for p in editor.placements("doc")} == {8}

    editor.move_cursor("p", 8)
    scheduler.render()
    assert {p.row for p in editor.placements("doc")} == {5}
    assert len(layout.calls) == 1

    config.anti_conceal.enabled = False
    scheduler.display()
    assert {p.row for p in editor.placements("doc")} == {5, 8}


def test_hidden_range_uses_lines_above_and_below(editor, timers) -> None:
    config = OverlayConfig.from_mapping({"anti_conceal": {"above": 1, "below": 2}})
    scheduler = _scheduler(editor, timers, config=config)

    editor.move_cursor("p", 5)
    assert scheduler.hidden() == (4, 7)

    config.anti_conceal.enabled = False
    assert scheduler.hidden() is None


def test_render_if_valid_is_noop_after_close_or_destroy(editor, timers) -> None:
    layout = _CountingLayout()
    scheduler = _scheduler(editor, timers, layout=layout)

    scheduler.destroy()
    scheduler.render_if_valid()
    assert layout.calls == []

    other = Scheduler(
        editor,
        "doc",
        layout=layout,
        contexts=ContextRegistry(editor),
        timer_factory=timers,
        dispatcher=run_inline,
    )
    editor.close_document("doc")
    other.render_if_valid()
    assert layout.calls == []


def test_destroy_cancels_timer_and_clears_records(editor, timers) -> None:
    layout = _CountingLayout()
    contexts = ContextRegistry(editor, margin=5)
    editor.open_document("doc", ["text"] * 50)
    editor.open_pane("p", "doc", height=10)
    scheduler = Scheduler(
        editor, "doc", layout=layout, contexts=contexts, timer_factory=timers, dispatcher=run_inline
    )

    scheduler.schedule(True, 100, scheduler.render_if_valid)
    assert len(editor.placements("doc")) == 2
    assert "doc" in contexts

    scheduler.destroy()

    assert timers.created[0].cancelled
    assert scheduler.state is SchedulerState.IDLE
    assert len(scheduler.store) == 0
    assert editor.placements("doc") == []
    assert "doc" not in contexts


def test_render_logs_summary_at_info(editor, timers, caplog) -> None:
    scheduler = _scheduler(editor, timers)

    with caplog.at_level(logging.INFO, logger="texoverlay.scheduler"):
        scheduler.render()

    assert "records=2" in caplog.text
