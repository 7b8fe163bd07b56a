from __future__ import annotations

from texoverlay.context import ContextRegistry


def _setup(editor) -> ContextRegistry:
    editor.open_document("doc", [f"row {i}" for i in range(200)])
    editor.open_pane("p", "doc", height=10, topline=50)
    return ContextRegistry(editor, margin=10)


def test_get_creates_context_once_and_refreshes_in_place(editor) -> None:
    registry = _setup(editor)

    ctx = registry.get("doc")
    assert ctx.pane == "p"
    assert ctx.mode == "n"
    assert ctx.get_range() == (40, 70)

    editor.scroll("p", 100)
    editor.set_mode("i")
    again = registry.get("doc")

    assert again is ctx
    assert ctx.get_range() == (90, 120)
    assert ctx.mode == "i"
    assert len(registry) == 1


def test_contains_compares_padded_pane_range_with_cached_envelope(editor) -> None:
    registry = _setup(editor)
    assert not registry.contains("doc", "p")

    registry.get("doc")
    assert registry.contains("doc", "p")

    editor.scroll("p", 55)
    assert not registry.contains("doc", "p")

    editor.scroll("p", 50)
    assert registry.contains("doc", "p")


def test_clear_drops_the_context(editor) -> None:
    registry = _setup(editor)
    ctx = registry.get("doc")
    assert "doc" in registry
    assert registry.peek("doc") is ctx

    registry.clear("doc")

    assert "doc" not in registry
    assert registry.peek("doc") is None
    assert registry.get("doc") is not ctx


def test_in_view_uses_merged_ranges(editor) -> None:
    registry = _setup(editor)
    ctx = registry.get("doc")

    assert ctx.in_view(60, 65)
    assert ctx.in_view(0, 40)
    assert not ctx.in_view(71, 80)
