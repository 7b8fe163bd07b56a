"""Overlay configuration objects.

Configuration is held in ``traitlets`` objects so values are type-checked on
assignment and the manager can observe changes (for example, a new margin
forces a re-render of every attached document).

Examples
--------
>>> cfg = OverlayConfig.from_mapping({"debounce": 50, "anti_conceal": {"above": 1}})
>>> cfg.debounce_ms, cfg.anti_conceal.above
(50, 1)
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

import traitlets

__all__ = ["AntiConcealConfig", "OverlayConfig", "DEFAULT_MARGIN_LINES"]

DEFAULT_MARGIN_LINES = 10

_TOP_LEVEL_ALIASES = {
    "debounce": "debounce_ms",
    "debounce_ms": "debounce_ms",
    "debounceMs": "debounce_ms",
    "margin": "margin_lines",
    "margin_lines": "margin_lines",
    "marginLines": "margin_lines",
    "anti_conceal": "anti_conceal",
    "antiConceal": "anti_conceal",
}

_ANTI_CONCEAL_ALIASES = {
    "enabled": "enabled",
    "above": "above",
    "linesAbove": "above",
    "lines_above": "above",
    "below": "below",
    "linesBelow": "below",
    "lines_below": "below",
}


def _reject_negative(proposal: Any) -> int:
    value = proposal["value"]
    if value < 0:
        raise traitlets.TraitError(f"{proposal['trait'].name} must be >= 0, got {value}")
    return value


class AntiConcealConfig(traitlets.HasTraits):
    """Reveal raw source near the cursor.

    ``above``/``below`` extend the revealed row range around the cursor row.
    """

    enabled = traitlets.Bool(True)
    above = traitlets.Int(0)
    below = traitlets.Int(0)

    @traitlets.validate("above", "below")
    def _validate_extent(self, proposal: Any) -> int:
        return _reject_negative(proposal)


class OverlayConfig(traitlets.HasTraits):
    """Top-level overlay settings.

    Parameters
    ----------
    debounce_ms : int
        Leading-edge debounce window for re-renders. ``0`` disables debouncing.
    margin_lines : int
        Rows rendered above and below each pane to avoid flicker on scroll.
    anti_conceal : AntiConcealConfig
        Cursor reveal settings.
    """

    debounce_ms = traitlets.Int(100)
    margin_lines = traitlets.Int(DEFAULT_MARGIN_LINES)
    anti_conceal = traitlets.Instance(AntiConcealConfig)

    @traitlets.default("anti_conceal")
    def _default_anti_conceal(self) -> AntiConcealConfig:
        return AntiConcealConfig()

    @traitlets.validate("debounce_ms", "margin_lines")
    def _validate_non_negative(self, proposal: Any) -> int:
        return _reject_negative(proposal)

    @classmethod
    def from_mapping(cls, options: Mapping[str, Any] | None = None) -> OverlayConfig:
        """Merge a nested option mapping over the defaults.

        Raises
        ------
        ValueError
            If an option name is unknown.
        traitlets.TraitError
            If a value has the wrong type or is negative.
        """
        config = cls()
        config.update(options or {})
        return config

    def update(self, options: Mapping[str, Any]) -> None:
        """Deep-merge ``options`` into this configuration in place."""
        for key, value in options.items():
            name = _TOP_LEVEL_ALIASES.get(key)
            if name is None:
                raise ValueError(f"Unknown overlay option: {key!r}")
            if name == "anti_conceal":
                if isinstance(value, AntiConcealConfig):
                    self.anti_conceal = value
                    continue
                if not isinstance(value, Mapping):
                    raise ValueError("anti_conceal must be a mapping")
                for sub_key, sub_value in value.items():
                    sub_name = _ANTI_CONCEAL_ALIASES.get(sub_key)
                    if sub_name is None:
                        raise ValueError(f"Unknown anti_conceal option: {sub_key!r}")
                    setattr(self.anti_conceal, sub_name, sub_value)
                continue
            setattr(self, name, value)

    def to_dict(self) -> dict[str, Any]:
        return {
            "debounce_ms": self.debounce_ms,
            "margin_lines": self.margin_lines,
            "anti_conceal": {
                "enabled": self.anti_conceal.enabled,
                "above": self.anti_conceal.above,
                "below": self.anti_conceal.below,
            },
        }
