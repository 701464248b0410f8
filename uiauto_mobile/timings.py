# uiauto_mobile/timings.py
"""
@file timings.py
@brief Time configuration presets and defaults for mobile interactions.

The remote protocol has no "render complete" signal, so every UI-mutating
call is followed by a short fixed settle pause taken from PAUSE_FIELDS.
"""

from __future__ import annotations
from copy import deepcopy
from typing import Any, Dict


TIMEOUT_FIELDS: Dict[str, Dict[str, Any]] = {
    "resolve_element": {"timeout": 5.0, "interval": 0.5},
    "exists_wait": {"timeout": 1.0, "interval": 0.2},
    "staleness_retry": {"timeout": 3.0, "interval": 0.3, "retry_count": 3},
    "window_size": {"timeout": 2.0, "interval": 0.2},
}

PAUSE_FIELDS: Dict[str, float] = {
    "after_tap_pause": 0.3,
    "after_scroll_pause": 0.3,
    "after_swipe_pause": 0.2,
    "after_type_pause": 0.2,
    "after_dismiss_pause": 0.3,
}

PRESET_OVERRIDES: Dict[str, Dict[str, Any]] = {
    "fast": {
        "resolve_element": {"timeout": 3.0, "interval": 0.2},
        "exists_wait": {"timeout": 0.5, "interval": 0.1},
        "staleness_retry": {"timeout": 2.0, "interval": 0.2, "retry_count": 2},
        "after_tap_pause": 0.15,
        "after_scroll_pause": 0.2,
        "after_swipe_pause": 0.1,
        "after_type_pause": 0.1,
        "after_dismiss_pause": 0.15,
    },
    "slow": {
        "resolve_element": {"timeout": 10.0, "interval": 0.5},
        "exists_wait": {"timeout": 2.0, "interval": 0.3},
        "staleness_retry": {"timeout": 5.0, "interval": 0.5, "retry_count": 4},
        "after_tap_pause": 0.5,
        "after_scroll_pause": 0.5,
        "after_swipe_pause": 0.3,
        "after_type_pause": 0.3,
        "after_dismiss_pause": 0.5,
    },
    "ci": {
        "resolve_element": {"timeout": 10.0, "interval": 0.5},
        "exists_wait": {"timeout": 3.0, "interval": 0.5},
        "staleness_retry": {"timeout": 6.0, "interval": 0.5, "retry_count": 5},
        "window_size": {"timeout": 5.0, "interval": 0.5},
        "after_tap_pause": 0.5,
        "after_scroll_pause": 0.6,
        "after_swipe_pause": 0.4,
        "after_type_pause": 0.3,
        "after_dismiss_pause": 0.5,
    },
}


def list_presets() -> Dict[str, Dict[str, Any]]:
    return {"default": {}, **PRESET_OVERRIDES}


def build_preset_values(preset: str) -> Dict[str, Any]:
    preset_key = (preset or "default").lower()
    values: Dict[str, Any] = {}
    values.update(deepcopy(TIMEOUT_FIELDS))
    values.update(deepcopy(PAUSE_FIELDS))

    if preset_key == "default":
        return values

    overrides = PRESET_OVERRIDES.get(preset_key)
    if overrides is None:
        raise ValueError(f"Unknown timing preset: {preset}")

    for key, value in overrides.items():
        if key in TIMEOUT_FIELDS:
            base = deepcopy(values[key])
            base.update(value)
            values[key] = base
        else:
            values[key] = value

    return values
