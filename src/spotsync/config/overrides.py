from __future__ import annotations

from typing import Any, Mapping

from spotsync.config.settings import Settings

"""
Per-coordinator settings overrides (safe subset).

An embedding map (admin vs. public, a touch-heavy kiosk) passes `settings_overrides`
to `ViewportChangeCoordinator` to tune its debounce, skip tolerances or span limit
without editing config files. Overrides may be nested mappings or flat dotted keys:

    {"viewport": {"debounce": {"touch_ms": 1200}}}
    {"viewport.debounce.touch_ms": 1200}

Only whitelisted paths are accepted; the merged result is re-validated by Pydantic.
Repository URLs and timeouts are deployment config and cannot be overridden here.
"""

# A value of True allows the whole subtree; a dict lists the allowed children.
ALLOWED_SETTINGS_OVERRIDES_TREE: dict[str, Any] = {
    "viewport": {
        "debounce": True,
        "zoom_in_epsilon_deg": True,
        "pan_threshold_ratio": True,
        "span_limit": True,
    },
    "proximity": True,
    "submissions": {
        "same_name_radius_m": True,
        "too_close_radius_m": True,
    },
    "geolocation": True,
}


def _expand_dotted(overrides: Mapping[str, Any]) -> dict[str, Any]:
    """Turn `{"a.b": 1}` into `{"a": {"b": 1}}`, merging with any nested entries."""
    nested: dict[str, Any] = {}
    for key, value in overrides.items():
        *parents, leaf = str(key).split(".")
        node = nested
        for part in parents:
            child = node.setdefault(part, {})
            if not isinstance(child, dict):
                raise ValueError(f"settings_overrides key '{key}' conflicts with a scalar at '{part}'")
            node = child
        if isinstance(value, Mapping):
            value = _expand_dotted(value)
            existing = node.get(leaf)
            if isinstance(existing, dict):
                value = _merge(existing, value)
        node[leaf] = value
    return nested


def _merge(base: Mapping[str, Any], override: Mapping[str, Any]) -> dict[str, Any]:
    out = dict(base)
    for key, value in override.items():
        current = out.get(key)
        out[key] = _merge(current, value) if isinstance(current, Mapping) and isinstance(value, Mapping) else value
    return out


def _check_allowed(overrides: Mapping[str, Any], allowed: Mapping[str, Any], path: str = "") -> None:
    for key, value in overrides.items():
        dotted = f"{path}.{key}" if path else key
        rule = allowed.get(key)
        if rule is None:
            raise ValueError(f"settings_overrides contains a disallowed key: '{dotted}'")
        if rule is True:
            continue
        if not isinstance(value, Mapping):
            raise ValueError(f"settings_overrides key '{dotted}' must be a mapping")
        _check_allowed(value, rule, dotted)


def apply_settings_overrides(settings: Settings, overrides: Mapping[str, Any] | None) -> Settings:
    """Return a new validated Settings with the whitelisted `overrides` merged in.

    `settings` itself (usually the cached `get_settings()` instance) is never mutated.
    """
    if not overrides:
        return settings

    nested = _expand_dotted(overrides)
    _check_allowed(nested, ALLOWED_SETTINGS_OVERRIDES_TREE)
    return Settings.model_validate(_merge(settings.model_dump(mode="python"), nested))
