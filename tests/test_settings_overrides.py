from __future__ import annotations

# We use pytest because the repository already standardizes on it for automated checks.
import pytest

# We import the existing Settings loader so tests run with the real default config structure.
from spotsync.config.settings import get_settings

# We test the override helper directly because it is pure (no network) and shared by every embedder.
from spotsync.config.overrides import apply_settings_overrides


def test_apply_settings_overrides_returns_same_object_when_none():
    # Load the baseline settings once (this is a cached Pydantic model).
    settings = get_settings()

    # When no overrides are provided, we expect a no-op and the same object back (fast path).
    out = apply_settings_overrides(settings, None)

    # Identity equality: the function returns early without rebuilding the model.
    assert out is settings


def test_apply_settings_overrides_can_override_allowed_viewport_knobs():
    # Load the baseline settings (do not mutate it; it is shared via lru_cache).
    settings = get_settings()

    # A kiosk map might want a slower debounce; only the touch interval changes here.
    overrides = {"viewport": {"debounce": {"touch_ms": 1200}, "pan_threshold_ratio": 0.1}}

    # Apply the override; this returns a NEW Settings model validated by Pydantic.
    out = apply_settings_overrides(settings, overrides)

    # The override should take effect on the returned model, and siblings survive the deep merge.
    assert out.viewport.debounce.touch_ms == 1200
    assert out.viewport.debounce.desktop_ms == settings.viewport.debounce.desktop_ms
    assert out.viewport.pan_threshold_ratio == 0.1

    # The baseline shared settings should remain unchanged.
    assert settings.viewport.debounce.touch_ms != 1200


def test_apply_settings_overrides_rejects_disallowed_keys_with_clear_path():
    settings = get_settings()

    # Repository endpoints are deployment config, not a per-map knob.
    overrides = {"repository": {"base_url": "http://evil.example"}}

    with pytest.raises(ValueError, match=r"disallowed key: 'repository'"):
        apply_settings_overrides(settings, overrides)

    # Nested paths are reported with dots so users can find the offending key quickly.
    with pytest.raises(ValueError, match=r"submissions\.active_statuses"):
        apply_settings_overrides(settings, {"submissions": {"active_statuses": ["rejected"]}})


def test_apply_settings_overrides_rejects_wrong_value_shapes_for_restricted_subtrees():
    settings = get_settings()

    # `viewport` is a restricted subtree (only certain nested keys are allowed),
    # so its override must be an object/mapping, not a scalar.
    with pytest.raises(ValueError, match=r"settings_overrides key 'viewport' must be a mapping"):
        apply_settings_overrides(settings, {"viewport": 1})


def test_apply_settings_overrides_revalidates_ranges():
    settings = get_settings()

    # Pydantic re-validation still applies after the merge (radii cannot be negative).
    with pytest.raises(ValueError):
        apply_settings_overrides(settings, {"submissions": {"same_name_radius_m": -5}})


def test_env_overrides_repository_url_and_log_level(monkeypatch):
    # Environment overrides are applied when settings are first loaded, so clear the cache around the test.
    monkeypatch.setenv("SPOTSYNC_REPOSITORY_URL", "http://localhost:9000")
    monkeypatch.setenv("SPOTSYNC_LOG_LEVEL", "DEBUG")
    get_settings.cache_clear()
    try:
        settings = get_settings()
        assert settings.repository.base_url == "http://localhost:9000"
        assert settings.app.log_level == "DEBUG"
    finally:
        get_settings.cache_clear()


def test_config_path_env_points_at_custom_yaml(monkeypatch, tmp_path):
    config = tmp_path / "spotsync.yaml"
    config.write_text("submissions:\n  same_name_radius_m: 250\n", encoding="utf-8")
    monkeypatch.setenv("SPOTSYNC_CONFIG_PATH", str(config))
    get_settings.cache_clear()
    try:
        settings = get_settings()
        assert settings.submissions.same_name_radius_m == 250
        # Sections missing from the file fall back to model defaults.
        assert settings.viewport.debounce.desktop_ms == 500
    finally:
        get_settings.cache_clear()


def test_apply_settings_overrides_accepts_dotted_keys():
    settings = get_settings()

    # Flat dotted keys (handy for CLI flags) merge into the same nested structure.
    out = apply_settings_overrides(
        settings,
        {"viewport.debounce.desktop_ms": 100, "viewport": {"span_limit": {"enabled": True}}},
    )

    assert out.viewport.debounce.desktop_ms == 100
    assert out.viewport.debounce.touch_ms == settings.viewport.debounce.touch_ms
    assert out.viewport.span_limit.enabled is True

    # Dotted keys are checked against the same whitelist.
    with pytest.raises(ValueError, match=r"viewport\.touch_user_agent_pattern"):
        apply_settings_overrides(settings, {"viewport.touch_user_agent_pattern": ".*"})
