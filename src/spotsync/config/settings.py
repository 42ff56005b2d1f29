# src/spotsync/config/settings.py
"""
Engine settings (Pydantic).

Settings are loaded from `src/spotsync/config/defaults.yaml`, then optionally overridden by:
- environment variables (e.g., `SPOTSYNC_LOG_LEVEL`, `SPOTSYNC_REPOSITORY_URL`)
- an external YAML file via `SPOTSYNC_CONFIG_PATH`

Design rule:
- Business constants (radii, debounce intervals, skip thresholds) live in YAML, not
  hard-coded in the coordinator or resolvers.
"""

from __future__ import annotations

import os
from functools import lru_cache
from importlib import resources
from pathlib import Path
from typing import Any
from spotsync.core.env import load_dotenv_if_present

import yaml
from pydantic import BaseModel, Field


def _read_package_yaml(filename: str) -> dict[str, Any]:
    """Read a YAML file packaged inside `spotsync.config`."""
    text = resources.files("spotsync.config").joinpath(filename).read_text(encoding="utf-8")
    data = yaml.safe_load(text) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Invalid YAML root object for {filename}; expected a mapping.")
    return data


def _read_yaml_file(path: str | Path) -> dict[str, Any]:
    """Read a YAML file from disk and return its mapping root."""
    data = yaml.safe_load(Path(path).read_text(encoding="utf-8")) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Invalid YAML root object for {path}; expected a mapping.")
    return data


class AppSettings(BaseModel):
    name: str = "SpotSync"
    log_level: str = "INFO"


class DebounceSettings(BaseModel):
    desktop_ms: int = Field(500, ge=0)
    touch_ms: int = Field(800, ge=0)


class SpanLimitSettings(BaseModel):
    """Maximum viewport size for public (non-admin) maps; wider views load nothing."""

    enabled: bool = False
    max_lng_span: float = Field(6.0, gt=0)
    max_lat_span: float = Field(4.0, gt=0)


class ViewportSettings(BaseModel):
    debounce: DebounceSettings = Field(default_factory=DebounceSettings)
    zoom_in_epsilon_deg: float = Field(1e-4, ge=0)
    pan_threshold_ratio: float = Field(0.05, ge=0)
    touch_user_agent_pattern: str = "iPhone|iPad|iPod|Android"
    span_limit: SpanLimitSettings = Field(default_factory=SpanLimitSettings)


class ProximitySettings(BaseModel):
    radius_by_type_m: dict[str, float] = Field(
        default_factory=lambda: {"toilet": 1000.0, "convenience": 10000.0, "bath": 20000.0}
    )


class SubmissionSettings(BaseModel):
    same_name_radius_m: float = Field(100.0, ge=0)
    too_close_radius_m: float = Field(10.0, ge=0)
    active_statuses: list[str] = Field(default_factory=lambda: ["pending", "approved"])


class GeolocationSettings(BaseModel):
    default_zoom: float = Field(12.0, ge=0, le=22)
    viewport_width_px: int = Field(1024, gt=0)
    viewport_height_px: int = Field(768, gt=0)
    tile_size_px: int = Field(512, gt=0)


class RepositorySettings(BaseModel):
    base_url: str | None = None
    timeout_seconds: float = Field(15, gt=0)


class Settings(BaseModel):
    app: AppSettings = Field(default_factory=AppSettings)
    viewport: ViewportSettings = Field(default_factory=ViewportSettings)
    proximity: ProximitySettings = Field(default_factory=ProximitySettings)
    submissions: SubmissionSettings = Field(default_factory=SubmissionSettings)
    geolocation: GeolocationSettings = Field(default_factory=GeolocationSettings)
    repository: RepositorySettings = Field(default_factory=RepositorySettings)


def _apply_env_overrides(data: dict[str, Any]) -> dict[str, Any]:
    """Overlay selected environment variables onto raw settings payload.

    Note: We intentionally keep this whitelist small to avoid exposing unsafe overrides.
    """
    load_dotenv_if_present()
    data = dict(data)

    log_level = os.getenv("SPOTSYNC_LOG_LEVEL")
    if log_level:
        data.setdefault("app", {})["log_level"] = log_level

    repository_url = os.getenv("SPOTSYNC_REPOSITORY_URL")
    if repository_url:
        data.setdefault("repository", {})["base_url"] = repository_url

    return data


@lru_cache
def get_settings() -> Settings:
    """Load and validate settings (cached)."""
    load_dotenv_if_present()
    config_path = os.getenv("SPOTSYNC_CONFIG_PATH")
    raw = _read_yaml_file(config_path) if config_path else _read_package_yaml("defaults.yaml")
    raw = _apply_env_overrides(raw)
    return Settings.model_validate(raw)


@lru_cache
def get_logging_config() -> dict[str, Any]:
    """Load logging configuration (cached)."""
    return _read_package_yaml("logging.yaml")
