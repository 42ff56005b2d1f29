"""
Local JSON catalogs.

The CLI works against JSON files: a spot catalog (a list of spots, or a `{spots, total}`
page) and a submissions file. We validate them into typed Pydantic models so downstream
proximity/duplicate code can assume a consistent shape.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from pydantic import TypeAdapter

from spotsync.core.env import resolve_project_path
from spotsync.domain.models import Bounds, FilterSnapshot, Spot, SubmissionCandidate


_SPOTS_ADAPTER = TypeAdapter(list[Spot])
_SUBMISSIONS_ADAPTER = TypeAdapter(list[SubmissionCandidate])


def _read_json(path: str | Path) -> Any:
    resolved = resolve_project_path(path)
    return json.loads(resolved.read_text(encoding="utf-8"))


def load_spots(path: str | Path) -> list[Spot]:
    """Load and validate a spot catalog JSON file."""
    payload = _read_json(path)
    if isinstance(payload, dict):
        payload = payload.get("spots") or []
    return _SPOTS_ADAPTER.validate_python(payload)


def load_submissions(path: str | Path) -> list[SubmissionCandidate]:
    """Load and validate a submissions JSON file."""
    return _SUBMISSIONS_ADAPTER.validate_python(_read_json(path))


def load_viewport_events(path: str | Path) -> list[dict[str, Any]]:
    """Load a replay script: a list of `{"bounds": {...}, "filters": {...}, "force": bool, "wait_ms": int}`.

    Bounds and filters are validated here; the remaining keys keep their defaults.
    """
    payload = _read_json(path)
    if not isinstance(payload, list):
        raise ValueError(f"Invalid viewport event file {path}; expected a list.")
    events: list[dict[str, Any]] = []
    for i, raw in enumerate(payload):
        if not isinstance(raw, dict) or "bounds" not in raw:
            raise ValueError(f"viewport event #{i} must be an object with 'bounds'")
        events.append(
            {
                "bounds": Bounds.model_validate(raw["bounds"]),
                "filters": FilterSnapshot.model_validate(raw.get("filters") or {}),
                "force": bool(raw.get("force", False)),
                "wait_ms": int(raw.get("wait_ms", 0)),
            }
        )
    return events
