"""
Human-readable distance strings for facility lists and popups.
"""

from __future__ import annotations

ON_SITE_LABEL = "on site"
UNKNOWN_LABEL = "unknown"


def format_distance(meters: float) -> str:
    """Format meters as `950m` below 1 km, else km with up to two decimals (`4.52km`, `1km`)."""
    if meters < 1000:
        return f"{round(meters)}m"
    km = round(meters / 1000, 2)
    text = f"{km:.2f}".rstrip("0").rstrip(".")
    return f"{text}km"


def format_facility_distance(distance_m: float | None) -> str:
    """Like `format_distance`, but 0 means the facility is on site and None means unknown."""
    if distance_m is None:
        return UNKNOWN_LABEL
    if distance_m == 0:
        return ON_SITE_LABEL
    if distance_m > 0:
        return f"~{format_distance(distance_m)}"
    return UNKNOWN_LABEL
