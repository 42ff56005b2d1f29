"""
Duplicate submission detection.

Two tiers, checked in order:
1. Same name in the same prefecture. Names repeat region-wide ("Michi-no-Eki ..."),
   so a same-name entry only blocks the candidate when it is within
   `same_name_radius_m`, or when either side has no coordinates to tell them apart.
2. Any other entry within `too_close_radius_m` of the candidate. This catches a
   re-submission of the same physical point under a different name.

Only existing entries whose status is active (pending/approved by default) count.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, Union

from spotsync.config.settings import SubmissionSettings
from spotsync.core.geo import haversine_m
from spotsync.domain.models import SubmissionCandidate

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Accept:
    @property
    def accepted(self) -> bool:
        return True


@dataclass(frozen=True)
class RejectExactNameSameArea:
    match: SubmissionCandidate
    reason: str
    distance_m: float | None = None

    @property
    def accepted(self) -> bool:
        return False


@dataclass(frozen=True)
class RejectTooClose:
    match: SubmissionCandidate
    distance_m: float

    @property
    def accepted(self) -> bool:
        return False

    @property
    def reason(self) -> str:
        return f"Another spot is already registered {self.distance_m:.0f}m away: {self.match.name}"


Decision = Union[Accept, RejectExactNameSameArea, RejectTooClose]


class DuplicateSubmissionGuard:
    """Decides whether a new submission duplicates an existing pending/approved one."""

    def __init__(self, settings: SubmissionSettings | None = None):
        self._settings = settings or SubmissionSettings()
        self._active = frozenset(self._settings.active_statuses)

    def _is_active(self, entry: SubmissionCandidate) -> bool:
        # Entries without a status come from callers that already filtered by status.
        return entry.status is None or entry.status in self._active

    def check(self, candidate: SubmissionCandidate, existing: Iterable[SubmissionCandidate]) -> Decision:
        active = [e for e in existing if self._is_active(e)]

        same_name = [e for e in active if e.name == candidate.name and e.prefecture == candidate.prefecture]
        for match in same_name:
            if candidate.coordinates is None or match.coordinates is None:
                logger.debug("Rejecting %r: same-name entry without coordinates", candidate.name)
                return RejectExactNameSameArea(
                    match=match,
                    reason=(
                        f"A spot named '{match.name}' already exists in {match.prefecture} "
                        "and cannot be told apart without coordinates"
                    ),
                )
            d = haversine_m(candidate.coordinates, match.coordinates)
            if d <= self._settings.same_name_radius_m:
                return RejectExactNameSameArea(
                    match=match,
                    reason=(
                        f"A spot named '{match.name}' already exists within "
                        f"{self._settings.same_name_radius_m:.0f}m"
                    ),
                    distance_m=d,
                )

        if candidate.coordinates is None:
            return Accept()

        same_name_ids = {id(e) for e in same_name}
        nearest: SubmissionCandidate | None = None
        nearest_d: float | None = None
        for entry in active:
            if id(entry) in same_name_ids or entry.coordinates is None:
                continue
            d = haversine_m(candidate.coordinates, entry.coordinates)
            if d <= self._settings.too_close_radius_m and (nearest_d is None or d < nearest_d):
                nearest, nearest_d = entry, d

        if nearest is not None and nearest_d is not None:
            logger.debug("Rejecting %r: %.1fm from %r", candidate.name, nearest_d, nearest.name)
            return RejectTooClose(match=nearest, distance_m=nearest_d)
        return Accept()
