from spotsync.config.settings import SubmissionSettings
from spotsync.domain.models import Coordinate, SubmissionCandidate
from spotsync.submissions.duplicates import (
    Accept,
    DuplicateSubmissionGuard,
    RejectExactNameSameArea,
    RejectTooClose,
)

BASE = Coordinate(latitude=36.0, longitude=138.0)
METERS_PER_DEGREE_LAT = 6_371_000 * 3.141592653589793 / 180


def _north_of(point: Coordinate, meters: float) -> Coordinate:
    return Coordinate(latitude=point.latitude + meters / METERS_PER_DEGREE_LAT, longitude=point.longitude)


def _existing(name: str, coordinates: Coordinate | None, *, prefecture: str = "Nagano", status: str = "approved"):
    return SubmissionCandidate(
        id=f"{name}-{status}", name=name, prefecture=prefecture, coordinates=coordinates, status=status
    )


def _candidate(name: str, coordinates: Coordinate | None, *, prefecture: str = "Nagano"):
    return SubmissionCandidate(name=name, prefecture=prefecture, coordinates=coordinates)


def test_same_name_within_radius_is_rejected():
    existing = [_existing("X", BASE)]

    decision = DuplicateSubmissionGuard().check(_candidate("X", _north_of(BASE, 50)), existing)

    assert isinstance(decision, RejectExactNameSameArea)
    assert decision.accepted is False
    assert decision.match.name == "X"
    assert 49 < decision.distance_m < 51


def test_same_name_beyond_radius_is_accepted():
    existing = [_existing("X", BASE)]

    decision = DuplicateSubmissionGuard().check(_candidate("X", _north_of(BASE, 150)), existing)

    assert isinstance(decision, Accept)
    assert decision.accepted is True


def test_same_name_in_other_prefecture_is_not_a_name_match():
    existing = [_existing("X", BASE, prefecture="Gifu")]

    decision = DuplicateSubmissionGuard().check(_candidate("X", _north_of(BASE, 50)), existing)

    assert isinstance(decision, Accept)


def test_same_name_without_coordinates_is_rejected_conservatively():
    guard = DuplicateSubmissionGuard()

    missing_existing = guard.check(_candidate("X", BASE), [_existing("X", None)])
    missing_candidate = guard.check(_candidate("X", None), [_existing("X", BASE)])

    assert isinstance(missing_existing, RejectExactNameSameArea)
    assert missing_existing.distance_m is None
    assert isinstance(missing_candidate, RejectExactNameSameArea)


def test_any_name_within_ten_meters_is_rejected():
    existing = [_existing("Y", BASE)]

    decision = DuplicateSubmissionGuard().check(_candidate("Z", _north_of(BASE, 5)), existing)

    assert isinstance(decision, RejectTooClose)
    assert decision.match.name == "Y"
    assert 4.9 < decision.distance_m < 5.1
    assert "Y" in decision.reason


def test_other_name_beyond_ten_meters_is_accepted():
    existing = [_existing("Y", BASE)]

    decision = DuplicateSubmissionGuard().check(_candidate("Z", _north_of(BASE, 15)), existing)

    assert isinstance(decision, Accept)


def test_too_close_reports_the_nearest_entry():
    existing = [
        _existing("Far", _north_of(BASE, 8)),
        _existing("Near", _north_of(BASE, 3)),
    ]

    decision = DuplicateSubmissionGuard().check(_candidate("New", BASE), existing)

    assert isinstance(decision, RejectTooClose)
    assert decision.match.name == "Near"


def test_rejected_submissions_are_ignored():
    existing = [_existing("X", BASE, status="rejected"), _existing("Y", BASE, status="rejected")]

    decision = DuplicateSubmissionGuard().check(_candidate("X", BASE), existing)

    assert isinstance(decision, Accept)


def test_pending_submissions_count():
    existing = [_existing("X", BASE, status="pending")]

    decision = DuplicateSubmissionGuard().check(_candidate("X", _north_of(BASE, 20)), existing)

    assert isinstance(decision, RejectExactNameSameArea)


def test_radii_come_from_settings():
    guard = DuplicateSubmissionGuard(SubmissionSettings(same_name_radius_m=200, too_close_radius_m=1))
    existing = [_existing("X", BASE), _existing("Y", BASE)]

    same_name = guard.check(_candidate("X", _north_of(BASE, 150)), existing)
    other_name = guard.check(_candidate("Z", _north_of(BASE, 5)), existing)

    assert isinstance(same_name, RejectExactNameSameArea)
    assert isinstance(other_name, Accept)
