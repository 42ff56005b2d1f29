import asyncio
import logging

import pytest

from spotsync.core.errors import FetchCancelledError
from spotsync.domain.models import Bounds, FilterSnapshot, Spot, SpotPage
from spotsync.viewport.orchestrator import LOAD_ERROR_MESSAGE, DataFetchOrchestrator, to_spot_page
from spotsync.viewport.tokens import CancellationToken

BOUNDS = Bounds(north=36, south=35, east=140, west=139)
FILTERS = FilterSnapshot()
SPOT = {"id": "s1", "name": "Riverside Camp", "coordinates": [139.5, 35.5]}


class StubSink:
    def __init__(self):
        self.events: list[tuple] = []

    def on_loading_changed(self, loading: bool) -> None:
        self.events.append(("loading", loading))

    def on_spots_loaded(self, spots, total) -> None:
        self.events.append(("spots", [s.id for s in spots], total))

    def on_error(self, message: str) -> None:
        self.events.append(("error", message))


class StubRepository:
    def __init__(self, result=None, exc: BaseException | None = None):
        self._result = result
        self._exc = exc

    async def fetch_spots(self, bounds, filters):
        if self._exc is not None:
            raise self._exc
        return self._result


def _load(repository, token=None, **kwargs):
    sink = StubSink()
    orchestrator = DataFetchOrchestrator(repository, sink, **kwargs)
    result = asyncio.run(orchestrator.load(BOUNDS, FILTERS, token or CancellationToken(1)))
    return result, sink.events


def test_successful_load_applies_spots_between_loading_flags():
    page = SpotPage(spots=[Spot.model_validate(SPOT)], total=42)

    result, events = _load(StubRepository(page))

    assert result.ok
    assert result.total == 42
    assert events == [("loading", True), ("spots", ["s1"], 42), ("loading", False)]


@pytest.mark.parametrize(
    ("raw", "expected_total"),
    [
        ({"spots": [SPOT], "total": 7}, 7),
        ([SPOT], 1),
        ([], 0),
    ],
)
def test_repository_result_shapes_are_normalized(raw, expected_total):
    page = to_spot_page(raw)
    assert page.total == expected_total
    assert all(isinstance(s, Spot) for s in page.spots)


def test_string_result_is_rejected():
    with pytest.raises(TypeError):
        to_spot_page("not spots")


def test_failure_notifies_once_and_clears_loading():
    result, events = _load(StubRepository(exc=RuntimeError("boom")))

    assert result.status == "failed"
    assert isinstance(result.error, RuntimeError)
    assert events == [("loading", True), ("error", LOAD_ERROR_MESSAGE), ("loading", False)]


def test_invalid_payload_is_a_failure():
    result, events = _load(StubRepository({"spots": [{"id": "x"}]}))

    assert result.status == "failed"
    assert ("error", LOAD_ERROR_MESSAGE) in events


def test_custom_error_message():
    _, events = _load(StubRepository(exc=RuntimeError("boom")), error_message="Could not load spots")

    assert ("error", "Could not load spots") in events


def test_repository_abort_is_not_an_error():
    result, events = _load(StubRepository(exc=FetchCancelledError()))

    assert result.status == "cancelled"
    assert events == [("loading", True), ("loading", False)]


def test_late_result_for_cancelled_token_is_dropped():
    token = CancellationToken(1)

    class CancelsWhileFetching:
        async def fetch_spots(self, bounds, filters):
            token.cancel("disposed")
            return [SPOT]

    result, events = _load(CancelsWhileFetching(), token=token)

    assert result.status == "cancelled"
    assert events == [("loading", True), ("loading", False)]


def test_superseded_load_leaves_loading_indicator_to_newer_load():
    token = CancellationToken(1)

    class SupersededWhileFetching:
        async def fetch_spots(self, bounds, filters):
            token.cancel("superseded")
            raise RuntimeError("aborted")

    result, events = _load(SupersededWhileFetching(), token=token)

    assert result.status == "cancelled"
    assert events == [("loading", True)]


def test_success_hook_receives_loaded_spots():
    seen = []

    async def hook(spots, bounds, filters):
        seen.append(([s.id for s in spots], bounds, filters))

    result, _ = _load(StubRepository([SPOT]), on_load_success=hook)

    assert result.ok
    assert seen == [(["s1"], BOUNDS, FILTERS)]


def test_failing_success_hook_is_logged_not_reported(caplog):
    async def hook(spots, bounds, filters):
        raise RuntimeError("analytics down")

    caplog.set_level(logging.ERROR, logger="spotsync.viewport.orchestrator")
    result, events = _load(StubRepository([SPOT]), on_load_success=hook)

    assert result.ok
    assert events == [("loading", True), ("spots", ["s1"], 1), ("loading", False)]
    assert any("on_load_success hook failed" in r.getMessage() for r in caplog.records)
