"""
SpotSync CLI entrypoint.

This CLI is intended for quick local checks and debugging without a map UI:
- `distance`: great-circle distance between two points
- `nearby`: facilities near a point, from a JSON spot catalog
- `check-duplicate`: run the duplicate-submission policy against a submissions file
- `replay`: feed a scripted sequence of viewport events through the coordinator
"""

from __future__ import annotations

import argparse
import asyncio
import json
from dataclasses import dataclass, field
from typing import Any

from spotsync.catalog.loader import load_spots, load_submissions, load_viewport_events
from spotsync.config.settings import get_settings
from spotsync.core.geo import haversine_m
from spotsync.core.logging import configure_logging
from spotsync.domain.models import Coordinate, Spot, SubmissionCandidate
from spotsync.ingestion.memory_repository import InMemorySpotRepository
from spotsync.proximity.format import format_distance
from spotsync.proximity.resolver import find_spots_with_nearby_facilities
from spotsync.submissions.duplicates import Accept, DuplicateSubmissionGuard
from spotsync.viewport.coordinator import ViewportChangeCoordinator
from spotsync.viewport.orchestrator import DataFetchOrchestrator


def _parse_latlng(value: str) -> Coordinate:
    """Parse `LAT,LNG` into a Coordinate."""
    if "," not in value:
        raise argparse.ArgumentTypeError(f"Invalid point '{value}', expected LAT,LNG")
    lat, lng = value.split(",", 1)
    try:
        return Coordinate(latitude=float(lat), longitude=float(lng))
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"Invalid point '{value}': {exc}") from exc


def _cmd_distance(args: argparse.Namespace) -> int:
    d = haversine_m(args.from_point, args.to_point)
    if args.json:
        print(json.dumps({"distance_m": d}))
    else:
        print(f"{format_distance(d)} ({d:.1f} m)")
    return 0


def _cmd_nearby(args: argparse.Namespace) -> int:
    settings = get_settings()
    origin = Coordinate(latitude=args.lat, longitude=args.lng)
    spots = load_spots(args.spots)
    results = find_spots_with_nearby_facilities(origin, spots, settings.proximity.radius_by_type_m)

    if args.json:
        payload = [
            {
                "id": r.spot.id,
                "name": r.spot.name,
                "facilities": [
                    {"type": f.type, "distance_m": f.distance_m, "coordinates": list(f.coordinates.as_lnglat())}
                    for f in r.facilities
                ],
            }
            for r in results
        ]
        print(json.dumps(payload, ensure_ascii=False, indent=2))
        return 0

    if not results:
        print("No facilities in range.")
        return 0
    for r in results:
        print(f"{r.spot.name} ({r.spot.id})")
        for f in sorted(r.facilities, key=lambda x: x.distance_m):
            print(f"    - {f.type}: {format_distance(f.distance_m)}")
    return 0


def _cmd_check_duplicate(args: argparse.Namespace) -> int:
    settings = get_settings()
    coordinates = None
    if args.lat is not None and args.lng is not None:
        coordinates = Coordinate(latitude=args.lat, longitude=args.lng)
    candidate = SubmissionCandidate(name=args.name, prefecture=args.prefecture, coordinates=coordinates)
    existing = load_submissions(args.submissions)

    decision = DuplicateSubmissionGuard(settings.submissions).check(candidate, existing)
    if isinstance(decision, Accept):
        print("accept")
        return 0
    print(f"reject: {decision.reason}")
    return 1


@dataclass
class _PrintingSink:
    """Sink that echoes engine callbacks to stdout and keeps the final state."""

    spots: list[Spot] = field(default_factory=list)
    total: int = 0
    errors: list[str] = field(default_factory=list)

    def on_loading_changed(self, loading: bool) -> None:
        print(f"  loading={'on' if loading else 'off'}")

    def on_spots_loaded(self, spots: list[Spot], total: int) -> None:
        self.spots = list(spots)
        self.total = total
        print(f"  loaded {len(spots)} spots (total {total})")

    def on_error(self, message: str) -> None:
        self.errors.append(message)
        print(f"  error: {message}")

    def on_bounds_too_wide(self, too_wide: bool) -> None:
        if too_wide:
            print("  viewport too wide; spots cleared")


async def _replay(args: argparse.Namespace) -> int:
    settings = get_settings()
    events = load_viewport_events(args.events)
    repository = InMemorySpotRepository(load_spots(args.spots), delay_seconds=args.delay_ms / 1000.0)
    sink = _PrintingSink()
    overrides = None
    if args.debounce_ms is not None:
        overrides = {"viewport.debounce.desktop_ms": args.debounce_ms, "viewport.debounce.touch_ms": args.debounce_ms}
    coordinator = ViewportChangeCoordinator(
        DataFetchOrchestrator(repository, sink),
        settings=settings,
        touch_device=args.touch,
        settings_overrides=overrides,
    )

    try:
        for i, event in enumerate(events, start=1):
            b = event["bounds"]
            kind = "force_reload" if event["force"] else "bounds_changed"
            print(f"#{i} {kind} N{b.north} S{b.south} E{b.east} W{b.west}")
            if event["force"]:
                coordinator.force_reload(b, event["filters"])
            else:
                coordinator.on_bounds_changed(b, event["filters"])
            if event["wait_ms"]:
                await asyncio.sleep(event["wait_ms"] / 1000.0)
        await coordinator.wait_idle()
    finally:
        coordinator.dispose()

    print(
        f"events={len(events)} fetches={len(repository.calls)} "
        f"spots={len(sink.spots)} total={sink.total} errors={len(sink.errors)}"
    )
    return 1 if sink.errors else 0


def _cmd_replay(args: argparse.Namespace) -> int:
    return asyncio.run(_replay(args))


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse parser for the SpotSync CLI."""
    parser = argparse.ArgumentParser(prog="spotsync")
    sub = parser.add_subparsers(dest="command", required=True)

    dist = sub.add_parser("distance", help="Great-circle distance between two points.")
    dist.add_argument("--from", dest="from_point", required=True, type=_parse_latlng, help="LAT,LNG")
    dist.add_argument("--to", dest="to_point", required=True, type=_parse_latlng, help="LAT,LNG")
    dist.add_argument("--json", action="store_true", help="Output machine-readable JSON")
    dist.set_defaults(func=_cmd_distance)

    near = sub.add_parser("nearby", help="Facilities (toilet/convenience/bath) in range of a point.")
    near.add_argument("--lat", required=True, type=float)
    near.add_argument("--lng", required=True, type=float)
    near.add_argument("--spots", required=True, help="Spot catalog JSON file")
    near.add_argument("--json", action="store_true", help="Output machine-readable JSON")
    near.set_defaults(func=_cmd_nearby)

    dup = sub.add_parser("check-duplicate", help="Check a new submission against existing ones.")
    dup.add_argument("--name", required=True)
    dup.add_argument("--prefecture", required=True)
    dup.add_argument("--lat", type=float, default=None)
    dup.add_argument("--lng", type=float, default=None)
    dup.add_argument("--submissions", required=True, help="Submissions JSON file")
    dup.set_defaults(func=_cmd_check_duplicate)

    rep = sub.add_parser("replay", help="Replay scripted viewport events against a spot catalog.")
    rep.add_argument("--events", required=True, help="Viewport events JSON file")
    rep.add_argument("--spots", required=True, help="Spot catalog JSON file")
    rep.add_argument("--delay-ms", type=float, default=0.0, help="Simulated repository latency.")
    rep.add_argument("--touch", action="store_true", help="Use the touch-device debounce interval.")
    rep.add_argument("--debounce-ms", type=int, default=None, help="Override the debounce interval for this run.")
    rep.set_defaults(func=_cmd_replay)
    return parser


def main(argv: list[str] | None = None) -> int:
    """CLI entrypoint callable used by `python -m spotsync.cli`."""
    configure_logging()
    parser = build_parser()
    args = parser.parse_args(argv)
    func: Any = getattr(args, "func")
    return int(func(args))


if __name__ == "__main__":
    raise SystemExit(main())
