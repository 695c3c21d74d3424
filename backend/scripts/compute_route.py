from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import Any, Sequence

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from islandroute.graph_store import GraphStore
from islandroute.models import LatLng, RoadPreferences
from islandroute.multileg_engine import calculate_route
from islandroute.preferences import decode_preferences
from islandroute.routing_errors import RoutingDataError
from islandroute.settings import settings


def parse_waypoint(raw: str) -> LatLng:
    parts = [part.strip() for part in str(raw).split(",")]
    if len(parts) != 2:
        raise RoutingDataError(
            reason_code="waypoint_invalid",
            message=f"Waypoint must be 'LAT,LNG', got {raw!r}",
        )
    try:
        return LatLng(lat=float(parts[0]), lng=float(parts[1]))
    except ValueError as exc:
        raise RoutingDataError(
            reason_code="waypoint_invalid",
            message=f"Waypoint out of range or not numeric: {raw!r}",
        ) from exc


def parse_preferences(raw: str) -> RoadPreferences:
    """Like ``decode_preferences`` but rejects sections other than one ``t...`` and one ``s...``."""
    seen: set[str] = set()
    for part in str(raw or "").strip().split("."):
        if not part:
            continue
        section = part[0]
        if section not in {"t", "s"} or section in seen:
            raise RoutingDataError(
                reason_code="preferences_invalid",
                message=f"Preferences must look like 'trh.sl', got {raw!r}",
            )
        seen.add(section)
    return decode_preferences(raw)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Compute a multi-waypoint route against a built graph.")
    parser.add_argument(
        "--graph",
        default=None,
        help="Graph JSON path or http(s) URL (defaults to ROUTING_GRAPH_SOURCE).",
    )
    parser.add_argument(
        "--waypoint",
        action="append",
        default=[],
        help="Waypoint as LAT,LNG; repeat in route order.",
    )
    parser.add_argument(
        "--prefs",
        default="",
        help="Compact road preferences, e.g. 'trh.sl' (resource, then highway; loose surface).",
    )
    parser.add_argument("--output", type=Path, default=None, help="Optional file for the route JSON.")
    return parser


async def run(*, graph_source: str, waypoints: Sequence[LatLng], preferences: RoadPreferences) -> dict[str, Any]:
    store = GraphStore(source=graph_source, timeout_s=settings.routing_graph_fetch_timeout_s)
    result = await calculate_route(store, waypoints, preferences)
    return {
        "graph": store.status(),
        "route": result.model_dump(mode="json") if result is not None else None,
    }


def main(argv: list[str] | None = None) -> None:
    args = build_parser().parse_args(argv)
    try:
        waypoints = [parse_waypoint(raw) for raw in args.waypoint]
        preferences = parse_preferences(args.prefs)
    except RoutingDataError as exc:
        print(json.dumps({"error": exc.to_payload()}, indent=2), file=sys.stderr)
        raise SystemExit(2) from exc
    report = asyncio.run(
        run(
            graph_source=args.graph or settings.routing_graph_source,
            waypoints=waypoints,
            preferences=preferences,
        )
    )
    text = json.dumps(report, indent=2)
    if args.output is not None:
        args.output.parent.mkdir(parents=True, exist_ok=True)
        args.output.write_text(text, encoding="utf-8")
    print(text)


if __name__ == "__main__":
    main()
