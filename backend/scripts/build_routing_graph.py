from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from islandroute.graph_builder import build
from islandroute.settings import settings


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Build the routing graph asset from a GeoJSON FeatureCollection of road polylines."
    )
    parser.add_argument(
        "--source",
        type=Path,
        required=True,
        help="GeoJSON FeatureCollection with LineString/MultiLineString road features.",
    )
    parser.add_argument(
        "--output",
        type=Path,
        default=Path("backend/out/island_graph.json"),
        help="Output graph JSON path.",
    )
    parser.add_argument(
        "--precision",
        type=int,
        default=settings.coordinate_precision,
        help="Decimal places used to decide when two endpoints are the same place (defaults to COORDINATE_PRECISION).",
    )
    return parser


def main(argv: list[str] | None = None) -> None:
    args = build_parser().parse_args(argv)
    report = build(
        source=args.source,
        output=args.output,
        precision=max(0, int(args.precision)),
    )
    print(json.dumps(report, indent=2))


if __name__ == "__main__":
    main()
