from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any

from .coord_keys import DEFAULT_PRECISION, EndpointIndex
from .geometry import Vertex, line_chains
from .logging_utils import log_event
from .models import ROAD_CLASSES, LatLng, RoadClass
from .routing_errors import RoutingDataError
from .routing_graph import GraphEdge, GraphNode, RoutingGraph, graph_to_payload, haversine_m, make_graph

# Raw road atlas ROAD_CLASS values folded into the six routing classes.
SOURCE_ROAD_CLASS_MAPPING: dict[str, RoadClass] = {
    "highway": "highway",
    "freeway": "highway",
    "ramp": "highway",
    "arterial": "arterial",
    "ferry": "arterial",
    "collector": "collector",
    "local": "local",
    "strata": "local",
    "lane": "local",
    "driveway": "local",
    "service": "local",
    "water": "local",
    "unclassified": "local",
    "resource": "resource",
    "recreation": "resource",
    "restricted": "resource",
    "trail": "decommissioned",
    "decommissioned": "decommissioned",
}
DEFAULT_ROAD_CLASS: RoadClass = "local"


@dataclass
class BuildReport:
    features_seen: int = 0
    features_skipped: int = 0
    polylines_seen: int = 0
    polylines_too_short: int = 0
    loops_dropped: int = 0
    dead_end_nodes: int = 0
    nodes: int = 0
    edges: int = 0


@dataclass(frozen=True)
class _Polyline:
    segment_id: str
    road_class: RoadClass
    vertices: tuple[Vertex, ...]


def resolve_road_class(props: dict[str, Any]) -> RoadClass:
    mapped = props.get("roadClass")
    if isinstance(mapped, str) and mapped in ROAD_CLASSES:
        return mapped  # type: ignore[return-value]
    for key, value in props.items():
        if str(key).strip().lower() in {"road_class", "roadclass"} and value is not None:
            return SOURCE_ROAD_CLASS_MAPPING.get(str(value).strip().lower(), DEFAULT_ROAD_CLASS)
    return DEFAULT_ROAD_CLASS


def _segment_id(feature: dict[str, Any], props: dict[str, Any], feature_index: int) -> str:
    for raw in (props.get("id"), feature.get("id")):
        if raw is not None and str(raw).strip():
            return str(raw).strip()
    return f"seg_{feature_index}"


def _polyline_length_m(vertices: tuple[Vertex, ...]) -> float:
    total = 0.0
    for idx in range(1, len(vertices)):
        lon1, lat1 = vertices[idx - 1]
        lon2, lat2 = vertices[idx]
        total += haversine_m(lat1, lon1, lat2, lon2)
    return total


def _collect_polylines(features: list[Any], report: BuildReport) -> list[_Polyline]:
    polylines: list[_Polyline] = []
    for feature_index, feature in enumerate(features):
        report.features_seen += 1
        if not isinstance(feature, dict):
            report.features_skipped += 1
            continue
        props = feature.get("properties") or {}
        if not isinstance(props, dict):
            props = {}
        chains = line_chains(feature.get("geometry"))
        if not chains:
            report.features_skipped += 1
            continue
        segment_id = _segment_id(feature, props, feature_index)
        road_class = resolve_road_class(props)
        for part_index, chain in enumerate(chains):
            report.polylines_seen += 1
            if len(chain) < 2:
                report.polylines_too_short += 1
                continue
            part_id = segment_id if len(chains) == 1 else f"{segment_id}#{part_index}"
            polylines.append(_Polyline(segment_id=part_id, road_class=road_class, vertices=tuple(chain)))
    return polylines


def build_graph(
    features: list[Any],
    *,
    precision: int = DEFAULT_PRECISION,
    generated_at: str | None = None,
) -> tuple[RoutingGraph, BuildReport]:
    """Turn road polylines into an undirected node/edge graph.

    Only polyline endpoints become nodes, and every distinct endpoint key
    becomes one, dead ends included. Interior vertices only contribute to
    the edge length. Closed loops (both ends on one key) contribute no edge.
    """
    report = BuildReport()
    polylines = _collect_polylines(features, report)

    index = EndpointIndex(precision=precision)
    ends: list[tuple[str, str]] = []
    for polyline in polylines:
        ends.append((index.add(polyline.vertices[0]), index.add(polyline.vertices[-1])))

    adjacency: dict[str, list[GraphEdge]] = {node_id: [] for node_id in index.positions}
    for polyline, (start_id, end_id) in zip(polylines, ends):
        if start_id == end_id:
            report.loops_dropped += 1
            continue
        weight = _polyline_length_m(polyline.vertices)
        adjacency[start_id].append(
            GraphEdge(
                target_node_id=end_id,
                road_segment_id=polyline.segment_id,
                weight=weight,
                road_class=polyline.road_class,
            )
        )
        adjacency[end_id].append(
            GraphEdge(
                target_node_id=start_id,
                road_segment_id=polyline.segment_id,
                weight=weight,
                road_class=polyline.road_class,
            )
        )

    nodes = {
        node_id: GraphNode(
            id=node_id,
            position=LatLng(lat=lat, lng=lon),
            edges=tuple(adjacency[node_id]),
        )
        for node_id, (lon, lat) in index.positions.items()
    }
    graph = make_graph(nodes, generated_at=generated_at)
    report.dead_end_nodes = index.dead_end_count
    report.nodes = graph.node_count
    report.edges = graph.edge_count
    return graph, report


def features_from_document(document: Any) -> list[Any]:
    if not isinstance(document, dict) or str(document.get("type", "")) != "FeatureCollection":
        raise RoutingDataError(
            reason_code="graph_source_invalid",
            message="Road source must be a GeoJSON FeatureCollection.",
        )
    features = document.get("features", [])
    if not isinstance(features, list):
        raise RoutingDataError(
            reason_code="graph_source_invalid",
            message="FeatureCollection 'features' must be a list.",
        )
    return features


def write_graph(graph: RoutingGraph, output: Path) -> None:
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(json.dumps(graph_to_payload(graph)), encoding="utf-8")


def build(
    *,
    source: Path,
    output: Path,
    precision: int = DEFAULT_PRECISION,
) -> dict[str, Any]:
    document = json.loads(source.read_text(encoding="utf-8"))
    graph, report = build_graph(features_from_document(document), precision=precision)
    if report.edges == 0:
        raise RoutingDataError(
            reason_code="graph_source_empty",
            message="No routable edges were extracted from source input.",
            details=asdict(report),
        )
    write_graph(graph, output)
    log_event(
        "graph_build_complete",
        source=str(source),
        output=str(output),
        precision=precision,
        **asdict(report),
    )
    return {
        **asdict(report),
        "source": str(source),
        "output": str(output),
        "generated_at": graph.generated_at,
    }
