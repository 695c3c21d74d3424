from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

from pydantic import ValidationError

from .models import GraphPayload, LatLng, RoadClass
from .routing_errors import RoutingDataError

EARTH_RADIUS_M = 6_371_000.0


def haversine_m(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    dphi = phi2 - phi1
    dlambda = math.radians(lon2 - lon1)
    a = (
        math.sin(dphi / 2.0) ** 2
        + (math.cos(phi1) * math.cos(phi2) * (math.sin(dlambda / 2.0) ** 2))
    )
    return 2.0 * EARTH_RADIUS_M * math.asin(min(1.0, math.sqrt(max(0.0, a))))


def distance_between(a: LatLng, b: LatLng) -> float:
    return haversine_m(a.lat, a.lng, b.lat, b.lng)


def iso_utc_now() -> str:
    return datetime.now(UTC).replace(microsecond=0).isoformat().replace("+00:00", "Z")


@dataclass(frozen=True)
class GraphEdge:
    target_node_id: str
    road_segment_id: str
    weight: float
    road_class: RoadClass


@dataclass(frozen=True)
class GraphNode:
    id: str
    position: LatLng
    edges: tuple[GraphEdge, ...] = ()


@dataclass(frozen=True)
class RoutingGraph:
    nodes: dict[str, GraphNode]
    node_count: int
    edge_count: int
    generated_at: str

    def __len__(self) -> int:
        return len(self.nodes)


def make_graph(nodes: dict[str, GraphNode], *, generated_at: str | None = None) -> RoutingGraph:
    return RoutingGraph(
        nodes=nodes,
        node_count=len(nodes),
        edge_count=sum(len(node.edges) for node in nodes.values()),
        generated_at=generated_at or iso_utc_now(),
    )


def graph_to_payload(graph: RoutingGraph) -> dict[str, Any]:
    return {
        "nodes": {
            node_id: {
                "id": node.id,
                "position": {"lat": node.position.lat, "lng": node.position.lng},
                "edges": [
                    {
                        "targetNodeId": edge.target_node_id,
                        "roadSegmentId": edge.road_segment_id,
                        "weight": edge.weight,
                        "roadClass": edge.road_class,
                    }
                    for edge in node.edges
                ],
            }
            for node_id, node in graph.nodes.items()
        },
        "metadata": {
            "nodeCount": graph.node_count,
            "edgeCount": graph.edge_count,
            "generatedAt": graph.generated_at,
        },
    }


def graph_from_payload(raw: object) -> RoutingGraph:
    """Validate a decoded graph document and freeze it into a RoutingGraph.

    Raises RoutingDataError for schema violations, including node keys that
    disagree with the node id and edges pointing outside the graph.
    """
    try:
        payload = GraphPayload.model_validate(raw)
    except ValidationError as exc:
        raise RoutingDataError(
            reason_code="routing_graph_schema_invalid",
            message="Routing graph document failed schema validation.",
            details={"errors": exc.error_count()},
        ) from exc

    for key, node in payload.nodes.items():
        if key != node.id:
            raise RoutingDataError(
                reason_code="routing_graph_schema_invalid",
                message=f"Node key {key!r} does not match node id {node.id!r}.",
            )

    nodes: dict[str, GraphNode] = {}
    for node_id, node in payload.nodes.items():
        edges: list[GraphEdge] = []
        for edge in node.edges:
            if edge.target_node_id not in payload.nodes:
                raise RoutingDataError(
                    reason_code="routing_graph_schema_invalid",
                    message=f"Edge from {node_id!r} targets unknown node {edge.target_node_id!r}.",
                )
            edges.append(
                GraphEdge(
                    target_node_id=edge.target_node_id,
                    road_segment_id=edge.road_segment_id,
                    weight=float(edge.weight),
                    road_class=edge.road_class,
                )
            )
        nodes[node_id] = GraphNode(id=node_id, position=node.position, edges=tuple(edges))

    # Counts are recomputed from the content; metadata is informational only.
    return make_graph(nodes, generated_at=payload.metadata.generated_at)


def nearest_node_with_distance(graph: RoutingGraph, position: LatLng) -> tuple[GraphNode, float] | None:
    # Linear scan over every node; the first node seen wins ties.
    best: GraphNode | None = None
    best_distance = math.inf
    for node in graph.nodes.values():
        d = distance_between(position, node.position)
        if d < best_distance:
            best = node
            best_distance = d
    if best is None:
        return None
    return best, best_distance


def nearest_node(graph: RoutingGraph, position: LatLng) -> GraphNode | None:
    found = nearest_node_with_distance(graph, position)
    return found[0] if found is not None else None


def snap_position(graph: RoutingGraph | None, position: LatLng, *, max_distance_m: float) -> LatLng:
    """Nearest node position when within ``max_distance_m``, else the input position."""
    if graph is None:
        return position
    found = nearest_node_with_distance(graph, position)
    if found is None:
        return position
    node, distance_m = found
    if distance_m > max_distance_m:
        return position
    return node.position
