from __future__ import annotations

import logging
from collections.abc import Sequence

from .graph_store import GraphStore
from .logging_utils import log_event
from .models import ROAD_CLASSES, LatLng, RoadPreferences, RouteLeg, RouteResult, empty_class_breakdown
from .routing_graph import GraphNode, RoutingGraph, distance_between, nearest_node
from .shortest_path import shortest_path, travel_time_s

# Unclassified straight-line distance is always attributed to one bucket.
FALLBACK_ROAD_CLASS = "local"
# Roughly 1 m in degrees; used to drop a leg's leading point when it repeats the previous one.
POSITION_TOLERANCE_DEG = 0.00001


def positions_equal(a: LatLng, b: LatLng) -> bool:
    return abs(a.lat - b.lat) < POSITION_TOLERANCE_DEG and abs(a.lng - b.lng) < POSITION_TOLERANCE_DEG


def _append_points(path: list[LatLng], points: Sequence[LatLng]) -> None:
    for point in points:
        if path and positions_equal(path[-1], point):
            continue
        path.append(point)


def _straight_line_leg(index: int, start: LatLng, end: LatLng) -> RouteLeg:
    distance_m = distance_between(start, end)
    distances = empty_class_breakdown()
    times = empty_class_breakdown()
    distances[FALLBACK_ROAD_CLASS] = distance_m
    times[FALLBACK_ROAD_CLASS] = travel_time_s(distance_m, FALLBACK_ROAD_CLASS)
    return RouteLeg(
        from_waypoint_index=index,
        to_waypoint_index=index + 1,
        distance_m=distance_m,
        distance_by_road_class=distances,
        travel_time_s=times[FALLBACK_ROAD_CLASS],
        travel_time_by_road_class=times,
        fallback_used=True,
    )


def _assemble(waypoints: Sequence[LatLng], path: list[LatLng], legs: list[RouteLeg]) -> RouteResult:
    distances = empty_class_breakdown()
    times = empty_class_breakdown()
    distance_m = 0.0
    duration_s = 0.0
    for leg in legs:
        distance_m += leg.distance_m
        duration_s += leg.travel_time_s
        for road_class in ROAD_CLASSES:
            distances[road_class] += leg.distance_by_road_class[road_class]
            times[road_class] += leg.travel_time_by_road_class[road_class]
    return RouteResult(
        waypoints=list(waypoints),
        path=path,
        distance_m=distance_m,
        distance_by_road_class=distances,
        travel_time_s=duration_s,
        travel_time_by_road_class=times,
        legs=legs,
        fallback_used=any(leg.fallback_used for leg in legs),
    )


def straight_line_route(waypoints: Sequence[LatLng]) -> RouteResult:
    path: list[LatLng] = []
    _append_points(path, waypoints)
    legs = [
        _straight_line_leg(index, waypoints[index], waypoints[index + 1])
        for index in range(len(waypoints) - 1)
    ]
    return _assemble(waypoints, path, legs)


def compose_route(
    graph: RoutingGraph | None,
    waypoints: Sequence[LatLng],
    preferences: RoadPreferences | None = None,
) -> RouteResult | None:
    """Route through ``waypoints`` in order.

    Returns None for fewer than two waypoints. Without a usable graph the
    whole route is a straight line through the raw waypoints. A leg with no
    graph path becomes a straight line between its snapped nodes while the
    other legs stay routed.
    """
    if len(waypoints) < 2:
        return None

    if graph is None or not graph.nodes:
        log_event(
            "route_fallback_straight_line",
            level=logging.WARNING,
            waypoint_count=len(waypoints),
            reason_code="routing_graph_unavailable",
        )
        return straight_line_route(waypoints)

    # Routing accepts any nearest node; the snap cutoff is a display concern.
    snapped: list[GraphNode] = []
    for waypoint in waypoints:
        node = nearest_node(graph, waypoint)
        if node is None:
            return straight_line_route(waypoints)
        snapped.append(node)

    path: list[LatLng] = []
    legs: list[RouteLeg] = []
    for index in range(len(snapped) - 1):
        start, end = snapped[index], snapped[index + 1]
        solution = shortest_path(graph, start.id, end.id, preferences=preferences)
        if solution is None:
            log_event(
                "route_leg_no_path",
                level=logging.WARNING,
                leg_index=index,
                from_node_id=start.id,
                to_node_id=end.id,
            )
            _append_points(path, (start.position, end.position))
            legs.append(_straight_line_leg(index, start.position, end.position))
            continue
        _append_points(path, [graph.nodes[node_id].position for node_id in solution.node_ids])
        legs.append(
            RouteLeg(
                from_waypoint_index=index,
                to_waypoint_index=index + 1,
                distance_m=solution.distance_m,
                distance_by_road_class=solution.distance_by_road_class,
                travel_time_s=solution.travel_time_s,
                travel_time_by_road_class=solution.travel_time_by_road_class,
            )
        )

    result = _assemble([node.position for node in snapped], path, legs)
    log_event(
        "route_computed",
        waypoint_count=len(waypoints),
        leg_count=len(legs),
        fallback_leg_count=sum(1 for leg in legs if leg.fallback_used),
        distance_m=round(result.distance_m, 3),
        travel_time_s=round(result.travel_time_s, 2),
    )
    return result


async def calculate_route(
    store: GraphStore,
    waypoints: Sequence[LatLng],
    preferences: RoadPreferences | None = None,
) -> RouteResult | None:
    if len(waypoints) < 2:
        return None
    graph = await store.load()
    return compose_route(graph, waypoints, preferences)
