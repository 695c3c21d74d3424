from __future__ import annotations

import heapq
import itertools
from dataclasses import dataclass
from math import inf
from typing import Generic, TypeVar

from .models import ROAD_CLASSES, RoadClass, RoadPreferences, empty_class_breakdown
from .preferences import road_class_multiplier
from .routing_graph import GraphEdge, RoutingGraph

T = TypeVar("T")

ROAD_CLASS_SPEED_KPH: dict[RoadClass, float] = {
    "highway": 100.0,
    "arterial": 80.0,
    "collector": 60.0,
    "local": 50.0,
    "resource": 40.0,
    "decommissioned": 20.0,
}


def travel_time_s(distance_m: float, road_class: RoadClass) -> float:
    return distance_m / (ROAD_CLASS_SPEED_KPH[road_class] / 3.6)


class MinPriorityQueue(Generic[T]):
    """Binary heap keyed by priority; equal priorities pop in push order."""

    def __init__(self) -> None:
        self._heap: list[tuple[float, int, T]] = []
        self._counter = itertools.count()

    def push(self, item: T, priority: float) -> None:
        heapq.heappush(self._heap, (priority, next(self._counter), item))

    def pop_min(self) -> tuple[T, float]:
        priority, _, item = heapq.heappop(self._heap)
        return item, priority

    def __len__(self) -> int:
        return len(self._heap)

    def __bool__(self) -> bool:
        return bool(self._heap)


@dataclass(frozen=True)
class PathSolution:
    node_ids: tuple[str, ...]
    edges: tuple[GraphEdge, ...]
    distance_m: float
    weighted_cost: float
    distance_by_road_class: dict[str, float]
    travel_time_s: float
    travel_time_by_road_class: dict[str, float]


def _class_breakdowns(edges: tuple[GraphEdge, ...]) -> tuple[dict[str, float], dict[str, float]]:
    distances = empty_class_breakdown()
    times = empty_class_breakdown()
    for edge in edges:
        distances[edge.road_class] += edge.weight
        times[edge.road_class] += travel_time_s(edge.weight, edge.road_class)
    return distances, times


def shortest_path(
    graph: RoutingGraph,
    start: str,
    goal: str,
    *,
    preferences: RoadPreferences | None = None,
) -> PathSolution | None:
    """Preference-weighted Dijkstra between two node ids.

    The weighted cost only steers the search. ``distance_m`` is the true
    length of the chosen path. Returns None when either node is unknown or
    the goal is unreachable.
    """
    if start not in graph.nodes or goal not in graph.nodes:
        return None

    multipliers = {road_class: road_class_multiplier(road_class, preferences) for road_class in ROAD_CLASSES}

    weighted_distance: dict[str, float] = {start: 0.0}
    true_distance: dict[str, float] = {start: 0.0}
    previous: dict[str, tuple[str, GraphEdge]] = {}
    visited: set[str] = set()
    queue: MinPriorityQueue[str] = MinPriorityQueue()
    queue.push(start, 0.0)

    while queue:
        current, cost = queue.pop_min()
        if current in visited:
            continue
        visited.add(current)
        if current == goal:
            break
        current_node = graph.nodes.get(current)
        if current_node is None:
            # edge into a node the graph does not hold
            continue
        for edge in current_node.edges:
            nxt = edge.target_node_id
            if nxt in visited:
                continue
            candidate = cost + edge.weight * multipliers[edge.road_class]
            if candidate < weighted_distance.get(nxt, inf):
                weighted_distance[nxt] = candidate
                true_distance[nxt] = true_distance[current] + edge.weight
                previous[nxt] = (current, edge)
                queue.push(nxt, candidate)

    if weighted_distance.get(goal, inf) == inf:
        return None

    node_ids: list[str] = [goal]
    path_edges: list[GraphEdge] = []
    node = goal
    while node != start:
        prev_node, edge = previous[node]
        path_edges.append(edge)
        node_ids.append(prev_node)
        node = prev_node
    node_ids.reverse()
    path_edges.reverse()
    edges = tuple(path_edges)

    distances, times = _class_breakdowns(edges)
    return PathSolution(
        node_ids=tuple(node_ids),
        edges=edges,
        distance_m=true_distance[goal],
        weighted_cost=weighted_distance[goal],
        distance_by_road_class=distances,
        travel_time_s=sum(times.values()),
        travel_time_by_road_class=times,
    )
