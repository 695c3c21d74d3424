from __future__ import annotations

import pytest

from islandroute.graph_builder import build_graph
from islandroute.models import ROAD_CLASSES, LatLng, RoadPreferences, RouteResult
from islandroute.multileg_engine import compose_route, positions_equal, straight_line_route
from islandroute.routing_graph import RoutingGraph, haversine_m, make_graph


def _line(coords: list[list[float]], road_class: str = "local") -> dict:
    return {
        "type": "Feature",
        "properties": {"roadClass": road_class},
        "geometry": {"type": "LineString", "coordinates": coords},
    }


def _three_node_graph() -> RoutingGraph:
    # N1(0,0) - N2(0,1) - N3(0,2), coordinates as [lng, lat]
    graph, _ = build_graph([_line([[0.0, 0.0], [1.0, 0.0]]), _line([[1.0, 0.0], [2.0, 0.0]])])
    return graph


def _two_island_graph() -> RoutingGraph:
    graph, _ = build_graph(
        [
            _line([[0.0, 0.0], [0.01, 0.0]], "highway"),
            _line([[1.0, 1.0], [1.01, 1.0]], "arterial"),
        ]
    )
    return graph


def _assert_aggregation_identity(result: RouteResult) -> None:
    assert sum(leg.distance_m for leg in result.legs) == pytest.approx(result.distance_m, rel=1e-6)
    assert sum(leg.travel_time_s for leg in result.legs) == pytest.approx(result.travel_time_s, rel=1e-6)
    assert sum(result.distance_by_road_class.values()) == pytest.approx(result.distance_m, rel=1e-6)
    assert sum(result.travel_time_by_road_class.values()) == pytest.approx(result.travel_time_s, rel=1e-6)
    for road_class in ROAD_CLASSES:
        assert sum(leg.distance_by_road_class[road_class] for leg in result.legs) == pytest.approx(
            result.distance_by_road_class[road_class], rel=1e-6, abs=1e-9
        )
        assert sum(leg.travel_time_by_road_class[road_class] for leg in result.legs) == pytest.approx(
            result.travel_time_by_road_class[road_class], rel=1e-6, abs=1e-9
        )
    for leg in result.legs:
        assert sum(leg.distance_by_road_class.values()) == pytest.approx(leg.distance_m, rel=1e-6)


def _assert_no_consecutive_duplicates(result: RouteResult) -> None:
    for a, b in zip(result.path, result.path[1:]):
        assert not positions_equal(a, b)


def test_three_node_route_follows_graph() -> None:
    graph = _three_node_graph()
    leg_length = haversine_m(0.0, 0.0, 0.0, 1.0)

    result = compose_route(graph, [LatLng(lat=0.0, lng=0.0), LatLng(lat=0.0, lng=2.0)])

    assert result is not None
    assert [(p.lat, p.lng) for p in result.path] == [(0.0, 0.0), (0.0, 1.0), (0.0, 2.0)]
    assert result.distance_m == pytest.approx(2 * leg_length)
    assert len(result.legs) == 1
    leg = result.legs[0]
    assert (leg.from_waypoint_index, leg.to_waypoint_index) == (0, 1)
    assert leg.distance_m == pytest.approx(2 * leg_length)
    assert result.distance_by_road_class["local"] == pytest.approx(2 * leg_length)
    assert all(result.distance_by_road_class[c] == 0.0 for c in ROAD_CLASSES if c != "local")
    assert result.fallback_used is False
    _assert_aggregation_identity(result)


def test_waypoints_snap_to_nearest_nodes_without_cutoff() -> None:
    graph = _three_node_graph()
    # ~55 km off the network; routing still uses the nearest nodes
    result = compose_route(graph, [LatLng(lat=0.5, lng=0.0), LatLng(lat=-0.5, lng=1.9)])
    assert result is not None
    assert [(p.lat, p.lng) for p in result.waypoints] == [(0.0, 0.0), (0.0, 2.0)]
    assert result.fallback_used is False


def test_disconnected_leg_falls_back_to_straight_line_bucketed_local() -> None:
    graph = _two_island_graph()
    start = graph.nodes["n0"].position
    end = graph.nodes["n3"].position

    result = compose_route(graph, [LatLng(lat=0.0, lng=0.0), LatLng(lat=1.0, lng=1.01)])

    assert result is not None
    leg = result.legs[0]
    assert leg.fallback_used is True
    assert leg.distance_m == pytest.approx(haversine_m(start.lat, start.lng, end.lat, end.lng))
    assert leg.distance_by_road_class["local"] == pytest.approx(leg.distance_m)
    assert leg.distance_by_road_class["highway"] == 0.0
    assert result.path == [start, end]
    assert result.fallback_used is True


def test_mixed_routed_and_fallback_legs_share_one_continuous_path() -> None:
    graph = _two_island_graph()
    waypoints = [LatLng(lat=0.0, lng=0.0), LatLng(lat=0.0, lng=0.01), LatLng(lat=1.0, lng=1.01)]

    result = compose_route(graph, waypoints)

    assert result is not None
    assert [leg.fallback_used for leg in result.legs] == [False, True]
    assert result.legs[0].distance_by_road_class["highway"] == pytest.approx(result.legs[0].distance_m)
    assert [(p.lat, p.lng) for p in result.path] == [(0.0, 0.0), (0.0, 0.01), (1.0, 1.01)]
    _assert_aggregation_identity(result)
    _assert_no_consecutive_duplicates(result)


def test_multi_leg_route_elides_shared_leg_endpoints() -> None:
    graph = _three_node_graph()
    waypoints = [LatLng(lat=0.0, lng=0.0), LatLng(lat=0.0, lng=1.0), LatLng(lat=0.0, lng=2.0), LatLng(lat=0.0, lng=2.0)]

    result = compose_route(graph, waypoints)

    assert result is not None
    assert len(result.legs) == 3
    assert [(p.lat, p.lng) for p in result.path] == [(0.0, 0.0), (0.0, 1.0), (0.0, 2.0)]
    assert result.legs[2].distance_m == 0.0
    _assert_aggregation_identity(result)
    _assert_no_consecutive_duplicates(result)


def test_missing_or_empty_graph_routes_straight_through_raw_waypoints() -> None:
    waypoints = [LatLng(lat=48.40, lng=-123.50), LatLng(lat=48.40, lng=-123.50), LatLng(lat=48.50, lng=-123.40)]
    expected = haversine_m(48.40, -123.50, 48.50, -123.40)

    for graph in (None, make_graph({}, generated_at="2026-10-01T00:00:00Z")):
        result = compose_route(graph, waypoints)
        assert result is not None
        assert result.waypoints == waypoints
        assert result.path == [waypoints[0], waypoints[2]]
        assert result.distance_m == pytest.approx(expected)
        assert result.distance_by_road_class["local"] == pytest.approx(expected)
        assert result.travel_time_by_road_class["local"] == pytest.approx(expected / (50.0 / 3.6))
        assert result.fallback_used is True
        _assert_aggregation_identity(result)


def test_fewer_than_two_waypoints_yield_no_route() -> None:
    graph = _three_node_graph()
    assert compose_route(graph, []) is None
    assert compose_route(graph, [LatLng(lat=0.0, lng=0.0)]) is None
    assert compose_route(None, [LatLng(lat=0.0, lng=0.0)]) is None


def test_identical_inputs_give_identical_results() -> None:
    graph, _ = build_graph(
        [
            _line([[0.0, 0.0], [0.01, 0.0]], "highway"),
            _line([[0.01, 0.0], [0.02, 0.0]], "collector"),
            _line([[0.0, 0.0], [0.01, 0.005]], "resource"),
            _line([[0.01, 0.005], [0.02, 0.0]], "resource"),
        ]
    )
    waypoints = [LatLng(lat=0.0, lng=0.0), LatLng(lat=0.0, lng=0.02)]
    prefs = RoadPreferences(types=["resource", "highway"], surfaces=["loose"])

    first = compose_route(graph, waypoints, prefs)
    second = compose_route(graph, waypoints, prefs)

    assert first is not None and second is not None
    assert first.model_dump() == second.model_dump()
    assert first.distance_by_road_class["resource"] > 0.0


def test_straight_line_route_has_one_leg_per_pair() -> None:
    waypoints = [LatLng(lat=0.0, lng=0.0), LatLng(lat=0.0, lng=0.1), LatLng(lat=0.1, lng=0.1)]
    result = straight_line_route(waypoints)
    assert [(leg.from_waypoint_index, leg.to_waypoint_index) for leg in result.legs] == [(0, 1), (1, 2)]
    assert all(leg.fallback_used for leg in result.legs)
    _assert_aggregation_identity(result)
