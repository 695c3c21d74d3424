from __future__ import annotations

import asyncio

import pytest

from islandroute.graph_builder import build_graph
from islandroute.models import LatLng
from islandroute.route_session import RouteSession
from islandroute.routing_graph import RoutingGraph


def _graph() -> RoutingGraph:
    graph, _ = build_graph(
        [
            {
                "type": "Feature",
                "properties": {"roadClass": "collector"},
                "geometry": {"type": "LineString", "coordinates": [[-123.50, 48.40], [-123.49, 48.40]]},
            }
        ]
    )
    return graph


class _GatedStore:
    """Serves a fixed graph, holding each load until its gate is opened."""

    def __init__(self, graph: RoutingGraph | None) -> None:
        self.graph = graph
        self.gates: list[asyncio.Event] = []

    async def load(self) -> RoutingGraph | None:
        gate = asyncio.Event()
        self.gates.append(gate)
        await gate.wait()
        return self.graph


class _ReadyStore:
    def __init__(self, graph: RoutingGraph | None) -> None:
        self.graph = graph

    async def load(self) -> RoutingGraph | None:
        return self.graph


A = LatLng(lat=48.40, lng=-123.50)
B = LatLng(lat=48.40, lng=-123.49)


@pytest.mark.anyio
async def test_stale_computation_is_discarded() -> None:
    store = _GatedStore(_graph())
    session = RouteSession(store)  # type: ignore[arg-type]

    first = asyncio.ensure_future(session.update([A, B]))
    await asyncio.sleep(0)
    second = asyncio.ensure_future(session.update([B, A]))
    await asyncio.sleep(0)
    assert len(store.gates) == 2

    # the older request finishes last and must not overwrite the newer one
    store.gates[1].set()
    newer = await second
    store.gates[0].set()
    older = await first

    assert older is None
    assert newer is not None
    assert session.current is newer
    assert session.current.waypoints == [B, A]
    assert session.discarded == 1
    assert session.generation == 2


@pytest.mark.anyio
async def test_update_in_order_applies_each_result() -> None:
    session = RouteSession(_ReadyStore(_graph()))  # type: ignore[arg-type]

    first = await session.update([A, B])
    second = await session.update([B, A])

    assert first is not None and second is not None
    assert session.current is second
    assert session.discarded == 0


@pytest.mark.anyio
async def test_clear_supersedes_in_flight_update() -> None:
    store = _GatedStore(_graph())
    session = RouteSession(store)  # type: ignore[arg-type]

    pending = asyncio.ensure_future(session.update([A, B]))
    await asyncio.sleep(0)
    session.clear()
    store.gates[0].set()

    assert await pending is None
    assert session.current is None


@pytest.mark.anyio
async def test_update_with_one_waypoint_clears_route() -> None:
    session = RouteSession(_ReadyStore(_graph()))  # type: ignore[arg-type]
    await session.update([A, B])
    assert session.current is not None

    assert await session.update([A]) is None
    assert session.current is None


@pytest.mark.anyio
async def test_snap_respects_max_distance() -> None:
    session = RouteSession(_ReadyStore(_graph()), snap_max_distance_m=500.0)  # type: ignore[arg-type]

    near = LatLng(lat=48.401, lng=-123.50)  # ~111 m north of a node
    far = LatLng(lat=48.41, lng=-123.50)  # ~1.1 km north

    assert await session.snap(near) == A
    assert await session.snap(far) == far


@pytest.mark.anyio
async def test_snap_without_graph_returns_input() -> None:
    session = RouteSession(_ReadyStore(None), snap_max_distance_m=500.0)  # type: ignore[arg-type]
    assert await session.snap(A) == A
