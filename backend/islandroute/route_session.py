from __future__ import annotations

from collections.abc import Sequence

from .graph_store import GraphStore
from .logging_utils import log_event
from .models import LatLng, RoadPreferences, RouteResult
from .multileg_engine import calculate_route
from .routing_graph import snap_position
from .settings import settings


class RouteSession:
    """Per-caller routing state with supersession of stale computations.

    Each ``update`` takes a new generation number. A computation whose
    generation is no longer current when it finishes is discarded, so the
    applied route always reflects the latest inputs.
    """

    def __init__(self, store: GraphStore, *, snap_max_distance_m: float | None = None) -> None:
        self.store = store
        self.snap_max_distance_m = (
            float(settings.snap_max_distance_m) if snap_max_distance_m is None else float(snap_max_distance_m)
        )
        self.generation = 0
        self.current: RouteResult | None = None
        self.discarded = 0

    def next_generation(self) -> int:
        self.generation += 1
        return self.generation

    def is_current(self, generation: int) -> bool:
        return generation == self.generation

    async def update(
        self,
        waypoints: Sequence[LatLng],
        preferences: RoadPreferences | None = None,
    ) -> RouteResult | None:
        generation = self.next_generation()
        result = await calculate_route(self.store, waypoints, preferences)
        if not self.is_current(generation):
            self.discarded += 1
            log_event("route_superseded", generation=generation, current_generation=self.generation)
            return None
        self.current = result
        return result

    def clear(self) -> None:
        self.next_generation()
        self.current = None

    async def snap(self, position: LatLng) -> LatLng:
        graph = await self.store.load()
        return snap_position(graph, position, max_distance_m=self.snap_max_distance_m)
