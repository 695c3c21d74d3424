from __future__ import annotations

from dataclasses import dataclass, field

from .geometry import Vertex

CoordinateKey = tuple[float, float]

DEFAULT_PRECISION = 5


def coordinate_key(lng: float, lat: float, precision: int = DEFAULT_PRECISION) -> CoordinateKey:
    """Canonical key for "the same place": each axis rounded independently."""
    digits = max(0, int(precision))
    # + 0.0 folds -0.0 into 0.0 so keys serialise identically
    return (round(float(lng), digits) + 0.0, round(float(lat), digits) + 0.0)


@dataclass
class EndpointIndex:
    """Assigns node ids to polyline endpoints keyed by rounded coordinates.

    Ids are handed out in first-seen order (``n0``, ``n1``, ...). The first
    raw position seen for a key becomes the node position.
    """

    precision: int = DEFAULT_PRECISION
    node_ids: dict[CoordinateKey, str] = field(default_factory=dict)
    positions: dict[str, Vertex] = field(default_factory=dict)
    touches: dict[str, int] = field(default_factory=dict)

    def key_for(self, vertex: Vertex) -> CoordinateKey:
        return coordinate_key(vertex[0], vertex[1], self.precision)

    def add(self, vertex: Vertex) -> str:
        key = self.key_for(vertex)
        node_id = self.node_ids.get(key)
        if node_id is None:
            node_id = f"n{len(self.node_ids)}"
            self.node_ids[key] = node_id
            self.positions[node_id] = vertex
            self.touches[node_id] = 0
        self.touches[node_id] += 1
        return node_id

    def touch_count(self, node_id: str) -> int:
        return self.touches.get(node_id, 0)

    @property
    def dead_end_count(self) -> int:
        return sum(1 for count in self.touches.values() if count == 1)

    def __len__(self) -> int:
        return len(self.node_ids)
