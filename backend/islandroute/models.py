from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

RoadClass = Literal["highway", "arterial", "collector", "local", "resource", "decommissioned"]
RoadSurface = Literal["paved", "loose", "rough", "overgrown", "decommissioned"]

# Canonical order for every per-class breakdown.
ROAD_CLASSES: tuple[RoadClass, ...] = (
    "highway",
    "arterial",
    "collector",
    "local",
    "resource",
    "decommissioned",
)
ROAD_SURFACES: tuple[RoadSurface, ...] = ("paved", "loose", "rough", "overgrown", "decommissioned")


def empty_class_breakdown() -> dict[str, float]:
    return {road_class: 0.0 for road_class in ROAD_CLASSES}


class LatLng(BaseModel):
    model_config = ConfigDict(frozen=True)

    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)


class RoadPreferences(BaseModel):
    """Ranked road preferences; index 0 is the strongest preference.

    Surfaces are carried for callers but do not influence edge cost, since
    graph edges have no surface attribute.
    """

    types: list[RoadClass] = Field(default_factory=list)
    surfaces: list[RoadSurface] = Field(default_factory=list)

    @field_validator("types", "surfaces")
    @classmethod
    def unique_ranks(cls, v: list[str]) -> list[str]:
        if len(set(v)) != len(v):
            raise ValueError("preference ranks must not repeat an entry")
        return v


class RouteLeg(BaseModel):
    from_waypoint_index: int = Field(..., ge=0)
    to_waypoint_index: int = Field(..., ge=0)
    distance_m: float = Field(..., ge=0.0)
    distance_by_road_class: dict[RoadClass, float]
    travel_time_s: float = Field(..., ge=0.0)
    travel_time_by_road_class: dict[RoadClass, float]
    fallback_used: bool = False


class RouteResult(BaseModel):
    waypoints: list[LatLng]
    path: list[LatLng]
    distance_m: float = Field(..., ge=0.0)
    distance_by_road_class: dict[RoadClass, float]
    travel_time_s: float = Field(..., ge=0.0)
    travel_time_by_road_class: dict[RoadClass, float]
    legs: list[RouteLeg] = Field(default_factory=list)
    fallback_used: bool = False


# Persisted graph document. Keys are camelCase on disk.


class GraphEdgePayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    target_node_id: str = Field(..., alias="targetNodeId", min_length=1)
    road_segment_id: str = Field(..., alias="roadSegmentId")
    weight: float = Field(..., ge=0.0, allow_inf_nan=False)
    road_class: RoadClass = Field(..., alias="roadClass")


class GraphNodePayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(..., min_length=1)
    position: LatLng
    edges: list[GraphEdgePayload] = Field(default_factory=list)


class GraphMetadataPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    node_count: int = Field(..., alias="nodeCount", ge=0)
    edge_count: int = Field(..., alias="edgeCount", ge=0)
    generated_at: str = Field(..., alias="generatedAt")


class GraphPayload(BaseModel):
    nodes: dict[str, GraphNodePayload]
    metadata: GraphMetadataPayload
