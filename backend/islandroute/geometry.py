from __future__ import annotations

import math
from decimal import Decimal
from typing import Any

Vertex = tuple[float, float]  # (lng, lat)

SUPPORTED_GEOMETRY_TYPES = frozenset({"linestring", "multilinestring"})


def _parse_vertex(raw: object) -> Vertex | None:
    if not isinstance(raw, (list, tuple)) or len(raw) < 2:
        return None
    lon_raw, lat_raw = raw[0], raw[1]
    for value in (lon_raw, lat_raw):
        if not isinstance(value, (int, float, Decimal)) or isinstance(value, bool):
            return None
    lon = float(lon_raw)
    lat = float(lat_raw)
    if not (math.isfinite(lon) and math.isfinite(lat)):
        return None
    if not (-90.0 <= lat <= 90.0 and -180.0 <= lon <= 180.0):
        return None
    return (lon, lat)


def _parse_chain(raw: object) -> list[Vertex]:
    if not isinstance(raw, (list, tuple)):
        return []
    chain: list[Vertex] = []
    for coord in raw:
        vertex = _parse_vertex(coord)
        if vertex is not None:
            chain.append(vertex)
    return chain


def line_chains(geometry: Any) -> list[list[Vertex]]:
    """Vertex chains of a GeoJSON line geometry.

    A LineString yields one chain and a MultiLineString one chain per part.
    Any other geometry type yields nothing. Malformed vertices are dropped,
    so a returned chain may end up with fewer than two vertices; callers
    decide what to do with those.
    """
    if not isinstance(geometry, dict):
        return []
    geom_type = str(geometry.get("type", "")).strip().lower()
    if geom_type not in SUPPORTED_GEOMETRY_TYPES:
        return []
    coords = geometry.get("coordinates", [])
    if geom_type == "linestring":
        return [_parse_chain(coords)]
    if not isinstance(coords, (list, tuple)):
        return []
    return [_parse_chain(part) for part in coords]
