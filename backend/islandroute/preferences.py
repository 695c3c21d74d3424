from __future__ import annotations

from .models import RoadClass, RoadPreferences, RoadSurface

PREFERRED_BASE_MULTIPLIER = 0.5
PREFERRED_RANK_STEP = 0.1
NON_PREFERRED_MULTIPLIER = 1.5
NEUTRAL_MULTIPLIER = 1.0

ROAD_CLASS_CODES: dict[RoadClass, str] = {
    "highway": "h",
    "arterial": "a",
    "collector": "c",
    "local": "l",
    "resource": "r",
    "decommissioned": "d",
}
CODE_TO_ROAD_CLASS: dict[str, RoadClass] = {code: value for value, code in ROAD_CLASS_CODES.items()}

ROAD_SURFACE_CODES: dict[RoadSurface, str] = {
    "paved": "p",
    "loose": "l",
    "rough": "r",
    "overgrown": "o",
    "decommissioned": "d",
}
CODE_TO_ROAD_SURFACE: dict[str, RoadSurface] = {code: value for value, code in ROAD_SURFACE_CODES.items()}


def ranked_multiplier(value: str, ranking: list[str] | tuple[str, ...]) -> float:
    """Cost multiplier for ``value`` given a ranked preference list.

    Rank 0 costs x0.5, rank 1 x0.6 and so on; anything missing from a
    non-empty list costs x1.5; an empty list is neutral.
    """
    if not ranking:
        return NEUTRAL_MULTIPLIER
    try:
        rank = ranking.index(value)
    except ValueError:
        return NON_PREFERRED_MULTIPLIER
    return PREFERRED_BASE_MULTIPLIER + PREFERRED_RANK_STEP * rank


def road_class_multiplier(road_class: RoadClass, preferences: RoadPreferences | None) -> float:
    if preferences is None:
        return NEUTRAL_MULTIPLIER
    return ranked_multiplier(road_class, preferences.types)


def road_surface_multiplier(surface: RoadSurface, preferences: RoadPreferences | None) -> float:
    # Not applied to edge cost: graph edges carry no surface attribute.
    if preferences is None:
        return NEUTRAL_MULTIPLIER
    return ranked_multiplier(surface, preferences.surfaces)


def encode_preferences(preferences: RoadPreferences) -> str:
    """Compact form ``t<class codes>.s<surface codes>``, e.g. ``trh.sl``."""
    type_codes = "".join(ROAD_CLASS_CODES[value] for value in preferences.types)
    surface_codes = "".join(ROAD_SURFACE_CODES[value] for value in preferences.surfaces)
    parts: list[str] = []
    if type_codes:
        parts.append(f"t{type_codes}")
    if surface_codes:
        parts.append(f"s{surface_codes}")
    return ".".join(parts)


def _decode_codes(codes: str, table: dict[str, str]) -> list[str]:
    out: list[str] = []
    for code in codes:
        value = table.get(code)
        # unknown codes and repeats are dropped
        if value is not None and value not in out:
            out.append(value)
    return out


def decode_preferences(encoded: str) -> RoadPreferences:
    types: list[str] = []
    surfaces: list[str] = []
    for part in (encoded or "").strip().split("."):
        if part.startswith("t"):
            types = _decode_codes(part[1:], CODE_TO_ROAD_CLASS)
        elif part.startswith("s"):
            surfaces = _decode_codes(part[1:], CODE_TO_ROAD_SURFACE)
    return RoadPreferences(types=types, surfaces=surfaces)
