from __future__ import annotations

from dataclasses import dataclass
from typing import Any

FROZEN_REASON_CODES: frozenset[str] = frozenset(
    {
        # graph loading (caught by GraphStore, never fatal to routing)
        "routing_graph_unavailable",
        "routing_graph_fetch_failed",
        "routing_graph_http_status",
        "routing_graph_invalid_json",
        "routing_graph_schema_invalid",
        # offline graph build
        "graph_source_invalid",
        "graph_source_empty",
        # command-line input
        "preferences_invalid",
        "waypoint_invalid",
    }
)


@dataclass
class RoutingDataError(ValueError):
    reason_code: str
    message: str
    details: dict[str, Any] | None = None

    def __str__(self) -> str:
        return self.message

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "reason_code": normalize_reason_code(self.reason_code),
            "message": self.message,
        }
        if self.details:
            payload["details"] = dict(self.details)
        return payload


def normalize_reason_code(reason_code: str, *, default: str = "routing_graph_unavailable") -> str:
    code = str(reason_code or "").strip()
    if code in FROZEN_REASON_CODES:
        return code
    return default
