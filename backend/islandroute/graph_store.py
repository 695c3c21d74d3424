from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import Any

import httpx

from .logging_utils import log_event
from .routing_errors import RoutingDataError, normalize_reason_code
from .routing_graph import RoutingGraph, graph_from_payload
from .settings import settings


def _is_url(source: str) -> bool:
    return source.lower().startswith(("http://", "https://"))


class GraphStore:
    """Loads the routing graph once and serves it to every caller.

    Concurrent callers that arrive before the first load resolves await the
    same in-flight task, so the source is fetched at most once. Failures
    resolve to None instead of raising, and that outcome is memoized like a
    success until ``reset()`` is called.
    """

    def __init__(
        self,
        *,
        source: str,
        timeout_s: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.source = source
        self._timeout_s = max(0.5, float(timeout_s))
        self._transport = transport
        self._task: asyncio.Task[RoutingGraph | None] | None = None
        self._generation = 0
        self._graph: RoutingGraph | None = None
        self._resolved = False
        self._fetch_count = 0
        self._last_reason_code: str | None = None

    @classmethod
    def from_settings(cls) -> GraphStore:
        return cls(
            source=settings.routing_graph_source,
            timeout_s=settings.routing_graph_fetch_timeout_s,
        )

    async def load(self) -> RoutingGraph | None:
        if self._resolved:
            return self._graph
        if self._task is None:
            self._task = asyncio.ensure_future(self._load_once(self._generation))
        # shield: one caller being cancelled must not cancel the shared fetch
        return await asyncio.shield(self._task)

    def peek(self) -> RoutingGraph | None:
        return self._graph

    def reset(self) -> None:
        # An in-flight load keeps running for its own awaiters but is not memoized.
        self._generation += 1
        self._task = None
        self._graph = None
        self._resolved = False
        self._last_reason_code = None

    def status(self) -> dict[str, Any]:
        if self._resolved:
            state = "ready" if self._graph is not None else "failed"
        elif self._task is not None:
            state = "loading"
        else:
            state = "idle"
        return {
            "state": state,
            "source": self.source,
            "fetch_count": self._fetch_count,
            "node_count": self._graph.node_count if self._graph is not None else 0,
            "edge_count": self._graph.edge_count if self._graph is not None else 0,
            "generated_at": self._graph.generated_at if self._graph is not None else None,
            "last_reason_code": self._last_reason_code,
        }

    async def _load_once(self, generation: int) -> RoutingGraph | None:
        self._fetch_count += 1
        reason_code: str | None = None
        try:
            raw = await self._fetch_document()
            graph = graph_from_payload(raw)
        except RoutingDataError as exc:
            reason_code = normalize_reason_code(exc.reason_code)
            log_event(
                "graph_load_failed",
                level=logging.WARNING,
                source=self.source,
                reason_code=reason_code,
                detail=str(exc),
            )
            graph = None
        else:
            log_event(
                "graph_load_ok",
                source=self.source,
                node_count=graph.node_count,
                edge_count=graph.edge_count,
                generated_at=graph.generated_at,
            )
        if generation == self._generation:
            self._graph = graph
            self._last_reason_code = reason_code
            self._resolved = True
        return graph

    async def _fetch_document(self) -> Any:
        if _is_url(self.source):
            text = await self._fetch_http()
        else:
            text = await self._read_file()
        try:
            return json.loads(text)
        except ValueError as exc:
            raise RoutingDataError(
                reason_code="routing_graph_invalid_json",
                message=f"Routing graph at {self.source} is not valid JSON.",
            ) from exc

    async def _fetch_http(self) -> str:
        try:
            async with httpx.AsyncClient(
                timeout=httpx.Timeout(self._timeout_s),
                transport=self._transport,
                headers={"accept": "application/json"},
            ) as client:
                resp = await client.get(self.source)
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            raise RoutingDataError(
                reason_code="routing_graph_fetch_failed",
                message=f"Routing graph fetch failed: {exc}",
            ) from exc
        if not resp.is_success:
            raise RoutingDataError(
                reason_code="routing_graph_http_status",
                message=f"Routing graph not available: HTTP {resp.status_code}",
                details={"status_code": resp.status_code},
            )
        return resp.text

    async def _read_file(self) -> str:
        path = Path(self.source)
        try:
            return await asyncio.to_thread(path.read_text, encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise RoutingDataError(
                reason_code="routing_graph_fetch_failed",
                message=f"Routing graph file unreadable: {path}",
            ) from exc
