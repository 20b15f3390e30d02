"""HTTP and WebSocket API over the event store.

Endpoints:

```text
GET /health                  liveness probe
GET /api/events?since=<s>    events received since <s> (Unix seconds)
GET /api/stats               store and multiplexer statistics
WS  /ws                      live push of newly accepted events
```

WebSocket clients receive a ``connected`` message on open, every newly
accepted event as an ``event`` message, and ``pong`` in reply to a text
``ping``. Each client has a bounded outbound queue; a client that falls
behind by more than the queue size is disconnected rather than slowing
down ingestion.
"""

from __future__ import annotations

import asyncio
import contextlib
import json
import math
import time
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from fastapi import FastAPI, Request, Response, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from geofeed.core.logger import Logger


if TYPE_CHECKING:
    from geofeed.core.store import EventStore
    from geofeed.services.multiplexer import RelayMultiplexer


_HTTP_ERROR_THRESHOLD = 400
_WS_POLICY_VIOLATION = 1008
_PING = "ping"
_PONG = "pong"

_logger = Logger("api")


class ClientHub:
    """Fan-out of serialized messages to connected WebSocket clients.

    Messages are serialized once per broadcast and queued per client. A
    ``None`` in a client queue tells its sender to close the connection.
    """

    def __init__(self, queue_size: int = 256) -> None:
        self._queue_size = queue_size
        self._clients: set[asyncio.Queue[str | None]] = set()
        self.dropped_clients = 0

    @property
    def client_count(self) -> int:
        return len(self._clients)

    def register(self) -> asyncio.Queue[str | None]:
        queue: asyncio.Queue[str | None] = asyncio.Queue(maxsize=self._queue_size)
        self._clients.add(queue)
        return queue

    def unregister(self, queue: asyncio.Queue[str | None]) -> None:
        self._clients.discard(queue)

    def broadcast(self, message: dict[str, Any]) -> int:
        """Queue *message* for every client.

        Returns:
            Number of clients the message was queued for.
        """
        if not self._clients:
            return 0
        text = json.dumps(message, separators=(",", ":"))
        delivered = 0
        for queue in list(self._clients):
            try:
                queue.put_nowait(text)
            except asyncio.QueueFull:
                self._drop(queue)
            else:
                delivered += 1
        return delivered

    def _drop(self, queue: asyncio.Queue[str | None]) -> None:
        self._clients.discard(queue)
        self.dropped_clients += 1
        while not queue.empty():
            queue.get_nowait()
        queue.put_nowait(None)
        _logger.warning("ws_client_dropped", reason="queue_full", clients=len(self._clients))


def _parse_since(raw: str | None) -> float | None:
    """Parse the ``since`` query parameter.

    Raises:
        ValueError: If *raw* is not a finite number.
    """
    if raw is None or raw == "":
        return None
    value = float(raw)
    if not math.isfinite(value):
        raise ValueError(f"since must be finite, got {raw!r}")
    return value


async def _receive_loop(websocket: WebSocket, queue: asyncio.Queue[str | None]) -> None:
    with contextlib.suppress(WebSocketDisconnect):
        while True:
            text = await websocket.receive_text()
            if text == _PING:
                with contextlib.suppress(asyncio.QueueFull):
                    queue.put_nowait(_PONG)


async def _send_loop(websocket: WebSocket, queue: asyncio.Queue[str | None]) -> None:
    while True:
        text = await queue.get()
        if text is None:
            await websocket.close(code=_WS_POLICY_VIOLATION)
            return
        await websocket.send_text(text)


def build_app(
    store: EventStore,
    multiplexer: RelayMultiplexer,
    hub: ClientHub,
    *,
    started_at: float,
    cors_origins: list[str] | None = None,
    clock: Callable[[], float] = time.time,
) -> FastAPI:
    """Construct the FastAPI application.

    Args:
        store: Event store queried by the HTTP endpoints.
        multiplexer: Source of relay statistics.
        hub: Fan-out used by ``/ws`` clients.
        started_at: Service start time (Unix seconds) for ``uptime``.
        cors_origins: Allowed CORS origins. Empty or None disables CORS.
        clock: Returns Unix seconds.
    """
    app = FastAPI(title="geofeed")

    if cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=cors_origins,
            allow_methods=["GET"],
            allow_headers=["*"],
        )

    @app.middleware("http")
    async def log_requests(request: Request, call_next: Any) -> Response:
        start = time.monotonic()
        try:
            response: Response = await call_next(request)
        except Exception as exc:  # HTTP request error boundary
            _logger.error("unhandled_error", error=str(exc), path=request.url.path)
            response = JSONResponse({"error": "Internal server error"}, status_code=500)
        duration_ms = (time.monotonic() - start) * 1000
        if response.status_code >= _HTTP_ERROR_THRESHOLD:
            _logger.warning(
                "request_failed",
                method=request.method,
                path=request.url.path,
                status=response.status_code,
                duration_ms=round(duration_ms, 1),
            )
        else:
            _logger.debug(
                "request_completed",
                method=request.method,
                path=request.url.path,
                status=response.status_code,
                duration_ms=round(duration_ms, 1),
            )
        return response

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    @app.get("/api/events")
    async def list_events(request: Request) -> JSONResponse:
        try:
            since = _parse_since(request.query_params.get("since"))
        except ValueError:
            return JSONResponse({"error": "Invalid since"}, status_code=400)

        entries = store.recent(since)
        return JSONResponse(
            {
                "events": [entry.to_dict() for entry in entries],
                "count": len(entries),
                "server_time": int(clock() * 1000),
            }
        )

    @app.get("/api/stats")
    async def stats() -> JSONResponse:
        return JSONResponse(
            {
                "events": store.stats().to_dict(),
                "relays": multiplexer.stats().to_dict(),
                "counters": multiplexer.counters,
                "clients": hub.client_count,
                "uptime": round(clock() - started_at, 3),
            }
        )

    @app.websocket("/ws")
    async def live(websocket: WebSocket) -> None:
        await websocket.accept()
        queue = hub.register()
        _logger.info("ws_client_connected", clients=hub.client_count)
        try:
            await websocket.send_json(
                {
                    "type": "connected",
                    "data": {"event_count": len(store), "client_count": hub.client_count},
                }
            )
            receiver = asyncio.create_task(_receive_loop(websocket, queue))
            sender = asyncio.create_task(_send_loop(websocket, queue))
            try:
                await asyncio.wait({receiver, sender}, return_when=asyncio.FIRST_COMPLETED)
            finally:
                receiver.cancel()
                sender.cancel()
                await asyncio.gather(receiver, sender, return_exceptions=True)
        except WebSocketDisconnect:
            pass
        finally:
            hub.unregister(queue)
            _logger.info("ws_client_disconnected", clients=hub.client_count)

    return app
