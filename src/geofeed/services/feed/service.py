"""Feed service: relays in, bounded event store and live API out.

Wires the [RelayDirectory][geofeed.services.directory.RelayDirectory],
[RelayMultiplexer][geofeed.services.multiplexer.RelayMultiplexer] and
[EventStore][geofeed.core.store.EventStore] together. Every event the
multiplexer accepts is added to the store and, if new, pushed to live
WebSocket clients.

The multiplexer and the HTTP server run as background ``asyncio.Task``
objects alongside the standard ``run_forever()`` cycle. Each ``run()``
cycle logs statistics and updates Prometheus metrics.

See Also:
    [FeedConfig][geofeed.services.feed.FeedConfig]: Configuration model.
    [build_app()][geofeed.services.feed.api.build_app]: The FastAPI
        application served by this service.

Examples:
    ```python
    feed = Feed.from_yaml("config/geofeed.yaml")
    async with feed:
        await feed.run_forever()
    ```
"""

from __future__ import annotations

import asyncio
import contextlib
import time
from collections.abc import Callable
from typing import TYPE_CHECKING, ClassVar, Self

import uvicorn

from geofeed.core.base_service import BaseService
from geofeed.core.store import EventStore
from geofeed.models.constants import ServiceName
from geofeed.services.directory import RelayDirectory
from geofeed.services.multiplexer import RelayMultiplexer

from .api import ClientHub, build_app
from .configs import FeedConfig


if TYPE_CHECKING:
    from types import TracebackType

    from fastapi import FastAPI

    from geofeed.models.event import Event


class Feed(BaseService[FeedConfig]):
    """Geospatial Nostr event feed.

    Collaborators default to instances built from the configuration and
    can be passed in explicitly (tests, embedding).

    Lifecycle:
        1. ``__aenter__``: start store pruning, register the event callback,
           start the multiplexer and the HTTP server in the background.
        2. ``run()``: log statistics and update Prometheus gauges.
        3. ``__aexit__``: stop the HTTP server, the multiplexer and pruning.
    """

    SERVICE_NAME: ClassVar[ServiceName] = ServiceName.FEED
    CONFIG_CLASS: ClassVar[type[FeedConfig]] = FeedConfig

    def __init__(
        self,
        config: FeedConfig | None = None,
        *,
        store: EventStore | None = None,
        directory: RelayDirectory | None = None,
        multiplexer: RelayMultiplexer | None = None,
        hub: ClientHub | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        super().__init__(config)
        self._clock = clock
        # Store and directory define __len__, so test for None explicitly
        if store is None:
            store = EventStore(self._config.store, clock=clock)
        if directory is None:
            directory = RelayDirectory(self._config.directory)
        if multiplexer is None:
            multiplexer = RelayMultiplexer(directory, self._config.multiplexer)
        if hub is None:
            hub = ClientHub(self._config.api.client_queue_size)
        self._store = store
        self._directory = directory
        self._multiplexer = multiplexer
        self._hub = hub
        self._started_at = clock()
        self._start_task: asyncio.Task[None] | None = None
        self._server_task: asyncio.Task[None] | None = None
        self._reported: dict[str, int] = {}

    @property
    def store(self) -> EventStore:
        return self._store

    @property
    def directory(self) -> RelayDirectory:
        return self._directory

    @property
    def multiplexer(self) -> RelayMultiplexer:
        return self._multiplexer

    @property
    def hub(self) -> ClientHub:
        return self._hub

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    async def __aenter__(self) -> Self:
        await super().__aenter__()
        self._started_at = self._clock()

        self._store.start_pruning()
        self._multiplexer.on_event(self._on_event)
        self._start_task = asyncio.create_task(self._multiplexer.start(), name="multiplexer-start")

        if self._config.api.enabled:
            self._server_task = asyncio.create_task(self._run_server(self.build_app()))
            self._logger.info(
                "http_server_started",
                host=self._config.api.host,
                port=self._config.api.port,
            )
        return self

    async def __aexit__(
        self,
        _exc_type: type[BaseException] | None,
        _exc_val: BaseException | None,
        _exc_tb: TracebackType | None,
    ) -> None:
        if self._server_task is not None:
            self._server_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._server_task
            self._server_task = None
            self._logger.info("http_server_stopped")

        if self._start_task is not None:
            self._start_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._start_task
            self._start_task = None

        await self._multiplexer.stop()
        self._multiplexer.on_event(None)
        await self._store.stop_pruning()
        await super().__aexit__(_exc_type, _exc_val, _exc_tb)

    def build_app(self) -> FastAPI:
        """Construct the FastAPI application bound to this feed."""
        return build_app(
            self._store,
            self._multiplexer,
            self._hub,
            started_at=self._started_at,
            cors_origins=self._config.api.cors_origins,
            clock=self._clock,
        )

    async def _run_server(self, app: FastAPI) -> None:
        """Run uvicorn as an asyncio server."""
        config = uvicorn.Config(
            app,
            host=self._config.api.host,
            port=self._config.api.port,
            log_level="warning",
            access_log=False,
        )
        server = uvicorn.Server(config)
        await server.serve()

    # -------------------------------------------------------------------------
    # Ingestion
    # -------------------------------------------------------------------------

    def _on_event(self, event: Event, region: str, relay: str) -> None:
        if not self._store.add(event, region, relay):
            return
        entry = self._store.get(event.id)
        if entry is not None:
            self._hub.broadcast({"type": "event", "data": entry.to_dict()})

    # -------------------------------------------------------------------------
    # BaseService Implementation
    # -------------------------------------------------------------------------

    async def run(self) -> None:
        """Log feed statistics and update Prometheus metrics."""
        if self._server_task is not None and self._server_task.done():
            exc = self._server_task.exception() if not self._server_task.cancelled() else None
            self._logger.error("http_server_crashed", error=str(exc) if exc else "cancelled")
            raise RuntimeError("HTTP server task has stopped unexpectedly") from exc

        store_stats = self._store.stats()
        relay_stats = self._multiplexer.stats()
        counters = self._multiplexer.counters

        self._logger.info(
            "cycle_stats",
            events=store_stats.total_events,
            regions_active=len(store_stats.events_per_region),
            relays_open=relay_stats.open_relays,
            relays=relay_stats.relays,
            clients=self._hub.client_count,
            state=self._multiplexer.state,
            **counters,
        )

        self.set_gauge("events_stored", store_stats.total_events)
        self.set_gauge("regions_active", len(store_stats.events_per_region))
        self.set_gauge("regions_assigned", relay_stats.regions)
        self.set_gauge("relays_open", relay_stats.open_relays)
        self.set_gauge("relays_total", relay_stats.relays)
        self.set_gauge("ws_clients", self._hub.client_count)

        for name, value in counters.items():
            delta = value - self._reported.get(name, 0)
            if delta > 0:
                self.inc_counter(name, delta)
            self._reported[name] = value
