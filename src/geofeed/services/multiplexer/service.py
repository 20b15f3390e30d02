"""
Geospatial relay multiplexer.

Maintains one WebSocket per relay and, on each, one subscription per
geohash region assigned to that relay. Events from every connection are
funnelled through a single router which maps the subscription back to its
region, drops events already seen from another relay, and hands each new
event to the registered callback.

```text
socket reader (per relay) --> asyncio.Queue --> router --> seen-set --> callback
```

Lifecycle:

- [start()][geofeed.services.multiplexer.RelayMultiplexer.start] loads the
  directory, builds the region assignment and opens connections one at a
  time with a short pause between attempts.
- A dropped connection is retried after an exponential backoff with
  jitter; the attempt counter resets on every successful handshake.
- [stop()][geofeed.services.multiplexer.RelayMultiplexer.stop] cancels
  reconnect timers and connection tasks, sends CLOSE for every open
  subscription, closes every socket and clears all routing state.

Third-party relays misbehave constantly. Connection failures, malformed
frames and duplicate events are absorbed here and never surface to the
caller; they are visible only through logs and
[counters][geofeed.services.multiplexer.RelayMultiplexer.counters].

See Also:
    [RegionAssignment][geofeed.services.multiplexer.assignment.RegionAssignment]:
        Region to nearest-relays mapping.
    [parse_relay_message()][geofeed.nips.nip01.parse_relay_message]:
        Decodes each inbound frame once.
    [Feed][geofeed.services.feed.Feed]: Stores and broadcasts accepted
        events.

Examples:
    ```python
    multiplexer = RelayMultiplexer(RelayDirectory())
    multiplexer.on_event(lambda event, region, relay: store.add(event, region, relay))
    await multiplexer.start()
    ...
    await multiplexer.stop()
    ```
"""

from __future__ import annotations

import asyncio
import contextlib
import random
import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from functools import partial
from types import MappingProxyType
from typing import TYPE_CHECKING, Any

from geofeed.core.logger import Logger
from geofeed.models.constants import ConnectionStatus, ManagerState
from geofeed.nips.nip01 import (
    ClosedMessage,
    EoseMessage,
    EventMessage,
    NoticeMessage,
    UnrecognizedMessage,
    build_close,
    build_req,
    parse_relay_message,
)
from geofeed.utils.geo import enumerate_regions
from geofeed.utils.transport import open_websocket

from .assignment import RegionAssignment
from .configs import MultiplexerConfig
from .utils import RelayConnection, SeenSet, compute_backoff, subscription_id


if TYPE_CHECKING:
    from geofeed.models.event import Event
    from geofeed.services.directory import RelayDirectory
    from geofeed.utils.transport import Connector, RelaySocket


EventCallback = Callable[["Event", str, str], Any]
"""Called as ``callback(event, region, relay_url)`` for every new event."""

_ACTIVE_STATES = frozenset({ManagerState.STARTING, ManagerState.RUNNING})


@dataclass(frozen=True, slots=True)
class MultiplexerStats:
    """Snapshot of the multiplexer.

    Attributes:
        regions: Regions with at least one assigned relay.
        open_relays: Relays whose socket is currently open.
        relays: Relays the multiplexer manages.
    """

    regions: int
    open_relays: int
    relays: int

    def to_dict(self) -> dict[str, int]:
        return {
            "regions": self.regions,
            "open_relays": self.open_relays,
            "relays": self.relays,
        }


class RelayMultiplexer:
    """Subscribes to every monitored region on its nearest relays.

    Args:
        directory: Source of the relay snapshot, loaded on every start.
        config: Region universe, fan-out, backoff and subscription filter.
        connector: Coroutine function opening a socket for a relay URL.
            Defaults to [open_websocket()][geofeed.utils.transport.open_websocket].
        rng: Random source for backoff jitter.
        clock: Returns Unix seconds; used for the subscription ``since``.
    """

    def __init__(
        self,
        directory: RelayDirectory,
        config: MultiplexerConfig | None = None,
        *,
        connector: Connector | None = None,
        rng: random.Random | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._directory = directory
        self._config = config or MultiplexerConfig()
        self._connector: Connector = connector or partial(
            open_websocket, timeout=self._config.connect_timeout
        )
        self._rng = rng or random.Random()  # noqa: S311
        self._clock = clock
        self._logger = Logger("multiplexer")

        self._state = ManagerState.STOPPED
        self._generation = 0
        self._assignment = RegionAssignment({}, {})
        self._connections: dict[str, RelayConnection] = {}
        self._routes: dict[str, str] = {}
        self._seen = SeenSet(self._config.seen_capacity)
        self._callback: EventCallback | None = None
        self._queue: asyncio.Queue[tuple[str, str]] | None = None
        self._router_task: asyncio.Task[None] | None = None
        self._counters: dict[str, int] = dict.fromkeys(
            ("events_accepted", "events_duplicate", "messages_dropped", "notices"), 0
        )

    # -------------------------------------------------------------------------
    # Introspection
    # -------------------------------------------------------------------------

    @property
    def config(self) -> MultiplexerConfig:
        return self._config

    @property
    def state(self) -> ManagerState:
        return self._state

    @property
    def assignment(self) -> RegionAssignment:
        return self._assignment

    @property
    def connections(self) -> Mapping[str, RelayConnection]:
        """Connection records keyed by relay URL (read-only view)."""
        return MappingProxyType(self._connections)

    @property
    def routes(self) -> Mapping[str, str]:
        """Subscription id to region index (read-only view)."""
        return MappingProxyType(self._routes)

    @property
    def counters(self) -> dict[str, int]:
        """Cumulative message counters since construction."""
        return dict(self._counters)

    @property
    def seen_count(self) -> int:
        return len(self._seen)

    def stats(self) -> MultiplexerStats:
        open_relays = sum(
            1 for conn in self._connections.values() if conn.status is ConnectionStatus.OPEN
        )
        return MultiplexerStats(
            regions=len(self._assignment),
            open_relays=open_relays,
            relays=len(self._connections),
        )

    def on_event(self, callback: EventCallback | None) -> None:
        """Register the event callback, replacing any previous one."""
        self._callback = callback

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def _is_current(self, generation: int) -> bool:
        return generation == self._generation and self._state in _ACTIVE_STATES

    async def start(self) -> None:
        """Load the directory and connect to every assigned relay.

        No-op while already starting or running. A concurrent
        [stop()][geofeed.services.multiplexer.RelayMultiplexer.stop]
        aborts the connection sequence.
        """
        if self._state is not ManagerState.STOPPED:
            self._logger.debug("start_ignored", state=self._state)
            return

        self._state = ManagerState.STARTING
        self._generation += 1
        generation = self._generation
        self._logger.info("multiplexer_starting")

        self._queue = asyncio.Queue(maxsize=self._config.queue_size)
        self._router_task = asyncio.create_task(self._route_loop(), name="multiplexer-router")

        relays = await self._directory.load()
        if not self._is_current(generation):
            return

        self._assignment = RegionAssignment.build(
            relays,
            enumerate_regions(self._config.max_depth),
            self._config.regions_per_relay,
        )
        self._logger.info(
            "assignment_built",
            regions=len(self._assignment),
            relays=len(self._assignment.relays),
        )

        for index, relay in enumerate(self._assignment.relays):
            if index and self._config.startup_delay:
                await asyncio.sleep(self._config.startup_delay)
            if not self._is_current(generation):
                return
            self._connections[relay.url] = RelayConnection(relay)
            self._connect(relay.url)

        self._state = ManagerState.RUNNING
        self._logger.info("multiplexer_running", relays=len(self._connections))

    async def stop(self) -> None:
        """Unsubscribe, close every connection and clear all routing state.

        No-op while already stopping or stopped. The seen-set is kept, so
        events accepted before a restart are not delivered again.
        """
        if self._state in (ManagerState.STOPPED, ManagerState.STOPPING):
            return

        self._state = ManagerState.STOPPING
        self._generation += 1
        self._logger.info("multiplexer_stopping", relays=len(self._connections))

        connections = list(self._connections.values())
        tasks: list[asyncio.Task[None]] = []
        for conn in connections:
            conn.cancel_timer()
            if conn.task is not None and not conn.task.done():
                conn.task.cancel()
                tasks.append(conn.task)
        if self._router_task is not None:
            self._router_task.cancel()
            tasks.append(self._router_task)

        await asyncio.gather(*tasks, return_exceptions=True)

        for conn in connections:
            if conn.socket is not None:
                await self._unsubscribe(conn.socket, self._assignment.regions_for(conn.relay))
                await self._close_socket(conn.socket)
                conn.socket = None
            conn.task = None
            conn.status = ConnectionStatus.STOPPED

        self._connections.clear()
        self._routes.clear()
        self._assignment = RegionAssignment({}, {})
        self._router_task = None
        self._queue = None
        self._state = ManagerState.STOPPED
        self._logger.info("multiplexer_stopped")

    # -------------------------------------------------------------------------
    # Connections
    # -------------------------------------------------------------------------

    def _connect(self, url: str) -> None:
        """Start the connection task for *url* unless one is already active."""
        conn = self._connections.get(url)
        if conn is None or self._state not in _ACTIVE_STATES:
            return
        conn.cancel_timer()
        if conn.task is not None and not conn.task.done():
            return
        conn.status = ConnectionStatus.CONNECTING
        conn.task = asyncio.create_task(self._run_connection(conn), name=f"relay:{url}")

    async def _run_connection(self, conn: RelayConnection) -> None:
        url = conn.relay.url
        try:
            socket = await self._connector(url)
        except OSError as e:
            self._logger.debug("relay_connect_failed", relay=url, error=str(e))
            self._handle_disconnect(conn)
            return

        conn.socket = socket
        conn.status = ConnectionStatus.OPEN
        conn.reconnect_attempts = 0
        regions = self._assignment.regions_for(conn.relay)
        self._logger.info("relay_connected", relay=url, regions=len(regions))

        try:
            await self._subscribe(socket, regions)
            async for frame in socket:
                await self._enqueue(url, frame)
        except OSError as e:
            self._logger.debug("relay_connection_lost", relay=url, error=str(e))

        await self._close_socket(socket)
        self._logger.info("relay_disconnected", relay=url)
        self._handle_disconnect(conn)

    async def _subscribe(self, socket: RelaySocket, regions: tuple[str, ...]) -> None:
        sub = self._config.subscription
        since = int(self._clock()) - sub.window
        for region in regions:
            sid = subscription_id(region)
            self._routes[sid] = region
            await socket.send(
                build_req(
                    sid,
                    {"kinds": list(sub.kinds), "#g": [region], "since": since, "limit": sub.limit},
                )
            )

    async def _unsubscribe(self, socket: RelaySocket, regions: tuple[str, ...]) -> None:
        for region in regions:
            try:
                await socket.send(build_close(subscription_id(region)))
            except OSError:
                return

    async def _enqueue(self, url: str, frame: str) -> None:
        if self._queue is not None:
            await self._queue.put((url, frame))

    @staticmethod
    async def _close_socket(socket: RelaySocket) -> None:
        # Intentionally broad: a failing close must not abort teardown
        with contextlib.suppress(Exception):
            await socket.close()

    def _handle_disconnect(self, conn: RelayConnection) -> None:
        conn.socket = None
        conn.status = ConnectionStatus.CLOSED
        if conn.task is asyncio.current_task():
            conn.task = None
        if self._state not in _ACTIVE_STATES:
            return
        self._schedule_reconnect(conn)

    def _schedule_reconnect(self, conn: RelayConnection) -> None:
        conn.cancel_timer()
        backoff = self._config.reconnect
        delay = compute_backoff(
            conn.reconnect_attempts,
            backoff.base_delay,
            backoff.max_delay,
            backoff.jitter,
            self._rng,
        )
        conn.reconnect_attempts += 1
        conn.last_backoff = delay
        conn.timer = asyncio.get_running_loop().call_later(
            delay, self._on_reconnect_timer, conn.relay.url
        )
        self._logger.debug(
            "reconnect_scheduled",
            relay=conn.relay.url,
            attempt=conn.reconnect_attempts,
            delay_s=round(delay, 2),
        )

    def _on_reconnect_timer(self, url: str) -> None:
        conn = self._connections.get(url)
        if conn is None:
            return
        conn.cancel_timer()
        if self._state not in _ACTIVE_STATES:
            return
        self._connect(url)

    # -------------------------------------------------------------------------
    # Routing
    # -------------------------------------------------------------------------

    async def _route_loop(self) -> None:
        queue = self._queue
        if queue is None:
            return
        while True:
            url, frame = await queue.get()
            try:
                self.handle_message(url, frame)
            except Exception as e:  # Intentionally broad: one bad frame must not stop the router
                self._logger.error("message_handling_failed", relay=url, error=str(e))
            finally:
                queue.task_done()

    def handle_message(self, relay_url: str, raw: str | bytes) -> None:
        """Decode and route one inbound frame from *relay_url*."""
        match parse_relay_message(raw):
            case EventMessage(subscription_id=sid, event=event):
                self._handle_event(relay_url, sid, event)
            case NoticeMessage(message=message):
                self._counters["notices"] += 1
                self._logger.info("relay_notice", relay=relay_url, message=message)
            case EoseMessage(subscription_id=sid):
                self._logger.debug("relay_eose", relay=relay_url, subscription=sid)
            case ClosedMessage(subscription_id=sid, message=message):
                self._logger.info(
                    "subscription_closed", relay=relay_url, subscription=sid, reason=message
                )
            case UnrecognizedMessage(reason=reason):
                self._counters["messages_dropped"] += 1
                self._logger.debug("message_dropped", relay=relay_url, reason=reason)

    def _handle_event(self, relay_url: str, sid: str, event: Event) -> None:
        region = self._routes.get(sid)
        if region is None:
            self._counters["messages_dropped"] += 1
            self._logger.debug("unknown_subscription", relay=relay_url, subscription=sid)
            return
        if not self._seen.add(event.id):
            self._counters["events_duplicate"] += 1
            return

        self._counters["events_accepted"] += 1
        if self._callback is None:
            return
        try:
            self._callback(event, region, relay_url)
        except Exception as e:  # Intentionally broad: callback errors must not stop routing
            self._logger.error(
                "event_callback_failed", event_id=event.id, region=region, error=str(e)
            )
