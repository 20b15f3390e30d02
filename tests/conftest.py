"""
Pytest configuration and shared fixtures for geofeed tests.

Provides:
- A controllable clock for time-dependent store and multiplexer tests
- In-memory relay sockets and a connector that hands them out
- Event and relay factories
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import pytest

from geofeed.models import Coordinate, Event, RelayEndpoint
from geofeed.services.directory import DirectoryConfig, FallbackRelayConfig, RelayDirectory


# ============================================================================
# Logging Configuration
# ============================================================================


@pytest.fixture(scope="session", autouse=True)
def setup_logging() -> None:
    """Configure logging for tests."""
    logging.basicConfig(level=logging.DEBUG)


# ============================================================================
# Time
# ============================================================================


class FakeClock:
    """Manually advanced clock returning Unix seconds."""

    def __init__(self, now: float = 1_700_000_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


async def settle(rounds: int = 20) -> None:
    """Let pending tasks run until they block."""
    for _ in range(rounds):
        await asyncio.sleep(0)


# ============================================================================
# Events and relays
# ============================================================================


def make_event(
    event_id: str = "a" * 64,
    *,
    created_at: int = 1_700_000_000,
    kind: int = 1,
    tags: list[list[str]] | None = None,
    content: str = "hello",
) -> Event:
    return Event(
        id=event_id,
        pubkey="b" * 64,
        created_at=created_at,
        kind=kind,
        tags=tags if tags is not None else [["g", "u4"]],
        content=content,
        sig="c" * 128,
    )


def event_frame(subscription_id: str, event: Event) -> str:
    import json

    return json.dumps(["EVENT", subscription_id, event.to_dict()])


@pytest.fixture
def event() -> Event:
    return make_event()


@pytest.fixture
def berlin_relay() -> RelayEndpoint:
    return RelayEndpoint("nos.lol", Coordinate(52.52, 13.405))


@pytest.fixture
def sf_relay() -> RelayEndpoint:
    return RelayEndpoint("relay.damus.io", Coordinate(37.7749, -122.4194))


@pytest.fixture
def ny_relay() -> RelayEndpoint:
    return RelayEndpoint("relay.primal.net", Coordinate(40.7128, -74.006))


def offline_directory(*relays: tuple[str, float, float]) -> RelayDirectory:
    """Directory with no remote or local sources, serving *relays* as fallback."""
    return RelayDirectory(
        DirectoryConfig(
            remote_urls=[],
            local_paths=[],
            fallback=[
                FallbackRelayConfig(host=host, latitude=lat, longitude=lon)
                for host, lat, lon in relays
            ],
        )
    )


# ============================================================================
# Sockets
# ============================================================================


class FakeSocket:
    """In-memory relay socket.

    Frames pushed with ``feed()`` are yielded by iteration; ``disconnect()``
    ends the iteration as if the relay closed the connection.
    """

    def __init__(self, url: str) -> None:
        self.url = url
        self.sent: list[str] = []
        self.closed = False
        self.fail_send = False
        self._inbox: asyncio.Queue[str | None] = asyncio.Queue()

    async def send(self, text: str) -> None:
        if self.closed or self.fail_send:
            raise OSError(f"socket closed: {self.url}")
        self.sent.append(text)

    async def __aiter__(self) -> Any:
        while True:
            frame = await self._inbox.get()
            if frame is None:
                return
            yield frame

    def feed(self, frame: str) -> None:
        self._inbox.put_nowait(frame)

    def disconnect(self) -> None:
        self._inbox.put_nowait(None)

    async def close(self) -> None:
        self.closed = True
        self._inbox.put_nowait(None)


class FakeConnector:
    """Connector returning ``FakeSocket`` objects, optionally failing per URL."""

    def __init__(self) -> None:
        self.calls: list[str] = []
        self.sockets: dict[str, list[FakeSocket]] = {}
        self.failing: set[str] = set()

    async def __call__(self, url: str) -> FakeSocket:
        self.calls.append(url)
        if url in self.failing:
            raise OSError(f"Connection failed: {url}")
        socket = FakeSocket(url)
        self.sockets.setdefault(url, []).append(socket)
        return socket

    def latest(self, url: str) -> FakeSocket:
        return self.sockets[url][-1]


@pytest.fixture
def connector() -> FakeConnector:
    return FakeConnector()
