"""
Unit tests for services.feed.api module.

Tests:
- ClientHub registration, broadcast and slow-client eviction
- GET /health
- GET /api/events with and without ``since``
- GET /api/stats
- WS /ws greeting and ping/pong
"""

import pytest
from fastapi.testclient import TestClient

from geofeed.core.store import EventStore, EventStoreConfig
from geofeed.services.feed import ClientHub, build_app
from geofeed.services.multiplexer import RelayMultiplexer
from tests.conftest import make_event, offline_directory


class TestClientHub:
    """ClientHub fan-out."""

    @pytest.mark.asyncio
    async def test_broadcast_without_clients(self):
        hub = ClientHub()
        assert hub.broadcast({"type": "event"}) == 0

    @pytest.mark.asyncio
    async def test_broadcast_serializes_once_for_all_clients(self):
        hub = ClientHub()
        first = hub.register()
        second = hub.register()

        assert hub.broadcast({"type": "event", "data": {"x": 1}}) == 2
        expected = '{"type":"event","data":{"x":1}}'
        assert first.get_nowait() == expected
        assert second.get_nowait() == expected

    @pytest.mark.asyncio
    async def test_unregister(self):
        hub = ClientHub()
        queue = hub.register()
        hub.unregister(queue)
        hub.unregister(queue)
        assert hub.client_count == 0
        assert hub.broadcast({"type": "event"}) == 0

    @pytest.mark.asyncio
    async def test_slow_client_is_dropped(self):
        hub = ClientHub(queue_size=2)
        slow = hub.register()
        hub.broadcast({"n": 1})
        hub.broadcast({"n": 2})

        assert hub.broadcast({"n": 3}) == 0
        assert hub.client_count == 0
        assert hub.dropped_clients == 1
        assert slow.get_nowait() is None
        assert slow.empty()

    @pytest.mark.asyncio
    async def test_drop_does_not_affect_other_clients(self):
        hub = ClientHub(queue_size=1)
        slow = hub.register()
        hub.broadcast({"n": 1})
        fast = hub.register()

        assert hub.broadcast({"n": 2}) == 1
        assert fast.get_nowait() == '{"n":2}'
        assert slow.get_nowait() is None


@pytest.fixture
def store(clock) -> EventStore:
    return EventStore(EventStoreConfig(ttl=3600), clock=clock)


@pytest.fixture
def client(store, clock) -> TestClient:
    multiplexer = RelayMultiplexer(offline_directory(("nos.lol", 52.52, 13.405)))
    app = build_app(
        store,
        multiplexer,
        ClientHub(),
        started_at=clock.now - 42,
        clock=clock,
    )
    return TestClient(app)


class TestHealth:
    """GET /health."""

    def test_ok(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "ok"}


class TestEvents:
    """GET /api/events."""

    def test_empty(self, client, clock):
        response = client.get("/api/events")
        assert response.status_code == 200
        assert response.json() == {
            "events": [],
            "count": 0,
            "server_time": int(clock.now * 1000),
        }

    def test_returns_entries_newest_first(self, client, store):
        store.add(make_event("old", created_at=100), "u4", "wss://nos.lol")
        store.add(make_event("new", created_at=200), "9q", "wss://relay.damus.io")

        body = client.get("/api/events").json()

        assert body["count"] == 2
        assert [item["event"]["id"] for item in body["events"]] == ["new", "old"]
        first = body["events"][0]
        assert first["region"] == "9q"
        assert first["relay"] == "wss://relay.damus.io"
        assert first["received_at"] == int(store.get("new").received_at * 1000)

    def test_since_filters_by_receipt_time(self, client, store, clock):
        store.add(make_event("e1"), "u4", "wss://nos.lol")
        clock.advance(60)
        cutoff = clock.now
        store.add(make_event("e2"), "u4", "wss://nos.lol")

        body = client.get("/api/events", params={"since": cutoff}).json()

        assert [item["event"]["id"] for item in body["events"]] == ["e2"]

    @pytest.mark.parametrize("since", ["yesterday", "nan", "inf"])
    def test_invalid_since(self, client, since):
        response = client.get("/api/events", params={"since": since})
        assert response.status_code == 400
        assert response.json() == {"error": "Invalid since"}


class TestStats:
    """GET /api/stats."""

    def test_shape(self, client, store):
        store.add(make_event("e1"), "u4", "wss://nos.lol")

        body = client.get("/api/stats").json()

        assert body["events"]["total_events"] == 1
        assert body["events"]["events_per_geohash"] == {"u4": 1}
        assert body["relays"] == {"regions": 0, "open_relays": 0, "relays": 0}
        assert body["counters"]["events_accepted"] == 0
        assert body["clients"] == 0
        assert body["uptime"] == 42


class TestWebSocket:
    """WS /ws."""

    def test_greeting_reports_counts(self, client, store):
        store.add(make_event("e1"), "u4", "wss://nos.lol")
        with client.websocket_connect("/ws") as ws:
            message = ws.receive_json()
        assert message == {"type": "connected", "data": {"event_count": 1, "client_count": 1}}

    def test_ping_pong(self, client):
        with client.websocket_connect("/ws") as ws:
            ws.receive_json()
            ws.send_text("ping")
            assert ws.receive_text() == "pong"

    def test_other_text_ignored(self, client):
        with client.websocket_connect("/ws") as ws:
            ws.receive_json()
            ws.send_text("hello")
            ws.send_text("ping")
            assert ws.receive_text() == "pong"
