"""Entries and statistics of the in-memory event store."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from .event import Event


@dataclass(frozen=True, slots=True)
class StoredEvent:
    """An accepted event together with where and when it was received.

    Attributes:
        event: The event record.
        region: Geohash region whose subscription delivered the event.
        relay: URL of the relay that delivered it first.
        received_at: Local receipt time (Unix seconds). Non-decreasing in
            insertion order within a store.
    """

    event: Event
    region: str
    relay: str
    received_at: float

    def to_dict(self) -> dict[str, Any]:
        """Return the JSON form used by the HTTP API (receipt time in ms)."""
        return {
            "event": self.event.to_dict(),
            "region": self.region,
            "relay": self.relay,
            "received_at": int(self.received_at * 1000),
        }


@dataclass(frozen=True, slots=True)
class RegionStats:
    """Running totals for one region.

    Attributes:
        region: Geohash region.
        count: Number of stored events whose region equals ``region``.
        last_activity: Receipt time of the latest event added to the region.
    """

    region: str
    count: int
    last_activity: float


@dataclass(frozen=True, slots=True)
class EventStoreStats:
    """Snapshot of store-wide statistics.

    Attributes:
        total_events: Number of stored events.
        events_per_region: Exact (non-hierarchical) count per region.
        oldest_age: Seconds since the oldest entry was received, or ``None``.
        newest_age: Seconds since the newest entry was received, or ``None``.
    """

    total_events: int
    events_per_region: dict[str, int]
    oldest_age: float | None
    newest_age: float | None

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_events": self.total_events,
            "events_per_geohash": dict(self.events_per_region),
            "oldest_event_age": self.oldest_age,
            "newest_event_age": self.newest_age,
        }
