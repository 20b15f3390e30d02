"""Pure frozen dataclasses with zero I/O for relays, events and store entries.

The models layer is the foundation of the package. It depends only on the
standard library and ``rfc3986`` (URL validation). Every model uses
``@dataclass(frozen=True, slots=True)``; validation happens in
``__post_init__`` so invalid instances never escape the constructor.

Attributes:
    Coordinate: Latitude/longitude pair with range checks.
    RelayEndpoint: Relay host identifier pinned to a coordinate.
    Event: NIP-01 event record, pre-validated and opaque to the feed.
    StoredEvent: Event plus region, source relay and receipt time.
    RegionStats: Per-region count and last activity.
    EventStoreStats: Store-wide statistics snapshot.
"""

from .constants import EVENT_KIND_MAX, ConnectionStatus, EventKind, ManagerState, ServiceName
from .coordinate import Coordinate
from .event import Event
from .relay import RelayEndpoint
from .stored_event import EventStoreStats, RegionStats, StoredEvent


__all__ = [
    "EVENT_KIND_MAX",
    "ConnectionStatus",
    "Coordinate",
    "Event",
    "EventKind",
    "EventStoreStats",
    "ManagerState",
    "RegionStats",
    "RelayEndpoint",
    "ServiceName",
    "StoredEvent",
]
