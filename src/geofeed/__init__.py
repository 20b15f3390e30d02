r"""geofeed -- Geohash-partitioned Nostr event feed.

Subscribes to every geohash region (depth 1 and 2 by default) on the
relays nearest to it, deduplicates events across relays, and keeps a
bounded, time-windowed in-memory view served over HTTP and WebSocket.

Imports flow strictly downward:

```text
              services         Directory, multiplexer, feed service + API
             /   |   \
          core  nips  utils    Store, logging, metrics / NIP-01 / geo, transport
             \   |   /
              models           Pure frozen dataclasses (zero I/O)
```

Note:
    For lightweight usage, import directly from subpackages::

        from geofeed.models import Event
        from geofeed.core import EventStore

    Top-level imports (``from geofeed import Feed``) use lazy loading
    and resolve on first access.
"""

import importlib
from importlib.metadata import version as _get_version


__version__ = _get_version("geofeed")

__all__ = [
    "BaseService",
    "ConfigT",
    "Coordinate",
    "Event",
    "EventStore",
    "EventStoreConfig",
    "Feed",
    "FeedConfig",
    "Logger",
    "RegionAssignment",
    "RelayDirectory",
    "RelayEndpoint",
    "RelayMultiplexer",
    "StoredEvent",
]

_LAZY_IMPORTS: dict[str, tuple[str, str]] = {
    "BaseService": ("geofeed.core", "BaseService"),
    "ConfigT": ("geofeed.core", "ConfigT"),
    "EventStore": ("geofeed.core", "EventStore"),
    "EventStoreConfig": ("geofeed.core", "EventStoreConfig"),
    "Logger": ("geofeed.core", "Logger"),
    "Coordinate": ("geofeed.models", "Coordinate"),
    "Event": ("geofeed.models", "Event"),
    "RelayEndpoint": ("geofeed.models", "RelayEndpoint"),
    "StoredEvent": ("geofeed.models", "StoredEvent"),
    "Feed": ("geofeed.services", "Feed"),
    "FeedConfig": ("geofeed.services", "FeedConfig"),
    "RegionAssignment": ("geofeed.services.multiplexer", "RegionAssignment"),
    "RelayDirectory": ("geofeed.services", "RelayDirectory"),
    "RelayMultiplexer": ("geofeed.services", "RelayMultiplexer"),
}


def __getattr__(name: str) -> object:
    if name in _LAZY_IMPORTS:
        module_path, attr_name = _LAZY_IMPORTS[name]
        module = importlib.import_module(module_path)
        value = getattr(module, attr_name)
        globals()[name] = value  # Cache for subsequent access
        return value
    raise AttributeError(f"module 'geofeed' has no attribute {name!r}")


def __dir__() -> list[str]:
    return __all__
