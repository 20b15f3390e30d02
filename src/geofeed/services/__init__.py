"""The relay directory, the relay multiplexer and the feed service.

Services are the top layer, depending on [geofeed.core][geofeed.core],
[geofeed.nips][geofeed.nips], [geofeed.utils][geofeed.utils] and
[geofeed.models][geofeed.models].

```text
RelayDirectory -> RelayMultiplexer -> EventStore -> HTTP / WebSocket API
```

Attributes:
    RelayDirectory: Relay snapshot loaded from remote CSV, local CSV or a
        fallback list.
    RelayMultiplexer: One WebSocket per relay, one subscription per
        assigned geohash region, cross-relay deduplication.
    Feed: The long-running service composing the above with the event
        store and the API.

Examples:
    ```python
    from geofeed.services import Feed

    feed = Feed.from_yaml("config/geofeed.yaml")
    async with feed:
        await feed.run_forever()
    ```
"""

from .directory import (
    DirectoryConfig,
    RelayDirectory,
)
from .feed import (
    Feed,
    FeedConfig,
)
from .multiplexer import (
    MultiplexerConfig,
    RelayMultiplexer,
)


__all__ = [
    "DirectoryConfig",
    "Feed",
    "FeedConfig",
    "MultiplexerConfig",
    "RelayDirectory",
    "RelayMultiplexer",
]
