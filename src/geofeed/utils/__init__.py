"""Geohash math, bounded HTTP reads and WebSocket transport.

The utils layer depends only on [geofeed.models][geofeed.models] and the
leaf module [geofeed.core.exceptions][geofeed.core.exceptions]. It holds the
low-level pieces used by [geofeed.nips][geofeed.nips] and
[geofeed.services][geofeed.services].

Attributes:
    geo: Geohash decoding (``geohash2``), haversine distance and region
        enumeration.
    http: Size-bounded response reading for directory downloads.
    transport: aiohttp WebSocket adapter used by the relay multiplexer.
        Failures surface as ``OSError`` / ``TimeoutError``.

Examples:
    ```python
    from geofeed.utils.geo import decode_center
    from geofeed.utils.transport import open_websocket
    ```
"""
