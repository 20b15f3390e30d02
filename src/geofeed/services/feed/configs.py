"""Feed service configuration models.

See Also:
    [Feed][geofeed.services.feed.Feed]: The service class that consumes
        these configurations.
    [BaseServiceConfig][geofeed.core.base_service.BaseServiceConfig]:
        Base class providing ``interval``, ``max_consecutive_failures``,
        and ``metrics`` fields.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from geofeed.core.base_service import BaseServiceConfig
from geofeed.core.store import EventStoreConfig
from geofeed.services.directory.configs import DirectoryConfig
from geofeed.services.multiplexer.configs import MultiplexerConfig


class ApiConfig(BaseModel):
    """HTTP and WebSocket API settings.

    Attributes:
        enabled: Serve the API. Disable to run the feed headless.
        host: Bind address for the HTTP server.
        port: Port for the HTTP server.
        cors_origins: Allowed CORS origins. Empty list disables CORS.
        client_queue_size: Messages buffered per WebSocket client before
            the client is disconnected as too slow.
    """

    enabled: bool = Field(default=True, description="Serve the HTTP/WebSocket API")
    host: str = Field(default="127.0.0.1", min_length=1, description="HTTP bind address")
    port: int = Field(default=3000, ge=1, le=65535, description="HTTP port")
    cors_origins: list[str] = Field(default_factory=list)
    client_queue_size: int = Field(default=256, ge=1, le=100_000)


class FeedConfig(BaseServiceConfig):
    """Configuration for the feed service.

    ``interval`` is the period of the statistics cycle; ingestion itself
    is continuous.
    """

    store: EventStoreConfig = Field(default_factory=EventStoreConfig)
    directory: DirectoryConfig = Field(default_factory=DirectoryConfig)
    multiplexer: MultiplexerConfig = Field(default_factory=MultiplexerConfig)
    api: ApiConfig = Field(default_factory=ApiConfig)
