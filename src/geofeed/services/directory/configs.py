"""Relay directory configuration models.

See Also:
    [RelayDirectory][geofeed.services.directory.RelayDirectory]: The
        component that consumes these configurations.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from geofeed.models.coordinate import Coordinate
from geofeed.models.relay import RelayEndpoint


DEFAULT_REMOTE_URL = (
    "https://raw.githubusercontent.com/nicnit/georelays/refs/heads/main/nostr_relays.csv"
)
DEFAULT_LOCAL_PATH = "static/relays.csv"


class FallbackRelayConfig(BaseModel):
    """A relay used when every directory source is unavailable."""

    host: str = Field(min_length=1, description="Relay host without scheme")
    latitude: float = Field(ge=-90.0, le=90.0)
    longitude: float = Field(ge=-180.0, le=180.0)

    def to_endpoint(self) -> RelayEndpoint:
        return RelayEndpoint(self.host, Coordinate(self.latitude, self.longitude))


def _default_fallback() -> list[FallbackRelayConfig]:
    return [
        FallbackRelayConfig(host="relay.damus.io", latitude=37.7749, longitude=-122.4194),
        FallbackRelayConfig(host="nos.lol", latitude=52.52, longitude=13.405),
        FallbackRelayConfig(host="relay.primal.net", latitude=40.7128, longitude=-74.006),
    ]


class DirectoryConfig(BaseModel):
    """Ordered sources for the relay directory snapshot.

    Sources are tried remote first, then local, then the fallback list.
    The first source yielding at least one relay wins.
    """

    remote_urls: list[str] = Field(
        default_factory=lambda: [DEFAULT_REMOTE_URL],
        description="CSV URLs fetched over HTTP, in order",
    )
    local_paths: list[str] = Field(
        default_factory=lambda: [DEFAULT_LOCAL_PATH],
        description="CSV files read from disk, in order",
    )
    fallback: list[FallbackRelayConfig] = Field(
        default_factory=_default_fallback,
        description="Relays used when no source yields any relay",
    )
    timeout: float = Field(default=10.0, gt=0, le=120.0, description="HTTP request timeout")
    max_response_size: int = Field(
        default=5 * 1024 * 1024,
        ge=1024,
        description="Maximum accepted CSV size in bytes",
    )
