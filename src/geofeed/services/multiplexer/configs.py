"""Relay multiplexer configuration models.

See Also:
    [RelayMultiplexer][geofeed.services.multiplexer.RelayMultiplexer]: The
        component that consumes these configurations.
"""

from __future__ import annotations

from typing import Self

from pydantic import BaseModel, Field, model_validator

from geofeed.models.constants import EVENT_KIND_MAX, EventKind


class ReconnectConfig(BaseModel):
    """Exponential backoff between reconnect attempts to one relay.

    The delay before attempt ``n`` (counting from zero) is
    ``min(base_delay * 2**n, max_delay) + uniform(0, jitter)``.
    """

    base_delay: float = Field(default=1.0, gt=0, description="First retry delay in seconds")
    max_delay: float = Field(default=60.0, gt=0, description="Backoff cap in seconds")
    jitter: float = Field(default=1.0, ge=0, description="Random extra delay upper bound")

    @model_validator(mode="after")
    def _validate_bounds(self) -> Self:
        if self.max_delay < self.base_delay:
            raise ValueError(
                f"max_delay ({self.max_delay}) must be >= base_delay ({self.base_delay})"
            )
        return self


class SubscriptionConfig(BaseModel):
    """Filter sent in every per-region ``REQ``."""

    kinds: list[int] = Field(
        default_factory=lambda: [
            EventKind.TEXT_NOTE,
            EventKind.GEOHASH_CHAT,
            EventKind.GEOHASH_CHANNEL,
        ],
        min_length=1,
        description="Event kinds to subscribe to",
    )
    window: int = Field(
        default=3600, ge=1, description="Seconds of history requested via 'since'"
    )
    limit: int = Field(default=100, ge=1, le=5000, description="Per-subscription stored-event cap")

    @model_validator(mode="after")
    def _validate_kinds(self) -> Self:
        for kind in self.kinds:
            if not 0 <= kind <= EVENT_KIND_MAX:
                raise ValueError(f"kind must be within [0, {EVENT_KIND_MAX}], got {kind}")
        return self


class MultiplexerConfig(BaseModel):
    """Region universe, fan-out and connection behaviour."""

    max_depth: int = Field(default=2, ge=1, le=4, description="Deepest geohash level monitored")
    regions_per_relay: int = Field(
        default=3, ge=1, description="Nearest relays (K) subscribed per region"
    )
    startup_delay: float = Field(
        default=0.05, ge=0, description="Pause between initial connection attempts"
    )
    connect_timeout: float = Field(
        default=10.0, gt=0, le=120.0, description="WebSocket handshake timeout"
    )
    seen_capacity: int = Field(
        default=50_000, ge=10, description="Event ids remembered for deduplication"
    )
    queue_size: int = Field(
        default=10_000, ge=1, description="Inbound frames buffered before readers wait"
    )
    reconnect: ReconnectConfig = Field(default_factory=ReconnectConfig)
    subscription: SubscriptionConfig = Field(default_factory=SubscriptionConfig)
