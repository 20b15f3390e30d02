"""Relay multiplexer package.

Re-exports all public symbols::

    from geofeed.services.multiplexer import RelayMultiplexer, MultiplexerConfig
"""

from .assignment import RegionAssignment
from .configs import MultiplexerConfig, ReconnectConfig, SubscriptionConfig
from .service import EventCallback, MultiplexerStats, RelayMultiplexer
from .utils import RelayConnection, SeenSet, compute_backoff, subscription_id


__all__ = [
    "EventCallback",
    "MultiplexerConfig",
    "MultiplexerStats",
    "ReconnectConfig",
    "RegionAssignment",
    "RelayConnection",
    "RelayMultiplexer",
    "SeenSet",
    "SubscriptionConfig",
    "compute_backoff",
    "subscription_id",
]
