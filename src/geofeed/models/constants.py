"""Shared constants for the models layer.

Enumerations used by more than one layer live here so that the utils,
core and services layers can share them without circular imports.
"""

from __future__ import annotations

from enum import IntEnum, StrEnum


class ServiceName(StrEnum):
    """Canonical service identifiers used in logging and metrics."""

    FEED = "feed"


class EventKind(IntEnum):
    """Nostr event kinds subscribed to by default.

    Attributes:
        TEXT_NOTE: Kind 1 -- short text note (NIP-01).
        GEOHASH_CHAT: Kind 20000 -- ephemeral geohash chat message.
        GEOHASH_CHANNEL: Kind 23333 -- geohash channel message.
    """

    TEXT_NOTE = 1
    GEOHASH_CHAT = 20_000
    GEOHASH_CHANNEL = 23_333


EVENT_KIND_MAX = 65_535


class ManagerState(StrEnum):
    """Process-wide lifecycle of the relay multiplexer.

    Only ever advanced in the order
    ``stopped -> starting -> running -> stopping -> stopped``.
    """

    STOPPED = "stopped"
    STARTING = "starting"
    RUNNING = "running"
    STOPPING = "stopping"


class ConnectionStatus(StrEnum):
    """Lifecycle of a single relay connection."""

    STOPPED = "stopped"
    CONNECTING = "connecting"
    OPEN = "open"
    CLOSED = "closed"
