"""Relay directory package.

Re-exports all public symbols::

    from geofeed.services.directory import RelayDirectory, DirectoryConfig
"""

from .configs import DirectoryConfig, FallbackRelayConfig
from .service import RelayDirectory
from .utils import nearest_relays, parse_relay_csv


__all__ = [
    "DirectoryConfig",
    "FallbackRelayConfig",
    "RelayDirectory",
    "nearest_relays",
    "parse_relay_csv",
]
