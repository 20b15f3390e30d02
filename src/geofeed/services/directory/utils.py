"""Relay directory utility functions.

Pure helpers that do not require directory instance state.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from geofeed.models.coordinate import Coordinate
from geofeed.models.relay import RelayEndpoint
from geofeed.utils.geo import haversine_km


if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

_logger = logging.getLogger(__name__)

_HEADER_MARKER = "relay url"
_MIN_COLUMNS = 3


def parse_relay_csv(text: str) -> list[RelayEndpoint]:
    """Parse a ``relay url, latitude, longitude`` CSV document.

    A first line containing ``relay url`` (any case) is treated as a
    header. Blank lines, lines with fewer than three columns, and lines
    whose host or coordinates do not validate are skipped. Duplicate hosts
    keep their first occurrence.

    Args:
        text: The CSV document.

    Returns:
        Relays in file order.
    """
    relays: list[RelayEndpoint] = []
    seen: set[str] = set()

    for lineno, line in enumerate(text.splitlines()):
        if lineno == 0 and _HEADER_MARKER in line.lower():
            continue
        if not line.strip():
            continue
        parts = [part.strip() for part in line.split(",")]
        if len(parts) < _MIN_COLUMNS:
            continue
        try:
            relay = RelayEndpoint(parts[0], Coordinate(float(parts[1]), float(parts[2])))
        except (TypeError, ValueError):
            _logger.debug("relay_row_skipped line=%d", lineno + 1)
            continue
        if relay.host in seen:
            continue
        seen.add(relay.host)
        relays.append(relay)

    return relays


def nearest_relays(
    relays: Iterable[RelayEndpoint], coordinate: Coordinate, count: int
) -> Sequence[RelayEndpoint]:
    """Return up to *count* relays closest to *coordinate*, nearest first.

    The sort is stable, so relays at equal distance keep their input order.
    """
    if count <= 0:
        return ()
    ranked = sorted(relays, key=lambda relay: haversine_km(coordinate, relay.coordinate))
    return tuple(ranked[:count])
