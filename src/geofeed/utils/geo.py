"""Geohash decoding, great-circle distance and region enumeration.

Pure functions with no state and no I/O. Regions are lowercase geohash
strings over the 32-character alphabet that omits ``a``, ``i``, ``l`` and
``o``. Decoding delegates the interleaved bisection (longitude first) to
``geohash2``.

Examples:
    ```python
    from geofeed.utils.geo import decode_center, enumerate_regions, haversine_km

    decode_center("u")            # Coordinate(latitude=67.5, longitude=22.5)
    len(enumerate_regions(2))     # 1056
    haversine_km(a, a)            # 0.0
    ```
"""

from __future__ import annotations

import math
from itertools import product
from typing import Final

import geohash2

from geofeed.models.coordinate import Coordinate


GEOHASH_ALPHABET: Final[str] = "0123456789bcdefghjkmnpqrstuvwxyz"
EARTH_RADIUS_KM: Final[float] = 6371.0

_ALPHABET_SET: Final[frozenset[str]] = frozenset(GEOHASH_ALPHABET)


def is_region(value: str) -> bool:
    """Return True if *value* is a non-empty lowercase geohash."""
    return bool(value) and all(ch in _ALPHABET_SET for ch in value)


def decode_center(region: str) -> Coordinate:
    """Decode a geohash to the center of its cell.

    Args:
        region: Geohash string. Upper-case input is lower-cased.

    Returns:
        Center [Coordinate][geofeed.models.coordinate.Coordinate] of the cell.

    Raises:
        ValueError: If *region* is empty or contains a character outside
            the geohash alphabet.
    """
    normalized = region.lower()
    if not is_region(normalized):
        raise ValueError(f"Invalid geohash region: {region!r}")
    latitude, longitude, _lat_err, _lon_err = geohash2.decode_exactly(normalized)
    return Coordinate(latitude, longitude)


def haversine_km(a: Coordinate, b: Coordinate) -> float:
    """Great-circle distance between two coordinates in kilometers."""
    lat1 = math.radians(a.latitude)
    lat2 = math.radians(b.latitude)
    d_lat = lat2 - lat1
    d_lon = math.radians(b.longitude - a.longitude)
    h = math.sin(d_lat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(d_lon / 2) ** 2
    h = min(h, 1.0)  # rounding can push antipodal points past 1
    return 2 * EARTH_RADIUS_KM * math.atan2(math.sqrt(h), math.sqrt(1 - h))


def enumerate_regions(max_depth: int) -> tuple[str, ...]:
    """Enumerate every geohash of length ``1..max_depth``.

    Ordered by depth, then lexicographically in alphabet order (first
    character is the outer loop). Depth 2 yields ``32 + 32 * 32 = 1056``
    regions.

    Raises:
        ValueError: If *max_depth* is less than 1.
    """
    if max_depth < 1:
        raise ValueError(f"max_depth must be >= 1, got {max_depth}")
    regions: list[str] = []
    for depth in range(1, max_depth + 1):
        regions.extend("".join(chars) for chars in product(GEOHASH_ALPHABET, repeat=depth))
    return tuple(regions)
