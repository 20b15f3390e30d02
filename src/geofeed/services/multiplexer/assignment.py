"""Region to relay assignment.

For every monitored region the ``K`` relays nearest to the region's
center are chosen. The assignment is a pure function of the directory
snapshot and the region universe, computed once per multiplexer start.

Examples:
    ```python
    assignment = RegionAssignment.build(directory.relays, enumerate_regions(2), k=3)
    assignment.relays_for("u4")      # nearest first
    assignment.regions_for(relay)    # reverse index
    ```
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from types import MappingProxyType

from geofeed.models.relay import RelayEndpoint
from geofeed.services.directory.utils import nearest_relays
from geofeed.utils.geo import decode_center


class RegionAssignment:
    """Immutable mapping region -> nearest relays, plus its reverse index.

    Use [build()][geofeed.services.multiplexer.assignment.RegionAssignment.build]
    rather than the constructor.
    """

    __slots__ = ("_by_region", "_by_relay")

    def __init__(
        self,
        by_region: Mapping[str, tuple[RelayEndpoint, ...]],
        by_relay: Mapping[RelayEndpoint, tuple[str, ...]],
    ) -> None:
        self._by_region = MappingProxyType(dict(by_region))
        self._by_relay = MappingProxyType(dict(by_relay))

    @classmethod
    def build(
        cls, relays: Sequence[RelayEndpoint], regions: Iterable[str], k: int
    ) -> RegionAssignment:
        """Assign each region its *k* nearest relays.

        Regions get fewer than *k* relays when the directory is smaller,
        and none at all (they are omitted) when it is empty.

        Raises:
            ValueError: If *k* is less than 1 or a region is not a geohash.
        """
        if k < 1:
            raise ValueError(f"k must be >= 1, got {k}")

        by_region: dict[str, tuple[RelayEndpoint, ...]] = {}
        by_relay: dict[RelayEndpoint, list[str]] = {}
        if not relays:
            return cls(by_region, {})

        for region in regions:
            chosen = tuple(nearest_relays(relays, decode_center(region), k))
            by_region[region] = chosen
            for relay in chosen:
                by_relay.setdefault(relay, []).append(region)

        return cls(by_region, {relay: tuple(names) for relay, names in by_relay.items()})

    @property
    def regions(self) -> tuple[str, ...]:
        """Assigned regions in build order."""
        return tuple(self._by_region)

    @property
    def relays(self) -> tuple[RelayEndpoint, ...]:
        """Distinct assigned relays in first-seen order."""
        return tuple(self._by_relay)

    def relays_for(self, region: str) -> tuple[RelayEndpoint, ...]:
        """Relays assigned to *region*, nearest first (empty if unassigned)."""
        return self._by_region.get(region, ())

    def regions_for(self, relay: RelayEndpoint) -> tuple[str, ...]:
        """Regions whose subscription *relay* carries (empty if none)."""
        return self._by_relay.get(relay, ())

    def __len__(self) -> int:
        return len(self._by_region)

    def __contains__(self, region: object) -> bool:
        return region in self._by_region
