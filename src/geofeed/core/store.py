"""
Bounded, deduplicated, time-windowed in-memory event store.

[EventStore][geofeed.core.store.EventStore] keeps at most one entry per
event id, drops entries older than the retention window, and never holds
more than ``max_events`` entries: when full, the oldest
``eviction_batch`` entries by receipt time are evicted before the next
insert. Per-region counts are maintained incrementally so statistics are
O(regions) rather than O(events).

Receipt order is tracked with a deque of event ids (oldest on the left).
Receipt times come from an injectable clock and are clamped so they never
go backwards; the deque is therefore also sorted by receipt time and both
pruning and eviction simply pop from the left.

Nothing survives a restart. Events here exist for display to downstream
consumers, not for archival.

See Also:
    [Feed][geofeed.services.feed.Feed]: Feeds accepted relay events into
        the store and serves them over HTTP.
    [StoredEvent][geofeed.models.stored_event.StoredEvent]: The entry type.

Examples:
    ```python
    store = EventStore(EventStoreConfig(ttl=600))
    async with store:                  # starts periodic pruning
        store.add(event, "u4", "wss://nos.lol")
        store.recent()                 # newest created_at first
    ```
"""

from __future__ import annotations

import asyncio
import contextlib
import time
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Self

from pydantic import BaseModel, Field, model_validator

from geofeed.models.stored_event import EventStoreStats, RegionStats, StoredEvent

from .logger import Logger


if TYPE_CHECKING:
    from types import TracebackType

    from geofeed.models.event import Event


Clock = Callable[[], float]


class EventStoreConfig(BaseModel):
    """Retention and capacity limits for the event store."""

    ttl: float = Field(default=3600.0, gt=0, description="Seconds an event is retained")
    prune_interval: float = Field(
        default=60.0, gt=0, description="Seconds between background prune passes"
    )
    max_events: int = Field(default=100_000, ge=1, description="Maximum stored events")
    eviction_batch: int = Field(
        default=1000, ge=1, description="Oldest events evicted at once when full"
    )

    @model_validator(mode="after")
    def _validate_eviction_batch(self) -> Self:
        if self.eviction_batch > self.max_events:
            raise ValueError(
                f"eviction_batch ({self.eviction_batch}) must not exceed "
                f"max_events ({self.max_events})"
            )
        return self


@dataclass(slots=True)
class _RegionTally:
    count: int
    last_activity: float


class EventStore:
    """In-memory store of recently received relay events.

    All methods are synchronous and must be called from the event loop
    thread; the only background activity is the prune task.

    Args:
        config: Retention and capacity limits.
        clock: Returns the current time as Unix seconds.

    Note:
        The prune task starts immediately when the store is created inside
        a running event loop. Otherwise call
        [start_pruning()][geofeed.core.store.EventStore.start_pruning] or
        use ``async with store``.
    """

    def __init__(self, config: EventStoreConfig | None = None, *, clock: Clock = time.time) -> None:
        self._config = config or EventStoreConfig()
        self._clock = clock
        self._logger = Logger("store")

        self._events: dict[str, StoredEvent] = {}
        self._order: deque[str] = deque()
        self._regions: dict[str, _RegionTally] = {}
        self._last_received_at = 0.0
        self._prune_task: asyncio.Task[None] | None = None

        try:
            asyncio.get_running_loop()
        except RuntimeError:
            pass
        else:
            self.start_pruning()

    @property
    def config(self) -> EventStoreConfig:
        return self._config

    def __len__(self) -> int:
        return len(self._events)

    def __contains__(self, event_id: object) -> bool:
        return event_id in self._events

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    def add(self, event: Event, region: str, relay: str) -> bool:
        """Insert an event unless its id is already stored.

        Args:
            event: The event to store.
            region: Geohash region whose subscription delivered it.
            relay: URL of the delivering relay.

        Returns:
            ``True`` if inserted, ``False`` for a duplicate (no side effect).
        """
        if event.id in self._events:
            return False

        if len(self._events) >= self._config.max_events:
            evicted = self._pop_oldest(self._config.eviction_batch)
            self._logger.debug("events_evicted", count=evicted, remaining=len(self._events))

        received_at = max(self._clock(), self._last_received_at)
        self._last_received_at = received_at

        self._events[event.id] = StoredEvent(
            event=event, region=region, relay=relay, received_at=received_at
        )
        self._order.append(event.id)

        tally = self._regions.get(region)
        if tally is None:
            self._regions[region] = _RegionTally(count=1, last_activity=received_at)
        else:
            tally.count += 1
            tally.last_activity = received_at
        return True

    def prune(self) -> int:
        """Remove every entry received before ``now - ttl``.

        Returns:
            Number of entries removed.
        """
        cutoff = self._clock() - self._config.ttl
        removed = 0
        while self._order and self._events[self._order[0]].received_at < cutoff:
            self._remove(self._order.popleft())
            removed += 1
        return removed

    def clear(self) -> None:
        """Drop all entries and region statistics."""
        self._events.clear()
        self._order.clear()
        self._regions.clear()
        self._last_received_at = 0.0

    def _pop_oldest(self, count: int) -> int:
        evicted = 0
        while self._order and evicted < count:
            self._remove(self._order.popleft())
            evicted += 1
        return evicted

    def _remove(self, event_id: str) -> None:
        entry = self._events.pop(event_id)
        tally = self._regions[entry.region]
        tally.count -= 1
        if tally.count <= 0:
            del self._regions[entry.region]

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def get(self, event_id: str) -> StoredEvent | None:
        return self._events.get(event_id)

    def recent(self, since: float | None = None) -> list[StoredEvent]:
        """Entries received at or after *since*, newest ``created_at`` first.

        Args:
            since: Unix seconds. Defaults to ``now - ttl``.
        """
        if since is None:
            since = self._clock() - self._config.ttl
        entries = [entry for entry in self._events.values() if entry.received_at >= since]
        return _newest_first(entries)

    def by_region_prefix(self, prefix: str) -> list[StoredEvent]:
        """Entries whose region starts with *prefix*, newest ``created_at`` first.

        A region-1 prefix therefore also returns events stored under its
        region-2 children.
        """
        entries = [entry for entry in self._events.values() if entry.region.startswith(prefix)]
        return _newest_first(entries)

    def region_stats(self, region: str) -> RegionStats | None:
        """Exact-match statistics for *region*, or ``None`` if it holds no events."""
        tally = self._regions.get(region)
        if tally is None:
            return None
        return RegionStats(region=region, count=tally.count, last_activity=tally.last_activity)

    def stats(self) -> EventStoreStats:
        """Snapshot of store-wide statistics."""
        now = self._clock()
        oldest_age: float | None = None
        newest_age: float | None = None
        if self._order:
            oldest_age = now - self._events[self._order[0]].received_at
            newest_age = now - self._events[self._order[-1]].received_at
        return EventStoreStats(
            total_events=len(self._events),
            events_per_region={region: tally.count for region, tally in self._regions.items()},
            oldest_age=oldest_age,
            newest_age=newest_age,
        )

    # -------------------------------------------------------------------------
    # Periodic pruning
    # -------------------------------------------------------------------------

    @property
    def is_pruning(self) -> bool:
        return self._prune_task is not None and not self._prune_task.done()

    def start_pruning(self) -> None:
        """Start the background prune task (no-op if already running).

        Raises:
            RuntimeError: If called outside a running event loop.
        """
        if self.is_pruning:
            return
        self._prune_task = asyncio.get_running_loop().create_task(
            self._prune_loop(), name="event-store-prune"
        )

    async def stop_pruning(self) -> None:
        """Cancel the background prune task and wait for it to finish."""
        task, self._prune_task = self._prune_task, None
        if task is None or task.done():
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task

    async def _prune_loop(self) -> None:
        while True:
            await asyncio.sleep(self._config.prune_interval)
            removed = self.prune()
            if removed:
                self._logger.info("events_pruned", count=removed, remaining=len(self._events))

    async def __aenter__(self) -> Self:
        self.start_pruning()
        return self

    async def __aexit__(
        self,
        _exc_type: type[BaseException] | None,
        _exc_val: BaseException | None,
        _exc_tb: TracebackType | None,
    ) -> None:
        await self.stop_pruning()


def _newest_first(entries: list[StoredEvent]) -> list[StoredEvent]:
    entries.sort(key=lambda entry: entry.event.created_at, reverse=True)
    return entries
