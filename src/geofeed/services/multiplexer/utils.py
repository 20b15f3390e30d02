"""Relay multiplexer utilities.

Helpers that hold no reference to the multiplexer itself: the bounded
seen-set used for cross-relay deduplication, the backoff formula, and the
per-relay connection record.
"""

from __future__ import annotations

import asyncio
import random
from collections import deque
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from geofeed.models.constants import ConnectionStatus


if TYPE_CHECKING:
    from geofeed.models.relay import RelayEndpoint
    from geofeed.utils.transport import RelaySocket


SUBSCRIPTION_PREFIX = "geo_"


def subscription_id(region: str) -> str:
    """Deterministic subscription id for *region*."""
    return SUBSCRIPTION_PREFIX + region


def compute_backoff(
    attempts: int,
    base: float,
    maximum: float,
    jitter: float,
    rng: random.Random | None = None,
) -> float:
    """Delay before reconnect attempt number *attempts* (zero-based).

    ``min(base * 2**attempts, maximum) + uniform(0, jitter)``.
    """
    delay = min(base * 2 ** min(attempts, 62), maximum)
    if jitter > 0:
        delay += (rng or random).random() * jitter  # noqa: S311
    return delay


class SeenSet:
    """Bounded insertion-ordered set of event ids.

    Never holds more than ``capacity`` ids. When an insert would exceed the
    cap, the oldest ``evict_fraction`` of the ids is dropped in one batch,
    which keeps the amortized cost per insert constant.

    Examples:
        ```python
        seen = SeenSet(capacity=50_000)
        seen.add("abc")   # True
        seen.add("abc")   # False
        ```
    """

    __slots__ = ("_capacity", "_evict_count", "_ids", "_order")

    def __init__(self, capacity: int, evict_fraction: float = 0.2) -> None:
        if capacity < 1:
            raise ValueError(f"capacity must be >= 1, got {capacity}")
        if not 0 < evict_fraction <= 1:
            raise ValueError(f"evict_fraction must be within (0, 1], got {evict_fraction}")
        self._capacity = capacity
        self._evict_count = max(1, int(capacity * evict_fraction))
        self._ids: set[str] = set()
        self._order: deque[str] = deque()

    @property
    def capacity(self) -> int:
        return self._capacity

    def add(self, event_id: str) -> bool:
        """Record *event_id*; return False if it was already present."""
        if event_id in self._ids:
            return False
        if len(self._ids) >= self._capacity:
            for _ in range(min(self._evict_count, len(self._order))):
                self._ids.discard(self._order.popleft())
        self._ids.add(event_id)
        self._order.append(event_id)
        return True

    def clear(self) -> None:
        self._ids.clear()
        self._order.clear()

    def __contains__(self, event_id: object) -> bool:
        return event_id in self._ids

    def __len__(self) -> int:
        return len(self._ids)


@dataclass(slots=True)
class RelayConnection:
    """Mutable per-relay connection record owned by the multiplexer.

    Attributes:
        relay: The relay endpoint.
        status: Current lifecycle status.
        socket: Open socket, or ``None`` while disconnected.
        reconnect_attempts: Reconnects scheduled since the last successful
            handshake.
        last_backoff: Delay used for the most recent reconnect, in seconds.
        task: Task owning the socket (connect, subscribe, read loop).
        timer: Pending reconnect timer; at most one per relay.
    """

    relay: RelayEndpoint
    status: ConnectionStatus = ConnectionStatus.STOPPED
    socket: RelaySocket | None = None
    reconnect_attempts: int = 0
    last_backoff: float | None = None
    task: asyncio.Task[None] | None = field(default=None, repr=False)
    timer: asyncio.TimerHandle | None = field(default=None, repr=False)

    def cancel_timer(self) -> None:
        if self.timer is not None:
            self.timer.cancel()
            self.timer = None
