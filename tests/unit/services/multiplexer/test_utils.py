"""
Unit tests for services.multiplexer.utils module.

Tests:
- SeenSet deduplication, cap and batch eviction of the oldest ids
- compute_backoff() doubling, cap and jitter bounds
- subscription_id() format
"""

import random

import pytest

from geofeed.services.multiplexer.utils import SeenSet, compute_backoff, subscription_id


class TestSeenSet:
    """SeenSet."""

    def test_add_reports_novelty(self):
        seen = SeenSet(capacity=10)
        assert seen.add("a") is True
        assert seen.add("a") is False
        assert "a" in seen

    def test_never_exceeds_capacity(self):
        seen = SeenSet(capacity=100)
        for i in range(1000):
            seen.add(str(i))
            assert len(seen) <= 100

    def test_evicts_oldest_fifth(self):
        seen = SeenSet(capacity=10)
        for i in range(10):
            seen.add(str(i))
        seen.add("new")

        assert len(seen) == 9
        assert "0" not in seen
        assert "1" not in seen
        assert "2" in seen
        assert "new" in seen

    def test_evicts_in_insertion_order(self):
        seen = SeenSet(capacity=4, evict_fraction=0.5)
        for event_id in ("d", "a", "c", "b"):
            seen.add(event_id)
        seen.add("e")
        seen.add("f")

        assert "d" not in seen
        assert "a" not in seen
        assert all(event_id in seen for event_id in ("c", "b", "e"))
        assert len(seen) == 4

    def test_clear(self):
        seen = SeenSet(capacity=3)
        seen.add("a")
        seen.clear()
        assert len(seen) == 0
        assert seen.add("a") is True

    def test_evicted_id_accepted_again(self):
        seen = SeenSet(capacity=5)
        for i in range(6):
            seen.add(str(i))
        assert seen.add("0") is True

    def test_invalid_capacity(self):
        with pytest.raises(ValueError):
            SeenSet(capacity=0)


class TestComputeBackoff:
    """compute_backoff()."""

    def test_doubles_then_caps_without_jitter(self):
        delays = [compute_backoff(n, 1.0, 60.0, 0.0) for n in range(8)]
        assert delays == [1.0, 2.0, 4.0, 8.0, 16.0, 32.0, 60.0, 60.0]

    def test_huge_attempt_count_stays_capped(self):
        assert compute_backoff(10_000, 1.0, 60.0, 0.0) == 60.0

    def test_jitter_within_bounds(self):
        rng = random.Random(42)
        for attempts in range(10):
            delay = compute_backoff(attempts, 1.0, 60.0, 1.0, rng)
            base = min(2**attempts, 60.0)
            assert base <= delay < base + 1.0


class TestSubscriptionId:
    """subscription_id()."""

    def test_format(self):
        assert subscription_id("u4") == "geo_u4"
