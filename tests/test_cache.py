"""
Unit tests for the expiring cache.

Tests TTL expiry, lazy eviction, stats and single-flight loading.
"""

import threading
import time

import pytest

from cloud_cost.storage.cache import ExpiringCache
from conftest import FakeClock


class TestExpiry:
    """Test TTL handling."""

    def setup_method(self):
        self.clock = FakeClock()
        self.cache = ExpiringCache(default_ttl_minutes=60, clock=self.clock)

    def test_set_then_get_returns_value(self):
        """Verify an entry is readable immediately after set."""
        self.cache.set("k", "v", 1)
        assert self.cache.get("k") == "v"

    def test_expired_entry_is_absent_and_evicted(self):
        """Verify expiry hides the entry and stats stop counting it."""
        self.cache.set("k", "v", 1)
        self.clock.advance_minutes(1.01)

        assert self.cache.get("k") is None
        stats = self.cache.stats()
        assert stats.size == 0
        assert "k" not in stats.keys

    def test_entry_valid_at_exact_expiry(self):
        """Verify expiry is strictly after expires_at."""
        self.cache.set("k", "v", 1)
        self.clock.advance_minutes(1)
        assert self.cache.get("k") == "v"

    def test_default_ttl_used_when_omitted(self):
        """Verify the constructor default applies."""
        self.cache.set("k", "v")
        self.clock.advance_minutes(59)
        assert self.cache.has("k")
        self.clock.advance_minutes(2)
        assert not self.cache.has("k")

    def test_set_resets_expiry(self):
        """Verify last set wins and restarts the clock."""
        self.cache.set("k", "old", 1)
        self.clock.advance_minutes(0.5)
        self.cache.set("k", "new", 1)
        self.clock.advance_minutes(0.75)
        assert self.cache.get("k") == "new"

    def test_stats_sweeps_only_expired(self):
        """Verify stats keeps live entries."""
        self.cache.set("short", 1, 1)
        self.cache.set("long", 2, 10)
        self.clock.advance_minutes(5)

        stats = self.cache.stats()
        assert stats.size == 1
        assert stats.keys == ["long"]

    def test_invalid_default_ttl_raises(self):
        """Verify a non-positive default is rejected."""
        with pytest.raises(ValueError, match="default_ttl_minutes must be > 0"):
            ExpiringCache(default_ttl_minutes=0)


class TestKeyOperations:
    """Test delete, clear and missing keys."""

    def setup_method(self):
        self.cache = ExpiringCache(clock=FakeClock())

    def test_missing_key_returns_none(self):
        assert self.cache.get("missing") is None
        assert not self.cache.has("missing")

    def test_delete(self):
        """Verify delete reports whether anything was removed."""
        self.cache.set("k", "v")
        assert self.cache.delete("k") is True
        assert self.cache.delete("k") is False
        assert self.cache.get("k") is None

    def test_clear(self):
        self.cache.set("a", 1)
        self.cache.set("b", 2)
        self.cache.clear()
        assert self.cache.stats().size == 0

    def test_falsy_values_are_cached(self):
        """Verify 0 is a real cached value."""
        self.cache.set("zero", 0)
        assert self.cache.get("zero") == 0

    def test_none_is_a_cached_value(self):
        """Verify a stored None counts as present until it expires."""
        self.cache.set("k", None)
        assert self.cache.has("k")
        assert self.cache.get("k") is None
        assert self.cache.stats().keys == ["k"]


class TestGetOrLoad:
    """Test read-through loading."""

    def test_loads_once_until_expiry(self):
        """Verify the loader runs on miss only."""
        clock = FakeClock()
        cache = ExpiringCache(clock=clock)
        calls = []

        def loader():
            calls.append(1)
            return "data"

        assert cache.get_or_load("k", loader, 1) == "data"
        assert cache.get_or_load("k", loader, 1) == "data"
        assert len(calls) == 1

        clock.advance_minutes(2)
        cache.get_or_load("k", loader, 1)
        assert len(calls) == 2

    def test_loader_error_propagates_and_caches_nothing(self):
        """Verify a failed load leaves the key absent."""
        cache = ExpiringCache()

        def loader():
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError, match="boom"):
            cache.get_or_load("k", loader)
        assert not cache.has("k")

    def test_none_result_is_memoised(self):
        """Verify a loader returning None is not called again."""
        cache = ExpiringCache(clock=FakeClock())
        calls = []

        def loader():
            calls.append(1)
            return None

        assert cache.get_or_load("k", loader) is None
        assert cache.get_or_load("k", loader) is None
        assert len(calls) == 1

    def test_concurrent_misses_collapse_to_one_load(self):
        """Verify simultaneous callers share one in-flight load."""
        cache = ExpiringCache()
        calls = []
        calls_lock = threading.Lock()
        start = threading.Barrier(8)

        def loader():
            with calls_lock:
                calls.append(1)
            time.sleep(0.05)
            return "data"

        results = []

        def worker():
            start.wait()
            results.append(cache.get_or_load("k", loader))

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert results == ["data"] * 8
        assert len(calls) == 1
