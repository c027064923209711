"""
In-memory expiring cache.

Generic key -> value store with a per-entry TTL, lazy expiry and
single-flight loading for read-through callers.
"""

import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

SECONDS_PER_MINUTE = 60

# Marks an absent key so that None can be cached like any other value
_MISSING = object()


@dataclass(frozen=True)
class CacheEntry:
    """Cached payload with its creation and absolute expiry times."""
    value: Any
    created_at: float
    expires_at: float

    def is_expired(self, now: float) -> bool:
        return now > self.expires_at


@dataclass(frozen=True)
class CacheStats:
    """Snapshot of the live (unexpired) cache contents."""
    size: int
    keys: List[str]


class ExpiringCache:
    """Thread-safe TTL cache.

    Expired entries are evicted lazily: a get past expiry returns None and
    drops the entry, and stats() sweeps before counting. A missing key is a
    normal outcome; no operation raises for one.
    """

    def __init__(
        self,
        default_ttl_minutes: int = 60,
        clock: Callable[[], float] = time.monotonic
    ):
        """Initialize the cache.

        Args:
            default_ttl_minutes: TTL applied when set() is called without one
            clock: Source of the current time in seconds
        """
        if default_ttl_minutes <= 0:
            raise ValueError("default_ttl_minutes must be > 0")
        self.default_ttl_minutes = default_ttl_minutes
        self._clock = clock
        self._entries: Dict[str, CacheEntry] = {}
        self._lock = threading.RLock()
        self._loading: Dict[str, threading.Lock] = {}

    def get(self, key: str) -> Optional[Any]:
        """Return the cached value, or None if absent or expired."""
        value = self._lookup(key)
        return None if value is _MISSING else value

    def set(self, key: str, value: Any, ttl_minutes: Optional[int] = None) -> None:
        """Store a value, replacing any existing entry and its expiry."""
        ttl = self.default_ttl_minutes if ttl_minutes is None else max(ttl_minutes, 0)
        with self._lock:
            now = self._clock()
            self._entries[key] = CacheEntry(
                value=value,
                created_at=now,
                expires_at=now + ttl * SECONDS_PER_MINUTE
            )

    def has(self, key: str) -> bool:
        """Check that a key is present and unexpired."""
        return self._lookup(key) is not _MISSING

    def delete(self, key: str) -> bool:
        """Remove a key. Returns True if an entry was removed."""
        with self._lock:
            return self._entries.pop(key, None) is not None

    def clear(self) -> None:
        """Remove every entry."""
        with self._lock:
            self._entries.clear()

    def stats(self) -> CacheStats:
        """Report live entries after sweeping expired ones."""
        with self._lock:
            self._sweep()
            return CacheStats(size=len(self._entries), keys=list(self._entries))

    def get_or_load(
        self,
        key: str,
        loader: Callable[[], T],
        ttl_minutes: Optional[int] = None
    ) -> T:
        """Read through the cache, calling loader on a miss.

        Concurrent misses for the same key wait on one in-flight load instead
        of each calling loader. Loads for different keys run independently.
        Loader exceptions propagate and nothing is cached.
        """
        value = self._lookup(key)
        if value is not _MISSING:
            logger.debug("Cache hit: %s", key)
            return value

        with self._lock:
            key_lock = self._loading.setdefault(key, threading.Lock())

        with key_lock:
            # Another thread may have finished the load while we waited
            value = self._lookup(key)
            if value is not _MISSING:
                logger.debug("Cache hit after wait: %s", key)
                return value
            logger.debug("Cache miss: %s", key)
            try:
                value = loader()
                self.set(key, value, ttl_minutes)
            finally:
                with self._lock:
                    if self._loading.get(key) is key_lock:
                        del self._loading[key]
        return value

    def _lookup(self, key: str) -> Any:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return _MISSING
            if entry.is_expired(self._clock()):
                del self._entries[key]
                logger.debug("Cache entry expired: %s", key)
                return _MISSING
            return entry.value

    def _sweep(self) -> None:
        now = self._clock()
        expired = [k for k, entry in self._entries.items() if entry.is_expired(now)]
        for key in expired:
            del self._entries[key]
        if expired:
            logger.debug("Swept %d expired cache entries", len(expired))
