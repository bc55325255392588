"""In-process TTL cache with LRU bound, statistics and single-flight compute."""

import threading
import time
from collections import OrderedDict
from typing import Any, Awaitable, Callable, Dict, Hashable, Optional, Tuple, TypeVar

import anyio
import anyio.lowlevel

from .keys import create_key
from .models import CacheEntry, CacheStats
from .statistics import CacheStatistics
from ...config import Settings
from ...constants import DEFAULT_CACHE_MAX_SIZE, DEFAULT_CACHE_TTL_SECONDS
from ...logging import debug, LogRecord, LogEvent

T = TypeVar("T")


def _short(key: str) -> str:
    namespace, _, digest = key.rpartition(":")
    return f"{namespace}:{digest[:8]}..." if namespace else key[:8] + "..."


class TTLCache:
    """
    Thread-safe key-value store whose entries expire after a time-to-live.

    Expiry is checked lazily on read; there is no background sweep. When the
    store grows past ``max_size`` the least recently used entry is evicted.
    ``None`` is the miss marker, so ``None`` values are never cached usefully.

    Single-flight (on by default) makes concurrent ``get_or_compute`` calls
    for the same key within one event loop share a single computation. Locks
    are per event loop, so callers on other loops compute independently.
    """

    def __init__(
        self,
        default_ttl_seconds: float = DEFAULT_CACHE_TTL_SECONDS,
        max_size: int = DEFAULT_CACHE_MAX_SIZE,
        single_flight: bool = True,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._default_ttl = default_ttl_seconds
        self._max_size = max(1, max_size)
        self._single_flight = single_flight
        self._clock = clock

        self._store: OrderedDict[str, CacheEntry] = OrderedDict()
        self._lock = threading.RLock()
        self._statistics = CacheStatistics()
        self._key_locks: Dict[Tuple[Hashable, str], anyio.Lock] = {}

    @classmethod
    def from_settings(cls, settings: Settings) -> "TTLCache":
        return cls(
            default_ttl_seconds=settings.cache_default_ttl_seconds,
            max_size=settings.cache_max_size,
            single_flight=settings.cache_single_flight_enabled,
        )

    @property
    def default_ttl_seconds(self) -> float:
        return self._default_ttl

    @staticmethod
    def create_key(structured_input: Any, namespace: str) -> str:
        """Derive a deterministic key for ``structured_input`` in ``namespace``."""
        return create_key(structured_input, namespace)

    def set(self, key: str, value: Any, ttl_seconds: Optional[float] = None) -> None:
        """Store ``value`` under ``key`` for ``ttl_seconds`` (default TTL if None)."""
        ttl = self._default_ttl if ttl_seconds is None else ttl_seconds
        now = self._clock()

        with self._lock:
            self._store.pop(key, None)
            while len(self._store) >= self._max_size:
                self._evict_lru()
            self._store[key] = CacheEntry(
                value=value, expires_at=now + ttl, created_at=now
            )
            self._statistics.record_set()

        debug(
            LogRecord(
                event=LogEvent.CACHE_EVENT.value,
                message="Cached value",
                data={"cache_key": _short(key), "ttl_seconds": ttl},
            )
        )

    def get(self, key: str) -> Optional[Any]:
        """Return the live value for ``key`` or ``None`` on a miss."""
        now = self._clock()

        with self._lock:
            entry = self._store.get(key)
            if entry is None:
                self._statistics.record_miss()
                return None

            if not entry.is_expired(now):
                self._store.move_to_end(key)
                entry.update_access()
                self._statistics.record_hit()
                return entry.value

            del self._store[key]
            self._statistics.record_eviction()
            self._statistics.record_miss()

        debug(
            LogRecord(
                event=LogEvent.CACHE_EVENT.value,
                message="Evicted expired cache entry",
                data={"cache_key": _short(key)},
            )
        )
        return None

    def has(self, key: str) -> bool:
        """Report whether ``key`` holds a live value without touching statistics."""
        with self._lock:
            entry = self._store.get(key)
            return entry is not None and not entry.is_expired(self._clock())

    def delete(self, key: str) -> bool:
        """Remove ``key``; returns True when an entry was present."""
        with self._lock:
            return self._store.pop(key, None) is not None

    def purge_expired(self) -> int:
        """Evict every expired entry and return how many were removed."""
        now = self._clock()
        with self._lock:
            expired_keys = [k for k, e in self._store.items() if e.is_expired(now)]
            for key in expired_keys:
                del self._store[key]
            if expired_keys:
                self._statistics.record_eviction(len(expired_keys))

        if expired_keys:
            debug(
                LogRecord(
                    event=LogEvent.CACHE_EVENT.value,
                    message=f"Evicted {len(expired_keys)} expired entries",
                    data={"evicted_count": len(expired_keys)},
                )
            )
        return len(expired_keys)

    def clear(self, reset_stats: bool = False) -> None:
        """Drop all entries, optionally zeroing the counters as well."""
        with self._lock:
            self._store.clear()
            if reset_stats:
                self._statistics.reset()

    def get_stats(self) -> CacheStats:
        """Snapshot of the counters; has no side effects."""
        with self._lock:
            return self._statistics.snapshot(len(self._store), self._max_size)

    def __len__(self) -> int:
        with self._lock:
            return len(self._store)

    async def get_or_compute(
        self,
        key: str,
        factory: Callable[[], Awaitable[T]],
        ttl_seconds: Optional[float] = None,
    ) -> T:
        """Return the cached value for ``key`` or compute, store and return it.

        A factory that raises leaves the cache untouched and the exception
        propagates to every caller that was waiting on the same key.
        """
        if not self._single_flight:
            return await self._lookup_or_compute(key, factory, ttl_seconds)

        # an anyio.Lock only wakes waiters on the loop that owns it
        lock_key = (anyio.lowlevel.current_token(), key)
        with self._lock:
            key_lock = self._key_locks.get(lock_key)
            if key_lock is None:
                key_lock = self._key_locks[lock_key] = anyio.Lock()

        try:
            async with key_lock:
                return await self._lookup_or_compute(key, factory, ttl_seconds)
        finally:
            with self._lock:
                if not key_lock.locked() and self._key_locks.get(lock_key) is key_lock:
                    del self._key_locks[lock_key]

    async def _lookup_or_compute(
        self,
        key: str,
        factory: Callable[[], Awaitable[T]],
        ttl_seconds: Optional[float],
    ) -> T:
        cached = self.get(key)
        if cached is not None:
            return cached

        value = await factory()
        self.set(key, value, ttl_seconds)
        return value

    def _evict_lru(self) -> None:
        """Evict the least recently used entry. Caller holds the lock."""
        if not self._store:
            return
        key, _ = self._store.popitem(last=False)
        self._statistics.record_eviction()
        debug(
            LogRecord(
                event=LogEvent.CACHE_EVENT.value,
                message="Evicted LRU cache entry",
                data={"evicted_key": _short(key)},
            )
        )
