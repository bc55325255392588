"""Cache statistics tracking and reporting."""

from .models import CacheStats


class CacheStatistics:
    """Tracks cache usage counters.

    Not synchronized on its own; :class:`TTLCache` mutates it under its
    store lock.
    """

    def __init__(self):
        """Initialize cache statistics."""
        self.hits = 0
        self.misses = 0
        self.sets = 0
        self.evictions = 0

    def record_hit(self):
        """Record a cache hit."""
        self.hits += 1

    def record_miss(self):
        """Record a cache miss."""
        self.misses += 1

    def record_set(self):
        """Record a stored value."""
        self.sets += 1

    def record_eviction(self, count: int = 1):
        """Record cache eviction(s)."""
        self.evictions += count

    def snapshot(self, size: int, max_size: int) -> CacheStats:
        """Freeze the current counters together with the store size."""
        return CacheStats(
            hits=self.hits,
            misses=self.misses,
            sets=self.sets,
            size=size,
            evictions=self.evictions,
            max_size=max_size,
        )

    def reset(self):
        """Reset all statistics."""
        self.hits = 0
        self.misses = 0
        self.sets = 0
        self.evictions = 0
