"""Data models for the cache module."""

from dataclasses import dataclass
from typing import Any, Dict


@dataclass
class CacheEntry:
    """A stored value with its expiry deadline (clock seconds)."""

    value: Any
    expires_at: float
    created_at: float
    access_count: int = 0

    def is_expired(self, now: float) -> bool:
        """Check if this entry has expired at ``now``."""
        return now >= self.expires_at

    def update_access(self):
        self.access_count += 1


@dataclass(frozen=True)
class CacheStats:
    """Point-in-time snapshot of cache counters."""

    hits: int
    misses: int
    sets: int
    size: int
    evictions: int
    max_size: int

    @property
    def hit_rate(self) -> float:
        total = self.hits + self.misses
        if total == 0:
            return 0.0
        return self.hits / total

    def to_dict(self) -> Dict[str, Any]:
        return {
            "hits": self.hits,
            "misses": self.misses,
            "sets": self.sets,
            "size": self.size,
            "evictions": self.evictions,
            "max_size": self.max_size,
            "hit_rate": round(self.hit_rate, 3),
        }
