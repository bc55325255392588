"""Cache module for TTL caching with usage statistics."""

from .ttl_cache import TTLCache
from .models import CacheEntry, CacheStats
from .statistics import CacheStatistics
from .keys import create_key

__all__ = ["TTLCache", "CacheEntry", "CacheStats", "CacheStatistics", "create_key"]
