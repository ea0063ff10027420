"""Time-bounded caching with memory and disk tiers."""

from .manager import CacheManager, CacheStats, TimeBoundedCache
from .tiers import CacheEntry, DiskTier, MemoryTier

__all__ = [
    "CacheEntry",
    "CacheManager",
    "CacheStats",
    "DiskTier",
    "MemoryTier",
    "TimeBoundedCache",
]
