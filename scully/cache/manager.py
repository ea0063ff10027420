"""Time-bounded two-tier cache and the cache manager built on it."""

import asyncio
import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, Generic, Optional, TypeVar

from scully.config.settings import CacheConfig
from scully.models import DocumentationArtifact, PackageMetadata

from .tiers import Clock, DiskTier, MemoryTier

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _identity(value: Any) -> Any:
    return value


class TimeBoundedCache(Generic[T]):
    """Key/value cache with an in-memory tier and a persisted disk tier.

    Lookups check memory first, then disk; a live disk entry is promoted
    into memory before it is returned. Writes always update memory and
    persist to disk on a best-effort basis. All mutations go through one
    lock per instance, so there is never more than one active mutation.
    """

    def __init__(
        self,
        name: str,
        ttl: float,
        directory: Optional[Path] = None,
        encode: Callable[[T], Any] = _identity,
        decode: Callable[[Any], T] = _identity,
        enabled: bool = True,
        clock: Clock = time.time,
    ):
        """
        Initialize the cache.

        Args:
            name: Logical name, also the disk file prefix
            ttl: Entry lifetime in seconds
            directory: Cache root for the disk tier (memory only when None)
            encode: Converts a value to JSON-compatible data
            decode: Rebuilds a value from ``encode`` output
            enabled: When False every lookup misses and nothing is stored
            clock: Time source, seconds since the epoch
        """
        self.name = name
        self.ttl = ttl
        self.enabled = enabled
        self.memory: MemoryTier[T] = MemoryTier(ttl, clock=clock)
        self.disk: Optional[DiskTier] = (
            DiskTier(directory, ttl, prefix=name, clock=clock) if directory is not None else None
        )
        self._encode = encode
        self._decode = decode
        self._lock = asyncio.Lock()

    async def get(self, key: str) -> Optional[T]:
        """Return the cached value for ``key`` or None."""
        if not self.enabled:
            return None

        async with self._lock:
            value = self.memory.get(key)
            if value is not None:
                logger.debug("%s memory cache hit for %s", self.name, key)
                return value

            if self.disk is None:
                return None

            raw = await self.disk.load(key)
            if raw is None:
                return None
            try:
                value = self._decode(raw)
            except (KeyError, TypeError, ValueError) as e:
                logger.debug("Discarding undecodable %s cache entry for %s: %s", self.name, key, e)
                self.disk.remove(key)
                return None

            self.memory.put(key, value)
            logger.debug("%s disk cache hit for %s", self.name, key)
            return value

    async def put(self, key: str, value: T) -> None:
        """Store ``value`` under ``key``."""
        if not self.enabled:
            return

        async with self._lock:
            self.memory.put(key, value)
            if self.disk is not None:
                await self.disk.store(key, self._encode(value))

    async def get_or_fetch(self, key: str, fetch: Callable[[], Awaitable[T]]) -> T:
        """Return the cached value, calling ``fetch`` and storing its result on a miss."""
        cached = await self.get(key)
        if cached is not None:
            return cached
        value = await fetch()
        await self.put(key, value)
        return value

    async def evict_expired(self) -> int:
        """Remove expired memory entries and stale disk files."""
        async with self._lock:
            removed = self.memory.evict_expired()
            if self.disk is not None:
                removed += self.disk.evict_expired()
            return removed

    async def clear(self) -> None:
        async with self._lock:
            self.memory.clear()
            if self.disk is not None:
                self.disk.clear()

    def __len__(self) -> int:
        return len(self.memory)


@dataclass
class CacheStats:
    """Cache statistics."""

    package_info_count: int
    documentation_count: int
    total_size_bytes: int
    cache_enabled: bool
    cache_expiry: float
    directory: str

    @property
    def total_size_formatted(self) -> str:
        size = float(self.total_size_bytes)
        for unit in ("bytes", "KB", "MB", "GB"):
            if size < 1024 or unit == "GB":
                return f"{size:.0f} {unit}" if unit == "bytes" else f"{size:.1f} {unit}"
            size /= 1024
        return f"{size:.1f} GB"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "package_info_count": self.package_info_count,
            "documentation_count": self.documentation_count,
            "total_size_bytes": self.total_size_bytes,
            "cache_enabled": self.cache_enabled,
            "cache_expiry": self.cache_expiry,
            "directory": self.directory,
        }


class CacheManager:
    """Package metadata and documentation caches sharing one directory."""

    def __init__(self, config: CacheConfig, clock: Clock = time.time):
        self.config = config
        self.directory = config.path
        self.package_info: TimeBoundedCache[PackageMetadata] = TimeBoundedCache(
            "package",
            ttl=config.ttl_seconds,
            directory=self.directory,
            encode=lambda info: info.to_dict(),
            decode=PackageMetadata.from_dict,
            enabled=config.enabled,
            clock=clock,
        )
        self.documentation: TimeBoundedCache[DocumentationArtifact] = TimeBoundedCache(
            "doc",
            ttl=config.ttl_seconds,
            directory=self.directory,
            encode=lambda doc: doc.to_dict(),
            decode=DocumentationArtifact.from_dict,
            enabled=config.enabled,
            clock=clock,
        )

    @property
    def enabled(self) -> bool:
        return self.config.enabled

    async def get_package_info(self, url: str) -> Optional[PackageMetadata]:
        return await self.package_info.get(url)

    async def store_package_info(self, info: PackageMetadata, url: str) -> None:
        await self.package_info.put(url, info)
        logger.debug("Cached package info for %s", info.name)

    async def get_documentation(self, key: str) -> Optional[DocumentationArtifact]:
        return await self.documentation.get(key)

    async def store_documentation(self, doc: DocumentationArtifact, key: str) -> None:
        await self.documentation.put(key, doc)
        logger.debug("Cached documentation for %s", doc.package_name)

    async def clear(self) -> None:
        """Clear all cached metadata and documentation."""
        await self.package_info.clear()
        await self.documentation.clear()
        logger.info("Cache cleared")

    async def clear_expired(self) -> int:
        """Clear expired entries. Returns the number removed."""
        removed = await self.package_info.evict_expired()
        removed += await self.documentation.evict_expired()
        logger.info("Expired cache cleared (%d entries)", removed)
        return removed

    def get_stats(self) -> CacheStats:
        """Entry counts and size; counts come from disk when it is used."""
        counts = []
        total_size = 0
        for cache in (self.package_info, self.documentation):
            if cache.disk is not None:
                counts.append(len(cache.disk.files()))
                total_size += cache.disk.size_bytes()
            else:
                counts.append(len(cache))
        return CacheStats(
            package_info_count=counts[0],
            documentation_count=counts[1],
            total_size_bytes=total_size,
            cache_enabled=self.config.enabled,
            cache_expiry=self.config.ttl_seconds,
            directory=str(self.directory),
        )
