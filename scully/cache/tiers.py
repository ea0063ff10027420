"""Memory and disk tiers of the time-bounded cache.

Both tiers share the same expiry rule: an entry is expired once
``now - timestamp > ttl``. The memory tier uses the insertion timestamp,
the disk tier the file modification time.
"""

import hashlib
import json
import logging
import os
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, Generic, Optional, TypeVar

import aiofiles

logger = logging.getLogger(__name__)

T = TypeVar("T")

Clock = Callable[[], float]


@dataclass
class CacheEntry(Generic[T]):
    """A cached value and the time it was stored."""

    value: T
    timestamp: float

    def is_expired(self, ttl: float, now: Optional[float] = None) -> bool:
        """Check if the entry is older than ``ttl`` seconds."""
        current = time.time() if now is None else now
        return current - self.timestamp > ttl


class MemoryTier(Generic[T]):
    """In-process dictionary of cache entries."""

    def __init__(self, ttl: float, clock: Clock = time.time):
        self.ttl = ttl
        self._clock = clock
        self._entries: Dict[str, CacheEntry[T]] = {}

    def get(self, key: str) -> Optional[T]:
        """Return a live value, evicting the entry if it has expired."""
        entry = self._entries.get(key)
        if entry is None:
            return None
        if entry.is_expired(self.ttl, self._clock()):
            del self._entries[key]
            return None
        return entry.value

    def put(self, key: str, value: T) -> None:
        self._entries[key] = CacheEntry(value=value, timestamp=self._clock())

    def remove(self, key: str) -> None:
        self._entries.pop(key, None)

    def evict_expired(self) -> int:
        """Drop every expired entry. Returns the number removed."""
        now = self._clock()
        expired = [k for k, e in self._entries.items() if e.is_expired(self.ttl, now)]
        for key in expired:
            del self._entries[key]
        return len(expired)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return key in self._entries


class DiskTier:
    """JSON files named after a hash of the logical key.

    Readers and writers agree on file names without coordination. Any file
    that is missing, unreadable, unparsable, stored under another key or
    older than the TTL is treated as a miss.
    """

    def __init__(
        self,
        directory: Path,
        ttl: float,
        prefix: str,
        clock: Clock = time.time,
    ):
        self.directory = Path(directory)
        self.ttl = ttl
        self.prefix = prefix
        self._clock = clock

    def path_for(self, key: str) -> Path:
        """Get cache file path for a key."""
        digest = hashlib.md5(key.encode()).hexdigest()
        return self.directory / f"{self.prefix}_{digest}.json"

    def _is_stale(self, path: Path) -> bool:
        return self._clock() - path.stat().st_mtime > self.ttl

    async def load(self, key: str) -> Optional[Any]:
        """Load the serialized value stored for ``key``."""
        path = self.path_for(key)
        try:
            if not path.exists():
                return None
            if self._is_stale(path):
                self._remove(path)
                return None
            async with aiofiles.open(path, "r", encoding="utf-8") as f:
                payload = json.loads(await f.read())
        except (OSError, ValueError) as e:
            logger.debug("Ignoring unreadable cache file %s: %s", path, e)
            return None

        if not isinstance(payload, dict) or payload.get("key") != key or "value" not in payload:
            return None
        return payload["value"]

    async def store(self, key: str, value: Any) -> bool:
        """Persist a serialized value. Failures are logged, never raised."""
        path = self.path_for(key)
        payload = {"key": key, "created_at": self._clock(), "value": value}
        tmp_path = path.with_suffix(f".{os.getpid()}.tmp")
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(tmp_path, "w", encoding="utf-8") as f:
                await f.write(json.dumps(payload))
            os.replace(tmp_path, path)
            return True
        except (OSError, TypeError, ValueError) as e:
            logger.warning("Failed to save cache entry to disk (%s): %s", path.name, e)
            self._remove(tmp_path)
            return False

    def remove(self, key: str) -> None:
        self._remove(self.path_for(key))

    def files(self) -> list:
        """Cache files owned by this tier."""
        try:
            return sorted(self.directory.glob(f"{self.prefix}_*.json"))
        except OSError:
            return []

    def evict_expired(self) -> int:
        """Delete files whose modification time is older than the TTL."""
        removed = 0
        for path in self.files():
            try:
                if self._is_stale(path):
                    path.unlink()
                    removed += 1
            except OSError as e:
                logger.debug("Could not evict %s: %s", path, e)
        return removed

    def clear(self) -> int:
        removed = 0
        for path in self.files():
            if self._remove(path):
                removed += 1
        return removed

    def size_bytes(self) -> int:
        total = 0
        for path in self.files():
            try:
                total += path.stat().st_size
            except OSError:
                pass
        return total

    @staticmethod
    def _remove(path: Path) -> bool:
        try:
            path.unlink()
            return True
        except FileNotFoundError:
            return False
        except OSError as e:
            logger.debug("Could not remove %s: %s", path, e)
            return False
