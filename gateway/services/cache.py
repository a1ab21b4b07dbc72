"""
ResponseCache - Async-compatible in-memory cache with a fixed TTL.

Features:
- Entries carry their own creation timestamp and TTL
- Expiry is checked on read; expired entries are evicted lazily
- No sliding expiration: reads never extend an entry's lifetime
- Oldest-entry eviction when the cache is full
"""

import asyncio
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Generic, TypeVar

from loguru import logger

T = TypeVar("T")

DEFAULT_TTL = timedelta(minutes=30)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class CacheEntry(Generic[T]):
    """A single cache entry with metadata."""

    data: T
    timestamp: datetime
    ttl: timedelta

    @property
    def expires_at(self) -> datetime:
        return self.timestamp + self.ttl

    def is_expired(self, now: datetime) -> bool:
        """Check if entry is past its TTL at ``now``."""
        return now >= self.expires_at


class ResponseCache:
    """
    Cache of successful upstream payloads keyed by a caller-supplied string.

    Usage:
        cache = ResponseCache(ttl=timedelta(minutes=30))

        payload = await cache.get("wilaya:16:200")
        if payload is None:
            payload = await fetch()
            await cache.put("wilaya:16:200", payload)
    """

    def __init__(
        self,
        ttl: timedelta = DEFAULT_TTL,
        max_size: int = 500,
        clock: Callable[[], datetime] = utcnow,
        debug: bool = False,
    ):
        if ttl <= timedelta(0):
            raise ValueError("ttl must be positive")
        if max_size < 1:
            raise ValueError("max_size must be at least 1")

        self._memory: dict[str, CacheEntry[Any]] = {}
        self._ttl = ttl
        self._max_size = max_size
        self._clock = clock
        self._debug = debug
        self._lock = asyncio.Lock()
        self._stats = CacheStats()

    @property
    def ttl(self) -> timedelta:
        return self._ttl

    async def get(self, key: str) -> Any | None:
        """Return the cached payload for ``key``, or None if absent or expired."""
        async with self._lock:
            entry = self._memory.get(key)
            if entry is None:
                self._stats.misses += 1
                self._log(f"MISS: {key}")
                return None

            if entry.is_expired(self._clock()):
                del self._memory[key]
                self._stats.misses += 1
                self._stats.expirations += 1
                self._log(f"EXPIRED: {key}")
                return None

            self._stats.hits += 1
            self._log(f"HIT: {key}")
            return entry.data

    async def put(self, key: str, data: Any) -> None:
        """Insert or overwrite ``key`` with a freshly computed expiry."""
        entry = CacheEntry(data=data, timestamp=self._clock(), ttl=self._ttl)

        async with self._lock:
            if len(self._memory) >= self._max_size and key not in self._memory:
                self._evict_oldest()

            self._memory[key] = entry
            self._log(f"SET: {key} (TTL: {self._ttl.total_seconds()}s)")

    async def cleanup_expired(self) -> int:
        """Remove all expired entries. Returns count of removed entries."""
        async with self._lock:
            now = self._clock()
            expired_keys = [k for k, v in self._memory.items() if v.is_expired(now)]
            for key in expired_keys:
                del self._memory[key]

            if expired_keys:
                self._stats.expirations += len(expired_keys)
                self._log(f"CLEANUP: {len(expired_keys)} expired entries removed")

            return len(expired_keys)

    def _evict_oldest(self) -> None:
        # caller holds the lock
        if not self._memory:
            return

        oldest_key = min(
            self._memory.keys(),
            key=lambda k: self._memory[k].timestamp,
        )
        del self._memory[oldest_key]
        self._stats.evictions += 1
        self._log(f"EVICT: {oldest_key}")

    def __len__(self) -> int:
        return len(self._memory)

    def get_stats(self) -> "CacheStats":
        """Get cache statistics."""
        self._stats.size = len(self._memory)
        self._stats.max_size = self._max_size
        return self._stats

    def _log(self, message: str) -> None:
        """Log debug message if debug mode is enabled."""
        if self._debug:
            logger.debug(f"[ResponseCache] {message}")


@dataclass
class CacheStats:
    """Cache statistics."""

    hits: int = 0
    misses: int = 0
    expirations: int = 0
    evictions: int = 0
    size: int = 0
    max_size: int = 0

    @property
    def hit_rate(self) -> float:
        """Calculate cache hit rate."""
        total = self.hits + self.misses
        if total == 0:
            return 0.0
        return self.hits / total

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "hits": self.hits,
            "misses": self.misses,
            "expirations": self.expirations,
            "evictions": self.evictions,
            "size": self.size,
            "max_size": self.max_size,
            "hit_rate": f"{self.hit_rate:.2%}",
        }
