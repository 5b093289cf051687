"""In-memory TTL cache for API responses.

Reduces calls to rate-limited data sources by caching responses with a
configurable TTL.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, field
from typing import Callable, Generic, TypeVar

from .utils import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


@dataclass
class CacheEntry(Generic[T]):
    """Single cache entry with expiration."""

    value: T
    expires_at: float
    created_at: float = field(default_factory=time.monotonic)


class TTLCache(Generic[T]):
    """Async TTL cache with LRU eviction.

    Usage:
        cache = TTLCache[ExchangeFlow](default_ttl=60)

        await cache.set("btc:inflow", flow)
        flow = await cache.get("btc:inflow")  # None once expired
    """

    def __init__(
        self,
        default_ttl: float = 60.0,
        max_size: int = 1000,
        clock: Callable[[], float] = time.monotonic,
    ):
        """Initialize cache.

        Args:
            default_ttl: Default time-to-live in seconds.
            max_size: Maximum number of entries (LRU eviction when exceeded).
            clock: Monotonic time source in seconds.
        """
        self.default_ttl = default_ttl
        self.max_size = max_size
        self._clock = clock

        self._cache: dict[str, CacheEntry[T]] = {}
        self._access_order: list[str] = []
        self._lock = asyncio.Lock()

        self._hits = 0
        self._misses = 0

    def _forget(self, key: str) -> None:
        self._cache.pop(key, None)
        if key in self._access_order:
            self._access_order.remove(key)

    async def get(self, key: str) -> T | None:
        """Get value from cache.

        Args:
            key: Cache key.

        Returns:
            Cached value or None if not found/expired.
        """
        async with self._lock:
            entry = self._cache.get(key)

            if entry is None:
                self._misses += 1
                return None

            if self._clock() >= entry.expires_at:
                self._forget(key)
                self._misses += 1
                return None

            self._access_order.remove(key)
            self._access_order.append(key)

            self._hits += 1
            return entry.value

    async def set(self, key: str, value: T, ttl: float | None = None) -> None:
        """Store value in cache.

        Args:
            key: Cache key.
            value: Value to store.
            ttl: Time-to-live in seconds (uses default if None).
        """
        ttl = ttl if ttl is not None else self.default_ttl

        async with self._lock:
            if key in self._cache:
                self._forget(key)

            while len(self._cache) >= self.max_size and self._access_order:
                oldest_key = self._access_order.pop(0)
                self._cache.pop(oldest_key, None)

            now = self._clock()
            self._cache[key] = CacheEntry(value=value, expires_at=now + ttl, created_at=now)
            self._access_order.append(key)

    async def clear(self) -> int:
        """Clear all entries from cache.

        Returns:
            Number of entries cleared.
        """
        async with self._lock:
            count = len(self._cache)
            self._cache.clear()
            self._access_order.clear()
            return count

    def get_stats(self) -> dict:
        """Get cache statistics."""
        total_requests = self._hits + self._misses
        hit_rate = self._hits / total_requests if total_requests > 0 else 0

        return {
            "entries": len(self._cache),
            "max_size": self.max_size,
            "hits": self._hits,
            "misses": self._misses,
            "hit_rate": hit_rate,
            "default_ttl": self.default_ttl,
        }
