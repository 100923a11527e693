"""
In-memory cache with TTL and LRU eviction.

Backs language preferences, access tokens and group binding markers.
All operations are coroutine-safe through a single asyncio lock; nothing
here blocks, so the lock only orders concurrent tasks.

Usage:
    cache = Cache(max_entries=5000, default_ttl=3600)
    await cache.set("user:lang:42", "ko", ttl_seconds=LANGUAGE_TTL)
    locale = await cache.get("user:lang:42")
"""

import asyncio
import logging
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

logger = logging.getLogger(__name__)

DEFAULT_MAX_ENTRIES = 10000
DEFAULT_TTL_SECONDS = 3600  # 1 hour


@dataclass
class CacheEntry:
    """A single cache entry with metadata."""

    value: Any
    created_at: float
    expires_at: float

    def is_expired(self, now: float) -> bool:
        """Check if entry has expired."""
        return now >= self.expires_at


class Cache:
    """
    Async-safe cache with TTL and LRU eviction.

    Args:
        max_entries: Maximum number of entries before LRU eviction
        default_ttl: Default TTL in seconds for entries
        clock: Time source, injectable for tests
    """

    def __init__(
        self,
        max_entries: int = DEFAULT_MAX_ENTRIES,
        default_ttl: int = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.time,
    ):
        self._max_entries = max_entries
        self._default_ttl = default_ttl
        self._clock = clock
        self._lock = asyncio.Lock()

        # OrderedDict for LRU ordering
        self._entries: "OrderedDict[str, CacheEntry]" = OrderedDict()

        self._hits = 0
        self._misses = 0

    async def get(self, key: str, default: Any = None) -> Any:
        """Get a value, or ``default`` if missing or expired."""
        async with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self._misses += 1
                return default

            if entry.is_expired(self._clock()):
                del self._entries[key]
                self._misses += 1
                return default

            self._entries.move_to_end(key)
            self._hits += 1
            return entry.value

    async def set(self, key: str, value: Any, ttl_seconds: Optional[int] = None) -> None:
        """Store a value with a TTL (default TTL when omitted)."""
        ttl = self._default_ttl if ttl_seconds is None else ttl_seconds
        now = self._clock()

        async with self._lock:
            if key in self._entries:
                del self._entries[key]
            else:
                self._evict_lru()
            self._entries[key] = CacheEntry(value=value, created_at=now, expires_at=now + ttl)

    async def delete(self, key: str) -> bool:
        """Remove a key. Returns True if it existed."""
        async with self._lock:
            return self._entries.pop(key, None) is not None

    async def exists(self, key: str) -> bool:
        """Check if a live entry exists for ``key``."""
        sentinel = object()
        return (await self.get(key, sentinel)) is not sentinel

    async def clear(self) -> None:
        """Drop every entry."""
        async with self._lock:
            self._entries.clear()

    async def cleanup_expired(self) -> int:
        """Remove expired entries. Returns the number removed."""
        now = self._clock()
        async with self._lock:
            expired = [k for k, v in self._entries.items() if v.is_expired(now)]
            for key in expired:
                del self._entries[key]

        if expired:
            logger.debug(f"Cleaned up {len(expired)} expired cache entries")
        return len(expired)

    def _evict_lru(self) -> None:
        while len(self._entries) >= self._max_entries:
            oldest_key = next(iter(self._entries))
            del self._entries[oldest_key]
            logger.debug(f"Evicted LRU entry: {oldest_key}")

    def stats(self) -> Dict[str, Any]:
        """Hit/miss statistics."""
        total = self._hits + self._misses
        return {
            "entries": len(self._entries),
            "max_entries": self._max_entries,
            "hits": self._hits,
            "misses": self._misses,
            "hit_rate": round(self._hits / total, 4) if total else 0.0,
        }
