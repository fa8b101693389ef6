"""In-memory LRU audio cache."""

import asyncio
import logging
from collections import OrderedDict

from .base import AudioCache
from .models import CacheEntry, CacheStats

logger = logging.getLogger(__name__)

DEFAULT_MEMORY_CACHE_BYTES = 50 * 1024 * 1024


class MemoryAudioCache(AudioCache):
    """Process-lifetime audio cache bounded by total payload size.

    Entries are kept in an OrderedDict in recency order (oldest first), so
    eviction pops from the front. A single asyncio.Lock guards the entry map
    and the size tally.
    """

    def __init__(self, max_size_bytes: int = DEFAULT_MEMORY_CACHE_BYTES) -> None:
        if max_size_bytes <= 0:
            raise ValueError(f"max_size_bytes must be positive, got {max_size_bytes}")

        self.max_size_bytes = max_size_bytes
        self._entries: "OrderedDict[str, CacheEntry]" = OrderedDict()
        self._size = 0
        self._lock = asyncio.Lock()

        self._hits = 0
        self._misses = 0
        self._evictions = 0

    async def get(self, key: str) -> bytes | None:
        async with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self._misses += 1
                return None

            entry.touch()
            self._entries.move_to_end(key)
            self._hits += 1
            return entry.payload

    async def put(self, key: str, payload: bytes) -> None:
        payload = bytes(payload)
        async with self._lock:
            existing = self._entries.pop(key, None)
            if existing is not None:
                self._size -= existing.size

            self._entries[key] = CacheEntry(key=key, size=len(payload), payload=payload)
            self._size += len(payload)
            self._evict_locked()

        logger.debug(f"Cached {len(payload)} bytes under {key[:8]}")

    def _evict_locked(self) -> None:
        """Drop oldest entries until the bound holds. Caller holds the lock.

        The entry just written sits at the end, so it is never evicted.
        """
        while self._size > self.max_size_bytes and len(self._entries) > 1:
            oldest_key, evicted = self._entries.popitem(last=False)
            self._size -= evicted.size
            self._evictions += 1
            logger.debug(f"Evicted {oldest_key[:8]} ({evicted.size} bytes)")

    async def remove(self, key: str) -> None:
        async with self._lock:
            entry = self._entries.pop(key, None)
            if entry is not None:
                self._size -= entry.size

    async def clear(self) -> None:
        async with self._lock:
            self._entries.clear()
            self._size = 0

    async def size(self) -> int:
        async with self._lock:
            return self._size

    async def keys(self) -> set[str]:
        async with self._lock:
            return set(self._entries)

    async def stats(self) -> CacheStats:
        async with self._lock:
            return CacheStats(
                entries=len(self._entries),
                size_bytes=self._size,
                max_size_bytes=self.max_size_bytes,
                hits=self._hits,
                misses=self._misses,
                evictions=self._evictions,
            )
