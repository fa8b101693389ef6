"""Abstract base class for audio caches.

Both realizations share the same contract: a bounded key to bytes store
with least-recently-used eviction, safe for concurrent use from one event
loop.
"""

from abc import ABC, abstractmethod

from .models import CacheStats


class AudioCache(ABC):
    """Abstract base class for audio caches.

    Eviction runs after an insert: the new entry is added first, then the
    oldest-accessed entries (never the new one) are dropped until the total
    fits max_size_bytes. A single entry larger than the bound is kept.
    """

    max_size_bytes: int

    @abstractmethod
    async def get(self, key: str) -> bytes | None:
        """Return cached bytes for key and mark it recently used."""

    @abstractmethod
    async def put(self, key: str, payload: bytes) -> None:
        """Insert or replace key, evicting old entries to respect the bound."""

    @abstractmethod
    async def remove(self, key: str) -> None:
        """Remove key if present."""

    @abstractmethod
    async def clear(self) -> None:
        """Remove every entry."""

    @abstractmethod
    async def size(self) -> int:
        """Return the exact number of resident payload bytes."""

    @abstractmethod
    async def keys(self) -> set[str]:
        """Return a snapshot of the current keys."""

    @abstractmethod
    async def stats(self) -> CacheStats:
        """Return current statistics."""
