"""Data models for the audio cache."""

from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path


@dataclass
class CacheEntry:
    """A cached synthesis result.

    Attributes:
        key: Content-addressed cache key
        size: Payload size in bytes, counted toward the cache bound
        last_access: When this entry was last written or read
        payload: Audio bytes (in-memory cache only)
        path: File holding the audio bytes (durable cache only)
    """

    key: str
    size: int
    last_access: datetime = field(default_factory=datetime.now)
    payload: bytes | None = None
    path: Path | None = None

    def touch(self) -> None:
        """Mark the entry as just used."""
        self.last_access = datetime.now()


@dataclass(frozen=True)
class CacheStats:
    """Point-in-time cache statistics."""

    entries: int
    size_bytes: int
    max_size_bytes: int
    hits: int
    misses: int
    evictions: int
