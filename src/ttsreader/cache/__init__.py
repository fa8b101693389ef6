"""Audio cache for ttsreader synthesis results."""

from ..config import CacheConfig
from .base import AudioCache
from .keys import compute_cache_key
from .memory import MemoryAudioCache
from .models import CacheEntry, CacheStats
from .storage import FileAudioCache

__all__ = [
    "AudioCache",
    "CacheEntry",
    "CacheStats",
    "FileAudioCache",
    "MemoryAudioCache",
    "compute_cache_key",
    "create_cache",
]


def create_cache(config: CacheConfig) -> AudioCache:
    """Build the cache backend selected by config.

    Raises:
        CacheIOError: If the durable cache directory cannot be created
    """
    if config.backend == "memory":
        return MemoryAudioCache(config.max_size_bytes)
    return FileAudioCache(config.directory, config.max_size_bytes)
