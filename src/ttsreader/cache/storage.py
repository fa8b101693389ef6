"""Directory-backed durable audio cache.

Each entry is one file inside the cache directory, named by its key and
holding the raw payload bytes with no extra framing. Recency survives
restarts through file modification times.
"""

import asyncio
import logging
import os
import re
import tempfile
from collections import OrderedDict
from datetime import datetime
from pathlib import Path

from ..errors import CacheIOError
from .base import AudioCache
from .models import CacheEntry, CacheStats

logger = logging.getLogger(__name__)

DEFAULT_FILE_CACHE_BYTES = 100 * 1024 * 1024
TEMP_PREFIX = ".tmp-"
KEY_PATTERN = re.compile(r"^[A-Za-z0-9_-]+$")


def validate_key(key: str) -> str:
    """Ensure key is usable as a file name inside the cache directory.

    Raises:
        ValueError: If key is empty or contains anything but [A-Za-z0-9_-]
    """
    if not key or not KEY_PATTERN.match(key):
        raise ValueError(f"Invalid cache key for file storage: {key!r}")
    return key


class FileAudioCache(AudioCache):
    """Durable audio cache storing one file per key.

    Writes go to a temporary file which is atomically renamed into place;
    the bookkeeping is updated only after the rename succeeds. Reads happen
    outside the lock so slow disk access never blocks other keys.

    Example:
        cache = FileAudioCache(Path("~/.cache/ttsreader/audio").expanduser())
        await cache.put(key, audio_bytes)
        audio = await cache.get(key)  # survives process restarts
    """

    def __init__(
        self, cache_dir: Path, max_size_bytes: int = DEFAULT_FILE_CACHE_BYTES
    ) -> None:
        """Initialize the cache and index any files left by earlier runs.

        Args:
            cache_dir: Directory holding cached audio files
            max_size_bytes: Upper bound for total payload bytes

        Raises:
            ValueError: If max_size_bytes is not positive
            CacheIOError: If the cache directory cannot be created or listed
        """
        if max_size_bytes <= 0:
            raise ValueError(f"max_size_bytes must be positive, got {max_size_bytes}")

        self.cache_dir = Path(cache_dir)
        self.max_size_bytes = max_size_bytes

        try:
            self.cache_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise CacheIOError(
                f"Cannot create audio cache directory {self.cache_dir}: {e}", e
            ) from e

        self._entries: "OrderedDict[str, CacheEntry]" = OrderedDict()
        self._size = 0
        self._lock = asyncio.Lock()

        self._hits = 0
        self._misses = 0
        self._evictions = 0

        self._load_index()

        logger.info(
            f"FileAudioCache initialized at {self.cache_dir} with "
            f"{len(self._entries)} entries ({self._size} bytes)"
        )

    def _load_index(self) -> None:
        """Rebuild entries from the directory, oldest modification first."""
        found: list[tuple[int, str, int]] = []
        try:
            children = list(self.cache_dir.iterdir())
        except OSError as e:
            raise CacheIOError(f"Cannot list audio cache {self.cache_dir}: {e}", e) from e

        for child in children:
            if child.name.startswith(TEMP_PREFIX):
                # Interrupted write from an earlier run
                try:
                    child.unlink(missing_ok=True)
                    logger.debug(f"Removed leftover temp file {child.name}")
                except OSError as e:
                    logger.warning(f"Could not remove leftover temp file {child}: {e}")
                continue
            if not KEY_PATTERN.match(child.name):
                continue
            try:
                st = child.stat()
            except OSError as e:
                logger.warning(f"Skipping unreadable cache file {child}: {e}")
                continue
            if not child.is_file():
                continue
            found.append((st.st_mtime_ns, child.name, st.st_size))

        for mtime_ns, name, size in sorted(found):
            self._entries[name] = CacheEntry(
                key=name,
                size=size,
                last_access=datetime.fromtimestamp(mtime_ns / 1e9),
                path=self.cache_dir / name,
            )
            self._size += size

        for path in self._evict_locked():
            path.unlink(missing_ok=True)

    def _evict_locked(self) -> list[Path]:
        """Drop oldest entries until the bound holds. Caller holds the lock.

        Returns:
            Paths of the evicted files, for the caller to delete
        """
        evicted: list[Path] = []
        while self._size > self.max_size_bytes and len(self._entries) > 1:
            oldest_key, entry = self._entries.popitem(last=False)
            self._size -= entry.size
            self._evictions += 1
            evicted.append(entry.path or self.cache_dir / oldest_key)
            logger.debug(f"Evicted {oldest_key[:8]} ({entry.size} bytes)")
        return evicted

    def _read(self, path: Path) -> bytes:
        data = path.read_bytes()
        try:
            os.utime(path)
        except OSError as e:
            logger.debug(f"Could not refresh mtime of {path}: {e}")
        return data

    def _write_temp(self, payload: bytes) -> Path:
        fd, name = tempfile.mkstemp(prefix=TEMP_PREFIX, dir=self.cache_dir)
        tmp_path = Path(name)
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(payload)
                f.flush()
                os.fsync(f.fileno())
        except BaseException:
            tmp_path.unlink(missing_ok=True)
            raise
        return tmp_path

    @staticmethod
    def _unlink(paths: list[Path]) -> None:
        for path in paths:
            try:
                path.unlink(missing_ok=True)
            except OSError as e:
                logger.warning(f"Failed to delete evicted cache file {path}: {e}")

    async def get(self, key: str) -> bytes | None:
        async with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self._misses += 1
                return None
            entry.touch()
            self._entries.move_to_end(key)

        path = entry.path or self.cache_dir / key
        try:
            data = await asyncio.to_thread(self._read, path)
        except OSError as e:
            logger.warning(f"Unreadable cache entry {key[:8]}, treating as miss: {e}")
            data = None

        if data is None or len(data) != entry.size:
            async with self._lock:
                # Only drop the entry we looked at; a concurrent put may
                # already have replaced it.
                if self._entries.get(key) is entry:
                    del self._entries[key]
                    self._size -= entry.size
                self._misses += 1
            return None

        self._hits += 1
        return data

    async def put(self, key: str, payload: bytes) -> None:
        """Write payload under key.

        Raises:
            ValueError: If key is not a safe file name
            CacheIOError: If the file cannot be written; nothing is recorded
        """
        validate_key(key)
        payload = bytes(payload)
        path = self.cache_dir / key

        try:
            tmp_path = await asyncio.to_thread(self._write_temp, payload)
        except OSError as e:
            raise CacheIOError(f"Failed to write cache entry {key[:8]}: {e}", e) from e

        async with self._lock:
            try:
                await asyncio.to_thread(os.replace, tmp_path, path)
            except OSError as e:
                tmp_path.unlink(missing_ok=True)
                raise CacheIOError(
                    f"Failed to store cache entry {key[:8]}: {e}", e
                ) from e

            existing = self._entries.pop(key, None)
            if existing is not None:
                self._size -= existing.size
            self._entries[key] = CacheEntry(key=key, size=len(payload), path=path)
            self._size += len(payload)
            evicted = self._evict_locked()
            if evicted:
                await asyncio.to_thread(self._unlink, evicted)

        logger.debug(f"Cached {len(payload)} bytes under {key[:8]} in {path}")

    async def remove(self, key: str) -> None:
        """Remove key if present.

        Raises:
            CacheIOError: If the file exists but cannot be deleted
        """
        async with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return
            try:
                await asyncio.to_thread(
                    (entry.path or self.cache_dir / key).unlink, missing_ok=True
                )
            except OSError as e:
                raise CacheIOError(f"Failed to remove cache entry {key[:8]}: {e}", e) from e
            del self._entries[key]
            self._size -= entry.size

    async def clear(self) -> None:
        """Remove every entry.

        Raises:
            CacheIOError: If some files cannot be deleted; those stay recorded
        """
        failures: list[str] = []
        async with self._lock:
            for key, entry in list(self._entries.items()):
                try:
                    await asyncio.to_thread(
                        (entry.path or self.cache_dir / key).unlink, missing_ok=True
                    )
                except OSError as e:
                    failures.append(f"{key[:8]}: {e}")
                    continue
                del self._entries[key]
                self._size -= entry.size

        if failures:
            raise CacheIOError(f"Failed to clear cache entries: {'; '.join(failures)}")

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
