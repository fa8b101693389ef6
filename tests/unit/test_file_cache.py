"""Unit tests for FileAudioCache durability and failure handling."""

import asyncio
import os
import sys
import time
from pathlib import Path
from unittest.mock import patch

import pytest

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent.parent / "src"))

from ttsreader.cache import FileAudioCache
from ttsreader.cache.storage import TEMP_PREFIX
from ttsreader.errors import CacheIOError


class TestFileAudioCacheStorage:
    """Test on-disk layout and persistence."""

    @pytest.mark.asyncio
    async def test_payload_stored_as_raw_file_named_by_key(self, tmp_path: Path) -> None:
        """Test the file name is the key and the contents are the payload."""
        cache = FileAudioCache(tmp_path / "audio", max_size_bytes=1024)

        await cache.put("abc123", b"\x00\x01mp3")

        assert (tmp_path / "audio" / "abc123").read_bytes() == b"\x00\x01mp3"
        assert await cache.get("abc123") == b"\x00\x01mp3"

    @pytest.mark.asyncio
    async def test_entries_survive_new_instance(self, tmp_path: Path) -> None:
        """Test a fresh instance indexes files left by the previous one."""
        first = FileAudioCache(tmp_path, max_size_bytes=1024)
        await first.put("k1", b"one")
        await first.put("k2", b"three")

        second = FileAudioCache(tmp_path, max_size_bytes=1024)

        assert await second.keys() == {"k1", "k2"}
        assert await second.size() == 8
        assert await second.get("k2") == b"three"

    @pytest.mark.asyncio
    async def test_leftover_temp_files_removed_on_start(self, tmp_path: Path) -> None:
        """Test interrupted writes are cleaned up and not indexed."""
        (tmp_path / f"{TEMP_PREFIX}abcd").write_bytes(b"partial")
        (tmp_path / "k1").write_bytes(b"whole")

        cache = FileAudioCache(tmp_path, max_size_bytes=1024)

        assert await cache.keys() == {"k1"}
        assert not (tmp_path / f"{TEMP_PREFIX}abcd").exists()

    @pytest.mark.asyncio
    async def test_recency_rebuilt_from_modification_times(self, tmp_path: Path) -> None:
        """Test the oldest file on disk is evicted first after restart."""
        now = time.time()
        for offset, name in ((300, "old"), (200, "mid"), (100, "new")):
            path = tmp_path / name
            path.write_bytes(bytes(40))
            os.utime(path, (now - offset, now - offset))

        cache = FileAudioCache(tmp_path, max_size_bytes=100)

        assert await cache.keys() == {"mid", "new"}
        assert not (tmp_path / "old").exists()

    def test_unsafe_key_rejected(self, tmp_path: Path) -> None:
        """Test keys that are not plain file names are refused."""
        from ttsreader.cache.storage import validate_key

        with pytest.raises(ValueError):
            validate_key("../escape")

    def test_uncreatable_directory_raises_cache_io_error(self, tmp_path: Path) -> None:
        """Test directory creation failure is fatal at initialization."""
        blocker = tmp_path / "file"
        blocker.write_text("not a directory")

        with pytest.raises(CacheIOError):
            FileAudioCache(blocker / "audio")


class TestFileAudioCacheFailures:
    """Test degraded I/O keeps the bookkeeping consistent."""

    @pytest.mark.asyncio
    async def test_failed_write_leaves_entry_unrecorded(self, tmp_path: Path) -> None:
        """Test a failed rename changes neither keys nor size."""
        cache = FileAudioCache(tmp_path, max_size_bytes=1024)
        await cache.put("k1", b"kept")

        with patch("ttsreader.cache.storage.os.replace", side_effect=OSError("disk full")):
            with pytest.raises(CacheIOError):
                await cache.put("k2", b"lost")

        assert await cache.keys() == {"k1"}
        assert await cache.size() == 4
        assert not any(p.name.startswith(TEMP_PREFIX) for p in tmp_path.iterdir())

    @pytest.mark.asyncio
    async def test_vanished_file_is_a_miss_and_dropped(self, tmp_path: Path) -> None:
        """Test a deleted file turns into a miss and leaves the index."""
        cache = FileAudioCache(tmp_path, max_size_bytes=1024)
        await cache.put("k1", b"audio")
        (tmp_path / "k1").unlink()

        assert await cache.get("k1") is None
        assert await cache.keys() == set()
        assert await cache.size() == 0

    @pytest.mark.asyncio
    async def test_eviction_deletes_files(self, tmp_path: Path) -> None:
        """Test evicted entries are removed from disk."""
        cache = FileAudioCache(tmp_path, max_size_bytes=100)

        await cache.put("A", bytes(40))
        await cache.put("B", bytes(40))
        await cache.get("A")
        await cache.put("C", bytes(40))

        assert sorted(p.name for p in tmp_path.iterdir()) == ["A", "C"]
        assert await cache.size() == 80

    @pytest.mark.asyncio
    async def test_clear_removes_all_files(self, tmp_path: Path) -> None:
        """Test clear empties the directory and the tally."""
        cache = FileAudioCache(tmp_path, max_size_bytes=1024)
        await cache.put("A", b"1")
        await cache.put("B", b"2")

        await cache.clear()
        await cache.clear()

        assert list(tmp_path.iterdir()) == []
        assert await cache.size() == 0


class TestFileAudioCacheConcurrency:
    """Test the size tally against the directory under overlapping puts."""

    @pytest.mark.asyncio
    async def test_size_never_exceeds_bound(self, tmp_path: Path) -> None:
        """Test the tally stays within the bound across many puts."""
        cache = FileAudioCache(tmp_path, max_size_bytes=100)

        for i in range(20):
            await cache.put(f"k{i}", bytes(30))
            assert await cache.size() <= 100

        assert await cache.keys() == {"k17", "k18", "k19"}

    @pytest.mark.asyncio
    async def test_concurrent_puts_match_bytes_on_disk(self, tmp_path: Path) -> None:
        """Test overlapping puts and evictions keep the tally equal to the files."""
        cache = FileAudioCache(tmp_path, max_size_bytes=1000)

        await asyncio.gather(
            *(cache.put(f"k{i % 7}", bytes(50 + (i * 37) % 200)) for i in range(60))
        )

        on_disk = sum(p.stat().st_size for p in tmp_path.iterdir())
        assert await cache.size() == on_disk
        assert await cache.size() <= 1000
        assert await cache.keys() == {p.name for p in tmp_path.iterdir()}

    @pytest.mark.asyncio
    async def test_unremovable_temp_file_skipped(self, tmp_path: Path) -> None:
        """Test a leftover temp file that cannot be deleted is not fatal."""
        (tmp_path / f"{TEMP_PREFIX}stuck").write_bytes(b"partial")
        (tmp_path / "k1").write_bytes(b"whole")

        with patch.object(Path, "unlink", side_effect=PermissionError("read-only")):
            cache = FileAudioCache(tmp_path, max_size_bytes=1024)

        assert await cache.keys() == {"k1"}
