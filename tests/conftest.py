"""Pytest configuration and fixtures for ttsreader tests."""

import sys
from pathlib import Path

import pytest

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

ENV_VARS = (
    "TTSREADER_CONFIG",
    "TTSREADER_CACHE_BACKEND",
    "TTSREADER_CACHE_DIR",
    "TTSREADER_CACHE_MAX_MB",
    "TTSREADER_TTS_PROVIDER",
    "TTSREADER_TEXT_PROVIDER",
    "TTSREADER_HTTP_TIMEOUT",
    "MINIMAX_API_KEY",
    "MINIMAX_GROUP_ID",
    "ELEVENLABS_API_KEY",
    "DEEPSEEK_API_KEY",
    "OPENAI_API_KEY",
)


@pytest.fixture(autouse=True)
def isolate_dirs(monkeypatch, tmp_path: Path) -> None:
    """Point every XDG directory at a per-test location and clear overrides."""
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))
    monkeypatch.setenv("XDG_CACHE_HOME", str(tmp_path / "cache"))
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)

    import ttsreader.config

    monkeypatch.setattr(ttsreader.config, "_cached_config", None)
