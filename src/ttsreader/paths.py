"""XDG-compliant directory paths for ttsreader."""

import os
from pathlib import Path

APP_NAME = "ttsreader"


def get_config_dir() -> Path:
    """Get XDG-compliant configuration directory.

    Priority:
    1. $XDG_CONFIG_HOME/ttsreader/
    2. ~/.config/ttsreader/

    Returns:
        Path to configuration directory (not created)
    """
    config_home = os.environ.get("XDG_CONFIG_HOME")
    if config_home:
        return Path(config_home) / APP_NAME
    return Path.home() / ".config" / APP_NAME


def get_data_dir() -> Path:
    """Get XDG-compliant data directory, holding the provider store.

    Priority:
    1. $XDG_DATA_HOME/ttsreader/
    2. ~/.local/share/ttsreader/

    Returns:
        Path to data directory
    """
    data_home = os.environ.get("XDG_DATA_HOME")
    if data_home:
        path = Path(data_home) / APP_NAME
    else:
        path = Path.home() / ".local" / "share" / APP_NAME

    path.mkdir(parents=True, exist_ok=True, mode=0o700)
    return path


def get_cache_dir() -> Path:
    """Get XDG-compliant cache directory for synthesized audio.

    Priority:
    1. $XDG_CACHE_HOME/ttsreader/audio/
    2. ~/.cache/ttsreader/audio/

    Returns:
        Path to the audio cache directory (not created; the cache does that)
    """
    cache_home = os.environ.get("XDG_CACHE_HOME")
    if cache_home:
        return Path(cache_home) / APP_NAME / "audio"
    return Path.home() / ".cache" / APP_NAME / "audio"


def get_store_path() -> Path:
    """Get the path of the SQLite provider configuration store."""
    return get_data_dir() / "providers.db"
