"""Configuration management for ttsreader.

Loads application settings from $XDG_CONFIG_HOME/ttsreader/config.toml.
Priority chain: CLI flags > env vars > config file > defaults.

Provider credentials are not kept here; they live in the provider store
(see ttsreader.store) so that switching providers is a validated,
durable operation.
"""

import os
import tomllib
from dataclasses import dataclass
from pathlib import Path

from .errors import ConfigurationError
from .paths import get_cache_dir, get_config_dir

DEFAULT_CONFIG = """\
# ttsreader configuration

[providers]
# Active providers used until one is switched with `ttsreader use-tts` /
# `ttsreader use-text`. The switch is remembered in the provider store.
# TTS: "minimax", "elevenlabs", "local" (OS speech engine)
tts = "minimax"
# Text processing: "deepseek", "openai", "local" (built-in rules)
text = "deepseek"

[cache]
# "disk" keeps synthesized audio across runs, "memory" for this process only
backend = "disk"

# Upper bound for cached audio, in megabytes
max_size_mb = 100

# Include the provider name in cache keys. Off by default: identical
# text/voice/parameters reuse cached audio even after switching providers.
key_includes_provider = false

# Share one provider call between identical requests already in flight
coalesce = true

# Cache directory (defaults to $XDG_CACHE_HOME/ttsreader/audio)
# dir = "/path/to/cache"

[http]
# Timeout in seconds for remote provider calls
timeout = 30.0

# API keys may also be supplied through environment variables:
#   MINIMAX_API_KEY, MINIMAX_GROUP_ID  - MiniMax TTS
#   ELEVENLABS_API_KEY                 - ElevenLabs TTS
#   DEEPSEEK_API_KEY                   - DeepSeek text processing
#   OPENAI_API_KEY                     - OpenAI text processing
"""

CACHE_BACKENDS = ("disk", "memory")
MEGABYTE = 1024 * 1024


@dataclass(frozen=True)
class ProvidersConfig:
    """Default active providers."""

    tts: str = "minimax"
    text: str = "deepseek"


@dataclass(frozen=True)
class CacheConfig:
    """Audio cache configuration."""

    backend: str = "disk"
    max_size_mb: float = 100
    key_includes_provider: bool = False
    coalesce: bool = True
    dir: Path | None = None

    @property
    def max_size_bytes(self) -> int:
        return int(self.max_size_mb * MEGABYTE)

    @property
    def directory(self) -> Path:
        return self.dir or get_cache_dir()


@dataclass(frozen=True)
class HTTPConfig:
    """Remote provider HTTP configuration."""

    timeout: float = 30.0


@dataclass(frozen=True)
class AppConfig:
    """Top-level ttsreader configuration."""

    providers: ProvidersConfig = ProvidersConfig()
    cache: CacheConfig = CacheConfig()
    http: HTTPConfig = HTTPConfig()


_cached_config: AppConfig | None = None


def get_config_path() -> Path:
    """Return the config file path, honoring TTSREADER_CONFIG."""
    override = os.getenv("TTSREADER_CONFIG")
    if override:
        return Path(override)
    return get_config_dir() / "config.toml"


def generate_config(path: Path | None = None) -> Path:
    """Write the default config file and return its path."""
    path = path or get_config_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(DEFAULT_CONFIG)
    return path


def _as_bool(value: object, name: str) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in ("1", "true", "yes", "on"):
        return True
    if isinstance(value, str) and value.strip().lower() in ("0", "false", "no", "off"):
        return False
    raise ConfigurationError(f"{name} must be a boolean, got {value!r}")


def _as_float(value: object, name: str) -> float:
    if isinstance(value, bool):
        raise ConfigurationError(f"{name} must be a number, got {value!r}")
    try:
        result = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError) as e:
        raise ConfigurationError(
            f"{name} must be a number, got {value!r}", original_error=e
        ) from e
    if result <= 0:
        raise ConfigurationError(f"{name} must be positive, got {result}")
    return result


def parse_config(data: dict) -> AppConfig:
    """Build an AppConfig from parsed TOML data plus env var overrides.

    Raises:
        ConfigurationError: If a value has the wrong type or range.
    """
    providers = data.get("providers", {})
    cache = data.get("cache", {})
    http_cfg = data.get("http", {})

    backend = os.getenv("TTSREADER_CACHE_BACKEND", cache.get("backend", "disk"))
    if backend not in CACHE_BACKENDS:
        raise ConfigurationError(
            f"cache.backend must be one of {', '.join(CACHE_BACKENDS)}, got {backend!r}"
        )

    cache_dir = os.getenv("TTSREADER_CACHE_DIR", cache.get("dir"))

    return AppConfig(
        providers=ProvidersConfig(
            tts=os.getenv("TTSREADER_TTS_PROVIDER", providers.get("tts", "minimax")),
            text=os.getenv(
                "TTSREADER_TEXT_PROVIDER", providers.get("text", "deepseek")
            ),
        ),
        cache=CacheConfig(
            backend=backend,
            max_size_mb=_as_float(
                os.getenv("TTSREADER_CACHE_MAX_MB", cache.get("max_size_mb", 100)),
                "cache.max_size_mb",
            ),
            key_includes_provider=_as_bool(
                cache.get("key_includes_provider", False),
                "cache.key_includes_provider",
            ),
            coalesce=_as_bool(cache.get("coalesce", True), "cache.coalesce"),
            dir=Path(cache_dir).expanduser() if cache_dir else None,
        ),
        http=HTTPConfig(
            timeout=_as_float(
                os.getenv("TTSREADER_HTTP_TIMEOUT", http_cfg.get("timeout", 30.0)),
                "http.timeout",
            ),
        ),
    )


def load_config(path: Path | None = None, reload: bool = False) -> AppConfig:
    """Load configuration from the config file with env var overrides.

    A missing file is not an error: defaults (plus env vars) apply. Use
    generate_config() to write a commented starting point.

    Args:
        path: Explicit config file path (skips the memoized config)
        reload: Re-read the file even if a config is memoized

    Returns:
        Loaded and validated AppConfig.

    Raises:
        ConfigurationError: If the file cannot be parsed or holds invalid values.
    """
    global _cached_config
    if path is None and _cached_config is not None and not reload:
        return _cached_config

    config_path = path or get_config_path()
    data: dict = {}
    if config_path.exists():
        try:
            with open(config_path, "rb") as f:
                data = tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            raise ConfigurationError(
                f"Invalid config file {config_path}: {e}", original_error=e
            ) from e

    config = parse_config(data)
    if path is None:
        _cached_config = config
    return config
