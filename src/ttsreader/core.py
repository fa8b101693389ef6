"""Core functionality for ttsreader - wires the store, registry, cache and
orchestrators into one service."""

import logging
from pathlib import Path
from typing import Iterable, Mapping

from .cache import AudioCache, CacheStats, create_cache
from .config import AppConfig, load_config
from .errors import TTSReaderError
from .providers import ProviderRegistry
from .result import Result
from .store import ConfigurationStore
from .text.models import Capability, ProcessedText, TextOperation
from .text.pipeline import TextProcessingOrchestrator
from .tts.models import SynthesisParameters, VoiceInfo
from .tts.pipeline import SynthesisOrchestrator

logger = logging.getLogger(__name__)


class ReaderService:
    """Entry point for synthesis and text processing.

    Example:
        async with ReaderService.from_config() as service:
            result = await service.synthesize("你好", voice)

    Every operation returns a Result; classified failures never raise.
    """

    def __init__(
        self,
        store: ConfigurationStore,
        cache: AudioCache,
        http_timeout: float | None = None,
        key_includes_provider: bool = False,
        coalesce: bool = True,
    ) -> None:
        self.store = store
        self.cache = cache
        self.registry = ProviderRegistry(store, http_timeout=http_timeout)
        self.synthesis = SynthesisOrchestrator(
            store,
            self.registry,
            cache,
            key_includes_provider=key_includes_provider,
            coalesce=coalesce,
        )
        self.text = TextProcessingOrchestrator(store, self.registry)

    @classmethod
    def from_config(
        cls, config: AppConfig | None = None, store_path: Path | None = None
    ) -> "ReaderService":
        """Build a service from application settings.

        Raises:
            ConfigurationError: If the settings file is invalid
            CacheIOError: If the durable cache directory cannot be created
        """
        config = config or load_config()
        store = ConfigurationStore(store_path, defaults=config.providers)
        cache = create_cache(config.cache)
        logger.debug(
            f"ReaderService using {config.cache.backend} cache "
            f"({config.cache.max_size_mb} MB), tts={config.providers.tts}, "
            f"text={config.providers.text}"
        )
        return cls(
            store,
            cache,
            http_timeout=config.http.timeout,
            key_includes_provider=config.cache.key_includes_provider,
            coalesce=config.cache.coalesce,
        )

    async def synthesize(
        self,
        text: str,
        voice: VoiceInfo,
        parameters: SynthesisParameters | None = None,
    ) -> Result[bytes]:
        return await self.synthesis.synthesize(text, voice, parameters)

    async def list_voices(self) -> Result[list[VoiceInfo]]:
        return await self.synthesis.list_voices()

    async def switch_tts_provider(
        self, name: str, config: Mapping[str, str]
    ) -> Result[None]:
        return await self.synthesis.switch_provider(name, config)

    async def process_text(
        self, text: str, operations: Iterable[TextOperation] | None = None
    ) -> Result[ProcessedText]:
        return await self.text.process_text(text, operations)

    async def switch_text_processor(
        self, name: str, config: Mapping[str, str]
    ) -> Result[None]:
        return await self.text.switch_processor(name, config)

    async def text_capabilities(self) -> set[Capability]:
        return await self.text.capabilities()

    async def cache_info(self) -> CacheStats:
        return await self.cache.stats()

    async def clear_cache(self) -> Result[None]:
        try:
            await self.cache.clear()
        except TTSReaderError as e:
            logger.warning(f"Failed to clear audio cache: {e}")
            return Result.failure(e)
        logger.info("Audio cache cleared")
        return Result.success()

    async def aclose(self) -> None:
        """Close provider clients."""
        await self.registry.aclose()

    async def __aenter__(self) -> "ReaderService":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()
