"""Synthesis orchestrator for ttsreader.

Coordinates the provider store, the provider registry and the audio cache:
a request is answered from the cache when possible, otherwise the active
provider is called and its audio written back.
"""

import asyncio
import logging
from typing import Mapping, cast

from ..cache import AudioCache, compute_cache_key
from ..errors import ConfigurationError, InvalidRequestError, TTSReaderError
from ..providers import ProviderRegistry, TTSProvider
from ..providers.base import ProviderKind
from ..result import Result
from ..store import ConfigurationStore
from .models import SynthesisParameters, SynthesisRequest, VoiceInfo

logger = logging.getLogger(__name__)


def _failure(action: str, error: Exception) -> Result:
    if isinstance(error, TTSReaderError):
        return Result.failure(error)
    logger.error(f"Unexpected error during {action}: {error}")
    return Result.failure(TTSReaderError(f"{action} failed: {error}", error))


class SynthesisOrchestrator:
    """Turns (text, voice, parameters) into audio bytes.

    Example:
        orchestrator = SynthesisOrchestrator(store, registry, cache)
        result = await orchestrator.synthesize("你好", voice)
        if result.ok:
            audio = result.value

    Identical requests are served from the cache after the first success,
    so a provider is called at most once per key. With coalesce enabled,
    concurrent misses for the same key also share a single provider call.
    """

    def __init__(
        self,
        store: ConfigurationStore,
        registry: ProviderRegistry,
        cache: AudioCache,
        key_includes_provider: bool = False,
        coalesce: bool = True,
    ) -> None:
        self.store = store
        self.registry = registry
        self.cache = cache
        self.key_includes_provider = key_includes_provider
        self.coalesce = coalesce
        self._in_flight: dict[str, asyncio.Task[bytes]] = {}

    def cache_key(
        self,
        text: str,
        voice: VoiceInfo,
        parameters: SynthesisParameters | None = None,
        provider: str | None = None,
    ) -> str:
        """Compute the cache key for a request.

        provider is only folded in when key_includes_provider is set.
        """
        params = parameters or SynthesisParameters()
        return compute_cache_key(
            text,
            voice.voice_id,
            params.speed,
            params.volume,
            params.pitch,
            params.emotion,
            provider=provider if self.key_includes_provider else None,
        )

    async def synthesize(
        self,
        text: str,
        voice: VoiceInfo,
        parameters: SynthesisParameters | None = None,
    ) -> Result[bytes]:
        """Return audio for text spoken by voice.

        Provider errors are returned unchanged in the result and nothing
        is cached for them. There is no automatic retry.
        """
        try:
            audio = await self._synthesize(text, voice, parameters or SynthesisParameters())
        except Exception as e:
            return _failure("Synthesis", e)
        return Result.success(audio)

    async def _synthesize(
        self, text: str, voice: VoiceInfo, parameters: SynthesisParameters
    ) -> bytes:
        if not text or not text.strip():
            raise InvalidRequestError("Text cannot be empty")

        provider_name = None
        if self.key_includes_provider:
            provider_name = await self.store.get_active(ProviderKind.TTS)
        key = self.cache_key(text, voice, parameters, provider_name)

        cached = await self._cache_get(key)
        if cached is not None:
            logger.debug(f"Cache hit for {key}")
            return cached
        logger.debug(f"Cache miss for {key}")

        if not self.coalesce:
            return await self._fill(key, provider_name, text, voice, parameters)

        task = self._in_flight.get(key)
        if task is None:
            task = asyncio.create_task(
                self._fill(key, provider_name, text, voice, parameters)
            )
            self._in_flight[key] = task
            task.add_done_callback(lambda _t, k=key: self._in_flight.pop(k, None))
        else:
            logger.debug(f"Joining in-flight synthesis for {key}")

        # A cancelled caller must not cancel the call others are waiting on
        return await asyncio.shield(task)

    async def _fill(
        self,
        key: str,
        provider_name: str | None,
        text: str,
        voice: VoiceInfo,
        parameters: SynthesisParameters,
    ) -> bytes:
        if provider_name is None:
            provider_name = await self.store.get_active(ProviderKind.TTS)
        provider = cast(
            TTSProvider, await self.registry.resolve(ProviderKind.TTS, provider_name)
        )
        if not provider.is_configured():
            raise ConfigurationError(
                f"TTS provider {provider_name} is not configured", provider=provider_name
            )

        request = SynthesisRequest(
            text=text,
            voice=voice,
            parameters=parameters.clamped(provider.parameter_ranges),
        )
        audio = await provider.synthesize(request)

        await self._cache_put(key, audio)
        return audio

    async def _cache_get(self, key: str) -> bytes | None:
        try:
            return await self.cache.get(key)
        except Exception as e:
            logger.warning(f"Cache read failed for {key}, treating as miss: {e}")
            return None

    async def _cache_put(self, key: str, audio: bytes) -> None:
        try:
            await self.cache.put(key, audio)
            logger.info(f"Cached {len(audio)} bytes under {key}")
        except Exception as e:
            logger.warning(f"Failed to cache audio for {key}: {e}")

    async def list_voices(self) -> Result[list[VoiceInfo]]:
        """List voices offered by the active TTS provider."""
        try:
            name = await self.store.get_active(ProviderKind.TTS)
            provider = cast(TTSProvider, await self.registry.resolve(ProviderKind.TTS, name))
            voices = await provider.list_voices()
        except Exception as e:
            return _failure("Voice listing", e)
        return Result.success(voices)

    async def switch_provider(self, name: str, config: Mapping[str, str]) -> Result[None]:
        """Validate config and make name the active TTS provider.

        The audio cache is left as is.
        """
        return await self.store.update_provider(ProviderKind.TTS, name, config)
