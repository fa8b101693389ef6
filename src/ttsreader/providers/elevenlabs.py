"""ElevenLabs text-to-speech provider implementation."""

import asyncio
import logging
from typing import Any, ClassVar, Mapping

import httpx
from elevenlabs.client import ElevenLabs

from ..errors import (
    ConfigurationError,
    ProviderRejectionError,
    TTSReaderError,
    connectivity_error,
    rejection_error,
)
from ..tts.models import SpeakerGender, SynthesisRequest, VoiceInfo
from .base import TTSProvider

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "eleven_turbo_v2_5"

# Turbo/Flash settings optimized for natural speech
VOICE_SETTINGS = {
    "stability": 0.65,
    "similarity_boost": 0.75,
    "style": 0.4,
    "use_speaker_boost": True,
}


def _gender(labels: Mapping[str, str] | None) -> SpeakerGender:
    value = (labels or {}).get("gender", "").lower()
    try:
        return SpeakerGender(value)
    except ValueError:
        return SpeakerGender.NEUTRAL


class ElevenLabsTTSProvider(TTSProvider):
    """ElevenLabs TTS provider implementation.

    The official SDK client is synchronous, so every call runs in a worker
    thread to keep the event loop free.
    """

    name = "elevenlabs"
    required_fields: ClassVar[frozenset[str]] = frozenset({"apiKey"})
    parameter_ranges: ClassVar[dict[str, tuple[float, float]]] = {
        "speed": (0.7, 1.2),
    }

    def __init__(
        self,
        api_key: str,
        model_id: str = DEFAULT_MODEL,
        timeout: float | None = None,
    ) -> None:
        """Initialize ElevenLabs provider.

        Args:
            api_key: ElevenLabs API key
            model_id: ElevenLabs model ID to use
            timeout: Request timeout in seconds

        Raises:
            ConfigurationError: If the SDK client cannot be created
        """
        self._api_key = api_key
        self.model_id = model_id

        try:
            self._client = ElevenLabs(api_key=api_key, timeout=timeout)
        except Exception as e:
            raise ConfigurationError(
                f"Failed to initialize ElevenLabs client: {e}",
                provider=self.name,
                original_error=e,
            ) from e

        # Cache for voices to avoid repeated API calls
        self._voices_cache: list[VoiceInfo] | None = None

    @classmethod
    def from_config(
        cls, config: Mapping[str, str], **options: Any
    ) -> "ElevenLabsTTSProvider":
        return cls(
            api_key=config["apiKey"],
            model_id=config.get("model") or DEFAULT_MODEL,
            timeout=options.get("timeout"),
        )

    def is_configured(self) -> bool:
        return bool(self._api_key and self._api_key.strip())

    def _map_error(self, error: Exception) -> TTSReaderError:
        if isinstance(error, (httpx.NetworkError, httpx.TimeoutException)):
            return connectivity_error(self.name, error)
        status_code = getattr(error, "status_code", None)
        if isinstance(status_code, int):
            return rejection_error(self.name, status_code, str(getattr(error, "body", "")))
        return ProviderRejectionError(f"{self.name} API call failed: {error}", None, error)

    async def synthesize(self, request: SynthesisRequest) -> bytes:
        voice_settings = dict(VOICE_SETTINGS, speed=request.parameters.speed)

        # Run synchronous ElevenLabs client in thread to avoid blocking event loop
        def _sync_convert() -> bytes:
            audio_generator = self._client.text_to_speech.convert(
                text=request.text.strip(),
                voice_id=request.voice.voice_id,
                model_id=self.model_id,
                voice_settings=voice_settings,
            )
            # Collect all audio chunks
            return b"".join(audio_generator)

        try:
            audio_bytes = await asyncio.to_thread(_sync_convert)
        except Exception as e:
            raise self._map_error(e) from e

        if not audio_bytes:
            raise ProviderRejectionError("No audio data received from elevenlabs")

        return audio_bytes

    async def list_voices(self) -> list[VoiceInfo]:
        """Get list of available voices.

        Results are cached after first call to avoid repeated API requests.
        """
        if self._voices_cache is not None:
            return self._voices_cache

        def _sync_get_voices() -> list[VoiceInfo]:
            response = self._client.voices.get_all()
            return [
                VoiceInfo(
                    voice_id=voice.voice_id,
                    name=voice.name or voice.voice_id,
                    language=(voice.labels or {}).get("language", "en-US"),
                    gender=_gender(voice.labels),
                    provider=self.name,
                )
                for voice in response.voices
            ]

        try:
            voices = await asyncio.to_thread(_sync_get_voices)
        except Exception as e:
            raise self._map_error(e) from e

        logger.debug(f"ElevenLabs listed {len(voices)} voices")
        self._voices_cache = voices
        return voices
