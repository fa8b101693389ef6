"""High-level API for ttsreader library usage."""

from pathlib import Path
from typing import Iterable

from .config import AppConfig
from .core import ReaderService
from .result import Result
from .text.models import ProcessedText, TextOperation
from .tts.models import SynthesisParameters, VoiceInfo


async def synthesize(
    text: str,
    voice: VoiceInfo | str,
    parameters: SynthesisParameters | None = None,
    output: str | Path | None = None,
    config: AppConfig | None = None,
) -> Result[bytes]:
    """Synthesize speech from text with the active TTS provider.

    Args:
        text: Text to speak
        voice: Voice descriptor, or a bare voice id
        parameters: Speed, volume, pitch and emotion
        output: File path to also save the audio to
        config: Settings to use instead of the config file

    Returns:
        Result holding the audio bytes

    Raises:
        OSError: If the audio file cannot be written
    """
    if isinstance(voice, str):
        voice = VoiceInfo(voice_id=voice, name=voice)

    async with ReaderService.from_config(config) as service:
        result = await service.synthesize(text, voice, parameters)

    if output and result.ok:
        Path(output).write_bytes(result.value)  # type: ignore[arg-type]

    return result


async def process_text(
    text: str,
    operations: Iterable[TextOperation] | None = None,
    config: AppConfig | None = None,
) -> Result[ProcessedText]:
    """Prepare text for narration with the active text processor.

    Args:
        text: Raw text
        operations: Operations to apply (a default cleanup sequence if None)
        config: Settings to use instead of the config file

    Returns:
        Result holding the processed text
    """
    async with ReaderService.from_config(config) as service:
        return await service.process_text(text, operations)
