"""Synthesis data models with validation."""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Mapping


class SpeakerGender(str, Enum):
    """Gender of a voice as reported by its provider."""

    MALE = "male"
    FEMALE = "female"
    NEUTRAL = "neutral"


@dataclass(frozen=True)
class VoiceInfo:
    """Information about an available voice.

    Args:
        voice_id: Unique identifier for the voice within its provider
        name: Human-readable name of the voice
        language: BCP 47 language tag (e.g., "zh-CN", "en-US")
        gender: Speaker gender
        provider: Name of the provider offering this voice
    """

    voice_id: str
    name: str
    language: str = "en-US"
    gender: SpeakerGender = SpeakerGender.NEUTRAL
    provider: str = ""

    def __post_init__(self) -> None:
        """Validate voice information."""
        if not self.voice_id or not self.voice_id.strip():
            raise ValueError("voice_id cannot be empty")
        if not self.name or not self.name.strip():
            raise ValueError("name cannot be empty")


@dataclass(frozen=True)
class SynthesisParameters:
    """Voice generation parameters.

    Args:
        speed: Speaking speed multiplier (1.0 = normal)
        volume: Volume multiplier (1.0 = normal)
        pitch: Pitch offset in semitones (0.0 = normal)
        emotion: Optional emotion tag understood by the provider
        pronunciation_dict: Optional word -> pronunciation overrides
    """

    speed: float = 1.0
    volume: float = 1.0
    pitch: float = 0.0
    emotion: str | None = None
    pronunciation_dict: Mapping[str, str] | None = field(default=None, hash=False)

    def clamped(self, ranges: Mapping[str, tuple[float, float]]) -> "SynthesisParameters":
        """Return a copy with numeric fields coerced into ranges.

        Fields without a range are left alone. Clamping is silent.
        """
        changes = {}
        for name, (low, high) in ranges.items():
            value = getattr(self, name)
            changes[name] = min(max(float(value), low), high)
        return replace(self, **changes)


@dataclass(frozen=True)
class SynthesisRequest:
    """One synthesis call, built per request and never persisted."""

    text: str
    voice: VoiceInfo
    parameters: SynthesisParameters = field(default_factory=SynthesisParameters)
