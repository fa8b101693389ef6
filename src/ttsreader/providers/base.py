"""Abstract base classes for synthesis and text-processing providers.

This module defines the capability sets every provider must implement.
New providers are added by subclassing one of these and registering the
class under a name; the registry never needs to know provider details.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, ClassVar, Mapping

from ..text.models import Capability, ProcessedText, TextProcessingRequest
from ..tts.models import SynthesisRequest, VoiceInfo


class ProviderKind(str, Enum):
    TTS = "tts"
    TEXT = "text"


@dataclass(frozen=True)
class ProviderDescriptor:
    """Static description of a provider, derived from its class."""

    name: str
    kind: ProviderKind
    required_fields: frozenset[str]


def missing_fields(
    required: frozenset[str], config: Mapping[str, str]
) -> tuple[str, ...]:
    """Return the required fields that are absent or blank in config."""
    return tuple(
        sorted(name for name in required if not str(config.get(name) or "").strip())
    )


class _Provider(ABC):
    """Shared provider plumbing: metadata and construction from config."""

    name: ClassVar[str]
    kind: ClassVar[ProviderKind]
    required_fields: ClassVar[frozenset[str]] = frozenset()

    @classmethod
    def descriptor(cls) -> ProviderDescriptor:
        return ProviderDescriptor(cls.name, cls.kind, cls.required_fields)

    @classmethod
    def from_config(cls, config: Mapping[str, str], **options: Any) -> "_Provider":
        """Build an instance from a validated config mapping.

        Args:
            config: Provider config with every required field present
            **options: Shared runtime options (e.g., http timeout)
        """
        return cls()

    def is_configured(self) -> bool:
        """Return True if the instance holds everything it needs to run."""
        return True

    async def aclose(self) -> None:
        """Release network clients or other resources."""


class TTSProvider(_Provider):
    """Abstract base class for text-to-speech providers.

    All TTS providers must inherit from this class and implement
    the required methods for synthesizing speech and listing voices.

    parameter_ranges maps SynthesisParameters field names to the inclusive
    range the provider accepts; requests are clamped into it before
    dispatch.
    """

    kind: ClassVar[ProviderKind] = ProviderKind.TTS
    parameter_ranges: ClassVar[dict[str, tuple[float, float]]] = {}

    @abstractmethod
    async def synthesize(self, request: SynthesisRequest) -> bytes:
        """Convert text to audio bytes.

        Args:
            request: Text, voice and (already clamped) parameters

        Returns:
            Audio data as bytes (MP3 or WAV format)

        Raises:
            ConnectivityError: If the provider cannot be reached
            ProviderRejectionError: If the provider refuses the request
        """

    @abstractmethod
    async def list_voices(self) -> list[VoiceInfo]:
        """Return available voices for this provider.

        Raises:
            ConnectivityError: If the provider cannot be reached
            ProviderRejectionError: If the provider refuses the request
        """


class TextProcessor(_Provider):
    """Abstract base class for text-processing providers."""

    kind: ClassVar[ProviderKind] = ProviderKind.TEXT

    @abstractmethod
    async def process(self, request: TextProcessingRequest) -> ProcessedText:
        """Apply the request's operations to its text.

        Raises:
            ConnectivityError: If the provider cannot be reached
            ProviderRejectionError: If the provider refuses the request
            InvalidRequestError: If an operation is malformed
        """

    @abstractmethod
    async def capabilities(self) -> set[Capability]:
        """Return what this processor can do."""
