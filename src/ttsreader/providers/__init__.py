"""Provider abstraction for synthesis and text-processing services.

This module provides a registry for building providers by name from their
stored configuration, allowing runtime selection of different backends.
"""

import asyncio
import logging
from typing import TYPE_CHECKING

from ..errors import ConfigurationError, UnsupportedProviderError
from .base import (
    ProviderDescriptor,
    ProviderKind,
    TextProcessor,
    TTSProvider,
    _Provider,
    missing_fields,
)
from .chat import DeepSeekTextProcessor, OpenAITextProcessor
from .elevenlabs import ElevenLabsTTSProvider
from .local import LocalTextProcessor
from .minimax import MiniMaxTTSProvider
from .system import SystemTTSProvider

if TYPE_CHECKING:
    from ..store import ConfigurationStore

__all__ = [
    "ProviderDescriptor",
    "ProviderKind",
    "ProviderRegistry",
    "TEXT_PROVIDERS",
    "TTS_PROVIDERS",
    "TTSProvider",
    "TextProcessor",
]

logger = logging.getLogger(__name__)

TTS_PROVIDERS: dict[str, type[TTSProvider]] = {
    "minimax": MiniMaxTTSProvider,
    "elevenlabs": ElevenLabsTTSProvider,
    "local": SystemTTSProvider,
}

TEXT_PROVIDERS: dict[str, type[TextProcessor]] = {
    "deepseek": DeepSeekTextProcessor,
    "openai": OpenAITextProcessor,
    "local": LocalTextProcessor,
}


class ProviderRegistry:
    """Registry for building and memoizing providers.

    Instances are keyed by (kind, name) and built on first use from the
    store's current config. Invalidation drops the memoized instance so the
    next resolve rebuilds it with fresh credentials.
    """

    def __init__(
        self, store: "ConfigurationStore", http_timeout: float | None = None
    ) -> None:
        """Initialize the registry with the built-in provider tables.

        Args:
            store: Source of provider configs
            http_timeout: Timeout passed to remote providers when built
        """
        self.store = store
        self.http_timeout = http_timeout
        self._providers: dict[ProviderKind, dict[str, type[_Provider]]] = {
            ProviderKind.TTS: dict(TTS_PROVIDERS),
            ProviderKind.TEXT: dict(TEXT_PROVIDERS),
        }
        self._instances: dict[tuple[ProviderKind, str], _Provider] = {}
        self._generations: dict[tuple[ProviderKind, str], int] = {}
        self._lock = asyncio.Lock()

        store.add_switch_listener(self._on_switch)

    def register(
        self, kind: ProviderKind, name: str, provider_class: type[_Provider]
    ) -> None:
        """Register a provider class under name.

        Args:
            kind: Provider kind the class implements
            name: Name to register the provider under
            provider_class: Provider class
        """
        kind = ProviderKind(kind)
        self._providers[kind][name] = provider_class
        self.store.add_provider(kind, name, provider_class.required_fields)

    def get(self, kind: ProviderKind, name: str) -> type[_Provider]:
        """Get a provider class by name.

        Raises:
            UnsupportedProviderError: If name is not registered for kind
        """
        kind = ProviderKind(kind)
        try:
            return self._providers[kind][name]
        except KeyError:
            raise UnsupportedProviderError(name, kind.value) from None

    def descriptor(self, kind: ProviderKind, name: str) -> ProviderDescriptor:
        return self.get(kind, name).descriptor()

    def names(self, kind: ProviderKind) -> list[str]:
        return sorted(self._providers[ProviderKind(kind)])

    async def resolve(self, kind: ProviderKind, name: str) -> _Provider:
        """Get a memoized provider instance, building it if needed.

        Raises:
            UnsupportedProviderError: If name is not registered for kind
            ConfigurationError: If the stored config lacks required fields
        """
        kind = ProviderKind(kind)
        provider_class = self.get(kind, name)
        key = (kind, name)

        while True:
            async with self._lock:
                instance = self._instances.get(key)
                if instance is not None:
                    return instance
                generation = self._generations.get(key, 0)

            config = await self.store.get_provider_config(name, kind)
            missing = missing_fields(provider_class.required_fields, config)
            if missing:
                raise ConfigurationError(
                    f"{name} is not configured: missing {', '.join(missing)}",
                    provider=name,
                    missing=missing,
                )
            instance = provider_class.from_config(config, timeout=self.http_timeout)

            async with self._lock:
                current = self._instances.get(key)
                if self._generations.get(key, 0) == generation and current is None:
                    self._instances[key] = instance
                    logger.debug(f"Built {kind.value} provider {name}")
                    return instance

            # Invalidated or built concurrently while we read config
            await instance.aclose()
            if current is not None:
                return current

    async def invalidate(self, kind: ProviderKind, name: str) -> None:
        """Drop the memoized instance for name, closing its clients."""
        key = (ProviderKind(kind), name)
        async with self._lock:
            self._generations[key] = self._generations.get(key, 0) + 1
            instance = self._instances.pop(key, None)
        if instance is not None:
            logger.debug(f"Invalidated {key[0].value} provider {name}")
            await instance.aclose()

    async def _on_switch(self, kind: ProviderKind, old_name: str, new_name: str) -> None:
        await self.invalidate(kind, old_name)
        if new_name != old_name:
            await self.invalidate(kind, new_name)

    async def aclose(self) -> None:
        """Close and drop all memoized instances."""
        async with self._lock:
            instances = list(self._instances.values())
            self._instances.clear()
        for instance in instances:
            await instance.aclose()
