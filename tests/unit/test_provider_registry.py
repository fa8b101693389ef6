"""Unit tests for provider registry functionality."""

import sys
from pathlib import Path
from typing import Any, Mapping

import pytest

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent.parent / "src"))

from ttsreader.errors import ConfigurationError, UnsupportedProviderError
from ttsreader.providers import ProviderKind, ProviderRegistry, TTSProvider
from ttsreader.providers.local import LocalTextProcessor
from ttsreader.providers.minimax import MiniMaxTTSProvider
from ttsreader.providers.system import SystemTTSProvider
from ttsreader.store import ConfigurationStore
from ttsreader.tts.models import SynthesisRequest, VoiceInfo


class KeyedProvider(TTSProvider):
    """Minimal provider recording the key it was built with."""

    name = "keyed"
    required_fields = frozenset({"apiKey"})

    def __init__(self, api_key: str) -> None:
        self.api_key = api_key
        self.closed = False

    @classmethod
    def from_config(cls, config: Mapping[str, str], **options: Any) -> "KeyedProvider":
        return cls(config["apiKey"])

    async def aclose(self) -> None:
        self.closed = True

    async def synthesize(self, request: SynthesisRequest) -> bytes:
        return self.api_key.encode()

    async def list_voices(self) -> list[VoiceInfo]:
        return []


@pytest.fixture
def store(tmp_path: Path) -> ConfigurationStore:
    return ConfigurationStore(tmp_path / "providers.db")


@pytest.fixture
def registry(store) -> ProviderRegistry:
    registry = ProviderRegistry(store, http_timeout=5.0)
    registry.register(ProviderKind.TTS, "keyed", KeyedProvider)
    return registry


class TestProviderRegistryTables:
    """Test the built-in tables and lookups."""

    def test_builtin_names(self, registry) -> None:
        """Test each kind lists its built-in providers."""
        assert registry.names(ProviderKind.TEXT) == ["deepseek", "local", "openai"]
        assert {"minimax", "elevenlabs", "local"} <= set(registry.names(ProviderKind.TTS))

    def test_get_returns_class(self, registry) -> None:
        """Test lookups return the registered class."""
        assert registry.get(ProviderKind.TTS, "minimax") is MiniMaxTTSProvider
        assert registry.get(ProviderKind.TTS, "local") is SystemTTSProvider
        assert registry.get(ProviderKind.TEXT, "local") is LocalTextProcessor

    def test_descriptor_lists_required_fields(self, registry) -> None:
        """Test descriptors come from class attributes."""
        descriptor = registry.descriptor(ProviderKind.TTS, "minimax")

        assert descriptor.name == "minimax"
        assert descriptor.kind is ProviderKind.TTS
        assert descriptor.required_fields == frozenset({"apiKey", "groupId"})

    def test_unknown_name_raises_unsupported(self, registry) -> None:
        """Test unknown names raise UnsupportedProviderError."""
        with pytest.raises(UnsupportedProviderError, match="Unsupported tts provider: acme"):
            registry.get(ProviderKind.TTS, "acme")

    def test_registries_do_not_share_state(self, store) -> None:
        """Test registration on one instance does not leak to another."""
        first = ProviderRegistry(store)
        first.register(ProviderKind.TTS, "keyed", KeyedProvider)
        second = ProviderRegistry(store)

        assert "keyed" not in second.names(ProviderKind.TTS)


class TestProviderRegistryResolve:
    """Test memoization, validation and invalidation."""

    @pytest.mark.asyncio
    async def test_resolve_memoizes_instance(self, registry, store) -> None:
        """Test the same instance is returned until invalidated."""
        await store.save_config(ProviderKind.TTS, "keyed", {"apiKey": "k1"})

        first = await registry.resolve(ProviderKind.TTS, "keyed")
        second = await registry.resolve(ProviderKind.TTS, "keyed")

        assert first is second
        assert first.api_key == "k1"

    @pytest.mark.asyncio
    async def test_missing_fields_raise_configuration_error(self, registry) -> None:
        """Test construction is refused when required fields are missing."""
        with pytest.raises(ConfigurationError) as exc_info:
            await registry.resolve(ProviderKind.TTS, "minimax")

        assert exc_info.value.missing == ("apiKey", "groupId")
        assert exc_info.value.provider == "minimax"

    @pytest.mark.asyncio
    async def test_local_providers_need_no_config(self, registry) -> None:
        """Test local providers resolve with an empty store."""
        processor = await registry.resolve(ProviderKind.TEXT, "local")

        assert isinstance(processor, LocalTextProcessor)

    @pytest.mark.asyncio
    async def test_invalidate_forces_rebuild_with_new_config(self, registry, store) -> None:
        """Test invalidation closes the old instance and rebuilds from store."""
        await store.save_config(ProviderKind.TTS, "keyed", {"apiKey": "old"})
        old = await registry.resolve(ProviderKind.TTS, "keyed")

        await store.save_config(ProviderKind.TTS, "keyed", {"apiKey": "new"})
        await registry.invalidate(ProviderKind.TTS, "keyed")
        new = await registry.resolve(ProviderKind.TTS, "keyed")

        assert old.closed
        assert new is not old
        assert new.api_key == "new"

    @pytest.mark.asyncio
    async def test_invalidate_without_instance_is_noop(self, registry) -> None:
        """Test invalidating an unbuilt provider is safe."""
        await registry.invalidate(ProviderKind.TTS, "keyed")

    @pytest.mark.asyncio
    async def test_store_switch_invalidates_old_and_new(self, registry, store) -> None:
        """Test switching providers drops memoized instances for both names."""
        await store.save_config(ProviderKind.TTS, "keyed", {"apiKey": "old"})
        old = await registry.resolve(ProviderKind.TTS, "keyed")
        store.catalog = {**store.catalog, ProviderKind.TTS: {"keyed": frozenset({"apiKey"})}}

        result = await store.update_provider(ProviderKind.TTS, "keyed", {"apiKey": "new"})
        new = await registry.resolve(ProviderKind.TTS, "keyed")

        assert result.ok
        assert old.closed
        assert new.api_key == "new"

    @pytest.mark.asyncio
    async def test_resolve_racing_invalidation_uses_current_config(
        self, registry, store
    ) -> None:
        """Test a resolve overtaken by invalidation does not memoize stale config."""
        configs = iter([{"apiKey": "stale"}, {"apiKey": "fresh"}])

        async def get_config(name, kind=None):
            config = next(configs)
            if config["apiKey"] == "stale":
                await registry.invalidate(ProviderKind.TTS, "keyed")
            return config

        store.get_provider_config = get_config

        provider = await registry.resolve(ProviderKind.TTS, "keyed")

        assert provider.api_key == "fresh"
        assert await registry.resolve(ProviderKind.TTS, "keyed") is provider

    @pytest.mark.asyncio
    async def test_aclose_closes_all_instances(self, registry, store) -> None:
        """Test aclose releases every memoized provider."""
        await store.save_config(ProviderKind.TTS, "keyed", {"apiKey": "k"})
        provider = await registry.resolve(ProviderKind.TTS, "keyed")

        await registry.aclose()

        assert provider.closed
        assert await registry.resolve(ProviderKind.TTS, "keyed") is not provider


class TestProviderRegistration:
    """Test providers added at runtime can be activated."""

    @pytest.mark.asyncio
    async def test_registered_provider_can_be_switched_to(self, registry, store) -> None:
        """Test switching to a registered provider validates its fields."""
        missing = await store.update_provider(ProviderKind.TTS, "keyed", {})
        assert isinstance(missing.error, ConfigurationError)
        assert missing.error.missing == ("apiKey",)

        switched = await store.update_provider(ProviderKind.TTS, "keyed", {"apiKey": "k"})

        assert switched.ok
        assert await store.get_active(ProviderKind.TTS) == "keyed"
        assert "keyed" in store.available_providers(ProviderKind.TTS)
        provider = await registry.resolve(ProviderKind.TTS, "keyed")
        assert provider.api_key == "k"

    @pytest.mark.asyncio
    async def test_registered_text_processor_with_no_fields(self, registry, store) -> None:
        """Test a text processor without required fields accepts an empty config."""
        registry.register(ProviderKind.TEXT, "custom", LocalTextProcessor)

        result = await store.update_provider(ProviderKind.TEXT, "custom", {})

        assert result.ok
        assert await store.get_active(ProviderKind.TEXT) == "custom"
