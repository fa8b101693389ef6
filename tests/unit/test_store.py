"""Unit tests for the SQLite provider configuration store."""

import sqlite3
import sys
from pathlib import Path
from unittest.mock import AsyncMock

import pytest

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent.parent / "src"))

from ttsreader.config import ProvidersConfig
from ttsreader.errors import ConfigurationError, UnsupportedProviderError
from ttsreader.providers import ProviderKind
from ttsreader.store import ActiveSelection, ConfigurationStore


@pytest.fixture
def store(tmp_path: Path) -> ConfigurationStore:
    return ConfigurationStore(tmp_path / "providers.db")


class TestConfigurationStoreValidation:
    """Test validate() against declared required fields."""

    def test_minimax_requires_api_key_and_group_id(self, store) -> None:
        """Test both MiniMax credentials must be non-blank."""
        assert store.validate("minimax", {"apiKey": "k", "groupId": "g"})
        assert not store.validate("minimax", {"apiKey": "k"})
        assert not store.validate("minimax", {"apiKey": "k", "groupId": "  "})

    def test_text_processors_require_api_key(self, store) -> None:
        """Test deepseek and openai need an API key."""
        assert store.validate("deepseek", {"apiKey": "k"})
        assert not store.validate("openai", {"model": "gpt-4o"})

    def test_local_needs_nothing(self, store) -> None:
        """Test local providers are always valid."""
        assert store.validate("local", {})
        assert store.validate("local", {}, ProviderKind.TEXT)

    def test_unknown_provider_is_invalid(self, store) -> None:
        """Test names outside the catalog never validate."""
        assert not store.validate("acme", {"apiKey": "k"})


class TestConfigurationStoreReads:
    """Test reads, defaults and env var fill-in."""

    @pytest.mark.asyncio
    async def test_defaults_apply_before_any_switch(self, tmp_path: Path) -> None:
        """Test the active selection comes from defaults initially."""
        store = ConfigurationStore(
            tmp_path / "p.db", defaults=ProvidersConfig(tts="local", text="openai")
        )

        assert await store.get_active_selection() == ActiveSelection("local", "openai")
        assert await store.get_active(ProviderKind.TEXT) == "openai"

    @pytest.mark.asyncio
    async def test_unknown_config_is_empty(self, store) -> None:
        """Test a provider with no stored config yields {}."""
        assert await store.get_provider_config("deepseek") == {}

    @pytest.mark.asyncio
    async def test_env_vars_fill_blank_credentials(self, store, monkeypatch) -> None:
        """Test env credentials fill missing fields but never override stored ones."""
        monkeypatch.setenv("MINIMAX_API_KEY", "env-key")
        monkeypatch.setenv("MINIMAX_GROUP_ID", "env-group")
        await store.save_config(ProviderKind.TTS, "minimax", {"apiKey": "stored-key"})

        config = await store.get_provider_config("minimax", ProviderKind.TTS)

        assert config == {"apiKey": "stored-key", "groupId": "env-group"}

    @pytest.mark.asyncio
    async def test_save_config_does_not_change_selection(self, store) -> None:
        """Test save_config writes only the provider row."""
        await store.save_config(ProviderKind.TEXT, "openai", {"apiKey": "k"})

        assert await store.get_provider_config("openai") == {"apiKey": "k"}
        assert await store.get_active(ProviderKind.TEXT) == "deepseek"

    def test_available_providers_lists_catalog(self, store) -> None:
        """Test the built-in provider names per kind."""
        assert store.available_providers(ProviderKind.TTS) == [
            "elevenlabs",
            "local",
            "minimax",
        ]
        assert store.available_providers(ProviderKind.TEXT) == [
            "deepseek",
            "local",
            "openai",
        ]


class TestConfigurationStoreUpdate:
    """Test update_provider validation gate and atomic switch."""

    @pytest.mark.asyncio
    async def test_valid_update_stores_config_and_activates(self, store) -> None:
        """Test a valid switch persists config and selection."""
        result = await store.update_provider(
            ProviderKind.TTS, "minimax", {"apiKey": "k", "groupId": "g"}
        )

        assert result.ok
        assert await store.get_active(ProviderKind.TTS) == "minimax"
        assert await store.get_provider_config("minimax", ProviderKind.TTS) == {
            "apiKey": "k",
            "groupId": "g",
        }

    @pytest.mark.asyncio
    async def test_invalid_update_has_no_side_effects(self, store) -> None:
        """Test a failed validation writes nothing and notifies no one."""
        listener = AsyncMock()
        store.add_switch_listener(listener)
        await store.update_provider(ProviderKind.TTS, "local", {})

        result = await store.update_provider(ProviderKind.TTS, "minimax", {"apiKey": "k"})

        assert not result.ok
        assert isinstance(result.error, ConfigurationError)
        assert result.error.missing == ("groupId",)
        assert await store.get_active(ProviderKind.TTS) == "local"
        assert await store.get_provider_config("minimax") == {}
        listener.assert_awaited_once_with(ProviderKind.TTS, "minimax", "local")

    @pytest.mark.asyncio
    async def test_unknown_provider_is_unsupported(self, store) -> None:
        """Test names outside the catalog fail with UnsupportedProviderError."""
        result = await store.update_provider(ProviderKind.TEXT, "elevenlabs", {"apiKey": "k"})

        assert isinstance(result.error, UnsupportedProviderError)
        assert "Unsupported text provider: elevenlabs" in str(result.error)

    @pytest.mark.asyncio
    async def test_switch_notifies_listeners_with_old_and_new(self, store) -> None:
        """Test listeners receive (kind, old, new)."""
        calls = []
        store.add_switch_listener(lambda *args: calls.append(args))

        await store.update_provider(ProviderKind.TEXT, "openai", {"apiKey": "k"})

        assert calls == [(ProviderKind.TEXT, "deepseek", "openai")]

    @pytest.mark.asyncio
    async def test_selection_survives_new_instance(self, tmp_path: Path) -> None:
        """Test the switch is durable."""
        first = ConfigurationStore(tmp_path / "p.db")
        await first.update_provider(ProviderKind.TEXT, "local", {})

        second = ConfigurationStore(tmp_path / "p.db")

        assert await second.get_active(ProviderKind.TEXT) == "local"

    @pytest.mark.asyncio
    async def test_store_failure_reported_as_configuration_error(self, store) -> None:
        """Test a database error fails the switch and changes nothing."""
        original = store._write_config

        def failing_write(kind, name, config, activate):
            raise sqlite3.OperationalError("database is locked")

        store._write_config = failing_write
        result = await store.update_provider(ProviderKind.TEXT, "openai", {"apiKey": "k"})
        store._write_config = original

        assert isinstance(result.error, ConfigurationError)
        assert await store.get_active(ProviderKind.TEXT) == "deepseek"
        assert await store.get_provider_config("openai") == {}
