"""Durable provider configuration store.

Holds per-provider credentials and the active provider of each kind in a
SQLite database. Switching providers validates the new config first and
writes the config and the selection in a single transaction.
"""

import asyncio
import inspect
import json
import logging
import os
import sqlite3
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Awaitable, Callable, Mapping

from .config import ProvidersConfig
from .errors import ConfigurationError, TTSReaderError, UnsupportedProviderError
from .paths import get_store_path
from .providers import TEXT_PROVIDERS, TTS_PROVIDERS
from .providers.base import ProviderKind, missing_fields
from .result import Result

logger = logging.getLogger(__name__)

# Environment variables that fill blank credential fields
ENV_CREDENTIALS: dict[str, dict[str, str]] = {
    "minimax": {"apiKey": "MINIMAX_API_KEY", "groupId": "MINIMAX_GROUP_ID"},
    "elevenlabs": {"apiKey": "ELEVENLABS_API_KEY"},
    "deepseek": {"apiKey": "DEEPSEEK_API_KEY"},
    "openai": {"apiKey": "OPENAI_API_KEY"},
}

SwitchListener = Callable[[ProviderKind, str, str], Awaitable[None] | None]
Catalog = Mapping[ProviderKind, Mapping[str, frozenset[str]]]


@dataclass(frozen=True)
class ActiveSelection:
    """Names of the currently active providers."""

    tts_provider: str
    text_processor: str

    def for_kind(self, kind: ProviderKind) -> str:
        return self.tts_provider if kind is ProviderKind.TTS else self.text_processor


def default_catalog() -> dict[ProviderKind, dict[str, frozenset[str]]]:
    """Return required fields for every built-in provider, by kind."""
    return {
        ProviderKind.TTS: {n: c.required_fields for n, c in TTS_PROVIDERS.items()},
        ProviderKind.TEXT: {n: c.required_fields for n, c in TEXT_PROVIDERS.items()},
    }


class ConfigurationStore:
    """SQLite-backed store of provider configs and the active selection.

    Every public method is async; database work runs in a worker thread
    with its own connection.
    """

    def __init__(
        self,
        db_path: Path | None = None,
        defaults: ProvidersConfig | None = None,
        catalog: Catalog | None = None,
    ) -> None:
        """Initialize the store, creating the schema if needed.

        Args:
            db_path: SQLite database file (defaults to the XDG data dir)
            defaults: Active providers used until a switch is recorded
            catalog: Required fields per provider name, by kind
        """
        self.db_path = db_path or get_store_path()
        self.defaults = defaults or ProvidersConfig()
        if catalog is None:
            catalog = default_catalog()
        self.catalog: dict[ProviderKind, dict[str, frozenset[str]]] = {
            ProviderKind(kind): dict(entries) for kind, entries in catalog.items()
        }
        self._lock = asyncio.Lock()
        self._listeners: list[SwitchListener] = []

        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        conn = self._get_connection()
        try:
            self._init_db(conn)
        finally:
            conn.close()

    def _get_connection(self) -> sqlite3.Connection:
        """Get a new database connection with WAL mode for concurrency."""
        conn = sqlite3.connect(
            str(self.db_path),
            timeout=30.0,
            check_same_thread=False,
        )
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA journal_mode=WAL")
        conn.execute("PRAGMA busy_timeout=30000")
        return conn

    def _init_db(self, conn: sqlite3.Connection) -> None:
        conn.execute("""
            CREATE TABLE IF NOT EXISTS provider_config (
                name TEXT NOT NULL,
                kind TEXT NOT NULL,
                config_json TEXT NOT NULL,
                updated_at TEXT NOT NULL,
                PRIMARY KEY (name, kind)
            )
        """)
        conn.execute("""
            CREATE TABLE IF NOT EXISTS active_selection (
                kind TEXT PRIMARY KEY,
                provider TEXT NOT NULL,
                updated_at TEXT NOT NULL
            )
        """)
        conn.commit()

    async def _run(self, func, *args):
        try:
            return await asyncio.to_thread(func, *args)
        except sqlite3.Error as e:
            raise ConfigurationError(
                f"Provider store unavailable: {e}", original_error=e
            ) from e

    # Reads

    def _read_config(self, name: str, kind: ProviderKind | None) -> dict[str, str]:
        query = "SELECT config_json FROM provider_config WHERE name = ?"
        args: tuple[str, ...] = (name,)
        if kind is not None:
            query += " AND kind = ?"
            args += (kind.value,)
        conn = self._get_connection()
        try:
            row = conn.execute(
                query + " ORDER BY updated_at DESC LIMIT 1", args
            ).fetchone()
        finally:
            conn.close()
        return json.loads(row["config_json"]) if row else {}

    async def get_provider_config(
        self, name: str, kind: ProviderKind | None = None
    ) -> dict[str, str]:
        """Return the stored config for name, with env vars filling blanks.

        Returns an empty dict when nothing is known about name.
        """
        config = await self._run(self._read_config, name, kind)
        for field_name, env_var in ENV_CREDENTIALS.get(name, {}).items():
            if not str(config.get(field_name) or "").strip():
                value = os.environ.get(env_var, "").strip()
                if value:
                    config[field_name] = value
        return config

    def _read_selection(self) -> dict[str, str]:
        conn = self._get_connection()
        try:
            rows = conn.execute("SELECT kind, provider FROM active_selection").fetchall()
        finally:
            conn.close()
        return {row["kind"]: row["provider"] for row in rows}

    async def get_active_selection(self) -> ActiveSelection:
        stored = await self._run(self._read_selection)
        return ActiveSelection(
            tts_provider=stored.get(ProviderKind.TTS.value, self.defaults.tts),
            text_processor=stored.get(ProviderKind.TEXT.value, self.defaults.text),
        )

    async def get_active(self, kind: ProviderKind) -> str:
        selection = await self.get_active_selection()
        return selection.for_kind(kind)

    def add_provider(
        self, kind: ProviderKind, name: str, required_fields: frozenset[str]
    ) -> None:
        """Accept name as a provider of kind, requiring required_fields."""
        self.catalog.setdefault(ProviderKind(kind), {})[name] = frozenset(required_fields)

    def available_providers(self, kind: ProviderKind) -> list[str]:
        return sorted(self.catalog.get(kind, {}))

    # Validation

    def validate(
        self, name: str, config: Mapping[str, str], kind: ProviderKind | None = None
    ) -> bool:
        """Return True if config holds every field the provider requires.

        Unknown names are never valid.
        """
        kinds = [kind] if kind is not None else list(self.catalog)
        for candidate in kinds:
            required = self.catalog.get(candidate, {}).get(name)
            if required is not None:
                return not missing_fields(required, config)
        return False

    # Writes

    def _write_config(
        self, kind: ProviderKind, name: str, config: Mapping[str, str], activate: bool
    ) -> None:
        now = datetime.now().isoformat()
        conn = self._get_connection()
        try:
            with conn:
                conn.execute(
                    """
                    INSERT INTO provider_config (name, kind, config_json, updated_at)
                    VALUES (?, ?, ?, ?)
                    ON CONFLICT(name, kind) DO UPDATE SET
                        config_json = excluded.config_json,
                        updated_at = excluded.updated_at
                    """,
                    (name, kind.value, json.dumps(dict(config)), now),
                )
                if activate:
                    conn.execute(
                        """
                        INSERT INTO active_selection (kind, provider, updated_at)
                        VALUES (?, ?, ?)
                        ON CONFLICT(kind) DO UPDATE SET
                            provider = excluded.provider,
                            updated_at = excluded.updated_at
                        """,
                        (kind.value, name, now),
                    )
        finally:
            conn.close()

    async def save_config(
        self, kind: ProviderKind, name: str, config: Mapping[str, str]
    ) -> None:
        """Durably store config for name without changing the selection."""
        async with self._lock:
            await self._run(self._write_config, kind, name, config, False)

    def add_switch_listener(self, listener: SwitchListener) -> None:
        """Register a callback run with (kind, old_name, new_name) after a switch."""
        self._listeners.append(listener)

    async def update_provider(
        self, kind: ProviderKind, name: str, config: Mapping[str, str]
    ) -> Result[None]:
        """Validate config, then store it and make name the active provider.

        Nothing is written when validation fails. The config row and the
        selection row are committed together.
        """
        kind = ProviderKind(kind)
        if name not in self.catalog.get(kind, {}):
            return Result.failure(UnsupportedProviderError(name, kind.value))

        missing = missing_fields(self.catalog[kind][name], config)
        if missing:
            return Result.failure(
                ConfigurationError(
                    f"Invalid configuration for {name}: missing {', '.join(missing)}",
                    provider=name,
                    missing=missing,
                )
            )

        try:
            async with self._lock:
                old_name = await self.get_active(kind)
                await self._run(self._write_config, kind, name, config, True)
        except TTSReaderError as e:
            logger.error(f"Failed to switch {kind.value} provider to {name}: {e}")
            return Result.failure(e)

        logger.info(f"Switched {kind.value} provider: {old_name} -> {name}")
        await self._notify(kind, old_name, name)
        return Result.success()

    async def _notify(self, kind: ProviderKind, old_name: str, new_name: str) -> None:
        for listener in self._listeners:
            try:
                outcome = listener(kind, old_name, new_name)
                if inspect.isawaitable(outcome):
                    await outcome
            except Exception as e:
                logger.error(f"Provider switch listener failed: {e}")
