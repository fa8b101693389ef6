"""Text processing orchestrator with remote-to-local fallback."""

import logging
from dataclasses import replace
from typing import Iterable, Mapping, cast

from ..errors import TTSReaderError, is_connectivity_failure
from ..providers import ProviderRegistry, TextProcessor
from ..providers.base import ProviderKind
from ..result import Result
from ..store import ConfigurationStore
from .models import (
    BracketType,
    Capability,
    FilterBrackets,
    FilterUrls,
    ProcessedText,
    RemoveHeaders,
    SemanticSegment,
    TextOperation,
    TextProcessingRequest,
)

logger = logging.getLogger(__name__)

LOCAL_PROCESSOR = "local"
DEFAULT_HEADER_PATTERNS = (r"^第\d+章", r"^\d+\.", r"^\*\*\*")
DEFAULT_SEGMENT_LENGTH = 500


def default_operations() -> tuple[TextOperation, ...]:
    """Operations applied when the caller does not name any."""
    return (
        FilterUrls(remove=True),
        FilterBrackets(types=(BracketType.ROUND, BracketType.SQUARE)),
        RemoveHeaders(patterns=DEFAULT_HEADER_PATTERNS),
        SemanticSegment(max_length=DEFAULT_SEGMENT_LENGTH),
    )


class TextProcessingOrchestrator:
    """Cleans and segments text with the active text processor.

    When a remote processor cannot be reached, the same request is run on
    the local processor instead. Any other failure is returned as is.
    """

    def __init__(self, store: ConfigurationStore, registry: ProviderRegistry) -> None:
        self.store = store
        self.registry = registry

    @staticmethod
    def default_operations() -> tuple[TextOperation, ...]:
        return default_operations()

    async def _resolve(self, name: str) -> TextProcessor:
        return cast(TextProcessor, await self.registry.resolve(ProviderKind.TEXT, name))

    async def process_text(
        self, text: str, operations: Iterable[TextOperation] | None = None
    ) -> Result[ProcessedText]:
        """Process text with the given operations or the default sequence.

        An empty operation list is treated like None.
        """
        request = TextProcessingRequest(
            text=text,
            operations=tuple(operations or ()) or default_operations(),
        )

        name = LOCAL_PROCESSOR
        try:
            name = await self.store.get_active(ProviderKind.TEXT)
            processor = await self._resolve(name)
            return Result.success(await processor.process(request))
        except Exception as e:
            if not is_connectivity_failure(e) or not await self._fallback_allowed(name):
                return self._failure(e)
            logger.warning(f"{name} unreachable, falling back to local processing: {e}")

        try:
            processed = await (await self._resolve(LOCAL_PROCESSOR)).process(request)
        except Exception as e:
            return self._failure(e)
        return Result.success(replace(processed, fallback_used=True))

    async def _fallback_allowed(self, name: str) -> bool:
        if name == LOCAL_PROCESSOR:
            return False
        try:
            config = await self.store.get_provider_config(name, ProviderKind.TEXT)
        except TTSReaderError:
            return True
        return str(config.get("fallbackRules", "true")).strip().lower() != "false"

    @staticmethod
    def _failure(error: Exception) -> Result[ProcessedText]:
        if isinstance(error, TTSReaderError):
            return Result.failure(error)
        logger.error(f"Unexpected error during text processing: {error}")
        return Result.failure(TTSReaderError(f"Text processing failed: {error}", error))

    async def switch_processor(self, name: str, config: Mapping[str, str]) -> Result[None]:
        """Validate config and make name the active text processor."""
        return await self.store.update_provider(ProviderKind.TEXT, name, config)

    async def capabilities(self) -> set[Capability]:
        """Capabilities of the active processor, or an empty set on failure."""
        try:
            name = await self.store.get_active(ProviderKind.TEXT)
            return await (await self._resolve(name)).capabilities()
        except Exception as e:
            logger.warning(f"Could not determine text processor capabilities: {e}")
            return set()
