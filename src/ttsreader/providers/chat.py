"""Remote text processors backed by chat-completion APIs.

DeepSeek and OpenAI expose the same chat-completions protocol, so both
processors share one implementation and differ only in endpoint, default
model and prompt wording.
"""

import logging
import time
from typing import Any, ClassVar, Mapping

import httpx

from ..errors import (
    ProviderRejectionError,
    connectivity_error,
    rejection_error,
)
from ..text.models import (
    Capability,
    ChangeType,
    FilterBrackets,
    FilterUrls,
    OptimizePronunciation,
    ProcessedText,
    ProcessingMetadata,
    RemoveHeaders,
    SemanticSegment,
    TextChange,
    TextOperation,
    TextProcessingRequest,
)
from .base import TextProcessor

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0
MAX_TOKENS = 2048
TEMPERATURE = 0.3

GUIDELINES = """\
Guidelines:
1. Preserve the meaning and natural flow of the text
2. Remove only clearly unwanted content
3. Keep the text suitable for audio narration
4. Return only the processed text, no explanations"""


def describe_operation(operation: TextOperation) -> str:
    """Render one operation as a prompt instruction."""
    if isinstance(operation, FilterUrls):
        return "- Remove URLs, web links and e-mail addresses"
    if isinstance(operation, FilterBrackets):
        kinds = ", ".join(t.value for t in operation.types)
        return f"- Remove text inside {kinds} brackets"
    if isinstance(operation, RemoveHeaders):
        return f"- Remove headers matching: {', '.join(operation.patterns)}"
    if isinstance(operation, SemanticSegment):
        return (
            f"- Break long text into segments of at most "
            f"{operation.max_length} characters"
        )
    if isinstance(operation, OptimizePronunciation):
        pairs = ", ".join(f"{k}={v}" for k, v in operation.dictionary.items())
        return f"- Apply custom pronunciations: {pairs}"
    return f"- {operation!r}"


class ChatCompletionTextProcessor(TextProcessor):
    """Text processor calling an OpenAI-compatible chat-completions endpoint.

    Subclasses set name, base_url, endpoint, default_model and
    system_prompt.
    """

    required_fields: ClassVar[frozenset[str]] = frozenset({"apiKey"})
    base_url: ClassVar[str]
    endpoint: ClassVar[str] = "/v1/chat/completions"
    default_model: ClassVar[str]
    system_prompt: ClassVar[str]

    def __init__(
        self,
        api_key: str,
        model: str | None = None,
        base_url: str | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the processor.

        Args:
            api_key: Bearer token for the API
            model: Model name (provider default if omitted)
            base_url: Override of the API base URL
            timeout: Request timeout in seconds
            transport: Custom HTTP transport (e.g., httpx.MockTransport)
        """
        self._api_key = api_key
        self.model = model or self.default_model
        self._base_url = base_url or self.base_url
        self.timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @classmethod
    def from_config(
        cls, config: Mapping[str, str], **options: Any
    ) -> "ChatCompletionTextProcessor":
        return cls(
            api_key=config["apiKey"],
            model=config.get("model") or None,
            base_url=config.get("baseUrl") or None,
            timeout=options.get("timeout", DEFAULT_TIMEOUT),
        )

    def is_configured(self) -> bool:
        return bool(self._api_key and self._api_key.strip())

    def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self._base_url,
                headers={
                    "Authorization": f"Bearer {self._api_key}",
                    "Content-Type": "application/json",
                },
                timeout=httpx.Timeout(self.timeout),
                transport=self._transport,
            )
        return self._client

    async def aclose(self) -> None:
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()

    def build_messages(self, request: TextProcessingRequest) -> list[dict[str, str]]:
        rules = "\n".join(describe_operation(op) for op in request.operations)
        instructions = (
            "Process the following text for speech synthesis "
            f"(language: {request.language}).\n\n"
            f"Processing rules:\n{rules}\n\n{GUIDELINES}"
        )
        return [
            {"role": "system", "content": self.system_prompt},
            {
                "role": "user",
                "content": f"{instructions}\n\nText to process:\n{request.text}",
            },
        ]

    async def process(self, request: TextProcessingRequest) -> ProcessedText:
        started = time.monotonic()
        body = {
            "model": self.model,
            "messages": self.build_messages(request),
            "max_tokens": MAX_TOKENS,
            "temperature": TEMPERATURE,
        }

        try:
            response = await self._get_client().post(self.endpoint, json=body)
        except (httpx.NetworkError, httpx.TimeoutException) as e:
            raise connectivity_error(self.name, e) from e

        if not response.is_success:
            raise rejection_error(self.name, response.status_code, response.text)

        try:
            choices = response.json().get("choices") or []
            content = choices[0]["message"]["content"] if choices else None
        except (ValueError, AttributeError, KeyError, IndexError, TypeError) as e:
            raise ProviderRejectionError(
                f"{self.name} returned an unexpected response: {e}",
                response.status_code,
                e,
            ) from e

        processed = (content or "").strip() or request.text
        changes: tuple[TextChange, ...] = ()
        if processed != request.text:
            changes = (
                TextChange(
                    type=ChangeType.REPLACEMENT,
                    operation="chat_completion",
                    original=request.text,
                    replacement=processed,
                    start=0,
                    end=len(request.text),
                ),
            )

        elapsed_ms = int((time.monotonic() - started) * 1000)
        logger.debug(f"{self.name} processed {len(request.text)} chars in {elapsed_ms} ms")

        return ProcessedText(
            text=processed,
            changes=changes,
            metadata=ProcessingMetadata(
                original_length=len(request.text),
                processed_length=len(processed),
                processing_time_ms=elapsed_ms,
                operation_count=len(request.operations),
            ),
            processor=self.name,
        )

    async def capabilities(self) -> set[Capability]:
        return {
            Capability.FILTERING,
            Capability.SEMANTIC_ANALYSIS,
            Capability.CONTENT_OPTIMIZATION,
        }


class DeepSeekTextProcessor(ChatCompletionTextProcessor):
    """DeepSeek chat-completions text processor."""

    name = "deepseek"
    base_url = "https://api.deepseek.com"
    endpoint = "/chat/completions"
    default_model = "deepseek-chat"
    system_prompt = (
        "You are a text processing expert for Chinese and English text-to-speech "
        "applications. Clean and optimize text for natural speech synthesis, "
        "removing distractions while preserving meaning."
    )


class OpenAITextProcessor(ChatCompletionTextProcessor):
    """OpenAI chat-completions text processor."""

    name = "openai"
    base_url = "https://api.openai.com"
    default_model = "gpt-4o-mini"
    system_prompt = (
        "You are a text processing expert for text-to-speech applications. "
        "Clean and optimize text for natural speech synthesis."
    )
