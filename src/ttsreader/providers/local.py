"""Local rule-based text processor.

Runs entirely in-process with regular expressions, so it works offline and
serves as the fallback when a remote text processor is unreachable.
"""

import logging
import re
import time

from ..errors import InvalidRequestError
from ..text.models import (
    BracketType,
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
    operation_name,
)
from .base import TextProcessor

logger = logging.getLogger(__name__)

URL_PATTERN = re.compile(r"https?://\S+|www\.\S+|[\w.-]+@[\w.-]+\.\w+")
SENTENCE_BREAK = re.compile(r"[。！？.!?]")
SENTENCE_END = "。"
SEGMENT_SEPARATOR = " "


def filter_urls(text: str) -> str:
    return URL_PATTERN.sub("", text).strip()


def filter_brackets(text: str, types: tuple[BracketType, ...]) -> str:
    for bracket in types:
        open_, close = bracket.delimiters
        pattern = re.compile(f"{re.escape(open_)}[^{re.escape(close)}]*{re.escape(close)}")
        text = pattern.sub("", text).strip()
    return text


def remove_headers(text: str, patterns: tuple[str, ...]) -> str:
    for pattern in patterns:
        try:
            regex = re.compile(pattern, re.IGNORECASE)
        except re.error as e:
            raise InvalidRequestError(f"Invalid header pattern {pattern!r}: {e}", e) from e
        text = regex.sub("", text).strip()
    return text


def segment_text(text: str, max_length: int) -> str:
    """Split text into chunks of at most max_length characters.

    Sentences are split on terminal punctuation, trimmed, and packed
    greedily with a 。 after each. A sentence that cannot fit on its own is
    hard-split into max_length slices. Chunks are joined by one space.
    """
    if len(text) <= max_length:
        return text

    segments: list[str] = []
    current = ""

    for sentence in SENTENCE_BREAK.split(text):
        trimmed = sentence.strip()
        if not trimmed:
            continue

        if len(current) + len(trimmed) + len(SENTENCE_END) <= max_length:
            current += trimmed + SENTENCE_END
            continue

        if current:
            segments.append(current.strip())
            current = ""

        if len(trimmed) + len(SENTENCE_END) > max_length:
            segments.extend(
                trimmed[start : start + max_length]
                for start in range(0, len(trimmed), max_length)
            )
        else:
            current = trimmed + SENTENCE_END

    if current:
        segments.append(current.strip())

    return SEGMENT_SEPARATOR.join(segments)


def optimize_pronunciation(text: str, dictionary: dict[str, str]) -> str:
    for original, replacement in dictionary.items():
        if not original:
            continue
        text = re.sub(
            re.escape(original), lambda _m, r=replacement: r, text, flags=re.IGNORECASE
        )
    return text


def apply_operation(text: str, operation: TextOperation) -> tuple[str, ChangeType]:
    """Apply one operation and return the new text with its change type."""
    if isinstance(operation, FilterUrls):
        return (filter_urls(text) if operation.remove else text), ChangeType.REMOVAL
    if isinstance(operation, FilterBrackets):
        return filter_brackets(text, operation.types), ChangeType.REMOVAL
    if isinstance(operation, RemoveHeaders):
        return remove_headers(text, operation.patterns), ChangeType.REMOVAL
    if isinstance(operation, SemanticSegment):
        return segment_text(text, operation.max_length), ChangeType.SEGMENTATION
    if isinstance(operation, OptimizePronunciation):
        return (
            optimize_pronunciation(text, dict(operation.dictionary)),
            ChangeType.REPLACEMENT,
        )
    raise InvalidRequestError(f"Unsupported text operation: {operation!r}")


class LocalTextProcessor(TextProcessor):
    """Offline text processor applying regular-expression rules in order."""

    name = "local"

    async def process(self, request: TextProcessingRequest) -> ProcessedText:
        started = time.monotonic()
        text = request.text
        changes: list[TextChange] = []

        for operation in request.operations:
            result, change_type = apply_operation(text, operation)
            if result != text:
                changes.append(
                    TextChange(
                        type=change_type,
                        operation=operation_name(operation),
                        original=text,
                        replacement=result,
                        start=0,
                        end=len(text),
                    )
                )
                text = result

        elapsed_ms = int((time.monotonic() - started) * 1000)
        logger.debug(
            f"Local processing applied {len(request.operations)} operations, "
            f"{len(changes)} changed the text ({elapsed_ms} ms)"
        )

        return ProcessedText(
            text=text,
            changes=tuple(changes),
            metadata=ProcessingMetadata(
                original_length=len(request.text),
                processed_length=len(text),
                processing_time_ms=elapsed_ms,
                operation_count=len(request.operations),
            ),
            processor=self.name,
        )

    async def capabilities(self) -> set[Capability]:
        return {Capability.FILTERING}
