"""Text processing data models.

Operations form a tagged variant: each is a small frozen dataclass and a
request carries them as an ordered tuple, applied one after another.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Mapping, Union


class BracketType(str, Enum):
    """Bracket kinds that FilterBrackets can strip."""

    ROUND = "round"
    SQUARE = "square"
    CURLY = "curly"
    ANGLE = "angle"

    @property
    def delimiters(self) -> tuple[str, str]:
        return _DELIMITERS[self]


_DELIMITERS = {
    BracketType.ROUND: ("(", ")"),
    BracketType.SQUARE: ("[", "]"),
    BracketType.CURLY: ("{", "}"),
    BracketType.ANGLE: ("<", ">"),
}


class ChangeType(str, Enum):
    REMOVAL = "removal"
    REPLACEMENT = "replacement"
    SEGMENTATION = "segmentation"


class Capability(str, Enum):
    """What a text processor is able to do."""

    FILTERING = "filtering"
    SEMANTIC_ANALYSIS = "semantic_analysis"
    CONTENT_OPTIMIZATION = "content_optimization"


@dataclass(frozen=True)
class FilterUrls:
    """Strip URLs and e-mail addresses."""

    remove: bool = True


@dataclass(frozen=True)
class FilterBrackets:
    """Strip bracketed spans of the given kinds."""

    types: tuple[BracketType, ...] = (BracketType.ROUND, BracketType.SQUARE)

    def __post_init__(self) -> None:
        object.__setattr__(self, "types", tuple(BracketType(t) for t in self.types))


@dataclass(frozen=True)
class RemoveHeaders:
    """Strip substrings matching each regular expression, ignoring case."""

    patterns: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "patterns", tuple(self.patterns))


@dataclass(frozen=True)
class SemanticSegment:
    """Pack sentences into chunks of at most max_length characters."""

    max_length: int = 500

    def __post_init__(self) -> None:
        if self.max_length <= 0:
            raise ValueError(f"max_length must be positive, got {self.max_length}")


@dataclass(frozen=True)
class OptimizePronunciation:
    """Replace words with pronunciation hints, ignoring case."""

    dictionary: Mapping[str, str] = field(default_factory=dict, hash=False)


TextOperation = Union[
    FilterUrls, FilterBrackets, RemoveHeaders, SemanticSegment, OptimizePronunciation
]


@dataclass(frozen=True)
class TextProcessingRequest:
    """Text plus the ordered operations to apply to it."""

    text: str
    operations: tuple[TextOperation, ...] = ()
    language: str = "zh-CN"
    document_type: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "operations", tuple(self.operations))


@dataclass(frozen=True)
class TextChange:
    """Before/after record of one operation that altered the text."""

    type: ChangeType
    operation: str
    original: str
    replacement: str
    start: int = 0
    end: int = 0


@dataclass(frozen=True)
class ProcessingMetadata:
    original_length: int = 0
    processed_length: int = 0
    processing_time_ms: int = 0
    operation_count: int = 0


@dataclass(frozen=True)
class ProcessedText:
    """Result of a text processing call.

    Attributes:
        text: The processed text
        changes: Diagnostic records, one per altering operation
        metadata: Lengths, timing and operation count
        processor: Name of the processor that produced the text
        fallback_used: True if the local processor stood in for a remote one
    """

    text: str
    changes: tuple[TextChange, ...] = ()
    metadata: ProcessingMetadata = field(default_factory=ProcessingMetadata)
    processor: str = ""
    fallback_used: bool = False


def operation_name(operation: TextOperation) -> str:
    return type(operation).__name__
