"""Text preparation models and orchestration."""

from .models import (
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
)

__all__ = [
    "BracketType",
    "Capability",
    "ChangeType",
    "FilterBrackets",
    "FilterUrls",
    "OptimizePronunciation",
    "ProcessedText",
    "ProcessingMetadata",
    "RemoveHeaders",
    "SemanticSegment",
    "TextChange",
    "TextOperation",
    "TextProcessingRequest",
]
