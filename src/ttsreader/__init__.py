"""ttsreader - text preparation and speech synthesis with cached providers."""

__version__ = "0.1.0"
__all__ = ["ReaderService", "process_text", "synthesize"]


def __getattr__(name: str):  # type: ignore[no-untyped-def]
    if name == "ReaderService":
        from .core import ReaderService

        return ReaderService
    if name in ("process_text", "synthesize"):
        from . import api

        return getattr(api, name)
    raise AttributeError(f"module 'ttsreader' has no attribute {name!r}")
