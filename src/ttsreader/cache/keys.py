"""Deterministic cache keys for synthesis requests."""

import hashlib


def compute_cache_key(
    text: str,
    voice_id: str,
    speed: float = 1.0,
    volume: float = 1.0,
    pitch: float = 0.0,
    emotion: str | None = None,
    provider: str | None = None,
) -> str:
    """Derive the cache key for one synthesis request.

    Creates an MD5 digest over the text, voice id and every synthesis
    parameter, so the same request always maps to the same key and a
    change in any field maps elsewhere. Numbers are normalized through
    float() first, so 1 and 1.0 produce the same key.

    Args:
        text: Input text string
        voice_id: Voice identifier
        speed: Speaking speed multiplier
        volume: Volume multiplier
        pitch: Pitch offset
        emotion: Optional emotion tag
        provider: Optional provider name, for provider-scoped keys

    Returns:
        32-character hex digest

    Raises:
        ValueError: If text or voice_id is None
    """
    if text is None or voice_id is None:
        raise ValueError("text and voice_id must be non-None")

    fields = [
        text,
        voice_id,
        repr(float(speed)),
        repr(float(volume)),
        repr(float(pitch)),
        emotion or "",
    ]
    if provider is not None:
        fields.append(provider)

    combined = "|".join(fields)
    return hashlib.md5(combined.encode("utf-8")).hexdigest()
