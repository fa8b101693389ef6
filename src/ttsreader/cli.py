"""Typer CLI definition for ttsreader."""

import asyncio
import logging
import sys
from pathlib import Path

import typer

from .config import MEGABYTE, generate_config, get_config_path
from .core import ReaderService
from .errors import TTSReaderError
from .providers.base import ProviderKind
from .result import Result
from .text.models import SemanticSegment
from .text.pipeline import default_operations
from .tts.models import SynthesisParameters, VoiceInfo

app = typer.Typer(help="Prepare text and turn it into speech")


def _setup_logging(debug: bool) -> None:
    if debug:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        )


def _fail(message: str, error: BaseException | None, debug: bool) -> typer.Exit:
    if debug and error is not None:
        typer.echo(f"Debug - {message}: {error!r}", err=True)
    elif error is not None:
        typer.echo(f"Error: {message}: {error}", err=True)
    else:
        typer.echo(f"Error: {message}", err=True)
    return typer.Exit(1)


def _unwrap(result: Result, message: str, debug: bool):  # type: ignore[no-untyped-def]
    if not result.ok:
        raise _fail(message, result.error, debug) from None
    return result.value


def read_text_input(text: str | None, file: Path | None) -> str:
    """Resolve text from argument, file, or stdin (in priority order).

    Raises:
        ValueError: If no text is provided
        OSError: If the file cannot be read
    """
    if text is None and file is not None:
        text = file.read_text()
    elif text is None and not sys.stdin.isatty():
        text = sys.stdin.read()

    if text is None or not text.strip():
        raise ValueError("No text provided")
    return text.strip()


def _read_or_exit(text: str | None, file: Path | None, debug: bool) -> str:
    try:
        return read_text_input(text, file)
    except FileNotFoundError:
        raise _fail(f"File not found: {file}", None, debug) from None
    except UnicodeDecodeError as e:
        raise _fail(f"Unable to decode file as text: {file}", e, debug) from None
    except OSError as e:
        raise _fail(f"Failed to read {file}", e, debug) from None
    except ValueError as e:
        raise _fail(str(e), None, debug) from None


def _open_service(debug: bool) -> ReaderService:
    try:
        return ReaderService.from_config()
    except TTSReaderError as e:
        raise _fail("Failed to start", e, debug) from None


@app.command()
def speak(
    text: str | None = typer.Argument(None, help="Text to convert to speech"),
    file: Path | None = typer.Option(None, "-f", "--file", help="Read text from file"),
    output: Path = typer.Option(..., "-o", "--output", help="File to save audio to"),
    voice: str = typer.Option(
        "female-shaonv", "-v", "--voice", help="Voice ID of the active provider"
    ),
    speed: float = typer.Option(1.0, "--speed", help="Speaking speed multiplier"),
    volume: float = typer.Option(1.0, "--volume", help="Volume multiplier"),
    pitch: float = typer.Option(0.0, "--pitch", help="Pitch offset in semitones"),
    emotion: str | None = typer.Option(None, "--emotion", help="Emotion tag"),
    debug: bool = typer.Option(
        False, "--debug", help="Show verbose error messages and cache activity"
    ),
) -> None:
    """Synthesize speech and save it to a file."""
    _setup_logging(debug)
    content = _read_or_exit(text, file, debug)
    parameters = SynthesisParameters(
        speed=speed, volume=volume, pitch=pitch, emotion=emotion
    )

    async def _run() -> Result[bytes]:
        async with _open_service(debug) as service:
            return await service.synthesize(
                content, VoiceInfo(voice_id=voice, name=voice), parameters
            )

    audio = _unwrap(asyncio.run(_run()), "Synthesis failed", debug)
    try:
        output.write_bytes(audio)
    except OSError as e:
        raise _fail("Failed to save audio file", e, debug) from None
    typer.echo(f"Audio saved to {output}")


@app.command()
def voices(
    debug: bool = typer.Option(False, "--debug", help="Show verbose error messages"),
) -> None:
    """List voices of the active TTS provider."""
    _setup_logging(debug)

    async def _run() -> Result[list[VoiceInfo]]:
        async with _open_service(debug) as service:
            return await service.list_voices()

    for voice in _unwrap(asyncio.run(_run()), "Failed to list voices", debug):
        typer.echo(f"{voice.name}: {voice.voice_id} ({voice.language}, {voice.gender.value})")


@app.command()
def process(
    text: str | None = typer.Argument(None, help="Text to prepare"),
    file: Path | None = typer.Option(None, "-f", "--file", help="Read text from file"),
    max_length: int = typer.Option(
        500, "--max-length", min=1, help="Maximum segment length in characters"
    ),
    show_changes: bool = typer.Option(
        False, "--changes", help="List the operations that altered the text"
    ),
    debug: bool = typer.Option(False, "--debug", help="Show verbose error messages"),
) -> None:
    """Clean up and segment text for narration."""
    _setup_logging(debug)
    content = _read_or_exit(text, file, debug)
    operations = tuple(
        SemanticSegment(max_length) if isinstance(op, SemanticSegment) else op
        for op in default_operations()
    )

    async def _run():  # type: ignore[no-untyped-def]
        async with _open_service(debug) as service:
            return await service.process_text(content, operations)

    processed = _unwrap(asyncio.run(_run()), "Text processing failed", debug)
    if processed.fallback_used:
        typer.echo("Note: remote processor unreachable, used local rules", err=True)
    if show_changes:
        for change in processed.changes:
            typer.echo(f"[{change.type.value}] {change.operation}", err=True)
    typer.echo(processed.text)


@app.command("use-tts")
def use_tts(
    name: str = typer.Argument(..., help="TTS provider: minimax, elevenlabs, local"),
    api_key: str | None = typer.Option(None, "--api-key", help="Provider API key"),
    group_id: str | None = typer.Option(None, "--group-id", help="MiniMax group id"),
    model: str | None = typer.Option(None, "--model", help="Provider model id"),
    debug: bool = typer.Option(False, "--debug", help="Show verbose error messages"),
) -> None:
    """Make NAME the active TTS provider."""
    _setup_logging(debug)
    config = {
        key: value
        for key, value in (("apiKey", api_key), ("groupId", group_id), ("model", model))
        if value
    }

    async def _run() -> Result[None]:
        async with _open_service(debug) as service:
            stored = await service.store.get_provider_config(name, ProviderKind.TTS)
            config.update({k: v for k, v in stored.items() if k not in config})
            return await service.switch_tts_provider(name, config)

    _unwrap(asyncio.run(_run()), f"Cannot switch to {name}", debug)
    typer.echo(f"TTS provider set to {name}")


@app.command("use-text")
def use_text(
    name: str = typer.Argument(..., help="Text processor: deepseek, openai, local"),
    api_key: str | None = typer.Option(None, "--api-key", help="Provider API key"),
    model: str | None = typer.Option(None, "--model", help="Chat model name"),
    base_url: str | None = typer.Option(None, "--base-url", help="API base URL"),
    no_fallback: bool = typer.Option(
        False, "--no-fallback", help="Never fall back to local rules"
    ),
    debug: bool = typer.Option(False, "--debug", help="Show verbose error messages"),
) -> None:
    """Make NAME the active text processor."""
    _setup_logging(debug)
    config = {
        key: value
        for key, value in (("apiKey", api_key), ("model", model), ("baseUrl", base_url))
        if value
    }
    config["fallbackRules"] = "false" if no_fallback else "true"

    async def _run() -> Result[None]:
        async with _open_service(debug) as service:
            stored = await service.store.get_provider_config(name, ProviderKind.TEXT)
            config.update({k: v for k, v in stored.items() if k not in config})
            return await service.switch_text_processor(name, config)

    _unwrap(asyncio.run(_run()), f"Cannot switch to {name}", debug)
    typer.echo(f"Text processor set to {name}")


@app.command("cache-info")
def cache_info(
    debug: bool = typer.Option(False, "--debug", help="Show verbose error messages"),
) -> None:
    """Show audio cache usage."""
    _setup_logging(debug)

    async def _run():  # type: ignore[no-untyped-def]
        async with _open_service(debug) as service:
            return await service.cache_info()

    stats = asyncio.run(_run())
    typer.echo(f"Entries: {stats.entries}")
    typer.echo(
        f"Size: {stats.size_bytes / MEGABYTE:.1f} MB "
        f"of {stats.max_size_bytes / MEGABYTE:.1f} MB"
    )
    typer.echo(f"Hits: {stats.hits}  Misses: {stats.misses}  Evictions: {stats.evictions}")


@app.command("cache-clear")
def cache_clear(
    debug: bool = typer.Option(False, "--debug", help="Show verbose error messages"),
) -> None:
    """Delete all cached audio."""
    _setup_logging(debug)

    async def _run() -> Result[None]:
        async with _open_service(debug) as service:
            return await service.clear_cache()

    _unwrap(asyncio.run(_run()), "Failed to clear cache", debug)
    typer.echo("Cache cleared")


@app.command("config-init")
def config_init(
    force: bool = typer.Option(False, "--force", help="Overwrite an existing file"),
) -> None:
    """Write a commented default config file."""
    path = get_config_path()
    if path.exists() and not force:
        typer.echo(f"Error: Config already exists at {path} (use --force)", err=True)
        raise typer.Exit(1)
    try:
        generate_config(path)
    except OSError as e:
        typer.echo(f"Error: Failed to write config: {e}", err=True)
        raise typer.Exit(1) from None
    typer.echo(f"Config written to {path}")
