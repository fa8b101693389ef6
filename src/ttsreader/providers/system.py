"""Local TTS provider using native OS text-to-speech commands.

Uses the speech engine built into the operating system (say on macOS,
espeak on Linux), so it needs no credentials and no network.
"""

import asyncio
import logging
import platform
import shutil
import tempfile
from pathlib import Path

from ..errors import ProviderRejectionError
from ..tts.models import SynthesisRequest, VoiceInfo
from .base import TTSProvider

logger = logging.getLogger(__name__)

SUPPORTED_PLATFORMS = ("Darwin", "Linux")
DEFAULT_VOICE = VoiceInfo(voice_id="default", name="Default System Voice", provider="local")

# espeak words per minute at speed 1.0
ESPEAK_BASE_RATE = 175


async def _run(*cmd: str) -> tuple[int, str, str]:
    try:
        proc = await asyncio.create_subprocess_exec(
            *cmd, stdout=asyncio.subprocess.PIPE, stderr=asyncio.subprocess.PIPE
        )
    except OSError as e:
        raise ProviderRejectionError(f"Cannot run {cmd[0]}: {e}", None, e) from e
    stdout, stderr = await proc.communicate()
    return proc.returncode or 0, stdout.decode(errors="replace"), stderr.decode(errors="replace")


class SystemTTSProvider(TTSProvider):
    """Local TTS provider using native OS commands.

    Note: Audio quality will be robotic compared to AI-powered voices.
    """

    name = "local"
    parameter_ranges = {"speed": (0.5, 2.0)}

    def __init__(self) -> None:
        """Initialize system TTS provider and detect platform."""
        self.platform = platform.system()

    def is_configured(self) -> bool:
        return self.platform in SUPPORTED_PLATFORMS

    def _voice_arg(self, request: SynthesisRequest) -> str | None:
        voice_id = request.voice.voice_id
        return None if voice_id == DEFAULT_VOICE.voice_id else voice_id

    async def synthesize(self, request: SynthesisRequest) -> bytes:
        """Convert text to speech using native OS commands.

        Returns:
            Audio data as bytes in WAV format

        Raises:
            ProviderRejectionError: If the speech engine is missing or fails
        """
        with tempfile.TemporaryDirectory(prefix="ttsreader-") as tmp:
            output_path = Path(tmp) / "speech.wav"
            if self.platform == "Darwin":
                await self._synthesize_macos(request, Path(tmp) / "speech.aiff", output_path)
            elif self.platform == "Linux":
                await self._synthesize_espeak(request, output_path)
            else:
                raise ProviderRejectionError(f"Unsupported platform: {self.platform}")

            return output_path.read_bytes()

    async def _synthesize_macos(
        self, request: SynthesisRequest, aiff_path: Path, output_path: Path
    ) -> None:
        cmd = ["say", "-o", str(aiff_path)]
        voice = self._voice_arg(request)
        if voice:
            cmd.extend(["-v", voice])
        cmd.append(request.text)

        code, _, stderr = await _run(*cmd)
        if code != 0:
            raise ProviderRejectionError(f"System TTS failed with code {code}: {stderr}", code)

        # Convert AIFF to WAV for compatibility
        code, _, stderr = await _run(
            "afconvert", "-f", "WAVE", "-d", "LEI16", str(aiff_path), str(output_path)
        )
        if code != 0:
            raise ProviderRejectionError(
                f"Audio conversion failed with code {code}: {stderr}", code
            )

    async def _synthesize_espeak(self, request: SynthesisRequest, output_path: Path) -> None:
        if shutil.which("espeak") is None:
            raise ProviderRejectionError(
                "espeak not found. Install it with: sudo apt-get install espeak"
            )

        rate = int(ESPEAK_BASE_RATE * request.parameters.speed)
        cmd = ["espeak", "-w", str(output_path), "-s", str(rate)]
        voice = self._voice_arg(request)
        if voice:
            cmd.extend(["-v", voice])
        cmd.append(request.text)

        code, _, stderr = await _run(*cmd)
        if code != 0:
            raise ProviderRejectionError(f"System TTS failed with code {code}: {stderr}", code)

    async def list_voices(self) -> list[VoiceInfo]:
        """List available system voices.

        Falls back to a single default voice when the engine lists nothing.
        """
        voices: list[VoiceInfo] = []

        if self.platform == "Darwin" and shutil.which("say"):
            code, stdout, _ = await _run("say", "-v", "?")
            if code == 0:
                # Format: "Voice Name     Language  # Description"
                for line in stdout.strip().splitlines():
                    parts = line.split("#")[0].split()
                    if len(parts) >= 2:
                        voices.append(
                            VoiceInfo(
                                voice_id=parts[0],
                                name=parts[0],
                                language=parts[-1].replace("_", "-"),
                                provider=self.name,
                            )
                        )
            else:
                logger.error("Failed to list macOS voices")

        elif self.platform == "Linux" and shutil.which("espeak"):
            code, stdout, _ = await _run("espeak", "--voices")
            if code == 0:
                # Columns: Pty Language Age/Gender VoiceName File Other
                for line in stdout.strip().splitlines()[1:]:
                    parts = line.split()
                    if len(parts) >= 4:
                        voices.append(
                            VoiceInfo(
                                voice_id=parts[1],
                                name=parts[3],
                                language=parts[1],
                                provider=self.name,
                            )
                        )
        else:
            logger.warning("No system speech engine found - using default voice")

        return voices or [DEFAULT_VOICE]
