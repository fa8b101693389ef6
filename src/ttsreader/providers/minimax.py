"""MiniMax text-to-speech provider implementation."""

import logging
from typing import Any, ClassVar, Mapping

import httpx

from ..errors import ProviderRejectionError, connectivity_error, rejection_error
from ..tts.models import SpeakerGender, SynthesisRequest, VoiceInfo
from .base import TTSProvider

logger = logging.getLogger(__name__)

BASE_URL = "https://api.minimaxi.com"
ENDPOINT = "/v1/t2a_v2"
MODEL = "speech-2.5-hd-preview"
DEFAULT_EMOTION = "neutral"
DEFAULT_TIMEOUT = 30.0

AUDIO_SETTING = {
    "sample_rate": 32000,
    "bitrate": 128000,
    "format": "mp3",
    "channel": 1,
}

VOICES = (
    ("male-qn-qingse", "青涩青年音色", "zh-CN", SpeakerGender.MALE),
    ("female-qn-jingying", "精英青年音色", "zh-CN", SpeakerGender.FEMALE),
    ("male-qn-jingying", "精英青年音色", "zh-CN", SpeakerGender.MALE),
    ("female-shaonv", "少女音色", "zh-CN", SpeakerGender.FEMALE),
    ("male-yingxiong", "英雄音色", "zh-CN", SpeakerGender.MALE),
    ("female-zhiyin", "知音音色", "zh-CN", SpeakerGender.FEMALE),
    ("female-english", "English Female", "en-US", SpeakerGender.FEMALE),
    ("male-english", "English Male", "en-US", SpeakerGender.MALE),
)


class MiniMaxTTSProvider(TTSProvider):
    """MiniMax T2A v2 provider.

    Audio comes back hex-encoded inside a JSON envelope whose base_resp
    carries an application status code; a zero code means success.
    """

    name = "minimax"
    required_fields: ClassVar[frozenset[str]] = frozenset({"apiKey", "groupId"})
    parameter_ranges: ClassVar[dict[str, tuple[float, float]]] = {
        "speed": (0.5, 2.0),
        "volume": (0.0, 2.0),
        "pitch": (-12.0, 12.0),
    }

    def __init__(
        self,
        api_key: str,
        group_id: str,
        base_url: str = BASE_URL,
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._api_key = api_key
        self._group_id = group_id
        self._base_url = base_url
        self.timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @classmethod
    def from_config(
        cls, config: Mapping[str, str], **options: Any
    ) -> "MiniMaxTTSProvider":
        return cls(
            api_key=config["apiKey"],
            group_id=config["groupId"],
            base_url=config.get("baseUrl") or BASE_URL,
            timeout=options.get("timeout", DEFAULT_TIMEOUT),
        )

    def is_configured(self) -> bool:
        return bool(
            self._api_key
            and self._api_key.strip()
            and self._group_id
            and self._group_id.strip()
        )

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

    def build_body(self, request: SynthesisRequest) -> dict[str, Any]:
        params = request.parameters
        body: dict[str, Any] = {
            "model": MODEL,
            "text": request.text,
            "stream": False,
            "voice_setting": {
                "voice_id": request.voice.voice_id,
                "speed": params.speed,
                "vol": params.volume,
                "pitch": int(params.pitch),
                "emotion": params.emotion or DEFAULT_EMOTION,
            },
            "audio_setting": dict(AUDIO_SETTING),
        }
        if params.pronunciation_dict:
            body["pronunciation_dict"] = {
                "tone": [f"{k}/{v}" for k, v in params.pronunciation_dict.items()]
            }
        return body

    async def synthesize(self, request: SynthesisRequest) -> bytes:
        try:
            response = await self._get_client().post(
                ENDPOINT,
                params={"GroupId": self._group_id},
                json=self.build_body(request),
            )
        except (httpx.NetworkError, httpx.TimeoutException) as e:
            raise connectivity_error(self.name, e) from e

        if not response.is_success:
            raise rejection_error(self.name, response.status_code, response.text)

        if "json" not in response.headers.get("content-type", ""):
            audio = response.content
        else:
            audio = self._decode_envelope(response)

        if not audio:
            raise ProviderRejectionError(
                "No audio data received from minimax", response.status_code
            )

        logger.debug(f"MiniMax returned {len(audio)} bytes for voice {request.voice.voice_id}")
        return audio

    def _decode_envelope(self, response: httpx.Response) -> bytes:
        try:
            payload = response.json()
        except ValueError as e:
            raise ProviderRejectionError(
                f"minimax returned malformed JSON: {e}", response.status_code, e
            ) from e

        base_resp = payload.get("base_resp") or {}
        code = base_resp.get("status_code", 0)
        if code:
            raise ProviderRejectionError(
                f"minimax API error: {code} - {base_resp.get('status_msg', '')}",
                response.status_code,
            )

        audio_hex = (payload.get("data") or {}).get("audio") or ""
        try:
            return bytes.fromhex(audio_hex)
        except ValueError as e:
            raise ProviderRejectionError(
                f"minimax returned undecodable audio: {e}", response.status_code, e
            ) from e

    async def list_voices(self) -> list[VoiceInfo]:
        return [
            VoiceInfo(
                voice_id=voice_id,
                name=name,
                language=language,
                gender=gender,
                provider=self.name,
            )
            for voice_id, name, language, gender in VOICES
        ]
