"""Unit tests for MiniMaxTTSProvider request building and error mapping."""

import json
import sys
from pathlib import Path

import httpx
import pytest

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent.parent / "src"))

from ttsreader.errors import ConnectivityError, ProviderAuthError, ProviderRejectionError
from ttsreader.providers.minimax import MiniMaxTTSProvider
from ttsreader.tts.models import SynthesisParameters, SynthesisRequest, VoiceInfo

VOICE = VoiceInfo(voice_id="female-shaonv", name="少女音色", language="zh-CN")


def make_provider(handler) -> MiniMaxTTSProvider:
    return MiniMaxTTSProvider(
        api_key="test_key", group_id="group-1", transport=httpx.MockTransport(handler)
    )


def json_audio(audio: bytes, code: int = 0, msg: str = "success") -> httpx.Response:
    return httpx.Response(
        200,
        json={
            "data": {"audio": audio.hex(), "status": 2},
            "base_resp": {"status_code": code, "status_msg": msg},
        },
    )


class TestMiniMaxConfiguration:
    """Test configuration handling."""

    def test_from_config_reads_credentials(self) -> None:
        """Test apiKey and groupId come from the config mapping."""
        provider = MiniMaxTTSProvider.from_config(
            {"apiKey": "k", "groupId": "g"}, timeout=5.0
        )

        assert provider.is_configured()
        assert provider.timeout == 5.0

    def test_blank_group_id_not_configured(self) -> None:
        """Test both credentials are required."""
        assert not MiniMaxTTSProvider(api_key="k", group_id=" ").is_configured()

    def test_parameter_ranges(self) -> None:
        """Test the documented speed, volume and pitch ranges."""
        assert MiniMaxTTSProvider.parameter_ranges == {
            "speed": (0.5, 2.0),
            "volume": (0.0, 2.0),
            "pitch": (-12.0, 12.0),
        }


class TestMiniMaxSynthesize:
    """Test synthesize against a mock transport."""

    @pytest.mark.asyncio
    async def test_request_shape_and_hex_decoding(self) -> None:
        """Test the request body, auth header, group id and decoded audio."""
        captured: dict = {}

        def handler(request: httpx.Request) -> httpx.Response:
            captured["url"] = request.url
            captured["auth"] = request.headers["Authorization"]
            captured["body"] = json.loads(request.content)
            return json_audio(b"\xff\xfbmp3")

        provider = make_provider(handler)
        request = SynthesisRequest(
            text="你好",
            voice=VOICE,
            parameters=SynthesisParameters(
                speed=1.2, volume=0.8, pitch=2, pronunciation_dict={"处理": "chu3 li3"}
            ),
        )

        audio = await provider.synthesize(request)

        assert audio == b"\xff\xfbmp3"
        assert captured["url"].path == "/v1/t2a_v2"
        assert captured["url"].params["GroupId"] == "group-1"
        assert captured["auth"] == "Bearer test_key"
        body = captured["body"]
        assert body["model"] == "speech-2.5-hd-preview"
        assert body["text"] == "你好"
        assert body["voice_setting"] == {
            "voice_id": "female-shaonv",
            "speed": 1.2,
            "vol": 0.8,
            "pitch": 2,
            "emotion": "neutral",
        }
        assert body["pronunciation_dict"] == {"tone": ["处理/chu3 li3"]}
        assert body["audio_setting"] == {
            "sample_rate": 32000,
            "bitrate": 128000,
            "format": "mp3",
            "channel": 1,
        }

    @pytest.mark.asyncio
    async def test_non_json_body_is_raw_audio(self) -> None:
        """Test binary responses are returned as-is."""
        provider = make_provider(
            lambda request: httpx.Response(
                200, content=b"RAWMP3", headers={"content-type": "audio/mpeg"}
            )
        )

        assert await provider.synthesize(SynthesisRequest("hi", VOICE)) == b"RAWMP3"

    @pytest.mark.asyncio
    async def test_application_error_code_is_rejection(self) -> None:
        """Test a non-zero base_resp status code is a rejection."""
        provider = make_provider(lambda request: json_audio(b"", 1004, "auth failed"))

        with pytest.raises(ProviderRejectionError, match="1004 - auth failed"):
            await provider.synthesize(SynthesisRequest("hi", VOICE))

    @pytest.mark.asyncio
    async def test_http_401_is_auth_error(self) -> None:
        """Test 401 maps to ProviderAuthError."""
        provider = make_provider(lambda request: httpx.Response(401, text="bad key"))

        with pytest.raises(ProviderAuthError) as exc_info:
            await provider.synthesize(SynthesisRequest("hi", VOICE))

        assert exc_info.value.status_code == 401

    @pytest.mark.asyncio
    async def test_http_500_is_rejection_with_status(self) -> None:
        """Test server errors keep their status code."""
        provider = make_provider(lambda request: httpx.Response(500, text="oops"))

        with pytest.raises(ProviderRejectionError) as exc_info:
            await provider.synthesize(SynthesisRequest("hi", VOICE))

        assert exc_info.value.status_code == 500
        assert not isinstance(exc_info.value, ProviderAuthError)

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "error", [httpx.ConnectError("refused"), httpx.ReadTimeout("slow")]
    )
    async def test_transport_errors_are_connectivity(self, error) -> None:
        """Test refused connections and timeouts map to ConnectivityError."""

        def handler(request: httpx.Request) -> httpx.Response:
            raise error

        with pytest.raises(ConnectivityError):
            await make_provider(handler).synthesize(SynthesisRequest("hi", VOICE))


class TestMiniMaxVoices:
    """Test the fixed voice catalogue."""

    @pytest.mark.asyncio
    async def test_eight_fixed_voices(self) -> None:
        """Test six Chinese and two English voices are listed."""
        voices = await MiniMaxTTSProvider(api_key="k", group_id="g").list_voices()

        assert len(voices) == 8
        assert sum(v.language == "zh-CN" for v in voices) == 6
        assert {v.voice_id for v in voices if v.language == "en-US"} == {
            "female-english",
            "male-english",
        }
        assert all(v.provider == "minimax" for v in voices)
