"""
Tests for the ElevenLabs client against an httpx MockTransport.
"""

import asyncio
import json
import os
from unittest.mock import patch

import httpx
import pytest

from errors import ErrorCode, SynthesisError
from services.synthesis import TEMP_PREFIX, ElevenLabsSynthesizer


def _synth(handler, tmp_path):
    http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return ElevenLabsSynthesizer(
        base_url="https://tts.example.com",
        model_id="eleven_multilingual_v2",
        tmp_dir=tmp_path / "audio",
        http=http,
    )


class TestSynthesize:
    def test_success_writes_temp_file(self, tmp_path):
        seen = {}

        def handler(request):
            seen["url"] = str(request.url)
            seen["headers"] = request.headers
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, content=b"ID3audio")

        synth = _synth(handler, tmp_path)
        path = asyncio.run(synth.synthesize("Halo", "voiceX", "sk_key"))

        assert seen["url"] == "https://tts.example.com/v1/text-to-speech/voiceX"
        assert seen["headers"]["xi-api-key"] == "sk_key"
        assert seen["headers"]["accept"] == "audio/mpeg"
        assert seen["body"] == {
            "text": "Halo",
            "model_id": "eleven_multilingual_v2",
            "voice_settings": {"stability": 0.5, "similarity_boost": 0.75},
        }
        assert path.parent == tmp_path / "audio"
        assert path.name.startswith(TEMP_PREFIX)
        assert path.suffix == ".mp3"
        assert path.read_bytes() == b"ID3audio"

    def test_provider_error_detail(self, tmp_path):
        def handler(request):
            return httpx.Response(
                401,
                json={"detail": {"status": "invalid_api_key", "message": "Invalid API key"}},
            )

        synth = _synth(handler, tmp_path)
        with pytest.raises(SynthesisError) as exc_info:
            asyncio.run(synth.synthesize("Halo", "voiceX", "bad"))
        assert exc_info.value.message == "Invalid API key"
        assert exc_info.value.code == ErrorCode.SYNTHESIS_UNAUTHORIZED

    def test_provider_plain_text_error(self, tmp_path):
        synth = _synth(lambda request: httpx.Response(502, text="Bad Gateway"), tmp_path)
        with pytest.raises(SynthesisError) as exc_info:
            asyncio.run(synth.synthesize("Halo", "voiceX", "k"))
        assert exc_info.value.message == "Bad Gateway"
        assert exc_info.value.context == {"status_code": 502}

    def test_timeout(self, tmp_path):
        def handler(request):
            raise httpx.ReadTimeout("timed out", request=request)

        synth = _synth(handler, tmp_path)
        with pytest.raises(SynthesisError) as exc_info:
            asyncio.run(synth.synthesize("Halo", "voiceX", "k"))
        assert exc_info.value.code == ErrorCode.SYNTHESIS_TIMEOUT

    def test_connection_error(self, tmp_path):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        synth = _synth(handler, tmp_path)
        with pytest.raises(SynthesisError) as exc_info:
            asyncio.run(synth.synthesize("Halo", "voiceX", "k"))
        assert exc_info.value.code == ErrorCode.SYNTHESIS_FAILED

    def test_empty_audio(self, tmp_path):
        synth = _synth(lambda request: httpx.Response(200, content=b""), tmp_path)
        with pytest.raises(SynthesisError):
            asyncio.run(synth.synthesize("Halo", "voiceX", "k"))
        assert not (tmp_path / "audio").exists() or not list((tmp_path / "audio").iterdir())


class TestTempFiles:
    def test_failed_write_removes_temp_file(self, tmp_path):
        real_fdopen = os.fdopen

        class FullDisk:
            def __init__(self, fd):
                self._f = real_fdopen(fd, "wb")

            def __enter__(self):
                return self

            def __exit__(self, *exc):
                self._f.close()

            def write(self, data):
                raise OSError(28, "No space left on device")

        synth = _synth(lambda request: httpx.Response(200, content=b"ID3"), tmp_path)
        with patch("services.synthesis.os.fdopen", side_effect=lambda fd, mode: FullDisk(fd)):
            with pytest.raises(OSError):
                synth._write_temp(b"ID3audio")
        assert list((tmp_path / "audio").iterdir()) == []
