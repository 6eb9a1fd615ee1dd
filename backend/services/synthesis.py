"""
Synthesis Client - ElevenLabs text-to-speech.

Turns (text, voice id, API key) into an MP3 file on local disk. The caller
owns the returned file and must delete it once it has been delivered.

API:
    POST {base}/v1/text-to-speech/{voice_id}
    headers: xi-api-key, Accept: audio/mpeg
    body:    {"text", "model_id", "voice_settings"}
"""

import asyncio
import logging
import os
import tempfile
import time
from pathlib import Path
from typing import Any, Dict, Optional

import httpx

from errors import SynthesisError
from logging_config import log_tts

logger = logging.getLogger(__name__)

TEMP_PREFIX = "ttsbot-"

DEFAULT_VOICE_SETTINGS = {
    "stability": 0.5,
    "similarity_boost": 0.75,
}


def _error_detail(resp: httpx.Response) -> str:
    """Pull a readable reason out of an ElevenLabs error body."""
    try:
        body = resp.json()
    except ValueError:
        return resp.text[:200] or f"HTTP {resp.status_code}"

    detail = body.get("detail") if isinstance(body, dict) else None
    if isinstance(detail, dict):
        return detail.get("message") or detail.get("status") or f"HTTP {resp.status_code}"
    if isinstance(detail, str):
        return detail
    return f"HTTP {resp.status_code}"


class ElevenLabsSynthesizer:
    """Async ElevenLabs client writing audio to temporary files."""

    def __init__(
        self,
        base_url: str = "https://api.elevenlabs.io",
        model_id: str = "eleven_multilingual_v2",
        timeout: float = 60.0,
        tmp_dir: Optional[Path] = None,
        voice_settings: Optional[Dict[str, Any]] = None,
        http: Optional[httpx.AsyncClient] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.model_id = model_id
        self.tmp_dir = Path(tmp_dir) if tmp_dir else None
        self.voice_settings = voice_settings or dict(DEFAULT_VOICE_SETTINGS)
        self._http = http or httpx.AsyncClient(timeout=timeout)

    async def aclose(self) -> None:
        await self._http.aclose()

    def _write_temp(self, audio: bytes) -> Path:
        if self.tmp_dir:
            self.tmp_dir.mkdir(parents=True, exist_ok=True)
        fd, path = tempfile.mkstemp(prefix=TEMP_PREFIX, suffix=".mp3", dir=self.tmp_dir)
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(audio)
        except OSError:
            os.unlink(path)
            raise
        return Path(path)

    async def synthesize(self, text: str, voice_id: str, api_key: str) -> Path:
        """
        Generate speech and return the path of the temporary MP3.

        Raises:
            SynthesisError: provider rejected the request, timed out or
                returned an empty body
        """
        url = f"{self.base_url}/v1/text-to-speech/{voice_id}"
        headers = {
            "xi-api-key": api_key,
            "Accept": "audio/mpeg",
            "Content-Type": "application/json",
        }
        payload = {
            "text": text,
            "model_id": self.model_id,
            "voice_settings": self.voice_settings,
        }

        log_tts(logger, "start", voice_id=voice_id, chars=len(text))
        start = time.time()
        try:
            resp = await self._http.post(url, json=payload, headers=headers)
        except httpx.TimeoutException as e:
            log_tts(logger, "failed", voice_id=voice_id, duration=time.time() - start)
            raise SynthesisError("Voice provider timed out", error_type="timeout") from e
        except httpx.HTTPError as e:
            log_tts(logger, "failed", voice_id=voice_id, duration=time.time() - start)
            raise SynthesisError(f"Voice provider unreachable: {e}") from e

        if resp.status_code != 200:
            log_tts(logger, "failed", voice_id=voice_id, duration=time.time() - start)
            raise SynthesisError(_error_detail(resp), status_code=resp.status_code)

        if not resp.content:
            log_tts(logger, "failed", voice_id=voice_id, duration=time.time() - start)
            raise SynthesisError("Voice provider returned empty audio")

        path = await asyncio.to_thread(self._write_temp, resp.content)
        log_tts(logger, "end", voice_id=voice_id, duration=time.time() - start)
        return path
