"""
Telegram Client - Async wrapper over the Telegram Bot API.

Only the calls the bot needs: send/delete messages, send voice notes,
chat actions and webhook registration. Every call goes through _call(),
which turns transport failures and ``{"ok": false}`` replies into
PlatformApiError.

Usage:
    from services.telegram_client import TelegramClient

    telegram = TelegramClient(token)
    msg = await telegram.send_message(chat_id, "hello")
    await telegram.delete_message(chat_id, msg["message_id"])
    await telegram.aclose()
"""

import asyncio
import logging
from pathlib import Path
from typing import Any, Dict, Optional

import httpx

from errors import PlatformApiError

logger = logging.getLogger(__name__)


class TelegramClient:
    """Bot API client backed by a shared httpx.AsyncClient."""

    def __init__(
        self,
        token: str,
        api_base: str = "https://api.telegram.org",
        timeout: float = 30.0,
        http: Optional[httpx.AsyncClient] = None,
    ):
        """
        Args:
            token: Bot token from @BotFather
            api_base: Bot API root (override for a local Bot API server)
            timeout: Request timeout in seconds
            http: Pre-built client (tests inject one with a MockTransport)
        """
        self._base_url = f"{api_base.rstrip('/')}/bot{token}/"
        self._http = http or httpx.AsyncClient(timeout=timeout)

    async def aclose(self) -> None:
        await self._http.aclose()

    async def _call(
        self,
        method: str,
        payload: Optional[Dict[str, Any]] = None,
        files: Optional[Dict[str, Any]] = None,
    ) -> Any:
        """
        Invoke a Bot API method and return its ``result``.

        Raises:
            PlatformApiError: network failure, non-JSON reply or ok=false
        """
        url = self._base_url + method
        try:
            if files:
                resp = await self._http.post(url, data=payload or {}, files=files)
            else:
                resp = await self._http.post(url, json=payload or {})
        except httpx.HTTPError as e:
            raise PlatformApiError(
                f"{method} request failed",
                details=str(e) or type(e).__name__,
                method=method,
                error_type="network",
            ) from e

        try:
            body = resp.json()
        except ValueError:
            raise PlatformApiError(
                f"{method} returned a non-JSON response",
                method=method,
                status_code=resp.status_code,
            )

        if not body.get("ok"):
            raise PlatformApiError(
                f"{method} failed",
                details=body.get("description") or f"HTTP {resp.status_code}",
                method=method,
                status_code=body.get("error_code") or resp.status_code,
            )
        return body.get("result")

    # =========================================================================
    # Messages
    # =========================================================================

    async def send_message(self, chat_id: int, text: str, **options: Any) -> Dict[str, Any]:
        """Send a text message. Returns the sent Message object."""
        return await self._call("sendMessage", {"chat_id": chat_id, "text": text, **options})

    async def delete_message(self, chat_id: int, message_id: int) -> bool:
        return await self._call("deleteMessage", {"chat_id": chat_id, "message_id": message_id})

    async def send_voice(self, chat_id: int, audio_path: Path, caption: Optional[str] = None) -> Dict[str, Any]:
        """Upload a local audio file as a voice note."""
        audio_path = Path(audio_path)
        audio = await asyncio.to_thread(audio_path.read_bytes)

        payload: Dict[str, Any] = {"chat_id": str(chat_id)}
        if caption:
            payload["caption"] = caption
        files = {"voice": (audio_path.name, audio, "audio/mpeg")}
        return await self._call("sendVoice", payload, files=files)

    async def send_chat_action(self, chat_id: int, action: str = "typing") -> bool:
        return await self._call("sendChatAction", {"chat_id": chat_id, "action": action})

    # =========================================================================
    # Bot identity & webhook
    # =========================================================================

    async def get_me(self) -> Dict[str, Any]:
        """Return the bot's own User object (used for /cmd@BotName matching)."""
        return await self._call("getMe")

    async def set_webhook(self, url: str, secret_token: Optional[str] = None) -> bool:
        payload: Dict[str, Any] = {"url": url, "allowed_updates": ["message"]}
        if secret_token:
            payload["secret_token"] = secret_token
        return await self._call("setWebhook", payload)

    async def delete_webhook(self) -> bool:
        return await self._call("deleteWebhook")
