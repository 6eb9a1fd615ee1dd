"""
Shared pytest fixtures for the TTS relay bot tests.

Collaborators (Telegram, ElevenLabs) are replaced by in-memory fakes that
record every call, so tests assert on the exact outbound traffic.
"""

from pathlib import Path

import pytest

from config import BotSettings
from errors import PlatformApiError
from routers.commands import build_default_router
from routers.dispatch import DispatchPipeline, TelegramMessage
from services.credentials import CredentialAllocator
from services.state_store import StateStore

ADMIN_ID = 1
USER_ID = 42
BOT_USERNAME = "tts_test_bot"


class FakeTelegram:
    """Records Bot API calls. Methods named in `fail` raise PlatformApiError."""

    def __init__(self):
        self.calls = []
        self.fail = set()
        self._next_message_id = 1000

    def _record(self, method, **kwargs):
        self.calls.append((method, kwargs))
        if method in self.fail:
            raise PlatformApiError(f"{method} failed", method=method, status_code=400)

    async def send_message(self, chat_id, text, **options):
        self._record("send_message", chat_id=chat_id, text=text, **options)
        self._next_message_id += 1
        return {"message_id": self._next_message_id, "chat": {"id": chat_id}, "text": text}

    async def delete_message(self, chat_id, message_id):
        self._record("delete_message", chat_id=chat_id, message_id=message_id)
        return True

    async def send_voice(self, chat_id, audio_path, caption=None):
        self._record("send_voice", chat_id=chat_id, audio_path=Path(audio_path), caption=caption)
        return {"message_id": 9999}

    async def send_chat_action(self, chat_id, action="typing"):
        self._record("send_chat_action", chat_id=chat_id, action=action)
        return True

    async def get_me(self):
        self._record("get_me")
        return {"id": 777, "is_bot": True, "username": BOT_USERNAME}

    async def set_webhook(self, url, secret_token=None):
        self._record("set_webhook", url=url, secret_token=secret_token)
        return True

    async def delete_webhook(self):
        self._record("delete_webhook")
        return True

    async def aclose(self):
        pass

    # Inspection helpers

    def methods(self):
        return [method for method, _ in self.calls]

    def texts(self):
        return [kwargs["text"] for method, kwargs in self.calls if method == "send_message"]

    def calls_to(self, method):
        return [kwargs for m, kwargs in self.calls if m == method]


class FakeSynthesizer:
    """Writes a small fake MP3 per call; raises `error` when set."""

    def __init__(self, tmp_dir: Path):
        self.tmp_dir = tmp_dir
        self.calls = []
        self.paths = []
        self.error = None

    async def synthesize(self, text, voice_id, api_key):
        self.calls.append((text, voice_id, api_key))
        if self.error is not None:
            raise self.error
        path = self.tmp_dir / f"ttsbot-{len(self.calls)}.mp3"
        path.write_bytes(b"ID3fake-audio")
        self.paths.append(path)
        return path

    async def aclose(self):
        pass


@pytest.fixture
def settings(tmp_path):
    """Settings with no natural delay and a throwaway state file."""
    return BotSettings(
        bot_token="123:test-token",
        webhook_url="https://bot.example.com",
        webhook_secret="",
        admin_ids=[ADMIN_ID],
        initial_api_keys=[],
        state_file=tmp_path / "state" / "bot_state.json",
        audio_tmp_dir=tmp_path / "audio",
        natural_delay_min_ms=0,
        natural_delay_max_ms=0,
    )


@pytest.fixture
def store(settings):
    return StateStore(settings.state_file, env_admins=settings.admin_ids)


@pytest.fixture
def allocator(store):
    return CredentialAllocator(store)


@pytest.fixture
def telegram():
    return FakeTelegram()


@pytest.fixture
def synthesizer(tmp_path):
    audio_dir = tmp_path / "synth"
    audio_dir.mkdir()
    return FakeSynthesizer(audio_dir)


@pytest.fixture
def pipeline(store, allocator, telegram, synthesizer, settings):
    return DispatchPipeline(
        store=store,
        allocator=allocator,
        commands=build_default_router(bot_username=BOT_USERNAME),
        telegram=telegram,
        synthesizer=synthesizer,
        settings=settings,
    )


@pytest.fixture
def make_message():
    """Factory for inbound TelegramMessage objects."""

    def _make(
        text,
        user_id=USER_ID,
        chat_id=100,
        chat_type="private",
        username="alice",
        first_name="Alice",
        message_id=1,
    ):
        sender = {"id": user_id, "is_bot": False, "first_name": first_name}
        if username:
            sender["username"] = username
        return TelegramMessage.model_validate(
            {
                "message_id": message_id,
                "chat": {"id": chat_id, "type": chat_type},
                "from": sender,
                "text": text,
            }
        )

    return _make
