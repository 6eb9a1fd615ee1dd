"""
Dispatch Pipeline - Routes one inbound chat message to a command or to TTS.

Per message, terminal on the first matching branch:
1. No text                       -> Ignored
2. Slash command                 -> CommandRouter
3. No tts/voiceme trigger        -> Ignored (unrelated chat gets no reply)
4. Maintenance mode              -> maintenance notice
5. Empty key pool                -> no-credential notice
6. Voice lookup, text validation -> usage hint / length notice
7. typing + natural delay, status message, synthesis, voice note

Trigger recognition (3) runs before the maintenance and key-pool gates (4, 5)
on purpose: unrelated chat never gets a maintenance or no-credential notice.

Status messages and temporary audio files are released on every exit path
(try/finally); a failed release is logged, never raised. Any unexpected
error is caught per message and answered with a generic notice, so one bad
update never affects the others.
"""

import asyncio
import logging
import random
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Optional, Set

from errors import BotError, NoCredentialAvailableError, SynthesisError, best_effort, log_error
from logging_config import log_event_in
from routers.commands import CommandContext, CommandRouter
from .decision import (
    Command,
    DispatchDecision,
    Failed,
    Ignored,
    MaintenanceBlocked,
    NoCredential,
    TooLong,
    TtsRequest,
    UsageHint,
)
from .models import TelegramChat, TelegramMessage

if TYPE_CHECKING:
    from config import BotSettings
    from services.credentials import CredentialAllocator
    from services.state_store import StateStore
    from services.synthesis import ElevenLabsSynthesizer
    from services.telegram_client import TelegramClient

logger = logging.getLogger(__name__)

# User-facing notices
MAINTENANCE_NOTICE = "🔧 Bot sedang dalam maintenance mode."
NO_CREDENTIAL_NOTICE = "❌ Tidak ada API key yang tersedia. Hubungi admin."
USAGE_HINT = '❌ Masukkan teks setelah "{prefix}". Contoh: {prefix}Halo, apa kabar?'
TOO_LONG_NOTICE = "❌ Teks terlalu panjang. Maksimal {max_len} karakter."
GENERATING_STATUS = "🎙️ Generating audio..."
ANNOUNCE_STATUS = "{name}\n{mention} use voiceme!"
ATTRIBUTION_CAPTION = "{name}\n{mention}"
SYNTHESIS_FAILED_NOTICE = "❌ Error generating audio: {reason}"
SYNTHESIS_FAILED_FOR_NOTICE = "❌ Error generating audio for {mention}: {reason}"
GENERIC_FAILURE_NOTICE = "❌ Terjadi kesalahan. Coba lagi nanti."


@dataclass(frozen=True)
class SpeechForm:
    """A text trigger for synthesis.

    prefix includes its trailing space and is matched case-insensitively.
    """

    prefix: str
    group_only: bool = False
    attributed: bool = False

    def matches(self, text: str, chat: TelegramChat) -> bool:
        if self.group_only and not chat.is_group:
            return False
        return text.lower().startswith(self.prefix)


DIRECT_FORM = SpeechForm(prefix="tts ")
ATTRIBUTED_FORM = SpeechForm(prefix="voiceme ", group_only=True, attributed=True)


class DispatchPipeline:
    """
    Processes inbound messages against the shared state.

    Usage:
        pipeline = DispatchPipeline(store, allocator, commands, telegram, synthesizer, settings)
        pipeline.spawn(update.message)      # from the webhook, returns at once
        decision = await pipeline.process(message)   # inline (tests)
    """

    forms = (DIRECT_FORM, ATTRIBUTED_FORM)

    def __init__(
        self,
        store: "StateStore",
        allocator: "CredentialAllocator",
        commands: CommandRouter,
        telegram: "TelegramClient",
        synthesizer: "ElevenLabsSynthesizer",
        settings: "BotSettings",
    ):
        self.store = store
        self.allocator = allocator
        self.commands = commands
        self.telegram = telegram
        self.synthesizer = synthesizer
        self.settings = settings
        self._tasks: Set[asyncio.Task] = set()

    # =========================================================================
    # Task management
    # =========================================================================

    @property
    def in_flight(self) -> int:
        return len(self._tasks)

    def spawn(self, message: TelegramMessage) -> asyncio.Task:
        """Process a message in its own task; the caller does not wait."""
        task = asyncio.create_task(
            self.process(message),
            name=f"dispatch-{message.chat.id}-{message.message_id}",
        )
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def drain(self, timeout: float) -> None:
        """Wait up to timeout for in-flight messages, then cancel the rest."""
        if not self._tasks:
            return
        pending = set(self._tasks)
        logger.info(f"Waiting for {len(pending)} in-flight message(s)")
        _, still_pending = await asyncio.wait(pending, timeout=timeout)
        for task in still_pending:
            task.cancel()
        if still_pending:
            logger.warning(f"Cancelled {len(still_pending)} message(s) still in flight at shutdown")
            await asyncio.gather(*still_pending, return_exceptions=True)

    # =========================================================================
    # Processing
    # =========================================================================

    async def process(self, message: TelegramMessage) -> DispatchDecision:
        """Handle one message. Never raises (except on cancellation)."""
        try:
            return await self._process(message)
        except Exception as e:
            log_error(logger, e, context=f"dispatch chat={message.chat.id}")
            async with best_effort("send failure notice", logger):
                await self.telegram.send_message(message.chat.id, GENERIC_FAILURE_NOTICE)
            return Failed(error=str(e) or type(e).__name__)

    def match_form(self, text: str, chat: TelegramChat) -> Optional[SpeechForm]:
        for form in self.forms:
            if form.matches(text, chat):
                return form
        return None

    async def _process(self, message: TelegramMessage) -> DispatchDecision:
        text = message.text
        if not text:
            return Ignored(reason="no text")

        chat = message.chat
        user = message.from_user
        log_event_in(logger, text, chat=chat.id, user=user.id if user else None, type=chat.type)

        invocation = self.commands.classify(text)
        if invocation is not None:
            ctx = CommandContext(
                invocation=invocation,
                message=message,
                store=self.store,
                allocator=self.allocator,
                telegram=self.telegram,
                settings=self.settings,
                router=self.commands,
            )
            await self.commands.dispatch(ctx)
            return Command(name=invocation.verb, args=invocation.raw_args)

        form = self.match_form(text, chat)
        if form is None:
            return Ignored(reason="no trigger")

        state = self.store.state
        if state.maintenance:
            await self.telegram.send_message(chat.id, MAINTENANCE_NOTICE)
            return MaintenanceBlocked()

        try:
            api_key = await self.allocator.acquire()
        except NoCredentialAvailableError:
            logger.warning("TTS request refused: API key pool is empty")
            await self.telegram.send_message(chat.id, NO_CREDENTIAL_NOTICE)
            return NoCredential()

        voice_id = state.voice_for(user.id if user else None, self.settings.default_voice_id)

        body = text[len(form.prefix):].strip()
        if not body:
            await self.telegram.send_message(chat.id, USAGE_HINT.format(prefix=form.prefix))
            return UsageHint(prefix=form.prefix.strip())
        if len(body) > self.settings.max_text_length:
            await self.telegram.send_message(
                chat.id, TOO_LONG_NOTICE.format(max_len=self.settings.max_text_length)
            )
            return TooLong(length=len(body))

        request = TtsRequest(
            text=body,
            voice_id=voice_id,
            deletes_original=form.attributed,
            announce=form.attributed,
        )
        await self._fulfil(message, request, api_key)
        return request

    async def _fulfil(self, message: TelegramMessage, request: TtsRequest, api_key: str) -> bool:
        """Run steps typing -> delay -> status -> synthesis -> delivery. Returns True on delivery."""
        chat_id = message.chat.id
        user = message.from_user
        mention = user.mention if user else "User"
        name = user.display_name if user else "User"

        if request.deletes_original:
            async with best_effort("delete original message", logger):
                await self.telegram.delete_message(chat_id, message.message_id)

        async with best_effort("send typing indicator", logger):
            await self.telegram.send_chat_action(chat_id, "typing")
        await self._natural_delay()

        if request.announce:
            status_text = ANNOUNCE_STATUS.format(name=name, mention=mention)
        else:
            status_text = GENERATING_STATUS
        status = await self.telegram.send_message(chat_id, status_text)
        status_id: Optional[int] = status.get("message_id") if isinstance(status, dict) else None

        audio_path: Optional[Path] = None
        try:
            try:
                audio_path = await self.synthesizer.synthesize(request.text, request.voice_id, api_key)
            except Exception as e:
                log_error(logger, e, context="synthesis", include_traceback=not isinstance(e, SynthesisError))
                await self._clear_status(chat_id, status_id)
                status_id = None
                reason = e.message if isinstance(e, BotError) else (str(e) or type(e).__name__)
                if request.announce:
                    notice = SYNTHESIS_FAILED_FOR_NOTICE.format(mention=mention, reason=reason)
                else:
                    notice = SYNTHESIS_FAILED_NOTICE.format(reason=reason)
                await self.telegram.send_message(chat_id, notice)
                return False

            await self._clear_status(chat_id, status_id)
            status_id = None
            caption = ATTRIBUTION_CAPTION.format(name=name, mention=mention) if request.announce else None
            await self.telegram.send_voice(chat_id, audio_path, caption=caption)
            logger.info(f"Voice delivered to chat {chat_id} ({len(request.text)} chars)")
            return True
        finally:
            if status_id is not None:
                await self._clear_status(chat_id, status_id)
            if audio_path is not None:
                await self._discard_artifact(audio_path)

    async def _natural_delay(self) -> None:
        lo = self.settings.natural_delay_min_ms
        hi = self.settings.natural_delay_max_ms
        delay_ms = lo + random.random() * (hi - lo)
        await asyncio.sleep(delay_ms / 1000)

    async def _clear_status(self, chat_id: int, status_id: Optional[int]) -> None:
        if status_id is None:
            return
        async with best_effort("delete status message", logger):
            await self.telegram.delete_message(chat_id, status_id)

    async def _discard_artifact(self, path: Path) -> None:
        async with best_effort(f"remove temp audio {path.name}", logger):
            await asyncio.to_thread(Path(path).unlink, missing_ok=True)
