"""
General commands available to everyone: /start, /help, /myvoice.
"""

from .base import CommandContext, CommandHandler

WELCOME_TEXT = (
    "🎙️ ElevenLabs TTS Bot\n\n"
    "Kirim pesan dengan awalan:\n"
    "• tts <teks> — ubah teks jadi suara\n"
    "• voiceme <teks> — (grup) kirim suara atas namamu, pesan aslimu dihapus\n\n"
    "Maksimal {max_len} karakter."
)


class StartHandler(CommandHandler):
    verbs = ("start",)
    admin_only = False
    usage = "/start"
    description = "Show how to use the bot"

    async def execute(self, ctx: CommandContext) -> None:
        await ctx.reply(WELCOME_TEXT.format(max_len=ctx.settings.max_text_length))


class HelpHandler(CommandHandler):
    verbs = ("help",)
    admin_only = False
    usage = "/help"
    description = "List commands"

    async def execute(self, ctx: CommandContext) -> None:
        lines = [WELCOME_TEXT.format(max_len=ctx.settings.max_text_length), ""]
        handlers = ctx.router.get_handlers() if ctx.router else []
        for handler in handlers:
            if handler.admin_only and not ctx.is_admin:
                continue
            lines.append(f"{handler.usage} — {handler.description}")
        await ctx.reply("\n".join(lines).rstrip())


class MyVoiceHandler(CommandHandler):
    verbs = ("myvoice",)
    admin_only = False
    usage = "/myvoice"
    description = "Show the voice used for your messages"

    async def execute(self, ctx: CommandContext) -> None:
        default = ctx.settings.default_voice_id
        voice = ctx.store.state.voice_for(ctx.user_id, default)
        suffix = " (default)" if voice == default else ""
        await ctx.reply(f"🗣️ Your voice: {voice}{suffix}")
