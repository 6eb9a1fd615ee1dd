"""
Per-user voice commands: /setvoice, /resetvoice.
"""

from .base import CommandContext, CommandHandler, parse_user_id


class SetVoiceHandler(CommandHandler):
    verbs = ("setvoice",)
    usage = "/setvoice [user_id] <voice_id>"
    description = "Set the ElevenLabs voice for a user (yourself if no id)"

    async def execute(self, ctx: CommandContext) -> None:
        args = ctx.invocation.args
        if len(args) >= 2:
            user_id = parse_user_id(args[0])
            voice_id = args[1]
        else:
            (voice_id,) = self.require_args(ctx, 1)
            user_id = ctx.user_id

        await ctx.store.set_user_voice(user_id, voice_id)
        await ctx.reply(f"✅ Voice for {user_id} set to {voice_id}")


class ResetVoiceHandler(CommandHandler):
    verbs = ("resetvoice",)
    usage = "/resetvoice <user_id>"
    description = "Return a user to the default voice"

    async def execute(self, ctx: CommandContext) -> None:
        (raw,) = self.require_args(ctx, 1)
        user_id = parse_user_id(raw)
        await ctx.store.reset_user_voice(user_id)
        await ctx.reply(f"✅ Voice for {user_id} reset to default ({ctx.settings.default_voice_id})")
