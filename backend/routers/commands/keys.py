"""
API key pool commands: /addkey, /removekey, /listkeys.
"""

import logging

from errors import best_effort
from services.credentials import mask_credential
from .base import CommandContext, CommandHandler

logger = logging.getLogger(__name__)


class AddKeyHandler(CommandHandler):
    verbs = ("addkey",)
    usage = "/addkey <api_key>"
    description = "Add an ElevenLabs API key to the pool"

    async def execute(self, ctx: CommandContext) -> None:
        # Keys must not linger in chat history
        async with best_effort("delete /addkey message", logger):
            await ctx.telegram.delete_message(ctx.chat_id, ctx.message.message_id)

        (key,) = self.require_args(ctx, 1)
        size = await ctx.store.add_credential(key)
        await ctx.reply(f"✅ API key {mask_credential(key)} added. Pool size: {size}")


class RemoveKeyHandler(CommandHandler):
    verbs = ("removekey", "delkey")
    usage = "/removekey <api_key | index>"
    description = "Remove an API key (by value or /listkeys position)"

    async def execute(self, ctx: CommandContext) -> None:
        (ref,) = self.require_args(ctx, 1)
        removed = await ctx.store.remove_credential(ref)
        remaining = len(ctx.store.state.credentials)
        await ctx.reply(f"🗑️ API key {mask_credential(removed)} removed. Pool size: {remaining}")


class ListKeysHandler(CommandHandler):
    verbs = ("listkeys", "keys")
    usage = "/listkeys"
    description = "Show the API key pool (masked)"

    async def execute(self, ctx: CommandContext) -> None:
        credentials = ctx.store.state.credentials
        if not credentials:
            await ctx.reply("📭 No API keys configured. Add one with /addkey")
            return

        cursor = ctx.store.state.rotation_cursor
        lines = [f"🔑 API keys ({len(credentials)}):"]
        for i, key in enumerate(credentials):
            marker = "  ← next" if i == cursor else ""
            lines.append(f"{i + 1}. {mask_credential(key)}{marker}")
        await ctx.reply("\n".join(lines))
