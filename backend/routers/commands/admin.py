"""
Administration commands: /maintenance, /addadmin, /removeadmin, /status.
"""

from errors import ValidationError
from services.credentials import mask_credential
from .base import CommandContext, CommandHandler, parse_user_id

_ON = {"on", "true", "1", "yes", "enable"}
_OFF = {"off", "false", "0", "no", "disable"}


class MaintenanceHandler(CommandHandler):
    verbs = ("maintenance",)
    usage = "/maintenance <on|off>"
    description = "Toggle maintenance mode (blocks all TTS requests)"

    async def execute(self, ctx: CommandContext) -> None:
        args = ctx.invocation.args
        if not args:
            # No argument: flip
            enabled = not ctx.store.state.maintenance
        else:
            value = args[0].lower()
            if value in _ON:
                enabled = True
            elif value in _OFF:
                enabled = False
            else:
                raise ValidationError(
                    f"Invalid value '{args[0]}'",
                    details=f"Usage: {self.usage}",
                    parameter="mode",
                    expected="on or off",
                    received=args[0],
                )

        await ctx.store.set_maintenance(enabled)
        if enabled:
            await ctx.reply("🔧 Maintenance mode ON")
        else:
            await ctx.reply("✅ Maintenance mode OFF")


class AddAdminHandler(CommandHandler):
    verbs = ("addadmin",)
    usage = "/addadmin <user_id>"
    description = "Grant admin rights"

    async def execute(self, ctx: CommandContext) -> None:
        (raw,) = self.require_args(ctx, 1)
        user_id = parse_user_id(raw)
        if await ctx.store.add_admin(user_id):
            await ctx.reply(f"✅ {user_id} is now an admin")
        else:
            await ctx.reply(f"ℹ️ {user_id} is already an admin")


class RemoveAdminHandler(CommandHandler):
    verbs = ("removeadmin", "deladmin")
    usage = "/removeadmin <user_id>"
    description = "Revoke admin rights"

    async def execute(self, ctx: CommandContext) -> None:
        (raw,) = self.require_args(ctx, 1)
        user_id = parse_user_id(raw)
        await ctx.store.remove_admin(user_id)
        await ctx.reply(f"🗑️ {user_id} is no longer an admin")


class StatusHandler(CommandHandler):
    verbs = ("status",)
    usage = "/status"
    description = "Show bot state"

    async def execute(self, ctx: CommandContext) -> None:
        state = ctx.store.state
        next_key = ctx.allocator.peek()
        next_desc = f"#{state.rotation_cursor + 1} {mask_credential(next_key)}" if next_key else "none"
        await ctx.reply(
            "📊 Status\n"
            f"Maintenance: {'ON' if state.maintenance else 'OFF'}\n"
            f"API keys: {ctx.allocator.pool_size} (next: {next_desc})\n"
            f"Admins: {len(state.admins)}\n"
            f"Custom voices: {len(state.user_voices)}\n"
            f"Default voice: {ctx.settings.default_voice_id}"
        )
