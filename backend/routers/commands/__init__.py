"""
Command Handlers - Administrative and user slash commands.

CommandRouter recognizes ``/verb args`` and delegates to the handler
registered for the verb. The verb table is injected, so new commands are
added by registering a handler, without touching the dispatch pipeline.

Default table:
    /start, /help, /myvoice            - everyone
    /status, /maintenance              - admins
    /addkey, /removekey, /listkeys     - admins
    /setvoice, /resetvoice             - admins
    /addadmin, /removeadmin            - admins
"""

from typing import Optional

from .base import CommandHandler, CommandContext, CommandInvocation, parse_user_id
from .router import CommandRouter
from .general import StartHandler, HelpHandler, MyVoiceHandler
from .keys import AddKeyHandler, RemoveKeyHandler, ListKeysHandler
from .admin import MaintenanceHandler, AddAdminHandler, RemoveAdminHandler, StatusHandler
from .voice import SetVoiceHandler, ResetVoiceHandler


def build_default_router(bot_username: Optional[str] = None) -> CommandRouter:
    """Create a router with the default verb table registered."""
    router = CommandRouter(bot_username=bot_username)
    for handler in (
        StartHandler(),
        HelpHandler(),
        MyVoiceHandler(),
        StatusHandler(),
        MaintenanceHandler(),
        AddKeyHandler(),
        RemoveKeyHandler(),
        ListKeysHandler(),
        SetVoiceHandler(),
        ResetVoiceHandler(),
        AddAdminHandler(),
        RemoveAdminHandler(),
    ):
        router.register(handler)
    return router


__all__ = [
    "CommandHandler",
    "CommandContext",
    "CommandInvocation",
    "CommandRouter",
    "build_default_router",
    "parse_user_id",
    "StartHandler",
    "HelpHandler",
    "MyVoiceHandler",
    "StatusHandler",
    "MaintenanceHandler",
    "AddKeyHandler",
    "RemoveKeyHandler",
    "ListKeysHandler",
    "SetVoiceHandler",
    "ResetVoiceHandler",
    "AddAdminHandler",
    "RemoveAdminHandler",
]
