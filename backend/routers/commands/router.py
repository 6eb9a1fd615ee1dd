"""
Command Router - Recognizes slash commands and delegates to handlers.

The router only does recognition and delegation. It implements no business
rules and does not check authorization; handlers do both.

Syntax: ``/verb[@BotName] [args...]``. Verbs are matched case-insensitively.
"""

import logging
import re
from typing import Dict, List, Optional

from errors import BotError, format_error_for_chat, log_error
from logging_config import log_command
from .base import CommandContext, CommandHandler, CommandInvocation

logger = logging.getLogger(__name__)

COMMAND_PATTERN = re.compile(r"^/([A-Za-z0-9_]+)(?:@([A-Za-z0-9_]+))?(?:\s+(.*))?$", re.DOTALL)


class CommandRouter:
    """
    Routes commands to the injected handler table.

    Usage:
        router = CommandRouter(bot_username="my_tts_bot")
        router.register(AddKeyHandler())

        invocation = router.classify("/addkey sk_123")
        if invocation:
            await router.dispatch(ctx)
    """

    def __init__(self, bot_username: Optional[str] = None):
        self._handlers: Dict[str, CommandHandler] = {}
        self._bot_username = bot_username.lower().lstrip("@") if bot_username else None

    def register(self, handler: CommandHandler) -> None:
        """Register a handler under every verb it declares."""
        for verb in handler.verbs:
            self._handlers[verb.lower()] = handler
        logger.debug(f"Registered command handler: {handler.name} ({', '.join(handler.verbs)})")

    def get_handlers(self) -> List[CommandHandler]:
        """Distinct registered handlers in registration order."""
        seen: List[CommandHandler] = []
        for handler in self._handlers.values():
            if handler not in seen:
                seen.append(handler)
        return seen

    def classify(self, text: Optional[str]) -> Optional[CommandInvocation]:
        """
        Recognize command syntax.

        Returns None for anything that is not a command, including
        commands addressed to a different bot (``/help@OtherBot``).
        """
        if not text:
            return None
        match = COMMAND_PATTERN.match(text.strip())
        if not match:
            return None

        verb, addressee, rest = match.groups()
        if addressee and self._bot_username and addressee.lower() != self._bot_username:
            return None
        return CommandInvocation(verb=verb.lower(), raw_args=(rest or "").strip())

    async def dispatch(self, ctx: CommandContext) -> bool:
        """
        Run the handler for ctx.invocation.

        Validation/not-found errors raised by the handler are reported to
        the invoking chat. Returns False if no handler knows the verb.
        """
        verb = ctx.invocation.verb
        handler = self._handlers.get(verb)
        if handler is None:
            logger.info(f"Unknown command /{verb} from {ctx.user_id}")
            if ctx.is_admin:
                await ctx.reply(f"❓ Unknown command /{verb}. Try /help")
            return False

        log_command(logger, verb, user=ctx.user_id, chat=ctx.chat_id)
        if ctx.router is None:
            ctx.router = self
        try:
            await handler.handle(ctx)
        except BotError as e:
            log_error(logger, e, context=f"/{verb}", include_traceback=False)
            await ctx.reply(format_error_for_chat(e))
        return True
