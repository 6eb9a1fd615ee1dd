"""
Base Command Handler - Abstract base class for administrative commands.

Each handler knows:
1. Which verbs it answers to
2. Whether only admins may run it (checked here, not by the router)
3. How to execute against the state store
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, List, Optional, Tuple

from errors import ErrorCode, ValidationError

if TYPE_CHECKING:
    from config import BotSettings
    from routers.dispatch.models import TelegramMessage
    from services.credentials import CredentialAllocator
    from services.state_store import StateStore
    from services.telegram_client import TelegramClient
    from .router import CommandRouter

logger = logging.getLogger(__name__)

ADMIN_ONLY_NOTICE = "⛔ This command is for admins only."


@dataclass(frozen=True)
class CommandInvocation:
    """A recognized command: verb (lower-case, no slash) plus raw argument text."""

    verb: str
    raw_args: str = ""

    @property
    def args(self) -> List[str]:
        return self.raw_args.split()


@dataclass
class CommandContext:
    """Everything a handler may touch while executing one command."""

    invocation: CommandInvocation
    message: "TelegramMessage"
    store: "StateStore"
    allocator: "CredentialAllocator"
    telegram: "TelegramClient"
    settings: "BotSettings"
    router: Optional["CommandRouter"] = None

    @property
    def chat_id(self) -> int:
        return self.message.chat.id

    @property
    def user_id(self) -> Optional[int]:
        return self.message.from_user.id if self.message.from_user else None

    @property
    def is_admin(self) -> bool:
        return self.store.state.is_admin(self.user_id)

    async def reply(self, text: str, **options: Any) -> Any:
        return await self.telegram.send_message(self.chat_id, text, **options)


def parse_user_id(raw: str, parameter: str = "user_id") -> int:
    """Parse a Telegram user id argument."""
    try:
        return int(raw)
    except (TypeError, ValueError):
        raise ValidationError(
            f"'{raw}' is not a valid user id",
            details="User ids are numeric, e.g. 123456789",
            parameter=parameter,
            received=str(raw),
        )


class CommandHandler(ABC):
    """
    Abstract base class for command handlers.

    Handlers are registered on a CommandRouter under each of their verbs.
    Authorization is the handler's job: handle() refuses admin-only
    commands from non-admins before execute() runs.
    """

    verbs: Tuple[str, ...] = ()
    admin_only: bool = True
    usage: str = ""
    description: str = ""

    @property
    def name(self) -> str:
        return self.verbs[0] if self.verbs else "base"

    async def handle(self, ctx: CommandContext) -> None:
        if self.admin_only and not ctx.is_admin:
            logger.warning(f"Refused /{ctx.invocation.verb} from non-admin {ctx.user_id}")
            await ctx.reply(ADMIN_ONLY_NOTICE)
            return
        await self.execute(ctx)

    def require_args(self, ctx: CommandContext, count: int) -> List[str]:
        """Return the first `count` arguments or raise a usage error."""
        args = ctx.invocation.args
        if len(args) < count:
            raise ValidationError(
                f"Missing argument for /{ctx.invocation.verb}",
                details=f"Usage: {self.usage}" if self.usage else None,
                parameter="args",
                code=ErrorCode.VALIDATION_MISSING_PARAM,
            )
        return args[:count]

    @abstractmethod
    async def execute(self, ctx: CommandContext) -> None:
        """Run the command. BotError subclasses are reported to the chat by the router."""
        pass
