"""
Pydantic models for inbound Telegram updates.

Only the fields the dispatch pipeline reads are declared; everything else
in the update is ignored.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

GROUP_CHAT_TYPES = frozenset({"group", "supergroup"})


class TelegramUser(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: int
    is_bot: bool = False
    first_name: Optional[str] = None
    username: Optional[str] = None

    @property
    def mention(self) -> str:
        """@username, else first name, else 'User'."""
        if self.username:
            return f"@{self.username}"
        return self.first_name or "User"

    @property
    def display_name(self) -> str:
        """First name, else username, else 'User'."""
        return self.first_name or self.username or "User"


class TelegramChat(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: int
    type: str = "private"
    title: Optional[str] = None

    @property
    def is_group(self) -> bool:
        return self.type in GROUP_CHAT_TYPES


class TelegramMessage(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    message_id: int
    chat: TelegramChat
    from_user: Optional[TelegramUser] = Field(default=None, alias="from")
    text: Optional[str] = None


class TelegramUpdate(BaseModel):
    """Webhook delivery. Non-message updates carry message=None."""

    model_config = ConfigDict(extra="ignore")

    update_id: int
    message: Optional[TelegramMessage] = None
