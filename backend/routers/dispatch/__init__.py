"""
Message Dispatch - Inbound Telegram message handling.

Components:
- models: Pydantic models for webhook updates
- decision: Per-message outcome variants
- pipeline: DispatchPipeline (command routing, TTS orchestration, cleanup)
"""

from .models import TelegramUpdate, TelegramMessage, TelegramChat, TelegramUser
from .decision import (
    DispatchDecision,
    Command,
    MaintenanceBlocked,
    NoCredential,
    UsageHint,
    TooLong,
    TtsRequest,
    Ignored,
    Failed,
)
from .pipeline import DispatchPipeline, SpeechForm, DIRECT_FORM, ATTRIBUTED_FORM

__all__ = [
    "TelegramUpdate",
    "TelegramMessage",
    "TelegramChat",
    "TelegramUser",
    "DispatchDecision",
    "Command",
    "MaintenanceBlocked",
    "NoCredential",
    "UsageHint",
    "TooLong",
    "TtsRequest",
    "Ignored",
    "Failed",
    "DispatchPipeline",
    "SpeechForm",
    "DIRECT_FORM",
    "ATTRIBUTED_FORM",
]
