"""
Bot Services - State and external collaborators.

- state_store: Durable bot state (admins, key pool, voices, maintenance)
- credentials: Round-robin API key allocation
- telegram_client: Telegram Bot API client
- synthesis: ElevenLabs text-to-speech client
"""

from .state_store import BotState, StateStore
from .credentials import CredentialAllocator, mask_credential

__all__ = ["BotState", "StateStore", "CredentialAllocator", "mask_credential"]
