"""
Error Handling Module

Provides standardized error codes, exceptions, and response builders
for consistent error handling across the bot.

Usage:
    from errors import (
        # Error codes
        ErrorCode,

        # Exceptions
        BotError,
        PersistenceCorruptError,
        ValidationError,
        NotFoundError,
        NoCredentialAvailableError,
        SynthesisError,
        PlatformApiError,
        ConfigError,

        # Response builders
        error_response,
        format_error_for_chat,

        # Helpers
        best_effort,
        log_error,
    )

Example:
    from errors import NotFoundError, ValidationError

    async def remove_credential(self, key):
        if not key.strip():
            raise ValidationError(
                "API key must not be empty",
                parameter="key",
            )
        if key not in self.state.credentials:
            raise NotFoundError(
                "API key not found",
                resource_type="credential",
            )
"""

from .codes import ErrorCode
from .exceptions import (
    BotError,
    PersistenceCorruptError,
    ValidationError,
    NotFoundError,
    NoCredentialAvailableError,
    SynthesisError,
    PlatformApiError,
    ConfigError,
)
from .response import (
    error_response,
    format_error_for_chat,
)
from .handlers import (
    best_effort,
    log_error,
)

__all__ = [
    # Error codes
    "ErrorCode",
    # Exceptions
    "BotError",
    "PersistenceCorruptError",
    "ValidationError",
    "NotFoundError",
    "NoCredentialAvailableError",
    "SynthesisError",
    "PlatformApiError",
    "ConfigError",
    # Response builders
    "error_response",
    "format_error_for_chat",
    # Helpers
    "best_effort",
    "log_error",
]
