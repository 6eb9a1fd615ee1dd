"""
Error codes for the TTS relay bot.

Provides a standardized taxonomy of error codes organized by category.
Use these codes consistently across all error responses and chat notices.
"""

from enum import Enum


class ErrorCode(str, Enum):
    """Standardized error codes.

    Categories:
    - PERSISTENCE_*: State snapshot read/write errors
    - VALIDATION_*: Command argument validation errors
    - NOT_FOUND_*: Resource not found errors
    - CREDENTIAL_*: API key pool errors
    - SYNTHESIS_*: Voice provider errors
    - PLATFORM_*: Telegram Bot API errors
    - INTERNAL_*: Internal/unexpected errors
    """

    # Persistence errors (state snapshot)
    PERSISTENCE_CORRUPT = "PERSISTENCE_CORRUPT"
    PERSISTENCE_WRITE_FAILED = "PERSISTENCE_WRITE_FAILED"

    # Validation errors (command input checking)
    VALIDATION_MISSING_PARAM = "VALIDATION_MISSING_PARAM"
    VALIDATION_INVALID_INPUT = "VALIDATION_INVALID_INPUT"

    # Not found errors (missing resources)
    NOT_FOUND_CREDENTIAL = "NOT_FOUND_CREDENTIAL"
    NOT_FOUND_ADMIN = "NOT_FOUND_ADMIN"
    NOT_FOUND_VOICE = "NOT_FOUND_VOICE"
    NOT_FOUND_COMMAND = "NOT_FOUND_COMMAND"

    # Credential pool errors
    CREDENTIAL_UNAVAILABLE = "CREDENTIAL_UNAVAILABLE"

    # Synthesis provider errors
    SYNTHESIS_FAILED = "SYNTHESIS_FAILED"
    SYNTHESIS_TIMEOUT = "SYNTHESIS_TIMEOUT"
    SYNTHESIS_UNAUTHORIZED = "SYNTHESIS_UNAUTHORIZED"

    # Chat platform errors
    PLATFORM_API_FAILED = "PLATFORM_API_FAILED"
    PLATFORM_NETWORK_ERROR = "PLATFORM_NETWORK_ERROR"

    # Internal errors (unexpected failures)
    INTERNAL_UNEXPECTED = "INTERNAL_UNEXPECTED"
    INTERNAL_CONFIG_ERROR = "INTERNAL_CONFIG_ERROR"
