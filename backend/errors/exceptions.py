"""
Custom exception hierarchy for the TTS relay bot.

All exceptions inherit from BotError and include:
- code: ErrorCode for categorization
- message: Human-readable error message
- details: Optional additional context
- recoverable: Whether the user/admin can retry or fix the issue
- context: Additional key-value pairs for debugging
"""

from typing import Any, Optional
from .codes import ErrorCode


class BotError(Exception):
    """Base exception for all bot errors.

    Attributes:
        code: The ErrorCode categorizing this error
        message: Human-readable error message
        details: Optional additional context for the user
        recoverable: Whether the error can be resolved by user action
        context: Additional debugging information
    """

    code: ErrorCode = ErrorCode.INTERNAL_UNEXPECTED
    recoverable: bool = False

    def __init__(
        self,
        message: str,
        details: Optional[str] = None,
        code: Optional[ErrorCode] = None,
        recoverable: Optional[bool] = None,
        **context: Any,
    ):
        self.message = message
        self.details = details
        self.context = context if context else None

        # Allow overriding class defaults
        if code is not None:
            self.code = code
        if recoverable is not None:
            self.recoverable = recoverable

        super().__init__(message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} - {self.details}"
        return self.message

    def to_dict(self) -> dict:
        """Convert exception to dictionary for JSON serialization."""
        return {
            "code": self.code.value,
            "message": self.message,
            "details": self.details,
            "recoverable": self.recoverable,
            "context": self.context,
        }


class PersistenceCorruptError(BotError):
    """The persisted state snapshot exists but cannot be parsed.

    Fatal at startup: the bot refuses to serve rather than silently
    discarding the credential pool and admin list.
    """

    code = ErrorCode.PERSISTENCE_CORRUPT
    recoverable = False

    def __init__(self, message: str, details: Optional[str] = None, path: Optional[str] = None, **context: Any):
        ctx = {**context}
        if path:
            ctx["path"] = path
        super().__init__(message, details, **ctx)


class ValidationError(BotError):
    """Error during command input validation."""

    code = ErrorCode.VALIDATION_INVALID_INPUT
    recoverable = True

    def __init__(
        self,
        message: str,
        details: Optional[str] = None,
        parameter: Optional[str] = None,
        expected: Optional[str] = None,
        received: Optional[str] = None,
        **context: Any,
    ):
        ctx = {**context}
        if parameter:
            ctx["parameter"] = parameter
        if expected:
            ctx["expected"] = expected
        if received:
            ctx["received"] = received
        super().__init__(message, details, **ctx)


class NotFoundError(BotError):
    """Error when a resource to remove or look up is not present."""

    code = ErrorCode.NOT_FOUND_CREDENTIAL
    recoverable = True

    def __init__(
        self,
        message: str,
        details: Optional[str] = None,
        resource_type: Optional[str] = None,
        resource_id: Optional[str] = None,
        **context: Any,
    ):
        # Set appropriate code based on resource type
        if resource_type == "admin":
            code = ErrorCode.NOT_FOUND_ADMIN
        elif resource_type == "voice":
            code = ErrorCode.NOT_FOUND_VOICE
        elif resource_type == "command":
            code = ErrorCode.NOT_FOUND_COMMAND
        else:
            code = ErrorCode.NOT_FOUND_CREDENTIAL

        ctx = {**context}
        if resource_type:
            ctx["resource_type"] = resource_type
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(message, details, code=code, **ctx)


class NoCredentialAvailableError(BotError):
    """The API key pool is empty. Degraded service, not a crash."""

    code = ErrorCode.CREDENTIAL_UNAVAILABLE
    recoverable = True


class SynthesisError(BotError):
    """Error returned by the voice synthesis provider."""

    code = ErrorCode.SYNTHESIS_FAILED
    recoverable = True

    def __init__(
        self,
        message: str,
        details: Optional[str] = None,
        status_code: Optional[int] = None,
        error_type: Optional[str] = None,
        **context: Any,
    ):
        if error_type == "timeout":
            code = ErrorCode.SYNTHESIS_TIMEOUT
        elif error_type == "unauthorized" or status_code == 401:
            code = ErrorCode.SYNTHESIS_UNAUTHORIZED
        else:
            code = ErrorCode.SYNTHESIS_FAILED

        ctx = {**context}
        if status_code:
            ctx["status_code"] = status_code
        super().__init__(message, details, code=code, **ctx)


class PlatformApiError(BotError):
    """Error calling the Telegram Bot API."""

    code = ErrorCode.PLATFORM_API_FAILED
    recoverable = True

    def __init__(
        self,
        message: str,
        details: Optional[str] = None,
        method: Optional[str] = None,
        status_code: Optional[int] = None,
        error_type: Optional[str] = None,
        **context: Any,
    ):
        if error_type == "network":
            code = ErrorCode.PLATFORM_NETWORK_ERROR
        else:
            code = ErrorCode.PLATFORM_API_FAILED

        ctx = {**context}
        if method:
            ctx["method"] = method
        if status_code:
            ctx["status_code"] = status_code
        super().__init__(message, details, code=code, **ctx)


class ConfigError(BotError):
    """Missing or invalid startup configuration."""

    code = ErrorCode.INTERNAL_CONFIG_ERROR
    recoverable = False

    def __init__(self, message: str, details: Optional[str] = None, setting: Optional[str] = None, **context: Any):
        ctx = {**context}
        if setting:
            ctx["setting"] = setting
        super().__init__(message, details, **ctx)
