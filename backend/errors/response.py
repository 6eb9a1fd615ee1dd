"""
Standard error response builders for the TTS relay bot.

Provides consistent formats for HTTP error bodies and chat notices.
"""

from typing import Optional
from .codes import ErrorCode
from .exceptions import BotError


def error_response(error: BotError | Exception, source: Optional[str] = None, include_context: bool = True) -> dict:
    """Build a standard error response dictionary.

    Args:
        error: The exception to convert to a response
        source: Optional component name for context
        include_context: Whether to include the context dict (disable for privacy)

    Returns:
        Standard error response dict with ok=False

    Example:
        >>> from errors import PlatformApiError, error_response
        >>> err = PlatformApiError("sendMessage failed", method="sendMessage")
        >>> error_response(err, source="webhook")
        {
            "ok": False,
            "error": {
                "code": "PLATFORM_API_FAILED",
                "message": "sendMessage failed",
                "details": None,
                "source": "webhook",
                "recoverable": True,
                "context": {"method": "sendMessage"}
            }
        }
    """
    if isinstance(error, BotError):
        return {
            "ok": False,
            "error": {
                "code": error.code.value,
                "message": error.message,
                "details": error.details,
                "source": source,
                "recoverable": error.recoverable,
                "context": error.context if include_context else None,
            },
        }

    # Fallback for foreign exceptions
    return {
        "ok": False,
        "error": {
            "code": ErrorCode.INTERNAL_UNEXPECTED.value,
            "message": str(error),
            "details": None,
            "source": source,
            "recoverable": False,
            "context": None,
        },
    }


def format_error_for_chat(error: BotError | Exception) -> str:
    """Format an error as a short chat reply for the invoking user.

    Args:
        error: The exception to format

    Returns:
        Single-line notice prefixed with the error marker
    """
    if isinstance(error, BotError):
        if error.details:
            return f"❌ {error.message}\n{error.details}"
        return f"❌ {error.message}"

    return f"❌ {error}"
