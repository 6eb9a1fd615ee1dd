"""
Error handling helpers for the TTS relay bot.

Provides consistent logging of errors and a scoped helper for best-effort
operations (message deletion, temp-file cleanup) whose failure must be
logged but never propagated.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from .exceptions import BotError


def log_error(
    logger: logging.Logger, error: Exception, context: Optional[str] = None, include_traceback: bool = True
) -> None:
    """Log an error with consistent formatting.

    Args:
        logger: Logger instance to use
        error: The exception to log
        context: Optional context string to prefix the message
        include_traceback: Whether to include the full stack trace

    Example:
        >>> log_error(logger, err, context="dispatch")
        # Logs: "[dispatch] SYNTHESIS_FAILED: Provider returned 500"
    """
    if isinstance(error, BotError):
        message = f"{error.code.value}: {error.message}"
    else:
        message = str(error) or type(error).__name__

    if context:
        message = f"[{context}] {message}"

    logger.error(message, exc_info=include_traceback)


@asynccontextmanager
async def best_effort(operation: str, logger: Optional[logging.Logger] = None) -> AsyncIterator[None]:
    """Run a block whose failure is logged as a warning and swallowed.

    Cancellation is not swallowed.

    Example:
        >>> async with best_effort("delete status message", logger):
        ...     await telegram.delete_message(chat_id, status_id)
    """
    log = logger or logging.getLogger("ttsbot.best_effort")
    try:
        yield
    except Exception as e:
        if isinstance(e, BotError):
            log.warning(f"{operation} failed: {e.code.value}: {e.message}")
        else:
            log.warning(f"{operation} failed: {e}")
