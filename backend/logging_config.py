"""
Logging Configuration - Color-Coded Container Logs

Provides:
- ColorFormatter: ANSI color-coded log output
- Helper functions: log_event_in, log_command, log_tts
- setup_logging(): Configure application logging

Usage:
    from logging_config import setup_logging, log_event_in
    setup_logging()
    logger = logging.getLogger(__name__)
    log_event_in(logger, "tts hello", chat=123, user=456)
"""

import logging
import sys

# ANSI color codes
COLORS = {
    "RESET": "\033[0m",
    "BOLD": "\033[1m",
    "DIM": "\033[2m",
    # Event colors
    "MSG_IN": "\033[96m",  # Cyan - incoming chat event
    "MSG_OUT": "\033[92m",  # Green - audio delivered
    "COMMAND": "\033[95m",  # Magenta - admin commands
    "TTS": "\033[94m",  # Blue - synthesis calls
    "ERROR": "\033[91m",  # Red - errors
    "WARN": "\033[33m",  # Orange/Yellow - warnings
    "DEBUG": "\033[90m",  # Gray - debug info
}


class ColorFormatter(logging.Formatter):
    """Custom formatter with colors for different log levels."""

    LEVEL_COLORS = {
        logging.DEBUG: COLORS["DEBUG"],
        logging.INFO: COLORS["RESET"],
        logging.WARNING: COLORS["WARN"],
        logging.ERROR: COLORS["ERROR"],
        logging.CRITICAL: COLORS["ERROR"] + COLORS["BOLD"],
    }

    def format(self, record: logging.LogRecord) -> str:
        # Apply level-based color
        color = self.LEVEL_COLORS.get(record.levelno, COLORS["RESET"])

        # Format: timestamp [LEVEL] message (no module name for compactness)
        timestamp = self.formatTime(record, "%H:%M:%S")
        level = record.levelname[:4]

        formatted = (
            f"{COLORS['DIM']}{timestamp}{COLORS['RESET']} "
            f"[{color}{level}{COLORS['RESET']}] "
            f"{record.getMessage()}"
        )

        if record.exc_info:
            formatted += "\n" + self.formatException(record.exc_info)

        return formatted


def setup_logging(level: int | str = logging.INFO) -> None:
    """Configure colored logging for the application."""
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(ColorFormatter())

    # Configure root logger
    root = logging.getLogger()
    root.setLevel(level)
    root.handlers = [handler]

    # Quiet noisy libraries (httpx logs full URLs, which include the bot token)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


# =============================================================================
# COLORED LOG HELPER FUNCTIONS
# =============================================================================


def log_event_in(logger: logging.Logger, text: str, **context) -> None:
    """Log an inbound chat event.

    Args:
        logger: Logger instance
        text: Message text
        **context: Additional context (chat, user, chat_type, etc.)
    """
    preview = text[:80] + "..." if len(text) > 80 else text
    ctx = " ".join(f"{k}={v}" for k, v in context.items())
    logger.info(f"{COLORS['MSG_IN']}>>> EVENT{COLORS['RESET']} {preview} [{ctx}]")


def log_command(logger: logging.Logger, verb: str, **context) -> None:
    """Log an administrative command dispatch.

    Args:
        logger: Logger instance
        verb: Command verb (without the slash)
        **context: Additional context (user, admin, etc.)
    """
    ctx = " ".join(f"{k}={v}" for k, v in context.items()) if context else ""
    logger.info(f"{COLORS['COMMAND']}>>> COMMAND{COLORS['RESET']} /{verb} {ctx}")


def log_tts(
    logger: logging.Logger,
    state: str,
    voice_id: str = "",
    chars: int = 0,
    duration: float = 0,
) -> None:
    """Log a synthesis call.

    Args:
        logger: Logger instance
        state: 'start', 'end' or 'failed'
        voice_id: Voice identifier
        chars: Text length (for start state)
        duration: Call duration in seconds (for end/failed state)
    """
    if state == "start":
        logger.info(f"{COLORS['TTS']}>>> TTS{COLORS['RESET']} voice={voice_id} chars={chars}")
    elif state == "failed":
        logger.warning(f"{COLORS['TTS']}<<< TTS{COLORS['RESET']} voice={voice_id} failed after {duration:.1f}s")
    else:
        logger.info(f"{COLORS['MSG_OUT']}<<< TTS{COLORS['RESET']} voice={voice_id} completed in {duration:.1f}s")
