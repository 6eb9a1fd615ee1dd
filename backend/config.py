"""
Runtime Configuration for the TTS relay bot.

Provides a BotSettings dataclass whose values default from environment
variables. Settings are read once per process; tests build their own
instance with explicit keyword arguments.

Usage:
    from config import get_settings
    settings = get_settings()
    settings.validate()
    max_len = settings.max_text_length
"""

import os
import logging
from dataclasses import dataclass, field, fields as dataclass_fields
from pathlib import Path
from typing import Any, Dict, List, Optional

from errors import ConfigError

logger = logging.getLogger(__name__)

# ElevenLabs "Rachel"
DEFAULT_VOICE_ID = "21m00Tcm4TlvDq8ikWAM"

# Route Telegram posts updates to, relative to WEBHOOK_URL
WEBHOOK_PATH = "/webhook"


def _split_env(key: str) -> List[str]:
    """Split a comma-separated environment value, dropping empty items."""
    raw = os.environ.get(key, "")
    return [item.strip() for item in raw.split(",") if item.strip()]


def _parse_admin_ids() -> List[int]:
    """Parse ADMIN_IDS, skipping (and logging) entries that are not integers."""
    ids = []
    for item in _split_env("ADMIN_IDS"):
        try:
            ids.append(int(item))
        except ValueError:
            logger.warning(f"Ignoring non-numeric admin id in ADMIN_IDS: {item!r}")
    return ids


@dataclass
class BotSettings:
    """
    Process configuration.

    All values have defaults from environment variables. Secrets stay
    env-only and are never written to the state snapshot.
    """

    # Telegram
    bot_token: str = field(default_factory=lambda: os.environ.get("BOT_TOKEN", "").strip())
    webhook_url: str = field(default_factory=lambda: os.environ.get("WEBHOOK_URL", "").strip().rstrip("/"))
    webhook_secret: str = field(
        default_factory=lambda: os.environ.get("TELEGRAM_WEBHOOK_SECRET", "").strip()
    )  # Sent back by Telegram in X-Telegram-Bot-Api-Secret-Token
    telegram_api_base: str = field(
        default_factory=lambda: os.environ.get("TELEGRAM_API_BASE", "https://api.telegram.org").rstrip("/")
    )
    telegram_timeout_s: float = field(default_factory=lambda: float(os.environ.get("TELEGRAM_TIMEOUT_S", "30")))

    # HTTP server
    host: str = field(default_factory=lambda: os.environ.get("HOST", "0.0.0.0"))
    port: int = field(default_factory=lambda: int(os.environ.get("PORT", "3000")))

    # Seeds (merged with the persisted snapshot at startup)
    admin_ids: List[int] = field(default_factory=_parse_admin_ids)
    initial_api_keys: List[str] = field(default_factory=lambda: _split_env("ELEVENLABS_API_KEYS"))

    # Persistence
    state_file: Path = field(
        default_factory=lambda: Path(os.environ.get("STATE_FILE", "data/bot_state.json"))
    )

    # ElevenLabs
    default_voice_id: str = field(
        default_factory=lambda: os.environ.get("DEFAULT_VOICE_ID", DEFAULT_VOICE_ID).strip() or DEFAULT_VOICE_ID
    )
    elevenlabs_base_url: str = field(
        default_factory=lambda: os.environ.get("ELEVENLABS_BASE_URL", "https://api.elevenlabs.io").rstrip("/")
    )
    elevenlabs_model_id: str = field(
        default_factory=lambda: os.environ.get("ELEVENLABS_MODEL_ID", "eleven_multilingual_v2")
    )
    elevenlabs_timeout_s: float = field(
        default_factory=lambda: float(os.environ.get("ELEVENLABS_TIMEOUT_S", "60"))
    )
    audio_tmp_dir: Optional[Path] = field(
        default_factory=lambda: Path(os.environ["AUDIO_TMP_DIR"]) if os.environ.get("AUDIO_TMP_DIR") else None
    )  # None = system temp dir

    # Dispatch
    max_text_length: int = field(default_factory=lambda: int(os.environ.get("MAX_TEXT_LENGTH", "1000")))
    natural_delay_min_ms: int = field(
        default_factory=lambda: int(os.environ.get("NATURAL_DELAY_MIN_MS", "2000"))
    )
    natural_delay_max_ms: int = field(
        default_factory=lambda: int(os.environ.get("NATURAL_DELAY_MAX_MS", "5000"))
    )  # Exclusive upper bound

    # Lifecycle
    shutdown_webhook_timeout_s: float = field(
        default_factory=lambda: float(os.environ.get("SHUTDOWN_WEBHOOK_TIMEOUT_S", "5"))
    )
    shutdown_grace_s: float = field(
        default_factory=lambda: float(os.environ.get("SHUTDOWN_GRACE_S", "10"))
    )  # Wait for in-flight dispatch tasks before cancelling

    log_level: str = field(default_factory=lambda: os.environ.get("LOG_LEVEL", "INFO").upper())

    @property
    def full_webhook_url(self) -> str:
        return f"{self.webhook_url}{WEBHOOK_PATH}"

    def validate(self) -> None:
        """Raise ConfigError for settings the bot cannot start without."""
        if not self.bot_token:
            raise ConfigError("BOT_TOKEN must be set", setting="BOT_TOKEN")
        if not self.webhook_url:
            raise ConfigError("WEBHOOK_URL must be set", setting="WEBHOOK_URL")
        if not self.webhook_url.startswith(("http://", "https://")):
            raise ConfigError(
                "WEBHOOK_URL must be an http(s) URL",
                setting="WEBHOOK_URL",
                received=self.webhook_url,
            )
        if self.max_text_length < 1:
            raise ConfigError("MAX_TEXT_LENGTH must be positive", setting="MAX_TEXT_LENGTH")
        if not (0 <= self.natural_delay_min_ms <= self.natural_delay_max_ms):
            raise ConfigError(
                "Natural delay bounds are inverted",
                details=f"{self.natural_delay_min_ms} > {self.natural_delay_max_ms}",
                setting="NATURAL_DELAY_MIN_MS",
            )

    def to_dict(self) -> Dict[str, Any]:
        """Export settings as dict with secrets masked."""
        secret_fields = {"bot_token", "webhook_secret", "initial_api_keys"}
        result = {}
        for field_info in dataclass_fields(self):
            value = getattr(self, field_info.name)
            if field_info.name in secret_fields:
                value = "***" if value else value
            elif isinstance(value, Path):
                value = str(value)
            result[field_info.name] = value
        return result


_settings: Optional[BotSettings] = None


def get_settings() -> BotSettings:
    """Get the process settings, reading the environment on first call."""
    global _settings
    if _settings is None:
        _settings = BotSettings()
    return _settings
