"""
Tests for environment-driven settings.
"""

import logging

from config import BotSettings
from logging_config import setup_logging


class TestLogLevel:
    def test_read_from_environment(self, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "debug")
        assert BotSettings().log_level == "DEBUG"

    def test_default(self, monkeypatch):
        monkeypatch.delenv("LOG_LEVEL", raising=False)
        assert BotSettings().log_level == "INFO"

    def test_applied_to_root_logger(self, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "warning")
        root = logging.getLogger()
        saved_level, saved_handlers = root.level, root.handlers[:]
        try:
            setup_logging(BotSettings().log_level)
            assert root.level == logging.WARNING
        finally:
            root.setLevel(saved_level)
            root.handlers = saved_handlers
