"""Tests for structured logging."""
import logging

import pytest

from backend.services.shared.config import Config
from backend.services.shared.logging import configure_from, get_logger, setup_logging


class TestGetLogger:
    def test_returns_logger(self):
        logger = get_logger("test.module")
        assert isinstance(logger, logging.Logger)

    def test_prefixes_namespace(self):
        assert get_logger("audio.beat_map").name == "beatcut.audio.beat_map"

    def test_full_name_kept(self):
        assert get_logger("beatcut.video").name == "beatcut.video"
        assert get_logger("beatcut").name == "beatcut"

    def test_same_name_returns_same_logger(self):
        assert get_logger("test.same") is get_logger("test.same")


class TestSetupLogging:
    def test_setup_with_level(self):
        setup_logging(level="DEBUG")
        assert logging.getLogger("beatcut").level == logging.DEBUG

    def test_level_is_case_insensitive(self):
        setup_logging(level="warning")
        assert logging.getLogger("beatcut").level == logging.WARNING

    def test_setup_file_handler(self, tmp_dir):
        log_file = tmp_dir / "logs" / "test.log"
        setup_logging(level="INFO", log_file=str(log_file))
        get_logger("test_file").info("test message")
        for handler in logging.getLogger("beatcut").handlers:
            handler.flush()
        assert log_file.exists()
        assert "test message" in log_file.read_text()

    def test_repeated_setup_does_not_duplicate_handlers(self):
        setup_logging(level="INFO")
        setup_logging(level="INFO")
        assert len(logging.getLogger("beatcut").handlers) == 1

    def test_invalid_level_raises(self):
        with pytest.raises(ValueError):
            setup_logging(level="INVALID_LEVEL")


class TestConfigureFrom:
    def test_uses_config_section(self, monkeypatch):
        monkeypatch.delenv("BEATCUT_LOG_LEVEL", raising=False)
        configure_from(Config.from_dict({"logging": {"level": "ERROR"}}))
        assert logging.getLogger("beatcut").level == logging.ERROR

    def test_env_overrides_config(self, monkeypatch):
        monkeypatch.setenv("BEATCUT_LOG_LEVEL", "DEBUG")
        configure_from(Config.from_dict({"logging": {"level": "ERROR"}}))
        assert logging.getLogger("beatcut").level == logging.DEBUG

    def test_defaults_to_info(self, monkeypatch):
        monkeypatch.delenv("BEATCUT_LOG_LEVEL", raising=False)
        root = configure_from(Config.from_dict({}))
        assert root.level == logging.INFO
        assert root.propagate is False
