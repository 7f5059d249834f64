"""Unit tests for settings and logging configuration."""

import logging

import pytest
from pydantic import ValidationError

from visual_composer.config import Settings
from visual_composer.utils.logging_config import ProgressLogger, configure_logging, get_logger


class TestSettings:
    """Test environment-driven settings."""

    def test_defaults(self):
        settings = Settings(_env_file=None)

        assert settings.default_item_duration == 3.0
        assert settings.default_transition_duration == 0.5
        assert settings.default_fps == 30
        assert settings.reorder_policy == "preserve"
        assert settings.gap_policy == "reject"
        assert settings.background_color == "#000000"

    def test_environment_override(self, monkeypatch):
        monkeypatch.setenv("GAP_POLICY", "black")
        monkeypatch.setenv("default_fps", "24")

        settings = Settings(_env_file=None)

        assert settings.gap_policy == "black"
        assert settings.default_fps == 24

    def test_env_file(self, tmp_path):
        env_file = tmp_path / ".env"
        env_file.write_text("REORDER_POLICY=repack\nUNRELATED_KEY=1\n")

        settings = Settings(_env_file=str(env_file))

        assert settings.reorder_policy == "repack"

    def test_invalid_policy(self, monkeypatch):
        monkeypatch.setenv("GAP_POLICY", "stretch")
        with pytest.raises(ValidationError):
            Settings(_env_file=None)

    def test_effective_log_level(self):
        assert Settings(_env_file=None, log_level="warning").effective_log_level == "WARNING"
        assert Settings(_env_file=None, debug=True).effective_log_level == "DEBUG"


class TestLogging:
    """Test logging helpers."""

    def test_configure_logging(self):
        configure_logging("DEBUG")

        assert logging.getLogger().level == logging.DEBUG
        assert logging.getLogger("PIL").level == logging.WARNING

    def test_get_logger(self):
        assert get_logger("visual_composer.test").name == "visual_composer.test"

    def test_progress_logger(self, caplog):
        """Test task lifecycle messages."""
        caplog.set_level(logging.INFO, logger="visual_composer.export")
        progress = ProgressLogger("visual_composer.export")

        progress.start_task("Export 10 frames")
        assert progress.current_task == "Export 10 frames"
        progress.update("5/10 frames")
        progress.complete()
        progress.warning("slow encoder")

        messages = [record.getMessage() for record in caplog.records]
        assert messages == [
            "Starting: Export 10 frames",
            "   > 5/10 frames",
            "Completed: Export 10 frames",
            "Warning: slow encoder",
        ]
        assert progress.current_task is None

    def test_progress_logger_reports_caller(self, caplog):
        caplog.set_level(logging.INFO, logger="visual_composer.export")
        ProgressLogger("visual_composer.export").error("boom")

        record = caplog.records[-1]
        assert record.levelno == logging.ERROR
        assert record.filename == "test_config.py"
