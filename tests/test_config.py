"""Tests for configuration and logging setup."""

import io
import sys
from pathlib import Path

import structlog

from episode_ledger.core.config import LoggingConfig, Settings
from episode_ledger.core.logging import setup_logging


def test_default_settings():
    """Test that default settings load correctly."""
    settings = Settings()

    assert settings.state.file_name == "media_state.json"
    assert settings.metadata.omdb_api_key is None
    assert settings.output.trash_folder == "_trash"
    assert settings.logging.level == "INFO"


def test_settings_from_env(monkeypatch):
    """Test loading settings from environment variables."""
    monkeypatch.setenv("LEDGER_METADATA__OMDB_API_KEY", "abc123")
    monkeypatch.setenv("LEDGER_OUTPUT__MOVE_RETRIES", "5")

    settings = Settings()

    assert settings.metadata.omdb_api_key == "abc123"
    assert settings.output.move_retries == 5


def test_settings_from_yaml(tmp_path):
    config = tmp_path / "config.yaml"
    config.write_text(
        "state:\n"
        f"  directory: {tmp_path}\n"
        "logging:\n"
        "  level: DEBUG\n"
        "  json_output: true\n"
    )

    settings = Settings.from_yaml(config)

    assert settings.state.path == Path(tmp_path) / "media_state.json"
    assert settings.logging.json_output is True


def test_empty_yaml_uses_defaults(tmp_path):
    config = tmp_path / "config.yaml"
    config.write_text("")

    assert Settings.from_yaml(config).output.move_retries == 3


def test_logging_follows_replaced_stderr(monkeypatch):
    setup_logging(LoggingConfig(json_output=True))
    first, second = io.StringIO(), io.StringIO()

    monkeypatch.setattr(sys, "stderr", first)
    structlog.get_logger().info("first_event")
    first.close()
    monkeypatch.setattr(sys, "stderr", second)
    structlog.get_logger().info("second_event")

    assert '"event": "second_event"' in second.getvalue()


def test_debug_filtered_at_info_level(monkeypatch):
    setup_logging(LoggingConfig(json_output=True))
    buffer = io.StringIO()
    monkeypatch.setattr(sys, "stderr", buffer)

    structlog.get_logger().debug("hidden_event")
    structlog.get_logger().info("shown_event")

    assert "hidden_event" not in buffer.getvalue()
    assert "shown_event" in buffer.getvalue()
