"""Tests for logging setup and secret scrubbing."""

import logging
import logging.handlers
from unittest.mock import MagicMock

import pytest
import structlog

from guildwire.logging_config import SUBSYSTEMS, sanitize_secrets, setup_logging

FAKE_TOKEN = "MTAxMjM0NTY3ODkwMTIzNDU2.GaBcDe.abcdefghijklmnopqrstuvwxyz0123"


def test_sanitize_scrubs_tokens_everywhere():
    event = {
        "event": f"login {FAKE_TOKEN}",
        "header": "Authorization: Bot abcdefghijklmnopqrstuvwxyz",
        "items": ["ok", f"t={FAKE_TOKEN}"],
        "nested": {"token": FAKE_TOKEN},
        "count": 3,
    }
    result = sanitize_secrets(None, "info", event)
    assert FAKE_TOKEN not in result["event"]
    assert "abcdefghijklmnopqrstuvwxyz" not in result["header"]
    assert result["items"][0] == "ok"
    assert FAKE_TOKEN not in result["items"][1]
    assert FAKE_TOKEN not in result["nested"]["token"]
    assert result["count"] == 3


def test_sanitize_leaves_plain_text():
    event = {"event": "command_running", "command": "ping"}
    assert sanitize_secrets(None, "info", dict(event)) == event


def _config(tmp_path, **overrides):
    config = MagicMock()
    config.log_dir = tmp_path / "logs"
    config.logging_level = "INFO"
    config.logging_subsystem_levels = {"dispatch": "debug"}
    config.logging_max_file_size_mb = 1
    config.logging_backup_count = 2
    for key, value in overrides.items():
        setattr(config, key, value)
    return config


@pytest.fixture
def restore_logging():
    root = logging.getLogger()
    saved_handlers, saved_level = list(root.handlers), root.level
    yield
    structlog.reset_defaults()
    for name in ("guildwire", *(f"guildwire.{s}" for s in SUBSYSTEMS)):
        sub_logger = logging.getLogger(name)
        for handler in sub_logger.handlers:
            handler.close()
        sub_logger.handlers.clear()
    root.handlers[:] = saved_handlers
    root.setLevel(saved_level)


def test_setup_creates_subsystem_files(tmp_path, restore_logging):
    setup_logging(_config(tmp_path))
    for subsystem in SUBSYSTEMS:
        sub_logger = logging.getLogger(f"guildwire.{subsystem}")
        handlers = [
            h for h in sub_logger.handlers
            if isinstance(h, logging.handlers.RotatingFileHandler)
        ]
        assert len(handlers) == 1
        assert handlers[0].baseFilename.endswith(f"{subsystem}.log")
    assert logging.getLogger("guildwire.dispatch").level == logging.DEBUG
    assert logging.getLogger("guildwire.registry").level == logging.INFO
    assert (tmp_path / "logs").is_dir()


def test_setup_is_idempotent(tmp_path, restore_logging):
    setup_logging(_config(tmp_path))
    setup_logging(_config(tmp_path))
    assert len(logging.getLogger("guildwire").handlers) == 1
    assert len(logging.getLogger("guildwire.storage").handlers) == 1
