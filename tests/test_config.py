"""Tests for configuration loading."""

import os
from pathlib import Path
from unittest.mock import patch

from guildwire.config import Config


def _write_settings(config_dir: Path, text: str) -> None:
    config_dir.mkdir(parents=True, exist_ok=True)
    (config_dir / "settings.yaml").write_text(text)


def test_defaults_without_files(tmp_path, monkeypatch):
    monkeypatch.delenv("GUILDWIRE_BOT_USER_ID", raising=False)
    config = Config(config_dir=tmp_path)
    assert config.settings == {}
    assert config.command_prefix == "!"
    assert config.command_editable == 30
    assert config.non_command_edit is True
    assert config.confirmation_window == 30
    assert config.confirmation_keyword == "confirm"
    assert config.owners == []
    assert config.bot_user_id == ""
    assert config.bot_name == "Bot"
    assert config.logging_level == "INFO"
    assert config.logging_max_file_size_mb == 5
    assert config.logging_backup_count == 5
    assert config.log_messages is False
    assert config.storage_path.name == "settings.db"


def test_values_from_yaml(tmp_path, monkeypatch):
    monkeypatch.delenv("GUILDWIRE_BOT_USER_ID", raising=False)
    _write_settings(tmp_path, """
bot_user_id: "123456789012345678"
bot_name: Helper
owners: [111111111111111111]
storage_path: /tmp/guildwire-test/settings.db
commands:
  prefix: " ? "
  editable: 10
  non_command_edit: false
  confirmation_window: 15
  confirmation_keyword: yes-really
logging:
  level: DEBUG
  subsystem_levels:
    dispatch: WARNING
  messages: true
""")
    config = Config(config_dir=tmp_path)
    assert config.bot_user_id == "123456789012345678"
    assert config.bot_name == "Helper"
    assert config.owners == ["111111111111111111"]
    assert config.command_prefix == "?"
    assert config.command_editable == 10
    assert config.non_command_edit is False
    assert config.confirmation_window == 15
    assert config.confirmation_keyword == "yes-really"
    assert config.storage_path == Path("/tmp/guildwire-test/settings.db")
    assert config.logging_level == "DEBUG"
    assert config.logging_subsystem_levels == {"dispatch": "WARNING"}
    assert config.log_messages is True


def test_env_bot_user_id_wins(tmp_path, monkeypatch):
    _write_settings(tmp_path, 'bot_user_id: "1"\n')
    monkeypatch.setenv("GUILDWIRE_BOT_USER_ID", "99999")
    assert Config(config_dir=tmp_path).bot_user_id == "99999"


def test_dotenv_loaded(tmp_path, monkeypatch):
    monkeypatch.delenv("GUILDWIRE_BOT_USER_ID", raising=False)
    tmp_path.mkdir(exist_ok=True)
    (tmp_path / ".env").write_text("GUILDWIRE_BOT_USER_ID=555555555555\n")
    try:
        assert Config(config_dir=tmp_path).bot_user_id == "555555555555"
    finally:
        # load_dotenv writes os.environ directly
        os.environ.pop("GUILDWIRE_BOT_USER_ID", None)


def test_config_dir_from_env(tmp_path, monkeypatch):
    _write_settings(tmp_path / "custom", "bot_name: FromEnv\n")
    monkeypatch.setenv("GUILDWIRE_CONFIG_DIR", str(tmp_path / "custom"))
    assert Config().bot_name == "FromEnv"


def test_owners_wrong_type_ignored(tmp_path):
    _write_settings(tmp_path, "owners: not-a-list\n")
    assert Config(config_dir=tmp_path).owners == []


class TestValidate:

    def _config(self, settings):
        config = Config.__new__(Config)
        config.settings = settings
        return config

    def test_valid_settings_log_no_errors(self, monkeypatch):
        monkeypatch.delenv("GUILDWIRE_BOT_USER_ID", raising=False)
        config = self._config({
            "bot_user_id": "123456789012345678",
            "owners": ["111111111111111111"],
            "commands": {"prefix": "!", "editable": 30},
        })
        with patch("guildwire.config.logger") as mock_logger:
            config.validate()
        mock_logger.error.assert_not_called()

    def test_invalid_values_logged_not_raised(self, monkeypatch):
        monkeypatch.delenv("GUILDWIRE_BOT_USER_ID", raising=False)
        config = self._config({
            "bot_user_id": "abc",
            "owners": ["x"],
            "commands": {"prefix": "a b", "editable": -1, "confirmation_window": "soon"},
        })
        with patch("guildwire.config.logger") as mock_logger:
            config.validate()
        events = [c.args[0] for c in mock_logger.error.call_args_list]
        assert "invalid_bot_user_id" in events
        assert "invalid_owner_id" in events
        assert events.count("config_invalid_value") == 3

    def test_missing_bot_user_id_warns(self, monkeypatch):
        monkeypatch.delenv("GUILDWIRE_BOT_USER_ID", raising=False)
        with patch("guildwire.config.logger") as mock_logger:
            self._config({}).validate()
        mock_logger.warning.assert_called_once()
