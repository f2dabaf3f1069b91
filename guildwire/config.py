"""Settings for a guildwire bot.

Values come from ``settings.yaml`` in the config directory, with a few
overridable from the environment (``.env`` in the same directory is
loaded first). Each setting is exposed as a read-only property with its
default, so the rest of the package never touches the raw YAML.

Layout of settings.yaml::

    bot_user_id: "123456789012345678"
    bot_name: Helper
    owners: ["111111111111111111"]
    storage_path: ~/guildwire/settings.db
    log_dir: ~/guildwire/logs
    commands:
      prefix: "!"
      editable: 30
      non_command_edit: true
      confirmation_window: 30
      confirmation_keyword: confirm
    logging:
      level: INFO
      subsystem_levels: {dispatch: DEBUG}
      max_file_size_mb: 5
      backup_count: 5
      messages: false
"""

import os
import re
from pathlib import Path
from typing import Any, List, Optional

import structlog
import yaml
from dotenv import load_dotenv

logger = structlog.get_logger("guildwire.dispatch")

DEFAULT_COMMAND_PREFIX = "!"
DEFAULT_COMMAND_EDITABLE = 30
DEFAULT_CONFIRMATION_WINDOW = 30
DEFAULT_CONFIRMATION_KEYWORD = "confirm"

_PROJECT_ROOT = Path(__file__).parent.parent

_SNOWFLAKE = re.compile(r"^\d{5,25}$")


def _expand(configured: Optional[str], fallback: Path) -> Path:
    return Path(configured).expanduser() if configured else fallback


class Config:
    """Typed view over settings.yaml and the environment.

    Args:
        config_dir: Directory holding settings.yaml and .env. Defaults to
            ``$GUILDWIRE_CONFIG_DIR``, then ``<project>/config``.
    """

    def __init__(self, config_dir: Optional[Path] = None):
        if config_dir is None:
            from_env = os.environ.get("GUILDWIRE_CONFIG_DIR")
            config_dir = Path(from_env) if from_env else _PROJECT_ROOT / "config"
        self.config_dir = Path(config_dir)

        dotenv_path = self.config_dir / ".env"
        if dotenv_path.exists():
            load_dotenv(dotenv_path)

        self.settings = self._read_settings(self.config_dir / "settings.yaml")

    @staticmethod
    def _read_settings(path: Path) -> dict:
        if not path.exists():
            return {}
        with open(path, "r") as f:
            return yaml.safe_load(f) or {}

    def _section(self, name: str) -> dict:
        section = self.settings.get(name)
        return section if isinstance(section, dict) else {}

    def _option(self, section: str, key: str, default: Any) -> Any:
        return self._section(section).get(key, default)

    def validate(self):
        """Report unusable settings in the log.

        Nothing is raised: the bot still starts and falls back to
        defaults where it can.
        """
        bot_id = self.bot_user_id
        if not bot_id:
            logger.warning("no_bot_user_id", msg="Mention invocations are disabled")
        elif _SNOWFLAKE.match(bot_id) is None:
            logger.error("invalid_bot_user_id", value=bot_id)

        for owner in filter(lambda o: _SNOWFLAKE.match(o) is None, self.owners):
            logger.error("invalid_owner_id", value=owner)

        commands = self._section("commands")
        for key in ("editable", "confirmation_window"):
            if key not in commands:
                continue
            seconds = commands[key]
            if isinstance(seconds, bool) or not isinstance(seconds, (int, float)) or seconds < 0:
                logger.error(
                    "config_invalid_value", key=f"commands.{key}", value=seconds, valid=">= 0"
                )

        prefix = commands.get("prefix")
        if prefix is not None and (not isinstance(prefix, str) or " " in prefix.strip()):
            logger.error("config_invalid_value", key="commands.prefix", value=prefix)

    # Identity

    @property
    def bot_user_id(self) -> str:
        """The bot account's user ID; GUILDWIRE_BOT_USER_ID wins over the file."""
        return str(os.environ.get("GUILDWIRE_BOT_USER_ID") or self.settings.get("bot_user_id", ""))

    @property
    def bot_name(self) -> str:
        return self.settings.get("bot_name", "Bot")

    @property
    def owners(self) -> List[str]:
        """Bot owners; they pass every admin check."""
        listed = self.settings.get("owners", [])
        if isinstance(listed, list):
            return [str(user_id) for user_id in listed]
        logger.error("owners_invalid_type", type=type(listed).__name__)
        return []

    # Commands

    @property
    def command_prefix(self) -> str:
        """Default prefix; an empty string leaves only mention invocations."""
        return (self._option("commands", "prefix", DEFAULT_COMMAND_PREFIX) or "").strip()

    @property
    def command_editable(self) -> float:
        """Seconds during which editing a message re-dispatches it. 0 turns edits off."""
        return self._option("commands", "editable", DEFAULT_COMMAND_EDITABLE)

    @property
    def non_command_edit(self) -> bool:
        return self._option("commands", "non_command_edit", True)

    @property
    def confirmation_window(self) -> float:
        return self._option("commands", "confirmation_window", DEFAULT_CONFIRMATION_WINDOW)

    @property
    def confirmation_keyword(self) -> str:
        return self._option("commands", "confirmation_keyword", DEFAULT_CONFIRMATION_KEYWORD)

    # Paths

    @property
    def storage_path(self) -> Path:
        return _expand(self.settings.get("storage_path"), _PROJECT_ROOT / "data" / "settings.db")

    @property
    def log_dir(self) -> Path:
        return _expand(self.settings.get("log_dir"), _PROJECT_ROOT / "logs")

    # Logging

    @property
    def logging_level(self) -> str:
        """Level for the console and the combined log file."""
        return self._option("logging", "level", "INFO")

    @property
    def logging_subsystem_levels(self) -> dict:
        """Overrides keyed by subsystem, e.g. ``{"dispatch": "DEBUG"}``."""
        return self._option("logging", "subsystem_levels", {})

    @property
    def logging_max_file_size_mb(self) -> int:
        return self._option("logging", "max_file_size_mb", 5)

    @property
    def logging_backup_count(self) -> int:
        return self._option("logging", "backup_count", 5)

    @property
    def log_messages(self) -> bool:
        """Log each inbound message at debug level."""
        return self._option("logging", "messages", False)


_config: Optional[Config] = None


def get_config() -> Config:
    """Process-wide Config, created on first use."""
    global _config
    if _config is None:
        _config = Config()
    return _config
