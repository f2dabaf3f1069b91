"""Structured logging for guildwire.

Every component logs through ``structlog.get_logger("guildwire.<name>")``.
The stdlib logger tree underneath routes events to files:

    guildwire                 guildwire.log (everything)
    guildwire.dispatch        dispatch.log
    guildwire.registry        registry.log
    guildwire.storage         storage.log
    guildwire.interactions    interactions.log
    guildwire.commands        commands.log

Subsystem loggers propagate, so an event lands in its own file, the
combined file and on the console.
"""

import logging
import logging.handlers
import re
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

import structlog

SUBSYSTEMS = ("dispatch", "registry", "storage", "interactions", "commands")

LOGGER_PREFIX = "guildwire"

_MEGABYTE = 1024 * 1024

# Bot tokens are "<base64 id>.<timestamp>.<hmac>"; auth headers carry
# them after a scheme word.
_TOKEN_RE = re.compile(
    r"[MNO][A-Za-z\d_-]{23,25}\.[A-Za-z\d_-]{6}\.[A-Za-z\d_-]{27,38}"
)
_AUTH_HEADER_RE = re.compile(r"(?:Bearer|Bot)\s+[a-zA-Z0-9_./-]{20,}")

REDACTED = "***REDACTED***"


def _redact(text: str) -> str:
    return _AUTH_HEADER_RE.sub(REDACTED, _TOKEN_RE.sub(REDACTED, text))


def _redact_any(value: Any) -> Any:
    return _redact(value) if isinstance(value, str) else value


def sanitize_secrets(
    logger: Any, method_name: str, event_dict: Dict[str, Any]
) -> Dict[str, Any]:
    """structlog processor removing credentials from log events.

    Strings are scrubbed directly; lists, tuples and dicts are scrubbed
    one level deep. Other values pass through untouched.
    """
    for key, value in list(event_dict.items()):
        if isinstance(value, dict):
            event_dict[key] = {k: _redact_any(v) for k, v in value.items()}
        elif isinstance(value, (list, tuple)):
            event_dict[key] = type(value)(_redact_any(v) for v in value)
        else:
            event_dict[key] = _redact_any(value)
    return event_dict


@dataclass
class _LogSettings:
    directory: Path
    level: int = logging.INFO
    overrides: Dict[str, str] = field(default_factory=dict)
    max_bytes: int = 5 * _MEGABYTE
    backups: int = 5
    cache: bool = False

    @classmethod
    def from_config(cls, config) -> "_LogSettings":
        if config is None:
            return cls(directory=Path(__file__).parent.parent / "logs")
        return cls(
            directory=config.log_dir,
            level=_level_from_name(config.logging_level, logging.INFO),
            overrides=dict(config.logging_subsystem_levels or {}),
            max_bytes=config.logging_max_file_size_mb * _MEGABYTE,
            backups=config.logging_backup_count,
            cache=True,
        )

    def level_for(self, subsystem: str) -> int:
        return _level_from_name(self.overrides.get(subsystem), self.level)


def _level_from_name(name: Optional[str], fallback: int) -> int:
    if not name:
        return fallback
    level = logging.getLevelName(str(name).upper())
    return level if isinstance(level, int) else fallback


def _file_formatter() -> logging.Formatter:
    return structlog.stdlib.ProcessorFormatter(
        processors=[
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.format_exc_info,
            structlog.dev.ConsoleRenderer(colors=False),
        ],
    )


def _reset(name: str, level: int) -> logging.Logger:
    target = logging.getLogger(name)
    for handler in target.handlers:
        handler.close()
    target.handlers.clear()
    target.setLevel(level)
    target.propagate = True
    return target


def _attach_file(
    target: logging.Logger,
    path: Path,
    level: int,
    settings: _LogSettings,
    formatter: logging.Formatter,
) -> None:
    handler = logging.handlers.RotatingFileHandler(
        path,
        maxBytes=settings.max_bytes,
        backupCount=settings.backups,
        encoding="utf-8",
    )
    handler.setLevel(level)
    handler.setFormatter(formatter)
    target.addHandler(handler)


def _log_dir_ready(directory: Path) -> bool:
    try:
        directory.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        print(
            f"WARNING: log directory {directory} unavailable ({exc}); "
            "logging to the console only.",
            file=sys.stderr,
        )
        return False
    return True


def setup_logging(config=None) -> None:
    """Install console and per-subsystem file logging.

    Safe to call more than once; each call replaces the handlers the
    previous one installed.

    Args:
        config: Optional Config. Without one, built-in defaults apply and
            structlog does not cache loggers, so a later call with the
            loaded config still takes effect.
    """
    settings = _LogSettings.from_config(config)
    to_files = _log_dir_ready(settings.directory)
    formatter = _file_formatter()

    # The root logger passes everything; handlers do the filtering.
    root = logging.getLogger()
    root.setLevel(logging.DEBUG)
    root.handlers.clear()
    console = logging.StreamHandler(sys.stdout)
    console.setLevel(settings.level)
    console.setFormatter(logging.Formatter("%(asctime)s [%(levelname)s] %(message)s"))
    root.addHandler(console)

    combined = _reset(LOGGER_PREFIX, logging.DEBUG)
    if to_files:
        _attach_file(
            combined,
            settings.directory / f"{LOGGER_PREFIX}.log",
            settings.level,
            settings,
            formatter,
        )

    for subsystem in SUBSYSTEMS:
        level = settings.level_for(subsystem)
        sub_logger = _reset(f"{LOGGER_PREFIX}.{subsystem}", level)
        if to_files:
            _attach_file(
                sub_logger,
                settings.directory / f"{subsystem}.log",
                level,
                settings,
                formatter,
            )

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            sanitize_secrets,
            structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=settings.cache,
    )
