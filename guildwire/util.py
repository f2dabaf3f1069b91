"""Small text helpers shared by the Dispatcher and command bodies."""

from typing import Any, Iterable, Optional

PREFIX_KEY = "command-prefix"


def guild_prefix(storage, guild_id: Optional[str], default: str) -> str:
    """Command prefix in effect for a guild (blank means mentions only)."""
    if guild_id is None:
        return default
    value = storage.get(guild_id, PREFIX_KEY, default)
    return (value or "").strip() if isinstance(value, str) else default


def usage(command_text: str, prefix: str, bot_name: str = "Bot") -> str:
    """Render how to invoke a command, e.g. ``!enable-module <module>``."""
    if prefix:
        return f"`{prefix}{command_text}`"
    return f"`@{bot_name} {command_text}`"


def _label(item: Any) -> str:
    if isinstance(item, str):
        return item
    return str(getattr(item, "name", item))


def disambiguation(items: Iterable[Any], label: str, prefix: str = "") -> str:
    """Ask the user to pick between several matches."""
    listed = ", ".join(f'"{_label(i)}"' for i in items)
    text = f"Multiple {label} found, please be more specific: {listed}"
    return f"{prefix} {text}" if prefix else text
