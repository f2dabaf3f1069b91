"""Per-guild enablement of commands and modules.

A command is usable in a guild only when both its own flag
(``cmd-<name>``) and its module's flag (``mod-<module>``) are true.
Absent flags default to true. There is no command-level override of a
disabled module.
"""

from typing import Optional

import structlog

from .commands.base import Command
from .storage import SettingsStore

logger = structlog.get_logger("guildwire.dispatch")


def command_key(name: str) -> str:
    return f"cmd-{name}"


def module_key(module_id: str) -> str:
    return f"mod-{module_id}"


class EnablementResolver:
    """Reads and writes enablement flags through the settings store.

    Args:
        storage: Guild-scoped key-value store holding the flags.
    """

    def __init__(self, storage: SettingsStore):
        self.storage = storage

    def is_enabled(self, guild_id: Optional[str], command: Command) -> bool:
        """Whether a command may run in a guild (command AND module flag)."""
        return (
            self.storage.get_flag(guild_id, command_key(command.name), True)
            and self.storage.get_flag(guild_id, module_key(command.module), True)
        )

    async def set_enabled(self, guild_id: Optional[str], command: Command, enabled: bool) -> None:
        """Set the command-level flag only."""
        await self.storage.set_flag(guild_id, command_key(command.name), enabled)
        logger.info(
            "command_enablement_changed",
            guild=guild_id, command=command.name, enabled=enabled,
        )

    def is_module_enabled(self, guild_id: Optional[str], module_id: str) -> bool:
        return self.storage.get_flag(guild_id, module_key(module_id), True)

    async def set_module_enabled(self, guild_id: Optional[str], module_id: str, enabled: bool) -> None:
        await self.storage.set_flag(guild_id, module_key(module_id), enabled)
        logger.info(
            "module_enablement_changed",
            guild=guild_id, module=module_id, enabled=enabled,
        )
