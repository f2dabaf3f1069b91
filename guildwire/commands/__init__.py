"""Command framework for guildwire.

Provides the Command value type, the BotContext dependency container,
and the BaseCommandGroup ABC. The built-in administration groups live
in guildwire.commands.admin.
"""

from .base import BaseCommandGroup, BotContext, Command, CommandResult, allow_all

__all__ = [
    "BaseCommandGroup",
    "BotContext",
    "Command",
    "CommandResult",
    "allow_all",
]
