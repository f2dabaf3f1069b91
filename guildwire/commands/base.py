"""Base classes for the command framework.

Defines the abstractions for declaring and registering bot commands.
Commands are immutable values pairing a validated CommandInfo with an
async execution capability and a permission predicate. They are
declared in groups (one group per module) that extend BaseCommandGroup,
then registered with the CommandRegistry.

Key classes:
    Command: Registry value -- info + handler + permission predicate.
    BotContext: Dependency container shared by all command groups.
    BaseCommandGroup: ABC that command groups must implement.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Dict, List, Optional, Tuple, Union

from ..models import ArgsType, CommandInfo, InboundMessage, Module
from ..util import guild_prefix, usage

if TYPE_CHECKING:
    from ..config import Config
    from ..enablement import EnablementResolver
    from ..interactions import InteractionStateMachine
    from ..permissions import Permissions
    from ..registry import CommandRegistry
    from ..storage import SettingsStore


CommandResult = Union[str, List[str], Dict[str, Any], None]

# Handler signature: async (message, args, from_pattern) -> result
CommandHandler = Callable[[InboundMessage, List[str], bool], Awaitable[CommandResult]]

# Permission predicate: (guild_id, user_id) -> allowed
PermissionCheck = Callable[[Optional[str], str], bool]


def allow_all(guild_id: Optional[str], user_id: str) -> bool:
    """Default permission predicate: everyone may use the command."""
    return True


@dataclass(frozen=True)
class Command:
    """A registered command.

    Attributes:
        info: Validated configuration record.
        handler: Async execution capability.
        permission: Predicate evaluated after enablement passes.
    """

    info: CommandInfo
    handler: CommandHandler
    permission: PermissionCheck = allow_all

    @classmethod
    def create(
        cls,
        handler: CommandHandler,
        *,
        permission: PermissionCheck = allow_all,
        **info: Any,
    ) -> "Command":
        """Build a command from keyword CommandInfo fields."""
        return cls(info=CommandInfo(**info), handler=handler, permission=permission)

    @property
    def id(self) -> str:
        return self.info.id

    @property
    def name(self) -> str:
        return self.info.name

    @property
    def aliases(self) -> Tuple[str, ...]:
        return self.info.aliases

    @property
    def names(self) -> Tuple[str, ...]:
        return self.info.names

    @property
    def module(self) -> str:
        return self.info.module

    @property
    def member_name(self) -> str:
        return self.info.member_name

    @property
    def description(self) -> str:
        return self.info.description

    @property
    def usage(self) -> str:
        return self.info.usage

    @property
    def server_only(self) -> bool:
        return self.info.server_only

    @property
    def args_type(self) -> ArgsType:
        return self.info.args_type

    @property
    def args_count(self) -> int:
        return self.info.args_count

    @property
    def args_single_quotes(self) -> bool:
        return self.info.args_single_quotes

    @property
    def disable_default(self) -> bool:
        return self.info.disable_default

    @property
    def patterns(self):
        return self.info.patterns

    def has_permission(self, guild_id: Optional[str], user_id: str) -> bool:
        return bool(self.permission(guild_id, user_id))

    async def run(
        self, message: InboundMessage, args: List[str], from_pattern: bool = False
    ) -> CommandResult:
        """Execute the command body."""
        return await self.handler(message, args, from_pattern)


@dataclass
class BotContext:
    """Dependency container for command groups.

    Provides typed access to shared services without coupling command
    bodies to the Bot facade.
    """

    config: "Config"
    storage: "SettingsStore"
    registry: "CommandRegistry"
    enablement: "EnablementResolver"
    permissions: "Permissions"
    interactions: "InteractionStateMachine"

    def usage(self, command_text: str, guild_id: Optional[str] = None) -> str:
        """Render invocation text using the guild's prefix."""
        prefix = guild_prefix(self.storage, guild_id, self.config.command_prefix)
        return usage(command_text, prefix, self.config.bot_name)


class BaseCommandGroup(ABC):
    """Abstract base class for command groups.

    A group declares one module and the commands belonging to it.
    Subclasses set module_id/module_name and implement get_commands().

    Args:
        ctx: Shared BotContext dependency container.
    """

    module_id: str = ""
    module_name: str = ""

    def __init__(self, ctx: BotContext):
        self.ctx = ctx

    @property
    def module(self) -> Module:
        return Module(id=self.module_id, name=self.module_name or self.module_id)

    @abstractmethod
    def get_commands(self) -> List[Command]:
        """Return the commands of this group, in priority order."""
        ...
