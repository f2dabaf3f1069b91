"""Bot facade wiring the dispatch engine together.

The transport (a gateway client, a test harness) owns the connection
and hands inbound messages and edits to GuildBot, which classifies,
gates and runs them, then sends any response back through the
``send_message`` callback it was given.

Key classes:
    GuildBot: Owns the registry, settings store, permission checks,
        confirmation state and Dispatcher for one bot account.
"""

from typing import Awaitable, Callable, Iterable, Optional, Type

import structlog

from .commands.admin import ChannelCommands, ModRoleCommands, ModuleCommands
from .commands.base import BaseCommandGroup, BotContext, CommandResult
from .config import Config, get_config
from .dispatcher import DispatchResult, Dispatcher
from .enablement import EnablementResolver
from .interactions import InteractionStateMachine
from .models import InboundMessage, MessageEdit
from .permissions import PermissionSource, Permissions
from .registry import CommandRegistry
from .storage import SettingsStore, SQLiteSettingsStore

logger = structlog.get_logger("guildwire.dispatch")

SendMessage = Callable[[InboundMessage, CommandResult], Awaitable[None]]

BUILTIN_GROUPS = (ModuleCommands, ChannelCommands, ModRoleCommands)


class GuildBot:
    """Command engine for one bot account.

    Sync setup happens in __init__ (registry, built-in commands);
    start() opens the settings store and must run before messages are
    handled.

    Args:
        permission_source: Transport-provided role/permission lookup.
        send_message: Async callback delivering a response to the
            channel of the message that caused it.
        config: Configuration; defaults to the global instance.
        storage: Settings store; defaults to SQLite at config.storage_path.
        groups: Extra command group classes to register after the
            built-in ones.
    """

    def __init__(
        self,
        permission_source: PermissionSource,
        send_message: SendMessage,
        config: Optional[Config] = None,
        storage: Optional[SettingsStore] = None,
        groups: Iterable[Type[BaseCommandGroup]] = (),
    ):
        self.config = config or get_config()
        self.storage = storage or SQLiteSettingsStore(self.config.storage_path)
        self._send_message = send_message
        self.running = False

        self.registry = CommandRegistry()
        self.enablement = EnablementResolver(self.storage)
        self.permissions = Permissions(
            permission_source, self.storage, owners=self.config.owners
        )
        self.interactions = InteractionStateMachine(
            window=self.config.confirmation_window,
            keyword=self.config.confirmation_keyword,
        )
        self.context = BotContext(
            config=self.config,
            storage=self.storage,
            registry=self.registry,
            enablement=self.enablement,
            permissions=self.permissions,
            interactions=self.interactions,
        )
        self.dispatcher = Dispatcher(
            self.registry,
            self.enablement,
            self.permissions,
            self.storage,
            command_prefix=self.config.command_prefix,
            bot_user_id=self.config.bot_user_id,
            bot_name=self.config.bot_name,
            command_editable=self.config.command_editable,
            non_command_edit=self.config.non_command_edit,
            log_messages=self.config.log_messages,
        )

        for group_cls in (*BUILTIN_GROUPS, *groups):
            self.register_group(group_cls)

    def register_group(self, group_cls: Type[BaseCommandGroup]) -> BaseCommandGroup:
        """Instantiate a command group with the shared context and register it."""
        group = group_cls(self.context)
        self.registry.register_group(group)
        return group

    async def start(self):
        """Open the settings store."""
        await self.storage.initialize()
        self.running = True
        logger.info(
            "bot_started",
            commands=len(self.registry.commands),
            modules=len(self.registry.modules),
        )

    async def stop(self):
        """Drop pending confirmations and close the settings store."""
        if not self.running:
            return
        self.running = False
        self.interactions.cancel_all()
        await self.storage.close()
        logger.info("bot_stopped")

    async def handle_message(self, message: InboundMessage) -> DispatchResult:
        result = await self.dispatcher.handle_message(message)
        await self._respond(message, result)
        return result

    async def handle_edit(self, edit: MessageEdit) -> DispatchResult:
        result = await self.dispatcher.handle_edit(edit)
        if result.response is not None:
            tracked = self.dispatcher.tracked_message(edit.message_id)
            if tracked is not None:
                await self._respond(tracked, result)
        return result

    async def _respond(self, message: InboundMessage, result: DispatchResult) -> None:
        if result.response is None:
            return
        try:
            await self._send_message(message, result.response)
        except Exception as e:
            logger.error(
                "send_error",
                message_id=message.message_id,
                error=str(e),
                error_type=type(e).__name__,
            )
