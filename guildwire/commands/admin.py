"""Built-in administration commands.

Handles: list-modules, enable-module, disable-module (module "modules");
allowed-channels, allow-channel, disallow-channel (module "channels");
mod-roles, add-mod-role, clear-mod-roles (module "mod-roles").

Every command here is server-only and admin-only.
"""

from __future__ import annotations

import re
from typing import List, Optional

import structlog

from ..dispatcher import ALLOWED_CHANNELS_KEY
from ..exceptions import DisambiguationNeeded, UsageError
from ..interactions import InteractionOutcome
from ..models import ArgsType, InboundMessage
from ..permissions import MOD_ROLES_KEY
from .base import BaseCommandGroup, Command

logger = structlog.get_logger("guildwire.commands")

_CHANNEL_ID = re.compile(r"^(?:<#)?(\d+)>?$")
_ROLE_ID = re.compile(r"^(?:<@&)?(\d+)>?$")

_CHANNEL_ARG_DETAILS = "Give the channel as a mention or an ID. Channel names are not looked up."


class ModuleCommands(BaseCommandGroup):
    """Enable and disable modules or single commands per guild."""

    module_id = "modules"
    module_name = "Modules"

    def get_commands(self) -> List[Command]:
        admin = self.ctx.permissions.admin_only()
        return [
            Command.create(
                self.handle_list,
                permission=admin,
                name="list-modules",
                aliases=["modules", "mods"],
                module=self.module_id,
                member_name="list",
                description="Lists all modules and whether they are enabled.",
                server_only=True,
            ),
            Command.create(
                self.handle_enable,
                permission=admin,
                name="enable-module",
                aliases=["enable-mod", "module-on", "mod-on"],
                module=self.module_id,
                member_name="enable",
                description="Enables a module or command.",
                usage="enable-module <module|command>",
                details=(
                    "The module must be the name (partial or whole) or ID of a module. "
                    "A command name may also be given to enable a single command."
                ),
                examples=["enable-module mod-roles", "enable-module Moderator roles"],
                server_only=True,
            ),
            Command.create(
                self.handle_disable,
                permission=admin,
                name="disable-module",
                aliases=["disable-mod", "module-off", "mod-off"],
                module=self.module_id,
                member_name="disable",
                description="Disables a module or command.",
                usage="disable-module <module|command>",
                examples=["disable-module mod-roles", "disable-module add-mod-role"],
                server_only=True,
            ),
        ]

    async def handle_list(self, message: InboundMessage, args: List[str], from_pattern: bool) -> str:
        """List registered modules with their state in this guild."""
        lines = ["Modules:"]
        for module in self.ctx.registry.modules:
            state = "enabled" if self.ctx.enablement.is_module_enabled(message.guild_id, module.id) else "disabled"
            lines.append(f"  {module.name} ({module.id}): {state}")
        return "\n".join(lines)

    async def handle_enable(self, message: InboundMessage, args: List[str], from_pattern: bool) -> str:
        return await self._toggle(message, args, enabled=True)

    async def handle_disable(self, message: InboundMessage, args: List[str], from_pattern: bool) -> str:
        return await self._toggle(message, args, enabled=False)

    async def _toggle(self, message: InboundMessage, args: List[str], enabled: bool) -> str:
        """Resolve a module first, then a command, and set its flag."""
        command_name = "enable-module" if enabled else "disable-module"
        if not args or not args[0]:
            raise UsageError(self.ctx.registry.get(command_name))
        guild_id = message.guild_id
        verb = "enabled" if enabled else "disabled"
        search = args[0]

        modules = self.ctx.registry.find_modules(search)
        if len(modules) == 1:
            module = modules[0]
            if not enabled and module.id == self.module_id:
                return f"The {module.name} module may not be disabled."
            if self.ctx.enablement.is_module_enabled(guild_id, module.id) == enabled:
                return f"The {module.name} module is already {verb}."
            await self.ctx.enablement.set_module_enabled(guild_id, module.id, enabled)
            return f"{verb.capitalize()} {module.name} module."
        if len(modules) > 1:
            raise DisambiguationNeeded(modules, "modules")

        commands = self.ctx.registry.find_commands(search)
        if len(commands) == 1:
            command = commands[0]
            if not enabled and command.module == self.module_id:
                return f"The `{command.name}` command may not be disabled."
            if self.ctx.enablement.is_enabled(guild_id, command) == enabled:
                return f"The `{command.name}` command is already {verb}."
            await self.ctx.enablement.set_enabled(guild_id, command, enabled)
            return f"{verb.capitalize()} `{command.name}` command."
        if len(commands) > 1:
            raise DisambiguationNeeded(commands, "commands", prefix="No modules found.")

        return (
            "Unable to identify module or command. Use "
            f"{self.ctx.usage('list-modules', guild_id)} to view the list of modules."
        )


def _parse_id(pattern: re.Pattern, value: str) -> Optional[str]:
    matched = pattern.match(value.strip())
    return matched.group(1) if matched else None


class ChannelCommands(BaseCommandGroup):
    """Restrict command operation to a set of channels."""

    module_id = "channels"
    module_name = "Channels"

    def get_commands(self) -> List[Command]:
        admin = self.ctx.permissions.admin_only()
        return [
            Command.create(
                self.handle_list,
                permission=admin,
                name="allowed-channels",
                aliases=["allowed-chans"],
                module=self.module_id,
                member_name="list",
                description="Lists the channels command operation is allowed in.",
                server_only=True,
            ),
            Command.create(
                self.handle_allow,
                permission=admin,
                name="allow-channel",
                aliases=["allow-chan"],
                module=self.module_id,
                member_name="allow",
                description="Allows command operation in a channel.",
                usage="allow-channel <channel>",
                details=_CHANNEL_ARG_DETAILS,
                examples=["allow-channel #bots", "allow-channel 205536402341888001"],
                server_only=True,
            ),
            Command.create(
                self.handle_disallow,
                permission=admin,
                name="disallow-channel",
                aliases=["disallow-chan"],
                module=self.module_id,
                member_name="disallow",
                description="Disallows command operation in a channel.",
                usage="disallow-channel <channel>",
                details=_CHANNEL_ARG_DETAILS,
                server_only=True,
            ),
        ]

    def _allowed(self, guild_id: str) -> List[str]:
        return list(self.ctx.storage.get(guild_id, ALLOWED_CHANNELS_KEY, []) or [])

    def _channel_arg(self, args: List[str], command_name: str) -> str:
        channel_id = _parse_id(_CHANNEL_ID, args[0]) if args and args[0] else None
        if channel_id is None:
            raise UsageError(self.ctx.registry.get(command_name))
        return channel_id

    async def handle_list(self, message: InboundMessage, args: List[str], from_pattern: bool) -> str:
        allowed = self._allowed(message.guild_id)
        if not allowed:
            return "There are no allowed channels, so operation is allowed in all channels."
        return "Allowed channels: " + ", ".join(f"<#{c}>" for c in allowed)

    async def handle_allow(self, message: InboundMessage, args: List[str], from_pattern: bool) -> str:
        channel_id = self._channel_arg(args, "allow-channel")
        allowed = self._allowed(message.guild_id)
        if channel_id in allowed:
            return f"Operation is already allowed in <#{channel_id}>."
        allowed.append(channel_id)
        await self.ctx.storage.set(message.guild_id, ALLOWED_CHANNELS_KEY, allowed)
        logger.info("channel_allowed", guild=message.guild_id, channel=channel_id)
        return f"Allowed operation in <#{channel_id}>."

    async def handle_disallow(self, message: InboundMessage, args: List[str], from_pattern: bool) -> str:
        channel_id = self._channel_arg(args, "disallow-channel")
        allowed = self._allowed(message.guild_id)
        if channel_id not in allowed:
            return f"Operation is already not allowed in <#{channel_id}>."
        allowed.remove(channel_id)
        if allowed:
            await self.ctx.storage.set(message.guild_id, ALLOWED_CHANNELS_KEY, allowed)
            suffix = ""
        else:
            await self.ctx.storage.delete(message.guild_id, ALLOWED_CHANNELS_KEY)
            suffix = " Since there are no longer any allowed channels, operation is now allowed in all channels."
        logger.info("channel_disallowed", guild=message.guild_id, channel=channel_id)
        return f"Disallowed operation in <#{channel_id}>.{suffix}"


class ModRoleCommands(BaseCommandGroup):
    """Manage which roles count as moderators."""

    module_id = "mod-roles"
    module_name = "Moderator roles"

    def get_commands(self) -> List[Command]:
        admin = self.ctx.permissions.admin_only()
        return [
            Command.create(
                self.handle_list,
                permission=admin,
                name="mod-roles",
                aliases=["list-mod-roles"],
                module=self.module_id,
                member_name="list",
                description="Lists the moderator roles.",
                server_only=True,
            ),
            Command.create(
                self.handle_add,
                permission=admin,
                name="add-mod-role",
                module=self.module_id,
                member_name="add",
                description="Adds a moderator role.",
                usage="add-mod-role <role>",
                server_only=True,
            ),
            Command.create(
                self.handle_clear,
                permission=admin,
                name="clear-mod-roles",
                module=self.module_id,
                member_name="clear",
                description="Clears all of the moderator roles.",
                details="Asks for confirmation before clearing.",
                args_type=ArgsType.MULTIPLE,
                server_only=True,
            ),
        ]

    async def handle_list(self, message: InboundMessage, args: List[str], from_pattern: bool) -> str:
        roles = self.ctx.permissions.mod_roles(message.guild_id)
        if not roles:
            return (
                "There are no moderator roles. Moderators are determined by the "
                '"Manage messages" permission.'
            )
        return "Moderator roles: " + ", ".join(f"<@&{r}>" for r in roles)

    async def handle_add(self, message: InboundMessage, args: List[str], from_pattern: bool) -> str:
        role_id = _parse_id(_ROLE_ID, args[0]) if args and args[0] else None
        if role_id is None:
            raise UsageError(self.ctx.registry.get("add-mod-role"))
        roles = self.ctx.permissions.mod_roles(message.guild_id)
        if role_id in roles:
            return f"<@&{role_id}> is already a moderator role."
        roles.append(role_id)
        await self.ctx.storage.set(message.guild_id, MOD_ROLES_KEY, roles)
        return f"Added <@&{role_id}> to the moderator roles."

    async def handle_clear(self, message: InboundMessage, args: List[str], from_pattern: bool) -> str:
        """Clear the moderator roles after the invoking admin confirms."""
        outcome = self.ctx.interactions.advance(
            f"{self.module_id}:clear", message.author_id, message.guild_id, args
        )
        if outcome is InteractionOutcome.CONFIRMED:
            await self.ctx.storage.delete(message.guild_id, MOD_ROLES_KEY)
            logger.info("mod_roles_cleared", guild=message.guild_id)
            return (
                "Cleared the server's moderator roles. Moderators will be "
                'determined by the "Manage messages" permission.'
            )
        confirm = self.ctx.usage(
            f"clear-mod-roles {self.ctx.interactions.keyword}", message.guild_id
        )
        return (
            "Are you sure you want to clear all of the moderator roles? "
            f"Use {confirm} within the next {self.ctx.interactions.window:g} seconds to continue."
        )
