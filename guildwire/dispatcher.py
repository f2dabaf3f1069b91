"""Message dispatcher.

Turns inbound messages into command invocations and runs them. Each
message goes through:

    Received -> Classified -> Ignored
                           -> Resolved -> Gated -> Executed

Classification tries command patterns first, then the default path
(prefix or bot mention followed by a command name). Gating checks, in
order: server-only commands in direct messages, per-guild enablement,
and the command's permission predicate. Gating failures produce no
response.

Edits of recent messages are re-dispatched within the editable window.
"""

import re
from collections import OrderedDict
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional

import structlog

from . import patterns, util
from .commands.base import Command, CommandResult
from .enablement import EnablementResolver
from .exceptions import ConfigurationError, DisambiguationNeeded, UsageError
from .models import InboundMessage, MessageEdit
from .permissions import Permissions
from .registry import CommandRegistry
from .storage import SettingsStore
from .tokenizer import tokenize

logger = structlog.get_logger("guildwire.dispatch")

ALLOWED_CHANNELS_KEY = "allowed-channels"

GENERIC_FAILURE = "An error occurred while running the command."


class DispatchOutcome(str, Enum):
    """What happened to a message."""
    IGNORED = "ignored"
    SERVER_ONLY = "server_only"
    DISABLED = "disabled"
    DENIED = "denied"
    EXECUTED = "executed"
    USAGE_ERROR = "usage_error"
    DISAMBIGUATION = "disambiguation"
    FAILED = "failed"


@dataclass(frozen=True)
class ParsedInvocation:
    """A resolved command with its arguments for one message."""
    command: Command
    args: List[str]
    from_pattern: bool = False
    match: Optional[re.Match] = None


@dataclass(frozen=True)
class DispatchResult:
    """Outcome of dispatching one message.

    response is None when nothing should be sent back.
    """
    outcome: DispatchOutcome
    invocation: Optional[ParsedInvocation] = None
    response: CommandResult = None


_IGNORED = DispatchResult(DispatchOutcome.IGNORED)


@dataclass
class _TrackedMessage:
    message: InboundMessage
    was_command: bool


class Dispatcher:
    """Classifies, gates and executes commands for inbound messages.

    Args:
        registry: Registered commands.
        enablement: Per-guild enablement resolver.
        permissions: Admin checks used for channel restrictions.
        storage: Settings store (prefix overrides, allowed channels).
        command_prefix: Default prefix; blank means mentions only.
        bot_user_id: The bot's own user ID (mentions and self-filtering).
        bot_name: Display name used in usage strings for mention-only guilds.
        command_editable: Seconds after sending during which edits are
            re-dispatched; 0 disables edit handling.
        non_command_edit: Whether a non-command message can be edited
            into a command.
        log_messages: Log every inbound message at debug level.
    """

    def __init__(
        self,
        registry: CommandRegistry,
        enablement: EnablementResolver,
        permissions: Permissions,
        storage: SettingsStore,
        *,
        command_prefix: str = "!",
        bot_user_id: str = "",
        bot_name: str = "Bot",
        command_editable: float = 30,
        non_command_edit: bool = True,
        log_messages: bool = False,
    ):
        self.registry = registry
        self.enablement = enablement
        self.permissions = permissions
        self.storage = storage
        self.command_prefix = (command_prefix or "").strip()
        if any(c.isspace() for c in self.command_prefix):
            raise ConfigurationError(
                "Command prefix may not contain whitespace",
                setting_name="commands.prefix",
                value=self.command_prefix,
            )
        self.bot_user_id = str(bot_user_id or "")
        self.bot_name = bot_name
        self.command_editable = command_editable
        self.non_command_edit = non_command_edit
        self.log_messages = log_messages
        self._command_patterns: Dict[str, re.Pattern] = {}
        self._tracked: "OrderedDict[str, _TrackedMessage]" = OrderedDict()

    # ------------------------------------------------------------------
    # Classification
    # ------------------------------------------------------------------

    def prefix_for(self, guild_id: Optional[str]) -> str:
        return util.guild_prefix(self.storage, guild_id, self.command_prefix)

    def _command_pattern(self, prefix: str) -> Optional[re.Pattern]:
        """Regex for the default path, cached per prefix.

        Group 1 is the prefix/mention, group 2 the command name.
        """
        if prefix in self._command_patterns:
            return self._command_patterns[prefix]

        mention = rf"<@!?{re.escape(self.bot_user_id)}>\s+" if self.bot_user_id else None
        escaped = re.escape(prefix)
        if prefix and mention:
            source = rf"^({mention}(?:{escaped}\s*)?|{escaped}\s*)(\S+)"
        elif prefix:
            source = rf"^({escaped}\s*)(\S+)"
        elif mention:
            source = rf"^({mention})(\S+)"
        else:
            source = None

        compiled = re.compile(source, re.IGNORECASE) if source else None
        self._command_patterns[prefix] = compiled
        return compiled

    def classify(self, message: InboundMessage) -> Optional[ParsedInvocation]:
        """Resolve a message to an invocation, or None if it is not one."""
        text = message.text
        found = patterns.match(self.registry.pattern_commands, text)
        if found is not None:
            return ParsedInvocation(
                command=found.command,
                args=found.args,
                from_pattern=True,
                match=found.match,
            )

        command_re = self._command_pattern(self.prefix_for(message.guild_id))
        if command_re is None:
            return None
        matched = command_re.match(text)
        if matched is None:
            return None

        command = self.registry.get(matched.group(2))
        if command is None or command.disable_default:
            return None

        arg_string = text[matched.end():]
        args = tokenize(
            arg_string,
            command.args_type,
            command.args_count,
            command.args_single_quotes,
        )
        return ParsedInvocation(command=command, args=args)

    # ------------------------------------------------------------------
    # Gating
    # ------------------------------------------------------------------

    def _channel_allowed(self, message: InboundMessage) -> bool:
        if message.guild_id is None or message.channel_id is None:
            return True
        allowed = self.storage.get(message.guild_id, ALLOWED_CHANNELS_KEY, []) or []
        if not allowed or message.channel_id in allowed:
            return True
        return self.permissions.is_admin(message.guild_id, message.author_id)

    def gate(self, command: Command, message: InboundMessage) -> Optional[DispatchOutcome]:
        """Return the failing gate's outcome, or None if the command may run."""
        if command.server_only and message.guild_id is None:
            return DispatchOutcome.SERVER_ONLY
        if not self.enablement.is_enabled(message.guild_id, command):
            return DispatchOutcome.DISABLED
        if not command.has_permission(message.guild_id, message.author_id):
            return DispatchOutcome.DENIED
        return None

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    def _should_handle(self, message: InboundMessage) -> bool:
        if message.author_is_bot:
            return False
        if self.bot_user_id and message.author_id == self.bot_user_id:
            return False
        return True

    async def handle_message(self, message: InboundMessage) -> DispatchResult:
        """Dispatch a newly received message."""
        if self.log_messages:
            logger.debug(
                "message_received",
                message_id=message.message_id,
                guild=message.guild_id,
                length=len(message.text),
            )
        if not self._should_handle(message):
            return _IGNORED

        result = await self._dispatch(message)
        self._track(message, result.outcome is not DispatchOutcome.IGNORED)
        return result

    async def handle_edit(self, edit: MessageEdit) -> DispatchResult:
        """Re-dispatch an edited message if it is still editable."""
        if self.command_editable <= 0:
            return _IGNORED
        self._prune(edit.edited_at)

        tracked = self._tracked.get(edit.message_id)
        if tracked is None:
            logger.debug("edit_ignored", message_id=edit.message_id, reason="untracked")
            return _IGNORED
        original = tracked.message
        if (edit.edited_at - original.sent_at).total_seconds() > self.command_editable:
            logger.debug("edit_ignored", message_id=edit.message_id, reason="window_closed")
            return _IGNORED
        if edit.new_text == original.text:
            return _IGNORED
        if not tracked.was_command and not self.non_command_edit:
            logger.debug("edit_ignored", message_id=edit.message_id, reason="non_command")
            return _IGNORED

        edited = original.model_copy(update={"text": edit.new_text})
        result = await self._dispatch(edited)
        tracked.message = edited
        tracked.was_command = tracked.was_command or result.outcome is not DispatchOutcome.IGNORED
        logger.info(
            "edit_redispatched",
            message_id=edit.message_id,
            outcome=result.outcome.value,
        )
        return result

    async def _dispatch(self, message: InboundMessage) -> DispatchResult:
        if not self._channel_allowed(message):
            return _IGNORED
        invocation = self.classify(message)
        if invocation is None:
            return _IGNORED

        command = invocation.command
        blocked = self.gate(command, message)
        if blocked is not None:
            logger.info(
                "command_blocked",
                command=command.name,
                reason=blocked.value,
                guild=message.guild_id,
            )
            return DispatchResult(blocked, invocation)

        return await self.execute(invocation, message)

    async def execute(self, invocation: ParsedInvocation, message: InboundMessage) -> DispatchResult:
        """Run a gated invocation, converting command-body signals to text."""
        command = invocation.command
        logger.info(
            "command_running",
            command=command.name,
            guild=message.guild_id,
            from_pattern=invocation.from_pattern,
            arg_count=len(invocation.args),
        )
        try:
            response = await command.run(message, invocation.args, invocation.from_pattern)
        except UsageError as e:
            usage = util.usage(e.command.usage, self.prefix_for(message.guild_id), self.bot_name)
            return DispatchResult(
                DispatchOutcome.USAGE_ERROR,
                invocation,
                f"Invalid command format. Usage: {usage}",
            )
        except DisambiguationNeeded as e:
            return DispatchResult(
                DispatchOutcome.DISAMBIGUATION,
                invocation,
                util.disambiguation(e.items, e.label, e.prefix),
            )
        except Exception as e:
            logger.exception(
                "command_failed",
                command=command.name,
                error=str(e),
                error_type=type(e).__name__,
            )
            return DispatchResult(DispatchOutcome.FAILED, invocation, GENERIC_FAILURE)

        return DispatchResult(DispatchOutcome.EXECUTED, invocation, response)

    # ------------------------------------------------------------------
    # Edit tracking
    # ------------------------------------------------------------------

    def tracked_message(self, message_id: str) -> Optional[InboundMessage]:
        """Latest known version of a message still in the editable window."""
        tracked = self._tracked.get(message_id)
        return tracked.message if tracked is not None else None

    def _track(self, message: InboundMessage, was_command: bool) -> None:
        if self.command_editable <= 0:
            return
        self._prune(message.sent_at)
        self._tracked[message.message_id] = _TrackedMessage(message, was_command)

    def _prune(self, now: datetime) -> None:
        """Forget messages whose editable window closed before ``now``."""
        while self._tracked:
            oldest_id, oldest = next(iter(self._tracked.items()))
            age = (now - oldest.message.sent_at).total_seconds()
            if age > self.command_editable:
                self._tracked.pop(oldest_id)
            else:
                break
