"""Errors raised by guildwire.

Three families are kept apart so callers can catch exactly what they
handle:

* Registration errors abort startup; a bot with clashing command names
  must not come up half-registered.
* Command-body signals (UsageError, DisambiguationNeeded) are raised
  from inside a command and rendered as guidance text by the Dispatcher.
* Storage and configuration errors carry the failing operation or
  setting so they log cleanly.
"""

from typing import TYPE_CHECKING, Any, Optional, Sequence, Tuple

if TYPE_CHECKING:
    from .commands.base import Command


class GuildwireError(Exception):
    """Root of the guildwire error tree.

    Keyword arguments listed in ``fields`` become attributes of the same
    name. All keyword arguments are kept in ``context`` and printed by
    ``str()`` for structured logs.

    Attributes:
        message: Human-readable description.
        module: Subsystem the error came from; defaults to ``origin``.
        context: Extra key-value details.
    """

    origin: Optional[str] = None
    fields: Tuple[str, ...] = ()

    def __init__(self, message: str = "", *, module: Optional[str] = None, **context: Any) -> None:
        super().__init__(message)
        self.message = message
        self.module = module or self.origin
        for name in self.fields:
            setattr(self, name, context.get(name))
        self.context = {k: v for k, v in context.items() if v is not None}

    def __str__(self) -> str:
        text = self.message or type(self).__name__
        if self.module:
            text += f" [module={self.module}]"
        if self.context:
            details = ", ".join(f"{key}={value}" for key, value in self.context.items())
            text += f" ({details})"
        return text

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.message!r}, module={self.module!r})"


class RegistrationError(GuildwireError):
    """A command or module could not be registered."""
    origin = "registry"


class DuplicateNameError(RegistrationError):
    """A name, alias, member name or module ID is already taken.

    ``name`` is the clashing identifier and ``existing`` the ID of whatever
    already owns it.
    """
    fields = ("name", "existing")


class UnknownModuleError(RegistrationError):
    """A command names a module that was never registered."""
    fields = ("module_id",)


class UsageError(GuildwireError):
    """Raised by a command body when its arguments are malformed.

    The Dispatcher answers with ``command``'s usage string.
    """
    origin = "commands"

    def __init__(self, command: "Command", message: str = "", **context: Any) -> None:
        self.command = command
        super().__init__(message or f"Invalid format for {command.name}", **context)


class DisambiguationNeeded(GuildwireError):
    """A lookup matched more than one item.

    Not a failure: the Dispatcher lists ``items`` so the user can pick
    one. ``label`` is the plural noun for them and ``prefix`` optional
    text shown first.
    """
    origin = "commands"

    def __init__(self, items: Sequence[Any], label: str, *, prefix: str = "") -> None:
        self.items = list(items)
        self.label = label
        self.prefix = prefix
        super().__init__(f"Multiple {label} found", count=len(self.items))


class StorageError(GuildwireError):
    """A settings read or write failed; ``operation`` names which one."""
    origin = "storage"
    fields = ("operation",)


class ConfigurationError(GuildwireError):
    """A setting is missing or has an unusable value."""
    origin = "config"
    fields = ("setting_name",)
