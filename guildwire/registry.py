"""Command and module registry.

Owns every registered Module and Command for the process lifetime.
Names and aliases share one namespace across the whole registry;
member names are unique within their module. Registration order is
preserved because pattern matching breaks ties by it.
"""

from typing import TYPE_CHECKING, Dict, Iterable, List, Optional, Tuple

import structlog

from .commands.base import Command
from .exceptions import DuplicateNameError, UnknownModuleError
from .models import Module

if TYPE_CHECKING:
    from .commands.base import BaseCommandGroup

logger = structlog.get_logger("guildwire.registry")


class CommandRegistry:
    """Holds registered modules and commands and answers lookups.

    Lookups are read-only and deterministic; nothing is ever removed.
    """

    def __init__(self):
        self._modules: Dict[str, Module] = {}
        self._commands: List[Command] = []
        self._names: Dict[str, Command] = {}
        self._members: Dict[Tuple[str, str], Command] = {}

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def register_module(self, module_id: str, name: Optional[str] = None) -> Module:
        """Register a module.

        Raises:
            DuplicateNameError: The module ID is taken.
        """
        module = Module(id=module_id, name=name or module_id)
        if module.id in self._modules:
            raise DuplicateNameError(
                f'Module "{module.id}" is already registered',
                name=module.id,
                existing=module.id,
            )
        self._modules[module.id] = module
        logger.debug("module_registered", module=module.id)
        return module

    def register_modules(self, modules: Iterable[Tuple[str, str]]) -> None:
        """Register several (id, name) pairs."""
        for module_id, name in modules:
            self.register_module(module_id, name)

    def register(self, command: Command) -> Command:
        """Register a command.

        Raises:
            UnknownModuleError: The command's module is not registered.
            DuplicateNameError: The name or an alias is already used by
                any command, or the member name is taken in the module.
        """
        if command.module not in self._modules:
            raise UnknownModuleError(
                f'Module "{command.module}" is not registered',
                module_id=command.module,
            )
        for name in command.names:
            existing = self._names.get(name)
            if existing is not None:
                raise DuplicateNameError(
                    f'A command with the name or alias "{name}" is already registered',
                    name=name,
                    existing=existing.id,
                )
        member_key = (command.module, command.member_name)
        if member_key in self._members:
            raise DuplicateNameError(
                f'A command with the member name "{command.member_name}" is already '
                f'registered in module "{command.module}"',
                name=command.member_name,
                existing=self._members[member_key].id,
            )

        self._commands.append(command)
        for name in command.names:
            self._names[name] = command
        self._members[member_key] = command
        logger.debug("command_registered", command=command.name, id=command.id)
        return command

    def register_commands(self, commands: Iterable[Command]) -> None:
        for command in commands:
            self.register(command)

    def register_group(self, group: "BaseCommandGroup") -> None:
        """Register a command group's module (if new) and all its commands."""
        module = group.module
        if module.id not in self._modules:
            self.register_module(module.id, module.name)
        commands = group.get_commands()
        self.register_commands(commands)
        logger.info(
            "command_group_registered",
            group=type(group).__name__,
            module=module.id,
            commands=[c.name for c in commands],
        )

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    @property
    def commands(self) -> Tuple[Command, ...]:
        """All commands in registration order."""
        return tuple(self._commands)

    @property
    def modules(self) -> Tuple[Module, ...]:
        """All modules in registration order."""
        return tuple(self._modules.values())

    @property
    def pattern_commands(self) -> Tuple[Command, ...]:
        """Commands that declare patterns, in registration order."""
        return tuple(c for c in self._commands if c.patterns)

    def commands_in_module(self, module_id: str) -> List[Command]:
        return [c for c in self._commands if c.module == module_id]

    def get(self, name: str) -> Optional[Command]:
        """Exact, case-insensitive lookup by name or alias."""
        return self._names.get(name.strip().lower())

    def get_by_id(self, command_id: str) -> Optional[Command]:
        """Lookup by ``<module>:<member_name>``."""
        module, _, member = command_id.strip().lower().partition(":")
        return self._members.get((module, member))

    def get_module(self, module_id: str) -> Optional[Module]:
        return self._modules.get(module_id.strip().lower())

    def find_commands(self, search: Optional[str] = None) -> List[Command]:
        """Search commands for disambiguation.

        An exact name, alias or ``module:member`` match returns just that
        command. Otherwise every command whose name or any alias contains
        the search text is returned, in registration order. A blank
        search returns every command.
        """
        if not search or not search.strip():
            return list(self._commands)
        lc_search = search.strip().lower()

        exact = self._names.get(lc_search) or self.get_by_id(lc_search)
        if exact is not None:
            return [exact]
        return [
            c for c in self._commands
            if any(lc_search in name for name in c.names)
        ]

    def find_modules(self, search: Optional[str] = None) -> List[Module]:
        """Search modules by ID or name, with the find_commands() contract."""
        if not search or not search.strip():
            return list(self._modules.values())
        lc_search = search.strip().lower()

        matched = [
            m for m in self._modules.values()
            if lc_search in m.id or lc_search in m.name.lower()
        ]
        for module in matched:
            if module.id == lc_search or module.name.lower() == lc_search:
                return [module]
        return matched
