"""Permission predicates for commands.

Each command carries a predicate ``(guild_id, user_id) -> bool``. This
module provides the Permissions service that builds the common ones
(owner, administrator, moderator) on top of a PermissionSource supplied
by the transport layer and the guild's stored moderator roles.

Predicates are capability checks, not role lists: they never mutate
state and are evaluated only after the command is known to be enabled.
"""

from abc import ABC, abstractmethod
from typing import Iterable, List, Optional

from .commands.base import PermissionCheck
from .storage import SettingsStore

MOD_ROLES_KEY = "mod-roles"
MANAGE_MESSAGES = "manage_messages"


class PermissionSource(ABC):
    """Guild-scoped role/permission lookup provided by the transport."""

    @abstractmethod
    def is_administrator(self, guild_id: str, user_id: str) -> bool:
        ...

    @abstractmethod
    def has_permission(self, guild_id: str, user_id: str, permission: str) -> bool:
        ...

    @abstractmethod
    def role_ids(self, guild_id: str, user_id: str) -> Iterable[str]:
        ...


class Permissions:
    """Owner/admin/moderator checks.

    Args:
        source: Transport-provided permission lookup.
        storage: Settings store holding each guild's moderator roles.
        owners: User IDs that pass every check.
    """

    def __init__(
        self,
        source: PermissionSource,
        storage: SettingsStore,
        owners: Optional[Iterable[str]] = None,
    ):
        self.source = source
        self.storage = storage
        self.owners = frozenset(str(o) for o in (owners or ()))

    def is_owner(self, user_id: str) -> bool:
        return user_id in self.owners

    def is_admin(self, guild_id: Optional[str], user_id: str) -> bool:
        if self.is_owner(user_id):
            return True
        if guild_id is None:
            return False
        return bool(self.source.is_administrator(guild_id, user_id))

    def mod_roles(self, guild_id: Optional[str]) -> List[str]:
        if guild_id is None:
            return []
        return list(self.storage.get(guild_id, MOD_ROLES_KEY, []) or [])

    def is_mod(self, guild_id: Optional[str], user_id: str) -> bool:
        """Admins are moderators; otherwise the stored mod roles decide.

        With no stored roles, the manage-messages permission counts.
        """
        if self.is_admin(guild_id, user_id):
            return True
        if guild_id is None:
            return False
        roles = self.mod_roles(guild_id)
        if not roles:
            return bool(self.source.has_permission(guild_id, user_id, MANAGE_MESSAGES))
        user_roles = set(self.source.role_ids(guild_id, user_id))
        return any(role in user_roles for role in roles)

    # Predicate factories for Command.permission

    def admin_only(self) -> PermissionCheck:
        return self.is_admin

    def mod_only(self) -> PermissionCheck:
        return self.is_mod

    def owner_only(self) -> PermissionCheck:
        return lambda guild_id, user_id: self.is_owner(user_id)
