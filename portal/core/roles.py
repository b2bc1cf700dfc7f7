"""Static portal roles and the pure authorization predicate."""

from __future__ import annotations

from collections.abc import Collection
from enum import Enum
from typing import Protocol


class Role(str, Enum):
    """Closed set of portal roles ordered admin > editor > viewer."""

    ADMIN = "admin"
    EDITOR = "editor"
    VIEWER = "viewer"

    @property
    def rank(self) -> int:
        """Numeric privilege level; higher includes lower."""
        return _ROLE_RANKS[self]

    def includes(self, other: Role) -> bool:
        """Return True when this role carries every privilege of ``other``."""
        return self.rank >= other.rank

    @classmethod
    def at_least(cls, minimum: Role) -> frozenset[Role]:
        """Return the allow-list of roles at or above ``minimum``."""
        return frozenset(role for role in cls if role.includes(minimum))

    @classmethod
    def parse(cls, value: str | Role | None) -> Role | None:
        """Coerce stored role text, returning None for unknown values."""
        if value is None:
            return None
        try:
            return cls(value)
        except ValueError:
            return None


_ROLE_RANKS: dict[Role, int] = {Role.VIEWER: 1, Role.EDITOR: 2, Role.ADMIN: 3}

ANY_AUTHENTICATED: frozenset[Role] = Role.at_least(Role.VIEWER)
EDITOR_OR_ABOVE: frozenset[Role] = Role.at_least(Role.EDITOR)
ADMIN_ONLY: frozenset[Role] = Role.at_least(Role.ADMIN)


class RoleBearer(Protocol):
    """Anything carrying a role and an active flag."""

    role: str
    is_active: bool


def is_authorized(identity: RoleBearer | None, allowed_roles: Collection[Role]) -> bool:
    """Return True iff identity exists, is active, and holds an allowed role."""
    if identity is None or not identity.is_active:
        return False
    role = Role.parse(identity.role)
    if role is None:
        return False
    return role in allowed_roles
