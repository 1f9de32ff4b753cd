"""
Role and permission catalogue.

Default implementation of the Role/Permission Oracle. Roles form a
hierarchy (SUPER_ADMIN > SUPPORT_MANAGER > ENGINEER); INVENTORY_MANAGER
sits beside ENGINEER and owns stock operations and low-stock alerts.
"""

from enum import Enum
from typing import Dict, FrozenSet


class Role(Enum):
    """Staff roles known to the core."""

    SUPER_ADMIN = "SUPER_ADMIN"
    SUPPORT_MANAGER = "SUPPORT_MANAGER"
    ENGINEER = "ENGINEER"
    INVENTORY_MANAGER = "INVENTORY_MANAGER"

    @property
    def level(self) -> int:
        return ROLE_HIERARCHY[self]

    @classmethod
    def from_string(cls, value: str) -> "Role":
        """
        Convert a string such as "Support Manager" or "SUPPORT_MANAGER".

        Raises:
            ValueError: Unknown role
        """
        if isinstance(value, Role):
            return value
        try:
            return cls[str(value).strip().upper().replace(" ", "_")]
        except KeyError:
            raise ValueError(f"Invalid role: {value}")


class Permission(Enum):
    VIEW_TICKET = "view_ticket"
    CREATE_TICKET = "create_ticket"
    UPDATE_TICKET = "update_ticket"
    ASSIGN_TICKET = "assign_ticket"
    RESOLVE_TICKET = "resolve_ticket"
    APPROVE_TICKET = "approve_ticket"
    VIEW_ITEM = "view_item"
    CREATE_ITEM = "create_item"
    UPDATE_ITEM = "update_item"
    DISPATCH_PART = "dispatch_part"
    RETURN_PART = "return_part"
    VIEW_SETTINGS = "view_settings"
    MANAGE_SETTINGS = "manage_settings"


ROLE_HIERARCHY: Dict[Role, int] = {
    Role.SUPER_ADMIN: 3,
    Role.SUPPORT_MANAGER: 2,
    Role.ENGINEER: 1,
    Role.INVENTORY_MANAGER: 1,
}

ROLE_PERMISSIONS: Dict[Role, FrozenSet[Permission]] = {
    Role.SUPER_ADMIN: frozenset(Permission),
    Role.SUPPORT_MANAGER: frozenset({
        Permission.VIEW_TICKET,
        Permission.CREATE_TICKET,
        Permission.UPDATE_TICKET,
        Permission.ASSIGN_TICKET,
        Permission.APPROVE_TICKET,
        Permission.RESOLVE_TICKET,
        Permission.VIEW_ITEM,
        Permission.CREATE_ITEM,
        Permission.UPDATE_ITEM,
        Permission.DISPATCH_PART,
        Permission.RETURN_PART,
        Permission.VIEW_SETTINGS,
    }),
    Role.ENGINEER: frozenset({
        Permission.VIEW_TICKET,
        Permission.UPDATE_TICKET,
        Permission.RESOLVE_TICKET,
        Permission.VIEW_ITEM,
        Permission.DISPATCH_PART,
        Permission.RETURN_PART,
    }),
    Role.INVENTORY_MANAGER: frozenset({
        Permission.VIEW_ITEM,
        Permission.CREATE_ITEM,
        Permission.UPDATE_ITEM,
        Permission.DISPATCH_PART,
        Permission.RETURN_PART,
        Permission.VIEW_SETTINGS,
    }),
}


class StaticRoleOracle:
    """
    Role/Permission Oracle backed by the static tables above.

    Example:
        oracle = StaticRoleOracle()
        oracle.has_permission(Role.ENGINEER, Permission.ASSIGN_TICKET)  # False
        oracle.is_role_at_least(Role.SUPER_ADMIN, Role.SUPPORT_MANAGER)  # True
    """

    def __init__(self, permissions: Dict[Role, FrozenSet[Permission]] = None):
        self._permissions = permissions or ROLE_PERMISSIONS

    def has_permission(self, role: Role, permission: Permission) -> bool:
        return permission in self._permissions.get(role, frozenset())

    def is_role_at_least(self, actor_role: Role, required_role: Role) -> bool:
        return ROLE_HIERARCHY.get(actor_role, 0) >= ROLE_HIERARCHY[required_role]
