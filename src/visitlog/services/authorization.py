"""Role-based permission policy.

The same table drives endpoint guards and the permission list returned to
clients for UI gating.
"""

from enum import Enum


class Permission(str, Enum):
    VIEW_VISITS = "view_visits"
    RECORD_VISITS = "record_visits"
    DELETE_VISITS = "delete_visits"
    EXPORT_VISITS = "export_visits"
    MANAGE_DATA = "manage_data"
    MANAGE_PURPOSES = "manage_purposes"
    MANAGE_ACCOUNTS = "manage_accounts"


ROLE_PERMISSIONS: dict[str, frozenset[Permission]] = {
    "admin": frozenset(Permission),
    "user": frozenset({
        Permission.VIEW_VISITS,
        Permission.RECORD_VISITS,
        Permission.EXPORT_VISITS,
    }),
    "viewer": frozenset({
        Permission.VIEW_VISITS,
        Permission.EXPORT_VISITS,
    }),
}


def can(role: str | None, permission: Permission) -> bool:
    """Return True if the role grants the permission. Unknown roles grant nothing."""
    return permission in ROLE_PERMISSIONS.get(role or "", frozenset())


def permissions_for(role: str | None) -> list[str]:
    """Sorted permission names for a role."""
    return sorted(p.value for p in ROLE_PERMISSIONS.get(role or "", frozenset()))
