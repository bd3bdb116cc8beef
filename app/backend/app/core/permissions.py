"""Role and permission model shared by the API guards and the navigation filter.

Permissions are flat ``resource:action`` strings. A user's effective set is
the union of the grants attached to their role (RBAC) adjusted by
per-user feature toggles (ABAC). ``*`` grants everything.
"""

from __future__ import annotations

import enum
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime


class UserRole(str, enum.Enum):
    OWNER = "owner"
    MANAGER = "manager"
    SUPERVISOR = "supervisor"
    STAFF = "staff"


WILDCARD = "*"

# Owners bypass permission checks except for this one, which they must hold.
OWNER_GATED_PERMISSION = "business:settings"

ROLE_HIERARCHY: dict[UserRole, int] = {
    UserRole.OWNER: 4,
    UserRole.MANAGER: 3,
    UserRole.SUPERVISOR: 2,
    UserRole.STAFF: 1,
}

ROLE_DISPLAY_NAMES: dict[UserRole, str] = {
    UserRole.OWNER: "Owner",
    UserRole.MANAGER: "Manager",
    UserRole.SUPERVISOR: "Supervisor",
    UserRole.STAFF: "Staff",
}

ASSIGNABLE_ROLES: dict[UserRole, tuple[UserRole, ...]] = {
    UserRole.OWNER: (UserRole.MANAGER, UserRole.SUPERVISOR, UserRole.STAFF),
    UserRole.MANAGER: (UserRole.SUPERVISOR, UserRole.STAFF),
    UserRole.SUPERVISOR: (UserRole.STAFF,),
    UserRole.STAFF: (),
}

_CRUD = ("create", "read", "update", "delete")

RESOURCE_ACTIONS: dict[str, tuple[str, ...]] = {
    "dashboard": ("view",),
    "analytics": ("view",),
    "business": ("read", "settings", "delete"),
    "staff": _CRUD,
    "department": _CRUD,
    "customer": _CRUD,
    "service": _CRUD,
    "package": _CRUD,
    "job": _CRUD + ("assign",),
    "inventory": _CRUD,
    "purchase_order": _CRUD + ("approve", "receive", "pay"),
    "pos": ("create", "read"),
    "wallet": _CRUD + ("transfer",),
    "expense": _CRUD + ("approve",),
    "permission": ("read", "manage"),
    "audit": ("read",),
}

PERMISSION_CATALOG: tuple[str, ...] = tuple(
    f"{resource}:{action}" for resource, actions in RESOURCE_ACTIONS.items() for action in actions
)

# Holding the key action also satisfies the listed actions on the same resource.
PERMISSION_IMPLICATIONS: dict[str, tuple[str, ...]] = {
    "manage": ("create", "read", "update", "delete", "view"),
    "create": ("read", "view"),
    "update": ("read", "view"),
    "delete": ("read", "view"),
    "write": ("read", "view"),
    "edit": ("read", "view"),
    "read": ("view",),
}

DEFAULT_ROLE_PERMISSIONS: dict[UserRole, tuple[str, ...]] = {
    UserRole.OWNER: (WILDCARD,),
    UserRole.MANAGER: (
        "dashboard:view",
        "analytics:view",
        "business:read",
        "staff:create",
        "staff:read",
        "staff:update",
        "department:create",
        "department:read",
        "department:update",
        "customer:create",
        "customer:read",
        "customer:update",
        "customer:delete",
        "service:create",
        "service:read",
        "service:update",
        "service:delete",
        "package:create",
        "package:read",
        "package:update",
        "package:delete",
        "job:create",
        "job:read",
        "job:update",
        "job:delete",
        "job:assign",
        "inventory:create",
        "inventory:read",
        "inventory:update",
        "inventory:delete",
        "purchase_order:create",
        "purchase_order:read",
        "purchase_order:update",
        "purchase_order:approve",
        "purchase_order:receive",
        "pos:create",
        "pos:read",
        "wallet:create",
        "wallet:read",
        "wallet:update",
        "wallet:transfer",
        "expense:create",
        "expense:read",
        "expense:update",
        "expense:approve",
        "permission:read",
        "audit:read",
    ),
    UserRole.SUPERVISOR: (
        "dashboard:view",
        "customer:read",
        "customer:update",
        "service:read",
        "package:read",
        "job:read",
        "job:update",
        "job:assign",
        "inventory:read",
        "pos:create",
        "pos:read",
        "staff:read",
        "department:read",
        "wallet:read",
        "expense:create",
        "expense:read",
    ),
    UserRole.STAFF: (
        "dashboard:view",
        "customer:read",
        "service:read",
        "package:read",
        "job:read",
        "inventory:read",
        "pos:read",
    ),
}


@dataclass(frozen=True)
class PermissionToggle:
    """Per-user override of a single permission."""

    permission: str
    is_allowed: bool
    expires_at: datetime | None = None

    def is_active(self, now: datetime) -> bool:
        return self.expires_at is None or self.expires_at > now


def split_permission(permission: str) -> tuple[str, str]:
    resource, _, action = permission.partition(":")
    return resource, action


def has_permission(granted: Iterable[str], required: str, denied: Iterable[str] = ()) -> bool:
    """Check ``required`` against granted names, wildcards and implied actions.

    A name in ``denied`` is refused outright, even when a wildcard or a
    stronger action on the same resource would otherwise imply it.
    """

    if required in set(denied):
        return False
    granted_set = set(granted)
    if WILDCARD in granted_set or required in granted_set:
        return True

    resource, action = split_permission(required)
    if not resource or not action:
        return False

    if f"{resource}:*" in granted_set:
        return True

    for name in granted_set:
        granted_resource, granted_action = split_permission(name)
        if granted_resource != resource:
            continue
        if action in PERMISSION_IMPLICATIONS.get(granted_action, ()):
            return True
    return False


def expand_permissions(granted: Iterable[str], denied: Iterable[str] = ()) -> frozenset[str]:
    """Return the catalog permissions satisfied by ``granted`` and not ``denied``.

    The wildcard itself is preserved so callers can still see full access.
    """

    granted_set = set(granted)
    denied_set = frozenset(denied)
    expanded = {name for name in PERMISSION_CATALOG if has_permission(granted_set, name, denied_set)}
    if WILDCARD in granted_set:
        expanded.add(WILDCARD)
    return frozenset(expanded)


def has_minimum_role(role: UserRole, minimum: UserRole) -> bool:
    return ROLE_HIERARCHY[role] >= ROLE_HIERARCHY[minimum]


def get_assignable_roles(role: UserRole) -> tuple[UserRole, ...]:
    """Roles a user with ``role`` may grant to other staff."""

    return ASSIGNABLE_ROLES.get(role, ())


def role_display_name(role: UserRole) -> str:
    return ROLE_DISPLAY_NAMES.get(role, role.value)


def owner_bypass_applies(role: UserRole, permission: str) -> bool:
    """Whether the owner shortcut may skip the grant lookup for ``permission``."""

    return role is UserRole.OWNER and OWNER_GATED_PERMISSION not in permission


def resolve_effective_permissions(
    role_permissions: Iterable[str],
    toggles: Iterable[PermissionToggle],
    *,
    now: datetime,
) -> tuple[str, ...]:
    """Apply active feature toggles on top of role grants.

    Denials remove an exact grant; grants add one. Expired toggles are ignored.
    """

    effective = list(dict.fromkeys(role_permissions))
    for toggle in toggles:
        if not toggle.is_active(now):
            continue
        if toggle.is_allowed:
            if toggle.permission not in effective:
                effective.append(toggle.permission)
        elif toggle.permission in effective:
            effective.remove(toggle.permission)
    return tuple(sorted(effective))


def resolve_denied_permissions(toggles: Iterable[PermissionToggle], *, now: datetime) -> tuple[str, ...]:
    """Names refused by active denial toggles; these win over any implied grant."""

    return tuple(sorted({toggle.permission for toggle in toggles if not toggle.is_allowed and toggle.is_active(now)}))
