"""Dashboard navigation tree and its per-caller access filter."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, replace
from typing import Any

from app.core.permissions import OWNER_GATED_PERMISSION, WILDCARD, UserRole


@dataclass(frozen=True)
class NavItem:
    name: str
    href: str | None = None
    icon: str | None = None
    required_role: UserRole | None = None
    required_permission: str | None = None
    children: tuple[NavItem, ...] | None = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> NavItem:
        """Build a node from the frontend shape (camelCase keys, ``path`` alias)."""

        raw_children = data.get("children")
        raw_role = data.get("requiredRole", data.get("required_role"))
        return cls(
            name=data["name"],
            href=data.get("href") or data.get("path"),
            icon=data.get("icon"),
            required_role=UserRole(raw_role) if raw_role else None,
            required_permission=data.get("requiredPermission", data.get("required_permission")),
            children=tuple(cls.from_dict(child) for child in raw_children) if raw_children is not None else None,
        )

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"name": self.name, "href": self.href}
        if self.icon is not None:
            payload["icon"] = self.icon
        if self.required_role is not None:
            payload["requiredRole"] = self.required_role.value
        if self.required_permission is not None:
            payload["requiredPermission"] = self.required_permission
        if self.children is not None:
            payload["children"] = [child.to_dict() for child in self.children]
        return payload


def _role_allows(item: NavItem, role: UserRole) -> bool:
    return item.required_role is None or item.required_role == role


def _permission_allows(item: NavItem, role: UserRole, permissions: frozenset[str]) -> bool:
    required = item.required_permission
    if not required:
        return True
    if required in permissions or WILDCARD in permissions:
        return True
    return role is UserRole.OWNER and OWNER_GATED_PERMISSION not in required


def filter_navigation(
    items: Iterable[NavItem],
    role: UserRole,
    permissions: Iterable[str],
) -> tuple[NavItem, ...]:
    """Return the subtree visible to a caller with ``role`` and ``permissions``.

    Children are pruned first. A node that has an ``href`` survives with an
    empty ``children`` tuple; one without an ``href`` and without visible
    children is dropped. The input tree is never mutated.
    """

    granted = frozenset(permissions)
    return _filter(tuple(items), role, granted)


def _filter(items: tuple[NavItem, ...], role: UserRole, granted: frozenset[str]) -> tuple[NavItem, ...]:
    visible: list[NavItem] = []
    for item in items:
        children = _filter(item.children, role, granted) if item.children is not None else None

        if not (_role_allows(item, role) and _permission_allows(item, role, granted)):
            continue
        if not item.href and not children:
            continue

        visible.append(replace(item, children=children))
    return tuple(visible)


def filter_navigation_dicts(
    items: Iterable[Mapping[str, Any]],
    role: UserRole,
    permissions: Iterable[str],
) -> list[dict[str, Any]]:
    nodes = [NavItem.from_dict(item) for item in items]
    return [node.to_dict() for node in filter_navigation(nodes, role, permissions)]


def _item(
    name: str,
    href: str | None,
    icon: str,
    permission: str | None = None,
    *,
    role: UserRole | None = None,
    children: tuple[NavItem, ...] | None = None,
) -> NavItem:
    return NavItem(
        name=name,
        href=href,
        icon=icon,
        required_role=role,
        required_permission=permission,
        children=children,
    )


NAVIGATION: tuple[NavItem, ...] = (
    _item("Dashboard", "/dashboard", "📊", "dashboard:view"),
    _item(
        "Point of Sale",
        None,
        "🛒",
        children=(
            _item("POS Checkout", "/dashboard/management/pos/checkout", "🛒", "pos:create"),
            _item("Transactions", "/dashboard/management/pos/transactions", "🧾", "pos:read"),
        ),
    ),
    _item(
        "Business Management",
        None,
        "🏢",
        children=(
            _item(
                "Customers",
                "/dashboard/management/customers",
                "👥",
                "customer:read",
                children=(_item("Add Customer", "/dashboard/management/customers/new", "➕", "customer:create"),),
            ),
            _item("Services", "/dashboard/management/services", "🎯", "service:read"),
            _item("Packages", "/dashboard/management/packages", "📦", "package:read"),
            _item(
                "Jobs",
                "/dashboard/management/jobs",
                "🔧",
                "job:read",
                children=(
                    _item("Job Board", "/dashboard/management/jobs/board", "🗂️", "job:read"),
                    _item("New Job", "/dashboard/management/jobs/new", "➕", "job:create"),
                ),
            ),
        ),
    ),
    _item(
        "Staff",
        "/dashboard/management/staff",
        "🧑‍💼",
        "staff:read",
        children=(
            _item("Add", "/dashboard/management/staff/create", "➕", "staff:create"),
            _item("Departments", "/dashboard/coordination/departments", "🏛️", "department:read"),
        ),
    ),
    _item(
        "Inventory",
        None,
        "📦",
        children=(
            _item("Items", "/dashboard/management/inventory/items", "📦", "inventory:read"),
            _item(
                "Purchase Orders",
                "/dashboard/management/purchase-orders",
                "📋",
                "purchase_order:read",
                children=(
                    _item("New Order", "/dashboard/management/purchase-orders/new", "➕", "purchase_order:create"),
                ),
            ),
        ),
    ),
    _item(
        "Finances",
        "/dashboard/management/finances",
        "💰",
        "wallet:read",
        children=(
            _item("Wallets", "/dashboard/management/finances/wallets", "💳", "wallet:read"),
            _item("Transfer", "/dashboard/management/finances/wallets/transfer", "🔁", "wallet:transfer"),
            _item("Expenses", "/dashboard/management/finances/expenses", "📝", "expense:read"),
        ),
    ),
    _item(
        "Security & Compliance",
        None,
        "🛡️",
        children=(
            _item("Permission Audits", "/dashboard/security/audits", "🔍", "audit:read"),
            _item("Role Permissions", "/dashboard/security/permissions", "🔐", "permission:manage"),
        ),
    ),
    _item(
        "Business Settings",
        "/dashboard/settings/business",
        "⚙️",
        "business:settings",
        role=UserRole.OWNER,
    ),
)
