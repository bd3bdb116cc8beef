from __future__ import annotations

import uuid
from datetime import datetime, timedelta

from app.core.auth import RequestUserContext, ensure_permission
from app.core.errors import PermissionDeniedError
from app.core.permissions import (
    DEFAULT_ROLE_PERMISSIONS,
    PERMISSION_CATALOG,
    PermissionToggle,
    UserRole,
    expand_permissions,
    get_assignable_roles,
    has_minimum_role,
    has_permission,
    owner_bypass_applies,
    resolve_denied_permissions,
    resolve_effective_permissions,
    role_display_name,
)


def _context(role: UserRole, permissions: tuple[str, ...], denied: tuple[str, ...] = ()) -> RequestUserContext:
    return RequestUserContext(
        user_id=uuid.uuid4(),
        business_id=uuid.uuid4(),
        email="user@test.local",
        full_name="User",
        role=role,
        permissions=permissions,
        denied=denied,
    )


def test_has_permission_exact_and_wildcard() -> None:
    assert has_permission(["staff:read"], "staff:read") is True
    assert has_permission(["staff:read"], "staff:create") is False
    assert has_permission(["*"], "anything:at_all") is True
    assert has_permission(["staff:*"], "staff:delete") is True
    assert has_permission(["staff:*"], "customer:read") is False


def test_write_actions_imply_read_on_the_same_resource() -> None:
    assert has_permission(["customer:create"], "customer:read") is True
    assert has_permission(["customer:update"], "customer:view") is True
    assert has_permission(["customer:create"], "service:read") is False
    assert has_permission(["customer:read"], "customer:create") is False


def test_malformed_required_permission_is_denied() -> None:
    assert has_permission(["staff:read"], "staff") is False
    assert has_permission(["staff:read"], "") is False


def test_expand_permissions_only_returns_catalog_names() -> None:
    expanded = expand_permissions(["job:update"])

    assert {"job:update", "job:read"} <= expanded
    assert expanded <= set(PERMISSION_CATALOG)
    assert "*" in expand_permissions(["*"])


def test_owner_bypass_excludes_business_settings() -> None:
    assert owner_bypass_applies(UserRole.OWNER, "staff:delete") is True
    assert owner_bypass_applies(UserRole.OWNER, "business:settings") is False
    assert owner_bypass_applies(UserRole.MANAGER, "staff:delete") is False


def test_ensure_permission_raises_with_required_name() -> None:
    context = _context(UserRole.STAFF, ("customer:read",))

    ensure_permission(context, "customer:read")
    try:
        ensure_permission(context, "customer:delete")
    except PermissionDeniedError as exc:
        assert exc.status_code == 403
        assert exc.required == "customer:delete"
    else:
        raise AssertionError("expected PermissionDeniedError")


def test_ensure_permission_owner_without_grants() -> None:
    context = _context(UserRole.OWNER, ())

    ensure_permission(context, "wallet:delete")
    try:
        ensure_permission(context, "business:settings")
    except PermissionDeniedError as exc:
        assert exc.required == "business:settings"
    else:
        raise AssertionError("expected PermissionDeniedError")


def test_role_hierarchy_and_assignable_roles() -> None:
    assert has_minimum_role(UserRole.MANAGER, UserRole.SUPERVISOR) is True
    assert has_minimum_role(UserRole.STAFF, UserRole.SUPERVISOR) is False
    assert get_assignable_roles(UserRole.OWNER) == (UserRole.MANAGER, UserRole.SUPERVISOR, UserRole.STAFF)
    assert get_assignable_roles(UserRole.STAFF) == ()
    assert role_display_name(UserRole.SUPERVISOR) == "Supervisor"


def test_default_role_grants_are_catalog_names() -> None:
    catalog = set(PERMISSION_CATALOG)
    for role, grants in DEFAULT_ROLE_PERMISSIONS.items():
        if role is UserRole.OWNER:
            assert grants == ("*",)
            continue
        assert set(grants) <= catalog, role
    assert "business:settings" not in DEFAULT_ROLE_PERMISSIONS[UserRole.MANAGER]


def test_toggles_grant_and_revoke_on_top_of_role() -> None:
    now = datetime(2026, 1, 1, 12, 0)
    toggles = [
        PermissionToggle(permission="wallet:read", is_allowed=True),
        PermissionToggle(permission="customer:read", is_allowed=False),
    ]

    effective = resolve_effective_permissions(["customer:read", "job:read"], toggles, now=now)

    assert effective == ("job:read", "wallet:read")


def test_expired_toggles_are_ignored() -> None:
    now = datetime(2026, 1, 1, 12, 0)
    toggles = [
        PermissionToggle(permission="wallet:read", is_allowed=True, expires_at=now - timedelta(minutes=1)),
        PermissionToggle(permission="job:read", is_allowed=False, expires_at=now + timedelta(days=1)),
    ]

    effective = resolve_effective_permissions(["job:read", "pos:read"], toggles, now=now)

    assert effective == ("pos:read",)


def test_denied_permission_is_not_restored_by_stronger_actions() -> None:
    granted = ["customer:create", "customer:update", "staff:*"]

    assert has_permission(granted, "customer:read", denied=["customer:read"]) is False
    assert has_permission(granted, "staff:delete", denied=["staff:delete"]) is False
    assert has_permission(granted, "customer:create", denied=["customer:read"]) is True

    expanded = expand_permissions(granted, denied=["customer:read"])
    assert "customer:read" not in expanded
    assert "customer:update" in expanded


def test_only_active_denials_are_collected() -> None:
    now = datetime(2026, 1, 1, 12, 0)
    toggles = [
        PermissionToggle(permission="customer:read", is_allowed=False),
        PermissionToggle(permission="job:read", is_allowed=False, expires_at=now - timedelta(seconds=1)),
        PermissionToggle(permission="wallet:read", is_allowed=True),
    ]

    assert resolve_denied_permissions(toggles, now=now) == ("customer:read",)


def test_ensure_permission_honours_denials_for_non_owners() -> None:
    manager = _context(UserRole.MANAGER, ("customer:update",), denied=("customer:read",))

    try:
        ensure_permission(manager, "customer:read")
    except PermissionDeniedError as exc:
        assert exc.required == "customer:read"
    else:
        raise AssertionError("denied permission was allowed")
