"""Role permission sets and per-user feature toggles."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from app.core.auth import RequestUserContext
from app.core.permissions import (
    PERMISSION_CATALOG,
    WILDCARD,
    UserRole,
    expand_permissions,
    get_assignable_roles,
    role_display_name,
)
from app.models.entities import Permission, Role, User, UserFeatureToggle
from app.repositories.business_repository import BusinessRepository
from app.services.audit_service import AuditService

logger = logging.getLogger(__name__)

_UNSET = object()


@dataclass(slots=True)
class FeatureToggleCreateData:
    permission_name: str
    is_allowed: bool
    conditions: dict[str, object] | None = None
    expires_at: datetime | None = None


@dataclass(slots=True)
class FeatureToggleUpdateData:
    is_allowed: bool | None = None
    conditions: dict[str, object] | None | object = _UNSET
    expires_at: datetime | None | object = _UNSET


def _validate_names(names: list[str], *, allow_wildcard: bool) -> list[str]:
    known = set(PERMISSION_CATALOG)
    if allow_wildcard:
        known.add(WILDCARD)
    unknown = sorted({name for name in names if name not in known})
    if unknown:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=f"Unknown permissions: {', '.join(unknown)}.",
        )
    return sorted(dict.fromkeys(names))


class PermissionService:
    """Service implementing RBAC role grants and ABAC feature toggles."""

    def __init__(self, db: Session) -> None:
        self.db = db
        self.repo = BusinessRepository(db)
        self.audit = AuditService(db)

    # ---------- Serialization ----------
    @staticmethod
    def serialize_permission(permission: Permission) -> dict[str, object]:
        return {
            "name": permission.name,
            "resource": permission.resource,
            "action": permission.action,
            "description": permission.description,
        }

    def serialize_role(self, role: Role) -> dict[str, object]:
        return {
            "id": str(role.id),
            "name": role.name.value,
            "display_name": role_display_name(role.name),
            "is_system_role": role.is_system_role,
            "permissions": self.repo.list_role_permission_names(role.id),
        }

    @staticmethod
    def serialize_toggle(toggle: UserFeatureToggle) -> dict[str, object]:
        return {
            "id": str(toggle.id),
            "user_id": str(toggle.user_id),
            "permission_name": toggle.permission_name,
            "is_allowed": toggle.is_allowed,
            "conditions": toggle.conditions,
            "granted_by": str(toggle.granted_by),
            "granted_at": toggle.granted_at.isoformat(),
            "expires_at": toggle.expires_at.isoformat() if toggle.expires_at else None,
        }

    @staticmethod
    def describe_context(context: RequestUserContext) -> dict[str, object]:
        return {
            "role": context.role.value,
            "role_display_name": role_display_name(context.role),
            "is_owner": context.is_owner,
            "permissions": list(context.permissions),
            "denied_permissions": list(context.denied),
            "expanded_permissions": sorted(expand_permissions(context.permissions, context.denied)),
            "assignable_roles": [role.value for role in get_assignable_roles(context.role)],
        }

    # ---------- Catalog and roles ----------
    def list_permissions(self) -> list[Permission]:
        return self.repo.list_permissions()

    def list_roles(self, *, context: RequestUserContext) -> list[Role]:
        roles = self.repo.list_roles(context.business_id)
        order = list(UserRole)
        return sorted(roles, key=lambda role: order.index(role.name))

    def set_role_permissions(
        self,
        *,
        context: RequestUserContext,
        role_name: UserRole,
        permission_names: list[str],
    ) -> Role:
        if role_name is UserRole.OWNER:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="The owner role's permissions cannot be changed.",
            )
        names = _validate_names(permission_names, allow_wildcard=False)

        role = self.repo.get_role(context.business_id, role_name)
        if role is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Role not found.")

        before = self.repo.list_role_permission_names(role.id)
        self.repo.replace_role_permissions(role.id, names)
        role.updated_at = datetime.utcnow()
        self.audit.record_for(
            context,
            entity_name="role",
            entity_id=role.id,
            action_type="update_permissions",
            before={"role": role.name.value, "permissions": before},
            after={"role": role.name.value, "permissions": names},
        )
        self.db.commit()
        self.db.refresh(role)
        logger.info("Permissions of role %s updated by %s", role.name.value, context.user_id)
        return role

    # ---------- Feature toggles ----------
    def _require_user(self, context: RequestUserContext, user_id: UUID) -> User:
        user = self.repo.get_user(context.business_id, user_id)
        if user is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found.")
        return user

    def _require_toggle(self, context: RequestUserContext, toggle_id: UUID) -> UserFeatureToggle:
        toggle = self.repo.get_scoped(UserFeatureToggle, context.business_id, toggle_id)
        if toggle is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Feature toggle not found.")
        return toggle

    def list_toggles(self, *, context: RequestUserContext, user_id: UUID) -> list[UserFeatureToggle]:
        user = self._require_user(context, user_id)
        return self.repo.list_feature_toggles(context.business_id, user.id)

    def create_toggle(
        self,
        *,
        context: RequestUserContext,
        user_id: UUID,
        data: FeatureToggleCreateData,
    ) -> UserFeatureToggle:
        user = self._require_user(context, user_id)
        _validate_names([data.permission_name], allow_wildcard=False)

        toggle = self.repo.add(
            UserFeatureToggle(
                business_id=context.business_id,
                user_id=user.id,
                permission_name=data.permission_name,
                is_allowed=data.is_allowed,
                conditions=data.conditions,
                granted_by=context.user_id,
                granted_at=datetime.utcnow(),
                expires_at=data.expires_at,
            )
        )
        self.audit.record_for(
            context,
            entity_name="feature_toggle",
            entity_id=toggle.id,
            action_type="create",
            after=self.serialize_toggle(toggle),
        )
        self.db.commit()
        self.db.refresh(toggle)
        logger.info(
            "Feature toggle %s=%s set for user %s by %s",
            toggle.permission_name,
            toggle.is_allowed,
            user.id,
            context.user_id,
        )
        return toggle

    def update_toggle(
        self,
        *,
        context: RequestUserContext,
        toggle_id: UUID,
        data: FeatureToggleUpdateData,
    ) -> UserFeatureToggle:
        toggle = self._require_toggle(context, toggle_id)
        before = self.serialize_toggle(toggle)

        if data.is_allowed is not None:
            toggle.is_allowed = data.is_allowed
        if data.conditions is not _UNSET:
            toggle.conditions = data.conditions
        if data.expires_at is not _UNSET:
            toggle.expires_at = data.expires_at
        toggle.granted_by = context.user_id
        toggle.granted_at = datetime.utcnow()

        self.audit.record_for(
            context,
            entity_name="feature_toggle",
            entity_id=toggle.id,
            action_type="update",
            before=before,
            after=self.serialize_toggle(toggle),
        )
        self.db.commit()
        self.db.refresh(toggle)
        return toggle

    def delete_toggle(self, *, context: RequestUserContext, toggle_id: UUID) -> None:
        toggle = self._require_toggle(context, toggle_id)
        self.audit.record_for(
            context,
            entity_name="feature_toggle",
            entity_id=toggle.id,
            action_type="delete",
            before=self.serialize_toggle(toggle),
        )
        self.repo.delete(toggle)
        self.db.commit()
