"""Permission catalog, role grants and feature toggle endpoints."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from app.api.responses import success_response
from app.core.auth import RequestUserContext, get_current_user_context, require_permission, require_role
from app.core.permissions import UserRole
from app.db.dependencies import get_db_session
from app.services.permission_service import (
    FeatureToggleCreateData,
    FeatureToggleUpdateData,
    PermissionService,
)

router = APIRouter(tags=["permissions"])


class RolePermissionsPayload(BaseModel):
    permissions: list[str]


class FeatureToggleCreatePayload(BaseModel):
    permission_name: str = Field(min_length=3, max_length=128)
    is_allowed: bool
    conditions: dict[str, object] | None = None
    expires_at: datetime | None = None


class FeatureToggleUpdatePayload(BaseModel):
    is_allowed: bool | None = None
    conditions: dict[str, object] | None = None
    expires_at: datetime | None = None


@router.get("/permissions")
def list_permissions(
    _: RequestUserContext = Depends(require_permission("permission:read")),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = PermissionService(db)
    return success_response([service.serialize_permission(item) for item in service.list_permissions()])


@router.get("/permissions/me")
def my_permissions(context: RequestUserContext = Depends(get_current_user_context)) -> dict[str, object]:
    return success_response(PermissionService.describe_context(context))


@router.get("/roles")
def list_roles(
    context: RequestUserContext = Depends(require_permission("permission:read")),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = PermissionService(db)
    return success_response([service.serialize_role(role) for role in service.list_roles(context=context)])


@router.put("/roles/{role_name}/permissions", dependencies=[Depends(require_role(UserRole.OWNER))])
def set_role_permissions(
    role_name: UserRole,
    payload: RolePermissionsPayload,
    context: RequestUserContext = Depends(require_permission("permission:manage")),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = PermissionService(db)
    role = service.set_role_permissions(context=context, role_name=role_name, permission_names=payload.permissions)
    return success_response(service.serialize_role(role))


@router.get("/users/{user_id}/feature-toggles")
def list_feature_toggles(
    user_id: UUID,
    context: RequestUserContext = Depends(require_permission("permission:manage")),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = PermissionService(db)
    return success_response([service.serialize_toggle(item) for item in service.list_toggles(context=context, user_id=user_id)])


@router.post("/users/{user_id}/feature-toggles", status_code=status.HTTP_201_CREATED)
def create_feature_toggle(
    user_id: UUID,
    payload: FeatureToggleCreatePayload,
    context: RequestUserContext = Depends(require_permission("permission:manage")),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = PermissionService(db)
    toggle = service.create_toggle(context=context, user_id=user_id, data=FeatureToggleCreateData(**payload.model_dump()))
    return success_response(service.serialize_toggle(toggle))


@router.patch("/feature-toggles/{toggle_id}")
def update_feature_toggle(
    toggle_id: UUID,
    payload: FeatureToggleUpdatePayload,
    context: RequestUserContext = Depends(require_permission("permission:manage")),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = PermissionService(db)
    toggle = service.update_toggle(
        context=context,
        toggle_id=toggle_id,
        data=FeatureToggleUpdateData(**payload.model_dump(exclude_unset=True)),
    )
    return success_response(service.serialize_toggle(toggle))


@router.delete("/feature-toggles/{toggle_id}")
def delete_feature_toggle(
    toggle_id: UUID,
    context: RequestUserContext = Depends(require_permission("permission:manage")),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    PermissionService(db).delete_toggle(context=context, toggle_id=toggle_id)
    return success_response({"id": str(toggle_id)})
