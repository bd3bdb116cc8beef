"""Staff management endpoints."""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from app.api.responses import success_response
from app.api.routes.auth import EMAIL_PATTERN
from app.core.auth import RequestUserContext, get_current_user_context, require_permission
from app.core.permissions import UserRole
from app.db.dependencies import get_db_session
from app.services.staff_service import StaffCreateData, StaffService, StaffUpdateData

router = APIRouter(prefix="/staff", tags=["staff"])


class StaffCreatePayload(BaseModel):
    email: str = Field(min_length=3, max_length=320, pattern=EMAIL_PATTERN)
    full_name: str = Field(min_length=1, max_length=255)
    role: UserRole
    password: str = Field(min_length=8, max_length=128)
    department_id: UUID | None = None


class StaffUpdatePayload(BaseModel):
    full_name: str | None = Field(default=None, min_length=1, max_length=255)
    role: UserRole | None = None
    department_id: UUID | None = None
    active: bool | None = None


@router.get("")
def list_staff(
    role: UserRole | None = None,
    active: bool | None = None,
    context: RequestUserContext = Depends(require_permission("staff:read")),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = StaffService(db)
    items = service.list_staff(context=context, role=role, active=active)
    return success_response([service.serialize_staff(user) for user in items])


@router.get("/assignable-roles")
def assignable_roles(context: RequestUserContext = Depends(get_current_user_context)) -> dict[str, object]:
    return success_response(StaffService.assignable_roles_payload(context.role))


@router.post("", status_code=status.HTTP_201_CREATED)
def create_staff(
    payload: StaffCreatePayload,
    context: RequestUserContext = Depends(require_permission("staff:create")),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = StaffService(db)
    user = service.create_staff(
        context=context,
        data=StaffCreateData(
            email=payload.email,
            full_name=payload.full_name,
            role=payload.role,
            password=payload.password,
            department_id=payload.department_id,
        ),
    )
    return success_response(service.serialize_staff(user))


@router.get("/{user_id}")
def get_staff(
    user_id: UUID,
    context: RequestUserContext = Depends(require_permission("staff:read")),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = StaffService(db)
    return success_response(service.serialize_staff(service.get_staff(context=context, user_id=user_id)))


@router.patch("/{user_id}")
def update_staff(
    user_id: UUID,
    payload: StaffUpdatePayload,
    context: RequestUserContext = Depends(require_permission("staff:update")),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = StaffService(db)
    user = service.update_staff(
        context=context,
        user_id=user_id,
        data=StaffUpdateData(
            full_name=payload.full_name,
            role=payload.role,
            department_id=payload.department_id,
            active=payload.active,
        ),
    )
    return success_response(service.serialize_staff(user))


@router.delete("/{user_id}")
def deactivate_staff(
    user_id: UUID,
    context: RequestUserContext = Depends(require_permission("staff:delete")),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = StaffService(db)
    user = service.deactivate_staff(context=context, user_id=user_id)
    return success_response(service.serialize_staff(user))
