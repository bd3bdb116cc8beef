"""Department endpoints."""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from app.api.responses import success_response
from app.core.auth import RequestUserContext, require_permission
from app.db.dependencies import get_db_session
from app.services.department_service import DepartmentCreateData, DepartmentService, DepartmentUpdateData

router = APIRouter(prefix="/departments", tags=["departments"])


class DepartmentCreatePayload(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    code: str = Field(min_length=1, max_length=32)
    description: str | None = Field(default=None, max_length=2000)
    parent_department_id: UUID | None = None
    department_type: str = Field(default="operations", min_length=1, max_length=64)
    sort_order: int = Field(default=0, ge=0)


class DepartmentUpdatePayload(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    code: str | None = Field(default=None, min_length=1, max_length=32)
    description: str | None = Field(default=None, max_length=2000)
    parent_department_id: UUID | None = None
    department_type: str | None = Field(default=None, min_length=1, max_length=64)
    sort_order: int | None = Field(default=None, ge=0)
    active: bool | None = None


@router.get("")
def list_departments(
    context: RequestUserContext = Depends(require_permission("department:read")),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = DepartmentService(db)
    items = service.list_departments(context=context)
    return success_response([service.serialize_department(item) for item in items])


@router.get("/hierarchy")
def department_hierarchy(
    context: RequestUserContext = Depends(require_permission("department:read")),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    return success_response(DepartmentService(db).department_hierarchy(context=context))


@router.post("", status_code=status.HTTP_201_CREATED)
def create_department(
    payload: DepartmentCreatePayload,
    context: RequestUserContext = Depends(require_permission("department:create")),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = DepartmentService(db)
    department = service.create_department(context=context, data=DepartmentCreateData(**payload.model_dump()))
    return success_response(service.serialize_department(department))


@router.get("/{department_id}")
def get_department(
    department_id: UUID,
    context: RequestUserContext = Depends(require_permission("department:read")),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = DepartmentService(db)
    department = service.get_department(context=context, department_id=department_id)
    return success_response(service.serialize_department(department))


@router.patch("/{department_id}")
def update_department(
    department_id: UUID,
    payload: DepartmentUpdatePayload,
    context: RequestUserContext = Depends(require_permission("department:update")),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = DepartmentService(db)
    department = service.update_department(
        context=context,
        department_id=department_id,
        # Only sent fields, so an explicit null parent moves the department to the root.
        data=DepartmentUpdateData(**payload.model_dump(exclude_unset=True)),
    )
    return success_response(service.serialize_department(department))


@router.delete("/{department_id}")
def delete_department(
    department_id: UUID,
    context: RequestUserContext = Depends(require_permission("department:delete")),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    DepartmentService(db).delete_department(context=context, department_id=department_id)
    return success_response({"id": str(department_id)})
