"""Service catalog endpoints."""

from __future__ import annotations

from decimal import Decimal
from uuid import UUID

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from app.api.responses import success_response
from app.core.auth import RequestUserContext, require_permission
from app.db.dependencies import get_db_session
from app.services.catalog_service import CatalogService, ServiceCreateData, ServiceUpdateData

router = APIRouter(prefix="/services", tags=["services"])


class ServiceCreatePayload(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    base_price: Decimal = Field(ge=0, max_digits=14, decimal_places=2)
    description: str | None = Field(default=None, max_length=2000)
    duration_minutes: int = Field(default=60, ge=1)
    category: str = Field(default="General", max_length=128)


class ServiceUpdatePayload(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    base_price: Decimal | None = Field(default=None, ge=0, max_digits=14, decimal_places=2)
    description: str | None = Field(default=None, max_length=2000)
    duration_minutes: int | None = Field(default=None, ge=1)
    category: str | None = Field(default=None, max_length=128)
    active: bool | None = None


@router.get("")
def list_services(
    category: str | None = None,
    context: RequestUserContext = Depends(require_permission("service:read")),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = CatalogService(db)
    return success_response(
        [service.serialize_service(item) for item in service.list_services(context=context, category=category)]
    )


@router.post("", status_code=status.HTTP_201_CREATED)
def create_service(
    payload: ServiceCreatePayload,
    context: RequestUserContext = Depends(require_permission("service:create")),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = CatalogService(db)
    created = service.create_service(context=context, data=ServiceCreateData(**payload.model_dump()))
    return success_response(service.serialize_service(created))


@router.get("/{service_id}")
def get_service(
    service_id: UUID,
    context: RequestUserContext = Depends(require_permission("service:read")),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = CatalogService(db)
    return success_response(service.serialize_service(service.get_service(context=context, service_id=service_id)))


@router.patch("/{service_id}")
def update_service(
    service_id: UUID,
    payload: ServiceUpdatePayload,
    context: RequestUserContext = Depends(require_permission("service:update")),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = CatalogService(db)
    updated = service.update_service(
        context=context,
        service_id=service_id,
        data=ServiceUpdateData(**payload.model_dump()),
    )
    return success_response(service.serialize_service(updated))


@router.delete("/{service_id}")
def delete_service(
    service_id: UUID,
    context: RequestUserContext = Depends(require_permission("service:delete")),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    CatalogService(db).delete_service(context=context, service_id=service_id)
    return success_response({"id": str(service_id)})
