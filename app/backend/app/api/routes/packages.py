"""Service package endpoints."""

from __future__ import annotations

from decimal import Decimal
from uuid import UUID

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from app.api.responses import success_response
from app.core.auth import RequestUserContext, require_permission
from app.db.dependencies import get_db_session
from app.services.catalog_service import (
    CatalogService,
    PackageCreateData,
    PackageServiceInput,
    PackageUpdateData,
)

router = APIRouter(prefix="/packages", tags=["packages"])


class PackageServicePayload(BaseModel):
    service_id: UUID
    is_required: bool = False
    default_quantity: int = Field(default=1, ge=1)


class PackageCreatePayload(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    base_price: Decimal = Field(ge=0, max_digits=14, decimal_places=2)
    description: str | None = Field(default=None, max_length=2000)
    category: str = Field(default="General", max_length=128)
    is_customizable: bool = False
    min_services: int = Field(default=1, ge=0)
    max_services: int | None = Field(default=None, ge=1)
    services: list[PackageServicePayload] = Field(default_factory=list)


class PackageUpdatePayload(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    base_price: Decimal | None = Field(default=None, ge=0, max_digits=14, decimal_places=2)
    description: str | None = Field(default=None, max_length=2000)
    category: str | None = Field(default=None, max_length=128)
    is_customizable: bool | None = None
    min_services: int | None = Field(default=None, ge=0)
    max_services: int | None = Field(default=None, ge=1)
    active: bool | None = None
    services: list[PackageServicePayload] | None = None


def _service_inputs(entries: list[PackageServicePayload]) -> list[PackageServiceInput]:
    return [
        PackageServiceInput(
            service_id=entry.service_id,
            is_required=entry.is_required,
            default_quantity=entry.default_quantity,
        )
        for entry in entries
    ]


@router.get("")
def list_packages(
    context: RequestUserContext = Depends(require_permission("package:read")),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = CatalogService(db)
    return success_response([service.serialize_package(item) for item in service.list_packages(context=context)])


@router.post("", status_code=status.HTTP_201_CREATED)
def create_package(
    payload: PackageCreatePayload,
    context: RequestUserContext = Depends(require_permission("package:create")),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = CatalogService(db)
    package = service.create_package(
        context=context,
        data=PackageCreateData(
            name=payload.name,
            base_price=payload.base_price,
            description=payload.description,
            category=payload.category,
            is_customizable=payload.is_customizable,
            min_services=payload.min_services,
            max_services=payload.max_services,
            services=_service_inputs(payload.services),
        ),
    )
    return success_response(service.serialize_package(package))


@router.get("/{package_id}")
def get_package(
    package_id: UUID,
    context: RequestUserContext = Depends(require_permission("package:read")),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = CatalogService(db)
    return success_response(service.serialize_package(service.get_package(context=context, package_id=package_id)))


@router.patch("/{package_id}")
def update_package(
    package_id: UUID,
    payload: PackageUpdatePayload,
    context: RequestUserContext = Depends(require_permission("package:update")),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = CatalogService(db)
    package = service.update_package(
        context=context,
        package_id=package_id,
        data=PackageUpdateData(
            name=payload.name,
            base_price=payload.base_price,
            description=payload.description,
            category=payload.category,
            is_customizable=payload.is_customizable,
            min_services=payload.min_services,
            max_services=payload.max_services,
            active=payload.active,
            services=_service_inputs(payload.services) if payload.services is not None else None,
        ),
    )
    return success_response(service.serialize_package(package))


@router.delete("/{package_id}")
def delete_package(
    package_id: UUID,
    context: RequestUserContext = Depends(require_permission("package:delete")),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    CatalogService(db).delete_package(context=context, package_id=package_id)
    return success_response({"id": str(package_id)})
