"""Customer endpoints."""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from app.api.responses import success_response
from app.core.auth import RequestUserContext, require_permission
from app.db.dependencies import get_db_session
from app.services.catalog_service import CatalogService, CustomerCreateData, CustomerUpdateData

router = APIRouter(prefix="/customers", tags=["customers"])


class CustomerCreatePayload(BaseModel):
    first_name: str = Field(min_length=1, max_length=128)
    last_name: str = Field(min_length=1, max_length=128)
    email: str | None = Field(default=None, max_length=320)
    phone: str | None = Field(default=None, max_length=64)
    notes: str | None = Field(default=None, max_length=2000)


class CustomerUpdatePayload(BaseModel):
    first_name: str | None = Field(default=None, min_length=1, max_length=128)
    last_name: str | None = Field(default=None, min_length=1, max_length=128)
    email: str | None = Field(default=None, max_length=320)
    phone: str | None = Field(default=None, max_length=64)
    notes: str | None = Field(default=None, max_length=2000)
    active: bool | None = None


@router.get("")
def list_customers(
    active: bool | None = None,
    context: RequestUserContext = Depends(require_permission("customer:read")),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = CatalogService(db)
    return success_response(
        [service.serialize_customer(item) for item in service.list_customers(context=context, active=active)]
    )


@router.post("", status_code=status.HTTP_201_CREATED)
def create_customer(
    payload: CustomerCreatePayload,
    context: RequestUserContext = Depends(require_permission("customer:create")),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = CatalogService(db)
    customer = service.create_customer(context=context, data=CustomerCreateData(**payload.model_dump()))
    return success_response(service.serialize_customer(customer))


@router.get("/{customer_id}")
def get_customer(
    customer_id: UUID,
    context: RequestUserContext = Depends(require_permission("customer:read")),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = CatalogService(db)
    return success_response(service.serialize_customer(service.get_customer(context=context, customer_id=customer_id)))


@router.patch("/{customer_id}")
def update_customer(
    customer_id: UUID,
    payload: CustomerUpdatePayload,
    context: RequestUserContext = Depends(require_permission("customer:update")),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = CatalogService(db)
    customer = service.update_customer(
        context=context,
        customer_id=customer_id,
        data=CustomerUpdateData(**payload.model_dump()),
    )
    return success_response(service.serialize_customer(customer))


@router.delete("/{customer_id}")
def delete_customer(
    customer_id: UUID,
    context: RequestUserContext = Depends(require_permission("customer:delete")),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    CatalogService(db).delete_customer(context=context, customer_id=customer_id)
    return success_response({"id": str(customer_id)})
