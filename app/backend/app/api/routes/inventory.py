"""Inventory item endpoints."""

from __future__ import annotations

from decimal import Decimal
from uuid import UUID

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from app.api.responses import success_response
from app.core.auth import RequestUserContext, require_permission
from app.db.dependencies import get_db_session
from app.services.inventory_service import InventoryItemCreateData, InventoryItemUpdateData, InventoryService

router = APIRouter(prefix="/inventory/items", tags=["inventory"])


class InventoryItemCreatePayload(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    sku: str = Field(min_length=1, max_length=64)
    category: str = Field(default="General", max_length=128)
    unit_of_measure: str = Field(default="unit", min_length=1, max_length=32)
    cost_price: Decimal = Field(default=Decimal("0.00"), ge=0, max_digits=14, decimal_places=2)
    selling_price: Decimal = Field(default=Decimal("0.00"), ge=0, max_digits=14, decimal_places=2)
    current_stock: Decimal = Field(default=Decimal("0.00"), ge=0, max_digits=12, decimal_places=2)
    reorder_level: Decimal = Field(default=Decimal("0.00"), ge=0, max_digits=12, decimal_places=2)


class InventoryItemUpdatePayload(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    sku: str | None = Field(default=None, min_length=1, max_length=64)
    category: str | None = Field(default=None, max_length=128)
    unit_of_measure: str | None = Field(default=None, min_length=1, max_length=32)
    cost_price: Decimal | None = Field(default=None, ge=0, max_digits=14, decimal_places=2)
    selling_price: Decimal | None = Field(default=None, ge=0, max_digits=14, decimal_places=2)
    reorder_level: Decimal | None = Field(default=None, ge=0, max_digits=12, decimal_places=2)
    active: bool | None = None


class StockAdjustmentPayload(BaseModel):
    quantity_delta: Decimal = Field(max_digits=12, decimal_places=2)
    reason: str | None = Field(default=None, max_length=255)


@router.get("")
def list_items(
    low_stock: bool = False,
    category: str | None = None,
    context: RequestUserContext = Depends(require_permission("inventory:read")),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = InventoryService(db)
    items = service.list_items(context=context, low_stock=low_stock, category=category)
    return success_response([service.serialize_item(item) for item in items])


@router.post("", status_code=status.HTTP_201_CREATED)
def create_item(
    payload: InventoryItemCreatePayload,
    context: RequestUserContext = Depends(require_permission("inventory:create")),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = InventoryService(db)
    item = service.create_item(context=context, data=InventoryItemCreateData(**payload.model_dump()))
    return success_response(service.serialize_item(item))


@router.get("/{item_id}")
def get_item(
    item_id: UUID,
    context: RequestUserContext = Depends(require_permission("inventory:read")),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = InventoryService(db)
    return success_response(service.serialize_item(service.get_item(context=context, item_id=item_id)))


@router.patch("/{item_id}")
def update_item(
    item_id: UUID,
    payload: InventoryItemUpdatePayload,
    context: RequestUserContext = Depends(require_permission("inventory:update")),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = InventoryService(db)
    item = service.update_item(context=context, item_id=item_id, data=InventoryItemUpdateData(**payload.model_dump()))
    return success_response(service.serialize_item(item))


@router.post("/{item_id}/adjust")
def adjust_item_stock(
    item_id: UUID,
    payload: StockAdjustmentPayload,
    context: RequestUserContext = Depends(require_permission("inventory:update")),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = InventoryService(db)
    item = service.adjust_stock(
        context=context,
        item_id=item_id,
        quantity_delta=payload.quantity_delta,
        reason=payload.reason,
    )
    return success_response(service.serialize_item(item))


@router.delete("/{item_id}")
def delete_item(
    item_id: UUID,
    context: RequestUserContext = Depends(require_permission("inventory:delete")),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    InventoryService(db).delete_item(context=context, item_id=item_id)
    return success_response({"id": str(item_id)})
