"""Purchase order lifecycle endpoints."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from app.api.responses import success_response
from app.core.auth import RequestUserContext, require_permission
from app.db.dependencies import get_db_session
from app.models.entities import PurchaseOrderStatus
from app.services.inventory_service import (
    InventoryService,
    PurchaseOrderCreateData,
    PurchaseOrderLineInput,
    PurchaseOrderPaymentData,
)

router = APIRouter(prefix="/purchase-orders", tags=["purchase-orders"])


class PurchaseOrderLinePayload(BaseModel):
    item_name: str = Field(min_length=1, max_length=255)
    quantity: Decimal = Field(gt=0, max_digits=12, decimal_places=2)
    unit_cost: Decimal = Field(ge=0, max_digits=14, decimal_places=2)
    inventory_item_id: UUID | None = None


class PurchaseOrderCreatePayload(BaseModel):
    supplier_name: str = Field(min_length=1, max_length=255)
    order_date: date
    expected_delivery_date: date | None = None
    notes: str | None = Field(default=None, max_length=2000)
    items: list[PurchaseOrderLinePayload] = Field(min_length=1)


class PurchaseOrderPaymentPayload(BaseModel):
    amount: Decimal = Field(gt=0, max_digits=14, decimal_places=2)
    wallet_id: UUID | None = None


@router.get("")
def list_purchase_orders(
    status_filter: PurchaseOrderStatus | None = Query(default=None, alias="status"),
    context: RequestUserContext = Depends(require_permission("purchase_order:read")),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = InventoryService(db)
    views = service.list_purchase_orders(context=context, status_filter=status_filter)
    return success_response([service.serialize_purchase_order(view) for view in views])


@router.post("", status_code=status.HTTP_201_CREATED)
def create_purchase_order(
    payload: PurchaseOrderCreatePayload,
    context: RequestUserContext = Depends(require_permission("purchase_order:create")),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = InventoryService(db)
    view = service.create_purchase_order(
        context=context,
        data=PurchaseOrderCreateData(
            supplier_name=payload.supplier_name,
            order_date=payload.order_date,
            expected_delivery_date=payload.expected_delivery_date,
            notes=payload.notes,
            items=[
                PurchaseOrderLineInput(
                    item_name=line.item_name,
                    quantity=line.quantity,
                    unit_cost=line.unit_cost,
                    inventory_item_id=line.inventory_item_id,
                )
                for line in payload.items
            ],
        ),
    )
    return success_response(service.serialize_purchase_order(view))


@router.get("/{order_id}")
def get_purchase_order(
    order_id: UUID,
    context: RequestUserContext = Depends(require_permission("purchase_order:read")),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = InventoryService(db)
    return success_response(service.serialize_purchase_order(service.get_purchase_order(context=context, order_id=order_id)))


@router.post("/{order_id}/approve")
def approve_purchase_order(
    order_id: UUID,
    context: RequestUserContext = Depends(require_permission("purchase_order:approve")),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = InventoryService(db)
    view = service.approve_purchase_order(context=context, order_id=order_id)
    return success_response(service.serialize_purchase_order(view))


@router.post("/{order_id}/receive")
def receive_purchase_order(
    order_id: UUID,
    context: RequestUserContext = Depends(require_permission("purchase_order:receive")),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = InventoryService(db)
    view = service.receive_purchase_order(context=context, order_id=order_id)
    return success_response(service.serialize_purchase_order(view))


@router.post("/{order_id}/payments")
def pay_purchase_order(
    order_id: UUID,
    payload: PurchaseOrderPaymentPayload,
    context: RequestUserContext = Depends(require_permission("purchase_order:pay")),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = InventoryService(db)
    view = service.pay_purchase_order(
        context=context,
        order_id=order_id,
        data=PurchaseOrderPaymentData(amount=payload.amount, wallet_id=payload.wallet_id),
    )
    return success_response(service.serialize_purchase_order(view))
