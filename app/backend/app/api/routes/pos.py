"""Point-of-sale endpoints."""

from __future__ import annotations

from decimal import Decimal
from uuid import UUID

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from app.api.responses import success_response
from app.core.auth import RequestUserContext, require_permission
from app.db.dependencies import get_db_session
from app.services.inventory_service import InventoryService, SaleCreateData, SaleLineInput

router = APIRouter(prefix="/pos/sales", tags=["pos"])


class SaleLinePayload(BaseModel):
    inventory_item_id: UUID
    quantity: Decimal = Field(gt=0, max_digits=12, decimal_places=2)
    unit_price: Decimal | None = Field(default=None, ge=0, max_digits=14, decimal_places=2)


class SaleCreatePayload(BaseModel):
    items: list[SaleLinePayload] = Field(min_length=1)
    payment_method: str = Field(default="cash", min_length=1, max_length=32)
    customer_id: UUID | None = None
    wallet_id: UUID | None = None


@router.get("")
def list_sales(
    context: RequestUserContext = Depends(require_permission("pos:read")),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = InventoryService(db)
    return success_response([service.serialize_sale(view) for view in service.list_sales(context=context)])


@router.post("", status_code=status.HTTP_201_CREATED)
def create_sale(
    payload: SaleCreatePayload,
    context: RequestUserContext = Depends(require_permission("pos:create")),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = InventoryService(db)
    view = service.create_sale(
        context=context,
        data=SaleCreateData(
            items=[
                SaleLineInput(
                    inventory_item_id=line.inventory_item_id,
                    quantity=line.quantity,
                    unit_price=line.unit_price,
                )
                for line in payload.items
            ],
            payment_method=payload.payment_method,
            customer_id=payload.customer_id,
            wallet_id=payload.wallet_id,
        ),
    )
    return success_response(service.serialize_sale(view))


@router.get("/{sale_id}")
def get_sale(
    sale_id: UUID,
    context: RequestUserContext = Depends(require_permission("pos:read")),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = InventoryService(db)
    return success_response(service.serialize_sale(service.get_sale(context=context, sale_id=sale_id)))
