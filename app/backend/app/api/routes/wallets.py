"""Money wallet and wallet ledger endpoints."""

from __future__ import annotations

from decimal import Decimal
from uuid import UUID

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from app.api.responses import success_response
from app.core.auth import RequestUserContext, require_permission
from app.db.dependencies import get_db_session
from app.models.entities import WalletTransactionType, WalletType
from app.services.finance_service import (
    FinanceService,
    TransferData,
    WalletCreateData,
    WalletTransactionData,
    WalletUpdateData,
)

router = APIRouter(prefix="/wallets", tags=["wallets"])


class WalletCreatePayload(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    wallet_type: WalletType
    opening_balance: Decimal = Field(default=Decimal("0.00"), ge=0, max_digits=14, decimal_places=2)
    description: str | None = Field(default=None, max_length=2000)


class WalletUpdatePayload(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    wallet_type: WalletType | None = None
    description: str | None = Field(default=None, max_length=2000)
    active: bool | None = None


class WalletTransactionPayload(BaseModel):
    transaction_type: WalletTransactionType
    amount: Decimal = Field(gt=0, max_digits=14, decimal_places=2)
    description: str = Field(default="", max_length=500)
    reference_type: str | None = Field(default=None, max_length=64)
    reference_id: str | None = Field(default=None, max_length=64)


class TransferPayload(BaseModel):
    from_wallet_id: UUID
    to_wallet_id: UUID
    amount: Decimal = Field(gt=0, max_digits=14, decimal_places=2)
    description: str = Field(default="", max_length=500)


@router.get("")
def list_wallets(
    active: bool | None = None,
    context: RequestUserContext = Depends(require_permission("wallet:read")),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = FinanceService(db)
    return success_response([service.serialize_wallet(item) for item in service.list_wallets(context=context, active=active)])


@router.post("", status_code=status.HTTP_201_CREATED)
def create_wallet(
    payload: WalletCreatePayload,
    context: RequestUserContext = Depends(require_permission("wallet:create")),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = FinanceService(db)
    wallet = service.create_wallet(context=context, data=WalletCreateData(**payload.model_dump()))
    return success_response(service.serialize_wallet(wallet))


@router.post("/transfer", status_code=status.HTTP_201_CREATED)
def transfer_between_wallets(
    payload: TransferPayload,
    context: RequestUserContext = Depends(require_permission("wallet:transfer")),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = FinanceService(db)
    outgoing, incoming = service.transfer(context=context, data=TransferData(**payload.model_dump()))
    return success_response(
        {
            "from_transaction": service.serialize_transaction(outgoing),
            "to_transaction": service.serialize_transaction(incoming),
        }
    )


@router.get("/{wallet_id}")
def get_wallet(
    wallet_id: UUID,
    context: RequestUserContext = Depends(require_permission("wallet:read")),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = FinanceService(db)
    return success_response(service.serialize_wallet(service.get_wallet(context=context, wallet_id=wallet_id)))


@router.patch("/{wallet_id}")
def update_wallet(
    wallet_id: UUID,
    payload: WalletUpdatePayload,
    context: RequestUserContext = Depends(require_permission("wallet:update")),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = FinanceService(db)
    wallet = service.update_wallet(context=context, wallet_id=wallet_id, data=WalletUpdateData(**payload.model_dump()))
    return success_response(service.serialize_wallet(wallet))


@router.delete("/{wallet_id}")
def delete_wallet(
    wallet_id: UUID,
    context: RequestUserContext = Depends(require_permission("wallet:delete")),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    FinanceService(db).delete_wallet(context=context, wallet_id=wallet_id)
    return success_response({"id": str(wallet_id)})


@router.get("/{wallet_id}/transactions")
def list_wallet_transactions(
    wallet_id: UUID,
    context: RequestUserContext = Depends(require_permission("wallet:read")),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = FinanceService(db)
    rows = service.list_transactions(context=context, wallet_id=wallet_id)
    return success_response([service.serialize_transaction(row) for row in rows])


@router.post("/{wallet_id}/transactions", status_code=status.HTTP_201_CREATED)
def record_wallet_transaction(
    wallet_id: UUID,
    payload: WalletTransactionPayload,
    context: RequestUserContext = Depends(require_permission("wallet:update")),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = FinanceService(db)
    row = service.record_transaction(
        context=context,
        wallet_id=wallet_id,
        data=WalletTransactionData(**payload.model_dump()),
    )
    return success_response(service.serialize_transaction(row))
