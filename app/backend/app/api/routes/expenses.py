"""Expense and expense category endpoints."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Literal
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from app.api.responses import success_response
from app.core.auth import RequestUserContext, require_permission
from app.db.dependencies import get_db_session
from app.models.entities import ExpenseStatus
from app.services.finance_service import (
    ExpenseCategoryCreateData,
    ExpenseCreateData,
    ExpenseUpdateData,
    FinanceService,
)

router = APIRouter(prefix="/expenses", tags=["expenses"])


class ExpenseCategoryCreatePayload(BaseModel):
    name: str = Field(min_length=1, max_length=128)
    description: str | None = Field(default=None, max_length=500)


class ExpenseCreatePayload(BaseModel):
    category_id: UUID
    amount: Decimal = Field(gt=0, max_digits=14, decimal_places=2)
    description: str = Field(min_length=1, max_length=500)
    expense_date: date
    wallet_id: UUID | None = None
    receipt_url: str | None = Field(default=None, max_length=1000)


class ExpenseUpdatePayload(BaseModel):
    category_id: UUID | None = None
    amount: Decimal | None = Field(default=None, gt=0, max_digits=14, decimal_places=2)
    description: str | None = Field(default=None, min_length=1, max_length=500)
    expense_date: date | None = None
    wallet_id: UUID | None = None
    receipt_url: str | None = Field(default=None, max_length=1000)


class ExpenseDecisionPayload(BaseModel):
    status: Literal["approved", "rejected"]


@router.get("/categories")
def list_expense_categories(
    context: RequestUserContext = Depends(require_permission("expense:read")),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = FinanceService(db)
    return success_response([service.serialize_category(item) for item in service.list_categories(context=context)])


@router.post("/categories", status_code=status.HTTP_201_CREATED)
def create_expense_category(
    payload: ExpenseCategoryCreatePayload,
    context: RequestUserContext = Depends(require_permission("expense:create")),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = FinanceService(db)
    category = service.create_category(context=context, data=ExpenseCategoryCreateData(**payload.model_dump()))
    return success_response(service.serialize_category(category))


@router.get("")
def list_expenses(
    status_filter: ExpenseStatus | None = Query(default=None, alias="status"),
    category_id: UUID | None = None,
    context: RequestUserContext = Depends(require_permission("expense:read")),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = FinanceService(db)
    items = service.list_expenses(context=context, status_filter=status_filter, category_id=category_id)
    return success_response([service.serialize_expense(item) for item in items])


@router.post("", status_code=status.HTTP_201_CREATED)
def create_expense(
    payload: ExpenseCreatePayload,
    context: RequestUserContext = Depends(require_permission("expense:create")),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = FinanceService(db)
    expense = service.create_expense(context=context, data=ExpenseCreateData(**payload.model_dump()))
    return success_response(service.serialize_expense(expense))


@router.get("/{expense_id}")
def get_expense(
    expense_id: UUID,
    context: RequestUserContext = Depends(require_permission("expense:read")),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = FinanceService(db)
    return success_response(service.serialize_expense(service.get_expense(context=context, expense_id=expense_id)))


@router.patch("/{expense_id}")
def update_expense(
    expense_id: UUID,
    payload: ExpenseUpdatePayload,
    context: RequestUserContext = Depends(require_permission("expense:update")),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = FinanceService(db)
    expense = service.update_expense(
        context=context,
        expense_id=expense_id,
        data=ExpenseUpdateData(**payload.model_dump()),
    )
    return success_response(service.serialize_expense(expense))


@router.delete("/{expense_id}")
def delete_expense(
    expense_id: UUID,
    context: RequestUserContext = Depends(require_permission("expense:delete")),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    FinanceService(db).delete_expense(context=context, expense_id=expense_id)
    return success_response({"id": str(expense_id)})


@router.post("/{expense_id}/approval")
def decide_expense(
    expense_id: UUID,
    payload: ExpenseDecisionPayload,
    context: RequestUserContext = Depends(require_permission("expense:approve")),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = FinanceService(db)
    expense = service.decide_expense(
        context=context,
        expense_id=expense_id,
        decision=ExpenseStatus(payload.status),
    )
    return success_response(service.serialize_expense(expense))
