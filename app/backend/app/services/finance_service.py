"""Money wallets, wallet ledger, transfers and expenses."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.auth import RequestUserContext
from app.models.entities import (
    Expense,
    ExpenseCategory,
    ExpenseStatus,
    Wallet,
    WalletTransaction,
    WalletTransactionType,
    WalletType,
)
from app.repositories.business_repository import BusinessRepository
from app.services.audit_service import AuditService

logger = logging.getLogger(__name__)

ZERO = Decimal("0.00")
Q2 = Decimal("0.01")


def _q2(value: Decimal) -> Decimal:
    return value.quantize(Q2)


@dataclass(slots=True)
class WalletCreateData:
    name: str
    wallet_type: WalletType
    opening_balance: Decimal = ZERO
    description: str | None = None


@dataclass(slots=True)
class WalletUpdateData:
    name: str | None = None
    wallet_type: WalletType | None = None
    description: str | None = None
    active: bool | None = None


@dataclass(slots=True)
class WalletTransactionData:
    transaction_type: WalletTransactionType
    amount: Decimal
    description: str = ""
    reference_type: str | None = None
    reference_id: str | None = None


@dataclass(slots=True)
class TransferData:
    from_wallet_id: UUID
    to_wallet_id: UUID
    amount: Decimal
    description: str = ""


@dataclass(slots=True)
class ExpenseCategoryCreateData:
    name: str
    description: str | None = None


@dataclass(slots=True)
class ExpenseCreateData:
    category_id: UUID
    amount: Decimal
    description: str
    expense_date: date
    wallet_id: UUID | None = None
    receipt_url: str | None = None


@dataclass(slots=True)
class ExpenseUpdateData:
    category_id: UUID | None = None
    amount: Decimal | None = None
    description: str | None = None
    expense_date: date | None = None
    wallet_id: UUID | None = None
    receipt_url: str | None = None


class FinanceService:
    """Service implementing wallet balances and the expense approval flow."""

    def __init__(self, db: Session) -> None:
        self.db = db
        self.repo = BusinessRepository(db)
        self.audit = AuditService(db)

    # ---------- Serialization ----------
    @staticmethod
    def serialize_wallet(wallet: Wallet) -> dict[str, object]:
        return {
            "id": str(wallet.id),
            "name": wallet.name,
            "wallet_type": wallet.wallet_type.value,
            "current_balance": str(_q2(wallet.current_balance)),
            "description": wallet.description,
            "active": wallet.active,
            "created_at": wallet.created_at.isoformat(),
            "updated_at": wallet.updated_at.isoformat(),
        }

    @staticmethod
    def serialize_transaction(row: WalletTransaction) -> dict[str, object]:
        return {
            "id": str(row.id),
            "wallet_id": str(row.wallet_id),
            "transaction_type": row.transaction_type.value,
            "amount": str(_q2(row.amount)),
            "balance_after": str(_q2(row.balance_after)),
            "description": row.description,
            "reference_type": row.reference_type,
            "reference_id": row.reference_id,
            "created_by": str(row.created_by),
            "created_at": row.created_at.isoformat(),
        }

    @staticmethod
    def serialize_category(category: ExpenseCategory) -> dict[str, object]:
        return {
            "id": str(category.id),
            "name": category.name,
            "description": category.description,
            "active": category.active,
        }

    @staticmethod
    def serialize_expense(expense: Expense) -> dict[str, object]:
        return {
            "id": str(expense.id),
            "category_id": str(expense.category_id),
            "wallet_id": str(expense.wallet_id) if expense.wallet_id else None,
            "amount": str(_q2(expense.amount)),
            "description": expense.description,
            "expense_date": expense.expense_date.isoformat(),
            "receipt_url": expense.receipt_url,
            "status": expense.status.value,
            "created_by": str(expense.created_by),
            "approved_by": str(expense.approved_by) if expense.approved_by else None,
            "approved_at": expense.approved_at.isoformat() if expense.approved_at else None,
            "created_at": expense.created_at.isoformat(),
            "updated_at": expense.updated_at.isoformat(),
        }

    # ---------- Wallet ledger ----------
    def require_wallet(self, context: RequestUserContext, wallet_id: UUID) -> Wallet:
        wallet = self.repo.get_scoped(Wallet, context.business_id, wallet_id)
        if wallet is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Wallet not found.")
        return wallet

    def post_transaction(
        self,
        *,
        context: RequestUserContext,
        wallet: Wallet,
        data: WalletTransactionData,
    ) -> WalletTransaction:
        """Apply one ledger entry to ``wallet`` without committing.

        Expenses never take a balance below zero.
        """

        amount = _q2(data.amount)
        if amount <= ZERO:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail="Transaction amount must be greater than zero.",
            )
        if not wallet.active:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail=f"Wallet '{wallet.name}' is inactive.",
            )

        balance = _q2(wallet.current_balance)
        if data.transaction_type is WalletTransactionType.EXPENSE:
            if amount > balance:
                raise HTTPException(
                    status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                    detail=f"Insufficient funds in wallet '{wallet.name}'.",
                )
            balance -= amount
        else:
            balance += amount

        now = datetime.utcnow()
        wallet.current_balance = balance
        wallet.updated_at = now
        return self.repo.add(
            WalletTransaction(
                business_id=context.business_id,
                wallet_id=wallet.id,
                transaction_type=data.transaction_type,
                amount=amount,
                balance_after=balance,
                description=data.description,
                reference_type=data.reference_type,
                reference_id=data.reference_id,
                created_by=context.user_id,
                created_at=now,
            )
        )

    # ---------- Wallets ----------
    def list_wallets(self, *, context: RequestUserContext, active: bool | None = None) -> list[Wallet]:
        conditions = [Wallet.active.is_(active)] if active is not None else []
        return self.repo.list_scoped(Wallet, context.business_id, *conditions, order_by=Wallet.name.asc())

    def get_wallet(self, *, context: RequestUserContext, wallet_id: UUID) -> Wallet:
        return self.require_wallet(context, wallet_id)

    def create_wallet(self, *, context: RequestUserContext, data: WalletCreateData) -> Wallet:
        if data.opening_balance < ZERO:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail="Opening balance cannot be negative.",
            )

        now = datetime.utcnow()
        wallet = Wallet(
            business_id=context.business_id,
            name=data.name.strip(),
            wallet_type=data.wallet_type,
            current_balance=ZERO,
            description=data.description,
            active=True,
            created_at=now,
            updated_at=now,
        )
        try:
            self.repo.add(wallet)
            if data.opening_balance > ZERO:
                self.post_transaction(
                    context=context,
                    wallet=wallet,
                    data=WalletTransactionData(
                        transaction_type=WalletTransactionType.INCOME,
                        amount=data.opening_balance,
                        description="Opening balance",
                        reference_type="opening_balance",
                    ),
                )
            self.audit.record_for(
                context,
                entity_name="wallet",
                entity_id=wallet.id,
                action_type="create",
                after=self.serialize_wallet(wallet),
            )
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Wallet name already exists in this business.",
            ) from exc

        self.db.refresh(wallet)
        return wallet

    def update_wallet(self, *, context: RequestUserContext, wallet_id: UUID, data: WalletUpdateData) -> Wallet:
        wallet = self.require_wallet(context, wallet_id)
        before = self.serialize_wallet(wallet)

        if data.name is not None:
            wallet.name = data.name.strip()
        if data.wallet_type is not None:
            wallet.wallet_type = data.wallet_type
        if data.description is not None:
            wallet.description = data.description or None
        if data.active is not None:
            wallet.active = data.active
        wallet.updated_at = datetime.utcnow()

        self.audit.record_for(
            context,
            entity_name="wallet",
            entity_id=wallet.id,
            action_type="update",
            before=before,
            after=self.serialize_wallet(wallet),
        )
        try:
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Wallet name already exists in this business.",
            ) from exc

        self.db.refresh(wallet)
        return wallet

    def delete_wallet(self, *, context: RequestUserContext, wallet_id: UUID) -> None:
        wallet = self.require_wallet(context, wallet_id)
        if self.repo.list_wallet_transactions(context.business_id, wallet.id):
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Cannot delete a wallet with transactions; deactivate it instead.",
            )
        self.audit.record_for(
            context,
            entity_name="wallet",
            entity_id=wallet.id,
            action_type="delete",
            before=self.serialize_wallet(wallet),
        )
        self.repo.delete(wallet)
        self.db.commit()

    def list_transactions(self, *, context: RequestUserContext, wallet_id: UUID) -> list[WalletTransaction]:
        wallet = self.require_wallet(context, wallet_id)
        return self.repo.list_wallet_transactions(context.business_id, wallet.id)

    def record_transaction(
        self,
        *,
        context: RequestUserContext,
        wallet_id: UUID,
        data: WalletTransactionData,
    ) -> WalletTransaction:
        wallet = self.require_wallet(context, wallet_id)
        try:
            row = self.post_transaction(context=context, wallet=wallet, data=data)
            self.audit.record_for(
                context,
                entity_name="wallet_transaction",
                entity_id=row.id,
                action_type=data.transaction_type.value,
                after=self.serialize_transaction(row),
            )
            self.db.commit()
        except HTTPException:
            self.db.rollback()
            raise

        self.db.refresh(row)
        return row

    def transfer(
        self,
        *,
        context: RequestUserContext,
        data: TransferData,
    ) -> tuple[WalletTransaction, WalletTransaction]:
        if data.from_wallet_id == data.to_wallet_id:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail="Source and destination wallets must differ.",
            )
        source = self.require_wallet(context, data.from_wallet_id)
        destination = self.require_wallet(context, data.to_wallet_id)
        note = data.description or f"Transfer from {source.name} to {destination.name}"

        try:
            outgoing = self.post_transaction(
                context=context,
                wallet=source,
                data=WalletTransactionData(
                    transaction_type=WalletTransactionType.EXPENSE,
                    amount=data.amount,
                    description=note,
                    reference_type="transfer",
                    reference_id=str(destination.id),
                ),
            )
            incoming = self.post_transaction(
                context=context,
                wallet=destination,
                data=WalletTransactionData(
                    transaction_type=WalletTransactionType.INCOME,
                    amount=data.amount,
                    description=note,
                    reference_type="transfer",
                    reference_id=str(source.id),
                ),
            )
            self.audit.record_for(
                context,
                entity_name="wallet_transfer",
                entity_id=outgoing.id,
                action_type="transfer",
                after={
                    "from_wallet_id": str(source.id),
                    "to_wallet_id": str(destination.id),
                    "amount": str(outgoing.amount),
                },
            )
            self.db.commit()
        except HTTPException:
            self.db.rollback()
            raise

        self.db.refresh(outgoing)
        self.db.refresh(incoming)
        logger.info("Transferred %s from wallet %s to %s", outgoing.amount, source.id, destination.id)
        return outgoing, incoming

    # ---------- Expense categories ----------
    def list_categories(self, *, context: RequestUserContext) -> list[ExpenseCategory]:
        return self.repo.list_scoped(ExpenseCategory, context.business_id, order_by=ExpenseCategory.name.asc())

    def create_category(self, *, context: RequestUserContext, data: ExpenseCategoryCreateData) -> ExpenseCategory:
        category = ExpenseCategory(
            business_id=context.business_id,
            name=data.name.strip(),
            description=data.description,
            active=True,
        )
        self.db.add(category)
        try:
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Expense category already exists in this business.",
            ) from exc

        self.db.refresh(category)
        return category

    # ---------- Expenses ----------
    def _ensure_category(self, context: RequestUserContext, category_id: UUID) -> None:
        if self.repo.get_scoped(ExpenseCategory, context.business_id, category_id) is None:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail="Expense category does not belong to this business.",
            )

    def _ensure_wallet_reference(self, context: RequestUserContext, wallet_id: UUID | None) -> None:
        if wallet_id is not None and self.repo.get_scoped(Wallet, context.business_id, wallet_id) is None:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail="Wallet does not belong to this business.",
            )

    def _require_expense(self, context: RequestUserContext, expense_id: UUID) -> Expense:
        expense = self.repo.get_scoped(Expense, context.business_id, expense_id)
        if expense is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Expense not found.")
        return expense

    @staticmethod
    def _ensure_pending(expense: Expense) -> None:
        if expense.status is not ExpenseStatus.PENDING:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail=f"Expense is already {expense.status.value}.",
            )

    def list_expenses(
        self,
        *,
        context: RequestUserContext,
        status_filter: ExpenseStatus | None = None,
        category_id: UUID | None = None,
    ) -> list[Expense]:
        conditions = []
        if status_filter is not None:
            conditions.append(Expense.status == status_filter)
        if category_id is not None:
            conditions.append(Expense.category_id == category_id)
        return self.repo.list_scoped(
            Expense,
            context.business_id,
            *conditions,
            order_by=(Expense.expense_date.desc(), Expense.created_at.desc()),
        )

    def get_expense(self, *, context: RequestUserContext, expense_id: UUID) -> Expense:
        return self._require_expense(context, expense_id)

    def create_expense(self, *, context: RequestUserContext, data: ExpenseCreateData) -> Expense:
        self._ensure_category(context, data.category_id)
        self._ensure_wallet_reference(context, data.wallet_id)
        if data.amount <= ZERO:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail="Expense amount must be greater than zero.",
            )

        now = datetime.utcnow()
        expense = self.repo.add(
            Expense(
                business_id=context.business_id,
                category_id=data.category_id,
                wallet_id=data.wallet_id,
                amount=_q2(data.amount),
                description=data.description.strip(),
                expense_date=data.expense_date,
                receipt_url=data.receipt_url,
                status=ExpenseStatus.PENDING,
                created_by=context.user_id,
                created_at=now,
                updated_at=now,
            )
        )
        self.audit.record_for(
            context,
            entity_name="expense",
            entity_id=expense.id,
            action_type="create",
            after=self.serialize_expense(expense),
        )
        self.db.commit()
        self.db.refresh(expense)
        return expense

    def update_expense(self, *, context: RequestUserContext, expense_id: UUID, data: ExpenseUpdateData) -> Expense:
        expense = self._require_expense(context, expense_id)
        self._ensure_pending(expense)
        if data.category_id is not None:
            self._ensure_category(context, data.category_id)
        self._ensure_wallet_reference(context, data.wallet_id)
        if data.amount is not None and data.amount <= ZERO:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail="Expense amount must be greater than zero.",
            )

        before = self.serialize_expense(expense)
        if data.category_id is not None:
            expense.category_id = data.category_id
        if data.amount is not None:
            expense.amount = _q2(data.amount)
        if data.description is not None:
            expense.description = data.description.strip()
        if data.expense_date is not None:
            expense.expense_date = data.expense_date
        if data.wallet_id is not None:
            expense.wallet_id = data.wallet_id
        if data.receipt_url is not None:
            expense.receipt_url = data.receipt_url or None
        expense.updated_at = datetime.utcnow()

        self.audit.record_for(
            context,
            entity_name="expense",
            entity_id=expense.id,
            action_type="update",
            before=before,
            after=self.serialize_expense(expense),
        )
        self.db.commit()
        self.db.refresh(expense)
        return expense

    def delete_expense(self, *, context: RequestUserContext, expense_id: UUID) -> None:
        expense = self._require_expense(context, expense_id)
        self._ensure_pending(expense)
        self.audit.record_for(
            context,
            entity_name="expense",
            entity_id=expense.id,
            action_type="delete",
            before=self.serialize_expense(expense),
        )
        self.repo.delete(expense)
        self.db.commit()

    def decide_expense(
        self,
        *,
        context: RequestUserContext,
        expense_id: UUID,
        decision: ExpenseStatus,
    ) -> Expense:
        """Approve or reject a pending expense.

        Approving an expense tied to a wallet also debits that wallet.
        """

        if decision not in (ExpenseStatus.APPROVED, ExpenseStatus.REJECTED):
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail="Decision must be 'approved' or 'rejected'.",
            )
        expense = self._require_expense(context, expense_id)
        self._ensure_pending(expense)

        before = self.serialize_expense(expense)
        now = datetime.utcnow()
        try:
            expense.status = decision
            expense.approved_by = context.user_id
            expense.approved_at = now
            expense.updated_at = now
            if decision is ExpenseStatus.APPROVED and expense.wallet_id is not None:
                self.post_transaction(
                    context=context,
                    wallet=self.require_wallet(context, expense.wallet_id),
                    data=WalletTransactionData(
                        transaction_type=WalletTransactionType.EXPENSE,
                        amount=expense.amount,
                        description=expense.description,
                        reference_type="expense",
                        reference_id=str(expense.id),
                    ),
                )

            self.audit.record_for(
                context,
                entity_name="expense",
                entity_id=expense.id,
                action_type=decision.value,
                before=before,
                after=self.serialize_expense(expense),
            )
            self.db.commit()
        except HTTPException:
            self.db.rollback()
            raise

        self.db.refresh(expense)
        logger.info("Expense %s %s by %s", expense.id, expense.status.value, context.user_id)
        return expense
