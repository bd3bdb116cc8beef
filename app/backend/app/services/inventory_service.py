"""Inventory items, purchase orders and point-of-sale checkout."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.auth import RequestUserContext
from app.models.entities import (
    Customer,
    InventoryItem,
    PaymentStatus,
    PosSale,
    PosSaleItem,
    PurchaseOrder,
    PurchaseOrderItem,
    PurchaseOrderStatus,
    WalletTransactionType,
)
from app.repositories.business_repository import BusinessRepository
from app.services.audit_service import AuditService
from app.services.finance_service import FinanceService, WalletTransactionData

logger = logging.getLogger(__name__)

ZERO = Decimal("0.00")
Q2 = Decimal("0.01")

APPROVABLE_STATUSES = {PurchaseOrderStatus.DRAFT, PurchaseOrderStatus.SENT}


def _q2(value: Decimal) -> Decimal:
    return value.quantize(Q2)


def purchase_order_prefix(business_name: str) -> str:
    """First three letters of the business name, upper-cased."""

    letters = "".join(char for char in business_name if char.isalpha())
    return (letters[:3] or "PO").upper()


def payment_status_for(total: Decimal, paid: Decimal) -> PaymentStatus:
    if paid <= ZERO:
        return PaymentStatus.UNPAID
    if paid >= total:
        return PaymentStatus.PAID
    return PaymentStatus.PARTIAL


@dataclass(slots=True)
class InventoryItemCreateData:
    name: str
    sku: str
    category: str = "General"
    unit_of_measure: str = "unit"
    cost_price: Decimal = ZERO
    selling_price: Decimal = ZERO
    current_stock: Decimal = ZERO
    reorder_level: Decimal = ZERO


@dataclass(slots=True)
class InventoryItemUpdateData:
    name: str | None = None
    sku: str | None = None
    category: str | None = None
    unit_of_measure: str | None = None
    cost_price: Decimal | None = None
    selling_price: Decimal | None = None
    reorder_level: Decimal | None = None
    active: bool | None = None


@dataclass(slots=True)
class PurchaseOrderLineInput:
    item_name: str
    quantity: Decimal
    unit_cost: Decimal
    inventory_item_id: UUID | None = None


@dataclass(slots=True)
class PurchaseOrderCreateData:
    supplier_name: str
    order_date: date
    items: list[PurchaseOrderLineInput]
    expected_delivery_date: date | None = None
    notes: str | None = None


@dataclass(slots=True)
class PurchaseOrderPaymentData:
    amount: Decimal
    wallet_id: UUID | None = None


@dataclass(slots=True)
class SaleLineInput:
    inventory_item_id: UUID
    quantity: Decimal
    unit_price: Decimal | None = None


@dataclass(slots=True)
class SaleCreateData:
    items: list[SaleLineInput]
    payment_method: str = "cash"
    customer_id: UUID | None = None
    wallet_id: UUID | None = None


@dataclass(slots=True)
class PurchaseOrderView:
    order: PurchaseOrder
    items: list[PurchaseOrderItem] = field(default_factory=list)


@dataclass(slots=True)
class SaleView:
    sale: PosSale
    items: list[PosSaleItem] = field(default_factory=list)


class InventoryService:
    """Service implementing stock levels, procurement and sales."""

    def __init__(self, db: Session) -> None:
        self.db = db
        self.repo = BusinessRepository(db)
        self.audit = AuditService(db)
        self.finance = FinanceService(db)

    # ---------- Serialization ----------
    @staticmethod
    def serialize_item(item: InventoryItem) -> dict[str, object]:
        return {
            "id": str(item.id),
            "name": item.name,
            "sku": item.sku,
            "category": item.category,
            "unit_of_measure": item.unit_of_measure,
            "cost_price": str(_q2(item.cost_price)),
            "selling_price": str(_q2(item.selling_price)),
            "current_stock": str(_q2(item.current_stock)),
            "reorder_level": str(_q2(item.reorder_level)),
            "low_stock": item.current_stock <= item.reorder_level,
            "active": item.active,
            "created_at": item.created_at.isoformat(),
            "updated_at": item.updated_at.isoformat(),
        }

    @staticmethod
    def serialize_purchase_order(view: PurchaseOrderView) -> dict[str, object]:
        order = view.order
        return {
            "id": str(order.id),
            "po_number": order.po_number,
            "supplier_name": order.supplier_name,
            "order_date": order.order_date.isoformat(),
            "expected_delivery_date": (
                order.expected_delivery_date.isoformat() if order.expected_delivery_date else None
            ),
            "status": order.status.value,
            "total_amount": str(_q2(order.total_amount)),
            "paid_amount": str(_q2(order.paid_amount)),
            "balance_due": str(_q2(order.total_amount - order.paid_amount)),
            "payment_status": order.payment_status.value,
            "notes": order.notes,
            "created_by": str(order.created_by),
            "approved_by": str(order.approved_by) if order.approved_by else None,
            "approved_at": order.approved_at.isoformat() if order.approved_at else None,
            "received_at": order.received_at.isoformat() if order.received_at else None,
            "items": [
                {
                    "id": str(line.id),
                    "inventory_item_id": str(line.inventory_item_id) if line.inventory_item_id else None,
                    "item_name": line.item_name,
                    "quantity": str(_q2(line.quantity)),
                    "unit_cost": str(_q2(line.unit_cost)),
                    "total_cost": str(_q2(line.total_cost)),
                }
                for line in view.items
            ],
            "created_at": order.created_at.isoformat(),
        }

    @staticmethod
    def serialize_sale(view: SaleView) -> dict[str, object]:
        sale = view.sale
        return {
            "id": str(sale.id),
            "receipt_number": sale.receipt_number,
            "customer_id": str(sale.customer_id) if sale.customer_id else None,
            "wallet_id": str(sale.wallet_id) if sale.wallet_id else None,
            "payment_method": sale.payment_method,
            "total_amount": str(_q2(sale.total_amount)),
            "items": [
                {
                    "inventory_item_id": str(line.inventory_item_id),
                    "item_name": line.item_name,
                    "quantity": str(_q2(line.quantity)),
                    "unit_price": str(_q2(line.unit_price)),
                    "line_total": str(_q2(line.line_total)),
                }
                for line in view.items
            ],
            "created_by": str(sale.created_by),
            "created_at": sale.created_at.isoformat(),
        }

    # ---------- Inventory items ----------
    def _require_item(self, context: RequestUserContext, item_id: UUID) -> InventoryItem:
        item = self.repo.get_scoped(InventoryItem, context.business_id, item_id)
        if item is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Inventory item not found.")
        return item

    def _commit_sku_checked(self) -> None:
        try:
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="SKU already exists in this business.",
            ) from exc

    def list_items(
        self,
        *,
        context: RequestUserContext,
        low_stock: bool = False,
        category: str | None = None,
    ) -> list[InventoryItem]:
        if low_stock:
            items = self.repo.list_low_stock_items(context.business_id)
        else:
            items = self.repo.list_scoped(InventoryItem, context.business_id, order_by=InventoryItem.name.asc())
        if category:
            items = [item for item in items if item.category == category]
        return items

    def get_item(self, *, context: RequestUserContext, item_id: UUID) -> InventoryItem:
        return self._require_item(context, item_id)

    def create_item(self, *, context: RequestUserContext, data: InventoryItemCreateData) -> InventoryItem:
        for label, value in (
            ("cost_price", data.cost_price),
            ("selling_price", data.selling_price),
            ("current_stock", data.current_stock),
            ("reorder_level", data.reorder_level),
        ):
            if value < ZERO:
                raise HTTPException(
                    status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                    detail=f"{label} cannot be negative.",
                )

        now = datetime.utcnow()
        item = InventoryItem(
            business_id=context.business_id,
            name=data.name.strip(),
            sku=data.sku.strip().upper(),
            category=data.category.strip() or "General",
            unit_of_measure=data.unit_of_measure,
            cost_price=_q2(data.cost_price),
            selling_price=_q2(data.selling_price),
            current_stock=_q2(data.current_stock),
            reorder_level=_q2(data.reorder_level),
            active=True,
            created_at=now,
            updated_at=now,
        )
        self.db.add(item)
        try:
            self.db.flush()
        except IntegrityError as exc:
            self.db.rollback()
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="SKU already exists in this business.",
            ) from exc

        self.audit.record_for(
            context,
            entity_name="inventory_item",
            entity_id=item.id,
            action_type="create",
            after=self.serialize_item(item),
        )
        self._commit_sku_checked()
        self.db.refresh(item)
        return item

    def update_item(
        self,
        *,
        context: RequestUserContext,
        item_id: UUID,
        data: InventoryItemUpdateData,
    ) -> InventoryItem:
        item = self._require_item(context, item_id)
        before = self.serialize_item(item)

        if data.name is not None:
            item.name = data.name.strip()
        if data.sku is not None:
            item.sku = data.sku.strip().upper()
        if data.category is not None:
            item.category = data.category.strip() or "General"
        if data.unit_of_measure is not None:
            item.unit_of_measure = data.unit_of_measure
        if data.cost_price is not None:
            item.cost_price = _q2(data.cost_price)
        if data.selling_price is not None:
            item.selling_price = _q2(data.selling_price)
        if data.reorder_level is not None:
            item.reorder_level = _q2(data.reorder_level)
        if data.active is not None:
            item.active = data.active
        item.updated_at = datetime.utcnow()

        self.audit.record_for(
            context,
            entity_name="inventory_item",
            entity_id=item.id,
            action_type="update",
            before=before,
            after=self.serialize_item(item),
        )
        self._commit_sku_checked()
        self.db.refresh(item)
        return item

    def delete_item(self, *, context: RequestUserContext, item_id: UUID) -> None:
        item = self._require_item(context, item_id)
        self.audit.record_for(
            context,
            entity_name="inventory_item",
            entity_id=item.id,
            action_type="delete",
            before=self.serialize_item(item),
        )
        self.repo.delete(item)
        try:
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Inventory item is referenced by orders or sales; deactivate it instead.",
            ) from exc

    def _apply_stock_delta(self, item: InventoryItem, delta: Decimal) -> None:
        new_stock = _q2(item.current_stock + delta)
        if new_stock < ZERO:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail=f"Insufficient stock for '{item.name}'.",
            )
        item.current_stock = new_stock
        item.updated_at = datetime.utcnow()

    def adjust_stock(
        self,
        *,
        context: RequestUserContext,
        item_id: UUID,
        quantity_delta: Decimal,
        reason: str | None = None,
    ) -> InventoryItem:
        item = self._require_item(context, item_id)
        before = self.serialize_item(item)
        self._apply_stock_delta(item, quantity_delta)

        after = self.serialize_item(item)
        after["reason"] = reason
        self.audit.record_for(
            context,
            entity_name="inventory_item",
            entity_id=item.id,
            action_type="adjust_stock",
            before=before,
            after=after,
        )
        self.db.commit()
        self.db.refresh(item)
        return item

    # ---------- Purchase orders ----------
    def _require_order(self, context: RequestUserContext, order_id: UUID) -> PurchaseOrder:
        order = self.repo.get_scoped(PurchaseOrder, context.business_id, order_id)
        if order is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Purchase order not found.")
        return order

    def _order_view(self, order: PurchaseOrder) -> PurchaseOrderView:
        return PurchaseOrderView(order=order, items=self.repo.list_purchase_order_items(order.id))

    def list_purchase_orders(
        self,
        *,
        context: RequestUserContext,
        status_filter: PurchaseOrderStatus | None = None,
    ) -> list[PurchaseOrderView]:
        conditions = [PurchaseOrder.status == status_filter] if status_filter is not None else []
        orders = self.repo.list_scoped(
            PurchaseOrder,
            context.business_id,
            *conditions,
            order_by=PurchaseOrder.created_at.desc(),
        )
        return [self._order_view(order) for order in orders]

    def get_purchase_order(self, *, context: RequestUserContext, order_id: UUID) -> PurchaseOrderView:
        return self._order_view(self._require_order(context, order_id))

    def create_purchase_order(
        self,
        *,
        context: RequestUserContext,
        data: PurchaseOrderCreateData,
    ) -> PurchaseOrderView:
        if not data.items:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail="A purchase order needs at least one line item.",
            )
        for line in data.items:
            if line.quantity <= ZERO or line.unit_cost < ZERO:
                raise HTTPException(
                    status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                    detail="Line quantity must be positive and unit cost non-negative.",
                )
            if line.inventory_item_id is not None:
                self._require_item(context, line.inventory_item_id)

        business = self.repo.get_business(context.business_id)
        prefix = purchase_order_prefix(business.name if business else "")
        sequence = self.repo.next_purchase_order_sequence(context.business_id)

        now = datetime.utcnow()
        order = self.repo.add(
            PurchaseOrder(
                business_id=context.business_id,
                po_number=f"{prefix}-{sequence:06d}",
                supplier_name=data.supplier_name.strip(),
                order_date=data.order_date,
                expected_delivery_date=data.expected_delivery_date,
                status=PurchaseOrderStatus.DRAFT,
                total_amount=ZERO,
                paid_amount=ZERO,
                payment_status=PaymentStatus.UNPAID,
                notes=data.notes,
                created_by=context.user_id,
                created_at=now,
                updated_at=now,
            )
        )

        total = ZERO
        for line in data.items:
            line_total = _q2(line.quantity * line.unit_cost)
            total += line_total
            self.db.add(
                PurchaseOrderItem(
                    purchase_order_id=order.id,
                    inventory_item_id=line.inventory_item_id,
                    item_name=line.item_name.strip(),
                    quantity=_q2(line.quantity),
                    unit_cost=_q2(line.unit_cost),
                    total_cost=line_total,
                )
            )
        order.total_amount = _q2(total)
        self.db.flush()

        view = self._order_view(order)
        self.audit.record_for(
            context,
            entity_name="purchase_order",
            entity_id=order.id,
            action_type="create",
            after=self.serialize_purchase_order(view),
        )
        try:
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Purchase order number already issued; retry.",
            ) from exc

        self.db.refresh(order)
        logger.info("Purchase order %s created for %s", order.po_number, context.business_id)
        return self._order_view(order)

    def approve_purchase_order(self, *, context: RequestUserContext, order_id: UUID) -> PurchaseOrderView:
        order = self._require_order(context, order_id)
        if order.status not in APPROVABLE_STATUSES:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail=f"Cannot approve a purchase order in status '{order.status.value}'.",
            )

        now = datetime.utcnow()
        order.status = PurchaseOrderStatus.CONFIRMED
        order.approved_by = context.user_id
        order.approved_at = now
        order.updated_at = now
        self.audit.record_for(
            context,
            entity_name="purchase_order",
            entity_id=order.id,
            action_type="approve",
            after={"status": order.status.value},
        )
        self.db.commit()
        self.db.refresh(order)
        return self._order_view(order)

    def receive_purchase_order(self, *, context: RequestUserContext, order_id: UUID) -> PurchaseOrderView:
        order = self._require_order(context, order_id)
        if order.status is not PurchaseOrderStatus.CONFIRMED:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Only confirmed purchase orders can be received.",
            )

        for line in self.repo.list_purchase_order_items(order.id):
            if line.inventory_item_id is None:
                continue
            item = self._require_item(context, line.inventory_item_id)
            self._apply_stock_delta(item, line.quantity)

        now = datetime.utcnow()
        order.status = PurchaseOrderStatus.RECEIVED
        order.received_at = now
        order.updated_at = now
        self.audit.record_for(
            context,
            entity_name="purchase_order",
            entity_id=order.id,
            action_type="receive",
            after={"status": order.status.value},
        )
        self.db.commit()
        self.db.refresh(order)
        logger.info("Purchase order %s received", order.po_number)
        return self._order_view(order)

    def pay_purchase_order(
        self,
        *,
        context: RequestUserContext,
        order_id: UUID,
        data: PurchaseOrderPaymentData,
    ) -> PurchaseOrderView:
        order = self._require_order(context, order_id)
        if order.status is not PurchaseOrderStatus.RECEIVED:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Only received purchase orders can be paid.",
            )

        amount = _q2(data.amount)
        remaining = _q2(order.total_amount - order.paid_amount)
        if amount <= ZERO:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail="Payment amount must be greater than zero.",
            )
        if amount > remaining:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail=f"Payment exceeds the remaining balance of {remaining}.",
            )

        try:
            if data.wallet_id is not None:
                self.finance.post_transaction(
                    context=context,
                    wallet=self.finance.require_wallet(context, data.wallet_id),
                    data=WalletTransactionData(
                        transaction_type=WalletTransactionType.EXPENSE,
                        amount=amount,
                        description=f"Payment for {order.po_number}",
                        reference_type="purchase_order",
                        reference_id=str(order.id),
                    ),
                )
            order.paid_amount = _q2(order.paid_amount + amount)
            order.payment_status = payment_status_for(order.total_amount, order.paid_amount)
            order.updated_at = datetime.utcnow()
            self.audit.record_for(
                context,
                entity_name="purchase_order",
                entity_id=order.id,
                action_type="payment",
                after={"amount": str(amount), "payment_status": order.payment_status.value},
            )
            self.db.commit()
        except HTTPException:
            self.db.rollback()
            raise

        self.db.refresh(order)
        return self._order_view(order)

    # ---------- Point of sale ----------
    def _require_sale(self, context: RequestUserContext, sale_id: UUID) -> PosSale:
        sale = self.repo.get_scoped(PosSale, context.business_id, sale_id)
        if sale is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Sale not found.")
        return sale

    def _sale_view(self, sale: PosSale) -> SaleView:
        return SaleView(sale=sale, items=self.repo.list_sale_items(sale.id))

    def list_sales(self, *, context: RequestUserContext) -> list[SaleView]:
        sales = self.repo.list_scoped(PosSale, context.business_id, order_by=PosSale.created_at.desc())
        return [self._sale_view(sale) for sale in sales]

    def get_sale(self, *, context: RequestUserContext, sale_id: UUID) -> SaleView:
        return self._sale_view(self._require_sale(context, sale_id))

    def create_sale(self, *, context: RequestUserContext, data: SaleCreateData) -> SaleView:
        if not data.items:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail="A sale needs at least one item.",
            )
        if data.customer_id is not None:
            if self.repo.get_scoped(Customer, context.business_id, data.customer_id) is None:
                raise HTTPException(
                    status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                    detail="Customer does not belong to this business.",
                )
        wallet = self.finance.require_wallet(context, data.wallet_id) if data.wallet_id is not None else None

        try:
            sequence = self.repo.next_receipt_sequence(context.business_id)
            now = datetime.utcnow()
            sale = self.repo.add(
                PosSale(
                    business_id=context.business_id,
                    receipt_number=f"RCP-{sequence:06d}",
                    customer_id=data.customer_id,
                    wallet_id=data.wallet_id,
                    payment_method=data.payment_method,
                    total_amount=ZERO,
                    created_by=context.user_id,
                    created_at=now,
                )
            )

            total = ZERO
            for line in data.items:
                if line.quantity <= ZERO:
                    raise HTTPException(
                        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                        detail="Sale quantities must be greater than zero.",
                    )
                item = self._require_item(context, line.inventory_item_id)
                if not item.active:
                    raise HTTPException(
                        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                        detail=f"'{item.name}' is not available for sale.",
                    )
                self._apply_stock_delta(item, -line.quantity)

                unit_price = _q2(line.unit_price if line.unit_price is not None else item.selling_price)
                line_total = _q2(unit_price * line.quantity)
                total += line_total
                self.db.add(
                    PosSaleItem(
                        sale_id=sale.id,
                        inventory_item_id=item.id,
                        item_name=item.name,
                        quantity=_q2(line.quantity),
                        unit_price=unit_price,
                        line_total=line_total,
                    )
                )
            sale.total_amount = _q2(total)
            self.db.flush()

            if wallet is not None and total > ZERO:
                self.finance.post_transaction(
                    context=context,
                    wallet=wallet,
                    data=WalletTransactionData(
                        transaction_type=WalletTransactionType.INCOME,
                        amount=total,
                        description=f"POS sale {sale.receipt_number}",
                        reference_type="pos_sale",
                        reference_id=str(sale.id),
                    ),
                )

            view = self._sale_view(sale)
            self.audit.record_for(
                context,
                entity_name="pos_sale",
                entity_id=sale.id,
                action_type="create",
                after=self.serialize_sale(view),
            )
            self.db.commit()
        except HTTPException:
            self.db.rollback()
            raise

        self.db.refresh(sale)
        logger.info("POS sale %s recorded (%s)", sale.receipt_number, sale.total_amount)
        return self._sale_view(sale)
