"""Repository helpers for tenant-scoped business records."""

from __future__ import annotations

from typing import TypeVar
from uuid import UUID

from sqlalchemy import and_, func, select
from sqlalchemy.orm import Session

from app.core.permissions import UserRole
from app.models.entities import (
    AuditEvent,
    Business,
    Department,
    InventoryItem,
    Job,
    PackageService,
    Permission,
    PosSale,
    PosSaleItem,
    PurchaseOrder,
    PurchaseOrderItem,
    Role,
    RolePermission,
    User,
    UserFeatureToggle,
    WalletTransaction,
)

ModelT = TypeVar("ModelT")


class BusinessRepository:
    """Persistence operations shared by the business domain services.

    Every lookup of a tenant-owned row takes the caller's ``business_id`` so a
    foreign id resolves to ``None`` even where database policies are absent.
    """

    def __init__(self, db: Session) -> None:
        self.db = db

    # ---------- Generic tenant-scoped access ----------
    def get_scoped(self, model: type[ModelT], business_id: UUID, entity_id: UUID) -> ModelT | None:
        return self.db.scalar(
            select(model).where(and_(model.id == entity_id, model.business_id == business_id))
        )

    def list_scoped(self, model: type[ModelT], business_id: UUID, *conditions, order_by=None) -> list[ModelT]:
        query = select(model).where(model.business_id == business_id, *conditions)
        if order_by is not None:
            query = query.order_by(*order_by) if isinstance(order_by, tuple) else query.order_by(order_by)
        return list(self.db.scalars(query).all())

    def count_scoped(self, model: type, business_id: UUID) -> int:
        return self.db.scalar(select(func.count()).select_from(model).where(model.business_id == business_id)) or 0

    def add(self, entity: ModelT) -> ModelT:
        self.db.add(entity)
        self.db.flush()
        return entity

    def delete(self, entity: object) -> None:
        self.db.delete(entity)
        self.db.flush()

    # ---------- Businesses and users ----------
    def get_business(self, business_id: UUID) -> Business | None:
        return self.db.scalar(select(Business).where(Business.id == business_id))

    def get_user_by_email(self, email: str) -> User | None:
        return self.db.scalar(select(User).where(func.lower(User.email) == email.strip().lower()))

    def get_user(self, business_id: UUID, user_id: UUID) -> User | None:
        return self.get_scoped(User, business_id, user_id)

    # ---------- Roles and permissions ----------
    def get_role(self, business_id: UUID, role: UserRole) -> Role | None:
        return self.db.scalar(select(Role).where(and_(Role.business_id == business_id, Role.name == role)))

    def list_roles(self, business_id: UUID) -> list[Role]:
        return list(self.db.scalars(select(Role).where(Role.business_id == business_id)).all())

    def list_role_permission_names(self, role_id: UUID) -> list[str]:
        return list(
            self.db.scalars(
                select(RolePermission.permission_name)
                .where(RolePermission.role_id == role_id)
                .order_by(RolePermission.permission_name.asc())
            ).all()
        )

    def replace_role_permissions(self, role_id: UUID, permission_names: list[str]) -> None:
        for existing in self.db.scalars(select(RolePermission).where(RolePermission.role_id == role_id)).all():
            self.db.delete(existing)
        self.db.flush()
        for name in permission_names:
            self.db.add(RolePermission(role_id=role_id, permission_name=name))
        self.db.flush()

    def list_permissions(self) -> list[Permission]:
        return list(
            self.db.scalars(select(Permission).order_by(Permission.resource.asc(), Permission.action.asc())).all()
        )

    def list_permission_names(self) -> set[str]:
        return set(self.db.scalars(select(Permission.name)).all())

    def list_feature_toggles(self, business_id: UUID, user_id: UUID) -> list[UserFeatureToggle]:
        return list(
            self.db.scalars(
                select(UserFeatureToggle)
                .where(
                    and_(
                        UserFeatureToggle.business_id == business_id,
                        UserFeatureToggle.user_id == user_id,
                    )
                )
                .order_by(UserFeatureToggle.granted_at.asc())
            ).all()
        )

    # ---------- Departments ----------
    def child_department_count(self, department_id: UUID) -> int:
        return self.db.scalar(
            select(func.count()).select_from(Department).where(Department.parent_department_id == department_id)
        ) or 0

    def staff_count_for_department(self, department_id: UUID) -> int:
        return self.db.scalar(select(func.count()).select_from(User).where(User.department_id == department_id)) or 0

    # ---------- Catalog ----------
    def list_package_services(self, package_id: UUID) -> list[PackageService]:
        return list(self.db.scalars(select(PackageService).where(PackageService.package_id == package_id)).all())

    def clear_package_services(self, package_id: UUID) -> None:
        for link in self.list_package_services(package_id):
            self.db.delete(link)
        self.db.flush()

    def package_count_for_service(self, service_id: UUID) -> int:
        return self.db.scalar(
            select(func.count()).select_from(PackageService).where(PackageService.service_id == service_id)
        ) or 0

    def next_job_sequence(self, business_id: UUID) -> int:
        # Jobs can be deleted, so continue from the highest issued number.
        latest = self.db.scalar(select(func.max(Job.job_number)).where(Job.business_id == business_id))
        return int(latest.rsplit("-", 1)[-1]) + 1 if latest else 1

    # ---------- Inventory, purchasing and POS ----------
    def list_low_stock_items(self, business_id: UUID) -> list[InventoryItem]:
        return self.list_scoped(
            InventoryItem,
            business_id,
            InventoryItem.active.is_(True),
            InventoryItem.current_stock <= InventoryItem.reorder_level,
            order_by=InventoryItem.name.asc(),
        )

    def list_purchase_order_items(self, purchase_order_id: UUID) -> list[PurchaseOrderItem]:
        return list(
            self.db.scalars(
                select(PurchaseOrderItem)
                .where(PurchaseOrderItem.purchase_order_id == purchase_order_id)
                .order_by(PurchaseOrderItem.item_name.asc())
            ).all()
        )

    def next_purchase_order_sequence(self, business_id: UUID) -> int:
        return self.count_scoped(PurchaseOrder, business_id) + 1

    def list_sale_items(self, sale_id: UUID) -> list[PosSaleItem]:
        return list(self.db.scalars(select(PosSaleItem).where(PosSaleItem.sale_id == sale_id)).all())

    def next_receipt_sequence(self, business_id: UUID) -> int:
        return self.count_scoped(PosSale, business_id) + 1

    # ---------- Finance ----------
    def list_wallet_transactions(self, business_id: UUID, wallet_id: UUID) -> list[WalletTransaction]:
        return self.list_scoped(
            WalletTransaction,
            business_id,
            WalletTransaction.wallet_id == wallet_id,
            order_by=(WalletTransaction.created_at.desc(), WalletTransaction.id.asc()),
        )

    # ---------- Audit ----------
    def list_audit_events(self, business_id: UUID, *, entity_name: str | None, limit: int) -> list[AuditEvent]:
        query = select(AuditEvent).where(AuditEvent.business_id == business_id)
        if entity_name:
            query = query.where(AuditEvent.entity_name == entity_name)
        query = query.order_by(AuditEvent.created_at.desc()).limit(limit)
        return list(self.db.scalars(query).all())
