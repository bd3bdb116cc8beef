"""ORM model package."""

from app.models.entities import (
    AuditEvent,
    Business,
    Customer,
    Department,
    Expense,
    ExpenseCategory,
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
    Service,
    ServicePackage,
    User,
    UserFeatureToggle,
    Wallet,
    WalletTransaction,
)

__all__ = [
    "AuditEvent",
    "Business",
    "Customer",
    "Department",
    "Expense",
    "ExpenseCategory",
    "InventoryItem",
    "Job",
    "PackageService",
    "Permission",
    "PosSale",
    "PosSaleItem",
    "PurchaseOrder",
    "PurchaseOrderItem",
    "Role",
    "RolePermission",
    "Service",
    "ServicePackage",
    "User",
    "UserFeatureToggle",
    "Wallet",
    "WalletTransaction",
]
