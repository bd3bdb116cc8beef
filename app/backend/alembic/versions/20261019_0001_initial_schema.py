"""initial schema

Revision ID: 20261019_0001
Revises:
Create Date: 2026-10-19
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "20261019_0001"
down_revision = None
branch_labels = None
depends_on = None


user_role = postgresql.ENUM("owner", "manager", "supervisor", "staff", name="user_role", create_type=False)
job_status = postgresql.ENUM(
    "pending", "in_progress", "completed", "cancelled", name="job_status", create_type=False
)
job_priority = postgresql.ENUM("low", "medium", "high", "urgent", name="job_priority", create_type=False)
purchase_order_status = postgresql.ENUM(
    "draft", "sent", "confirmed", "received", "cancelled", name="purchase_order_status", create_type=False
)
payment_status = postgresql.ENUM("unpaid", "partial", "paid", name="payment_status", create_type=False)
wallet_type = postgresql.ENUM(
    "cash", "bank", "mobile_money", "card", "other", name="wallet_type", create_type=False
)
wallet_transaction_type = postgresql.ENUM("income", "expense", name="wallet_transaction_type", create_type=False)
expense_status = postgresql.ENUM(
    "pending", "approved", "rejected", "paid", name="expense_status", create_type=False
)

ENUMS = (
    user_role,
    job_status,
    job_priority,
    purchase_order_status,
    payment_status,
    wallet_type,
    wallet_transaction_type,
    expense_status,
)


def _uuid_pk() -> sa.Column:
    return sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False)


def _business_fk() -> sa.Column:
    return sa.Column("business_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("businesses.id"), nullable=False)


def _user_fk(name: str, nullable: bool = False) -> sa.Column:
    return sa.Column(name, postgresql.UUID(as_uuid=True), sa.ForeignKey("users.id"), nullable=nullable)


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    ]


def upgrade() -> None:
    for enum_type in ENUMS:
        enum_type.create(op.get_bind(), checkfirst=True)

    op.create_table(
        "businesses",
        _uuid_pk(),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("currency", sa.String(length=3), nullable=False),
        sa.Column("timezone", sa.String(length=64), nullable=False),
        sa.Column("active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        *_timestamps(),
    )

    op.create_table(
        "departments",
        _uuid_pk(),
        _business_fk(),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("code", sa.String(length=32), nullable=False),
        sa.Column("description", sa.String(length=2000), nullable=True),
        sa.Column(
            "parent_department_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("departments.id"),
            nullable=True,
        ),
        sa.Column("department_type", sa.String(length=64), nullable=False),
        sa.Column("sort_order", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        *_timestamps(),
        sa.UniqueConstraint("business_id", "code", name="uq_departments_business_code"),
    )
    op.create_index("ix_departments_business_id", "departments", ["business_id"])
    op.create_index("ix_departments_parent_id", "departments", ["parent_department_id"])

    op.create_table(
        "users",
        _uuid_pk(),
        _business_fk(),
        sa.Column("email", sa.String(length=320), nullable=False, unique=True),
        sa.Column("full_name", sa.String(length=255), nullable=False),
        sa.Column("password_hash", sa.String(length=255), nullable=False),
        sa.Column("role", user_role, nullable=False),
        sa.Column("department_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("departments.id"), nullable=True),
        sa.Column("active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("last_login_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_users_business_id", "users", ["business_id"])

    op.create_table(
        "permissions",
        _uuid_pk(),
        sa.Column("name", sa.String(length=128), nullable=False, unique=True),
        sa.Column("resource", sa.String(length=64), nullable=False),
        sa.Column("action", sa.String(length=64), nullable=False),
        sa.Column("description", sa.String(length=500), nullable=True),
    )

    op.create_table(
        "roles",
        _uuid_pk(),
        _business_fk(),
        sa.Column("name", user_role, nullable=False),
        sa.Column("is_system_role", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint("business_id", "name", name="uq_roles_business_name"),
    )

    op.create_table(
        "role_permissions",
        _uuid_pk(),
        sa.Column("role_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("roles.id"), nullable=False),
        sa.Column("permission_name", sa.String(length=128), nullable=False),
        sa.UniqueConstraint("role_id", "permission_name", name="uq_role_permissions_role_permission"),
    )

    op.create_table(
        "user_feature_toggles",
        _uuid_pk(),
        _business_fk(),
        _user_fk("user_id"),
        sa.Column("permission_name", sa.String(length=128), nullable=False),
        sa.Column("is_allowed", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("conditions", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        _user_fk("granted_by"),
        sa.Column("granted_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_user_feature_toggles_user_id", "user_feature_toggles", ["user_id"])
    op.create_index("ix_user_feature_toggles_business_id", "user_feature_toggles", ["business_id"])

    op.create_table(
        "customers",
        _uuid_pk(),
        _business_fk(),
        sa.Column("first_name", sa.String(length=128), nullable=False),
        sa.Column("last_name", sa.String(length=128), nullable=False),
        sa.Column("email", sa.String(length=320), nullable=True),
        sa.Column("phone", sa.String(length=64), nullable=True),
        sa.Column("notes", sa.String(length=2000), nullable=True),
        sa.Column("active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        _user_fk("created_by"),
        *_timestamps(),
    )
    op.create_index("ix_customers_business_id", "customers", ["business_id"])

    op.create_table(
        "services",
        _uuid_pk(),
        _business_fk(),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.String(length=2000), nullable=True),
        sa.Column("base_price", sa.Numeric(14, 2), nullable=False),
        sa.Column("duration_minutes", sa.Integer(), nullable=False, server_default=sa.text("60")),
        sa.Column("category", sa.String(length=128), nullable=False),
        sa.Column("active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        *_timestamps(),
        sa.CheckConstraint("base_price >= 0", name="ck_services_base_price_non_negative"),
    )
    op.create_index("ix_services_business_id", "services", ["business_id"])

    op.create_table(
        "service_packages",
        _uuid_pk(),
        _business_fk(),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.String(length=2000), nullable=True),
        sa.Column("base_price", sa.Numeric(14, 2), nullable=False),
        sa.Column("category", sa.String(length=128), nullable=False),
        sa.Column("is_customizable", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("min_services", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.Column("max_services", sa.Integer(), nullable=True),
        sa.Column("active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        _user_fk("created_by"),
        *_timestamps(),
        sa.CheckConstraint("base_price >= 0", name="ck_service_packages_base_price_non_negative"),
    )
    op.create_index("ix_service_packages_business_id", "service_packages", ["business_id"])

    op.create_table(
        "package_services",
        _uuid_pk(),
        sa.Column(
            "package_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("service_packages.id"),
            nullable=False,
        ),
        sa.Column("service_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("services.id"), nullable=False),
        sa.Column("is_required", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("default_quantity", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.UniqueConstraint("package_id", "service_id", name="uq_package_services_package_service"),
    )

    op.create_table(
        "jobs",
        _uuid_pk(),
        _business_fk(),
        sa.Column("job_number", sa.String(length=32), nullable=False),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("description", sa.String(length=2000), nullable=True),
        sa.Column("customer_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("customers.id"), nullable=True),
        sa.Column("service_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("services.id"), nullable=True),
        _user_fk("assigned_to", nullable=True),
        sa.Column("scheduled_date", sa.Date(), nullable=True),
        sa.Column("priority", job_priority, nullable=False),
        sa.Column("status", job_status, nullable=False),
        sa.Column("estimated_cost", sa.Numeric(14, 2), nullable=True),
        _user_fk("created_by"),
        *_timestamps(),
        sa.UniqueConstraint("business_id", "job_number", name="uq_jobs_business_job_number"),
    )
    op.create_index("ix_jobs_business_status", "jobs", ["business_id", "status"])

    op.create_table(
        "inventory_items",
        _uuid_pk(),
        _business_fk(),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("sku", sa.String(length=64), nullable=False),
        sa.Column("category", sa.String(length=128), nullable=False),
        sa.Column("unit_of_measure", sa.String(length=32), nullable=False),
        sa.Column("cost_price", sa.Numeric(14, 2), nullable=False),
        sa.Column("selling_price", sa.Numeric(14, 2), nullable=False),
        sa.Column("current_stock", sa.Numeric(12, 2), nullable=False),
        sa.Column("reorder_level", sa.Numeric(12, 2), nullable=False),
        sa.Column("active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        *_timestamps(),
        sa.CheckConstraint("current_stock >= 0", name="ck_inventory_items_stock_non_negative"),
        sa.UniqueConstraint("business_id", "sku", name="uq_inventory_items_business_sku"),
    )
    op.create_index("ix_inventory_items_business_id", "inventory_items", ["business_id"])

    op.create_table(
        "money_wallets",
        _uuid_pk(),
        _business_fk(),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("wallet_type", wallet_type, nullable=False),
        sa.Column("current_balance", sa.Numeric(14, 2), nullable=False),
        sa.Column("description", sa.String(length=2000), nullable=True),
        sa.Column("active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        *_timestamps(),
        sa.UniqueConstraint("business_id", "name", name="uq_money_wallets_business_name"),
    )

    op.create_table(
        "wallet_transactions",
        _uuid_pk(),
        _business_fk(),
        sa.Column("wallet_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("money_wallets.id"), nullable=False),
        sa.Column("transaction_type", wallet_transaction_type, nullable=False),
        sa.Column("amount", sa.Numeric(14, 2), nullable=False),
        sa.Column("balance_after", sa.Numeric(14, 2), nullable=False),
        sa.Column("description", sa.String(length=500), nullable=False),
        sa.Column("reference_type", sa.String(length=64), nullable=True),
        sa.Column("reference_id", sa.String(length=64), nullable=True),
        _user_fk("created_by"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("amount > 0", name="ck_wallet_transactions_amount_positive"),
    )
    op.create_index("ix_wallet_transactions_wallet_created", "wallet_transactions", ["wallet_id", "created_at"])

    op.create_table(
        "expense_categories",
        _uuid_pk(),
        _business_fk(),
        sa.Column("name", sa.String(length=128), nullable=False),
        sa.Column("description", sa.String(length=500), nullable=True),
        sa.Column("active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.UniqueConstraint("business_id", "name", name="uq_expense_categories_business_name"),
    )

    op.create_table(
        "expenses",
        _uuid_pk(),
        _business_fk(),
        sa.Column(
            "category_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("expense_categories.id"),
            nullable=False,
        ),
        sa.Column("wallet_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("money_wallets.id"), nullable=True),
        sa.Column("amount", sa.Numeric(14, 2), nullable=False),
        sa.Column("description", sa.String(length=500), nullable=False),
        sa.Column("expense_date", sa.Date(), nullable=False),
        sa.Column("receipt_url", sa.String(length=1000), nullable=True),
        sa.Column("status", expense_status, nullable=False),
        _user_fk("created_by"),
        _user_fk("approved_by", nullable=True),
        sa.Column("approved_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.CheckConstraint("amount > 0", name="ck_expenses_amount_positive"),
    )
    op.create_index("ix_expenses_business_status", "expenses", ["business_id", "status"])

    op.create_table(
        "purchase_orders",
        _uuid_pk(),
        _business_fk(),
        sa.Column("po_number", sa.String(length=32), nullable=False),
        sa.Column("supplier_name", sa.String(length=255), nullable=False),
        sa.Column("order_date", sa.Date(), nullable=False),
        sa.Column("expected_delivery_date", sa.Date(), nullable=True),
        sa.Column("status", purchase_order_status, nullable=False),
        sa.Column("total_amount", sa.Numeric(14, 2), nullable=False),
        sa.Column("paid_amount", sa.Numeric(14, 2), nullable=False),
        sa.Column("payment_status", payment_status, nullable=False),
        sa.Column("notes", sa.String(length=2000), nullable=True),
        _user_fk("created_by"),
        _user_fk("approved_by", nullable=True),
        sa.Column("approved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("received_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.CheckConstraint("total_amount >= 0", name="ck_purchase_orders_total_non_negative"),
        sa.CheckConstraint("paid_amount >= 0", name="ck_purchase_orders_paid_non_negative"),
        sa.UniqueConstraint("business_id", "po_number", name="uq_purchase_orders_business_po_number"),
    )
    op.create_index("ix_purchase_orders_business_status", "purchase_orders", ["business_id", "status"])

    op.create_table(
        "purchase_order_items",
        _uuid_pk(),
        sa.Column(
            "purchase_order_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("purchase_orders.id"),
            nullable=False,
        ),
        sa.Column(
            "inventory_item_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("inventory_items.id"),
            nullable=True,
        ),
        sa.Column("item_name", sa.String(length=255), nullable=False),
        sa.Column("quantity", sa.Numeric(12, 2), nullable=False),
        sa.Column("unit_cost", sa.Numeric(14, 2), nullable=False),
        sa.Column("total_cost", sa.Numeric(14, 2), nullable=False),
        sa.CheckConstraint("quantity > 0", name="ck_purchase_order_items_quantity_positive"),
        sa.CheckConstraint("unit_cost >= 0", name="ck_purchase_order_items_unit_cost_non_negative"),
    )
    op.create_index("ix_purchase_order_items_order_id", "purchase_order_items", ["purchase_order_id"])

    op.create_table(
        "pos_sales",
        _uuid_pk(),
        _business_fk(),
        sa.Column("receipt_number", sa.String(length=32), nullable=False),
        sa.Column("customer_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("customers.id"), nullable=True),
        sa.Column("wallet_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("money_wallets.id"), nullable=True),
        sa.Column("payment_method", sa.String(length=32), nullable=False),
        sa.Column("total_amount", sa.Numeric(14, 2), nullable=False),
        _user_fk("created_by"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint("business_id", "receipt_number", name="uq_pos_sales_business_receipt"),
    )
    op.create_index("ix_pos_sales_business_created", "pos_sales", ["business_id", "created_at"])

    op.create_table(
        "pos_sale_items",
        _uuid_pk(),
        sa.Column("sale_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("pos_sales.id"), nullable=False),
        sa.Column(
            "inventory_item_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("inventory_items.id"),
            nullable=False,
        ),
        sa.Column("item_name", sa.String(length=255), nullable=False),
        sa.Column("quantity", sa.Numeric(12, 2), nullable=False),
        sa.Column("unit_price", sa.Numeric(14, 2), nullable=False),
        sa.Column("line_total", sa.Numeric(14, 2), nullable=False),
        sa.CheckConstraint("quantity > 0", name="ck_pos_sale_items_quantity_positive"),
    )
    op.create_index("ix_pos_sale_items_sale_id", "pos_sale_items", ["sale_id"])

    op.create_table(
        "audit_events",
        _uuid_pk(),
        _user_fk("actor_user_id"),
        _business_fk(),
        sa.Column("entity_name", sa.String(length=128), nullable=False),
        sa.Column("entity_id", sa.String(length=128), nullable=False),
        sa.Column("action_type", sa.String(length=64), nullable=False),
        sa.Column("before_payload", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("after_payload", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_audit_events_business_id", "audit_events", ["business_id"])
    op.create_index("ix_audit_events_created_at", "audit_events", ["created_at"])


def downgrade() -> None:
    op.drop_index("ix_audit_events_created_at", table_name="audit_events")
    op.drop_index("ix_audit_events_business_id", table_name="audit_events")
    op.drop_table("audit_events")

    op.drop_index("ix_pos_sale_items_sale_id", table_name="pos_sale_items")
    op.drop_table("pos_sale_items")
    op.drop_index("ix_pos_sales_business_created", table_name="pos_sales")
    op.drop_table("pos_sales")

    op.drop_index("ix_purchase_order_items_order_id", table_name="purchase_order_items")
    op.drop_table("purchase_order_items")
    op.drop_index("ix_purchase_orders_business_status", table_name="purchase_orders")
    op.drop_table("purchase_orders")

    op.drop_index("ix_expenses_business_status", table_name="expenses")
    op.drop_table("expenses")
    op.drop_table("expense_categories")

    op.drop_index("ix_wallet_transactions_wallet_created", table_name="wallet_transactions")
    op.drop_table("wallet_transactions")
    op.drop_table("money_wallets")

    op.drop_index("ix_inventory_items_business_id", table_name="inventory_items")
    op.drop_table("inventory_items")

    op.drop_index("ix_jobs_business_status", table_name="jobs")
    op.drop_table("jobs")
    op.drop_table("package_services")
    op.drop_index("ix_service_packages_business_id", table_name="service_packages")
    op.drop_table("service_packages")
    op.drop_index("ix_services_business_id", table_name="services")
    op.drop_table("services")
    op.drop_index("ix_customers_business_id", table_name="customers")
    op.drop_table("customers")

    op.drop_index("ix_user_feature_toggles_business_id", table_name="user_feature_toggles")
    op.drop_index("ix_user_feature_toggles_user_id", table_name="user_feature_toggles")
    op.drop_table("user_feature_toggles")
    op.drop_table("role_permissions")
    op.drop_table("roles")
    op.drop_table("permissions")

    op.drop_index("ix_users_business_id", table_name="users")
    op.drop_table("users")
    op.drop_index("ix_departments_parent_id", table_name="departments")
    op.drop_index("ix_departments_business_id", table_name="departments")
    op.drop_table("departments")
    op.drop_table("businesses")

    for enum_type in reversed(ENUMS):
        enum_type.drop(op.get_bind(), checkfirst=True)
