"""row level security policies for tenant tables

Revision ID: 20261019_0002
Revises: 20261019_0001
Create Date: 2026-10-19
"""

from __future__ import annotations

from alembic import op


# revision identifiers, used by Alembic.
revision = "20261019_0002"
down_revision = "20261019_0001"
branch_labels = None
depends_on = None


CURRENT_BUSINESS = "NULLIF(current_setting('app.current_business_id', true), '')::uuid"

# businesses and users stay unrestricted: login resolves an email before any
# tenant is known.
TENANT_TABLES = (
    "departments",
    "roles",
    "user_feature_toggles",
    "customers",
    "services",
    "service_packages",
    "jobs",
    "inventory_items",
    "money_wallets",
    "wallet_transactions",
    "expense_categories",
    "expenses",
    "purchase_orders",
    "pos_sales",
    "audit_events",
)

# Child rows inherit the tenant of their parent row.
CHILD_TABLES = {
    "role_permissions": ("role_id", "roles"),
    "package_services": ("package_id", "service_packages"),
    "purchase_order_items": ("purchase_order_id", "purchase_orders"),
    "pos_sale_items": ("sale_id", "pos_sales"),
}


def _enable(table: str, predicate: str) -> None:
    op.execute(f"ALTER TABLE {table} ENABLE ROW LEVEL SECURITY")
    op.execute(f"ALTER TABLE {table} FORCE ROW LEVEL SECURITY")
    op.execute(
        f"""
        CREATE POLICY {table}_tenant_isolation ON {table}
        USING ({predicate})
        WITH CHECK ({predicate})
        """
    )


def _disable(table: str) -> None:
    op.execute(f"DROP POLICY IF EXISTS {table}_tenant_isolation ON {table}")
    op.execute(f"ALTER TABLE {table} NO FORCE ROW LEVEL SECURITY")
    op.execute(f"ALTER TABLE {table} DISABLE ROW LEVEL SECURITY")


def upgrade() -> None:
    for table in TENANT_TABLES:
        _enable(table, f"business_id = {CURRENT_BUSINESS}")

    for table, (column, parent) in CHILD_TABLES.items():
        _enable(
            table,
            f"EXISTS (SELECT 1 FROM {parent} p WHERE p.id = {table}.{column} "
            f"AND p.business_id = {CURRENT_BUSINESS})",
        )


def downgrade() -> None:
    for table in CHILD_TABLES:
        _disable(table)
    for table in reversed(TENANT_TABLES):
        _disable(table)
