"""Commerce core schema: stores, catalog, sales, returns, accounting, purchasing

Revision ID: 20261019_commerce_core
Revises:
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "20261019_commerce_core"
down_revision = None
branch_labels = None
depends_on = None


def _timestamp(name: str = "created_at"):
    return sa.Column(name, sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False)


def _version():
    return sa.Column("version_id", sa.Integer(), nullable=False, server_default=sa.text("1"))


def _tenant():
    return sa.Column("tenant_id", sa.Integer(), sa.ForeignKey("stores.id"), nullable=False, index=True)


def upgrade():
    op.create_table(
        "stores",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(120), nullable=False),
        sa.Column("code", sa.String(32), nullable=True, unique=True, index=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("1"), index=True),
        _timestamp(),
        sqlite_autoincrement=True,
    )

    op.create_table(
        "categories",
        sa.Column("id", sa.Integer(), primary_key=True),
        _tenant(),
        sa.Column("name", sa.String(120), nullable=False),
        sa.Column("description", sa.String(255), nullable=True),
        sa.Column("parent_id", sa.Integer(), sa.ForeignKey("categories.id"), nullable=True, index=True),
        _timestamp(),
        sa.UniqueConstraint("tenant_id", "name", name="uq_categories_tenant_name"),
        sqlite_autoincrement=True,
    )

    op.create_table(
        "suppliers",
        sa.Column("id", sa.Integer(), primary_key=True),
        _tenant(),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("contact_name", sa.String(120), nullable=True),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("phone", sa.String(32), nullable=True),
        sa.Column("address", sa.Text(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("1")),
        _timestamp(),
        sa.UniqueConstraint("tenant_id", "name", name="uq_suppliers_tenant_name"),
        sqlite_autoincrement=True,
    )

    op.create_table(
        "products",
        sa.Column("id", sa.Integer(), primary_key=True),
        _tenant(),
        sa.Column("sku", sa.String(64), nullable=False),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("price", sa.Numeric(12, 2), nullable=False, server_default=sa.text("0")),
        sa.Column("cost_price", sa.Numeric(12, 2), nullable=True),
        sa.Column("stock", sa.Numeric(12, 3), nullable=False, server_default=sa.text("0")),
        sa.Column("reorder_point", sa.Numeric(12, 3), nullable=True),
        sa.Column("unit", sa.String(16), nullable=False, server_default="each"),
        sa.Column("category_id", sa.Integer(), sa.ForeignKey("categories.id"), nullable=True, index=True),
        sa.Column("supplier_id", sa.Integer(), sa.ForeignKey("suppliers.id"), nullable=True, index=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("1")),
        _timestamp(),
        _timestamp("updated_at"),
        _version(),
        sa.UniqueConstraint("tenant_id", "sku", name="uq_products_tenant_sku"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_products_tenant_active", "products", ["tenant_id", "is_active"])

    op.create_table(
        "stock_movements",
        sa.Column("id", sa.Integer(), primary_key=True),
        _tenant(),
        sa.Column("product_id", sa.Integer(), sa.ForeignKey("products.id"), nullable=False, index=True),
        sa.Column("movement_type", sa.String(16), nullable=False),
        sa.Column("quantity_delta", sa.Numeric(12, 3), nullable=False),
        sa.Column("stock_after", sa.Numeric(12, 3), nullable=False),
        sa.Column("reference", sa.String(128), nullable=True),
        _timestamp("occurred_at"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_stock_movements_tenant_product", "stock_movements", ["tenant_id", "product_id"])

    op.create_table(
        "customers",
        sa.Column("id", sa.Integer(), primary_key=True),
        _tenant(),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("phone", sa.String(32), nullable=True),
        sa.Column("address", sa.Text(), nullable=True),
        sa.Column("store_credit", sa.Numeric(12, 2), nullable=False, server_default=sa.text("0")),
        sa.Column("account_balance", sa.Numeric(12, 2), nullable=False, server_default=sa.text("0")),
        _timestamp(),
        _timestamp("updated_at"),
        _version(),
        sa.UniqueConstraint("tenant_id", "email", name="uq_customers_tenant_email"),
        sqlite_autoincrement=True,
    )

    op.create_table(
        "sales",
        sa.Column("id", sa.Integer(), primary_key=True),
        _tenant(),
        sa.Column("transaction_id", sa.String(64), nullable=False, unique=True),
        sa.Column("customer_id", sa.Integer(), sa.ForeignKey("customers.id"), nullable=True, index=True),
        sa.Column("subtotal", sa.Numeric(12, 2), nullable=False, server_default=sa.text("0")),
        sa.Column("discount", sa.Numeric(12, 2), nullable=False, server_default=sa.text("0")),
        sa.Column("tax", sa.Numeric(12, 2), nullable=False, server_default=sa.text("0")),
        sa.Column("total", sa.Numeric(12, 2), nullable=False, server_default=sa.text("0")),
        sa.Column("store_credit_used", sa.Numeric(12, 2), nullable=False, server_default=sa.text("0")),
        sa.Column("amount_paid", sa.Numeric(12, 2), nullable=False, server_default=sa.text("0")),
        sa.Column("refunded_amount", sa.Numeric(12, 2), nullable=False, server_default=sa.text("0")),
        sa.Column("payment_status", sa.String(16), nullable=False, server_default="UNPAID"),
        sa.Column("refund_status", sa.String(24), nullable=False, server_default="NONE"),
        sa.Column("created_by_user_id", sa.Integer(), nullable=True),
        _timestamp(),
        _version(),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_sales_tenant_created", "sales", ["tenant_id", "created_at"])
    op.create_index("ix_sales_tenant_payment_status", "sales", ["tenant_id", "payment_status"])

    op.create_table(
        "sale_items",
        sa.Column("id", sa.Integer(), primary_key=True),
        _tenant(),
        sa.Column("sale_id", sa.Integer(), sa.ForeignKey("sales.id"), nullable=False, index=True),
        sa.Column("product_id", sa.Integer(), sa.ForeignKey("products.id"), nullable=False),
        sa.Column("quantity", sa.Numeric(12, 3), nullable=False),
        sa.Column("price_at_sale", sa.Numeric(12, 2), nullable=False),
        sa.Column("cost_at_sale", sa.Numeric(12, 2), nullable=True),
        sqlite_autoincrement=True,
    )

    op.create_table(
        "payments",
        sa.Column("id", sa.Integer(), primary_key=True),
        _tenant(),
        sa.Column("payment_id", sa.String(36), nullable=False, unique=True),
        sa.Column("sale_id", sa.Integer(), sa.ForeignKey("sales.id"), nullable=False, index=True),
        sa.Column("amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("method", sa.String(32), nullable=False),
        sa.Column("reference", sa.String(128), nullable=True),
        _timestamp("payment_date"),
        sa.Column("created_by_user_id", sa.Integer(), nullable=True),
        sqlite_autoincrement=True,
    )

    op.create_table(
        "returns",
        sa.Column("id", sa.Integer(), primary_key=True),
        _tenant(),
        sa.Column("return_id", sa.String(36), nullable=False, unique=True),
        sa.Column("original_sale_id", sa.Integer(), sa.ForeignKey("sales.id"), nullable=False, index=True),
        sa.Column("refund_amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("refund_method", sa.String(32), nullable=False),
        sa.Column("reason", sa.String(255), nullable=True),
        sa.Column("created_by_user_id", sa.Integer(), nullable=True),
        _timestamp(),
        sqlite_autoincrement=True,
    )

    op.create_table(
        "return_items",
        sa.Column("id", sa.Integer(), primary_key=True),
        _tenant(),
        sa.Column("return_id", sa.Integer(), sa.ForeignKey("returns.id"), nullable=False, index=True),
        sa.Column("product_id", sa.Integer(), sa.ForeignKey("products.id"), nullable=False),
        sa.Column("product_name", sa.String(200), nullable=False),
        sa.Column("quantity", sa.Numeric(12, 3), nullable=False),
        sa.Column("reason", sa.String(255), nullable=True),
        sa.Column("add_to_stock", sa.Boolean(), nullable=False, server_default=sa.text("1")),
        sqlite_autoincrement=True,
    )

    op.create_table(
        "accounts",
        sa.Column("id", sa.Integer(), primary_key=True),
        _tenant(),
        sa.Column("account_number", sa.String(32), nullable=False),
        sa.Column("name", sa.String(120), nullable=False),
        sa.Column("description", sa.String(255), nullable=True),
        sa.Column("account_type", sa.String(16), nullable=False),
        sa.Column("sub_type", sa.String(32), nullable=True),
        sa.Column("balance", sa.Numeric(14, 2), nullable=False, server_default=sa.text("0")),
        sa.Column("is_debit_normal", sa.Boolean(), nullable=False),
        _timestamp(),
        _version(),
        sa.UniqueConstraint("tenant_id", "account_number", name="uq_accounts_tenant_number"),
        sqlite_autoincrement=True,
    )

    op.create_table(
        "journal_entries",
        sa.Column("id", sa.Integer(), primary_key=True),
        _tenant(),
        sa.Column("entry_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("description", sa.String(255), nullable=False),
        sa.Column("source_type", sa.String(16), nullable=False, server_default="MANUAL"),
        sa.Column("source_id", sa.String(64), nullable=True),
        sa.Column("created_by_user_id", sa.Integer(), nullable=True),
        _timestamp(),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_journal_entries_tenant_date", "journal_entries", ["tenant_id", "entry_date"])

    op.create_table(
        "journal_entry_lines",
        sa.Column("id", sa.Integer(), primary_key=True),
        _tenant(),
        sa.Column("journal_entry_id", sa.Integer(), sa.ForeignKey("journal_entries.id"), nullable=False, index=True),
        sa.Column("line_number", sa.Integer(), nullable=False),
        sa.Column("account_id", sa.Integer(), sa.ForeignKey("accounts.id"), nullable=False, index=True),
        sa.Column("account_name", sa.String(120), nullable=False),
        sa.Column("line_type", sa.String(8), nullable=False),
        sa.Column("amount", sa.Numeric(14, 2), nullable=False),
        sa.CheckConstraint("amount > 0", name="ck_journal_lines_amount_positive"),
        sqlite_autoincrement=True,
    )

    op.create_table(
        "purchase_orders",
        sa.Column("id", sa.Integer(), primary_key=True),
        _tenant(),
        sa.Column("po_number", sa.String(32), nullable=False),
        sa.Column("supplier_id", sa.Integer(), sa.ForeignKey("suppliers.id"), nullable=False, index=True),
        sa.Column("supplier_name", sa.String(200), nullable=False),
        sa.Column("status", sa.String(24), nullable=False, server_default="DRAFT"),
        sa.Column("subtotal", sa.Numeric(12, 2), nullable=False, server_default=sa.text("0")),
        sa.Column("shipping_cost", sa.Numeric(12, 2), nullable=False, server_default=sa.text("0")),
        sa.Column("tax", sa.Numeric(12, 2), nullable=False, server_default=sa.text("0")),
        sa.Column("total", sa.Numeric(12, 2), nullable=False, server_default=sa.text("0")),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("expected_delivery_date", sa.Date(), nullable=True),
        sa.Column("ordered_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("received_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_by_user_id", sa.Integer(), nullable=True),
        _timestamp(),
        _version(),
        sa.UniqueConstraint("tenant_id", "po_number", name="uq_purchase_orders_tenant_number"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_purchase_orders_tenant_status", "purchase_orders", ["tenant_id", "status"])

    op.create_table(
        "purchase_order_items",
        sa.Column("id", sa.Integer(), primary_key=True),
        _tenant(),
        sa.Column("purchase_order_id", sa.Integer(), sa.ForeignKey("purchase_orders.id"), nullable=False, index=True),
        sa.Column("product_id", sa.Integer(), sa.ForeignKey("products.id"), nullable=False),
        sa.Column("product_name", sa.String(200), nullable=False),
        sa.Column("sku", sa.String(64), nullable=False),
        sa.Column("quantity", sa.Numeric(12, 3), nullable=False),
        sa.Column("cost_price", sa.Numeric(12, 2), nullable=False),
        sa.Column("received_quantity", sa.Numeric(12, 3), nullable=False, server_default=sa.text("0")),
        sqlite_autoincrement=True,
    )

    op.create_table(
        "stock_takes",
        sa.Column("id", sa.Integer(), primary_key=True),
        _tenant(),
        sa.Column("status", sa.String(16), nullable=False, server_default="ACTIVE"),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("started_by_user_id", sa.Integer(), nullable=True),
        _timestamp("start_date"),
        sa.Column("end_date", sa.DateTime(timezone=True), nullable=True),
        _version(),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_stock_takes_tenant_status", "stock_takes", ["tenant_id", "status"])

    op.create_table(
        "stock_take_items",
        sa.Column("id", sa.Integer(), primary_key=True),
        _tenant(),
        sa.Column("stock_take_id", sa.Integer(), sa.ForeignKey("stock_takes.id"), nullable=False, index=True),
        sa.Column("product_id", sa.Integer(), sa.ForeignKey("products.id"), nullable=False),
        sa.Column("sku", sa.String(64), nullable=False),
        sa.Column("product_name", sa.String(200), nullable=False),
        sa.Column("expected", sa.Numeric(12, 3), nullable=False),
        sa.Column("counted", sa.Numeric(12, 3), nullable=True),
        sa.UniqueConstraint("stock_take_id", "product_id", name="uq_stock_take_items_take_product"),
        sqlite_autoincrement=True,
    )

    op.create_table(
        "audit_events",
        sa.Column("id", sa.Integer(), primary_key=True),
        _tenant(),
        sa.Column("event_type", sa.String(64), nullable=False, index=True),
        sa.Column("event_category", sa.String(32), nullable=False, index=True),
        sa.Column("entity_type", sa.String(64), nullable=False),
        sa.Column("entity_id", sa.Integer(), nullable=False),
        sa.Column("actor_user_id", sa.Integer(), nullable=True, index=True),
        _timestamp("occurred_at"),
        sa.Column("note", sa.String(255), nullable=True),
        sa.Column("payload", sa.Text(), nullable=True),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_audit_events_tenant_occurred", "audit_events", ["tenant_id", "occurred_at"])


def downgrade():
    for table in (
        "audit_events",
        "stock_take_items",
        "stock_takes",
        "purchase_order_items",
        "purchase_orders",
        "journal_entry_lines",
        "journal_entries",
        "accounts",
        "return_items",
        "returns",
        "payments",
        "sale_items",
        "sales",
        "customers",
        "stock_movements",
        "products",
        "suppliers",
        "categories",
        "stores",
    ):
        op.drop_table(table)
