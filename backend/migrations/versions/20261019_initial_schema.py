"""Initial schema: tenants, customers, counters, documents, ledger, reconciliation locks

Revision ID: 20261019_initial
Revises:
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "20261019_initial"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        "tenants",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("code", sa.String(32), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("1")),
        sa.Column("use_shift_production", sa.Boolean(), nullable=False, server_default=sa.text("0")),
        sa.Column("production_shifts", sa.JSON(), nullable=False),
        sa.Column("offer_delivery", sa.Boolean(), nullable=False, server_default=sa.text("0")),
        sa.Column("service_charge_bps", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("timezone", sa.String(64), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("tenants", schema=None) as batch_op:
        batch_op.create_index("ix_tenants_code", ["code"], unique=True)
        batch_op.create_index("ix_tenants_is_active", ["is_active"], unique=False)

    op.create_table(
        "customers",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("tenant_id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("phone", sa.String(64), nullable=True),
        sa.Column("is_credit_customer", sa.Boolean(), nullable=False, server_default=sa.text("0")),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.ForeignKeyConstraint(["tenant_id"], ["tenants.id"]),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("customers", schema=None) as batch_op:
        batch_op.create_index("ix_customers_tenant_id", ["tenant_id"], unique=False)
        batch_op.create_index("ix_customers_tenant_name", ["tenant_id", "name"], unique=False)

    op.create_table(
        "daily_counters",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("tenant_id", sa.Integer(), nullable=False),
        sa.Column("counter_name", sa.String(32), nullable=False),
        sa.Column("date_key", sa.String(8), nullable=False),
        sa.Column("value", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.ForeignKeyConstraint(["tenant_id"], ["tenants.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("tenant_id", "counter_name", "date_key", name="uq_daily_counters_tenant_name_date"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("daily_counters", schema=None) as batch_op:
        batch_op.create_index("ix_daily_counters_tenant_id", ["tenant_id"], unique=False)

    op.create_table(
        "invoices",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("tenant_id", sa.Integer(), nullable=False),
        sa.Column("invoice_number", sa.String(64), nullable=False),
        sa.Column("kind", sa.String(16), nullable=False),
        sa.Column("status", sa.String(16), nullable=False),
        sa.Column("customer_id", sa.Integer(), nullable=True),
        sa.Column("customer_name", sa.String(255), nullable=False),
        sa.Column("customer_phone", sa.String(64), nullable=True),
        sa.Column("items", sa.JSON(), nullable=False),
        sa.Column("subtotal_cents", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("delivery_charge_cents", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("service_charge_cents", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("total_cents", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("received_cents", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("tendered_cents", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("change_cents", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("payment_method", sa.String(16), nullable=True),
        sa.Column("issued_by", sa.String(120), nullable=False),
        sa.Column("shift", sa.String(64), nullable=True),
        sa.Column("order_type", sa.String(32), nullable=True),
        sa.Column("daily_order_number", sa.Integer(), nullable=True),
        sa.Column("remarks", sa.Text(), nullable=True),
        sa.Column("business_date", sa.Date(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.Column("related_order_id", sa.Integer(), nullable=True),
        sa.Column("related_job_id", sa.Integer(), nullable=True),
        sa.ForeignKeyConstraint(["tenant_id"], ["tenants.id"]),
        sa.ForeignKeyConstraint(["customer_id"], ["customers.id"]),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("invoices", schema=None) as batch_op:
        batch_op.create_index("ix_invoices_tenant_id", ["tenant_id"], unique=False)
        batch_op.create_index("ix_invoices_tenant_number", ["tenant_id", "invoice_number"], unique=False)
        batch_op.create_index("ix_invoices_tenant_date", ["tenant_id", "business_date"], unique=False)
        batch_op.create_index("ix_invoices_related_order_id", ["related_order_id"], unique=False)
        batch_op.create_index("ix_invoices_related_job_id", ["related_job_id"], unique=False)

    op.create_table(
        "orders",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("tenant_id", sa.Integer(), nullable=False),
        sa.Column("order_number", sa.String(64), nullable=False),
        sa.Column("customer_name", sa.String(255), nullable=False),
        sa.Column("customer_phone", sa.String(64), nullable=True),
        sa.Column("items", sa.JSON(), nullable=False),
        sa.Column("total_amount_cents", sa.Integer(), nullable=False),
        sa.Column("delivery_charge_cents", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("advance_amount_cents", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("status", sa.String(16), nullable=False),
        sa.Column("delivery_date", sa.Date(), nullable=True),
        sa.Column("remarks", sa.Text(), nullable=True),
        sa.Column("linked_invoice_id", sa.Integer(), nullable=True),
        sa.Column("balance_invoice_id", sa.Integer(), nullable=True),
        sa.Column("created_by", sa.String(120), nullable=False),
        sa.Column("business_date", sa.Date(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["tenant_id"], ["tenants.id"]),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("orders", schema=None) as batch_op:
        batch_op.create_index("ix_orders_tenant_id", ["tenant_id"], unique=False)
        batch_op.create_index("ix_orders_order_number", ["order_number"], unique=False)
        batch_op.create_index("ix_orders_tenant_status", ["tenant_id", "status"], unique=False)

    op.create_table(
        "service_jobs",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("tenant_id", sa.Integer(), nullable=False),
        sa.Column("job_number", sa.String(64), nullable=False),
        sa.Column("customer_name", sa.String(255), nullable=False),
        sa.Column("customer_phone", sa.String(64), nullable=True),
        sa.Column("job_type", sa.String(120), nullable=False),
        sa.Column("general_info", sa.Text(), nullable=True),
        sa.Column("job_complete_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("status", sa.String(16), nullable=False),
        sa.Column("billed_items", sa.JSON(), nullable=False),
        sa.Column("total_charge_cents", sa.Integer(), nullable=False),
        sa.Column("advance_amount_cents", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("linked_invoice_id", sa.Integer(), nullable=True),
        sa.Column("balance_invoice_id", sa.Integer(), nullable=True),
        sa.Column("created_by", sa.String(120), nullable=False),
        sa.Column("business_date", sa.Date(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["tenant_id"], ["tenants.id"]),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("service_jobs", schema=None) as batch_op:
        batch_op.create_index("ix_service_jobs_tenant_id", ["tenant_id"], unique=False)
        batch_op.create_index("ix_service_jobs_job_number", ["job_number"], unique=False)
        batch_op.create_index("ix_service_jobs_tenant_status", ["tenant_id", "status"], unique=False)

    op.create_table(
        "sales_returns",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("tenant_id", sa.Integer(), nullable=False),
        sa.Column("return_number", sa.String(64), nullable=False),
        sa.Column("original_invoice_id", sa.Integer(), nullable=True),
        sa.Column("original_invoice_number", sa.String(64), nullable=False),
        sa.Column("customer_name", sa.String(255), nullable=False),
        sa.Column("items", sa.JSON(), nullable=False),
        sa.Column("refund_cents", sa.Integer(), nullable=False),
        sa.Column("refund_method", sa.String(16), nullable=False),
        sa.Column("processed_by", sa.String(120), nullable=False),
        sa.Column("business_date", sa.Date(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.ForeignKeyConstraint(["tenant_id"], ["tenants.id"]),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("sales_returns", schema=None) as batch_op:
        batch_op.create_index("ix_sales_returns_tenant_id", ["tenant_id"], unique=False)
        batch_op.create_index("ix_sales_returns_return_number", ["return_number"], unique=False)
        batch_op.create_index("ix_sales_returns_original_invoice_id", ["original_invoice_id"], unique=False)

    op.create_table(
        "wallet_accounts",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("tenant_id", sa.Integer(), nullable=False),
        sa.Column("method", sa.String(16), nullable=False),
        sa.Column("balance_cents", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("last_updated", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.Column("version_id", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.ForeignKeyConstraint(["tenant_id"], ["tenants.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("tenant_id", "method", name="uq_wallet_accounts_tenant_method"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("wallet_accounts", schema=None) as batch_op:
        batch_op.create_index("ix_wallet_accounts_tenant_id", ["tenant_id"], unique=False)

    op.create_table(
        "daily_stats",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("tenant_id", sa.Integer(), nullable=False),
        sa.Column("stats_date", sa.Date(), nullable=False),
        sa.Column("total_sales_cents", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("total_sales_cash_cents", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("total_sales_card_cents", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("total_sales_online_cents", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("invoice_count", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("last_updated", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.Column("version_id", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.ForeignKeyConstraint(["tenant_id"], ["tenants.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("tenant_id", "stats_date", name="uq_daily_stats_tenant_date"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("daily_stats", schema=None) as batch_op:
        batch_op.create_index("ix_daily_stats_tenant_id", ["tenant_id"], unique=False)

    op.create_table(
        "reconciliation_locks",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("tenant_id", sa.Integer(), nullable=False),
        sa.Column("lock_date", sa.Date(), nullable=False),
        sa.Column("locked_ids", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.ForeignKeyConstraint(["tenant_id"], ["tenants.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("tenant_id", "lock_date", name="uq_reconciliation_locks_tenant_date"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("reconciliation_locks", schema=None) as batch_op:
        batch_op.create_index("ix_reconciliation_locks_tenant_id", ["tenant_id"], unique=False)


def downgrade():
    for table in (
        "reconciliation_locks",
        "daily_stats",
        "wallet_accounts",
        "sales_returns",
        "service_jobs",
        "orders",
        "invoices",
        "daily_counters",
        "customers",
        "tenants",
    ):
        op.drop_table(table)
