from __future__ import annotations

from ..extensions import db
from counterbook.time_utils import to_utc_z


class WalletAccount(db.Model):
    """
    Running cash position for one payment method of one tenant.

    WHY: Every sale of every kind credits exactly one wallet, so these rows
    are the main contention point. They are only changed by read-then-write
    inside a transaction; version_id turns a lost update into a StaleDataError
    that the transaction runner retries.
    """
    __tablename__ = "wallet_accounts"
    __table_args__ = (
        db.UniqueConstraint("tenant_id", "method", name="uq_wallet_accounts_tenant_method"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    tenant_id = db.Column(db.Integer, db.ForeignKey("tenants.id"), nullable=False, index=True)
    method = db.Column(db.String(16), nullable=False)  # cash, card, online
    balance_cents = db.Column(db.Integer, nullable=False, default=0)
    last_updated = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    version_id = db.Column(db.Integer, nullable=False, default=1)

    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "method": self.method,
            "balance_cents": self.balance_cents,
            "last_updated": to_utc_z(self.last_updated),
            "version_id": self.version_id,
        }


class DailyStatsEntry(db.Model):
    """
    Per-day sales aggregate, overall and by payment method.

    Always moved by the same delta as the matching WalletAccount, in the
    same transaction.
    """
    __tablename__ = "daily_stats"
    __table_args__ = (
        db.UniqueConstraint("tenant_id", "stats_date", name="uq_daily_stats_tenant_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    tenant_id = db.Column(db.Integer, db.ForeignKey("tenants.id"), nullable=False, index=True)
    stats_date = db.Column(db.Date, nullable=False)
    total_sales_cents = db.Column(db.Integer, nullable=False, default=0)
    total_sales_cash_cents = db.Column(db.Integer, nullable=False, default=0)
    total_sales_card_cents = db.Column(db.Integer, nullable=False, default=0)
    total_sales_online_cents = db.Column(db.Integer, nullable=False, default=0)
    # Paid direct sales booked on this day, net of deletions
    invoice_count = db.Column(db.Integer, nullable=False, default=0)
    last_updated = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    version_id = db.Column(db.Integer, nullable=False, default=1)

    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "date": self.stats_date.isoformat(),
            "total_sales_cents": self.total_sales_cents,
            "total_sales_cash_cents": self.total_sales_cash_cents,
            "total_sales_card_cents": self.total_sales_card_cents,
            "total_sales_online_cents": self.total_sales_online_cents,
            "invoice_count": self.invoice_count,
            "last_updated": to_utc_z(self.last_updated),
            "version_id": self.version_id,
        }


class ReconciliationLock(db.Model):
    """
    Documents closed by cash-book reconciliation for one business date.

    Written by the reconciliation workflow, only read here. locked_ids holds
    document keys such as "invoices/12" or "orders/3".
    """
    __tablename__ = "reconciliation_locks"
    __table_args__ = (
        db.UniqueConstraint("tenant_id", "lock_date", name="uq_reconciliation_locks_tenant_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    tenant_id = db.Column(db.Integer, db.ForeignKey("tenants.id"), nullable=False, index=True)
    lock_date = db.Column(db.Date, nullable=False)
    locked_ids = db.Column(db.JSON, nullable=False, default=list)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "date": self.lock_date.isoformat(),
            "locked_ids": list(self.locked_ids or []),
            "created_at": to_utc_z(self.created_at),
        }
