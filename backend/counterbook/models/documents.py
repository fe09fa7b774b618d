from __future__ import annotations

from ..extensions import db
from counterbook.time_utils import to_utc_z


# =============================================================================
# DOCUMENT STATUS / KIND (CONSTANTS)
# =============================================================================

STATUS_PENDING = "Pending"
STATUS_COMPLETED = "Completed"
STATUS_PAID = "Paid"
STATUS_CREDIT = "Credit"

KIND_SALE = "SALE"
KIND_ORDER = "ORDER"
KIND_SERVICE = "SERVICE"


def _date_str(value) -> str | None:
    return value.isoformat() if value else None


class DailyCounter(db.Model):
    """
    Per-tenant, per-day document sequences.

    WHY: Document numbers restart every business day. One row per
    (tenant, counter_name, date_key) holds the last issued value; the rows of
    one counter_name form the {YYYYMMDD: n} map. Rows are only ever
    incremented and never deleted.
    """
    __tablename__ = "daily_counters"
    __table_args__ = (
        db.UniqueConstraint("tenant_id", "counter_name", "date_key", name="uq_daily_counters_tenant_name_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    tenant_id = db.Column(db.Integer, db.ForeignKey("tenants.id"), nullable=False, index=True)
    counter_name = db.Column(db.String(32), nullable=False)
    date_key = db.Column(db.String(8), nullable=False)  # YYYYMMDD
    value = db.Column(db.Integer, nullable=False, default=0)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "counter_name": self.counter_name,
            "date_key": self.date_key,
            "value": self.value,
            "updated_at": to_utc_z(self.updated_at),
        }


class Invoice(db.Model):
    """
    A cash movement document: a direct sale, an order/job advance, or a
    balance payment.

    WHY: For orders and service jobs the invoice carries only the money that
    actually changed hands (advance or balance); the Order/ServiceJob holds
    the full financial picture.

    LEDGER: received_cents is the amount credited to the wallet and daily
    stats of business_date. Reversal debits exactly that amount on that same
    date.
    """
    __tablename__ = "invoices"
    __table_args__ = (
        db.Index("ix_invoices_tenant_number", "tenant_id", "invoice_number"),
        db.Index("ix_invoices_tenant_date", "tenant_id", "business_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    tenant_id = db.Column(db.Integer, db.ForeignKey("tenants.id"), nullable=False, index=True)

    # Human-readable document number (e.g., "INV-20250115-0007", "ORD-20250115-0001_BAL")
    invoice_number = db.Column(db.String(64), nullable=False)
    kind = db.Column(db.String(16), nullable=False, default=KIND_SALE)
    status = db.Column(db.String(16), nullable=False, default=STATUS_PAID)

    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=True)
    customer_name = db.Column(db.String(255), nullable=False)
    customer_phone = db.Column(db.String(64), nullable=True)

    items = db.Column(db.JSON, nullable=False, default=list)

    # Amounts (all in cents)
    subtotal_cents = db.Column(db.Integer, nullable=False, default=0)
    delivery_charge_cents = db.Column(db.Integer, nullable=False, default=0)
    service_charge_cents = db.Column(db.Integer, nullable=False, default=0)
    total_cents = db.Column(db.Integer, nullable=False, default=0)
    received_cents = db.Column(db.Integer, nullable=False, default=0)
    tendered_cents = db.Column(db.Integer, nullable=False, default=0)
    change_cents = db.Column(db.Integer, nullable=False, default=0)

    payment_method = db.Column(db.String(16), nullable=True)
    issued_by = db.Column(db.String(120), nullable=False)
    shift = db.Column(db.String(64), nullable=True)
    order_type = db.Column(db.String(32), nullable=True)
    daily_order_number = db.Column(db.Integer, nullable=True)
    remarks = db.Column(db.Text, nullable=True)

    business_date = db.Column(db.Date, nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    # Cross-links (plain ids: the two documents reference each other)
    related_order_id = db.Column(db.Integer, nullable=True, index=True)
    related_job_id = db.Column(db.Integer, nullable=True, index=True)

    @property
    def lock_key(self) -> str:
        return f"{self.__tablename__}/{self.id}"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "invoice_number": self.invoice_number,
            "kind": self.kind,
            "status": self.status,
            "customer_id": self.customer_id,
            "customer_name": self.customer_name,
            "customer_phone": self.customer_phone,
            "items": list(self.items or []),
            "subtotal_cents": self.subtotal_cents,
            "delivery_charge_cents": self.delivery_charge_cents,
            "service_charge_cents": self.service_charge_cents,
            "total_cents": self.total_cents,
            "received_cents": self.received_cents,
            "tendered_cents": self.tendered_cents,
            "change_cents": self.change_cents,
            "payment_method": self.payment_method,
            "issued_by": self.issued_by,
            "shift": self.shift,
            "order_type": self.order_type,
            "daily_order_number": self.daily_order_number,
            "remarks": self.remarks,
            "business_date": _date_str(self.business_date),
            "created_at": to_utc_z(self.created_at),
            "related_order_id": self.related_order_id,
            "related_job_id": self.related_job_id,
        }


class Order(db.Model):
    """
    Customer order for future delivery, paid by advance + balance.

    LIFECYCLE: Pending -> Completed, exactly once, when the balance is
    collected. balance_cents is always derived (total - advance), never
    stored.
    """
    __tablename__ = "orders"
    __table_args__ = (
        db.Index("ix_orders_tenant_status", "tenant_id", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    tenant_id = db.Column(db.Integer, db.ForeignKey("tenants.id"), nullable=False, index=True)

    order_number = db.Column(db.String(64), nullable=False, index=True)
    customer_name = db.Column(db.String(255), nullable=False)
    customer_phone = db.Column(db.String(64), nullable=True)
    items = db.Column(db.JSON, nullable=False, default=list)

    total_amount_cents = db.Column(db.Integer, nullable=False)
    delivery_charge_cents = db.Column(db.Integer, nullable=False, default=0)
    advance_amount_cents = db.Column(db.Integer, nullable=False, default=0)

    status = db.Column(db.String(16), nullable=False, default=STATUS_PENDING)
    delivery_date = db.Column(db.Date, nullable=True)
    remarks = db.Column(db.Text, nullable=True)

    linked_invoice_id = db.Column(db.Integer, nullable=True)
    balance_invoice_id = db.Column(db.Integer, nullable=True)

    created_by = db.Column(db.String(120), nullable=False)
    business_date = db.Column(db.Date, nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    completed_at = db.Column(db.DateTime(timezone=True), nullable=True)

    @property
    def balance_cents(self) -> int:
        return self.total_amount_cents - self.advance_amount_cents

    @property
    def lock_key(self) -> str:
        return f"{self.__tablename__}/{self.id}"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "order_number": self.order_number,
            "customer_name": self.customer_name,
            "customer_phone": self.customer_phone,
            "items": list(self.items or []),
            "total_amount_cents": self.total_amount_cents,
            "delivery_charge_cents": self.delivery_charge_cents,
            "advance_amount_cents": self.advance_amount_cents,
            "balance_cents": self.balance_cents,
            "status": self.status,
            "delivery_date": _date_str(self.delivery_date),
            "remarks": self.remarks,
            "linked_invoice_id": self.linked_invoice_id,
            "balance_invoice_id": self.balance_invoice_id,
            "created_by": self.created_by,
            "business_date": _date_str(self.business_date),
            "created_at": to_utc_z(self.created_at),
            "completed_at": to_utc_z(self.completed_at) if self.completed_at else None,
        }


class ServiceJob(db.Model):
    """
    Billable service engagement.

    Billed items may be appended while Pending; once Completed the job is
    immutable. balance_cents = total_charge - advance, derived.
    """
    __tablename__ = "service_jobs"
    __table_args__ = (
        db.Index("ix_service_jobs_tenant_status", "tenant_id", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    tenant_id = db.Column(db.Integer, db.ForeignKey("tenants.id"), nullable=False, index=True)

    job_number = db.Column(db.String(64), nullable=False, index=True)
    customer_name = db.Column(db.String(255), nullable=False)
    customer_phone = db.Column(db.String(64), nullable=True)
    job_type = db.Column(db.String(120), nullable=False)
    general_info = db.Column(db.Text, nullable=True)
    job_complete_date = db.Column(db.DateTime(timezone=True), nullable=True)

    status = db.Column(db.String(16), nullable=False, default=STATUS_PENDING)
    billed_items = db.Column(db.JSON, nullable=False, default=list)
    total_charge_cents = db.Column(db.Integer, nullable=False)
    advance_amount_cents = db.Column(db.Integer, nullable=False, default=0)

    linked_invoice_id = db.Column(db.Integer, nullable=True)
    balance_invoice_id = db.Column(db.Integer, nullable=True)

    created_by = db.Column(db.String(120), nullable=False)
    business_date = db.Column(db.Date, nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    completed_at = db.Column(db.DateTime(timezone=True), nullable=True)

    @property
    def balance_cents(self) -> int:
        return self.total_charge_cents - self.advance_amount_cents

    @property
    def lock_key(self) -> str:
        return f"{self.__tablename__}/{self.id}"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "job_number": self.job_number,
            "customer_name": self.customer_name,
            "customer_phone": self.customer_phone,
            "job_type": self.job_type,
            "general_info": self.general_info,
            "job_complete_date": to_utc_z(self.job_complete_date) if self.job_complete_date else None,
            "status": self.status,
            "billed_items": list(self.billed_items or []),
            "total_charge_cents": self.total_charge_cents,
            "advance_amount_cents": self.advance_amount_cents,
            "balance_cents": self.balance_cents,
            "linked_invoice_id": self.linked_invoice_id,
            "balance_invoice_id": self.balance_invoice_id,
            "created_by": self.created_by,
            "business_date": _date_str(self.business_date),
            "created_at": to_utc_z(self.created_at),
            "completed_at": to_utc_z(self.completed_at) if self.completed_at else None,
        }


class SalesReturn(db.Model):
    """
    Customer return against an invoice, refunded from a wallet.

    Refunds debit the wallet only; daily sales stats are left untouched
    (the refund is an outflow, not negative revenue).
    """
    __tablename__ = "sales_returns"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    tenant_id = db.Column(db.Integer, db.ForeignKey("tenants.id"), nullable=False, index=True)

    return_number = db.Column(db.String(64), nullable=False, index=True)
    original_invoice_id = db.Column(db.Integer, nullable=True, index=True)
    original_invoice_number = db.Column(db.String(64), nullable=False)
    customer_name = db.Column(db.String(255), nullable=False)
    items = db.Column(db.JSON, nullable=False, default=list)

    refund_cents = db.Column(db.Integer, nullable=False)
    refund_method = db.Column(db.String(16), nullable=False)
    processed_by = db.Column(db.String(120), nullable=False)

    business_date = db.Column(db.Date, nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    @property
    def lock_key(self) -> str:
        return f"{self.__tablename__}/{self.id}"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "return_number": self.return_number,
            "original_invoice_id": self.original_invoice_id,
            "original_invoice_number": self.original_invoice_number,
            "customer_name": self.customer_name,
            "items": list(self.items or []),
            "refund_cents": self.refund_cents,
            "refund_method": self.refund_method,
            "processed_by": self.processed_by,
            "business_date": _date_str(self.business_date),
            "created_at": to_utc_z(self.created_at),
        }
