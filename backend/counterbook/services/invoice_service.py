"""
Invoice Service: Direct sales

WHY: A direct sale is the simplest transactional unit: one invoice, one
document number, one daily order number, one wallet credit and one daily
stats credit, all committed together.

PRICING:
- subtotal = sum(quantity * price) over the lines
- Dine-in adds the tenant's service charge (basis points of subtotal)
- total = subtotal + delivery charge + service charge

PAYMENT:
- Cash: tendered may exceed total (change is returned); below total is refused.
  No tendered amount means exact cash.
- Card / Online: tendered is the total.
- Credit customers never pay at the counter: method is forced to Credit,
  received is 0 and the ledger is not touched.
"""

from __future__ import annotations

import logging
from datetime import date, datetime

from ..extensions import db
from ..models import Customer, Invoice
from ..models.documents import KIND_SALE, STATUS_CREDIT, STATUS_PAID
from ..time_utils import business_date, date_key, utcnow
from ..validation import (
    ValidationError,
    coerce_cents,
    items_subtotal,
    normalize_line_items,
    optional_text,
)
from .concurrency import run_in_transaction
from .document_service import (
    DocumentNotFoundError,
    allocate_document_number,
    next_daily_order_number,
)
from .ledger_service import PAYMENT_CASH, PAYMENT_CREDIT, PAYMENT_METHODS, apply_invoice_count, apply_ledger_delta
from .reversal_service import reverse_and_delete
from .session_service import SessionContext, load_tenant, resolve_shift


log = logging.getLogger(__name__)

ORDER_TYPE_TAKE_AWAY = "Take Away"
ORDER_TYPE_DINE_IN = "Dine-in"
ORDER_TYPES = (ORDER_TYPE_TAKE_AWAY, ORDER_TYPE_DINE_IN)


def service_charge_for(subtotal_cents: int, bps: int) -> int:
    """Service charge in cents, rounded half up."""
    if not bps:
        return 0
    return (subtotal_cents * bps + 5_000) // 10_000


def _validate_payment_method(method) -> str:
    if method not in PAYMENT_METHODS:
        raise ValidationError(f"payment_method must be one of {', '.join(PAYMENT_METHODS)}")
    return method


def create_sale(
    ctx: SessionContext,
    customer_id: int,
    items,
    payment_method: str | None,
    tendered_cents=None,
    delivery_charge_cents=0,
    order_type: str = ORDER_TYPE_TAKE_AWAY,
    remarks: str | None = None,
    now: datetime | None = None,
) -> Invoice:
    """
    Record a direct sale and credit the ledger for it.

    All validation happens before the transaction opens; a rejected sale
    leaves no trace (not even a consumed number).
    """
    tenant = load_tenant(ctx)
    shift = resolve_shift(tenant, ctx)

    if customer_id is None:
        raise ValidationError("Select a customer before saving")
    customer = db.session.query(Customer).filter_by(id=customer_id, tenant_id=tenant.id).first()
    if not customer:
        raise ValidationError(f"Customer {customer_id} not found")

    lines = normalize_line_items(items)
    if order_type not in ORDER_TYPES:
        raise ValidationError(f"order_type must be one of {', '.join(ORDER_TYPES)}")
    delivery_cents = coerce_cents(delivery_charge_cents or 0, "delivery_charge_cents")
    remarks = optional_text(remarks, "remarks", max_length=2000)

    subtotal = items_subtotal(lines)
    service_charge = (
        service_charge_for(subtotal, tenant.service_charge_bps)
        if order_type == ORDER_TYPE_DINE_IN else 0
    )
    total = subtotal + delivery_cents + service_charge

    if customer.is_credit_customer:
        method = PAYMENT_CREDIT
        status = STATUS_CREDIT
        received = 0
        tendered = 0
        change = 0
    else:
        method = _validate_payment_method(payment_method)
        if method == PAYMENT_CREDIT:
            raise ValidationError("Credit is only available to credit customers")
        status = STATUS_PAID
        received = total
        tendered = total
        if method == PAYMENT_CASH and tendered_cents not in (None, "", 0):
            tendered = coerce_cents(tendered_cents, "tendered_cents")
            if tendered < total:
                raise ValidationError("Tendered amount is less than the total")
        change = tendered - total

    moment = now or utcnow()
    day = business_date(moment, tenant.timezone)
    key = date_key(day)

    def _op() -> Invoice:
        invoice_number = allocate_document_number(tenant.id, "INV", key)
        daily_order = next_daily_order_number(tenant.id, key)

        invoice = Invoice(
            tenant_id=tenant.id,
            invoice_number=invoice_number,
            kind=KIND_SALE,
            status=status,
            customer_id=customer.id,
            customer_name=customer.name,
            customer_phone=customer.phone,
            items=lines,
            subtotal_cents=subtotal,
            delivery_charge_cents=delivery_cents,
            service_charge_cents=service_charge,
            total_cents=total,
            received_cents=received,
            tendered_cents=tendered,
            change_cents=change,
            payment_method=method,
            issued_by=ctx.staff,
            shift=shift,
            order_type=order_type,
            daily_order_number=daily_order,
            remarks=remarks,
            business_date=day,
            created_at=moment,
        )
        db.session.add(invoice)
        db.session.flush()

        if received > 0:
            apply_invoice_count(tenant.id, day, 1)
        apply_ledger_delta(tenant.id, method, received, day)
        return invoice

    invoice = run_in_transaction(_op)
    log.info("Sale %s saved for tenant %s (%d cents, %s)", invoice.invoice_number, tenant.id, total, method)
    return invoice


def get_invoice(ctx: SessionContext, invoice_id: int) -> Invoice:
    invoice = db.session.query(Invoice).filter_by(id=invoice_id, tenant_id=ctx.tenant_id).first()
    if not invoice:
        raise DocumentNotFoundError(f"Invoice {invoice_id} not found")
    return invoice


def list_invoices(ctx: SessionContext, on_date: date | None = None, limit: int = 200) -> list[Invoice]:
    query = db.session.query(Invoice).filter(Invoice.tenant_id == ctx.tenant_id)
    if on_date is not None:
        query = query.filter(Invoice.business_date == on_date)
    limit = max(1, min(limit, 500))
    return query.order_by(Invoice.id.desc()).limit(limit).all()


def delete_invoice(ctx: SessionContext, invoice_id: int) -> dict:
    """Delete one invoice, reversing its wallet and daily stats credit."""
    return reverse_and_delete(ctx, invoice_ids=[invoice_id])
