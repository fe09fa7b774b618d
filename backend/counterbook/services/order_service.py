"""
Order Service: Customer orders with advance and balance payments

WHY: An order is paid in two steps. The advance is real money on the day the
order is taken; the balance is real money on the day the order is handed
over. Each step writes an invoice for exactly the cash that moved, and the
Order itself keeps the full value.

LIFECYCLE:
1. create_order: ORD number, advance invoice (Pending), Order (Pending),
   wallet/stats += advance. One transaction.
2. complete_order: Order Pending -> Completed exactly once, balance
   invoice "<ORD number>_BAL", advance invoice -> Paid,
   wallet/stats += balance on the completion day. One transaction.
3. delete_order: reversal of both invoices on their own dates, then delete.
"""

from __future__ import annotations

import logging
from datetime import datetime

from ..extensions import db
from ..models import Invoice, Order
from ..models.documents import KIND_ORDER, STATUS_COMPLETED, STATUS_PAID, STATUS_PENDING
from ..time_utils import business_date, date_key, utcnow
from ..validation import (
    ValidationError,
    coerce_cents,
    items_subtotal,
    normalize_line_items,
    optional_date,
    optional_text,
    require_text,
)
from .concurrency import lock_for_update, run_in_transaction
from .document_service import (
    AlreadyCompletedError,
    DocumentNotFoundError,
    allocate_document_number,
    balance_document_number,
    flip_to_completed,
)
from .ledger_service import PAYMENT_CREDIT, PAYMENT_METHODS, apply_ledger_delta
from .reversal_service import reverse_and_delete
from .session_service import SessionContext, load_tenant, resolve_shift


log = logging.getLogger(__name__)

BALANCE_LINE_NAME = "Balance Payment"


def validate_collection_method(payment_method, amount_cents: int, field: str = "payment_method") -> str | None:
    """
    Payment method for money collected now (an advance or a balance).

    Required and limited to Cash/Card/Online whenever money actually moves.
    """
    if amount_cents <= 0:
        if payment_method in (None, ""):
            return None
        if payment_method not in PAYMENT_METHODS:
            raise ValidationError(f"{field} must be one of {', '.join(PAYMENT_METHODS)}")
        return payment_method
    if payment_method in (None, ""):
        raise ValidationError(f"{field} is required when collecting money")
    if payment_method not in PAYMENT_METHODS or payment_method == PAYMENT_CREDIT:
        raise ValidationError(f"{field} must be Cash, Card or Online")
    return payment_method


def _advance_remarks(grand_total: int, remarks: str | None) -> str:
    text = f"[ADVANCE] Order Total Value: {grand_total / 100:.2f}."
    if remarks:
        text = f"{text} {remarks}"
    return text


def create_order(
    ctx: SessionContext,
    customer_name: str,
    customer_phone: str | None,
    items,
    advance_cents,
    payment_method: str | None,
    delivery_charge_cents=0,
    delivery_date=None,
    remarks: str | None = None,
    now: datetime | None = None,
) -> Order:
    """
    Take a customer order and book its advance.

    The advance invoice carries total = received = advance; the Order carries
    the grand total. Wallet and daily stats move by the advance only.
    """
    tenant = load_tenant(ctx)
    shift = resolve_shift(tenant, ctx)

    customer_name = require_text(customer_name, "customer_name")
    customer_phone = optional_text(customer_phone, "customer_phone", max_length=64)
    lines = normalize_line_items(items)
    advance = coerce_cents(advance_cents or 0, "advance_cents")
    delivery = coerce_cents(delivery_charge_cents or 0, "delivery_charge_cents")
    if not tenant.offer_delivery:
        delivery = 0
    delivery_day = optional_date(delivery_date, "delivery_date")
    remarks = optional_text(remarks, "remarks", max_length=2000)

    subtotal = items_subtotal(lines)
    grand_total = subtotal + delivery
    if advance > grand_total:
        raise ValidationError("Advance cannot exceed the order total")
    method = validate_collection_method(payment_method, advance)

    moment = now or utcnow()
    day = business_date(moment, tenant.timezone)
    key = date_key(day)

    def _op() -> Order:
        order_number = allocate_document_number(tenant.id, "ORD", key)

        invoice = Invoice(
            tenant_id=tenant.id,
            invoice_number=order_number,
            kind=KIND_ORDER,
            status=STATUS_PENDING,
            customer_name=customer_name,
            customer_phone=customer_phone,
            items=lines,
            subtotal_cents=advance,
            total_cents=advance,
            received_cents=advance,
            tendered_cents=advance,
            payment_method=method,
            issued_by=ctx.staff,
            shift=shift,
            remarks=_advance_remarks(grand_total, remarks),
            business_date=day,
            created_at=moment,
        )
        db.session.add(invoice)
        db.session.flush()

        order = Order(
            tenant_id=tenant.id,
            order_number=order_number,
            customer_name=customer_name,
            customer_phone=customer_phone,
            items=lines,
            total_amount_cents=grand_total,
            delivery_charge_cents=delivery,
            advance_amount_cents=advance,
            status=STATUS_PENDING,
            delivery_date=delivery_day,
            remarks=remarks,
            linked_invoice_id=invoice.id,
            created_by=ctx.staff,
            business_date=day,
            created_at=moment,
        )
        db.session.add(order)
        db.session.flush()
        invoice.related_order_id = order.id

        apply_ledger_delta(tenant.id, method, advance, day)
        return order

    order = run_in_transaction(_op)
    log.info("Order %s saved for tenant %s (total %d, advance %d)", order.order_number, tenant.id, grand_total, advance)
    return order


def get_order(ctx: SessionContext, order_id: int) -> Order:
    order = db.session.query(Order).filter_by(id=order_id, tenant_id=ctx.tenant_id).first()
    if not order:
        raise DocumentNotFoundError(f"Order {order_id} not found")
    return order


def list_orders(ctx: SessionContext, include_completed: bool = False) -> list[Order]:
    query = db.session.query(Order).filter(Order.tenant_id == ctx.tenant_id)
    if not include_completed:
        query = query.filter(Order.status != STATUS_COMPLETED)
    return query.order_by(Order.id.desc()).all()


def complete_order(
    ctx: SessionContext,
    order_id: int,
    payment_method: str | None,
    now: datetime | None = None,
) -> Order:
    """
    Collect the balance and close the order.

    The balance is recomputed from the stored total and advance, never
    taken from the caller. It is booked on the completion day.

    Raises:
        ValidationError: missing or unknown shift on a shift-production tenant
        DocumentNotFoundError: unknown order
        AlreadyCompletedError: the order was completed already (or concurrently)
    """
    tenant = load_tenant(ctx)
    shift = resolve_shift(tenant, ctx)
    moment = now or utcnow()
    day = business_date(moment, tenant.timezone)

    def _op() -> Order:
        order = lock_for_update(
            db.session.query(Order).filter_by(id=order_id, tenant_id=tenant.id)
        ).first()
        if not order:
            raise DocumentNotFoundError(f"Order {order_id} not found")
        if order.status != STATUS_PENDING:
            raise AlreadyCompletedError(f"Order {order.order_number} is already completed", {"id": order.id})

        balance = order.balance_cents
        method = validate_collection_method(payment_method, balance)

        flip_to_completed(Order, order.id, tenant.id, moment)
        db.session.refresh(order)

        if order.linked_invoice_id:
            advance_invoice = db.session.get(Invoice, order.linked_invoice_id)
            if advance_invoice is not None:
                advance_invoice.status = STATUS_PAID

        if balance > 0:
            balance_invoice = Invoice(
                tenant_id=tenant.id,
                invoice_number=balance_document_number(order.order_number),
                kind=KIND_ORDER,
                status=STATUS_PAID,
                customer_name=order.customer_name,
                customer_phone=order.customer_phone,
                items=[{"item_name": BALANCE_LINE_NAME, "quantity": 1, "price_cents": balance}],
                subtotal_cents=balance,
                total_cents=balance,
                received_cents=balance,
                tendered_cents=balance,
                payment_method=method,
                issued_by=ctx.staff,
                shift=shift,
                business_date=day,
                created_at=moment,
                related_order_id=order.id,
            )
            db.session.add(balance_invoice)
            db.session.flush()
            order.balance_invoice_id = balance_invoice.id

            apply_ledger_delta(tenant.id, method, balance, day)

        db.session.flush()
        return order

    order = run_in_transaction(_op)
    log.info("Order %s completed for tenant %s (balance %d)", order.order_number, tenant.id, order.balance_cents)
    return order


def delete_order(ctx: SessionContext, order_id: int) -> dict:
    """Delete an order with its advance and balance invoices, reversing both."""
    return reverse_and_delete(ctx, order_id=order_id)
