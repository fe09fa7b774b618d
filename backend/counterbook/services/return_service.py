"""
Return Service: Customer returns refunded from a wallet

WHY: A return gives money back out of the drawer (or card/online account)
it is refunded from. The refund is an outflow, not negative revenue, so the
wallet moves and the daily sales stats do not.

DESIGN PRINCIPLES:
- Returns reference the original invoice for traceability
- Refund is priced at the ORIGINAL line price, never a caller-supplied amount
- A line can never be returned more times than it was sold (earlier returns count)
- Only Paid direct sales are returnable, and refunds never exceed what the
  invoice actually took in
- The refund wallet must cover the refund; the balance never goes negative
- Undo credits the wallet back and deletes the return, atomically
"""

from __future__ import annotations

import logging
from datetime import datetime

from ..extensions import db
from ..models import Invoice, SalesReturn
from ..models.documents import KIND_SALE, STATUS_PAID
from ..time_utils import business_date, date_key, utcnow
from ..validation import ValidationError, require_text
from .concurrency import run_in_transaction
from .document_service import DocumentNotFoundError, allocate_document_number
from .ledger_service import LedgerError, apply_wallet_delta, get_or_create_wallet, wallet_id_for
from .lock_service import ensure_unlocked
from .session_service import SessionContext, load_tenant


log = logging.getLogger(__name__)


class ReturnError(Exception):
    """Raised for return operation errors."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


class InsufficientFundsError(ReturnError):
    """Raised when the refund wallet cannot cover the refund."""
    pass


def _requested_quantities(raw_items) -> dict[str, int]:
    if not isinstance(raw_items, (list, tuple)) or not raw_items:
        raise ValidationError("At least one returned item is required")
    requested: dict[str, int] = {}
    for index, raw in enumerate(raw_items):
        if not isinstance(raw, dict):
            raise ValidationError(f"items[{index}] must be an object")
        name = require_text(raw.get("item_name"), f"items[{index}].item_name")
        quantity = raw.get("quantity")
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
            raise ValidationError(f"items[{index}].quantity must be a positive integer")
        requested[name] = requested.get(name, 0) + quantity
    return requested


def _already_returned(tenant_id: int, invoice_id: int) -> tuple[dict[str, int], int]:
    """Quantities per item and total cents refunded by earlier returns."""
    counts: dict[str, int] = {}
    refunded = 0
    earlier = db.session.query(SalesReturn).filter_by(tenant_id=tenant_id, original_invoice_id=invoice_id).all()
    for ret in earlier:
        refunded += ret.refund_cents
        for line in ret.items or []:
            counts[line["item_name"]] = counts.get(line["item_name"], 0) + line["quantity"]
    return counts, refunded


def _ensure_returnable(invoice: Invoice) -> None:
    # Only settled direct sales took their full line value into a wallet.
    if invoice.kind != KIND_SALE:
        raise ReturnError(
            f"Invoice {invoice.invoice_number} belongs to an order or service job and cannot be returned",
            {"invoice_id": invoice.id, "kind": invoice.kind},
        )
    if invoice.status != STATUS_PAID:
        raise ReturnError(
            f"Invoice {invoice.invoice_number} is {invoice.status} and cannot be returned",
            {"invoice_id": invoice.id, "status": invoice.status},
        )


def process_return(
    ctx: SessionContext,
    invoice_id: int,
    items,
    refund_method: str,
    now: datetime | None = None,
) -> SalesReturn:
    """
    Refund returned lines of an invoice out of a wallet.

    Raises:
        DocumentNotFoundError: unknown invoice
        ReturnError: not a settled direct sale, a line is not on the invoice or
            is over-returned, or refunds would exceed the amount received
        InsufficientFundsError: the wallet balance is below the refund
    """
    tenant = load_tenant(ctx)
    requested = _requested_quantities(items)
    wallet_method = wallet_id_for(refund_method)
    if wallet_method is None:
        raise ValidationError("refund_method must be Cash, Card or Online")

    moment = now or utcnow()
    day = business_date(moment, tenant.timezone)
    key = date_key(day)

    def _op() -> SalesReturn:
        invoice = db.session.query(Invoice).filter_by(id=invoice_id, tenant_id=tenant.id).first()
        if not invoice:
            raise DocumentNotFoundError(f"Invoice {invoice_id} not found")
        _ensure_returnable(invoice)

        sold: dict[str, dict] = {}
        for line in invoice.items or []:
            entry = sold.setdefault(line["item_name"], {"quantity": 0, "price_cents": line["price_cents"]})
            entry["quantity"] += line["quantity"]
        returned, refunded = _already_returned(tenant.id, invoice.id)

        lines = []
        refund = 0
        for name, quantity in requested.items():
            entry = sold.get(name)
            if entry is None:
                raise ReturnError(f"{name} is not on invoice {invoice.invoice_number}", {"item_name": name})
            remaining = entry["quantity"] - returned.get(name, 0)
            if quantity > remaining:
                raise ReturnError(
                    f"Cannot return {quantity} x {name}; only {remaining} remaining",
                    {"item_name": name, "requested": quantity, "remaining": remaining},
                )
            lines.append({"item_name": name, "quantity": quantity, "price_cents": entry["price_cents"]})
            refund += quantity * entry["price_cents"]

        if refunded + refund > invoice.received_cents:
            raise ReturnError(
                f"Refund of {refund} exceeds what is left of invoice {invoice.invoice_number}",
                {
                    "invoice_id": invoice.id,
                    "received_cents": invoice.received_cents,
                    "already_refunded_cents": refunded,
                    "refund_cents": refund,
                },
            )

        wallet = get_or_create_wallet(tenant.id, wallet_method, for_update=True)
        if wallet.balance_cents < refund:
            raise InsufficientFundsError(
                f"Insufficient funds in {refund_method}. Available: {wallet.balance_cents}",
                {"wallet": wallet_method, "available_cents": wallet.balance_cents, "refund_cents": refund},
            )
        apply_wallet_delta(tenant.id, wallet_method, -refund)

        sales_return = SalesReturn(
            tenant_id=tenant.id,
            return_number=allocate_document_number(tenant.id, "RET", key),
            original_invoice_id=invoice.id,
            original_invoice_number=invoice.invoice_number,
            customer_name=invoice.customer_name,
            items=lines,
            refund_cents=refund,
            refund_method=refund_method,
            processed_by=ctx.staff,
            business_date=day,
            created_at=moment,
        )
        db.session.add(sales_return)
        db.session.flush()
        return sales_return

    sales_return = run_in_transaction(_op)
    log.info(
        "Return %s processed for tenant %s (%d cents from %s)",
        sales_return.return_number, tenant.id, sales_return.refund_cents, wallet_method,
    )
    return sales_return


def get_return(ctx: SessionContext, return_id: int) -> SalesReturn:
    sales_return = db.session.query(SalesReturn).filter_by(id=return_id, tenant_id=ctx.tenant_id).first()
    if not sales_return:
        raise DocumentNotFoundError(f"Return {return_id} not found")
    return sales_return


def undo_return(ctx: SessionContext, return_id: int) -> dict:
    """Put the refund back into its wallet and delete the return."""
    load_tenant(ctx)

    def _op() -> dict:
        sales_return = db.session.query(SalesReturn).filter_by(id=return_id, tenant_id=ctx.tenant_id).first()
        if not sales_return:
            raise DocumentNotFoundError(f"Return {return_id} not found")
        ensure_unlocked(ctx.tenant_id, sales_return, sales_return.business_date)

        wallet_method = wallet_id_for(sales_return.refund_method)
        if wallet_method is None:
            raise ReturnError(f"Return {sales_return.return_number} has no refund wallet")
        try:
            apply_wallet_delta(ctx.tenant_id, wallet_method, sales_return.refund_cents)
        except LedgerError as exc:
            raise ReturnError(str(exc))

        summary = {
            "deleted_return_id": sales_return.id,
            "return_number": sales_return.return_number,
            "restored_cents": sales_return.refund_cents,
        }
        db.session.delete(sales_return)
        db.session.flush()
        return summary

    summary = run_in_transaction(_op)
    log.info("Return %s undone for tenant %s", summary["return_number"], ctx.tenant_id)
    return summary
