"""
Reversal / Compensation Unit

WHY: Deleting a sale, an order or a service job must put the money back
exactly where it was booked. Every deletion entry point funnels through
reverse_and_delete so there is one compensation path to reason about.

RULES:
- Each invoice is reversed on its ORIGINAL business date, never today's.
- Only received money is reversed; credit (unpaid) invoices have no
  ledger footprint.
- A reversed paid direct sale also leaves its day's sale count.
- Linked invoices that no longer exist are skipped, not fatal.
- Every document is checked against the reconciliation lock oracle before
  anything is written; one locked document refuses the whole deletion.
- Ledger deltas and deletes commit together or not at all.
"""

from __future__ import annotations

import logging

from ..extensions import db
from ..models import Invoice, Order, ServiceJob
from ..models.documents import KIND_SALE
from .concurrency import lock_for_update, run_in_transaction
from .document_service import DocumentNotFoundError
from .ledger_service import apply_invoice_count, apply_ledger_delta, wallet_id_for
from .lock_service import ensure_unlocked
from .session_service import SessionContext, load_tenant


log = logging.getLogger(__name__)


def _load_parent(tenant_id: int, order_id: int | None, job_id: int | None):
    if order_id is not None and job_id is not None:
        raise ValueError("Pass order_id or job_id, not both")
    if order_id is not None:
        order = lock_for_update(
            db.session.query(Order).filter_by(id=order_id, tenant_id=tenant_id)
        ).first()
        if not order:
            raise DocumentNotFoundError(f"Order {order_id} not found")
        return order
    if job_id is not None:
        job = lock_for_update(
            db.session.query(ServiceJob).filter_by(id=job_id, tenant_id=tenant_id)
        ).first()
        if not job:
            raise DocumentNotFoundError(f"Service job {job_id} not found")
        return job
    return None


def _clear_references(tenant_id: int, invoice_id: int) -> None:
    # A lone invoice can still be named by its order/job; drop the dangling id.
    for model in (Order, ServiceJob):
        rows = (
            db.session.query(model)
            .filter(model.tenant_id == tenant_id)
            .filter((model.linked_invoice_id == invoice_id) | (model.balance_invoice_id == invoice_id))
            .all()
        )
        for row in rows:
            if row.linked_invoice_id == invoice_id:
                row.linked_invoice_id = None
            if row.balance_invoice_id == invoice_id:
                row.balance_invoice_id = None


def reverse_and_delete(
    ctx: SessionContext,
    invoice_ids=(),
    order_id: int | None = None,
    job_id: int | None = None,
) -> dict:
    """
    Delete documents and compensate their ledger effects atomically.

    With order_id/job_id, the parent's advance and balance invoices are
    included automatically. Returns a summary of what was removed.

    Raises:
        DocumentNotFoundError: the parent (or, without a parent, every
            requested invoice) does not exist
        DocumentLockedError: a document is reconciled
        LockCheckError: lock state could not be read
    """
    requested = {int(i) for i in invoice_ids if i is not None}

    def _op() -> dict:
        load_tenant(ctx)
        tenant_id = ctx.tenant_id

        parent = _load_parent(tenant_id, order_id, job_id)

        wanted = set(requested)
        if parent is not None:
            wanted.update(i for i in (parent.linked_invoice_id, parent.balance_invoice_id) if i)

        invoices = []
        if wanted:
            invoices = (
                db.session.query(Invoice)
                .filter(Invoice.tenant_id == tenant_id, Invoice.id.in_(wanted))
                .order_by(Invoice.id.asc())
                .all()
            )
        found = {inv.id for inv in invoices}
        skipped = sorted(wanted - found)

        if parent is None and not invoices:
            raise DocumentNotFoundError(
                f"Invoice {', '.join(str(i) for i in sorted(requested))} not found"
            )
        for missing_id in skipped:
            log.warning("Reversal skipped missing invoice %s (tenant %s)", missing_id, tenant_id)

        # Refuse before any write.
        if parent is not None:
            ensure_unlocked(tenant_id, parent, parent.business_date)
        for inv in invoices:
            ensure_unlocked(tenant_id, inv, inv.business_date)

        reversed_cents = 0
        for inv in invoices:
            if inv.received_cents > 0 and wallet_id_for(inv.payment_method):
                if inv.kind == KIND_SALE:
                    apply_invoice_count(tenant_id, inv.business_date, -1)
                apply_ledger_delta(tenant_id, inv.payment_method, -inv.received_cents, inv.business_date)
                reversed_cents += inv.received_cents

        if parent is None:
            for inv in invoices:
                _clear_references(tenant_id, inv.id)

        summary = {
            "deleted_invoice_ids": sorted(found),
            "skipped_invoice_ids": skipped,
            "reversed_cents": reversed_cents,
        }
        for inv in invoices:
            db.session.delete(inv)
        if isinstance(parent, Order):
            summary["deleted_order_id"] = parent.id
            db.session.delete(parent)
        elif isinstance(parent, ServiceJob):
            summary["deleted_job_id"] = parent.id
            db.session.delete(parent)
        db.session.flush()
        return summary

    summary = run_in_transaction(_op)
    log.info("Reversed documents for tenant %s: %s", ctx.tenant_id, summary)
    return summary
