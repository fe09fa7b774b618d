"""
Service Job Service: Billable service engagements

WHY: Same two-step payment shape as orders (advance now, balance on
completion), with one difference: billed items can keep growing while the
job is Pending. Once Completed the job is frozen.
"""

from __future__ import annotations

import logging
from datetime import datetime

from ..extensions import db
from ..models import Invoice, ServiceJob
from ..models.documents import KIND_SERVICE, STATUS_COMPLETED, STATUS_PAID, STATUS_PENDING
from ..time_utils import business_date, date_key, parse_iso_datetime, utcnow
from ..validation import (
    ValidationError,
    coerce_cents,
    items_subtotal,
    normalize_line_items,
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
from .ledger_service import apply_ledger_delta
from .order_service import BALANCE_LINE_NAME, validate_collection_method
from .reversal_service import reverse_and_delete
from .session_service import SessionContext, load_tenant, resolve_shift


log = logging.getLogger(__name__)


class ServiceJobError(Exception):
    """Raised for service job operation errors."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


def _parse_complete_date(value) -> datetime | None:
    if value is None or isinstance(value, datetime):
        return value
    try:
        return parse_iso_datetime(str(value))
    except ValueError:
        raise ValidationError("job_complete_date must be an ISO-8601 datetime")


def create_job(
    ctx: SessionContext,
    customer_name: str,
    customer_phone: str | None,
    job_type: str,
    total_charge_cents,
    advance_cents,
    payment_method: str | None,
    general_info: str | None = None,
    job_complete_date=None,
    now: datetime | None = None,
) -> ServiceJob:
    """Open a service job with an SRV number and book its advance."""
    tenant = load_tenant(ctx)
    shift = resolve_shift(tenant, ctx)

    customer_name = require_text(customer_name, "customer_name")
    customer_phone = optional_text(customer_phone, "customer_phone", max_length=64)
    job_type = require_text(job_type, "job_type", max_length=120)
    general_info = optional_text(general_info, "general_info", max_length=4000)
    total = coerce_cents(total_charge_cents, "total_charge_cents", allow_zero=False)
    advance = coerce_cents(advance_cents or 0, "advance_cents")
    if advance > total:
        raise ValidationError("Advance cannot exceed the total charge")
    method = validate_collection_method(payment_method, advance)
    complete_by = _parse_complete_date(job_complete_date)

    moment = now or utcnow()
    day = business_date(moment, tenant.timezone)
    key = date_key(day)
    billed = [{"item_name": job_type, "quantity": 1, "price_cents": total}]

    def _op() -> ServiceJob:
        job_number = allocate_document_number(tenant.id, "SRV", key)

        invoice = Invoice(
            tenant_id=tenant.id,
            invoice_number=job_number,
            kind=KIND_SERVICE,
            status=STATUS_PENDING,
            customer_name=customer_name,
            customer_phone=customer_phone,
            items=billed,
            subtotal_cents=advance,
            total_cents=advance,
            received_cents=advance,
            tendered_cents=advance,
            payment_method=method,
            issued_by=ctx.staff,
            shift=shift,
            remarks=f"[ADVANCE] {job_type}. Total Value: {total / 100:.2f}",
            business_date=day,
            created_at=moment,
        )
        db.session.add(invoice)
        db.session.flush()

        job = ServiceJob(
            tenant_id=tenant.id,
            job_number=job_number,
            customer_name=customer_name,
            customer_phone=customer_phone,
            job_type=job_type,
            general_info=general_info,
            job_complete_date=complete_by,
            status=STATUS_PENDING,
            billed_items=billed,
            total_charge_cents=total,
            advance_amount_cents=advance,
            linked_invoice_id=invoice.id,
            created_by=ctx.staff,
            business_date=day,
            created_at=moment,
        )
        db.session.add(job)
        db.session.flush()
        invoice.related_job_id = job.id

        apply_ledger_delta(tenant.id, method, advance, day)
        return job

    job = run_in_transaction(_op)
    log.info("Service job %s saved for tenant %s (charge %d, advance %d)", job.job_number, tenant.id, total, advance)
    return job


def get_job(ctx: SessionContext, job_id: int) -> ServiceJob:
    job = db.session.query(ServiceJob).filter_by(id=job_id, tenant_id=ctx.tenant_id).first()
    if not job:
        raise DocumentNotFoundError(f"Service job {job_id} not found")
    return job


def list_jobs(ctx: SessionContext, include_completed: bool = False) -> list[ServiceJob]:
    query = db.session.query(ServiceJob).filter(ServiceJob.tenant_id == ctx.tenant_id)
    if not include_completed:
        query = query.filter(ServiceJob.status != STATUS_COMPLETED)
    return query.order_by(ServiceJob.id.desc()).all()


def add_job_items(ctx: SessionContext, job_id: int, items) -> ServiceJob:
    """
    Append billed items to a Pending job and raise its total charge.

    The advance is unchanged, so the balance grows by the items' subtotal.
    """
    load_tenant(ctx)
    lines = normalize_line_items(items)
    added = items_subtotal(lines)

    def _op() -> ServiceJob:
        job = lock_for_update(
            db.session.query(ServiceJob).filter_by(id=job_id, tenant_id=ctx.tenant_id)
        ).first()
        if not job:
            raise DocumentNotFoundError(f"Service job {job_id} not found")
        if job.status != STATUS_PENDING:
            raise ServiceJobError(
                f"Service job {job.job_number} is completed and cannot be changed",
                {"id": job.id, "status": job.status},
            )
        # Reassign rather than mutate so the JSON column is flagged dirty.
        job.billed_items = list(job.billed_items or []) + lines
        job.total_charge_cents = job.total_charge_cents + added
        db.session.flush()
        return job

    return run_in_transaction(_op)


def extend_job(ctx: SessionContext, job_id: int, job_complete_date) -> ServiceJob:
    """Move the promised completion date of a Pending job."""
    load_tenant(ctx)
    complete_by = _parse_complete_date(job_complete_date)
    if complete_by is None:
        raise ValidationError("job_complete_date is required")

    def _op() -> ServiceJob:
        job = lock_for_update(
            db.session.query(ServiceJob).filter_by(id=job_id, tenant_id=ctx.tenant_id)
        ).first()
        if not job:
            raise DocumentNotFoundError(f"Service job {job_id} not found")
        if job.status != STATUS_PENDING:
            raise ServiceJobError(
                f"Service job {job.job_number} is completed and cannot be extended",
                {"id": job.id, "status": job.status},
            )
        job.job_complete_date = complete_by
        db.session.flush()
        return job

    job = run_in_transaction(_op)
    log.info("Service job %s extended to %s for tenant %s", job.job_number, complete_by.isoformat(), ctx.tenant_id)
    return job


def complete_job(
    ctx: SessionContext,
    job_id: int,
    payment_method: str | None,
    now: datetime | None = None,
) -> ServiceJob:
    """Collect the balance and close the job; exactly once, like complete_order."""
    tenant = load_tenant(ctx)
    shift = resolve_shift(tenant, ctx)
    moment = now or utcnow()
    day = business_date(moment, tenant.timezone)

    def _op() -> ServiceJob:
        job = lock_for_update(
            db.session.query(ServiceJob).filter_by(id=job_id, tenant_id=tenant.id)
        ).first()
        if not job:
            raise DocumentNotFoundError(f"Service job {job_id} not found")
        if job.status != STATUS_PENDING:
            raise AlreadyCompletedError(f"Service job {job.job_number} is already completed", {"id": job.id})

        balance = job.balance_cents
        method = validate_collection_method(payment_method, balance)

        flip_to_completed(ServiceJob, job.id, tenant.id, moment)
        db.session.refresh(job)

        if job.linked_invoice_id:
            advance_invoice = db.session.get(Invoice, job.linked_invoice_id)
            if advance_invoice is not None:
                advance_invoice.status = STATUS_PAID

        if balance > 0:
            balance_invoice = Invoice(
                tenant_id=tenant.id,
                invoice_number=balance_document_number(job.job_number),
                kind=KIND_SERVICE,
                status=STATUS_PAID,
                customer_name=job.customer_name,
                customer_phone=job.customer_phone,
                items=[{"item_name": BALANCE_LINE_NAME, "quantity": 1, "price_cents": balance}],
                subtotal_cents=balance,
                total_cents=balance,
                received_cents=balance,
                tendered_cents=balance,
                payment_method=method,
                issued_by=ctx.staff,
                shift=shift,
                remarks=f"Balance for: {job.job_type}",
                business_date=day,
                created_at=moment,
                related_job_id=job.id,
            )
            db.session.add(balance_invoice)
            db.session.flush()
            job.balance_invoice_id = balance_invoice.id

            apply_ledger_delta(tenant.id, method, balance, day)

        db.session.flush()
        return job

    job = run_in_transaction(_op)
    log.info("Service job %s completed for tenant %s (balance %d)", job.job_number, tenant.id, job.balance_cents)
    return job


def delete_job(ctx: SessionContext, job_id: int) -> dict:
    """Delete a job with its advance and balance invoices, reversing both."""
    return reverse_and_delete(ctx, job_id=job_id)
