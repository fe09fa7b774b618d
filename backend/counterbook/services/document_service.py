# Overview: Sequence allocator for per-day document numbers (INV/ORD/SRV/RET) and daily order numbers.

from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from ..extensions import db
from ..models import DailyCounter
from ..models.documents import STATUS_COMPLETED, STATUS_PENDING
from ..time_utils import business_date, date_key as make_date_key


log = logging.getLogger(__name__)

COUNTER_INVOICE = "invoice"
COUNTER_SERVICE = "service"
COUNTER_RETURN = "return"
COUNTER_DAILY_ORDER = "daily_order"

# INV and ORD draw from one shared sequence, so an order number never
# collides with a sale number of the same day.
PREFIX_COUNTERS = {
    "INV": COUNTER_INVOICE,
    "ORD": COUNTER_INVOICE,
    "SRV": COUNTER_SERVICE,
    "RET": COUNTER_RETURN,
}

SEQUENCE_PAD = 4
BALANCE_SUFFIX = "_BAL"
PROVISIONAL_ERROR_SEQ = "ERR"


class DocumentSequenceError(Exception):
    """Raised when document sequence operations fail."""
    pass


class DocumentNotFoundError(LookupError):
    """Raised when a document id does not resolve within the tenant."""
    pass


class AlreadyCompletedError(Exception):
    """Raised when a Pending -> Completed transition finds the document already Completed."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


def counter_for_prefix(prefix: str) -> str:
    try:
        return PREFIX_COUNTERS[prefix]
    except KeyError:
        raise DocumentSequenceError(f"Unknown document prefix: {prefix!r}")


def format_document_number(prefix: str, date_key: str, seq: int) -> str:
    return f"{prefix}-{date_key}-{seq:0{SEQUENCE_PAD}d}"


def balance_document_number(number: str) -> str:
    """Number of the balance invoice that settles an order or job."""
    return f"{number}{BALANCE_SUFFIX}"


def _read_counter(tenant_id: int, counter_name: str, date_key: str) -> int | None:
    return (
        db.session.query(DailyCounter.value)
        .filter_by(tenant_id=tenant_id, counter_name=counter_name, date_key=date_key)
        .scalar()
    )


def next_sequence(tenant_id: int, counter_name: str, date_key: str) -> int:
    """
    Atomically increment a daily counter and return the new value.

    Must run inside the caller's transaction (see concurrency.run_in_transaction):
    the increment is only visible, and only consumed, if that transaction
    commits. The UPDATE takes the row write lock, so two concurrent callers
    can never read back the same value.
    """
    if not tenant_id:
        raise DocumentSequenceError("tenant_id is required")
    if not counter_name:
        raise DocumentSequenceError("counter_name is required")
    if not date_key:
        raise DocumentSequenceError("date_key is required")

    stmt = (
        update(DailyCounter)
        .where(
            DailyCounter.tenant_id == tenant_id,
            DailyCounter.counter_name == counter_name,
            DailyCounter.date_key == date_key,
        )
        .values(value=DailyCounter.value + 1)
        .execution_options(synchronize_session=False)
    )

    result = db.session.execute(stmt)
    if result.rowcount:
        return _read_counter(tenant_id, counter_name, date_key)

    # First number of the day: create the row. A concurrent creator wins the
    # unique constraint; fall back to incrementing its row.
    try:
        with db.session.begin_nested():
            db.session.add(DailyCounter(
                tenant_id=tenant_id,
                counter_name=counter_name,
                date_key=date_key,
                value=1,
            ))
        return 1
    except IntegrityError:
        result = db.session.execute(stmt)
        if not result.rowcount:
            raise DocumentSequenceError(
                f"Counter {counter_name}/{date_key} could not be allocated"
            )
        return _read_counter(tenant_id, counter_name, date_key)


def allocate_document_number(tenant_id: int, prefix: str, date_key: str) -> str:
    """Consume the next number for prefix on date_key, e.g. INV-20250115-0007."""
    seq = next_sequence(tenant_id, counter_for_prefix(prefix), date_key)
    return format_document_number(prefix, date_key, seq)


def next_daily_order_number(tenant_id: int, date_key: str) -> int:
    """Kitchen/daily order number printed on direct sales."""
    return next_sequence(tenant_id, COUNTER_DAILY_ORDER, date_key)


def provisional_document_number(
    tenant_id: int,
    prefix: str,
    now: datetime | None = None,
    tz_name: str | None = None,
) -> str:
    """
    Preview the number the next document would probably get.

    Read-only and advisory: a concurrent sale may take it first, and the
    committed number is allocated inside the save transaction. When the
    counter cannot be read the preview degrades to PREFIX-YYYYMMDD-ERR, which
    is never persisted.
    """
    counter_name = counter_for_prefix(prefix)
    key = make_date_key(business_date(now, tz_name))
    try:
        current = _read_counter(tenant_id, counter_name, key) or 0
    except SQLAlchemyError:
        db.session.rollback()
        log.warning("Provisional number lookup failed for tenant %s (%s)", tenant_id, prefix, exc_info=True)
        return f"{prefix}-{key}-{PROVISIONAL_ERROR_SEQ}"
    return format_document_number(prefix, key, current + 1)


def flip_to_completed(model, doc_id: int, tenant_id: int, completed_at: datetime) -> None:
    """
    Conditionally move an Order/ServiceJob from Pending to Completed.

    The WHERE status='Pending' guard makes the transition happen exactly once:
    a second completion racing this one matches no row and is refused, so the
    balance can never be credited twice.
    """
    stmt = (
        update(model)
        .where(
            model.id == doc_id,
            model.tenant_id == tenant_id,
            model.status == STATUS_PENDING,
        )
        .values(status=STATUS_COMPLETED, completed_at=completed_at)
        .execution_options(synchronize_session=False)
    )
    result = db.session.execute(stmt)
    if result.rowcount != 1:
        raise AlreadyCompletedError(
            f"{model.__name__} {doc_id} is already completed",
            {"id": doc_id},
        )
