# Overview: Reconciliation lock oracle; answers whether a document has been closed by cash-book reconciliation.

from __future__ import annotations

import logging
from datetime import date

from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..models import ReconciliationLock


log = logging.getLogger(__name__)


class DocumentLockedError(Exception):
    """Raised when a mutation targets a document locked by reconciliation."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


class LockCheckError(Exception):
    """
    Raised when the lock state cannot be determined.

    Fail-closed: an unknown lock state refuses the mutation rather than
    risking a change to a reconciled day.
    """
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


def document_key(doc) -> str:
    """Lock key of a document ("invoices/12"); plain strings pass through."""
    if isinstance(doc, str):
        return doc
    key = getattr(doc, "lock_key", None)
    if not key:
        raise LockCheckError(f"{doc!r} has no lock key")
    return key


def locked_ids(tenant_id: int, lock_date: date) -> set[str]:
    """
    Document keys locked for one business date.

    No record means nothing is locked. A record whose locked_ids is not a
    list of strings is treated as unreadable.
    """
    try:
        record = (
            db.session.query(ReconciliationLock)
            .filter_by(tenant_id=tenant_id, lock_date=lock_date)
            .first()
        )
    except SQLAlchemyError as exc:
        log.error("Reconciliation lock lookup failed for tenant %s on %s", tenant_id, lock_date)
        raise LockCheckError(
            "Could not verify reconciliation status",
            {"tenant_id": tenant_id, "date": lock_date.isoformat()},
        ) from exc

    if record is None:
        return set()

    ids = record.locked_ids
    if ids is None:
        return set()
    if not isinstance(ids, list) or not all(isinstance(item, str) for item in ids):
        log.error("Malformed reconciliation lock record %s for tenant %s", record.id, tenant_id)
        raise LockCheckError(
            "Reconciliation record is unreadable",
            {"tenant_id": tenant_id, "date": lock_date.isoformat()},
        )
    return set(ids)


def is_locked(tenant_id: int, doc, business_date: date) -> bool:
    return document_key(doc) in locked_ids(tenant_id, business_date)


def ensure_unlocked(tenant_id: int, doc, business_date: date) -> None:
    """Raise DocumentLockedError if doc is locked on its business date."""
    key = document_key(doc)
    if key in locked_ids(tenant_id, business_date):
        raise DocumentLockedError(
            "This document has been reconciled and cannot be changed",
            {"document": key, "date": business_date.isoformat()},
        )
