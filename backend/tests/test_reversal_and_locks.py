# Overview: Pytest coverage for reversal/deletion and the reconciliation lock oracle.

"""
Reversal and Reconciliation Lock Tests

Covers:
- Deletion reverses on the invoice's original business date
- Credit invoices have no ledger footprint to reverse
- Locked documents refuse deletion with no writes at all
- Unreadable lock state fails closed
- Missing linked invoices are skipped
"""

from datetime import date, datetime
from types import SimpleNamespace

import pytest
from sqlalchemy.exc import OperationalError

from counterbook.extensions import db
from counterbook.models import Invoice, Order, ReconciliationLock
from counterbook.services import invoice_service, lock_service, order_service, return_service
from counterbook.services.document_service import DocumentNotFoundError
from counterbook.services.lock_service import DocumentLockedError, LockCheckError


NOW = datetime(2025, 1, 15, 6, 0)
NEXT_DAY = datetime(2025, 1, 16, 6, 0)
DAY = date(2025, 1, 15)
DAY_2 = date(2025, 1, 16)

TEA = {"item_name": "Tea", "quantity": 2, "price_cents": 15000}


def _lock(db_session, tenant_id, day, keys):
    db_session.add(ReconciliationLock(tenant_id=tenant_id, lock_date=day, locked_ids=keys))
    db_session.commit()


def _sale(ctx, customer, method="Cash", now=NOW):
    return invoice_service.create_sale(ctx, customer.id, [TEA], method, now=now)


class TestInvoiceReversal:

    def test_delete_reverses_original_day(self, db_session, tenant, customer, session_ctx, wallet_balances, daily_totals):
        sale = _sale(session_ctx, customer)
        _sale(session_ctx, customer, now=NEXT_DAY)

        sale_id = sale.id
        summary = invoice_service.delete_invoice(session_ctx, sale_id)

        assert summary["deleted_invoice_ids"] == [sale_id]
        assert summary["reversed_cents"] == 30000
        assert wallet_balances(tenant.id)["cash"] == 30000
        assert daily_totals(tenant.id, DAY)["total"] == 0
        assert daily_totals(tenant.id, DAY_2)["total"] == 30000

    def test_credit_invoice_deletes_without_ledger_change(self, db_session, tenant, credit_customer, session_ctx, wallet_balances):
        sale = _sale(session_ctx, credit_customer)

        summary = invoice_service.delete_invoice(session_ctx, sale.id)

        assert summary["reversed_cents"] == 0
        assert wallet_balances(tenant.id) == {"cash": 0, "card": 0, "online": 0}
        assert db_session.query(Invoice).count() == 0

    def test_unknown_invoice(self, db_session, session_ctx):
        with pytest.raises(DocumentNotFoundError):
            invoice_service.delete_invoice(session_ctx, 424242)

    def test_missing_linked_invoice_is_skipped(self, db_session, tenant, session_ctx, wallet_balances):
        order = order_service.create_order(
            session_ctx, "Nimal", None, [TEA], 10000, "Cash", now=NOW,
        )
        db.session.expire_all()
        stored = db.session.get(Order, order.id)
        stored.balance_invoice_id = 987654
        db.session.commit()

        summary = order_service.delete_order(session_ctx, order.id)

        assert summary["skipped_invoice_ids"] == [987654]
        assert summary["reversed_cents"] == 10000
        assert wallet_balances(tenant.id)["cash"] == 0


class TestReconciliationLocks:

    def test_locked_invoice_refuses_delete(self, db_session, tenant, customer, session_ctx, wallet_balances, daily_totals):
        sale = _sale(session_ctx, customer)
        _lock(db_session, tenant.id, DAY, [sale.lock_key])

        with pytest.raises(DocumentLockedError) as exc_info:
            invoice_service.delete_invoice(session_ctx, sale.id)

        assert exc_info.value.details["document"] == f"invoices/{sale.id}"
        assert db_session.query(Invoice).count() == 1
        assert wallet_balances(tenant.id)["cash"] == 30000
        assert daily_totals(tenant.id, DAY)["total"] == 30000

    def test_lock_on_other_day_does_not_apply(self, db_session, tenant, customer, session_ctx):
        sale = _sale(session_ctx, customer)
        _lock(db_session, tenant.id, DAY_2, [sale.lock_key])

        invoice_service.delete_invoice(session_ctx, sale.id)
        assert db_session.query(Invoice).count() == 0

    def test_locked_balance_invoice_blocks_whole_order(self, db_session, tenant, session_ctx, wallet_balances):
        order = order_service.create_order(session_ctx, "Nimal", None, [TEA], 10000, "Cash", now=NOW)
        completed = order_service.complete_order(session_ctx, order.id, "Card", now=NEXT_DAY)
        _lock(db_session, tenant.id, DAY_2, [f"invoices/{completed.balance_invoice_id}"])

        with pytest.raises(DocumentLockedError):
            order_service.delete_order(session_ctx, order.id)

        assert db_session.query(Order).count() == 1
        assert db_session.query(Invoice).count() == 2
        assert wallet_balances(tenant.id) == {"cash": 10000, "card": 20000, "online": 0}

    def test_locked_order_refuses_delete(self, db_session, tenant, session_ctx):
        order = order_service.create_order(session_ctx, "Nimal", None, [TEA], 10000, "Cash", now=NOW)
        _lock(db_session, tenant.id, DAY, [f"orders/{order.id}"])

        with pytest.raises(DocumentLockedError):
            order_service.delete_order(session_ctx, order.id)

    def test_malformed_record_fails_closed(self, db_session, tenant, customer, session_ctx):
        sale = _sale(session_ctx, customer)
        _lock(db_session, tenant.id, DAY, [sale.id])

        with pytest.raises(LockCheckError):
            invoice_service.delete_invoice(session_ctx, sale.id)
        assert db_session.query(Invoice).count() == 1

    def test_unreadable_lock_store_fails_closed(self, db_session, tenant, customer, session_ctx, wallet_balances, monkeypatch):
        sale = _sale(session_ctx, customer)

        class _BrokenSession:
            def query(self, *args, **kwargs):
                raise OperationalError("SELECT reconciliation_locks", {}, Exception("disk I/O error"))

        monkeypatch.setattr(lock_service, "db", SimpleNamespace(session=_BrokenSession()))

        with pytest.raises(LockCheckError):
            invoice_service.delete_invoice(session_ctx, sale.id)

        monkeypatch.undo()
        assert db_session.query(Invoice).count() == 1
        assert wallet_balances(tenant.id)["cash"] == 30000

    def test_other_tenant_lock_is_ignored(self, db_session, tenant, other_tenant, customer, session_ctx):
        sale = _sale(session_ctx, customer)
        _lock(db_session, other_tenant.id, DAY, [sale.lock_key])

        assert not lock_service.is_locked(tenant.id, sale, DAY)
        assert lock_service.is_locked(other_tenant.id, sale, DAY)

    def test_no_record_means_unlocked(self, db_session, tenant):
        assert lock_service.locked_ids(tenant.id, DAY) == set()
        assert not lock_service.is_locked(tenant.id, "invoices/1", DAY)

    def test_locked_return_cannot_be_undone(self, db_session, tenant, customer, session_ctx, wallet_balances):
        sale = _sale(session_ctx, customer)
        ret = return_service.process_return(
            session_ctx, sale.id, [{"item_name": "Tea", "quantity": 1}], "Cash", now=NOW,
        )
        _lock(db_session, tenant.id, DAY, [ret.lock_key])

        with pytest.raises(DocumentLockedError):
            return_service.undo_return(session_ctx, ret.id)
        assert wallet_balances(tenant.id)["cash"] == 15000
