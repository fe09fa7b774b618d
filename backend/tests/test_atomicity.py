# Overview: Pytest coverage for all-or-nothing units, conflict retry and ledger balance.

"""
Atomicity Tests

A failure anywhere inside a unit must leave no document, no consumed number
and no ledger movement behind; a retried conflict must book exactly once.
"""

from datetime import date, datetime

import pytest
from sqlalchemy.orm.exc import StaleDataError

from counterbook.models import DailyCounter, DailyStatsEntry, Invoice, Order
from counterbook.services import invoice_service, ledger_service, order_service, service_job_service
from counterbook.services.concurrency import run_with_retry


NOW = datetime(2025, 1, 15, 6, 0)
NEXT_DAY = datetime(2025, 1, 16, 6, 0)
DAY = date(2025, 1, 15)

TEA = {"item_name": "Tea", "quantity": 2, "price_cents": 15000}


def test_ledger_failure_rolls_back_sale(db_session, tenant, customer, session_ctx, wallet_balances, monkeypatch):
    real_apply = ledger_service.apply_ledger_delta

    def _apply_then_fail(*args, **kwargs):
        real_apply(*args, **kwargs)
        raise RuntimeError("stats write failed")

    monkeypatch.setattr(invoice_service, "apply_ledger_delta", _apply_then_fail)

    with pytest.raises(RuntimeError):
        invoice_service.create_sale(session_ctx, customer.id, [TEA], "Cash", now=NOW)

    assert db_session.query(Invoice).count() == 0
    assert db_session.query(DailyCounter).count() == 0
    assert db_session.query(DailyStatsEntry).count() == 0
    assert wallet_balances(tenant.id)["cash"] == 0

    monkeypatch.undo()
    invoice = invoice_service.create_sale(session_ctx, customer.id, [TEA], "Cash", now=NOW)
    assert invoice.invoice_number == "INV-20250115-0001"


def test_ledger_failure_rolls_back_order(db_session, tenant, session_ctx, wallet_balances, monkeypatch):
    def _fail(*args, **kwargs):
        raise RuntimeError("wallet write failed")

    monkeypatch.setattr(order_service, "apply_ledger_delta", _fail)

    with pytest.raises(RuntimeError):
        order_service.create_order(session_ctx, "Nimal", None, [TEA], 10000, "Cash", now=NOW)

    assert db_session.query(Order).count() == 0
    assert db_session.query(Invoice).count() == 0
    assert wallet_balances(tenant.id)["cash"] == 0


def test_failed_completion_leaves_order_pending(db_session, tenant, session_ctx, wallet_balances, monkeypatch):
    order = order_service.create_order(session_ctx, "Nimal", None, [TEA], 10000, "Cash", now=NOW)
    order_id = order.id

    def _fail(*args, **kwargs):
        raise RuntimeError("wallet write failed")

    monkeypatch.setattr(order_service, "apply_ledger_delta", _fail)
    with pytest.raises(RuntimeError):
        order_service.complete_order(session_ctx, order_id, "Card", now=NEXT_DAY)
    monkeypatch.undo()

    assert order_service.get_order(session_ctx, order_id).status == "Pending"
    assert db_session.query(Invoice).count() == 1

    completed = order_service.complete_order(session_ctx, order_id, "Card", now=NEXT_DAY)
    assert completed.status == "Completed"
    assert wallet_balances(tenant.id) == {"cash": 10000, "card": 20000, "online": 0}


def test_conflict_is_retried_and_booked_once(db_session, tenant, customer, session_ctx, wallet_balances, daily_totals, monkeypatch):
    real_apply = ledger_service.apply_ledger_delta
    calls = {"n": 0}

    def _conflict_once(*args, **kwargs):
        calls["n"] += 1
        if calls["n"] == 1:
            raise StaleDataError("wallet row changed underneath")
        return real_apply(*args, **kwargs)

    monkeypatch.setattr(invoice_service, "apply_ledger_delta", _conflict_once)

    invoice = invoice_service.create_sale(session_ctx, customer.id, [TEA], "Cash", now=NOW)

    assert calls["n"] == 2
    assert invoice.invoice_number == "INV-20250115-0001"
    assert db_session.query(Invoice).count() == 1
    assert wallet_balances(tenant.id)["cash"] == 30000
    assert daily_totals(tenant.id, DAY)["total"] == 30000


def test_run_with_retry_gives_up(db_session):
    calls = {"n": 0}

    def _always_conflicts():
        calls["n"] += 1
        raise StaleDataError("conflict")

    with pytest.raises(StaleDataError):
        run_with_retry(_always_conflicts, attempts=3, backoff_base=0)
    assert calls["n"] == 3


def test_wallets_match_daily_stats(db_session, tenant, customer, credit_customer, session_ctx, wallet_balances, daily_totals):
    """Without returns, wallet balances equal the sum of per-day stats."""
    invoice_service.create_sale(session_ctx, customer.id, [TEA], "Cash", now=NOW)
    invoice_service.create_sale(session_ctx, customer.id, [TEA], "Online", order_type="Dine-in", now=NOW)
    invoice_service.create_sale(session_ctx, credit_customer.id, [TEA], "Cash", now=NOW)
    order = order_service.create_order(session_ctx, "Nimal", None, [TEA], 5000, "Card", now=NOW)
    order_service.complete_order(session_ctx, order.id, "Cash", now=NEXT_DAY)
    job = service_job_service.create_job(session_ctx, "Kamal", None, "Repair", 20000, 0, None, now=NOW)
    service_job_service.complete_job(session_ctx, job.id, "Online", now=NEXT_DAY)
    doomed = invoice_service.create_sale(session_ctx, customer.id, [TEA], "Card", now=NEXT_DAY)
    invoice_service.delete_invoice(session_ctx, doomed.id)

    balances = wallet_balances(tenant.id)
    day_1 = daily_totals(tenant.id, DAY)
    day_2 = daily_totals(tenant.id, date(2025, 1, 16))

    for method in ("cash", "card", "online"):
        assert balances[method] == day_1[method] + day_2[method]
    for day in (day_1, day_2):
        assert day["total"] == day["cash"] + day["card"] + day["online"]
    assert sum(balances.values()) == 30000 + 33000 + 30000 + 20000
