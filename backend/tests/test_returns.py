# Overview: Pytest coverage for customer returns and their undo.

from datetime import date, datetime

import pytest

from counterbook.models import Invoice, SalesReturn
from counterbook.services import invoice_service, order_service, return_service
from counterbook.services.document_service import DocumentNotFoundError
from counterbook.services.return_service import InsufficientFundsError, ReturnError
from counterbook.validation import ValidationError


NOW = datetime(2025, 1, 15, 6, 0)
DAY = date(2025, 1, 15)

TEA = {"item_name": "Tea", "quantity": 3, "price_cents": 15000}
CAKE = {"item_name": "Cake", "quantity": 1, "price_cents": 45000}


@pytest.fixture
def sale(db_session, customer, session_ctx):
    return invoice_service.create_sale(session_ctx, customer.id, [TEA, CAKE], "Cash", now=NOW)


def test_return_refunds_wallet_but_not_stats(db_session, tenant, sale, session_ctx, wallet_balances, daily_totals):
    ret = return_service.process_return(
        session_ctx, sale.id, [{"item_name": "Tea", "quantity": 2}], "Cash", now=NOW,
    )

    assert ret.return_number == "RET-20250115-0001"
    assert ret.refund_cents == 30000
    assert ret.items == [{"item_name": "Tea", "quantity": 2, "price_cents": 15000}]
    assert ret.original_invoice_number == "INV-20250115-0001"
    assert ret.processed_by == "cashier1"

    assert wallet_balances(tenant.id)["cash"] == 60000
    assert daily_totals(tenant.id, DAY)["total"] == 90000


def test_cannot_return_more_than_sold(db_session, sale, session_ctx):
    return_service.process_return(session_ctx, sale.id, [{"item_name": "Tea", "quantity": 2}], "Cash", now=NOW)

    with pytest.raises(ReturnError) as exc_info:
        return_service.process_return(session_ctx, sale.id, [{"item_name": "Tea", "quantity": 2}], "Cash", now=NOW)
    assert exc_info.value.details["remaining"] == 1


def test_item_not_on_invoice(db_session, sale, session_ctx):
    with pytest.raises(ReturnError):
        return_service.process_return(session_ctx, sale.id, [{"item_name": "Coffee", "quantity": 1}], "Cash", now=NOW)


def test_insufficient_wallet_funds(db_session, tenant, sale, session_ctx, wallet_balances):
    with pytest.raises(InsufficientFundsError) as exc_info:
        return_service.process_return(session_ctx, sale.id, [{"item_name": "Cake", "quantity": 1}], "Card", now=NOW)

    assert exc_info.value.details["available_cents"] == 0
    assert db_session.query(SalesReturn).count() == 0
    assert wallet_balances(tenant.id)["card"] == 0


def test_credit_refund_method_refused(db_session, sale, session_ctx):
    with pytest.raises(ValidationError):
        return_service.process_return(session_ctx, sale.id, [{"item_name": "Tea", "quantity": 1}], "Credit", now=NOW)


def test_unknown_invoice(db_session, session_ctx):
    with pytest.raises(DocumentNotFoundError):
        return_service.process_return(session_ctx, 31337, [{"item_name": "Tea", "quantity": 1}], "Cash", now=NOW)


def test_undo_return_restores_wallet(db_session, tenant, sale, session_ctx, wallet_balances):
    ret = return_service.process_return(session_ctx, sale.id, [{"item_name": "Cake", "quantity": 1}], "Cash", now=NOW)
    ret_id = ret.id

    summary = return_service.undo_return(session_ctx, ret_id)

    assert summary == {"deleted_return_id": ret_id, "return_number": "RET-20250115-0001", "restored_cents": 45000}
    assert wallet_balances(tenant.id)["cash"] == 90000
    assert db_session.query(SalesReturn).count() == 0

    # The undone quantity can be returned again.
    again = return_service.process_return(session_ctx, sale.id, [{"item_name": "Cake", "quantity": 1}], "Cash", now=NOW)
    assert again.return_number == "RET-20250115-0002"


def test_order_advance_invoice_not_returnable(db_session, tenant, session_ctx, wallet_balances):
    order = order_service.create_order(session_ctx, "Nimal", None, [CAKE], 10000, "Cash", now=NOW)

    with pytest.raises(ReturnError) as exc_info:
        return_service.process_return(
            session_ctx, order.linked_invoice_id, [{"item_name": "Cake", "quantity": 1}], "Cash", now=NOW,
        )

    assert exc_info.value.details["kind"] == "ORDER"
    assert wallet_balances(tenant.id)["cash"] == 10000
    assert db_session.query(SalesReturn).count() == 0


def test_credit_invoice_not_returnable(db_session, tenant, credit_customer, sale, session_ctx, wallet_balances):
    credit_sale = invoice_service.create_sale(session_ctx, credit_customer.id, [CAKE], "Cash", now=NOW)

    with pytest.raises(ReturnError) as exc_info:
        return_service.process_return(session_ctx, credit_sale.id, [{"item_name": "Cake", "quantity": 1}], "Cash", now=NOW)

    assert exc_info.value.details["status"] == "Credit"
    assert wallet_balances(tenant.id)["cash"] == 90000


def test_refunds_capped_at_amount_received(db_session, tenant, sale, session_ctx, wallet_balances):
    stored = db_session.get(Invoice, sale.id)
    stored.received_cents = 50000
    db_session.commit()

    return_service.process_return(session_ctx, sale.id, [{"item_name": "Cake", "quantity": 1}], "Cash", now=NOW)

    with pytest.raises(ReturnError) as exc_info:
        return_service.process_return(session_ctx, sale.id, [{"item_name": "Tea", "quantity": 1}], "Cash", now=NOW)

    assert exc_info.value.details["already_refunded_cents"] == 45000
    assert wallet_balances(tenant.id)["cash"] == 45000
