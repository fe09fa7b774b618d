# Overview: Pytest coverage for direct sales (invoice creation).

"""
Direct Sale Tests

Covers:
- Pricing: subtotal, Dine-in service charge, delivery charge
- Payment: cash change, short tender refused, card/online exact
- Credit customers: recorded as credit with no ledger effect
- Shift production: shift required and validated
- Preconditions leave no side effects
- Daily stats count paid direct sales, net of deletions
"""

from datetime import date, datetime

import pytest

from counterbook.extensions import db
from counterbook.models import Customer, DailyCounter, Invoice
from counterbook.services import invoice_service, ledger_service, order_service
from counterbook.services.invoice_service import service_charge_for
from counterbook.services.session_service import SessionContext
from counterbook.services.tenant_service import TenantAccessError
from counterbook.validation import ValidationError


NOW = datetime(2025, 1, 15, 6, 0)
DAY = date(2025, 1, 15)

TEA = {"item_name": "Tea", "quantity": 2, "price_cents": 15000}
CAKE = {"item_name": "Cake", "quantity": 1, "price_cents": 45000}


class TestCreateSale:

    def test_cash_sale_credits_wallet_and_stats(self, db_session, tenant, customer, session_ctx, wallet_balances, daily_totals):
        invoice = invoice_service.create_sale(
            session_ctx, customer.id, [TEA, CAKE], "Cash", tendered_cents=100000, now=NOW,
        )

        assert invoice.invoice_number == "INV-20250115-0001"
        assert invoice.subtotal_cents == 75000
        assert invoice.total_cents == 75000
        assert invoice.received_cents == 75000
        assert invoice.change_cents == 25000
        assert invoice.status == "Paid"
        assert invoice.issued_by == "cashier1"
        assert invoice.daily_order_number == 1
        assert invoice.business_date == DAY

        assert wallet_balances(tenant.id)["cash"] == 75000
        assert daily_totals(tenant.id, DAY) == {"total": 75000, "cash": 75000, "card": 0, "online": 0}

    def test_exact_cash_without_tender(self, db_session, customer, session_ctx):
        invoice = invoice_service.create_sale(session_ctx, customer.id, [TEA], "Cash", now=NOW)
        assert invoice.tendered_cents == 30000
        assert invoice.change_cents == 0

    def test_short_cash_tender_refused(self, db_session, tenant, customer, session_ctx, wallet_balances):
        with pytest.raises(ValidationError):
            invoice_service.create_sale(session_ctx, customer.id, [TEA], "Cash", tendered_cents=1000, now=NOW)

        assert db_session.query(Invoice).count() == 0
        assert wallet_balances(tenant.id)["cash"] == 0

    def test_card_sale_uses_card_wallet(self, db_session, tenant, customer, session_ctx, wallet_balances, daily_totals):
        invoice_service.create_sale(session_ctx, customer.id, [CAKE], "Card", now=NOW)

        assert wallet_balances(tenant.id) == {"cash": 0, "card": 45000, "online": 0}
        assert daily_totals(tenant.id, DAY)["card"] == 45000

    def test_dine_in_adds_service_charge(self, db_session, customer, session_ctx):
        invoice = invoice_service.create_sale(
            session_ctx, customer.id, [TEA], "Online", order_type="Dine-in", now=NOW,
        )
        assert invoice.service_charge_cents == 3000
        assert invoice.total_cents == 33000
        assert invoice.received_cents == 33000

    def test_take_away_has_no_service_charge(self, db_session, customer, session_ctx):
        invoice = invoice_service.create_sale(session_ctx, customer.id, [TEA], "Cash", now=NOW)
        assert invoice.service_charge_cents == 0

    def test_delivery_charge_added_to_total(self, db_session, customer, session_ctx):
        invoice = invoice_service.create_sale(
            session_ctx, customer.id, [TEA], "Cash", delivery_charge_cents=25000, now=NOW,
        )
        assert invoice.total_cents == 55000

    def test_service_charge_rounds_half_up(self):
        assert service_charge_for(105, 1000) == 11
        assert service_charge_for(104, 1000) == 10
        assert service_charge_for(5000, 0) == 0

    def test_daily_order_number_increments(self, db_session, customer, session_ctx):
        first = invoice_service.create_sale(session_ctx, customer.id, [TEA], "Cash", now=NOW)
        second = invoice_service.create_sale(session_ctx, customer.id, [TEA], "Cash", now=NOW)
        assert (first.daily_order_number, second.daily_order_number) == (1, 2)
        assert second.invoice_number == "INV-20250115-0002"


class TestCreditCustomer:

    def test_credit_sale_has_no_ledger_effect(self, db_session, tenant, credit_customer, session_ctx, wallet_balances, daily_totals):
        invoice = invoice_service.create_sale(session_ctx, credit_customer.id, [CAKE], "Cash", now=NOW)

        assert invoice.payment_method == "Credit"
        assert invoice.status == "Credit"
        assert invoice.received_cents == 0
        assert invoice.total_cents == 45000
        assert wallet_balances(tenant.id) == {"cash": 0, "card": 0, "online": 0}
        assert daily_totals(tenant.id, DAY)["total"] == 0

    def test_credit_method_refused_for_regular_customer(self, db_session, customer, session_ctx):
        with pytest.raises(ValidationError):
            invoice_service.create_sale(session_ctx, customer.id, [TEA], "Credit", now=NOW)


class TestPreconditions:

    def test_missing_customer(self, db_session, session_ctx):
        with pytest.raises(ValidationError):
            invoice_service.create_sale(session_ctx, None, [TEA], "Cash", now=NOW)

    def test_customer_of_other_tenant(self, db_session, customer, other_tenant):
        ctx = SessionContext(tenant_id=other_tenant.id)
        with pytest.raises(ValidationError):
            invoice_service.create_sale(ctx, customer.id, [TEA], "Cash", now=NOW)

    def test_empty_cart(self, db_session, customer, session_ctx):
        with pytest.raises(ValidationError):
            invoice_service.create_sale(session_ctx, customer.id, [], "Cash", now=NOW)

    def test_fractional_price_rejected(self, db_session, customer, session_ctx):
        with pytest.raises(ValidationError):
            invoice_service.create_sale(
                session_ctx, customer.id, [{"item_name": "Tea", "quantity": 1, "price_cents": 12.5}], "Cash", now=NOW,
            )

    def test_unknown_payment_method(self, db_session, customer, session_ctx):
        with pytest.raises(ValidationError):
            invoice_service.create_sale(session_ctx, customer.id, [TEA], "Bitcoin", now=NOW)

    def test_rejected_sale_consumes_no_number(self, db_session, customer, session_ctx):
        with pytest.raises(ValidationError):
            invoice_service.create_sale(session_ctx, customer.id, [], "Cash", now=NOW)
        assert db_session.query(DailyCounter).count() == 0

    def test_inactive_tenant_refused(self, db_session, tenant, customer, session_ctx):
        tenant.is_active = False
        db_session.commit()
        with pytest.raises(TenantAccessError):
            invoice_service.create_sale(session_ctx, customer.id, [TEA], "Cash", now=NOW)


class TestShiftProduction:

    @pytest.fixture
    def shift_customer(self, db_session, shift_tenant):
        cust = Customer(tenant_id=shift_tenant.id, name="Regular")
        db_session.add(cust)
        db_session.commit()
        return cust

    def test_shift_required(self, db_session, shift_tenant, shift_customer):
        ctx = SessionContext(tenant_id=shift_tenant.id, staff="baker")
        with pytest.raises(ValidationError):
            invoice_service.create_sale(ctx, shift_customer.id, [TEA], "Cash", now=NOW)

    def test_unknown_shift_refused(self, db_session, shift_tenant, shift_customer):
        ctx = SessionContext(tenant_id=shift_tenant.id, staff="baker", shift="Night")
        with pytest.raises(ValidationError):
            invoice_service.create_sale(ctx, shift_customer.id, [TEA], "Cash", now=NOW)

    def test_selected_shift_recorded(self, db_session, shift_tenant, shift_customer):
        ctx = SessionContext(tenant_id=shift_tenant.id, staff="baker", shift="Morning")
        invoice = invoice_service.create_sale(ctx, shift_customer.id, [TEA], "Cash", now=NOW)
        assert invoice.shift == "Morning"


class TestDailyInvoiceCount:

    def _count(self, tenant_id, day=DAY):
        db.session.expire_all()
        stats = ledger_service.get_daily_stats(tenant_id, day)
        return stats.invoice_count if stats else 0

    def test_paid_sales_counted(self, db_session, tenant, customer, session_ctx):
        invoice_service.create_sale(session_ctx, customer.id, [TEA], "Cash", now=NOW)
        invoice_service.create_sale(session_ctx, customer.id, [CAKE], "Card", now=NOW)
        assert self._count(tenant.id) == 2

    def test_deleted_sale_uncounted(self, db_session, tenant, customer, session_ctx):
        first = invoice_service.create_sale(session_ctx, customer.id, [TEA], "Cash", now=NOW)
        invoice_service.create_sale(session_ctx, customer.id, [CAKE], "Cash", now=NOW)

        invoice_service.delete_invoice(session_ctx, first.id)

        assert self._count(tenant.id) == 1

    def test_credit_sale_not_counted(self, db_session, tenant, credit_customer, session_ctx):
        invoice = invoice_service.create_sale(session_ctx, credit_customer.id, [CAKE], "Cash", now=NOW)
        assert self._count(tenant.id) == 0

        invoice_service.delete_invoice(session_ctx, invoice.id)
        assert self._count(tenant.id) == 0

    def test_order_advance_not_counted(self, db_session, tenant, session_ctx, daily_totals):
        order_service.create_order(
            session_ctx,
            customer_name="Nimal",
            customer_phone=None,
            items=[CAKE],
            advance_cents=10000,
            payment_method="Cash",
            now=NOW,
        )
        assert daily_totals(tenant.id, DAY)["total"] == 10000
        assert self._count(tenant.id) == 0
