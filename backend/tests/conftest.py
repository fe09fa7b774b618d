"""
Pytest fixtures for Counterbook backend tests.

Provides test database setup, tenant/customer fixtures, session contexts and
test client.
"""

import pytest
from counterbook import create_app
from counterbook.extensions import db
from counterbook.models import Customer, Tenant, WalletAccount
from counterbook.services import ledger_service
from counterbook.services.session_service import SessionContext


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'TRANSACTION_RETRY_BACKOFF': 0.01,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


def _make_tenant(db_session, **kwargs) -> Tenant:
    tenant = Tenant(**kwargs)
    db_session.add(tenant)
    db_session.flush()
    for method in ledger_service.WALLET_METHODS:
        db_session.add(WalletAccount(tenant_id=tenant.id, method=method, balance_cents=0))
    db_session.commit()
    return tenant


@pytest.fixture(scope='function')
def tenant(db_session):
    """Tenant T: no shifts, no delivery, 10% Dine-in service charge."""
    return _make_tenant(
        db_session,
        name="Tenant T - Cafe Lanka",
        code="CAFE",
        is_active=True,
        production_shifts=[],
        service_charge_bps=1000,
    )


@pytest.fixture(scope='function')
def other_tenant(db_session):
    return _make_tenant(db_session, name="Tenant U - Bakery", code="BAKE", is_active=True, production_shifts=[])


@pytest.fixture(scope='function')
def shift_tenant(db_session):
    """Tenant that tracks production by shift and offers delivery."""
    return _make_tenant(
        db_session,
        name="Tenant S - Shift Kitchen",
        code="SHIFT",
        is_active=True,
        use_shift_production=True,
        production_shifts=["Morning", "Evening"],
        offer_delivery=True,
    )


@pytest.fixture(scope='function')
def customer(db_session, tenant):
    cust = Customer(tenant_id=tenant.id, name="Walk-in Customer", phone="0771234567")
    db_session.add(cust)
    db_session.commit()
    return cust


@pytest.fixture(scope='function')
def credit_customer(db_session, tenant):
    cust = Customer(tenant_id=tenant.id, name="Hotel Galle", is_credit_customer=True)
    db_session.add(cust)
    db_session.commit()
    return cust


@pytest.fixture(scope='function')
def session_ctx(tenant):
    return SessionContext(tenant_id=tenant.id, staff="cashier1")


@pytest.fixture(scope='function')
def wallet_balances(db_session):
    """Fresh wallet balances (bypasses stale identity-map rows)."""
    def _read(tenant_id: int) -> dict:
        db.session.expire_all()
        return ledger_service.get_wallet_balances(tenant_id)
    return _read


@pytest.fixture(scope='function')
def daily_totals(db_session):
    """Fresh daily stats for a day as a dict of cents (zeros when absent)."""
    def _read(tenant_id: int, day) -> dict:
        db.session.expire_all()
        stats = ledger_service.get_daily_stats(tenant_id, day)
        if stats is None:
            return {"total": 0, "cash": 0, "card": 0, "online": 0}
        return {
            "total": stats.total_sales_cents,
            "cash": stats.total_sales_cash_cents,
            "card": stats.total_sales_card_cents,
            "online": stats.total_sales_online_cents,
        }
    return _read


@pytest.fixture(scope='function')
def headers(tenant):
    """Session headers for tenant T."""
    return {"X-Tenant-Id": str(tenant.id), "X-Staff-User": "cashier1"}
