# Overview: Pytest coverage for the flask CLI command groups.

from counterbook.models import Tenant, WalletAccount


def test_create_tenant_with_wallets(app, db_session):
    runner = app.test_cli_runner()
    result = runner.invoke(args=[
        "tenants", "create", "--name", "Cafe Lanka", "--code", "CAFE",
        "--shift", "Morning", "--shift", "Evening", "--service-charge-bps", "1000",
    ])

    assert "PASS Created tenant: Cafe Lanka" in result.output
    tenant = db_session.query(Tenant).filter_by(code="CAFE").one()
    assert tenant.use_shift_production is True
    assert tenant.production_shifts == ["Morning", "Evening"]
    assert db_session.query(WalletAccount).filter_by(tenant_id=tenant.id).count() == 3


def test_duplicate_code_fails(app, db_session, tenant):
    runner = app.test_cli_runner()
    result = runner.invoke(args=["tenants", "create", "--name", "Another", "--code", "CAFE"])
    assert "FAIL" in result.output


def test_list_tenants(app, db_session, tenant):
    result = app.test_cli_runner().invoke(args=["tenants", "list"])
    assert "Tenant T - Cafe Lanka" in result.output


def test_ensure_wallets_restores_missing(app, db_session, tenant):
    db_session.query(WalletAccount).filter_by(tenant_id=tenant.id, method="online").delete()
    db_session.commit()

    result = app.test_cli_runner().invoke(args=["tenants", "ensure-wallets", "--tenant-id", str(tenant.id)])

    assert "PASS 1 wallet(s) created" in result.output


def test_ensure_wallets_unknown_tenant(app, db_session):
    result = app.test_cli_runner().invoke(args=["tenants", "ensure-wallets", "--tenant-id", "999"])
    assert "FAIL" in result.output


def test_ledger_show(app, db_session, tenant):
    result = app.test_cli_runner().invoke(args=["ledger", "show", "--tenant-id", str(tenant.id), "--date", "2025-01-15"])

    assert "Wallets for Tenant T - Cafe Lanka" in result.output
    assert "No sales recorded." in result.output


def test_ledger_show_bad_date(app, db_session, tenant):
    result = app.test_cli_runner().invoke(args=["ledger", "show", "--tenant-id", str(tenant.id), "--date", "15/01/2025"])
    assert "FAIL --date must be YYYY-MM-DD" in result.output


def test_unknown_timezone_refused(app, db_session):
    result = app.test_cli_runner().invoke(args=[
        "tenants", "create", "--name", "Bad TZ", "--code", "BADTZ", "--timezone", "Mars/Olympus",
    ])

    assert "FAIL timezone is not a known timezone: Mars/Olympus" in result.output
    assert db_session.query(Tenant).filter_by(code="BADTZ").count() == 0


def test_timezone_override_stored(app, db_session):
    result = app.test_cli_runner().invoke(args=[
        "tenants", "create", "--name", "Kandy Branch", "--code", "KDY", "--timezone", "Asia/Kolkata",
    ])

    assert "PASS" in result.output
    assert db_session.query(Tenant).filter_by(code="KDY").one().timezone == "Asia/Kolkata"
