# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/counterbook/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init-db
#   Create any missing tables (idempotent).
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Tenant management:
# - python -m flask tenants list [--all]
#   List tenants (use --all to include inactive).
# - python -m flask tenants create --name "Cafe Lanka" --code CAFE --service-charge-bps 1000 --shift Morning --shift Evening
#   Create a tenant with its cash/card/online wallets.
# - python -m flask tenants ensure-wallets --tenant-id 1
#   Create any missing wallets for a tenant.
#
# Ledger inspection:
# - python -m flask ledger show --tenant-id 1 [--date 2025-01-15]
#   Show wallet balances and one day's sales stats (default: today's business date).

import click
from flask.cli import with_appcontext

from .extensions import db
from .services import ledger_service, tenant_service
from .services.tenant_service import TenantAccessError
from .time_utils import business_date, parse_iso_date
from .validation import ValidationError


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create all tables that do not exist yet."""
    db.create_all()
    click.echo("PASS Database schema is up to date.")


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def reset_db(yes):
    """
    DANGER: Drop all tables and recreate schema.

    This will DELETE ALL DATA!
    """
    if not yes:
        click.confirm("WARN This will DELETE ALL DATA. Are you sure?", abort=True)

    click.echo("DELETE  Dropping all tables...")
    db.drop_all()

    click.echo("BUILD  Creating all tables...")
    db.create_all()

    click.echo("PASS Database reset complete. Run 'python -m flask tenants create' to add a tenant.")


@click.group('tenants')
def tenants_group():
    """Tenant management commands."""


@tenants_group.command('list')
@click.option('--all', 'include_inactive', is_flag=True, help='Include inactive tenants')
@with_appcontext
def list_tenants(include_inactive):
    """List tenants."""
    tenants = tenant_service.list_tenants(include_inactive=include_inactive)

    if not tenants:
        click.echo("No tenants found.")
        return

    click.echo("\n" + "="*80)
    click.echo(f"{'ID':<5} {'Name':<30} {'Code':<12} {'Active':<8} {'Shifts':<8} {'SvcChg%'}")
    click.echo("="*80)

    for tenant in tenants:
        active_str = "Yes" if tenant.is_active else "No"
        shifts_str = "Yes" if tenant.use_shift_production else "No"
        click.echo(
            f"{tenant.id:<5} {tenant.name:<30} {tenant.code or '-':<12} {active_str:<8} "
            f"{shifts_str:<8} {tenant.service_charge_bps / 100:.2f}"
        )

    click.echo("="*80 + "\n")


@tenants_group.command('create')
@click.option('--name', required=True, help='Tenant name')
@click.option('--code', help='Short code (unique)')
@click.option('--shift', 'shifts', multiple=True, help='Production shift name (repeatable; enables shift production)')
@click.option('--offer-delivery', is_flag=True, help='Allow delivery charges on orders')
@click.option('--service-charge-bps', type=int, default=0, help='Dine-in service charge in basis points')
@click.option('--timezone', 'tz_name', help='Business timezone override (IANA name)')
@with_appcontext
def create_tenant_cli(name, code, shifts, offer_delivery, service_charge_bps, tz_name):
    """Create a tenant and its wallets."""
    try:
        tenant = tenant_service.create_tenant(
            name,
            code,
            use_shift_production=bool(shifts),
            production_shifts=list(shifts),
            offer_delivery=offer_delivery,
            service_charge_bps=service_charge_bps,
            timezone=tz_name,
        )
    except ValidationError as e:
        click.echo(f"FAIL {e}")
        return

    click.echo(f"PASS Created tenant: {tenant.name} (ID: {tenant.id}, Code: {tenant.code or '-'})")


@tenants_group.command('ensure-wallets')
@click.option('--tenant-id', type=int, required=True, help='Tenant ID')
@with_appcontext
def ensure_wallets_cli(tenant_id):
    """Create any missing cash/card/online wallets."""
    try:
        created = tenant_service.ensure_wallets(tenant_id)
    except TenantAccessError as e:
        click.echo(f"FAIL {e}")
        return
    click.echo(f"PASS {created} wallet(s) created for tenant {tenant_id}")


@click.group('ledger')
def ledger_group():
    """Wallet and daily stats inspection."""


@ledger_group.command('show')
@click.option('--tenant-id', type=int, required=True, help='Tenant ID')
@click.option('--date', 'day', help='Business date YYYY-MM-DD (default: today)')
@with_appcontext
def show_ledger(tenant_id, day):
    """Show wallet balances and one day's sales stats."""
    try:
        tenant = tenant_service.get_active_tenant(tenant_id)
    except TenantAccessError as e:
        click.echo(f"FAIL {e}")
        return

    try:
        stats_date = parse_iso_date(day) if day else business_date(tz_name=tenant.timezone)
    except ValueError:
        click.echo("FAIL --date must be YYYY-MM-DD")
        return

    balances = ledger_service.get_wallet_balances(tenant_id)
    click.echo(f"\nWallets for {tenant.name}:")
    for method, cents in balances.items():
        click.echo(f"  {method:<8} {cents / 100:>14.2f}")

    stats = ledger_service.get_daily_stats(tenant_id, stats_date)
    click.echo(f"\nDaily stats {stats_date.isoformat()}:")
    if stats is None:
        click.echo("  No sales recorded.")
        return
    click.echo(f"  total    {stats.total_sales_cents / 100:>14.2f}")
    click.echo(f"  cash     {stats.total_sales_cash_cents / 100:>14.2f}")
    click.echo(f"  card     {stats.total_sales_card_cents / 100:>14.2f}")
    click.echo(f"  online   {stats.total_sales_online_cents / 100:>14.2f}")
    click.echo(f"  invoices {stats.invoice_count:>14d}")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(tenants_group)
    app.cli.add_command(ledger_group)
