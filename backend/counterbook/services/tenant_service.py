"""
Tenant Service: Tenant bootstrap and lookup

WHY: Every counter, wallet, stats row and document is partitioned by
tenant_id. A tenant starts life with its three wallets at zero so the first
sale of the day never has to race to create them.

INVARIANTS:
1. A tenant has exactly one WalletAccount per method (cash, card, online)
2. Inactive tenants cannot transact
"""

from __future__ import annotations

import logging

from ..extensions import db
from ..models import Tenant, WalletAccount
from ..time_utils import utcnow
from ..validation import ValidationError, coerce_cents, optional_text, optional_timezone, require_text
from .concurrency import run_in_transaction
from .ledger_service import WALLET_METHODS


log = logging.getLogger(__name__)


class TenantAccessError(Exception):
    """Raised when a tenant is unknown or not allowed to transact."""
    pass


def get_active_tenant(tenant_id: int) -> Tenant:
    tenant = db.session.get(Tenant, tenant_id)
    if not tenant:
        raise TenantAccessError(f"Tenant {tenant_id} not found")
    if not tenant.is_active:
        raise TenantAccessError(f"Tenant {tenant_id} is inactive")
    return tenant


def list_tenants(include_inactive: bool = False) -> list[Tenant]:
    query = db.session.query(Tenant)
    if not include_inactive:
        query = query.filter(Tenant.is_active.is_(True))
    return query.order_by(Tenant.id.asc()).all()


def _stage_missing_wallets(tenant_id: int) -> int:
    existing = {
        method for (method,) in
        db.session.query(WalletAccount.method).filter_by(tenant_id=tenant_id).all()
    }
    created = 0
    for method in WALLET_METHODS:
        if method in existing:
            continue
        db.session.add(WalletAccount(
            tenant_id=tenant_id,
            method=method,
            balance_cents=0,
            last_updated=utcnow(),
        ))
        created += 1
    db.session.flush()
    return created


def create_tenant(
    name: str,
    code: str | None = None,
    *,
    use_shift_production: bool = False,
    production_shifts: list[str] | None = None,
    offer_delivery: bool = False,
    service_charge_bps: int = 0,
    timezone: str | None = None,
) -> Tenant:
    """Create a tenant and its zero-balance wallets in one transaction."""
    name = require_text(name, "name")
    code = optional_text(code, "code", max_length=32)
    timezone = optional_timezone(timezone, "timezone")
    shifts = [str(s).strip() for s in (production_shifts or []) if str(s).strip()]
    if use_shift_production and not shifts:
        raise ValidationError("production_shifts is required when use_shift_production is enabled")
    service_charge_bps = coerce_cents(service_charge_bps, "service_charge_bps")
    if service_charge_bps > 10_000:
        raise ValidationError("service_charge_bps cannot exceed 10000")

    def _op() -> Tenant:
        if code and db.session.query(Tenant).filter_by(code=code).first():
            raise ValidationError(f"Tenant code {code!r} already exists")
        tenant = Tenant(
            name=name,
            code=code,
            is_active=True,
            use_shift_production=use_shift_production,
            production_shifts=shifts,
            offer_delivery=offer_delivery,
            service_charge_bps=service_charge_bps,
            timezone=timezone,
        )
        db.session.add(tenant)
        db.session.flush()
        _stage_missing_wallets(tenant.id)
        return tenant

    tenant = run_in_transaction(_op)
    log.info("Created tenant %s (%s)", tenant.id, tenant.name)
    return tenant


def ensure_wallets(tenant_id: int) -> int:
    """Create any missing wallets for a tenant. Idempotent; returns how many were created."""
    def _op() -> int:
        get_active_tenant(tenant_id)
        return _stage_missing_wallets(tenant_id)

    return run_in_transaction(_op)
