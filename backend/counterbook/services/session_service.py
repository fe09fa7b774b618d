# Overview: Explicit per-terminal session context passed into every business transaction.

from __future__ import annotations

from dataclasses import dataclass

from ..models import Tenant
from ..validation import ValidationError
from .tenant_service import get_active_tenant


@dataclass(frozen=True)
class SessionContext:
    """
    Who is acting, for which tenant, on which shift.

    WHY: The staff identity and selected production shift are terminal
    session state, not ambient globals. They are captured once per request
    and handed to the mutation functions explicitly.
    """
    tenant_id: int
    staff: str = "Admin"
    shift: str | None = None


def load_tenant(ctx: SessionContext) -> Tenant:
    """The session's tenant; unknown or inactive tenants raise TenantAccessError."""
    return get_active_tenant(ctx.tenant_id)


def resolve_shift(tenant: Tenant, ctx: SessionContext) -> str | None:
    """
    Shift to stamp on a new document.

    Tenants running shift production must have one of their configured
    shifts selected; other tenants record whatever the terminal sent.
    """
    if not tenant.use_shift_production:
        return ctx.shift
    if not ctx.shift:
        raise ValidationError("Select a production shift before saving")
    if ctx.shift not in (tenant.production_shifts or []):
        raise ValidationError(f"Unknown production shift: {ctx.shift}")
    return ctx.shift
