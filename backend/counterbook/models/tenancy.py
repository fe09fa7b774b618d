from __future__ import annotations

from ..extensions import db
from counterbook.time_utils import to_utc_z


class Tenant(db.Model):
    """
    Multi-tenant root: every business account is a Tenant.

    WHY: All counters, wallets, stats and documents are partitioned by
    tenant_id. Tenants are created at signup and never merged or split.

    SETTINGS: The handful of account settings that the transactional units
    consult live on the tenant row so they are read in the same session:
    - use_shift_production / production_shifts: sales must name a shift
    - offer_delivery: orders may carry a delivery charge
    - service_charge_bps: percentage added to Dine-in sales (basis points)
    - timezone: overrides BUSINESS_TIMEZONE for this tenant's business day
    """
    __tablename__ = "tenants"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    code = db.Column(db.String(32), nullable=True, unique=True, index=True)  # Short code for lookups

    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)

    use_shift_production = db.Column(db.Boolean, nullable=False, default=False)
    production_shifts = db.Column(db.JSON, nullable=False, default=list)
    offer_delivery = db.Column(db.Boolean, nullable=False, default=False)
    service_charge_bps = db.Column(db.Integer, nullable=False, default=0)  # e.g. 1000 = 10%
    timezone = db.Column(db.String(64), nullable=True)

    created_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
    )
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    def __repr__(self) -> str:
        return f"<Tenant id={self.id} name={self.name!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "code": self.code,
            "is_active": self.is_active,
            "use_shift_production": self.use_shift_production,
            "production_shifts": list(self.production_shifts or []),
            "offer_delivery": self.offer_delivery,
            "service_charge_bps": self.service_charge_bps,
            "timezone": self.timezone,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
