from __future__ import annotations

from ..extensions import db
from counterbook.time_utils import to_utc_z


class Customer(db.Model):
    """
    Customer master record.

    CREDIT CUSTOMERS: Sales to a customer flagged is_credit_customer skip the
    payment step entirely and are recorded as unpaid credit, with no wallet
    or daily-stats movement.
    """
    __tablename__ = "customers"
    __table_args__ = (
        db.Index("ix_customers_tenant_name", "tenant_id", "name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    tenant_id = db.Column(db.Integer, db.ForeignKey("tenants.id"), nullable=False, index=True)
    name = db.Column(db.String(255), nullable=False)
    phone = db.Column(db.String(64), nullable=True)
    is_credit_customer = db.Column(db.Boolean, nullable=False, default=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    tenant = db.relationship("Tenant", backref=db.backref("customers", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "name": self.name,
            "phone": self.phone,
            "is_credit_customer": self.is_credit_customer,
            "created_at": to_utc_z(self.created_at),
        }
