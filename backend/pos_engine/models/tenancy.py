from __future__ import annotations

from ..extensions import db
from ..ids import generate_id
from pos_engine.time_utils import to_utc_z


class Tenant(db.Model):
    """
    Multi-tenant root: every register, product and sale belongs to one tenant.

    Carries the POS settings the engine reads: flat tax rate, plan order quota
    and the display currency symbol.
    """
    __tablename__ = "tenants"

    id = db.Column(db.String(48), primary_key=True, default=lambda: generate_id("tenant"))
    name = db.Column(db.String(255), nullable=False)
    plan = db.Column(db.String(32), nullable=False, default="basic")

    # Orders allowed on the current plan
    max_orders = db.Column(db.Integer, nullable=False, default=100)

    # Basis points (e.g., 825 = 8.25%)
    tax_rate_bps = db.Column(db.Integer, nullable=False, default=1000)

    # Display only, no conversion
    currency_symbol = db.Column(db.String(8), nullable=False, default="$")

    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)

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
            "plan": self.plan,
            "max_orders": self.max_orders,
            "tax_rate_bps": self.tax_rate_bps,
            "currency_symbol": self.currency_symbol,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
