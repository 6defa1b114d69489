from __future__ import annotations

from ..extensions import db
from ..ids import generate_id
from pos_engine.time_utils import to_utc_z

SHIFT_STATUS_OPEN = "OPEN"
SHIFT_STATUS_CLOSED = "CLOSED"


class Register(db.Model):
    """Physical POS terminal of a tenant."""
    __tablename__ = "registers"
    __table_args__ = (
        db.UniqueConstraint("tenant_id", "name", name="uq_registers_tenant_name"),
    )

    id = db.Column(db.String(48), primary_key=True, default=lambda: generate_id("register"))
    tenant_id = db.Column(db.String(48), db.ForeignKey("tenants.id"), nullable=False, index=True)
    name = db.Column(db.String(120), nullable=False)
    location = db.Column(db.String(255), nullable=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "name": self.name,
            "location": self.location,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
        }


class Shift(db.Model):
    """
    Cashier shift on a register.

    LIFECYCLE:
    - OPEN: sales may reference the shift
    - CLOSED: cash counted, expected cash and variance frozen
    """
    __tablename__ = "shifts"

    id = db.Column(db.String(48), primary_key=True, default=lambda: generate_id("shift"))
    tenant_id = db.Column(db.String(48), db.ForeignKey("tenants.id"), nullable=False, index=True)
    register_id = db.Column(db.String(48), db.ForeignKey("registers.id"), nullable=False, index=True)
    cashier_user_id = db.Column(db.String(64), nullable=False)

    status = db.Column(db.String(16), nullable=False, default=SHIFT_STATUS_OPEN, index=True)

    # Cash tracking (all amounts in cents)
    opening_cash_cents = db.Column(db.Integer, nullable=False, default=0)
    closing_cash_cents = db.Column(db.Integer, nullable=True)
    expected_cash_cents = db.Column(db.Integer, nullable=True)  # opening + cash in - cash refunds
    variance_cents = db.Column(db.Integer, nullable=True)  # closing - expected

    opened_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    closed_at = db.Column(db.DateTime(timezone=True), nullable=True)
    version_id = db.Column(db.Integer, nullable=False, default=1)

    register = db.relationship("Register", backref=db.backref("shifts", lazy=True))
    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "register_id": self.register_id,
            "cashier_user_id": self.cashier_user_id,
            "status": self.status,
            "opening_cash_cents": self.opening_cash_cents,
            "closing_cash_cents": self.closing_cash_cents,
            "expected_cash_cents": self.expected_cash_cents,
            "variance_cents": self.variance_cents,
            "opened_at": to_utc_z(self.opened_at),
            "closed_at": to_utc_z(self.closed_at) if self.closed_at else None,
        }
