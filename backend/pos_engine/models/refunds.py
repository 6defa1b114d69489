from __future__ import annotations

from ..extensions import db
from ..ids import generate_id
from pos_engine.time_utils import to_utc_z


class Refund(db.Model):
    """
    Reversal of some or all of a sale's lines.

    References the sale but never mutates it. Amounts come from the sale line
    price snapshot, not the live catalog.
    """
    __tablename__ = "refunds"
    __table_args__ = (
        db.UniqueConstraint("tenant_id", "refund_number", name="uq_refunds_tenant_number"),
    )

    id = db.Column(db.String(48), primary_key=True, default=lambda: generate_id("refund"))
    tenant_id = db.Column(db.String(48), db.ForeignKey("tenants.id"), nullable=False, index=True)
    original_sale_id = db.Column(db.String(48), db.ForeignKey("sales.id"), nullable=False, index=True)
    refund_number = db.Column(db.String(32), nullable=False)

    refund_total_cents = db.Column(db.Integer, nullable=False)
    reason = db.Column(db.String(255), nullable=False, default="")
    processed_by_user_id = db.Column(db.String(64), nullable=False)

    register_id = db.Column(db.String(48), nullable=True)
    shift_id = db.Column(db.String(48), nullable=True, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    original_sale = db.relationship("Sale", backref=db.backref("refunds", lazy=True))
    lines = db.relationship("RefundLine", backref="refund", lazy=True, cascade="all, delete-orphan")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "original_sale_id": self.original_sale_id,
            "refund_number": self.refund_number,
            "refunded_items": [line.to_dict() for line in self.lines],
            "refund_total_cents": self.refund_total_cents,
            "reason": self.reason,
            "processed_by_user_id": self.processed_by_user_id,
            "register_id": self.register_id,
            "shift_id": self.shift_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class RefundLine(db.Model):
    __tablename__ = "refund_lines"

    id = db.Column(db.String(48), primary_key=True, default=lambda: generate_id("refundline"))
    refund_id = db.Column(db.String(48), db.ForeignKey("refunds.id"), nullable=False, index=True)
    product_id = db.Column(db.String(48), db.ForeignKey("products.id"), nullable=False, index=True)

    product_name = db.Column(db.String(255), nullable=False)
    quantity = db.Column(db.Numeric(12, 3), nullable=False)
    unit_price_cents = db.Column(db.Integer, nullable=False)
    refund_amount_cents = db.Column(db.Integer, nullable=False)

    def to_dict(self) -> dict:
        return {
            "product_id": self.product_id,
            "product_name": self.product_name,
            "quantity": str(self.quantity),
            "unit_price_cents": self.unit_price_cents,
            "refund_amount_cents": self.refund_amount_cents,
        }
