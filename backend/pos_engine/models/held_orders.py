from __future__ import annotations

from ..extensions import db
from ..ids import generate_id
from pos_engine.time_utils import to_utc_z


class HeldOrder(db.Model):
    """
    Parked cart, shared by every cashier of the tenant.

    LIFECYCLE: held -> recalled | deleted. Both end states remove the row,
    so an id can be recalled at most once.
    """
    __tablename__ = "held_orders"
    __table_args__ = (
        db.Index("ix_held_orders_tenant_held_at", "tenant_id", "held_at"),
    )

    id = db.Column(db.String(48), primary_key=True, default=lambda: generate_id("held"))
    tenant_id = db.Column(db.String(48), db.ForeignKey("tenants.id"), nullable=False, index=True)
    register_id = db.Column(db.String(48), nullable=True)

    customer_id = db.Column(db.String(64), nullable=True)

    discount_type = db.Column(db.String(16), nullable=True)
    discount_value = db.Column(db.Numeric(12, 3), nullable=True)
    discount_reason = db.Column(db.String(255), nullable=True)

    held_by_user_id = db.Column(db.String(64), nullable=False)
    held_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    lines = db.relationship(
        "HeldOrderLine",
        backref="held_order",
        lazy=True,
        order_by="HeldOrderLine.position",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "register_id": self.register_id,
            "customer_id": self.customer_id,
            "discount": (
                {
                    "type": self.discount_type,
                    "value": str(self.discount_value),
                    "reason": self.discount_reason or "",
                }
                if self.discount_type
                else None
            ),
            "held_by_user_id": self.held_by_user_id,
            "held_at": to_utc_z(self.held_at),
            "item_count": len(self.lines),
            "lines": [line.to_dict() for line in self.lines],
        }


class HeldOrderLine(db.Model):
    """Frozen cart line, including the price snapshot taken at add-time."""
    __tablename__ = "held_order_lines"

    id = db.Column(db.String(48), primary_key=True, default=lambda: generate_id("heldline"))
    held_order_id = db.Column(
        db.String(48),
        db.ForeignKey("held_orders.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    position = db.Column(db.Integer, nullable=False)

    product_id = db.Column(db.String(48), nullable=False)
    name_snapshot = db.Column(db.String(255), nullable=False)
    unit_price_cents = db.Column(db.Integer, nullable=False)
    image_url = db.Column(db.String(512), nullable=True)
    product_type = db.Column(db.String(16), nullable=False)
    step = db.Column(db.Numeric(12, 3), nullable=False)
    available_stock = db.Column(db.Numeric(12, 3), nullable=False)
    quantity = db.Column(db.Numeric(12, 3), nullable=False)

    def to_dict(self) -> dict:
        return {
            "product_id": self.product_id,
            "name": self.name_snapshot,
            "unit_price_cents": self.unit_price_cents,
            "image_url": self.image_url,
            "product_type": self.product_type,
            "quantity": str(self.quantity),
        }
