from __future__ import annotations

from ..extensions import db
from ..ids import generate_id
from pos_engine.time_utils import to_utc_z

SALE_STATUS_COMPLETED = "COMPLETED"


class Sale(db.Model):
    """
    Finalized sale.

    Created only by the checkout service. Lines and totals never change after
    insert; refund state is derived from Refund rows, not stored here.
    """
    __tablename__ = "sales"
    __table_args__ = (
        db.UniqueConstraint("tenant_id", "number", name="uq_sales_tenant_number"),
        db.Index("ix_sales_tenant_created", "tenant_id", "created_at"),
    )

    id = db.Column(db.String(48), primary_key=True, default=lambda: generate_id("sale"))
    tenant_id = db.Column(db.String(48), db.ForeignKey("tenants.id"), nullable=False, index=True)

    # Human-readable number (e.g., "SALE-000042")
    number = db.Column(db.String(32), nullable=False)
    status = db.Column(db.String(16), nullable=False, default=SALE_STATUS_COMPLETED)

    register_id = db.Column(db.String(48), nullable=False, index=True)
    shift_id = db.Column(db.String(48), nullable=True, index=True)
    cashier_user_id = db.Column(db.String(64), nullable=False)
    # Empty string for walk-in customers
    customer_id = db.Column(db.String(64), nullable=False, default="")

    # Totals (all amounts in cents)
    subtotal_cents = db.Column(db.Integer, nullable=False)
    tax_rate_bps = db.Column(db.Integer, nullable=False)
    tax_cents = db.Column(db.Integer, nullable=False)
    total_cents = db.Column(db.Integer, nullable=False)  # subtotal + tax
    discount_cents = db.Column(db.Integer, nullable=False, default=0)
    grand_total_cents = db.Column(db.Integer, nullable=False)  # payable after discount

    # Discount snapshot
    discount_type = db.Column(db.String(16), nullable=True)
    discount_value = db.Column(db.Numeric(12, 3), nullable=True)
    discount_reason = db.Column(db.String(255), nullable=True)

    payment_method = db.Column(db.String(16), nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    tenant = db.relationship("Tenant", backref=db.backref("sales", lazy=True))
    lines = db.relationship(
        "SaleLine",
        backref="sale",
        lazy=True,
        order_by="SaleLine.position",
        cascade="all, delete-orphan",
    )

    @property
    def discount(self) -> dict | None:
        if not self.discount_type:
            return None
        return {
            "type": self.discount_type,
            "value": str(self.discount_value),
            "reason": self.discount_reason or "",
        }

    def to_dict(self, include_lines: bool = False) -> dict:
        data = {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "number": self.number,
            "status": self.status,
            "register_id": self.register_id,
            "shift_id": self.shift_id,
            "cashier_user_id": self.cashier_user_id,
            "customer_id": self.customer_id,
            "subtotal_cents": self.subtotal_cents,
            "tax_rate_bps": self.tax_rate_bps,
            "tax_cents": self.tax_cents,
            "total_cents": self.total_cents,
            "discount_cents": self.discount_cents,
            "grand_total_cents": self.grand_total_cents,
            "discount": self.discount,
            "payment_method": self.payment_method,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
        if include_lines:
            data["lines"] = [line.to_dict() for line in self.lines]
        return data


class SaleLine(db.Model):
    """Line snapshot: name, price and cost as they were at checkout."""
    __tablename__ = "sale_lines"

    id = db.Column(db.String(48), primary_key=True, default=lambda: generate_id("saleline"))
    sale_id = db.Column(db.String(48), db.ForeignKey("sales.id"), nullable=False, index=True)
    product_id = db.Column(db.String(48), db.ForeignKey("products.id"), nullable=False, index=True)
    position = db.Column(db.Integer, nullable=False)

    name_snapshot = db.Column(db.String(255), nullable=False)
    quantity = db.Column(db.Numeric(12, 3), nullable=False)
    unit_price_cents = db.Column(db.Integer, nullable=False)
    line_subtotal_cents = db.Column(db.Integer, nullable=False)

    # Needed for margin reporting even after catalog cost changes
    cost_price_cents = db.Column(db.Integer, nullable=False, default=0)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sale_id": self.sale_id,
            "product_id": self.product_id,
            "position": self.position,
            "name": self.name_snapshot,
            "quantity": str(self.quantity),
            "unit_price_cents": self.unit_price_cents,
            "line_subtotal_cents": self.line_subtotal_cents,
            "cost_price_cents": self.cost_price_cents,
        }


class Receipt(db.Model):
    """One receipt per sale, written in the same transaction."""
    __tablename__ = "receipts"
    __table_args__ = (
        db.UniqueConstraint("tenant_id", "receipt_number", name="uq_receipts_tenant_number"),
    )

    id = db.Column(db.String(48), primary_key=True, default=lambda: generate_id("receipt"))
    sale_id = db.Column(db.String(48), db.ForeignKey("sales.id"), nullable=False, unique=True)
    tenant_id = db.Column(db.String(48), db.ForeignKey("tenants.id"), nullable=False, index=True)
    receipt_number = db.Column(db.String(32), nullable=False)

    printed_at = db.Column(db.DateTime(timezone=True), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    sale = db.relationship("Sale", backref=db.backref("receipt", uselist=False, lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sale_id": self.sale_id,
            "tenant_id": self.tenant_id,
            "receipt_number": self.receipt_number,
            "printed_at": to_utc_z(self.printed_at) if self.printed_at else None,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class Payment(db.Model):
    """
    Tender recorded at checkout.

    Only the method tag and the cash arithmetic are kept; no processor is
    contacted.
    """
    __tablename__ = "payments"

    id = db.Column(db.String(48), primary_key=True, default=lambda: generate_id("payment"))
    tenant_id = db.Column(db.String(48), db.ForeignKey("tenants.id"), nullable=False, index=True)
    sale_id = db.Column(db.String(48), db.ForeignKey("sales.id"), nullable=False, index=True)

    method = db.Column(db.String(16), nullable=False, index=True)
    amount_tendered_cents = db.Column(db.Integer, nullable=False)
    change_given_cents = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    sale = db.relationship("Sale", backref=db.backref("payments", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "sale_id": self.sale_id,
            "method": self.method,
            "amount_tendered_cents": self.amount_tendered_cents,
            "change_given_cents": self.change_given_cents,
            "created_at": to_utc_z(self.created_at),
        }
