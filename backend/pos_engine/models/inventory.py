from __future__ import annotations

from decimal import Decimal

from ..extensions import db
from ..ids import generate_id
from pos_engine.time_utils import to_utc_z

PRODUCT_TYPE_UNIT = "unit"
PRODUCT_TYPE_WEIGHTED = "weighted"

STATUS_IN_STOCK = "in_stock"
STATUS_LOW_STOCK = "low_stock"
STATUS_OUT_OF_STOCK = "out_of_stock"


class Product(db.Model):
    """
    Catalog product as seen by the POS engine.

    Owned by the catalog; the engine reads price/cost/stock and writes stock
    only through the stock ledger service. ``version_id`` makes concurrent
    stock writes fail fast instead of silently overwriting each other.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.UniqueConstraint("tenant_id", "sku", name="uq_products_tenant_sku"),
        db.Index("ix_products_tenant_name", "tenant_id", "name"),
    )

    id = db.Column(db.String(48), primary_key=True, default=lambda: generate_id("product"))
    tenant_id = db.Column(db.String(48), db.ForeignKey("tenants.id"), nullable=False, index=True)

    sku = db.Column(db.String(64), nullable=False)
    name = db.Column(db.String(255), nullable=False)
    image_url = db.Column(db.String(512), nullable=True)

    product_type = db.Column(db.String(16), nullable=False, default=PRODUCT_TYPE_UNIT)

    # Authoritative storage in cents (frontend may only format for display)
    price_cents = db.Column(db.Integer, nullable=False)
    cost_price_cents = db.Column(db.Integer, nullable=False, default=0)

    current_stock = db.Column(db.Numeric(12, 3), nullable=False, default=Decimal("0"))
    minimum_stock = db.Column(db.Numeric(12, 3), nullable=False, default=Decimal("0"))

    # Weighted products only
    weight_increment = db.Column(db.Numeric(12, 3), nullable=True)
    min_sale_weight = db.Column(db.Numeric(12, 3), nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    tenant = db.relationship("Tenant", backref=db.backref("products", lazy=True))
    __mapper_args__ = {"version_id_col": version_id}

    @property
    def is_weighted(self) -> bool:
        return self.product_type == PRODUCT_TYPE_WEIGHTED

    @property
    def sale_step(self) -> Decimal:
        """Quantity added by one tap on the register."""
        if self.is_weighted:
            return Decimal(self.weight_increment or Decimal("0.1"))
        return Decimal("1")

    @property
    def status(self) -> str:
        stock = Decimal(self.current_stock or 0)
        if stock <= 0:
            return STATUS_OUT_OF_STOCK
        if stock <= Decimal(self.minimum_stock or 0):
            return STATUS_LOW_STOCK
        return STATUS_IN_STOCK

    def __repr__(self) -> str:
        return f"<Product id={self.id} sku={self.sku!r} name={self.name!r} tenant_id={self.tenant_id}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "sku": self.sku,
            "name": self.name,
            "image_url": self.image_url,
            "product_type": self.product_type,
            "price_cents": self.price_cents,
            "cost_price_cents": self.cost_price_cents,
            "current_stock": str(self.current_stock),
            "minimum_stock": str(self.minimum_stock),
            "weight_increment": str(self.weight_increment) if self.weight_increment is not None else None,
            "min_sale_weight": str(self.min_sale_weight) if self.min_sale_weight is not None else None,
            "status": self.status,
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class StockMovement(db.Model):
    """
    Append-only record of every stock change made through the ledger.

    MOVEMENT TYPES:
    - SALE: checkout decrement (negative delta)
    - REFUND: refund restoration (positive delta)
    - ADJUST: manual restock or correction
    """
    __tablename__ = "stock_movements"
    __table_args__ = (
        db.Index("ix_stock_movements_product_occurred", "product_id", "occurred_at"),
    )

    id = db.Column(db.String(48), primary_key=True, default=lambda: generate_id("move"))
    tenant_id = db.Column(db.String(48), db.ForeignKey("tenants.id"), nullable=False, index=True)
    product_id = db.Column(db.String(48), db.ForeignKey("products.id"), nullable=False, index=True)

    movement_type = db.Column(db.String(16), nullable=False, index=True)
    quantity_delta = db.Column(db.Numeric(12, 3), nullable=False)
    resulting_stock = db.Column(db.Numeric(12, 3), nullable=False)

    # Sale or refund id that caused the movement
    reference_id = db.Column(db.String(48), nullable=True, index=True)
    user_id = db.Column(db.String(64), nullable=True)
    note = db.Column(db.String(255), nullable=True)

    occurred_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    product = db.relationship("Product", backref=db.backref("movements", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "product_id": self.product_id,
            "movement_type": self.movement_type,
            "quantity_delta": str(self.quantity_delta),
            "resulting_stock": str(self.resulting_stock),
            "reference_id": self.reference_id,
            "user_id": self.user_id,
            "note": self.note,
            "occurred_at": to_utc_z(self.occurred_at),
        }
