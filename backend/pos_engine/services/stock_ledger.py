# Overview: Stock ledger; the only writer of Product.current_stock.

from __future__ import annotations

from decimal import Decimal

from ..extensions import db
from ..models import Product, StockMovement
from ..models.inventory import PRODUCT_TYPE_UNIT, PRODUCT_TYPE_WEIGHTED
from ..validation import (
    InsufficientStock,
    ValidationFailure,
    parse_cents,
    parse_decimal,
    parse_quantity,
    require_text,
)
from pos_engine.time_utils import utcnow
from .audit_service import append_audit_event, ACTION_INVENTORY_UPDATE
from .concurrency import lock_for_update, run_in_transaction
"""
Stock invariants

- current_stock is changed only by adjust_stock(); checkout decrements,
  refunds restore, ADJUST covers manual restocks.
- A stored stock level is never negative. A decrement that would go below
  zero raises InsufficientStock unless the caller explicitly floors it.
- Every change appends a StockMovement and an inventory_update audit event in
  the caller's transaction.
- Read-compare-write happens on a locked row (FOR UPDATE where supported)
  with the Product version_id guarding the write on every backend.
"""

MOVEMENT_SALE = "SALE"
MOVEMENT_REFUND = "REFUND"
MOVEMENT_ADJUST = "ADJUST"


def create_product(
    *,
    tenant_id: str,
    sku: str,
    name: str,
    price_cents,
    cost_price_cents=0,
    current_stock=0,
    minimum_stock=0,
    product_type: str = PRODUCT_TYPE_UNIT,
    weight_increment=None,
    min_sale_weight=None,
    image_url: str | None = None,
) -> Product:
    """Register a catalog product (used by the CLI and fixtures)."""
    if product_type not in (PRODUCT_TYPE_UNIT, PRODUCT_TYPE_WEIGHTED):
        raise ValidationFailure(f"Unknown product type: {product_type}")

    stock = parse_decimal(current_stock, "current_stock")
    if stock < 0:
        raise ValidationFailure("current_stock cannot be negative")

    product = Product(
        tenant_id=tenant_id,
        sku=require_text(sku, "sku"),
        name=require_text(name, "name"),
        price_cents=parse_cents(price_cents, "price_cents"),
        cost_price_cents=parse_cents(cost_price_cents, "cost_price_cents"),
        current_stock=stock,
        minimum_stock=parse_decimal(minimum_stock, "minimum_stock"),
        product_type=product_type,
        image_url=image_url,
    )
    if product_type == PRODUCT_TYPE_WEIGHTED:
        product.weight_increment = parse_quantity(weight_increment or "0.1", "weight_increment")
        product.min_sale_weight = parse_quantity(min_sale_weight or "0.001", "min_sale_weight")

    db.session.add(product)
    db.session.commit()
    return product


def get_product(tenant_id: str, product_id: str, *, lock: bool = False) -> Product:
    q = db.session.query(Product).filter_by(id=product_id, tenant_id=tenant_id)
    if lock:
        q = lock_for_update(q)
    product = q.first()
    if not product:
        raise ValidationFailure("Product not found", details={"product_id": product_id})
    return product


def adjust_stock(
    product: Product,
    delta: Decimal,
    *,
    movement_type: str,
    reference_id: str | None = None,
    user_id: str | None = None,
    note: str | None = None,
    floor_at_zero: bool = False,
) -> StockMovement:
    """
    Apply ``delta`` to the product's stock (negative for sales).

    Does not commit. The product should have been loaded with lock=True by
    the caller so the comparison below runs against the row being written.
    """
    delta = Decimal(delta)
    current = Decimal(product.current_stock)
    new_stock = current + delta

    if new_stock < 0:
        if not floor_at_zero:
            raise InsufficientStock(
                f"Insufficient stock for {product.name}",
                details={
                    "product_id": product.id,
                    "requested": str(-delta),
                    "available": str(current),
                },
            )
        new_stock = Decimal("0")
        delta = -current

    product.current_stock = new_stock
    db.session.flush()  # version_id check happens here

    movement = StockMovement(
        tenant_id=product.tenant_id,
        product_id=product.id,
        movement_type=movement_type,
        quantity_delta=delta,
        resulting_stock=new_stock,
        reference_id=reference_id,
        user_id=user_id,
        note=note,
        occurred_at=utcnow(),
    )
    db.session.add(movement)
    db.session.flush()

    append_audit_event(
        tenant_id=product.tenant_id,
        action=ACTION_INVENTORY_UPDATE,
        entity_type="product",
        entity_id=product.id,
        user_id=user_id,
        occurred_at=movement.occurred_at,
        payload={
            "movement_type": movement_type,
            "before": str(current),
            "after": str(new_stock),
            "reference_id": reference_id,
        },
    )
    return movement


def restock(
    *,
    tenant_id: str,
    product_id: str,
    quantity,
    user_id: str | None = None,
    note: str | None = None,
) -> StockMovement:
    """Manual ADJUST; a positive quantity adds stock."""
    qty = parse_quantity(quantity)

    def _op():
        product = get_product(tenant_id, product_id, lock=True)
        return adjust_stock(
            product,
            qty,
            movement_type=MOVEMENT_ADJUST,
            user_id=user_id,
            note=note or "Manual restock",
        )

    return run_in_transaction(_op)


def list_movements(tenant_id: str, product_id: str, limit: int = 200) -> list[StockMovement]:
    return (
        db.session.query(StockMovement)
        .filter_by(tenant_id=tenant_id, product_id=product_id)
        .order_by(StockMovement.occurred_at.desc(), StockMovement.id.desc())
        .limit(limit)
        .all()
    )
