"""
Held orders: park a cart and bring it back later, on any register.

Held orders live in the shared store so every cashier of the tenant sees the
same list. Recall and delete both remove the row; the DELETE's row count
decides which of two concurrent callers actually got the order.
"""

from __future__ import annotations

from decimal import Decimal

from flask import current_app

from ..extensions import db
from ..models import HeldOrder, HeldOrderLine
from ..validation import ValidationFailure
from pos_engine.time_utils import utcnow
from .audit_service import (
    append_audit_event,
    ACTION_ORDER_HELD,
    ACTION_ORDER_RECALLED,
    ACTION_HELD_ORDER_DELETED,
)
from .cart_service import Cart, CartLine, RecalledCart
from .concurrency import run_in_transaction
from .pricing_service import Discount


def hold_order(
    cart: Cart,
    *,
    tenant_id: str,
    cashier_user_id: str,
    customer_id: str | None = None,
    discount: Discount | None = None,
) -> HeldOrder:
    """
    Snapshot ``cart`` into a held order.

    Customer and discount default to what is set on the cart. The cart itself
    is not cleared here.
    """
    if cart.is_empty():
        raise ValidationFailure("Cannot hold an empty cart")

    customer = customer_id if customer_id is not None else cart.customer_id
    discount = discount if discount is not None else cart.discount

    def _op() -> HeldOrder:
        now = utcnow()
        held = HeldOrder(
            tenant_id=tenant_id,
            register_id=cart.register_id,
            customer_id=customer or None,
            discount_type=discount.type if discount else None,
            discount_value=discount.value if discount else None,
            discount_reason=discount.reason if discount else None,
            held_by_user_id=cashier_user_id,
            held_at=now,
        )
        db.session.add(held)
        db.session.flush()

        for position, line in enumerate(cart.lines, start=1):
            db.session.add(
                HeldOrderLine(
                    held_order_id=held.id,
                    position=position,
                    product_id=line.product_id,
                    name_snapshot=line.name,
                    unit_price_cents=line.unit_price_cents,
                    image_url=line.image_url,
                    product_type=line.product_type,
                    step=line.step,
                    available_stock=line.available_stock,
                    quantity=line.quantity,
                )
            )
        db.session.flush()

        append_audit_event(
            tenant_id=tenant_id,
            action=ACTION_ORDER_HELD,
            entity_type="held_order",
            entity_id=held.id,
            user_id=cashier_user_id,
            occurred_at=now,
            payload={"item_count": len(cart), "customer_id": customer},
        )
        return held

    held = run_in_transaction(_op)
    current_app.logger.info("Order %s held with %s lines", held.id, len(cart))
    return held


def _to_recalled(held: HeldOrder) -> RecalledCart:
    lines = tuple(
        CartLine(
            product_id=line.product_id,
            name=line.name_snapshot,
            unit_price_cents=line.unit_price_cents,
            quantity=Decimal(line.quantity),
            product_type=line.product_type,
            step=Decimal(line.step),
            available_stock=Decimal(line.available_stock),
            image_url=line.image_url,
        )
        for line in held.lines
    )
    discount = None
    if held.discount_type:
        discount = Discount(
            type=held.discount_type,
            value=held.discount_value,
            reason=held.discount_reason or "",
        )
    return RecalledCart(
        held_order_id=held.id,
        lines=lines,
        customer_id=held.customer_id,
        discount=discount,
    )


def _claim(tenant_id: str, held_order_id: str) -> HeldOrder | None:
    """
    Load the held order and delete it. Returns None if it is gone or another
    caller deleted it first.
    """
    held = db.session.query(HeldOrder).filter_by(id=held_order_id, tenant_id=tenant_id).first()
    if not held:
        return None

    # Materialize the lines before the row goes away.
    _ = list(held.lines)

    deleted = (
        db.session.query(HeldOrder)
        .filter_by(id=held_order_id, tenant_id=tenant_id)
        .delete(synchronize_session=False)
    )
    if deleted != 1:
        return None
    db.session.query(HeldOrderLine).filter_by(held_order_id=held_order_id).delete(
        synchronize_session=False
    )
    db.session.expunge(held)
    return held


def recall_order(
    held_order_id: str,
    *,
    tenant_id: str,
    user_id: str | None = None,
) -> RecalledCart | None:
    """
    Take a held order back out. Returns None if it does not exist or was
    already recalled or deleted.
    """
    def _op() -> RecalledCart | None:
        held = _claim(tenant_id, held_order_id)
        if held is None:
            return None
        recalled = _to_recalled(held)
        append_audit_event(
            tenant_id=tenant_id,
            action=ACTION_ORDER_RECALLED,
            entity_type="held_order",
            entity_id=held_order_id,
            user_id=user_id,
            payload={"item_count": len(recalled.lines)},
        )
        return recalled

    recalled = run_in_transaction(_op)
    if recalled is None:
        current_app.logger.info("Recall of held order %s found nothing", held_order_id)
    return recalled


def delete_held_order(
    held_order_id: str,
    *,
    tenant_id: str,
    user_id: str | None = None,
) -> bool:
    def _op() -> bool:
        held = _claim(tenant_id, held_order_id)
        if held is None:
            return False
        append_audit_event(
            tenant_id=tenant_id,
            action=ACTION_HELD_ORDER_DELETED,
            entity_type="held_order",
            entity_id=held_order_id,
            user_id=user_id,
            payload={"item_count": len(held.lines)},
        )
        return True

    return run_in_transaction(_op)


def get_held_order(tenant_id: str, held_order_id: str) -> HeldOrder | None:
    return db.session.query(HeldOrder).filter_by(id=held_order_id, tenant_id=tenant_id).first()


def list_held_orders(tenant_id: str) -> list[HeldOrder]:
    """Held orders of the tenant, newest first."""
    return (
        db.session.query(HeldOrder)
        .filter_by(tenant_id=tenant_id)
        .order_by(HeldOrder.held_at.desc(), HeldOrder.id.desc())
        .all()
    )
