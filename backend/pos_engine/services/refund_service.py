"""
Refund processing.

DESIGN PRINCIPLES:
- A refund references its original Sale and never modifies it
- Refund amounts use the sale line's unit price snapshot, not the live
  catalog price, so the value of a refund is stable over time
- Stock is restored in the same transaction as the Refund is written, and
  never beyond what the sale actually took out of stock
- Cumulative refunded quantity per product never exceeds what was sold
- Refund state of a sale (NONE / PARTIAL / FULL) is computed from Refund rows
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from flask import current_app
from sqlalchemy import func, select

from ..extensions import db
from ..models import Refund, RefundLine, Sale, StockMovement
from ..validation import SaleNotFound, ValidationFailure, parse_quantity
from pos_engine.time_utils import utcnow
from .audit_service import append_audit_event, ACTION_SALE_REFUNDED
from .concurrency import lock_for_update, run_in_transaction
from .document_service import next_number, REFUND_NUMBER
from .pricing_service import line_total_cents
from .stock_ledger import adjust_stock, get_product, MOVEMENT_REFUND, MOVEMENT_SALE

REFUND_STATUS_NONE = "NONE"
REFUND_STATUS_PARTIAL = "PARTIAL"
REFUND_STATUS_FULL = "FULL"


@dataclass(frozen=True)
class RefundRequestLine:
    """One product and quantity the customer is bringing back."""
    product_id: str
    quantity: Decimal

    @classmethod
    def from_dict(cls, data: dict) -> "RefundRequestLine":
        if not isinstance(data, dict):
            raise ValidationFailure("Each refund item must be an object with product_id and quantity")
        product_id = data.get("product_id")
        if not product_id:
            raise ValidationFailure("product_id is required for each refund item")
        return cls(product_id=product_id, quantity=parse_quantity(data.get("quantity")))


def refunded_quantities(sale_id: str) -> dict[str, Decimal]:
    """Total quantity already refunded per product for a sale."""
    rows = (
        db.session.query(RefundLine.product_id, func.sum(RefundLine.quantity))
        .join(Refund, Refund.id == RefundLine.refund_id)
        .filter(Refund.original_sale_id == sale_id)
        .group_by(RefundLine.product_id)
        .all()
    )
    return {product_id: Decimal(total or 0) for product_id, total in rows}


def restorable_stock(sale_id: str, product_id: str) -> Decimal:
    """
    Stock a refund of this sale may still put back for ``product_id``.

    This is what the sale's SALE movements took out, less what earlier
    refunds of the sale restored. It can be below the sold quantity when a
    soft-mode checkout floored stock at zero.
    """
    taken = (
        db.session.query(func.coalesce(func.sum(StockMovement.quantity_delta), 0))
        .filter(
            StockMovement.reference_id == sale_id,
            StockMovement.product_id == product_id,
            StockMovement.movement_type == MOVEMENT_SALE,
        )
        .scalar()
    )
    refund_ids = select(Refund.id).where(Refund.original_sale_id == sale_id)
    restored = (
        db.session.query(func.coalesce(func.sum(StockMovement.quantity_delta), 0))
        .filter(
            StockMovement.reference_id.in_(refund_ids),
            StockMovement.product_id == product_id,
            StockMovement.movement_type == MOVEMENT_REFUND,
        )
        .scalar()
    )
    return max(Decimal("0"), -Decimal(taken or 0) - Decimal(restored or 0))


def _merge_request(items) -> dict[str, Decimal]:
    if not isinstance(items, (list, tuple)):
        raise ValidationFailure("items must be a list")
    merged: dict[str, Decimal] = {}
    for item in items:
        if not isinstance(item, RefundRequestLine):
            item = RefundRequestLine.from_dict(item)
        qty = parse_quantity(item.quantity)
        merged[item.product_id] = merged.get(item.product_id, Decimal("0")) + qty
    return merged


def refund(
    sale_id: str,
    items,
    reason: str,
    processed_by: str,
    tenant_id: str,
    *,
    register_id: str | None = None,
    shift_id: str | None = None,
) -> Refund:
    """
    Refund part or all of a sale and put the goods back in stock.

    ``items`` is a list of RefundRequestLine (or dicts with product_id and
    quantity). Raises SaleNotFound for an unknown sale, ValidationFailure for
    bad lines or quantities beyond what is left to refund.
    """
    def _op() -> Refund:
        sale = lock_for_update(
            db.session.query(Sale).filter_by(id=sale_id, tenant_id=tenant_id)
        ).first()
        if not sale:
            raise SaleNotFound("Sale not found")

        requested = _merge_request(items or [])
        if not requested:
            raise ValidationFailure("At least one item is required to refund")

        sold = {line.product_id: line for line in sale.lines}
        already = refunded_quantities(sale.id)

        for product_id, qty in requested.items():
            line = sold.get(product_id)
            if line is None:
                raise ValidationFailure(
                    "Item was not part of this sale",
                    details={"product_id": product_id},
                )
            remaining = Decimal(line.quantity) - already.get(product_id, Decimal("0"))
            if qty > remaining:
                raise ValidationFailure(
                    f"Cannot refund {qty} of {line.name_snapshot}. "
                    f"Sold: {Decimal(line.quantity)}, available to refund: {remaining}",
                    details={
                        "product_id": product_id,
                        "sold": str(line.quantity),
                        "already_refunded": str(already.get(product_id, Decimal("0"))),
                    },
                )

        now = utcnow()
        refund_doc = Refund(
            tenant_id=tenant_id,
            original_sale_id=sale.id,
            refund_number=next_number(tenant_id, REFUND_NUMBER),
            refund_total_cents=0,
            reason=(reason or "").strip(),
            processed_by_user_id=processed_by,
            register_id=register_id,
            shift_id=shift_id,
            created_at=now,
            updated_at=now,
        )
        db.session.add(refund_doc)
        db.session.flush()

        total = 0
        for product_id, qty in requested.items():
            line = sold[product_id]
            amount = line_total_cents(line.unit_price_cents, qty)
            total += amount
            db.session.add(
                RefundLine(
                    refund_id=refund_doc.id,
                    product_id=product_id,
                    product_name=line.name_snapshot,
                    quantity=qty,
                    unit_price_cents=line.unit_price_cents,
                    refund_amount_cents=amount,
                )
            )
            restore = min(qty, restorable_stock(sale.id, product_id))
            if restore <= 0:
                current_app.logger.warning(
                    "Refund %s of %s restores no stock; the sale took none out",
                    refund_doc.refund_number, line.name_snapshot,
                )
                continue
            product = get_product(tenant_id, product_id, lock=True)
            adjust_stock(
                product,
                restore,
                movement_type=MOVEMENT_REFUND,
                reference_id=refund_doc.id,
                user_id=processed_by,
                note=f"Refund {refund_doc.refund_number}",
            )

        refund_doc.refund_total_cents = total
        db.session.flush()

        append_audit_event(
            tenant_id=tenant_id,
            action=ACTION_SALE_REFUNDED,
            entity_type="sale",
            entity_id=sale.id,
            user_id=processed_by,
            occurred_at=now,
            payload={
                "refund_id": refund_doc.id,
                "refund_number": refund_doc.refund_number,
                "refund_total_cents": total,
                "item_count": len(requested),
                "reason": refund_doc.reason,
            },
        )
        return refund_doc

    refund_doc = run_in_transaction(_op)
    current_app.logger.info(
        "Refund %s issued against sale %s (%s cents)",
        refund_doc.refund_number, sale_id, refund_doc.refund_total_cents,
    )
    return refund_doc


def list_refunds(tenant_id: str, sale_id: str | None = None) -> list[Refund]:
    q = db.session.query(Refund).filter_by(tenant_id=tenant_id)
    if sale_id:
        q = q.filter_by(original_sale_id=sale_id)
    return q.order_by(Refund.created_at.desc(), Refund.refund_number.desc()).all()


def refund_status(sale_id: str) -> str:
    """NONE, PARTIAL or FULL, derived from the refunds recorded so far."""
    sale = db.session.get(Sale, sale_id)
    if not sale:
        raise SaleNotFound("Sale not found")
    already = refunded_quantities(sale.id)
    if not already:
        return REFUND_STATUS_NONE
    for line in sale.lines:
        if already.get(line.product_id, Decimal("0")) < Decimal(line.quantity):
            return REFUND_STATUS_PARTIAL
    return REFUND_STATUS_FULL
