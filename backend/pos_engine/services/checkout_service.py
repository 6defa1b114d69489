"""
Checkout: turns a cart into an immutable Sale + Receipt.

The only path that creates a Sale. All checks run before the first write and
everything (sale, receipt, payment, stock decrements, audit events) is
committed as one unit, so a failure leaves stock and sales untouched.

CHECK ORDER:
1. cart not empty                      -> ValidationFailure
2. tenant below its plan's order quota -> OrderLimitExceeded (rechecked
                                          under the tenant row lock)
3. stock on hand for every line        -> InsufficientStock (strict mode)
                                          or logged StockWarning (soft mode)
4. payment method / tendered amount    -> ValidationFailure

The cart is left as is; the caller clears it after a successful checkout.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal

from flask import current_app

from ..extensions import db
from ..models import Sale, SaleLine, Receipt, Payment, Tenant
from ..models.sales import SALE_STATUS_COMPLETED
from ..validation import (
    InsufficientStock,
    OrderLimitExceeded,
    StockWarning,
    ValidationFailure,
    parse_cents,
)
from pos_engine.time_utils import utcnow
from .audit_service import (
    append_audit_event,
    ACTION_SALE_COMPLETED,
    ACTION_DISCOUNT_APPLIED,
)
from .cart_service import Cart
from .concurrency import lock_for_update, run_in_transaction
from .document_service import next_number, SALE_NUMBER, RECEIPT_NUMBER
from .pricing_service import compute_totals, discount_amount_cents
from .stock_ledger import adjust_stock, get_product, MOVEMENT_SALE
from .tenant_service import CheckoutContext, count_sales, get_tenant_settings


@dataclass
class CheckoutResult:
    sale_id: str
    receipt_id: str
    sale: Sale
    receipt: Receipt
    payment: Payment
    warnings: list[StockWarning] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "sale_id": self.sale_id,
            "receipt_id": self.receipt_id,
            "sale": self.sale.to_dict(include_lines=True),
            "receipt": self.receipt.to_dict(),
            "payment": self.payment.to_dict(),
            "warnings": [w.to_dict() for w in self.warnings],
        }


def _check_order_limit(context: CheckoutContext) -> None:
    if context.current_sale_count >= context.max_orders:
        raise OrderLimitExceeded(context.current_sale_count, context.max_orders)


def _recheck_order_limit(context: CheckoutContext) -> None:
    """
    Recount under the tenant row lock. Two checkouts that both saw the last
    free slot in their context cannot both pass here.
    """
    lock_for_update(db.session.query(Tenant).filter_by(id=context.tenant_id)).first()
    current = count_sales(context.tenant_id)
    if current >= context.max_orders:
        raise OrderLimitExceeded(current, context.max_orders)


def _validate_payment_method(payment_method: str) -> str:
    method = (payment_method or "").strip().upper()
    allowed = current_app.config["POS_PAYMENT_METHODS"]
    if method not in allowed:
        raise ValidationFailure(
            f"Unsupported payment method: {payment_method}",
            details={"allowed": list(allowed)},
        )
    return method


def _lock_products(cart: Cart, tenant_id: str) -> dict:
    products = {}
    for line in cart.lines:
        products[line.product_id] = get_product(tenant_id, line.product_id, lock=True)
    return products


def _stock_shortfalls(cart: Cart, products: dict) -> list[StockWarning]:
    shortfalls = []
    for line in cart.lines:
        product = products[line.product_id]
        available = Decimal(product.current_stock)
        if line.quantity > available:
            shortfalls.append(
                StockWarning(
                    product_id=line.product_id,
                    product_name=line.name,
                    requested=line.quantity,
                    available=available,
                )
            )
    return shortfalls


def checkout(
    cart: Cart,
    *,
    context: CheckoutContext,
    payment_method: str = "CASH",
    customer_id: str | None = None,
    amount_tendered_cents: int | None = None,
) -> CheckoutResult:
    """
    Finalize ``cart`` into a Sale and Receipt and decrement stock.

    ``customer_id`` defaults to the cart's selected customer; walk-in sales
    store an empty string.
    """
    if cart.is_empty():
        raise ValidationFailure("Cart is empty")

    _check_order_limit(context)

    settings = get_tenant_settings(context.tenant_id)
    strict = current_app.config["POS_STRICT_STOCK_CHECK"]
    discount = cart.discount
    customer = customer_id if customer_id is not None else (cart.customer_id or "")

    def _op() -> CheckoutResult:
        _recheck_order_limit(context)
        products = _lock_products(cart, context.tenant_id)

        warnings = _stock_shortfalls(cart, products)
        if warnings and strict:
            raise InsufficientStock(
                "Insufficient stock to complete sale",
                details={"items": [w.to_dict() for w in warnings]},
            )
        for w in warnings:
            current_app.logger.warning(
                "Stock shortfall at checkout for %s: requested %s, available %s",
                w.product_name, w.requested, w.available,
            )

        method = _validate_payment_method(payment_method)

        totals = compute_totals(cart.lines, settings.tax_rate_bps)
        discount_cents = min(discount_amount_cents(totals.total_cents, discount), totals.total_cents)
        grand_total = totals.total_cents - discount_cents

        if amount_tendered_cents is None:
            tendered = grand_total
        else:
            tendered = parse_cents(amount_tendered_cents, "amount_tendered_cents")
            if tendered < grand_total:
                raise ValidationFailure(
                    "Amount tendered is less than the total due",
                    details={"total_due_cents": grand_total, "amount_tendered_cents": tendered},
                )

        now = utcnow()
        sale = Sale(
            tenant_id=context.tenant_id,
            number=next_number(context.tenant_id, SALE_NUMBER),
            status=SALE_STATUS_COMPLETED,
            register_id=context.register_id,
            shift_id=context.shift_id,
            cashier_user_id=context.cashier_user_id,
            customer_id=customer,
            subtotal_cents=totals.subtotal_cents,
            tax_rate_bps=settings.tax_rate_bps,
            tax_cents=totals.tax_cents,
            total_cents=totals.total_cents,
            discount_cents=discount_cents,
            grand_total_cents=grand_total,
            discount_type=discount.type if discount else None,
            discount_value=discount.value if discount else None,
            discount_reason=discount.reason if discount else None,
            payment_method=method,
            created_at=now,
            updated_at=now,
        )
        db.session.add(sale)
        db.session.flush()

        for position, line in enumerate(cart.lines, start=1):
            product = products[line.product_id]
            db.session.add(
                SaleLine(
                    sale_id=sale.id,
                    product_id=line.product_id,
                    position=position,
                    name_snapshot=line.name,
                    quantity=line.quantity,
                    unit_price_cents=line.unit_price_cents,
                    line_subtotal_cents=line.subtotal_cents,
                    cost_price_cents=product.cost_price_cents,
                )
            )
            adjust_stock(
                product,
                -line.quantity,
                movement_type=MOVEMENT_SALE,
                reference_id=sale.id,
                user_id=context.cashier_user_id,
                note=f"Sale {sale.number}",
                floor_at_zero=not strict,
            )

        receipt = Receipt(
            sale_id=sale.id,
            tenant_id=context.tenant_id,
            receipt_number=next_number(context.tenant_id, RECEIPT_NUMBER),
            created_at=now,
            updated_at=now,
        )
        payment = Payment(
            tenant_id=context.tenant_id,
            sale_id=sale.id,
            method=method,
            amount_tendered_cents=tendered,
            change_given_cents=tendered - grand_total,
            created_at=now,
        )
        db.session.add(receipt)
        db.session.add(payment)
        db.session.flush()

        append_audit_event(
            tenant_id=context.tenant_id,
            action=ACTION_SALE_COMPLETED,
            entity_type="sale",
            entity_id=sale.id,
            user_id=context.cashier_user_id,
            occurred_at=now,
            payload={
                "sale_number": sale.number,
                "item_count": len(cart),
                "grand_total_cents": grand_total,
                "payment_method": method,
                "customer_id": customer,
            },
        )
        if discount:
            append_audit_event(
                tenant_id=context.tenant_id,
                action=ACTION_DISCOUNT_APPLIED,
                entity_type="sale",
                entity_id=sale.id,
                user_id=context.cashier_user_id,
                occurred_at=now,
                payload={
                    "discount_type": discount.type,
                    "discount_value": str(discount.value),
                    "discount_cents": discount_cents,
                    "reason": discount.reason,
                },
            )

        return CheckoutResult(
            sale_id=sale.id,
            receipt_id=receipt.id,
            sale=sale,
            receipt=receipt,
            payment=payment,
            warnings=warnings,
        )

    result = run_in_transaction(_op)
    current_app.logger.info(
        "Sale %s completed on register %s (%s cents)",
        result.sale.number, context.register_id, result.sale.grand_total_cents,
    )
    return result


def get_sale(tenant_id: str, sale_id: str) -> Sale | None:
    return db.session.query(Sale).filter_by(id=sale_id, tenant_id=tenant_id).first()


def list_sales(tenant_id: str, *, shift_id: str | None = None, limit: int = 200) -> list[Sale]:
    q = db.session.query(Sale).filter_by(tenant_id=tenant_id)
    if shift_id:
        q = q.filter_by(shift_id=shift_id)
    return q.order_by(Sale.created_at.desc(), Sale.number.desc()).limit(limit).all()


def mark_receipt_printed(tenant_id: str, receipt_id: str) -> Receipt | None:
    receipt = db.session.query(Receipt).filter_by(id=receipt_id, tenant_id=tenant_id).first()
    if not receipt:
        return None
    now = utcnow()
    receipt.printed_at = now
    receipt.updated_at = now
    db.session.commit()
    return receipt
