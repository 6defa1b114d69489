# Overview: In-memory cart for one register session.

from __future__ import annotations

from dataclasses import dataclass, replace
from decimal import Decimal
from typing import Optional

from ..models import Product
from ..validation import (
    InsufficientStock,
    StockWarning,
    ValidationFailure,
    parse_decimal,
    parse_quantity,
)
from .pricing_service import Discount, Totals, apply_discount, compute_totals, line_total_cents
from .stock_ledger import get_product


@dataclass
class CartLine:
    """
    Cart entry with the product snapshot taken when it was first added.

    ``available_stock`` is the stock seen at the last add; quantity updates
    are checked against it. Checkout re-checks against the live row.
    """
    product_id: str
    name: str
    unit_price_cents: int
    quantity: Decimal
    product_type: str
    step: Decimal
    available_stock: Decimal
    image_url: Optional[str] = None

    @property
    def subtotal_cents(self) -> int:
        return line_total_cents(self.unit_price_cents, self.quantity)

    def to_dict(self) -> dict:
        return {
            "product_id": self.product_id,
            "name": self.name,
            "unit_price_cents": self.unit_price_cents,
            "quantity": str(self.quantity),
            "subtotal_cents": self.subtotal_cents,
            "product_type": self.product_type,
            "image_url": self.image_url,
        }


@dataclass(frozen=True)
class RecalledCart:
    """What a held order gives back on recall."""
    held_order_id: str
    lines: tuple[CartLine, ...]
    customer_id: Optional[str]
    discount: Optional[Discount]

    def to_dict(self) -> dict:
        return {
            "held_order_id": self.held_order_id,
            "lines": [line.to_dict() for line in self.lines],
            "customer_id": self.customer_id,
            "discount": self.discount.to_dict() if self.discount else None,
        }


class Cart:
    """
    Line items of the sale in progress on one register.

    Single writer: the register session that owns it. Nothing here touches
    stock or the database; rejected changes leave the cart as it was and
    return False.
    """

    def __init__(self, register_id: str | None = None):
        self.register_id = register_id
        self._lines: list[CartLine] = []
        self.customer_id: Optional[str] = None
        self.discount: Optional[Discount] = None

    @property
    def lines(self) -> list[CartLine]:
        return list(self._lines)

    def __len__(self) -> int:
        return len(self._lines)

    def is_empty(self) -> bool:
        return not self._lines

    def get_line(self, product_id: str) -> Optional[CartLine]:
        for line in self._lines:
            if line.product_id == product_id:
                return line
        return None

    def add_item(self, product: Product, quantity=None) -> bool:
        """
        Add one step of ``product`` (1 unit, or one weight increment).

        An explicit quantity, such as a weight read off the scale, is added
        instead of the step. Refuses anything that would exceed stock.
        """
        if quantity is None:
            qty = product.sale_step
        else:
            qty = parse_quantity(quantity)
            if product.is_weighted and product.min_sale_weight is not None:
                if qty < Decimal(product.min_sale_weight):
                    raise ValidationFailure(
                        f"Minimum weight is {product.min_sale_weight}",
                        details={"product_id": product.id},
                    )

        stock = Decimal(product.current_stock)
        existing = self.get_line(product.id)
        current_qty = existing.quantity if existing else Decimal("0")
        if current_qty + qty > stock:
            return False

        if existing:
            existing.quantity = current_qty + qty
            existing.available_stock = stock
            return True

        self._lines.append(
            CartLine(
                product_id=product.id,
                name=product.name,
                unit_price_cents=product.price_cents,
                quantity=qty,
                product_type=product.product_type,
                step=product.sale_step,
                available_stock=stock,
                image_url=product.image_url,
            )
        )
        return True

    def update_quantity(self, product_id: str, delta) -> bool:
        """
        Add ``delta`` to a line. A result of zero or less removes the line.

        ``delta`` is rounded to three places like any other quantity.
        """
        step = parse_decimal(delta, "delta")
        line = self.get_line(product_id)
        if line is None:
            return False

        new_qty = line.quantity + step
        if new_qty <= 0:
            self.remove_item(product_id)
            return True

        if new_qty > line.available_stock:
            return False

        line.quantity = new_qty
        return True

    def remove_item(self, product_id: str) -> None:
        self._lines = [line for line in self._lines if line.product_id != product_id]

    def clear(self) -> None:
        self._lines = []
        self.discount = None
        self.customer_id = None

    def set_customer(self, customer_id: Optional[str]) -> None:
        self.customer_id = customer_id or None

    def set_discount(self, discount: Optional[Discount]) -> None:
        self.discount = discount

    def restore(self, recalled: RecalledCart) -> None:
        """Reinstate a recalled held order as this cart's contents."""
        self._lines = [replace(line) for line in recalled.lines]
        self.customer_id = recalled.customer_id
        self.discount = recalled.discount

    def totals(self, tax_rate_bps: int) -> Totals:
        return compute_totals(self._lines, tax_rate_bps)

    def final_total_cents(self, tax_rate_bps: int) -> int:
        return apply_discount(self.totals(tax_rate_bps).total_cents, self.discount)

    def stock_warnings(self) -> list[StockWarning]:
        return [
            StockWarning(
                product_id=line.product_id,
                product_name=line.name,
                requested=line.quantity,
                available=line.available_stock,
            )
            for line in self._lines
            if line.quantity >= line.available_stock
        ]

    def to_dict(self, tax_rate_bps: int | None = None) -> dict:
        data = {
            "register_id": self.register_id,
            "lines": [line.to_dict() for line in self._lines],
            "customer_id": self.customer_id,
            "discount": self.discount.to_dict() if self.discount else None,
        }
        if tax_rate_bps is not None:
            totals = self.totals(tax_rate_bps)
            data["totals"] = totals.to_dict()
            data["final_total_cents"] = apply_discount(totals.total_cents, self.discount)
        return data


def build_cart(
    tenant_id: str,
    items,
    *,
    register_id: str | None = None,
    customer_id: str | None = None,
    discount: Optional[Discount] = None,
) -> Cart:
    """
    Fill a fresh cart from ``[{"product_id": ..., "quantity": ...}]``.

    Used by the JSON API, which has no long-lived register session. A line
    the cart refuses raises InsufficientStock instead of returning False.
    """
    if items is not None and not isinstance(items, (list, tuple)):
        raise ValidationFailure("items must be a list")
    cart = Cart(register_id=register_id)
    for item in items or []:
        if not isinstance(item, dict):
            raise ValidationFailure("Each item must be an object with product_id and quantity")
        product_id = item.get("product_id")
        if not product_id:
            raise ValidationFailure("product_id is required for each item")
        product = get_product(tenant_id, product_id)
        if not cart.add_item(product, item.get("quantity")):
            raise InsufficientStock(
                f"Insufficient stock for {product.name}",
                details={"product_id": product.id, "available": str(product.current_stock)},
            )
    cart.set_customer(customer_id)
    cart.set_discount(discount)
    return cart
