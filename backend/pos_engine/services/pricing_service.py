"""
Pricing calculator.

Pure functions over integer cents. Line prices come from the snapshot taken
when the item entered the cart, never from a live catalog lookup, so an open
cart is unaffected by price edits made mid-sale.

Rounding: half-up to the cent, applied per line, to tax and to the discount.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, Protocol

from ..validation import ValidationFailure, parse_decimal, round_cents

DISCOUNT_PERCENTAGE = "percentage"
DISCOUNT_FIXED = "fixed"

BPS_DENOMINATOR = Decimal("10000")


class PricedLine(Protocol):
    unit_price_cents: int
    quantity: Decimal


@dataclass(frozen=True)
class Discount:
    """
    Whole-cart discount.

    ``value`` is percent points for ``percentage`` (10 = 10%) and cents for
    ``fixed``. Percentages above 100 are allowed; the payable amount still
    floors at zero.
    """
    type: str
    value: Decimal
    reason: str = ""

    def __post_init__(self):
        if self.type not in (DISCOUNT_PERCENTAGE, DISCOUNT_FIXED):
            raise ValidationFailure(f"Unknown discount type: {self.type}")
        # Three places, matching the held-order column
        value = parse_decimal(self.value, "discount value")
        if value < 0:
            raise ValidationFailure("Discount value cannot be negative")
        object.__setattr__(self, "value", value)

    @classmethod
    def from_dict(cls, data: dict | None) -> "Discount | None":
        if not data:
            return None
        if not isinstance(data, dict):
            raise ValidationFailure("discount must be an object with type and value")
        return cls(
            type=data.get("type"),
            value=data.get("value", 0),
            reason=data.get("reason") or "",
        )

    def to_dict(self) -> dict:
        return {"type": self.type, "value": str(self.value), "reason": self.reason}


@dataclass(frozen=True)
class Totals:
    subtotal_cents: int
    tax_cents: int
    total_cents: int

    def to_dict(self) -> dict:
        return {
            "subtotal_cents": self.subtotal_cents,
            "tax_cents": self.tax_cents,
            "total_cents": self.total_cents,
        }


def line_total_cents(unit_price_cents: int, quantity) -> int:
    return round_cents(Decimal(unit_price_cents) * Decimal(quantity))


def compute_totals(lines: Iterable[PricedLine], tax_rate_bps: int) -> Totals:
    subtotal = sum(line_total_cents(line.unit_price_cents, line.quantity) for line in lines)
    tax = round_cents(Decimal(subtotal) * Decimal(tax_rate_bps) / BPS_DENOMINATOR)
    return Totals(subtotal_cents=subtotal, tax_cents=tax, total_cents=subtotal + tax)


def discount_amount_cents(total_cents: int, discount: Discount | None) -> int:
    if discount is None:
        return 0
    if discount.type == DISCOUNT_PERCENTAGE:
        return round_cents(Decimal(total_cents) * discount.value / Decimal("100"))
    return round_cents(discount.value)


def apply_discount(total_cents: int, discount: Discount | None) -> int:
    """Payable amount after discount, never below zero."""
    return max(0, total_cents - discount_amount_cents(total_cents, discount))
