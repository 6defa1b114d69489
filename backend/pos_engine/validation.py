from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any


# Quantities are kept to the gram for weighted products
QUANTITY_PLACES = Decimal("0.001")

# Maximum price: $9,999,999.99 (999,999,999 cents)
MAX_PRICE_CENTS = 999_999_999


class PosError(Exception):
    """Base class for POS engine failures reported to the caller."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ValidationFailure(PosError, ValueError):
    """Input or precondition problem detected before any mutation."""


class InsufficientStock(ValidationFailure):
    """Requested quantity is not on hand."""


class OrderLimitExceeded(PosError):
    """Tenant has reached the order quota of its plan."""

    def __init__(self, current_count: int, max_orders: int):
        super().__init__(
            f"Order limit reached ({current_count}/{max_orders})",
            details={"current_count": current_count, "max_orders": max_orders},
        )
        self.current_count = current_count
        self.max_orders = max_orders


class SaleNotFound(PosError):
    """Refund or lookup against an unknown sale."""


class ShiftNotFound(PosError):
    """Shift lookup failed."""


@dataclass(frozen=True)
class StockWarning:
    """Soft notice that a line meets or exceeds the stock on hand."""
    product_id: str
    product_name: str
    requested: Decimal
    available: Decimal

    def to_dict(self) -> dict:
        return {
            "product_id": self.product_id,
            "product_name": self.product_name,
            "requested": str(self.requested),
            "available": str(self.available),
        }


def round_cents(value: Decimal | int) -> int:
    """Round a cent amount half-up to a whole cent."""
    return int(Decimal(value).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def parse_decimal(value: Any, field: str) -> Decimal:
    """
    Coerce a number to Decimal with three places.

    Rejects booleans, scientific notation strings and non-finite values.
    The sign is left to the caller.
    """
    if value is None or isinstance(value, bool):
        raise ValidationFailure(f"{field} is required")
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped or "e" in stripped.lower():
            raise ValidationFailure(f"{field} must be a plain number")
        value = stripped
    try:
        number = Decimal(str(value)) if not isinstance(value, Decimal) else value
    except (InvalidOperation, ValueError):
        raise ValidationFailure(f"{field} must be a number")
    if not number.is_finite():
        raise ValidationFailure(f"{field} must be a number")
    try:
        return number.quantize(QUANTITY_PLACES, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        raise ValidationFailure(f"{field} is out of range")


def parse_quantity(value: Any, field: str = "quantity") -> Decimal:
    """Positive quantity with three places."""
    qty = parse_decimal(value, field)
    if qty <= 0:
        raise ValidationFailure(f"{field} must be positive")
    return qty


def parse_cents(value: Any, field: str, *, allow_zero: bool = True) -> int:
    """Strict integer cents, same rules as the catalog price columns."""
    if isinstance(value, bool) or value is None:
        raise ValidationFailure(f"{field} must be an integer amount in cents")
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped or not stripped.lstrip("-").isdigit():
            raise ValidationFailure(f"{field} must be an integer amount in cents")
        value = int(stripped)
    if isinstance(value, float):
        raise ValidationFailure(f"{field} must be an integer, not a decimal")
    if not isinstance(value, int):
        raise ValidationFailure(f"{field} must be an integer amount in cents")
    if value < 0 or (value == 0 and not allow_zero):
        raise ValidationFailure(f"{field} must be positive")
    if value > MAX_PRICE_CENTS:
        raise ValidationFailure(f"{field} exceeds maximum allowed amount")
    return value


def require_text(value: Any, field: str) -> str:
    if value is None:
        raise ValidationFailure(f"{field} is required")
    text = str(value).strip()
    if not text:
        raise ValidationFailure(f"{field} is required")
    return text
