"""
Register and shift management.

DESIGN PRINCIPLES:
- One open shift per register at a time
- Shifts are immutable once closed
- Expected cash is derived at close from the CASH payments and CASH refunds
  recorded against the shift, never kept as a running counter
"""

from __future__ import annotations

from flask import current_app
from sqlalchemy import func

from ..extensions import db
from ..models import Payment, Refund, Register, Sale, Shift
from ..models.registers import SHIFT_STATUS_OPEN, SHIFT_STATUS_CLOSED
from ..validation import ShiftNotFound, ValidationFailure, parse_cents, require_text
from pos_engine.time_utils import utcnow
from .audit_service import append_audit_event, ACTION_SHIFT_OPENED, ACTION_SHIFT_CLOSED
from .concurrency import lock_for_update, run_in_transaction

CASH = "CASH"


# =============================================================================
# REGISTERS
# =============================================================================

def create_register(tenant_id: str, name: str, location: str | None = None) -> Register:
    name = require_text(name, "name")
    existing = db.session.query(Register).filter_by(tenant_id=tenant_id, name=name).first()
    if existing:
        raise ValidationFailure(f"Register {name} already exists")

    register = Register(tenant_id=tenant_id, name=name, location=location)
    db.session.add(register)
    db.session.commit()
    return register


# =============================================================================
# SHIFTS
# =============================================================================

def get_open_shift(register_id: str) -> Shift | None:
    return (
        db.session.query(Shift)
        .filter_by(register_id=register_id, status=SHIFT_STATUS_OPEN)
        .first()
    )


def open_shift(
    tenant_id: str,
    register_id: str,
    cashier_user_id: str,
    opening_cash_cents: int = 0,
) -> Shift:
    """
    Open a shift on a register.

    Raises ValidationFailure if the register is unknown or inactive, or
    already has an open shift.
    """
    opening = parse_cents(opening_cash_cents, "opening_cash_cents")

    def _op() -> Shift:
        register = lock_for_update(
            db.session.query(Register).filter_by(id=register_id, tenant_id=tenant_id)
        ).first()
        if not register:
            raise ValidationFailure("Register not found")
        if not register.is_active:
            raise ValidationFailure("Cannot open shift on inactive register")
        if get_open_shift(register_id):
            raise ValidationFailure("Register already has an open shift")

        shift = Shift(
            tenant_id=tenant_id,
            register_id=register_id,
            cashier_user_id=cashier_user_id,
            status=SHIFT_STATUS_OPEN,
            opening_cash_cents=opening,
            opened_at=utcnow(),
        )
        db.session.add(shift)
        db.session.flush()

        append_audit_event(
            tenant_id=tenant_id,
            action=ACTION_SHIFT_OPENED,
            entity_type="shift",
            entity_id=shift.id,
            user_id=cashier_user_id,
            occurred_at=shift.opened_at,
            payload={"register_id": register_id, "opening_cash_cents": opening},
        )
        return shift

    return run_in_transaction(_op)


def cash_in_cents(shift_id: str) -> int:
    """Net cash taken for sales of the shift (tendered minus change)."""
    total = (
        db.session.query(
            func.coalesce(
                func.sum(Payment.amount_tendered_cents - Payment.change_given_cents), 0
            )
        )
        .select_from(Payment)
        .join(Sale, Sale.id == Payment.sale_id)
        .filter(Sale.shift_id == shift_id, Payment.method == CASH)
        .scalar()
    )
    return int(total or 0)


def cash_refunds_cents(shift_id: str) -> int:
    """Refunds paid out of the drawer during the shift for cash sales."""
    total = (
        db.session.query(func.coalesce(func.sum(Refund.refund_total_cents), 0))
        .select_from(Refund)
        .join(Sale, Sale.id == Refund.original_sale_id)
        .filter(Refund.shift_id == shift_id, Sale.payment_method == CASH)
        .scalar()
    )
    return int(total or 0)


def close_shift(shift_id: str, tenant_id: str, closing_cash_cents: int) -> Shift:
    """
    Close a shift and freeze expected cash and variance.

    expected = opening + cash in - cash refunds; variance = closing - expected.
    """
    closing = parse_cents(closing_cash_cents, "closing_cash_cents")

    def _op() -> Shift:
        shift = lock_for_update(
            db.session.query(Shift).filter_by(id=shift_id, tenant_id=tenant_id)
        ).first()
        if not shift:
            raise ShiftNotFound("Shift not found")
        if shift.status != SHIFT_STATUS_OPEN:
            raise ValidationFailure("Shift already closed")

        expected = shift.opening_cash_cents + cash_in_cents(shift.id) - cash_refunds_cents(shift.id)
        variance = closing - expected

        shift.status = SHIFT_STATUS_CLOSED
        shift.closed_at = utcnow()
        shift.closing_cash_cents = closing
        shift.expected_cash_cents = expected
        shift.variance_cents = variance
        db.session.flush()

        append_audit_event(
            tenant_id=tenant_id,
            action=ACTION_SHIFT_CLOSED,
            entity_type="shift",
            entity_id=shift.id,
            user_id=shift.cashier_user_id,
            occurred_at=shift.closed_at,
            payload={
                "closing_cash_cents": closing,
                "expected_cash_cents": expected,
                "variance_cents": variance,
            },
        )
        return shift

    shift = run_in_transaction(_op)
    if shift.variance_cents:
        current_app.logger.warning(
            "Shift %s closed with cash variance of %s cents", shift.id, shift.variance_cents
        )
    return shift
