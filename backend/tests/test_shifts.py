from decimal import Decimal

import pytest

from pos_engine.extensions import db
from pos_engine.models import AuditEvent
from pos_engine.models.registers import SHIFT_STATUS_CLOSED
from pos_engine.services import checkout_service, refund_service, shift_service
from pos_engine.services.cart_service import Cart
from pos_engine.validation import ShiftNotFound, ValidationFailure


def _sell(tenant, product, context_for, shift, **kwargs):
    cart = Cart()
    cart.add_item(product)
    return checkout_service.checkout(cart, context=context_for(tenant, shift_id=shift.id), **kwargs)


def test_only_one_open_shift_per_register(tenant, register):
    shift_service.open_shift(tenant.id, register.id, "cashier-1", 10000)

    with pytest.raises(ValidationFailure):
        shift_service.open_shift(tenant.id, register.id, "cashier-2", 5000)


def test_close_computes_expected_cash_and_variance(tenant, register, make_product, context_for):
    shift = shift_service.open_shift(tenant.id, register.id, "cashier-1", 10000)
    shift_id = shift.id
    product = make_product(tenant, price_cents=1000, stock=10)  # 1080 with tax

    _sell(tenant, product, context_for, shift, payment_method="CASH", amount_tendered_cents=2000)
    _sell(tenant, product, context_for, shift, payment_method="CARD")
    cash_sale = _sell(tenant, product, context_for, shift, payment_method="CASH")
    refund_service.refund(
        cash_sale.sale_id,
        [{"product_id": product.id, "quantity": 1}],
        "Returned",
        "cashier-1",
        tenant.id,
        shift_id=shift_id,
    )

    closed = shift_service.close_shift(shift_id, tenant.id, 11000)

    # 10000 opening + 1080 + 1080 cash in - 1000 refunded at sale price
    assert closed.expected_cash_cents == 11160
    assert closed.variance_cents == -160
    assert closed.status == SHIFT_STATUS_CLOSED
    assert closed.closed_at is not None


def test_close_twice_rejected(tenant, register):
    shift = shift_service.open_shift(tenant.id, register.id, "cashier-1", 0)
    shift_service.close_shift(shift.id, tenant.id, 0)

    with pytest.raises(ValidationFailure):
        shift_service.close_shift(shift.id, tenant.id, 0)


def test_close_unknown_shift(tenant):
    with pytest.raises(ShiftNotFound):
        shift_service.close_shift("shift_missing", tenant.id, 0)


def test_new_shift_after_close(tenant, register):
    first = shift_service.open_shift(tenant.id, register.id, "cashier-1", 0)
    shift_service.close_shift(first.id, tenant.id, 0)

    second = shift_service.open_shift(tenant.id, register.id, "cashier-2", 2500)

    assert shift_service.get_open_shift(register.id).id == second.id


def test_shift_events_audited(tenant, register):
    shift = shift_service.open_shift(tenant.id, register.id, "cashier-1", 0)
    shift_service.close_shift(shift.id, tenant.id, 0)

    actions = sorted(e.action for e in db.session.query(AuditEvent).filter_by(entity_id=shift.id))
    assert actions == ["shift_closed", "shift_opened"]


def test_duplicate_register_name_rejected(tenant, register):
    with pytest.raises(ValidationFailure):
        shift_service.create_register(tenant.id, register.name)
