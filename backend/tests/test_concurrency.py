"""
Write-conflict handling: version checks on products, retries and the
quota recount at checkout.
"""

from decimal import Decimal

import pytest
from sqlalchemy import update
from sqlalchemy.orm.exc import StaleDataError

from pos_engine.extensions import db
from pos_engine.models import Product, StockMovement
from pos_engine.services import checkout_service, stock_ledger
from pos_engine.services.cart_service import Cart
from pos_engine.services.concurrency import run_in_transaction
from pos_engine.services.stock_ledger import MOVEMENT_ADJUST
from pos_engine.validation import OrderLimitExceeded


def _bump_version_behind_session(product):
    """Simulate another writer committing a change to the product row."""
    db.session.execute(
        update(Product.__table__)
        .where(Product.__table__.c.id == product.id)
        .values(version_id=Product.__table__.c.version_id + 1)
    )


def test_version_conflict_is_retried_with_fresh_row(tenant, make_product, stock_of):
    product = make_product(tenant, stock=10)
    attempts = []

    def _op():
        attempts.append(1)
        row = stock_ledger.get_product(tenant.id, product.id)
        if len(attempts) == 1:
            _bump_version_behind_session(row)
        return stock_ledger.adjust_stock(row, Decimal("-3"), movement_type=MOVEMENT_ADJUST)

    run_in_transaction(_op, backoff_base=0)

    assert len(attempts) == 2
    assert stock_of(product) == Decimal("7")
    assert db.session.query(StockMovement).filter_by(product_id=product.id).count() == 1


def test_version_conflict_gives_up_after_last_attempt(tenant, make_product, stock_of):
    product = make_product(tenant, stock=10)
    attempts = []

    def _op():
        attempts.append(1)
        row = stock_ledger.get_product(tenant.id, product.id)
        _bump_version_behind_session(row)
        return stock_ledger.adjust_stock(row, Decimal("-3"), movement_type=MOVEMENT_ADJUST)

    with pytest.raises(StaleDataError):
        run_in_transaction(_op, attempts=2, backoff_base=0)

    assert len(attempts) == 2
    assert stock_of(product) == Decimal("10")


def test_quota_recounted_inside_checkout(make_tenant, make_product, context_for):
    shop = make_tenant("One Slot", max_orders=1)
    product = make_product(shop, stock=5)
    first_context = context_for(shop)
    second_context = context_for(shop)
    assert first_context.current_sale_count == second_context.current_sale_count == 0

    cart = Cart()
    cart.add_item(product)
    checkout_service.checkout(cart, context=first_context)

    with pytest.raises(OrderLimitExceeded) as excinfo:
        checkout_service.checkout(cart, context=second_context)

    assert excinfo.value.current_count == 1
