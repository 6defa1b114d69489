from decimal import Decimal

import pytest

from pos_engine.extensions import db
from pos_engine.models import Refund
from pos_engine.services import audit_service, checkout_service, refund_service
from pos_engine.services.cart_service import Cart
from pos_engine.services.refund_service import (
    REFUND_STATUS_FULL,
    REFUND_STATUS_NONE,
    REFUND_STATUS_PARTIAL,
    RefundRequestLine,
)
from pos_engine.validation import SaleNotFound, ValidationFailure


@pytest.fixture
def sold(tenant, make_product, context_for):
    """Sale of 2 x A and 1 x B."""
    a = make_product(tenant, name="Product A", price_cents=1250, stock=10)
    b = make_product(tenant, name="Product B", price_cents=800, stock=10)
    cart = Cart()
    cart.add_item(a, 2)
    cart.add_item(b, 1)
    result = checkout_service.checkout(cart, context=context_for(tenant))
    return result.sale_id, a, b


def test_refund_one_of_a(tenant, sold, stock_of):
    sale_id, a, b = sold

    refund = refund_service.refund(
        sale_id, [RefundRequestLine(a.id, Decimal("1"))], "Damaged", "cashier-1", tenant.id
    )

    assert refund.refund_total_cents == 1250
    assert refund.refund_number == "REF-000001"
    assert refund.original_sale_id == sale_id
    assert stock_of(a) == Decimal("9")
    assert stock_of(b) == Decimal("9")
    assert refund_service.refund_status(sale_id) == REFUND_STATUS_PARTIAL


def test_refund_uses_sale_time_price(tenant, sold, db_session):
    sale_id, a, _ = sold
    a.price_cents = 9999
    db_session.commit()

    refund = refund_service.refund(
        sale_id, [{"product_id": a.id, "quantity": 2}], "", "cashier-1", tenant.id
    )

    assert refund.refund_total_cents == 2500


def test_cumulative_refund_capped_at_sold_quantity(tenant, sold, stock_of):
    sale_id, a, _ = sold
    refund_service.refund(sale_id, [{"product_id": a.id, "quantity": 1}], "", "c", tenant.id)
    refund_service.refund(sale_id, [{"product_id": a.id, "quantity": 1}], "", "c", tenant.id)

    with pytest.raises(ValidationFailure):
        refund_service.refund(sale_id, [{"product_id": a.id, "quantity": 1}], "", "c", tenant.id)

    assert stock_of(a) == Decimal("10")
    assert db.session.query(Refund).count() == 2


def test_duplicate_lines_in_one_request_are_merged(tenant, sold):
    sale_id, a, _ = sold

    with pytest.raises(ValidationFailure):
        refund_service.refund(
            sale_id,
            [{"product_id": a.id, "quantity": 2}, {"product_id": a.id, "quantity": 1}],
            "",
            "c",
            tenant.id,
        )


def test_full_refund_status(tenant, sold):
    sale_id, a, b = sold
    assert refund_service.refund_status(sale_id) == REFUND_STATUS_NONE

    refund_service.refund(
        sale_id,
        [{"product_id": a.id, "quantity": 2}, {"product_id": b.id, "quantity": 1}],
        "Changed mind",
        "c",
        tenant.id,
    )

    assert refund_service.refund_status(sale_id) == REFUND_STATUS_FULL
    assert refund_service.refunded_quantities(sale_id) == {a.id: Decimal("2"), b.id: Decimal("1")}


def test_unknown_sale(tenant):
    with pytest.raises(SaleNotFound):
        refund_service.refund("sale_missing", [{"product_id": "x", "quantity": 1}], "", "c", tenant.id)


def test_unknown_sale_reported_before_item_checks(tenant):
    with pytest.raises(SaleNotFound):
        refund_service.refund("sale_missing", [], "", "c", tenant.id)
    with pytest.raises(SaleNotFound):
        refund_service.refund("sale_missing", ["abc"], "", "c", tenant.id)


def test_sale_of_other_tenant_not_found(make_tenant, sold):
    sale_id, a, _ = sold
    other = make_tenant("Other Shop")

    with pytest.raises(SaleNotFound):
        refund_service.refund(sale_id, [{"product_id": a.id, "quantity": 1}], "", "c", other.id)


def test_product_not_on_sale(tenant, sold, make_product):
    sale_id, _, _ = sold
    stranger = make_product(tenant, name="Stranger")

    with pytest.raises(ValidationFailure):
        refund_service.refund(sale_id, [{"product_id": stranger.id, "quantity": 1}], "", "c", tenant.id)


@pytest.mark.parametrize("quantity", [0, -1, "abc"])
def test_bad_quantity(tenant, sold, quantity):
    sale_id, a, _ = sold

    with pytest.raises(ValidationFailure):
        refund_service.refund(sale_id, [{"product_id": a.id, "quantity": quantity}], "", "c", tenant.id)


def test_empty_items(tenant, sold):
    sale_id, _, _ = sold

    with pytest.raises(ValidationFailure):
        refund_service.refund(sale_id, [], "", "c", tenant.id)


def test_refund_is_audited_and_listed(tenant, sold):
    sale_id, a, _ = sold
    refund = refund_service.refund(sale_id, [{"product_id": a.id, "quantity": 1}], "Stale", "c", tenant.id)

    events = audit_service.list_audit_events(tenant.id, action="sale_refunded", entity_id=sale_id)
    assert len(events) == 1
    assert events[0].payload["refund_id"] == refund.id
    assert [r.id for r in refund_service.list_refunds(tenant.id, sale_id=sale_id)] == [refund.id]


def test_refund_after_soft_oversell_restores_only_stock_taken(
    app, tenant, make_product, context_for, stock_of, db_session
):
    app.config["POS_STRICT_STOCK_CHECK"] = False
    product = make_product(tenant, price_cents=300, stock=5)
    cart = Cart()
    cart.add_item(product, 5)
    product.current_stock = Decimal("2")
    db_session.commit()
    sale_id = checkout_service.checkout(cart, context=context_for(tenant)).sale_id
    assert stock_of(product) == Decimal("0")

    first = refund_service.refund(sale_id, [{"product_id": product.id, "quantity": 4}], "", "c", tenant.id)
    assert first.refund_total_cents == 1200
    assert stock_of(product) == Decimal("2")
    assert refund_service.restorable_stock(sale_id, product.id) == Decimal("0")

    refund_service.refund(sale_id, [{"product_id": product.id, "quantity": 1}], "", "c", tenant.id)
    assert stock_of(product) == Decimal("2")
    assert refund_service.refund_status(sale_id) == REFUND_STATUS_FULL
