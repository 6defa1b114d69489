from decimal import Decimal

import pytest

from pos_engine.extensions import db
from pos_engine.models import AuditEvent, Payment, Receipt, Sale, StockMovement
from pos_engine.services import checkout_service, tenant_service
from pos_engine.services.cart_service import Cart
from pos_engine.services.pricing_service import Discount
from pos_engine.validation import InsufficientStock, OrderLimitExceeded, ValidationFailure


def _sell(tenant, product, context_for, quantity=1, **kwargs):
    cart = Cart(register_id="register_misc")
    cart.add_item(product, quantity)
    return checkout_service.checkout(cart, context=context_for(tenant), **kwargs)


def test_checkout_scenario_with_ten_percent_discount(tenant, make_product, cart, context_for, stock_of):
    laptop = make_product(tenant, name="Laptop", price_cents=99900, stock=3)
    cart.add_item(laptop)
    cart.set_discount(Discount("percentage", Decimal("10"), "Staff"))

    result = checkout_service.checkout(cart, context=context_for(tenant))

    sale = result.sale
    assert sale.subtotal_cents == 99900
    assert sale.tax_cents == 7992
    assert sale.total_cents == 107892
    assert sale.discount_cents == 10789
    assert sale.grand_total_cents == 97103
    assert sale.number == "SALE-000001"
    assert result.receipt.receipt_number == "RCP-00000001"
    assert result.receipt.sale_id == result.sale_id
    assert stock_of(laptop) == Decimal("2")

    actions = {e.action for e in db.session.query(AuditEvent).filter_by(entity_id=result.sale_id)}
    assert actions == {"sale_completed", "discount_applied"}


def test_checkout_decrements_each_line_exactly(tenant, make_product, cart, context_for, stock_of):
    soap = make_product(tenant, name="Soap", stock=10)
    rice = make_product(tenant, name="Rice", stock=4)
    cart.add_item(soap, 3)
    cart.add_item(rice, 4)
    before = tenant_service.count_sales(tenant.id)

    result = checkout_service.checkout(cart, context=context_for(tenant))

    assert stock_of(soap) == Decimal("7")
    assert stock_of(rice) == Decimal("0")
    assert tenant_service.count_sales(tenant.id) == before + 1
    assert [line.position for line in result.sale.lines] == [1, 2]
    assert db.session.query(StockMovement).filter_by(reference_id=result.sale_id).count() == 2


def test_checkout_snapshots_cost_and_walk_in_customer(tenant, make_product, cart, context_for):
    product = make_product(tenant, price_cents=500, cost_price_cents=300)
    cart.add_item(product)

    result = checkout_service.checkout(cart, context=context_for(tenant))

    assert result.sale.customer_id == ""
    assert result.sale.lines[0].cost_price_cents == 300


def test_checkout_keeps_cart_for_caller_to_clear(tenant, make_product, cart, context_for):
    cart.add_item(make_product(tenant))

    checkout_service.checkout(cart, context=context_for(tenant))

    assert len(cart) == 1


def test_empty_cart_rejected(tenant, cart, context_for):
    with pytest.raises(ValidationFailure, match="Cart is empty"):
        checkout_service.checkout(cart, context=context_for(tenant))

    assert db.session.query(Sale).count() == 0
    assert db.session.query(Receipt).count() == 0


def test_order_limit_reached(make_tenant, make_product, context_for, stock_of):
    shop = make_tenant("Tiny Plan", max_orders=5)
    product = make_product(shop, stock=20)
    for _ in range(5):
        _sell(shop, product, context_for)

    cart = Cart()
    cart.add_item(product)
    with pytest.raises(OrderLimitExceeded) as excinfo:
        checkout_service.checkout(cart, context=context_for(shop))

    assert excinfo.value.message == "Order limit reached (5/5)"
    assert stock_of(product) == Decimal("15")
    assert tenant_service.count_sales(shop.id) == 5


def test_strict_mode_refuses_oversell(tenant, make_product, cart, context_for, stock_of, db_session):
    product = make_product(tenant, stock=2)
    cart.add_item(product, 2)

    # Someone else sells the stock while the cart is open
    product.current_stock = Decimal("1")
    db_session.commit()

    with pytest.raises(InsufficientStock) as excinfo:
        checkout_service.checkout(cart, context=context_for(tenant))

    assert excinfo.value.details["items"][0]["product_id"] == product.id
    assert stock_of(product) == Decimal("1")
    assert db.session.query(Sale).count() == 0


def test_soft_mode_warns_and_floors_stock(app, tenant, make_product, cart, context_for, stock_of, db_session):
    app.config["POS_STRICT_STOCK_CHECK"] = False
    product = make_product(tenant, stock=2)
    cart.add_item(product, 2)
    product.current_stock = Decimal("1")
    db_session.commit()

    result = checkout_service.checkout(cart, context=context_for(tenant))

    assert [w.product_id for w in result.warnings] == [product.id]
    assert stock_of(product) == Decimal("0")


def test_cash_payment_records_change(tenant, make_product, cart, context_for):
    cart.add_item(make_product(tenant, price_cents=1000))

    result = checkout_service.checkout(
        cart, context=context_for(tenant), payment_method="cash", amount_tendered_cents=2000
    )

    assert result.payment.method == "CASH"
    assert result.payment.amount_tendered_cents == 2000
    assert result.payment.change_given_cents == 2000 - result.sale.grand_total_cents


def test_underpayment_rejected(tenant, make_product, cart, context_for, stock_of):
    product = make_product(tenant, price_cents=1000)
    cart.add_item(product)

    with pytest.raises(ValidationFailure):
        checkout_service.checkout(cart, context=context_for(tenant), amount_tendered_cents=500)

    assert stock_of(product) == Decimal("10")
    assert db.session.query(Payment).count() == 0


def test_unknown_payment_method_rejected(tenant, make_product, cart, context_for):
    cart.add_item(make_product(tenant))

    with pytest.raises(ValidationFailure):
        checkout_service.checkout(cart, context=context_for(tenant), payment_method="BARTER")


def test_sale_numbers_are_sequential_per_tenant(make_tenant, make_product, context_for):
    shop_a = make_tenant("Shop A")
    shop_b = make_tenant("Shop B")
    product_a = make_product(shop_a)
    product_b = make_product(shop_b)

    first = _sell(shop_a, product_a, context_for)
    second = _sell(shop_a, product_a, context_for)
    other = _sell(shop_b, product_b, context_for)

    assert (first.sale.number, second.sale.number) == ("SALE-000001", "SALE-000002")
    assert other.sale.number == "SALE-000001"


def test_get_sale_is_tenant_scoped(make_tenant, make_product, context_for):
    shop_a = make_tenant("Shop A")
    shop_b = make_tenant("Shop B")
    result = _sell(shop_a, make_product(shop_a), context_for)

    assert checkout_service.get_sale(shop_a.id, result.sale_id) is not None
    assert checkout_service.get_sale(shop_b.id, result.sale_id) is None


def test_mark_receipt_printed(tenant, make_product, cart, context_for):
    cart.add_item(make_product(tenant))
    result = checkout_service.checkout(cart, context=context_for(tenant))

    receipt = checkout_service.mark_receipt_printed(tenant.id, result.receipt_id)

    assert receipt.printed_at is not None
