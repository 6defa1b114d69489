from decimal import Decimal

from pos_engine.services import checkout_service, refund_service, reporting_service
from pos_engine.services.cart_service import Cart


def _sell(tenant, product, context_for, quantity=1):
    cart = Cart()
    cart.add_item(product, quantity)
    return checkout_service.checkout(cart, context=context_for(tenant))


def test_empty_summary(tenant):
    summary = reporting_service.sales_summary(tenant.id)

    assert summary["total_sales"] == 0
    assert summary["total_revenue_cents"] == 0
    assert summary["margin_percent"] == "0"


def test_summary_excludes_refunded_sales_from_margin(tenant, make_product, context_for):
    mug = make_product(tenant, name="Mug", price_cents=1000, cost_price_cents=600, stock=10)
    kept = _sell(tenant, mug, context_for, 2)
    returned = _sell(tenant, mug, context_for, 1)
    refund_service.refund(
        returned.sale_id, [{"product_id": mug.id, "quantity": 1}], "", "c", tenant.id
    )

    summary = reporting_service.sales_summary(tenant.id)

    assert summary["total_sales"] == 2
    assert summary["total_revenue_cents"] == kept.sale.grand_total_cents + returned.sale.grand_total_cents
    assert summary["total_refunds_cents"] == 1000
    assert summary["total_cost_cents"] == 1200
    assert summary["total_profit_cents"] == 800
    # 800 / (800 + 1200)
    assert Decimal(summary["margin_percent"]) == Decimal("40.0")


def test_summary_is_tenant_scoped(make_tenant, make_product, context_for):
    shop_a = make_tenant("Shop A")
    shop_b = make_tenant("Shop B")
    _sell(shop_a, make_product(shop_a), context_for)

    assert reporting_service.sales_summary(shop_b.id)["total_sales"] == 0
