# Overview: Sales history summary for a tenant; counts, revenue, refunds and margin.

from __future__ import annotations

from decimal import Decimal

from sqlalchemy import func, select

from ..extensions import db
from ..models import Refund, Sale, SaleLine
from ..validation import round_cents


def sales_summary(tenant_id: str) -> dict:
    """
    Totals over every sale of the tenant.

    Profit and cost only cover sales that have no refund at all; a sale with
    any refund is left out of the margin figures entirely.
    """
    total_sales, revenue = (
        db.session.query(func.count(Sale.id), func.coalesce(func.sum(Sale.grand_total_cents), 0))
        .filter(Sale.tenant_id == tenant_id)
        .one()
    )
    refunds_total = (
        db.session.query(func.coalesce(func.sum(Refund.refund_total_cents), 0))
        .filter(Refund.tenant_id == tenant_id)
        .scalar()
    )

    refunded_sale_ids = (
        select(Refund.original_sale_id)
        .where(Refund.tenant_id == tenant_id)
        .distinct()
    )
    lines = (
        db.session.query(SaleLine)
        .join(Sale, Sale.id == SaleLine.sale_id)
        .filter(Sale.tenant_id == tenant_id, ~Sale.id.in_(refunded_sale_ids))
        .all()
    )

    cost = 0
    profit = 0
    for line in lines:
        line_cost = round_cents(Decimal(line.cost_price_cents or 0) * Decimal(line.quantity))
        cost += line_cost
        profit += line.line_subtotal_cents - line_cost

    margin = Decimal("0")
    if profit > 0:
        margin = (Decimal(profit) / Decimal(profit + cost) * 100).quantize(Decimal("0.1"))

    return {
        "total_sales": int(total_sales or 0),
        "total_revenue_cents": int(revenue or 0),
        "total_refunds_cents": int(refunds_total or 0),
        "total_cost_cents": cost,
        "total_profit_cents": profit,
        "margin_percent": str(margin),
    }
