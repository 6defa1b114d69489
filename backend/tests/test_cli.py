from decimal import Decimal

import pytest

from pos_engine.extensions import db
from pos_engine.models import Product, Register, Tenant


@pytest.fixture
def runner(app):
    return app.test_cli_runner()


def test_tenants_create_and_list(runner):
    result = runner.invoke(args=["tenants", "create", "--name", "Kiosk", "--max-orders", "3", "--tax-rate-bps", "500"])

    assert "PASS Created tenant: Kiosk" in result.output
    tenant = db.session.query(Tenant).filter_by(name="Kiosk").one()
    assert tenant.max_orders == 3
    assert tenant.tax_rate_bps == 500

    listing = runner.invoke(args=["tenants", "list"])
    assert tenant.id in listing.output


def test_tenants_create_rejects_bad_tax_rate(runner):
    result = runner.invoke(args=["tenants", "create", "--name", "Bad", "--tax-rate-bps", "20000"])

    assert "FAIL" in result.output
    assert db.session.query(Tenant).count() == 0


def test_products_create_list_restock(runner, tenant):
    created = runner.invoke(args=[
        "products", "create",
        "--tenant-id", tenant.id,
        "--sku", "TEA-1",
        "--name", "Green Tea",
        "--price-cents", "450",
        "--stock", "4",
    ])
    assert "PASS Created product: TEA-1" in created.output
    product = db.session.query(Product).filter_by(sku="TEA-1").one()

    restocked = runner.invoke(args=[
        "products", "restock",
        "--tenant-id", tenant.id,
        "--product-id", product.id,
        "--quantity", "6",
    ])
    assert "PASS Stock now" in restocked.output
    db.session.expire_all()
    assert Decimal(product.current_stock) == Decimal("10")

    listing = runner.invoke(args=["products", "list", "--tenant-id", tenant.id])
    assert "Green Tea" in listing.output


def test_products_create_unknown_tenant(runner):
    result = runner.invoke(args=[
        "products", "create",
        "--tenant-id", "tenant_missing",
        "--sku", "X",
        "--name", "X",
        "--price-cents", "100",
    ])

    assert "FAIL Tenant not found" in result.output


def test_registers_create_and_list(runner, tenant):
    result = runner.invoke(args=["registers", "create", "--tenant-id", tenant.id, "--name", "Back Counter"])

    assert "PASS Created register: Back Counter" in result.output
    register = db.session.query(Register).filter_by(name="Back Counter").one()
    listing = runner.invoke(args=["registers", "list", "--tenant-id", tenant.id])
    assert register.id in listing.output


def test_reports_sales_summary(runner, tenant):
    result = runner.invoke(args=["reports", "sales-summary", "--tenant-id", tenant.id])

    assert "Total sales:    0" in result.output
    assert "Margin:         0%" in result.output


def test_init_db(runner):
    result = runner.invoke(args=["system", "init-db"])

    assert "PASS Database tables created" in result.output
