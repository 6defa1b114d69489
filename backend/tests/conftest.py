"""
Pytest fixtures for POS engine backend tests.

Provides an in-memory database, per-test cleanup, tenant/product factories
and a test client.
"""

from decimal import Decimal

import pytest

from pos_engine import create_app
from pos_engine.extensions import db
from pos_engine.models.inventory import PRODUCT_TYPE_UNIT, PRODUCT_TYPE_WEIGHTED
from pos_engine.services import shift_service, stock_ledger, tenant_service
from pos_engine.services.cart_service import Cart


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'POS_STRICT_STOCK_CHECK': True,
        'POS_DEFAULT_TAX_RATE_BPS': 1000,
        'POS_DEFAULT_MAX_ORDERS': 100,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function', autouse=True)
def db_session(app):
    """Fresh data for each test; the schema is kept."""
    meta = db.metadata
    for table in reversed(meta.sorted_tables):
        db.session.execute(table.delete())
    db.session.commit()

    yield db.session

    db.session.rollback()
    app.config['POS_STRICT_STOCK_CHECK'] = True


@pytest.fixture
def make_tenant():
    def _make(name="Corner Shop", **kwargs):
        return tenant_service.create_tenant(name, **kwargs)
    return _make


@pytest.fixture
def tenant(make_tenant):
    """Tenant with an 8% tax rate."""
    return make_tenant(tax_rate_bps=800, max_orders=100)


@pytest.fixture
def make_product():
    counter = {"n": 0}

    def _make(tenant, name="Widget", price_cents=1000, stock=10, cost_price_cents=0, **kwargs):
        counter["n"] += 1
        return stock_ledger.create_product(
            tenant_id=tenant.id,
            sku=kwargs.pop("sku", f"SKU-{counter['n']:04d}"),
            name=name,
            price_cents=price_cents,
            cost_price_cents=cost_price_cents,
            current_stock=stock,
            product_type=kwargs.pop("product_type", PRODUCT_TYPE_UNIT),
            **kwargs,
        )
    return _make


@pytest.fixture
def make_weighted_product(make_product):
    def _make(tenant, name="Apples", price_cents=400, stock="5.000", **kwargs):
        return make_product(
            tenant,
            name=name,
            price_cents=price_cents,
            stock=stock,
            product_type=PRODUCT_TYPE_WEIGHTED,
            weight_increment=kwargs.pop("weight_increment", "0.250"),
            min_sale_weight=kwargs.pop("min_sale_weight", "0.100"),
            **kwargs,
        )
    return _make


@pytest.fixture
def register(tenant):
    return shift_service.create_register(tenant.id, "Front Counter")


@pytest.fixture
def context_for(register):
    """Build a checkout context for a tenant on the fixture register."""
    def _make(tenant, cashier="cashier-1", shift_id=None):
        return tenant_service.build_checkout_context(
            tenant_id=tenant.id,
            register_id=register.id,
            cashier_user_id=cashier,
            shift_id=shift_id,
        )
    return _make


@pytest.fixture
def cart(register):
    return Cart(register_id=register.id)


@pytest.fixture
def stock_of():
    """Current stock read straight from the database."""
    def _read(product) -> Decimal:
        db.session.expire_all()
        return Decimal(stock_ledger.get_product(product.tenant_id, product.id).current_stock)
    return _read
