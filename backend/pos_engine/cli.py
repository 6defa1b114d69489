# Overview: Flask CLI command groups for bootstrap, catalog setup and reporting.

# backend/pos_engine/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap:
# - python -m flask system init-db
#   Create all tables that do not exist yet (use `flask db upgrade` for migrations).
#
# Tenant management:
# - python -m flask tenants create --name "Corner Shop" --max-orders 100 --tax-rate-bps 800
# - python -m flask tenants list
#
# Catalog and stock:
# - python -m flask products create --tenant-id tenant_... --sku APL-1 --name "Apples" --price-cents 250 --stock 40
# - python -m flask products list --tenant-id tenant_...
# - python -m flask products restock --tenant-id tenant_... --product-id product_... --quantity 12
#
# Registers:
# - python -m flask registers create --tenant-id tenant_... --name "Front Counter"
# - python -m flask registers list --tenant-id tenant_...
#
# Reports:
# - python -m flask reports sales-summary --tenant-id tenant_...

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import Product, Register, Tenant
from .models.inventory import PRODUCT_TYPE_UNIT, PRODUCT_TYPE_WEIGHTED
from .services import reporting_service, shift_service, stock_ledger, tenant_service
from .validation import PosError


@click.group('system')
def system_group():
    """System bootstrap commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create all tables for the configured database."""
    db.create_all()
    click.echo("PASS Database tables created")


@click.group('tenants')
def tenants_group():
    """Tenant management commands."""


@tenants_group.command('create')
@click.option('--name', required=True, help='Tenant name')
@click.option('--max-orders', type=int, help='Order quota of the plan')
@click.option('--tax-rate-bps', type=int, help='Tax rate in basis points (800 = 8%)')
@click.option('--currency-symbol', default='$', help='Currency symbol for display')
@with_appcontext
def create_tenant_cli(name, max_orders, tax_rate_bps, currency_symbol):
    """Create a new tenant with its document sequences."""
    try:
        tenant = tenant_service.create_tenant(
            name,
            max_orders=max_orders,
            tax_rate_bps=tax_rate_bps,
            currency_symbol=currency_symbol,
        )
    except PosError as e:
        click.echo(f"FAIL {e.message}")
        return

    click.echo(f"PASS Created tenant: {tenant.name} (ID: {tenant.id})")
    click.echo(f"   Max orders: {tenant.max_orders}, tax: {tenant.tax_rate_bps} bps")


@tenants_group.command('list')
@with_appcontext
def list_tenants():
    """List all tenants."""
    tenants = db.session.query(Tenant).order_by(Tenant.name).all()

    if not tenants:
        click.echo("No tenants found.")
        return

    click.echo("\n" + "="*90)
    click.echo(f"{'ID':<40} {'Name':<25} {'Sales':<8} {'Max':<8} {'Active'}")
    click.echo("="*90)

    for tenant in tenants:
        sale_count = tenant_service.count_sales(tenant.id)
        active_str = "Yes" if tenant.is_active else "No"
        click.echo(f"{tenant.id:<40} {tenant.name:<25} {sale_count:<8} {tenant.max_orders:<8} {active_str}")

    click.echo("="*90 + "\n")


@click.group('products')
def products_group():
    """Catalog and stock commands."""


@products_group.command('create')
@click.option('--tenant-id', required=True, help='Tenant ID')
@click.option('--sku', required=True, help='SKU (unique per tenant)')
@click.option('--name', required=True, help='Product name')
@click.option('--price-cents', type=int, required=True, help='Unit price in cents (per kg for weighted)')
@click.option('--cost-cents', type=int, default=0, help='Cost price in cents')
@click.option('--stock', default='0', help='Opening stock')
@click.option('--weighted', is_flag=True, help='Sold by weight')
@click.option('--weight-increment', default=None, help='Scale step for weighted products')
@with_appcontext
def create_product_cli(tenant_id, sku, name, price_cents, cost_cents, stock, weighted, weight_increment):
    """Register a product in a tenant's catalog."""
    try:
        tenant_service.get_tenant(tenant_id)
        product = stock_ledger.create_product(
            tenant_id=tenant_id,
            sku=sku,
            name=name,
            price_cents=price_cents,
            cost_price_cents=cost_cents,
            current_stock=stock,
            product_type=PRODUCT_TYPE_WEIGHTED if weighted else PRODUCT_TYPE_UNIT,
            weight_increment=weight_increment,
        )
    except PosError as e:
        click.echo(f"FAIL {e.message}")
        return

    click.echo(f"PASS Created product: {product.sku} - {product.name} (ID: {product.id})")


@products_group.command('list')
@click.option('--tenant-id', required=True, help='Tenant ID')
@with_appcontext
def list_products_cli(tenant_id):
    """List a tenant's products with stock levels."""
    products = (
        db.session.query(Product)
        .filter_by(tenant_id=tenant_id)
        .order_by(Product.sku)
        .all()
    )

    if not products:
        click.echo("No products found.")
        return

    click.echo("\n" + "="*90)
    click.echo(f"{'SKU':<15} {'Name':<30} {'Price':<10} {'Stock':<12} {'Status'}")
    click.echo("="*90)

    for p in products:
        click.echo(f"{p.sku:<15} {p.name:<30} {p.price_cents:<10} {str(p.current_stock):<12} {p.status}")

    click.echo("="*90 + "\n")


@products_group.command('restock')
@click.option('--tenant-id', required=True, help='Tenant ID')
@click.option('--product-id', required=True, help='Product ID')
@click.option('--quantity', required=True, help='Quantity to add')
@click.option('--note', default=None, help='Reason for the adjustment')
@with_appcontext
def restock_cli(tenant_id, product_id, quantity, note):
    """Add stock to a product (ADJUST movement)."""
    try:
        movement = stock_ledger.restock(
            tenant_id=tenant_id,
            product_id=product_id,
            quantity=quantity,
            note=note,
        )
    except PosError as e:
        click.echo(f"FAIL {e.message}")
        return

    click.echo(f"PASS Stock now {movement.resulting_stock} (+{movement.quantity_delta})")


@click.group('registers')
def registers_group():
    """Register commands."""


@registers_group.command('create')
@click.option('--tenant-id', required=True, help='Tenant ID')
@click.option('--name', required=True, help='Register name')
@click.option('--location', help='Location in store')
@with_appcontext
def create_register_cli(tenant_id, name, location):
    """
    Create a new POS register.

    Example:
        flask registers create --tenant-id tenant_... --name "Front Counter 1" --location "Main Floor"
    """
    try:
        tenant_service.get_tenant(tenant_id)
        register = shift_service.create_register(tenant_id, name, location)
    except PosError as e:
        click.echo(f"FAIL {e.message}")
        return

    click.echo(f"PASS Created register: {register.name} (ID: {register.id})")


@registers_group.command('list')
@click.option('--tenant-id', required=True, help='Tenant ID')
@with_appcontext
def list_registers_cli(tenant_id):
    registers = db.session.query(Register).filter_by(tenant_id=tenant_id).order_by(Register.name).all()

    if not registers:
        click.echo("No registers found.")
        return

    for register in registers:
        open_shift = shift_service.get_open_shift(register.id)
        shift_str = f"open shift {open_shift.id}" if open_shift else "no open shift"
        click.echo(f"{register.id:<40} {register.name:<25} {shift_str}")


@click.group('reports')
def reports_group():
    """Reporting commands."""


@reports_group.command('sales-summary')
@click.option('--tenant-id', required=True, help='Tenant ID')
@with_appcontext
def sales_summary_cli(tenant_id):
    """Print totals, refunds and margin for a tenant."""
    summary = reporting_service.sales_summary(tenant_id)

    click.echo(f"Total sales:    {summary['total_sales']}")
    click.echo(f"Revenue:        {summary['total_revenue_cents'] / 100:.2f}")
    click.echo(f"Refunds:        {summary['total_refunds_cents'] / 100:.2f}")
    click.echo(f"Profit:         {summary['total_profit_cents'] / 100:.2f}")
    click.echo(f"Margin:         {summary['margin_percent']}%")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(tenants_group)
    app.cli.add_command(products_group)
    app.cli.add_command(registers_group)
    app.cli.add_command(reports_group)
