"""Initial POS engine schema

Revision ID: 20261019_initial
Revises:
Create Date: 2026-10-19

This migration creates:
1. Tenants, document sequences and the audit trail
2. Products and the stock movement ledger
3. Registers and shifts
4. Sales with lines, receipts and payments
5. Held orders with their lines
6. Refunds with their lines
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '20261019_initial'
down_revision = None
branch_labels = None
depends_on = None

ID = sa.String(length=48)
QTY = sa.Numeric(precision=12, scale=3)
NOW = sa.text('(CURRENT_TIMESTAMP)')


def upgrade():
    # ==========================================================================
    # 1. TENANTS, SEQUENCES, AUDIT
    # ==========================================================================
    op.create_table('tenants',
        sa.Column('id', ID, nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('plan', sa.String(length=32), nullable=False),
        sa.Column('max_orders', sa.Integer(), nullable=False),
        sa.Column('tax_rate_bps', sa.Integer(), nullable=False),
        sa.Column('currency_symbol', sa.String(length=8), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=NOW, nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=NOW, nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    with op.batch_alter_table('tenants', schema=None) as batch_op:
        batch_op.create_index('ix_tenants_is_active', ['is_active'], unique=False)

    op.create_table('document_sequences',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('tenant_id', ID, nullable=False),
        sa.Column('document_type', sa.String(length=32), nullable=False),
        sa.Column('next_number', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(['tenant_id'], ['tenants.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('tenant_id', 'document_type', name='uq_document_sequences_tenant_type'),
    )
    with op.batch_alter_table('document_sequences', schema=None) as batch_op:
        batch_op.create_index('ix_document_sequences_tenant_id', ['tenant_id'], unique=False)

    op.create_table('audit_events',
        sa.Column('id', ID, nullable=False),
        sa.Column('tenant_id', ID, nullable=False),
        sa.Column('action', sa.String(length=64), nullable=False),
        sa.Column('entity_type', sa.String(length=32), nullable=False),
        sa.Column('entity_id', ID, nullable=False),
        sa.Column('user_id', sa.String(length=64), nullable=True),
        sa.Column('occurred_at', sa.DateTime(timezone=True), server_default=NOW, nullable=False),
        sa.Column('payload', sa.JSON(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    with op.batch_alter_table('audit_events', schema=None) as batch_op:
        batch_op.create_index('ix_audit_events_tenant_id', ['tenant_id'], unique=False)
        batch_op.create_index('ix_audit_events_action', ['action'], unique=False)
        batch_op.create_index('ix_audit_events_tenant_occurred', ['tenant_id', 'occurred_at'], unique=False)
        batch_op.create_index('ix_audit_events_entity', ['entity_type', 'entity_id'], unique=False)

    # ==========================================================================
    # 2. CATALOG AND STOCK LEDGER
    # ==========================================================================
    op.create_table('products',
        sa.Column('id', ID, nullable=False),
        sa.Column('tenant_id', ID, nullable=False),
        sa.Column('sku', sa.String(length=64), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('image_url', sa.String(length=512), nullable=True),
        sa.Column('product_type', sa.String(length=16), nullable=False),
        sa.Column('price_cents', sa.Integer(), nullable=False),
        sa.Column('cost_price_cents', sa.Integer(), nullable=False),
        sa.Column('current_stock', QTY, nullable=False),
        sa.Column('minimum_stock', QTY, nullable=False),
        sa.Column('weight_increment', QTY, nullable=True),
        sa.Column('min_sale_weight', QTY, nullable=True),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=NOW, nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=NOW, nullable=False),
        sa.ForeignKeyConstraint(['tenant_id'], ['tenants.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('tenant_id', 'sku', name='uq_products_tenant_sku'),
    )
    with op.batch_alter_table('products', schema=None) as batch_op:
        batch_op.create_index('ix_products_tenant_id', ['tenant_id'], unique=False)
        batch_op.create_index('ix_products_tenant_name', ['tenant_id', 'name'], unique=False)

    op.create_table('stock_movements',
        sa.Column('id', ID, nullable=False),
        sa.Column('tenant_id', ID, nullable=False),
        sa.Column('product_id', ID, nullable=False),
        sa.Column('movement_type', sa.String(length=16), nullable=False),
        sa.Column('quantity_delta', QTY, nullable=False),
        sa.Column('resulting_stock', QTY, nullable=False),
        sa.Column('reference_id', ID, nullable=True),
        sa.Column('user_id', sa.String(length=64), nullable=True),
        sa.Column('note', sa.String(length=255), nullable=True),
        sa.Column('occurred_at', sa.DateTime(timezone=True), server_default=NOW, nullable=False),
        sa.ForeignKeyConstraint(['tenant_id'], ['tenants.id'], ),
        sa.ForeignKeyConstraint(['product_id'], ['products.id'], ),
        sa.PrimaryKeyConstraint('id'),
    )
    with op.batch_alter_table('stock_movements', schema=None) as batch_op:
        batch_op.create_index('ix_stock_movements_tenant_id', ['tenant_id'], unique=False)
        batch_op.create_index('ix_stock_movements_product_id', ['product_id'], unique=False)
        batch_op.create_index('ix_stock_movements_movement_type', ['movement_type'], unique=False)
        batch_op.create_index('ix_stock_movements_reference_id', ['reference_id'], unique=False)
        batch_op.create_index('ix_stock_movements_product_occurred', ['product_id', 'occurred_at'], unique=False)

    # ==========================================================================
    # 3. REGISTERS AND SHIFTS
    # ==========================================================================
    op.create_table('registers',
        sa.Column('id', ID, nullable=False),
        sa.Column('tenant_id', ID, nullable=False),
        sa.Column('name', sa.String(length=120), nullable=False),
        sa.Column('location', sa.String(length=255), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='1'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=NOW, nullable=False),
        sa.ForeignKeyConstraint(['tenant_id'], ['tenants.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('tenant_id', 'name', name='uq_registers_tenant_name'),
    )
    with op.batch_alter_table('registers', schema=None) as batch_op:
        batch_op.create_index('ix_registers_tenant_id', ['tenant_id'], unique=False)

    op.create_table('shifts',
        sa.Column('id', ID, nullable=False),
        sa.Column('tenant_id', ID, nullable=False),
        sa.Column('register_id', ID, nullable=False),
        sa.Column('cashier_user_id', sa.String(length=64), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='OPEN'),
        sa.Column('opening_cash_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('closing_cash_cents', sa.Integer(), nullable=True),
        sa.Column('expected_cash_cents', sa.Integer(), nullable=True),
        sa.Column('variance_cents', sa.Integer(), nullable=True),
        sa.Column('opened_at', sa.DateTime(timezone=True), server_default=NOW, nullable=False),
        sa.Column('closed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        sa.ForeignKeyConstraint(['tenant_id'], ['tenants.id'], ),
        sa.ForeignKeyConstraint(['register_id'], ['registers.id'], ),
        sa.PrimaryKeyConstraint('id'),
    )
    with op.batch_alter_table('shifts', schema=None) as batch_op:
        batch_op.create_index('ix_shifts_tenant_id', ['tenant_id'], unique=False)
        batch_op.create_index('ix_shifts_register_id', ['register_id'], unique=False)
        batch_op.create_index('ix_shifts_status', ['status'], unique=False)

    # ==========================================================================
    # 4. SALES
    # ==========================================================================
    op.create_table('sales',
        sa.Column('id', ID, nullable=False),
        sa.Column('tenant_id', ID, nullable=False),
        sa.Column('number', sa.String(length=32), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False),
        sa.Column('register_id', ID, nullable=False),
        sa.Column('shift_id', ID, nullable=True),
        sa.Column('cashier_user_id', sa.String(length=64), nullable=False),
        sa.Column('customer_id', sa.String(length=64), nullable=False, server_default=''),
        sa.Column('subtotal_cents', sa.Integer(), nullable=False),
        sa.Column('tax_rate_bps', sa.Integer(), nullable=False),
        sa.Column('tax_cents', sa.Integer(), nullable=False),
        sa.Column('total_cents', sa.Integer(), nullable=False),
        sa.Column('discount_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('grand_total_cents', sa.Integer(), nullable=False),
        sa.Column('discount_type', sa.String(length=16), nullable=True),
        sa.Column('discount_value', QTY, nullable=True),
        sa.Column('discount_reason', sa.String(length=255), nullable=True),
        sa.Column('payment_method', sa.String(length=16), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=NOW, nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=NOW, nullable=False),
        sa.ForeignKeyConstraint(['tenant_id'], ['tenants.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('tenant_id', 'number', name='uq_sales_tenant_number'),
    )
    with op.batch_alter_table('sales', schema=None) as batch_op:
        batch_op.create_index('ix_sales_tenant_id', ['tenant_id'], unique=False)
        batch_op.create_index('ix_sales_register_id', ['register_id'], unique=False)
        batch_op.create_index('ix_sales_shift_id', ['shift_id'], unique=False)
        batch_op.create_index('ix_sales_tenant_created', ['tenant_id', 'created_at'], unique=False)

    op.create_table('sale_lines',
        sa.Column('id', ID, nullable=False),
        sa.Column('sale_id', ID, nullable=False),
        sa.Column('product_id', ID, nullable=False),
        sa.Column('position', sa.Integer(), nullable=False),
        sa.Column('name_snapshot', sa.String(length=255), nullable=False),
        sa.Column('quantity', QTY, nullable=False),
        sa.Column('unit_price_cents', sa.Integer(), nullable=False),
        sa.Column('line_subtotal_cents', sa.Integer(), nullable=False),
        sa.Column('cost_price_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.ForeignKeyConstraint(['sale_id'], ['sales.id'], ),
        sa.ForeignKeyConstraint(['product_id'], ['products.id'], ),
        sa.PrimaryKeyConstraint('id'),
    )
    with op.batch_alter_table('sale_lines', schema=None) as batch_op:
        batch_op.create_index('ix_sale_lines_sale_id', ['sale_id'], unique=False)
        batch_op.create_index('ix_sale_lines_product_id', ['product_id'], unique=False)

    op.create_table('receipts',
        sa.Column('id', ID, nullable=False),
        sa.Column('sale_id', ID, nullable=False),
        sa.Column('tenant_id', ID, nullable=False),
        sa.Column('receipt_number', sa.String(length=32), nullable=False),
        sa.Column('printed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=NOW, nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=NOW, nullable=False),
        sa.ForeignKeyConstraint(['sale_id'], ['sales.id'], ),
        sa.ForeignKeyConstraint(['tenant_id'], ['tenants.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('sale_id'),
        sa.UniqueConstraint('tenant_id', 'receipt_number', name='uq_receipts_tenant_number'),
    )
    with op.batch_alter_table('receipts', schema=None) as batch_op:
        batch_op.create_index('ix_receipts_tenant_id', ['tenant_id'], unique=False)

    op.create_table('payments',
        sa.Column('id', ID, nullable=False),
        sa.Column('tenant_id', ID, nullable=False),
        sa.Column('sale_id', ID, nullable=False),
        sa.Column('method', sa.String(length=16), nullable=False),
        sa.Column('amount_tendered_cents', sa.Integer(), nullable=False),
        sa.Column('change_given_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=NOW, nullable=False),
        sa.ForeignKeyConstraint(['tenant_id'], ['tenants.id'], ),
        sa.ForeignKeyConstraint(['sale_id'], ['sales.id'], ),
        sa.PrimaryKeyConstraint('id'),
    )
    with op.batch_alter_table('payments', schema=None) as batch_op:
        batch_op.create_index('ix_payments_tenant_id', ['tenant_id'], unique=False)
        batch_op.create_index('ix_payments_sale_id', ['sale_id'], unique=False)
        batch_op.create_index('ix_payments_method', ['method'], unique=False)

    # ==========================================================================
    # 5. HELD ORDERS
    # ==========================================================================
    op.create_table('held_orders',
        sa.Column('id', ID, nullable=False),
        sa.Column('tenant_id', ID, nullable=False),
        sa.Column('register_id', ID, nullable=True),
        sa.Column('customer_id', sa.String(length=64), nullable=True),
        sa.Column('discount_type', sa.String(length=16), nullable=True),
        sa.Column('discount_value', QTY, nullable=True),
        sa.Column('discount_reason', sa.String(length=255), nullable=True),
        sa.Column('held_by_user_id', sa.String(length=64), nullable=False),
        sa.Column('held_at', sa.DateTime(timezone=True), server_default=NOW, nullable=False),
        sa.ForeignKeyConstraint(['tenant_id'], ['tenants.id'], ),
        sa.PrimaryKeyConstraint('id'),
    )
    with op.batch_alter_table('held_orders', schema=None) as batch_op:
        batch_op.create_index('ix_held_orders_tenant_id', ['tenant_id'], unique=False)
        batch_op.create_index('ix_held_orders_tenant_held_at', ['tenant_id', 'held_at'], unique=False)

    op.create_table('held_order_lines',
        sa.Column('id', ID, nullable=False),
        sa.Column('held_order_id', ID, nullable=False),
        sa.Column('position', sa.Integer(), nullable=False),
        sa.Column('product_id', ID, nullable=False),
        sa.Column('name_snapshot', sa.String(length=255), nullable=False),
        sa.Column('unit_price_cents', sa.Integer(), nullable=False),
        sa.Column('image_url', sa.String(length=512), nullable=True),
        sa.Column('product_type', sa.String(length=16), nullable=False),
        sa.Column('step', QTY, nullable=False),
        sa.Column('available_stock', QTY, nullable=False),
        sa.Column('quantity', QTY, nullable=False),
        sa.ForeignKeyConstraint(['held_order_id'], ['held_orders.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    with op.batch_alter_table('held_order_lines', schema=None) as batch_op:
        batch_op.create_index('ix_held_order_lines_held_order_id', ['held_order_id'], unique=False)

    # ==========================================================================
    # 6. REFUNDS
    # ==========================================================================
    op.create_table('refunds',
        sa.Column('id', ID, nullable=False),
        sa.Column('tenant_id', ID, nullable=False),
        sa.Column('original_sale_id', ID, nullable=False),
        sa.Column('refund_number', sa.String(length=32), nullable=False),
        sa.Column('refund_total_cents', sa.Integer(), nullable=False),
        sa.Column('reason', sa.String(length=255), nullable=False, server_default=''),
        sa.Column('processed_by_user_id', sa.String(length=64), nullable=False),
        sa.Column('register_id', ID, nullable=True),
        sa.Column('shift_id', ID, nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=NOW, nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=NOW, nullable=False),
        sa.ForeignKeyConstraint(['tenant_id'], ['tenants.id'], ),
        sa.ForeignKeyConstraint(['original_sale_id'], ['sales.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('tenant_id', 'refund_number', name='uq_refunds_tenant_number'),
    )
    with op.batch_alter_table('refunds', schema=None) as batch_op:
        batch_op.create_index('ix_refunds_tenant_id', ['tenant_id'], unique=False)
        batch_op.create_index('ix_refunds_original_sale_id', ['original_sale_id'], unique=False)
        batch_op.create_index('ix_refunds_shift_id', ['shift_id'], unique=False)

    op.create_table('refund_lines',
        sa.Column('id', ID, nullable=False),
        sa.Column('refund_id', ID, nullable=False),
        sa.Column('product_id', ID, nullable=False),
        sa.Column('product_name', sa.String(length=255), nullable=False),
        sa.Column('quantity', QTY, nullable=False),
        sa.Column('unit_price_cents', sa.Integer(), nullable=False),
        sa.Column('refund_amount_cents', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(['refund_id'], ['refunds.id'], ),
        sa.ForeignKeyConstraint(['product_id'], ['products.id'], ),
        sa.PrimaryKeyConstraint('id'),
    )
    with op.batch_alter_table('refund_lines', schema=None) as batch_op:
        batch_op.create_index('ix_refund_lines_refund_id', ['refund_id'], unique=False)
        batch_op.create_index('ix_refund_lines_product_id', ['product_id'], unique=False)


def downgrade():
    # Drop tables in reverse order of creation (respect foreign keys)
    op.drop_table('refund_lines')
    op.drop_table('refunds')
    op.drop_table('held_order_lines')
    op.drop_table('held_orders')
    op.drop_table('payments')
    op.drop_table('receipts')
    op.drop_table('sale_lines')
    op.drop_table('sales')
    op.drop_table('shifts')
    op.drop_table('registers')
    op.drop_table('stock_movements')
    op.drop_table('products')
    op.drop_table('audit_events')
    op.drop_table('document_sequences')
    op.drop_table('tenants')
