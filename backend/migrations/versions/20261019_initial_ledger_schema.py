"""initial ledger schema

Revision ID: 20261019_initial_ledger
Revises:
Create Date: 2026-10-19 00:00:00.000000

Creates the complete shop ledger schema:
- users, categories, suppliers: collaborator data
- products: master data with the on-hand stock counter
- customers: directory with total_debt_cents (accounts receivable)
- sales / sale_items: completed sales and immutable line snapshots
- credit_payments: immutable payments against credit/installment sales
- purchases / purchase_items: supplier deliveries that increment stock
- store_settings: single-row store profile

All money columns are integer cents.
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '20261019_initial_ledger'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    # ============================================================================
    # Collaborator data
    # ============================================================================
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('username', sa.String(length=64), nullable=False),
        sa.Column('full_name', sa.String(length=255), nullable=False),
        sa.Column('role', sa.String(length=16), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sqlite_autoincrement=True,
    )
    op.create_index('ix_users_username', 'users', ['username'], unique=True)

    op.create_table(
        'categories',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sqlite_autoincrement=True,
    )

    op.create_table(
        'suppliers',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('contact_person', sa.String(length=255), nullable=True),
        sa.Column('phone', sa.String(length=32), nullable=True),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('address', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sqlite_autoincrement=True,
    )

    # ============================================================================
    # products: stock counter changed only by relative UPDATEs
    # ============================================================================
    op.create_table(
        'products',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('barcode', sa.String(length=64), nullable=True),
        sa.Column('category_id', sa.Integer(), sa.ForeignKey('categories.id'), nullable=True),
        sa.Column('supplier_id', sa.Integer(), sa.ForeignKey('suppliers.id'), nullable=True),
        sa.Column('cost_price_cents', sa.Integer(), nullable=False),
        sa.Column('sell_price_cents', sa.Integer(), nullable=False),
        sa.Column('stock', sa.Integer(), nullable=False),
        sa.Column('min_stock', sa.Integer(), nullable=False),
        sa.Column('brand', sa.String(length=128), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint('barcode'),
        sqlite_autoincrement=True,
    )
    op.create_index('ix_products_category_id', 'products', ['category_id'])
    op.create_index('ix_products_supplier_id', 'products', ['supplier_id'])
    op.create_index('ix_products_active_stock', 'products', ['is_active', 'stock'])

    op.create_table(
        'customers',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('phone', sa.String(length=32), nullable=True),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('address', sa.Text(), nullable=True),
        sa.Column('total_debt_cents', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sqlite_autoincrement=True,
    )

    # ============================================================================
    # sales: financial records, never deleted
    # ============================================================================
    op.create_table(
        'sales',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('sale_number', sa.String(length=64), nullable=False),
        sa.Column('customer_id', sa.Integer(), sa.ForeignKey('customers.id'), nullable=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('payment_type', sa.String(length=16), nullable=False),
        sa.Column('subtotal_cents', sa.Integer(), nullable=False),
        sa.Column('discount_cents', sa.Integer(), nullable=False),
        sa.Column('total_cents', sa.Integer(), nullable=False),
        sa.Column('paid_amount_cents', sa.Integer(), nullable=False),
        sa.Column('remaining_amount_cents', sa.Integer(), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False),
        sa.Column('payment_status', sa.String(length=16), nullable=False),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint('sale_number', name='uq_sales_sale_number'),
        sqlite_autoincrement=True,
    )
    op.create_index('ix_sales_customer_id', 'sales', ['customer_id'])
    op.create_index('ix_sales_user_id', 'sales', ['user_id'])
    op.create_index('ix_sales_payment_type', 'sales', ['payment_type'])
    op.create_index('ix_sales_payment_status', 'sales', ['payment_status'])
    op.create_index('ix_sales_created_at', 'sales', ['created_at'])
    op.create_index('ix_sales_customer_remaining', 'sales', ['customer_id', 'remaining_amount_cents'])

    op.create_table(
        'sale_items',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('sale_id', sa.Integer(), sa.ForeignKey('sales.id', ondelete='CASCADE'), nullable=False),
        sa.Column('product_id', sa.Integer(), sa.ForeignKey('products.id'), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('unit_price_cents', sa.Integer(), nullable=False),
        sa.Column('total_cents', sa.Integer(), nullable=False),
        sqlite_autoincrement=True,
    )
    op.create_index('ix_sale_items_sale_id', 'sale_items', ['sale_id'])
    op.create_index('ix_sale_items_product_id', 'sale_items', ['product_id'])

    op.create_table(
        'credit_payments',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('sale_id', sa.Integer(), sa.ForeignKey('sales.id'), nullable=False),
        sa.Column('customer_id', sa.Integer(), sa.ForeignKey('customers.id'), nullable=False),
        sa.Column('amount_cents', sa.Integer(), nullable=False),
        sa.Column('payment_date', sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('note', sa.Text(), nullable=True),
        sqlite_autoincrement=True,
    )
    op.create_index('ix_credit_payments_sale_id', 'credit_payments', ['sale_id'])
    op.create_index('ix_credit_payments_customer_id', 'credit_payments', ['customer_id'])
    op.create_index('ix_credit_payments_user_id', 'credit_payments', ['user_id'])
    op.create_index('ix_credit_payments_customer_date', 'credit_payments', ['customer_id', 'payment_date'])

    # ============================================================================
    # purchases: supplier deliveries
    # ============================================================================
    op.create_table(
        'purchases',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('purchase_number', sa.String(length=64), nullable=False),
        sa.Column('supplier_id', sa.Integer(), sa.ForeignKey('suppliers.id'), nullable=False),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('total_cents', sa.Integer(), nullable=False),
        sa.Column('paid_amount_cents', sa.Integer(), nullable=False),
        sa.Column('remaining_amount_cents', sa.Integer(), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint('purchase_number', name='uq_purchases_purchase_number'),
        sqlite_autoincrement=True,
    )
    op.create_index('ix_purchases_supplier_id', 'purchases', ['supplier_id'])
    op.create_index('ix_purchases_user_id', 'purchases', ['user_id'])

    op.create_table(
        'purchase_items',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('purchase_id', sa.Integer(), sa.ForeignKey('purchases.id', ondelete='CASCADE'), nullable=False),
        sa.Column('product_id', sa.Integer(), sa.ForeignKey('products.id'), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('unit_cost_cents', sa.Integer(), nullable=False),
        sa.Column('total_cents', sa.Integer(), nullable=False),
        sqlite_autoincrement=True,
    )
    op.create_index('ix_purchase_items_purchase_id', 'purchase_items', ['purchase_id'])
    op.create_index('ix_purchase_items_product_id', 'purchase_items', ['product_id'])

    op.create_table(
        'store_settings',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('store_name', sa.String(length=255), nullable=False),
        sa.Column('store_address', sa.Text(), nullable=True),
        sa.Column('store_phone', sa.String(length=32), nullable=True),
        sa.Column('tax_id', sa.String(length=32), nullable=True),
        sa.Column('currency', sa.String(length=3), nullable=False),
        sa.Column('tax_rate_bps', sa.Integer(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.Column('version_id', sa.Integer(), nullable=False),
        sqlite_autoincrement=True,
    )


def downgrade():
    op.drop_table('store_settings')
    op.drop_table('purchase_items')
    op.drop_table('purchases')
    op.drop_table('credit_payments')
    op.drop_table('sale_items')
    op.drop_table('sales')
    op.drop_table('customers')
    op.drop_table('products')
    op.drop_table('suppliers')
    op.drop_table('categories')
    op.drop_table('users')
