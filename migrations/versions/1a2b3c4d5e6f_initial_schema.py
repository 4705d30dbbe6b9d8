"""initial schema

Revision ID: 1a2b3c4d5e6f
Revises:
Create Date: 2025-11-20 09:00:00.000000

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '1a2b3c4d5e6f'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        'categories',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(length=30), nullable=False),
        sa.Column('display_order', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP')),
    )
    op.create_table(
        'companies',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(length=160), nullable=False),
        sa.Column('street_address', sa.String(length=200)),
        sa.Column('city', sa.String(length=100)),
        sa.Column('state', sa.String(length=100)),
        sa.Column('postal_code', sa.String(length=20)),
        sa.Column('phone_number', sa.String(length=40)),
    )
    op.create_table(
        'products',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(length=200), nullable=False),
        sa.Column('description', sa.Text()),
        sa.Column('price', sa.Numeric(12, 2), nullable=False),
        sa.Column('category_id', sa.Integer(), sa.ForeignKey('categories.id'), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP')),
    )
    op.create_index('ix_products_name', 'products', ['name'])
    op.create_table(
        'product_images',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('product_id', sa.Integer(), sa.ForeignKey('products.id', ondelete='CASCADE'), nullable=False),
        sa.Column('image_url', sa.String(length=300), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP')),
    )
    op.create_index('ix_product_images_product_id', 'product_images', ['product_id'])
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('email', sa.String(length=160), nullable=False, unique=True),
        sa.Column('name', sa.String(length=160), nullable=False),
        sa.Column('password_hash', sa.String(length=255), nullable=False),
        sa.Column('role', sa.String(length=20), nullable=False, server_default='Customer'),
        sa.Column('company_id', sa.Integer(), sa.ForeignKey('companies.id'), nullable=True),
        sa.Column('street_address', sa.String(length=200)),
        sa.Column('city', sa.String(length=100)),
        sa.Column('state', sa.String(length=100)),
        sa.Column('postal_code', sa.String(length=20)),
        sa.Column('phone_number', sa.String(length=40)),
        sa.Column('lockout_end', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP')),
    )
    op.create_table(
        'shopping_carts',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('product_id', sa.Integer(), sa.ForeignKey('products.id', ondelete='CASCADE'), nullable=False),
        sa.Column('count', sa.Integer(), nullable=False, server_default='1'),
    )
    op.create_index('ix_shopping_carts_user_id', 'shopping_carts', ['user_id'])
    op.create_table(
        'order_headers',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('order_date', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('shipping_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('order_total', sa.Numeric(12, 2), nullable=False, server_default='0'),
        sa.Column('order_status', sa.String(length=20), nullable=False, server_default='Pending'),
        sa.Column('payment_status', sa.String(length=40), nullable=False, server_default='Pending'),
        sa.Column('tracking_number', sa.String(length=80)),
        sa.Column('carrier', sa.String(length=80)),
        sa.Column('payment_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('payment_due_date', sa.Date(), nullable=True),
        sa.Column('name', sa.String(length=160), nullable=False),
        sa.Column('street_address', sa.String(length=200), nullable=False),
        sa.Column('city', sa.String(length=100), nullable=False),
        sa.Column('state', sa.String(length=100), nullable=False),
        sa.Column('postal_code', sa.String(length=20), nullable=False),
    )
    op.create_index('ix_order_headers_user_id', 'order_headers', ['user_id'])
    op.create_index('ix_order_headers_order_status', 'order_headers', ['order_status'])
    op.create_table(
        'order_details',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('order_header_id', sa.Integer(), sa.ForeignKey('order_headers.id', ondelete='CASCADE'), nullable=False),
        sa.Column('product_id', sa.Integer(), sa.ForeignKey('products.id'), nullable=False),
        sa.Column('count', sa.Integer(), nullable=False),
        sa.Column('price', sa.Numeric(12, 2), nullable=False),
    )
    op.create_index('ix_order_details_order_header_id', 'order_details', ['order_header_id'])


def downgrade() -> None:
    op.drop_index('ix_order_details_order_header_id', table_name='order_details')
    op.drop_table('order_details')
    op.drop_index('ix_order_headers_order_status', table_name='order_headers')
    op.drop_index('ix_order_headers_user_id', table_name='order_headers')
    op.drop_table('order_headers')
    op.drop_index('ix_shopping_carts_user_id', table_name='shopping_carts')
    op.drop_table('shopping_carts')
    op.drop_table('users')
    op.drop_index('ix_product_images_product_id', table_name='product_images')
    op.drop_table('product_images')
    op.drop_index('ix_products_name', table_name='products')
    op.drop_table('products')
    op.drop_table('companies')
    op.drop_table('categories')
