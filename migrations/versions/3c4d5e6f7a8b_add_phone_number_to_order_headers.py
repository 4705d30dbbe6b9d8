"""add phone number to order headers

Revision ID: 3c4d5e6f7a8b
Revises: 2b3c4d5e6f7a
Create Date: 2025-12-07 15:46:20.000000

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '3c4d5e6f7a8b'
down_revision = '2b3c4d5e6f7a'
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.add_column(
        'order_headers',
        sa.Column('phone_number', sa.String(length=40), nullable=False, server_default=''),
    )


def downgrade() -> None:
    op.drop_column('order_headers', 'phone_number')
