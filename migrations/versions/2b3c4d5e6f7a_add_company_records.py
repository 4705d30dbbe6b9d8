"""add company records

Revision ID: 2b3c4d5e6f7a
Revises: 1a2b3c4d5e6f
Create Date: 2025-12-03 10:06:03.000000

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '2b3c4d5e6f7a'
down_revision = '1a2b3c4d5e6f'
branch_labels = None
depends_on = None

SEED_COMPANIES = [
    {'id': 1, 'name': 'Tech Solution', 'street_address': '123 Tech St', 'city': 'Tech City',
     'state': 'IL', 'postal_code': '12121', 'phone_number': '6669990000'},
    {'id': 2, 'name': 'Vivid Books', 'street_address': '999 Vid St', 'city': 'Vid City',
     'state': 'IL', 'postal_code': '66666', 'phone_number': '7779990000'},
    {'id': 3, 'name': 'Readers Club', 'street_address': '999 Main St', 'city': 'Lala land',
     'state': 'NY', 'postal_code': '99999', 'phone_number': '1113335555'},
]


def upgrade() -> None:
    companies = sa.table(
        'companies',
        sa.column('id', sa.Integer()),
        sa.column('name', sa.String()),
        sa.column('street_address', sa.String()),
        sa.column('city', sa.String()),
        sa.column('state', sa.String()),
        sa.column('postal_code', sa.String()),
        sa.column('phone_number', sa.String()),
    )
    op.bulk_insert(companies, SEED_COMPANIES)


def downgrade() -> None:
    ids = ', '.join(str(c['id']) for c in SEED_COMPANIES)
    op.execute(f"DELETE FROM companies WHERE id IN ({ids})")
