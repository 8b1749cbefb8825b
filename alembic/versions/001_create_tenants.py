"""Create tenants control table

Revision ID: 001_tenants
Revises:
Create Date: 2026-10-19
"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID

# revision identifiers
revision = '001_tenants'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    """Create the tenant control table in the public schema"""
    op.execute('CREATE EXTENSION IF NOT EXISTS "pgcrypto"')

    op.create_table(
        'tenants',
        sa.Column('id', UUID(as_uuid=True), primary_key=True, server_default=sa.text('gen_random_uuid()')),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('status', sa.String(20), server_default='active', nullable=False),
        sa.Column('database_schema', sa.String(100), unique=True, nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('NOW()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('NOW()'), nullable=False),
        sa.CheckConstraint("status IN ('active', 'suspended')", name='ck_tenants_status'),
        schema='public'
    )

    op.create_index('idx_tenants_status', 'tenants', ['status'], schema='public')


def downgrade():
    """Drop the tenant control table"""
    op.drop_index('idx_tenants_status', table_name='tenants', schema='public')
    op.drop_table('tenants', schema='public')
