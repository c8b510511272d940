"""valuation_schema

Revision ID: 0001_valuation_schema
Revises:
Create Date: 2026-10-17 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '0001_valuation_schema'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        'tenants',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('slug', sa.String(length=255), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('slug', name='uq_tenant_slug'),
    )
    op.create_index(op.f('ix_tenants_id'), 'tenants', ['id'], unique=False)
    op.create_index(op.f('ix_tenants_slug'), 'tenants', ['slug'], unique=False)

    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=True),
        sa.Column('role', sa.String(length=50), nullable=False, server_default='seller'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('tenant_id', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(['tenant_id'], ['tenants.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('tenant_id', 'email', name='uq_users_tenant_email'),
    )
    op.create_index(op.f('ix_users_id'), 'users', ['id'], unique=False)
    op.create_index(op.f('ix_users_email'), 'users', ['email'], unique=False)
    op.create_index(op.f('ix_users_tenant_id'), 'users', ['tenant_id'], unique=False)

    op.create_table(
        'currencies',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('tenant_id', sa.Integer(), nullable=False),
        sa.Column('code', sa.String(length=10), nullable=False),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('symbol', sa.String(length=10), nullable=False, server_default=''),
        sa.Column('is_base', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['tenant_id'], ['tenants.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('tenant_id', 'code', name='uq_currencies_tenant_code'),
    )
    op.create_index(op.f('ix_currencies_id'), 'currencies', ['id'], unique=False)
    op.create_index(op.f('ix_currencies_tenant_id'), 'currencies', ['tenant_id'], unique=False)
    op.create_index(
        'uq_currencies_tenant_base', 'currencies', ['tenant_id'],
        unique=True, postgresql_where=sa.text('is_base'),
    )

    op.create_table(
        'currency_rates',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('tenant_id', sa.Integer(), nullable=False),
        sa.Column('currency_id', sa.Integer(), nullable=False),
        sa.Column('rate', sa.Numeric(precision=28, scale=12), nullable=False),
        sa.Column('effective_at', sa.DateTime(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('created_by_id', sa.Integer(), nullable=True),
        sa.ForeignKeyConstraint(['tenant_id'], ['tenants.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['currency_id'], ['currencies.id']),
        sa.ForeignKeyConstraint(['created_by_id'], ['users.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_currency_rates_id'), 'currency_rates', ['id'], unique=False)
    op.create_index(op.f('ix_currency_rates_tenant_id'), 'currency_rates', ['tenant_id'], unique=False)
    op.create_index(op.f('ix_currency_rates_currency_id'), 'currency_rates', ['currency_id'], unique=False)
    op.create_index('ix_currency_rates_currency_effective', 'currency_rates', ['currency_id', 'effective_at'], unique=False)

    op.create_table(
        'metals',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('tenant_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('symbol', sa.String(length=20), nullable=True),
        sa.Column('reference_value', sa.Numeric(precision=28, scale=12), nullable=False, server_default='0'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('sort_order', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['tenant_id'], ['tenants.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('tenant_id', 'name', name='uq_metals_tenant_name'),
        sa.UniqueConstraint('tenant_id', 'symbol', name='uq_metals_tenant_symbol'),
    )
    op.create_index(op.f('ix_metals_id'), 'metals', ['id'], unique=False)
    op.create_index(op.f('ix_metals_tenant_id'), 'metals', ['tenant_id'], unique=False)
    op.create_index(op.f('ix_metals_sort_order'), 'metals', ['sort_order'], unique=False)

    op.create_table(
        'metal_reference_history',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('tenant_id', sa.Integer(), nullable=False),
        sa.Column('metal_id', sa.Integer(), nullable=False),
        sa.Column('reference_value', sa.Numeric(precision=28, scale=12), nullable=False),
        sa.Column('effective_at', sa.DateTime(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('created_by_id', sa.Integer(), nullable=True),
        sa.ForeignKeyConstraint(['tenant_id'], ['tenants.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['metal_id'], ['metals.id']),
        sa.ForeignKeyConstraint(['created_by_id'], ['users.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_metal_reference_history_id'), 'metal_reference_history', ['id'], unique=False)
    op.create_index(op.f('ix_metal_reference_history_tenant_id'), 'metal_reference_history', ['tenant_id'], unique=False)
    op.create_index(op.f('ix_metal_reference_history_metal_id'), 'metal_reference_history', ['metal_id'], unique=False)
    op.create_index('ix_metal_reference_history_metal_effective', 'metal_reference_history', ['metal_id', 'effective_at'], unique=False)

    op.create_table(
        'metal_variants',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('tenant_id', sa.Integer(), nullable=False),
        sa.Column('metal_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('sku', sa.String(length=100), nullable=False),
        sa.Column('purity', sa.Numeric(precision=6, scale=4), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('is_favorite', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('pricing_mode', sa.String(length=10), nullable=False, server_default='AUTO'),
        sa.Column('buy_factor', sa.Numeric(precision=10, scale=4), nullable=False, server_default='1'),
        sa.Column('sale_factor', sa.Numeric(precision=10, scale=4), nullable=False, server_default='1'),
        sa.Column('purchase_price_override', sa.Numeric(precision=18, scale=2), nullable=True),
        sa.Column('sale_price_override', sa.Numeric(precision=18, scale=2), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['tenant_id'], ['tenants.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['metal_id'], ['metals.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('tenant_id', 'sku', name='uq_metal_variants_tenant_sku'),
    )
    op.create_index(op.f('ix_metal_variants_id'), 'metal_variants', ['id'], unique=False)
    op.create_index(op.f('ix_metal_variants_tenant_id'), 'metal_variants', ['tenant_id'], unique=False)
    op.create_index(op.f('ix_metal_variants_metal_id'), 'metal_variants', ['metal_id'], unique=False)
    op.create_index(op.f('ix_metal_variants_sku'), 'metal_variants', ['sku'], unique=False)
    op.create_index(
        'uq_metal_variants_favorite', 'metal_variants', ['metal_id'],
        unique=True, postgresql_where=sa.text('is_favorite'),
    )

    op.create_table(
        'metal_quotes',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('tenant_id', sa.Integer(), nullable=False),
        sa.Column('variant_id', sa.Integer(), nullable=False),
        sa.Column('currency_id', sa.Integer(), nullable=False),
        sa.Column('purchase_price', sa.Numeric(precision=18, scale=2), nullable=False),
        sa.Column('sale_price', sa.Numeric(precision=18, scale=2), nullable=False),
        sa.Column('effective_at', sa.DateTime(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('created_by_id', sa.Integer(), nullable=True),
        sa.ForeignKeyConstraint(['tenant_id'], ['tenants.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['variant_id'], ['metal_variants.id']),
        sa.ForeignKeyConstraint(['currency_id'], ['currencies.id']),
        sa.ForeignKeyConstraint(['created_by_id'], ['users.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_metal_quotes_id'), 'metal_quotes', ['id'], unique=False)
    op.create_index(op.f('ix_metal_quotes_tenant_id'), 'metal_quotes', ['tenant_id'], unique=False)
    op.create_index(op.f('ix_metal_quotes_variant_id'), 'metal_quotes', ['variant_id'], unique=False)
    op.create_index(op.f('ix_metal_quotes_currency_id'), 'metal_quotes', ['currency_id'], unique=False)
    op.create_index(
        'ix_metal_quotes_variant_currency_effective', 'metal_quotes',
        ['variant_id', 'currency_id', 'effective_at'], unique=False,
    )


def downgrade() -> None:
    op.drop_table('metal_quotes')
    op.drop_table('metal_variants')
    op.drop_table('metal_reference_history')
    op.drop_table('metals')
    op.drop_table('currency_rates')
    op.drop_table('currencies')
    op.drop_table('users')
    op.drop_table('tenants')
