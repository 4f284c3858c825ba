"""create currency and exchange rate tables

Revision ID: 3a7c1e9b2d44
Revises:
Create Date: 2025-11-20 09:00:12.481516+00:00

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '3a7c1e9b2d44'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('username', sa.String(length=50), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='true'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_users_id'), 'users', ['id'], unique=False)
    op.create_index(op.f('ix_users_email'), 'users', ['email'], unique=True)
    op.create_index(op.f('ix_users_username'), 'users', ['username'], unique=True)

    # Global currencies have no owner; custom currencies belong to one user
    op.create_table(
        'currencies',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('code', sa.String(length=10), nullable=False),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('symbol', sa.String(length=10), nullable=False),
        sa.Column('decimal_places', sa.Integer(), nullable=False, server_default='2'),
        sa.Column('owner_id', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
        sa.ForeignKeyConstraint(['owner_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('code', 'owner_id', name='uq_currency_code_owner'),
    )
    op.create_index(op.f('ix_currencies_id'), 'currencies', ['id'], unique=False)
    op.create_index(op.f('ix_currencies_code'), 'currencies', ['code'], unique=False)
    op.create_index(op.f('ix_currencies_owner_id'), 'currencies', ['owner_id'], unique=False)
    # NULL owners never collide in a unique constraint, so global codes need their own index
    op.create_index(
        'uq_currencies_global_code',
        'currencies',
        ['code'],
        unique=True,
        postgresql_where=sa.text('owner_id IS NULL'),
    )

    op.create_table(
        'user_currencies',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('currency_id', sa.Uuid(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='true'),
        sa.Column('order', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['currency_id'], ['currencies.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id', 'currency_id', name='uq_user_currency'),
    )
    op.create_index(op.f('ix_user_currencies_id'), 'user_currencies', ['id'], unique=False)
    op.create_index(op.f('ix_user_currencies_user_id'), 'user_currencies', ['user_id'], unique=False)
    op.create_index(op.f('ix_user_currencies_currency_id'), 'user_currencies', ['currency_id'], unique=False)

    op.create_table(
        'user_settings',
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('base_currency_id', sa.Uuid(), nullable=True),
        sa.Column('auto_update_rates', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('last_rate_update', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['base_currency_id'], ['currencies.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('user_id'),
    )

    op.create_table(
        'exchange_rates',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('from_currency_id', sa.Uuid(), nullable=False),
        sa.Column('to_currency_id', sa.Uuid(), nullable=False),
        sa.Column('rate', sa.Numeric(precision=20, scale=10), nullable=False),
        sa.Column('effective_date', sa.Date(), nullable=False),
        sa.Column('rate_type', sa.Enum('USER', 'API', 'AUTO', name='ratetype'), nullable=False),
        sa.Column('notes', sa.String(length=500), nullable=True),
        sa.Column('source_rate_id', sa.Uuid(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['from_currency_id'], ['currencies.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['to_currency_id'], ['currencies.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint(
            'user_id', 'from_currency_id', 'to_currency_id', 'effective_date',
            name='uq_exchange_rate_user_pair_date',
        ),
        sa.CheckConstraint('from_currency_id <> to_currency_id', name='ck_exchange_rate_distinct_currencies'),
    )
    op.create_index(op.f('ix_exchange_rates_id'), 'exchange_rates', ['id'], unique=False)
    op.create_index(op.f('ix_exchange_rates_user_id'), 'exchange_rates', ['user_id'], unique=False)
    op.create_index(op.f('ix_exchange_rates_from_currency_id'), 'exchange_rates', ['from_currency_id'], unique=False)
    op.create_index(op.f('ix_exchange_rates_to_currency_id'), 'exchange_rates', ['to_currency_id'], unique=False)
    op.create_index(op.f('ix_exchange_rates_effective_date'), 'exchange_rates', ['effective_date'], unique=False)
    op.create_index('ix_exchange_rates_user_type', 'exchange_rates', ['user_id', 'rate_type'], unique=False)
    op.create_index(
        'ix_exchange_rates_user_pair_date',
        'exchange_rates',
        ['user_id', 'from_currency_id', 'to_currency_id', 'effective_date'],
        unique=False,
    )

    # Seed global currencies
    op.execute("""
        INSERT INTO currencies (id, code, name, symbol, decimal_places, owner_id, created_at, updated_at) VALUES
        (gen_random_uuid(), 'USD', 'US Dollar', '$', 2, NULL, now(), now()),
        (gen_random_uuid(), 'EUR', 'Euro', '€', 2, NULL, now(), now()),
        (gen_random_uuid(), 'GBP', 'British Pound', '£', 2, NULL, now(), now()),
        (gen_random_uuid(), 'CAD', 'Canadian Dollar', 'C$', 2, NULL, now(), now()),
        (gen_random_uuid(), 'JPY', 'Japanese Yen', '¥', 0, NULL, now(), now()),
        (gen_random_uuid(), 'AUD', 'Australian Dollar', 'A$', 2, NULL, now(), now()),
        (gen_random_uuid(), 'CHF', 'Swiss Franc', 'CHF', 2, NULL, now(), now()),
        (gen_random_uuid(), 'CNY', 'Chinese Yuan', '¥', 2, NULL, now(), now()),
        (gen_random_uuid(), 'HKD', 'Hong Kong Dollar', 'HK$', 2, NULL, now(), now()),
        (gen_random_uuid(), 'SGD', 'Singapore Dollar', 'S$', 2, NULL, now(), now())
    """)


def downgrade() -> None:
    op.drop_index('ix_exchange_rates_user_pair_date', table_name='exchange_rates')
    op.drop_index('ix_exchange_rates_user_type', table_name='exchange_rates')
    op.drop_index(op.f('ix_exchange_rates_effective_date'), table_name='exchange_rates')
    op.drop_index(op.f('ix_exchange_rates_to_currency_id'), table_name='exchange_rates')
    op.drop_index(op.f('ix_exchange_rates_from_currency_id'), table_name='exchange_rates')
    op.drop_index(op.f('ix_exchange_rates_user_id'), table_name='exchange_rates')
    op.drop_index(op.f('ix_exchange_rates_id'), table_name='exchange_rates')
    op.drop_table('exchange_rates')
    sa.Enum(name='ratetype').drop(op.get_bind(), checkfirst=True)

    op.drop_table('user_settings')

    op.drop_index(op.f('ix_user_currencies_currency_id'), table_name='user_currencies')
    op.drop_index(op.f('ix_user_currencies_user_id'), table_name='user_currencies')
    op.drop_index(op.f('ix_user_currencies_id'), table_name='user_currencies')
    op.drop_table('user_currencies')

    op.drop_index('uq_currencies_global_code', table_name='currencies')
    op.drop_index(op.f('ix_currencies_owner_id'), table_name='currencies')
    op.drop_index(op.f('ix_currencies_code'), table_name='currencies')
    op.drop_index(op.f('ix_currencies_id'), table_name='currencies')
    op.drop_table('currencies')

    op.drop_index(op.f('ix_users_username'), table_name='users')
    op.drop_index(op.f('ix_users_email'), table_name='users')
    op.drop_index(op.f('ix_users_id'), table_name='users')
    op.drop_table('users')
