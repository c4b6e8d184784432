"""Initial exchange ledger schema

Revision ID: 001_initial_ledger_schema
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '001_initial_ledger_schema'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # Enums are stored as VARCHAR (native_enum=False) so SQLite and Postgres share one schema
    op.create_table(
        'products',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('owner_id', sa.String(), nullable=False),
        sa.Column('owner_name', sa.String(), nullable=True),
        sa.Column('kind', sa.String(length=16), nullable=False),
        sa.Column('title', sa.String(), nullable=False),
        sa.Column('thumbnail_url', sa.String(), nullable=True),
        sa.Column('is_active', sa.Boolean(), server_default=sa.true(), nullable=False),
        sa.Column('is_reserved', sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column('is_sold', sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column('sold_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_products_owner_id', 'products', ['owner_id'], unique=False)
    op.create_index(
        'ix_products_kind_available', 'products', ['kind', 'is_active', 'is_sold', 'is_reserved'], unique=False
    )

    op.create_table(
        'user_profiles',
        sa.Column('user_id', sa.String(), nullable=False),
        sa.Column('display_name', sa.String(), nullable=True),
        sa.Column('points', sa.Integer(), server_default='0', nullable=False),
        sa.Column('credits', sa.Integer(), server_default='0', nullable=False),
        sa.Column('version', sa.Integer(), server_default='1', nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('user_id'),
        sa.CheckConstraint('credits >= 0', name='ck_user_profile_credits_non_negative'),
    )

    op.create_table(
        'transactions',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('seller_id', sa.String(), nullable=False),
        sa.Column('seller_name', sa.String(), nullable=True),
        sa.Column('buyer_id', sa.String(), nullable=False),
        sa.Column('buyer_name', sa.String(), nullable=True),
        sa.Column('product_id', sa.String(), nullable=False),
        sa.Column('product_title', sa.String(), nullable=False),
        sa.Column('product_thumbnail_url', sa.String(), nullable=True),
        sa.Column('kind', sa.String(length=16), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False),
        sa.Column('offered_product_id', sa.String(), nullable=True),
        sa.Column('offered_product_title', sa.String(), nullable=True),
        sa.Column('offer_message', sa.Text(), nullable=True),
        sa.Column('version', sa.Integer(), server_default='1', nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['product_id'], ['products.id']),
        sa.ForeignKeyConstraint(['offered_product_id'], ['products.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_transactions_seller_id', 'transactions', ['seller_id'], unique=False)
    op.create_index('ix_transactions_buyer_id', 'transactions', ['buyer_id'], unique=False)
    op.create_index('ix_transactions_product_id', 'transactions', ['product_id'], unique=False)
    op.create_index('ix_transactions_status', 'transactions', ['status'], unique=False)

    op.create_table(
        'delivery_tokens',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('code', sa.String(), nullable=False),
        sa.Column('product_id', sa.String(), nullable=False),
        sa.Column('product_title', sa.String(), nullable=True),
        sa.Column('seller_id', sa.String(), nullable=False),
        sa.Column('buyer_id', sa.String(), nullable=False),
        sa.Column('transaction_id', sa.String(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('expires_at', sa.DateTime(), nullable=False),
        sa.Column('is_used', sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column('used_at', sa.DateTime(), nullable=True),
        sa.Column('status', sa.String(length=16), nullable=False),
        sa.ForeignKeyConstraint(['product_id'], ['products.id']),
        sa.ForeignKeyConstraint(['transaction_id'], ['transactions.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_delivery_tokens_transaction_id', 'delivery_tokens', ['transaction_id'], unique=False)
    op.create_index('ix_delivery_tokens_product_id', 'delivery_tokens', ['product_id'], unique=False)

    op.create_table(
        'ledger_entries',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('kind', sa.String(length=24), nullable=False),
        sa.Column('from_user_id', sa.String(), nullable=True),
        sa.Column('to_user_id', sa.String(), nullable=True),
        sa.Column('amount', sa.Integer(), nullable=False),
        sa.Column('reason', sa.String(), nullable=False),
        sa.Column('outcome', sa.String(length=16), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_ledger_entries_from_user_id', 'ledger_entries', ['from_user_id'], unique=False)
    op.create_index('ix_ledger_entries_to_user_id', 'ledger_entries', ['to_user_id'], unique=False)
    op.create_index('ix_ledger_entries_created_at', 'ledger_entries', ['created_at'], unique=False)

    op.create_table(
        'service_offers',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('provider_id', sa.String(), nullable=False),
        sa.Column('provider_name', sa.String(), nullable=True),
        sa.Column('category', sa.String(length=16), nullable=False),
        sa.Column('title', sa.String(), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('time_credits', sa.Integer(), nullable=False),
        sa.Column('is_available', sa.Boolean(), server_default=sa.true(), nullable=False),
        sa.Column('tags', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint('time_credits > 0', name='ck_service_offer_time_credits_positive'),
    )
    op.create_index('ix_service_offers_provider_id', 'service_offers', ['provider_id'], unique=False)
    op.create_index('ix_service_offers_category', 'service_offers', ['category'], unique=False)

    op.create_table(
        'service_requests',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('service_id', sa.String(), nullable=False),
        sa.Column('service_title', sa.String(), nullable=False),
        sa.Column('provider_id', sa.String(), nullable=False),
        sa.Column('requester_id', sa.String(), nullable=False),
        sa.Column('requester_name', sa.String(), nullable=True),
        sa.Column('message', sa.Text(), nullable=True),
        sa.Column('time_credit_value', sa.Integer(), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False),
        sa.Column('version', sa.Integer(), server_default='1', nullable=False),
        sa.Column('requested_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.Column('completed_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['service_id'], ['service_offers.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint('time_credit_value > 0', name='ck_service_request_value_positive'),
    )
    op.create_index('ix_service_requests_provider_id', 'service_requests', ['provider_id'], unique=False)
    op.create_index('ix_service_requests_requester_id', 'service_requests', ['requester_id'], unique=False)

    op.create_table(
        'notifications',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('user_id', sa.String(), nullable=False),
        sa.Column('kind', sa.String(), nullable=False),
        sa.Column('title', sa.String(), nullable=False),
        sa.Column('message', sa.Text(), nullable=False),
        sa.Column('action_ref', sa.String(), nullable=True),
        sa.Column('read', sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_notifications_user_id', 'notifications', ['user_id'], unique=False)


def downgrade() -> None:
    op.drop_index('ix_notifications_user_id', table_name='notifications')
    op.drop_table('notifications')
    op.drop_index('ix_service_requests_requester_id', table_name='service_requests')
    op.drop_index('ix_service_requests_provider_id', table_name='service_requests')
    op.drop_table('service_requests')
    op.drop_index('ix_service_offers_category', table_name='service_offers')
    op.drop_index('ix_service_offers_provider_id', table_name='service_offers')
    op.drop_table('service_offers')
    op.drop_index('ix_ledger_entries_created_at', table_name='ledger_entries')
    op.drop_index('ix_ledger_entries_to_user_id', table_name='ledger_entries')
    op.drop_index('ix_ledger_entries_from_user_id', table_name='ledger_entries')
    op.drop_table('ledger_entries')
    op.drop_index('ix_delivery_tokens_product_id', table_name='delivery_tokens')
    op.drop_index('ix_delivery_tokens_transaction_id', table_name='delivery_tokens')
    op.drop_table('delivery_tokens')
    op.drop_index('ix_transactions_status', table_name='transactions')
    op.drop_index('ix_transactions_product_id', table_name='transactions')
    op.drop_index('ix_transactions_buyer_id', table_name='transactions')
    op.drop_index('ix_transactions_seller_id', table_name='transactions')
    op.drop_table('transactions')
    op.drop_table('user_profiles')
    op.drop_index('ix_products_kind_available', table_name='products')
    op.drop_index('ix_products_owner_id', table_name='products')
    op.drop_table('products')
