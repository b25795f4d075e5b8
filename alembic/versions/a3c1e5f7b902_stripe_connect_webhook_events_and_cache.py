"""stripe connect: users, webhook events and read-through cache tables

Revision ID: a3c1e5f7b902
Revises:
Create Date: 2026-10-19 09:12:44.518203

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
import sqlmodel
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = 'a3c1e5f7b902'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

JSONType = sa.JSON().with_variant(postgresql.JSONB(), 'postgresql')


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        'users',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('email', sqlmodel.sql.sqltypes.AutoString(length=255), nullable=False),
        sa.Column('hashed_password', sqlmodel.sql.sqltypes.AutoString(length=255), nullable=True),
        sa.Column('name', sqlmodel.sql.sqltypes.AutoString(length=255), nullable=False),
        sa.Column('company', sqlmodel.sql.sqltypes.AutoString(length=255), nullable=True),
        sa.Column('stripe_account_id', sqlmodel.sql.sqltypes.AutoString(length=255), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('is_admin', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_users_email'), 'users', ['email'], unique=True)
    op.create_index(op.f('ix_users_id'), 'users', ['id'], unique=False)
    op.create_index(op.f('ix_users_stripe_account_id'), 'users', ['stripe_account_id'], unique=False)

    op.create_table(
        'webhook_events',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('event_id', sqlmodel.sql.sqltypes.AutoString(length=255), nullable=False),
        sa.Column('type', sqlmodel.sql.sqltypes.AutoString(length=255), nullable=False),
        sa.Column('account', sqlmodel.sql.sqltypes.AutoString(length=255), nullable=True),
        sa.Column('api_version', sqlmodel.sql.sqltypes.AutoString(length=64), nullable=True),
        sa.Column('event_created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('livemode', sa.Boolean(), nullable=False),
        sa.Column('request_id', sqlmodel.sql.sqltypes.AutoString(length=255), nullable=True),
        sa.Column('related_object_id', sqlmodel.sql.sqltypes.AutoString(length=255), nullable=True),
        sa.Column('status', sa.Enum('received', 'processed', 'failed', name='webhookeventstatus'), nullable=False),
        sa.Column('payload', JSONType, nullable=False),
        sa.Column('error_message', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_webhook_events_id'), 'webhook_events', ['id'], unique=False)
    op.create_index(op.f('ix_webhook_events_event_id'), 'webhook_events', ['event_id'], unique=True)
    op.create_index(op.f('ix_webhook_events_type'), 'webhook_events', ['type'], unique=False)
    op.create_index(op.f('ix_webhook_events_account'), 'webhook_events', ['account'], unique=False)
    op.create_index(op.f('ix_webhook_events_event_created_at'), 'webhook_events', ['event_created_at'], unique=False)
    op.create_index(op.f('ix_webhook_events_related_object_id'), 'webhook_events', ['related_object_id'], unique=False)
    op.create_index(op.f('ix_webhook_events_status'), 'webhook_events', ['status'], unique=False)

    op.create_table(
        'stripe_charges_cache',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('user_id', sa.Uuid(), nullable=False),
        sa.Column('stripe_account_id', sqlmodel.sql.sqltypes.AutoString(length=255), nullable=False),
        sa.Column('range_days', sa.Integer(), nullable=False),
        sa.Column('used_source', sqlmodel.sql.sqltypes.AutoString(length=32), nullable=True),
        sa.Column('charges', JSONType, nullable=False),
        sa.Column('cached_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id', 'range_days', name='uq_stripe_charges_cache_user_range'),
    )
    op.create_index(op.f('ix_stripe_charges_cache_user_id'), 'stripe_charges_cache', ['user_id'], unique=False)
    op.create_index(op.f('ix_stripe_charges_cache_stripe_account_id'), 'stripe_charges_cache', ['stripe_account_id'], unique=False)
    op.create_index(op.f('ix_stripe_charges_cache_cached_at'), 'stripe_charges_cache', ['cached_at'], unique=False)

    op.create_table(
        'stripe_subscriptions_cache',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('user_id', sa.Uuid(), nullable=False),
        sa.Column('stripe_account_id', sqlmodel.sql.sqltypes.AutoString(length=255), nullable=False),
        sa.Column('subscriptions', JSONType, nullable=False),
        sa.Column('cached_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id', name='uq_stripe_subscriptions_cache_user'),
    )
    op.create_index(op.f('ix_stripe_subscriptions_cache_user_id'), 'stripe_subscriptions_cache', ['user_id'], unique=False)
    op.create_index(op.f('ix_stripe_subscriptions_cache_stripe_account_id'), 'stripe_subscriptions_cache', ['stripe_account_id'], unique=False)
    op.create_index(op.f('ix_stripe_subscriptions_cache_cached_at'), 'stripe_subscriptions_cache', ['cached_at'], unique=False)

    op.create_table(
        'stripe_summary_cache',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('user_id', sa.Uuid(), nullable=False),
        sa.Column('stripe_account_id', sqlmodel.sql.sqltypes.AutoString(length=255), nullable=False),
        sa.Column('range_days', sa.Integer(), nullable=False),
        sa.Column('offset_days', sa.Integer(), nullable=False),
        sa.Column('summary', JSONType, nullable=False),
        sa.Column('cached_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id', 'range_days', 'offset_days', name='uq_stripe_summary_cache_user_range_offset'),
    )
    op.create_index(op.f('ix_stripe_summary_cache_user_id'), 'stripe_summary_cache', ['user_id'], unique=False)
    op.create_index(op.f('ix_stripe_summary_cache_stripe_account_id'), 'stripe_summary_cache', ['stripe_account_id'], unique=False)
    op.create_index(op.f('ix_stripe_summary_cache_cached_at'), 'stripe_summary_cache', ['cached_at'], unique=False)


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_table('stripe_summary_cache')
    op.drop_table('stripe_subscriptions_cache')
    op.drop_table('stripe_charges_cache')
    op.drop_table('webhook_events')
    sa.Enum(name='webhookeventstatus').drop(op.get_bind(), checkfirst=True)
    op.drop_table('users')
