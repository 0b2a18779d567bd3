"""create marketplace tables

Revision ID: m001_create_marketplace
Revises:
Create Date: 2026-10-19 09:12:41.318207

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = 'm001_create_marketplace'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps(updated: bool = True):
    columns = [
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
    ]
    if updated:
        columns.append(
            sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False)
        )
    return columns


def upgrade() -> None:
    """Profiles, orders and the deal lifecycle, then loyalty, KYC, payments and Telegram."""
    op.create_table(
        'profiles',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('user_id', sa.String(), nullable=False),
        sa.Column('full_name', sa.String(), nullable=True),
        sa.Column('phone', sa.String(length=32), nullable=True),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('role', sa.String(), server_default='client', nullable=False),
        sa.Column('carrier_type', sa.String(), nullable=True),
        sa.Column('company_name', sa.String(), nullable=True),
        sa.Column('vehicle_type', sa.String(), nullable=True),
        sa.Column('is_verified', sa.Boolean(), server_default='false', nullable=False),
        sa.Column('referral_code', sa.String(length=16), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('referral_code'),
    )
    op.create_index('ix_profiles_user_id', 'profiles', ['user_id'], unique=True)
    op.create_index('ix_profiles_phone', 'profiles', ['phone'])

    op.create_table(
        'orders',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('client_id', sa.String(), nullable=False),
        sa.Column('cargo_type', sa.String(), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('weight', sa.Float(), nullable=True),
        sa.Column('length', sa.Float(), nullable=True),
        sa.Column('width', sa.Float(), nullable=True),
        sa.Column('height', sa.Float(), nullable=True),
        sa.Column('photo_urls', sa.JSON(), nullable=True),
        sa.Column('pickup_address', sa.String(), nullable=False),
        sa.Column('pickup_lat', sa.Float(), nullable=True),
        sa.Column('pickup_lng', sa.Float(), nullable=True),
        sa.Column('delivery_address', sa.String(), nullable=False),
        sa.Column('delivery_lat', sa.Float(), nullable=True),
        sa.Column('delivery_lng', sa.Float(), nullable=True),
        sa.Column('pickup_date', sa.DateTime(timezone=True), nullable=False),
        sa.Column('client_price', sa.Integer(), nullable=True),
        sa.Column('status', sa.String(), server_default='open', nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_orders_client_id', 'orders', ['client_id'])

    op.create_table(
        'responses',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('order_id', sa.String(), nullable=False),
        sa.Column('carrier_id', sa.String(), nullable=False),
        sa.Column('price', sa.Integer(), nullable=False),
        sa.Column('delivery_time', sa.String(), nullable=True),
        sa.Column('comment', sa.Text(), nullable=True),
        sa.Column('is_accepted', sa.Boolean(), server_default='false', nullable=False),
        *_timestamps(updated=False),
        sa.ForeignKeyConstraint(['order_id'], ['orders.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('order_id', 'carrier_id', name='uq_response_order_carrier'),
    )
    op.create_index('ix_responses_order_id', 'responses', ['order_id'])
    op.create_index('ix_responses_carrier_id', 'responses', ['carrier_id'])

    op.create_table(
        'price_negotiations',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('order_id', sa.String(), nullable=False),
        sa.Column('response_id', sa.String(), nullable=True),
        sa.Column('proposed_by', sa.String(), nullable=False),
        sa.Column('proposed_price', sa.Integer(), nullable=False),
        sa.Column('message', sa.Text(), nullable=True),
        sa.Column('status', sa.String(), server_default='pending', nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(['order_id'], ['orders.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['response_id'], ['responses.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_price_negotiations_order_id', 'price_negotiations', ['order_id'])
    op.create_index(
        'ix_price_negotiations_order_created', 'price_negotiations', ['order_id', 'created_at']
    )
    # At most one accepted price per order
    op.create_index(
        'uq_price_negotiations_one_accepted',
        'price_negotiations',
        ['order_id'],
        unique=True,
        postgresql_where=sa.text("status = 'accepted'"),
        sqlite_where=sa.text("status = 'accepted'"),
    )

    op.create_table(
        'deals',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('order_id', sa.String(), nullable=False),
        sa.Column('client_id', sa.String(), nullable=False),
        sa.Column('carrier_id', sa.String(), nullable=False),
        sa.Column('agreed_price', sa.Integer(), nullable=False),
        sa.Column('status', sa.String(), server_default='pending', nullable=False),
        sa.Column('proof_photo_url', sa.String(), nullable=True),
        sa.Column('started_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['order_id'], ['orders.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_deals_order_id', 'deals', ['order_id'])
    op.create_index('ix_deals_client_id', 'deals', ['client_id'])
    op.create_index('ix_deals_carrier_id', 'deals', ['carrier_id'])

    op.create_table(
        'messages',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('deal_id', sa.String(), nullable=True),
        sa.Column('order_id', sa.String(), nullable=True),
        sa.Column('sender_id', sa.String(), nullable=False),
        sa.Column('content', sa.Text(), nullable=False),
        sa.Column('is_system', sa.Boolean(), server_default='false', nullable=False),
        *_timestamps(updated=False),
        sa.ForeignKeyConstraint(['deal_id'], ['deals.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['order_id'], ['orders.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_messages_deal_id', 'messages', ['deal_id'])
    op.create_index('ix_messages_order_id', 'messages', ['order_id'])

    op.create_table(
        'ratings',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('deal_id', sa.String(), nullable=False),
        sa.Column('rater_id', sa.String(), nullable=False),
        sa.Column('rated_id', sa.String(), nullable=False),
        sa.Column('score', sa.Integer(), nullable=False),
        sa.Column('comment', sa.Text(), nullable=True),
        *_timestamps(updated=False),
        sa.CheckConstraint('score BETWEEN 1 AND 5', name='ck_rating_score_range'),
        sa.ForeignKeyConstraint(['deal_id'], ['deals.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('deal_id', 'rater_id', name='uq_rating_deal_rater'),
    )
    op.create_index('ix_ratings_deal_id', 'ratings', ['deal_id'])
    op.create_index('ix_ratings_rated_id', 'ratings', ['rated_id'])

    op.create_table(
        'favorite_carriers',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('client_id', sa.String(), nullable=False),
        sa.Column('carrier_id', sa.String(), nullable=False),
        sa.Column('note', sa.Text(), nullable=True),
        *_timestamps(updated=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('client_id', 'carrier_id', name='uq_favorite_client_carrier'),
    )
    op.create_index('ix_favorite_carriers_client_id', 'favorite_carriers', ['client_id'])

    op.create_table(
        'gps_locations',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('deal_id', sa.String(), nullable=False),
        sa.Column('carrier_id', sa.String(), nullable=False),
        sa.Column('latitude', sa.Float(), nullable=False),
        sa.Column('longitude', sa.Float(), nullable=False),
        sa.Column('accuracy', sa.Float(), nullable=True),
        sa.Column('speed', sa.Float(), nullable=True),
        sa.Column('heading', sa.Float(), nullable=True),
        sa.Column('recorded_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.ForeignKeyConstraint(['deal_id'], ['deals.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_gps_locations_deal_recorded', 'gps_locations', ['deal_id', 'recorded_at'])

    op.create_table(
        'loyalty_points',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('user_id', sa.String(), nullable=False),
        sa.Column('balance', sa.Integer(), server_default='0', nullable=False),
        sa.Column('lifetime_earned', sa.Integer(), server_default='0', nullable=False),
        *_timestamps(),
        sa.CheckConstraint('balance >= 0', name='ck_loyalty_balance_non_negative'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_loyalty_points_user_id', 'loyalty_points', ['user_id'], unique=True)

    op.create_table(
        'loyalty_transactions',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('user_id', sa.String(), nullable=False),
        sa.Column('amount', sa.Integer(), nullable=False),
        sa.Column('type', sa.String(), nullable=False),
        sa.Column('reason', sa.String(), nullable=False),
        sa.Column('reference_id', sa.String(), nullable=True),
        *_timestamps(updated=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_loyalty_transactions_user_id', 'loyalty_transactions', ['user_id'])

    op.create_table(
        'loyalty_rewards',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('points_cost', sa.Integer(), nullable=False),
        sa.Column('discount_percent', sa.Integer(), nullable=True),
        sa.Column('discount_amount', sa.Integer(), nullable=True),
        sa.Column('is_active', sa.Boolean(), server_default='true', nullable=False),
        *_timestamps(updated=False),
        sa.PrimaryKeyConstraint('id'),
    )

    op.create_table(
        'notifications',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('user_id', sa.String(), nullable=False),
        sa.Column('title', sa.String(), nullable=False),
        sa.Column('body', sa.Text(), nullable=True),
        sa.Column('type', sa.String(), nullable=False),
        sa.Column('url', sa.String(), nullable=True),
        sa.Column('is_read', sa.Boolean(), server_default='false', nullable=False),
        *_timestamps(updated=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_notifications_user_id', 'notifications', ['user_id'])

    op.create_table(
        'push_subscriptions',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('user_id', sa.String(), nullable=False),
        sa.Column('endpoint', sa.Text(), nullable=False),
        sa.Column('p256dh', sa.String(), nullable=False),
        sa.Column('auth', sa.String(), nullable=False),
        *_timestamps(updated=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id', 'endpoint', name='uq_push_user_endpoint'),
    )
    op.create_index('ix_push_subscriptions_user_id', 'push_subscriptions', ['user_id'])

    op.create_table(
        'kyc_documents',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('user_id', sa.String(), nullable=False),
        sa.Column('first_name', sa.String(), nullable=True),
        sa.Column('last_name', sa.String(), nullable=True),
        sa.Column('middle_name', sa.String(), nullable=True),
        sa.Column('date_of_birth', sa.Date(), nullable=True),
        sa.Column('passport_series', sa.String(length=8), nullable=True),
        sa.Column('passport_number', sa.String(length=32), nullable=True),
        sa.Column('passport_country', sa.String(length=64), nullable=True),
        sa.Column('passport_expiry', sa.Date(), nullable=True),
        sa.Column('passport_front_url', sa.String(), nullable=True),
        sa.Column('passport_back_url', sa.String(), nullable=True),
        sa.Column('selfie_url', sa.String(), nullable=True),
        sa.Column('video_selfie_url', sa.String(), nullable=True),
        sa.Column('data_match_score', sa.Float(), nullable=True),
        sa.Column('fraud_score', sa.Float(), nullable=True),
        sa.Column('risk_level', sa.String(), nullable=True),
        sa.Column('face_match_score', sa.Float(), nullable=True),
        sa.Column('face_match_verified', sa.Boolean(), nullable=True),
        sa.Column('liveness_score', sa.Float(), nullable=True),
        sa.Column('liveness_verified', sa.Boolean(), nullable=True),
        sa.Column('liveness_data', sa.JSON(), nullable=True),
        sa.Column('auto_verified', sa.Boolean(), server_default='false', nullable=False),
        sa.Column('status', sa.String(), server_default='pending', nullable=False),
        sa.Column('rejection_reason', sa.Text(), nullable=True),
        sa.Column('admin_notes', sa.Text(), nullable=True),
        sa.Column('reviewed_by', sa.String(), nullable=True),
        sa.Column('reviewed_at', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_kyc_documents_user_id', 'kyc_documents', ['user_id'])

    op.create_table(
        'subscription_plans',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('display_name', sa.String(), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('price_monthly', sa.Integer(), nullable=False),
        sa.Column('price_yearly', sa.Integer(), nullable=True),
        sa.Column('features', sa.JSON(), nullable=True),
        sa.Column('is_active', sa.Boolean(), server_default='true', nullable=False),
        *_timestamps(updated=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('name'),
    )

    op.create_table(
        'user_subscriptions',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('user_id', sa.String(), nullable=False),
        sa.Column('plan_id', sa.String(), nullable=False),
        sa.Column('status', sa.String(), server_default='pending', nullable=False),
        sa.Column('current_period_start', sa.DateTime(timezone=True), nullable=True),
        sa.Column('current_period_end', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['plan_id'], ['subscription_plans.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_user_subscriptions_user_id', 'user_subscriptions', ['user_id'])

    op.create_table(
        'payment_transactions',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('user_id', sa.String(), nullable=False),
        sa.Column('subscription_id', sa.String(), nullable=True),
        sa.Column('amount', sa.Integer(), nullable=False),
        sa.Column('currency', sa.String(length=3), server_default='UZS', nullable=False),
        sa.Column('provider', sa.String(length=20), nullable=False),
        sa.Column('provider_transaction_id', sa.String(), nullable=True),
        sa.Column('status', sa.String(), server_default='pending', nullable=False),
        sa.Column('transaction_metadata', sa.JSON(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['subscription_id'], ['user_subscriptions.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_payment_transactions_user_id', 'payment_transactions', ['user_id'])
    op.create_index(
        'ix_payment_transactions_subscription_id', 'payment_transactions', ['subscription_id']
    )
    op.create_index(
        'ix_payment_transactions_provider_transaction_id',
        'payment_transactions',
        ['provider_transaction_id'],
    )

    op.create_table(
        'security_events',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('user_id', sa.String(), nullable=True),
        sa.Column('event_type', sa.String(length=100), nullable=False),
        sa.Column('severity', sa.String(length=20), server_default='info', nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('ip_address', sa.String(length=45), nullable=True),
        sa.Column('event_metadata', sa.JSON(), nullable=True),
        *_timestamps(updated=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_security_events_user_id', 'security_events', ['user_id'])
    op.create_index('ix_security_events_event_type', 'security_events', ['event_type'])

    op.create_table(
        'otp_codes',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('user_id', sa.String(), nullable=True),
        sa.Column('phone', sa.String(length=32), nullable=True),
        sa.Column('code', sa.String(), nullable=False),
        sa.Column('type', sa.String(), nullable=False),
        sa.Column('attempts', sa.Integer(), server_default='0', nullable=False),
        sa.Column('max_attempts', sa.Integer(), server_default='5', nullable=False),
        sa.Column('verified', sa.Boolean(), server_default='false', nullable=False),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        *_timestamps(updated=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_otp_codes_user_id', 'otp_codes', ['user_id'])
    op.create_index('ix_otp_codes_phone', 'otp_codes', ['phone'])
    op.create_index('ix_otp_codes_code', 'otp_codes', ['code'])

    op.create_table(
        'telegram_users',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('user_id', sa.String(), nullable=False),
        sa.Column('telegram_id', sa.String(), nullable=False),
        sa.Column('telegram_username', sa.String(), nullable=True),
        sa.Column('telegram_first_name', sa.String(), nullable=True),
        sa.Column('telegram_last_name', sa.String(), nullable=True),
        sa.Column('phone', sa.String(length=32), nullable=True),
        sa.Column('is_verified', sa.Boolean(), server_default='false', nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('telegram_id'),
    )
    op.create_index('ix_telegram_users_user_id', 'telegram_users', ['user_id'])


def downgrade() -> None:
    """Drop every marketplace table, children first."""
    for table in (
        'telegram_users',
        'otp_codes',
        'security_events',
        'payment_transactions',
        'user_subscriptions',
        'subscription_plans',
        'kyc_documents',
        'push_subscriptions',
        'notifications',
        'loyalty_rewards',
        'loyalty_transactions',
        'loyalty_points',
        'gps_locations',
        'favorite_carriers',
        'ratings',
        'messages',
        'deals',
        'price_negotiations',
        'responses',
        'orders',
        'profiles',
    ):
        op.drop_table(table)
