"""add referrals and partner api tables

Revision ID: m002_referrals_partner
Revises: m001_create_marketplace
Create Date: 2026-10-19 15:40:07.552913

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = 'm002_referrals_partner'
down_revision: Union[str, None] = 'm001_create_marketplace'
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
    op.create_table(
        'referrals',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('referrer_id', sa.String(), nullable=False),
        sa.Column('referred_id', sa.String(), nullable=False),
        sa.Column('referral_code', sa.String(length=16), nullable=False),
        sa.Column('bonus_paid', sa.Boolean(), server_default='false', nullable=False),
        sa.Column('bonus_paid_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('bonus_deal_id', sa.String(), nullable=True),
        *_timestamps(updated=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('referred_id'),
    )
    op.create_index('ix_referrals_referrer_id', 'referrals', ['referrer_id'])
    op.create_index('ix_referrals_bonus_deal_id', 'referrals', ['bonus_deal_id'])

    op.create_table(
        'partner_api_keys',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('user_id', sa.String(), nullable=False),
        sa.Column('api_key', sa.String(length=128), nullable=False),
        sa.Column('name', sa.String(), nullable=True),
        sa.Column('is_active', sa.Boolean(), server_default='true', nullable=False),
        sa.Column('request_count', sa.Integer(), server_default='0', nullable=False),
        sa.Column('last_used_at', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_partner_api_keys_user_id', 'partner_api_keys', ['user_id'])
    op.create_index('ix_partner_api_keys_api_key', 'partner_api_keys', ['api_key'], unique=True)

    op.create_table(
        'partner_webhooks',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('partner_id', sa.String(), nullable=False),
        sa.Column('url', sa.String(length=2000), nullable=False),
        sa.Column('events', sa.JSON(), nullable=False),
        sa.Column('is_active', sa.Boolean(), server_default='true', nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(['partner_id'], ['partner_api_keys.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('partner_id'),
    )


def downgrade() -> None:
    op.drop_table('partner_webhooks')
    op.drop_table('partner_api_keys')
    op.drop_table('referrals')
