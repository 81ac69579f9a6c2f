"""Create block settlement tables.

Revision ID: 20261019_000001
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '20261019_000001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create participants, bonus inputs, blocks and block rewards."""

    op.create_table(
        'participants',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('telegram_id', sa.BigInteger(), nullable=True),
        sa.Column('username', sa.String(255), nullable=False),
        sa.Column('balance', sa.DECIMAL(18, 8), nullable=False, server_default='0'),
        sa.Column('total_earned', sa.DECIMAL(18, 8), nullable=False, server_default='0'),
        sa.Column('total_capacity', sa.DECIMAL(20, 4), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
        sa.CheckConstraint('balance >= 0', name='check_participant_balance_non_negative'),
        sa.CheckConstraint('total_earned >= 0', name='check_participant_total_earned_non_negative'),
        sa.CheckConstraint('total_capacity >= 0', name='check_participant_capacity_non_negative'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_participants_telegram_id', 'participants', ['telegram_id'], unique=True)
    op.create_index('ix_participants_total_capacity', 'participants', ['total_capacity'])

    op.create_table(
        'participant_prestige',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('participant_id', sa.Integer(), nullable=False),
        sa.Column('prestige_level', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
        sa.ForeignKeyConstraint(['participant_id'], ['participants.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('participant_id'),
    )

    op.create_table(
        'active_boosts',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('participant_id', sa.Integer(), nullable=False),
        sa.Column('kind', sa.String(50), nullable=False),
        sa.Column('boost_percent', sa.DECIMAL(10, 4), nullable=False),
        sa.Column('activated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='true'),
        sa.ForeignKeyConstraint(['participant_id'], ['participants.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(
        'idx_active_boosts_participant_active',
        'active_boosts',
        ['participant_id', 'is_active', 'expires_at'],
    )

    op.create_table(
        'seasons',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('season_id', sa.String(100), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('start_date', sa.DateTime(timezone=True), nullable=False),
        sa.Column('end_date', sa.DateTime(timezone=True), nullable=False),
        sa.Column('bonus_multiplier', sa.DECIMAL(6, 4), nullable=False, server_default='1.0'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('season_id'),
    )
    op.create_index('ix_seasons_is_active', 'seasons', ['is_active'])

    op.create_table(
        'game_settings',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('key', sa.String(100), nullable=False),
        sa.Column('value', sa.Text(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('key'),
    )

    op.create_table(
        'blocks',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('block_number', sa.Integer(), nullable=False),
        sa.Column('total_reward', sa.DECIMAL(18, 8), nullable=False),
        sa.Column('total_base', sa.DECIMAL(18, 8), nullable=False, server_default='0'),
        sa.Column('total_distributed', sa.DECIMAL(18, 8), nullable=False, server_default='0'),
        sa.Column('total_capacity', sa.DECIMAL(20, 4), nullable=False, server_default='0'),
        sa.Column('participant_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('difficulty', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('settled_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
        sa.CheckConstraint('block_number > 0', name='check_block_number_positive'),
        sa.CheckConstraint('participant_count >= 0', name='check_block_participant_count_non_negative'),
        sa.CheckConstraint('total_base <= total_reward', name='check_block_base_within_reward'),
        sa.PrimaryKeyConstraint('id'),
    )
    # Settlement idempotency relies on this index being unique
    op.create_index('ix_blocks_block_number', 'blocks', ['block_number'], unique=True)

    op.create_table(
        'block_rewards',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('block_id', sa.Integer(), nullable=False),
        sa.Column('block_number', sa.Integer(), nullable=False),
        sa.Column('participant_id', sa.Integer(), nullable=False),
        sa.Column('capacity', sa.DECIMAL(20, 4), nullable=False),
        sa.Column('share_percent', sa.DECIMAL(12, 6), nullable=False),
        sa.Column('base_amount', sa.DECIMAL(18, 8), nullable=False),
        sa.Column('effective_multiplier', sa.DECIMAL(12, 6), nullable=False, server_default='1'),
        sa.Column('reward_amount', sa.DECIMAL(18, 8), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
        sa.ForeignKeyConstraint(['block_id'], ['blocks.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['participant_id'], ['participants.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('block_number', 'participant_id', name='uq_block_rewards_block_participant'),
    )
    op.create_index('ix_block_rewards_block_id', 'block_rewards', ['block_id'])
    op.create_index(
        'idx_block_rewards_participant_block',
        'block_rewards',
        ['participant_id', 'block_number'],
    )


def downgrade() -> None:
    """Drop block settlement tables."""

    op.drop_index('idx_block_rewards_participant_block', 'block_rewards')
    op.drop_index('ix_block_rewards_block_id', 'block_rewards')
    op.drop_table('block_rewards')

    op.drop_index('ix_blocks_block_number', 'blocks')
    op.drop_table('blocks')

    op.drop_table('game_settings')

    op.drop_index('ix_seasons_is_active', 'seasons')
    op.drop_table('seasons')

    op.drop_index('idx_active_boosts_participant_active', 'active_boosts')
    op.drop_table('active_boosts')

    op.drop_table('participant_prestige')

    op.drop_index('ix_participants_total_capacity', 'participants')
    op.drop_index('ix_participants_telegram_id', 'participants')
    op.drop_table('participants')
