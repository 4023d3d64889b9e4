"""Initial market intelligence schema: athletes, brands, deals, matches, rate cards, deal intel, valuations

Revision ID: 3f9a6c21d7e4
Revises:
Create Date: 2026-10-16 10:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3f9a6c21d7e4'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _now():
    return sa.text('(CURRENT_TIMESTAMP)')


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table('athletes',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('full_name', sa.Text(), nullable=True),
        sa.Column('sport', sa.Text(), nullable=True),
        sa.Column('skill_level', sa.Text(), nullable=True),
        sa.Column('status', sa.Text(), nullable=False, server_default='active'),
        sa.Column('tags', sa.JSON(), nullable=True),
        sa.Column('engagement_rate', sa.Float(), nullable=True),
        sa.Column('valuation_tier', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=_now(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )

    op.create_table('athlete_social_profiles',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('athlete_id', sa.Integer(), nullable=False),
        sa.Column('platform', sa.Text(), nullable=False),
        sa.Column('handle', sa.Text(), nullable=True),
        sa.Column('followers', sa.Integer(), nullable=True),
        sa.Column('engagement_rate', sa.Float(), nullable=True),
        sa.ForeignKeyConstraint(['athlete_id'], ['athletes.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('athlete_id', 'platform', name='uq_social_profile_athlete_platform'),
    )
    op.create_index('ix_athlete_social_profiles_athlete_id', 'athlete_social_profiles', ['athlete_id'])

    op.create_table('brands',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('name', sa.Text(), nullable=False),
        sa.Column('category', sa.Text(), nullable=True),
        sa.Column('status', sa.Text(), nullable=False, server_default='new'),
        sa.Column('budget_tier', sa.Text(), nullable=True),
        sa.Column('signal_platforms', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=_now(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )

    op.create_table('brand_signals',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('brand_id', sa.Integer(), nullable=True),
        sa.Column('platform', sa.Text(), nullable=True),
        sa.Column('detected_at', sa.DateTime(timezone=True), server_default=_now(), nullable=True),
        sa.ForeignKeyConstraint(['brand_id'], ['brands.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_brand_signals_brand_id', 'brand_signals', ['brand_id'])

    op.create_table('brand_watchlist',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('brand_id', sa.Integer(), nullable=False),
        sa.Column('active', sa.Boolean(), nullable=True),
        sa.ForeignKeyConstraint(['brand_id'], ['brands.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_brand_watchlist_brand_id', 'brand_watchlist', ['brand_id'])

    op.create_table('deals',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('athlete_id', sa.Integer(), nullable=False),
        sa.Column('brand_id', sa.Integer(), nullable=False),
        sa.Column('status', sa.Text(), nullable=False, server_default='pending'),
        sa.Column('exclusivity', sa.Boolean(), nullable=True),
        sa.Column('deal_value', sa.Float(), nullable=True),
        sa.Column('sport', sa.Text(), nullable=True),
        sa.Column('platform', sa.Text(), nullable=True),
        sa.Column('content_type', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=_now(), nullable=True),
        sa.ForeignKeyConstraint(['athlete_id'], ['athletes.id']),
        sa.ForeignKeyConstraint(['brand_id'], ['brands.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_deals_athlete_id', 'deals', ['athlete_id'])
    op.create_index('ix_deals_brand_id', 'deals', ['brand_id'])

    op.create_table('matches',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('athlete_id', sa.Integer(), nullable=False),
        sa.Column('brand_id', sa.Integer(), nullable=False),
        sa.Column('match_score', sa.Float(), nullable=False),
        sa.Column('score_breakdown', sa.JSON(), nullable=True),
        sa.Column('status', sa.Text(), nullable=False, server_default='new'),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=_now(), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=_now(), nullable=True),
        sa.ForeignKeyConstraint(['athlete_id'], ['athletes.id']),
        sa.ForeignKeyConstraint(['brand_id'], ['brands.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('athlete_id', 'brand_id', name='uq_match_athlete_brand'),
    )
    op.create_index('ix_matches_athlete_id', 'matches', ['athlete_id'])
    op.create_index('ix_matches_brand_id', 'matches', ['brand_id'])

    op.create_table('rate_cards',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('sport', sa.Text(), nullable=False),
        sa.Column('platform', sa.Text(), nullable=False),
        sa.Column('content_type', sa.Text(), nullable=False),
        sa.Column('follower_tier', sa.Text(), nullable=False),
        sa.Column('engagement_tier', sa.Text(), nullable=False),
        sa.Column('rate_low', sa.Float(), nullable=False),
        sa.Column('rate_median', sa.Float(), nullable=False),
        sa.Column('rate_high', sa.Float(), nullable=False),
        sa.Column('sample_size', sa.Integer(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=_now(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint(
            'sport', 'platform', 'content_type', 'follower_tier', 'engagement_tier',
            name='uq_rate_card_group',
        ),
    )

    op.create_table('deal_intel',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('source_type', sa.Text(), nullable=True),
        sa.Column('source_url', sa.Text(), nullable=False),
        sa.Column('source_title', sa.Text(), nullable=True),
        sa.Column('source_snippet', sa.Text(), nullable=True),
        sa.Column('fingerprint', sa.Text(), nullable=False),
        sa.Column('brand_name', sa.Text(), nullable=True),
        sa.Column('athlete_name', sa.Text(), nullable=True),
        sa.Column('amount_low', sa.Float(), nullable=True),
        sa.Column('amount_high', sa.Float(), nullable=True),
        sa.Column('sport', sa.Text(), nullable=True),
        sa.Column('platform', sa.Text(), nullable=True),
        sa.Column('content_type', sa.Text(), nullable=True),
        sa.Column('extraction_confidence', sa.Float(), nullable=True),
        sa.Column('reviewed', sa.Boolean(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=_now(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('source_url'),
        sa.UniqueConstraint('fingerprint'),
    )

    op.create_table('scrape_runs',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('status', sa.Text(), nullable=False, server_default='running'),
        sa.Column('queries', sa.JSON(), nullable=True),
        sa.Column('records_found', sa.Integer(), nullable=True),
        sa.Column('records_ingested', sa.Integer(), nullable=True),
        sa.Column('duplicates_skipped', sa.Integer(), nullable=True),
        sa.Column('errors', sa.JSON(), nullable=True),
        sa.Column('started_at', sa.DateTime(timezone=True), server_default=_now(), nullable=True),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )

    op.create_table('athlete_valuations',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('athlete_id', sa.Integer(), nullable=False),
        sa.Column('as_of', sa.Date(), nullable=False),
        sa.Column('annual_low', sa.Integer(), nullable=False),
        sa.Column('annual_high', sa.Integer(), nullable=False),
        sa.Column('follower_tier', sa.Text(), nullable=False),
        sa.Column('percentile', sa.Integer(), nullable=False),
        sa.Column('confidence', sa.Integer(), nullable=True),
        sa.Column('comparable_count', sa.Integer(), nullable=True),
        sa.Column('valuation_data', sa.JSON(), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=_now(), nullable=True),
        sa.ForeignKeyConstraint(['athlete_id'], ['athletes.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('athlete_id', 'as_of', name='uq_athlete_valuation_as_of'),
    )
    op.create_index('ix_athlete_valuations_athlete_id', 'athlete_valuations', ['athlete_id'])


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index('ix_athlete_valuations_athlete_id', 'athlete_valuations')
    op.drop_table('athlete_valuations')
    op.drop_table('scrape_runs')
    op.drop_table('deal_intel')
    op.drop_table('rate_cards')
    op.drop_index('ix_matches_brand_id', 'matches')
    op.drop_index('ix_matches_athlete_id', 'matches')
    op.drop_table('matches')
    op.drop_index('ix_deals_brand_id', 'deals')
    op.drop_index('ix_deals_athlete_id', 'deals')
    op.drop_table('deals')
    op.drop_index('ix_brand_watchlist_brand_id', 'brand_watchlist')
    op.drop_table('brand_watchlist')
    op.drop_index('ix_brand_signals_brand_id', 'brand_signals')
    op.drop_table('brand_signals')
    op.drop_table('brands')
    op.drop_index('ix_athlete_social_profiles_athlete_id', 'athlete_social_profiles')
    op.drop_table('athlete_social_profiles')
    op.drop_table('athletes')
