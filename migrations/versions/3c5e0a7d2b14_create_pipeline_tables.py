"""create pipeline tables

Revision ID: 3c5e0a7d2b14
Revises:
Create Date: 2026-10-18 10:12:31.204518

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision = '3c5e0a7d2b14'
down_revision = None
branch_labels = None
depends_on = None

# SQLite only autoincrements INTEGER primary keys
BIGINT_PK = sa.BIGINT().with_variant(sa.Integer(), 'sqlite')


def upgrade() -> None:
    op.create_table(
        'video_snapshots',
        sa.Column('id', BIGINT_PK, autoincrement=True, nullable=False),
        sa.Column('video_id', sa.String(), nullable=False),
        sa.Column('channel_id', sa.String(), nullable=True),
        sa.Column('view_count', sa.BIGINT(), nullable=False),
        sa.Column('like_count', sa.BIGINT(), nullable=False),
        sa.Column('comment_count', sa.BIGINT(), nullable=False),
        sa.Column('title', sa.Text(), nullable=False),
        sa.Column('tags', sa.JSON().with_variant(postgresql.JSONB(astext_type=sa.Text()), 'postgresql'), nullable=False),
        sa.Column('published_at', sa.TIMESTAMP(timezone=True), nullable=False),
        sa.Column('snapshot_date', sa.TIMESTAMP(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('view_velocity', sa.Float(), nullable=False),
        sa.Column('engagement_rate', sa.Float(), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('idx_video_snapshots_video_date', 'video_snapshots', ['video_id', 'snapshot_date'])
    op.create_index('idx_video_snapshots_date_velocity', 'video_snapshots', ['snapshot_date', 'view_velocity'])

    op.create_table(
        'trends',
        sa.Column('id', BIGINT_PK, autoincrement=True, nullable=False),
        sa.Column('keyword', sa.Text(), nullable=False),
        sa.Column('category', sa.String(), nullable=True),
        sa.Column('period', sa.String(), nullable=False),
        sa.Column('trend_date', sa.Date(), nullable=False),
        sa.Column('window_start', sa.TIMESTAMP(timezone=True), nullable=False),
        sa.Column('window_end', sa.TIMESTAMP(timezone=True), nullable=False),
        sa.Column('video_count', sa.BIGINT(), nullable=False),
        sa.Column('avg_views', sa.Float(), nullable=False),
        sa.Column('avg_engagement', sa.Float(), nullable=False),
        sa.Column('momentum', sa.Float(), nullable=False),
        sa.Column('search_volume', sa.BIGINT(), nullable=False),
        sa.Column('last_updated', sa.TIMESTAMP(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('keyword', 'period', 'trend_date', name='uq_trends_keyword_period_day')
    )
    op.create_index('idx_trends_period_category', 'trends', ['period', 'category'])
    op.create_index('idx_trends_date_momentum', 'trends', ['trend_date', 'momentum'])

    op.create_table(
        'content_gaps',
        sa.Column('id', BIGINT_PK, autoincrement=True, nullable=False),
        sa.Column('keyword', sa.Text(), nullable=False),
        sa.Column('category', sa.String(), nullable=True),
        sa.Column('gap_score', sa.Float(), nullable=False),
        sa.Column('search_volume', sa.BIGINT(), nullable=False),
        sa.Column('video_count', sa.BIGINT(), nullable=False),
        sa.Column('avg_video_age', sa.Float(), nullable=False),
        sa.Column('top_video_views', sa.BIGINT(), nullable=False),
        sa.Column('trend_score', sa.Float(), nullable=False),
        sa.Column('avg_views', sa.Float(), nullable=False),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('keyword')
    )
    op.create_index('idx_content_gaps_category_score', 'content_gaps', ['category', 'gap_score'])

    op.create_table(
        'tracked_channels',
        sa.Column('channel_id', sa.String(), nullable=False),
        sa.Column('added_at', sa.TIMESTAMP(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint('channel_id')
    )


def downgrade() -> None:
    op.drop_table('tracked_channels')
    op.drop_index('idx_content_gaps_category_score', table_name='content_gaps')
    op.drop_table('content_gaps')
    op.drop_index('idx_trends_date_momentum', table_name='trends')
    op.drop_index('idx_trends_period_category', table_name='trends')
    op.drop_table('trends')
    op.drop_index('idx_video_snapshots_date_velocity', table_name='video_snapshots')
    op.drop_index('idx_video_snapshots_video_date', table_name='video_snapshots')
    op.drop_table('video_snapshots')
