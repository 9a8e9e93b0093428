"""Create analytics tables

Revision ID: 3f1c9d2e7b40
Revises:
Create Date: 2026-10-17 10:12:05.114203

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3f1c9d2e7b40'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

TZ = sa.DateTime(timezone=True)


def upgrade():
    op.create_table(
        'events',
        sa.Column('event_id', sa.Uuid(), primary_key=True),
        sa.Column('occurred_at', TZ, nullable=False),
        sa.Column('action', sa.String(64), nullable=False),
        sa.Column('context', sa.String(64), nullable=False),
        sa.Column('user_id', sa.String(64)),
        sa.Column('artist_id', sa.String(64)),
        sa.Column('song_id', sa.String(64)),
        sa.Column('merch_id', sa.String(64)),
        sa.Column('live_event_id', sa.String(64)),
        sa.Column('subscription_id', sa.String(64)),
        sa.Column('order_id', sa.String(64)),
        sa.Column('ad_id', sa.String(64)),
        sa.Column('nft_id', sa.String(64)),
        sa.Column('value', sa.Float()),
        sa.Column('properties', sa.JSON(), nullable=False),
        sa.Column('session_id', sa.String(128)),
        sa.Column('device_info', sa.JSON()),
        sa.Column('location', sa.JSON()),
    )
    for column in ('occurred_at', 'action', 'user_id', 'artist_id', 'song_id'):
        op.create_index(f'ix_events_{column}', 'events', [column])
    # Composite indexes for window scans scoped by entity
    op.create_index('idx_events_user_occurred', 'events', ['user_id', 'occurred_at'])
    op.create_index('idx_events_artist_occurred', 'events', ['artist_id', 'occurred_at'])
    op.create_index('idx_events_action_occurred', 'events', ['action', 'occurred_at'])

    op.create_table(
        'user_sessions',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('session_id', sa.String(128), nullable=False, unique=True),
        sa.Column('user_id', sa.String(64), nullable=False),
        sa.Column('start_time', TZ, nullable=False),
        sa.Column('last_activity', TZ, nullable=False),
        sa.Column('end_time', TZ),
        sa.Column('duration', sa.Float()),
        sa.Column('page_views', sa.Integer(), nullable=False),
        sa.Column('actions', sa.JSON(), nullable=False),
        sa.Column('device_info', sa.JSON()),
        sa.Column('location', sa.JSON()),
        sa.Column('is_active', sa.Boolean(), nullable=False),
    )
    op.create_index('ix_user_sessions_user_id', 'user_sessions', ['user_id'])
    op.create_index('idx_sessions_start_user', 'user_sessions', ['start_time', 'user_id'])
    op.create_index('idx_sessions_active_activity', 'user_sessions', ['is_active', 'last_activity'])

    op.create_table(
        'search_queries',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('occurred_at', TZ, nullable=False),
        sa.Column('user_id', sa.String(64)),
        sa.Column('query', sa.Text(), nullable=False),
        sa.Column('filters', sa.JSON(), nullable=False),
        sa.Column('results_count', sa.Integer(), nullable=False),
        sa.Column('clicked_results', sa.JSON(), nullable=False),
        sa.Column('time_to_click', sa.Float()),
        sa.Column('session_id', sa.String(128)),
    )
    op.create_index('ix_search_queries_occurred_at', 'search_queries', ['occurred_at'])
    op.create_index('ix_search_queries_user_id', 'search_queries', ['user_id'])
    op.create_index('idx_search_query_occurred', 'search_queries', ['query', 'occurred_at'])

    op.create_table(
        'subscription_events',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('occurred_at', TZ, nullable=False),
        sa.Column('user_id', sa.String(64), nullable=False),
        sa.Column('subscription_id', sa.String(64), nullable=False),
        sa.Column('artist_id', sa.String(64), nullable=False),
        sa.Column('tier', sa.String(16), nullable=False),
        sa.Column('action', sa.String(16), nullable=False),
        sa.Column('amount', sa.Float(), nullable=False),
        sa.Column('currency', sa.String(8), nullable=False),
        sa.Column('period_start', TZ, nullable=False),
        sa.Column('period_end', TZ, nullable=False),
        sa.Column('payment_method', sa.String(64)),
        sa.Column('properties', sa.JSON(), nullable=False),
    )
    for column in ('occurred_at', 'user_id', 'artist_id'):
        op.create_index(f'ix_subscription_events_{column}', 'subscription_events', [column])

    op.create_table(
        'order_events',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('occurred_at', TZ, nullable=False),
        sa.Column('user_id', sa.String(64), nullable=False),
        sa.Column('order_id', sa.String(64), nullable=False),
        sa.Column('order_type', sa.String(16), nullable=False),
        sa.Column('items', sa.JSON(), nullable=False),
        sa.Column('total_amount', sa.Float(), nullable=False),
        sa.Column('currency', sa.String(8), nullable=False),
        sa.Column('status', sa.String(16), nullable=False),
        sa.Column('payment_status', sa.String(16), nullable=False),
        sa.Column('shipping_address', sa.JSON()),
        sa.Column('properties', sa.JSON(), nullable=False),
    )
    for column in ('occurred_at', 'user_id', 'order_id'):
        op.create_index(f'ix_order_events_{column}', 'order_events', [column])

    op.create_table(
        'content_performance',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('content_id', sa.String(64), nullable=False),
        sa.Column('content_type', sa.String(16), nullable=False),
        sa.Column('artist_id', sa.String(64)),
        sa.Column('metrics', sa.JSON(), nullable=False),
        sa.Column('trending', sa.JSON(), nullable=False),
        sa.Column('demographics', sa.JSON(), nullable=False),
        sa.Column('last_updated', TZ, nullable=False),
        sa.UniqueConstraint('content_id', 'content_type', name='uq_content_performance_key'),
    )
    op.create_index('ix_content_performance_artist_id', 'content_performance', ['artist_id'])

    op.create_table(
        'songs',
        sa.Column('song_id', sa.String(64), primary_key=True),
        sa.Column('artist_id', sa.String(64), nullable=False),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('genre', sa.String(64)),
        sa.Column('plays', sa.Integer(), nullable=False),
        sa.Column('unique_listeners', sa.Integer(), nullable=False),
        sa.Column('likes', sa.Integer(), nullable=False),
    )
    op.create_index('ix_songs_artist_id', 'songs', ['artist_id'])

    op.create_table(
        'artist_profiles',
        sa.Column('artist_id', sa.String(64), primary_key=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('total_plays', sa.Integer(), nullable=False),
        sa.Column('total_likes', sa.Integer(), nullable=False),
    )


def downgrade():
    op.drop_table('artist_profiles')
    op.drop_index('ix_songs_artist_id', 'songs')
    op.drop_table('songs')
    op.drop_index('ix_content_performance_artist_id', 'content_performance')
    op.drop_table('content_performance')
    for column in ('occurred_at', 'user_id', 'order_id'):
        op.drop_index(f'ix_order_events_{column}', 'order_events')
    op.drop_table('order_events')
    for column in ('occurred_at', 'user_id', 'artist_id'):
        op.drop_index(f'ix_subscription_events_{column}', 'subscription_events')
    op.drop_table('subscription_events')
    op.drop_index('idx_search_query_occurred', 'search_queries')
    op.drop_index('ix_search_queries_user_id', 'search_queries')
    op.drop_index('ix_search_queries_occurred_at', 'search_queries')
    op.drop_table('search_queries')
    op.drop_index('idx_sessions_active_activity', 'user_sessions')
    op.drop_index('idx_sessions_start_user', 'user_sessions')
    op.drop_index('ix_user_sessions_user_id', 'user_sessions')
    op.drop_table('user_sessions')
    op.drop_index('idx_events_action_occurred', 'events')
    op.drop_index('idx_events_artist_occurred', 'events')
    op.drop_index('idx_events_user_occurred', 'events')
    for column in ('occurred_at', 'action', 'user_id', 'artist_id', 'song_id'):
        op.drop_index(f'ix_events_{column}', 'events')
    op.drop_table('events')
