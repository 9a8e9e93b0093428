from sqlalchemy.ext.asyncio import AsyncSession
from collections import Counter
from datetime import timedelta
from typing import Any, Awaitable, List, Optional, TypeVar
import math
from app.core.clock import Clock, utcnow, window_start
from app.core.config import settings
from app.models.content import ContentPerformance
from app.schemas.actions import MusicAction, NFTAction, PlatformAction, CommerceAction
from app.schemas.analytics import (
    ArtistEarnings,
    ArtistMetrics,
    ArtistUploads,
    GrowthTrends,
    MerchAnalytics,
    PlatformMetrics,
    PopularSearch,
    RetentionSummary,
    SongStats,
    SubscriptionAnalytics,
    TopSong,
    TrendingSong,
    UserMetrics,
)
from app.services import ratios
from app.services.aggregation import AggregationQueries, number_or_zero, properties_of
import structlog

logger = structlog.get_logger()

T = TypeVar("T")


class AnalyticsService:
    """Audience-facing metrics views composed from aggregation queries.

    A failing section is logged and replaced by its zero value. A failure
    of the view as a whole is logged and returned as None, which the API
    layer reports as not found.
    """

    def __init__(self, db: AsyncSession, clock: Clock = utcnow):
        self.db = db
        self.clock = clock
        self.queries = AggregationQueries(db, clock)

    async def _section(self, name: str, pending: Awaitable[T], default: T) -> T:
        try:
            return await pending
        except Exception as e:
            logger.error("metrics_section_failed", section=name, error=str(e))
            try:
                await self.db.rollback()
            except Exception as rollback_error:
                logger.warning("rollback_failed", error=str(rollback_error))
            return default

    # ==================== Users ====================

    async def user_metrics(self, user_id: str, days: int = 30) -> Optional[UserMetrics]:
        try:
            events = await self.queries.events_in_window(days, user_id=user_id)
            counts = Counter(event.action for event in events)

            session_count = await self._section(
                "session_count", self.queries.count_sessions(user_id, days), 0
            )

            metrics = UserMetrics(
                total_plays=counts[MusicAction.PLAY.value],
                total_likes=counts[MusicAction.LIKE.value],
                total_shares=counts[MusicAction.SHARE.value],
                total_searches=counts[PlatformAction.SEARCH.value],
                total_follows=counts[MusicAction.FOLLOW.value],
                total_purchases=counts[CommerceAction.PURCHASE.value],
                total_actions=len(events),
                total_revenue=sum(event.value for event in events if event.value),
                favorite_genres=favorite_genres(events, settings.favorite_genres_limit),
                listening_hours=listening_hours(events),
                session_count=session_count,
            )

            logger.info("user_metrics_computed", user_id=user_id, days=days, events=len(events))
            return metrics

        except Exception as e:
            logger.error("user_metrics_failed", user_id=user_id, error=str(e))
            return None

    # ==================== Artists ====================

    async def artist_metrics(self, artist_id: str, days: int = 30) -> Optional[ArtistMetrics]:
        try:
            if not await self.queries.has_artist(artist_id):
                logger.info("artist_metrics_not_found", artist_id=artist_id)
                return None

            events = await self.queries.events_in_window(days, artist_id=artist_id)
            counts = Counter(event.action for event in events)
            listeners = {
                event.user_id for event in events
                if event.action == MusicAction.PLAY.value and event.user_id
            }

            followers = await self._section("followers", self.queries.artist_followers(artist_id), 0)
            new_followers = await self._section(
                "new_followers", self.queries.artist_new_followers(artist_id, days), 0
            )
            uploads = await self._section("uploads", self.queries.artist_uploads(artist_id), {})
            earnings = await self._section("earnings", self.queries.artist_earnings(artist_id, days), {})
            top_songs = await self._section(
                "top_songs",
                self.queries.top_songs_by_artist(artist_id, days, settings.top_songs_limit),
                []
            )
            growth = await self._section("growth_rate", self.queries.artist_growth_rate(artist_id, days), 0)

            # Placeholder: assumes a fixed share of followers subscribe
            new_subscribers = math.floor(followers * settings.new_subscriber_ratio)

            earnings = ArtistEarnings(**earnings)
            likes = counts[MusicAction.LIKE.value]
            shares = counts[MusicAction.SHARE.value]
            views = counts[PlatformAction.VIEW.value]

            return ArtistMetrics(
                monthly_revenue=earnings.total,
                subscription_revenue=earnings.subscriptions,
                merch_revenue=earnings.merch,
                event_revenue=earnings.events,
                total_plays=counts[MusicAction.PLAY.value],
                unique_listeners=len(listeners),
                total_likes=likes,
                total_shares=shares,
                total_views=views,
                followers=followers,
                new_followers=new_followers,
                new_subscribers=new_subscribers,
                new_subscribers_estimated=True,
                conversion_rate=ratios.conversion_rate(new_subscribers, followers),
                top_songs=[TopSong(**song) for song in top_songs],
                uploads=ArtistUploads(**uploads),
                earnings=earnings,
                engagement_rate=ratios.engagement_rate(likes, shares, counts[NFTAction.NFT_BID.value], views),
                growth_rate=growth,
            )

        except Exception as e:
            logger.error("artist_metrics_failed", artist_id=artist_id, error=str(e))
            return None

    # ==================== Platform ====================

    async def platform_metrics(self, days: int = 30) -> Optional[PlatformMetrics]:
        try:
            now = self.clock()
            start = window_start(now, days)

            return PlatformMetrics(
                total_signups=await self._section(
                    "total_signups", self.queries.total_signups(start, now), 0
                ),
                dau=await self._section("dau", self.queries.dau(), 0),
                mau=await self._section("mau", self.queries.mau(), 0),
                retention_rate_7d=await self._section(
                    "retention_rate_7d", self.queries.retention_rate(7, now - timedelta(days=14)), 0
                ),
                retention_rate_30d=await self._section(
                    "retention_rate_30d", self.queries.retention_rate(30, now - timedelta(days=60)), 0
                ),
                trending_songs=await self.trending(),
                popular_searches=await self.popular_searches(),
                merch_analytics=await self.merch_analytics(days),
                subscription_analytics=await self.subscription_analytics(days),
                growth_trends=await self.growth_trends(days),
            )

        except Exception as e:
            logger.error("platform_metrics_failed", days=days, error=str(e))
            return None

    # ==================== Slices ====================

    async def trending(self, limit: Optional[int] = None, days: Optional[int] = None) -> List[TrendingSong]:
        songs = await self._section(
            "trending_songs",
            self.queries.trending_songs(
                limit or settings.trending_limit,
                days or settings.trending_lookback_days
            ),
            []
        )
        return [TrendingSong(**song) for song in songs]

    async def popular_searches(self, limit: Optional[int] = None, days: Optional[int] = None) -> List[PopularSearch]:
        searches = await self._section(
            "popular_searches",
            self.queries.popular_searches(
                limit or settings.popular_search_limit,
                days or settings.popular_search_lookback_days
            ),
            []
        )
        return [PopularSearch(**search) for search in searches]

    async def growth_trends(self, days: int = 30) -> GrowthTrends:
        trends = await self._section("growth_trends", self.queries.growth_trends(days), {})
        return GrowthTrends(**trends)

    async def retention_summary(self) -> RetentionSummary:
        now = self.clock()
        return RetentionSummary(
            retention_rate_7d=await self._section(
                "retention_rate_7d", self.queries.retention_rate(7, now - timedelta(days=14)), 0
            ),
            retention_rate_30d=await self._section(
                "retention_rate_30d", self.queries.retention_rate(30, now - timedelta(days=60)), 0
            ),
            dau=await self._section("dau", self.queries.dau(), 0),
            mau=await self._section("mau", self.queries.mau(), 0),
        )

    async def merch_analytics(self, days: int = 30) -> MerchAnalytics:
        now = self.clock()
        sales = await self._section(
            "merch_analytics",
            self.queries.merch_sales(window_start(now, days), now, settings.best_selling_limit),
            {}
        )
        return MerchAnalytics(**sales)

    async def subscription_analytics(self, days: int = 30) -> SubscriptionAnalytics:
        now = self.clock()
        summary = await self._section(
            "subscription_analytics",
            self.queries.subscription_summary(window_start(now, days), now),
            {}
        )
        return SubscriptionAnalytics(**summary)

    async def song_stats(self, song_id: str) -> SongStats:
        stats = await self._section("song_stats", self.queries.song_stats(song_id), {"song_id": song_id})
        return SongStats(**stats)

    async def content_performance(self, content_id: str, content_type: str) -> Optional[ContentPerformance]:
        return await self._section(
            "content_performance",
            self.queries.content_performance(content_id, content_type),
            None
        )


def favorite_genres(events: List[Any], limit: int = 5) -> List[str]:
    """Most frequent ``metadata.genre`` values, ties in first-seen order"""
    genres = Counter(
        genre
        for genre in (properties_of(event.properties).get("genre") for event in events)
        if isinstance(genre, str) and genre
    )
    return [genre for genre, _ in genres.most_common(limit)]


def listening_hours(events: List[Any]) -> float:
    seconds = 0.0
    for event in events:
        if event.action != MusicAction.PLAY.value:
            continue
        duration = number_or_zero(properties_of(event.properties).get("duration"))
        if duration > 0:
            seconds += duration
    return round(seconds / 3600, 2)
