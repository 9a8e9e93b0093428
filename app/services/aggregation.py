from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import case, distinct, func, select
from collections import defaultdict
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional, Sequence
from app.core.clock import Clock, start_of_day, start_of_month, start_of_next_month, utcnow, window_start
from app.models.content import ArtistProfile, ContentPerformance, Song
from app.models.event import Event
from app.models.records import SearchQuery, SubscriptionEvent
from app.models.session import UserSession
from app.schemas.actions import AdAction, CommerceAction, MusicAction, PlatformAction
from app.services import ratios
import structlog

logger = structlog.get_logger()

PLAY = MusicAction.PLAY.value
LIKE = MusicAction.LIKE.value
SHARE = MusicAction.SHARE.value
FOLLOW = MusicAction.FOLLOW.value
SIGNUP = PlatformAction.SIGNUP.value
MERCH_SALE = CommerceAction.MERCH_SALE.value

UPLOAD_ACTIONS = {
    MusicAction.CREATE_SONG.value: "songs",
    PlatformAction.CREATE_BLOG.value: "blogs",
    CommerceAction.CREATE_EVENT.value: "events",
    CommerceAction.CREATE_MERCH.value: "merch",
}

EARNING_ACTIONS = {
    CommerceAction.SUBSCRIPTION_PAYMENT.value: "subscriptions",
    CommerceAction.MERCH_SALE.value: "merch",
    CommerceAction.EVENT_TICKET_SALE.value: "events",
    AdAction.AD_REVENUE.value: "ads",
}

REVENUE_ACTIONS = (
    CommerceAction.PURCHASE.value,
    CommerceAction.SUBSCRIPTION_PAYMENT.value,
    AdAction.AD_REVENUE.value,
)


def properties_of(properties: Any) -> Dict[str, Any]:
    """Event metadata as a dict. Rows written outside the ingest schema may hold anything."""
    return properties if isinstance(properties, dict) else {}


def number_or_zero(value: Any) -> float:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return value
    return 0


class AggregationQueries:
    """Read-side queries over the event log, sessions and analytics records.

    Windows are rolling ``[now - days, now)`` intervals computed from the
    injected clock at call time. Nothing here writes to the database.
    """

    def __init__(self, db: AsyncSession, clock: Clock = utcnow):
        self.db = db
        self.clock = clock

    def _window(self, days: float) -> tuple[datetime, datetime]:
        now = self.clock()
        return window_start(now, days), now

    async def _count(self, stmt) -> int:
        return int(await self.db.scalar(stmt) or 0)

    # ==================== Event scans ====================

    async def events_in_window(
            self,
            days: float,
            user_id: Optional[str] = None,
            artist_id: Optional[str] = None,
            actions: Optional[Sequence[str]] = None
    ) -> List[Event]:
        start, end = self._window(days)
        stmt = select(Event).where(Event.occurred_at >= start, Event.occurred_at < end)
        if user_id is not None:
            stmt = stmt.where(Event.user_id == user_id)
        if artist_id is not None:
            stmt = stmt.where(Event.artist_id == artist_id)
        if actions:
            stmt = stmt.where(Event.action.in_(actions))

        result = await self.db.execute(stmt.order_by(Event.occurred_at))
        return list(result.scalars().all())

    async def count_sessions(self, user_id: str, days: float) -> int:
        start, end = self._window(days)
        return await self._count(
            select(func.count()).select_from(UserSession).where(
                UserSession.user_id == user_id,
                UserSession.start_time >= start,
                UserSession.start_time < end,
            )
        )

    # ==================== Users ====================

    async def total_signups(self, start: datetime, end: datetime) -> int:
        return await self._count(
            select(func.count()).select_from(Event).where(
                Event.action == SIGNUP,
                Event.occurred_at >= start,
                Event.occurred_at < end,
            )
        )

    async def _distinct_session_users(self, start: datetime, end: datetime) -> int:
        return await self._count(
            select(func.count(distinct(UserSession.user_id))).where(
                UserSession.start_time >= start,
                UserSession.start_time < end,
            )
        )

    async def dau(self, day: Optional[datetime] = None) -> int:
        """Distinct users with a session starting on the given UTC day"""
        start = start_of_day(day or self.clock())
        return await self._distinct_session_users(start, start + timedelta(days=1))

    async def mau(self, day: Optional[datetime] = None) -> int:
        """Distinct users with a session starting in the calendar month"""
        day = day or self.clock()
        return await self._distinct_session_users(start_of_month(day), start_of_next_month(day))

    async def retention_rate(self, days: int, cohort_date: datetime) -> float:
        """Share of users who signed up in the 24h from ``cohort_date`` and
        started a session in the 24h beginning ``days`` days later."""
        cohort_end = cohort_date + timedelta(days=1)
        cohort_result = await self.db.execute(
            select(distinct(Event.user_id)).where(
                Event.action == SIGNUP,
                Event.occurred_at >= cohort_date,
                Event.occurred_at < cohort_end,
                Event.user_id.is_not(None),
            )
        )
        cohort = [row[0] for row in cohort_result]
        if not cohort:
            return 0

        retention_start = cohort_date + timedelta(days=days)
        retained_result = await self.db.execute(
            select(distinct(UserSession.user_id)).where(
                UserSession.start_time >= retention_start,
                UserSession.start_time < retention_start + timedelta(days=1),
                UserSession.user_id.in_(cohort),
            )
        )
        retained = len(retained_result.all())

        logger.info("retention_computed", days=days, cohort_size=len(cohort), retained=retained)
        return ratios.retention_rate(retained, len(cohort))

    # ==================== Artists ====================

    async def _followers(self, artist_id: str, start: Optional[datetime] = None,
                         end: Optional[datetime] = None) -> int:
        stmt = select(Event.user_id, Event.properties).where(
            Event.artist_id == artist_id,
            Event.action == FOLLOW,
        )
        if start is not None:
            stmt = stmt.where(Event.occurred_at >= start, Event.occurred_at < end)

        result = await self.db.execute(stmt)
        followers = {
            user_id
            for user_id, properties in result
            # follow events without the flag predate it and count as follows
            if properties_of(properties).get("following", True) is not False
        }
        return len(followers)

    async def artist_followers(self, artist_id: str) -> int:
        return await self._followers(artist_id)

    async def artist_new_followers(self, artist_id: str, days: float) -> int:
        start, end = self._window(days)
        return await self._followers(artist_id, start, end)

    async def artist_uploads(self, artist_id: str) -> Dict[str, int]:
        result = await self.db.execute(
            select(Event.action, func.count())
            .where(Event.artist_id == artist_id, Event.action.in_(list(UPLOAD_ACTIONS)))
            .group_by(Event.action)
        )
        uploads = {kind: 0 for kind in UPLOAD_ACTIONS.values()}
        for action, count in result:
            uploads[UPLOAD_ACTIONS[action]] = count
        return uploads

    async def artist_earnings(self, artist_id: str, days: float) -> Dict[str, float]:
        start, end = self._window(days)
        result = await self.db.execute(
            select(Event.action, func.coalesce(func.sum(Event.value), 0))
            .where(
                Event.artist_id == artist_id,
                Event.action.in_(list(EARNING_ACTIONS)),
                Event.occurred_at >= start,
                Event.occurred_at < end,
            )
            .group_by(Event.action)
        )
        earnings = {kind: 0.0 for kind in EARNING_ACTIONS.values()}
        for action, total in result:
            earnings[EARNING_ACTIONS[action]] = float(total)
        earnings["total"] = sum(earnings.values())
        return earnings

    async def top_songs_by_artist(self, artist_id: str, days: float, limit: int = 5) -> List[Dict[str, Any]]:
        start, end = self._window(days)
        plays = func.count().label("plays")
        result = await self.db.execute(
            select(
                Event.song_id,
                plays,
                func.count(distinct(Event.user_id)).label("unique_listeners"),
                Song.title,
                Song.genre,
            )
            .outerjoin(Song, Song.song_id == Event.song_id)
            .where(
                Event.artist_id == artist_id,
                Event.action == PLAY,
                Event.song_id.is_not(None),
                Event.occurred_at >= start,
                Event.occurred_at < end,
            )
            .group_by(Event.song_id, Song.title, Song.genre)
            .order_by(plays.desc(), Event.song_id)
            .limit(limit)
        )
        return [
            {
                "song_id": row.song_id,
                "title": row.title,
                "genre": row.genre,
                "plays": row.plays,
                "unique_listeners": row.unique_listeners,
            }
            for row in result
        ]

    async def artist_growth_rate(self, artist_id: str, days: float) -> float:
        start, end = self._window(days)
        midpoint = end - timedelta(days=days / 2)

        def half(lower, upper):
            return select(func.count()).select_from(Event).where(
                Event.artist_id == artist_id,
                Event.occurred_at >= lower,
                Event.occurred_at < upper,
            )

        first_half = await self._count(half(start, midpoint))
        second_half = await self._count(half(midpoint, end))
        return ratios.growth_rate(first_half, second_half)

    # ==================== Content ====================

    async def trending_songs(
            self,
            limit: int = 20,
            days: float = 7,
            weights: Optional[ratios.TrendingWeights] = None
    ) -> List[Dict[str, Any]]:
        start, end = self._window(days)
        weights = weights or ratios.TrendingWeights.from_settings()

        result = await self.db.execute(
            select(
                Event.song_id,
                func.sum(case((Event.action == PLAY, 1), else_=0)).label("plays"),
                func.sum(case((Event.action == LIKE, 1), else_=0)).label("likes"),
                func.sum(case((Event.action == SHARE, 1), else_=0)).label("shares"),
                func.count(distinct(case((Event.action == PLAY, Event.user_id)))).label("unique_listeners"),
            )
            .where(
                Event.action.in_((PLAY, LIKE, SHARE)),
                Event.song_id.is_not(None),
                Event.occurred_at >= start,
                Event.occurred_at < end,
            )
            .group_by(Event.song_id)
        )

        songs = [
            {
                "song_id": row.song_id,
                "plays": int(row.plays or 0),
                "likes": int(row.likes or 0),
                "shares": int(row.shares or 0),
                "unique_listeners": int(row.unique_listeners or 0),
            }
            for row in result
        ]
        for song in songs:
            song["trending_score"] = ratios.trending_score(
                song["plays"], song["likes"], song["shares"], song["unique_listeners"], weights
            )

        songs.sort(key=lambda song: (-song["trending_score"], song["song_id"]))
        return songs[:limit]

    async def song_stats(self, song_id: str) -> Dict[str, Any]:
        plays = await self._count(
            select(func.count()).select_from(Event).where(Event.song_id == song_id, Event.action == PLAY)
        )
        listeners = await self._count(
            select(func.count(distinct(Event.user_id))).where(Event.song_id == song_id, Event.action == PLAY)
        )
        like_result = await self.db.execute(
            select(Event.properties).where(Event.song_id == song_id, Event.action == LIKE)
        )
        likes = unlikes = 0
        for (properties,) in like_result:
            liked = properties_of(properties).get("liked")
            if liked is True:
                likes += 1
            elif liked is False:
                unlikes += 1

        return {
            "song_id": song_id,
            "plays": plays,
            "unique_listeners": listeners,
            "likes": max(0, likes - unlikes),
        }

    async def content_performance(self, content_id: str, content_type: str) -> Optional[ContentPerformance]:
        result = await self.db.execute(
            select(ContentPerformance).where(
                ContentPerformance.content_id == content_id,
                ContentPerformance.content_type == content_type,
            )
        )
        return result.scalar_one_or_none()

    # ==================== Search ====================

    async def popular_searches(self, limit: int = 20, days: float = 30) -> List[Dict[str, Any]]:
        start, end = self._window(days)
        result = await self.db.execute(
            select(SearchQuery.query, SearchQuery.results_count, SearchQuery.clicked_results).where(
                SearchQuery.occurred_at >= start,
                SearchQuery.occurred_at < end,
            )
        )

        grouped: Dict[str, Dict[str, int]] = defaultdict(lambda: {"count": 0, "results": 0, "clicks": 0})
        for query, results_count, clicked_results in result:
            bucket = grouped[query]
            bucket["count"] += 1
            bucket["results"] += results_count or 0
            bucket["clicks"] += len(clicked_results or [])

        searches = [
            {
                "query": query,
                "search_count": bucket["count"],
                "avg_results": bucket["results"] / bucket["count"],
                "total_clicks": bucket["clicks"],
                "click_through_rate": ratios.click_through_rate(bucket["clicks"], bucket["count"]),
            }
            for query, bucket in grouped.items()
        ]
        searches.sort(key=lambda search: (-search["search_count"], search["query"]))
        return searches[:limit]

    async def search_conversion_rate(self, query: str, days: float = 30) -> float:
        start, end = self._window(days)
        result = await self.db.execute(
            select(SearchQuery.clicked_results).where(
                SearchQuery.query == query,
                SearchQuery.occurred_at >= start,
                SearchQuery.occurred_at < end,
            )
        )
        clicks = [len(clicked or []) for (clicked,) in result]
        return ratios.percentage(sum(clicks), len(clicks))

    # ==================== Commerce ====================

    async def merch_sales(self, start: datetime, end: datetime, limit: int = 10) -> Dict[str, Any]:
        """Units (event value) and revenue (units * metadata.price) of merch sales"""
        result = await self.db.execute(
            select(Event.merch_id, Event.value, Event.properties).where(
                Event.action == MERCH_SALE,
                Event.occurred_at >= start,
                Event.occurred_at < end,
            )
        )

        products: Dict[Optional[str], Dict[str, float]] = defaultdict(
            lambda: {"total_sold": 0.0, "revenue": 0.0, "orders": 0}
        )
        for merch_id, units, properties in result:
            units = units or 0
            price = number_or_zero(properties_of(properties).get("price"))
            product = products[merch_id]
            product["total_sold"] += units
            product["revenue"] += units * price
            product["orders"] += 1

        best_selling = sorted(
            ({"merch_id": merch_id, **totals} for merch_id, totals in products.items()),
            key=lambda product: (-product["total_sold"], str(product["merch_id"])),
        )
        return {
            "total_sales": sum(p["total_sold"] for p in products.values()),
            "total_revenue": sum(p["revenue"] for p in products.values()),
            "best_selling_products": best_selling[:limit],
        }

    async def subscription_summary(self, start: datetime, end: datetime) -> Dict[str, Any]:
        result = await self.db.execute(
            select(SubscriptionEvent.action, func.count())
            .where(SubscriptionEvent.occurred_at >= start, SubscriptionEvent.occurred_at < end)
            .group_by(SubscriptionEvent.action)
        )
        counts = {action: count for action, count in result}

        renewals = counts.get("renewed", 0)
        total = counts.get("subscribed", 0) + renewals
        cancellations = counts.get("cancelled", 0)

        return {
            "total_subscriptions": total,
            # Approximation: no expiry check against subscription periods
            "active_subscriptions": max(0, total - cancellations),
            "churn_rate": ratios.churn_rate(cancellations, total),
            "renewals": renewals,
            "upgrades": counts.get("upgraded", 0),
        }

    # ==================== Growth ====================

    async def growth_trends(self, days: int = 30) -> Dict[str, List[Any]]:
        """Daily signups and revenue for the last ``days`` UTC days, oldest first"""
        today = start_of_day(self.clock())
        first_day = today - timedelta(days=days - 1)

        result = await self.db.execute(
            select(Event.action, Event.occurred_at, Event.value).where(
                Event.action.in_((SIGNUP, *REVENUE_ACTIONS)),
                Event.occurred_at >= first_day,
                Event.occurred_at < today + timedelta(days=1),
            )
        )

        signups: Dict[str, int] = defaultdict(int)
        revenue: Dict[str, float] = defaultdict(float)
        for action, occurred_at, value in result:
            day = start_of_day(occurred_at).date().isoformat()
            if action == SIGNUP:
                signups[day] += 1
            else:
                revenue[day] += value or 0

        dates = [(first_day + timedelta(days=offset)).date().isoformat() for offset in range(days)]
        return {
            "dates": dates,
            "user_growth": [signups[day] for day in dates],
            "revenue_growth": [revenue[day] for day in dates],
        }

    # ==================== Existence ====================

    async def has_artist(self, artist_id: str) -> bool:
        """True when the artist has a profile row or appears in any event"""
        if await self.db.get(ArtistProfile, artist_id) is not None:
            return True
        found = await self.db.scalar(
            select(Event.event_id).where(Event.artist_id == artist_id).limit(1)
        )
        return found is not None
