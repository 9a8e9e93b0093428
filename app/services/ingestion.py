from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import case, func, select, update
from dataclasses import dataclass
from typing import Any, Optional
from uuid import UUID, uuid4
from app.core.clock import Clock, utcnow
from app.models.content import ArtistProfile, ContentPerformance, Song
from app.models.event import Event
from app.models.records import OrderEvent, SearchQuery, SubscriptionEvent
from app.schemas.actions import CommerceAction, EventContext, MusicAction, PlatformAction
from app.schemas.event import EventCreate
from app.schemas.records import (
    ContentMetricsUpdate,
    OrderEventCreate,
    SearchQueryCreate,
    SubscriptionEventCreate,
)
from app.services.ratios import engagement_rate
import structlog

logger = structlog.get_logger()

DEFAULT_CONTENT_METRICS = {
    "views": 0,
    "unique_views": 0,
    "plays": 0,
    "unique_listeners": 0,
    "likes": 0,
    "shares": 0,
    "comments": 0,
    "saves": 0,
    "downloads": 0,
    "revenue": 0,
    "engagement_rate": 0,
}


@dataclass
class TrackResult:
    """Outcome of the two independent steps of a track-and-update call.

    ``recorded`` is the event-log append, ``projected`` the counter update.
    Each step commits on its own, so ``recorded=True, projected=False``
    means the counters lag behind the log.
    """

    recorded: bool
    projected: bool


class IngestionService:
    """Best-effort telemetry writes.

    Nothing here raises to the caller: persistence failures are rolled
    back, logged and reported through the return value.
    """

    def __init__(self, db: AsyncSession, clock: Clock = utcnow):
        self.db = db
        self.clock = clock

    async def _rollback(self) -> None:
        try:
            await self.db.rollback()
        except Exception as e:
            logger.warning("rollback_failed", error=str(e))

    # ==================== Event log ====================

    async def record(self, event: EventCreate) -> Optional[UUID]:
        """Append one event with a server-assigned id and timestamp."""
        try:
            row = Event(
                event_id=uuid4(),
                occurred_at=self.clock(),
                action=event.action.value,
                context=event.context.value,
                user_id=event.user_id,
                artist_id=event.artist_id,
                song_id=event.song_id,
                merch_id=event.merch_id,
                live_event_id=event.live_event_id,
                subscription_id=event.subscription_id,
                order_id=event.order_id,
                ad_id=event.ad_id,
                nft_id=event.nft_id,
                value=event.value,
                properties=dict(event.metadata),
                session_id=event.session_id,
                device_info=event.device_info.model_dump(exclude_none=True) if event.device_info else None,
                location=event.location.model_dump(exclude_none=True) if event.location else None,
            )
            self.db.add(row)
            await self.db.commit()

            logger.info("event_recorded", action=row.action, event_id=str(row.event_id))
            return row.event_id

        except Exception as e:
            await self._rollback()
            logger.error("event_record_failed", action=event.action.value, error=str(e))
            return None

    async def _find_song(self, song_id: str) -> Optional[Song]:
        try:
            return await self.db.get(Song, song_id)
        except Exception as e:
            await self._rollback()
            logger.warning("song_lookup_failed", song_id=song_id, error=str(e))
            return None

    # ==================== Track-and-update ====================

    async def track_song_play(
            self,
            user_id: str,
            song_id: str,
            context: EventContext | str = EventContext.PLAYER,
            duration: Optional[float] = None,
            genre: Optional[str] = None
    ) -> TrackResult:
        """Record a play, then bump the song and artist play counters."""
        song = await self._find_song(song_id)

        metadata: dict[str, Any] = {}
        if genre or (song and song.genre):
            metadata["genre"] = genre or song.genre
        if duration is not None:
            metadata["duration"] = duration

        event_id = await self.record(EventCreate(
            action=MusicAction.PLAY,
            context=context,
            user_id=user_id,
            song_id=song_id,
            artist_id=song.artist_id if song else None,
            metadata=metadata,
        ))
        if event_id is None:
            return TrackResult(recorded=False, projected=False)

        if song is None:
            logger.warning("play_projection_skipped_unknown_song", song_id=song_id)
            return TrackResult(recorded=True, projected=False)

        try:
            listened_before = await self.db.scalar(
                select(func.count()).select_from(Event).where(
                    Event.action == MusicAction.PLAY.value,
                    Event.song_id == song_id,
                    Event.user_id == user_id,
                    Event.event_id != event_id,
                )
            )
            new_listener = 1 if not listened_before else 0

            await self.db.execute(
                update(Song)
                .where(Song.song_id == song_id)
                .values(plays=Song.plays + 1, unique_listeners=Song.unique_listeners + new_listener)
                .execution_options(synchronize_session=False)
            )
            await self.db.execute(
                update(ArtistProfile)
                .where(ArtistProfile.artist_id == song.artist_id)
                .values(total_plays=ArtistProfile.total_plays + 1)
                .execution_options(synchronize_session=False)
            )
            await self.db.commit()
            return TrackResult(recorded=True, projected=True)

        except Exception as e:
            await self._rollback()
            logger.error("play_projection_failed", song_id=song_id, event_id=str(event_id), error=str(e))
            return TrackResult(recorded=True, projected=False)

    async def track_song_like(
            self,
            user_id: str,
            song_id: str,
            liked: bool,
            context: EventContext | str = EventContext.PLAYER
    ) -> TrackResult:
        """Record a like or unlike, then adjust like counters (never below zero)."""
        song = await self._find_song(song_id)

        event_id = await self.record(EventCreate(
            action=MusicAction.LIKE,
            context=context,
            user_id=user_id,
            song_id=song_id,
            artist_id=song.artist_id if song else None,
            metadata={"liked": liked},
        ))
        if event_id is None:
            return TrackResult(recorded=False, projected=False)

        if song is None:
            logger.warning("like_projection_skipped_unknown_song", song_id=song_id)
            return TrackResult(recorded=True, projected=False)

        if liked:
            song_likes = Song.likes + 1
            artist_likes = ArtistProfile.total_likes + 1
        else:
            song_likes = case((Song.likes > 0, Song.likes - 1), else_=0)
            artist_likes = case((ArtistProfile.total_likes > 0, ArtistProfile.total_likes - 1), else_=0)

        try:
            await self.db.execute(
                update(Song)
                .where(Song.song_id == song_id)
                .values(likes=song_likes)
                .execution_options(synchronize_session=False)
            )
            await self.db.execute(
                update(ArtistProfile)
                .where(ArtistProfile.artist_id == song.artist_id)
                .values(total_likes=artist_likes)
                .execution_options(synchronize_session=False)
            )
            await self.db.commit()
            return TrackResult(recorded=True, projected=True)

        except Exception as e:
            await self._rollback()
            logger.error("like_projection_failed", song_id=song_id, event_id=str(event_id), error=str(e))
            return TrackResult(recorded=True, projected=False)

    # ==================== Convenience trackers ====================

    async def track_artist_follow(
            self,
            user_id: str,
            artist_id: str,
            following: bool,
            context: EventContext | str = EventContext.PROFILE
    ) -> Optional[UUID]:
        return await self.record(EventCreate(
            action=MusicAction.FOLLOW if following else MusicAction.UNFOLLOW,
            context=context,
            user_id=user_id,
            artist_id=artist_id,
            metadata={"following": following},
        ))

    async def track_purchase(
            self,
            user_id: str,
            order_id: str,
            amount: float,
            purchase_type: str,
            context: EventContext | str = EventContext.CART
    ) -> Optional[UUID]:
        return await self.record(EventCreate(
            action=CommerceAction.PURCHASE,
            context=context,
            user_id=user_id,
            order_id=order_id,
            value=amount,
            metadata={"order_id": order_id, "type": purchase_type, "amount": amount},
        ))

    async def track_search(
            self,
            user_id: str,
            query: str,
            results: int,
            context: EventContext | str = EventContext.DISCOVER
    ) -> Optional[UUID]:
        return await self.record(EventCreate(
            action=PlatformAction.SEARCH,
            context=context,
            user_id=user_id,
            value=results,
            metadata={"query": query, "results_count": results},
        ))

    async def track_page_view(
            self,
            user_id: str,
            page: str,
            metadata: Optional[dict[str, Any]] = None,
            context: EventContext | str = EventContext.HOME
    ) -> Optional[UUID]:
        return await self.record(EventCreate(
            action=PlatformAction.VIEW,
            context=context,
            user_id=user_id,
            metadata={**(metadata or {}), "page": page},
        ))

    # ==================== Domain records ====================

    async def _insert(self, row, kind: str) -> Optional[UUID]:
        try:
            self.db.add(row)
            await self.db.commit()
            logger.info("analytics_record_logged", kind=kind, record_id=str(row.id))
            return row.id
        except Exception as e:
            await self._rollback()
            logger.error("analytics_record_failed", kind=kind, error=str(e))
            return None

    async def track_search_query(self, search: SearchQueryCreate) -> Optional[UUID]:
        return await self._insert(SearchQuery(
            id=uuid4(),
            occurred_at=self.clock(),
            user_id=search.user_id,
            query=search.query,
            filters=search.filters,
            results_count=search.results_count,
            clicked_results=[click.model_dump() for click in search.clicked_results],
            time_to_click=search.time_to_click,
            session_id=search.session_id,
        ), "search")

    async def track_subscription(self, subscription: SubscriptionEventCreate) -> Optional[UUID]:
        return await self._insert(SubscriptionEvent(
            id=uuid4(),
            occurred_at=self.clock(),
            user_id=subscription.user_id,
            subscription_id=subscription.subscription_id,
            artist_id=subscription.artist_id,
            tier=subscription.tier,
            action=subscription.action,
            amount=subscription.amount,
            currency=subscription.currency,
            period_start=subscription.period.start,
            period_end=subscription.period.end,
            payment_method=subscription.payment_method,
            properties=subscription.metadata,
        ), "subscription")

    async def track_order(self, order: OrderEventCreate) -> Optional[UUID]:
        return await self._insert(OrderEvent(
            id=uuid4(),
            occurred_at=self.clock(),
            user_id=order.user_id,
            order_id=order.order_id,
            order_type=order.type,
            items=[item.model_dump() for item in order.items],
            total_amount=order.total_amount,
            currency=order.currency,
            status=order.status,
            payment_status=order.payment_status,
            shipping_address=order.shipping_address,
            properties=order.metadata,
        ), "order")

    # ==================== Content performance ====================

    async def update_content_metrics(
            self,
            content_id: str,
            content_type: str,
            patch: ContentMetricsUpdate
    ) -> bool:
        """Upsert a content snapshot, last write wins per field."""
        now = self.clock()
        try:
            result = await self.db.execute(
                select(ContentPerformance).where(
                    ContentPerformance.content_id == content_id,
                    ContentPerformance.content_type == content_type,
                )
            )
            row = result.scalar_one_or_none()
            if row is None:
                row = ContentPerformance(
                    content_id=content_id,
                    content_type=content_type,
                    metrics=dict(DEFAULT_CONTENT_METRICS),
                    trending={},
                    demographics={},
                )
                self.db.add(row)

            metrics = {
                **DEFAULT_CONTENT_METRICS,
                **(row.metrics or {}),
                **patch.metrics.model_dump(exclude_none=True),
            }
            metrics["engagement_rate"] = engagement_rate(
                metrics["likes"], metrics["shares"], 0, metrics["views"]
            )
            row.metrics = metrics

            if patch.trending is not None:
                row.trending = {
                    **(row.trending or {}),
                    **patch.trending.model_dump(exclude_none=True),
                    "last_calculated": now.isoformat(),
                }

            if patch.demographics is not None:
                demographics = dict(row.demographics or {})
                for bucket, counts in patch.demographics.model_dump(exclude_none=True).items():
                    demographics[bucket] = {**demographics.get(bucket, {}), **counts}
                row.demographics = demographics

            if patch.artist_id:
                row.artist_id = patch.artist_id
            row.last_updated = now

            await self.db.commit()
            logger.info("content_metrics_updated", content_id=content_id, content_type=content_type)
            return True

        except Exception as e:
            await self._rollback()
            logger.error(
                "content_metrics_update_failed",
                content_id=content_id,
                content_type=content_type,
                error=str(e)
            )
            return False
