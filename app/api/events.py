# POST /api/analytics/* tracking endpoints

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession
from app.core.database import get_db
from app.schemas.event import (
    ArtistFollowRequest,
    EventCreate,
    SongLikeRequest,
    SongPlayRequest,
    TrackAndUpdateResponse,
    TrackResponse,
)
from app.schemas.records import (
    ContentMetricsUpdate,
    ContentType,
    OrderEventCreate,
    SearchQueryCreate,
    SubscriptionEventCreate,
)
from app.services.ingestion import IngestionService
import structlog

logger = structlog.get_logger()
router = APIRouter(prefix="/api/analytics", tags=["tracking"])


@router.post("", response_model=TrackResponse, status_code=status.HTTP_202_ACCEPTED)
async def track_event(
        event: EventCreate,
        db: AsyncSession = Depends(get_db)
):
    """
    Record one generic analytics event.

    - **action**: any known action name (e.g. `view`, `nft_mint`, `dao_proposal_vote`)
    - **context**: UI surface the action came from
    - The timestamp is assigned by the server

    Recording is best-effort: a storage failure is logged, not reported.
    """
    await IngestionService(db).record(event)
    return TrackResponse(message="Analytics tracked successfully")


@router.post("/songs/{song_id}/play", response_model=TrackAndUpdateResponse,
             status_code=status.HTTP_202_ACCEPTED)
async def track_song_play(
        song_id: str,
        body: SongPlayRequest,
        db: AsyncSession = Depends(get_db)
):
    """Record a play and update the song and artist play counters."""
    result = await IngestionService(db).track_song_play(
        body.user_id, song_id, body.context, duration=body.duration, genre=body.genre
    )
    return TrackAndUpdateResponse(recorded=result.recorded, projected=result.projected)


@router.post("/songs/{song_id}/like", response_model=TrackAndUpdateResponse,
             status_code=status.HTTP_202_ACCEPTED)
async def track_song_like(
        song_id: str,
        body: SongLikeRequest,
        db: AsyncSession = Depends(get_db)
):
    """Record a like (or unlike with `liked=false`) and adjust like counters."""
    result = await IngestionService(db).track_song_like(body.user_id, song_id, body.liked, body.context)
    return TrackAndUpdateResponse(recorded=result.recorded, projected=result.projected)


@router.post("/artists/{artist_id}/follow", response_model=TrackResponse,
             status_code=status.HTTP_202_ACCEPTED)
async def track_artist_follow(
        artist_id: str,
        body: ArtistFollowRequest,
        db: AsyncSession = Depends(get_db)
):
    await IngestionService(db).track_artist_follow(body.user_id, artist_id, body.following, body.context)
    return TrackResponse(message="Follow tracked successfully")


@router.post("/search", response_model=TrackResponse, status_code=status.HTTP_202_ACCEPTED)
async def track_search(
        search: SearchQueryCreate,
        db: AsyncSession = Depends(get_db)
):
    await IngestionService(db).track_search_query(search)
    return TrackResponse(message="Search tracked successfully")


@router.post("/subscriptions", response_model=TrackResponse, status_code=status.HTTP_202_ACCEPTED)
async def track_subscription(
        subscription: SubscriptionEventCreate,
        db: AsyncSession = Depends(get_db)
):
    await IngestionService(db).track_subscription(subscription)
    return TrackResponse(message="Subscription tracked successfully")


@router.post("/orders", response_model=TrackResponse, status_code=status.HTTP_202_ACCEPTED)
async def track_order(
        order: OrderEventCreate,
        db: AsyncSession = Depends(get_db)
):
    await IngestionService(db).track_order(order)
    return TrackResponse(message="Order tracked successfully")


@router.patch("/content/{content_id}/{content_type}", response_model=TrackResponse)
async def update_content_metrics(
        content_id: str,
        content_type: ContentType,
        patch: ContentMetricsUpdate,
        db: AsyncSession = Depends(get_db)
):
    """
    Merge metrics into the performance snapshot of one content item.

    Supplied fields overwrite stored ones; omitted fields are kept.
    """
    await IngestionService(db).update_content_metrics(content_id, content_type, patch)
    return TrackResponse(message="Content metrics updated successfully")
