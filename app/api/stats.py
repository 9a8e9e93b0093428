# GET /api/analytics/*

from fastapi import APIRouter, Depends, Header, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional
from app.core.config import settings
from app.core.database import get_db
from app.schemas.analytics import (
    ArtistMetrics,
    GrowthTrends,
    MerchAnalytics,
    PlatformMetrics,
    PopularSearch,
    RetentionSummary,
    SongStats,
    SubscriptionAnalytics,
    TrendingSong,
    UserMetrics,
)
from app.schemas.records import ContentPerformanceResponse, ContentType
from app.services.analytics import AnalyticsService
import structlog

logger = structlog.get_logger()
router = APIRouter(prefix="/api/analytics", tags=["analytics"])


def window_days(
        days: int = Query(default=settings.default_window_days, ge=1, le=365,
                          description="Lookback window in days")
) -> int:
    return days


async def require_admin(x_api_key: Optional[str] = Header(default=None)):
    """Platform-wide views need the configured API key, when one is set."""
    if settings.api_key and x_api_key != settings.api_key:
        raise HTTPException(status_code=403, detail="Admin access required")


@router.get("/users/{user_id}", response_model=UserMetrics)
async def get_user_analytics(
        user_id: str,
        days: int = Depends(window_days),
        db: AsyncSession = Depends(get_db)
):
    """
    Activity totals for one user over the last `days` days.

    `total_revenue` sums every numeric event value in the window.
    """
    metrics = await AnalyticsService(db).user_metrics(user_id, days)
    if metrics is None:
        raise HTTPException(status_code=404, detail="User analytics not found")

    logger.info("user_analytics_served", user_id=user_id, days=days)
    return metrics


@router.get("/artists/{artist_id}", response_model=ArtistMetrics)
async def get_artist_analytics(
        artist_id: str,
        days: int = Depends(window_days),
        db: AsyncSession = Depends(get_db)
):
    """
    Dashboard metrics for one artist.

    `new_subscribers` is an estimate derived from the follower count.
    """
    metrics = await AnalyticsService(db).artist_metrics(artist_id, days)
    if metrics is None:
        raise HTTPException(status_code=404, detail="Artist analytics not found")

    logger.info("artist_analytics_served", artist_id=artist_id, days=days)
    return metrics


@router.get("/platform", response_model=PlatformMetrics, dependencies=[Depends(require_admin)])
async def get_platform_analytics(
        days: int = Depends(window_days),
        db: AsyncSession = Depends(get_db)
):
    metrics = await AnalyticsService(db).platform_metrics(days)
    if metrics is None:
        raise HTTPException(status_code=404, detail="Platform analytics not found")
    return metrics


@router.get("/trending", response_model=List[TrendingSong])
async def get_trending(
        limit: int = Query(default=20, ge=1, le=100),
        days: int = Query(default=7, ge=1, le=365),
        db: AsyncSession = Depends(get_db)
):
    """Songs ranked by weighted plays, likes, shares and unique listeners."""
    return await AnalyticsService(db).trending(limit, days)


@router.get("/searches/popular", response_model=List[PopularSearch])
async def get_popular_searches(
        limit: int = Query(default=20, ge=1, le=100),
        days: int = Depends(window_days),
        db: AsyncSession = Depends(get_db)
):
    return await AnalyticsService(db).popular_searches(limit, days)


@router.get("/growth", response_model=GrowthTrends)
async def get_growth_trends(
        days: int = Depends(window_days),
        db: AsyncSession = Depends(get_db)
):
    """Daily signups and revenue, oldest day first."""
    return await AnalyticsService(db).growth_trends(days)


@router.get("/retention", response_model=RetentionSummary)
async def get_retention(db: AsyncSession = Depends(get_db)):
    return await AnalyticsService(db).retention_summary()


@router.get("/ecommerce", response_model=MerchAnalytics)
async def get_ecommerce_analytics(
        days: int = Depends(window_days),
        db: AsyncSession = Depends(get_db)
):
    return await AnalyticsService(db).merch_analytics(days)


@router.get("/subscriptions", response_model=SubscriptionAnalytics)
async def get_subscription_analytics(
        days: int = Depends(window_days),
        db: AsyncSession = Depends(get_db)
):
    return await AnalyticsService(db).subscription_analytics(days)


@router.get("/songs/{song_id}", response_model=SongStats)
async def get_song_stats(song_id: str, db: AsyncSession = Depends(get_db)):
    """All-time plays, unique listeners and net likes from the event log."""
    return await AnalyticsService(db).song_stats(song_id)


@router.get("/content/{content_id}/{content_type}", response_model=ContentPerformanceResponse)
async def get_content_performance(
        content_id: str,
        content_type: ContentType,
        db: AsyncSession = Depends(get_db)
):
    snapshot = await AnalyticsService(db).content_performance(content_id, content_type)
    if snapshot is None:
        raise HTTPException(status_code=404, detail="Content analytics not found")
    return snapshot
