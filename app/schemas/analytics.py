from pydantic import BaseModel, Field
from typing import List, Optional


class UserMetrics(BaseModel):
    """Per-user activity over the requested window"""
    total_plays: int = 0
    total_likes: int = 0
    total_shares: int = 0
    total_searches: int = 0
    total_follows: int = 0
    total_purchases: int = 0
    total_actions: int = 0
    # Sum of every numeric ``value`` in the window, not only monetary ones
    total_revenue: float = 0
    favorite_genres: List[str] = Field(default_factory=list)
    listening_hours: float = 0
    session_count: int = 0


class ArtistUploads(BaseModel):
    songs: int = 0
    blogs: int = 0
    events: int = 0
    merch: int = 0


class ArtistEarnings(BaseModel):
    subscriptions: float = 0
    merch: float = 0
    events: float = 0
    ads: float = 0
    total: float = 0


class TopSong(BaseModel):
    song_id: str
    title: Optional[str] = None
    genre: Optional[str] = None
    plays: int
    unique_listeners: int


class ArtistMetrics(BaseModel):
    """Per-artist dashboard metrics"""
    monthly_revenue: float = 0
    subscription_revenue: float = 0
    merch_revenue: float = 0
    event_revenue: float = 0
    total_plays: int = 0
    unique_listeners: int = 0
    total_likes: int = 0
    total_shares: int = 0
    total_views: int = 0
    followers: int = 0
    new_followers: int = 0
    new_subscribers: int = 0
    # new_subscribers is derived from followers, not measured
    new_subscribers_estimated: bool = True
    conversion_rate: float = 0
    top_songs: List[TopSong] = Field(default_factory=list)
    uploads: ArtistUploads = Field(default_factory=ArtistUploads)
    earnings: ArtistEarnings = Field(default_factory=ArtistEarnings)
    engagement_rate: int = 0
    growth_rate: float = 0


class TrendingSong(BaseModel):
    song_id: str
    plays: int
    likes: int
    shares: int
    unique_listeners: int
    trending_score: float


class PopularSearch(BaseModel):
    query: str
    search_count: int
    avg_results: float
    total_clicks: int
    click_through_rate: float


class BestSellingProduct(BaseModel):
    merch_id: Optional[str] = None
    total_sold: float
    revenue: float
    orders: int


class MerchAnalytics(BaseModel):
    total_sales: float = 0
    total_revenue: float = 0
    best_selling_products: List[BestSellingProduct] = Field(default_factory=list)


class SubscriptionAnalytics(BaseModel):
    total_subscriptions: int = 0
    active_subscriptions: int = 0
    churn_rate: float = 0
    renewals: int = 0
    upgrades: int = 0


class GrowthTrends(BaseModel):
    """Parallel daily series, oldest day first"""
    dates: List[str] = Field(default_factory=list)
    user_growth: List[int] = Field(default_factory=list)
    revenue_growth: List[float] = Field(default_factory=list)


class RetentionSummary(BaseModel):
    retention_rate_7d: float = 0
    retention_rate_30d: float = 0
    dau: int = 0
    mau: int = 0


class PlatformMetrics(BaseModel):
    """Admin-facing platform-wide metrics"""
    total_signups: int = 0
    dau: int = 0
    mau: int = 0
    retention_rate_7d: float = 0
    retention_rate_30d: float = 0
    trending_songs: List[TrendingSong] = Field(default_factory=list)
    popular_searches: List[PopularSearch] = Field(default_factory=list)
    merch_analytics: MerchAnalytics = Field(default_factory=MerchAnalytics)
    subscription_analytics: SubscriptionAnalytics = Field(default_factory=SubscriptionAnalytics)
    growth_trends: GrowthTrends = Field(default_factory=GrowthTrends)


class SongStats(BaseModel):
    song_id: str
    plays: int = 0
    unique_listeners: int = 0
    likes: int = 0
