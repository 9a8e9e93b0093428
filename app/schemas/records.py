from pydantic import BaseModel, Field
from datetime import datetime
from typing import Any, Literal, Optional


class ClickedResult(BaseModel):
    item_id: str
    item_type: Literal["song", "artist", "album", "playlist"]
    position: int = Field(..., ge=0)


class SearchQueryCreate(BaseModel):
    user_id: Optional[str] = None
    query: str = Field(..., min_length=1, max_length=500)
    filters: dict[str, Any] = Field(default_factory=dict)
    results_count: int = Field(..., ge=0)
    clicked_results: list[ClickedResult] = Field(default_factory=list)
    time_to_click: Optional[float] = Field(default=None, ge=0)
    session_id: Optional[str] = None


class SubscriptionPeriod(BaseModel):
    start: datetime
    end: datetime


class SubscriptionEventCreate(BaseModel):
    user_id: str
    subscription_id: str
    artist_id: str
    tier: Literal["bronze", "silver", "gold"]
    action: Literal["subscribed", "renewed", "cancelled", "expired", "upgraded", "downgraded"]
    amount: float = Field(..., ge=0)
    currency: str = "INR"
    period: SubscriptionPeriod
    payment_method: Optional[str] = None
    metadata: dict[str, Any] = Field(default_factory=dict)


class OrderItem(BaseModel):
    item_id: str
    item_type: Literal["merch", "event"]
    quantity: int = Field(..., ge=1)
    price: float = Field(..., ge=0)
    discount: float = Field(default=0, ge=0)


class OrderEventCreate(BaseModel):
    user_id: str
    order_id: str
    type: Literal["merch", "event_ticket"]
    items: list[OrderItem] = Field(..., min_length=1)
    total_amount: float = Field(..., ge=0)
    currency: str = "INR"
    status: Literal["placed", "confirmed", "shipped", "delivered", "cancelled", "refunded"]
    payment_status: Literal["pending", "completed", "failed", "refunded"]
    shipping_address: Optional[dict[str, Any]] = None
    metadata: dict[str, Any] = Field(default_factory=dict)


ContentType = Literal["song", "album", "playlist", "blog", "event", "merch"]


class ContentMetricsPatch(BaseModel):
    views: Optional[int] = Field(default=None, ge=0)
    unique_views: Optional[int] = Field(default=None, ge=0)
    plays: Optional[int] = Field(default=None, ge=0)
    unique_listeners: Optional[int] = Field(default=None, ge=0)
    likes: Optional[int] = Field(default=None, ge=0)
    shares: Optional[int] = Field(default=None, ge=0)
    comments: Optional[int] = Field(default=None, ge=0)
    saves: Optional[int] = Field(default=None, ge=0)
    downloads: Optional[int] = Field(default=None, ge=0)
    revenue: Optional[float] = Field(default=None, ge=0)


class TrendingPatch(BaseModel):
    score: Optional[float] = None
    rank: Optional[int] = Field(default=None, ge=1)


class DemographicsPatch(BaseModel):
    age_groups: Optional[dict[str, int]] = None
    genders: Optional[dict[str, int]] = None
    countries: Optional[dict[str, int]] = None
    devices: Optional[dict[str, int]] = None


class ContentMetricsUpdate(BaseModel):
    """Partial update merged field by field into a content snapshot"""

    artist_id: Optional[str] = None
    metrics: ContentMetricsPatch = Field(default_factory=ContentMetricsPatch)
    trending: Optional[TrendingPatch] = None
    demographics: Optional[DemographicsPatch] = None


class ContentPerformanceResponse(BaseModel):
    content_id: str
    content_type: str
    artist_id: Optional[str] = None
    metrics: dict[str, Any]
    trending: dict[str, Any]
    demographics: dict[str, Any]
    last_updated: datetime

    model_config = {"from_attributes": True}
