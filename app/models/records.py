# Domain-specific analytics records written alongside the event log

from sqlalchemy import Column, Float, Integer, JSON, String, Text, Index, Uuid
import uuid

from app.core.clock import utcnow
from app.models.base import Base, UTCDateTime


class SearchQuery(Base):
    """One row per search invocation, immutable once written."""

    __tablename__ = "search_queries"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    occurred_at = Column(UTCDateTime, nullable=False, default=utcnow, index=True)
    user_id = Column(String(64), nullable=True, index=True)
    query = Column(Text, nullable=False)
    filters = Column(JSON, nullable=False, default=dict)
    results_count = Column(Integer, nullable=False, default=0)
    # [{"item_id": ..., "item_type": ..., "position": ...}]
    clicked_results = Column(JSON, nullable=False, default=list)
    time_to_click = Column(Float, nullable=True)
    session_id = Column(String(128), nullable=True)

    __table_args__ = (
        Index('idx_search_query_occurred', 'query', 'occurred_at'),
    )


class SubscriptionEvent(Base):
    __tablename__ = "subscription_events"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    occurred_at = Column(UTCDateTime, nullable=False, default=utcnow, index=True)
    user_id = Column(String(64), nullable=False, index=True)
    subscription_id = Column(String(64), nullable=False)
    artist_id = Column(String(64), nullable=False, index=True)
    tier = Column(String(16), nullable=False)
    action = Column(String(16), nullable=False)
    amount = Column(Float, nullable=False, default=0)
    currency = Column(String(8), nullable=False, default="INR")
    period_start = Column(UTCDateTime, nullable=False)
    period_end = Column(UTCDateTime, nullable=False)
    payment_method = Column(String(64), nullable=True)
    properties = Column(JSON, nullable=False, default=dict)


class OrderEvent(Base):
    __tablename__ = "order_events"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    occurred_at = Column(UTCDateTime, nullable=False, default=utcnow, index=True)
    user_id = Column(String(64), nullable=False, index=True)
    order_id = Column(String(64), nullable=False, index=True)
    order_type = Column(String(16), nullable=False)
    items = Column(JSON, nullable=False, default=list)
    total_amount = Column(Float, nullable=False)
    currency = Column(String(8), nullable=False, default="INR")
    status = Column(String(16), nullable=False)
    payment_status = Column(String(16), nullable=False)
    shipping_address = Column(JSON, nullable=True)
    properties = Column(JSON, nullable=False, default=dict)
