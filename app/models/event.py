# SQLAlchemy models

from sqlalchemy import Column, String, Float, JSON, Index, Uuid
import uuid

from app.core.clock import utcnow
from app.models.base import Base, UTCDateTime


class Event(Base):
    """Append-only analytics event. Rows are never updated or deleted."""

    __tablename__ = "events"

    event_id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    occurred_at = Column(UTCDateTime, nullable=False, default=utcnow, index=True)
    action = Column(String(64), nullable=False, index=True)
    context = Column(String(64), nullable=False)

    # References to entities owned by other subsystems, never checked
    user_id = Column(String(64), nullable=True, index=True)
    artist_id = Column(String(64), nullable=True, index=True)
    song_id = Column(String(64), nullable=True, index=True)
    merch_id = Column(String(64), nullable=True)
    live_event_id = Column(String(64), nullable=True)
    subscription_id = Column(String(64), nullable=True)
    order_id = Column(String(64), nullable=True)
    ad_id = Column(String(64), nullable=True)
    nft_id = Column(String(64), nullable=True)

    value = Column(Float, nullable=True)
    properties = Column(JSON, nullable=False, default=dict)
    session_id = Column(String(128), nullable=True)
    device_info = Column(JSON, nullable=True)
    location = Column(JSON, nullable=True)

    __table_args__ = (
        # Composite indexes for window scans scoped by entity
        Index('idx_events_user_occurred', 'user_id', 'occurred_at'),
        Index('idx_events_artist_occurred', 'artist_id', 'occurred_at'),
        Index('idx_events_action_occurred', 'action', 'occurred_at'),
    )
