from sqlalchemy import Column, Boolean, Float, Integer, JSON, String, Index
from sqlalchemy.ext.mutable import MutableList

from app.core.clock import utcnow
from app.models.base import Base, UTCDateTime


class UserSession(Base):
    __tablename__ = "user_sessions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    session_id = Column(String(128), nullable=False, unique=True)
    user_id = Column(String(64), nullable=False, index=True)
    start_time = Column(UTCDateTime, nullable=False, default=utcnow)
    last_activity = Column(UTCDateTime, nullable=False, default=utcnow)
    end_time = Column(UTCDateTime, nullable=True)
    duration = Column(Float, nullable=True)  # seconds, set on close
    page_views = Column(Integer, nullable=False, default=0)
    actions = Column(MutableList.as_mutable(JSON), nullable=False, default=list)
    device_info = Column(JSON, nullable=True)
    location = Column(JSON, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)

    __table_args__ = (
        Index('idx_sessions_start_user', 'start_time', 'user_id'),
        Index('idx_sessions_active_activity', 'is_active', 'last_activity'),
    )
