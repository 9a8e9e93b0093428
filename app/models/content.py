# Content performance snapshot and the counter projections that ingest updates

from sqlalchemy import Column, Float, Integer, JSON, String, UniqueConstraint
from sqlalchemy.ext.mutable import MutableDict

from app.core.clock import utcnow
from app.models.base import Base, UTCDateTime


class ContentPerformance(Base):
    """Mutable materialized view, upserted per (content_id, content_type)."""

    __tablename__ = "content_performance"

    id = Column(Integer, primary_key=True, autoincrement=True)
    content_id = Column(String(64), nullable=False)
    content_type = Column(String(16), nullable=False)
    artist_id = Column(String(64), nullable=True, index=True)
    metrics = Column(MutableDict.as_mutable(JSON), nullable=False, default=dict)
    trending = Column(MutableDict.as_mutable(JSON), nullable=False, default=dict)
    demographics = Column(MutableDict.as_mutable(JSON), nullable=False, default=dict)
    last_updated = Column(UTCDateTime, nullable=False, default=utcnow)

    __table_args__ = (
        UniqueConstraint('content_id', 'content_type', name='uq_content_performance_key'),
    )


class Song(Base):
    """Denormalized song counters. The catalogue itself lives elsewhere."""

    __tablename__ = "songs"

    song_id = Column(String(64), primary_key=True)
    artist_id = Column(String(64), nullable=False, index=True)
    title = Column(String(255), nullable=False, default="")
    genre = Column(String(64), nullable=True)
    plays = Column(Integer, nullable=False, default=0)
    unique_listeners = Column(Integer, nullable=False, default=0)
    likes = Column(Integer, nullable=False, default=0)


class ArtistProfile(Base):
    __tablename__ = "artist_profiles"

    artist_id = Column(String(64), primary_key=True)
    name = Column(String(255), nullable=False, default="")
    total_plays = Column(Integer, nullable=False, default=0)
    total_likes = Column(Integer, nullable=False, default=0)
