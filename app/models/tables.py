# Importing this module registers every table on Base.metadata

from app.models.base import Base
from app.models.content import ArtistProfile, ContentPerformance, Song
from app.models.event import Event
from app.models.records import OrderEvent, SearchQuery, SubscriptionEvent
from app.models.session import UserSession

metadata = Base.metadata

__all__ = [
    "ArtistProfile",
    "Base",
    "ContentPerformance",
    "Event",
    "OrderEvent",
    "SearchQuery",
    "Song",
    "SubscriptionEvent",
    "UserSession",
    "metadata",
]
