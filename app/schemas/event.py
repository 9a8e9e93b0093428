# Pydantic schemas

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, model_validator
from datetime import datetime
from uuid import UUID
from typing import Annotated, Any, Literal, Optional

from app.schemas.actions import EventAction, EventContext, parse_action

Action = Annotated[EventAction, BeforeValidator(parse_action)]


class DeviceInfo(BaseModel):
    type: Optional[Literal["mobile", "desktop", "tablet"]] = None
    os: Optional[str] = None
    browser: Optional[str] = None
    user_agent: Optional[str] = None


class Location(BaseModel):
    country: Optional[str] = None
    region: Optional[str] = None
    city: Optional[str] = None
    ip: Optional[str] = None


# Metadata payloads for the actions that aggregations read.
# Extra keys are kept; the known keys are type-checked.

class _Metadata(BaseModel):
    model_config = ConfigDict(extra="allow")


class PlayMetadata(_Metadata):
    genre: Optional[str] = None
    duration: Optional[float] = Field(default=None, ge=0)


class LikeMetadata(_Metadata):
    liked: bool = True


class FollowMetadata(_Metadata):
    following: Optional[bool] = None


class PurchaseMetadata(_Metadata):
    order_id: Optional[str] = None
    type: Optional[str] = None
    amount: Optional[float] = None


class SearchMetadata(_Metadata):
    query: Optional[str] = None
    results_count: Optional[int] = Field(default=None, ge=0)


class MerchSaleMetadata(_Metadata):
    price: Optional[float] = Field(default=None, ge=0)


class ViewMetadata(_Metadata):
    page: Optional[str] = None


METADATA_MODELS: dict[str, type[_Metadata]] = {
    "play": PlayMetadata,
    "like": LikeMetadata,
    "follow": FollowMetadata,
    "unfollow": FollowMetadata,
    "purchase": PurchaseMetadata,
    "search": SearchMetadata,
    "merch_sale": MerchSaleMetadata,
    "view": ViewMetadata,
}


class EventCreate(BaseModel):
    """Schema for recording a single event. The timestamp is assigned server-side."""

    action: Action
    context: EventContext
    user_id: Optional[str] = Field(default=None, max_length=64)
    artist_id: Optional[str] = Field(default=None, max_length=64)
    song_id: Optional[str] = Field(default=None, max_length=64)
    merch_id: Optional[str] = Field(default=None, max_length=64)
    live_event_id: Optional[str] = Field(default=None, max_length=64)
    subscription_id: Optional[str] = Field(default=None, max_length=64)
    order_id: Optional[str] = Field(default=None, max_length=64)
    ad_id: Optional[str] = Field(default=None, max_length=64)
    nft_id: Optional[str] = Field(default=None, max_length=64)
    value: Optional[float] = None
    metadata: dict[str, Any] = Field(default_factory=dict)
    session_id: Optional[str] = Field(default=None, max_length=128)
    device_info: Optional[DeviceInfo] = None
    location: Optional[Location] = None

    @model_validator(mode="after")
    def validate_metadata(self) -> "EventCreate":
        model = METADATA_MODELS.get(self.action.value)
        if model is not None:
            self.metadata = model.model_validate(self.metadata).model_dump(exclude_none=True)
        return self


class EventResponse(BaseModel):
    """Response schema for a stored event"""

    event_id: UUID
    occurred_at: datetime
    action: str
    context: str
    user_id: Optional[str] = None
    artist_id: Optional[str] = None
    song_id: Optional[str] = None
    value: Optional[float] = None
    properties: dict[str, Any]

    model_config = {"from_attributes": True}


class TrackResponse(BaseModel):
    message: str


class SongPlayRequest(BaseModel):
    user_id: str = Field(..., min_length=1, max_length=64)
    context: EventContext = EventContext.PLAYER
    duration: Optional[float] = Field(default=None, ge=0)
    genre: Optional[str] = None


class SongLikeRequest(BaseModel):
    user_id: str = Field(..., min_length=1, max_length=64)
    liked: bool = True
    context: EventContext = EventContext.PLAYER


class ArtistFollowRequest(BaseModel):
    user_id: str = Field(..., min_length=1, max_length=64)
    following: bool = True
    context: EventContext = EventContext.PROFILE


class TrackAndUpdateResponse(BaseModel):
    """Outcome of a record-then-project call; the two steps are not atomic."""

    recorded: bool
    projected: bool
