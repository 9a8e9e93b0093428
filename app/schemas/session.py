from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional

from app.schemas.event import DeviceInfo, Location


class SessionStart(BaseModel):
    user_id: str = Field(..., min_length=1, max_length=64)
    device_info: Optional[DeviceInfo] = None
    location: Optional[Location] = None


class SessionUpdate(BaseModel):
    page_views_increment: int = Field(default=0, ge=0)
    actions: list[str] = Field(default_factory=list)
    device_info: Optional[DeviceInfo] = None
    location: Optional[Location] = None


class SessionStartResponse(BaseModel):
    session_id: str


class SessionResponse(BaseModel):
    session_id: str
    user_id: str
    start_time: datetime
    last_activity: datetime
    end_time: Optional[datetime] = None
    duration: Optional[float] = None
    page_views: int
    actions: list[str]
    is_active: bool

    model_config = {"from_attributes": True}
