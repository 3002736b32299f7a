"""Models for event payloads received from Facebook."""

from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field


class FacebookPlaceLocation(BaseModel):
    """Postal and geographic details of a Facebook place."""

    city: Optional[str] = None
    country: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    street: Optional[str] = None
    zip: Optional[str] = None


class FacebookPlace(BaseModel):
    """Venue attached to a Facebook event."""

    name: Optional[str] = None
    location: Optional[FacebookPlaceLocation] = None


class FacebookCover(BaseModel):
    """Cover photo reference."""

    source: Optional[str] = None


class FacebookEventTime(BaseModel):
    """One occurrence of a recurring Facebook event."""

    start_time: str
    end_time: Optional[str] = None


class FacebookEventData(BaseModel):
    """Event payload as delivered by the Graph API or built from a page post."""

    model_config = ConfigDict(extra="allow")

    id: str = Field(..., description="Facebook event or post id")
    name: str = Field(default="", description="Event title, may contain tags")
    description: Optional[str] = Field(None, description="Free text carrying the tags")
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    place: Optional[FacebookPlace] = None
    cover: Optional[FacebookCover] = None
    event_times: List[FacebookEventTime] = Field(default_factory=list)
