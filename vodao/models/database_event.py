"""Database-compatible models for the events tables and their children."""

from datetime import date, datetime, time
from enum import Enum
from typing import Any, Dict, Optional
from uuid import UUID
from pydantic import BaseModel, ConfigDict, Field


class EventType(str, Enum):
    """Kind of event, stored in events.event_type."""

    COMPETITION = "competition"
    STAGE = "stage"
    DEMONSTRATION = "demonstration"
    SEMINAR = "seminar"
    OTHER = "other"


class SessionStatus(str, Enum):
    """Lifecycle of a single event session."""

    SCHEDULED = "scheduled"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


class Event(BaseModel):
    """Database-compatible event model matching the events table schema."""

    model_config = ConfigDict(from_attributes=True)

    id: Optional[UUID] = None
    slug: str = Field(..., description="Unique URL identifier")
    title: str = Field(..., description="Event title")
    description: Optional[str] = Field(None, description="Event description")
    event_type: EventType = Field(default=EventType.OTHER)
    start_date: Optional[datetime] = Field(None, description="Event start time")
    end_date: Optional[datetime] = Field(None, description="Event end time")
    location: Optional[str] = None
    max_attendees: Optional[int] = Field(None, description="Capacity, null when unlimited")
    cover_image_url: Optional[str] = None
    price_cents: int = Field(default=0, description="Legacy single price")
    club_id: Optional[UUID] = Field(None, description="Legacy single club")
    is_all_clubs: bool = False
    external_source_id: Optional[str] = Field(None, description="Facebook event or post id")
    external_url: Optional[str] = None
    synced_from_external: bool = False
    external_raw_data: Optional[Dict[str, Any]] = Field(None, description="Raw payload snapshot")
    external_synced_at: Optional[datetime] = None
    active: bool = True
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class EventSession(BaseModel):
    """One dated occurrence of an event."""

    id: Optional[UUID] = None
    event_id: UUID
    session_date: date
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    notes: Optional[str] = None
    status: SessionStatus = SessionStatus.SCHEDULED


class EventPrice(BaseModel):
    """One price tier of an event."""

    id: Optional[UUID] = None
    event_id: UUID
    label: str
    price_cents: int = Field(..., ge=0)
    currency: str = "EUR"
    display_order: int = 0


class EventLocation(BaseModel):
    """One venue of an event."""

    id: Optional[UUID] = None
    event_id: UUID
    name: str
    address: Optional[str] = None
    city: Optional[str] = None
    country: Optional[str] = None
    is_primary: bool = False
    display_order: int = 0


class EventImage(BaseModel):
    """One media asset attached to an event."""

    id: Optional[UUID] = None
    event_id: UUID
    image_url: str
    title: Optional[str] = None
    alt_text: Optional[str] = None
    is_cover: bool = False
    display_order: int = 0


class EventClub(BaseModel):
    """Association row between an event and a club."""

    id: Optional[UUID] = None
    event_id: UUID
    club_id: UUID


class Club(BaseModel):
    """A training location of the association."""

    id: Optional[UUID] = None
    slug: str
    name: str
    city: Optional[str] = None
    active: bool = True
