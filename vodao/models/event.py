"""Structured data extracted from tagged event descriptions."""

from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, Field


class ParsedSession(BaseModel):
    """A session read from a date tag."""

    date: str = Field(..., description="ISO date, YYYY-MM-DD")
    start_time: Optional[str] = Field(None, description="HH:MM")
    end_time: Optional[str] = Field(None, description="HH:MM")
    notes: Optional[str] = None


class ParsedPrice(BaseModel):
    """A price tier read from a price tag."""

    label: str
    price_cents: int = Field(..., ge=0)


class ParsedLocation(BaseModel):
    """A venue read from a location tag, split as 'name, address, city'."""

    raw: str
    name: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None


class ParsedTags(BaseModel):
    """Every tag found in an event text."""

    should_publish: bool = False
    event_type: Optional[str] = None
    club_slugs: List[str] = Field(default_factory=list)
    is_all_clubs: bool = False
    is_free: bool = False
    max_capacity: Optional[int] = None
    sessions: List[ParsedSession] = Field(default_factory=list)
    prices: List[ParsedPrice] = Field(default_factory=list)
    locations: List[ParsedLocation] = Field(default_factory=list)
    cleaned_content: str = ""
    warnings: List[str] = Field(default_factory=list, description="Conflicting tags that were ignored")


class ExtractedEventData(BaseModel):
    """Everything needed to write an event row, derived from a payload."""

    title: str
    description: Optional[str] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    location: Optional[str] = None
    cover_image_url: Optional[str] = None
    parsed_tags: ParsedTags
