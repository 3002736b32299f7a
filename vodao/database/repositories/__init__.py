"""Database repositories for data access layer."""

from .base import BaseRepository
from .event_repository import EventRepository
from .event_detail_repository import (
    EventDetailRepository,
    EventSessionRepository,
    EventPriceRepository,
    EventLocationRepository,
    EventImageRepository,
    EventClubRepository,
)
from .club_repository import ClubRepository

__all__ = [
    "BaseRepository",
    "EventRepository",
    "EventDetailRepository",
    "EventSessionRepository",
    "EventPriceRepository",
    "EventLocationRepository",
    "EventImageRepository",
    "EventClubRepository",
    "ClubRepository",
]
