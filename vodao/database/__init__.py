"""Database package for the Vo Dao synchronization service."""

from .connections import DatabaseManager, get_database_manager, initialize_database_manager
from .repositories import (
    ClubRepository,
    EventClubRepository,
    EventImageRepository,
    EventLocationRepository,
    EventPriceRepository,
    EventRepository,
    EventSessionRepository,
)

__all__ = [
    "DatabaseManager",
    "get_database_manager",
    "initialize_database_manager",
    "EventRepository",
    "EventSessionRepository",
    "EventPriceRepository",
    "EventLocationRepository",
    "EventImageRepository",
    "EventClubRepository",
    "ClubRepository",
]
