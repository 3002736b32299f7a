"""Repositories for the rows owned by an event: sessions, prices, locations, images and club links."""

from typing import Any, Dict, List, Optional, Type, TypeVar
from uuid import UUID
import asyncpg
import structlog

from vodao.database.repositories.base import BaseRepository
from vodao.database.connections import DatabaseManager
from vodao.models.database_event import (
    EventClub,
    EventImage,
    EventLocation,
    EventPrice,
    EventSession,
)


logger = structlog.get_logger(__name__)

M = TypeVar('M', EventSession, EventPrice, EventLocation, EventImage, EventClub)


class EventDetailRepository(BaseRepository[M]):
    """Repository for a table whose rows belong to one event through event_id."""

    model_class: Type[M]
    default_order = "id"

    def __init__(self, db_manager: DatabaseManager, table_name: str):
        super().__init__(db_manager, table_name)
        self.logger = logger.bind(component=f"{table_name}_repository")

    def _row_to_model(self, row: asyncpg.Record) -> M:
        return self.model_class.model_validate(dict(row))

    def _model_to_dict(self, model: M) -> Dict[str, Any]:
        return model.model_dump(exclude={"id"})

    async def find_by_event(self, event_id: UUID) -> List[M]:
        """List the rows of one event in display order."""
        return await self.find_by_criteria(
            "event_id = $1",
            [event_id],
            order_by=self.default_order
        )

    async def delete_for_event(self, event_id: UUID) -> int:
        """Delete every row of one event."""
        return await self.delete_where(event_id=event_id)

    async def replace_for_event(self, event_id: UUID, models: List[M]) -> List[M]:
        """
        Replace the rows of one event with a new set.

        Existing rows are deleted before the new ones are inserted; callers
        wanting atomicity run this inside a transaction.

        Returns:
            Inserted rows
        """
        removed = await self.delete_for_event(event_id)
        created = await self.create_many(models)

        self.logger.info("Event rows replaced",
                         event_id=str(event_id), removed=removed, created=len(created))
        return created


class EventSessionRepository(EventDetailRepository[EventSession]):
    """Dated occurrences of events."""

    model_class = EventSession
    default_order = "session_date ASC, start_time ASC NULLS FIRST"

    def __init__(self, db_manager: DatabaseManager):
        super().__init__(db_manager, "event_sessions")


class EventPriceRepository(EventDetailRepository[EventPrice]):
    """Price tiers of events."""

    model_class = EventPrice
    default_order = "display_order ASC"

    def __init__(self, db_manager: DatabaseManager):
        super().__init__(db_manager, "event_prices")


class EventLocationRepository(EventDetailRepository[EventLocation]):
    """Venues of events."""

    model_class = EventLocation
    default_order = "display_order ASC"

    def __init__(self, db_manager: DatabaseManager):
        super().__init__(db_manager, "event_locations")


class EventImageRepository(EventDetailRepository[EventImage]):
    """Cover and gallery images of events."""

    model_class = EventImage
    default_order = "display_order ASC"

    def __init__(self, db_manager: DatabaseManager):
        super().__init__(db_manager, "event_images")

    async def find_cover(self, event_id: UUID) -> Optional[EventImage]:
        """Return the image flagged as cover for an event, if any."""
        return await self.find_one_by(event_id=event_id, is_cover=True)


class EventClubRepository(EventDetailRepository[EventClub]):
    """Links between events and clubs."""

    model_class = EventClub

    def __init__(self, db_manager: DatabaseManager):
        super().__init__(db_manager, "event_clubs")
