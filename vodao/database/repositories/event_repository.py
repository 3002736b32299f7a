"""Event repository for managing event data."""

from typing import Any, Dict, List, Optional
import asyncpg
import structlog

from vodao.database.repositories.base import BaseRepository, utcnow
from vodao.database.connections import DatabaseManager
from vodao.models.database_event import Event


logger = structlog.get_logger(__name__)


class EventRepository(BaseRepository[Event]):
    """Repository for managing event data in PostgreSQL."""

    def __init__(self, db_manager: DatabaseManager):
        """Initialize event repository."""
        super().__init__(db_manager, "events")
        self.logger = logger.bind(component="event_repository")

    def _row_to_model(self, row: asyncpg.Record) -> Event:
        """Convert database row to Event model."""
        return Event(
            id=row['id'],
            slug=row['slug'],
            title=row['title'],
            description=row['description'],
            event_type=row['event_type'],
            start_date=row['start_date'],
            end_date=row['end_date'],
            location=row['location'],
            max_attendees=row['max_attendees'],
            cover_image_url=row['cover_image_url'],
            price_cents=row['price_cents'],
            club_id=row['club_id'],
            is_all_clubs=row['is_all_clubs'],
            external_source_id=row['external_source_id'],
            external_url=row['external_url'],
            synced_from_external=row['synced_from_external'],
            external_raw_data=row['external_raw_data'],
            external_synced_at=row['external_synced_at'],
            active=row['active'],
            created_at=row['created_at'],
            updated_at=row['updated_at']
        )

    def _model_to_dict(self, model: Event) -> Dict[str, Any]:
        """Convert Event model to dictionary for database storage."""
        return {
            'slug': model.slug,
            'title': model.title,
            'description': model.description,
            'event_type': model.event_type,
            'start_date': model.start_date,
            'end_date': model.end_date,
            'location': model.location,
            'max_attendees': model.max_attendees,
            'cover_image_url': model.cover_image_url,
            'price_cents': model.price_cents,
            'club_id': model.club_id,
            'is_all_clubs': model.is_all_clubs,
            'external_source_id': model.external_source_id,
            'external_url': model.external_url,
            'synced_from_external': model.synced_from_external,
            'external_raw_data': model.external_raw_data,
            'external_synced_at': model.external_synced_at,
            'active': model.active,
            'created_at': model.created_at or utcnow(),
            'updated_at': model.updated_at or utcnow()
        }

    async def find_by_external_id(self, external_source_id: str) -> Optional[Event]:
        """
        Find an event by the id of the post or event it was imported from.

        Args:
            external_source_id: Facebook event or post id

        Returns:
            Event if found, None otherwise
        """
        return await self.find_one_by(external_source_id=external_source_id)

    async def find_by_slug(self, slug: str) -> Optional[Event]:
        """Find an event by its slug."""
        return await self.find_one_by(slug=slug)

    async def find_synced(self, active_only: bool = True, limit: int = 1000) -> List[Event]:
        """List events imported from Facebook, most recently synced first."""
        where_clause = "synced_from_external = TRUE"
        if active_only:
            where_clause += " AND active = TRUE"

        return await self.find_by_criteria(
            where_clause,
            order_by="external_synced_at DESC NULLS LAST",
            limit=limit
        )

    async def deactivate_by_external_id(self, external_source_id: str) -> int:
        """
        Mark an imported event inactive without touching its children.

        Returns:
            Number of deactivated events (0 or 1)
        """
        return await self.update_where(
            {"external_source_id": external_source_id, "synced_from_external": True},
            {"active": False, "updated_at": utcnow()}
        )
