"""Club repository."""

from typing import Any, Dict, Optional
from uuid import UUID
import asyncpg
import structlog

from vodao.database.repositories.base import BaseRepository
from vodao.database.connections import DatabaseManager
from vodao.models.database_event import Club


logger = structlog.get_logger(__name__)


class ClubRepository(BaseRepository[Club]):
    """Repository for the clubs of the association."""

    def __init__(self, db_manager: DatabaseManager):
        super().__init__(db_manager, "clubs")
        self.logger = logger.bind(component="club_repository")

    def _row_to_model(self, row: asyncpg.Record) -> Club:
        return Club(
            id=row['id'],
            slug=row['slug'],
            name=row['name'],
            city=row['city'],
            active=row['active']
        )

    def _model_to_dict(self, model: Club) -> Dict[str, Any]:
        return {
            'slug': model.slug,
            'name': model.name,
            'city': model.city,
            'active': model.active
        }

    async def find_active_id_by_slug(self, slug: str) -> Optional[UUID]:
        """
        Resolve the slug of an active club to its id.

        Args:
            slug: Club slug, e.g. "lanester"

        Returns:
            Club id, or None when no active club has this slug
        """
        try:
            async with self.db_manager.get_postgres_connection() as conn:
                return await conn.fetchval(
                    "SELECT id FROM clubs WHERE slug = $1 AND active = TRUE LIMIT 1",
                    slug
                )
        except Exception as e:
            self.logger.error("Error resolving club slug", slug=slug, error=str(e))
            raise
