"""Unique slug generation for events."""

import re
import unicodedata
from typing import Optional

import structlog

from vodao.database.repositories.event_repository import EventRepository


logger = structlog.get_logger(__name__)

FALLBACK_SLUG = "evenement"


def slugify(title: str) -> str:
    """
    Turn a title into a URL-safe slug.

    Lower-cases, strips accents, replaces every run of non-alphanumeric
    characters with a single dash and trims dashes at both ends.

    >>> slugify("Stage d'été à Trégueux !")
    'stage-d-ete-a-tregueux'
    """
    decomposed = unicodedata.normalize("NFD", title.lower())
    ascii_text = "".join(char for char in decomposed if not unicodedata.combining(char))
    return re.sub(r"[^a-z0-9]+", "-", ascii_text).strip("-")


class SlugGenerator:
    """Generates event slugs that do not collide with other events."""

    def __init__(self, event_repository: EventRepository):
        self.event_repository = event_repository
        self.logger = logger.bind(component="slug_generator")

    async def generate_unique_event_slug(self, title: str, existing_slug: Optional[str] = None) -> str:
        """
        Generate a slug for an event title.

        An event being updated keeps its slug while the title still produces
        the same base slug. A suffixed slug is kept only while another event
        still owns the base slug. Otherwise the base slug is used when free,
        then base-1, base-2, ... until no other event owns it.

        Args:
            title: Event title
            existing_slug: Current slug of the event being updated

        Returns:
            The slug to store
        """
        base_slug = slugify(title) or FALLBACK_SLUG

        if existing_slug == base_slug:
            return existing_slug

        # A numeric suffix is only kept while it still avoids a collision
        if existing_slug and re.fullmatch(rf"{re.escape(base_slug)}-\d+", existing_slug):
            if await self.event_repository.find_by_slug(base_slug) is not None:
                return existing_slug

        candidate = base_slug
        counter = 0
        while True:
            owner = await self.event_repository.find_by_slug(candidate)
            if owner is None or owner.slug == existing_slug:
                break
            counter += 1
            candidate = f"{base_slug}-{counter}"

        if counter:
            self.logger.info("Slug already taken, suffix added", base_slug=base_slug, slug=candidate)

        return candidate
