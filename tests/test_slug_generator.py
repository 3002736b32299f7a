"""Tests for slug generation."""

import pytest
from unittest.mock import AsyncMock, MagicMock

from vodao.database.repositories.event_repository import EventRepository
from vodao.models.database_event import Event
from vodao.slug_generator import FALLBACK_SLUG, SlugGenerator, slugify


@pytest.fixture
def taken_slugs():
    """Slugs owned by other events."""
    return set()


@pytest.fixture
def event_repository(taken_slugs):
    """Mock event repository answering slug lookups from taken_slugs."""
    repo = MagicMock(spec=EventRepository)

    async def find_by_slug(slug):
        if slug in taken_slugs:
            return Event(slug=slug, title=slug)
        return None

    repo.find_by_slug = AsyncMock(side_effect=find_by_slug)
    return repo


@pytest.fixture
def generator(event_repository):
    return SlugGenerator(event_repository)


class TestSlugify:
    """Test title to slug conversion."""

    @pytest.mark.parametrize("title,expected", [
        ("Stage d'été à Trégueux !", "stage-d-ete-a-tregueux"),
        ("  Open   de Lyon  ", "open-de-lyon"),
        ("Compétition -- Régionale 2025", "competition-regionale-2025"),
        ("Ça commence", "ca-commence"),
        ("!!!", ""),
    ])
    def test_slugify(self, title, expected):
        assert slugify(title) == expected


class TestSlugGenerator:
    """Test unique slug generation."""

    @pytest.mark.asyncio
    async def test_free_base_slug(self, generator):
        assert await generator.generate_unique_event_slug("Stage d'hiver") == "stage-d-hiver"

    @pytest.mark.asyncio
    async def test_taken_slug_gets_suffix(self, generator, taken_slugs):
        taken_slugs.update({"stage-d-hiver", "stage-d-hiver-1"})

        assert await generator.generate_unique_event_slug("Stage d'hiver") == "stage-d-hiver-2"

    @pytest.mark.asyncio
    async def test_existing_slug_kept_for_same_title(self, generator, event_repository, taken_slugs):
        """Test an unchanged title keeps the slug without any lookup."""
        taken_slugs.add("stage-d-hiver")

        slug = await generator.generate_unique_event_slug("Stage d'hiver", existing_slug="stage-d-hiver")

        assert slug == "stage-d-hiver"
        event_repository.find_by_slug.assert_not_called()

    @pytest.mark.asyncio
    async def test_existing_suffixed_slug_kept(self, generator, taken_slugs):
        taken_slugs.update({"stage-d-hiver", "stage-d-hiver-2"})

        slug = await generator.generate_unique_event_slug("Stage d'Hiver", existing_slug="stage-d-hiver-2")

        assert slug == "stage-d-hiver-2"

    @pytest.mark.asyncio
    async def test_changed_title_gets_new_slug(self, generator, taken_slugs):
        taken_slugs.add("ancien-titre")

        slug = await generator.generate_unique_event_slug("Nouveau titre", existing_slug="ancien-titre")

        assert slug == "nouveau-titre"

    @pytest.mark.asyncio
    async def test_changed_title_colliding_with_other_event(self, generator, taken_slugs):
        taken_slugs.update({"ancien-titre", "open-de-lyon"})

        slug = await generator.generate_unique_event_slug("Open de Lyon", existing_slug="ancien-titre")

        assert slug == "open-de-lyon-1"

    @pytest.mark.asyncio
    async def test_unrelated_suffix_is_not_kept(self, generator):
        """Test a slug that only shares a prefix is not treated as stable."""
        slug = await generator.generate_unique_event_slug("Stage", existing_slug="stage-d-hiver")

        assert slug == "stage"

    @pytest.mark.asyncio
    async def test_number_dropped_from_title_gets_new_slug(self, generator):
        """Test a slug ending in a number is not kept when the title loses it."""
        slug = await generator.generate_unique_event_slug("Stage", existing_slug="stage-2025")

        assert slug == "stage"

    @pytest.mark.asyncio
    async def test_suffixed_slug_released_when_base_is_free(self, generator, taken_slugs):
        taken_slugs.add("stage-d-hiver-2")

        slug = await generator.generate_unique_event_slug("Stage d'hiver", existing_slug="stage-d-hiver-2")

        assert slug == "stage-d-hiver"

    @pytest.mark.asyncio
    async def test_empty_title_uses_fallback(self, generator, taken_slugs):
        taken_slugs.add(FALLBACK_SLUG)

        assert await generator.generate_unique_event_slug("???") == f"{FALLBACK_SLUG}-1"
