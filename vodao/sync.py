"""Synchronization of Facebook events into the events tables.

One synchronization parses the tags of a payload, upserts the event row
keyed by its Facebook id, then replaces its sessions, prices, locations and
club links and adds the cover image. Child steps are best effort: a failed
step is logged and counted as zero unless strict mode is enabled.
"""

from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional, Union
from uuid import UUID

import structlog

from vodao.database.connections import DatabaseManager, get_database_manager
from vodao.database.repositories import (
    ClubRepository,
    EventClubRepository,
    EventImageRepository,
    EventLocationRepository,
    EventPriceRepository,
    EventRepository,
    EventSessionRepository,
)
from vodao.database.repositories.base import utcnow
from vodao.event_parser import extract_event_data, summarize_tags
from vodao.models.config import VodaoConfig
from vodao.models.database_event import (
    Event,
    EventClub,
    EventImage,
    EventLocation,
    EventPrice,
    EventSession,
    EventType,
    SessionStatus,
)
from vodao.models.event import ExtractedEventData
from vodao.models.facebook import FacebookEventData
from vodao.models.sync import BatchSyncResult, DeactivationResult, SyncDetails, SyncResult
from vodao.slug_generator import SlugGenerator


logger = structlog.get_logger(__name__)

NOT_PUBLISHED_MESSAGE = "Event not marked for publication ([SITE] tag missing)"

Payload = Union[FacebookEventData, Dict[str, Any]]


class PrimaryWriteError(Exception):
    """The event row itself could not be inserted or updated."""


class SyncStepError(Exception):
    """A child collection step failed while strict mode is enabled."""

    def __init__(self, step: str, message: str):
        super().__init__(f"{step}: {message}")
        self.step = step


@dataclass
class EventRepositories:
    """The repositories touched by a synchronization."""

    events: EventRepository
    sessions: EventSessionRepository
    prices: EventPriceRepository
    locations: EventLocationRepository
    images: EventImageRepository
    event_clubs: EventClubRepository
    clubs: ClubRepository

    @classmethod
    def from_db_manager(cls, db_manager: DatabaseManager) -> "EventRepositories":
        return cls(
            events=EventRepository(db_manager),
            sessions=EventSessionRepository(db_manager),
            prices=EventPriceRepository(db_manager),
            locations=EventLocationRepository(db_manager),
            images=EventImageRepository(db_manager),
            event_clubs=EventClubRepository(db_manager),
            clubs=ClubRepository(db_manager),
        )


class FacebookEventSynchronizer:
    """Creates or refreshes events and their related rows from Facebook payloads."""

    def __init__(self,
                 db_manager: DatabaseManager,
                 config: Optional[VodaoConfig] = None,
                 repositories: Optional[EventRepositories] = None):
        """
        Initialize the synchronizer.

        Args:
            db_manager: Database manager providing connections and transactions
            config: Application configuration, defaults to the manager's
            repositories: Repositories to use, built from db_manager when omitted
        """
        self.db_manager = db_manager
        self.config = config or db_manager.config
        self.repos = repositories or EventRepositories.from_db_manager(db_manager)
        self.slug_generator = SlugGenerator(self.repos.events)
        self.logger = logger.bind(component="facebook_event_sync")

    @asynccontextmanager
    async def _transaction(self):
        """Transaction, or savepoint when nested, if transactions are enabled."""
        if self.config.sync_use_transaction:
            async with self.db_manager.get_postgres_transaction():
                yield
        else:
            yield

    async def find_club_by_slug(self, club_slug: str) -> Optional[UUID]:
        """
        Resolve a club slug to the id of an active club.

        A missing club is expected (typos in tags) and only logged.
        """
        club_id = await self.repos.clubs.find_active_id_by_slug(club_slug)
        if club_id is None:
            self.logger.warning("Club not found", club_slug=club_slug)
        return club_id

    async def _resolve_clubs(self, club_slugs: Iterable[str]) -> Dict[str, Optional[UUID]]:
        return {slug: await self.find_club_by_slug(slug) for slug in club_slugs}

    async def sync_event(self, payload: Payload) -> SyncResult:
        """
        Create or update an event and all its relations from a Facebook payload.

        Args:
            payload: Facebook event data, as a model or a raw dict

        Returns:
            SyncResult; success without event_id when the payload is not
            tagged for publication
        """
        external_id = payload.get("id") if isinstance(payload, dict) else getattr(payload, "id", None)
        log = self.logger.bind(external_id=external_id)

        try:
            if not isinstance(payload, FacebookEventData):
                payload = FacebookEventData.model_validate(payload)

            extracted = extract_event_data(payload)
            parsed_tags = extracted.parsed_tags

            if not parsed_tags.should_publish:
                log.info("Event without [SITE] tag, not published")
                return SyncResult(success=True, message=NOT_PUBLISHED_MESSAGE)

            log.info("Syncing Facebook event", title=extracted.title, **summarize_tags(parsed_tags))
            for warning in parsed_tags.warnings:
                log.warning("Conflicting tag ignored", detail=warning)

            club_ids: Dict[str, Optional[UUID]] = {}
            main_club_id: Optional[UUID] = None
            if not parsed_tags.is_all_clubs and parsed_tags.club_slugs:
                club_ids = await self._resolve_clubs(parsed_tags.club_slugs)
                main_club_id = club_ids[parsed_tags.club_slugs[0]]

            async with self._transaction():
                event_id = await self._upsert_event(payload, extracted, main_club_id, log)
                details = await self._sync_relations(event_id, extracted, club_ids, log)

            log.info("Facebook event synchronized", event_id=str(event_id), **details.model_dump())
            return SyncResult(success=True, event_id=str(event_id), details=details)

        except PrimaryWriteError as e:
            log.error("Failed to write event", error=str(e))
            return SyncResult(success=False, error=str(e))
        except SyncStepError as e:
            log.error("Sync aborted in strict mode", step=e.step, error=str(e))
            return SyncResult(success=False, error=str(e))
        except Exception as e:
            log.exception("Unexpected error during Facebook sync", error=str(e))
            return SyncResult(success=False, error=str(e) or type(e).__name__)

    async def _upsert_event(self,
                            payload: FacebookEventData,
                            extracted: ExtractedEventData,
                            main_club_id: Optional[UUID],
                            log) -> UUID:
        """Insert or update the event row matched by its Facebook id."""
        parsed_tags = extracted.parsed_tags
        existing = await self.repos.events.find_by_external_id(payload.id)

        slug = await self.slug_generator.generate_unique_event_slug(
            extracted.title,
            existing.slug if existing else None
        )

        main_price_cents = parsed_tags.prices[0].price_cents if parsed_tags.prices else 0
        now = utcnow()

        fields: Dict[str, Any] = {
            "title": extracted.title,
            "slug": slug,
            "description": extracted.description,
            "event_type": EventType(parsed_tags.event_type or EventType.OTHER.value),
            "club_id": main_club_id,
            "is_all_clubs": parsed_tags.is_all_clubs,
            "start_date": extracted.start_date,
            "end_date": extracted.end_date,
            "location": extracted.location,
            "max_attendees": parsed_tags.max_capacity,
            "cover_image_url": extracted.cover_image_url,
            "price_cents": main_price_cents,
            "external_source_id": payload.id,
            "external_url": self.config.build_event_url(payload.id),
            "synced_from_external": True,
            "external_raw_data": payload.model_dump(mode="json", exclude_none=True),
            "external_synced_at": now,
            "active": True,
        }

        try:
            if existing:
                fields["updated_at"] = now
                saved = await self.repos.events.update(existing.id, fields)
                if saved is None:
                    raise PrimaryWriteError(f"Event {existing.id} disappeared during update")
                log.info("Event updated", event_id=str(saved.id), slug=slug)
            else:
                saved = await self.repos.events.create(Event(**fields))
                log.info("Event created", event_id=str(saved.id), slug=slug)
        except PrimaryWriteError:
            raise
        except Exception as e:
            raise PrimaryWriteError(str(e) or type(e).__name__) from e

        return saved.id

    async def _run_step(self, step: str, write: Callable[[], Awaitable[int]], log) -> int:
        """Run one child step in its own savepoint; failures count as zero rows."""
        try:
            async with self._transaction():
                return await write()
        except Exception as e:
            log.error("Failed to write event rows", step=step, error=str(e))
            if self.config.sync_strict_mode:
                raise SyncStepError(step, str(e)) from e
            return 0

    async def _sync_relations(self,
                              event_id: UUID,
                              extracted: ExtractedEventData,
                              club_ids: Dict[str, Optional[UUID]],
                              log) -> SyncDetails:
        parsed_tags = extracted.parsed_tags
        details = SyncDetails()

        async def write_sessions() -> int:
            sessions = [
                EventSession(
                    event_id=event_id,
                    session_date=session.date,
                    start_time=session.start_time,
                    end_time=session.end_time,
                    notes=session.notes,
                    status=SessionStatus.SCHEDULED,
                )
                for session in parsed_tags.sessions
            ]
            return len(await self.repos.sessions.replace_for_event(event_id, sessions))

        async def write_prices() -> int:
            prices = [
                EventPrice(
                    event_id=event_id,
                    label=price.label,
                    price_cents=price.price_cents,
                    currency=self.config.default_currency,
                    display_order=index,
                )
                for index, price in enumerate(parsed_tags.prices)
            ]
            return len(await self.repos.prices.replace_for_event(event_id, prices))

        async def write_locations() -> int:
            locations = [
                EventLocation(
                    event_id=event_id,
                    name=location.name or location.raw,
                    address=location.address,
                    city=location.city,
                    country=self.config.default_country,
                    is_primary=index == 0,
                    display_order=index,
                )
                for index, location in enumerate(parsed_tags.locations)
            ]
            return len(await self.repos.locations.replace_for_event(event_id, locations))

        async def write_cover() -> int:
            # Gallery images uploaded by hand are never touched
            if await self.repos.images.find_cover(event_id):
                return 0
            await self.repos.images.create(EventImage(
                event_id=event_id,
                image_url=extracted.cover_image_url,
                title=f"Couverture - {extracted.title}",
                alt_text=extracted.title,
                is_cover=True,
                display_order=0,
            ))
            return 1

        async def write_clubs() -> int:
            linked: List[UUID] = []
            for club_id in club_ids.values():
                if club_id is not None and club_id not in linked:
                    linked.append(club_id)
            links = [EventClub(event_id=event_id, club_id=club_id) for club_id in linked]
            return len(await self.repos.event_clubs.replace_for_event(event_id, links))

        if parsed_tags.sessions:
            details.sessions_created = await self._run_step("sessions", write_sessions, log)

        if parsed_tags.prices:
            details.prices_created = await self._run_step("prices", write_prices, log)

        if parsed_tags.locations:
            details.locations_created = await self._run_step("locations", write_locations, log)

        if extracted.cover_image_url:
            details.images_created = await self._run_step("cover_image", write_cover, log)

        if parsed_tags.club_slugs and not parsed_tags.is_all_clubs:
            details.clubs_linked = await self._run_step("clubs", write_clubs, log)

        return details

    async def deactivate_event(self, external_id: str) -> DeactivationResult:
        """
        Deactivate an event imported from Facebook.

        Child rows are kept. Only events flagged as synced are affected.
        """
        log = self.logger.bind(external_id=external_id)
        try:
            count = await self.repos.events.deactivate_by_external_id(external_id)
            if count:
                log.info("Event deactivated")
            else:
                log.warning("No synced event to deactivate")
            return DeactivationResult(success=True)
        except Exception as e:
            log.exception("Unexpected error during deactivation", error=str(e))
            return DeactivationResult(success=False, error=str(e) or type(e).__name__)

    async def sync_many(self, payloads: Iterable[Payload]) -> BatchSyncResult:
        """
        Synchronize payloads one after the other.

        A failing payload does not stop the batch.
        """
        results: List[SyncResult] = []
        success_count = 0
        error_count = 0

        for payload in payloads:
            result = await self.sync_event(payload)
            results.append(result)

            if result.success:
                success_count += 1
            else:
                error_count += 1

        self.logger.info("Facebook batch sync completed",
                         success_count=success_count, error_count=error_count)

        return BatchSyncResult(
            success=error_count == 0,
            results=results,
            success_count=success_count,
            error_count=error_count,
        )


def _default_synchronizer() -> FacebookEventSynchronizer:
    return FacebookEventSynchronizer(get_database_manager())


async def sync_facebook_event(payload: Payload) -> SyncResult:
    """Synchronize one payload with the global database manager."""
    return await _default_synchronizer().sync_event(payload)


async def deactivate_facebook_event(external_id: str) -> DeactivationResult:
    """Deactivate an imported event with the global database manager."""
    return await _default_synchronizer().deactivate_event(external_id)


async def sync_multiple_facebook_events(payloads: Iterable[Payload]) -> BatchSyncResult:
    """Synchronize a batch with the global database manager."""
    return await _default_synchronizer().sync_many(payloads)
