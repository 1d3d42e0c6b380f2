"""Itinerary service - load, generate and maintain stored itineraries."""

import logging
from collections.abc import AsyncIterator

from backend.app.config import settings
from backend.app.db.repositories import ItineraryStore, UsageLimiter
from backend.app.enrichment.photos import PhotoResolutionService, PhotoResolver
from backend.app.errors import LimitReached, PersistenceFailure
from backend.app.llm.client import LLMClient
from backend.app.middleware.inflight import InFlightRegistry
from backend.app.models.events import StreamEvent
from backend.app.models.itinerary import ItineraryDocument
from backend.app.models.trip import ItineraryKey, TripContext
from backend.app.streaming.encoder import run_to_completion, stream_itinerary

logger = logging.getLogger(__name__)


def apply_place_change(
    doc: ItineraryDocument,
    day_id: str,
    place_id: str,
    visited: bool | None = None,
    remove: bool = False,
) -> ItineraryDocument | None:
    """Mark a place visited or remove it from its day.

    Returns:
        Updated copy, or None when the day or place is unknown or nothing
        would change
    """
    day = next((d for d in doc.days if d.id == day_id), None)
    if day is None:
        return None
    targets = [p for p in day.iter_places() if p.id == place_id]
    if not targets:
        return None
    if not remove and (visited is None or all(p.visited == visited for p in targets)):
        return None

    slots = []
    for slot in day.slots:
        if remove:
            places = [p for p in slot.places if p.id != place_id]
        else:
            places = [
                p.model_copy(update={"visited": visited}) if p.id == place_id else p
                for p in slot.places
            ]
        slots.append(slot.model_copy(update={"places": places}))

    updated_day = day.model_copy(update={"slots": slots})
    return doc.model_copy(
        update={"days": [updated_day if d.id == day_id else d for d in doc.days]}
    )


class ItineraryService:
    """Coordinates usage limits, in-flight coalescing, generation and storage."""

    def __init__(
        self,
        store: ItineraryStore,
        limiter: UsageLimiter,
        inflight: InFlightRegistry,
        llm: LLMClient,
        resolver: PhotoResolver,
    ) -> None:
        self.store = store
        self.limiter = limiter
        self.inflight = inflight
        self.llm = llm
        self.resolver = resolver

    async def load(self, key: ItineraryKey) -> ItineraryDocument | None:
        """Get the persisted itinerary for ``key``, if any."""
        return await self.store.load(key)

    def _admit(self, trip: TripContext, member_id: str) -> None:
        """Reserve the in-flight slot, then consume one regeneration.

        Raises:
            GenerationInProgress: If a run for the same key is pending
            LimitReached: If the member has no regenerations left
        """
        self.inflight.acquire(trip.key)
        try:
            decision = self.limiter.check_and_increment(trip.trip_id, member_id)
        except BaseException:
            self.inflight.release(trip.key)
            raise
        if not decision.allowed:
            self.inflight.release(trip.key)
            logger.info(
                f"Regeneration limit reached for {trip.key}",
                extra={"structured": {"trip_id": trip.trip_id, "member_id": member_id}},
            )
            raise LimitReached(used=decision.used, limit=decision.limit)

    def open_stream(self, trip: TripContext, member_id: str) -> AsyncIterator[StreamEvent]:
        """Admit a generation and return its event stream.

        Admission happens eagerly so callers can map rejections to a status
        code before the first byte is sent. The in-flight slot is released
        when the stream ends or is closed.

        Raises:
            GenerationInProgress: If a run for the same key is pending
            LimitReached: If the member has no regenerations left
        """
        self._admit(trip, member_id)
        return self._guarded_stream(trip)

    async def _guarded_stream(self, trip: TripContext) -> AsyncIterator[StreamEvent]:
        try:
            async for event in stream_itinerary(trip, self.llm, self.resolver, store=self.store):
                yield event
        finally:
            self.inflight.release(trip.key)

    async def generate(self, trip: TripContext, member_id: str) -> ItineraryDocument:
        """Admit and run a generation to completion (non-streaming).

        Raises:
            GenerationInProgress: If a run for the same key is pending
            LimitReached: If the member has no regenerations left
            GenerationFailure: If the run failed
        """
        self._admit(trip, member_id)
        try:
            return await run_to_completion(trip, self.llm, self.resolver, store=self.store)
        finally:
            self.inflight.release(trip.key)

    async def backfill_images(
        self, key: ItineraryKey, destination: str, max_updates: int | None = None
    ) -> int | None:
        """Resolve photos for stored places that still lack one.

        Returns:
            Number of places updated, or None when nothing is stored for ``key``
        """
        doc = await self.store.load(key)
        if doc is None:
            return None

        limit = max_updates if max_updates is not None else settings.backfill_max_updates_per_run
        photos = PhotoResolutionService(
            resolver=self.resolver,
            city=destination.split(",")[0].strip(),
            fanout_cap=settings.photo_fanout_cap,
            match_score=settings.saved_place_match_score,
        )
        updated_doc, updated = await photos.backfill_missing(doc, limit)
        if updated:
            await self.store.save(key, updated_doc)

        logger.info(
            f"Backfilled {updated} place images for {key}",
            extra={"structured": {"itinerary_key": str(key), "updated": updated}},
        )
        return updated

    async def update_place(
        self,
        key: ItineraryKey,
        day_id: str,
        place_id: str,
        visited: bool | None = None,
        remove: bool = False,
    ) -> bool | None:
        """Persist a visited flag or removal for one place of the stored itinerary.

        Returns:
            True if the document changed, False if nothing matched, None when
            nothing is stored for ``key``

        Raises:
            PersistenceFailure: If the store rejected the write
        """
        doc = await self.store.load(key)
        if doc is None:
            return None

        updated = apply_place_change(doc, day_id, place_id, visited=visited, remove=remove)
        if updated is None:
            return False
        if not await self.store.save(key, updated):
            raise PersistenceFailure(f"Saving itinerary {key} failed")

        logger.info(
            f"{'Removed' if remove else 'Updated'} place {place_id} in {key}",
            extra={"structured": {"itinerary_key": str(key), "day_id": day_id, "place_id": place_id}},
        )
        return True
