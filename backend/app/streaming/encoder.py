"""Event stream encoder: turns one generation run into ordered stream events.

Event order for a successful run:

    title, summary, day x N, day-updated x M, tripTips,
    cityOverview | cityOverview_missing, complete

A failed run stops with a single ``error`` event. Nothing follows
``complete`` or ``error``.
"""

import json
import logging
import time
import uuid
from collections.abc import AsyncIterator
from typing import Any

from backend.app.config import settings
from backend.app.db.repositories import ItineraryStore
from backend.app.enrichment.classifiers import LandmarkDetector, PlaceClassifier
from backend.app.enrichment.photos import (
    PhotoResolutionContext,
    PhotoResolutionService,
    PhotoResolver,
)
from backend.app.enrichment.pipeline import enrich_document
from backend.app.errors import EnrichmentSoftFailure, GenerationFailure, PartialStreamFailure
from backend.app.generation.generator import generate_itinerary
from backend.app.llm.client import LLMClient
from backend.app.models.events import (
    CityOverviewEvent,
    CityOverviewMissingEvent,
    CompleteEvent,
    DayEvent,
    DayUpdatedEvent,
    ErrorEvent,
    ErrorPayload,
    StreamEvent,
    SummaryEvent,
    TitleEvent,
    TripTipsEvent,
)
from backend.app.models.itinerary import Day, ItineraryDocument
from backend.app.models.trip import TripContext
from backend.app.utils.logging import StructuredStreamLogger
from backend.app.utils.metrics import pipeline_metrics

logger = logging.getLogger(__name__)

GENERIC_ERROR_MESSAGE = "Itinerary generation failed"


def encode_sse(event: StreamEvent) -> str:
    """Frame one event as a server-sent ``data:`` record."""
    return f"data: {json.dumps(event.to_wire(), ensure_ascii=False)}\n\n"


class _StreamRun:
    """State of a single generation run."""

    def __init__(
        self,
        trip: TripContext,
        llm: LLMClient,
        resolver: PhotoResolver,
        store: ItineraryStore | None,
        detector: LandmarkDetector | None,
        classifier: PlaceClassifier | None,
        fanout_cap: int,
    ) -> None:
        self.trip = trip
        self.llm = llm
        self.store = store
        self.detector = detector
        self.classifier = classifier
        self.photos = PhotoResolutionService(
            resolver=resolver,
            city=trip.city,
            saved_places=trip.saved_places,
            fanout_cap=fanout_cap,
            match_score=settings.saved_place_match_score,
        )
        self.log = StructuredStreamLogger(trip.key, run_id=str(uuid.uuid4()))
        self.seq = 0
        self.title = ""
        self.summary = ""
        self.emitted_days: list[Day] = []

    def track(self, event: StreamEvent) -> StreamEvent:
        self.seq += 1
        day_index = event.data.index if isinstance(event, DayEvent | DayUpdatedEvent) else None
        self.log.log_event(event.type, self.seq, day_index)
        pipeline_metrics.inc_event(event.type)
        return event

    async def save(self, doc: ItineraryDocument, kind: str) -> None:
        if self.store is None:
            return
        try:
            ok = await self.store.save(self.trip.key, doc)
        except Exception as e:
            logger.error(f"Itinerary store raised on save: {type(e).__name__}: {e}")
            ok = False
        self.log.log_save(kind, ok)

    async def _soft(self, step: str, day: Day, coro: Any) -> Day:
        try:
            return await coro
        except Exception as e:
            failure = EnrichmentSoftFailure(step, e)
            logger.warning(
                str(failure),
                extra={"structured": {"step": step, "day_index": day.index}},
            )
            pipeline_metrics.inc_soft_failure(step)
            return day

    async def events(self) -> AsyncIterator[StreamEvent]:
        start = time.perf_counter()
        try:
            doc = await generate_itinerary(self.trip, self.llm)
            doc = enrich_document(doc, self.trip, detector=self.detector, classifier=self.classifier)

            self.title, self.summary = doc.title, doc.summary
            yield self.track(TitleEvent(data=doc.title))
            yield self.track(SummaryEvent(data=doc.summary))

            ctx = PhotoResolutionContext()
            for day in doc.days:
                day = await self._soft("place_photos", day, self.photos.resolve_day_places(day, ctx))
                self.emitted_days.append(day)
                yield self.track(DayEvent(data=day))

            for i, day in enumerate(self.emitted_days):
                updated = await self._soft("hero_photo", day, self.photos.resolve_day_hero(day, ctx))
                if updated.photos != day.photos:
                    self.emitted_days[i] = updated
                    yield self.track(DayUpdatedEvent(data=updated))

            yield self.track(TripTipsEvent(data=doc.trip_tips))

            overview = doc.city_overview
            if overview is None or overview.is_empty():
                overview = None
                yield self.track(CityOverviewMissingEvent())
            else:
                yield self.track(CityOverviewEvent(data=overview))

            final = doc.model_copy(
                update={"days": list(self.emitted_days), "city_overview": overview}
            )
            await self.save(final, "final")

            latency_ms = (time.perf_counter() - start) * 1000
            pipeline_metrics.record_generation("complete", latency_ms)
            self.log.log_outcome("complete", latency_ms, len(self.emitted_days))
            yield self.track(CompleteEvent(data=final))

        except Exception as e:
            latency_ms = (time.perf_counter() - start) * 1000
            error = await self._fail(e, latency_ms)
            yield self.track(error)

    async def _fail(self, exc: Exception, latency_ms: float) -> ErrorEvent:
        details: dict[str, Any] = {}
        if isinstance(exc, GenerationFailure):
            message = exc.message
            details.update(exc.details)
        else:
            message = GENERIC_ERROR_MESSAGE
            logger.exception("Unexpected failure while streaming itinerary")
        details["kind"] = type(exc).__name__

        outcome = "error"
        if self.emitted_days:
            outcome = "partial"
            details["partial"] = True
            details["emitted_days"] = len(self.emitted_days)
            await self.save(
                ItineraryDocument(
                    title=self.title,
                    summary=self.summary,
                    days=list(self.emitted_days),
                ),
                "partial",
            )

        pipeline_metrics.record_generation(outcome, latency_ms)
        self.log.log_outcome(outcome, latency_ms, len(self.emitted_days), error_reason=message)
        return ErrorEvent(data=ErrorPayload(message=message, details=details))


async def stream_itinerary(
    trip: TripContext,
    llm: LLMClient,
    resolver: PhotoResolver,
    *,
    store: ItineraryStore | None = None,
    detector: LandmarkDetector | None = None,
    classifier: PlaceClassifier | None = None,
    fanout_cap: int | None = None,
) -> AsyncIterator[StreamEvent]:
    """Generate, enrich and stream an itinerary for ``trip``.

    Args:
        trip: Trip context
        llm: Model client
        resolver: Place photo resolver
        store: Where the final (or partial) document is saved, if anywhere
        detector: Landmark heuristic for title normalization
        classifier: Food heuristic for the per-slot cap
        fanout_cap: Concurrent photo lookups per day

    Yields:
        Stream events in contract order
    """
    run = _StreamRun(
        trip=trip,
        llm=llm,
        resolver=resolver,
        store=store,
        detector=detector,
        classifier=classifier,
        fanout_cap=fanout_cap or settings.photo_fanout_cap,
    )
    async for event in run.events():
        yield event


async def run_to_completion(
    trip: TripContext,
    llm: LLMClient,
    resolver: PhotoResolver,
    **kwargs: Any,
) -> ItineraryDocument:
    """Non-streaming variant: drain the stream and return the final document.

    Raises:
        PartialStreamFailure: If the run failed after emitting days
        GenerationFailure: If the run failed before any day was emitted
    """
    async for event in stream_itinerary(trip, llm, resolver, **kwargs):
        if isinstance(event, CompleteEvent):
            return event.data
        if isinstance(event, ErrorEvent):
            details = event.data.details or {}
            if details.get("partial"):
                raise PartialStreamFailure(event.data.message, details["emitted_days"])
            raise GenerationFailure(event.data.message, details)
    raise GenerationFailure(GENERIC_ERROR_MESSAGE, {"kind": "EmptyStream"})
