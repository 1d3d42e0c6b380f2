"""Text enrichment pipeline.

Steps run in a fixed order over the whole document:

    title -> paragraphs -> sanitize -> food cap -> intra-day dedup

Each step is total. If one raises anyway, the failure is logged, counted and
the document from before that step carries on to the next one. Photo
resolution runs afterwards, per day, from the stream encoder.
"""

import logging
from collections.abc import Callable

from backend.app.config import settings
from backend.app.enrichment.classifiers import (
    KeywordFoodClassifier,
    KeywordLandmarkDetector,
    LandmarkDetector,
    PlaceClassifier,
)
from backend.app.enrichment.dedup import cap_food_per_slot, dedupe_places_within_day
from backend.app.enrichment.text import ensure_min_paragraphs, sanitize_text
from backend.app.enrichment.title import city_from_destination, normalize_title
from backend.app.errors import EnrichmentSoftFailure
from backend.app.models.itinerary import Day, ItineraryDocument, Place, Slot
from backend.app.models.trip import TripContext
from backend.app.utils.metrics import pipeline_metrics

logger = logging.getLogger(__name__)

Step = Callable[[ItineraryDocument], ItineraryDocument]


def _soft_step(name: str, step: Step, doc: ItineraryDocument) -> ItineraryDocument:
    try:
        return step(doc)
    except Exception as e:
        failure = EnrichmentSoftFailure(name, e)
        logger.warning(
            str(failure),
            extra={"structured": {"step": name, "error": type(e).__name__}},
        )
        pipeline_metrics.inc_soft_failure(name)
        return doc


def _title_step(destination: str, detector: LandmarkDetector) -> Step:
    def run(doc: ItineraryDocument) -> ItineraryDocument:
        return doc.model_copy(
            update={"title": normalize_title(doc.title, destination, detector)}
        )

    return run


def _paragraphs_step(city: str, minimum: int) -> Step:
    def run(doc: ItineraryDocument) -> ItineraryDocument:
        days = []
        for day in doc.days:
            slots = [
                slot.model_copy(
                    update={
                        "summary": ensure_min_paragraphs(
                            slot.summary, minimum, city, slot.label.value
                        )
                    }
                )
                for slot in day.slots
            ]
            days.append(day.model_copy(update={"slots": slots}))
        return doc.model_copy(update={"days": days})

    return run


def _sanitize_place(place: Place) -> Place:
    return place.model_copy(
        update={
            "name": sanitize_text(place.name),
            "description": sanitize_text(place.description),
        }
    )


def _sanitize_slot(slot: Slot) -> Slot:
    return slot.model_copy(
        update={
            "summary": sanitize_text(slot.summary),
            "places": [_sanitize_place(p) for p in slot.places],
        }
    )


def _sanitize_day(day: Day) -> Day:
    return day.model_copy(
        update={
            "title": sanitize_text(day.title),
            "theme": sanitize_text(day.theme),
            "overview": sanitize_text(day.overview),
            "slots": [_sanitize_slot(s) for s in day.slots],
        }
    )


def sanitize_document(doc: ItineraryDocument) -> ItineraryDocument:
    """Apply ``sanitize_text`` to every user-visible text field."""
    return doc.model_copy(
        update={
            "title": sanitize_text(doc.title),
            "summary": sanitize_text(doc.summary),
            "trip_tips": [sanitize_text(t) for t in doc.trip_tips],
            "days": [_sanitize_day(d) for d in doc.days],
        }
    )


def _food_step(classifier: PlaceClassifier) -> Step:
    def run(doc: ItineraryDocument) -> ItineraryDocument:
        return doc.model_copy(
            update={"days": [cap_food_per_slot(d, classifier) for d in doc.days]}
        )

    return run


def _dedup_step(doc: ItineraryDocument) -> ItineraryDocument:
    return doc.model_copy(update={"days": [dedupe_places_within_day(d) for d in doc.days]})


def enrich_document(
    doc: ItineraryDocument,
    trip: TripContext,
    *,
    detector: LandmarkDetector | None = None,
    classifier: PlaceClassifier | None = None,
    min_paragraphs: int | None = None,
) -> ItineraryDocument:
    """Run the text enrichment steps over ``doc``.

    Applying this function to its own output returns an equal document.

    Args:
        doc: Parsed model output.
        trip: Trip context (destination drives the title and filler text).
        detector: Landmark heuristic, keyword-based by default.
        classifier: Food heuristic, keyword-based by default.
        min_paragraphs: Minimum paragraph count per slot summary.

    Returns:
        Enriched copy of ``doc``.
    """
    detector = detector or KeywordLandmarkDetector()
    classifier = classifier or KeywordFoodClassifier()
    minimum = min_paragraphs if min_paragraphs is not None else settings.min_slot_paragraphs
    city = city_from_destination(trip.destination)

    steps: list[tuple[str, Step]] = [
        ("title", _title_step(trip.destination, detector)),
        ("paragraphs", _paragraphs_step(city, minimum)),
        ("sanitize", sanitize_document),
        ("food_cap", _food_step(classifier)),
        ("dedup", _dedup_step),
    ]
    for name, step in steps:
        doc = _soft_step(name, step, doc)
    return doc
