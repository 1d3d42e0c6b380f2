"""Tests for the text enrichment pipeline."""

from unittest.mock import patch

from backend.app.enrichment.classifiers import KeywordFoodClassifier
from backend.app.enrichment.pipeline import enrich_document, sanitize_document
from backend.app.enrichment.text import split_paragraphs
from backend.app.models.itinerary import Day, ItineraryDocument, Place, Slot
from backend.app.models.trip import TripContext


def _raw_document() -> ItineraryDocument:
    return ItineraryDocument(
        title="Belem Tower Adventure",
        summary="Three days   in Lisbon — from hills to river.",
        trip_tips=["Trams 28–12 get crowded"],
        days=[
            Day(
                index=1,
                title="Alfama — Baixa",
                slots=[
                    Slot(
                        label="morning",
                        summary="Climb to the castle.",
                        places=[
                            Place(name="Castelo de Sao Jorge"),
                            Place(name="Cafe A Brasileira", tags=["cafe"]),
                            Place(name="Pastelaria Alcoa", tags=["bakery"]),
                        ],
                    ),
                    Slot(
                        label="afternoon",
                        summary="One.\n\nTwo.\n\nThree.",
                        places=[Place(name="castelo de são jorge"), Place(name="Castelo de Sao Jorge!")],
                    ),
                ],
            )
        ],
    )


def test_enrich_document_applies_all_steps(lisbon_trip: TripContext) -> None:
    """Test title, paragraphs, sanitation, food cap and dedup all run."""
    doc = enrich_document(_raw_document(), lisbon_trip)

    assert doc.title == "Lisbon Trip"
    assert doc.summary == "Three days in Lisbon to from hills to river."
    assert doc.trip_tips == ["Trams 28 to 12 get crowded"]

    day = doc.days[0]
    assert day.title == "Alfama to Baixa"
    morning, afternoon = day.slots
    assert len(split_paragraphs(morning.summary)) == 3
    assert [p.name for p in morning.places] == ["Castelo de Sao Jorge", "Cafe A Brasileira"]
    # "castelo de são jorge" has a different key (accent), the "!" variant is a duplicate
    assert [p.name for p in afternoon.places] == ["castelo de são jorge"]


def test_enrich_document_is_idempotent(lisbon_trip: TripContext) -> None:
    """Test enriching an enriched document changes nothing."""
    once = enrich_document(_raw_document(), lisbon_trip)
    twice = enrich_document(once, lisbon_trip)
    assert twice == once


def test_failing_step_keeps_previous_document(lisbon_trip: TripContext) -> None:
    """Test a step that raises is skipped and later steps still run."""
    classifier = KeywordFoodClassifier()
    with patch.object(KeywordFoodClassifier, "is_food", side_effect=RuntimeError("boom")):
        doc = enrich_document(_raw_document(), lisbon_trip, classifier=classifier)

    # food cap skipped: both food places survive; dedup still ran
    morning, afternoon = doc.days[0].slots
    assert len(morning.places) == 3
    assert len(afternoon.places) == 1
    assert doc.title == "Lisbon Trip"


def test_failing_step_is_counted(lisbon_trip: TripContext) -> None:
    """Test soft failures are reported to metrics."""
    with patch("backend.app.enrichment.pipeline.normalize_title", side_effect=ValueError("bad")), patch(
        "backend.app.enrichment.pipeline.pipeline_metrics"
    ) as metrics:
        doc = enrich_document(_raw_document(), lisbon_trip)

    metrics.inc_soft_failure.assert_called_once_with("title")
    assert doc.title == "Belem Tower Adventure"


def test_sanitize_document_covers_place_text() -> None:
    """Test place names and descriptions are sanitized."""
    doc = ItineraryDocument(
        title="T",
        summary="S",
        days=[
            Day(
                index=1,
                slots=[
                    Slot(
                        label="evening",
                        places=[Place(name="Miradouro  da Graca", description="Sunset 19–21h")],
                    )
                ],
            )
        ],
    )

    place = sanitize_document(doc).days[0].slots[0].places[0]

    assert place.name == "Miradouro da Graca"
    assert place.description == "Sunset 19 to 21h"
