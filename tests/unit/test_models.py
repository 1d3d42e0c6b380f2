"""Tests for itinerary, trip and event models."""

from datetime import date

import pytest
from pydantic import ValidationError

from backend.app.models.events import (
    CityOverviewMissingEvent,
    DayUpdatedEvent,
    ErrorEvent,
    parse_stream_event,
)
from backend.app.models.itinerary import CityOverview, Day, ItineraryDocument, Place, Slot
from backend.app.models.trip import ItineraryKey, TripContext


def test_slot_label_is_case_insensitive() -> None:
    """Test labels are normalized to lower case."""
    assert Slot(label="Evening").label == "evening"
    with pytest.raises(ValidationError):
        Slot(label="brunch")


def test_structured_slot_summary_is_flattened() -> None:
    """Test the structured summary shape becomes paragraph text."""
    slot = Slot(
        label="morning",
        summary={
            "block_title": "Old town",
            "what_to_do": ["Castle", "Cathedral"],
            "heads_up": "Wear good shoes",
        },
    )
    assert slot.summary == "Old town\n\n- Castle\n- Cathedral\n\nWear good shoes"


def test_document_accepts_wire_aliases_and_tip_objects() -> None:
    """Test camelCase keys parse and tip objects collapse to text."""
    doc = ItineraryDocument.model_validate(
        {
            "title": "T",
            "summary": "S",
            "tripTips": [{"text": "Carry cash"}, "Book ahead"],
            "cityOverview": {"gettingAround": {"walkability": "Good"}},
            "days": [{"index": 1, "areaCluster": "Baixa"}],
        }
    )

    assert doc.trip_tips == ["Carry cash", "Book ahead"]
    assert doc.city_overview is not None
    assert doc.city_overview.getting_around.walkability == "Good"  # type: ignore[union-attr]
    assert doc.days[0].area_cluster == "Baixa"
    wire = doc.to_wire()
    assert wire["tripTips"] == ["Carry cash", "Book ahead"]
    assert wire["days"][0]["areaCluster"] == "Baixa"


def test_null_trip_tips_become_empty() -> None:
    """Test a null tips field parses as an empty list."""
    doc = ItineraryDocument.model_validate({"title": "T", "summary": "S", "tripTips": None})
    assert doc.trip_tips == []


def test_city_overview_emptiness() -> None:
    """Test an overview with only empty sections is empty."""
    assert CityOverview().is_empty()
    assert CityOverview.model_validate({"gettingAround": {}}).is_empty()
    assert not CityOverview.model_validate({"whereToStay": [{"neighborhood": "Chiado"}]}).is_empty()


def test_trip_context_derives_day_count_and_dates() -> None:
    """Test day count comes from the inclusive date range."""
    trip = TripContext(
        trip_id="t",
        destination="Porto, Portugal",
        start_date=date(2025, 3, 30),
        end_date=date(2025, 4, 1),
    )

    assert trip.day_count == 3
    assert trip.day_dates() == [date(2025, 3, 30), date(2025, 3, 31), date(2025, 4, 1)]
    assert trip.city == "Porto"
    assert trip.key == ItineraryKey(trip_id="t")
    assert trip.num_days == 3


def test_explicit_day_count_wins_over_date_span() -> None:
    """Test a requested day count drives num_days and day_dates."""
    trip = TripContext(
        trip_id="t",
        destination="Porto",
        start_date=date(2025, 3, 30),
        end_date=date(2025, 4, 5),
        day_count=2,
    )

    assert trip.num_days == 2
    assert trip.day_dates() == [date(2025, 3, 30), date(2025, 3, 31)]


def test_place_photo_fields_keep_stored_key_names() -> None:
    """Test image_url and place_id serialize under the persisted key names."""
    place = Place(name="Castle", image_url="https://img/1.jpg", place_id="g-1")

    wire = place.to_wire()

    assert wire["image_url"] == "https://img/1.jpg"
    assert wire["place_id"] == "g-1"
    assert "imageUrl" not in wire
    assert Place.model_validate(wire).place_id == "g-1"


def test_trip_context_rejects_reversed_dates() -> None:
    """Test end before start is invalid."""
    with pytest.raises(ValidationError):
        TripContext(
            trip_id="t", destination="Porto", start_date=date(2025, 4, 2), end_date=date(2025, 4, 1)
        )


def test_itinerary_key_string_form() -> None:
    """Test keys print as trip or trip:segment."""
    assert str(ItineraryKey(trip_id="t")) == "t"
    assert str(ItineraryKey(trip_id="t", segment_id="s")) == "t:s"


def test_parse_stream_event_discriminates_by_type() -> None:
    """Test the wire type selects the event class."""
    updated = parse_stream_event({"type": "day-updated", "data": Day(index=2).to_wire()})
    missing = parse_stream_event('{"type": "cityOverview_missing"}')
    error = parse_stream_event({"type": "error", "data": {"message": "boom"}})

    assert isinstance(updated, DayUpdatedEvent)
    assert updated.data.index == 2
    assert isinstance(missing, CityOverviewMissingEvent)
    assert isinstance(error, ErrorEvent)
    assert error.data.details is None


def test_parse_stream_event_rejects_unknown_type() -> None:
    """Test unknown kinds are validation errors."""
    with pytest.raises(ValidationError):
        parse_stream_event({"type": "weather", "data": {}})
