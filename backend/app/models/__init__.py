"""Models package - re-exports for convenience."""

from backend.app.models.common import SlotLabel, WireModel
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
    parse_stream_event,
)
from backend.app.models.itinerary import (
    CityOverview,
    Day,
    ItineraryDocument,
    Place,
    Slot,
)
from backend.app.models.trip import ItineraryKey, SavedPlace, TripContext

__all__ = [
    # Common
    "WireModel",
    "SlotLabel",
    # Itinerary
    "ItineraryDocument",
    "Day",
    "Slot",
    "Place",
    "CityOverview",
    # Trip
    "TripContext",
    "SavedPlace",
    "ItineraryKey",
    # Events
    "StreamEvent",
    "TitleEvent",
    "SummaryEvent",
    "DayEvent",
    "DayUpdatedEvent",
    "TripTipsEvent",
    "CityOverviewEvent",
    "CityOverviewMissingEvent",
    "CompleteEvent",
    "ErrorEvent",
    "ErrorPayload",
    "parse_stream_event",
]
