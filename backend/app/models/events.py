"""Stream event models - the progressive construction of an itinerary.

Wire shape per event: ``{"type": <kind>, "data": <payload>}``.
"""

from typing import Annotated, Any, Literal

from pydantic import BaseModel, Field, TypeAdapter

from backend.app.models.common import WireModel
from backend.app.models.itinerary import CityOverview, Day, ItineraryDocument

TERMINAL_KINDS: frozenset[str] = frozenset({"complete", "error"})


class ErrorPayload(BaseModel):
    """Payload of an ``error`` event."""

    message: str
    details: dict[str, Any] | None = None


class TitleEvent(WireModel):
    type: Literal["title"] = "title"
    data: str


class SummaryEvent(WireModel):
    type: Literal["summary"] = "summary"
    data: str


class DayEvent(WireModel):
    type: Literal["day"] = "day"
    data: Day


class DayUpdatedEvent(WireModel):
    """Photo correction for a day that was already emitted."""

    type: Literal["day-updated"] = "day-updated"
    data: Day


class TripTipsEvent(WireModel):
    type: Literal["tripTips"] = "tripTips"
    data: list[str]


class CityOverviewEvent(WireModel):
    type: Literal["cityOverview"] = "cityOverview"
    data: CityOverview


class CityOverviewMissingEvent(WireModel):
    type: Literal["cityOverview_missing"] = "cityOverview_missing"
    data: None = None


class CompleteEvent(WireModel):
    type: Literal["complete"] = "complete"
    data: ItineraryDocument


class ErrorEvent(WireModel):
    type: Literal["error"] = "error"
    data: ErrorPayload


StreamEvent = Annotated[
    TitleEvent
    | SummaryEvent
    | DayEvent
    | DayUpdatedEvent
    | TripTipsEvent
    | CityOverviewEvent
    | CityOverviewMissingEvent
    | CompleteEvent
    | ErrorEvent,
    Field(discriminator="type"),
]

stream_event_adapter: TypeAdapter[StreamEvent] = TypeAdapter(StreamEvent)


def parse_stream_event(payload: dict[str, Any] | str | bytes) -> StreamEvent:
    """Decode one wire payload into its typed event.

    Raises:
        pydantic.ValidationError: If the payload is not a known event shape
    """
    if isinstance(payload, (str, bytes)):
        return stream_event_adapter.validate_json(payload)
    return stream_event_adapter.validate_python(payload)
