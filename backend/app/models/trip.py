"""Trip context models - the input side of a generation run."""

from datetime import date, timedelta

from pydantic import BaseModel, ConfigDict, Field, model_validator


class SavedPlace(BaseModel):
    """A place the traveler saved for the trip before generation."""

    name: str
    types: list[str] = Field(default_factory=list)
    photo_url: str | None = None
    place_id: str | None = None


class ItineraryKey(BaseModel):
    """Identity of one itinerary document: trip plus optional segment."""

    model_config = ConfigDict(frozen=True)

    trip_id: str
    segment_id: str | None = None

    def __str__(self) -> str:
        if self.segment_id:
            return f"{self.trip_id}:{self.segment_id}"
        return self.trip_id


class TripContext(BaseModel):
    """Everything the generator needs to know about a trip."""

    trip_id: str
    segment_id: str | None = None
    destination: str = Field(..., min_length=1)
    country: str | None = None
    start_date: date
    end_date: date
    day_count: int | None = Field(None, ge=1, le=30)
    saved_places: list[SavedPlace] = Field(default_factory=list)
    language: str = "en"

    @model_validator(mode="after")
    def derive_day_count(self) -> "TripContext":
        """Validate the date range and derive ``day_count`` from it when absent."""
        if self.end_date < self.start_date:
            raise ValueError("end_date must not be before start_date")
        if self.day_count is None:
            self.day_count = (self.end_date - self.start_date).days + 1
        return self

    @property
    def key(self) -> ItineraryKey:
        return ItineraryKey(trip_id=self.trip_id, segment_id=self.segment_id)

    @property
    def city(self) -> str:
        """City part of the destination ("Lisbon, Portugal" -> "Lisbon")."""
        return self.destination.split(",")[0].strip()

    @property
    def num_days(self) -> int:
        """Planned day count, falling back to the inclusive date span."""
        if self.day_count is not None:
            return self.day_count
        return (self.end_date - self.start_date).days + 1

    def day_dates(self) -> list[date]:
        """Calendar date of each planned day."""
        return [self.start_date + timedelta(days=i) for i in range(self.num_days)]
