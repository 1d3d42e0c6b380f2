"""Itinerary models - the document streamed to and persisted for a trip."""

import uuid
from typing import Any

from pydantic import Field, field_validator

from backend.app.models.common import SlotLabel, WireModel


def _new_id() -> str:
    return str(uuid.uuid4())


class Place(WireModel):
    """Single activity bound to a place."""

    id: str = Field(default_factory=_new_id)
    name: str
    description: str = ""
    area: str = ""
    neighborhood: str | None = None
    photos: list[str] = Field(default_factory=list)
    # image_url and place_id are snake_case in stored documents; no alias
    image_url: str | None = None
    tags: list[str] = Field(default_factory=list)
    types: list[str] = Field(default_factory=list)
    visited: bool = False
    place_id: str | None = None

    @property
    def has_image(self) -> bool:
        """True when a photo is already bound to this place."""
        if self.image_url and self.image_url.strip():
            return True
        return bool(self.photos and self.photos[0])


class Slot(WireModel):
    """Morning, afternoon or evening block of a day."""

    label: SlotLabel
    summary: str = ""
    places: list[Place] = Field(default_factory=list)

    @field_validator("label", mode="before")
    @classmethod
    def normalize_label(cls, v: Any) -> Any:
        """Accept labels in any case ("Morning", "EVENING")."""
        if isinstance(v, str):
            return v.strip().lower()
        return v

    @field_validator("summary", mode="before")
    @classmethod
    def flatten_structured_summary(cls, v: Any) -> Any:
        """Flatten the structured summary shape into paragraph text.

        Models sometimes answer with ``{block_title, what_to_do, local_insights,
        move_between, heads_up, ...}`` instead of plain text.
        """
        if not isinstance(v, dict):
            return v

        blocks: list[str] = []
        if v.get("block_title"):
            blocks.append(str(v["block_title"]))
        what_to_do = v.get("what_to_do") or []
        if what_to_do:
            blocks.append("\n".join(f"- {item}" for item in what_to_do))
        for key in ("local_insights", "move_between", "getting_around", "cost_note", "heads_up"):
            value = v.get(key)
            if value:
                blocks.append(str(value))
        return "\n\n".join(blocks)


class Day(WireModel):
    """One day of the itinerary.

    ``index`` is the stable identity used to deduplicate retransmitted days.
    """

    id: str = Field(default_factory=_new_id)
    index: int
    date: str = ""
    title: str = ""
    theme: str = ""
    area_cluster: str = Field(default="", alias="areaCluster")
    overview: str = ""
    photos: list[str] = Field(default_factory=list)
    slots: list[Slot] = Field(default_factory=list)

    def iter_places(self) -> list[Place]:
        """All places of the day in slot order."""
        return [place for slot in self.slots for place in slot.places]


class GettingThere(WireModel):
    airports: list[str] | None = None
    distance_to_city: str | None = Field(default=None, alias="distanceToCity")
    transfer_options: list[str] | None = Field(default=None, alias="transferOptions")


class GettingAround(WireModel):
    public_transport: str | None = Field(default=None, alias="publicTransport")
    walkability: str | None = None
    taxi_rideshare: str | None = Field(default=None, alias="taxiRideshare")


class BudgetGuide(WireModel):
    budget_daily: str | None = Field(default=None, alias="budgetDaily")
    mid_range_daily: str | None = Field(default=None, alias="midRangeDaily")
    luxury_daily: str | None = Field(default=None, alias="luxuryDaily")
    transport_pass: str | None = Field(default=None, alias="transportPass")


class BestTimeToVisit(WireModel):
    best_months: str | None = Field(default=None, alias="bestMonths")
    shoulder_season: str | None = Field(default=None, alias="shoulderSeason")
    peak_low_season: str | None = Field(default=None, alias="peakLowSeason")


class WhereToStay(WireModel):
    neighborhood: str
    description: str = ""


class AdvancePlanning(WireModel):
    book_early: list[str] | None = Field(default=None, alias="bookEarly")
    spontaneous: list[str] | None = None


class CityOverview(WireModel):
    """Structured practical information about the destination city."""

    getting_there: GettingThere | None = Field(default=None, alias="gettingThere")
    getting_around: GettingAround | None = Field(default=None, alias="gettingAround")
    budget_guide: BudgetGuide | None = Field(default=None, alias="budgetGuide")
    best_time_to_visit: BestTimeToVisit | None = Field(default=None, alias="bestTimeToVisit")
    where_to_stay: list[WhereToStay] | None = Field(default=None, alias="whereToStay")
    advance_planning: AdvancePlanning | None = Field(default=None, alias="advancePlanning")

    def is_empty(self) -> bool:
        """True when no section carries any content."""
        return not any(self.model_dump(exclude_none=True).values())


class ItineraryDocument(WireModel):
    """Complete multi-day itinerary."""

    title: str
    summary: str
    trip_tips: list[str] = Field(default_factory=list, alias="tripTips")
    city_overview: CityOverview | None = Field(default=None, alias="cityOverview")
    days: list[Day] = Field(default_factory=list)

    @field_validator("trip_tips", mode="before")
    @classmethod
    def coerce_tips(cls, v: Any) -> Any:
        """Accept ``null`` and tip objects (``{"text": ...}``) from the model."""
        if v is None:
            return []
        if isinstance(v, list):
            return [item.get("text", "") if isinstance(item, dict) else item for item in v]
        return v
