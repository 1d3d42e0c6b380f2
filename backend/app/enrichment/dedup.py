"""Per-slot food capping and per-day place deduplication."""

import re

from backend.app.enrichment.classifiers import PlaceClassifier
from backend.app.models.itinerary import Day

_PUNCTUATION = re.compile(r"[^\w\s]")
_SPACES = re.compile(r"\s+")


def place_name_key(name: str) -> str:
    """Case-, punctuation- and whitespace-insensitive key for a place name."""
    key = _PUNCTUATION.sub("", name.casefold())
    return _SPACES.sub(" ", key).strip()


def cap_food_per_slot(day: Day, classifier: PlaceClassifier) -> Day:
    """Keep only the first food-classified place in each slot."""
    slots = []
    for slot in day.slots:
        kept = []
        seen_food = False
        for place in slot.places:
            if classifier.is_food(place):
                if seen_food:
                    continue
                seen_food = True
            kept.append(place)
        slots.append(slot.model_copy(update={"places": kept}))
    return day.model_copy(update={"slots": slots})


def dedupe_places_within_day(day: Day) -> Day:
    """Drop later occurrences of a place name already seen earlier that day.

    First occurrence by slot order wins. Places with an empty name key are kept.
    """
    seen: set[str] = set()
    slots = []
    for slot in day.slots:
        kept = []
        for place in slot.places:
            key = place_name_key(place.name)
            if key and key in seen:
                continue
            if key:
                seen.add(key)
            kept.append(place)
        slots.append(slot.model_copy(update={"places": kept}))
    return day.model_copy(update={"slots": slots})
