"""Keyword heuristics for landmark and food classification.

Both heuristics sit behind small protocols so the enrichment pipeline can be
handed a different implementation (e.g. a provider-type lookup) in tests or
production.
"""

import re
from typing import Protocol

from backend.app.models.itinerary import Place

# Multilingual landmark vocabulary (en, es, fr, it, de, pt).
LANDMARK_KEYWORDS: tuple[str, ...] = (
    # en
    "tower", "palace", "museum", "cathedral", "church", "basilica", "castle",
    "fort", "fortress", "temple", "monument", "statue", "bridge", "square",
    "plaza", "market", "gallery", "arena", "colosseum", "coliseum", "stadium",
    "opera", "theater", "theatre", "abbey", "monastery", "mosque", "synagogue",
    "shrine", "pagoda", "gardens", "park", "fountain", "memorial", "gate",
    "ruins", "pyramid", "lighthouse", "harbour", "harbor", "pier", "boardwalk",
    "viewpoint", "observatory", "zoo", "aquarium",
    # es
    "torre", "palacio", "museo", "catedral", "iglesia", "castillo", "puente",
    "mercado", "templo", "monumento", "mirador", "jardín", "jardin",
    # fr
    "tour ", "palais", "musée", "musee", "cathédrale", "cathedrale", "église",
    "eglise", "château", "chateau", "pont", "marché", "marche", "jardins",
    "arc de",
    # it
    "torre", "palazzo", "duomo", "chiesa", "castello", "ponte", "mercato",
    "piazza", "basilica", "fontana",
    # de
    "turm", "schloss", "dom", "kirche", "brücke", "brucke", "markt", "burg",
    "tor", "platz",
    # pt
    "mosteiro", "praça", "praca", "ponte", "castelo", "igreja", "museu",
    "miradouro", "palácio",
)

FOOD_TYPES: frozenset[str] = frozenset(
    {
        "restaurant",
        "cafe",
        "bakery",
        "bar",
        "food",
        "meal_takeaway",
        "meal_delivery",
        "night_club",
        "food_market",
        "street_food",
        "dining",
    }
)

FOOD_KEYWORDS: tuple[str, ...] = (
    "restaurant", "dinner", "lunch", "breakfast", "brunch", "cafe", "café",
    "coffee", "bakery", "pastelaria", "tapas", "taverna", "tavern", "trattoria",
    "osteria", "bistro", "brasserie", "food", "eatery", "bar ", "wine bar",
    "pub", "izakaya", "street food", "food hall", "dining", "gelato",
    "pizzeria", "tasca",
)


class LandmarkDetector(Protocol):
    """Decides whether a string names a landmark rather than a city."""

    def is_landmark(self, text: str) -> bool:
        """Return True when ``text`` names a specific landmark."""
        ...


class PlaceClassifier(Protocol):
    """Decides whether an activity is a food stop."""

    def is_food(self, place: Place) -> bool:
        """Return True when ``place`` is a meal/drink stop."""
        ...


def _word_match(text: str, keyword: str) -> bool:
    # Keywords with trailing spaces are deliberate phrase prefixes.
    if keyword.endswith(" "):
        return keyword in text
    return re.search(rf"(?<!\w){re.escape(keyword)}(?!\w)", text) is not None


class KeywordLandmarkDetector:
    """Landmark detector backed by a multilingual keyword list."""

    def __init__(self, keywords: tuple[str, ...] = LANDMARK_KEYWORDS) -> None:
        self._keywords = tuple(k.lower() for k in keywords)

    def is_landmark(self, text: str) -> bool:
        lowered = f"{text.lower()} "
        return any(_word_match(lowered, keyword) for keyword in self._keywords)


class KeywordFoodClassifier:
    """Food classifier: provider types first, keyword fallback on tags and name."""

    def __init__(
        self,
        food_types: frozenset[str] = FOOD_TYPES,
        keywords: tuple[str, ...] = FOOD_KEYWORDS,
    ) -> None:
        self._food_types = food_types
        self._keywords = tuple(k.lower() for k in keywords)

    def is_food(self, place: Place) -> bool:
        types = {t.lower() for t in place.types} | {t.lower() for t in place.tags}
        if types & self._food_types:
            return True

        haystack = f"{place.name.lower()} {' '.join(sorted(types))} "
        return any(_word_match(haystack, keyword) for keyword in self._keywords)
