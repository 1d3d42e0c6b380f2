"""Trip title normalization."""

from backend.app.enrichment.classifiers import LandmarkDetector


def city_from_destination(destination: str) -> str:
    """First comma-separated part of a destination ("Porto, Portugal" -> "Porto")."""
    return destination.split(",")[0].strip()


def normalize_title(title: str, destination: str, detector: LandmarkDetector) -> str:
    """Resolve the trip title to a city-based, non-landmark string.

    Titles that are empty, name a landmark, or do not mention the city are
    rewritten to ``"<city> Trip"``. When no city can be extracted the raw
    destination string is used.
    """
    city = city_from_destination(destination)
    if not city:
        return destination.strip() or title

    expected = f"{city} Trip"
    current = title.strip()
    if current == expected:
        return expected

    if not current or detector.is_landmark(current):
        return expected
    if city.lower() not in current.lower():
        return expected
    return current
