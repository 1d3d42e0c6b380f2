"""Prompt construction for itinerary generation.

The system prompt fixes the output contract (schema, rules, framing markers).
The user prompt carries the trip, both as prose and as a machine-readable
context block between ``CONTEXT_START`` and ``CONTEXT_END``.
"""

import json
from typing import Any

from backend.app.models.trip import TripContext

JSON_START = "JSON_START"
JSON_END = "JSON_END"
CONTEXT_START = "CONTEXT_START"
CONTEXT_END = "CONTEXT_END"

# Saved places beyond this are mentioned by count only
MAX_PROMPT_SAVED_PLACES = 25

SYSTEM_PROMPT = f"""You are an expert travel planner and itinerary generator.
Output STRICT JSON only in the SmartItinerary schema described below.

SCHEMA:
SmartItinerary {{
  title: string;                 // "<City> Trip", never a landmark name
  summary: string;               // 2-4 sentences about the whole trip
  days: ItineraryDay[];          // exactly one entry per requested day
  tripTips: string[];            // 4-8 practical tips for these dates
  cityOverview?: CityOverview;
}}

ItineraryDay {{
  id: string;                    // uuid
  index: number;                 // 1-based day index
  date: string;                  // ISO date for that day
  title: string;
  theme: string;
  areaCluster: string;           // main neighborhood of the day
  overview: string;
  photos: string[];              // empty at generation
  slots: Slot[];                 // morning, afternoon, evening
}}

Slot {{
  label: "morning" | "afternoon" | "evening";
  summary: string;               // at least 3 paragraphs separated by blank lines
  places: Place[];
}}

Place {{
  id: string;                    // uuid
  name: string;
  description: string;
  area: string;
  neighborhood?: string;
  tags: string[];
  visited: boolean;              // always false
  photos: string[];              // empty at generation
}}

CityOverview {{
  gettingThere?: {{ airports?: string[]; distanceToCity?: string; transferOptions?: string[] }};
  gettingAround?: {{ publicTransport?: string; walkability?: string; taxiRideshare?: string }};
  budgetGuide?: {{ budgetDaily?: string; midRangeDaily?: string; luxuryDaily?: string; transportPass?: string }};
  bestTimeToVisit?: {{ bestMonths?: string; shoulderSeason?: string; peakLowSeason?: string }};
  whereToStay?: {{ neighborhood: string; description: string }}[];
  advancePlanning?: {{ bookEarly?: string[]; spontaneous?: string[] }};
}}

RULES:
1. Group the places of a day in the same or neighboring areas, minimal backtracking.
2. At most one restaurant, cafe or bar per slot.
3. Never repeat a place within a day.
4. Prefer the traveler's saved places when they fit the day's area.
5. Write every text field in the requested language.
6. Do not use em dashes or en dashes.

OUTPUT FORMAT:
1) A line that contains exactly: {JSON_START}
2) A single well-formed JSON object matching the SmartItinerary schema.
3) A line that contains exactly: {JSON_END}
No Markdown. No comments. No text after {JSON_END}.
"""


def build_system_prompt() -> str:
    """Return the fixed system prompt."""
    return SYSTEM_PROMPT


def trip_context_payload(trip: TripContext) -> dict[str, Any]:
    """Machine-readable trip context embedded in the user prompt."""
    saved = trip.saved_places[:MAX_PROMPT_SAVED_PLACES]
    return {
        "destination": trip.destination,
        "country": trip.country,
        "language": trip.language,
        "start_date": trip.start_date.isoformat(),
        "end_date": trip.end_date.isoformat(),
        "days": [d.isoformat() for d in trip.day_dates()],
        "saved_places": [{"name": p.name, "types": p.types} for p in saved],
    }


def build_user_prompt(trip: TripContext) -> str:
    """Build the user prompt for one trip.

    Args:
        trip: Trip context

    Returns:
        Prompt text ending with the context block
    """
    where = trip.destination
    if trip.country and trip.country.lower() not in where.lower():
        where = f"{where}, {trip.country}"

    lines = [
        f"Plan a {trip.num_days}-day trip to {where} "
        f"from {trip.start_date.isoformat()} to {trip.end_date.isoformat()}.",
        f"Write all text in language: {trip.language}.",
        "Days:",
    ]
    for i, day in enumerate(trip.day_dates(), start=1):
        lines.append(f"- Day {i}: {day.isoformat()}")

    if trip.saved_places:
        lines.append("Include these saved places if possible, in this priority order:")
        for place in trip.saved_places[:MAX_PROMPT_SAVED_PLACES]:
            lines.append(f"- {place.name}")
        remaining = len(trip.saved_places) - MAX_PROMPT_SAVED_PLACES
        if remaining > 0:
            lines.append(f"- ... and {remaining} more")

    lines.append(CONTEXT_START)
    lines.append(json.dumps(trip_context_payload(trip), ensure_ascii=False))
    lines.append(CONTEXT_END)
    return "\n".join(lines)


def extract_context(user_prompt: str) -> dict[str, Any] | None:
    """Recover the context block from a user prompt, if present."""
    start = user_prompt.find(CONTEXT_START)
    end = user_prompt.find(CONTEXT_END)
    if start == -1 or end == -1 or end < start:
        return None
    try:
        payload = json.loads(user_prompt[start + len(CONTEXT_START) : end].strip())
    except json.JSONDecodeError:
        return None
    return payload if isinstance(payload, dict) else None
