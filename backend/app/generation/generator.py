"""Itinerary generation: one model call, then parse and validate."""

import json
import logging
import re
import time
import uuid
from typing import Any

from pydantic import ValidationError

from backend.app.errors import GenerationFailure, ValidationFailure
from backend.app.generation.prompts import (
    JSON_END,
    JSON_START,
    build_system_prompt,
    build_user_prompt,
)
from backend.app.llm.client import LLMClient
from backend.app.models.itinerary import ItineraryDocument
from backend.app.models.trip import TripContext

logger = logging.getLogger(__name__)

_FENCE = re.compile(r"```(?:json)?\s*(.*?)```", re.DOTALL | re.IGNORECASE)


def _extract_json_text(raw: str) -> str:
    """Pull the JSON object out of marker-framed, fenced or plain model output."""
    start = raw.find(JSON_START)
    if start != -1:
        end = raw.find(JSON_END, start)
        body = raw[start + len(JSON_START) : end if end != -1 else None]
        return body.strip()

    fenced = _FENCE.search(raw)
    if fenced:
        return fenced.group(1).strip()

    first, last = raw.find("{"), raw.rfind("}")
    if first != -1 and last > first:
        return raw[first : last + 1]
    return raw.strip()


def _next_free(taken: set[int], preferred: int) -> int:
    index = preferred
    while index in taken:
        index += 1
    return index


def _fill_identities(payload: dict[str, Any]) -> None:
    """Assign day ids, day indices and place ids in place.

    Missing or repeated values are replaced, so every day and every place of
    the document ends up with a distinct id and every day with a distinct
    index. Models often copy the placeholder id from the schema verbatim.
    """
    day_ids: set[str] = set()
    indices: set[int] = set()
    place_ids: set[str] = set()
    for ordinal, day in enumerate(payload.get("days") or [], start=1):
        if not isinstance(day, dict):
            continue
        if not day.get("id") or str(day["id"]) in day_ids:
            day["id"] = str(uuid.uuid4())
        day_ids.add(str(day["id"]))

        index = day.get("index")
        if not isinstance(index, int) or isinstance(index, bool) or index in indices:
            day["index"] = _next_free(indices, ordinal)
        indices.add(day["index"])

        for slot in day.get("slots") or []:
            if not isinstance(slot, dict):
                continue
            for place in slot.get("places") or []:
                if not isinstance(place, dict):
                    continue
                if not place.get("id") or str(place["id"]) in place_ids:
                    place["id"] = str(uuid.uuid4())
                place_ids.add(str(place["id"]))


def parse_itinerary(raw: str, expected_days: int) -> ItineraryDocument:
    """Parse raw model text into an itinerary document.

    Args:
        raw: Model output (``JSON_START``/``JSON_END`` framed, fenced or plain)
        expected_days: Number of days the trip spans

    Returns:
        Validated ItineraryDocument

    Raises:
        GenerationFailure: If no JSON object can be decoded
        ValidationFailure: If the object fails structural checks
    """
    if not raw or not raw.strip():
        raise GenerationFailure("Model returned an empty response")

    text = _extract_json_text(raw)
    try:
        payload = json.loads(text)
    except json.JSONDecodeError as e:
        raise GenerationFailure(
            "Model output is not valid JSON", {"position": e.pos, "reason": e.msg}
        ) from e

    if isinstance(payload, dict) and isinstance(payload.get("itinerary"), dict):
        payload = payload["itinerary"]
    if not isinstance(payload, dict):
        raise ValidationFailure("Model output is not a JSON object")

    problems: list[str] = []
    if not str(payload.get("title") or "").strip():
        problems.append("title is missing or empty")
    if not str(payload.get("summary") or "").strip():
        problems.append("summary is missing or empty")
    days = payload.get("days")
    if not isinstance(days, list):
        problems.append("days is not an array")
    elif len(days) != expected_days:
        problems.append(f"expected {expected_days} days, got {len(days)}")
    if problems:
        raise ValidationFailure("Itinerary failed validation", {"problems": problems})

    _fill_identities(payload)
    try:
        return ItineraryDocument.model_validate(payload)
    except ValidationError as e:
        raise ValidationFailure(
            "Itinerary failed validation",
            {"problems": [f"{'.'.join(map(str, err['loc']))}: {err['msg']}" for err in e.errors()]},
        ) from e


async def generate_itinerary(trip: TripContext, llm: LLMClient) -> ItineraryDocument:
    """Run one generation for ``trip``. No retry.

    Raises:
        GenerationFailure: If the model call fails or its output is unusable
    """
    start = time.perf_counter()
    try:
        raw = await llm.complete(build_system_prompt(), build_user_prompt(trip))
    except Exception as e:
        logger.error(
            f"Model call failed: {type(e).__name__}",
            extra={"structured": {"trip_id": trip.trip_id, "error": str(e)}},
        )
        raise GenerationFailure("Model call failed", {"error": type(e).__name__}) from e

    elapsed_ms = int((time.perf_counter() - start) * 1000)
    logger.info(
        f"Model call finished in {elapsed_ms}ms",
        extra={"structured": {"trip_id": trip.trip_id, "latency_ms": elapsed_ms, "chars": len(raw)}},
    )

    return parse_itinerary(raw, trip.num_days)
