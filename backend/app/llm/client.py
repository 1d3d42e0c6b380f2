"""LLM client for itinerary generation with OpenAI integration.

Security: Reads API key from environment only, never hardcoded.
Provides deterministic fallback when no key present for testing.
"""

import json
import logging
import uuid
from datetime import date
from typing import Any, Protocol

from openai import AsyncOpenAI

from backend.app.config import settings
from backend.app.generation.prompts import JSON_END, JSON_START, extract_context

logger = logging.getLogger(__name__)

SLOT_LABELS = ("morning", "afternoon", "evening")


class LLMClient(Protocol):
    """Protocol for LLM client implementations."""

    async def complete(self, system_prompt: str, user_prompt: str) -> str:
        """Run one completion and return the raw model text.

        Args:
            system_prompt: Output contract
            user_prompt: Trip-specific request

        Returns:
            Raw text, expected to contain one itinerary JSON object
        """
        ...


class DeterministicStubClient:
    """Deterministic stub client for testing (no API key required).

    Reads the context block of the user prompt and answers with a
    structurally valid itinerary covering every requested day.
    """

    def __init__(self, places_per_slot: int = 2) -> None:
        self.places_per_slot = places_per_slot
        self.calls = 0

    async def complete(self, system_prompt: str, user_prompt: str) -> str:
        """Generate deterministic stub itinerary text."""
        self.calls += 1
        context = extract_context(user_prompt) or {}
        payload = self.build_itinerary(context)
        return f"{JSON_START}\n{json.dumps(payload, ensure_ascii=False)}\n{JSON_END}"

    def build_itinerary(self, context: dict[str, Any]) -> dict[str, Any]:
        destination = context.get("destination") or "Your destination"
        city = destination.split(",")[0].strip() or destination
        days = context.get("days") or [date.today().isoformat()]
        saved = [p["name"] for p in context.get("saved_places", []) if p.get("name")]

        seed = uuid.uuid5(uuid.NAMESPACE_URL, f"{destination}|{days[0]}|{len(days)}")
        saved_iter = iter(saved)

        def stable_id(*parts: object) -> str:
            return str(uuid.uuid5(seed, "/".join(str(p) for p in parts)))

        itinerary_days = []
        for i, day_iso in enumerate(days, start=1):
            slots = []
            for label in SLOT_LABELS:
                places = []
                for n in range(self.places_per_slot):
                    if n == self.places_per_slot - 1 and label != "morning":
                        name = f"{city} {label.title()} Bistro {i}"
                        tags = ["restaurant", "food"]
                    else:
                        name = next(saved_iter, None) or f"{city} {label.title()} Walk {i}.{n + 1}"
                        tags = ["sightseeing"]
                    places.append(
                        {
                            "id": stable_id(i, label, n),
                            "name": name,
                            "description": f"Spend some time at {name}.",
                            "area": f"District {i}",
                            "tags": tags,
                            "visited": False,
                            "photos": [],
                        }
                    )
                slots.append(
                    {
                        "label": label,
                        "summary": (
                            f"Start the {label} around District {i}.\n\n"
                            f"Walk between the stops at an easy pace.\n\n"
                            f"Keep some time free for the neighborhood."
                        ),
                        "places": places,
                    }
                )
            itinerary_days.append(
                {
                    "id": stable_id(i),
                    "index": i,
                    "date": day_iso,
                    "title": f"Day {i} in {city}",
                    "theme": "Neighborhoods",
                    "areaCluster": f"District {i}",
                    "overview": f"A relaxed day around District {i}.",
                    "photos": [],
                    "slots": slots,
                }
            )

        return {
            "title": f"{city} Trip",
            "summary": f"A {len(days)}-day trip through {city}.",
            "tripTips": [
                f"Buy a transit pass on arrival in {city}.",
                "Book popular sights ahead of time.",
            ],
            "cityOverview": {
                "gettingAround": {
                    "publicTransport": f"{city} has a compact public transport network.",
                    "walkability": "Most central districts are walkable.",
                },
                "whereToStay": [
                    {"neighborhood": "District 1", "description": "Central and well connected."}
                ],
            },
            "days": itinerary_days,
        }


class OpenAIClient:
    """OpenAI-backed LLM client for real generation."""

    def __init__(
        self,
        api_key: str,
        model: str = "gpt-4o-mini",
        temperature: float = 0.7,
        max_tokens: int = 8000,
    ):
        """Initialize OpenAI client.

        Args:
            api_key: OpenAI API key (read from environment)
            model: Model name to use (default: gpt-4o-mini for cost efficiency)
            temperature: Sampling temperature
            max_tokens: Completion token cap
        """
        self.client = AsyncOpenAI(api_key=api_key)
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens

    async def complete(self, system_prompt: str, user_prompt: str) -> str:
        """Generate itinerary text using the OpenAI API.

        Raises:
            openai.OpenAIError: On API failures; the generator maps these to
                ``GenerationFailure``
        """
        response = await self.client.chat.completions.create(
            model=self.model,
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            temperature=self.temperature,
            max_tokens=self.max_tokens,
            response_format={"type": "json_object"},
        )

        content = response.choices[0].message.content or ""
        if not content.strip():
            logger.warning("OpenAI returned empty response")
        return content


def get_llm_client() -> LLMClient:
    """Factory function to get appropriate LLM client based on config.

    Returns:
        OpenAIClient if API key is configured, DeterministicStubClient otherwise
    """
    api_key = settings.openai_api_key

    if api_key and api_key.get_secret_value():
        logger.info("Using OpenAI client for itinerary generation")
        return OpenAIClient(
            api_key=api_key.get_secret_value(),
            model=settings.openai_model,
            temperature=settings.openai_temperature,
            max_tokens=settings.openai_max_tokens,
        )
    else:
        logger.warning("No OpenAI API key configured, using deterministic stub client")
        return DeterministicStubClient()
