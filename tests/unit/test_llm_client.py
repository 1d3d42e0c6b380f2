"""Tests for prompt construction and LLM client selection."""

import json
from datetime import date
from unittest.mock import patch

import pytest
from pydantic import SecretStr

from backend.app.generation.prompts import (
    CONTEXT_END,
    CONTEXT_START,
    JSON_END,
    JSON_START,
    MAX_PROMPT_SAVED_PLACES,
    build_system_prompt,
    build_user_prompt,
    extract_context,
)
from backend.app.llm.client import DeterministicStubClient, OpenAIClient, get_llm_client
from backend.app.models.trip import SavedPlace, TripContext


def test_system_prompt_describes_output_contract() -> None:
    """Test the system prompt names the JSON markers."""
    prompt = build_system_prompt()
    assert JSON_START in prompt
    assert JSON_END in prompt


def test_user_prompt_lists_days_and_saved_places(lisbon_trip: TripContext) -> None:
    """Test day dates and saved places appear in the prompt text."""
    prompt = build_user_prompt(lisbon_trip)

    assert "Plan a 3-day trip to Lisbon, Portugal" in prompt
    assert "- Day 3: 2025-06-12" in prompt
    assert "- Pasteis de Belem" in prompt
    assert prompt.rstrip().endswith(CONTEXT_END)


def test_user_prompt_context_block_round_trips(lisbon_trip: TripContext) -> None:
    """Test the embedded context block can be recovered."""
    context = extract_context(build_user_prompt(lisbon_trip))

    assert context is not None
    assert context["destination"] == "Lisbon, Portugal"
    assert context["days"] == ["2025-06-10", "2025-06-11", "2025-06-12"]
    assert context["saved_places"] == [{"name": "Pasteis de Belem", "types": ["bakery"]}]


def test_user_prompt_truncates_saved_places() -> None:
    """Test long saved-place lists are capped with a remainder line."""
    trip = TripContext(
        trip_id="t",
        destination="Rome",
        start_date=date(2025, 1, 1),
        end_date=date(2025, 1, 1),
        saved_places=[SavedPlace(name=f"Place {i}") for i in range(MAX_PROMPT_SAVED_PLACES + 5)],
    )

    prompt = build_user_prompt(trip)

    assert "- ... and 5 more" in prompt
    assert len(extract_context(prompt)["saved_places"]) == MAX_PROMPT_SAVED_PLACES  # type: ignore[index]


@pytest.mark.parametrize(
    "prompt",
    ["no context", f"{CONTEXT_START} not json {CONTEXT_END}", f"{CONTEXT_END}{CONTEXT_START}"],
)
def test_extract_context_tolerates_missing_block(prompt: str) -> None:
    """Test prompts without a usable block yield None."""
    assert extract_context(prompt) is None


@pytest.mark.asyncio
async def test_stub_client_is_deterministic(lisbon_trip: TripContext) -> None:
    """Test the stub answers identically for identical prompts."""
    client = DeterministicStubClient()
    user_prompt = build_user_prompt(lisbon_trip)

    first = await client.complete(build_system_prompt(), user_prompt)
    second = await client.complete(build_system_prompt(), user_prompt)

    assert first == second
    assert client.calls == 2
    assert first.startswith(JSON_START)


@pytest.mark.asyncio
async def test_stub_client_uses_saved_places_and_food_stops(lisbon_trip: TripContext) -> None:
    """Test saved places come first and later slots end at a restaurant."""
    raw = await DeterministicStubClient().complete("", build_user_prompt(lisbon_trip))
    payload = json.loads(raw[len(JSON_START) : raw.rfind(JSON_END)])

    day1 = payload["days"][0]
    assert day1["slots"][0]["places"][0]["name"] == "Pasteis de Belem"
    assert day1["slots"][2]["places"][-1]["tags"] == ["restaurant", "food"]
    assert len(day1["slots"][0]["summary"].split("\n\n")) == 3


def test_get_llm_client_without_key_returns_stub() -> None:
    """Test the stub is used when no API key is configured."""
    with patch("backend.app.llm.client.settings") as mock_settings:
        mock_settings.openai_api_key = None
        assert isinstance(get_llm_client(), DeterministicStubClient)


def test_get_llm_client_with_key_returns_openai() -> None:
    """Test the OpenAI client is used when a key is configured."""
    with patch("backend.app.llm.client.settings") as mock_settings:
        mock_settings.openai_api_key = SecretStr("sk-test")
        mock_settings.openai_model = "gpt-4o-mini"
        mock_settings.openai_temperature = 0.2
        mock_settings.openai_max_tokens = 1000

        client = get_llm_client()

    assert isinstance(client, OpenAIClient)
    assert client.model == "gpt-4o-mini"
    assert client.temperature == 0.2
