"""Tests for SSE decoding and the itinerary HTTP client."""

import json
from collections.abc import AsyncIterator

import httpx
import pytest

from backend.app.errors import GenerationInProgress, LimitReached
from backend.app.models.events import DayEvent, ErrorEvent, StreamEvent, TitleEvent
from backend.app.models.itinerary import Day, ItineraryDocument
from backend.app.streaming.encoder import encode_sse
from ui.assembler import INVALID_DOCUMENT_MESSAGE
from ui.stream_client import (
    ItineraryStreamClient,
    decode_event,
    get_auth_header,
    iter_sse_events,
)

BASE = "http://api.test"


async def _lines(text: str) -> AsyncIterator[str]:
    for line in text.split("\n"):
        yield line


async def _collect(text: str) -> list[StreamEvent]:
    return [event async for event in iter_sse_events(_lines(text))]


def _client(handler) -> ItineraryStreamClient:  # type: ignore[no-untyped-def]
    http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return ItineraryStreamClient(BASE, member_id="11111111-1111-1111-1111-111111111111", client=http)


def test_decode_event_returns_typed_event() -> None:
    """Test a valid payload decodes to its event class."""
    event = decode_event(json.dumps({"type": "title", "data": "Lisbon Trip"}))
    assert event == TitleEvent(data="Lisbon Trip")


@pytest.mark.parametrize(
    "payload",
    ["not json", json.dumps({"type": "bogus", "data": 1}), json.dumps({"type": "day", "data": {}}), "[]"],
)
def test_decode_event_skips_malformed_frames(payload: str) -> None:
    """Test unknown or invalid frames are dropped."""
    assert decode_event(payload) is None


def test_decode_event_invalid_complete_becomes_error() -> None:
    """Test a terminal document that fails validation is reported as an error."""
    event = decode_event(json.dumps({"type": "complete", "data": {"days": "nope"}}))

    assert isinstance(event, ErrorEvent)
    assert event.data.message == INVALID_DOCUMENT_MESSAGE


@pytest.mark.asyncio
async def test_iter_sse_events_groups_frames() -> None:
    """Test frames split on blank lines, comments ignored, malformed skipped."""
    text = (
        ": keep-alive\n"
        + encode_sse(TitleEvent(data="Lisbon Trip"))
        + "data: {broken\n\n"
        + encode_sse(DayEvent(data=Day(id="a", index=1)))
    )

    events = await _collect(text)

    assert [e.type for e in events] == ["title", "day"]


@pytest.mark.asyncio
async def test_iter_sse_events_joins_multiline_data_and_flushes_tail() -> None:
    """Test multi-line data is joined and a final unterminated frame is kept."""
    text = 'data: {"type": "summary",\ndata: "data": "Two days"}'

    events = await _collect(text)

    assert len(events) == 1
    assert events[0].data == "Two days"


def test_get_auth_header() -> None:
    """Test bearer header only when a member id is given."""
    assert get_auth_header(None) == {}
    assert get_auth_header("abc") == {"Authorization": "Bearer abc"}


@pytest.mark.asyncio
async def test_stream_events_decodes_response_body() -> None:
    """Test the client posts the body and yields decoded events."""
    requests: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        body = encode_sse(TitleEvent(data="Lisbon Trip")) + encode_sse(
            DayEvent(data=Day(id="a", index=1))
        )
        return httpx.Response(200, text=body, headers={"content-type": "text/event-stream"})

    client = _client(handler)
    events = [e async for e in client.stream_events("trip-1", {"destination": "Lisbon"})]

    assert [e.type for e in events] == ["title", "day"]
    request = requests[0]
    assert request.url.path == "/trips/trip-1/smart-itinerary"
    assert request.headers["accept"] == "text/event-stream"
    assert request.headers["authorization"].startswith("Bearer ")
    assert json.loads(request.content) == {"destination": "Lisbon"}


@pytest.mark.asyncio
async def test_stream_events_maps_limit_reached() -> None:
    """Test 429 raises LimitReached with usage numbers."""

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(429, json={"error": "LIMIT_REACHED", "used": 3, "limit": 3})

    with pytest.raises(LimitReached) as exc_info:
        async for _ in _client(handler).stream_events("trip-1", {}):
            pass

    assert (exc_info.value.used, exc_info.value.limit) == (3, 3)


@pytest.mark.asyncio
async def test_stream_events_maps_in_progress() -> None:
    """Test 409 raises GenerationInProgress."""

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(409, json={"error": "GENERATION_IN_PROGRESS"})

    with pytest.raises(GenerationInProgress):
        async for _ in _client(handler).stream_events("trip-1", {}):
            pass


@pytest.mark.asyncio
async def test_stream_events_raises_other_http_errors() -> None:
    """Test other failures surface as httpx errors."""

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500, text="boom")

    with pytest.raises(httpx.HTTPStatusError):
        async for _ in _client(handler).stream_events("trip-1", {}):
            pass


@pytest.mark.asyncio
async def test_load_returns_none_on_404_and_document_otherwise() -> None:
    """Test load maps 404 to None and passes the segment id."""
    doc = ItineraryDocument(title="Lisbon Trip", summary="S", days=[Day(index=1)])

    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.params.get("segment_id") == "seg-1":
            return httpx.Response(200, json=doc.to_wire())
        return httpx.Response(404, json={"error": "NOT_FOUND"})

    client = _client(handler)

    assert await client.load("trip-1") is None
    loaded = await client.load("trip-1", "seg-1")
    assert loaded is not None
    assert loaded.title == "Lisbon Trip"


@pytest.mark.asyncio
async def test_trigger_backfill_returns_update_count() -> None:
    """Test backfill posts the destination and returns the count."""

    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/trips/trip-1/smart-itinerary/backfill-images"
        assert json.loads(request.content) == {"segment_id": None, "destination": "Lisbon"}
        return httpx.Response(200, json={"updated": 4})

    assert await _client(handler).trigger_backfill("trip-1", "Lisbon") == 4
