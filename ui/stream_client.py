"""HTTP client for the smart itinerary API, decoding SSE into typed events."""

import json
import logging
from collections.abc import AsyncIterator
from typing import Any

import httpx
from pydantic import ValidationError

from backend.app.errors import GenerationInProgress, LimitReached
from backend.app.models.events import ErrorEvent, ErrorPayload, StreamEvent, parse_stream_event
from backend.app.models.itinerary import ItineraryDocument
from ui.assembler import INVALID_DOCUMENT_MESSAGE

logger = logging.getLogger(__name__)


def decode_event(payload: str) -> StreamEvent | None:
    """Decode one SSE ``data`` payload into a typed event.

    Malformed frames are skipped (None). A ``complete`` frame whose document
    fails validation becomes an ``error`` event.
    """
    try:
        raw = json.loads(payload)
    except json.JSONDecodeError:
        logger.warning(f"Skipping non-JSON stream frame: {payload[:80]!r}")
        return None

    try:
        return parse_stream_event(raw)
    except ValidationError as e:
        if isinstance(raw, dict) and raw.get("type") == "complete":
            logger.warning(f"Terminal document failed validation: {e.error_count()} errors")
            return ErrorEvent(
                data=ErrorPayload(message=INVALID_DOCUMENT_MESSAGE, details={"kind": "ValidationFailure"})
            )
        kind = raw.get("type") if isinstance(raw, dict) else None
        logger.warning(f"Skipping malformed stream frame of type {kind!r}")
        return None


async def iter_sse_events(lines: AsyncIterator[str]) -> AsyncIterator[StreamEvent]:
    """Group SSE lines into frames and yield decoded events.

    Only ``data:`` fields are read; multi-line data is joined with newlines.
    """
    data: list[str] = []
    async for line in lines:
        line = line.rstrip("\r")
        if not line:
            if data:
                event = decode_event("\n".join(data))
                data = []
                if event is not None:
                    yield event
            continue
        if line.startswith(":"):
            continue
        if line.startswith("data:"):
            value = line[5:]
            data.append(value[1:] if value.startswith(" ") else value)

    if data:
        event = decode_event("\n".join(data))
        if event is not None:
            yield event


def get_auth_header(member_id: str | None) -> dict[str, str]:
    """Get auth header for API calls (no header means the dev member)."""
    if not member_id:
        return {}
    return {"Authorization": f"Bearer {member_id}"}


class ItineraryStreamClient:
    """Async client for load, generate (SSE) and image backfill calls."""

    def __init__(
        self,
        base_url: str,
        member_id: str | None = None,
        client: httpx.AsyncClient | None = None,
        timeout: float = 120.0,
    ) -> None:
        """Initialize client.

        Args:
            base_url: Backend base URL (e.g. http://localhost:8000)
            member_id: Member UUID sent as bearer token
            client: Optional httpx client (for testing with mocks)
            timeout: Read timeout for streaming responses
        """
        self.base_url = base_url.rstrip("/")
        self.member_id = member_id
        self._client = client or httpx.AsyncClient(timeout=timeout)

    async def aclose(self) -> None:
        await self._client.aclose()

    def _url(self, trip_id: str, suffix: str = "") -> str:
        return f"{self.base_url}/trips/{trip_id}/smart-itinerary{suffix}"

    async def load(self, trip_id: str, segment_id: str | None = None) -> ItineraryDocument | None:
        """Fetch the persisted document.

        Returns:
            Document, or None when nothing is stored

        Raises:
            httpx.HTTPStatusError: On other non-2xx responses
        """
        params = {"segment_id": segment_id} if segment_id else None
        response = await self._client.get(
            self._url(trip_id), params=params, headers=get_auth_header(self.member_id)
        )
        if response.status_code == 404:
            return None
        response.raise_for_status()
        return ItineraryDocument.model_validate(response.json())

    async def stream_events(self, trip_id: str, body: dict[str, Any]) -> AsyncIterator[StreamEvent]:
        """Trigger a generation and yield its events as they arrive.

        Raises:
            LimitReached: On 429 from the usage limit
            GenerationInProgress: On 409 (a run for this key is in flight)
            httpx.HTTPError: On other transport or HTTP errors
        """
        headers = {"Accept": "text/event-stream", **get_auth_header(self.member_id)}
        async with self._client.stream("POST", self._url(trip_id), json=body, headers=headers) as response:
            if response.status_code == 429:
                await response.aread()
                payload = response.json()
                raise LimitReached(used=int(payload.get("used", 0)), limit=int(payload.get("limit", 0)))
            if response.status_code == 409:
                raise GenerationInProgress(f"generation for trip {trip_id} is already in progress")
            response.raise_for_status()

            async for event in iter_sse_events(response.aiter_lines()):
                yield event

    async def trigger_backfill(self, trip_id: str, destination: str, segment_id: str | None = None) -> int:
        """Ask the server to fill missing place images.

        Returns:
            Number of places updated

        Raises:
            httpx.HTTPStatusError: On non-2xx responses
        """
        response = await self._client.post(
            self._url(trip_id, "/backfill-images"),
            json={"segment_id": segment_id, "destination": destination},
            headers=get_auth_header(self.member_id),
        )
        response.raise_for_status()
        return int(response.json().get("updated", 0))
