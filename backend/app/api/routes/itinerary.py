"""Smart itinerary endpoints - load, generate (SSE or JSON), image backfill and place updates."""

from collections.abc import AsyncGenerator
from datetime import date
from typing import Annotated, Any

from fastapi import APIRouter, Depends, Header, Query, status
from fastapi.responses import JSONResponse, StreamingResponse
from pydantic import BaseModel, Field, ValidationError

from backend.app.api.auth import get_member_id
from backend.app.api.deps import get_itinerary_service
from backend.app.errors import (
    GenerationFailure,
    GenerationInProgress,
    LimitReached,
    PartialStreamFailure,
    PersistenceFailure,
)
from backend.app.models.common import WireModel
from backend.app.models.trip import ItineraryKey, SavedPlace, TripContext
from backend.app.services.itinerary_service import ItineraryService
from backend.app.streaming.encoder import encode_sse

router = APIRouter(prefix="/trips", tags=["itinerary"])

SSE_MEDIA_TYPE = "text/event-stream"


class GenerateItineraryRequest(BaseModel):
    """Trip context for a generation request (trip id comes from the path)."""

    segment_id: str | None = None
    destination: str = Field(..., min_length=1)
    country: str | None = None
    start_date: date
    end_date: date
    day_count: int | None = Field(None, ge=1, le=30)
    saved_places: list[SavedPlace] = Field(default_factory=list)
    language: str = "en"

    def to_trip(self, trip_id: str) -> TripContext:
        return TripContext(trip_id=trip_id, **self.model_dump())


class BackfillRequest(BaseModel):
    segment_id: str | None = None
    destination: str = Field(..., min_length=1)


class BackfillResponse(BaseModel):
    updated: int


class PlaceUpdateRequest(WireModel):
    """Visited toggle or removal for one place (camelCase ids accepted)."""

    segment_id: str | None = Field(default=None, alias="segmentId")
    day_id: str = Field(..., min_length=1, alias="dayId")
    place_id: str = Field(..., min_length=1, alias="placeId")
    visited: bool | None = None
    remove: bool = False


class PlaceUpdateResponse(BaseModel):
    updated: bool


def _error(status_code: int, code: str, **extra: Any) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": code, **extra})


def _wants_stream(stream: bool, accept: str | None) -> bool:
    if not stream:
        return False
    if not accept:
        return True
    return SSE_MEDIA_TYPE in accept or "*/*" in accept


@router.get("/{trip_id}/smart-itinerary", response_model=None)
async def load_itinerary(
    trip_id: str,
    service: Annotated[ItineraryService, Depends(get_itinerary_service)],
    segment_id: Annotated[str | None, Query()] = None,
) -> dict[str, Any] | JSONResponse:
    """Load the persisted itinerary.

    Returns:
        200 with the document, 404 ``{"error": "NOT_FOUND"}`` otherwise
    """
    doc = await service.load(ItineraryKey(trip_id=trip_id, segment_id=segment_id))
    if doc is None:
        return _error(status.HTTP_404_NOT_FOUND, "NOT_FOUND")
    return doc.to_wire()


@router.post("/{trip_id}/smart-itinerary", response_model=None)
async def generate_itinerary_endpoint(
    trip_id: str,
    request: GenerateItineraryRequest,
    member_id: Annotated[str, Depends(get_member_id)],
    service: Annotated[ItineraryService, Depends(get_itinerary_service)],
    stream: Annotated[bool, Query()] = True,
    accept: Annotated[str | None, Header()] = None,
) -> StreamingResponse | JSONResponse | dict[str, Any]:
    """Generate an itinerary.

    Streams SSE ``data:`` frames by default. Falls back to a single JSON
    document when ``stream=false`` or the client does not accept
    ``text/event-stream``.

    Returns:
        200 stream or document, 409 when a run for the same key is in
        flight, 429 when the regeneration limit is reached, 502 when a
        non-streaming run fails
    """
    try:
        trip = request.to_trip(trip_id)
    except ValidationError as e:
        return _error(
            status.HTTP_422_UNPROCESSABLE_ENTITY,
            "INVALID_TRIP",
            details=[err["msg"] for err in e.errors()],
        )

    if not _wants_stream(stream, accept):
        try:
            doc = await service.generate(trip, member_id)
        except GenerationInProgress:
            return _error(status.HTTP_409_CONFLICT, "GENERATION_IN_PROGRESS")
        except LimitReached as e:
            return _error(status.HTTP_429_TOO_MANY_REQUESTS, "LIMIT_REACHED", used=e.used, limit=e.limit)
        except PartialStreamFailure as e:
            return _error(
                status.HTTP_502_BAD_GATEWAY,
                "GENERATION_FAILED",
                message=e.message,
                details={"partial": True, "emitted_days": e.emitted_days},
            )
        except GenerationFailure as e:
            return _error(
                status.HTTP_502_BAD_GATEWAY, "GENERATION_FAILED", message=e.message, details=e.details
            )
        return doc.to_wire()

    try:
        events = service.open_stream(trip, member_id)
    except GenerationInProgress:
        return _error(status.HTTP_409_CONFLICT, "GENERATION_IN_PROGRESS")
    except LimitReached as e:
        return _error(status.HTTP_429_TOO_MANY_REQUESTS, "LIMIT_REACHED", used=e.used, limit=e.limit)

    async def event_generator() -> AsyncGenerator[str, None]:
        """Generate SSE frames."""
        async for event in events:
            yield encode_sse(event)

    return StreamingResponse(
        event_generator(),
        media_type=SSE_MEDIA_TYPE,
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",  # Disable nginx buffering
        },
    )


@router.post("/{trip_id}/smart-itinerary/backfill-images", response_model=None)
async def backfill_images(
    trip_id: str,
    request: BackfillRequest,
    member_id: Annotated[str, Depends(get_member_id)],
    service: Annotated[ItineraryService, Depends(get_itinerary_service)],
) -> BackfillResponse | JSONResponse:
    """Resolve missing place images in the stored itinerary (bounded batch)."""
    key = ItineraryKey(trip_id=trip_id, segment_id=request.segment_id)
    updated = await service.backfill_images(key, request.destination)
    if updated is None:
        return _error(status.HTTP_404_NOT_FOUND, "NOT_FOUND")
    return BackfillResponse(updated=updated)


@router.patch("/{trip_id}/smart-itinerary/place", response_model=None)
async def update_place(
    trip_id: str,
    request: PlaceUpdateRequest,
    member_id: Annotated[str, Depends(get_member_id)],
    service: Annotated[ItineraryService, Depends(get_itinerary_service)],
) -> PlaceUpdateResponse | JSONResponse:
    """Mark a stored place visited or remove it.

    Returns:
        200 ``{"updated": bool}`` (false when nothing matched), 404 when no
        itinerary is stored, 500 when the write failed
    """
    key = ItineraryKey(trip_id=trip_id, segment_id=request.segment_id)
    try:
        updated = await service.update_place(
            key,
            request.day_id,
            request.place_id,
            visited=request.visited,
            remove=request.remove,
        )
    except PersistenceFailure:
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, "SAVE_FAILED")
    if updated is None:
        return _error(status.HTTP_404_NOT_FOUND, "NOT_FOUND")
    return PlaceUpdateResponse(updated=updated)
