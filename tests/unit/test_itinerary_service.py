"""Tests for admission and place updates in the itinerary service."""

from datetime import date

import pytest

from backend.app.adapters.places import FixturePhotoResolver
from backend.app.db.inmemory import InMemoryItineraryStore, InMemoryUsageLimiter
from backend.app.errors import PersistenceFailure
from backend.app.llm.client import DeterministicStubClient
from backend.app.middleware.inflight import InFlightRegistry
from backend.app.models.itinerary import Day, ItineraryDocument, Place, Slot
from backend.app.models.trip import ItineraryKey, TripContext
from backend.app.services.itinerary_service import ItineraryService, apply_place_change

KEY = ItineraryKey(trip_id="trip-1")


class UnreachableLimiter:
    def check_and_increment(self, trip_id: str, member_id: str):  # type: ignore[no-untyped-def]
        raise ConnectionError("redis down")


class RejectingStore(InMemoryItineraryStore):
    async def save(self, key: ItineraryKey, doc: ItineraryDocument) -> bool:
        return False


def _service(**overrides) -> ItineraryService:  # type: ignore[no-untyped-def]
    parts = {
        "store": InMemoryItineraryStore(),
        "limiter": InMemoryUsageLimiter(limit=3),
        "inflight": InFlightRegistry(),
        "llm": DeterministicStubClient(),
        "resolver": FixturePhotoResolver(),
    }
    parts.update(overrides)
    return ItineraryService(**parts)


def _trip() -> TripContext:
    return TripContext(
        trip_id="trip-1",
        destination="Lisbon, Portugal",
        start_date=date(2025, 6, 10),
        end_date=date(2025, 6, 11),
    )


def _doc() -> ItineraryDocument:
    return ItineraryDocument(
        title="Lisbon Trip",
        summary="S",
        days=[
            Day(
                id="d1",
                index=1,
                slots=[
                    Slot(label="morning", places=[Place(id="p1", name="Castle")]),
                    Slot(label="evening", places=[Place(id="p2", name="Fado house")]),
                ],
            ),
            Day(id="d2", index=2, slots=[Slot(label="morning", places=[Place(id="p3", name="Belem")])]),
        ],
    )


def test_limiter_error_releases_in_flight_slot() -> None:
    """Test a failing usage backend does not leave the key pending."""
    service = _service(limiter=UnreachableLimiter())

    with pytest.raises(ConnectionError):
        service.open_stream(_trip(), "member-1")

    assert not service.inflight.is_pending(KEY)


@pytest.mark.asyncio
async def test_limiter_error_releases_slot_for_json_runs() -> None:
    """Test the non-streaming path releases the slot on limiter errors too."""
    service = _service(limiter=UnreachableLimiter())

    with pytest.raises(ConnectionError):
        await service.generate(_trip(), "member-1")

    assert not service.inflight.is_pending(KEY)


def test_apply_place_change_marks_visited() -> None:
    """Test only the addressed place changes."""
    updated = apply_place_change(_doc(), "d1", "p2", visited=True)

    assert updated is not None
    places = {p.id: p.visited for d in updated.days for p in d.iter_places()}
    assert places == {"p1": False, "p2": True, "p3": False}


def test_apply_place_change_removes_place() -> None:
    """Test removal drops the place from its slot and keeps the slot."""
    updated = apply_place_change(_doc(), "d1", "p1", remove=True)

    assert updated is not None
    assert [len(s.places) for s in updated.days[0].slots] == [0, 1]
    assert [p.id for p in updated.days[1].iter_places()] == ["p3"]


def test_apply_place_change_without_effect() -> None:
    """Test unknown ids, a place from another day and no-op flags change nothing."""
    doc = _doc()

    assert apply_place_change(doc, "nope", "p1", visited=True) is None
    assert apply_place_change(doc, "d1", "p3", visited=True) is None
    assert apply_place_change(doc, "d1", "p1", visited=False) is None
    assert apply_place_change(doc, "d1", "p1") is None


@pytest.mark.asyncio
async def test_update_place_persists_change() -> None:
    """Test the updated document is saved."""
    service = _service()
    await service.store.save(KEY, _doc())

    assert await service.update_place(KEY, "d2", "p3", visited=True) is True

    stored = await service.store.load(KEY)
    assert stored is not None
    assert stored.days[1].slots[0].places[0].visited is True


@pytest.mark.asyncio
async def test_update_place_reports_missing_and_unchanged() -> None:
    """Test None for no document and False when nothing matched."""
    service = _service()

    assert await service.update_place(KEY, "d1", "p1", visited=True) is None

    await service.store.save(KEY, _doc())
    assert await service.update_place(KEY, "d1", "missing", remove=True) is False


@pytest.mark.asyncio
async def test_update_place_raises_when_save_rejected() -> None:
    """Test a rejected write surfaces as PersistenceFailure."""
    store = RejectingStore()
    await InMemoryItineraryStore.save(store, KEY, _doc())
    service = _service(store=store)

    with pytest.raises(PersistenceFailure):
        await service.update_place(KEY, "d1", "p1", remove=True)
