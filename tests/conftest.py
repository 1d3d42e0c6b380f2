"""Shared pytest fixtures for all test suites."""

from collections.abc import AsyncGenerator, Callable
from datetime import date
from typing import Any

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.pool import StaticPool

from backend.app.db.models import Base
from backend.app.models.itinerary import Day, Place, Slot
from backend.app.models.trip import SavedPlace, TripContext


@pytest.fixture
def lisbon_trip() -> TripContext:
    """Three-day Lisbon trip with one saved place."""
    return TripContext(
        trip_id="trip-1",
        destination="Lisbon, Portugal",
        country="Portugal",
        start_date=date(2025, 6, 10),
        end_date=date(2025, 6, 12),
        saved_places=[
            SavedPlace(
                name="Pasteis de Belem",
                types=["bakery"],
                photo_url="https://photos.example.test/saved/belem.jpg",
                place_id="saved_belem",
            )
        ],
    )


def build_place(name: str, **kwargs: Any) -> Place:
    return Place(name=name, **kwargs)


def build_day(index: int, day_id: str | None = None, places: list[Place] | None = None, **kwargs: Any) -> Day:
    """Day with a single morning slot holding ``places``."""
    slots = [Slot(label="morning", summary="One.\n\nTwo.\n\nThree.", places=places or [])]
    return Day(id=day_id or f"day-{index}", index=index, title=f"Day {index}", slots=slots, **kwargs)


@pytest.fixture
def make_place() -> Callable[..., Place]:
    return build_place


@pytest.fixture
def make_day() -> Callable[..., Day]:
    return build_day


@pytest_asyncio.fixture
async def sqlite_engine() -> AsyncGenerator[AsyncEngine, None]:
    """In-memory SQLite engine with all tables created.

    Usage:
        async def test_something(sqlite_engine):
            store = SqlItineraryStore(create_session_factory(sqlite_engine))
    """
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
        echo=False,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()
