"""Service wiring for the HTTP layer."""

import logging
from functools import lru_cache

import redis

from backend.app.adapters.places import GooglePlacesPhotoResolver
from backend.app.config import Settings, get_settings
from backend.app.db.engine import create_session_factory, get_async_engine
from backend.app.db.inmemory import InMemoryItineraryStore, InMemoryUsageLimiter
from backend.app.db.repositories import ItineraryStore, UsageLimiter
from backend.app.db.sql_repositories import SqlItineraryStore
from backend.app.llm.client import get_llm_client
from backend.app.middleware.inflight import InFlightRegistry
from backend.app.ratelimit import RedisUsageLimiter
from backend.app.services.itinerary_service import ItineraryService

logger = logging.getLogger(__name__)


def build_store(settings: Settings) -> ItineraryStore:
    """SQL store when a database is configured, in-memory otherwise."""
    if settings.database_url:
        return SqlItineraryStore(create_session_factory(get_async_engine()))
    logger.warning("No DATABASE_URL configured, itineraries are kept in memory")
    return InMemoryItineraryStore()


def build_limiter(settings: Settings) -> UsageLimiter:
    """Redis limiter when Redis is configured, in-memory otherwise."""
    if settings.redis_url:
        client = redis.from_url(settings.redis_url, decode_responses=True)  # type: ignore[no-untyped-call]
        return RedisUsageLimiter(client, limit=settings.regenerations_per_trip_member)
    return InMemoryUsageLimiter(limit=settings.regenerations_per_trip_member)


@lru_cache
def get_itinerary_service() -> ItineraryService:
    """Process-wide service instance (FastAPI dependency)."""
    settings = get_settings()
    return ItineraryService(
        store=build_store(settings),
        limiter=build_limiter(settings),
        inflight=InFlightRegistry(),
        llm=get_llm_client(),
        resolver=GooglePlacesPhotoResolver(),
    )
