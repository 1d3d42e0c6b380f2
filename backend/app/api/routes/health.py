"""Liveness and dependency probes.

/health answers as long as the process is up. /healthz pings the itinerary
store and the usage counter backend; either one failing turns the response
into a 503. The model and photo providers are reported but never probed.
"""

from typing import Any

import redis
from fastapi import APIRouter
from fastapi.responses import JSONResponse
from sqlalchemy import text

from backend.app.config import Settings, get_settings
from backend.app.db.engine import create_async_engine_from_settings

router = APIRouter()

Probe = tuple[bool, str]


def _failed(exc: Exception) -> Probe:
    return (False, f"error: {type(exc).__name__}")


async def check_db(settings: Settings) -> Probe:
    """Run ``SELECT 1`` against the itinerary database on a throwaway engine."""
    if not settings.database_url:
        return (True, "not_configured")

    engine = create_async_engine_from_settings(settings)
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except Exception as exc:
        return _failed(exc)
    finally:
        await engine.dispose()
    return (True, "ok")


async def check_redis(settings: Settings) -> Probe:
    """PING the Redis instance backing regeneration counters."""
    if not settings.redis_url:
        return (True, "not_configured")

    try:
        client = redis.from_url(settings.redis_url, decode_responses=True)  # type: ignore[no-untyped-call]
        client.ping()
    except Exception as exc:
        return _failed(exc)
    return (True, "ok")


def _providers(settings: Settings) -> dict[str, str]:
    return {
        "llm": "openai" if settings.openai_api_key else "stub",
        "photos": "google_places" if settings.google_maps_api_key else "disabled",
    }


@router.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok"}


@router.get("/healthz", response_model=None)
async def healthz() -> dict[str, Any] | JSONResponse:
    settings = get_settings()

    probes = {
        "db": await check_db(settings),
        "redis": await check_redis(settings),
    }
    healthy = all(ok for ok, _ in probes.values())

    body: dict[str, Any] = {
        "status": "ok" if healthy else "degraded",
        "components": {name: status for name, (_, status) in probes.items()}
        | _providers(settings),
    }
    if not healthy:
        return JSONResponse(status_code=503, content=body)
    return body
