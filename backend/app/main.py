"""FastAPI application."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from backend.app.api.routes.health import router as health_router
from backend.app.api.routes.itinerary import router as itinerary_router
from backend.app.api.routes.metrics import router as metrics_router
from backend.app.config import get_settings
from backend.app.db.engine import create_tables, get_async_engine

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Create the itinerary table on startup when a database is configured."""
    if get_settings().database_url:
        try:
            await create_tables(get_async_engine())
        except Exception as e:
            logger.error(f"Could not create tables: {type(e).__name__}: {e}")
    yield


app = FastAPI(title="Smart Itinerary API", version="0.1.0", lifespan=lifespan)

# Register routes
app.include_router(health_router, tags=["health"])
app.include_router(metrics_router, tags=["metrics"])
app.include_router(itinerary_router, tags=["itinerary"])


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint."""
    return {"message": "Smart Itinerary API", "version": "0.1.0"}
