"""SQL implementations of repository interfaces."""

import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from backend.app.db.models import SmartItinerary
from backend.app.models.itinerary import ItineraryDocument
from backend.app.models.trip import ItineraryKey

logger = logging.getLogger(__name__)


class SqlItineraryStore:
    """SQL implementation of ItineraryStore (one JSON row per key)."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def save(self, key: ItineraryKey, doc: ItineraryDocument) -> bool:
        """Insert or replace the row for ``key``."""
        try:
            async with self._session_factory() as session:
                row = await session.get(SmartItinerary, str(key))
                if row is None:
                    session.add(
                        SmartItinerary(
                            itinerary_key=str(key),
                            trip_id=key.trip_id,
                            segment_id=key.segment_id,
                            content=doc.to_wire(),
                        )
                    )
                else:
                    row.content = doc.to_wire()
                await session.commit()
        except SQLAlchemyError as e:
            logger.error(f"Failed to save itinerary {key}: {e}")
            return False
        return True

    async def load(self, key: ItineraryKey) -> ItineraryDocument | None:
        """Get stored document."""
        async with self._session_factory() as session:
            row = await session.get(SmartItinerary, str(key))
            if row is None:
                return None
            return ItineraryDocument.model_validate(row.content)
