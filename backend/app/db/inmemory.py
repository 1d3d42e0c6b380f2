"""In-memory implementations of repository interfaces."""

import threading

from backend.app.db.repositories import UsageDecision, make_usage_key
from backend.app.models.itinerary import ItineraryDocument
from backend.app.models.trip import ItineraryKey


class InMemoryItineraryStore:
    """In-memory implementation of ItineraryStore."""

    def __init__(self) -> None:
        self._docs: dict[ItineraryKey, dict] = {}
        self.save_count = 0

    async def save(self, key: ItineraryKey, doc: ItineraryDocument) -> bool:
        """Insert or replace the document (stored in wire form)."""
        self._docs[key] = doc.to_wire()
        self.save_count += 1
        return True

    async def load(self, key: ItineraryKey) -> ItineraryDocument | None:
        """Get stored document."""
        payload = self._docs.get(key)
        if payload is None:
            return None
        return ItineraryDocument.model_validate(payload)


class InMemoryUsageLimiter:
    """In-memory implementation of UsageLimiter."""

    def __init__(self, limit: int) -> None:
        self._limit = limit
        self._counts: dict[str, int] = {}
        self._lock = threading.Lock()

    def check_and_increment(self, trip_id: str, member_id: str) -> UsageDecision:
        """Consume one regeneration if quota remains."""
        key = make_usage_key(trip_id, member_id)
        with self._lock:
            used = self._counts.get(key, 0)
            if used >= self._limit:
                return UsageDecision(allowed=False, used=used, limit=self._limit)
            self._counts[key] = used + 1
            return UsageDecision(allowed=True, used=used + 1, limit=self._limit)
