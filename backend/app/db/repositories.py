"""Repository protocol interfaces for itinerary persistence and usage limits."""

from dataclasses import dataclass
from typing import Protocol

from backend.app.models.itinerary import ItineraryDocument
from backend.app.models.trip import ItineraryKey


class ItineraryStore(Protocol):
    """Keyed store holding one itinerary document per trip segment."""

    async def save(self, key: ItineraryKey, doc: ItineraryDocument) -> bool:
        """Insert or replace the document for ``key``.

        Args:
            key: Trip and optional segment
            doc: Final or partial itinerary

        Returns:
            True if the write succeeded
        """
        ...

    async def load(self, key: ItineraryKey) -> ItineraryDocument | None:
        """Get the stored document for ``key``.

        Args:
            key: Trip and optional segment

        Returns:
            Document or None if nothing is stored
        """
        ...


@dataclass
class UsageDecision:
    """Outcome of a usage check."""

    allowed: bool
    used: int
    limit: int


class UsageLimiter(Protocol):
    """Per (trip, member) regeneration quota."""

    def check_and_increment(self, trip_id: str, member_id: str) -> UsageDecision:
        """Consume one regeneration if quota remains.

        Args:
            trip_id: Trip being regenerated
            member_id: Member triggering the regeneration

        Returns:
            Decision with the usage count after this call
        """
        ...


def make_usage_key(trip_id: str, member_id: str) -> str:
    """Create usage counter key from trip and member."""
    return f"{trip_id}:{member_id}"
