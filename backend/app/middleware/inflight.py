"""In-flight generation registry.

Coalesces duplicate triggers: while a generation for an itinerary key is
pending, a second trigger for the same key is rejected with 409 instead of
starting a second model call.
"""

import logging
import threading
import time

from backend.app.errors import GenerationInProgress
from backend.app.models.trip import ItineraryKey

logger = logging.getLogger(__name__)


class InFlightRegistry:
    """Pending markers per itinerary key, released when the run ends."""

    def __init__(self, ttl_seconds: float = 600.0) -> None:
        """Initialize registry.

        Args:
            ttl_seconds: Age after which a pending marker is treated as
                abandoned (default 10 min)
        """
        self._ttl_seconds = ttl_seconds
        self._pending: dict[ItineraryKey, float] = {}
        self._lock = threading.Lock()

    def acquire(self, key: ItineraryKey) -> None:
        """Mark ``key`` as pending.

        Raises:
            GenerationInProgress: If a run for ``key`` is already pending
        """
        now = time.monotonic()
        with self._lock:
            started = self._pending.get(key)
            if started is not None and now - started < self._ttl_seconds:
                logger.info(
                    f"Generation already in flight for {key}",
                    extra={"structured": {"itinerary_key": str(key)}},
                )
                raise GenerationInProgress(f"generation for {key} is already in progress")
            self._pending[key] = now

    def release(self, key: ItineraryKey) -> None:
        """Clear the pending marker for ``key`` (no-op if absent)."""
        with self._lock:
            self._pending.pop(key, None)

    def is_pending(self, key: ItineraryKey) -> bool:
        with self._lock:
            started = self._pending.get(key)
            return started is not None and time.monotonic() - started < self._ttl_seconds
