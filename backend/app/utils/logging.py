"""Structured logging for itinerary stream runs."""

import logging
from typing import Any

from backend.app.models.trip import ItineraryKey

logger = logging.getLogger(__name__)


class StructuredStreamLogger:
    """Structured logger for stream events and run outcomes."""

    def __init__(self, key: ItineraryKey, run_id: str) -> None:
        self.key = key
        self.run_id = run_id

    def _base(self) -> dict[str, Any]:
        return {
            "run_id": self.run_id,
            "trip_id": self.key.trip_id,
            "segment_id": self.key.segment_id,
        }

    def log_event(self, kind: str, seq: int, day_index: int | None = None) -> None:
        """Log one emitted stream event."""
        log_data = {**self._base(), "kind": kind, "seq": seq}
        if day_index is not None:
            log_data["day_index"] = day_index
        logger.debug(f"Stream event: {kind} #{seq}", extra={"structured": log_data})

    def log_outcome(
        self,
        outcome: str,
        latency_ms: float,
        emitted_days: int,
        error_reason: str | None = None,
    ) -> None:
        """Log how a run ended."""
        log_data: dict[str, Any] = {
            **self._base(),
            "outcome": outcome,
            "latency_ms": round(latency_ms, 2),
            "emitted_days": emitted_days,
        }

        if error_reason:
            log_data["error_reason"] = error_reason

        log_msg = f"Itinerary stream: {self.key} - {outcome}"

        if outcome == "complete":
            logger.info(log_msg, extra={"structured": log_data})
        else:
            logger.warning(log_msg, extra={"structured": log_data})

    def log_save(self, kind: str, ok: bool) -> None:
        """Log a persistence attempt for the final or partial document."""
        log_data = {**self._base(), "save": kind, "ok": ok}
        if ok:
            logger.info(f"Saved {kind} itinerary for {self.key}", extra={"structured": log_data})
        else:
            logger.error(
                f"Failed to save {kind} itinerary for {self.key}",
                extra={"structured": log_data},
            )
