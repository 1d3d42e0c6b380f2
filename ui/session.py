"""One reader per itinerary: load-or-generate, cancellation and maintenance."""

import asyncio
import logging
from collections.abc import Callable
from typing import Any

import httpx

from backend.app.config import settings
from backend.app.errors import GenerationInProgress, LimitReached
from backend.app.models.events import TERMINAL_KINDS
from ui.assembler import (
    AssemblyState,
    Phase,
    apply_event,
    limit_reached,
    loaded_from_store,
    maintenance_scheduled,
    start_generating,
    start_loading,
    transport_failed,
)
from ui.stream_client import ItineraryStreamClient

logger = logging.getLogger(__name__)

IN_PROGRESS_MESSAGE = "An itinerary is already being generated for this trip"
STREAM_ENDED_MESSAGE = "The itinerary stream ended unexpectedly"


class ItinerarySession:
    """Drives one ``AssemblyState`` from the API.

    - ``open()`` loads the stored document, generating one when none exists
    - ``regenerate()`` always generates
    - a trigger while a run is in flight returns the running task
    - after ``cancel()`` no event mutates the state
    """

    def __init__(
        self,
        client: ItineraryStreamClient,
        trip_id: str,
        request_body: dict[str, Any],
        *,
        segment_id: str | None = None,
        on_change: Callable[[AssemblyState], None] | None = None,
        maintenance_delay: float | None = None,
        maintenance_retries: int | None = None,
        maintenance_retry_delay: float | None = None,
    ) -> None:
        self.client = client
        self.trip_id = trip_id
        self.segment_id = segment_id
        self.request_body = {**request_body, "segment_id": segment_id}
        self.on_change = on_change
        self.maintenance_delay = (
            settings.maintenance_delay_seconds if maintenance_delay is None else maintenance_delay
        )
        self.maintenance_retries = (
            settings.maintenance_retry_count if maintenance_retries is None else maintenance_retries
        )
        self.maintenance_retry_delay = (
            settings.maintenance_retry_delay_seconds
            if maintenance_retry_delay is None
            else maintenance_retry_delay
        )

        self._state = AssemblyState()
        self._task: asyncio.Task[AssemblyState] | None = None
        self._maintenance_task: asyncio.Task[None] | None = None
        self._cancelled = False

    @property
    def state(self) -> AssemblyState:
        return self._state

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def maintenance_task(self) -> asyncio.Task[None] | None:
        return self._maintenance_task

    def _set(self, state: AssemblyState) -> None:
        if self._cancelled:
            return
        self._state = state
        if self.on_change is not None:
            self.on_change(state)

    def open(self) -> asyncio.Task[AssemblyState]:
        """Load the stored itinerary or generate one."""
        return self._trigger(force_generate=False)

    def regenerate(self) -> asyncio.Task[AssemblyState]:
        """Start a full regeneration (retry never resumes a partial run)."""
        return self._trigger(force_generate=True)

    def _trigger(self, force_generate: bool) -> asyncio.Task[AssemblyState]:
        if self._task is not None and not self._task.done():
            logger.info(f"Itinerary run already in flight for trip {self.trip_id}")
            return self._task
        self._task = asyncio.create_task(self._run(force_generate))
        return self._task

    def cancel(self) -> None:
        """Release the reader; later events are dropped."""
        self._cancelled = True
        if self._task is not None and not self._task.done():
            self._task.cancel()

    async def _run(self, force_generate: bool) -> AssemblyState:
        if not force_generate:
            self._set(start_loading(self._state))
            try:
                doc = await self.client.load(self.trip_id, self.segment_id)
            except httpx.HTTPError as e:
                logger.warning(f"Loading itinerary failed: {type(e).__name__}: {e}")
                self._set(transport_failed(self._state))
                return self._state
            if doc is not None:
                self._set(loaded_from_store(self._state, doc))
                return self._state

        self._set(start_generating(self._state))
        await self._read_stream()
        self._after_run()
        return self._state

    async def _read_stream(self) -> None:
        try:
            async for event in self.client.stream_events(self.trip_id, self.request_body):
                if self._cancelled:
                    return
                self._set(apply_event(self._state, event))
                if event.type in TERMINAL_KINDS:
                    return
        except LimitReached as e:
            self._set(limit_reached(self._state, e.used, e.limit))
            return
        except GenerationInProgress:
            self._set(transport_failed(self._state, IN_PROGRESS_MESSAGE))
            return
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(f"Itinerary stream failed: {type(e).__name__}: {e}")
            self._set(transport_failed(self._state))
            return

        if not self._state.is_terminal:
            self._set(transport_failed(self._state, STREAM_ENDED_MESSAGE))

    def _after_run(self) -> None:
        if self._cancelled or self._state.phase != Phase.loaded or not self._state.needs_maintenance:
            return
        self._maintenance_task = asyncio.create_task(self._maintenance())
        self._set(maintenance_scheduled(self._state))

    async def _maintenance(self) -> None:
        """Backfill missing place images; failures are logged, never raised."""
        await asyncio.sleep(self.maintenance_delay)
        destination = str(self.request_body.get("destination", ""))
        for attempt in range(1, self.maintenance_retries + 1):
            try:
                updated = await self.client.trigger_backfill(
                    self.trip_id, destination, self.segment_id
                )
                logger.info(f"Image backfill updated {updated} places for trip {self.trip_id}")
                return
            except Exception as e:
                logger.warning(
                    f"Image backfill attempt {attempt}/{self.maintenance_retries} failed: "
                    f"{type(e).__name__}: {e}"
                )
                if attempt < self.maintenance_retries:
                    await asyncio.sleep(self.maintenance_retry_delay)
        logger.warning(f"Image backfill gave up for trip {self.trip_id}")
