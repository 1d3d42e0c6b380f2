"""Error taxonomy for itinerary generation and assembly."""

from typing import Any


class ItineraryError(Exception):
    """Base class for itinerary pipeline errors."""

    pass


class GenerationFailure(ItineraryError):
    """Model call failed or its output could not be parsed."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ValidationFailure(GenerationFailure):
    """Model output parsed but failed structural checks."""

    pass


class PartialStreamFailure(ItineraryError):
    """Stream failed after some days were already emitted."""

    def __init__(self, message: str, emitted_days: int) -> None:
        super().__init__(message)
        self.message = message
        self.emitted_days = emitted_days


class EnrichmentSoftFailure(ItineraryError):
    """One enrichment step failed; the step's input is kept."""

    def __init__(self, step: str, cause: BaseException) -> None:
        super().__init__(f"enrichment step {step} failed: {type(cause).__name__}")
        self.step = step
        self.cause = cause


class LimitReached(ItineraryError):
    """Usage collaborator denied a regeneration."""

    def __init__(self, used: int, limit: int) -> None:
        super().__init__(f"regeneration limit reached ({used}/{limit})")
        self.used = used
        self.limit = limit


class GenerationInProgress(ItineraryError):
    """A generation for the same itinerary key is already running."""

    pass


class PersistenceFailure(ItineraryError):
    """The itinerary store did not accept a write."""

    pass
