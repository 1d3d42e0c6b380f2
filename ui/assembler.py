"""Client-side itinerary assembly state machine.

The assembler folds typed stream events into a single immutable
``AssemblyState``. Three views of the document are kept:

- ``draft``: everything seen so far, ungated
- ``buffer``: days received while the overview gate is still pending
- ``canonical``: what the user sees

Days become visible only once the gate resolves (``cityOverview`` or
``cityOverview_missing``) or the terminal ``complete`` arrives. Canonical
days are keyed by ``Day.index`` (last writer wins) and kept in ascending
order.

``apply_event`` is pure: it never mutates its input and performs no I/O.
"""

from dataclasses import dataclass, field, replace
from enum import Enum

from backend.app.models.events import (
    CityOverviewEvent,
    CityOverviewMissingEvent,
    CompleteEvent,
    DayEvent,
    DayUpdatedEvent,
    ErrorEvent,
    ErrorPayload,
    StreamEvent,
    SummaryEvent,
    TitleEvent,
    TripTipsEvent,
)
from backend.app.models.itinerary import CityOverview, Day, ItineraryDocument

TRANSPORT_ERROR_MESSAGE = "Connection lost while generating your itinerary"
INVALID_DOCUMENT_MESSAGE = "The generated itinerary was incomplete"


class Phase(str, Enum):
    """Assembly lifecycle phase."""

    idle = "idle"
    loading = "loading"
    generating = "generating"
    loaded = "loaded"
    error = "error"
    limit_reached = "limit_reached"


class Gate(str, Enum):
    """Overview gate controlling day visibility."""

    pending = "pending"
    ready = "ready"
    missing = "missing"


ACTIVE_PHASES = frozenset({Phase.idle, Phase.loading, Phase.generating})


@dataclass(frozen=True)
class DocumentView:
    """Possibly incomplete itinerary document."""

    title: str | None = None
    summary: str | None = None
    trip_tips: tuple[str, ...] = ()
    city_overview: CityOverview | None = None
    days: tuple[Day, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not (self.title or self.summary or self.trip_tips or self.days)

    def to_document(self) -> ItineraryDocument:
        return ItineraryDocument(
            title=self.title or "",
            summary=self.summary or "",
            trip_tips=list(self.trip_tips),
            city_overview=self.city_overview,
            days=list(self.days),
        )

    @classmethod
    def from_document(cls, doc: ItineraryDocument) -> "DocumentView":
        return cls(
            title=doc.title,
            summary=doc.summary,
            trip_tips=tuple(doc.trip_tips),
            city_overview=doc.city_overview,
            days=sort_days(normalize_days(doc.days)),
        )


@dataclass(frozen=True)
class AssemblyState:
    """Single authoritative client state for one itinerary session."""

    phase: Phase = Phase.idle
    draft: DocumentView = field(default_factory=DocumentView)
    buffer: tuple[Day, ...] = ()
    canonical: DocumentView = field(default_factory=DocumentView)
    gate: Gate = Gate.pending
    banner: str | None = None
    error: str | None = None
    retryable: bool = False
    needs_maintenance: bool = False

    @property
    def is_terminal(self) -> bool:
        return self.phase not in ACTIVE_PHASES


# ---------------------------------------------------------------------------
# Day collection helpers
# ---------------------------------------------------------------------------


def sort_days(days: tuple[Day, ...] | list[Day]) -> tuple[Day, ...]:
    return tuple(sorted(days, key=lambda d: d.index))


def normalize_days(days: list[Day] | tuple[Day, ...]) -> tuple[Day, ...]:
    """One entry per index, last occurrence wins, first-seen order kept."""
    by_index: dict[int, Day] = {}
    for day in days:
        by_index[day.index] = day
    return tuple(by_index.values())


def replace_or_append_by_id(days: tuple[Day, ...], day: Day) -> tuple[Day, ...]:
    for i, existing in enumerate(days):
        if existing.id == day.id:
            return days[:i] + (day,) + days[i + 1 :]
    return days + (day,)


def upsert_by_id_or_index(days: tuple[Day, ...], day: Day) -> tuple[Day, ...]:
    """Replace every entry sharing the id or index with ``day``, in place of the first."""
    kept: list[Day] = []
    position: int | None = None
    for existing in days:
        if existing.id == day.id or existing.index == day.index:
            if position is None:
                position = len(kept)
            continue
        kept.append(existing)
    if position is None:
        kept.append(day)
    else:
        kept.insert(position, day)
    return tuple(kept)


def upsert_by_index(days: tuple[Day, ...], day: Day) -> tuple[Day, ...]:
    """Index-identity merge, re-sorted ascending."""
    kept = [d for d in days if d.index != day.index]
    kept.append(day)
    return sort_days(kept)


def apply_photo_update(days: tuple[Day, ...], update: Day, resort: bool) -> tuple[Day, ...]:
    """Replace slots and photos of the target day; insert ``update`` if absent.

    The target is found by id first, then by index.
    """
    target = next((i for i, d in enumerate(days) if d.id == update.id), None)
    if target is None:
        target = next((i for i, d in enumerate(days) if d.index == update.index), None)
    if target is None:
        merged = days + (update,)
        return sort_days(merged) if resort else merged

    patched = days[target].model_copy(update={"slots": update.slots, "photos": update.photos})
    return days[:target] + (patched,) + days[target + 1 :]


def _flush(state: AssemblyState) -> tuple[Day, ...]:
    days = state.canonical.days
    for day in state.buffer:
        days = upsert_by_index(days, day)
    return days


def _is_valid_terminal(doc: ItineraryDocument) -> bool:
    return bool(doc.title.strip()) and bool(doc.days)


# ---------------------------------------------------------------------------
# Transitions
# ---------------------------------------------------------------------------


def _on_complete(state: AssemblyState, doc: ItineraryDocument) -> AssemblyState:
    if not _is_valid_terminal(doc):
        return _on_error(state, ErrorPayload(message=INVALID_DOCUMENT_MESSAGE))

    incoming = normalize_days(doc.days)
    incoming_indices = {d.index for d in incoming}
    union = incoming + tuple(d for d in state.buffer if d.index not in incoming_indices)

    days = state.canonical.days
    for day in union:
        days = upsert_by_index(days, day)

    overview = doc.city_overview
    if overview is not None and overview.is_empty():
        overview = None
    if overview is None and state.gate == Gate.ready:
        overview = state.canonical.city_overview

    canonical = DocumentView(
        title=doc.title,
        summary=doc.summary,
        trip_tips=tuple(doc.trip_tips),
        city_overview=overview,
        days=days,
    )
    gate = state.gate
    if gate == Gate.pending:
        gate = Gate.ready if overview is not None else Gate.missing

    return replace(
        state,
        phase=Phase.loaded,
        draft=canonical,
        buffer=(),
        canonical=canonical,
        gate=gate,
        needs_maintenance=True,
    )


def _on_error(state: AssemblyState, payload: ErrorPayload) -> AssemblyState:
    if state.canonical.days:
        return replace(
            state,
            phase=Phase.loaded,
            buffer=(),
            banner=payload.message,
            error=None,
            retryable=True,
        )
    return replace(
        state,
        phase=Phase.error,
        draft=DocumentView(),
        buffer=(),
        canonical=DocumentView(),
        error=payload.message,
        banner=None,
        retryable=True,
    )


def apply_event(state: AssemblyState, event: StreamEvent) -> AssemblyState:
    """Fold one stream event into ``state``.

    Events arriving after a terminal phase are ignored.
    """
    if state.is_terminal:
        return state
    if state.phase != Phase.generating:
        state = replace(state, phase=Phase.generating)

    if isinstance(event, TitleEvent):
        return replace(
            state,
            draft=replace(state.draft, title=event.data),
            canonical=replace(state.canonical, title=event.data),
        )

    if isinstance(event, SummaryEvent):
        return replace(
            state,
            draft=replace(state.draft, summary=event.data),
            canonical=replace(state.canonical, summary=event.data),
        )

    if isinstance(event, TripTipsEvent):
        tips = tuple(event.data)
        return replace(
            state,
            draft=replace(state.draft, trip_tips=tips),
            canonical=replace(state.canonical, trip_tips=tips),
        )

    if isinstance(event, DayEvent):
        draft = replace(state.draft, days=replace_or_append_by_id(state.draft.days, event.data))
        if state.gate == Gate.pending:
            return replace(state, draft=draft, buffer=upsert_by_id_or_index(state.buffer, event.data))
        canonical = replace(state.canonical, days=upsert_by_index(state.canonical.days, event.data))
        return replace(state, draft=draft, canonical=canonical)

    if isinstance(event, DayUpdatedEvent):
        draft = replace(
            state.draft, days=apply_photo_update(state.draft.days, event.data, resort=False)
        )
        if state.gate == Gate.pending:
            buffer = apply_photo_update(state.buffer, event.data, resort=False)
            return replace(state, draft=draft, buffer=buffer)
        canonical = replace(
            state.canonical,
            days=apply_photo_update(state.canonical.days, event.data, resort=True),
        )
        return replace(state, draft=draft, canonical=canonical)

    if isinstance(event, CityOverviewEvent):
        if state.gate != Gate.pending:
            return state
        canonical = replace(state.canonical, city_overview=event.data, days=_flush(state))
        return replace(
            state,
            gate=Gate.ready,
            draft=replace(state.draft, city_overview=event.data),
            canonical=canonical,
            buffer=(),
        )

    if isinstance(event, CityOverviewMissingEvent):
        if state.gate != Gate.pending:
            return state
        canonical = replace(state.canonical, days=_flush(state))
        return replace(state, gate=Gate.missing, canonical=canonical, buffer=())

    if isinstance(event, CompleteEvent):
        return _on_complete(state, event.data)

    if isinstance(event, ErrorEvent):
        return _on_error(state, event.data)

    return state


# ---------------------------------------------------------------------------
# Session-level transitions
# ---------------------------------------------------------------------------


def start_loading(state: AssemblyState) -> AssemblyState:
    """Begin fetching a previously persisted document."""
    return replace(state, phase=Phase.loading, error=None, banner=None, retryable=False)


def start_generating(state: AssemblyState) -> AssemblyState:
    """Begin a fresh generation run; retries start over, they never resume."""
    return AssemblyState(phase=Phase.generating)


def loaded_from_store(state: AssemblyState, doc: ItineraryDocument) -> AssemblyState:
    """Show a persisted document without regenerating."""
    view = DocumentView.from_document(doc)
    overview = view.city_overview
    if overview is not None and overview.is_empty():
        view = replace(view, city_overview=None)
        overview = None
    return AssemblyState(
        phase=Phase.loaded,
        draft=view,
        canonical=view,
        gate=Gate.ready if overview is not None else Gate.missing,
    )


def transport_failed(state: AssemblyState, message: str = TRANSPORT_ERROR_MESSAGE) -> AssemblyState:
    """Mid-stream read failure; handled exactly like a received ``error``."""
    if state.is_terminal:
        return state
    return _on_error(state, ErrorPayload(message=message))


def limit_reached(state: AssemblyState, used: int | None = None, limit: int | None = None) -> AssemblyState:
    """Regeneration denied by the usage limit; terminal and not retryable."""
    message = "You have reached the regeneration limit for this trip"
    if used is not None and limit is not None:
        message = f"{message} ({used}/{limit})"
    return replace(
        state,
        phase=Phase.limit_reached,
        buffer=(),
        error=message,
        banner=None,
        retryable=False,
    )


def maintenance_scheduled(state: AssemblyState) -> AssemblyState:
    """Acknowledge that the post-completion maintenance task was scheduled."""
    return replace(state, needs_maintenance=False)
