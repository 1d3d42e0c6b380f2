"""Tests for UI view-model helpers."""

from collections.abc import Callable

from backend.app.models.events import CityOverviewMissingEvent, DayEvent, TitleEvent
from backend.app.models.itinerary import Day, Place
from ui.assembler import (
    AssemblyState,
    apply_event,
    limit_reached,
    start_generating,
    start_loading,
    transport_failed,
)
from ui.helpers import LIMIT_REACHED_ACTIONS, build_day_cards, build_status_view


def test_empty_idle_state() -> None:
    """Test a fresh state renders as empty."""
    view = build_status_view(AssemblyState())

    assert view["mode"] == "empty"
    assert view["show_progress"] is False
    assert view["days"] == []


def test_progress_until_content_arrives() -> None:
    """Test progress mode while nothing is visible yet."""
    assert build_status_view(start_loading(AssemblyState()))["mode"] == "progress"

    state = apply_event(start_generating(AssemblyState()), TitleEvent(data="Lisbon Trip"))
    view = build_status_view(state)

    assert view["mode"] == "document"
    assert view["show_progress"] is True
    assert view["title"] == "Lisbon Trip"


def test_buffered_days_are_counted_not_shown(make_day: Callable[..., Day]) -> None:
    """Test pending days are reported but not rendered."""
    state = apply_event(start_generating(AssemblyState()), DayEvent(data=make_day(1)))

    view = build_status_view(state)

    assert view["days"] == []
    assert view["days_pending"] == 1


def test_day_cards_render_canonical_days(
    make_day: Callable[..., Day], make_place: Callable[..., Place]
) -> None:
    """Test day cards carry hero photo and slot places."""
    day = make_day(
        1,
        places=[make_place("Alfama", image_url="https://img/alfama.jpg")],
        photos=["https://img/hero.jpg"],
    )
    state = apply_event(
        apply_event(start_generating(AssemblyState()), CityOverviewMissingEvent()),
        DayEvent(data=day),
    )

    cards = build_day_cards(state)

    assert len(cards) == 1
    assert cards[0]["hero"] == "https://img/hero.jpg"
    assert cards[0]["slots"][0]["label"] == "morning"
    assert cards[0]["slots"][0]["places"][0]["image_url"] == "https://img/alfama.jpg"
    assert build_status_view(state)["overview_missing"] is True


def test_error_without_content_is_full_page() -> None:
    """Test a failure with nothing visible renders a full-page error."""
    state = transport_failed(start_generating(AssemblyState()))

    view = build_status_view(state)

    assert view["mode"] == "full_page_error"
    assert view["error"]
    assert view["can_retry"] is True


def test_error_with_content_is_inline_banner(make_day: Callable[..., Day]) -> None:
    """Test a failure after visible days keeps the document with a banner."""
    state = start_generating(AssemblyState())
    state = apply_event(state, CityOverviewMissingEvent())
    state = apply_event(state, DayEvent(data=make_day(1)))
    state = transport_failed(state)

    view = build_status_view(state)

    assert view["mode"] == "document"
    assert view["banner"]
    assert view["error"] is None
    assert len(view["days"]) == 1
    assert view["can_retry"] is True


def test_limit_reached_offers_alternatives() -> None:
    """Test the limit view disables retry and lists alternate actions."""
    view = build_status_view(limit_reached(start_loading(AssemblyState()), 3, 3))

    assert view["mode"] == "limit_reached"
    assert view["can_retry"] is False
    assert view["alternate_actions"] == LIMIT_REACHED_ACTIONS
    assert "3/3" in view["error"]
