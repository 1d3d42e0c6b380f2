"""Helper functions for UI - view models derived from the assembly state."""

from typing import Any

from ui.assembler import AssemblyState, Phase

DEV_MEMBER_ID = "00000000-0000-0000-0000-000000000002"

LIMIT_REACHED_ACTIONS = ["view_current_itinerary", "edit_trip_manually", "upgrade_plan"]


def build_day_cards(state: AssemblyState) -> list[dict[str, Any]]:
    """Build per-day cards from the canonical (user-visible) days.

    Args:
        state: Current assembly state

    Returns:
        List of dicts with index, title, hero photo and slot summaries
    """
    cards = []
    for day in state.canonical.days:
        cards.append(
            {
                "index": day.index,
                "date": day.date,
                "title": day.title,
                "theme": day.theme,
                "hero": day.photos[0] if day.photos else None,
                "slots": [
                    {
                        "label": slot.label.value,
                        "summary": slot.summary,
                        "places": [
                            {"name": p.name, "image_url": p.image_url, "area": p.area}
                            for p in slot.places
                        ],
                    }
                    for slot in day.slots
                ],
            }
        )
    return cards


def build_status_view(state: AssemblyState) -> dict[str, Any]:
    """Build the status view for the itinerary page.

    Args:
        state: Current assembly state

    Returns:
        Dict with mode ("progress", "document", "full_page_error",
        "limit_reached" or "empty"), progress flag, banner, error, retry and
        alternate actions, title, summary, tips, overview and day cards
    """
    canonical = state.canonical
    has_content = not canonical.is_empty
    in_progress = state.phase in (Phase.loading, Phase.generating)

    if state.phase == Phase.limit_reached:
        mode = "limit_reached"
    elif state.phase == Phase.error:
        mode = "full_page_error"
    elif has_content:
        mode = "document"
    elif in_progress:
        mode = "progress"
    else:
        mode = "empty"

    # Once anything is visible, failures show inline instead of full page
    banner = state.banner
    if state.phase == Phase.limit_reached and has_content:
        banner = state.error

    overview = None
    if canonical.city_overview is not None:
        overview = canonical.city_overview.to_wire()

    return {
        "mode": mode,
        "phase": state.phase.value,
        "show_progress": in_progress,
        "banner": banner,
        "error": state.error if mode in ("full_page_error", "limit_reached") else None,
        "can_retry": state.retryable and state.phase != Phase.limit_reached,
        "alternate_actions": LIMIT_REACHED_ACTIONS if state.phase == Phase.limit_reached else [],
        "title": canonical.title,
        "summary": canonical.summary,
        "trip_tips": list(canonical.trip_tips),
        "city_overview": overview,
        "overview_missing": state.gate.value == "missing",
        "days": build_day_cards(state),
        "days_pending": len(state.buffer),
    }
