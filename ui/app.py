"""Streamlit UI for the smart itinerary.

Run with: streamlit run ui/app.py
"""

# Add project root to sys.path for imports to work when run via streamlit
import sys
from pathlib import Path

_ROOT = Path(__file__).resolve().parents[1]
if str(_ROOT) not in sys.path:
    sys.path.insert(0, str(_ROOT))

import asyncio  # noqa: E402
from datetime import date, datetime  # noqa: E402
from typing import Any  # noqa: E402

import streamlit as st  # noqa: E402

from backend.app.config import settings  # noqa: E402
from ui.assembler import AssemblyState  # noqa: E402
from ui.helpers import DEV_MEMBER_ID, build_status_view  # noqa: E402
from ui.session import ItinerarySession  # noqa: E402
from ui.stream_client import ItineraryStreamClient  # noqa: E402

# Page config
st.set_page_config(
    page_title="Smart Itinerary",
    page_icon="🗺️",
    layout="wide",
)

# Initialize session state
if "view" not in st.session_state:
    st.session_state.view = None


def render(view: dict[str, Any], container: Any) -> None:
    """Render a status view into a streamlit container."""
    with container.container():
        if view["mode"] == "full_page_error":
            st.error(f"❌ {view['error']}")
            return
        if view["mode"] == "limit_reached":
            st.warning(f"🚫 {view['error']}")
            st.caption("Try instead: " + ", ".join(a.replace("_", " ") for a in view["alternate_actions"]))
        if view["show_progress"]:
            st.info(f"⏳ Building your itinerary... ({len(view['days'])} days ready)")
        if view["banner"]:
            st.warning(f"⚠️ {view['banner']}")
        if view["mode"] == "empty":
            st.info("👈 Fill out the trip form to see your itinerary here.")
            return

        if view["title"]:
            st.markdown(f"## {view['title']}")
        if view["summary"]:
            st.markdown(view["summary"])

        for day in view["days"]:
            try:
                display_date = datetime.fromisoformat(day["date"]).strftime("%A, %B %d")
            except (ValueError, TypeError):
                display_date = day["date"]
            st.markdown(f"### Day {day['index']}: {day['title']}")
            st.caption(display_date)
            if day["hero"]:
                st.image(day["hero"], use_container_width=True)
            for slot in day["slots"]:
                st.markdown(f"**{slot['label'].title()}**")
                st.markdown(slot["summary"])
                for place in slot["places"]:
                    st.markdown(f"- {place['name']}" + (f" _({place['area']})_" if place["area"] else ""))

        if view["trip_tips"]:
            st.markdown("### Tips")
            for tip in view["trip_tips"]:
                st.markdown(f"- {tip}")

        if view["city_overview"]:
            with st.expander("City overview"):
                st.json(view["city_overview"])


async def run_session(trip_id: str, body: dict[str, Any], regenerate: bool, container: Any) -> dict[str, Any]:
    """Drive one session, re-rendering on every state change."""
    client = ItineraryStreamClient(
        settings.api_base_url, member_id=DEV_MEMBER_ID, timeout=settings.stream_timeout_seconds
    )

    def on_change(state: AssemblyState) -> None:
        render(build_status_view(state), container)

    session = ItinerarySession(client, trip_id, body, on_change=on_change)
    try:
        task = session.regenerate() if regenerate else session.open()
        state = await task
        if session.maintenance_task is not None:
            await session.maintenance_task
    finally:
        await client.aclose()
    return build_status_view(state)


st.title("🗺️ Smart Itinerary")
st.divider()

col_left, col_main = st.columns([1, 3])

with col_left:
    st.subheader("📋 Trip")
    with st.form("trip_form"):
        trip_id = st.text_input("Trip ID *", value="demo-trip")
        destination = st.text_input("Destination *", value="Lisbon, Portugal")
        start_date = st.date_input("Start Date *", value=date(2025, 6, 10))
        end_date = st.date_input("End Date *", value=date(2025, 6, 12))
        language = st.selectbox("Language", options=["en", "es", "fr", "de", "pt", "it"])
        saved_raw = st.text_input("Saved places", help="Comma-separated place names")
        col_a, col_b = st.columns(2)
        with col_a:
            open_clicked = st.form_submit_button("Open", type="primary", use_container_width=True)
        with col_b:
            regen_clicked = st.form_submit_button("Regenerate", use_container_width=True)

with col_main:
    placeholder = st.empty()

    if open_clicked or regen_clicked:
        if not destination.strip() or end_date < start_date:
            st.error("❌ Destination is required and end date must not be before start date")
        else:
            body = {
                "destination": destination.strip(),
                "start_date": start_date.isoformat(),
                "end_date": end_date.isoformat(),
                "language": language,
                "saved_places": [
                    {"name": name.strip()} for name in saved_raw.split(",") if name.strip()
                ],
            }
            st.session_state.view = asyncio.run(
                run_session(trip_id.strip(), body, bool(regen_clicked), placeholder)
            )
    elif st.session_state.view:
        render(st.session_state.view, placeholder)
    else:
        render(build_status_view(AssemblyState()), placeholder)
