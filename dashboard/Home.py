# Home.py - Main entry point: Atlanta neighborhood sale-price map
import streamlit as st

from atlanta_map.chart_generator import create_legend_chart
from atlanta_map.comparison import compare_request, data_sheet_request
from atlanta_map.config import SOURCE_ID
from atlanta_map.session import get_app_state, navigate
from atlanta_map.spatial_query import TooltipContent, tooltip_from_features

st.set_page_config(
    page_title="Atlanta Property Map",
    page_icon="🗺️",
    layout="wide"
)

state = get_app_state()
config = state.config
controller = state.controller
state.mount_map()

# Play / Pause lives outside the fragment so toggling it re-arms run_every
col_title, col_button = st.columns([5, 1])
with col_title:
    st.title("🗺️ Atlanta Property Map")
    st.markdown("Residential sale prices by neighborhood, "
                f"{config.start_year}–{config.end_year}")
with col_button:
    st.button(
        "⏸ Pause" if controller.is_playing else "▶ Play",
        on_click=controller.toggle,
        use_container_width=True,
    )


def _on_scrub():
    controller.scrub(st.session_state["year_slider"])


def _pick_neighborhood(event):
    """Features under the clicked point, as reported by the map's selection event."""
    if event is None or not state.engine.has_source(SOURCE_ID):
        return []
    points = event.get("selection", {}).get("points", [])
    if not points:
        return []
    location = points[0].get("location") or (points[0].get("customdata") or [None])[0]
    features = state.engine.get_data(SOURCE_ID)["features"]
    return [f for f in features if f["properties"].get("NAME") == location]


@st.fragment(run_every=config.play_interval if controller.is_playing else None)
def timeline():
    with st.spinner("Loading map data..."):
        state.scheduler.poll()
        # Initial load, or a retry after a failed one
        if state.layer.current_year is None:
            state.layer.show_year(controller.active_year)

    year = controller.active_year
    st.session_state["year_slider"] = year

    st.subheader(f"Atlanta Property Map ({year})")
    st.slider(
        "Year",
        min_value=config.start_year,
        max_value=config.end_year,
        step=1,
        key="year_slider",
        on_change=_on_scrub,
    )
    st.altair_chart(create_legend_chart(), use_container_width=False)

    if state.layer.current_year is None:
        st.warning(f"Map data for {year} is not available.")
        return
    if state.layer.current_year != year:
        st.caption(f"Showing {state.layer.current_year}; data for {year} could not be loaded.")

    event = st.plotly_chart(
        state.engine.to_figure(),
        use_container_width=True,
        on_select="rerun",
        selection_mode="points",
        key="nbhd_map",
    )

    picked = tooltip_from_features(_pick_neighborhood(event))
    if picked is not None:
        st.session_state["selected_neighborhood"] = picked.name

    selected = st.session_state.get("selected_neighborhood")
    if not selected:
        st.caption("👆 Hover a neighborhood for its prices; click it for more.")
        return

    record = state.layer.current_snapshot.record(selected)
    if record is None:
        return
    card = TooltipContent(record.name, record.avg_price, record.median_price, record.parcel_count)

    st.markdown("---")
    col_info, col_sheet, col_compare = st.columns([3, 1, 1])
    with col_info:
        st.markdown(card.to_html(), unsafe_allow_html=True)
    with col_sheet:
        if st.button("📄 Data sheet", use_container_width=True):
            navigate(data_sheet_request(selected))
    with col_compare:
        if st.button("📈 Compare", use_container_width=True):
            navigate(compare_request(selected))


timeline()
