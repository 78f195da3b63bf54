# atlanta_map/session.py - Per-browser-session wiring for the Streamlit pages
import streamlit as st

from .comparison import ComparisonSession
from .config import load_config
from .data_loader import SnapshotLoader
from .join_index import CrossYearIndex
from .logging import configure_logging, get_logger
from .map_generator import ChoroplethLayer, GeoJSONMapEngine
from .playback import PlaybackController, PollingScheduler
from .spatial_query import HoverTracker

STATE_KEY = "atlanta_map_state"
NAV_KEY = "atlanta_map_nav_params"

logger = get_logger(__name__)


class AppState:
    """Everything one dashboard session owns.

    The loader is the single owner of the snapshot cache; the index, layer
    and comparison session all reach snapshots through it.
    """

    def __init__(self, config):
        self.config = config
        self.loader = SnapshotLoader.from_config(config)
        self.index = CrossYearIndex(self.loader, config.years)
        self.scheduler = PollingScheduler()
        self.controller = PlaybackController(
            self.scheduler,
            years=config.years,
            initial_year=config.initial_year,
            interval=config.play_interval,
        )
        self.engine = GeoJSONMapEngine()
        self.layer = ChoroplethLayer(self.engine, self.loader)
        self.hover = HoverTracker(self.engine)
        self.comparison = ComparisonSession(
            self.index, max_selected=config.max_compare, years=config.years
        )
        self._unsubscribers = []

    def mount_map(self):
        """Wire playback -> layer -> hover; safe to call on every rerun.

        The Plotly figure shows hover text by itself. The tracker is bound
        so engine pointer events, when a host forwards them, are answered
        against the year currently on the map.
        """
        if self._unsubscribers:
            return
        self._unsubscribers = [
            self.controller.subscribe(self.layer.show_year),
            self.layer.subscribe(self.hover.rebind),
        ]
        self.hover.bind()

    def unmount_map(self):
        """Stop playback and release every map listener."""
        self.controller.pause()
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers = []
        self.hover.detach()

    @property
    def map_mounted(self):
        return bool(self._unsubscribers)


def get_app_state():
    if STATE_KEY not in st.session_state:
        config = load_config()
        configure_logging(config.log_level, json_output=config.json_logs)
        logger.info("Starting dashboard session", data_source=config.data_source)
        st.session_state[STATE_KEY] = AppState(config)
    return st.session_state[STATE_KEY]


def release_map_view():
    """Called by pages other than the map so no timer or handler outlives it."""
    state = st.session_state.get(STATE_KEY)
    if state is not None and state.map_mounted:
        state.unmount_map()


def navigate(request):
    """Switch page, carrying the request's parameters in the session."""
    st.session_state[NAV_KEY] = dict(request.params)
    st.switch_page(request.page)


def navigation_param(key):
    """Read a parameter from the URL, falling back to the last navigation request."""
    value = st.query_params.get(key)
    if isinstance(value, list):
        value = value[0] if value else None
    if value:
        return value
    return st.session_state.get(NAV_KEY, {}).get(key)
