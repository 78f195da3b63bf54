# atlanta_map/map_generator.py - Choropleth layer management and map rendering
"""Keep the map's neighborhood layer in step with the active year.

The map engine boundary mirrors a vector-tile map API (sources, layers,
feature queries, events). :class:`GeoJSONMapEngine` implements it in-process
with geopandas and renders through Plotly; :class:`ChoroplethLayer` swaps the
source data whenever the active year changes.
"""

from collections import defaultdict
from typing import Callable, Dict, Iterable, List, Optional, Protocol, Sequence

import geopandas as gpd
import plotly.graph_objects as go
from shapely.geometry import Point

from .color_scale import (
    METRIC_PROPERTY,
    METRIC_STOPS,
    NO_DATA_COLOR,
    fill_layer_spec,
    outline_layer_spec,
    plotly_colorscale,
)
from .config import FILL_LAYER_ID, MAP_CENTER, MAP_ZOOM, OUTLINE_LAYER_ID, SOURCE_ID
from .exceptions import LoadError
from .logging import get_logger
from .spatial_query import TooltipContent

logger = get_logger(__name__)


class MapEngine(Protocol):
    def add_source(self, source_id: str, data: dict) -> None: ...
    def set_data(self, source_id: str, data: dict) -> None: ...
    def has_source(self, source_id: str) -> bool: ...
    def add_layer(self, spec: dict) -> None: ...
    def has_layer(self, layer_id: str) -> bool: ...
    def query_features_at_point(self, point, layer_ids: Optional[Sequence[str]] = None) -> List[dict]: ...
    def on(self, event: str, handler: Callable) -> None: ...
    def off(self, event: str, handler: Callable) -> None: ...


class GeoJSONMapEngine:
    """In-process map engine holding GeoJSON sources and layer specs."""

    def __init__(self, center: Optional[Dict[str, float]] = None, zoom: float = MAP_ZOOM):
        self.center = dict(center or MAP_CENTER)
        self.zoom = zoom
        self._sources: Dict[str, dict] = {}
        self._frames: Dict[str, gpd.GeoDataFrame] = {}
        self._layers: List[dict] = []
        self._handlers: Dict[str, List[Callable]] = defaultdict(list)

    # --- sources -----------------------------------------------------------

    def add_source(self, source_id: str, data: dict) -> None:
        if source_id in self._sources:
            raise ValueError(f"Source {source_id!r} already exists")
        self._store(source_id, data)

    def set_data(self, source_id: str, data: dict) -> None:
        if source_id not in self._sources:
            raise KeyError(f"Unknown source {source_id!r}")
        self._store(source_id, data)

    def has_source(self, source_id: str) -> bool:
        return source_id in self._sources

    def get_data(self, source_id: str) -> dict:
        return self._sources[source_id]

    def _store(self, source_id: str, data: dict) -> None:
        self._sources[source_id] = data
        features = data.get("features", [])
        if features:
            frame = gpd.GeoDataFrame.from_features(features, crs="EPSG:4326")
        else:
            frame = gpd.GeoDataFrame(geometry=gpd.GeoSeries([], crs="EPSG:4326"))
        self._frames[source_id] = frame

    # --- layers ------------------------------------------------------------

    def add_layer(self, spec: dict) -> None:
        if self.has_layer(spec["id"]):
            raise ValueError(f"Layer {spec['id']!r} already exists")
        if spec.get("source") not in self._sources:
            raise KeyError(f"Layer {spec['id']!r} references unknown source {spec.get('source')!r}")
        self._layers.append(spec)

    def has_layer(self, layer_id: str) -> bool:
        return any(layer["id"] == layer_id for layer in self._layers)

    def get_layer(self, layer_id: str) -> Optional[dict]:
        for layer in self._layers:
            if layer["id"] == layer_id:
                return layer
        return None

    @property
    def layer_ids(self) -> List[str]:
        return [layer["id"] for layer in self._layers]

    # --- queries -----------------------------------------------------------

    def query_features_at_point(self, point, layer_ids: Optional[Sequence[str]] = None) -> List[dict]:
        """Features under a (lon, lat) point, topmost first.

        Later layers draw above earlier ones, and within a layer later
        features draw above earlier ones.
        """
        target = Point(point)
        hits = []
        for layer in reversed(self._layers):
            if layer_ids is not None and layer["id"] not in layer_ids:
                continue
            if layer["type"] != "fill":
                continue
            frame = self._frames.get(layer["source"])
            if frame is None or frame.empty:
                continue
            positions = frame.sindex.query(target, predicate="intersects")
            features = self._sources[layer["source"]]["features"]
            for position in sorted(positions, reverse=True):
                feature = dict(features[position])
                feature["layer"] = layer["id"]
                hits.append(feature)
        return hits

    # --- events ------------------------------------------------------------

    def on(self, event: str, handler: Callable) -> None:
        self._handlers[event].append(handler)

    def off(self, event: str, handler: Callable) -> None:
        if handler in self._handlers.get(event, []):
            self._handlers[event].remove(handler)

    def handler_count(self, event: str) -> int:
        return len(self._handlers.get(event, []))

    def emit(self, event: str, payload=None) -> list:
        return [handler(payload) for handler in list(self._handlers.get(event, []))]

    # --- rendering ---------------------------------------------------------

    def to_figure(self, title: Optional[str] = None, height: int = 620) -> go.Figure:
        """Render the fill layer as a Plotly choropleth over carto-positron tiles."""
        fig = go.Figure()
        fill = self.get_layer(FILL_LAYER_ID)
        if fill is not None:
            outline = self.get_layer(OUTLINE_LAYER_ID) or {"paint": {}}
            data = self._sources[fill["source"]]
            for trace in _choropleth_traces(data, fill["paint"], outline["paint"]):
                fig.add_trace(trace)

        fig.update_layout(
            map_style="carto-positron",
            map_center=self.center,
            map_zoom=self.zoom,
            margin=dict(r=0, t=40 if title else 0, l=0, b=0),
            height=height,
            title=title,
            template="plotly_white",
            showlegend=False,
        )
        return fig


HOVER_TEMPLATE = (
    "<b>%{customdata[0]}</b><br>"
    "Avg Price: %{customdata[1]}<br>"
    "Median Price: %{customdata[2]}<br>"
    "Parcels: %{customdata[3]}<extra></extra>"
)


def _choropleth_traces(data: dict, fill_paint: dict, outline_paint: dict) -> Iterable[go.Choroplethmap]:
    priced, empty = [], []
    for feature in data.get("features", []):
        if feature.get("geometry") is None:
            continue
        metric = feature["properties"].get(METRIC_PROPERTY, -1)
        (priced if metric >= 0 else empty).append(feature)

    opacity = fill_paint.get("fill-opacity", 1.0)
    line = dict(
        color=outline_paint.get("line-color", "#555"),
        width=outline_paint.get("line-width", 1),
    )

    for features, colorscale, z in (
        (priced, plotly_colorscale(), lambda f: f["properties"][METRIC_PROPERTY]),
        (empty, [[0, NO_DATA_COLOR], [1, NO_DATA_COLOR]], lambda f: 0),
    ):
        if not features:
            continue
        yield go.Choroplethmap(
            geojson={"type": "FeatureCollection", "features": features},
            featureidkey="properties.NAME",
            locations=[f["properties"]["NAME"] for f in features],
            z=[z(f) for f in features],
            zmin=METRIC_STOPS[0],
            zmax=METRIC_STOPS[-1],
            colorscale=colorscale,
            showscale=False,
            marker_opacity=opacity,
            marker_line=line,
            customdata=[TooltipContent.from_feature(f).row() for f in features],
            hovertemplate=HOVER_TEMPLATE,
        )


class ChoroplethLayer:
    """Apply the active year's snapshot to the map, newest request wins.

    Every request takes a token from a monotonically increasing counter; a
    loaded snapshot is applied only if its token is still the latest one.
    """

    def __init__(self, engine, loader):
        self.engine = engine
        self.loader = loader
        self.current_year: Optional[int] = None
        self.current_snapshot = None
        self._generation = 0
        self._listeners: List[Callable] = []

    @property
    def latest_token(self) -> int:
        return self._generation

    def subscribe(self, listener: Callable) -> Callable[[], None]:
        """Call ``listener(snapshot)`` after each applied snapshot."""
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def request(self, year: int) -> int:
        self._generation += 1
        return self._generation

    def resolve(self, token: int, snapshot) -> bool:
        """Apply a loaded snapshot if its request is still the latest."""
        if token != self._generation:
            logger.info("Discarding stale snapshot", year=snapshot.year, token=token,
                        latest=self._generation)
            return False

        data = snapshot.to_feature_collection()
        if self.engine.has_source(SOURCE_ID):
            self.engine.set_data(SOURCE_ID, data)
        else:
            self.engine.add_source(SOURCE_ID, data)
        if not self.engine.has_layer(FILL_LAYER_ID):
            self.engine.add_layer(fill_layer_spec())
            self.engine.add_layer(outline_layer_spec())

        self.current_year = snapshot.year
        self.current_snapshot = snapshot
        for listener in list(self._listeners):
            listener(snapshot)
        return True

    def show_year(self, year: int) -> bool:
        """Load a year and swap it onto the map; failures leave the map as is."""
        token = self.request(year)
        try:
            snapshot = self.loader.load(year)
        except LoadError as exc:
            logger.error("Failed to load geojson", year=year, error=str(exc.cause))
            return False
        return self.resolve(token, snapshot)
