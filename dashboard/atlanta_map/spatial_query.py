# atlanta_map/spatial_query.py - Hover tooltips from point queries
"""Answer "what is under the pointer" against the rendered neighborhood layer."""

import math
from dataclasses import dataclass
from html import escape
from typing import List, Optional, Sequence, Tuple

from .config import FILL_LAYER_ID
from .logging import get_logger

logger = get_logger(__name__)


def format_currency(value) -> str:
    """Whole-dollar currency with thousands separators, e.g. "$1,234,567"."""
    try:
        value = float(value)
    except (TypeError, ValueError):
        value = 0.0
    if math.isnan(value):
        value = 0.0
    return f"${int(value):,}"


@dataclass(frozen=True)
class TooltipContent:
    name: str
    avg_price: float
    median_price: float
    parcel_count: int

    @classmethod
    def from_feature(cls, feature: dict) -> "TooltipContent":
        properties = feature.get("properties") or {}
        return cls(
            name=properties.get("NAME", ""),
            avg_price=properties.get("avgprice") or 0,
            median_price=properties.get("medianprice") or 0,
            parcel_count=int(properties.get("parcels") or 0),
        )

    @property
    def avg_price_text(self) -> str:
        return format_currency(self.avg_price)

    @property
    def median_price_text(self) -> str:
        return format_currency(self.median_price)

    @property
    def parcels_text(self) -> str:
        return f"{self.parcel_count:,}"

    def row(self) -> List[str]:
        return [self.name, self.avg_price_text, self.median_price_text, self.parcels_text]

    def lines(self) -> List[str]:
        return [
            self.name,
            f"Avg Price: {self.avg_price_text}",
            f"Median Price: {self.median_price_text}",
            f"Parcels: {self.parcels_text}",
        ]

    def to_html(self) -> str:
        return (
            f"<strong>{escape(self.name)}</strong><br/>"
            f"Avg Price: {self.avg_price_text}<br/>"
            f"Median Price: {self.median_price_text}<br/>"
            f"Parcels: {self.parcels_text}"
        )


def tooltip_from_features(features: Sequence[dict]) -> Optional[TooltipContent]:
    """Tooltip for the topmost feature, or None when nothing is under the pointer."""
    if not features:
        return None
    return TooltipContent.from_feature(features[0])


def tooltip_at(engine, point, layer_ids: Sequence[str] = (FILL_LAYER_ID,)) -> Optional[TooltipContent]:
    if not all(engine.has_layer(layer_id) for layer_id in layer_ids):
        return None
    return tooltip_from_features(engine.query_features_at_point(point, list(layer_ids)))


class HoverTracker:
    """Bind pointer events on the map to tooltip content.

    ``current`` holds the tooltip to show; None means remove it. In the
    Streamlit app the browser renders hover through the Plotly
    ``hovertemplate`` built from :meth:`TooltipContent.row`, so this tracker
    only sees pointer events from hosts that forward them to the engine.
    """

    def __init__(self, engine, layer_id: str = FILL_LAYER_ID):
        self.engine = engine
        self.layer_id = layer_id
        self.current: Optional[TooltipContent] = None
        self.last_point: Optional[Tuple[float, float]] = None
        self._bound = False

    @property
    def is_bound(self) -> bool:
        return self._bound

    def bind(self) -> None:
        if self._bound:
            return
        self.engine.on("mousemove", self.on_pointer_move)
        self.engine.on("mouseleave", self.on_pointer_leave)
        self._bound = True

    def detach(self) -> None:
        if not self._bound:
            return
        self.engine.off("mousemove", self.on_pointer_move)
        self.engine.off("mouseleave", self.on_pointer_leave)
        self._bound = False
        self.current = None
        self.last_point = None

    def rebind(self, snapshot=None) -> Optional[TooltipContent]:
        """Re-evaluate the last pointer position against newly loaded data."""
        point = self.last_point
        self.detach()
        self.bind()
        if point is not None:
            return self.on_pointer_move(point)
        return None

    def on_pointer_move(self, point) -> Optional[TooltipContent]:
        self.last_point = tuple(point)
        self.current = tooltip_at(self.engine, point, (self.layer_id,))
        return self.current

    def on_pointer_leave(self, _payload=None) -> None:
        self.current = None
        self.last_point = None
