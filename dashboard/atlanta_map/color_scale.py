# atlanta_map/color_scale.py - Fill ramp, legend stops and price axis
"""Map the log-price metric to colors.

The fill ramp runs over the metric domain 4.7-6.41 (log10 of $50k-$2.6M) and
the legend axis runs over the same prices on a log scale, so a tick's price
lands where its log10 sits on the ramp.
"""

import math
from dataclasses import dataclass
from typing import List, Tuple

from .config import FILL_LAYER_ID, OUTLINE_LAYER_ID, SOURCE_ID

METRIC_STOPS = (4.7, 5.0, 5.3, 5.6, 5.9, 6.2, 6.41)
RAMP_COLORS = ("#00007F", "#002EFF", "#00FFFF", "#7FFF00", "#FFFF00", "#FF7F00", "#FF0000")
NO_DATA_COLOR = "#999999"

PRICE_TICKS = (50000, 100000, 200000, 400000, 800000, 1600000, 2600000)
PRICE_DOMAIN = (50000, 2600000)

FILL_OPACITY = 0.6
OUTLINE_COLOR = "#555"
OUTLINE_WIDTH = 1

METRIC_PROPERTY = "avgprice_log10"

# Largest tolerated gap between the price axis and the fill ramp (fraction of width)
ALIGNMENT_TOLERANCE = 0.005


@dataclass(frozen=True)
class AxisTick:
    price: int
    position: float
    label: str


def _hex_to_rgb(color: str) -> Tuple[int, int, int]:
    color = color.lstrip("#")
    return tuple(int(color[i:i + 2], 16) for i in (0, 2, 4))


def _rgb_to_hex(rgb) -> str:
    return "#" + "".join(f"{channel:02X}" for channel in rgb)


def color_for(metric: float) -> str:
    """Color for a derived metric value.

    Negative values (the no-data marker) and NaN are gray; everything else is
    interpolated linearly in RGB between the ramp stops and clamped at the ends.
    """
    if metric is None or math.isnan(metric) or metric < 0:
        return NO_DATA_COLOR
    if metric <= METRIC_STOPS[0]:
        return RAMP_COLORS[0]
    if metric >= METRIC_STOPS[-1]:
        return RAMP_COLORS[-1]

    for i in range(len(METRIC_STOPS) - 1):
        low, high = METRIC_STOPS[i], METRIC_STOPS[i + 1]
        if low <= metric <= high:
            t = (metric - low) / (high - low)
            start = _hex_to_rgb(RAMP_COLORS[i])
            end = _hex_to_rgb(RAMP_COLORS[i + 1])
            return _rgb_to_hex(round(a + (b - a) * t) for a, b in zip(start, end))
    return RAMP_COLORS[-1]


def legend_gradient() -> List[Tuple[float, str]]:
    return list(zip(METRIC_STOPS, RAMP_COLORS))


def metric_position(metric: float) -> float:
    """Relative position (0..1) of a metric value along the ramp domain."""
    low, high = METRIC_STOPS[0], METRIC_STOPS[-1]
    return (metric - low) / (high - low)


def price_position(price: float) -> float:
    """Relative position (0..1) of a price on the log-scaled legend axis."""
    low, high = (math.log10(p) for p in PRICE_DOMAIN)
    return (math.log10(price) - low) / (high - low)


def gradient_offsets() -> List[Tuple[float, str]]:
    """Legend gradient stops placed where each metric stop sits on the ramp."""
    return [(metric_position(metric), color) for metric, color in legend_gradient()]


def format_price_tick(price: float) -> str:
    """Abbreviated currency label, e.g. 50000 -> "$50k", 1600000 -> "$1.6M"."""
    for suffix, scale in (("M", 1e6), ("k", 1e3)):
        if abs(price) >= scale:
            return f"${price / scale:.3g}{suffix}"
    return f"${price:.3g}"


def price_axis() -> List[AxisTick]:
    return [
        AxisTick(price=price, position=price_position(price), label=format_price_tick(price))
        for price in PRICE_TICKS
    ]


def axis_alignment_error() -> float:
    """Largest gap between where a tick price sits on the axis and on the ramp."""
    return max(
        abs(price_position(price) - metric_position(math.log10(price)))
        for price in PRICE_TICKS
    )


def fill_color_expression() -> list:
    """Paint expression: gray for the no-data marker, else the interpolated ramp."""
    ramp = ["interpolate", ["linear"], ["get", METRIC_PROPERTY]]
    for metric, color in legend_gradient():
        ramp.extend([metric, color])
    return ["case", ["<", ["get", METRIC_PROPERTY], 0], NO_DATA_COLOR, ramp]


def fill_layer_spec() -> dict:
    return {
        "id": FILL_LAYER_ID,
        "type": "fill",
        "source": SOURCE_ID,
        "paint": {
            "fill-color": fill_color_expression(),
            "fill-opacity": FILL_OPACITY,
        },
    }


def outline_layer_spec() -> dict:
    return {
        "id": OUTLINE_LAYER_ID,
        "type": "line",
        "source": SOURCE_ID,
        "paint": {
            "line-color": OUTLINE_COLOR,
            "line-width": OUTLINE_WIDTH,
        },
    }


def plotly_colorscale() -> List[List]:
    return [[offset, color] for offset, color in gradient_offsets()]
