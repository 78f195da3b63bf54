"""Unit tests for the Altair chart builders."""

import altair as alt
import pytest

from atlanta_map.chart_generator import (
    LEGEND_TITLE,
    create_comparison_price_chart,
    create_comparison_volume_chart,
    create_legend_chart,
    create_price_trend_chart,
    legend_frame,
    yearly_table,
)
from atlanta_map.color_scale import NO_DATA_COLOR
from atlanta_map.comparison import ComparisonSession
from atlanta_map.join_index import CrossYearIndex

pytestmark = pytest.mark.unit


@pytest.fixture
def index(loader):
    return CrossYearIndex(loader)


class TestDataSheetCharts:
    def test_price_trend_chart(self, index):
        chart = create_price_trend_chart(index.series_for("Adair Park"))
        spec = chart.to_dict()
        assert isinstance(chart, alt.LayerChart)
        assert spec["title"]["text"] == "Price Trends - Adair Park"
        assert len(spec["layer"]) == 2

    def test_yearly_table(self, index):
        table = yearly_table(index.series_for("Midtown"))
        assert list(table.columns) == ["Year", "Avg Price", "Median Price", "Sales Volume"]
        first = table.iloc[0]
        assert first["Year"] == "2016"
        assert first["Avg Price"] == "$300,000"
        assert first["Median Price"] == "$280,000"
        assert first["Sales Volume"] == 40
        assert len(table) == 9


class TestComparisonCharts:
    def test_lines_use_selection_colors(self, loader):
        session = ComparisonSession(CrossYearIndex(loader))
        session.select(["Adair Park", "Midtown"])
        series = session.build_series()

        price = create_comparison_price_chart(session.price_frame(series), session.colors()).to_dict()
        volume = create_comparison_volume_chart(session.volume_frame(series), session.colors()).to_dict()

        for spec in (price, volume):
            scale = spec["encoding"]["color"]["scale"]
            assert scale["domain"] == ["Adair Park", "Midtown"]
            assert scale["range"] == ["#8884d8", "#82ca9d"]
        assert volume["encoding"]["y"]["field"] == "parcel_count"


class TestLegend:
    def test_legend_frame_spans_ramp(self):
        frame = legend_frame(steps=50)
        assert len(frame) == 50
        assert frame["price_start"].iloc[0] == pytest.approx(50000)
        assert frame["price_end"].iloc[-1] == pytest.approx(2600000)
        assert NO_DATA_COLOR not in set(frame["color"])
        assert frame["color"].str.match(r"^#[0-9A-F]{6}$").all()

    def test_legend_chart(self):
        spec = create_legend_chart().to_dict()
        assert spec["title"]["text"] == LEGEND_TITLE == "Average Sale Price ($)"
        assert len(spec["layer"]) == 3
