"""Unit tests for the cross-year join index."""

import pytest

from atlanta_map.data_loader import SnapshotLoader, dataset_filename
from atlanta_map.exceptions import NoDataError
from atlanta_map.join_index import CrossYearIndex, NeighborhoodSeries, SeriesPoint

pytestmark = pytest.mark.unit


class TestSeriesFor:
    """Test building one neighborhood's series."""

    def test_skips_years_without_sales(self, make_fetcher, make_feature, make_collection):
        documents = {
            dataset_filename(2016): make_collection([make_feature("Grove Park", 0, 0, 0)]),
            dataset_filename(2017): make_collection([make_feature("Grove Park", 300000, 250000, 9)]),
            dataset_filename(2018): make_collection([make_feature("Grove Park", 0, 0, 0)]),
        }
        loader = SnapshotLoader(make_fetcher(documents), years=(2016, 2017, 2018))
        index = CrossYearIndex(loader, years=(2016, 2017, 2018))

        series = index.series_for("Grove Park")

        assert series.points == (SeriesPoint(2017, 300000, 250000, 9),)

    def test_years_are_strictly_ascending(self, loader):
        series = CrossYearIndex(loader).series_for("Midtown")
        assert series.years == list(range(2016, 2025))
        assert series.points[0].avg_price == 300000
        assert series.points[-1].parcel_count == 48

    def test_gaps_are_omitted_not_filled(self, loader):
        series = CrossYearIndex(loader).series_for("Adair Park")
        assert series.years == [2017, 2019, 2020, 2021, 2022, 2023, 2024]
        assert all(point.avg_price > 0 for point in series)

    def test_unknown_and_no_sale_neighborhoods_are_empty(self, loader):
        index = CrossYearIndex(loader)
        assert index.series_for("Vine City").is_empty
        assert len(index.series_for("Atlantis")) == 0

    def test_failed_year_is_omitted(self, documents, make_fetcher):
        fetcher = make_fetcher(documents, failing={"atlanta_2020.geojson"})
        index = CrossYearIndex(SnapshotLoader(fetcher))

        series = index.series_for("Midtown")

        assert 2020 not in series.years
        assert len(series) == 8

    @pytest.mark.parametrize("bad_feature", [
        {"type": "Feature", "properties": "Midtown", "geometry": None},
        {"type": "Feature", "properties": {"NAME": "Midtown"},
         "geometry": {"type": "circle", "coordinates": [-84.4, 33.77]}},
    ])
    def test_malformed_year_is_omitted(self, documents, make_fetcher, make_collection, bad_feature):
        documents["atlanta_2020.geojson"] = make_collection([bad_feature])
        index = CrossYearIndex(SnapshotLoader(make_fetcher(documents)))

        series = index.series_for("Midtown")

        assert 2020 not in series.years
        assert len(series) == 8
        assert index.neighborhood_names(2020) == []

    def test_partial_series_is_rebuilt_after_recovery(self, documents, make_fetcher):
        fetcher = make_fetcher(documents, failing={"atlanta_2020.geojson"})
        index = CrossYearIndex(SnapshotLoader(fetcher))
        assert 2020 not in index.series_for("Midtown").years

        fetcher.failing.clear()
        assert 2020 in index.series_for("Midtown").years

    def test_complete_series_is_memoized(self, loader, fetcher):
        index = CrossYearIndex(loader)
        first = index.series_for("Midtown")
        assert index.series_for("Midtown") is first
        assert len(fetcher.calls) == 9

    def test_loads_each_year_once_across_neighborhoods(self, loader, fetcher):
        index = CrossYearIndex(loader)
        index.series_for("Midtown")
        index.series_for("Adair Park")
        assert sorted(fetcher.calls) == sorted(set(fetcher.calls))


class TestNeighborhoodNames:
    def test_names_are_sorted(self, loader):
        assert CrossYearIndex(loader).neighborhood_names(2023) == ["Adair Park", "Midtown", "Vine City"]

    def test_failed_catalog_is_empty(self, documents, make_fetcher):
        fetcher = make_fetcher(documents, failing={"atlanta_2023.geojson"})
        assert CrossYearIndex(SnapshotLoader(fetcher)).neighborhood_names(2023) == []


class TestNeighborhoodSeries:
    """Test the series value object."""

    def test_rejects_unordered_points(self):
        with pytest.raises(ValueError):
            NeighborhoodSeries("Midtown", (SeriesPoint(2018, 1, 1, 1), SeriesPoint(2017, 1, 1, 1)))
        with pytest.raises(ValueError):
            NeighborhoodSeries("Midtown", (SeriesPoint(2018, 1, 1, 1), SeriesPoint(2018, 2, 2, 2)))

    def test_rejects_non_positive_price(self):
        with pytest.raises(ValueError):
            NeighborhoodSeries("Midtown", (SeriesPoint(2018, 0, 0, 0),))

    def test_summary(self, loader):
        summary = CrossYearIndex(loader).series_for("Midtown").summary()
        assert summary.start_year == 2016
        assert summary.end_year == 2024
        assert summary.latest_avg_price == 380000
        assert summary.total_parcels == sum(range(40, 49))
        assert summary.avg_price_change_pct == pytest.approx(80000 / 300000 * 100)

    def test_summary_of_single_year_has_no_change(self):
        summary = NeighborhoodSeries("Midtown", (SeriesPoint(2019, 5, 4, 1),)).summary()
        assert summary.avg_price_change_pct is None

    def test_empty_series_summary_raises_no_data(self):
        with pytest.raises(NoDataError) as excinfo:
            NeighborhoodSeries("Vine City").summary()
        assert excinfo.value.name == "Vine City"

    def test_to_frame(self, loader):
        frame = CrossYearIndex(loader).series_for("Adair Park").to_frame()
        assert list(frame.columns) == ["year", "avg_price", "median_price", "parcel_count"]
        assert frame["year"].tolist() == [2017, 2019, 2020, 2021, 2022, 2023, 2024]
        assert NeighborhoodSeries("Vine City").to_frame().empty
