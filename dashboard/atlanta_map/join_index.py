# atlanta_map/join_index.py - Per-neighborhood series across yearly snapshots
"""Join neighborhood records across years by name."""

from dataclasses import dataclass
from typing import Dict, Iterable, Iterator, List, Optional, Tuple

import pandas as pd

from .config import YEAR_MAX, YEAR_MIN
from .exceptions import LoadError, NoDataError
from .logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class SeriesPoint:
    year: int
    avg_price: float
    median_price: float
    parcel_count: int


@dataclass(frozen=True)
class SeriesSummary:
    """Headline numbers for the neighborhood data sheet."""

    start_year: int
    end_year: int
    latest_avg_price: float
    total_parcels: int
    avg_price_change_pct: Optional[float]


@dataclass(frozen=True)
class NeighborhoodSeries:
    """Yearly sale statistics for one neighborhood, ascending by year.

    Only years with qualifying sales (``avg_price > 0``) are present, so the
    series may be shorter than the year range or empty.
    """

    name: str
    points: Tuple[SeriesPoint, ...] = ()

    def __post_init__(self):
        years = [p.year for p in self.points]
        if any(b <= a for a, b in zip(years, years[1:])):
            raise ValueError(f"Series years must be strictly ascending: {years}")
        if any(p.avg_price <= 0 for p in self.points):
            raise ValueError("Series points must have a positive average price")

    def __len__(self) -> int:
        return len(self.points)

    def __iter__(self) -> Iterator[SeriesPoint]:
        return iter(self.points)

    @property
    def years(self) -> List[int]:
        return [p.year for p in self.points]

    @property
    def is_empty(self) -> bool:
        return not self.points

    def point_for(self, year: int) -> Optional[SeriesPoint]:
        for point in self.points:
            if point.year == year:
                return point
        return None

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame(
            [
                {
                    "year": p.year,
                    "avg_price": p.avg_price,
                    "median_price": p.median_price,
                    "parcel_count": p.parcel_count,
                }
                for p in self.points
            ],
            columns=["year", "avg_price", "median_price", "parcel_count"],
        )

    def summary(self) -> SeriesSummary:
        """Summarize the series.

        Raises:
            NoDataError: If the neighborhood has no year with sales
        """
        if self.is_empty:
            raise NoDataError(self.name)
        first, last = self.points[0], self.points[-1]
        change = None
        if len(self.points) > 1:
            change = (last.avg_price - first.avg_price) / first.avg_price * 100
        return SeriesSummary(
            start_year=first.year,
            end_year=last.year,
            latest_avg_price=last.avg_price,
            total_parcels=sum(p.parcel_count for p in self.points),
            avg_price_change_pct=change,
        )


class CrossYearIndex:
    """Look up a neighborhood in every year's snapshot."""

    def __init__(self, loader, years: Iterable[int] = range(YEAR_MIN, YEAR_MAX + 1)):
        self.loader = loader
        self.years = tuple(sorted(years))
        self._series: Dict[str, NeighborhoodSeries] = {}

    def series_for(self, name: str) -> NeighborhoodSeries:
        """Build the series for a neighborhood, skipping years without sales.

        A year whose snapshot fails to load is left out of the series.
        """
        cached = self._series.get(name)
        if cached is not None:
            return cached

        points = []
        complete = True
        for year in self.years:
            try:
                snapshot = self.loader.load(year)
            except LoadError as exc:
                logger.error("Skipping year in series", name=name, year=year, error=str(exc.cause))
                complete = False
                continue
            record = snapshot.record(name)
            if record is None or not record.has_sales:
                continue
            points.append(SeriesPoint(
                year=year,
                avg_price=record.avg_price,
                median_price=record.median_price,
                parcel_count=record.parcel_count,
            ))

        series = NeighborhoodSeries(name=name, points=tuple(points))
        # A partial series is rebuilt next time so a recovered year can fill in
        if complete:
            self._series[name] = series
        logger.debug("Built neighborhood series", name=name, years=series.years)
        return series

    def neighborhood_names(self, year: int) -> List[str]:
        """Sorted neighborhood names of one year's snapshot."""
        try:
            return self.loader.load(year).names()
        except LoadError as exc:
            logger.error("Failed to load neighborhood names", year=year, error=str(exc.cause))
            return []
