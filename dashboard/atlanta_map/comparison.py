# atlanta_map/comparison.py - Multi-neighborhood comparison series
"""Build parallel price and sales-volume series for up to five neighborhoods."""

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Sequence, Tuple

import pandas as pd

from .config import COMPARE_PALETTE, MAX_COMPARE, YEAR_MAX, YEAR_MIN
from .exceptions import SelectionLimitExceeded
from .join_index import NeighborhoodSeries
from .logging import get_logger

logger = get_logger(__name__)

COMPARE_PAGE = "pages/2_📈_Compare_Neighborhoods.py"
DATA_SHEET_PAGE = "pages/1_🏘️_Neighborhood_Data_Sheet.py"


@dataclass(frozen=True)
class NavigationRequest:
    page: str
    params: Dict[str, str] = field(default_factory=dict)


def compare_request(primary: str) -> NavigationRequest:
    return NavigationRequest(page=COMPARE_PAGE, params={"primary": primary})


def data_sheet_request(name: str) -> NavigationRequest:
    return NavigationRequest(page=DATA_SHEET_PAGE, params={"name": name})


class ComparisonSession:
    """Ordered selection of neighborhoods and their charting projections."""

    def __init__(self, index, max_selected: int = MAX_COMPARE,
                 palette: Sequence[str] = COMPARE_PALETTE,
                 years: Iterable[int] = range(YEAR_MIN, YEAR_MAX + 1)):
        self.index = index
        self.max_selected = max_selected
        self.palette = tuple(palette)
        self.years = tuple(sorted(years))
        self._selected: Tuple[str, ...] = ()

    @property
    def selected(self) -> Tuple[str, ...]:
        return self._selected

    def _validate(self, names: Sequence[str]) -> Tuple[str, ...]:
        ordered = tuple(dict.fromkeys(names))
        if len(ordered) > self.max_selected:
            raise SelectionLimitExceeded(len(ordered), self.max_selected)
        return ordered

    def select(self, names: Sequence[str]) -> bool:
        """Replace the selection; a selection over the limit is ignored."""
        try:
            self._selected = self._validate(names)
        except SelectionLimitExceeded as exc:
            logger.warning("Rejected comparison selection", requested=exc.requested, limit=exc.limit)
            return False
        return True

    def add(self, name: str) -> bool:
        if name in self._selected:
            return True
        return self.select(self._selected + (name,))

    def remove(self, name: str) -> None:
        self._selected = tuple(n for n in self._selected if n != name)

    def clear(self) -> None:
        self._selected = ()

    def keep_only(self, available: Iterable[str]) -> Tuple[str, ...]:
        """Drop selected names the selector cannot offer; returns the dropped ones."""
        available = set(available)
        dropped = tuple(n for n in self._selected if n not in available)
        if dropped:
            logger.warning("Dropped neighborhoods missing from catalog", names=list(dropped))
            self._selected = tuple(n for n in self._selected if n in available)
        return dropped

    def colors(self) -> Dict[str, str]:
        """Line color per neighborhood, by selection order."""
        return {
            name: self.palette[i % len(self.palette)]
            for i, name in enumerate(self._selected)
        }

    def build_series(self) -> Dict[str, NeighborhoodSeries]:
        return {name: self.index.series_for(name) for name in self._selected}

    def price_frame(self, series: Dict[str, NeighborhoodSeries] = None) -> pd.DataFrame:
        """Average price per neighborhood and year; years without sales are left out."""
        series = self.build_series() if series is None else series
        rows = []
        for name in self._selected:
            for point in series[name]:
                rows.append({"year": point.year, "neighborhood": name, "avg_price": point.avg_price})
        return pd.DataFrame(rows, columns=["year", "neighborhood", "avg_price"])

    def volume_frame(self, series: Dict[str, NeighborhoodSeries] = None) -> pd.DataFrame:
        """Parcel counts over the full year axis, zero where there were no sales."""
        series = self.build_series() if series is None else series
        rows: List[dict] = []
        for name in self._selected:
            counts = {point.year: point.parcel_count for point in series[name]}
            for year in self.years:
                rows.append({"year": year, "neighborhood": name, "parcel_count": counts.get(year, 0)})
        return pd.DataFrame(rows, columns=["year", "neighborhood", "parcel_count"])
