# atlanta_map/data_loader.py - Yearly snapshot loading and caching
"""Fetch, parse and cache one neighborhood dataset per year.

Each year is published as a GeoJSON feature collection (``atlanta_<year>.geojson``)
whose features carry ``NAME``, ``avgprice``, ``medianprice`` and ``parcels``
properties. A parsed year is a :class:`Snapshot`; the :class:`SnapshotLoader`
is the only owner of the year -> snapshot cache.
"""

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Protocol

import geopandas as gpd
import numpy as np
import pandas as pd
import requests
from shapely.errors import ShapelyError
from shapely.geometry import mapping, shape

from .config import YEAR_MAX, YEAR_MIN, AppConfig
from .exceptions import LoadError
from .logging import get_logger

logger = get_logger(__name__)

# Marker for "no qualifying residential sales" in the derived metric
NO_DATA_METRIC = -1.0

COLUMNS = ["name", "avg_price", "median_price", "parcel_count", "derived_metric", "geometry"]


def dataset_filename(year: int, pattern: str = "atlanta_{year}.geojson") -> str:
    """Build the dataset filename for a year."""
    return pattern.format(year=int(year))


def validate_year(year: int, years: Iterable[int] = range(YEAR_MIN, YEAR_MAX + 1)) -> int:
    if int(year) not in set(years):
        raise ValueError(f"Year {year} is outside the published range")
    return int(year)


def derive_metric(avg_price):
    """log10 of the average price, or NO_DATA_METRIC where there were no sales.

    Accepts a scalar or any array-like; a scalar input returns a float.
    """
    prices = np.asarray(avg_price, dtype=float)
    metric = np.full(prices.shape, NO_DATA_METRIC)
    positive = prices > 0
    metric[positive] = np.log10(prices[positive])
    if metric.ndim == 0:
        return float(metric)
    return metric


@dataclass(frozen=True)
class NeighborhoodRecord:
    """One neighborhood's sale statistics for one year."""

    name: str
    avg_price: float
    median_price: float
    parcel_count: int
    geometry: object
    derived_metric: float

    @property
    def has_sales(self) -> bool:
        return self.avg_price > 0


@dataclass(frozen=True, eq=False)
class Snapshot:
    """All neighborhood records for a single year."""

    year: int
    frame: gpd.GeoDataFrame
    _positions: Dict[str, int] = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        positions = {}
        for position, name in enumerate(self.frame["name"]):
            if name in positions:
                logger.warning("Duplicate neighborhood name", year=self.year, name=name)
                continue
            positions[name] = position
        object.__setattr__(self, "_positions", positions)

    def __len__(self) -> int:
        return len(self.frame)

    def __contains__(self, name) -> bool:
        return name in self._positions

    def names(self) -> List[str]:
        return sorted(self._positions)

    def record(self, name: str) -> Optional[NeighborhoodRecord]:
        """Look up a neighborhood by exact name (first occurrence wins)."""
        position = self._positions.get(name)
        if position is None:
            return None
        row = self.frame.iloc[position]
        return NeighborhoodRecord(
            name=row["name"],
            avg_price=float(row["avg_price"]),
            median_price=float(row["median_price"]),
            parcel_count=int(row["parcel_count"]),
            geometry=row["geometry"],
            derived_metric=float(row["derived_metric"]),
        )

    def records(self) -> List[NeighborhoodRecord]:
        return [self.record(name) for name in self._positions]

    def to_feature_collection(self) -> dict:
        """GeoJSON for the map source, using the published property names."""
        features = []
        for row in self.frame.itertuples(index=False):
            features.append({
                "type": "Feature",
                "properties": {
                    "NAME": row.name,
                    "avgprice": float(row.avg_price),
                    "medianprice": float(row.median_price),
                    "parcels": int(row.parcel_count),
                    "avgprice_log10": float(row.derived_metric),
                },
                "geometry": mapping(row.geometry) if row.geometry is not None else None,
            })
        return {"type": "FeatureCollection", "features": features}


def _number_column(values) -> pd.Series:
    """Numeric column where absent, non-numeric or non-finite values become 0."""
    numbers = pd.to_numeric(pd.Series(values, dtype=object), errors="coerce")
    return numbers.replace([np.inf, -np.inf], np.nan).fillna(0)


def parse_snapshot(year: int, payload) -> Snapshot:
    """Parse one year's feature collection into a Snapshot.

    Args:
        year: Dataset year
        payload: Raw bytes/str of the document, or an already decoded dict

    Returns:
        Snapshot with normalized columns and the derived metric attached

    Raises:
        LoadError: If the payload is not a usable feature collection
    """
    try:
        document = json.loads(payload) if isinstance(payload, (bytes, str)) else payload
    except ValueError as exc:
        raise LoadError(year, f"invalid JSON: {exc}")

    if not isinstance(document, dict) or document.get("type") != "FeatureCollection":
        raise LoadError(year, "payload is not a GeoJSON FeatureCollection")
    features = document.get("features")
    if not isinstance(features, list):
        raise LoadError(year, "feature collection has no 'features' list")

    names, avg, median, parcels, geometries = [], [], [], [], []
    for i, feature in enumerate(features):
        if not isinstance(feature, dict):
            raise LoadError(year, f"feature {i} is not an object")
        properties = feature.get("properties") or {}
        if not isinstance(properties, dict):
            raise LoadError(year, f"feature {i} properties are not an object")
        name = properties.get("NAME")
        if not isinstance(name, str) or not name:
            raise LoadError(year, f"feature {i} has no NAME")
        try:
            geometry = shape(feature["geometry"]) if feature.get("geometry") else None
        except (KeyError, TypeError, ValueError, AttributeError, ShapelyError) as exc:
            raise LoadError(year, f"feature {name!r} has invalid geometry: {exc}")

        names.append(name)
        avg.append(properties.get("avgprice"))
        median.append(properties.get("medianprice"))
        parcels.append(properties.get("parcels"))
        geometries.append(geometry)

    try:
        avg_price = _number_column(avg).astype(float)
        frame = gpd.GeoDataFrame(
            {
                "name": names,
                "avg_price": avg_price,
                "median_price": _number_column(median).astype(float),
                "parcel_count": _number_column(parcels).astype(int),
                "derived_metric": derive_metric(avg_price.to_numpy()),
            },
            geometry=gpd.GeoSeries(geometries, crs="EPSG:4326"),
        )
    except (ValueError, TypeError, OverflowError) as exc:
        raise LoadError(year, f"unusable feature values: {exc}")
    return Snapshot(year=int(year), frame=frame[COLUMNS])


class Fetcher(Protocol):
    def fetch(self, filename: str) -> bytes: ...


class FileFetcher:
    """Read yearly datasets from a local directory."""

    def __init__(self, directory):
        self.directory = Path(directory)

    def fetch(self, filename: str) -> bytes:
        return (self.directory / filename).read_bytes()

    def __repr__(self):
        return f"FileFetcher({str(self.directory)!r})"


class HttpFetcher:
    """Download yearly datasets from a static file host."""

    def __init__(self, base_url: str, timeout: float = 30.0, session=None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    def fetch(self, filename: str) -> bytes:
        resp = self.session.get(f"{self.base_url}/{filename}", timeout=self.timeout)
        resp.raise_for_status()
        return resp.content

    def __repr__(self):
        return f"HttpFetcher({self.base_url!r})"


def make_fetcher(config: AppConfig):
    if config.is_remote:
        return HttpFetcher(config.data_source, timeout=config.request_timeout)
    return FileFetcher(config.data_directory())


class SnapshotLoader:
    """Load snapshots on first access and cache them for the session."""

    def __init__(self, fetcher, years: Iterable[int] = range(YEAR_MIN, YEAR_MAX + 1),
                 pattern: str = "atlanta_{year}.geojson"):
        self.fetcher = fetcher
        self.years = tuple(years)
        self.pattern = pattern
        self.fetch_count = 0
        self._cache: Dict[int, Snapshot] = {}

    @classmethod
    def from_config(cls, config: AppConfig) -> "SnapshotLoader":
        return cls(make_fetcher(config), years=config.years, pattern=config.filename_pattern)

    def load(self, year: int) -> Snapshot:
        """Return the snapshot for a year, fetching it at most once.

        Raises:
            ValueError: If the year is outside the published range
            LoadError: If fetching or parsing fails (failures are not cached)
        """
        year = validate_year(year, self.years)
        cached = self._cache.get(year)
        if cached is not None:
            logger.debug("Snapshot cache hit", year=year)
            return cached

        filename = dataset_filename(year, self.pattern)
        logger.info("Fetching snapshot", year=year, source=repr(self.fetcher), filename=filename)
        self.fetch_count += 1
        try:
            payload = self.fetcher.fetch(filename)
        except (OSError, requests.RequestException) as exc:
            raise LoadError(year, exc)

        snapshot = parse_snapshot(year, payload)
        self._cache[year] = snapshot
        logger.info("Snapshot loaded", year=year, neighborhoods=len(snapshot))
        return snapshot

    def peek(self, year: int) -> Optional[Snapshot]:
        return self._cache.get(year)

    def is_loaded(self, year: int) -> bool:
        return year in self._cache

    def loaded_years(self) -> List[int]:
        return sorted(self._cache)

    def invalidate(self, year: Optional[int] = None) -> None:
        """Drop one cached year, or every year when none is given."""
        if year is None:
            self._cache.clear()
        else:
            self._cache.pop(year, None)
