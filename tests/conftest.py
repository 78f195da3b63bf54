"""Pytest configuration and shared fixtures."""

import json
from pathlib import Path

import pytest

from atlanta_map.config import YEAR_MAX, YEAR_MIN
from atlanta_map.data_loader import SnapshotLoader, dataset_filename

YEARS = list(range(YEAR_MIN, YEAR_MAX + 1))


def square(lon, lat, size=0.02):
    """Closed square polygon ring with its south-west corner at (lon, lat)."""
    return {
        "type": "Polygon",
        "coordinates": [[
            [lon, lat], [lon + size, lat], [lon + size, lat + size],
            [lon, lat + size], [lon, lat],
        ]],
    }


def feature(name, avgprice, medianprice=None, parcels=0, geometry=None):
    properties = {"NAME": name, "avgprice": avgprice, "parcels": parcels}
    if medianprice is not None:
        properties["medianprice"] = medianprice
    return {
        "type": "Feature",
        "properties": properties,
        "geometry": geometry or square(-84.40, 33.77),
    }


def collection(features):
    return {"type": "FeatureCollection", "features": list(features)}


MIDTOWN = square(-84.40, 33.77)
ADAIR_PARK = square(-84.42, 33.72)
VINE_CITY = square(-84.42, 33.75)


def atlanta_year(year):
    """Synthetic snapshot: Midtown sells every year, Adair Park skips 2016 and 2018,
    Vine City never has a qualifying sale."""
    offset = year - YEAR_MIN
    adair_price = 0 if year in (2016, 2018) else 150000 + 5000 * offset
    return collection([
        feature("Midtown", 300000 + 10000 * offset, 280000 + 10000 * offset, 40 + offset, MIDTOWN),
        feature("Adair Park", adair_price, adair_price * 0.9, 0 if adair_price == 0 else 12, ADAIR_PARK),
        feature("Vine City", 0, 0, 0, VINE_CITY),
    ])


class CountingFetcher:
    """In-memory fetcher that records every fetch and can fail on demand."""

    def __init__(self, documents, failing=()):
        self.documents = documents
        self.failing = set(failing)
        self.calls = []

    def fetch(self, filename):
        self.calls.append(filename)
        if filename in self.failing or filename not in self.documents:
            raise OSError(f"HTTP 404 for {filename}")
        document = self.documents[filename]
        if isinstance(document, (bytes, str)):
            return document
        return json.dumps(document).encode("utf-8")


class ManualClock:
    """Deterministic clock for the playback scheduler."""

    def __init__(self, start=0.0):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


@pytest.fixture
def documents():
    """Yearly documents keyed by dataset filename."""
    return {dataset_filename(year): atlanta_year(year) for year in YEARS}


@pytest.fixture
def fetcher(documents):
    return CountingFetcher(documents)


@pytest.fixture
def loader(fetcher):
    return SnapshotLoader(fetcher)


@pytest.fixture
def data_dir(tmp_path, documents) -> Path:
    """Directory with one GeoJSON file per year."""
    for filename, document in documents.items():
        (tmp_path / filename).write_text(json.dumps(document), encoding="utf-8")
    return tmp_path


@pytest.fixture
def clock():
    return ManualClock()


@pytest.fixture
def make_fetcher():
    """Factory for fetchers over custom documents."""
    return CountingFetcher


@pytest.fixture
def make_feature():
    return feature


@pytest.fixture
def make_collection():
    return collection


@pytest.fixture
def make_square():
    return square
