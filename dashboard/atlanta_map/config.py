"""Configuration management for the Atlanta property map."""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional, Tuple

from .exceptions import ConfigurationError

# Fixed year range of the published datasets
YEAR_MIN = 2016
YEAR_MAX = 2024
DEFAULT_YEAR = 2024

# Map source/layer identifiers
SOURCE_ID = "nbhd"
FILL_LAYER_ID = "nbhd-fill"
OUTLINE_LAYER_ID = "nbhd-outline"

# Initial map view
MAP_CENTER = {"lat": 33.765, "lon": -84.41}
MAP_ZOOM = 10.2

# Comparison line colors, assigned by selection order
COMPARE_PALETTE = ("#8884d8", "#82ca9d", "#ff7300", "#ff6384", "#36a2eb")
MAX_COMPARE = 5

DASHBOARD_DIR = Path(__file__).resolve().parent.parent

ENV_PREFIX = "ATLANTA_MAP_"


@dataclass
class AppConfig:
    """Settings for one dashboard session."""

    data_source: str = "data"
    filename_pattern: str = "atlanta_{year}.geojson"

    start_year: int = YEAR_MIN
    end_year: int = YEAR_MAX
    initial_year: int = DEFAULT_YEAR
    catalog_year: int = 2023

    play_interval: float = 1.0
    max_compare: int = MAX_COMPARE
    request_timeout: float = 30.0

    log_level: str = "INFO"
    json_logs: bool = False

    def __post_init__(self) -> None:
        """Validate configuration after initialization."""
        self._validate_years()
        self._validate_source()
        self._validate_limits()

    def _validate_years(self) -> None:
        if self.start_year < YEAR_MIN or self.end_year > YEAR_MAX:
            raise ConfigurationError(
                f"Year range must lie within {YEAR_MIN}-{YEAR_MAX}, "
                f"got {self.start_year}-{self.end_year}"
            )
        if self.start_year > self.end_year:
            raise ConfigurationError("Start year must not be after end year")
        for label, year in (("initial", self.initial_year), ("catalog", self.catalog_year)):
            if not self.start_year <= year <= self.end_year:
                raise ConfigurationError(
                    f"The {label} year {year} is outside "
                    f"{self.start_year}-{self.end_year}"
                )

    def _validate_source(self) -> None:
        if not self.data_source:
            raise ConfigurationError("A data source directory or URL is required")
        if "{year}" not in self.filename_pattern:
            raise ConfigurationError(
                f"Filename pattern must contain '{{year}}': {self.filename_pattern}"
            )

    def _validate_limits(self) -> None:
        if self.play_interval <= 0:
            raise ConfigurationError("Play interval must be positive")
        if self.max_compare < 1:
            raise ConfigurationError("At least one neighborhood must be comparable")
        if self.request_timeout <= 0:
            raise ConfigurationError("Request timeout must be positive")
        if self.log_level.upper() not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ConfigurationError(f"Unknown log level: {self.log_level}")

    @property
    def years(self) -> Tuple[int, ...]:
        return tuple(range(self.start_year, self.end_year + 1))

    @property
    def is_remote(self) -> bool:
        return self.data_source.startswith(("http://", "https://"))

    def data_directory(self) -> Path:
        """Resolve a local data source against the dashboard directory."""
        path = Path(self.data_source)
        if not path.is_absolute():
            path = DASHBOARD_DIR / path
        return path


def _env_number(environ, key, cast):
    raw = environ.get(ENV_PREFIX + key)
    if raw is None or raw == "":
        return None
    try:
        return cast(raw)
    except ValueError:
        raise ConfigurationError(f"{ENV_PREFIX}{key} must be a number, got {raw!r}")


def load_config(environ: Optional[Mapping[str, str]] = None) -> AppConfig:
    """Build the configuration from ATLANTA_MAP_* environment variables."""
    if environ is None:
        environ = os.environ

    kwargs = {}
    for key, field_name in (
        ("DATA_SOURCE", "data_source"),
        ("FILENAME_PATTERN", "filename_pattern"),
        ("LOG_LEVEL", "log_level"),
    ):
        value = environ.get(ENV_PREFIX + key)
        if value:
            kwargs[field_name] = value

    for key, field_name, cast in (
        ("INITIAL_YEAR", "initial_year", int),
        ("CATALOG_YEAR", "catalog_year", int),
        ("MAX_COMPARE", "max_compare", int),
        ("PLAY_INTERVAL", "play_interval", float),
        ("REQUEST_TIMEOUT", "request_timeout", float),
    ):
        value = _env_number(environ, key, cast)
        if value is not None:
            kwargs[field_name] = value

    json_logs = environ.get(ENV_PREFIX + "JSON_LOGS", "")
    if json_logs:
        kwargs["json_logs"] = json_logs.strip().lower() in ("1", "true", "yes", "on")

    return AppConfig(**kwargs)
