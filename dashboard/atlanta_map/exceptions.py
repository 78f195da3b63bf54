# atlanta_map/exceptions.py - Error taxonomy for the map engine
"""Custom exceptions for the Atlanta property map."""


class AtlasError(Exception):
    """Base exception for the atlanta_map package."""
    pass


class ConfigurationError(AtlasError):
    """Raised when configuration is invalid."""
    pass


class LoadError(AtlasError):
    """Raised when one year's dataset cannot be fetched or parsed."""

    def __init__(self, year, cause):
        self.year = year
        self.cause = cause
        super().__init__(f"Failed to load data for {year}: {cause}")


class NoDataError(AtlasError):
    """Raised when a neighborhood has no year with qualifying sales."""

    def __init__(self, name):
        self.name = name
        super().__init__(f"No residential sales recorded for {name!r}")


class SelectionLimitExceeded(AtlasError):
    """Raised when a comparison selection is larger than the allowed limit."""

    def __init__(self, requested, limit):
        self.requested = requested
        self.limit = limit
        super().__init__(
            f"Cannot compare {requested} neighborhoods (limit is {limit})"
        )
