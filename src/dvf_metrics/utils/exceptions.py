"""Custom exceptions for dvf-metrics."""

from typing import Sequence


class DVFError(Exception):
    """Base exception for dvf-metrics package."""
    pass


class ConfigurationError(DVFError):
    """Raised when configuration is missing or invalid."""
    pass


class IngestionError(DVFError):
    """Raised when the dataset of one year cannot be fetched or decoded."""

    def __init__(self, message: str, year: int | None = None):
        super().__init__(message)
        self.year = year


class SchemaMismatchError(IngestionError):
    """Raised when an upstream header does not match the expected column layout."""
    pass


class FilterError(DVFError):
    """Raised when user filter input cannot be turned into filters."""
    pass


class AggregationError(DVFError):
    """Raised when one of the metric reducers fails.

    No partial metric is ever returned alongside this error.
    """

    def __init__(self, message: str, causes: Sequence[BaseException] = ()):
        super().__init__(message)
        self.causes = tuple(causes)
