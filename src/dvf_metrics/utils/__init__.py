"""Shared utilities for dvf-metrics."""

from .exceptions import (
    DVFError,
    ConfigurationError,
    IngestionError,
    SchemaMismatchError,
    FilterError,
    AggregationError,
)
from .logging import configure_logging, get_logger

__all__ = [
    "DVFError",
    "ConfigurationError",
    "IngestionError",
    "SchemaMismatchError",
    "FilterError",
    "AggregationError",
    "configure_logging",
    "get_logger",
]
