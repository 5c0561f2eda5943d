"""Filtering and metric aggregation."""

from .filters import (
    matches,
    matches_geography,
    matches_scalars,
    select_year,
    filter_transactions,
    build_user_filters,
)
from .metrics import (
    Reducer,
    default_reducers,
    median,
    compute_metrics,
    run_metrics,
)

__all__ = [
    "matches",
    "matches_geography",
    "matches_scalars",
    "select_year",
    "filter_transactions",
    "build_user_filters",
    "Reducer",
    "default_reducers",
    "median",
    "compute_metrics",
    "run_metrics",
]
