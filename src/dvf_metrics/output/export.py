"""
Tabular export of metrics and transactions using Polars.

A metrics report becomes a one-row DataFrame, with the filters that
produced it as extra columns, and is written as CSV or Parquet.
"""

from pathlib import Path
from typing import Iterable, Optional, Union

import polars as pl

from ..domain.models import Metric, Transaction, UserFilters
from ..utils.logging import get_logger

logger = get_logger(__name__)

METRIC_SCHEMA = {
    "average_price": pl.Float64,
    "average_price_per_square_meter": pl.Float64,
    "average_room_count": pl.Float64,
    "average_constructed_area": pl.Float64,
    "average_land_area": pl.Float64,
    "median_transaction_amount": pl.Float64,
    "transaction_count": pl.Int64,
    "percent_maison": pl.Float64,
    "percent_appartement": pl.Float64,
}

FILTER_SCHEMA = {
    "year": pl.Int64,
    "min_amount": pl.Float64,
    "max_amount": pl.Float64,
    "property_type": pl.String,
    "city": pl.String,
    "department": pl.String,
}

TRANSACTION_SCHEMA = {
    "date": pl.Date,
    "nature": pl.String,
    "amount": pl.Float64,
    "category": pl.String,
    "rooms": pl.Int64,
    "constructed_area": pl.Int64,
    "land_area": pl.Int64,
    "number": pl.Int64,
    "suffix": pl.String,
    "street": pl.String,
    "postal_code": pl.String,
    "city": pl.String,
    "department_code": pl.String,
    "latitude": pl.Float64,
    "longitude": pl.Float64,
}


def metric_to_frame(metric: Metric, filters: Optional[UserFilters] = None) -> pl.DataFrame:
    """One-row DataFrame of ``metric``, prefixed by the filter columns when given."""
    row = metric.to_dict()
    schema = dict(METRIC_SCHEMA)
    if filters is not None:
        row = {**filters.describe(), **row}
        schema = {**FILTER_SCHEMA, **schema}
    return pl.DataFrame([row], schema=schema)


def transactions_to_frame(transactions: Iterable[Transaction]) -> pl.DataFrame:
    """Flatten transactions into a DataFrame, one row each."""
    rows = []
    for t in transactions:
        location = t.estate.location
        rows.append({
            "date": t.date,
            "nature": t.nature,
            "amount": t.amount,
            "category": t.estate.category.value,
            "rooms": int(t.estate.rooms),
            "constructed_area": int(t.estate.constructed_area),
            "land_area": int(t.estate.land_area),
            "number": location.number,
            "suffix": location.suffix,
            "street": location.street,
            "postal_code": str(location.postal_code),
            "city": str(location.city),
            "department_code": str(location.department_code),
            "latitude": location.geo_point.latitude,
            "longitude": location.geo_point.longitude,
        })
    return pl.DataFrame(rows, schema=TRANSACTION_SCHEMA)


def write_frame(df: pl.DataFrame, path: Union[str, Path]) -> Path:
    """Write ``df`` as Parquet for a ``.parquet`` suffix, as CSV otherwise."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    if path.suffix == ".parquet":
        df.write_parquet(path)
    else:
        df.write_csv(path)
    logger.info("Exported", path=str(path), rows=len(df))
    return path


def export_metric(
    metric: Metric,
    path: Union[str, Path],
    filters: Optional[UserFilters] = None,
) -> Path:
    return write_frame(metric_to_frame(metric, filters), path)
