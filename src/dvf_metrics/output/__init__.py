"""Export of metrics and transactions."""

from .export import metric_to_frame, transactions_to_frame, write_frame, export_metric

__all__ = ["metric_to_frame", "transactions_to_frame", "write_frame", "export_metric"]
