"""
DVF metrics: validated ingestion and concurrent aggregation of French
real-estate sale transactions (Demandes de Valeurs Foncieres).
"""

__version__ = "0.1.0"

from .data.loader import load_transactions, load_transactions_from_files
from .domain.models import Metric, Transaction, UserFilters
from .processing.filters import filter_transactions
from .processing.metrics import compute_metrics, run_metrics

__all__ = [
    "load_transactions",
    "load_transactions_from_files",
    "Metric",
    "Transaction",
    "UserFilters",
    "filter_transactions",
    "compute_metrics",
    "run_metrics",
]
