"""Ingestion of the DVF exports: decoding, parsing and validation."""

from .parser import Parsed, Discarded, ParseResult, parse_record, parse_line
from .validators import is_valid_transaction
from .schemas import EXPECTED_FIELD_COUNT, validate_header
from .loader import (
    TransactionStream,
    YearMapping,
    load_transactions,
    load_transactions_from_files,
)

__all__ = [
    "Parsed",
    "Discarded",
    "ParseResult",
    "parse_record",
    "parse_line",
    "is_valid_transaction",
    "EXPECTED_FIELD_COUNT",
    "validate_header",
    "TransactionStream",
    "YearMapping",
    "load_transactions",
    "load_transactions_from_files",
]
