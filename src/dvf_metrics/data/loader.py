"""
Per-year transaction streams and their loading.

A ``TransactionStream`` is re-iterable: every iteration decodes, parses and
validates its year's lines again, so a query never keeps the parsed
transactions of a whole year in memory. Loading fetches every year
concurrently; a year that cannot be fetched, decoded or whose header does
not match the expected layout becomes an empty stream.
"""

import asyncio
from pathlib import Path
from typing import Callable, Dict, Iterable, Iterator, Optional, Union

import httpx

from .parser import Parsed, parse_record
from .schemas import EXPECTED_FIELD_COUNT, is_header, validate_header
from .source import fetch_year, iter_file_lines, iter_lines
from .validators import is_valid_transaction
from ..config.constants import DEFAULT_CSV_SEPARATOR, DEFAULT_HTTP_TIMEOUT_S
from ..config.settings import url_for_year
from ..domain.models import Transaction
from ..utils.exceptions import IngestionError, SchemaMismatchError
from ..utils.logging import get_logger

logger = get_logger(__name__)

LineSource = Callable[[], Iterator[str]]


class TransactionStream:
    """Re-iterable sequence of the valid transactions of one year."""

    def __init__(
        self,
        year: int,
        lines: Optional[LineSource] = None,
        separator: str = DEFAULT_CSV_SEPARATOR,
        transactions: Optional[Iterable[Transaction]] = None,
    ):
        """Initialize a stream.

        Args:
            year: Dataset year
            lines: Callable returning a fresh iterator over the raw lines
            separator: Field separator of the raw lines
            transactions: Already parsed transactions, used instead of ``lines``
        """
        self.year = year
        self.separator = separator
        self._lines = lines
        self._transactions = tuple(transactions) if transactions is not None else None

    @classmethod
    def empty(cls, year: int) -> "TransactionStream":
        return cls(year, transactions=())

    @classmethod
    def from_payload(
        cls, year: int, payload: bytes, separator: str = DEFAULT_CSV_SEPARATOR
    ) -> "TransactionStream":
        return cls(year, lambda: iter_lines(payload), separator)

    @classmethod
    def from_file(
        cls, year: int, path: Union[str, Path], separator: str = DEFAULT_CSV_SEPARATOR
    ) -> "TransactionStream":
        return cls(year, lambda: iter_file_lines(path), separator)

    @classmethod
    def from_transactions(cls, year: int, transactions: Iterable[Transaction]) -> "TransactionStream":
        return cls(year, transactions=transactions)

    @property
    def is_empty_source(self) -> bool:
        return self._lines is None and not self._transactions

    def verify(self) -> int:
        """Decode the whole source once and check its layout.

        A header line must match the expected columns; without a header,
        the first data line must carry at least the expected number of
        fields. The rest of the source is read to the end so a truncated
        archive or invalid text is caught before any query runs.

        Returns:
            Number of lines read

        Raises:
            SchemaMismatchError: If the header or the first data line does
                not match the expected layout
            IngestionError: If the source cannot be decoded
        """
        if self._lines is None:
            return 0
        count = 0
        checked = False
        for line in self._lines():
            count += 1
            if checked or not line.strip():
                continue
            checked = True
            if is_header(line):
                validate_header(line, self.separator)
                continue
            fields = len(line.rstrip("\r\n").split(self.separator))
            if fields < EXPECTED_FIELD_COUNT:
                raise SchemaMismatchError(
                    f"First line has {fields} fields, expected at least {EXPECTED_FIELD_COUNT}",
                    year=self.year,
                )
        return count

    def __iter__(self) -> Iterator[Transaction]:
        if self._lines is None:
            yield from self._transactions or ()
            return

        parsed = discarded = rejected = 0
        for line in self._lines():
            if not line.strip() or is_header(line):
                continue
            result = parse_record(line, self.separator)
            if not isinstance(result, Parsed):
                discarded += 1
                continue
            if not is_valid_transaction(result.transaction):
                rejected += 1
                continue
            parsed += 1
            yield result.transaction

        logger.debug(
            "Stream consumed",
            year=self.year,
            parsed=parsed,
            discarded=discarded,
            rejected=rejected,
        )

    def __repr__(self) -> str:
        return f"TransactionStream(year={self.year})"


YearMapping = Dict[int, TransactionStream]


def _checked(stream: TransactionStream) -> TransactionStream:
    try:
        line_count = stream.verify()
    except IngestionError as e:
        logger.error("Dataset rejected", year=stream.year, error=str(e))
        return TransactionStream.empty(stream.year)
    logger.debug("Dataset verified", year=stream.year, line_count=line_count)
    return stream


async def _load_year(
    client: httpx.AsyncClient, url_template: str, year: int, separator: str
) -> TransactionStream:
    try:
        payload = await fetch_year(client, url_for_year(url_template, year), year)
    except IngestionError as e:
        logger.warning("No data for year", year=year, error=str(e))
        return TransactionStream.empty(year)
    # Decompression of a whole year runs off the event loop
    stream = TransactionStream.from_payload(year, payload, separator)
    return await asyncio.to_thread(_checked, stream)


async def load_transactions(
    start_year: int,
    end_year: int,
    url_template: str,
    separator: str = DEFAULT_CSV_SEPARATOR,
    client: Optional[httpx.AsyncClient] = None,
    timeout: float = DEFAULT_HTTP_TIMEOUT_S,
) -> YearMapping:
    """Fetch every year from ``start_year`` to ``end_year`` concurrently.

    Args:
        start_year: First dataset year (inclusive)
        end_year: Last dataset year (inclusive)
        url_template: Archive URL, with a ``{year}`` placeholder or as the
            base of the geo-DVF layout
        separator: Field separator of the exports
        client: HTTP client to use (one is created and closed otherwise)
        timeout: Request timeout in seconds, for a created client

    Returns:
        Mapping of year to its transaction stream; failed years map to empty streams
    """
    years = range(start_year, end_year + 1)
    logger.info("Loading transactions", start_year=start_year, end_year=end_year)

    if client is None:
        async with httpx.AsyncClient(timeout=timeout) as own_client:
            streams = await asyncio.gather(
                *(_load_year(own_client, url_template, year, separator) for year in years)
            )
    else:
        streams = await asyncio.gather(
            *(_load_year(client, url_template, year, separator) for year in years)
        )

    mapping = {stream.year: stream for stream in streams}
    logger.info(
        "Transactions loaded",
        years=list(mapping),
        empty_years=[year for year, stream in mapping.items() if stream.is_empty_source],
    )
    return mapping


def _find_year_file(data_dir: Path, year: int) -> Optional[Path]:
    for name in (f"{year}.csv", f"{year}.csv.gz", f"{year}/full.csv.gz", f"{year}/full.csv"):
        candidate = data_dir / name
        if candidate.is_file():
            return candidate
    return None


def load_transactions_from_files(
    data_dir: Union[str, Path],
    start_year: int,
    end_year: int,
    separator: str = DEFAULT_CSV_SEPARATOR,
) -> YearMapping:
    """Build the year mapping from local exports.

    Looks for ``<year>.csv``, ``<year>.csv.gz`` or the archive layout
    ``<year>/full.csv.gz`` under ``data_dir``. Missing years map to empty
    streams.
    """
    data_dir = Path(data_dir)
    mapping: YearMapping = {}
    for year in range(start_year, end_year + 1):
        path = _find_year_file(data_dir, year)
        if path is None:
            logger.warning("No data for year", year=year, data_dir=str(data_dir))
            mapping[year] = TransactionStream.empty(year)
            continue
        mapping[year] = _checked(TransactionStream.from_file(year, path, separator))
    return mapping
