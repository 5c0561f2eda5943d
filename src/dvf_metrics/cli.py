"""Command line entry point: load the yearly datasets, filter, print metrics."""

import argparse
import asyncio
import sys
from pathlib import Path
from typing import Callable, List, Optional

from .config.settings import Settings, load_settings
from .data.loader import YearMapping, load_transactions, load_transactions_from_files
from .domain.models import Metric, UserFilters
from .output.export import export_metric
from .processing.filters import build_user_filters, filter_transactions
from .processing.metrics import compute_metrics
from .utils.exceptions import AggregationError, ConfigurationError, FilterError
from .utils.logging import configure_logging, get_logger

logger = get_logger(__name__)

QUIT = "q"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="dvf-metrics",
        description="Metrics over French real-estate sale transactions (DVF)",
    )
    parser.add_argument("--env-file", type=Path, default=Path(".env"),
                        help="dotenv file with DATA_URL, START_YEAR, END_YEAR")
    parser.add_argument("--data-dir", type=Path,
                        help="Read <year>.csv[.gz] files from this directory instead of DATA_URL")
    parser.add_argument("--year", type=int, help="Dataset year")
    parser.add_argument("--min-amount", type=float, help="Inclusive minimum amount")
    parser.add_argument("--max-amount", type=float, help="Inclusive maximum amount")
    parser.add_argument("--property-type", choices=["Maison", "Appartement"],
                        help="Property category")
    geo = parser.add_mutually_exclusive_group()
    geo.add_argument("--city", help="City name, matched approximately")
    geo.add_argument("--department", help="Department code, e.g. 75 or 2A")
    parser.add_argument("--interactive", action="store_true",
                        help="Prompt for filters, one report per round")
    parser.add_argument("--output", type=Path,
                        help="Also write the metrics to a .csv or .parquet file")
    return parser


def _ask(prompt: str, read: Callable[[str], str]) -> Optional[str]:
    answer = read(prompt).strip()
    if answer.lower() == QUIT:
        raise EOFError
    return answer or None


def _ask_number(prompt: str, read: Callable[[str], str], kind=float):
    while True:
        answer = _ask(prompt, read)
        if answer is None:
            return None
        try:
            return kind(answer)
        except ValueError:
            print(f"Not a number: {answer!r}")


def prompt_filters(read: Callable[[str], str] = input) -> UserFilters:
    """Collect filters interactively; empty answers mean no filter.

    Raises:
        EOFError: When the user quits
    """
    while True:
        year = _ask_number("Year (empty for default): ", read, int)
        min_amount = _ask_number("Minimum amount (empty for none): ", read)
        max_amount = _ask_number("Maximum amount (empty for none): ", read)
        property_type = _ask("Property type, Maison or Appartement (empty for any): ", read)
        city = department = None
        choice = _ask("Geographic filter: 1 - city, 2 - department (empty for none): ", read)
        if choice == "1":
            city = _ask("City name: ", read)
        elif choice == "2":
            department = _ask("Department code: ", read)
        try:
            return build_user_filters(year, min_amount, max_amount, property_type, city, department)
        except FilterError as e:
            print(f"Invalid filters: {e}")


def _load(settings: Settings, data_dir: Optional[Path]) -> YearMapping:
    if data_dir is not None:
        return load_transactions_from_files(
            data_dir, settings.start_year, settings.end_year, settings.csv_separator
        )
    return asyncio.run(load_transactions(
        settings.start_year,
        settings.end_year,
        settings.data_url,
        settings.csv_separator,
        timeout=settings.http_timeout_s,
    ))


def report(years: YearMapping, filters: UserFilters, settings: Settings) -> Metric:
    """Compute the metrics of one query."""
    transactions = filter_transactions(years, filters, default_year=settings.default_year)
    return asyncio.run(compute_metrics(transactions, settings.broadcast_buffer_size))


def _print_report(metric: Metric, filters: UserFilters, output: Optional[Path]) -> None:
    print(metric.render())
    if output is not None:
        export_metric(metric, output, filters)


_FILTER_FLAGS = ("year", "min_amount", "max_amount", "property_type", "city", "department")


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.interactive:
        given = [name for name in _FILTER_FLAGS if getattr(args, name) is not None]
        if given:
            parser.error(
                "--interactive prompts for filters and cannot be combined with "
                + ", ".join("--" + name.replace("_", "-") for name in given)
            )

    try:
        settings = load_settings(args.env_file if args.env_file.exists() else None)
    except ConfigurationError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 2

    configure_logging(settings.log_level, settings.log_json)
    years = _load(settings, args.data_dir)

    if args.interactive:
        while True:
            try:
                filters = prompt_filters()
            except EOFError:
                return 0
            try:
                _print_report(report(years, filters, settings), filters, args.output)
            except AggregationError as e:
                logger.error("Metrics unavailable", error=str(e))
                print(f"Metrics unavailable: {e}", file=sys.stderr)

    try:
        filters = build_user_filters(
            args.year, args.min_amount, args.max_amount, args.property_type,
            args.city, args.department,
        )
    except FilterError as e:
        print(f"Invalid filters: {e}", file=sys.stderr)
        return 2

    try:
        metric = report(years, filters, settings)
    except AggregationError as e:
        logger.error("Metrics unavailable", error=str(e))
        print(f"Metrics unavailable: {e}", file=sys.stderr)
        return 1

    _print_report(metric, filters, args.output)
    return 0


if __name__ == "__main__":
    sys.exit(main())
