"""User filter matching over per-year transaction streams."""

from typing import Iterable, Iterator, Mapping, Optional

from ..config.constants import DEFAULT_YEAR
from ..domain.models import (
    CityFilter,
    DepartmentFilter,
    GeographicFilter,
    Transaction,
    UserFilters,
)
from ..domain.values import City, DepartmentCode
from ..utils.exceptions import FilterError
from ..utils.logging import get_logger

logger = get_logger(__name__)


def matches_geography(transaction: Transaction, geographic_filter: Optional[GeographicFilter]) -> bool:
    """Approximate city match or department family match."""
    match geographic_filter:
        case None:
            return True
        case CityFilter(city=city):
            return city.is_similar(transaction.city)
        case DepartmentFilter(department_code=code):
            return code.same_family(transaction.department_code)
        case _:
            raise TypeError(f"Unknown geographic filter: {geographic_filter!r}")


def matches_scalars(transaction: Transaction, filters: UserFilters) -> bool:
    """Inclusive amount bounds and exact property type."""
    if filters.min_amount is not None and transaction.amount < filters.min_amount:
        return False
    if filters.max_amount is not None and transaction.amount > filters.max_amount:
        return False
    if filters.property_type is not None and transaction.category.value != filters.property_type:
        return False
    return True


def matches(transaction: Transaction, filters: UserFilters) -> bool:
    return matches_geography(transaction, filters.geographic_filter) and matches_scalars(
        transaction, filters
    )


def select_year(
    year_mapping: Mapping[int, Iterable[Transaction]],
    filters: UserFilters,
    default_year: int = DEFAULT_YEAR,
) -> Iterable[Transaction]:
    """The stream of the requested year, or of ``default_year`` when none is requested."""
    year = filters.year if filters.year is not None else default_year
    stream = year_mapping.get(year)
    if stream is None:
        logger.warning("Year not loaded", year=year, loaded=sorted(year_mapping))
        return ()
    return stream


def filter_transactions(
    year_mapping: Mapping[int, Iterable[Transaction]],
    filters: UserFilters,
    default_year: int = DEFAULT_YEAR,
) -> Iterator[Transaction]:
    """Lazily yield the transactions of the selected year that match ``filters``.

    Args:
        year_mapping: Per-year transaction streams
        filters: User filters
        default_year: Year used when ``filters.year`` is unset

    Returns:
        Iterator over the matching transactions
    """
    for transaction in select_year(year_mapping, filters, default_year):
        if matches(transaction, filters):
            yield transaction


def build_user_filters(
    year: Optional[int] = None,
    min_amount: Optional[float] = None,
    max_amount: Optional[float] = None,
    property_type: Optional[str] = None,
    city: Optional[str] = None,
    department: Optional[str] = None,
) -> UserFilters:
    """Build filters from raw user input.

    Raises:
        FilterError: If both a city and a department are given, if either
            is malformed, or if the amount bounds are inconsistent
    """
    if city and department:
        raise FilterError("Give either a city or a department, not both")

    geographic_filter: Optional[GeographicFilter] = None
    if city:
        parsed_city = City.parse(city.strip())
        if parsed_city is None:
            raise FilterError(f"Invalid city name: {city!r}")
        geographic_filter = CityFilter(city=parsed_city)
    elif department:
        parsed_code = DepartmentCode.parse(department.strip().upper())
        if parsed_code is None:
            raise FilterError(f"Invalid department code: {department!r}")
        geographic_filter = DepartmentFilter(department_code=parsed_code)

    try:
        return UserFilters(
            year=year,
            min_amount=min_amount,
            max_amount=max_amount,
            property_type=property_type or None,
            geographic_filter=geographic_filter,
        )
    except ValueError as e:
        raise FilterError(str(e)) from e
