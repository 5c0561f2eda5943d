"""
Record parser turning one DVF CSV line into a validated transaction.

A multi-million-line export always carries some malformed records, so a
bad line is never an error here: ``parse_record`` returns ``Discarded``
with the reason, and ``parse_line`` yields nothing for it.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Iterator, List, Optional, Union

from .schemas import (
    AMOUNT_FIELD,
    CATEGORY_FIELD,
    CITY_FIELD,
    CONSTRUCTED_AREA_FIELD,
    DATE_FIELD,
    DEPARTMENT_CODE_FIELD,
    LAND_AREA_FIELD,
    LATITUDE_FIELD,
    LONGITUDE_FIELD,
    NATURE_FIELD,
    NUMBER_FIELD,
    POSTAL_CODE_FIELD,
    ROOM_COUNT_FIELD,
    STREET_FIELD,
    SUFFIX_FIELD,
)
from ..config.constants import DATE_FORMAT, DEFAULT_CSV_SEPARATOR
from ..domain.models import Location, RealEstate, Transaction
from ..domain.values import (
    Category,
    City,
    ConstructedArea,
    DepartmentCode,
    GeoPoint,
    LandArea,
    PostalCode,
    RoomCount,
    parse_float,
)


@dataclass(frozen=True)
class Parsed:
    """A line that produced a transaction."""
    transaction: Transaction


@dataclass(frozen=True)
class Discarded:
    """A line that was dropped, and why."""
    reason: str


ParseResult = Union[Parsed, Discarded]


class _Reject(Exception):
    """Internal short-circuit out of a partially parsed line."""


def _require(value, field: str):
    if value is None:
        raise _Reject(f"invalid {field}")
    return value


def _optional(raw: str) -> Optional[str]:
    return raw if raw else None


def _parse_location(fields: List[str]) -> Location:
    postal_code = _require(PostalCode.parse(fields[POSTAL_CODE_FIELD]), "postal code")
    department_code = _require(
        DepartmentCode.parse(fields[DEPARTMENT_CODE_FIELD]), "department code"
    )
    geo_point = _require(
        GeoPoint.parse(fields[LATITUDE_FIELD], fields[LONGITUDE_FIELD]), "coordinates"
    )
    city = _require(City.parse(fields[CITY_FIELD]), "city")

    number = fields[NUMBER_FIELD]
    return Location(
        number=int(number) if number else None,
        suffix=_optional(fields[SUFFIX_FIELD]),
        street=fields[STREET_FIELD],
        postal_code=postal_code,
        city=city,
        department_code=department_code,
        geo_point=geo_point,
    )


def _parse_estate(fields: List[str], location: Location) -> RealEstate:
    category = _require(Category.parse(fields[CATEGORY_FIELD]), "category")
    rooms = _require(RoomCount.parse(fields[ROOM_COUNT_FIELD]), "room count")
    constructed_area = _require(
        ConstructedArea.parse(fields[CONSTRUCTED_AREA_FIELD]), "constructed area"
    )
    land_area = _require(LandArea.parse(fields[LAND_AREA_FIELD]), "land area")
    return RealEstate(
        category=category,
        rooms=rooms,
        location=location,
        constructed_area=constructed_area,
        land_area=land_area,
    )


def parse_record(line: str, separator: str = DEFAULT_CSV_SEPARATOR) -> ParseResult:
    """Parse one CSV line.

    Location fields are validated first, then the property fields; the
    first invalid field discards the whole line.

    Args:
        line: Raw CSV line, with or without its line terminator
        separator: Field separator

    Returns:
        ``Parsed`` with the transaction, or ``Discarded`` with a reason
    """
    fields = [field.strip() for field in line.rstrip("\r\n").split(separator)]
    try:
        when = datetime.strptime(fields[DATE_FIELD], DATE_FORMAT).date()
        nature = fields[NATURE_FIELD]
        amount = _require(parse_float(fields[AMOUNT_FIELD]), "amount")
        location = _parse_location(fields)
        estate = _parse_estate(fields, location)
    except _Reject as e:
        return Discarded(str(e))
    except (IndexError, ValueError) as e:
        return Discarded(f"{type(e).__name__}: {e}")

    return Parsed(Transaction(date=when, nature=nature, amount=amount, estate=estate))


def parse_line(line: str, separator: str = DEFAULT_CSV_SEPARATOR) -> Iterator[Transaction]:
    """Lazily yield the transaction of ``line``, if any."""
    result = parse_record(line, separator)
    if isinstance(result, Parsed):
        yield result.transaction
