"""
Validated scalar types for DVF transaction records.

Each type wraps a primitive and validates it on construction, so an
instance always satisfies its invariant. Constructors raise ``ValueError``
on invalid input; the ``parse`` classmethods are the fallible factories
used at the ingestion boundary and return ``None`` instead. Equality and
hashing are those of the wrapped primitive.
"""

import math
import re
from enum import Enum
from typing import Optional

from ..config.constants import (
    CITY_SIMILARITY_THRESHOLD,
    MAX_LATITUDE,
    MAX_LONGITUDE,
    MIN_LATITUDE,
    MIN_LONGITUDE,
)

_POSTAL_CODE_PATTERN = re.compile(r"\d{4,5}")
_DEPARTMENT_CODE_PATTERN = re.compile(r"\d{2,3}|2[AB]")
_CITY_PATTERN = re.compile(r"[A-Za-zÀ-ÖØ-öø-ÿŒœ' -]+")


class _ValidatedStr(str):
    """String that only exists if it satisfies ``_is_valid``."""

    __slots__ = ()

    def __new__(cls, value: str):
        if not isinstance(value, str) or not cls._is_valid(value):
            raise ValueError(f"Invalid {cls.__name__}: {value!r}")
        return super().__new__(cls, value)

    @classmethod
    def _is_valid(cls, value: str) -> bool:
        raise NotImplementedError

    @classmethod
    def parse(cls, value: object):
        """Return the validated value, or ``None`` when ``value`` is invalid."""
        try:
            return cls(value)
        except ValueError:
            return None

    def __repr__(self) -> str:
        return f"{type(self).__name__}({str.__repr__(self)})"


class PostalCode(_ValidatedStr):
    """French postal code: 4 or 5 digits."""

    __slots__ = ()

    @classmethod
    def _is_valid(cls, value: str) -> bool:
        return _POSTAL_CODE_PATTERN.fullmatch(value) is not None


class City(_ValidatedStr):
    """City name made of letters (accents included), spaces, hyphens and apostrophes."""

    __slots__ = ()

    @classmethod
    def _is_valid(cls, value: str) -> bool:
        return _CITY_PATTERN.fullmatch(value) is not None

    def similarity(self, other: str) -> float:
        """Normalized Levenshtein similarity in [0, 1], case-sensitive."""
        return similarity(self, other)

    def is_similar(self, other: str) -> bool:
        """True when both names designate the same place despite minor spelling drift."""
        return self.similarity(other) >= CITY_SIMILARITY_THRESHOLD


class DepartmentCode(_ValidatedStr):
    """Department code: 2 or 3 digits, or the Corsican codes 2A and 2B."""

    __slots__ = ()

    @classmethod
    def _is_valid(cls, value: str) -> bool:
        return _DEPARTMENT_CODE_PATTERN.fullmatch(value) is not None

    @property
    def padded(self) -> str:
        """The code padded to postal-code length (4 for 2-character codes, 5 for 3)."""
        return self.ljust(len(self) + 2, "0")

    def same_family(self, other: "DepartmentCode") -> bool:
        """Prefix match of two codes as they appear inside postal codes.

        Codes of different length never match. Padded to 4 characters, the
        first character must be equal; padded to 5, the first two.
        """
        first, second = self.padded, DepartmentCode(other).padded
        if len(first) != len(second):
            return False
        if len(first) == 4:
            return first[:1] == second[:1]
        if len(first) == 5:
            return first[:2] == second[:2]
        return False


class GeoPoint(tuple):
    """(latitude, longitude) within metropolitan and overseas France."""

    __slots__ = ()

    def __new__(cls, latitude: float, longitude: float):
        latitude, longitude = float(latitude), float(longitude)
        if not (MIN_LATITUDE <= latitude <= MAX_LATITUDE and MIN_LONGITUDE <= longitude <= MAX_LONGITUDE):
            raise ValueError(f"GeoPoint out of bounds: ({latitude}, {longitude})")
        return super().__new__(cls, (latitude, longitude))

    def __getnewargs__(self):
        return tuple(self)

    @property
    def latitude(self) -> float:
        return self[0]

    @property
    def longitude(self) -> float:
        return self[1]

    @classmethod
    def parse(cls, latitude: object, longitude: object) -> Optional["GeoPoint"]:
        """Return the validated point, or ``None`` when out of bounds or not numeric."""
        try:
            return cls(latitude, longitude)
        except (TypeError, ValueError):
            return None

    def __repr__(self) -> str:
        return f"GeoPoint(latitude={self[0]}, longitude={self[1]})"


class Category(str, Enum):
    """Recognized property categories."""
    MAISON = "Maison"
    APPARTEMENT = "Appartement"

    @classmethod
    def parse(cls, value: object) -> Optional["Category"]:
        try:
            return cls(value)
        except ValueError:
            return None

    def __str__(self) -> str:
        return self.value


class _PositiveInt(int):
    """Integer that only exists if strictly positive."""

    def __new__(cls, value: int):
        if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
            raise ValueError(f"Invalid {cls.__name__}: {value!r}")
        return super().__new__(cls, value)

    @classmethod
    def parse(cls, value: object):
        """Return the validated value, or ``None``.

        Strings are read as base-10 integers.
        """
        try:
            if isinstance(value, str):
                value = int(value.strip())
            return cls(value)
        except (TypeError, ValueError):
            return None

    def __repr__(self) -> str:
        return f"{type(self).__name__}({int(self)})"


class RoomCount(_PositiveInt):
    """Number of main rooms."""


class ConstructedArea(_PositiveInt):
    """Built surface in square meters."""


class LandArea(_PositiveInt):
    """Land surface in square meters."""


def levenshtein(s1: str, s2: str) -> int:
    """Edit distance with unit cost for insertion, deletion and substitution.

    Uses the full (len(s2) + 1) x (len(s1) + 1) table.
    """
    table = [[0] * (len(s1) + 1) for _ in range(len(s2) + 1)]
    for j in range(len(s1) + 1):
        table[0][j] = j
    for i in range(len(s2) + 1):
        table[i][0] = i

    for i in range(1, len(s2) + 1):
        for j in range(1, len(s1) + 1):
            if s2[i - 1] == s1[j - 1]:
                table[i][j] = table[i - 1][j - 1]
            else:
                table[i][j] = 1 + min(
                    table[i - 1][j],
                    table[i][j - 1],
                    table[i - 1][j - 1],
                )

    return table[len(s2)][len(s1)]


def similarity(s1: str, s2: str) -> float:
    """``1 - distance / max(len)``; two empty strings are identical."""
    max_length = max(len(s1), len(s2))
    if max_length == 0:
        return 1.0
    return 1.0 - levenshtein(s1, s2) / max_length


def parse_float(value: object) -> Optional[float]:
    """Parse a finite decimal number, or return ``None``."""
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None
