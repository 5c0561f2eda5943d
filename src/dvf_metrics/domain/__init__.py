"""Domain values and records."""

from .values import (
    PostalCode,
    City,
    DepartmentCode,
    GeoPoint,
    Category,
    RoomCount,
    ConstructedArea,
    LandArea,
    levenshtein,
    similarity,
)
from .models import (
    Location,
    RealEstate,
    Transaction,
    CityFilter,
    DepartmentFilter,
    GeographicFilter,
    UserFilters,
    Metric,
)

__all__ = [
    "PostalCode",
    "City",
    "DepartmentCode",
    "GeoPoint",
    "Category",
    "RoomCount",
    "ConstructedArea",
    "LandArea",
    "levenshtein",
    "similarity",
    "Location",
    "RealEstate",
    "Transaction",
    "CityFilter",
    "DepartmentFilter",
    "GeographicFilter",
    "UserFilters",
    "Metric",
]
