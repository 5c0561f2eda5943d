"""
Domain records for DVF sale transactions, user filters and metrics.

Transactions are frozen dataclasses assembled by the record parser from
validated values only. User filters and the metrics report are pydantic
models, like the rest of the configuration-facing surface.
"""

from dataclasses import dataclass
from datetime import date
from typing import Any, Dict, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .values import (
    Category,
    City,
    ConstructedArea,
    DepartmentCode,
    GeoPoint,
    LandArea,
    PostalCode,
    RoomCount,
)


@dataclass(frozen=True)
class Location:
    """Address and coordinates of a property."""
    number: Optional[int]
    suffix: Optional[str]
    street: str
    postal_code: PostalCode
    city: City
    department_code: DepartmentCode
    geo_point: GeoPoint


@dataclass(frozen=True)
class RealEstate:
    """The property sold in a transaction."""
    category: Category
    rooms: RoomCount
    location: Location
    constructed_area: ConstructedArea
    land_area: LandArea


@dataclass(frozen=True)
class Transaction:
    """One sale record of the DVF dataset."""
    date: date
    nature: str
    amount: float
    estate: RealEstate

    @property
    def year(self) -> int:
        return self.date.year

    @property
    def category(self) -> Category:
        return self.estate.category

    @property
    def city(self) -> City:
        return self.estate.location.city

    @property
    def department_code(self) -> DepartmentCode:
        return self.estate.location.department_code


class CityFilter(BaseModel):
    """Keep transactions whose city is approximately ``city``."""
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    city: City

    def __str__(self) -> str:
        return f"city={self.city}"


class DepartmentFilter(BaseModel):
    """Keep transactions whose department belongs to the family of ``department_code``."""
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    department_code: DepartmentCode

    def __str__(self) -> str:
        return f"department={self.department_code}"


GeographicFilter = Union[CityFilter, DepartmentFilter]


class UserFilters(BaseModel):
    """Filters of one metrics query. Every field is optional."""
    model_config = ConfigDict(frozen=True)

    year: Optional[int] = Field(None, description="Dataset year")
    min_amount: Optional[float] = Field(None, description="Inclusive lower bound on the amount")
    max_amount: Optional[float] = Field(None, description="Inclusive upper bound on the amount")
    property_type: Optional[str] = Field(None, description="Exact category value, e.g. 'Maison'")
    geographic_filter: Optional[GeographicFilter] = Field(None, description="City or department")

    @model_validator(mode="after")
    def _check_amount_bounds(self) -> "UserFilters":
        if (
            self.min_amount is not None
            and self.max_amount is not None
            and self.min_amount > self.max_amount
        ):
            raise ValueError("min_amount must not exceed max_amount")
        return self

    def describe(self) -> Dict[str, Any]:
        """Flat description of the filters, with ``None`` for unset ones."""
        geo = self.geographic_filter
        return {
            "year": self.year,
            "min_amount": self.min_amount,
            "max_amount": self.max_amount,
            "property_type": self.property_type,
            "city": str(geo.city) if isinstance(geo, CityFilter) else None,
            "department": str(geo.department_code) if isinstance(geo, DepartmentFilter) else None,
        }


class Metric(BaseModel):
    """Statistics of one filtered transaction stream."""
    model_config = ConfigDict(frozen=True)

    average_price: float
    average_price_per_square_meter: float
    average_room_count: float
    average_constructed_area: float
    average_land_area: float
    median_transaction_amount: Optional[float] = None
    transaction_count: int = 0
    # (percent Maison, percent Appartement)
    housing_nature_distribution: Tuple[float, float] = (0.0, 0.0)

    @classmethod
    def empty(cls) -> "Metric":
        return cls(
            average_price=0.0,
            average_price_per_square_meter=0.0,
            average_room_count=0.0,
            average_constructed_area=0.0,
            average_land_area=0.0,
        )

    @property
    def is_empty(self) -> bool:
        return self.transaction_count == 0

    def to_dict(self) -> Dict[str, Any]:
        maisons, appartements = self.housing_nature_distribution
        data = self.model_dump(exclude={"housing_nature_distribution"})
        data["percent_maison"] = maisons
        data["percent_appartement"] = appartements
        return data

    def render(self) -> str:
        """Console report."""
        if self.median_transaction_amount is None:
            median = "N/A"
        else:
            median = f"{self.median_transaction_amount / 1000:.0f} kEUR"
        maisons, appartements = self.housing_nature_distribution
        return "\n".join([
            "Metrics:",
            f"  Transactions: {self.transaction_count}",
            f"  Average price: {self.average_price / 1000:.0f} kEUR",
            f"  Average price/m2: {self.average_price_per_square_meter:.2f} EUR/m2",
            f"  Average rooms: {self.average_room_count:.2f}",
            f"  Average constructed area: {self.average_constructed_area:.2f} m2",
            f"  Average land area: {self.average_land_area:.2f} m2",
            f"  Median transaction amount: {median}",
            f"  Housing nature distribution: {maisons:.2f}% Maisons, "
            f"{appartements:.2f}% Appartements",
        ])
