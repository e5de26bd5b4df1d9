from __future__ import annotations

import enum
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base for search payloads: snake_case in Python, camelCase on the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class SearchStatus(str, enum.Enum):
    """Terminal outcome of a ride search."""

    EXACT_MATCH = "EXACT_MATCH"
    FUTURE_MATCH = "FUTURE_MATCH"
    NO_MATCH = "NO_MATCH"
    INVALID_REQUEST = "INVALID_REQUEST"
    INVALID_CITY = "INVALID_CITY"
    INVALID_DATE = "INVALID_DATE"


class OrderBy(str, enum.Enum):
    """Recognized ordering keys. Anything else falls back to departure order."""

    PRICE_ASC = "PRICE_ASC"
    PRICE_DESC = "PRICE_DESC"
    DURATION_ASC = "DURATION_ASC"
    DURATION_DESC = "DURATION_DESC"


# ---------------- Request ----------------


class DateStruct(BaseModel):
    year: Optional[int] = Field(default=None, description="Calendar year, e.g. 2030.")
    month: Optional[int] = Field(default=None, description="Month 1-12.")
    day: Optional[int] = Field(default=None, description="Day of month.")


class SearchFilters(CamelModel):
    electric_only: Optional[bool] = Field(default=None, description="Only rides with an electric vehicle.")
    price_min: Optional[float] = Field(default=None, description="Inclusive lower bound on price per seat.")
    price_max: Optional[float] = Field(default=None, description="Inclusive upper bound on price per seat.")
    duration_min: Optional[int] = Field(default=None, description="Inclusive lower bound on duration (minutes).")
    duration_max: Optional[int] = Field(default=None, description="Inclusive upper bound on duration (minutes).")
    rating_min: Optional[float] = Field(default=None, description="Minimum driver average rating.")

    def active(self) -> Dict[str, Any]:
        """Return only the filters that were actually set (snake_case keys)."""
        return self.model_dump(exclude_none=True)


class SearchRequest(CamelModel):
    origin_city: Optional[str] = Field(default=None, description="Departure city (free text).")
    destiny_city: Optional[str] = Field(default=None, description="Arrival city (free text).")
    date: Optional[DateStruct] = Field(default=None, description="Requested departure date.")
    page: Optional[int] = Field(default=1, description="1-based page number.")
    filters: Optional[SearchFilters] = Field(default=None, description="Optional filter set.")
    order_by: Optional[str] = Field(default=None, description="PRICE_ASC, PRICE_DESC, DURATION_ASC or DURATION_DESC.")


# ---------------- Presented ride ----------------


class DriverSummary(CamelModel):
    id: Optional[int] = Field(default=None, description="Driver user id.")
    nickname: Optional[str] = Field(default=None, description="Driver display nickname.")
    photo_thumbnail: Optional[str] = Field(default=None, description="data: URI of the photo thumbnail.")
    avg_rating: float = Field(default=0.0, description="Driver average rating.")


class OriginPoint(CamelModel):
    city: str
    pick_point: str


class DestinyPoint(CamelModel):
    city: str
    drop_point: str


class VehicleSummary(CamelModel):
    brand: Optional[str] = None
    model: Optional[str] = None
    is_electric: bool = False


class Preferences(CamelModel):
    smoker: bool = False
    animals: bool = False
    other: Optional[str] = None


class PresentedRide(CamelModel):
    id: int = Field(..., description="Ride id.")
    driver: DriverSummary
    date: str = Field(..., description="Departure date, dd/mm/YYYY.")
    departure_time: str = Field(..., description="Departure time, HH:MM.")
    available_seats: int = Field(..., description="Seats still bookable.")
    origin: OriginPoint
    destiny: DestinyPoint
    estimated_duration: int = Field(..., description="Estimated duration in minutes.")
    vehicle: VehicleSummary
    preferences: Preferences
    price_per_person: float = Field(..., description="Price per seat.")


# ---------------- Response ----------------


class Pagination(CamelModel):
    page: int
    limit: int
    total_results: int


class PriceRange(BaseModel):
    min: float
    max: float


class DurationRange(BaseModel):
    min: int
    max: int


class FiltersMeta(CamelModel):
    """Observed range of the adjustable filters over a candidate set."""

    electric_present: bool = Field(..., alias="electric")
    has_zero_rated_driver: bool = Field(..., alias="drivers0")
    price: PriceRange
    duration: DurationRange


class BoundsEcho(BaseModel):
    min: Optional[float] = None
    max: Optional[float] = None


class FiltersEcho(CamelModel):
    """The filter bounds the client asked for, returned when nothing matched them."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")

    electric: bool = False
    price: BoundsEcho = Field(default_factory=BoundsEcho)
    duration: BoundsEcho = Field(default_factory=BoundsEcho)
    rating_min: Optional[float] = None


class SearchResponse(CamelModel):
    status: SearchStatus
    rides: List[PresentedRide] = Field(default_factory=list)
    pagination: Optional[Pagination] = None
    total_results: Optional[int] = None
    filters_meta: Optional[Union[FiltersMeta, FiltersEcho]] = None
    filters_meta_global: Optional[FiltersMeta] = None
